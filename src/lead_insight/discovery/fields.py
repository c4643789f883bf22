"""Lead record schema — field names, stage labels, and permissive parsers.

Every analytics module reads records through the constants and helpers
defined here, so the implicit spreadsheet schema is declared in one place.
Parsers never raise: each one has a named default (None or 0) that the
callers rely on when a cell is empty or malformed.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Union

Scalar = Union[str, int, float, bool]
Record = Mapping[str, Scalar]


# ---------------------------------------------------------------------------
# Field names
# ---------------------------------------------------------------------------

COMPANY = "企業名"
CATEGORY = "事業内容"
PLAN = "プラン"
STAGE = "ステージ"
ASSIGNEE = "担当者"
PROBABILITY = "確度"
CHANNEL = "経路"
APPROACH_DATE = "アプローチ日"
MEETING_DATES = ("商談日1", "商談日2", "商談日3", "商談日4", "商談日5")
QUOTE = "見積り・提案"
CONTRACT = "契約"

# Column order of the raw-data view
DISPLAY_HEADERS = [
    "企業名", "事業内容", "プラン", "ステージ", "詳細(自動)", "詳細", "担当者", "パーソンランク",
    "確度", "番号", "経路", "経路詳細", "区分", "商談回_数", "決算月", "解決する課題",
    "提案内容", "アプローチ日", "商談日1", "商談日2", "商談日3", "商談日4", "商談日5",
    "見積り・提案", "契約", "HP", "議事録", "資料",
]

# Segment dimensions accepted by the KPI breakdown
SEGMENT_DIMENSIONS = {
    "assignee": ASSIGNEE,
    "category": CATEGORY,
    "channel": CHANNEL,
}


# ---------------------------------------------------------------------------
# Stage labels and display defaults
# ---------------------------------------------------------------------------

LOST_STAGE = "失注"
CONTRACT_STAGE = "契約"
FUNNEL_STAGES = ["S3", "S4", "S5", "S6", CONTRACT_STAGE]

UNSET = "未設定"
OTHER_CATEGORY = "その他"
UNKNOWN_CHANNEL = "不明"
NOT_STARTED = "未着手"


# ---------------------------------------------------------------------------
# Cell access
# ---------------------------------------------------------------------------


def field_text(record: Record, field: str, default: str = "") -> str:
    """Return a cell as text; absent or empty cells yield *default*."""
    val = record.get(field)
    if val is None or val == "" or val is False:
        return default
    if isinstance(val, bool):
        return "true"
    return str(val)


def is_won(record: Record) -> bool:
    """A record is won when its stage mentions a contract or the contract cell is filled."""
    return (
        CONTRACT_STAGE in field_text(record, STAGE)
        or field_text(record, CONTRACT).strip() != ""
    )


def is_lost(record: Record) -> bool:
    return field_text(record, STAGE) == LOST_STAGE


def is_active(record: Record) -> bool:
    return not is_won(record) and not is_lost(record)


def amount_text(record: Record) -> str:
    """Quote/proposal amount, falling back to the plan cell when empty."""
    return field_text(record, QUOTE) or field_text(record, PLAN)


# ---------------------------------------------------------------------------
# Parsers with named defaults
# ---------------------------------------------------------------------------

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y.%m.%d",
    "%m/%d/%Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y年%m月%d日",
)

_LEADING_NUMBER = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_NON_NUMERIC = re.compile(r"[^0-9.\-]+")


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_date_or_none(val) -> datetime | None:
    """Parse a calendar date; empty or unrecognised input yields None.

    Timestamps carrying an offset (e.g. "2024-06-12T10:00:00Z") are converted
    to naive UTC so they compare with the plain dates of other cells.
    """
    if val is None:
        return None
    if isinstance(val, datetime):
        return _as_naive_utc(val)
    text = str(val).strip()
    if not text:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return _as_naive_utc(datetime.strptime(text, fmt))
        except ValueError:
            continue
    return None


def parse_leading_float_or_none(val) -> float | None:
    """Parse the leading numeric portion of a string ("70%" -> 70.0)."""
    if val is None:
        return None
    match = _LEADING_NUMBER.match(str(val))
    if not match:
        return None
    number = float(match.group(0))
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_currency_or_zero(val) -> float:
    """Strip everything but digits, '.' and '-' and parse; failures yield 0."""
    if val is None or val == "":
        return 0.0
    cleaned = _NON_NUMERIC.sub("", str(val))
    number = parse_leading_float_or_none(cleaned)
    return number if number is not None else 0.0


def parse_probability_or_zero(val) -> float:
    """Probability label as a percentage number; absent or unparseable yields 0."""
    number = parse_leading_float_or_none(val)
    return number if number is not None else 0.0


# ---------------------------------------------------------------------------
# Arithmetic helpers
# ---------------------------------------------------------------------------


def round_half_up(x: float) -> int:
    """Round to the nearest integer with .5 going up."""
    return int(math.floor(x + 0.5))


def safe_pct(numerator: float, denominator: float) -> float:
    """numerator / denominator * 100, or 0 when the denominator is 0."""
    if not denominator:
        return 0.0
    return numerator / denominator * 100
