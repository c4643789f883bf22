"""Lead-time analysis — days from first approach to each meeting.

Pure functions over lead records. Each row measures the elapsed days from
the approach date to up to five meeting dates, with stage / probability
filtering and a most-recent-first ordering.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from lead_insight.discovery.fields import (
    APPROACH_DATE,
    COMPANY,
    LOST_STAGE,
    MEETING_DATES,
    PROBABILITY,
    STAGE,
    UNSET,
    Record,
    field_text,
    parse_date_or_none,
)

ACTIVE_ONLY = "active_only"
ALL_STAGES = "all"

HIGH_ALERT_DAYS = 30
MEDIUM_ALERT_DAYS = 14

_SECONDS_PER_DAY = 86400


@dataclass
class LeadTimeRow:
    """Elapsed days from approach to each meeting for one lead."""
    company: str
    stage: str
    probability: str
    approach_date: str
    days_to_meetings: list[int | None]  # one slot per meeting date, None when unknown


def day_delta_or_none(start_text: str, end_text: str) -> int | None:
    """Whole days from start to end, rounded up; None if either date is missing.

    Any overshoot past a day boundary counts as a full extra day. Negative
    results are kept when the end precedes the start.
    """
    if not start_text or not end_text:
        return None
    start = parse_date_or_none(start_text)
    end = parse_date_or_none(end_text)
    if start is None or end is None:
        return None
    return math.ceil((end - start).total_seconds() / _SECONDS_PER_DAY)


def severity(days: int | None) -> str:
    """Display band for a delta: "high" > 30 days, "medium" > 14, else "normal"."""
    if days is None:
        return "normal"
    if days > HIGH_ALERT_DAYS:
        return "high"
    if days > MEDIUM_ALERT_DAYS:
        return "medium"
    return "normal"


def _matches_stage_mode(stage: str, stage_mode: str) -> bool:
    if stage_mode == ACTIVE_ONLY:
        return stage != LOST_STAGE
    if stage_mode == ALL_STAGES:
        return True
    return stage == stage_mode


def build_lead_time_row(record: Record) -> LeadTimeRow:
    approach = field_text(record, APPROACH_DATE)
    return LeadTimeRow(
        company=field_text(record, COMPANY, UNSET),
        stage=field_text(record, STAGE, UNSET),
        probability=field_text(record, PROBABILITY, UNSET),
        approach_date=approach,
        days_to_meetings=[
            day_delta_or_none(approach, field_text(record, f)) for f in MEETING_DATES
        ],
    )


def _recency_key(row: LeadTimeRow) -> tuple[int, float]:
    # Unparseable approach dates sort after every valid one
    parsed: datetime | None = parse_date_or_none(row.approach_date)
    if parsed is None:
        return (1, 0.0)
    return (0, -(parsed - datetime.min).total_seconds())


def analyze_lead_times(
    records: Iterable[Record],
    stage_mode: str = ACTIVE_ONLY,
    stage_filter: str | None = None,
    probability_filter: str | None = None,
) -> list[LeadTimeRow]:
    """Compute lead-time rows for records with an approach date.

    Args:
        records: Lead records.
        stage_mode: "active_only" (drop lost leads), "all", or an exact stage.
        stage_filter: Optional exact stage match, applied after *stage_mode*.
        probability_filter: Optional exact probability-label match.

    Returns:
        Rows sorted by approach date, most recent first.
    """
    rows = [
        build_lead_time_row(r)
        for r in records
        if field_text(r, APPROACH_DATE).strip() != ""
    ]

    filtered = []
    for row in rows:
        if not _matches_stage_mode(row.stage, stage_mode):
            continue
        if stage_filter and row.stage != stage_filter:
            continue
        if probability_filter and row.probability != probability_filter:
            continue
        filtered.append(row)

    filtered.sort(key=_recency_key)
    return filtered

