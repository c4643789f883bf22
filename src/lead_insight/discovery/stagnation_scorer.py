"""Stagnation scoring — flag open leads with no recent meeting progress.

Two-tier heuristic that only inspects the approach date and the first two
meeting dates; later meetings never affect the score.

* Approached but no first meeting for more than 14 days:
  score = min(100, floor(days * 2)).
* First meeting held but no second one for more than 30 days:
  score = min(100, floor(days * 1.5)).

Only leads scoring above 30 are reported, highest risk first, top 10.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from lead_insight.discovery.fields import (
    APPROACH_DATE,
    ASSIGNEE,
    COMPANY,
    CONTRACT_STAGE,
    LOST_STAGE,
    MEETING_DATES,
    STAGE,
    Record,
    field_text,
    parse_date_or_none,
)

NO_FIRST_MEETING = "アプローチ後、初回商談なし"
NO_PROGRESS_AFTER_FIRST = "商談1から進展なし"

APPROACH_GRACE_DAYS = 14
FIRST_MEETING_GRACE_DAYS = 30
APPROACH_WEIGHT = 2.0
FIRST_MEETING_WEIGHT = 1.5
MAX_SCORE = 100
REPORT_THRESHOLD = 30
TOP_LEADS = 10


@dataclass
class StagnantLead:
    company: str
    assignee: str
    stage: str
    risk_score: int
    reason: str


def _days_since(date_text: str, now: datetime) -> float | None:
    date = parse_date_or_none(date_text)
    if date is None:
        return None
    return (now - date).total_seconds() / 86400


def score_lead(record: Record, now: datetime) -> tuple[int, str]:
    """Return (risk_score, reason) for one lead; (0, "") when not at risk."""
    approach = field_text(record, APPROACH_DATE)
    first = field_text(record, MEETING_DATES[0])
    second = field_text(record, MEETING_DATES[1])

    if approach and not first:
        days = _days_since(approach, now)
        if days is not None and days > APPROACH_GRACE_DAYS:
            return min(MAX_SCORE, math.floor(days * APPROACH_WEIGHT)), NO_FIRST_MEETING
    elif first and not second:
        days = _days_since(first, now)
        if days is not None and days > FIRST_MEETING_GRACE_DAYS:
            return min(MAX_SCORE, math.floor(days * FIRST_MEETING_WEIGHT)), NO_PROGRESS_AFTER_FIRST

    return 0, ""


def find_stagnant_leads(
    records: Iterable[Record],
    now: datetime | None = None,
    limit: int = TOP_LEADS,
) -> list[StagnantLead]:
    """Score every open lead and return the riskiest ones.

    Args:
        records: Lead records.
        now: Reference time. Defaults to the current local time.
        limit: Maximum number of leads returned.
    """
    now = now or datetime.now()
    flagged: list[StagnantLead] = []

    for row in records:
        stage = field_text(row, STAGE)
        if stage in (LOST_STAGE, CONTRACT_STAGE):
            continue
        score, reason = score_lead(row, now)
        if score <= REPORT_THRESHOLD:
            continue
        flagged.append(StagnantLead(
            company=field_text(row, COMPANY),
            assignee=field_text(row, ASSIGNEE),
            stage=stage,
            risk_score=score,
            reason=reason,
        ))

    flagged.sort(key=lambda lead: -lead.risk_score)
    return flagged[:limit]
