"""Week bucketing — map approach dates to Monday-anchored week keys."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import timedelta

from lead_insight.discovery.fields import APPROACH_DATE, Record, field_text, parse_date_or_none

ALL_WEEKS = "all"


def week_key(date_text: str) -> str | None:
    """Return "YYYY/MM/DDの週" for the Monday of the date's week, or None."""
    date = parse_date_or_none(date_text)
    if date is None:
        return None
    # weekday(): Monday=0 .. Sunday=6, so Sunday steps back 6 days
    monday = date - timedelta(days=date.weekday())
    return f"{monday.year}/{monday.month:02d}/{monday.day:02d}の週"


def record_week_key(record: Record, date_field: str = APPROACH_DATE) -> str | None:
    return week_key(field_text(record, date_field))


def available_weeks(records: Iterable[Record], date_field: str = APPROACH_DATE) -> list[str]:
    """Distinct week keys across records, most recent first."""
    weeks = {record_week_key(r, date_field) for r in records}
    weeks.discard(None)
    return sorted(weeks, reverse=True)


def filter_by_week(
    records: Iterable[Record],
    selected_week: str = ALL_WEEKS,
    date_field: str = APPROACH_DATE,
) -> list[Record]:
    """Keep records whose date falls in *selected_week*; "all" keeps everything."""
    if not selected_week or selected_week == ALL_WEEKS:
        return list(records)
    return [r for r in records if record_week_key(r, date_field) == selected_week]
