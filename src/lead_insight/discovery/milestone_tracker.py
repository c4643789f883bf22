"""Milestone progress — how far each lead has moved through the checklist columns.

The checklist is a contiguous block of header columns. A lead's position is
the *last* completed column, so a box ticked out of order still advances it.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from lead_insight.discovery.fields import (
    ASSIGNEE,
    COMPANY,
    NOT_STARTED,
    STAGE,
    UNSET,
    Record,
    field_text,
    round_half_up,
)


@dataclass
class MilestoneCell:
    header: str
    value: str
    done: bool


@dataclass
class ProgressRow:
    company: str
    assignee: str
    stage: str
    last_action: str
    last_milestone_index: int  # -1 when nothing is done
    completion_rate: int
    milestones: list[MilestoneCell]


@dataclass
class MilestoneSummary:
    header: str
    active_count: int  # leads whose last completed milestone is this one
    rate: int  # % of leads with this milestone done


@dataclass
class ProgressResult:
    milestone_headers: list[str]
    rows: list[ProgressRow]
    milestones: list[MilestoneSummary]


def is_milestone_done(value) -> bool:
    """A cell counts as done unless blank, "0" or "false" (any case)."""
    text = str(value if value is not None else "").strip()
    return text != "" and text != "0" and text.lower() != "false"


def milestone_headers(headers: Sequence[str], start: int = 35, end: int = 77) -> list[str]:
    """Non-blank headers in the half-open window [start, end)."""
    return [h for h in headers[start:end] if h and h.strip()]


def track_record(record: Record, headers: list[str]) -> ProgressRow:
    cells = []
    last_index = -1
    last_action = NOT_STARTED
    for idx, header in enumerate(headers):
        value = field_text(record, header).strip()
        done = is_milestone_done(value)
        if done:
            last_index = idx
            last_action = value
        cells.append(MilestoneCell(header=header, value=value, done=done))

    if headers:
        completion = round_half_up((last_index + 1) / len(headers) * 100)
    else:
        completion = 0

    return ProgressRow(
        company=field_text(record, COMPANY),
        assignee=field_text(record, ASSIGNEE, UNSET),
        stage=field_text(record, STAGE, UNSET),
        last_action=last_action,
        last_milestone_index=last_index,
        completion_rate=completion,
        milestones=cells,
    )


def track_progress(
    records: Iterable[Record],
    headers: Sequence[str],
    window: tuple[int, int] = (35, 77),
) -> ProgressResult:
    """Compute per-lead progress and per-milestone completion.

    Args:
        records: Lead records; those without a company name are skipped.
        headers: Full header list of the sheet.
        window: Half-open header slice holding the checklist columns.

    Returns:
        ProgressResult with rows ordered furthest-progressed first.
    """
    columns = milestone_headers(headers, *window)
    rows = [
        track_record(r, columns)
        for r in records
        if field_text(r, COMPANY) != ""
    ]
    rows.sort(key=lambda r: -r.last_milestone_index)

    summaries = []
    for idx, header in enumerate(columns):
        done = sum(1 for r in rows if r.milestones[idx].done)
        summaries.append(MilestoneSummary(
            header=header,
            active_count=sum(1 for r in rows if r.last_milestone_index == idx),
            rate=round_half_up(done / len(rows) * 100) if rows else 0,
        ))

    return ProgressResult(milestone_headers=columns, rows=rows, milestones=summaries)
