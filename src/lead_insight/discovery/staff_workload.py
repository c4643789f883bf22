"""Staff workload — active and total leads per assignee."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from lead_insight.discovery.fields import ASSIGNEE, UNSET, Record, field_text, is_lost

TOP_STAFF = 5


@dataclass
class StaffLoad:
    assignee: str
    total: int
    active: int  # leads not in the lost stage
    active_share: float  # active / all records * 100
    inactive_share: float  # (total - active) / all records * 100


def compute_workload(records: Iterable[Record], limit: int = TOP_STAFF) -> list[StaffLoad]:
    """Group leads by assignee and rank by active count, top *limit*.

    Empty assignee cells are grouped under "未設定". Ties keep first-seen order.
    """
    totals: dict[str, int] = {}
    actives: dict[str, int] = {}
    n = 0

    for row in records:
        n += 1
        staff = field_text(row, ASSIGNEE, UNSET)
        totals[staff] = totals.get(staff, 0) + 1
        actives.setdefault(staff, 0)
        if not is_lost(row):
            actives[staff] += 1

    ranked = sorted(totals, key=lambda s: -actives[s])
    result = []
    for staff in ranked[:limit]:
        total, active = totals[staff], actives[staff]
        result.append(StaffLoad(
            assignee=staff,
            total=total,
            active=active,
            active_share=round(active / n * 100, 1) if n else 0.0,
            inactive_share=round((total - active) / n * 100, 1) if n else 0.0,
        ))
    return result
