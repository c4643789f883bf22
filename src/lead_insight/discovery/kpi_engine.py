"""KPI engine — realized revenue, weighted forecast, and target attainment.

Pure computations over lead records plus a small stateful wrapper
(:class:`KPIEngine`) that owns the user's targets and persists every edit
through an injected target store.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from lead_insight.discovery.fields import (
    PROBABILITY,
    SEGMENT_DIMENSIONS,
    UNSET,
    Record,
    amount_text,
    field_text,
    is_active,
    is_won,
    parse_currency_or_zero,
    parse_leading_float_or_none,
    parse_probability_or_zero,
    round_half_up,
    safe_pct,
)

if TYPE_CHECKING:
    from lead_insight.memory.target_store import TargetStore

logger = logging.getLogger(__name__)


class KPITargets(BaseModel):
    """User-configured KPI targets. Serialized with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    revenue: float = Field(default=10_000_000, ge=0)
    deal_count: float = Field(default=20, ge=0, alias="dealCount")
    conversion_rate: float = Field(default=15, ge=0, alias="conversionRate")
    avg_deal_size: float = Field(default=500_000, ge=0, alias="avgDealSize")


TARGET_FIELDS = {
    "revenue": "revenue",
    "dealCount": "deal_count",
    "conversionRate": "conversion_rate",
    "avgDealSize": "avg_deal_size",
}


@dataclass
class KPIStats:
    actual_revenue: float
    pipeline_revenue: float
    forecast: float
    deal_count: int
    conv_rate: float
    avg_deal_size: float
    total_records: int


@dataclass
class SegmentRow:
    """Won-deal performance of one dimension value."""
    name: str
    revenue: float
    deal_count: int
    group_size: int
    conv_rate: float
    avg_size: float
    contribution: float  # % of total realized revenue


@dataclass
class Attainment:
    metric: str
    actual: float
    target: float
    percent: int  # capped at 100
    achieved: bool
    forecast: float | None = None
    shortfall: float | None = None  # target minus forecast, floored at 0


@dataclass
class KPIReport:
    stats: KPIStats
    attainment: list[Attainment]
    segments: list[SegmentRow]
    dimension: str
    targets: KPITargets


# ---------------------------------------------------------------------------
# Pure computations
# ---------------------------------------------------------------------------


def record_amount(record: Record) -> float:
    return parse_currency_or_zero(amount_text(record))


def compute_kpi_stats(records: Iterable[Record]) -> KPIStats:
    """Realized revenue, probability-weighted pipeline and derived ratios."""
    rows = list(records)
    won = [r for r in rows if is_won(r)]

    actual_revenue = sum(record_amount(r) for r in won)
    pipeline_revenue = sum(
        record_amount(r) * (parse_probability_or_zero(field_text(r, PROBABILITY, "0%")) / 100)
        for r in rows
        if is_active(r)
    )
    deal_count = len(won)

    return KPIStats(
        actual_revenue=actual_revenue,
        pipeline_revenue=pipeline_revenue,
        forecast=actual_revenue + pipeline_revenue,
        deal_count=deal_count,
        conv_rate=safe_pct(deal_count, len(rows)),
        avg_deal_size=actual_revenue / deal_count if deal_count else 0.0,
        total_records=len(rows),
    )


def resolve_dimension(dimension: str) -> str:
    """Map "assignee" / "category" / "channel" (or a raw field name) to a field."""
    if dimension in SEGMENT_DIMENSIONS:
        return SEGMENT_DIMENSIONS[dimension]
    if dimension in SEGMENT_DIMENSIONS.values():
        return dimension
    raise ValueError(
        f"Unknown segment dimension '{dimension}'. "
        f"Expected one of: {', '.join(SEGMENT_DIMENSIONS)}"
    )


def segment_breakdown(
    records: Iterable[Record],
    dimension: str,
    total_revenue: float | None = None,
) -> list[SegmentRow]:
    """Group by a dimension and compute won revenue per group.

    Args:
        records: Lead records.
        dimension: "assignee", "category" or "channel".
        total_revenue: Realized revenue used for contribution; computed when omitted.

    Returns:
        Rows sorted by revenue, highest first.
    """
    rows = list(records)
    field = resolve_dimension(dimension)
    if total_revenue is None:
        total_revenue = compute_kpi_stats(rows).actual_revenue
    denominator = total_revenue or 1

    groups: dict[str, dict[str, float]] = {}
    for row in rows:
        key = field_text(row, field, UNSET)
        g = groups.setdefault(key, {"revenue": 0.0, "count": 0, "total": 0})
        g["total"] += 1
        if is_won(row):
            g["count"] += 1
            g["revenue"] += record_amount(row)

    result = [
        SegmentRow(
            name=name,
            revenue=g["revenue"],
            deal_count=int(g["count"]),
            group_size=int(g["total"]),
            conv_rate=safe_pct(g["count"], g["total"]),
            avg_size=g["revenue"] / g["count"] if g["count"] else 0.0,
            contribution=g["revenue"] / denominator * 100,
        )
        for name, g in groups.items()
    ]
    result.sort(key=lambda s: -s.revenue)
    return result


def attainment_percent(actual: float, target: float) -> int:
    """min(100, round(actual / target * 100)); 0 when the target is not positive."""
    if target <= 0:
        return 0
    return min(100, round_half_up(actual / target * 100))


def compute_attainment(stats: KPIStats, targets: KPITargets) -> list[Attainment]:
    pairs = [
        ("revenue", stats.actual_revenue, targets.revenue),
        ("dealCount", float(stats.deal_count), targets.deal_count),
        ("conversionRate", stats.conv_rate, targets.conversion_rate),
        ("avgDealSize", stats.avg_deal_size, targets.avg_deal_size),
    ]
    result = []
    for metric, actual, target in pairs:
        item = Attainment(
            metric=metric,
            actual=actual,
            target=target,
            percent=attainment_percent(actual, target),
            achieved=actual >= target,
        )
        if metric == "revenue":
            item.forecast = stats.forecast
            item.shortfall = max(0.0, target - stats.forecast)
        result.append(item)
    return result


def apply_target_edit(targets: KPITargets, name: str, raw_value) -> KPITargets:
    """Overlay one edited field; non-numeric input becomes 0.

    Raises:
        ValueError: for an unknown field name or a negative value.
    """
    if name not in TARGET_FIELDS:
        raise ValueError(f"Unknown target '{name}'")
    value = parse_leading_float_or_none(raw_value)
    merged = targets.model_dump(by_alias=True)
    merged[name] = value if value is not None else 0.0
    return KPITargets.model_validate(merged)


# ---------------------------------------------------------------------------
# Stateful wrapper
# ---------------------------------------------------------------------------


class KPIEngine:
    """Holds the current targets and persists each edit through *store*."""

    def __init__(self, store: TargetStore):
        self.store = store
        self.targets = store.load()

    def update_target(self, name: str, raw_value) -> KPITargets:
        self.targets = apply_target_edit(self.targets, name, raw_value)
        self.store.save(self.targets)
        logger.info("KPI target %s set to %s", name, getattr(self.targets, TARGET_FIELDS[name]))
        return self.targets

    def update_targets(self, changes: dict) -> KPITargets:
        """Apply several edits as one change; nothing is saved if any edit is rejected."""
        targets = self.targets
        for name, raw_value in changes.items():
            targets = apply_target_edit(targets, name, raw_value)
        self.targets = targets
        self.store.save(self.targets)
        logger.info("KPI targets updated: %s", ", ".join(changes))
        return self.targets

    def report(self, records: Iterable[Record], dimension: str = "assignee") -> KPIReport:
        rows = list(records)
        stats = compute_kpi_stats(rows)
        return KPIReport(
            stats=stats,
            attainment=compute_attainment(stats, self.targets),
            segments=segment_breakdown(rows, dimension, stats.actual_revenue),
            dimension=dimension,
            targets=self.targets,
        )
