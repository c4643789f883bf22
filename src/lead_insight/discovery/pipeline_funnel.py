"""Pipeline funnel — lead counts per sales stage and stage-to-stage conversion.

Stage values in the CRM are free text and often composite, so a lead is
counted toward every funnel stage whose label appears in its stage cell.
Counts are therefore not guaranteed to decrease down the funnel. The final
contract stage also counts leads whose contract cell is filled.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from lead_insight.discovery.fields import (
    FUNNEL_STAGES,
    STAGE,
    Record,
    field_text,
    is_won,
    round_half_up,
)


@dataclass
class FunnelStep:
    """Count for one funnel stage."""
    stage: str
    count: int
    pct_of_max: float  # count relative to the largest stage
    conversion_to_next: int | None  # rounded %, None for the last stage


@dataclass
class PipelineFunnel:
    steps: list[FunnelStep]
    total_records: int
    summary: str


def conversion_rate(current: int, following: int) -> int:
    """round(following / current * 100), 0 when current is 0."""
    if current <= 0:
        return 0
    return round_half_up(following / current * 100)


def stage_counts(records: list[Record], stages: list[str]) -> list[tuple[str, int]]:
    """Substring-match count per stage; the last stage uses the won rule."""
    counts = []
    last = len(stages) - 1
    for idx, label in enumerate(stages):
        if idx == last:
            count = sum(1 for r in records if label in field_text(r, STAGE) or is_won(r))
        else:
            count = sum(1 for r in records if label in field_text(r, STAGE))
        counts.append((label, count))
    return counts


def build_funnel(
    records: Iterable[Record],
    stages: list[str] | None = None,
) -> PipelineFunnel:
    """Count leads per funnel stage and the conversion between neighbours.

    Args:
        records: Lead records.
        stages: Ordered stage labels, ending with the contract stage.
    """
    rows = list(records)
    stages = stages or FUNNEL_STAGES
    counts = stage_counts(rows, stages)
    max_count = max((c for _, c in counts), default=0)

    steps: list[FunnelStep] = []
    for idx, (label, count) in enumerate(counts):
        if idx + 1 < len(counts):
            conv = conversion_rate(count, counts[idx + 1][1])
        else:
            conv = None
        steps.append(FunnelStep(
            stage=label,
            count=count,
            pct_of_max=round(count / max_count * 100, 1) if max_count > 0 else 0.0,
            conversion_to_next=conv,
        ))

    if counts:
        first, final = counts[0][1], counts[-1][1]
        summary = (
            f"Funnel: {first} at {counts[0][0]} → {final} at {counts[-1][0]} "
            f"across {len(rows)} leads."
        )
    else:
        summary = "Funnel: no stages configured."

    return PipelineFunnel(steps=steps, total_records=len(rows), summary=summary)
