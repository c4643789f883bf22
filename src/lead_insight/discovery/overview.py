"""Overview distributions — stage, probability, category and channel counts."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

from lead_insight.discovery.fields import (
    CATEGORY,
    CHANNEL,
    OTHER_CATEGORY,
    PROBABILITY,
    STAGE,
    UNKNOWN_CHANNEL,
    UNSET,
    Record,
    field_text,
)

TOP_SEGMENTS = 6


@dataclass
class OverviewResult:
    stages: list[tuple[str, int]]  # sorted by stage label
    probabilities: list[tuple[str, int]]  # most common first
    categories: list[tuple[str, int]]  # top 6
    channels: list[tuple[str, int]]  # top 6
    all_stages: list[str]  # distinct stages for the stage selector
    total_records: int


def _ranked(counter: Counter) -> list[tuple[str, int]]:
    # Counter.most_common keeps first-seen order among ties
    return counter.most_common()


def compute_overview(records: Iterable[Record]) -> OverviewResult:
    stages: Counter = Counter()
    probabilities: Counter = Counter()
    categories: Counter = Counter()
    channels: Counter = Counter()
    total = 0

    for row in records:
        total += 1
        stages[field_text(row, STAGE, UNSET)] += 1
        probabilities[field_text(row, PROBABILITY, UNSET)] += 1
        categories[field_text(row, CATEGORY, OTHER_CATEGORY)] += 1
        channels[field_text(row, CHANNEL, UNKNOWN_CHANNEL)] += 1

    return OverviewResult(
        stages=sorted(stages.items()),
        probabilities=_ranked(probabilities),
        categories=_ranked(categories)[:TOP_SEGMENTS],
        channels=_ranked(channels)[:TOP_SEGMENTS],
        all_stages=sorted(s for s in stages if s != UNSET),
        total_records=total,
    )
