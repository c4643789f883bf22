"""Raw-data table view — search, sort and project records onto display columns."""

from __future__ import annotations

import functools
import math
from collections.abc import Iterable, Sequence

from lead_insight.discovery.fields import (
    DISPLAY_HEADERS,
    Record,
    field_text,
)


def search_records(records: Iterable[Record], term: str) -> list[Record]:
    """Keep records where any cell contains *term*, case-insensitively."""
    rows = list(records)
    if not term:
        return rows
    needle = term.lower()
    return [
        r for r in rows
        if any(needle in str(v).lower() for v in r.values())
    ]


def _as_number(text: str) -> float | None:
    try:
        number = float(text.replace(",", ""))
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _compare(a: str, b: str) -> int:
    a_num = _as_number(a)
    b_num = _as_number(b)
    if a_num is not None and b_num is not None:
        return (a_num > b_num) - (a_num < b_num)
    return (a > b) - (a < b)


def sort_records(records: Iterable[Record], key: str, descending: bool = False) -> list[Record]:
    """Sort by one column: numerically when both cells are numbers, else as text."""
    rows = list(records)

    def cmp(x: Record, y: Record) -> int:
        result = _compare(field_text(x, key).lower(), field_text(y, key).lower())
        return -result if descending else result

    return sorted(rows, key=functools.cmp_to_key(cmp))


def project_columns(records: Iterable[Record], columns: Sequence[str] | None = None) -> list[dict[str, str]]:
    """Project records onto *columns* (default: the display column list)."""
    columns = list(columns or DISPLAY_HEADERS)
    return [{c: field_text(r, c) for c in columns} for r in records]


def table_view(
    records: Iterable[Record],
    search: str = "",
    sort_key: str | None = None,
    descending: bool = False,
    columns: Sequence[str] | None = None,
) -> list[dict[str, str]]:
    rows = search_records(records, search)
    if sort_key:
        rows = sort_records(rows, sort_key, descending)
    return project_columns(rows, columns)
