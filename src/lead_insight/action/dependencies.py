"""Shared dependencies for API routers — store singletons and week filtering."""

import logging
from typing import Optional

from fastapi import Depends, HTTPException

from lead_insight.discovery.fields import Record
from lead_insight.discovery.kpi_engine import KPIEngine
from lead_insight.discovery.week_bucketer import ALL_WEEKS, filter_by_week
from lead_insight.ingestion.record_store import RecordStore, Snapshot

logger = logging.getLogger(__name__)

_record_store: Optional[RecordStore] = None
_kpi_engine: Optional[KPIEngine] = None


def get_record_store() -> RecordStore:
    """Process-wide record store; the first call builds it."""
    global _record_store
    if _record_store is None:
        _record_store = RecordStore()
    return _record_store


def get_kpi_engine() -> KPIEngine:
    """Process-wide KPI engine backed by the configured SQL target store."""
    global _kpi_engine
    if _kpi_engine is None:
        from config.settings import settings
        from lead_insight.memory.target_store import SqlTargetStore

        store = SqlTargetStore.from_url(settings.database_url, settings.kpi_targets_key)
        _kpi_engine = KPIEngine(store)
    return _kpi_engine


def get_milestone_window() -> tuple[int, int]:
    from config.settings import settings

    return settings.milestone_window_start, settings.milestone_window_end


def current_snapshot(store: RecordStore = Depends(get_record_store)) -> Snapshot:
    """The loaded snapshot, or 503 while there is no data to analyze."""
    if store.snapshot is None:
        detail = store.error or "No data loaded yet. POST /refresh first."
        raise HTTPException(status_code=503, detail=detail)
    return store.snapshot


def week_records(
    week: str = ALL_WEEKS,
    snapshot: Snapshot = Depends(current_snapshot),
) -> list[Record]:
    """Records of the current snapshot restricted to one approach week."""
    return filter_by_week(snapshot.records, week)
