"""Dashboard routes — raw records, weeks, overview, lead times, insights, progress."""

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends

from lead_insight.action.dependencies import (
    current_snapshot,
    get_milestone_window,
    week_records,
)
from lead_insight.discovery.fields import DISPLAY_HEADERS, Record
from lead_insight.ingestion.record_store import Snapshot

logger = logging.getLogger(__name__)

router = APIRouter(tags=["dashboard"])


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/records")
async def list_records(
    search: str = "",
    sort: Optional[str] = None,
    direction: str = "asc",
    all_columns: bool = False,
    snapshot: Snapshot = Depends(current_snapshot),
    records: list[Record] = Depends(week_records),
) -> dict:
    """Raw-data view: search, sort and project onto the display columns."""
    from lead_insight.discovery.record_table import table_view

    columns = list(snapshot.headers) if all_columns else DISPLAY_HEADERS
    rows = table_view(
        records,
        search=search,
        sort_key=sort,
        descending=direction == "desc",
        columns=columns,
    )
    return {"columns": columns, "count": len(rows), "rows": rows}


@router.get("/weeks")
async def list_weeks(snapshot: Snapshot = Depends(current_snapshot)) -> dict:
    """Approach weeks present in the data, most recent first."""
    from lead_insight.discovery.week_bucketer import available_weeks

    return {
        "weeks": available_weeks(snapshot.records),
        "record_count": snapshot.record_count,
        "loaded_at": snapshot.loaded_at.isoformat(),
    }


@router.get("/overview")
async def get_overview(records: list[Record] = Depends(week_records)) -> dict:
    from lead_insight.discovery.overview import compute_overview

    result = compute_overview(records)
    return {
        "total_records": result.total_records,
        "stages": [{"name": n, "count": c} for n, c in result.stages],
        "probabilities": [{"name": n, "count": c} for n, c in result.probabilities],
        "categories": [{"name": n, "count": c} for n, c in result.categories],
        "channels": [{"name": n, "count": c} for n, c in result.channels],
        "all_stages": result.all_stages,
    }


@router.get("/lead-times")
async def get_lead_times(
    mode: str = "active_only",
    stage: Optional[str] = None,
    probability: Optional[str] = None,
    records: list[Record] = Depends(week_records),
) -> dict:
    """Days from approach to each meeting, most recent approach first."""
    from lead_insight.discovery.lead_time import analyze_lead_times, severity

    rows = analyze_lead_times(records, stage_mode=mode, stage_filter=stage, probability_filter=probability)
    return {
        "count": len(rows),
        "rows": [
            {
                **asdict(r),
                "severity": [severity(d) for d in r.days_to_meetings],
            }
            for r in rows
        ],
    }


@router.get("/funnel")
async def get_funnel(records: list[Record] = Depends(week_records)) -> dict:
    from lead_insight.discovery.pipeline_funnel import build_funnel

    return asdict(build_funnel(records))


@router.get("/workload")
async def get_workload(records: list[Record] = Depends(week_records)) -> list[dict]:
    from lead_insight.discovery.staff_workload import compute_workload

    return [asdict(s) for s in compute_workload(records)]


@router.get("/stagnant")
async def get_stagnant_leads(records: list[Record] = Depends(week_records)) -> list[dict]:
    """Open leads with no recent meeting progress, riskiest first."""
    from lead_insight.discovery.stagnation_scorer import find_stagnant_leads

    return [asdict(lead) for lead in find_stagnant_leads(records)]


@router.get("/progress")
async def get_progress(
    snapshot: Snapshot = Depends(current_snapshot),
    records: list[Record] = Depends(week_records),
    window: tuple[int, int] = Depends(get_milestone_window),
) -> dict:
    from lead_insight.discovery.milestone_tracker import track_progress

    return asdict(track_progress(records, snapshot.headers, window))
