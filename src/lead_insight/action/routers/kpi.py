"""KPI routes — attainment, segment breakdown, and persisted targets."""

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict

from lead_insight.action.dependencies import get_kpi_engine, week_records
from lead_insight.discovery.fields import Record
from lead_insight.discovery.kpi_engine import KPIEngine, KPITargets

logger = logging.getLogger(__name__)

router = APIRouter(tags=["kpi"])


class TargetUpdateRequest(BaseModel):
    """Partial target edit; raw strings are accepted as typed into the form."""

    model_config = ConfigDict(extra="forbid")

    revenue: Optional[float | str] = None
    dealCount: Optional[float | str] = None
    conversionRate: Optional[float | str] = None
    avgDealSize: Optional[float | str] = None


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/kpi")
async def get_kpi(
    dimension: str = "assignee",
    records: list[Record] = Depends(week_records),
    engine: KPIEngine = Depends(get_kpi_engine),
) -> dict:
    """Actuals vs targets plus the breakdown by assignee / category / channel."""
    try:
        report = engine.report(records, dimension)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "dimension": report.dimension,
        "stats": asdict(report.stats),
        "attainment": [asdict(a) for a in report.attainment],
        "segments": [asdict(s) for s in report.segments],
        "targets": report.targets.model_dump(by_alias=True),
    }


@router.get("/kpi/targets", response_model=KPITargets)
async def get_targets(engine: KPIEngine = Depends(get_kpi_engine)) -> KPITargets:
    return engine.targets


@router.put("/kpi/targets", response_model=KPITargets)
async def update_targets(
    req: TargetUpdateRequest,
    engine: KPIEngine = Depends(get_kpi_engine),
) -> KPITargets:
    """Apply target edits as one change; a rejected edit leaves the stored targets untouched."""
    changes = req.model_dump(exclude_none=True)
    try:
        targets = engine.update_targets(changes)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return targets
