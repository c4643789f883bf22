"""FastAPI application serving lead analytics to the dashboard front end."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import settings
from lead_insight.action.dependencies import get_record_store
from lead_insight.ingestion.record_store import RecordStore
from lead_insight.ingestion.sheet_fetcher import FetchError

logger = logging.getLogger(__name__)
logging.getLogger("lead_insight").setLevel(settings.log_level.upper())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the spreadsheet once at startup; failures leave the error state set."""
    try:
        await get_record_store().refresh()
    except FetchError:
        logger.exception("Initial spreadsheet load failed")
    yield


app = FastAPI(title="Lead Insight API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Include modular routers
# ---------------------------------------------------------------------------
from lead_insight.action.routers.dashboard import router as dashboard_router  # noqa: E402
from lead_insight.action.routers.kpi import router as kpi_router  # noqa: E402

app.include_router(dashboard_router)
app.include_router(kpi_router)


@app.exception_handler(Exception)
async def _global_error_handler(request: Request, exc: Exception):
    """Catch-all: ensure every unhandled error returns JSON, not raw HTML."""
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={
            "detail": f"Server error: {exc}",
            "error": str(exc),
            "status": "failed",
        },
    )


@app.get("/health")
async def health(store: RecordStore = Depends(get_record_store)) -> dict:
    snapshot = store.snapshot
    return {
        "status": "ok",
        "version": "1.0.0",
        "has_data": snapshot is not None,
        "is_loading": store.is_loading,
        "snapshot_token": snapshot.token if snapshot else None,
        "record_count": snapshot.record_count if snapshot else 0,
        "loaded_at": snapshot.loaded_at.isoformat() if snapshot else None,
        "error": store.error,
    }


@app.post("/refresh")
async def refresh(store: RecordStore = Depends(get_record_store)) -> dict:
    """Re-fetch the spreadsheet and atomically replace the loaded records."""
    try:
        snapshot = await store.refresh()
    except FetchError as e:
        raise HTTPException(status_code=502, detail=str(e))

    if snapshot is None:
        return {"status": "superseded"}
    return {
        "status": "loaded",
        "records": snapshot.record_count,
        "columns": len(snapshot.headers),
        "loaded_at": snapshot.loaded_at.isoformat(),
    }
