"""Tests for the FastAPI dashboard and KPI endpoints."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from lead_insight.action.api import app
from lead_insight.action.dependencies import (
    get_kpi_engine,
    get_milestone_window,
    get_record_store,
)
from lead_insight.discovery.kpi_engine import KPIEngine, KPITargets
from lead_insight.ingestion.csv_parser import parse_csv
from lead_insight.ingestion.record_store import RecordStore
from lead_insight.ingestion.sheet_fetcher import FetchError
from lead_insight.memory.target_store import InMemoryTargetStore

CSV = (
    "企業名,担当者,ステージ,確度,事業内容,経路,アプローチ日,商談日1,商談日2,見積り・提案,契約,初回連絡,提案,受注\n"
    "A社,佐藤,S4,50%,IT,Web,2024-06-12,2024-06-20,,\"2,000,000\",,済,済,\n"
    "B社,鈴木,契約,100%,製造,紹介,2024-06-14,2024-06-15,2024-06-18,\"1,000,000\",2024-06-30,済,済,済\n"
    "C社,佐藤,失注,0%,IT,Web,2024-05-01,,,,,,,\n"
    "D社,,S3,,,,2020-01-01,,,,,,,\n"
)


@pytest.fixture()
def store():
    s = RecordStore(fetcher=AsyncMock(return_value=parse_csv(CSV)))
    s.load(parse_csv(CSV))
    return s


@pytest.fixture()
def target_store():
    return InMemoryTargetStore()


@pytest.fixture()
def client(store, target_store):
    """TestClient with an in-memory record store and target store; no lifespan fetch."""
    kpi_engine = KPIEngine(target_store)
    app.dependency_overrides[get_record_store] = lambda: store
    app.dependency_overrides[get_kpi_engine] = lambda: kpi_engine
    app.dependency_overrides[get_milestone_window] = lambda: (11, 14)

    yield TestClient(app)

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Health / refresh
# ---------------------------------------------------------------------------


def test_health(client, store):
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["has_data"] is True
    assert data["record_count"] == 4
    assert data["is_loading"] is False
    assert data["snapshot_token"] == store.snapshot.token


def test_health_reports_refresh_in_progress(client, store):
    store.is_loading = True
    assert client.get("/health").json()["is_loading"] is True


def test_health_token_advances_after_refresh(client):
    before = client.get("/health").json()["snapshot_token"]
    client.post("/refresh")
    assert client.get("/health").json()["snapshot_token"] > before


def test_refresh_success(client, store):
    resp = client.post("/refresh")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "loaded"
    assert data["records"] == 4
    assert data["columns"] == 14


def test_refresh_failure_returns_502_and_blocks_analytics(client, store):
    store._fetcher = AsyncMock(side_effect=FetchError("Failed to fetch spreadsheet: 403 Forbidden", 403))

    resp = client.post("/refresh")
    assert resp.status_code == 502
    assert "403" in resp.json()["detail"]

    resp = client.get("/funnel")
    assert resp.status_code == 503
    assert "403" in resp.json()["detail"]


def test_no_data_returns_503(client):
    app.dependency_overrides[get_record_store] = lambda: RecordStore(fetcher=AsyncMock())
    resp = client.get("/overview")
    assert resp.status_code == 503


# ---------------------------------------------------------------------------
# Dashboard views
# ---------------------------------------------------------------------------


def test_records_default_columns(client):
    resp = client.get("/records", params={"search": "佐藤", "sort": "企業名", "direction": "desc"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["count"] == 2
    assert [r["企業名"] for r in data["rows"]] == ["C社", "A社"]
    assert data["columns"][0] == "企業名"


def test_records_all_columns(client):
    data = client.get("/records", params={"all_columns": True}).json()
    assert data["columns"][-1] == "受注"


def test_weeks(client):
    data = client.get("/weeks").json()
    assert data["weeks"] == ["2024/06/10の週", "2024/04/29の週", "2019/12/30の週"]


def test_week_filter_applies(client):
    data = client.get("/overview", params={"week": "2024/06/10の週"}).json()
    assert data["total_records"] == 2


def test_overview(client):
    data = client.get("/overview").json()
    assert data["total_records"] == 4
    assert {"name": "IT", "count": 2} in data["categories"]
    assert data["all_stages"] == ["S3", "S4", "失注", "契約"]


def test_lead_times(client):
    data = client.get("/lead-times").json()
    companies = [r["company"] for r in data["rows"]]
    assert companies == ["B社", "A社", "D社"]
    a = data["rows"][1]
    assert a["days_to_meetings"][0] == 8
    assert a["severity"][0] == "normal"


def test_lead_times_click_filter(client):
    data = client.get("/lead-times", params={"mode": "all", "probability": "0%"}).json()
    assert [r["company"] for r in data["rows"]] == ["C社"]


def test_funnel(client):
    data = client.get("/funnel").json()
    counts = {s["stage"]: s["count"] for s in data["steps"]}
    assert counts["S4"] == 1
    assert counts["契約"] == 1


def test_workload(client):
    data = client.get("/workload").json()
    assert data[0]["assignee"] == "佐藤"
    assert data[0]["total"] == 2
    assert data[0]["active"] == 1


def test_stagnant(client):
    data = client.get("/stagnant").json()
    companies = [lead["company"] for lead in data]
    assert "D社" in companies
    assert "C社" not in companies


def test_progress(client):
    data = client.get("/progress").json()
    assert data["milestone_headers"] == ["初回連絡", "提案", "受注"]
    assert data["rows"][0]["company"] == "B社"
    assert data["rows"][0]["completion_rate"] == 100


# ---------------------------------------------------------------------------
# KPI
# ---------------------------------------------------------------------------


def test_kpi(client):
    data = client.get("/kpi").json()
    assert data["stats"]["actual_revenue"] == 1_000_000
    assert data["stats"]["pipeline_revenue"] == 1_000_000
    assert data["stats"]["forecast"] == 2_000_000
    assert data["segments"][0]["name"] == "鈴木"
    assert data["targets"]["revenue"] == 10_000_000


def test_kpi_unknown_dimension(client):
    resp = client.get("/kpi", params={"dimension": "region"})
    assert resp.status_code == 400


def test_targets_round_trip(client, target_store):
    resp = client.put("/kpi/targets", json={"revenue": "20000000", "dealCount": 5})
    assert resp.status_code == 200
    assert resp.json()["revenue"] == 20_000_000
    assert target_store.load().deal_count == 5

    assert client.get("/kpi/targets").json()["dealCount"] == 5


def test_targets_response_uses_camel_case_keys(client):
    data = client.get("/kpi/targets").json()
    assert data == {
        "revenue": 10_000_000,
        "dealCount": 20,
        "conversionRate": 15,
        "avgDealSize": 500_000,
    }


def test_targets_reject_negative(client):
    resp = client.put("/kpi/targets", json={"revenue": -1})
    assert resp.status_code == 422


def test_targets_partly_invalid_update_changes_nothing(client, target_store):
    resp = client.put("/kpi/targets", json={"revenue": 5, "dealCount": -1})
    assert resp.status_code == 422
    assert target_store.load() == KPITargets()
    assert client.get("/kpi/targets").json()["revenue"] == 10_000_000


def test_targets_reject_unknown_field(client):
    resp = client.put("/kpi/targets", json={"margin": 3})
    assert resp.status_code == 422
