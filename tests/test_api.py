"""Tests for the REST surface, using FastAPI's TestClient and fake clients."""

from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from baywatch.api.system import create_system_router
from baywatch.api.webhooks import create_webhook_router
from baywatch.api.zones import create_zones_router
from baywatch.core.orchestrator import Orchestrator
from baywatch.domain.alert import AlertEntry
from baywatch.domain.enums import AlertType, RiskFactor, RiskLevel
from baywatch.foundation.clock import utc_now
from baywatch.services.dashboard import DashboardService
from baywatch.store.zone_store import ZoneStore

from tests.test_orchestrator import FakeEnvironment, FakeVision, _settings


@pytest.fixture
def store() -> ZoneStore:
    return ZoneStore()


@pytest.fixture
def client(store: ZoneStore):
    orchestrator = Orchestrator(store, FakeVision(), FakeEnvironment(), _settings())
    app = FastAPI()
    app.include_router(create_webhook_router(orchestrator))
    app.include_router(create_zones_router(DashboardService(store)))
    app.include_router(create_system_router(orchestrator))
    with TestClient(app) as c:
        yield c
        c.post("/api/system/stop")


class TestWebhookRoute:
    def test_acknowledges_immediately(self, client: TestClient) -> None:
        resp = client.post("/api/webhooks/trio", json={"type": "job_started", "job_id": "j1"})
        assert resp.status_code == 200
        assert resp.json() == {"received": True}

    def test_invalid_json_is_400(self, client: TestClient) -> None:
        resp = client.post(
            "/api/webhooks/trio", content=b"{nope", headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400

    def test_non_object_is_400(self, client: TestClient) -> None:
        resp = client.post("/api/webhooks/trio", json=[1, 2, 3])
        assert resp.status_code == 400


class TestZoneRoutes:
    def test_list_zones_returns_enabled_with_actions(self, client: TestClient, store: ZoneStore) -> None:
        store.set_risk_factor("venice", RiskFactor.SWIMMERS_DETECTED, True)
        body = client.get("/api/zones").json()
        assert [z["config"]["id"] for z in body["zones"]] == ["santa-monica", "venice", "manhattan"]
        venice = body["zones"][1]
        assert [a["id"] for a in venice["actions"]] == ["active-swimmers-venice"]
        assert venice["highest_priority"] == "warning"
        assert body["system"]["initialized"] is False

    def test_get_zone(self, client: TestClient) -> None:
        body = client.get("/api/zones/laguna").json()
        assert body["config"]["name"] == "Laguna Beach"
        assert body["risk"]["level"] == "low"

    def test_unknown_zone_is_404(self, client: TestClient) -> None:
        assert client.get("/api/zones/atlantis").status_code == 404

    def test_system_status(self, client: TestClient, store: ZoneStore) -> None:
        for n in range(7):
            store.add_error(f"error {n}")
        body = client.get("/api/system/status").json()
        assert len(body["recent_errors"]) == 5
        assert body["recent_errors"][0].endswith("error 6")
        assert body["total_zones"] == 6
        assert body["enabled_zones"] == 3
        assert body["budget"]["mode"] == "conservative"


class TestPatrolRoutes:
    def test_resolve_and_list(self, client: TestClient) -> None:
        resp = client.post("/api/patrol/resolve", json={"action_id": "crowded-waterline-venice"})
        assert resp.json()["success"] is True
        client.post("/api/patrol/resolve", json={"action_id": "crowded-waterline-venice"})
        body = client.get("/api/patrol/resolved").json()
        assert body["resolved_action_ids"] == ["crowded-waterline-venice"]

    def test_resolve_without_action_id_is_400(self, client: TestClient) -> None:
        assert client.post("/api/patrol/resolve", json={}).status_code == 400

    def test_alerts_since_filter(self, client: TestClient, store: ZoneStore) -> None:
        now = utc_now()
        for n, age in enumerate((30, 10, 1)):
            store.add_alert("venice", AlertEntry(
                id=f"a{n}",
                zone_id="venice",
                timestamp=now - timedelta(minutes=age),
                type=AlertType.TRIO_TRIGGER,
                title="Crowd Near Waterline",
                risk_level=RiskLevel.LOW,
            ))
        since = (now - timedelta(minutes=15)).isoformat()
        body = client.get("/api/patrol/alerts", params={"zone": "venice", "since": since}).json()
        assert [a["id"] for a in body["alerts"]] == ["a2", "a1"]
        assert body["alerts"][0]["zone_name"] == "Venice Beach"
        assert body["zone"]["id"] == "venice"

    def test_alerts_unknown_zone_is_404(self, client: TestClient) -> None:
        assert client.get("/api/patrol/alerts", params={"zone": "atlantis"}).status_code == 404


class TestSystemRoutes:
    def test_start_then_already_running(self, client: TestClient, store: ZoneStore) -> None:
        first = client.post("/api/system/start").json()
        assert first["status"] == "started"
        assert store.is_initialized()
        second = client.post("/api/system/start").json()
        assert second["status"] == "already_running"

    def test_force_restart(self, client: TestClient) -> None:
        client.post("/api/system/start")
        forced = client.post("/api/system/start", params={"force": "true"}).json()
        assert forced["status"] == "started"

    def test_stop_resets(self, client: TestClient, store: ZoneStore) -> None:
        client.post("/api/system/start")
        body = client.post("/api/system/stop").json()
        assert body["status"] == "stopped"
        assert body["was_running"] is True
        assert not store.is_initialized()

    def test_demo_mode_requires_running(self, client: TestClient) -> None:
        assert client.post("/api/system/demo-mode/start").status_code == 400
        client.post("/api/system/start")
        assert client.post("/api/system/demo-mode/start").json()["mode"] == "demo"
        assert client.post("/api/system/demo-mode/end").json()["mode"] == "conservative"

    def test_trigger_live_monitor(self, client: TestClient, store: ZoneStore) -> None:
        body = client.post("/api/zones/venice/live-monitor").json()
        assert body["success"] is True
        assert store.get_zone("venice").live_monitor_job_id == body["job_id"]

    def test_trigger_rejection_is_400(self, client: TestClient) -> None:
        assert client.post("/api/zones/laguna/live-digest").status_code == 400
        assert client.post("/api/zones/atlantis/live-monitor").status_code == 400


class TestApplication:
    def test_health(self) -> None:
        from baywatch.main import app

        with TestClient(app) as c:
            body = c.get("/health").json()
        assert body["status"] == "ok"
        assert body["running"] is False
        assert body["enabled_zones"] == 3
