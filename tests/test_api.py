"""Tests for the HTTP and WebSocket surface.

The app under test is assembled from the router factories around a
session on a VirtualScheduler, so no real timers run.
"""

from __future__ import annotations

import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from sensicrib.adapters.registry import default_registry
from sensicrib.api.routes import create_api_router
from sensicrib.api.ws_alerts import SessionBroadcaster, create_alert_stream_router
from sensicrib.api.ws_changes import create_change_router
from sensicrib.core.aggregator import PriorityWeightedPolicy
from sensicrib.core.session import MonitorSession
from sensicrib.domain.enums import SensorType
from sensicrib.domain.reading import DEFAULT_THRESHOLDS
from sensicrib.foundation.scheduler import VirtualScheduler
from sensicrib.services.channels import LoggingChannels
from sensicrib.services.connection_manager import ConnectionManager
from sensicrib.services.ingest import ChangeFeed


@pytest.fixture
def session() -> MonitorSession:
    s = MonitorSession(VirtualScheduler(), LoggingChannels(), strategy=PriorityWeightedPolicy())
    s.load_thresholds(DEFAULT_THRESHOLDS)
    return s


@pytest.fixture
def client(session: MonitorSession):
    app = FastAPI()
    app.include_router(create_change_router(ChangeFeed(session, default_registry())))
    app.include_router(create_alert_stream_router(session, ConnectionManager()))
    app.include_router(create_api_router(session))
    with TestClient(app) as c:
        yield c


def _cry() -> dict:
    return {"table": "sensor_data", "eventType": "INSERT", "new": {"sensor_type_id": 3, "value": 1}}


# ── Change ingestion ─────────────────────────────────────────────────────────


class TestChangeSocket:
    def test_reading_acknowledged(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/changes") as ws:
            ws.send_json(_cry())
            ack = ws.receive_json()
        assert ack == {"status": "accepted", "level": "Moderate", "sensor": "sound", "safe": False}

    def test_bad_events_do_not_close_socket(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/changes") as ws:
            ws.send_json([1, 2, 3])
            assert ws.receive_json()["reason"] == "not_an_object"
            ws.send_json({"sensor_type_id": 1, "value": "hot"})
            assert ws.receive_json()["reason"] == "adaptation_failed"
            ws.send_json({"sensor_type_id": 1, "value": 20})
            assert ws.receive_json()["status"] == "accepted"

    def test_threshold_change_applied(self, client: TestClient, session: MonitorSession) -> None:
        with client.websocket_connect("/ws/changes") as ws:
            ws.send_json({"table": "thresholds", "new": {"sensor_type_id": 1, "min_value": 20, "max_value": 24}})
            ack = ws.receive_json()
        assert ack["threshold"]["max_value"] == 24.0
        assert session.threshold(SensorType.TEMPERATURE).max == 24.0


# ── Alert stream ─────────────────────────────────────────────────────────────


class TestAlertSocket:
    def test_status_on_connect(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/alerts") as ws:
            status = ws.receive_json()
        assert status["type"] == "status"
        assert status["level"] == "Safe"
        assert status["color"] == "#32CD32"

    def test_cancel_action(self, client: TestClient, session: MonitorSession) -> None:
        with client.websocket_connect("/ws/changes") as changes:
            changes.send_json(_cry())
            changes.receive_json()
        with client.websocket_connect("/ws/alerts") as ws:
            assert ws.receive_json()["level"] == "Moderate"
            ws.send_json({"action": "cancel_alert"})
            status = ws.receive_json()
        assert status["level"] == "Safe"
        assert status["notification"]["suppressed"] is True
        assert session.snapshot.all_safe


# ── REST ─────────────────────────────────────────────────────────────────────


class TestRest:
    def test_status(self, client: TestClient) -> None:
        resp = client.get("/api/status")
        assert resp.status_code == 200
        body = resp.json()
        assert body["policy"] == "priority_weighted"
        assert set(body["safety"]) == {"temperature", "humidity", "sound", "motion", "weight"}

    def test_cancel(self, client: TestClient, session: MonitorSession) -> None:
        with client.websocket_connect("/ws/changes") as ws:
            ws.send_json(_cry())
            ws.receive_json()
        resp = client.post("/api/alert/cancel")
        assert resp.status_code == 200
        assert resp.json()["level"] == "Safe"
        assert resp.json()["notification"]["popup_visible"] is False

    def test_list_thresholds(self, client: TestClient) -> None:
        body = client.get("/api/thresholds").json()
        assert body["count"] == 5
        assert body["thresholds"][0] == {"sensor_type_id": 1, "min_value": 26.0, "max_value": 28.0}

    def test_put_threshold_by_name(self, client: TestClient, session: MonitorSession) -> None:
        resp = client.put("/api/thresholds/humidity", json={"min_value": 35, "max_value": 65})
        assert resp.status_code == 200
        assert resp.json() == {"sensor_type_id": 2, "min_value": 35.0, "max_value": 65.0}
        assert session.threshold(SensorType.HUMIDITY).min == 35.0

    def test_put_threshold_by_id(self, client: TestClient, session: MonitorSession) -> None:
        resp = client.put("/api/thresholds/4", json={"min_value": 2.0, "max_value": 8.0})
        assert resp.status_code == 200
        assert session.threshold(SensorType.MOTION).max == 8.0

    def test_put_unknown_sensor(self, client: TestClient) -> None:
        resp = client.put("/api/thresholds/6", json={"min_value": 0, "max_value": 1})
        assert resp.status_code == 404

    def test_put_incomplete_body(self, client: TestClient) -> None:
        resp = client.put("/api/thresholds/temperature", json={"min_value": 20})
        assert resp.status_code == 422

    def test_get_threshold(self, client: TestClient) -> None:
        client.put("/api/thresholds/sound", json={"min_value": 0.8, "max_value": 4})
        resp = client.get("/api/thresholds/3")
        assert resp.status_code == 200
        assert resp.json() == {"sensor_type_id": 3, "min_value": 0.8, "max_value": 4.0}

    def test_get_unset_threshold(self) -> None:
        app = FastAPI()
        app.include_router(create_api_router(MonitorSession(VirtualScheduler(), LoggingChannels())))
        with TestClient(app) as c:
            resp = c.get("/api/thresholds/motion")
        assert resp.status_code == 404
        assert "motion" in resp.json()["detail"]

    def test_get_unknown_sensor(self, client: TestClient) -> None:
        assert client.get("/api/thresholds/pitch").status_code == 404

    def test_history(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/changes") as ws:
            ws.send_json(_cry())
            ws.receive_json()
        body = client.get("/api/history").json()
        assert body["total"] == 2
        assert body["days"][0]["alerts_fired"] == 1


# ── Broadcast plumbing ───────────────────────────────────────────────────────


class _FakeSocket:
    def __init__(self, broken: bool = False) -> None:
        self.broken = broken
        self.sent: list[dict] = []

    async def accept(self) -> None:
        return None

    async def send_json(self, data: dict) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(data)


class TestConnectionManager:
    @pytest.mark.asyncio
    async def test_failing_client_dropped(self) -> None:
        manager = ConnectionManager()
        good, bad = _FakeSocket(), _FakeSocket(broken=True)
        await manager.connect(good)
        await manager.connect(bad)
        await manager.broadcast_json({"type": "event"})
        assert good.sent == [{"type": "event"}]
        assert manager.active_count == 1

    def test_disconnect_unknown_is_noop(self) -> None:
        manager = ConnectionManager()
        manager.disconnect(_FakeSocket())
        assert manager.active_count == 0


class TestSessionBroadcaster:
    def test_no_clients_no_work(self) -> None:
        # Called outside any loop; must simply return
        SessionBroadcaster(ConnectionManager())("level", {"level": "Safe"})

    @pytest.mark.asyncio
    async def test_event_forwarded(self) -> None:
        manager = ConnectionManager()
        sock = _FakeSocket()
        await manager.connect(sock)
        SessionBroadcaster(manager)("level", {"level": "Critical"})
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert sock.sent == [{"type": "event", "event": "level", "level": "Critical"}]


class TestHealth:
    def test_health_reports_counters(self) -> None:
        from sensicrib.main import app

        with TestClient(app) as c:
            body = c.get("/health").json()
        assert body["status"] == "ok"
        assert [a["adapter_name"] for a in body["adapters"]] == ["sensor_data", "thresholds"]
        assert body["alerts_fired"] == 0

    def test_shutdown_closes_session(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from sensicrib import main

        closed: list[bool] = []
        monkeypatch.setattr(main.session, "close", lambda: closed.append(True))
        with TestClient(main.app) as c:
            c.get("/health")
            assert closed == []
        assert closed == [True]
