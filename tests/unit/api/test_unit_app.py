# tests/unit/api/test_unit_app.py — v1
"""Tests for api/app.py — control routes and the push channel."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from idsweep.api.app import create_app


@pytest.fixture
def client(processor):
    app = create_app(processor, run_loop=False)
    with TestClient(app) as c:
        yield c


class TestRoutes:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["processor_alive"] is False

    def test_state(self, client, five_ids, ledger_paths, write_ids):
        write_ids(ledger_paths.done_file, ["a"])
        body = client.get("/api/state").json()
        assert body["overall"] == "stopped"
        assert body["total_ids"] == 5
        assert body["done_count"] == 1
        assert body["progress_pct"] == 20

    def test_start_then_start_again(self, client, processor):
        assert client.post("/api/start").json() == {"ok": True}
        assert processor.state.overall == "running"

        resp = client.post("/api/start")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Already running"}

    def test_stop(self, client, processor):
        client.post("/api/start")
        assert client.post("/api/stop").json() == {"ok": True}
        assert processor.state.should_stop is True

    def test_stop_when_idle_is_accepted(self, client):
        assert client.post("/api/stop").status_code == 200


class TestPushChannel:
    def test_initial_snapshot_then_updates(self, client, five_ids):
        with client.websocket_connect("/ws") as ws:
            first = ws.receive_json()
            assert first["overall"] == "stopped"
            assert first["total_ids"] == 5

            client.post("/api/stop")
            update = ws.receive_json()
            assert update["should_stop"] is True

    def test_unsubscribes_on_disconnect(self, client, processor):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            assert processor.reporter.subscriber_count == 1
        assert processor.reporter.subscriber_count == 0


def test_lifespan_closes_client(processor, fake_client):
    with TestClient(create_app(processor, run_loop=False)):
        pass
    assert fake_client.closed is True


def test_lifespan_runs_processing_loop(processor, five_ids):
    with TestClient(create_app(processor)) as c:
        assert c.get("/api/health").json()["processor_alive"] is True
