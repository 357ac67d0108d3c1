"""Tests for the HTTP routes."""

from __future__ import annotations

import json

import pytest
from fakes import FakeLauncher, FakeProcess
from fastapi.testclient import TestClient

from nexuslauncher.config.settings import Settings
from nexuslauncher.relay.state import ServerContext
from nexuslauncher.server.app import HEALTH_MESSAGE, create_app


def _events(body: str) -> list[dict]:
    frames = [frame for frame in body.split("\n\n") if frame]
    assert all(frame.startswith("data: ") for frame in frames)
    return [json.loads(frame[len("data: "):]) for frame in frames]


@pytest.fixture
def context() -> ServerContext:
    return ServerContext(initial_status="idle", truncate_at=64)


@pytest.fixture
def client(context: ServerContext, make_orchestrator, installed_runner) -> TestClient:
    """A test client whose runs use scripted processes."""

    def factory():
        launcher = FakeLauncher(FakeProcess([b"x" * 100, b"bye\r\n"]))
        return make_orchestrator(installed_runner, launcher=launcher, node_id="42")

    app = create_app(Settings(), context=context, orchestrator_factory=factory)
    return TestClient(app)


class TestStaticRoutes:
    def test_index_serves_control_page(self, client: TestClient) -> None:
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "new EventSource('/run')" in resp.text

    def test_health(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "message": HEALTH_MESSAGE}

    def test_ping_snapshot(self, client: TestClient) -> None:
        resp = client.get("/ping")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["message"] == "idle"
        assert data["uptime"] >= 0
        assert "timestamp" in data


class TestRunStream:
    def test_headers(self, client: TestClient) -> None:
        resp = client.get("/run")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/event-stream")
        assert resp.headers["cache-control"] == "no-cache"
        assert resp.headers["access-control-allow-origin"] == "*"

    def test_streams_run_to_completion(self, client: TestClient) -> None:
        events = _events(client.get("/run").text)
        assert events[0] == {"type": "status", "message": "Starting Nexus CLI setup..."}
        assert events[-1]["type"] == "complete"
        assert "42" in events[-1]["message"]
        assert [e["type"] for e in events].count("complete") == 1

    def test_long_chunks_truncated(self, client: TestClient) -> None:
        events = _events(client.get("/run").text)
        terminal = [e for e in events if e["type"] == "terminal"]
        assert terminal[0]["output"] == "x" * 64 + "..."
        assert terminal[1]["output"] == "bye\r\n"

    def test_ping_reports_last_run_status(self, client: TestClient) -> None:
        client.get("/run")
        message = client.get("/ping").json()["message"]
        assert message.startswith("Setup completed successfully!")


def test_default_app_builds() -> None:
    app = create_app()
    assert app.state.context.last_output == Settings().relay.initial_status
    routes = {route.path for route in app.routes}
    assert {"/", "/health", "/ping", "/run", "/keep-alive"} <= routes
