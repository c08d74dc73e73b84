"""Tests for the monitor REST API."""

from __future__ import annotations

import random

import pytest
from fastapi.testclient import TestClient

from conftest import FakeCapture, FakeFaceDetector, FakeScene, FakeSpeech, make_detection
from justdothething.classify.content import ContentClassifier
from justdothething.classify.focus import FocusClassifier
from justdothething.config.settings import MonitorSettings, SettingsStore
from justdothething.domain.models import Prediction
from justdothething.interrupt.dispatcher import InterruptionDispatcher
from justdothething.monitor.controller import MonitorController
from justdothething.monitor.signals import VisibilitySignal
from justdothething.server.app import create_app
from justdothething.server.auth import AuthError, AuthUser, IdentityProvider
from justdothething.server.users import InMemoryUserStore

AUTH = {"Authorization": "Bearer good-token"}


class FakeIdentity(IdentityProvider):
    def __init__(self) -> None:
        self.closed = False

    async def get_user(self, token: str) -> AuthUser:
        if token != "good-token":
            raise AuthError("Invalid token")
        return AuthUser(id="user-1", email="user@example.com")

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def screen() -> FakeCapture:
    return FakeCapture("screen")


@pytest.fixture
def controller(screen: FakeCapture) -> MonitorController:
    return MonitorController(
        screen=screen,
        webcam=FakeCapture("webcam"),
        content=ContentClassifier(FakeScene([Prediction(label="code editor", probability=0.9)])),
        focus=FocusClassifier(FakeFaceDetector(make_detection())),
        dispatcher=InterruptionDispatcher(FakeSpeech(), rng=random.Random(0)),
        settings=SettingsStore(MonitorSettings(check_interval_seconds=300)),
        visibility=VisibilitySignal(),
    )


@pytest.fixture
def identity() -> FakeIdentity:
    return FakeIdentity()


@pytest.fixture
def client(controller: MonitorController, identity: FakeIdentity):
    app = create_app(controller=controller, identity=identity, users=InMemoryUserStore())
    with TestClient(app) as c:
        yield c


class TestHealthEndpoint:
    def test_health_returns_ok(self, client: TestClient) -> None:
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "OK", "message": "Server is running"}


class TestAuthentication:
    def test_missing_token_is_401(self, client: TestClient) -> None:
        assert client.get("/api/auth/me").status_code == 401

    def test_malformed_header_is_401(self, client: TestClient) -> None:
        resp = client.get("/api/auth/me", headers={"Authorization": "good-token"})
        assert resp.status_code == 401

    def test_invalid_token_is_403(self, client: TestClient) -> None:
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 403

    def test_me_creates_user_record(self, client: TestClient) -> None:
        resp = client.get("/api/auth/me", headers=AUTH)
        assert resp.status_code == 200
        user = resp.json()["user"]
        assert user["id"] == "user-1"
        assert user["settings"] == {}

    def test_auth_test_endpoint(self, client: TestClient) -> None:
        resp = client.get("/api/auth/test", headers=AUTH)
        assert resp.status_code == 200
        assert resp.json()["message"] == "Authentication successful"

    def test_monitor_routes_require_auth(self, client: TestClient) -> None:
        assert client.get("/api/monitor/state").status_code == 401
        assert client.post("/api/monitor/activate").status_code == 401


class TestSettingsEndpoint:
    def test_update_is_applied_and_saved(self, client: TestClient, controller: MonitorController) -> None:
        resp = client.put("/api/monitor/settings", json={"cooldown_seconds": 60, "style": "friendly"}, headers=AUTH)
        assert resp.status_code == 200
        assert resp.json()["cooldown_seconds"] == 60
        assert controller.settings.current.cooldown_seconds == 60

        user = client.get("/api/auth/me", headers=AUTH).json()["user"]
        assert user["settings"]["cooldown_seconds"] == 60
        assert user["settings"]["style"] == "friendly"

    def test_out_of_range_value_is_422(self, client: TestClient, controller: MonitorController) -> None:
        resp = client.put("/api/monitor/settings", json={"check_interval_seconds": 7}, headers=AUTH)
        assert resp.status_code == 422
        assert controller.settings.current.check_interval_seconds == 300

    def test_unknown_field_is_422(self, client: TestClient) -> None:
        resp = client.put("/api/monitor/settings", json={"volume": 11}, headers=AUTH)
        assert resp.status_code == 422


class TestMonitorLifecycle:
    def test_activate_and_deactivate(self, client: TestClient) -> None:
        resp = client.post("/api/monitor/activate", headers=AUTH)
        assert resp.status_code == 200
        assert resp.json()["status"] == "active"
        assert resp.json()["focus_enabled"] is True

        state = client.get("/api/monitor/state", headers=AUTH).json()
        assert state["status"] == "active"
        assert "screenshot" not in state["state"]

        resp = client.post("/api/monitor/deactivate", headers=AUTH)
        assert resp.status_code == 200
        assert resp.json()["status"] == "inactive"

    def test_activate_twice_is_409(self, client: TestClient) -> None:
        assert client.post("/api/monitor/activate", headers=AUTH).status_code == 200
        assert client.post("/api/monitor/activate", headers=AUTH).status_code == 409

    def test_denied_screen_permission(self, client: TestClient, screen: FakeCapture) -> None:
        screen.grant = False
        resp = client.post("/api/monitor/activate", headers=AUTH)
        assert resp.status_code == 409
        assert resp.json()["detail"]["reason"] == "screen_permission"

    def test_visibility(self, client: TestClient, controller: MonitorController) -> None:
        resp = client.post("/api/monitor/visibility", json={"visible": False}, headers=AUTH)
        assert resp.status_code == 200
        assert controller.visibility.visible is False

    def test_shutdown_deactivates_and_closes_identity(
        self, controller: MonitorController, identity: FakeIdentity,
    ) -> None:
        app = create_app(controller=controller, identity=identity, users=InMemoryUserStore())
        with TestClient(app) as c:
            assert c.post("/api/monitor/activate", headers=AUTH).status_code == 200
        assert controller.status.value == "inactive"
        assert identity.closed is True
