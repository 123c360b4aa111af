"""
Unit Tests for Admin Routes and the Application Factory

Tests the admin endpoints with TestClient, the lifespan wiring and the
request ID middleware.
"""

import pytest
from fastapi.testclient import TestClient

from cachegate.application.app import create_app
from cachegate.core.config.settings import get_settings, reload_settings
from cachegate.core.exceptions import CacheKeyError

PREFIX = "cachegate:cache:"


def _client_for(gate):
    app = create_app()
    app.state.cache_gate = gate
    return TestClient(app)


def _seed_leaderboard(memory_store, clock):
    memory_store.sorted_sets[f"{PREFIX}abuse:z"] = {"1.2.3.4": 3.0, "5.6.7.8": 1.0}
    memory_store.hashes[f"{PREFIX}abuse:h:1.2.3.4"] = {
        "lastSeen": str(int(clock() * 1000)),
        "b:posts": "3",
        "k:ip_block": "3",
    }


@pytest.mark.unit
class TestSuspiciousIpsRoute:
    """GET /admin/security/suspicious-ips"""

    def test_lists_offenders(self, gate, memory_store, clock):
        _seed_leaderboard(memory_store, clock)

        response = _client_for(gate).get("/admin/security/suspicious-ips")

        assert response.status_code == 200
        data = response.json()
        assert data["enabled"] is True
        assert [item["id"] for item in data["items"]] == ["1.2.3.4", "5.6.7.8"]
        assert data["items"][0]["counts"] == {"b:posts": 3, "k:ip_block": 3}
        assert data["items"][0]["lastSeen"].endswith("Z")
        assert data["items"][1]["lastSeen"] == ""

    def test_limit_query(self, gate, memory_store, clock):
        _seed_leaderboard(memory_store, clock)

        response = _client_for(gate).get("/admin/security/suspicious-ips", params={"limit": 1})

        assert [item["id"] for item in response.json()["items"]] == ["1.2.3.4"]

    def test_disabled_gate_lists_nothing(self, disabled_gate):
        response = _client_for(disabled_gate).get("/admin/security/suspicious-ips")

        assert response.status_code == 200
        assert response.json() == {"enabled": False, "items": []}


@pytest.mark.unit
class TestCacheHealthRoute:
    """GET /admin/cache/health"""

    def test_enabled_health(self, gate):
        response = _client_for(gate).get("/admin/cache/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["enabled"] is True
        assert "hits" in data["cache"]

    def test_health_reports_deployment(self, gate, test_settings):
        app = create_app()
        app.state.cache_gate = gate
        app.dependency_overrides[get_settings] = lambda: test_settings

        data = TestClient(app).get("/admin/cache/health").json()

        assert data["environment"] == "test"
        assert data["version"] == test_settings.app.APP_VERSION

    def test_disabled_health(self, disabled_gate):
        data = _client_for(disabled_gate).get("/admin/cache/health").json()

        assert data["status"] == "disabled"
        assert data["enabled"] is False


@pytest.mark.unit
class TestApplicationFactory:
    """Lifespan wiring, middleware and error handlers."""

    def test_lifespan_without_redis_installs_disabled_gate(self, monkeypatch):
        monkeypatch.delenv("REDIS_URL", raising=False)
        reload_settings()

        app = create_app()
        with TestClient(app) as client:
            assert app.state.cache_gate.enabled is False
            assert client.get("/admin/cache/health").json()["status"] == "disabled"

        reload_settings()

    def test_missing_gate_falls_back_to_disabled(self):
        client = TestClient(create_app())

        response = client.get("/admin/security/suspicious-ips")

        assert response.json()["enabled"] is False

    def test_request_id_echoed(self, disabled_gate):
        response = _client_for(disabled_gate).get(
            "/admin/cache/health", headers={"x-request-id": "req-42"}
        )

        assert response.headers["x-request-id"] == "req-42"

    def test_request_id_generated(self, disabled_gate):
        response = _client_for(disabled_gate).get("/admin/cache/health")

        assert response.headers["x-request-id"]

    def test_gate_errors_render_as_500(self, disabled_gate):
        app = create_app()
        app.state.cache_gate = disabled_gate

        @app.get("/boom")
        async def boom():
            raise CacheKeyError("Redis GET failed", details={"key": "k"})

        response = TestClient(app).get("/boom")

        assert response.status_code == 500
        assert response.json()["error_type"] == "CacheKeyError"
        assert response.json()["details"] == {"key": "k"}
