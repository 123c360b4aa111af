"""
Unit Tests for RequestGuard

Tests the rate-limited, cache-backed request flow end to end through a
FastAPI app: fresh responses, stale responses to limited clients, HTTP 429
when nothing is cached, and abuse recording.
"""

from unittest.mock import MagicMock

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from cachegate.application.api.dependencies import RequestGuardDep
from cachegate.application.api.guard import (
    RequestGuard,
    get_client_identifier,
    rate_limit_exception_handler,
)
from cachegate.application.app import create_app
from cachegate.core.exceptions import RateLimitExceededError

PREFIX = "cachegate:cache:"


def _build_app(gate, loader):
    app = create_app()
    app.state.cache_gate = gate

    @app.get("/posts/{slug}")
    async def read_post(slug: str, request: Request, guard: RequestGuardDep):
        return await guard.serve(request, "posts", {"slug": slug}, 60, lambda: loader(slug))

    return app


@pytest.fixture
def loader():
    return MagicMock(side_effect=lambda slug: {"slug": slug, "title": slug.title()})


@pytest.fixture
def client(gate, loader):
    return TestClient(_build_app(gate, loader))


@pytest.mark.unit
class TestGetClientIdentifier:
    """Client identity resolution."""

    @staticmethod
    def _request(headers=None, client=("5.6.7.8", 4321)):
        scope = {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": [(k.encode(), v.encode()) for k, v in (headers or {}).items()],
            "client": client,
        }
        return Request(scope)

    def test_first_forwarded_hop_wins(self):
        request = self._request({"x-forwarded-for": "1.2.3.4, 10.0.0.1"})
        assert get_client_identifier(request) == "1.2.3.4"

    def test_peer_address_fallback(self):
        assert get_client_identifier(self._request()) == "5.6.7.8"

    def test_blank_forwarded_header_ignored(self):
        request = self._request({"x-forwarded-for": " "})
        assert get_client_identifier(request) == "5.6.7.8"

    def test_unknown_without_peer(self):
        assert get_client_identifier(self._request(client=None)) == "unknown"


@pytest.mark.unit
class TestRequestGuardFlow:
    """Allowed, stale and rejected responses."""

    def test_allowed_requests_hit_cache(self, client, loader):
        for _ in range(3):
            response = client.get("/posts/hello")
            assert response.status_code == 200
            assert response.json() == {"slug": "hello", "title": "Hello"}
            assert "x-rate-limited" not in response.headers

        loader.assert_called_once_with("hello")

    def test_limited_client_gets_stale_value(self, client, loader):
        for _ in range(3):
            client.get("/posts/hello")

        response = client.get("/posts/hello")

        assert response.status_code == 200
        assert response.json() == {"slug": "hello", "title": "Hello"}
        assert response.headers["x-rate-limited"] == "1"
        assert response.headers["x-cache"] == "hit"
        assert response.headers["retry-after"] == "60"
        loader.assert_called_once()

    def test_limited_client_without_stale_value_gets_429(self, client, loader):
        for _ in range(3):
            client.get("/posts/hello")

        response = client.get("/posts/other")

        assert response.status_code == 429
        assert response.json()["error"] == "rate_limited"
        assert response.json()["retry_after"] == 60
        assert response.headers["retry-after"] == "60"
        assert loader.call_count == 1

    def test_limited_requests_are_recorded(self, client, memory_store):
        for _ in range(5):
            client.get("/posts/hello", headers={"x-forwarded-for": "9.9.9.9"})

        assert memory_store.sorted_sets[f"{PREFIX}abuse:z"] == {"9.9.9.9": 2.0}
        detail = memory_store.hashes[f"{PREFIX}abuse:h:9.9.9.9"]
        assert detail["k:rate_limit"] == "2"
        assert detail["b:posts"] == "2"

    def test_clients_limited_independently(self, client):
        for _ in range(3):
            client.get("/posts/hello", headers={"x-forwarded-for": "1.1.1.1"})

        response = client.get("/posts/hello", headers={"x-forwarded-for": "2.2.2.2"})

        assert "x-rate-limited" not in response.headers

    def test_bump_serves_fresh_content(self, client, loader, memory_store):
        client.get("/posts/hello")
        memory_store.strings[f"{PREFIX}v:posts"] = "2"
        client.get("/posts/hello")

        assert loader.call_count == 2


    async def test_rejection_carries_context(self, gate):
        guard = RequestGuard(gate)
        request = Request({"type": "http", "method": "GET", "path": "/", "headers": [], "client": ("7.7.7.7", 1)})
        for _ in range(3):
            await guard.serve(request, "posts", {"slug": "a"}, 60, lambda: {"slug": "a"})

        with pytest.raises(RateLimitExceededError) as exc_info:
            await guard.serve(request, "posts", {"slug": "b"}, 60, lambda: {"slug": "b"})

        assert exc_info.value.retry_after == 60
        assert exc_info.value.details == {
            "retry_after": 60,
            "bucket": "posts",
            "client_id": "7.7.7.7",
            "exceeded_limits": [3],
        }


@pytest.mark.unit
class TestRequestGuardDisabled:
    """No-Op gate: every request computes and passes."""

    def test_disabled_gate_always_computes(self, disabled_gate, loader):
        client = TestClient(_build_app(disabled_gate, loader))

        for _ in range(10):
            response = client.get("/posts/hello")
            assert response.status_code == 200
            assert "x-rate-limited" not in response.headers

        assert loader.call_count == 10


@pytest.mark.unit
class TestRateLimitExceptionHandler:
    """HTTP 429 rendering."""

    async def test_handler_renders_429(self):
        response = await rate_limit_exception_handler(
            MagicMock(), RateLimitExceededError("Rate limit exceeded", retry_after=17)
        )

        assert response.status_code == 429
        assert response.headers["retry-after"] == "17"
        assert b'"error":"rate_limited"' in response.body
