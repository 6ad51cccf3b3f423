"""
CatTrack Backend: Rate Limiting Tests
======================================

What we test:
    ✅ The request over the limit gets 429 with Retry-After and the envelope
    ✅ The 429 carries the request id
    ✅ Excluded paths (/health, docs) are never limited
    ✅ Each client IP has its own window
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from cattrack.config import settings
from cattrack.main import create_app


@pytest.fixture
def low_limit(monkeypatch):
    monkeypatch.setattr(settings, "rate_limit_requests", 2)
    return 2


@pytest_asyncio.fixture
async def app(database):
    return create_app()


def _client(app, ip="10.0.0.1"):
    transport = ASGITransport(app=app, client=(ip, 40000))
    return AsyncClient(transport=transport, base_url="http://test")


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_over_limit_rejected(self, app, low_limit):
        async with _client(app) as client:
            for _ in range(low_limit):
                response = await client.get("/api/v1/users")
                assert response.status_code == 200

            response = await client.get("/api/v1/users", headers={"X-Request-ID": "rl-42"})

        assert response.status_code == 429
        retry_after = int(response.headers["Retry-After"])
        assert 1 <= retry_after <= settings.rate_limit_window

        body = response.json()
        assert body["error"] == "rate_limit_exceeded"
        assert body["details"]["retry_after"] == retry_after
        assert body["request_id"] == "rl-42"
        assert response.headers["X-Request-ID"] == "rl-42"

    @pytest.mark.asyncio
    async def test_excluded_paths_never_limited(self, app, low_limit):
        async with _client(app) as client:
            for _ in range(low_limit * 3):
                response = await client.get("/health")
                assert response.status_code == 200

            response = await client.get("/openapi.json")
            assert response.status_code == 200

            # Excluded requests did not use up the window
            response = await client.get("/api/v1/users")
            assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_window_is_per_ip(self, app, low_limit):
        async with _client(app, "10.0.0.1") as first, _client(app, "10.0.0.2") as second:
            for _ in range(low_limit):
                await first.get("/api/v1/users")
            assert (await first.get("/api/v1/users")).status_code == 429

            response = await second.get("/api/v1/users")
            assert response.status_code == 200
