"""
BuildMarket Backend: Middleware Tests
======================================

What:  Request ID propagation and the per-IP rate limiter.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from buildmarket.config import Settings
from buildmarket.main import create_app
from buildmarket.middleware.request_id import resolve_request_id


class TestRequestID:

    @pytest.mark.asyncio
    async def test_generates_id_when_missing(self, test_client):
        response = await test_client.get("/api/playstyle/dimensions")
        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_echoes_client_id(self, test_client):
        response = await test_client.get(
            "/api/playstyle/dimensions", headers={"X-Request-ID": "client-42"}
        )
        assert response.headers["X-Request-ID"] == "client-42"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "client_id",
        ["x" * 65, "id with spaces", "evil;rm -rf", "id_with_underscore"],
    )
    async def test_replaces_unsafe_client_id(self, test_client, client_id):
        response = await test_client.get(
            "/api/playstyle/dimensions", headers={"X-Request-ID": client_id}
        )

        rid = response.headers["X-Request-ID"]
        assert rid != client_id
        assert len(rid) == 8

    def test_accepts_ids_up_to_the_length_cap(self):
        assert resolve_request_id("a" * 64) == "a" * 64
        assert resolve_request_id("A-1") == "A-1"
        assert len(resolve_request_id("")) == 8
        assert len(resolve_request_id(None)) == 8


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_rejects_requests_over_the_limit(self, test_settings, database):
        settings = test_settings.model_copy(update={"rate_limit_requests": 10})
        app = create_app(settings=settings, database=database)
        transport = ASGITransport(app=app)

        async with AsyncClient(transport=transport, base_url="http://test") as client:
            statuses = [
                (await client.get("/api/playstyle/dimensions")).status_code for _ in range(10)
            ]
            limited = await client.get("/api/playstyle/dimensions")
            health = await client.get("/health")

        assert statuses == [200] * 10
        assert limited.status_code == 429
        assert limited.json()["error"] == "rate_limit_exceeded"
        assert int(limited.headers["Retry-After"]) > 0
        assert health.status_code == 200

    def test_settings_reject_tiny_limits(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None, rate_limit_requests=1)
