"""
HTTP tests for cache administration, health and error envelopes.

The application lifespan is not run: the cache service is placed on
app.state directly and route services are swapped through dependency
overrides, so no PostgreSQL is needed.
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from realty.api.dependencies import get_property_service
from realty.core.security import create_access_token
from realty.main import create_app
from realty.services.exceptions import NotFoundError


def build_app(cache):
    app = create_app()
    app.state.cache_service = cache
    return app


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token(str(uuid4()))}"}


@pytest.fixture
async def client(cache_service):
    app = build_app(cache_service)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        c.app = app
        yield c


@pytest.fixture
async def degraded_client(unavailable_cache_service):
    app = build_app(unavailable_cache_service)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        c.app = app
        yield c


class TestCacheAdministration:
    @pytest.mark.asyncio
    async def test_requires_token(self, client):
        response = await client.delete("/api/cache/clear")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_rejects_invalid_token(self, client):
        response = await client.delete(
            "/api/cache/clear", headers={"Authorization": "Bearer garbage"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid token."

    @pytest.mark.asyncio
    async def test_clear_all(self, client, cache_service, auth_headers):
        await cache_service.cache_property({"id": "p1"})

        response = await client.delete("/api/cache/clear", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert not (await cache_service.get_cached_property("p1")).is_hit

    @pytest.mark.asyncio
    async def test_clear_user(self, client, cache_service, auth_headers):
        target = uuid4()
        await cache_service.cache_user_profile({"id": str(target), "username": "asha"})

        response = await client.delete(f"/api/cache/user/{target}", headers=auth_headers)

        assert response.status_code == 200
        assert not (await cache_service.get_cached_user_profile(target)).is_hit

    @pytest.mark.asyncio
    async def test_clear_search(self, client, cache_service, auth_headers):
        await cache_service.cache_property_search({"city": "Pune"}, {"total": 0})

        response = await client.delete("/api/cache/search", headers=auth_headers)

        assert response.status_code == 200
        assert not (await cache_service.get_cached_property_search({"city": "Pune"})).is_hit

    @pytest.mark.asyncio
    async def test_stats(self, client, cache_service, auth_headers):
        stats = {"connected": True, "keys": 3}
        with patch.object(cache_service, "get_stats", AsyncMock(return_value=stats)):
            response = await client.get("/api/cache/stats", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": stats}

    @pytest.mark.asyncio
    async def test_stats_failure_returns_503(self, client, cache_service, auth_headers):
        with patch.object(cache_service, "get_stats", AsyncMock(return_value=None)):
            response = await client.get("/api/cache/stats", headers=auth_headers)

        assert response.status_code == 503
        assert response.json()["detail"]["error"] == "CACHE_UNAVAILABLE"

    @pytest.mark.asyncio
    async def test_warm_property(self, client, auth_headers):
        service = AsyncMock()
        service.warm_property.return_value = True
        client.app.dependency_overrides[get_property_service] = lambda: service
        property_id = uuid4()

        response = await client.post(
            f"/api/cache/warm/property/{property_id}", headers=auth_headers
        )

        assert response.status_code == 200
        service.warm_property.assert_awaited_once_with(property_id)

    @pytest.mark.asyncio
    async def test_unavailable_store_returns_503(self, degraded_client, auth_headers):
        for method, path in (
            ("GET", "/api/cache/stats"),
            ("DELETE", "/api/cache/clear"),
            ("DELETE", "/api/cache/search"),
            ("DELETE", f"/api/cache/property/{uuid4()}"),
        ):
            response = await degraded_client.request(method, path, headers=auth_headers)
            assert response.status_code == 503
            assert response.json()["detail"]["error"] == "CACHE_UNAVAILABLE"


class TestHealth:
    @pytest.mark.asyncio
    async def test_cache_health(self, client):
        response = await client.get("/api/cache/health")
        assert response.status_code == 200
        assert response.json()["connected"] is True

    @pytest.mark.asyncio
    async def test_cache_health_unavailable(self, degraded_client):
        response = await degraded_client.get("/api/cache/health")
        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_liveness_reports_cache_flag(self, client, degraded_client):
        up = await client.get("/health")
        down = await degraded_client.get("/health")

        assert up.status_code == 200
        assert up.json()["cache"]["connected"] is True
        assert down.status_code == 200
        assert down.json()["cache"]["connected"] is False


class TestEnvelopes:
    @pytest.mark.asyncio
    async def test_domain_error_envelope(self, client):
        service = AsyncMock()
        service.get_property.side_effect = NotFoundError("Property not found")
        client.app.dependency_overrides[get_property_service] = lambda: service

        response = await client.get(f"/api/properties/{uuid4()}")

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": "NOT_FOUND",
            "message": "Property not found",
        }

    @pytest.mark.asyncio
    async def test_correlation_and_security_headers(self, client):
        response = await client.get(
            "/health", headers={"X-Correlation-ID": "req-12345678"}
        )

        assert response.headers["x-correlation-id"] == "req-12345678"
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "DENY"
