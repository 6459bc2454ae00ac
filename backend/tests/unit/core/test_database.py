"""
DatabaseManager lifecycle without a running PostgreSQL, plus the readiness
route that reports on it.
"""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from realty.core.database import DatabaseManager
from realty.main import create_app


class TestDatabaseManager:
    @pytest.mark.asyncio
    async def test_session_before_initialize(self):
        manager = DatabaseManager()
        with pytest.raises(RuntimeError):
            async with manager.get_session():
                pass

    @pytest.mark.asyncio
    async def test_health_before_initialize(self):
        assert await DatabaseManager().health_check() == {"status": "not_initialized"}

    @pytest.mark.asyncio
    async def test_close_without_engine(self):
        manager = DatabaseManager()
        await manager.close()
        assert not manager.is_initialized


class TestReadiness:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "db_status, expected_code, expected_status",
        [("healthy", 200, "ready"), ("unhealthy", 503, "not_ready")],
    )
    async def test_readiness_follows_database(
        self, unavailable_cache_service, db_status, expected_code, expected_status
    ):
        app = create_app()
        app.state.cache_service = unavailable_cache_service
        app.state.database = AsyncMock()
        app.state.database.health_check.return_value = {"status": db_status}

        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            response = await client.get("/health/ready")

        assert response.status_code == expected_code
        body = response.json()
        assert body["status"] == expected_status
        assert body["checks"]["cache"] == {"connected": False}
