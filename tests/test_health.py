"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from otpguard.main import app


@pytest.fixture
async def client():
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    @pytest.mark.asyncio
    async def test_returns_healthy_with_db_connected(self, client):
        with patch(
            "otpguard.routers.health.check_database_connection",
            new_callable=AsyncMock
        ) as mock_db:
            mock_db.return_value = True

            response = await client.get("/health")

            assert response.status_code == 200
            assert response.json() == {"status": "healthy", "database": "connected"}

    @pytest.mark.asyncio
    async def test_returns_degraded_when_db_disconnected(self, client):
        with patch(
            "otpguard.routers.health.check_database_connection",
            new_callable=AsyncMock
        ) as mock_db:
            mock_db.return_value = False

            response = await client.get("/health")

            assert response.status_code == 503
            assert response.json() == {"status": "degraded", "database": "disconnected"}


class TestLivenessProbe:
    """Tests for /health/live endpoint."""

    @pytest.mark.asyncio
    async def test_alive_without_database(self, client):
        """Liveness must not depend on the database."""
        with patch(
            "otpguard.routers.health.check_database_connection",
            new_callable=AsyncMock
        ) as mock_db:
            response = await client.get("/health/live")

            assert response.status_code == 200
            assert response.json() == {"status": "alive"}
            mock_db.assert_not_called()


class TestReadinessProbe:
    """Tests for /health/ready endpoint."""

    @pytest.mark.asyncio
    async def test_ready_when_db_connected(self, client):
        with patch(
            "otpguard.routers.health.check_database_connection",
            new_callable=AsyncMock
        ) as mock_db:
            mock_db.return_value = True

            response = await client.get("/health/ready")

            assert response.status_code == 200
            assert response.json()["status"] == "ready"

    @pytest.mark.asyncio
    async def test_not_ready_when_db_disconnected(self, client):
        with patch(
            "otpguard.routers.health.check_database_connection",
            new_callable=AsyncMock
        ) as mock_db:
            mock_db.return_value = False

            response = await client.get("/health/ready")

            assert response.status_code == 503
            assert response.json()["status"] == "not_ready"


class TestRootEndpoint:
    @pytest.mark.asyncio
    async def test_root_lists_docs(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["docs"] == "/docs"
