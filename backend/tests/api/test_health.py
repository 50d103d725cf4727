"""Tests for the health check endpoint."""
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine


async def test_health_endpoint_returns_200(client: AsyncClient) -> None:
    """Test that the health endpoint returns 200 OK."""
    response = await client.get("/health")
    assert response.status_code == 200


async def test_health_endpoint_reports_database_and_dialect(
    client: AsyncClient,
    async_engine: AsyncEngine,
) -> None:
    """The dialect is the one the test database runs on."""
    response = await client.get("/health")
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "healthy"
    assert data["dialect"] == async_engine.dialect.name
