from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from agencytax.db.session import get_db
from agencytax.main import app


def override_db(session):
    async def _get_db():
        yield session

    return _get_db


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_health_ready(client: AsyncClient):
    app.dependency_overrides[get_db] = override_db(AsyncMock())

    response = await client.get("/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["database"] == "connected"
    assert set(data) >= {"aggregator", "classifier"}


@pytest.mark.asyncio
async def test_health_not_ready(client: AsyncClient):
    session = AsyncMock()
    session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
    app.dependency_overrides[get_db] = override_db(session)

    response = await client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["database"] == "disconnected"
