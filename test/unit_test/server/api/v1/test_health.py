"""Tests for the health check endpoints."""

from unittest.mock import AsyncMock

import pytest

from akari.core.database.session import get_session
from akari.server.core import constant
from akari.server.main import app

pytestmark = pytest.mark.asyncio


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True, "status": "ok", "database": "ok"}


async def test_health_reports_database_outage(client):
    broken = AsyncMock()
    broken.execute.side_effect = ConnectionRefusedError("connection refused")

    async def broken_session():
        yield broken

    app.dependency_overrides[get_session] = broken_session
    response = await client.get("/health")

    assert response.status_code == 503
    assert response.json() == {"ok": False, "status": "degraded", "database": "unavailable"}


async def test_version(client):
    response = await client.get("/version")
    assert response.json() == {"ok": True, "name": constant.PROJECT_NAME, "version": constant.VERSION}


async def test_responses_carry_request_headers(client):
    response = await client.get("/health", headers={"x-request-id": "abc"})
    assert response.headers["x-request-id"] == "abc"
    assert "x-process-time" in response.headers
