import asyncio

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from aishe_portal.api.deps import get_db_session
from aishe_portal.core.config import settings
from aishe_portal.main import app


@pytest_asyncio.fixture
async def server_error_client(database):
    # Starlette re-raises after rendering the 500 handler; keep the response
    app.state.maintenance_gate.invalidate()
    transport = ASGITransport(app=app, raise_app_exceptions=False)

    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


def session_raising(exc: Exception):
    async def _session():
        raise exc

    return _session


@pytest.mark.asyncio
async def test_database_timeout_is_503(server_error_client):
    app.dependency_overrides[get_db_session] = session_raising(asyncio.TimeoutError("pool checkout timed out"))

    res = await server_error_client.post("/api/login", json={"username": "physics", "password": "password123"})
    assert res.status_code == 503
    body = res.json()
    assert body["success"] is False
    assert body["message"] == "Database timeout. Please try again."
    assert "timed out" in body["error"]


@pytest.mark.asyncio
async def test_database_timeout_hides_detail_in_production(server_error_client, monkeypatch):
    monkeypatch.setattr(settings, "ENV", "production")
    app.dependency_overrides[get_db_session] = session_raising(asyncio.TimeoutError("pool checkout timed out"))

    res = await server_error_client.post("/api/login", json={"username": "physics", "password": "password123"})
    assert res.status_code == 503
    assert res.json() == {"success": False, "message": "Database timeout. Please try again."}


@pytest.mark.asyncio
async def test_unexpected_error_is_500(server_error_client):
    app.dependency_overrides[get_db_session] = session_raising(RuntimeError("boom"))

    res = await server_error_client.post("/api/verify-otp", json={"email": "user@example.com", "otp": "123456"})
    assert res.status_code == 500
    body = res.json()
    assert body["message"] == "Internal server error"
    assert body["error"] == "boom"


@pytest.mark.asyncio
async def test_unexpected_error_hides_detail_in_production(server_error_client, monkeypatch):
    monkeypatch.setattr(settings, "ENV", "production")
    app.dependency_overrides[get_db_session] = session_raising(RuntimeError("boom"))

    res = await server_error_client.post("/api/verify-otp", json={"email": "user@example.com", "otp": "123456"})
    assert res.status_code == 500
    assert res.json() == {"success": False, "message": "Internal server error"}
