# tests/test_basic_endpoints.py
import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def test_ping_health(client: AsyncClient):
    r = await client.get("/api/v1/ping/")
    assert r.status_code == 200
    assert r.json().get("message") == "pong"

    r = await client.get("/api/v1/health/")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["credential_configured"] is True
    assert "test-key" not in r.text


async def test_metrics_and_ops(client: AsyncClient):
    """測試 /metrics, /healthz, /readyz 都能正確回應"""
    r = await client.get("/metrics")
    assert r.status_code == 200
    assert "# HELP" in r.text

    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json().get("ok") is True

    r = await client.get("/readyz")
    assert r.status_code == 200
    assert r.json().get("ready") is True


async def test_unknown_route_uses_error_shape(client: AsyncClient):
    r = await client.get("/api/v1/nope")
    assert r.status_code == 404
    assert r.json()["error"] == "Not Found"
    assert r.headers["X-Content-Type-Options"] == "nosniff"
