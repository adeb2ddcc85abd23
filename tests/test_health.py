"""Health endpoint tests."""

import pytest

from talentflow.api import health


@pytest.mark.asyncio
async def test_health_reports_degraded_without_redis(client, engine, monkeypatch):
    monkeypatch.setattr(health, "engine", engine)

    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["server"] == "ok"
    assert data["database"] == "ok"
    assert data["redis"] == "unavailable"
    assert data["status"] == "degraded"
    assert "version" in data
