"""Tests for liveness, readiness and version endpoints."""
from whereabouts import __version__


async def test_livez(client):
    response = await client.get("/livez")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


async def test_healthz(client):
    response = await client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "databaseAccessible": True}


async def test_version(client):
    response = await client.get("/version")
    assert response.status_code == 200
    assert response.json()["version"] == __version__
    assert response.json()["service"] == "whereabouts"
