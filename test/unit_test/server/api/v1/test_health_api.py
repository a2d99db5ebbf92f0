import pytest

pytestmark = pytest.mark.asyncio


async def test_health(client):
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_version(client):
    response = await client.get("/api/v1/version")
    assert response.status_code == 200
    assert response.json()["schema_version"] == "v1"
    assert response.json()["version"]
