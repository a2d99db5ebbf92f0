import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from transmute_ai.capability_client.errors import ServerNotFoundError
from transmute_ai.pipeline.errors import JobAlreadyFinishedError, JobInProgressError, JobNotFoundError
from transmute_ai.schemas.domain import JobStatus
from transmute_ai.server.exception_handlers import setup_exception_handlers

pytestmark = pytest.mark.asyncio


@pytest.fixture
def app() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/finished")
    async def finished():
        raise JobAlreadyFinishedError("j1", JobStatus.completed)

    @app.get("/running")
    async def running():
        raise JobInProgressError("j1", JobStatus.planning)

    @app.get("/missing-job")
    async def missing_job():
        raise JobNotFoundError("j1")

    @app.get("/missing-server")
    async def missing_server():
        raise ServerNotFoundError("ghost", ["analyzer"])

    @app.get("/boom")
    async def boom():
        raise RuntimeError("boom")

    return app


@pytest_asyncio.fixture
async def http(app):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.mark.parametrize(
    ("path", "status"),
    [("/finished", 409), ("/running", 409), ("/missing-job", 404), ("/missing-server", 404)],
)
async def test_pipeline_errors_map_to_status_codes(http, path, status):
    response = await http.get(path)

    assert response.status_code == status
    assert "j1" in response.json()["detail"] or "ghost" in response.json()["detail"]


async def test_unhandled_exception_returns_error_id(http):
    response = await http.get("/boom")

    body = response.json()
    assert response.status_code == 500
    assert body["detail"] == "Internal server error"
    assert body["error_type"] == "RuntimeError"
    assert isinstance(body["error_id"], int)
