import json

import pytest

from transmute_ai.schemas.domain import Job, JobStatus
from transmute_ai.server.api.v1.jobs import job_event_stream

pytestmark = pytest.mark.asyncio


async def test_start_runs_job_in_background(client, pipeline_service):
    response = await client.post("/api/v1/jobs/j1/start", json={"source": "PROGRAM-ID. BILLING.", "name": "Billing"})

    assert response.status_code == 202
    assert response.json()["id"] == "j1"
    assert response.json()["status"] == "created"

    final = await pipeline_service.pipeline.wait("j1")
    assert final.status is JobStatus.completed

    status = await client.get("/api/v1/jobs/j1")
    assert status.json()["status"] == "completed"
    assert status.json()["name"] == "Billing"

    logs = await client.get("/api/v1/jobs/j1/logs")
    assert [(e["stage"], e["status"]) for e in logs.json()][:2] == [("analyze", "started"), ("analyze", "completed")]
    assert len(logs.json()) == 10


async def test_restarting_a_finished_job_conflicts(client, pipeline_service):
    await client.post("/api/v1/jobs/j1/start", json={"source": "code"})
    await pipeline_service.pipeline.wait("j1")

    response = await client.post("/api/v1/jobs/j1/start", json={"source": "code"})

    assert response.status_code == 409
    assert "completed" in response.json()["detail"]
    assert len((await client.get("/api/v1/jobs/j1/logs")).json()) == 10


async def test_start_validates_body(client):
    response = await client.post("/api/v1/jobs/j1/start", json={"source": ""})
    assert response.status_code == 422


async def test_unknown_job_is_404(client):
    assert (await client.get("/api/v1/jobs/missing")).status_code == 404
    assert (await client.get("/api/v1/jobs/missing/logs")).status_code == 404
    assert (await client.post("/api/v1/jobs/missing/cancel")).status_code == 404
    assert (await client.get("/api/v1/jobs/missing/events")).status_code == 404


async def test_cancel_finished_job_reports_not_cancelled(client, pipeline_service):
    await client.post("/api/v1/jobs/j1/start", json={"source": "code"})
    await pipeline_service.pipeline.wait("j1")

    response = await client.post("/api/v1/jobs/j1/cancel")

    assert response.status_code == 200
    assert response.json()["cancelled"] is False
    assert response.json()["job"]["status"] == "completed"


class TestJobEventStream:
    async def test_stream_sends_snapshot_then_progress_until_terminal(self, pipeline_service):
        await pipeline_service.jobs.create(Job(id="j1"))
        stream = job_event_stream(pipeline_service, "j1")

        first = await stream.__anext__()
        await pipeline_service.pipeline.start("j1", "code")
        rest = [message async for message in stream]

        assert first["event"] == "status"
        assert json.loads(first["data"])["job"]["status"] == "created"
        progress = [json.loads(m["data"]) for m in rest if m["event"] == "progress"]
        assert [p["sequence"] for p in progress] == list(range(1, len(progress) + 1))
        assert progress[-1]["job_status"] == "completed"
        assert all(m["event"] == "progress" for m in rest)

    async def test_finished_job_stream_is_a_single_snapshot(self, client, pipeline_service):
        await client.post("/api/v1/jobs/j1/start", json={"source": "code"})
        await pipeline_service.pipeline.wait("j1")

        messages = [m async for m in job_event_stream(pipeline_service, "j1")]

        assert len(messages) == 1
        assert json.loads(messages[0]["data"])["job"]["status"] == "completed"

    async def test_dropped_events_trigger_a_resync_snapshot(self, pipeline_service):
        pipeline_service.events._queue_size = 2
        await pipeline_service.jobs.create(Job(id="j1"))
        stream = job_event_stream(pipeline_service, "j1")
        await stream.__anext__()

        await pipeline_service.pipeline.execute("j1", "code")
        rest = [message async for message in stream]

        resyncs = [json.loads(m["data"]) for m in rest if m["event"] == "status"]
        assert resyncs[-1]["resync"] is True
        assert resyncs[-1]["missed"] > 0
        assert resyncs[-1]["job"]["status"] == "completed"

    async def test_stream_stops_when_client_disconnects(self, pipeline_service):
        await pipeline_service.jobs.create(Job(id="j1"))

        async def disconnected():
            return True

        stream = job_event_stream(pipeline_service, "j1", disconnected)
        await stream.__anext__()
        pipeline_service.events.publish("j1", job_status=JobStatus.analyzing, message="analyze started")

        assert [m async for m in stream] == []
        assert pipeline_service.events.subscriber_count("j1") == 0
