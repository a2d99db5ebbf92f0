"""
Transformation Jobs API Endpoints.

Starts transformation jobs and exposes their status, stage logs, cancellation
and a real-time progress stream via Server-Sent Events (SSE).
"""

from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request
from sse_starlette.sse import EventSourceResponse

from transmute_ai.core.logging_config import get_logger
from transmute_ai.events import Subscription
from transmute_ai.schemas.domain import Job, ProgressEvent, StageLogEntry
from transmute_ai.server.schemas import JobCancelResponse, JobStartRequest, StatusEvent
from transmute_ai.server.services.pipeline_service import PipelineService
from transmute_ai.server.services.deps import PipelineServiceDep

logger = get_logger(__name__)
router = APIRouter()


def _job_input(body: JobStartRequest) -> Any:
    if body.options:
        return {"source": body.source, "options": body.options}
    return body.source


def _status_message(job: Job, *, resync: bool = False, missed: int = 0) -> Dict[str, str]:
    return {"event": "status", "data": StatusEvent(job=job, resync=resync, missed=missed).model_dump_json()}


def _progress_message(event: ProgressEvent) -> Dict[str, str]:
    return {"event": "progress", "id": str(event.sequence), "data": event.model_dump_json()}


async def job_event_stream(
    service: PipelineService,
    job_id: str,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[Dict[str, str]]:
    """
    Yield SSE messages for one job.

    The subscription is opened before the status snapshot is read so no
    transition between the two is lost. A ``status`` message is sent first and
    again whenever the subscriber fell behind and dropped events; ``progress``
    messages carry the stage transitions in sequence order. The stream ends
    after the job's terminal event.
    """
    async with service.events.subscribe(job_id) as sub:
        snapshot = await service.events.get_current_status(job_id)
        if snapshot is None:
            return
        yield _status_message(snapshot)
        if snapshot.status.is_terminal:
            return

        async for event in sub:
            if is_disconnected is not None and await is_disconnected():
                logger.info(f"Client disconnected from stream for job: {job_id}")
                return
            yield _progress_message(event)
            if sub.needs_resync:
                message = await _resync_message(service, sub)
                if message is not None:
                    yield message
        # The terminal event itself may have been dropped.
        if sub.needs_resync:
            message = await _resync_message(service, sub)
            if message is not None:
                yield message


async def _resync_message(service: PipelineService, sub: Subscription) -> Optional[Dict[str, str]]:
    missed = sub.missed
    sub.acknowledge_resync()
    current = await service.events.get_current_status(sub.job_id)
    if current is None:
        return None
    logger.debug(f"Resyncing stream for job {sub.job_id} after {missed} dropped events")
    return _status_message(current, resync=True, missed=missed)


@router.post(
    "/{job_id}/start",
    response_model=Job,
    status_code=202,
    summary="Start Transformation Job",
    description="Create the job if needed and run it through the five pipeline stages in the background.",
    responses={409: {"description": "Job already finished or in progress"}},
)
async def start_job(job_id: str, body: JobStartRequest, service: PipelineServiceDep):
    """
    Start a transformation job.

    A job that already completed or failed is never re-run; a job that is
    still running is rejected as well. Both cases answer 409.
    """
    job = await service.pipeline.start(job_id, _job_input(body), name=body.name)
    logger.info(f"Accepted transformation job {job_id}")
    return job


@router.get(
    "/{job_id}",
    response_model=Job,
    summary="Get Job Status",
    responses={404: {"description": "Job not found"}},
)
async def get_job(job_id: str, service: PipelineServiceDep):
    return await service.pipeline.get_current_status(job_id)


@router.get(
    "/{job_id}/logs",
    response_model=List[StageLogEntry],
    summary="Get Stage Logs",
    description="Stage log entries of a job in the order they were written.",
    responses={404: {"description": "Job not found"}},
)
async def get_job_logs(job_id: str, service: PipelineServiceDep):
    await service.pipeline.get_current_status(job_id)
    return await service.pipeline.get_stage_logs(job_id)


@router.post(
    "/{job_id}/cancel",
    response_model=JobCancelResponse,
    summary="Cancel Job",
    description="Request cancellation of a running job. It stops before its next stage.",
    responses={404: {"description": "Job not found"}},
)
async def cancel_job(job_id: str, service: PipelineServiceDep):
    job = await service.pipeline.get_current_status(job_id)
    cancelled = service.pipeline.cancel(job_id, reason="cancelled by request")
    return JobCancelResponse(cancelled=cancelled, job=job)


@router.get(
    "/{job_id}/events",
    summary="Stream Job Events (SSE)",
    description="Stream progress events of a job in real time using Server-Sent Events.",
    responses={404: {"description": "Job not found"}},
)
async def stream_job_events(job_id: str, request: Request, service: PipelineServiceDep):
    """
    Stream job progress events.

    **Messages:**
    - `status`: authoritative job snapshot, sent first and after a resync
    - `progress`: one stage transition, its SSE id is the event sequence
    """
    if await service.jobs.get(job_id) is None:
        raise HTTPException(status_code=404, detail="Job not found")
    logger.info(f"Starting event stream for job: {job_id}")
    return EventSourceResponse(job_event_stream(service, job_id, request.is_disconnected))
