from __future__ import annotations

"""LangGraph transformation pipeline.

``TransformationPipeline`` drives one job through the fixed stage order
analyze, plan, generate, validate, deploy.

Execution model
---------------

- The pipeline runs a LangGraph state machine over a mutable ``_PipelineState``.
- Each ``execute`` iteration runs exactly one stage at index ``idx``.
- A stage failure, a failed validation report or a cancellation routes to the
  ``fail`` node; nothing after the failing stage runs.

Every stage appends a ``started`` entry and then a ``completed`` or ``failed``
entry to the stage log and publishes a progress event. Lifecycle hooks fire
best-effort and can never change the outcome of a job.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

from langgraph.graph import END, StateGraph

from ..core import monitoring
from ..schemas.domain import (
    STAGE_ORDER,
    STAGE_STATUS,
    HookEvent,
    Job,
    JobStatus,
    Stage,
    StageLogEntry,
    StageLogStatus,
    ValidationReport,
)
from .cancellation import CancellationToken
from .errors import JobAlreadyFinishedError, JobInProgressError, JobNotFoundError, ValidationFailedError
from .models import PipelineDeps, _PipelineState
from .stages import DefaultStages, StageContext, StageFn, summarize, to_output_payload

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TransformationPipeline:
    """Execute transformation jobs with persistence, events and hooks.

    Usage guidelines:
    - ``execute`` runs a job to completion in the calling task and returns the
      final ``Job``; ``start`` schedules the same work as a background task.
    - ``stages`` replaces stage functions; missing stages use ``DefaultStages``.
    - ``cancel`` is cooperative: the job stops before its next stage.
    """

    def __init__(self, deps: PipelineDeps, *, stages: Optional[Dict[Stage, StageFn]] = None) -> None:
        self._deps = deps
        self._stages: Dict[Stage, StageFn] = {**DefaultStages().as_mapping(), **(stages or {})}
        self._active: Set[str] = set()
        self._tokens: Dict[str, CancellationToken] = {}
        self._tasks: Dict[str, asyncio.Task[Job]] = {}
        self._graph = self._build_graph()

    @property
    def deps(self) -> PipelineDeps:
        return self._deps

    def _build_graph(self):
        """Build and compile the LangGraph state machine."""
        g: StateGraph = StateGraph(_PipelineState)
        g.add_node("start", self._node_start)
        g.add_node("execute", self._node_execute_next)
        g.add_node("complete", self._node_complete)
        g.add_node("fail", self._node_fail)

        g.set_entry_point("start")
        g.add_edge("start", "execute")
        g.add_conditional_edges(
            "execute",
            self._route_after_execute,
            {
                "fail": "fail",
                "complete": "complete",
                "continue": "execute",
            },
        )
        g.add_edge("complete", END)
        g.add_edge("fail", END)
        return g.compile()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def execute(
        self,
        job_id: str,
        job_input: Any,
        *,
        name: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Job:
        """Run ``job_id`` through every stage and return its final state.

        Raises:
            JobAlreadyFinishedError: The job already completed or failed.
            JobInProgressError: The job is already running.
        """
        job = await self._prepare(job_id, name, cancel_token)
        return await self._run(job, job_input)

    async def start(
        self,
        job_id: str,
        job_input: Any,
        *,
        name: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Job:
        """Validate and reserve ``job_id``, then run it in a background task.

        Returns the job as created; rejection errors are raised before any work
        is scheduled.
        """
        job = await self._prepare(job_id, name, cancel_token)
        task = asyncio.create_task(self._run(job, job_input), name=f"pipeline-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda t: self._on_task_done(job_id, t))
        return job

    def _on_task_done(self, job_id: str, task: "asyncio.Task[Job]") -> None:
        self._tasks.pop(job_id, None)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("TransformationPipeline: background job %s crashed: %s", job_id, exc, exc_info=exc)

    def cancel(self, job_id: str, reason: str = "cancelled") -> bool:
        """Request cancellation; returns False when the job is not running."""
        token = self._tokens.get(job_id)
        if token is None:
            return False
        token.cancel(reason)
        logger.info("TransformationPipeline: cancellation requested for %s", job_id)
        return True

    def is_running(self, job_id: str) -> bool:
        return job_id in self._active

    async def wait(self, job_id: str) -> Optional[Job]:
        """Await a job started with ``start``; returns None if none is running."""
        task = self._tasks.get(job_id)
        if task is None:
            return None
        return await task

    async def get_current_status(self, job_id: str) -> Job:
        job = await self._deps.jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def get_stage_logs(self, job_id: str) -> list[StageLogEntry]:
        return await self._deps.stage_logs.list(job_id)

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    async def _prepare(self, job_id: str, name: Optional[str], cancel_token: Optional[CancellationToken]) -> Job:
        if job_id in self._active:
            raise JobInProgressError(job_id)
        self._active.add(job_id)
        try:
            job = await self._deps.jobs.get(job_id)
            if job is not None and job.status.is_terminal:
                raise JobAlreadyFinishedError(job_id, job.status)
            if job is not None and job.status is not JobStatus.created:
                raise JobInProgressError(job_id, job.status)
            if job is None:
                job = Job(id=job_id, name=name)
                await self._deps.jobs.create(job)
        except BaseException:
            self._active.discard(job_id)
            raise
        self._tokens[job_id] = cancel_token or CancellationToken()
        return job

    async def _run(self, job: Job, job_input: Any) -> Job:
        started = time.perf_counter()
        monitoring.log_job_started(job.id, job.name)
        logger.info("TransformationPipeline: job %s started", job.id)
        await self._fire_hooks(HookEvent.job_started, self._hook_context(job))
        state: _PipelineState = {"job_id": job.id, "idx": 0, "input": job_input, "outputs": {}}
        try:
            await self._graph.ainvoke(state)
        except asyncio.CancelledError:
            await self._abort(job.id, "cancelled")
            raise
        except Exception as e:
            logger.exception("TransformationPipeline: job %s aborted by an internal error", job.id)
            await self._abort(job.id, f"internal error: {e}")
            raise
        finally:
            self._active.discard(job.id)
            self._tokens.pop(job.id, None)

        final = await self.get_current_status(job.id)
        monitoring.log_job_finished(job.id, final.status.value, (time.perf_counter() - started) * 1000)
        return final

    async def _abort(self, job_id: str, reason: str) -> None:
        """Mark a job failed after its graph run was interrupted."""
        job = await self._deps.jobs.get(job_id)
        if job is None or job.status.is_terminal:
            return
        stage = job.current_stage or Stage.analyze
        await self._append(job_id, stage, StageLogStatus.failed, error=reason)
        await self._mark_failed(job, stage, reason)

    # ------------------------------------------------------------------
    # Graph nodes
    # ------------------------------------------------------------------

    async def _node_start(self, state: _PipelineState) -> _PipelineState:
        """Graph entry node: announce the job on the event bus."""
        self._deps.events.publish(state["job_id"], job_status=JobStatus.created, message="Job accepted")
        return state

    async def _node_execute_next(self, state: _PipelineState) -> _PipelineState:
        """Run the next stage, or flag the run finished or failed."""
        job_id = state["job_id"]
        idx = int(state.get("idx") or 0)
        if idx >= len(STAGE_ORDER):
            state["_finished"] = True
            return state

        stage = STAGE_ORDER[idx]
        token = self._tokens.get(job_id)
        if token is not None and token.cancelled:
            reason = token.reason or "cancelled"
            await self._append(job_id, stage, StageLogStatus.failed, error=reason)
            return self._flag_failure(state, stage, reason)

        job = await self.get_current_status(job_id)
        job.status = STAGE_STATUS[stage]
        job.current_stage = stage
        job.updated_at = _utc_now()
        await self._deps.jobs.update(job)

        input_summary = summarize(state["input"]) if stage is Stage.analyze else f"output of {STAGE_ORDER[idx - 1].value}"
        await self._append(job_id, stage, StageLogStatus.started, input_summary=input_summary)
        self._deps.events.publish(
            job_id, job_status=job.status, stage=stage, status=StageLogStatus.started, message=f"{stage.value} started"
        )

        outputs = dict(state.get("outputs") or {})
        ctx = StageContext(self._deps, job, stage, state["input"], outputs)
        started = time.perf_counter()
        try:
            output = await self._stages[stage](ctx)
            if isinstance(output, ValidationReport) and not output.passed:
                raise ValidationFailedError(output)
        except Exception as e:
            duration_ms = (time.perf_counter() - started) * 1000
            error = str(e) or type(e).__name__
            logger.warning("TransformationPipeline: job %s stage %s failed: %s", job_id, stage.value, error)
            payload = to_output_payload(e.report) if isinstance(e, ValidationFailedError) else None
            await self._append(
                job_id, stage, StageLogStatus.failed, duration_ms=duration_ms, error=error, output=payload
            )
            monitoring.log_stage_failed(job_id, stage.value, error)
            return self._flag_failure(state, stage, error)

        duration_ms = (time.perf_counter() - started) * 1000
        await self._append(
            job_id,
            stage,
            StageLogStatus.completed,
            duration_ms=duration_ms,
            output_summary=summarize(output),
            output=to_output_payload(output),
        )
        self._deps.events.publish(
            job_id,
            job_status=job.status,
            stage=stage,
            status=StageLogStatus.completed,
            message=f"{stage.value} completed",
        )
        if isinstance(output, ValidationReport):
            await self._fire_hooks(HookEvent.stage_validated, {**self._hook_context(job), "validation": output})

        outputs[stage.value] = output
        state["outputs"] = outputs
        state["idx"] = idx + 1
        return state

    async def _node_complete(self, state: _PipelineState) -> _PipelineState:
        """Mark the job completed and fire completion hooks."""
        job = await self.get_current_status(state["job_id"])
        now = _utc_now()
        job.status = JobStatus.completed
        job.updated_at = now
        job.completed_at = now
        await self._deps.jobs.update(job)
        self._deps.events.publish(job.id, job_status=job.status, message="Job completed")
        logger.info("TransformationPipeline: job %s completed", job.id)

        context = self._hook_context(job)
        outputs = state.get("outputs") or {}
        if Stage.deploy.value in outputs:
            context["deployment"] = outputs[Stage.deploy.value]
        if Stage.validate.value in outputs:
            context["validation"] = outputs[Stage.validate.value]
        await self._fire_hooks(HookEvent.job_completed, context)
        return state

    async def _node_fail(self, state: _PipelineState) -> _PipelineState:
        """Mark the job failed and fire failure hooks."""
        job = await self.get_current_status(state["job_id"])
        stage = Stage(state.get("_failed_stage") or (job.current_stage or Stage.analyze).value)
        await self._mark_failed(job, stage, state.get("_error") or "failed")
        return state

    def _route_after_execute(self, state: _PipelineState) -> str:
        if state.get("_failed"):
            return "fail"
        if state.get("_finished"):
            return "complete"
        return "continue"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _flag_failure(state: _PipelineState, stage: Stage, error: str) -> _PipelineState:
        state["_failed"] = True
        state["_failed_stage"] = stage.value
        state["_error"] = error
        return state

    async def _mark_failed(self, job: Job, stage: Stage, error: str) -> None:
        now = _utc_now()
        job.status = JobStatus.failed
        job.current_stage = stage
        job.error_message = error
        job.updated_at = now
        job.completed_at = now
        await self._deps.jobs.update(job)
        self._deps.events.publish(
            job.id,
            job_status=JobStatus.failed,
            stage=stage,
            status=StageLogStatus.failed,
            message=f"{stage.value} failed: {error}",
        )
        logger.warning("TransformationPipeline: job %s failed at %s: %s", job.id, stage.value, error)
        await self._fire_hooks(HookEvent.job_failed, {**self._hook_context(job), "stage": stage.value, "error": error})

    async def _append(
        self,
        job_id: str,
        stage: Stage,
        status: StageLogStatus,
        *,
        duration_ms: Optional[float] = None,
        input_summary: Optional[str] = None,
        output_summary: Optional[str] = None,
        error: Optional[str] = None,
        output: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self._deps.stage_logs.append(
            StageLogEntry(
                job_id=job_id,
                stage=stage,
                status=status,
                duration_ms=duration_ms,
                input_summary=input_summary,
                output_summary=output_summary,
                error=error,
                output=output,
            )
        )

    @staticmethod
    def _hook_context(job: Job) -> Dict[str, Any]:
        return {
            "job_id": job.id,
            "name": job.name or job.id,
            "status": job.status.value,
            "job": job.model_dump(mode="json"),
        }

    async def _fire_hooks(self, event: HookEvent, context: Dict[str, Any]) -> None:
        hooks = self._deps.hooks
        if hooks is None:
            return
        try:
            await hooks.trigger(event.value, context)
        except Exception as e:
            logger.error("TransformationPipeline: %s hooks raised: %s", event.value, e)
