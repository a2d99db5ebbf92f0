from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from transmute_ai.capability_client import CapabilityRegistry, CapabilityServerConfig, ConnectionFailedError
from transmute_ai.events import ProgressEventBus
from transmute_ai.hooks import HookActionType, HookDispatcher, HookRule
from transmute_ai.pipeline import PipelineDeps, TransformationPipeline
from transmute_ai.repos import InMemoryHookExecutionRepository, InMemoryJobRepository, InMemoryStageLogRepository
from transmute_ai.schemas.domain import STAGE_ORDER
from transmute_ai.server.services.pipeline_service import PipelineService


async def _ok_stage(ctx):
    return {"stage": ctx.stage.value}


@pytest.fixture
def registry(fake_transport_cls, no_sleep) -> CapabilityRegistry:
    def factory(cfg):
        if cfg.name == "repository":
            return fake_transport_cls(cfg.name, open_error=ConnectionFailedError(cfg.name, "connection refused"))
        return fake_transport_cls(cfg.name, {"postMessage": lambda p: {"ts": "1"}})

    configs = [
        CapabilityServerConfig(name=name, endpoint_url=f"http://mock/{name}", max_retries=1)
        for name in ("analyzer", "notifier", "repository")
    ]
    return CapabilityRegistry(configs, transport_factory=factory, sleep=no_sleep, health_check_interval=0)


@pytest.fixture
def pipeline_service(registry) -> PipelineService:
    jobs = InMemoryJobRepository()
    stage_logs = InMemoryStageLogRepository()
    events = ProgressEventBus(jobs)
    hooks = HookDispatcher(
        registry,
        rules=[
            HookRule(
                id="notify-done",
                name="Announce completion",
                trigger_event="job.completed",
                action_type=HookActionType.notify,
                action_config={"channel": "#ops", "message": "Job {{name}} done"},
            )
        ],
        executions=InMemoryHookExecutionRepository(),
    )
    deps = PipelineDeps(jobs=jobs, stage_logs=stage_logs, capabilities=registry, events=events, hooks=hooks)
    pipeline = TransformationPipeline(deps, stages={stage: _ok_stage for stage in STAGE_ORDER})
    return PipelineService(
        registry=registry,
        pipeline=pipeline,
        hooks=hooks,
        events=events,
        jobs=jobs,
        stage_logs=stage_logs,
    )


@pytest_asyncio.fixture
async def client(pipeline_service) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to an app that uses the test pipeline service; the lifespan is not run."""
    from transmute_ai.server.main import create_app

    app = create_app(pipeline_service)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
