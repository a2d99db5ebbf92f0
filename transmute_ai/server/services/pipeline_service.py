"""
Pipeline Service.

Builds and owns the long-lived collaborators behind the API: repositories, the
capability registry, the progress event bus, the hook dispatcher and the
transformation pipeline. One instance lives on ``app.state`` for the lifetime
of the application.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from transmute_ai.capability_client import CapabilityRegistry, RetryPolicy
from transmute_ai.capability_client.adapters import GenerationService, PydanticAIGenerationService
from transmute_ai.core.config import Settings
from transmute_ai.core.logging_config import get_logger
from transmute_ai.events import ProgressEventBus
from transmute_ai.hooks import HookDispatcher
from transmute_ai.pipeline import PipelineDeps, QualityValidator, TransformationPipeline
from transmute_ai.repos import (
    HookExecutionRepository,
    InMemoryHookExecutionRepository,
    InMemoryJobRepository,
    InMemoryStageLogRepository,
    JobRepository,
    StageLogRepository,
)
from transmute_ai.repos.sql import build_sql_repos, create_all, create_engine, create_sessionmaker

logger = get_logger(__name__)


@dataclass
class PipelineService:
    registry: CapabilityRegistry
    pipeline: TransformationPipeline
    hooks: HookDispatcher
    events: ProgressEventBus
    jobs: JobRepository
    stage_logs: StageLogRepository
    engine: Optional[AsyncEngine] = None

    async def start(self) -> None:
        await self.registry.start()

    async def stop(self) -> None:
        await self.registry.stop()
        if self.engine is not None:
            await self.engine.dispose()


async def build_pipeline_service(
    settings: Settings,
    *,
    registry: Optional[CapabilityRegistry] = None,
) -> PipelineService:
    """Wire the service graph from settings.

    Without a database URL the in-memory repositories are used; without a
    capabilities file the registry starts empty and every stage call fails
    with ``NOT_FOUND`` until servers are configured.
    """
    engine: Optional[AsyncEngine] = None
    if settings.database_url:
        engine = create_engine(settings.database_url)
        await create_all(engine)
        repos = build_sql_repos(session_factory=create_sessionmaker(engine))
        jobs: JobRepository = repos.jobs
        stage_logs: StageLogRepository = repos.stage_logs
        hook_executions: HookExecutionRepository = repos.hook_executions
        logger.info("Using SQL repositories")
    else:
        jobs = InMemoryJobRepository()
        stage_logs = InMemoryStageLogRepository()
        hook_executions = InMemoryHookExecutionRepository()
        logger.info("No database configured; using in-memory repositories")

    capability_cfg = settings.capabilities
    if registry is None:
        if capability_cfg.config_file:
            registry = CapabilityRegistry.from_file(
                capability_cfg.config_file, health_check_interval=capability_cfg.health_check_interval
            )
        else:
            logger.warning("No capabilities file configured; the capability registry is empty")
            registry = CapabilityRegistry([], health_check_interval=0)

    hooks_cfg = settings.hooks
    hooks = HookDispatcher(
        registry,
        notifier_server=settings.providers.notifier,
        default_channel=hooks_cfg.default_channel,
        allow_shell=hooks_cfg.allow_shell,
        config_path=hooks_cfg.config_file,
        executions=hook_executions,
    )
    hooks.load_rules()

    generation: Optional[GenerationService] = None
    if settings.generation_model:
        generation = PydanticAIGenerationService(
            settings.generation_model,
            retry_policy=RetryPolicy(max_attempts=capability_cfg.max_retries),
            timeout_seconds=capability_cfg.timeout_seconds,
        )

    validation_cfg = settings.validation
    events = ProgressEventBus(
        jobs, queue_size=settings.event_queue_size, retain_finished=settings.event_retained_jobs
    )
    deps = PipelineDeps(
        jobs=jobs,
        stage_logs=stage_logs,
        capabilities=registry,
        events=events,
        hooks=hooks,
        generation=generation,
        validator=QualityValidator(
            required_files=validation_cfg.required_files,
            forbidden_patterns=validation_cfg.forbidden_patterns,
        ),
        providers=settings.providers,
    )
    return PipelineService(
        registry=registry,
        pipeline=TransformationPipeline(deps),
        hooks=hooks,
        events=events,
        jobs=jobs,
        stage_logs=stage_logs,
        engine=engine,
    )
