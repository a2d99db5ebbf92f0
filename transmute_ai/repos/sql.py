from __future__ import annotations

"""SQLAlchemy async repository implementations.

Typical wiring:

- Create an async engine with ``create_engine``.
- Create tables with ``create_all`` (tests and local development).
- Create a session factory with ``create_sessionmaker``.
- Build repository instances with ``build_sql_repos``.

Each repository method opens an ``AsyncSession``, performs its operation, and
commits, so every stage log entry is durable when ``append`` returns.
"""

import builtins
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from ..schemas.domain import (
    HookExecutionResult,
    HookExecutionStatus,
    Job,
    JobStatus,
    Stage,
    StageLogEntry,
    StageLogStatus,
)
from .interfaces import HookExecutionRepository, JobRepository, StageLogRepository
from .models import Base, HookExecutionRow, JobRow, StageLogRow


def create_engine(db_url: str) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    Postgres URLs are normalized to the asyncpg driver. In-memory SQLite shares
    one connection so every session sees the same database.
    """
    url = re.sub(r"^postgres(?:ql)?(?:\+[a-z0-9_]+)?://", "postgresql+asyncpg://", db_url, count=1)
    if url.startswith("sqlite"):
        if ":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:"):
            return create_async_engine(url, poolclass=StaticPool, connect_args={"check_same_thread": False})
        return create_async_engine(url)
    return create_async_engine(url, pool_pre_ping=True)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create all tables for the current ORM metadata."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo; stored values are always UTC.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _job_from_row(row: JobRow) -> Job:
    return Job(
        id=row.id,
        name=row.name,
        status=JobStatus(row.status),
        current_stage=Stage(row.current_stage) if row.current_stage else None,
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
        completed_at=_as_utc(row.completed_at),
        error_message=row.error_message,
    )


def _entry_from_row(row: StageLogRow) -> StageLogEntry:
    return StageLogEntry(
        id=row.id,
        job_id=row.job_id,
        stage=Stage(row.stage),
        status=StageLogStatus(row.status),
        started_at=_as_utc(row.started_at),
        duration_ms=row.duration_ms,
        input_summary=row.input_summary,
        output_summary=row.output_summary,
        error=row.error,
        capability=row.capability,
        output=row.output,
    )


def _execution_from_row(row: HookExecutionRow) -> HookExecutionResult:
    return HookExecutionResult(
        id=row.id,
        job_id=row.job_id,
        hook_id=row.hook_id,
        hook_name=row.hook_name,
        trigger_event=row.trigger_event,
        status=HookExecutionStatus(row.status),
        executed_at=_as_utc(row.executed_at),
        duration_ms=row.duration_ms,
        output=row.output,
        error=row.error,
    )


@dataclass(frozen=True)
class SqlJobRepository(JobRepository):
    """SQL implementation of ``JobRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def create(self, job: Job) -> None:
        async with self.session_factory() as s:
            s.add(
                JobRow(
                    id=job.id,
                    name=job.name,
                    status=job.status.value,
                    current_stage=job.current_stage.value if job.current_stage else None,
                    created_at=job.created_at,
                    updated_at=job.updated_at,
                    completed_at=job.completed_at,
                    error_message=job.error_message,
                )
            )
            await s.commit()

    async def get(self, job_id: str) -> Optional[Job]:
        async with self.session_factory() as s:
            row = await s.get(JobRow, job_id)
            return _job_from_row(row) if row is not None else None

    async def update(self, job: Job) -> None:
        async with self.session_factory() as s:
            row = await s.get(JobRow, job.id)
            if row is None:
                return
            row.name = job.name
            row.status = job.status.value
            row.current_stage = job.current_stage.value if job.current_stage else None
            row.updated_at = job.updated_at
            row.completed_at = job.completed_at
            row.error_message = job.error_message
            await s.commit()

    async def list(self, limit: int = 100, offset: int = 0) -> builtins.list[Job]:
        async with self.session_factory() as s:
            stmt = select(JobRow).order_by(JobRow.created_at.desc()).limit(limit).offset(offset)
            rows = (await s.execute(stmt)).scalars().all()
            return [_job_from_row(r) for r in rows]


@dataclass(frozen=True)
class SqlStageLogRepository(StageLogRepository):
    """SQL implementation of ``StageLogRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def append(self, entry: StageLogEntry) -> None:
        async with self.session_factory() as s:
            s.add(
                StageLogRow(
                    id=entry.id,
                    job_id=entry.job_id,
                    stage=entry.stage.value,
                    status=entry.status.value,
                    started_at=entry.started_at,
                    duration_ms=entry.duration_ms,
                    input_summary=entry.input_summary,
                    output_summary=entry.output_summary,
                    error=entry.error,
                    capability=entry.capability,
                    output=entry.output,
                )
            )
            await s.commit()

    async def list(self, job_id: str) -> builtins.list[StageLogEntry]:
        async with self.session_factory() as s:
            stmt = select(StageLogRow).where(StageLogRow.job_id == job_id).order_by(StageLogRow.seq)
            rows = (await s.execute(stmt)).scalars().all()
            return [_entry_from_row(r) for r in rows]


@dataclass(frozen=True)
class SqlHookExecutionRepository(HookExecutionRepository):
    """SQL implementation of ``HookExecutionRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def append(self, result: HookExecutionResult) -> None:
        data = result.model_dump(mode="json")
        async with self.session_factory() as s:
            s.add(
                HookExecutionRow(
                    id=result.id,
                    job_id=result.job_id,
                    hook_id=result.hook_id,
                    hook_name=result.hook_name,
                    trigger_event=result.trigger_event,
                    status=result.status.value,
                    executed_at=result.executed_at,
                    duration_ms=result.duration_ms,
                    output=data["output"],
                    error=result.error,
                )
            )
            await s.commit()

    async def list(
        self, *, job_id: Optional[str] = None, hook_id: Optional[str] = None, limit: int = 100
    ) -> builtins.list[HookExecutionResult]:
        stmt = select(HookExecutionRow)
        if job_id is not None:
            stmt = stmt.where(HookExecutionRow.job_id == job_id)
        if hook_id is not None:
            stmt = stmt.where(HookExecutionRow.hook_id == hook_id)
        stmt = stmt.order_by(HookExecutionRow.seq.desc()).limit(limit)
        async with self.session_factory() as s:
            rows = (await s.execute(stmt)).scalars().all()
            return [_execution_from_row(r) for r in rows]


@dataclass(frozen=True)
class SqlRepoBundle:
    jobs: SqlJobRepository
    stage_logs: SqlStageLogRepository
    hook_executions: SqlHookExecutionRepository


def build_sql_repos(*, session_factory: async_sessionmaker[AsyncSession]) -> SqlRepoBundle:
    return SqlRepoBundle(
        jobs=SqlJobRepository(session_factory),
        stage_logs=SqlStageLogRepository(session_factory),
        hook_executions=SqlHookExecutionRepository(session_factory),
    )
