from __future__ import annotations

"""Repository interface contracts.

The pipeline depends on these Protocols instead of concrete persistence
implementations.

Contract guidelines
-------------------

- All methods are async.
- The stage log repository is append-only and returns entries in append order.
- Hook executions are append-only and listed newest first.
- ``JobRepository.update`` replaces the stored job; updating an unknown job is
  a no-op.
"""

from typing import Optional, Protocol

from ..schemas.domain import HookExecutionResult, Job, StageLogEntry


class JobRepository(Protocol):
    """Persist and query the lifecycle of a transformation job."""

    async def create(self, job: Job) -> None:
        """
        Create a new job record.

        Args:
            job: The initial job state to persist.
        """
        ...

    async def get(self, job_id: str) -> Optional[Job]:
        """
        Retrieve a job by its ID.

        Returns:
            The Job if found, else None.
        """
        ...

    async def update(self, job: Job) -> None:
        """Overwrite the stored state of ``job``."""
        ...

    async def list(self, limit: int = 100, offset: int = 0) -> list[Job]:
        """List jobs, newest first."""
        ...


class StageLogRepository(Protocol):
    """Append-only stage log of each job."""

    async def append(self, entry: StageLogEntry) -> None: ...

    async def list(self, job_id: str) -> list[StageLogEntry]:
        """
        Return all entries of ``job_id`` in the order they were appended.
        """
        ...


class HookExecutionRepository(Protocol):
    """Append-only history of hook rule runs."""

    async def append(self, result: HookExecutionResult) -> None: ...

    async def list(
        self, *, job_id: Optional[str] = None, hook_id: Optional[str] = None, limit: int = 100
    ) -> list[HookExecutionResult]:
        """
        Return the most recent executions first, optionally filtered by job or
        hook rule.
        """
        ...
