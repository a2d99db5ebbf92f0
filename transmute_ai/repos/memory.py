from __future__ import annotations

"""In-memory repository implementations.

Used when no database URL is configured and throughout the test suite. Stored
models are copied on the way in and out so callers never share mutable state
with the store.
"""

import builtins
from collections import deque
from typing import Deque, Dict, List, Optional

from ..schemas.domain import HookExecutionResult, Job, StageLogEntry


class InMemoryJobRepository:
    def __init__(self) -> None:
        self._jobs: Dict[str, Job] = {}

    async def create(self, job: Job) -> None:
        if job.id in self._jobs:
            raise ValueError(f"Job already exists: '{job.id}'")
        self._jobs[job.id] = job.model_copy()

    async def get(self, job_id: str) -> Optional[Job]:
        job = self._jobs.get(job_id)
        return job.model_copy() if job is not None else None

    async def update(self, job: Job) -> None:
        if job.id in self._jobs:
            self._jobs[job.id] = job.model_copy()

    async def list(self, limit: int = 100, offset: int = 0) -> builtins.list[Job]:
        jobs = sorted(self._jobs.values(), key=lambda j: j.created_at, reverse=True)
        return [j.model_copy() for j in jobs[offset : offset + limit]]


class InMemoryStageLogRepository:
    def __init__(self) -> None:
        self._entries: Dict[str, List[StageLogEntry]] = {}

    async def append(self, entry: StageLogEntry) -> None:
        self._entries.setdefault(entry.job_id, []).append(entry.model_copy())

    async def list(self, job_id: str) -> builtins.list[StageLogEntry]:
        return [e.model_copy() for e in self._entries.get(job_id, [])]


class InMemoryHookExecutionRepository:
    def __init__(self, max_entries: int = 10_000) -> None:
        self._results: Deque[HookExecutionResult] = deque(maxlen=max_entries)

    async def append(self, result: HookExecutionResult) -> None:
        self._results.append(result.model_copy())

    async def list(
        self, *, job_id: Optional[str] = None, hook_id: Optional[str] = None, limit: int = 100
    ) -> builtins.list[HookExecutionResult]:
        matched: builtins.list[HookExecutionResult] = []
        for r in reversed(self._results):
            if len(matched) >= limit:
                break
            if (job_id is None or r.job_id == job_id) and (hook_id is None or r.hook_id == hook_id):
                matched.append(r.model_copy())
        return matched
