from .interfaces import HookExecutionRepository, JobRepository, StageLogRepository
from .memory import InMemoryHookExecutionRepository, InMemoryJobRepository, InMemoryStageLogRepository

__all__ = [
    "HookExecutionRepository",
    "InMemoryHookExecutionRepository",
    "InMemoryJobRepository",
    "InMemoryStageLogRepository",
    "JobRepository",
    "StageLogRepository",
]
