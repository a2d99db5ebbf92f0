from .domain import (
    STAGE_ORDER,
    STAGE_STATUS,
    ArtifactBundle,
    ArtifactFile,
    HookEvent,
    Job,
    JobStatus,
    ProgressEvent,
    Stage,
    StageLogEntry,
    StageLogStatus,
    TransformationPlan,
    ValidationCheck,
    ValidationReport,
)

__all__ = [
    "STAGE_ORDER",
    "STAGE_STATUS",
    "ArtifactBundle",
    "ArtifactFile",
    "HookEvent",
    "Job",
    "JobStatus",
    "ProgressEvent",
    "Stage",
    "StageLogEntry",
    "StageLogStatus",
    "TransformationPlan",
    "ValidationCheck",
    "ValidationReport",
]
