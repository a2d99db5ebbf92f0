from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import Field

from .base import BaseSchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Stage(str, Enum):
    analyze = "analyze"
    plan = "plan"
    generate = "generate"
    validate = "validate"
    deploy = "deploy"


STAGE_ORDER: tuple[Stage, ...] = (Stage.analyze, Stage.plan, Stage.generate, Stage.validate, Stage.deploy)


class JobStatus(str, Enum):
    created = "created"
    analyzing = "analyzing"
    planning = "planning"
    generating = "generating"
    validating = "validating"
    deploying = "deploying"
    completed = "completed"
    failed = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.completed, JobStatus.failed)


STAGE_STATUS: Dict[Stage, JobStatus] = {
    Stage.analyze: JobStatus.analyzing,
    Stage.plan: JobStatus.planning,
    Stage.generate: JobStatus.generating,
    Stage.validate: JobStatus.validating,
    Stage.deploy: JobStatus.deploying,
}


class StageLogStatus(str, Enum):
    started = "started"
    completed = "completed"
    failed = "failed"


class HookEvent(str, Enum):
    job_started = "job.started"
    job_completed = "job.completed"
    job_failed = "job.failed"
    stage_validated = "stage.validated"


class Job(BaseSchema):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: Optional[str] = None
    status: JobStatus = JobStatus.created
    current_stage: Optional[Stage] = None

    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None


class StageLogEntry(BaseSchema):
    """
    One append-only record in a job's stage log.

    Sub-calls made while a stage runs are recorded as separate entries sharing
    the stage tag, with ``capability`` set to ``server.method``.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    job_id: str
    stage: Stage
    status: StageLogStatus
    started_at: datetime = Field(default_factory=_utc_now)
    duration_ms: Optional[float] = None
    input_summary: Optional[str] = None
    output_summary: Optional[str] = None
    error: Optional[str] = None
    capability: Optional[str] = None
    output: Optional[Dict[str, Any]] = None


class ProgressEvent(BaseSchema):
    job_id: str
    stage: Optional[Stage] = None
    status: Optional[StageLogStatus] = None
    job_status: JobStatus
    message: str = ""
    timestamp: datetime = Field(default_factory=_utc_now)
    sequence: int = Field(0, ge=0)

    @property
    def is_terminal(self) -> bool:
        return self.job_status.is_terminal


class HookExecutionStatus(str, Enum):
    completed = "completed"
    failed = "failed"
    skipped = "skipped"


class HookExecutionResult(BaseSchema):
    """Outcome of one hook rule run, kept in the hook execution history."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    job_id: Optional[str] = None
    hook_id: str
    hook_name: str
    trigger_event: str
    status: HookExecutionStatus
    executed_at: datetime = Field(default_factory=_utc_now)
    duration_ms: float = 0.0
    output: Optional[Any] = None
    error: Optional[str] = None


class TransformationPlan(BaseSchema):
    summary: str = ""
    models: Dict[str, Any] = Field(default_factory=dict)
    services: Dict[str, Any] = Field(default_factory=dict)
    ui_design: Dict[str, Any] = Field(default_factory=dict)


class ArtifactFile(BaseSchema):
    path: str = Field(..., min_length=1)
    content: str = ""


class ArtifactBundle(BaseSchema):
    files: List[ArtifactFile] = Field(default_factory=list)

    def paths(self) -> List[str]:
        return [f.path for f in self.files]


class ValidationCheck(BaseSchema):
    name: str
    passed: bool
    severity: Literal["error", "warning"] = "error"
    message: str = ""


class ValidationReport(BaseSchema):
    passed: bool
    score: int = Field(..., ge=0, le=100)
    checks: List[ValidationCheck] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
