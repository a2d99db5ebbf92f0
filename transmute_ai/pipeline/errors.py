from __future__ import annotations

from ..schemas.domain import JobStatus, ValidationReport


class PipelineError(Exception):
    pass


class JobNotFoundError(PipelineError):
    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job not found: '{job_id}'")
        self.job_id = job_id


class JobAlreadyFinishedError(PipelineError):
    def __init__(self, job_id: str, status: JobStatus) -> None:
        super().__init__(f"Job '{job_id}' already finished with status '{status.value}'")
        self.job_id = job_id
        self.status = status


class JobInProgressError(PipelineError):
    def __init__(self, job_id: str, status: JobStatus | None = None) -> None:
        detail = f" (status '{status.value}')" if status is not None else ""
        super().__init__(f"Job '{job_id}' is already running{detail}")
        self.job_id = job_id
        self.status = status


class ValidationFailedError(PipelineError):
    """The generated artifacts did not pass quality validation."""

    def __init__(self, report: ValidationReport) -> None:
        failed = [c.name for c in report.checks if not c.passed and c.severity == "error"]
        super().__init__(f"Quality validation failed (score {report.score}): {', '.join(failed) or 'unknown'}")
        self.report = report
