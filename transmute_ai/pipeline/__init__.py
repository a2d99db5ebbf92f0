from .cancellation import CancellationToken
from .engine import TransformationPipeline
from .errors import (
    JobAlreadyFinishedError,
    JobInProgressError,
    JobNotFoundError,
    PipelineError,
    ValidationFailedError,
)
from .models import PipelineDeps
from .stages import DefaultStages, StageContext, StageFn
from .validation import QualityValidator

__all__ = [
    "CancellationToken",
    "DefaultStages",
    "JobAlreadyFinishedError",
    "JobInProgressError",
    "JobNotFoundError",
    "PipelineDeps",
    "PipelineError",
    "QualityValidator",
    "StageContext",
    "StageFn",
    "TransformationPipeline",
    "ValidationFailedError",
]
