from __future__ import annotations

"""Pipeline dependency bundle and LangGraph state types.

- ``PipelineDeps`` collects the repositories, the capability caller and the
  collaborators the pipeline needs.
- ``_PipelineState`` is the mutable state passed between LangGraph nodes.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, NotRequired, Optional, Required, TypedDict

from ..capability_client.adapters.base import CapabilityCaller
from ..capability_client.adapters.generation import GenerationService
from ..core.config import ProviderNamesConfig
from ..events.bus import ProgressEventBus
from ..hooks.dispatcher import HookDispatcher
from ..repos.interfaces import JobRepository, StageLogRepository
from .validation import QualityValidator


@dataclass(frozen=True)
class PipelineDeps:
    """Dependency bundle for ``TransformationPipeline``.

    ``generation`` overrides text generation; when unset the planning stage
    calls ``providers.text_generation`` through the capability caller.
    """

    jobs: JobRepository
    stage_logs: StageLogRepository
    capabilities: CapabilityCaller
    events: ProgressEventBus

    hooks: Optional[HookDispatcher] = None
    generation: Optional[GenerationService] = None
    validator: QualityValidator = field(default_factory=QualityValidator)
    providers: ProviderNamesConfig = field(default_factory=ProviderNamesConfig)


class _PipelineState(TypedDict):
    """Mutable LangGraph state for a single job run.

    Required keys:

    - ``job_id``: current job identifier.
    - ``idx``: index of the next stage in ``STAGE_ORDER``.
    - ``input``: the raw job input.
    - ``outputs``: stage name to stage output, for completed stages.

    Optional keys:

    - ``_finished``: all stages completed.
    - ``_failed`` / ``_error`` / ``_failed_stage``: the run stopped on a failure.
    """

    job_id: Required[str]
    idx: Required[int]
    input: Required[Any]
    outputs: Required[Dict[str, Any]]
    _finished: NotRequired[bool]
    _failed: NotRequired[bool]
    _error: NotRequired[str]
    _failed_stage: NotRequired[str]
