"""
API request and response schemas.

Domain models (``Job``, ``StageLogEntry``, ``HealthRecord``, ``HookRule``) are
returned as-is; this module only adds the shapes specific to the HTTP surface.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from transmute_ai.schemas.domain import Job


class JobStartRequest(BaseModel):
    source: str = Field(..., min_length=1, description="Source material to transform.")
    name: Optional[str] = Field(None, max_length=256, description="Human-readable job name.")
    options: Dict[str, Any] = Field(default_factory=dict, description="Extra analysis options.")


class JobCancelResponse(BaseModel):
    cancelled: bool = Field(..., description="Whether a running job received the cancellation request.")
    job: Job


class HookTriggerRequest(BaseModel):
    context: Dict[str, Any] = Field(default_factory=dict, description="Template context for the hook actions.")


class StatusEvent(BaseModel):
    """SSE payload carrying an authoritative job snapshot (sent first and after a resync)."""

    job: Job
    resync: bool = False
    missed: int = 0
