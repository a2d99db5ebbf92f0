from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List

from pydantic import Field

from ..schemas.base import BaseSchema
from ..schemas.domain import HookExecutionResult, HookExecutionStatus


class HookActionType(str, Enum):
    capability_call = "capability_call"
    notify = "notify"
    shell = "shell"


class HookRule(BaseSchema):
    """A best-effort side action bound to one lifecycle event.

    ``action_config`` by action type:

    - ``capability_call``: ``{"server", "method", "params"}``
    - ``notify``: ``{"channel", "message", "server"?}``
    - ``shell``: ``{"command", "timeout"?}``

    String values may contain ``{{ dotted.path }}`` placeholders resolved from
    the trigger context.
    """

    id: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=1, max_length=256)
    trigger_event: str = Field(..., min_length=1, examples=["job.completed", "stage.validated"])
    action_type: HookActionType
    action_config: Dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True


class HookRuleSet(BaseSchema):
    """On-disk shape of the hook configuration file."""

    hooks: List[HookRule] = Field(default_factory=list)



__all__ = ["HookActionType", "HookExecutionResult", "HookExecutionStatus", "HookRule", "HookRuleSet"]
