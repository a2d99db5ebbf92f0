from .dispatcher import HookDispatcher, default_rules
from .models import HookActionType, HookExecutionResult, HookExecutionStatus, HookRule, HookRuleSet
from .templates import render_template

__all__ = [
    "HookActionType",
    "HookDispatcher",
    "HookExecutionResult",
    "HookExecutionStatus",
    "HookRule",
    "HookRuleSet",
    "default_rules",
    "render_template",
]
