from typing import Any, Dict, List, Optional

import pytest

from transmute_ai.capability_client.schemas.core import CallError, CallResult, ErrorCode


class ScriptedCaller:
    """CapabilityCaller returning canned results keyed by ``server.method``."""

    def __init__(self, results: Optional[Dict[str, Any]] = None) -> None:
        self.results = results or {}
        self.calls: List[tuple[str, str, Dict[str, Any], Optional[Dict[str, Any]]]] = []

    async def call(self, server_name, method, params=None, context=None) -> CallResult:
        self.calls.append((server_name, method, params or {}, context))
        outcome = self.results.get(f"{server_name}.{method}")
        if isinstance(outcome, CallError):
            return CallResult(success=False, error=outcome, attempts=1)
        if outcome is None:
            return CallResult(
                success=False,
                error=CallError(code=ErrorCode.METHOD_NOT_FOUND, message=f"{method} not scripted", retryable=False),
                attempts=1,
            )
        return CallResult(success=True, data=outcome, attempts=1)

    def methods(self) -> List[str]:
        return [m for _, m, _, _ in self.calls]


@pytest.fixture
def scripted_caller_cls():
    return ScriptedCaller
