from typing import Any, Dict, List, Optional

import pytest

from transmute_ai.capability_client.schemas.core import CallError, CallResult, ErrorCode


class RecordingCaller:
    def __init__(self, fail_methods: Optional[set] = None) -> None:
        self.fail_methods = fail_methods or set()
        self.calls: List[tuple[str, str, Dict[str, Any]]] = []

    async def call(self, server_name, method, params=None, context=None) -> CallResult:
        self.calls.append((server_name, method, params or {}))
        if method in self.fail_methods:
            error = CallError(code=ErrorCode.CONNECTION_FAILED, message=f"{server_name} is down", retryable=True)
            return CallResult(success=False, error=error, attempts=3)
        return CallResult(success=True, data={"ok": True}, attempts=1)


@pytest.fixture
def caller() -> RecordingCaller:
    return RecordingCaller()


@pytest.fixture
def failing_caller() -> RecordingCaller:
    return RecordingCaller({"postMessage", "createIssue"})
