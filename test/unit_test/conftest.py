"""Shared fakes for the unit tests.

``FakeTransport`` stands in for a capability server: handlers are plain
callables keyed by method name, and any exception they raise propagates the
way a real transport's classified error would.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Dict, List, Optional

import pytest

from transmute_ai.capability_client.errors import ConnectionFailedError


class FakeTransport:
    def __init__(
        self,
        name: str = "fake",
        handlers: Optional[Dict[str, Callable[[Dict[str, Any]], Any]]] = None,
        *,
        open_error: Optional[Exception] = None,
    ) -> None:
        self.name = name
        self.handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {"ping": lambda p: {"ok": True}}
        self.handlers.update(handlers or {})
        self.open_error = open_error
        self.opened = 0
        self.closed = 0
        self.requests: List[tuple[str, Dict[str, Any], Optional[Dict[str, Any]]]] = []

    async def open(self) -> None:
        self.opened += 1
        if self.open_error is not None:
            raise self.open_error

    async def request(self, method: str, params: Dict[str, Any], context: Optional[Dict[str, Any]] = None) -> Any:
        self.requests.append((method, params, context))
        handler = self.handlers.get(method)
        if handler is None:
            raise ConnectionFailedError(self.name, f"no handler for {method}")
        result = handler(params)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def close(self) -> None:
        self.closed += 1


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fake_transport_cls():
    return FakeTransport


@pytest.fixture
def no_sleep() -> SleepRecorder:
    return SleepRecorder()
