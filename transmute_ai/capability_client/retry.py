"""Retry policy shared by capability clients and generation backends.

A :class:`RetryPolicy` is a plain value object: how many attempts, how long
to wait between them, and which failures deserve another try. The
:func:`run_with_retry` loop applies it to any coroutine factory and always
returns a :class:`RetryOutcome` instead of raising.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from .errors import CapabilityError, RequestTimeoutError
from .schemas.core import CallError, ErrorCode

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    def backoff(self, attempt: int) -> float:
        """Seconds to wait after the failed 1-based ``attempt``."""
        return min(self.base_delay * (self.multiplier ** (attempt - 1)), self.max_delay)

    def should_retry(self, error: CallError, attempt: int) -> bool:
        return error.retryable and attempt < self.max_attempts


@dataclass
class RetryOutcome:
    value: Any = None
    error: Optional[CallError] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


def classify_exception(exc: BaseException, *, label: str, timeout: float) -> CallError:
    """Map an attempt failure onto a :class:`CallError`.

    Unknown exception types are treated as non-retryable.
    """
    if isinstance(exc, CapabilityError):
        return exc.to_call_error()
    if isinstance(exc, asyncio.TimeoutError):
        return RequestTimeoutError(label, timeout).to_call_error()
    return CallError(
        code=ErrorCode.REQUEST_FAILED,
        message=f"{label} failed: {exc}",
        retryable=False,
        details={"exception": type(exc).__name__},
    )


async def run_with_retry(
    attempt: Callable[[], Awaitable[Any]],
    policy: RetryPolicy,
    *,
    timeout: float,
    label: str,
    sleep: Sleep = asyncio.sleep,
    on_error: Optional[Callable[[CallError, int], None]] = None,
) -> RetryOutcome:
    """Run ``attempt`` until it succeeds, fails non-retryably or attempts run out.

    Each attempt is bounded by ``timeout`` seconds. ``on_error`` is invoked with
    every failure and its 1-based attempt number before the retry decision.
    """
    error: Optional[CallError] = None
    for n in range(1, policy.max_attempts + 1):
        try:
            value = await asyncio.wait_for(attempt(), timeout=timeout)
            return RetryOutcome(value=value, attempts=n)
        except Exception as exc:
            error = classify_exception(exc, label=label, timeout=timeout)

        if on_error is not None:
            on_error(error, n)
        if not policy.should_retry(error, n):
            return RetryOutcome(error=error, attempts=n)

        delay = policy.backoff(n)
        logger.warning(
            "%s failed (%s); retrying in %ss (attempt %s/%s)",
            label,
            error.code.value,
            delay,
            n + 1,
            policy.max_attempts,
        )
        await sleep(delay)

    # Unreachable: the last attempt never satisfies should_retry.
    return RetryOutcome(error=error, attempts=policy.max_attempts)
