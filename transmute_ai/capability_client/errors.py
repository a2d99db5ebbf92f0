from __future__ import annotations

from typing import Any, Optional

from .schemas.core import CallError, ErrorCode


class CapabilityError(Exception):
    """Base error for the capability client layer.

    Every subclass knows how to describe itself as a :class:`CallError` so the
    retry loop can record it and decide whether another attempt is worthwhile.
    """

    code: ErrorCode = ErrorCode.REQUEST_FAILED
    retryable: bool = True

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_call_error(self) -> CallError:
        return CallError(code=self.code, message=self.message, retryable=self.retryable, details=self.details)


class ConnectionFailedError(CapabilityError):
    code = ErrorCode.CONNECTION_FAILED
    retryable = True

    def __init__(self, server_name: str, reason: str) -> None:
        super().__init__(f"Failed to connect to capability server '{server_name}': {reason}")
        self.server_name = server_name


class RequestTimeoutError(CapabilityError):
    code = ErrorCode.TIMEOUT
    retryable = True

    def __init__(self, label: str, timeout: Optional[float] = None) -> None:
        suffix = f" after {timeout}s" if timeout is not None else ""
        super().__init__(f"{label} timed out{suffix}")


class RemoteCallError(CapabilityError):
    """A request reached the transport but the remote side reported a failure."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        *,
        retryable: bool,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details)
        self.code = code
        self.retryable = retryable


class ServerNotFoundError(CapabilityError):
    code = ErrorCode.NOT_FOUND
    retryable = False

    def __init__(self, server_name: str, available: Optional[list[str]] = None) -> None:
        known = ", ".join(available or []) or "none"
        super().__init__(f"Capability server not found: '{server_name}'. Available servers: {known}")
        self.server_name = server_name


class InvalidStateTransitionError(Exception):
    def __init__(self, server_name: str, current: str, target: str) -> None:
        super().__init__(f"Illegal connection state transition for '{server_name}': {current} -> {target}")


class CapabilityCallFailedError(Exception):
    """Raised by typed adapters when a call returns an unsuccessful result."""

    def __init__(self, server_name: str, method: str, error: Optional[CallError]) -> None:
        reason = error.message if error else "unknown error"
        super().__init__(f"Capability call '{server_name}.{method}' failed: {reason}")
        self.server_name = server_name
        self.method = method
        self.error = error
