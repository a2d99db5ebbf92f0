from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from .base import BaseSchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
    RECONNECTING = "reconnecting"


class ErrorCode(str, Enum):
    CONNECTION_FAILED = "CONNECTION_FAILED"
    TIMEOUT = "TIMEOUT"
    REQUEST_FAILED = "REQUEST_FAILED"
    REQUEST_REJECTED = "REQUEST_REJECTED"
    PARSE_ERROR = "PARSE_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    METHOD_NOT_FOUND = "METHOD_NOT_FOUND"
    INVALID_PARAMS = "INVALID_PARAMS"
    NOT_FOUND = "NOT_FOUND"
    MAX_RETRIES_EXCEEDED = "MAX_RETRIES_EXCEEDED"


class CallError(BaseSchema):
    code: ErrorCode = Field(..., description="Machine-readable error code.")
    message: str = Field(..., description="Human-readable description of the failure.")
    retryable: bool = Field(..., description="Whether another attempt may succeed.")
    details: Optional[Dict[str, Any]] = Field(None, description="Provider-specific error payload.")


class CallResult(BaseSchema):
    """
    Outcome of one logical capability call, after all retry attempts.

    Exactly one of ``data`` / ``error`` is meaningful depending on ``success``.
    """

    success: bool
    data: Any = None
    error: Optional[CallError] = None
    duration_ms: float = Field(0.0, ge=0, description="Wall time across all attempts, in milliseconds.")
    timestamp: datetime = Field(default_factory=_utc_now)
    attempts: int = Field(0, ge=0, description="Number of attempts made.")


class HealthRecord(BaseSchema):
    server_name: str
    status: ConnectionState = ConnectionState.DISCONNECTED
    healthy: bool = False
    last_checked_at: Optional[datetime] = None
    last_error: Optional[CallError] = None


class ClientStats(BaseSchema):
    server_name: str
    status: ConnectionState
    connection_attempts: int = 0
    retry_count: int = 0
    total_calls: int = 0
    failed_calls: int = 0
    last_error: Optional[CallError] = None


class ServerStats(BaseSchema):
    client: ClientStats
    health: HealthRecord


class RegistryStats(BaseSchema):
    total_servers: int
    healthy_servers: int
    servers: List[ServerStats] = Field(default_factory=list)
