from .client import CapabilityClient
from .errors import (
    CapabilityCallFailedError,
    CapabilityError,
    ConnectionFailedError,
    RemoteCallError,
    RequestTimeoutError,
    ServerNotFoundError,
)
from .registry import CapabilityRegistry
from .retry import RetryPolicy
from .schemas import (
    CallError,
    CallResult,
    CapabilityServerConfig,
    ConnectionState,
    ErrorCode,
    HealthRecord,
    RegistryConfig,
)

__all__ = [
    "CallError",
    "CallResult",
    "CapabilityCallFailedError",
    "CapabilityClient",
    "CapabilityError",
    "CapabilityRegistry",
    "CapabilityServerConfig",
    "ConnectionFailedError",
    "ConnectionState",
    "ErrorCode",
    "HealthRecord",
    "RegistryConfig",
    "RemoteCallError",
    "RequestTimeoutError",
    "RetryPolicy",
    "ServerNotFoundError",
]
