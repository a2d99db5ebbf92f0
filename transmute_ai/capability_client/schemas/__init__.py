from .config import CapabilityServerConfig, RegistryConfig
from .core import (
    CallError,
    CallResult,
    ClientStats,
    ConnectionState,
    ErrorCode,
    HealthRecord,
    RegistryStats,
    ServerStats,
)

__all__ = [
    "CallError",
    "CallResult",
    "CapabilityServerConfig",
    "ClientStats",
    "ConnectionState",
    "ErrorCode",
    "HealthRecord",
    "RegistryConfig",
    "RegistryStats",
    "ServerStats",
]
