from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import ConfigDict, Field, model_validator

from .base import BaseSchema, _to_camel


class CapabilityServerConfig(BaseSchema):
    """
    Immutable description of one capability server.

    ``transport="http"`` posts JSON-RPC requests to ``endpoint_url``;
    ``transport="stdio"`` spawns ``command`` and exchanges newline-delimited
    JSON-RPC over the child's stdin/stdout.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
        alias_generator=_to_camel,
        frozen=True,
    )

    name: str = Field(
        ...,
        description="Unique server name used for routing.",
        min_length=1,
        max_length=128,
        examples=["analyzer", "repository"],
    )
    transport: Literal["http", "stdio"] = Field("http", description="Invocation mechanism.")
    endpoint_url: Optional[str] = Field(
        None,
        description="JSON-RPC endpoint for the http transport.",
        examples=["http://localhost:9001/rpc"],
    )
    command: Optional[str] = Field(None, description="Executable for the stdio transport.", examples=["npx"])
    args: List[str] = Field(default_factory=list, description="Arguments passed to ``command``.")
    env: Dict[str, str] = Field(
        default_factory=dict,
        description="Static environment parameters (child process env for stdio, extra headers are not derived).",
    )
    auth_token: Optional[str] = Field(
        None,
        description="Sent as a Bearer Authorization header by the http transport.",
        min_length=1,
        max_length=512,
    )
    timeout_seconds: float = Field(30.0, gt=0, description="Per-attempt timeout in seconds.")
    max_retries: int = Field(3, ge=1, le=20, description="Total attempts per call, including the first.")
    stream_limit: int = Field(
        16 * 1024 * 1024,
        ge=64 * 1024,
        description="Longest stdout line, in bytes, the stdio transport accepts as one JSON-RPC message.",
    )

    @model_validator(mode="after")
    def _check_invocation(self) -> "CapabilityServerConfig":
        if self.transport == "http" and not self.endpoint_url:
            raise ValueError(f"server '{self.name}': http transport requires endpoint_url")
        if self.transport == "stdio" and not self.command:
            raise ValueError(f"server '{self.name}': stdio transport requires command")
        return self


class RegistryConfig(BaseSchema):
    """Top-level shape of a capabilities JSON file: ``{"servers": [...]}``."""

    servers: List[CapabilityServerConfig] = Field(default_factory=list)
    health_check_interval: float = Field(60.0, ge=0)
    auto_connect: bool = True
