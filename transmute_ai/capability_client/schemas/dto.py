from __future__ import annotations

from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class JSONRPCRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    jsonrpc: Literal["2.0"] = "2.0"
    id: Union[int, str]
    method: str = Field(..., min_length=1)
    params: Dict[str, Any] = Field(default_factory=dict)


class JSONRPCError(BaseModel):
    model_config = ConfigDict(extra="allow")

    code: int
    message: str
    data: Optional[Any] = None


class JSONRPCResponse(BaseModel):
    """
    A JSON-RPC 2.0 response envelope.

    Providers are lenient about extra keys, so unknown fields are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    jsonrpc: str = "2.0"
    id: Optional[Union[int, str]] = None
    result: Optional[Any] = None
    error: Optional[JSONRPCError] = None
