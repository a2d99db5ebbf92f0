"""JSON-RPC 2.0 helpers shared by the http and stdio transports."""

from __future__ import annotations

import itertools
from typing import Any, Optional

from ..errors import RemoteCallError
from ..schemas.core import ErrorCode
from ..schemas.dto import JSONRPCError, JSONRPCRequest, JSONRPCResponse

# Standard JSON-RPC error codes that describe a malformed call: retrying is pointless.
_NON_RETRYABLE = {
    -32700: ErrorCode.PARSE_ERROR,
    -32600: ErrorCode.INVALID_REQUEST,
    -32601: ErrorCode.METHOD_NOT_FOUND,
    -32602: ErrorCode.INVALID_PARAMS,
}


class RequestIds:
    def __init__(self) -> None:
        self._counter = itertools.count(1)

    def next(self) -> int:
        return next(self._counter)


def build_request(
    request_id: int, method: str, params: dict[str, Any], context: Optional[dict[str, Any]] = None
) -> JSONRPCRequest:
    payload = dict(params)
    if context:
        payload["_meta"] = {"context": context}
    return JSONRPCRequest(id=request_id, method=method, params=payload)


def error_from_rpc(server_name: str, method: str, err: JSONRPCError) -> RemoteCallError:
    """Classify a JSON-RPC error object.

    Internal (-32603) and implementation-defined server errors (-32000..-32099)
    are retryable unless the provider marks ``data.retryable`` as false.
    """
    details = {"rpcCode": err.code, "data": err.data}
    message = f"{server_name}.{method}: {err.message}"
    if err.code in _NON_RETRYABLE:
        return RemoteCallError(_NON_RETRYABLE[err.code], message, retryable=False, details=details)
    retryable = True
    if isinstance(err.data, dict) and err.data.get("retryable") is False:
        retryable = False
    return RemoteCallError(ErrorCode.REQUEST_FAILED, message, retryable=retryable, details=details)


def unwrap_response(server_name: str, method: str, response: JSONRPCResponse) -> Any:
    if response.error is not None:
        raise error_from_rpc(server_name, method, response.error)
    return response.result
