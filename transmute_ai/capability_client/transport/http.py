from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from ..errors import ConnectionFailedError, RemoteCallError, RequestTimeoutError
from ..schemas.config import CapabilityServerConfig
from ..schemas.core import ErrorCode
from ..schemas.dto import JSONRPCResponse
from .jsonrpc import RequestIds, build_request, unwrap_response


class HttpJsonRpcTransport:
    """JSON-RPC 2.0 over HTTP POST.

    Usage guidelines:
    - Pass ``client`` to share a pooled ``httpx.AsyncClient`` (or a mock) across
      transports; otherwise one is created on ``open()`` and closed on ``close()``.
    - Timeouts are enforced by the calling client, not by httpx.
    """

    def __init__(self, config: CapabilityServerConfig, *, client: Optional[httpx.AsyncClient] = None) -> None:
        self._config = config
        self._owns_client = client is None
        self._http: Optional[httpx.AsyncClient] = client
        self._ids = RequestIds()
        self._logger = logging.getLogger(__name__)

    def _headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {"Content-Type": "application/json"}
        if self._config.auth_token:
            headers["Authorization"] = f"Bearer {self._config.auth_token}"
        return headers

    async def open(self) -> None:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=None, follow_redirects=True)
        try:
            await self._post("ping", {}, None)
        except RemoteCallError as e:
            # An RPC-level error reply still proves the server is reachable.
            if not e.details or "rpcCode" not in e.details:
                raise ConnectionFailedError(self._config.name, e.message) from e
        except httpx.HTTPError as e:
            raise ConnectionFailedError(self._config.name, str(e) or type(e).__name__) from e

    async def request(self, method: str, params: dict[str, Any], context: Optional[dict[str, Any]] = None) -> Any:
        try:
            return await self._post(method, params, context)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"{self._config.name}.{method}") from e
        except httpx.HTTPError as e:
            raise ConnectionFailedError(self._config.name, str(e) or type(e).__name__) from e

    async def close(self) -> None:
        if self._http is not None and self._owns_client:
            await self._http.aclose()
            self._http = None

    async def _post(self, method: str, params: dict[str, Any], context: Optional[dict[str, Any]]) -> Any:
        if self._http is None:
            raise ConnectionFailedError(self._config.name, "transport is not open")
        rpc = build_request(self._ids.next(), method, params, context)
        self._logger.debug("HttpJsonRpcTransport: POST %s method=%s id=%s", self._config.endpoint_url, method, rpc.id)
        r = await self._http.post(
            self._config.endpoint_url,
            headers=self._headers(),
            json=rpc.model_dump(mode="json"),
        )
        if r.status_code >= 500:
            raise RemoteCallError(
                ErrorCode.REQUEST_FAILED,
                f"{self._config.name}.{method}: HTTP {r.status_code}",
                retryable=True,
            )
        if r.status_code >= 400:
            raise RemoteCallError(
                ErrorCode.REQUEST_REJECTED,
                f"{self._config.name}.{method}: HTTP {r.status_code}",
                retryable=False,
                details={"status": r.status_code, "body": r.text[:512]},
            )
        try:
            response = JSONRPCResponse.model_validate(r.json())
        except (ValueError, ValidationError) as e:
            raise RemoteCallError(
                ErrorCode.PARSE_ERROR,
                f"{self._config.name}.{method}: malformed JSON-RPC response",
                retryable=False,
                details={"reason": str(e)},
            ) from e
        return unwrap_response(self._config.name, method, response)
