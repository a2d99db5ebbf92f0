from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol, Type, TypeVar, runtime_checkable

from pydantic import BaseModel, ValidationError

from ..errors import CapabilityCallFailedError
from ..schemas.core import CallError, CallResult, ErrorCode

M = TypeVar("M", bound=BaseModel)


@runtime_checkable
class CapabilityCaller(Protocol):
    """Anything that can route a call to a named capability server.

    Implemented by :class:`CapabilityRegistry` and by the pipeline's per-stage
    logging context.
    """

    async def call(
        self,
        server_name: str,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> CallResult: ...


class CapabilityAdapter:
    """Thin typed facade over one capability server."""

    def __init__(self, caller: CapabilityCaller, server_name: str) -> None:
        self._caller = caller
        self._server = server_name
        self._logger = logging.getLogger(type(self).__module__)

    @property
    def server_name(self) -> str:
        return self._server

    async def _call(self, method: str, params: Dict[str, Any], context: Optional[Dict[str, Any]] = None) -> CallResult:
        return await self._caller.call(self._server, method, params, context)

    async def _invoke(
        self,
        method: str,
        params: Dict[str, Any],
        output: Type[M],
        context: Optional[Dict[str, Any]] = None,
    ) -> M:
        """Call ``method`` and validate its data into ``output``.

        Raises:
            CapabilityCallFailedError: The call failed or returned no usable data.
        """
        result = await self._call(method, params, context)
        if not result.success or result.data is None:
            raise CapabilityCallFailedError(self._server, method, result.error)
        try:
            return output.model_validate(result.data)
        except ValidationError as e:
            error = CallError(
                code=ErrorCode.PARSE_ERROR,
                message=f"unexpected response shape: {e.error_count()} validation error(s)",
                retryable=False,
            )
            raise CapabilityCallFailedError(self._server, method, error) from e
