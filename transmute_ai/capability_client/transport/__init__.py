"""Transport interfaces for capability server communication.

Defines the Protocol every concrete transport implements and a small factory
that picks one from a :class:`CapabilityServerConfig`. Concrete transports live
alongside this module (``http.py`` and ``stdio.py``).
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from ..schemas.config import CapabilityServerConfig


@runtime_checkable
class CapabilityTransport(Protocol):
    """Protocol for request/response transports to one capability server.

    Lifecycle:
    - ``open()`` establishes the channel and proves the server is reachable.
    - ``request()`` performs one RPC and returns its result payload.
    - ``close()`` releases the channel; it is safe to call more than once.

    Examples:
        >>> await transport.open()
        >>> result = await transport.request("analyzeCode", {"source": "..."})
        >>> await transport.close()
    """

    async def open(self) -> None:
        """Open the channel.

        Raises:
            ConnectionFailedError: The server could not be reached.
        """
        ...

    async def request(
        self,
        method: str,
        params: dict[str, Any],
        context: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Invoke ``method`` with ``params`` and return the decoded result.

        Args:
            method: Remote method name.
            params: JSON-serializable parameters.
            context: Optional caller metadata forwarded with the request.

        Raises:
            CapabilityError: Any failure, already classified as retryable or not.
        """
        ...

    async def close(self) -> None:
        """Release the channel."""
        ...


def build_transport(config: CapabilityServerConfig) -> CapabilityTransport:
    """Create the transport described by ``config.transport``."""
    if config.transport == "stdio":
        from .stdio import StdioJsonRpcTransport

        return StdioJsonRpcTransport(config)
    from .http import HttpJsonRpcTransport

    return HttpJsonRpcTransport(config)


__all__ = ["CapabilityTransport", "build_transport"]
