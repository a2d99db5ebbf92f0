"""Connection, retry and health management for one capability server.

``CapabilityClient`` owns exactly one transport and one connection state
machine. Calls never raise: every outcome, including exhausted retries, is a
:class:`CallResult`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from transmute_ai.core import monitoring

from .errors import ConnectionFailedError, InvalidStateTransitionError
from .retry import RetryPolicy, Sleep, run_with_retry
from .schemas.config import CapabilityServerConfig
from .schemas.core import CallError, CallResult, ClientStats, ConnectionState
from .transport import CapabilityTransport, build_transport

logger = logging.getLogger(__name__)

_TRANSITIONS: Dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.DISCONNECTED: frozenset({ConnectionState.CONNECTING}),
    ConnectionState.CONNECTING: frozenset({ConnectionState.CONNECTED, ConnectionState.ERROR}),
    ConnectionState.CONNECTED: frozenset({ConnectionState.DISCONNECTED, ConnectionState.ERROR}),
    ConnectionState.ERROR: frozenset(
        {ConnectionState.RECONNECTING, ConnectionState.CONNECTING, ConnectionState.DISCONNECTED}
    ),
    ConnectionState.RECONNECTING: frozenset({ConnectionState.CONNECTING, ConnectionState.DISCONNECTED}),
}


class CapabilityClient:
    """Client for a single named capability server.

    Usage guidelines:
    - ``call()`` connects on demand; explicit ``connect()`` is only needed to
      fail fast at startup.
    - ``retry_policy`` defaults to ``config.max_retries`` attempts with a
      ``min(2**(n-1), 10)`` second backoff.
    - ``sleep`` is injectable so tests can skip real backoff delays.

    Examples:
        >>> client = CapabilityClient(CapabilityServerConfig(name="analyzer", endpoint_url="http://a/rpc"))
        >>> result = await client.call("analyzeCode", {"source": "..."})
        >>> result.success
    """

    def __init__(
        self,
        config: CapabilityServerConfig,
        transport: Optional[CapabilityTransport] = None,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._config = config
        self._transport = transport or build_transport(config)
        self._policy = retry_policy or RetryPolicy(max_attempts=config.max_retries)
        self._sleep = sleep
        self._state = ConnectionState.DISCONNECTED
        # Serializes state transitions; concurrent callers wait for an in-flight connect.
        self._state_lock = asyncio.Lock()
        # Bumped on every successful connect so stale request failures are ignored.
        self._generation = 0
        self._last_error: Optional[CallError] = None
        self._connection_attempts = 0
        self._retry_count = 0
        self._total_calls = 0
        self._failed_calls = 0

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def config(self) -> CapabilityServerConfig:
        return self._config

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def last_error(self) -> Optional[CallError]:
        return self._last_error

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def _transition(self, target: ConnectionState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise InvalidStateTransitionError(self.name, self._state.value, target.value)
        logger.debug("CapabilityClient[%s]: %s -> %s", self.name, self._state.value, target.value)
        self._state = target

    async def connect(self) -> None:
        """Open the transport.

        A caller arriving while another connect is in flight waits for it and
        returns once the client is connected.

        Raises:
            ConnectionFailedError: The server could not be reached; the error is
                also stored as ``last_error`` and the state becomes ``error``.
        """
        async with self._state_lock:
            if self._state is ConnectionState.CONNECTED:
                return
            await self._open_locked()

    async def _open_locked(self) -> None:
        if self._state is ConnectionState.ERROR:
            self._transition(ConnectionState.RECONNECTING)
        self._transition(ConnectionState.CONNECTING)
        self._connection_attempts += 1
        try:
            await self._transport.open()
        except asyncio.CancelledError:
            # Attempt timeout while connecting: leave a state the next attempt can recover from.
            self._transition(ConnectionState.ERROR)
            await self._close_quietly()
            raise
        except Exception as e:
            err = e if isinstance(e, ConnectionFailedError) else ConnectionFailedError(self.name, str(e))
            self._last_error = err.to_call_error()
            self._transition(ConnectionState.ERROR)
            await self._close_quietly()
            logger.warning("CapabilityClient[%s]: connect failed: %s", self.name, err.message)
            if err is e:
                raise
            raise err from e
        self._generation += 1
        self._last_error = None
        self._transition(ConnectionState.CONNECTED)
        logger.info("CapabilityClient[%s]: connected", self.name)

    async def disconnect(self) -> None:
        async with self._state_lock:
            if self._state is ConnectionState.DISCONNECTED:
                return
            await self._close_quietly()
            self._transition(ConnectionState.DISCONNECTED)
            logger.info("CapabilityClient[%s]: disconnected", self.name)

    async def reconnect(self) -> None:
        await self.disconnect()
        await self.connect()

    async def _close_quietly(self) -> None:
        try:
            await self._transport.close()
        except Exception as e:
            logger.warning("CapabilityClient[%s]: error while closing transport: %s", self.name, e)

    async def _connection_lost(self, generation: int) -> None:
        """Move to ``error`` once per lost connection; later reports of the same loss are no-ops."""
        async with self._state_lock:
            if self._state is not ConnectionState.CONNECTED or generation != self._generation:
                return
            self._transition(ConnectionState.ERROR)
            await self._close_quietly()

    async def _attempt(self, method: str, params: Dict[str, Any], context: Optional[Dict[str, Any]]) -> Any:
        if self._state is not ConnectionState.CONNECTED:
            await self.connect()
        generation = self._generation
        try:
            return await self._transport.request(method, params, context)
        except ConnectionFailedError:
            await self._connection_lost(generation)
            raise

    def _record_failure(self, error: CallError, attempt: int) -> None:
        self._last_error = error

    async def call(
        self,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> CallResult:
        """Invoke ``method`` with timeout and retry; never raises.

        Retryable failures (connection, timeout, transient remote errors) are
        retried up to the policy's attempt budget. Non-retryable failures return
        immediately.
        """
        self._total_calls += 1
        started = time.perf_counter()
        label = f"{self.name}.{method}"
        outcome = await run_with_retry(
            lambda: self._attempt(method, params or {}, context),
            self._policy,
            timeout=self._config.timeout_seconds,
            label=label,
            sleep=self._sleep,
            on_error=self._record_failure,
        )
        duration_ms = (time.perf_counter() - started) * 1000
        self._retry_count += outcome.attempts - 1
        monitoring.log_capability_call(self.name, method, outcome.ok, outcome.attempts, duration_ms)
        if outcome.ok:
            self._last_error = None
            return CallResult(success=True, data=outcome.value, duration_ms=duration_ms, attempts=outcome.attempts)
        self._failed_calls += 1
        logger.error(
            "CapabilityClient[%s]: %s failed after %s attempt(s): %s",
            self.name,
            method,
            outcome.attempts,
            outcome.error.message if outcome.error else "unknown",
        )
        return CallResult(success=False, error=outcome.error, duration_ms=duration_ms, attempts=outcome.attempts)

    async def health_check(self) -> bool:
        result = await self.call("ping")
        return result.success

    def get_stats(self) -> ClientStats:
        return ClientStats(
            server_name=self.name,
            status=self._state,
            connection_attempts=self._connection_attempts,
            retry_count=self._retry_count,
            total_calls=self._total_calls,
            failed_calls=self._failed_calls,
            last_error=self._last_error,
        )


__all__ = ["CapabilityClient"]
