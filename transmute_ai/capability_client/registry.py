"""Multi-server routing, lifecycle and aggregated health.

The registry is built once from a list of server configurations and never
changes shape afterwards. Group operations (connect, disconnect, reconnect) are
serialized by one lock; routing and calls never take it.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from .client import CapabilityClient
from .errors import ServerNotFoundError
from .retry import Sleep
from .schemas.config import CapabilityServerConfig, RegistryConfig
from .schemas.core import CallResult, HealthRecord, RegistryStats, ServerStats
from .transport import CapabilityTransport

logger = logging.getLogger(__name__)

TransportFactory = Callable[[CapabilityServerConfig], CapabilityTransport]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CapabilityRegistry:
    """Owns one :class:`CapabilityClient` per configured server.

    Usage guidelines:
    - Use ``async with registry:`` (or ``start()``/``stop()``) to connect all
      servers and run background health polling.
    - ``connect_all()`` never raises; unreachable servers are reported through
      ``get_health()``.
    - ``transport_factory`` lets callers supply transports (tests use fakes).
    """

    def __init__(
        self,
        configs: Iterable[CapabilityServerConfig],
        *,
        transport_factory: Optional[TransportFactory] = None,
        sleep: Sleep = asyncio.sleep,
        health_check_interval: float = 60.0,
        auto_connect: bool = True,
    ) -> None:
        self._clients: Dict[str, CapabilityClient] = {}
        self._health: Dict[str, HealthRecord] = {}
        for cfg in configs:
            if cfg.name in self._clients:
                raise ValueError(f"Duplicate capability server name: '{cfg.name}'")
            transport = transport_factory(cfg) if transport_factory else None
            self._clients[cfg.name] = CapabilityClient(cfg, transport, sleep=sleep)
            self._health[cfg.name] = HealthRecord(server_name=cfg.name)
        self._lock = asyncio.Lock()
        self._health_interval = health_check_interval
        self._auto_connect = auto_connect
        self._poll_task: Optional[asyncio.Task[None]] = None

    @classmethod
    def from_config(cls, config: RegistryConfig, **kwargs: Any) -> "CapabilityRegistry":
        kwargs.setdefault("health_check_interval", config.health_check_interval)
        kwargs.setdefault("auto_connect", config.auto_connect)
        return cls(config.servers, **kwargs)

    @classmethod
    def from_file(cls, path: str | Path, **kwargs: Any) -> "CapabilityRegistry":
        """Build a registry from a JSON file shaped like :class:`RegistryConfig`."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_config(RegistryConfig.model_validate(data), **kwargs)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self._auto_connect:
            await self.connect_all()
        if self._health_interval > 0:
            self.start_health_polling(self._health_interval)

    async def stop(self) -> None:
        await self.stop_health_polling()
        await self.disconnect_all()

    async def __aenter__(self) -> "CapabilityRegistry":
        await self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.stop()

    async def connect_all(self) -> None:
        """Connect every client concurrently; failures are recorded, not raised."""
        async with self._lock:
            await asyncio.gather(*(self._connect_one(c) for c in self._clients.values()))
        healthy = sum(1 for h in self._health.values() if h.healthy)
        logger.info("CapabilityRegistry: connected %s/%s servers", healthy, len(self._clients))

    async def _connect_one(self, client: CapabilityClient) -> None:
        try:
            await client.connect()
        except Exception as e:
            logger.warning("CapabilityRegistry: server '%s' unavailable: %s", client.name, e)
        self._record_health(client, client.is_connected)

    async def disconnect_all(self) -> None:
        async with self._lock:
            results = await asyncio.gather(
                *(c.disconnect() for c in self._clients.values()), return_exceptions=True
            )
        for client, res in zip(self._clients.values(), results):
            if isinstance(res, BaseException):
                logger.warning("CapabilityRegistry: error disconnecting '%s': %s", client.name, res)
            self._record_health(client, False)

    async def reconnect_server(self, server_name: str) -> None:
        """Disconnect and reconnect one server.

        Raises:
            ServerNotFoundError: ``server_name`` is not configured.
            ConnectionFailedError: The reconnect attempt failed.
        """
        client = self.route(server_name)
        async with self._lock:
            try:
                await client.reconnect()
            finally:
                self._record_health(client, client.is_connected)
        logger.info("CapabilityRegistry: reconnected '%s'", server_name)

    # ------------------------------------------------------------------
    # Health polling
    # ------------------------------------------------------------------

    def start_health_polling(self, interval: Optional[float] = None) -> None:
        if self._poll_task is not None and not self._poll_task.done():
            return
        period = self._health_interval if interval is None else interval
        if period <= 0:
            raise ValueError("health polling interval must be positive")
        self._poll_task = asyncio.create_task(self._poll(period), name="capability-health-poll")

    async def stop_health_polling(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _poll(self, interval: float) -> None:
        while True:
            try:
                await self.check_health()
            except Exception:
                # A failed round is logged and polling continues.
                logger.exception("CapabilityRegistry: health poll failed")
            await asyncio.sleep(interval)

    async def check_health(self) -> Dict[str, HealthRecord]:
        """Run one health check round across all servers."""
        clients = list(self._clients.values())
        results = await asyncio.gather(*(c.health_check() for c in clients))
        for client, ok in zip(clients, results):
            self._record_health(client, ok)
            if not ok:
                logger.warning("CapabilityRegistry: health check failed for '%s'", client.name)
        return self.get_health()

    def _record_health(self, client: CapabilityClient, healthy: bool) -> None:
        self._health[client.name] = HealthRecord(
            server_name=client.name,
            status=client.state,
            healthy=healthy,
            last_checked_at=_utc_now(),
            last_error=None if healthy else client.last_error,
        )

    # ------------------------------------------------------------------
    # Routing and calls
    # ------------------------------------------------------------------

    @property
    def server_names(self) -> List[str]:
        return list(self._clients)

    def route(self, server_name: str) -> CapabilityClient:
        try:
            return self._clients[server_name]
        except KeyError:
            raise ServerNotFoundError(server_name, self.server_names) from None

    async def call(
        self,
        server_name: str,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> CallResult:
        """Route a call to ``server_name``.

        Raises:
            ServerNotFoundError: ``server_name`` is not configured.
        """
        return await self.route(server_name).call(method, params, context)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def get_health(self) -> Dict[str, HealthRecord]:
        return {name: rec.model_copy() for name, rec in self._health.items()}

    def get_health_for(self, server_name: str) -> HealthRecord:
        self.route(server_name)
        return self._health[server_name].model_copy()

    def is_server_available(self, server_name: str) -> bool:
        client = self._clients.get(server_name)
        return client is not None and client.is_connected

    def available_servers(self) -> List[str]:
        return [name for name, c in self._clients.items() if c.is_connected]

    def get_stats(self) -> RegistryStats:
        servers = [
            ServerStats(client=c.get_stats(), health=self._health[name].model_copy())
            for name, c in self._clients.items()
        ]
        return RegistryStats(
            total_servers=len(self._clients),
            healthy_servers=sum(1 for h in self._health.values() if h.healthy),
            servers=servers,
        )
