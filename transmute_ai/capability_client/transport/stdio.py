from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Any, Optional

from pydantic import ValidationError

from ..errors import ConnectionFailedError
from ..schemas.config import CapabilityServerConfig
from ..schemas.dto import JSONRPCResponse
from .jsonrpc import RequestIds, build_request, unwrap_response


class StdioJsonRpcTransport:
    """Newline-delimited JSON-RPC 2.0 over a child process's stdin/stdout.

    One request is in flight at a time; a lock serializes writers on the pipe.
    Lines that are not JSON, or responses carrying another id (notifications,
    late replies to timed-out requests), are skipped.
    """

    def __init__(self, config: CapabilityServerConfig, *, terminate_timeout: float = 5.0) -> None:
        self._config = config
        self._proc: Optional[asyncio.subprocess.Process] = None
        self._lock = asyncio.Lock()
        self._ids = RequestIds()
        self._terminate_timeout = terminate_timeout
        self._logger = logging.getLogger(__name__)

    @property
    def is_running(self) -> bool:
        return self._proc is not None and self._proc.returncode is None

    async def open(self) -> None:
        if self.is_running:
            return
        env = {**os.environ, **self._config.env}
        try:
            self._proc = await asyncio.create_subprocess_exec(
                self._config.command,
                *self._config.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                env=env,
                limit=self._config.stream_limit,
            )
        except OSError as e:
            raise ConnectionFailedError(self._config.name, f"cannot spawn '{self._config.command}': {e}") from e
        self._logger.debug("StdioJsonRpcTransport: spawned %s pid=%s", self._config.command, self._proc.pid)

    async def request(self, method: str, params: dict[str, Any], context: Optional[dict[str, Any]] = None) -> Any:
        async with self._lock:
            if not self.is_running:
                raise ConnectionFailedError(self._config.name, "process is not running")
            assert self._proc is not None and self._proc.stdin is not None and self._proc.stdout is not None
            rpc = build_request(self._ids.next(), method, params, context)
            line = json.dumps(rpc.model_dump(mode="json")) + "\n"
            try:
                self._proc.stdin.write(line.encode("utf-8"))
                await self._proc.stdin.drain()
            except (BrokenPipeError, ConnectionResetError) as e:
                raise ConnectionFailedError(self._config.name, f"write failed: {e}") from e

            while True:
                try:
                    raw = await self._proc.stdout.readline()
                except ValueError as e:
                    # The oversized line is only partly consumed; the pipe cannot be resynchronized.
                    await self._discard()
                    raise ConnectionFailedError(
                        self._config.name, f"reply exceeds {self._config.stream_limit} byte stream limit"
                    ) from e
                if not raw:
                    raise ConnectionFailedError(self._config.name, "process closed stdout")
                try:
                    response = JSONRPCResponse.model_validate(json.loads(raw))
                except (ValueError, ValidationError):
                    self._logger.debug("StdioJsonRpcTransport: skipping non JSON-RPC line from %s", self._config.name)
                    continue
                if response.id != rpc.id:
                    continue
                return unwrap_response(self._config.name, method, response)

    async def _discard(self) -> None:
        self._logger.warning("StdioJsonRpcTransport: discarding %s after an unreadable reply", self._config.name)
        await self.close()

    async def close(self) -> None:
        proc, self._proc = self._proc, None
        if proc is None or proc.returncode is not None:
            return
        if proc.stdin is not None:
            proc.stdin.close()
        try:
            proc.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(proc.wait(), timeout=self._terminate_timeout)
        except asyncio.TimeoutError:
            self._logger.warning("StdioJsonRpcTransport: %s did not exit; killing", self._config.name)
            proc.kill()
            await proc.wait()
