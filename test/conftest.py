from __future__ import annotations

from pathlib import Path

import httpx
import pytest
from dotenv import load_dotenv

TEST_ROOT = Path(__file__).resolve().parent
# test/.env wins over the checked-in defaults; neither overrides the real environment.
for env_file in (TEST_ROOT / ".env", TEST_ROOT / ".env.example"):
    load_dotenv(env_file, override=False)

# Hosts the tests talk to: MockTransport capability servers, ASGI apps and local child processes.
OFFLINE_HOSTS = frozenset({"mock", "test", "localhost", "127.0.0.1", "0.0.0.0"})


class ExternalHttpBlocked(RuntimeError):
    pass


@pytest.fixture(autouse=True)
def offline_capability_servers(monkeypatch: pytest.MonkeyPatch) -> None:
    """Fail any request that would leave the test process.

    Capability transports and API clients all end up in ``send``; requests to
    hosts outside ``OFFLINE_HOSTS`` raise before reaching a transport.
    """
    sync_send = httpx.Client.send
    async_send = httpx.AsyncClient.send

    def _check(request: httpx.Request) -> None:
        if request.url.host not in OFFLINE_HOSTS:
            raise ExternalHttpBlocked(f"capability test tried to reach {request.url}")

    def guarded_send(self, request, *args, **kwargs):
        _check(request)
        return sync_send(self, request, *args, **kwargs)

    async def guarded_async_send(self, request, *args, **kwargs):
        _check(request)
        return await async_send(self, request, *args, **kwargs)

    monkeypatch.setattr(httpx.Client, "send", guarded_send)
    monkeypatch.setattr(httpx.AsyncClient, "send", guarded_async_send)
