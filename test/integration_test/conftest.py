"""Capability servers simulated over JSON-RPC with ``httpx.MockTransport``."""

import copy
import json
from typing import Any, Dict, List

import httpx
import pytest
import pytest_asyncio

from transmute_ai.capability_client import CapabilityRegistry, CapabilityServerConfig
from transmute_ai.capability_client.transport.http import HttpJsonRpcTransport

PROVIDERS: Dict[str, Dict[str, Any]] = {
    "analyzer": {
        "analyzeCode": {
            "businessLogic": ["calculate invoice totals"],
            "dependencies": ["CUSTFILE"],
            "metadata": {"module": "BILLING", "complexity": 2, "tables": ["CUSTOMER"]},
        },
    },
    "text-generation": {"generate": {"text": "One invoice service with a customer UI."}},
    "generator": {
        "generateModels": {"files": [{"path": "db/schema.cds", "content": "entity Customer { key ID : UUID; }"}]},
        "generateServiceDefinitions": {
            "files": [{"path": "srv/service.json", "content": json.dumps({"services": ["InvoiceService"]})}]
        },
    },
    "ui-generator": {"generateUI": {"files": [{"path": "app/index.ts", "content": "export const app = () => ({});"}]}},
    "repository": {
        "createRepository": {"name": "billing", "url": "https://git.example/billing"},
        "createOrUpdateFiles": {"committed": 4},
        "addTopics": {"ok": True},
        "createWorkflow": {"ok": True},
    },
    "notifier": {"postMessage": {"ok": True}},
}


class CapabilityServers:
    """Routes JSON-RPC posts to ``http://mock/<server>`` onto canned results."""

    def __init__(self) -> None:
        self.providers = copy.deepcopy(PROVIDERS)
        self.calls: List[tuple[str, str, Dict[str, Any]]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        server = request.url.path.strip("/")
        body = json.loads(request.content)
        method = body["method"]
        if method == "ping":
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": "pong"})
        self.calls.append((server, method, body.get("params") or {}))
        try:
            result = self.providers[server][method]
        except KeyError:
            error = {"code": -32601, "message": f"Method not found: {method}"}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": error})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    def messages(self) -> List[str]:
        return [params["text"] for server, method, params in self.calls if method == "postMessage"]


@pytest.fixture
def servers() -> CapabilityServers:
    return CapabilityServers()


@pytest_asyncio.fixture
async def http_registry(servers):
    async with httpx.AsyncClient(transport=httpx.MockTransport(servers)) as http:
        configs = [CapabilityServerConfig(name=name, endpoint_url=f"http://mock/{name}") for name in PROVIDERS]
        yield CapabilityRegistry(
            configs,
            transport_factory=lambda cfg: HttpJsonRpcTransport(cfg, client=http),
            health_check_interval=0,
        )
