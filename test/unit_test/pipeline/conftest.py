import json
from typing import Any, Dict, List, Optional

import pytest

from transmute_ai.capability_client.schemas.core import CallError, CallResult, ErrorCode
from transmute_ai.events import ProgressEventBus
from transmute_ai.pipeline import PipelineDeps, TransformationPipeline
from transmute_ai.repos import InMemoryJobRepository, InMemoryStageLogRepository

PROVIDER_RESPONSES: Dict[str, Any] = {
    "analyzer.analyzeCode": {
        "businessLogic": ["calculate invoice totals", "apply customer discount"],
        "dependencies": ["CUSTFILE"],
        "metadata": {"module": "BILLING", "complexity": 3, "tables": ["CUSTOMER", "INVOICE"]},
    },
    "text-generation.generate": {"text": "Split billing into an invoice service and a customer UI."},
    "generator.generateModels": {"files": [{"path": "db/schema.cds", "content": "entity Customer { key ID : UUID; }"}]},
    "generator.generateServiceDefinitions": {
        "files": [{"path": "srv/service.json", "content": json.dumps({"services": ["InvoiceService"]})}]
    },
    "ui-generator.generateUI": {"files": [{"path": "app/index.ts", "content": "export const app = () => ({});"}]},
    "repository.createRepository": {"name": "billing", "url": "https://git.example/billing"},
    "repository.createOrUpdateFiles": {"committed": 4},
    "repository.addTopics": {"ok": True},
    "repository.createWorkflow": {"ok": True},
}


class ProviderCaller:
    """Answers every call the default stages make; ``failures`` maps keys to errors."""

    def __init__(self, responses: Optional[Dict[str, Any]] = None, failures: Optional[Dict[str, str]] = None):
        self.responses = dict(PROVIDER_RESPONSES if responses is None else responses)
        self.failures = failures or {}
        self.calls: List[tuple[str, str, Dict[str, Any], Optional[Dict[str, Any]]]] = []

    async def call(self, server_name, method, params=None, context=None) -> CallResult:
        key = f"{server_name}.{method}"
        self.calls.append((server_name, method, params or {}, context))
        if key in self.failures:
            error = CallError(code=ErrorCode.TIMEOUT, message=self.failures[key], retryable=True)
            return CallResult(success=False, error=error, attempts=3, duration_ms=5.0)
        if key not in self.responses:
            error = CallError(code=ErrorCode.NOT_FOUND, message=f"{key} not available", retryable=False)
            return CallResult(success=False, error=error, attempts=1)
        return CallResult(success=True, data=self.responses[key], attempts=1, duration_ms=1.0)


class RecordingHooks:
    def __init__(self, raise_on_trigger: bool = False) -> None:
        self.raise_on_trigger = raise_on_trigger
        self.triggered: List[tuple[str, Dict[str, Any]]] = []

    async def trigger(self, event_name: str, context: Dict[str, Any]):
        self.triggered.append((event_name, context))
        if self.raise_on_trigger:
            raise RuntimeError("hook backend exploded")
        return []

    def events(self) -> List[str]:
        return [name for name, _ in self.triggered]


@pytest.fixture
def provider_caller() -> ProviderCaller:
    return ProviderCaller()


@pytest.fixture
def hooks() -> RecordingHooks:
    return RecordingHooks()


@pytest.fixture
def make_pipeline(provider_caller, hooks):
    def _make(stages=None, *, caller=None, hook_dispatcher=hooks, generation=None, queue_size=256):
        jobs = InMemoryJobRepository()
        deps = PipelineDeps(
            jobs=jobs,
            stage_logs=InMemoryStageLogRepository(),
            capabilities=caller or provider_caller,
            events=ProgressEventBus(jobs, queue_size=queue_size),
            hooks=hook_dispatcher,
            generation=generation,
        )
        return TransformationPipeline(deps, stages=stages)

    return _make


def _stage_entries(entries):
    return [(e.stage.value, e.status.value) for e in entries if e.capability is None]


@pytest.fixture
def stage_entries():
    """Stage-level log entries, without the per-capability sub-call entries."""
    return _stage_entries


@pytest.fixture
def exploding_hooks() -> RecordingHooks:
    return RecordingHooks(raise_on_trigger=True)
