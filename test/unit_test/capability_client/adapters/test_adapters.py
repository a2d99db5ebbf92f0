import pytest

from transmute_ai.capability_client.adapters import (
    AnalyzerAdapter,
    ArtifactGeneratorAdapter,
    GeneratedFile,
    NotifierAdapter,
    RepoConfig,
    RepositoryAdapter,
    UIGeneratorAdapter,
)
from transmute_ai.capability_client.adapters.repository import DEFAULT_WORKFLOW
from transmute_ai.capability_client.errors import CapabilityCallFailedError
from transmute_ai.capability_client.schemas.core import CallError, ErrorCode


def _down(message="server down"):
    return CallError(code=ErrorCode.CONNECTION_FAILED, message=message, retryable=True)


class TestAnalyzerAdapter:
    @pytest.mark.asyncio
    async def test_analyze_code_parses_camel_case_response(self, scripted_caller_cls):
        caller = scripted_caller_cls(
            {
                "analyzer.analyzeCode": {
                    "businessLogic": ["apply discount"],
                    "dependencies": ["CUSTFILE"],
                    "metadata": {"module": "BILLING", "linesOfCode": 420, "tables": ["CUSTOMER"]},
                    "vendorExtra": True,
                }
            }
        )
        adapter = AnalyzerAdapter(caller, "analyzer")

        result = await adapter.analyze_code("IDENTIFICATION DIVISION.", {"jobId": "j1"}, detectPatterns=False)

        assert result.business_logic == ["apply discount"]
        assert result.metadata.module == "BILLING"
        assert result.metadata.lines_of_code == 420
        server, method, params, context = caller.calls[0]
        assert (server, method) == ("analyzer", "analyzeCode")
        assert params["code"] == "IDENTIFICATION DIVISION."
        assert params["detectPatterns"] is False
        assert params["extractBusinessLogic"] is True
        assert context == {"jobId": "j1"}

    @pytest.mark.asyncio
    async def test_failed_call_raises_with_call_error(self, scripted_caller_cls):
        caller = scripted_caller_cls({"analyzer.analyzeCode": _down()})

        with pytest.raises(CapabilityCallFailedError) as exc_info:
            await AnalyzerAdapter(caller, "analyzer").analyze_code("x")

        assert exc_info.value.error.code is ErrorCode.CONNECTION_FAILED
        assert "analyzer.analyzeCode" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_unexpected_shape_is_a_parse_error(self, scripted_caller_cls):
        caller = scripted_caller_cls({"generator.generateModels": {"files": [{"content": "no path"}]}})

        with pytest.raises(CapabilityCallFailedError) as exc_info:
            await ArtifactGeneratorAdapter(caller, "generator").generate_models({"Customer": {}})

        assert exc_info.value.error.code is ErrorCode.PARSE_ERROR


class TestGeneratorAdapters:
    @pytest.mark.asyncio
    async def test_generate_models_services_and_ui(self, scripted_caller_cls):
        caller = scripted_caller_cls(
            {
                "generator.generateModels": {"files": [{"path": "models/customer.ts", "content": "export {}"}]},
                "generator.generateServiceDefinitions": {"files": [{"path": "api/openapi.json", "content": "{}"}]},
                "ui.generateUI": {"files": [{"path": "ui/App.tsx", "content": "<App/>"}]},
            }
        )
        generator = ArtifactGeneratorAdapter(caller, "generator")

        models = await generator.generate_models({"Customer": {"id": "string"}})
        services = await generator.generate_services({"CustomerService": {}})
        ui = await UIGeneratorAdapter(caller, "ui").generate_ui({"pages": ["list"]})

        assert [f.path for f in models.files] == ["models/customer.ts"]
        assert [f.path for f in services.files] == ["api/openapi.json"]
        assert [f.path for f in ui.files] == ["ui/App.tsx"]
        assert caller.calls[0][2] == {"models": {"Customer": {"id": "string"}}}


class TestRepositoryAdapter:
    @pytest.mark.asyncio
    async def test_creates_repository_and_runs_follow_ups(self, scripted_caller_cls):
        caller = scripted_caller_cls(
            {
                "repo.createRepository": {"name": "billing", "url": "https://git.example/billing"},
                "repo.createOrUpdateFiles": {"committed": 1},
                "repo.addTopics": {"ok": True},
                "repo.createWorkflow": {"ok": True},
            }
        )
        config = RepoConfig(
            name="billing",
            files=[GeneratedFile(path="README.md", content="# Billing")],
            topics=["modernized"],
        )

        result = await RepositoryAdapter(caller, "repo").create_repository(config)

        assert result.repository.url == "https://git.example/billing"
        assert result.warnings == []
        assert caller.methods() == ["createRepository", "createOrUpdateFiles", "addTopics", "createWorkflow"]
        assert caller.calls[1][2]["files"] == [{"path": "README.md", "content": "# Billing"}]
        assert caller.calls[3][2]["workflow"] == DEFAULT_WORKFLOW

    @pytest.mark.asyncio
    async def test_follow_up_failures_become_warnings(self, scripted_caller_cls):
        caller = scripted_caller_cls(
            {
                "repo.createRepository": {"name": "billing", "url": "https://git.example/billing"},
                "repo.createOrUpdateFiles": _down("quota exceeded"),
                "repo.createWorkflow": {"ok": True},
            }
        )

        result = await RepositoryAdapter(caller, "repo").create_repository(RepoConfig(name="billing"))

        assert result.warnings == ["createOrUpdateFiles: quota exceeded"]
        assert "addTopics" not in caller.methods()

    @pytest.mark.asyncio
    async def test_creation_failure_is_fatal(self, scripted_caller_cls):
        caller = scripted_caller_cls({"repo.createRepository": _down()})

        with pytest.raises(CapabilityCallFailedError):
            await RepositoryAdapter(caller, "repo").create_repository(RepoConfig(name="billing"))
        assert caller.methods() == ["createRepository"]


class TestNotifierAdapter:
    @pytest.mark.asyncio
    async def test_notify_completed_renders_template_and_attachment(self, scripted_caller_cls):
        caller = scripted_caller_cls({"chat.postMessage": {"ts": "1"}})
        context = {"name": "Billing", "repository_url": "https://git.example/billing", "quality_score": 92}

        sent = await NotifierAdapter(caller, "chat").notify("#ops", context, "completed")

        assert sent is True
        params = caller.calls[0][2]
        assert params["channel"] == "#ops"
        assert params["text"] == "Transformation completed: Billing\nRepository: https://git.example/billing"
        fields = params["attachments"][0]["fields"]
        assert {"title": "Quality Score", "value": "92%", "short": True} in fields

    @pytest.mark.asyncio
    async def test_post_failure_returns_false(self, scripted_caller_cls):
        caller = scripted_caller_cls({"chat.postMessage": _down()})

        assert await NotifierAdapter(caller, "chat").post_message("#ops", "hello") is False
