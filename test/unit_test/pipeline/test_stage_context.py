import pytest

from transmute_ai.pipeline import StageContext
from transmute_ai.pipeline.stages import DefaultStages, _slug, _source_of, summarize, to_output_payload
from transmute_ai.schemas.domain import Job, Stage, StageLogStatus, TransformationPlan


def test_source_of_accepts_text_or_mapping():
    assert _source_of("code") == ("code", {})
    assert _source_of({"source": "code", "options": {"dialect": "cobol"}}) == ("code", {"dialect": "cobol"})
    with pytest.raises(ValueError):
        _source_of({"options": {}})
    with pytest.raises(TypeError):
        _source_of(42)


def test_slug():
    assert _slug("Billing Module (v2)") == "billing-module-v2"
    assert _slug("!!!") == "transformation"


def test_summarize_truncates_and_serializes_models():
    assert summarize(None) is None
    assert summarize("x" * 600).endswith("...")
    assert len(summarize("x" * 600)) == 500
    assert summarize(TransformationPlan(summary="s")) == '{"summary": "s", "models": {}, "services": {}, "ui_design": {}}'


def test_to_output_payload_shapes():
    assert to_output_payload(None) is None
    assert to_output_payload({"n": 1}) == {"n": 1}
    assert to_output_payload("text") == {"value": "text"}
    assert to_output_payload(TransformationPlan(summary="s"))["summary"] == "s"


def test_default_stages_cover_every_stage():
    assert list(DefaultStages().as_mapping()) == [Stage.analyze, Stage.plan, Stage.generate, Stage.validate, Stage.deploy]


class TestStageContext:
    @pytest.fixture
    def ctx(self, make_pipeline):
        pipeline = make_pipeline()
        return StageContext(pipeline.deps, Job(id="j1"), Stage.analyze, "code", {"analyze": {"done": True}})

    def test_output_of_unknown_stage_raises(self, ctx):
        assert ctx.output_of(Stage.analyze) == {"done": True}
        with pytest.raises(LookupError):
            ctx.output_of(Stage.plan)

    @pytest.mark.asyncio
    async def test_call_adds_job_context_and_logs_sub_call(self, ctx, provider_caller):
        result = await ctx.call("analyzer", "analyzeCode", {"code": "x"}, {"traceId": "t1"})

        assert result.success
        assert provider_caller.calls[-1][3] == {"jobId": "j1", "stage": "analyze", "traceId": "t1"}
        entries = await ctx.deps.stage_logs.list("j1")
        assert len(entries) == 1
        assert entries[0].capability == "analyzer.analyzeCode"
        assert entries[0].status is StageLogStatus.completed
        assert entries[0].input_summary == '{"code": "x"}'

    @pytest.mark.asyncio
    async def test_failed_call_is_logged_as_failed(self, ctx):
        result = await ctx.call("nowhere", "ping")

        assert result.success is False
        entries = await ctx.deps.stage_logs.list("j1")
        assert entries[0].status is StageLogStatus.failed
        assert entries[0].error == "nowhere.ping not available"
