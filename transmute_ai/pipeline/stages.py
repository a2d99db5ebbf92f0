"""Stage context and the default stage functions.

A stage function is ``async (StageContext) -> output``. The context gives it the
job, the raw input, outputs of earlier stages, and logging entry points for
capability calls and text generation: every sub-call is appended to the
stage log as its own entry sharing the stage tag.
"""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from pydantic import BaseModel

from ..capability_client.adapters import (
    AnalysisResult,
    AnalyzerAdapter,
    ArtifactGeneratorAdapter,
    CapabilityGenerationService,
    DeploymentResult,
    GeneratedFile,
    RepoConfig,
    RepositoryAdapter,
    UIGeneratorAdapter,
)
from ..capability_client.schemas.core import CallResult
from ..schemas.domain import (
    ArtifactBundle,
    ArtifactFile,
    Job,
    Stage,
    StageLogEntry,
    StageLogStatus,
    TransformationPlan,
    ValidationReport,
)
from .models import PipelineDeps

logger = logging.getLogger(__name__)

StageFn = Callable[["StageContext"], Awaitable[Any]]

SUMMARY_LIMIT = 500


def summarize(value: Any, limit: int = SUMMARY_LIMIT) -> Optional[str]:
    """Short, human-readable rendering of a stage input or output for the log."""
    if value is None:
        return None
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json", exclude_none=True)
    if isinstance(value, str):
        text = value
    else:
        try:
            text = json.dumps(value, default=str)
        except (TypeError, ValueError):
            text = repr(value)
    return text if len(text) <= limit else text[: limit - 3] + "..."


def to_output_payload(value: Any) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return json.loads(json.dumps(value, default=str))
    return {"value": summarize(value, limit=10_000)}


class StageContext:
    """Everything a stage function may touch while it runs.

    ``StageContext`` itself satisfies the ``CapabilityCaller`` protocol, so the
    typed adapters can be built on top of it and their calls are logged.
    """

    def __init__(self, deps: PipelineDeps, job: Job, stage: Stage, job_input: Any, outputs: Mapping[str, Any]) -> None:
        self.deps = deps
        self.job = job
        self.stage = stage
        self.input = job_input
        self._outputs = outputs

    def output_of(self, stage: Stage) -> Any:
        try:
            return self._outputs[stage.value]
        except KeyError:
            raise LookupError(f"stage '{stage.value}' has no output yet") from None

    async def _log_sub_call(
        self,
        capability: str,
        *,
        params: Any,
        success: bool,
        duration_ms: float,
        output: Any = None,
        error: Optional[str] = None,
    ) -> None:
        await self.deps.stage_logs.append(
            StageLogEntry(
                job_id=self.job.id,
                stage=self.stage,
                status=StageLogStatus.completed if success else StageLogStatus.failed,
                duration_ms=duration_ms,
                input_summary=summarize(params),
                output_summary=summarize(output) if success else None,
                error=error,
                capability=capability,
            )
        )

    async def call(
        self,
        server_name: str,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> CallResult:
        merged = {"jobId": self.job.id, "stage": self.stage.value, **(context or {})}
        result = await self.deps.capabilities.call(server_name, method, params or {}, merged)
        await self._log_sub_call(
            f"{server_name}.{method}",
            params=params,
            success=result.success,
            duration_ms=result.duration_ms,
            output=result.data,
            error=result.error.message if result.error else None,
        )
        return result

    async def generate(self, prompt: str) -> str:
        """Generate text, through the configured service or the text generation capability."""
        if self.deps.generation is None:
            service = CapabilityGenerationService(self, self.deps.providers.text_generation)
            return await service.generate(prompt)
        started = time.perf_counter()
        try:
            text = await self.deps.generation.generate(prompt)
        except Exception as e:
            await self._log_sub_call(
                "generation.generate",
                params=prompt,
                success=False,
                duration_ms=(time.perf_counter() - started) * 1000,
                error=str(e),
            )
            raise
        await self._log_sub_call(
            "generation.generate",
            params=prompt,
            success=True,
            duration_ms=(time.perf_counter() - started) * 1000,
            output=text,
        )
        return text


def _source_of(job_input: Any) -> tuple[str, Dict[str, Any]]:
    if isinstance(job_input, str):
        return job_input, {}
    if isinstance(job_input, Mapping):
        source = job_input.get("source")
        if not isinstance(source, str) or not source.strip():
            raise ValueError("job input requires a non-empty 'source'")
        options = dict(job_input.get("options") or {})
        return source, options
    raise TypeError(f"unsupported job input type: {type(job_input).__name__}")


def _slug(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug[:80] or "transformation"


def _readme(job: Job, plan: TransformationPlan, analysis: AnalysisResult) -> str:
    lines = [
        f"# {job.name or job.id}",
        "",
        plan.summary.strip() or "Generated by an automated transformation.",
        "",
        "## Source analysis",
        "",
        f"- Module: {analysis.metadata.module}",
        f"- Complexity: {analysis.metadata.complexity}",
        f"- Dependencies: {', '.join(analysis.dependencies) or 'none'}",
        "",
        "## Business logic",
        "",
    ]
    lines.extend(f"- {item}" for item in analysis.business_logic or ["(none detected)"])
    return "\n".join(lines) + "\n"


class DefaultStages:
    """Default ANALYZE, PLAN, GENERATE, VALIDATE and DEPLOY implementations."""

    def __init__(self, *, topics: Optional[List[str]] = None, private_repositories: bool = False) -> None:
        self._topics = list(topics or ["transmute-ai", "generated"])
        self._private = private_repositories

    def as_mapping(self) -> Dict[Stage, StageFn]:
        return {
            Stage.analyze: self.analyze,
            Stage.plan: self.plan,
            Stage.generate: self.generate,
            Stage.validate: self.validate,
            Stage.deploy: self.deploy,
        }

    async def analyze(self, ctx: StageContext) -> AnalysisResult:
        source, options = _source_of(ctx.input)
        return await AnalyzerAdapter(ctx, ctx.deps.providers.analyzer).analyze_code(source, **options)

    async def plan(self, ctx: StageContext) -> TransformationPlan:
        analysis: AnalysisResult = ctx.output_of(Stage.analyze)
        prompt = (
            "Propose a target architecture for the analyzed module below. "
            "Summarize the data model, the service operations and the user interface.\n\n"
            f"module={analysis.metadata.module}\n"
            f"business_logic={json.dumps(analysis.business_logic)}\n"
            f"dependencies={json.dumps(analysis.dependencies)}\n"
            f"tables={json.dumps(analysis.metadata.tables)}\n"
        )
        summary = await ctx.generate(prompt)
        entities = analysis.metadata.tables or analysis.dependencies
        return TransformationPlan(
            summary=summary,
            models={"module": analysis.metadata.module, "entities": entities},
            services={"module": analysis.metadata.module, "operations": analysis.business_logic},
            ui_design={"module": analysis.metadata.module, "entities": entities, "patterns": analysis.metadata.patterns},
        )

    async def generate(self, ctx: StageContext) -> ArtifactBundle:
        plan: TransformationPlan = ctx.output_of(Stage.plan)
        analysis: AnalysisResult = ctx.output_of(Stage.analyze)
        providers = ctx.deps.providers
        generator = ArtifactGeneratorAdapter(ctx, providers.generator)
        models = await generator.generate_models(plan.models)
        services = await generator.generate_services(plan.services)
        ui = await UIGeneratorAdapter(ctx, providers.ui_generator).generate_ui(plan.ui_design)

        files: List[GeneratedFile] = [*models.files, *services.files, *ui.files]
        if not any(f.path.lower() == "readme.md" for f in files):
            files.append(GeneratedFile(path="README.md", content=_readme(ctx.job, plan, analysis)))
        return ArtifactBundle(files=[ArtifactFile(path=f.path, content=f.content) for f in files])

    async def validate(self, ctx: StageContext) -> ValidationReport:
        bundle: ArtifactBundle = ctx.output_of(Stage.generate)
        return ctx.deps.validator.validate(bundle)

    async def deploy(self, ctx: StageContext) -> DeploymentResult:
        bundle: ArtifactBundle = ctx.output_of(Stage.generate)
        plan: TransformationPlan = ctx.output_of(Stage.plan)
        config = RepoConfig(
            name=_slug(ctx.job.name or ctx.job.id),
            description=plan.summary.strip().splitlines()[0][:200] if plan.summary.strip() else "",
            files=[GeneratedFile(path=f.path, content=f.content) for f in bundle.files],
            private=self._private,
            topics=self._topics,
        )
        return await RepositoryAdapter(ctx, ctx.deps.providers.repository).create_repository(config)
