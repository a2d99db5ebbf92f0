"""Typed payloads exchanged with the capability servers the pipeline uses.

Providers speak camelCase JSON; unknown keys are ignored so providers can add
fields without breaking the pipeline.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from ..schemas.base import BaseSchema, _to_camel


class ProviderSchema(BaseSchema):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", alias_generator=_to_camel)


class AnalysisMetadata(ProviderSchema):
    module: str = "unknown"
    complexity: float = 0
    lines_of_code: Optional[int] = None
    tables: List[str] = Field(default_factory=list)
    patterns: List[str] = Field(default_factory=list)


class AnalysisResult(ProviderSchema):
    business_logic: List[str] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)
    metadata: AnalysisMetadata = Field(default_factory=AnalysisMetadata)
    documentation: Optional[str] = None


class GeneratedFile(ProviderSchema):
    path: str = Field(..., min_length=1)
    content: str = ""


class GeneratedFiles(ProviderSchema):
    files: List[GeneratedFile] = Field(default_factory=list)


class RepoConfig(ProviderSchema):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    files: List[GeneratedFile] = Field(default_factory=list)
    private: bool = False
    topics: List[str] = Field(default_factory=list)
    workflow: Optional[str] = Field(None, description="CI workflow definition committed with the repository.")


class RepoInfo(ProviderSchema):
    name: str
    url: str
    clone_url: Optional[str] = None
    html_url: Optional[str] = None


class DeploymentResult(ProviderSchema):
    repository: RepoInfo
    warnings: List[str] = Field(default_factory=list, description="Non-fatal follow-up failures.")


class MessageField(ProviderSchema):
    title: str
    value: str
    short: bool = True


class MessageAttachment(ProviderSchema):
    color: str = "good"
    fields: List[MessageField] = Field(default_factory=list)


def dump(model: BaseSchema) -> Dict[str, Any]:
    """Serialize a payload the way providers expect it (camelCase JSON)."""
    return model.model_dump(by_alias=True, mode="json", exclude_none=True)
