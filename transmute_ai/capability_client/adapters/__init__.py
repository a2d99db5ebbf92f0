from .analyzer import AnalyzerAdapter
from .base import CapabilityAdapter, CapabilityCaller
from .generation import CapabilityGenerationService, GenerationService, PydanticAIGenerationService
from .generator import ArtifactGeneratorAdapter, UIGeneratorAdapter
from .models import (
    AnalysisResult,
    DeploymentResult,
    GeneratedFile,
    GeneratedFiles,
    MessageAttachment,
    MessageField,
    RepoConfig,
    RepoInfo,
)
from .notifier import NotifierAdapter
from .repository import RepositoryAdapter

__all__ = [
    "AnalysisResult",
    "AnalyzerAdapter",
    "ArtifactGeneratorAdapter",
    "CapabilityAdapter",
    "CapabilityCaller",
    "CapabilityGenerationService",
    "DeploymentResult",
    "GeneratedFile",
    "GeneratedFiles",
    "GenerationService",
    "MessageAttachment",
    "MessageField",
    "NotifierAdapter",
    "PydanticAIGenerationService",
    "RepoConfig",
    "RepoInfo",
    "RepositoryAdapter",
    "UIGeneratorAdapter",
]
