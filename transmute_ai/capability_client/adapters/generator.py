from __future__ import annotations

from typing import Any, Dict

from .base import CapabilityAdapter
from .models import GeneratedFiles


class ArtifactGeneratorAdapter(CapabilityAdapter):
    """Generates data model and service definition files."""

    async def generate_models(self, models: Dict[str, Any]) -> GeneratedFiles:
        return await self._invoke("generateModels", {"models": models}, GeneratedFiles)

    async def generate_services(self, services: Dict[str, Any]) -> GeneratedFiles:
        return await self._invoke("generateServiceDefinitions", {"services": services}, GeneratedFiles)


class UIGeneratorAdapter(CapabilityAdapter):
    async def generate_ui(self, design: Dict[str, Any]) -> GeneratedFiles:
        return await self._invoke("generateUI", {"design": design}, GeneratedFiles)
