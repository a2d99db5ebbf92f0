from __future__ import annotations

from typing import Any, Optional

from .base import CapabilityAdapter
from .models import AnalysisResult


class AnalyzerAdapter(CapabilityAdapter):
    async def analyze_code(self, source: str, context: Optional[dict[str, Any]] = None, **options: Any) -> AnalysisResult:
        """Extract business logic, dependencies and patterns from ``source``.

        Keyword ``options`` override the default analysis switches.
        """
        params: dict[str, Any] = {
            "code": source,
            "extractBusinessLogic": True,
            "identifyDependencies": True,
            "detectPatterns": True,
            **options,
        }
        return await self._invoke("analyzeCode", params, AnalysisResult, context)
