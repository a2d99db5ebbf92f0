"""Text generation backends used by the planning stage.

Two implementations share the :class:`GenerationService` protocol:

- :class:`CapabilityGenerationService` calls a ``generate`` method on a
  configured capability server, inheriting that client's retry policy.
- :class:`PydanticAIGenerationService` runs a pydantic-ai ``Agent`` directly,
  wrapped in the same :class:`RetryPolicy` and per-attempt timeout.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Protocol, runtime_checkable

from pydantic_ai import Agent

from ..errors import CapabilityCallFailedError, RemoteCallError
from ..retry import RetryPolicy, Sleep, run_with_retry
from ..schemas.core import ErrorCode
from .base import CapabilityAdapter

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a senior software architect. Produce concise, structured answers "
    "that downstream code generators can act on."
)


@runtime_checkable
class GenerationService(Protocol):
    async def generate(self, prompt: str) -> str: ...


class GenerationAttemptError(RemoteCallError):
    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.REQUEST_FAILED, f"generation failed: {message}", retryable=True)


class CapabilityGenerationService(CapabilityAdapter):
    async def generate(self, prompt: str) -> str:
        result = await self._call("generate", {"prompt": prompt})
        if not result.success:
            raise CapabilityCallFailedError(self._server, "generate", result.error)
        data = result.data
        if isinstance(data, dict):
            data = data.get("text", data.get("content"))
        if not isinstance(data, str):
            raise CapabilityCallFailedError(self._server, "generate", None)
        return data


class PydanticAIGenerationService:
    """Generation through a pydantic-ai model.

    Model errors are treated as retryable; a model endpoint that keeps failing
    exhausts the attempt budget and surfaces as ``CapabilityCallFailedError``.
    """

    def __init__(
        self,
        model: Any,
        *,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        retry_policy: Optional[RetryPolicy] = None,
        timeout_seconds: float = 30.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._agent: Agent[None, str] = Agent(model, output_type=str, system_prompt=system_prompt)
        self._policy = retry_policy or RetryPolicy()
        self._timeout = timeout_seconds
        self._sleep = sleep

    async def _run_once(self, prompt: str) -> str:
        try:
            result = await self._agent.run(prompt)
        except Exception as e:
            raise GenerationAttemptError(str(e)) from e
        return result.output

    async def generate(self, prompt: str) -> str:
        outcome = await run_with_retry(
            lambda: self._run_once(prompt),
            self._policy,
            timeout=self._timeout,
            label="generation",
            sleep=self._sleep,
        )
        if not outcome.ok:
            logger.error("PydanticAIGenerationService: giving up after %s attempt(s)", outcome.attempts)
            raise CapabilityCallFailedError("pydantic-ai", "generate", outcome.error)
        return outcome.value
