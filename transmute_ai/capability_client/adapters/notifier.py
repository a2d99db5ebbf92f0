from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from .base import CapabilityAdapter
from .models import MessageAttachment, MessageField, dump

NotifyEvent = Literal["started", "completed", "failed", "deployed"]

_TEMPLATES: Dict[str, str] = {
    "started": "Transformation started: {name}",
    "completed": "Transformation completed: {name}\nRepository: {repository_url}",
    "failed": "Transformation failed: {name}\nError: {error}",
    "deployed": "Transformation deployed: {name}\nLive URL: {deployment_url}",
}


class NotifierAdapter(CapabilityAdapter):
    """Posts chat notifications. Failures are logged and never raised."""

    async def post_message(
        self, channel: str, text: str, attachments: Optional[List[MessageAttachment]] = None
    ) -> bool:
        result = await self._call(
            "postMessage",
            {"channel": channel, "text": text, "attachments": [dump(a) for a in attachments or []]},
        )
        if not result.success:
            reason = result.error.message if result.error else "unknown error"
            self._logger.error("NotifierAdapter: failed to post to %s: %s", channel, reason)
        return result.success

    async def notify(self, channel: str, context: Dict[str, Any], event: NotifyEvent) -> bool:
        values = {
            "name": context.get("name") or context.get("job_id", "unknown"),
            "repository_url": context.get("repository_url", "N/A"),
            "error": context.get("error", "unknown error"),
            "deployment_url": context.get("deployment_url", "N/A"),
        }
        attachments: List[MessageAttachment] = []
        if event != "started":
            score = context.get("quality_score")
            attachments.append(
                MessageAttachment(
                    color="danger" if event == "failed" else "good",
                    fields=[
                        MessageField(title="Module", value=str(context.get("module") or "N/A")),
                        MessageField(title="Quality Score", value=f"{score}%" if score is not None else "N/A"),
                    ],
                )
            )
        return await self.post_message(channel, _TEMPLATES[event].format(**values), attachments)
