from __future__ import annotations

from typing import Optional


class CancellationToken:
    """Cooperative cancellation flag checked by the pipeline between stages."""

    def __init__(self) -> None:
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        if self._reason is None:
            self._reason = reason

    @property
    def cancelled(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> Optional[str]:
        return self._reason
