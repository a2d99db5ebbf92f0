"""Pydantic base schema utilities for capability client models.

Provides a common `BaseSchema` that enforces aliasing and extra-field policy
for all DTOs and domain models under `transmute_ai.capability_client.schemas`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


def _to_camel(s: str) -> str:
    """Convert snake_case to camelCase for JSON aliasing."""
    head, *rest = s.split("_")
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


class BaseSchema(BaseModel):
    """Shared base for all Pydantic models in capability_client.

    - Rejects unknown fields
    - Accepts either snake_case or camelCase on input
    - Serializes camelCase with ``by_alias=True``
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
        alias_generator=_to_camel,
    )
