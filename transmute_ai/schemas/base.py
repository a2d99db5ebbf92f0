"""Pydantic base schema utilities for job, stage and event models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base Pydantic model for all domain schemas.

    - ``populate_by_name=True``: Allow initialization by alias or field name.
    - ``extra="forbid"``: Reject unknown fields.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
    )
