from __future__ import annotations

"""SQLAlchemy ORM models for job persistence.

These ORM models define the SQL schema used by
``transmute_ai.repos.sql``. JSON columns use JSONB on Postgres and plain JSON
elsewhere (SQLite in tests and local development).

Table names are prefixed with ``tm_`` to avoid collisions in shared databases.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Float, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JsonType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class JobRow(Base):
    """Row model for ``tm_jobs``."""

    __tablename__ = "tm_jobs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    status: Mapped[str] = mapped_column(String(32))
    current_stage: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class StageLogRow(Base):
    """Row model for ``tm_stage_logs``.

    Append-only. ``seq`` is an autoincrementing key that preserves append order
    independently of timestamp resolution.
    """

    __tablename__ = "tm_stage_logs"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True)
    job_id: Mapped[str] = mapped_column(String(64), index=True)

    stage: Mapped[str] = mapped_column(String(32))
    status: Mapped[str] = mapped_column(String(16))
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    duration_ms: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    input_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    output_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    capability: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    output: Mapped[Optional[Dict[str, Any]]] = mapped_column(JsonType, nullable=True)


class HookExecutionRow(Base):
    """Row model for ``tm_hook_executions``.

    One row per hook rule run, successful or not. ``output`` holds whatever JSON
    the action returned.
    """

    __tablename__ = "tm_hook_executions"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True)
    job_id: Mapped[Optional[str]] = mapped_column(String(64), index=True, nullable=True)
    hook_id: Mapped[str] = mapped_column(String(128), index=True)
    hook_name: Mapped[str] = mapped_column(String(256))
    trigger_event: Mapped[str] = mapped_column(String(128))
    status: Mapped[str] = mapped_column(String(16))
    executed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    duration_ms: Mapped[float] = mapped_column(Float)

    output: Mapped[Optional[Any]] = mapped_column(JsonType, nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
