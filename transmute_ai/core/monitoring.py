"""
Monitoring and Tracing Configuration Module.

Integration with Pydantic Logfire for tracing transformation jobs:
- Job start and completion
- Stage failures
- Capability call outcomes
- HTTPX and FastAPI instrumentation

Everything here is a no-op unless ``LOGFIRE_ENABLED`` is true and a
``LOGFIRE_TOKEN`` is configured.
"""

import logging
import os
from typing import Any, Optional

import logfire
from fastapi import FastAPI

logger = logging.getLogger(__name__)

LOGFIRE_ENABLED = os.getenv("LOGFIRE_ENABLED", "false").lower() in ("true", "1", "yes")
LOGFIRE_TOKEN = os.getenv("LOGFIRE_TOKEN", "")
LOGFIRE_ENVIRONMENT = os.getenv("LOGFIRE_ENVIRONMENT", "development")
LOGFIRE_SERVICE_NAME = os.getenv("LOGFIRE_SERVICE_NAME", "transmute-ai")
LOGFIRE_SERVICE_VERSION = os.getenv("LOGFIRE_SERVICE_VERSION", "0.1.0")

_initialized = False


def is_enabled() -> bool:
    return _initialized


def initialize_logfire(app: FastAPI | None = None) -> None:
    """
    Initialize Logfire for monitoring and tracing.

    Args:
        app: FastAPI application to instrument (optional).
    """
    global _initialized

    if not LOGFIRE_ENABLED:
        logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        return

    if not LOGFIRE_TOKEN:
        logger.warning("Logfire is enabled but LOGFIRE_TOKEN is not set. Monitoring will not work.")
        return

    try:
        logfire.configure(
            token=LOGFIRE_TOKEN,
            service_name=LOGFIRE_SERVICE_NAME,
            service_version=LOGFIRE_SERVICE_VERSION,
            environment=LOGFIRE_ENVIRONMENT,
        )
        logfire.instrument_httpx()
        if app is not None:
            logfire.instrument_fastapi(app=app)
        _initialized = True
        logger.info(f"Logfire monitoring initialized: environment={LOGFIRE_ENVIRONMENT}, service={LOGFIRE_SERVICE_NAME}")
    except Exception as e:
        logger.error(f"Failed to initialize Logfire: {e}", exc_info=True)


def log_job_started(job_id: str, name: Optional[str] = None) -> None:
    """Log the start of a transformation job."""
    if not _initialized:
        return
    try:
        logfire.info("Transformation job started", job_id=job_id, name=name)
    except Exception:
        logger.debug(f"Could not log job start to Logfire: job_id={job_id}")


def log_job_finished(job_id: str, status: str, duration_ms: float) -> None:
    """
    Log the completion of a transformation job.

    Args:
        job_id: The job identifier
        status: Final job status (completed, failed)
        duration_ms: Wall time of the run in milliseconds
    """
    if not _initialized:
        return
    try:
        logfire.info("Transformation job finished", job_id=job_id, status=status, duration_ms=duration_ms)
    except Exception:
        logger.debug(f"Could not log job completion to Logfire: job_id={job_id}")


def log_stage_failed(job_id: str, stage: str, error: str) -> None:
    if not _initialized:
        return
    try:
        logfire.error("Pipeline stage failed: {stage}", job_id=job_id, stage=stage, error=error)
    except Exception:
        logger.debug(f"Could not log stage failure to Logfire: job_id={job_id}")


def log_capability_call(server: str, method: str, success: bool, attempts: int, duration_ms: float, **extra: Any) -> None:
    """Log one capability call outcome with its attempt count."""
    if not _initialized:
        return
    try:
        logfire.info(
            "Capability call {server}.{method}",
            server=server,
            method=method,
            success=success,
            attempts=attempts,
            duration_ms=duration_ms,
            **extra,
        )
    except Exception:
        logger.debug(f"Could not log capability call to Logfire: {server}.{method}")
