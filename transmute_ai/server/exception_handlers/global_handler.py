"""
Exception Handlers for the FastAPI Application.

Maps pipeline errors onto HTTP status codes and logs every unhandled exception
with an error ID that clients can quote when reporting issues.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from transmute_ai.capability_client.errors import ServerNotFoundError
from transmute_ai.core.logging_config import get_logger
from transmute_ai.pipeline.errors import (
    JobAlreadyFinishedError,
    JobInProgressError,
    JobNotFoundError,
)

logger = get_logger(__name__)


async def conflict_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Log an unhandled exception with its request context.

    Returns:
        JSONResponse with status 500 and an error ID
    """
    error_id = id(exc)
    logger.error(
        f"Unhandled exception [{error_id}] in {request.method} {request.url.path}: {exc}",
        exc_info=True,
        extra={
            "error_id": error_id,
            "method": request.method,
            "path": request.url.path,
            "error_type": type(exc).__name__,
        },
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_id": error_id,
            "error_type": type(exc).__name__,
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with the FastAPI application."""
    app.add_exception_handler(JobAlreadyFinishedError, conflict_handler)
    app.add_exception_handler(JobInProgressError, conflict_handler)
    app.add_exception_handler(JobNotFoundError, not_found_handler)
    app.add_exception_handler(ServerNotFoundError, not_found_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    logger.debug("Exception handlers registered successfully")
