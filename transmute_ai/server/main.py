"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS),
registers the exception handlers and includes all API routers.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from transmute_ai.core.config import settings
from transmute_ai.core.logging_config import get_logger, setup_logging
from transmute_ai.core.monitoring import initialize_logfire

from .api.v1 import capabilities, health, hooks, jobs
from .exception_handlers import setup_exception_handlers
from .services.pipeline_service import PipelineService, build_pipeline_service

PROJECT_NAME = "Transmute-AI"
API_V1_STR = "/api/v1"

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Builds the pipeline service from settings unless one was injected, connects
    the capability registry on startup and releases it on shutdown.
    """
    logger.info("Starting up Transmute-AI Server...")
    service: Optional[PipelineService] = getattr(app.state, "pipeline_service", None)
    if service is None:
        service = await build_pipeline_service(settings)
        app.state.pipeline_service = service
    initialize_logfire(app)
    await service.start()
    logger.info("Pipeline service started")

    yield

    logger.info("Shutting down Transmute-AI Server...")
    await service.stop()


def create_app(service: Optional[PipelineService] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        service: Pre-built pipeline service; it is attached right away so the
            app also works without running the lifespan (e.g. under tests).
    """
    app = FastAPI(
        title=PROJECT_NAME,
        description="""
        Transmute-AI Server API

        Runs source material through the analyze, plan, generate, validate and
        deploy stages using remote capability servers, and streams job progress.
        """,
        version="0.1.0",
        openapi_url=f"{API_V1_STR}/openapi.json",
        docs_url=f"{API_V1_STR}/docs",
        redoc_url=f"{API_V1_STR}/redoc",
        lifespan=lifespan,
    )
    if service is not None:
        app.state.pipeline_service = service

    # Set all CORS enabled origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_exception_handlers(app)

    app.include_router(health.router, prefix=API_V1_STR, tags=["health"])
    app.include_router(jobs.router, prefix=f"{API_V1_STR}/jobs", tags=["jobs"])
    app.include_router(capabilities.router, prefix=f"{API_V1_STR}/capabilities", tags=["capabilities"])
    app.include_router(hooks.router, prefix=f"{API_V1_STR}/hooks", tags=["hooks"])
    return app


app = create_app()
