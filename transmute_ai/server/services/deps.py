"""
Pipeline Service Dependency.

Provides the application's ``PipelineService`` to API endpoints.
"""

from typing import Annotated

from fastapi import Depends, Request

from transmute_ai.server.services.pipeline_service import PipelineService


def get_pipeline_service(request: Request) -> PipelineService:
    return request.app.state.pipeline_service


PipelineServiceDep = Annotated[PipelineService, Depends(get_pipeline_service)]
