"""
Capability Server Endpoints.

Aggregated health and statistics of the configured capability servers, and a
manual reconnect for a single server.
"""

from typing import Dict

from fastapi import APIRouter, HTTPException

from transmute_ai.capability_client.errors import CapabilityError, ServerNotFoundError
from transmute_ai.capability_client.schemas.core import HealthRecord, RegistryStats
from transmute_ai.core.logging_config import get_logger
from transmute_ai.server.services.deps import PipelineServiceDep

logger = get_logger(__name__)
router = APIRouter()


@router.get(
    "/health",
    response_model=Dict[str, HealthRecord],
    summary="Capability Health",
    description="Latest health record of every configured capability server.",
)
async def capability_health(service: PipelineServiceDep):
    return service.registry.get_health()


@router.post(
    "/health/check",
    response_model=Dict[str, HealthRecord],
    summary="Run Health Check",
    description="Ping every capability server now and return the refreshed health records.",
)
async def run_health_check(service: PipelineServiceDep):
    return await service.registry.check_health()


@router.get(
    "/stats",
    response_model=RegistryStats,
    summary="Capability Statistics",
)
async def capability_stats(service: PipelineServiceDep):
    return service.registry.get_stats()


@router.post(
    "/{server_name}/reconnect",
    response_model=HealthRecord,
    summary="Reconnect Capability Server",
    responses={404: {"description": "Server not configured"}, 502: {"description": "Reconnect failed"}},
)
async def reconnect_server(server_name: str, service: PipelineServiceDep):
    """
    Disconnect and reconnect one capability server.

    The refreshed health record is returned on success.
    """
    try:
        await service.registry.reconnect_server(server_name)
    except ServerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except CapabilityError as e:
        logger.warning(f"Reconnect of {server_name} failed: {e}")
        raise HTTPException(status_code=502, detail=str(e)) from e
    return service.registry.get_health_for(server_name)
