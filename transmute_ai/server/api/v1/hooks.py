"""
Hook Management Endpoints.

List, create or replace, and delete hook rules, trigger an event manually and
read the hook execution history.
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, Response

from transmute_ai.core.logging_config import get_logger
from transmute_ai.hooks.models import HookExecutionResult, HookRule
from transmute_ai.server.schemas import HookTriggerRequest
from transmute_ai.server.services.deps import PipelineServiceDep

logger = get_logger(__name__)
router = APIRouter()


@router.get("", response_model=List[HookRule], summary="List Hook Rules")
async def list_hooks(service: PipelineServiceDep):
    return service.hooks.list_rules()


@router.get(
    "/executions",
    response_model=List[HookExecutionResult],
    summary="List Hook Executions",
    description="Recorded hook runs, newest first, optionally filtered by job or hook rule.",
)
async def list_hook_executions(
    service: PipelineServiceDep,
    job_id: Optional[str] = None,
    hook_id: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
):
    return await service.hooks.list_executions(job_id=job_id, hook_id=hook_id, limit=limit)


@router.get(
    "/{hook_id}",
    response_model=HookRule,
    summary="Get Hook Rule",
    responses={404: {"description": "Hook not found"}},
)
async def get_hook(hook_id: str, service: PipelineServiceDep):
    rule = service.hooks.get_rule(hook_id)
    if rule is None:
        raise HTTPException(status_code=404, detail="Hook not found")
    return rule


@router.put(
    "/{hook_id}",
    response_model=HookRule,
    summary="Create or Replace Hook Rule",
    responses={400: {"description": "Path and body ids differ"}},
)
async def put_hook(hook_id: str, rule: HookRule, service: PipelineServiceDep):
    if rule.id != hook_id:
        raise HTTPException(status_code=400, detail="Hook id in path and body must match")
    service.hooks.upsert_rule(rule)
    logger.info(f"Hook rule {hook_id} saved")
    return rule


@router.delete(
    "/{hook_id}",
    status_code=204,
    summary="Delete Hook Rule",
    responses={404: {"description": "Hook not found"}},
)
async def delete_hook(hook_id: str, service: PipelineServiceDep):
    if not service.hooks.delete_rule(hook_id):
        raise HTTPException(status_code=404, detail="Hook not found")
    return Response(status_code=204)


@router.post(
    "/trigger/{event_name}",
    response_model=List[HookExecutionResult],
    summary="Trigger Hooks",
    description="Run every enabled hook bound to an event with the given template context.",
)
async def trigger_hooks(event_name: str, body: HookTriggerRequest, service: PipelineServiceDep):
    return await service.hooks.trigger(event_name, body.context)
