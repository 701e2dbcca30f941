"""
SLA Controllers (API Routes)
=============================

FastAPI routes for SLA tracking endpoints.

Controllers are thin - they delegate to application services.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from sla_engine.core import ResourceNotFoundException, ValidationException
from sla_engine.shared.api.dependencies import get_policy_service, get_evaluation_service
from sla_engine.sla.application import (
    SLAPolicyService,
    SLAEvaluationService,
    SLAEvaluateRequest,
    SLAPolicyUpsertRequest,
    SLAPolicyResponse,
    SLABreachResponse,
    SLAHealthSnapshotResponse,
    TaskStateResetResponse,
)

router = APIRouter(prefix="/projects/{project_id}/sla", tags=["SLA Tracking"])


# ========== Example payloads for Swagger ==========

EVALUATE_REQUEST_EXAMPLE = {
    "tasks": [
        {
            "id": "TASK-101",
            "title": "Customer cannot export invoices",
            "status": "in_progress",
            "priority": "urgent",
            "blocked": False,
            "custom_fields": {"dependency_type": "internal"},
            "assignee_ids": ["user-7"],
            "created_at": "2024-01-15T08:00:00Z",
            "updated_at": "2024-01-15T09:30:00Z"
        }
    ],
    "now": "2024-01-15T11:20:00Z"
}

SNAPSHOT_RESPONSE_EXAMPLE = {
    "generated_at": "2024-01-15T11:20:00Z",
    "policies": [
        {
            "policy_id": "sla-5b0d8a4e-1c1f-4d8e-9a55-1f3f1d1d2a10",
            "policy_name": "High priority response",
            "active": True,
            "total_tasks": 1,
            "on_track": 0,
            "at_risk": 1,
            "breached": 0,
            "met": 0,
            "evaluations": {
                "TASK-101": {
                    "target_id": "response",
                    "type": "response",
                    "status": "at_risk",
                    "duration_minutes": 240,
                    "elapsed_minutes": 200,
                    "remaining_minutes": 40,
                    "paused_minutes": 0
                }
            }
        }
    ],
    "totals": {"on_track": 0, "at_risk": 1, "breached": 0, "met": 0},
    "breaches": []
}


def _snapshot_response(snapshot) -> SLAHealthSnapshotResponse:
    return SLAHealthSnapshotResponse.model_validate(snapshot.to_dict())


# ========== Route Handlers ==========

@router.get(
    "/policies",
    response_model=List[SLAPolicyResponse],
    summary="List SLA policies",
    description="List every policy of the project, active or not. Seeds the default policies on first access."
)
async def list_policies(
    project_id: str,
    policy_service: SLAPolicyService = Depends(get_policy_service)
):
    return [SLAPolicyResponse(**p.model_dump()) for p in policy_service.list_policies(project_id)]


@router.post(
    "/policies",
    response_model=SLAPolicyResponse,
    summary="Create or update an SLA policy",
    description="""
    Upsert a policy.

    - Without `id` a new policy is created (defaults: name "New SLA", active, channels `["email"]`).
    - With `id` the fields sent are merged into the existing policy.

    Policies are never deleted; send `"active": false` to switch one off.
    """,
    responses={404: {"description": "Policy id not found"}}
)
async def upsert_policy(
    project_id: str,
    request: SLAPolicyUpsertRequest,
    policy_service: SLAPolicyService = Depends(get_policy_service)
):
    try:
        policy = policy_service.upsert_policy(project_id, request.to_changes())
    except ResourceNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except ValidationException as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": e.message, **e.details}
        )
    return SLAPolicyResponse(**policy.model_dump())


@router.post(
    "/evaluate",
    response_model=SLAHealthSnapshotResponse,
    summary="Evaluate tasks against SLA policies",
    description="""
    Evaluate a batch of task snapshots against every active policy.

    Paused time carries over between calls, and each breached target is
    recorded (and announced) exactly once.
    """,
    responses={
        200: {
            "description": "SLA health snapshot",
            "content": {"application/json": {"example": SNAPSHOT_RESPONSE_EXAMPLE}}
        }
    },
    openapi_extra={
        "requestBody": {"content": {"application/json": {"example": EVALUATE_REQUEST_EXAMPLE}}}
    }
)
async def evaluate(
    project_id: str,
    request: SLAEvaluateRequest,
    evaluation_service: SLAEvaluationService = Depends(get_evaluation_service)
):
    tasks = [task.to_domain() for task in request.tasks]
    snapshot = evaluation_service.evaluate(project_id, tasks, now=request.now)
    return _snapshot_response(snapshot)


@router.get(
    "/snapshot",
    response_model=SLAHealthSnapshotResponse,
    summary="Get the last SLA snapshot",
    responses={404: {"description": "Project has not been evaluated yet"}}
)
async def get_snapshot(
    project_id: str,
    evaluation_service: SLAEvaluationService = Depends(get_evaluation_service)
):
    snapshot = evaluation_service.get_last_snapshot(project_id)
    if snapshot is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No SLA snapshot for project {project_id}"
        )
    return _snapshot_response(snapshot)


@router.get(
    "/breaches",
    response_model=List[SLABreachResponse],
    summary="Get the SLA breach log",
    description="Every breach recorded for the project, oldest first."
)
async def get_breaches(
    project_id: str,
    evaluation_service: SLAEvaluationService = Depends(get_evaluation_service)
):
    return [SLABreachResponse.from_domain(b) for b in evaluation_service.get_breach_log(project_id)]


@router.delete(
    "/policies/{policy_id}/tasks/{task_id}/state",
    response_model=TaskStateResetResponse,
    summary="Reset one task's SLA state",
    description="Forget paused time and recorded breaches so a still-breached task is recorded again."
)
async def reset_task_state(
    project_id: str,
    policy_id: str,
    task_id: str,
    evaluation_service: SLAEvaluationService = Depends(get_evaluation_service)
):
    reset = evaluation_service.reset_task_state(project_id, policy_id, task_id)
    return TaskStateResetResponse(policy_id=policy_id, task_id=task_id, reset=reset)


@router.delete(
    "",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Reset SLA state",
    description="Clear policies, task states, breach log and last snapshot of the project."
)
async def reset_project_sla(
    project_id: str,
    evaluation_service: SLAEvaluationService = Depends(get_evaluation_service)
):
    evaluation_service.reset_project(project_id)


# Export router for inclusion in main app
sla_router = router
