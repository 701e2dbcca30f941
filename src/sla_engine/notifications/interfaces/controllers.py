"""
Notification Controllers (API Routes)
======================================

FastAPI routes for the notification scheme, queue, delivery log, digests
and automation runs.

Controllers are thin - they delegate to application services.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from sla_engine.core import ResourceNotFoundException, ValidationException
from sla_engine.notifications.application import (
    NotificationService,
    ChannelToggleRequest,
    DigestChannelsRequest,
    EnqueueEventRequest,
    ProcessQueueRequest,
    DueSoonRequest,
    AutomationRunRequest,
    NotificationSchemeResponse,
    NotificationEventResponse,
    DeliveryRecordResponse,
    AutomationRunResponse,
    DigestSummaryResponse,
)
from sla_engine.notifications.domain.value_objects import ChannelStr
from sla_engine.shared.api.dependencies import get_notification_service

router = APIRouter(prefix="/projects/{project_id}/notifications", tags=["Notifications"])


def _not_found(e: ResourceNotFoundException) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)


def _invalid(e: ValidationException) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"message": e.message, **e.details}
    )


# ========== Scheme ==========

@router.get(
    "/scheme",
    response_model=NotificationSchemeResponse,
    summary="Get the notification scheme"
)
async def get_scheme(
    project_id: str,
    service: NotificationService = Depends(get_notification_service)
):
    return NotificationSchemeResponse(**service.get_scheme(project_id).model_dump())


@router.patch(
    "/scheme/triggers/{trigger_id}/channels/{channel}",
    response_model=NotificationSchemeResponse,
    summary="Enable or disable a trigger channel",
    responses={404: {"description": "Trigger not found"}}
)
async def update_notification_channel(
    project_id: str,
    trigger_id: str,
    channel: ChannelStr,
    request: ChannelToggleRequest,
    service: NotificationService = Depends(get_notification_service)
):
    try:
        scheme = service.update_notification_channel(project_id, trigger_id, channel, request.enabled)
    except ResourceNotFoundException as e:
        raise _not_found(e)
    return NotificationSchemeResponse(**scheme.model_dump())


@router.put(
    "/scheme/digests/{digest_id}/channels",
    response_model=NotificationSchemeResponse,
    summary="Replace a digest's channels",
    responses={404: {"description": "Digest not found"}}
)
async def update_digest_channels(
    project_id: str,
    digest_id: str,
    request: DigestChannelsRequest,
    service: NotificationService = Depends(get_notification_service)
):
    try:
        scheme = service.update_digest_channels(project_id, digest_id, request.channels)
    except ResourceNotFoundException as e:
        raise _not_found(e)
    return NotificationSchemeResponse(**scheme.model_dump())


# ========== Queue ==========

@router.post(
    "/events",
    response_model=NotificationEventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Queue a notification event"
)
async def enqueue_event(
    project_id: str,
    request: EnqueueEventRequest,
    service: NotificationService = Depends(get_notification_service)
):
    try:
        event = service.enqueue(
            project_id,
            request.trigger,
            request.payload,
            channels=request.channels,
            scheduled_for=request.scheduled_for,
        )
    except ValidationException as e:
        raise _invalid(e)
    return NotificationEventResponse.from_domain(event)


@router.get(
    "/events",
    response_model=List[NotificationEventResponse],
    summary="List pending events"
)
async def list_pending_events(
    project_id: str,
    service: NotificationService = Depends(get_notification_service)
):
    return [NotificationEventResponse.from_domain(e) for e in service.list_pending_events(project_id)]


@router.post(
    "/process",
    response_model=List[DeliveryRecordResponse],
    summary="Process the notification queue",
    description="""
    Deliver every event due within the next minute, then send any digest
    whose cadence window has elapsed.

    Only deliveries of queued events are returned; digest deliveries are
    visible in the delivery log.
    """
)
async def process_queue(
    project_id: str,
    request: Optional[ProcessQueueRequest] = None,
    service: NotificationService = Depends(get_notification_service)
):
    now = request.now if request else None
    return [DeliveryRecordResponse.from_domain(r) for r in service.process_queue(project_id, now=now)]


# ========== Registrars ==========

@router.post(
    "/due-soon",
    response_model=List[NotificationEventResponse],
    summary="Register due-soon notifications",
    description="Queue one due_soon event per open task due within the look-ahead window. Tasks already registered are skipped."
)
async def register_due_soon(
    project_id: str,
    request: DueSoonRequest,
    service: NotificationService = Depends(get_notification_service)
):
    tasks = [task.to_domain() for task in request.tasks]
    events = service.register_due_soon_notifications(project_id, tasks, now=request.now)
    return [NotificationEventResponse.from_domain(e) for e in events]


@router.get(
    "/automation-runs",
    response_model=List[AutomationRunResponse],
    summary="List automation runs",
    description="Automation runs sorted by next run time. Seeds the project defaults on first access."
)
async def list_automation_runs(
    project_id: str,
    service: NotificationService = Depends(get_notification_service)
):
    return [AutomationRunResponse(**run.model_dump()) for run in service.list_automation_runs(project_id)]


@router.post(
    "/automation-runs",
    response_model=AutomationRunResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register an automation run"
)
async def register_automation_run(
    project_id: str,
    request: AutomationRunRequest,
    service: NotificationService = Depends(get_notification_service)
):
    try:
        run = service.register_automation_run(project_id, request.to_partial())
    except ValidationException as e:
        raise _invalid(e)
    return AutomationRunResponse(**run.model_dump())


# ========== Read models & reset ==========

@router.get(
    "/deliveries",
    response_model=List[DeliveryRecordResponse],
    summary="Get the delivery log",
    description="Most recent deliveries first."
)
async def get_delivery_log(
    project_id: str,
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    service: NotificationService = Depends(get_notification_service)
):
    return [DeliveryRecordResponse.from_domain(r) for r in service.get_delivery_log(project_id, limit)]


@router.get(
    "/digest-summary",
    response_model=DigestSummaryResponse,
    summary="Get the digest summary"
)
async def get_digest_summary(
    project_id: str,
    service: NotificationService = Depends(get_notification_service)
):
    return DigestSummaryResponse.from_domain(service.get_digest_summary(project_id))


@router.delete(
    "",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Reset notification state",
    description="Clear scheme, queue, delivery log, digest history, due-soon registrations and automation runs."
)
async def reset_project_notifications(
    project_id: str,
    service: NotificationService = Depends(get_notification_service)
):
    service.reset_project(project_id)


# Export router for inclusion in main app
notifications_router = router
