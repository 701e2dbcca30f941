"""
Notification Application DTOs
==============================

Data Transfer Objects for the notification API layer.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from sla_engine.sla.application.dto import TaskSnapshotDTO
from sla_engine.notifications.domain import (
    NotificationEvent, NotificationDeliveryRecord, NotificationDigestSummary
)
from sla_engine.notifications.domain.entities import AutomationRunSchedule
from sla_engine.notifications.domain.value_objects import (
    ChannelStr, TriggerStr, DigestCadenceStr, ProjectNotificationScheme
)


# ========== Request DTOs ==========

class ChannelToggleRequest(BaseModel):
    enabled: bool = Field(..., description="Whether the channel delivers this trigger")


class DigestChannelsRequest(BaseModel):
    channels: List[ChannelStr] = Field(..., description="Replacement channel list")


class EnqueueEventRequest(BaseModel):
    """Request model for queueing a notification event."""
    trigger: TriggerStr
    payload: Dict[str, Any] = Field(default_factory=dict)
    channels: Optional[List[ChannelStr]] = Field(
        None,
        description="Explicit channels; defaults to the trigger's enabled channels"
    )
    scheduled_for: Optional[datetime] = None


class ProcessQueueRequest(BaseModel):
    now: Optional[datetime] = Field(None, description="Processing time (defaults to server clock)")


class DueSoonRequest(BaseModel):
    tasks: List[TaskSnapshotDTO] = Field(default_factory=list)
    now: Optional[datetime] = None


class AutomationRunRequest(BaseModel):
    """Partial automation run; everything except ``name`` is defaulted."""
    name: str = Field(..., min_length=1)
    id: Optional[str] = None
    cadence: Optional[str] = None
    next_run_at: Optional[datetime] = None
    owning_automation: Optional[str] = None
    status: Optional[str] = None

    def to_partial(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


# ========== Response DTOs ==========

class NotificationSchemeResponse(ProjectNotificationScheme):
    """Response model for a project's notification scheme."""


class NotificationEventResponse(BaseModel):
    id: str
    project_id: str
    trigger: TriggerStr
    payload: Dict[str, Any]
    channels: List[ChannelStr]
    scheduled_for: datetime
    created_at: datetime

    @classmethod
    def from_domain(cls, event: NotificationEvent) -> "NotificationEventResponse":
        return cls(**event.to_dict())


class DeliveryRecordResponse(BaseModel):
    """Response model for a delivery log entry."""
    id: str
    event_id: str
    project_id: str
    trigger: TriggerStr
    channels: List[ChannelStr]
    delivered_at: datetime
    recipients: List[str]
    summary: str

    @classmethod
    def from_domain(cls, record: NotificationDeliveryRecord) -> "DeliveryRecordResponse":
        return cls(**record.to_dict())


class AutomationRunResponse(AutomationRunSchedule):
    """Response model for an automation run."""


class DigestStatusResponse(BaseModel):
    id: str
    name: str
    cadence: DigestCadenceStr
    channels: List[ChannelStr]
    recipients: int = Field(..., description="Number of recipient groups")
    last_sent_at: Optional[datetime] = None
    next_send_at: datetime


class DigestSummaryResponse(BaseModel):
    """Response model for the digest dashboard."""
    digests: List[DigestStatusResponse]
    recent_deliveries: List[DeliveryRecordResponse]
    upcoming_automation_runs: List[AutomationRunResponse]

    @classmethod
    def from_domain(cls, summary: NotificationDigestSummary) -> "DigestSummaryResponse":
        return cls(
            digests=[DigestStatusResponse(**vars(digest)) for digest in summary.digests],
            recent_deliveries=[
                DeliveryRecordResponse.from_domain(record) for record in summary.recent_deliveries
            ],
            upcoming_automation_runs=[
                AutomationRunResponse(**run.model_dump()) for run in summary.upcoming_automation_runs
            ],
        )
