"""
Notification Domain Entities
=============================

Events, delivery records, automation runs and the per-project ledger that
holds them.
"""

import copy
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Literal, Optional, Set

from pydantic import BaseModel, Field

from sla_engine.config import AutomationCadence, AutomationRunStatus
from sla_engine.notifications.domain.value_objects import ProjectNotificationScheme


@dataclass
class NotificationEvent:
    """A scheduled-but-undelivered notification."""

    id: str
    project_id: str
    trigger: str
    payload: Dict[str, Any]
    channels: List[str]
    scheduled_for: datetime
    created_at: datetime

    def is_due(self, due_before: datetime) -> bool:
        return self.scheduled_for < due_before

    def to_dict(self) -> dict:
        data = asdict(self)
        data["scheduled_for"] = self.scheduled_for.isoformat()
        data["created_at"] = self.created_at.isoformat()
        return data


@dataclass(frozen=True)
class NotificationDeliveryRecord:
    """
    Immutable delivery log entry.

    At most one record exists per ``event_id``.
    """

    id: str
    event_id: str
    project_id: str
    trigger: str
    channels: List[str]
    delivered_at: datetime
    recipients: List[str]
    summary: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["delivered_at"] = self.delivered_at.isoformat()
        return data


class AutomationRunSchedule(BaseModel):
    """A recurring automation job announced through notifications."""
    id: str
    name: str = Field(..., min_length=1)
    cadence: Literal["hourly", "daily", "weekly", "monthly"] = AutomationCadence.DAILY
    next_run_at: datetime
    owning_automation: str
    status: Literal["scheduled", "running", "paused"] = AutomationRunStatus.SCHEDULED


def default_automation_runs(project_id: str, now: datetime, ids: List[str]) -> List[AutomationRunSchedule]:
    """Runs every project starts with; ``ids`` supplies one identifier per run."""
    blueprints = [
        ("Daily stand-up digest", AutomationCadence.DAILY, 90, "daily-digest"),
        ("SLA breach escalations", AutomationCadence.HOURLY, 45, "sla-escalation"),
        ("Weekly project briefing", AutomationCadence.WEEKLY, 60 * 24 * 3, "weekly-briefing"),
    ]
    return [
        AutomationRunSchedule(
            id=run_id,
            name=name,
            cadence=cadence,
            next_run_at=now + timedelta(minutes=offset),
            owning_automation=f"{project_id}:{suffix}",
            status=AutomationRunStatus.SCHEDULED,
        )
        for run_id, (name, cadence, offset, suffix) in zip(ids, blueprints)
    ]


@dataclass(frozen=True)
class DueSoonRegistryEntry:
    task_id: str
    scheduled_for: datetime


@dataclass
class DigestStatus:
    """Digest metadata shown in the digest summary."""

    id: str
    name: str
    cadence: str
    channels: List[str]
    recipients: int
    last_sent_at: Optional[datetime]
    next_send_at: datetime


@dataclass
class NotificationDigestSummary:
    """Dashboard read model: digests, recent deliveries, upcoming automation runs."""

    digests: List[DigestStatus] = field(default_factory=list)
    recent_deliveries: List[NotificationDeliveryRecord] = field(default_factory=list)
    upcoming_automation_runs: List[AutomationRunSchedule] = field(default_factory=list)


@dataclass
class ProjectNotificationLedger:
    """
    All notification state owned by one project.

    ``scheme`` and ``automation_runs`` stay ``None`` until first use seeds
    the defaults.
    """

    project_id: str
    scheme: Optional[ProjectNotificationScheme] = None
    queue: List[NotificationEvent] = field(default_factory=list)
    deliveries: List[NotificationDeliveryRecord] = field(default_factory=list)
    delivered_event_ids: Set[str] = field(default_factory=set)
    digest_history: Dict[str, datetime] = field(default_factory=dict)
    automation_runs: Optional[List[AutomationRunSchedule]] = None
    due_soon_registry: Dict[str, DueSoonRegistryEntry] = field(default_factory=dict)

    def was_delivered(self, event_id: str) -> bool:
        return event_id in self.delivered_event_ids

    def append_delivery(self, record: NotificationDeliveryRecord) -> None:
        self.deliveries.append(record)
        self.delivered_event_ids.add(record.event_id)

    def take_due_events(self, due_before: datetime) -> List[NotificationEvent]:
        """Remove and return queued events scheduled before ``due_before``."""
        due: List[NotificationEvent] = []
        remaining: List[NotificationEvent] = []
        for event in self.queue:
            (due if event.is_due(due_before) else remaining).append(event)
        self.queue = remaining
        return due

    def recent_deliveries(self, limit: int) -> List[NotificationDeliveryRecord]:
        """Most recent first."""
        if limit <= 0:
            return []
        return list(reversed(self.deliveries[-limit:]))

    def pending_events(self) -> List[NotificationEvent]:
        return copy.deepcopy(self.queue)
