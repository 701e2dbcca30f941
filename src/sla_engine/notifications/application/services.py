"""
Notification Application Services
==================================

Orchestrates the notification scheme, the event queue, the delivery log,
digests and the auxiliary registrars (due-soon tasks, automation runs).

Following SOLID principles:
- Single Responsibility: formatting and gating rules live in the domain
- Dependency Inversion: depends on the ledger repository abstraction
"""

import copy
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from sla_engine.config import (
    settings, NotificationTrigger, NotificationChannel, VALID_CHANNELS, VALID_TRIGGERS
)
from sla_engine.core import ResourceNotFoundException, ValidationException
from sla_engine.shared.infrastructure.clock import (
    Clock, utc_now, resolve_now, ensure_utc, generate_id
)
from sla_engine.shared.infrastructure.logging import get_logger, log_latency
from sla_engine.sla.application import INotificationEventSink
from sla_engine.sla.domain import TaskSnapshot
from sla_engine.notifications.domain import (
    NotificationEvent, NotificationDeliveryRecord, AutomationRunSchedule,
    DueSoonRegistryEntry, DigestStatus, NotificationDigestSummary,
    ProjectNotificationLedger, ProjectNotificationScheme, NotificationChannelConfig,
    NotificationDigestConfig, NotificationFormatter,
    default_notification_scheme, default_automation_runs
)

logger = get_logger(__name__)


class INotificationLedgerRepository(ABC):
    """Interface for per-project notification state."""

    @abstractmethod
    def locked(self, project_id: str) -> AbstractContextManager[ProjectNotificationLedger]:
        """Hold the project's lock and yield its ledger."""

    @abstractmethod
    def reset(self, project_id: str) -> bool:
        """Drop all notification state for a project."""

    @abstractmethod
    def project_ids(self) -> List[str]:
        """Projects that currently hold notification state."""


class NotificationService(INotificationEventSink):
    """
    Service for scheduling and delivering notification events.

    Delivery means appending a record to the project's delivery log; the
    transport that actually sends email or chat messages sits outside this
    service.
    """

    def __init__(
        self,
        repository: INotificationLedgerRepository,
        clock: Clock = utc_now,
        queue_due_window_minutes: int = settings.queue_due_window_minutes,
        digest_grace_minutes: int = settings.digest_grace_minutes,
        due_soon_window_minutes: int = settings.due_soon_window_minutes,
        delivery_log_limit: int = settings.delivery_log_limit,
        digest_summary_deliveries: int = settings.digest_summary_deliveries
    ):
        self._repository = repository
        self._clock = clock
        self._queue_due_window = timedelta(minutes=queue_due_window_minutes)
        self._digest_grace_minutes = digest_grace_minutes
        self._due_soon_window = timedelta(minutes=due_soon_window_minutes)
        self._delivery_log_limit = delivery_log_limit
        self._digest_summary_deliveries = digest_summary_deliveries

    # ========== Lazy defaults ==========

    def _ensure_scheme(self, ledger: ProjectNotificationLedger, now: datetime) -> ProjectNotificationScheme:
        if ledger.scheme is None:
            ledger.scheme = default_notification_scheme(generate_id("scheme"), ledger.project_id, now)
        return ledger.scheme

    def _ensure_runs(self, ledger: ProjectNotificationLedger, now: datetime) -> List[AutomationRunSchedule]:
        if ledger.automation_runs is None:
            ids = [generate_id("automation") for _ in range(3)]
            ledger.automation_runs = default_automation_runs(ledger.project_id, now, ids)
        return ledger.automation_runs

    # ========== Scheme ==========

    def get_scheme(self, project_id: str, now: Optional[datetime] = None) -> ProjectNotificationScheme:
        """Detached copy of the project's scheme."""
        now = resolve_now(now, self._clock)
        with self._repository.locked(project_id) as ledger:
            return self._ensure_scheme(ledger, now).model_copy(deep=True)

    def update_notification_channel(
        self,
        project_id: str,
        trigger_id: str,
        channel: str,
        enabled: bool,
        now: Optional[datetime] = None
    ) -> ProjectNotificationScheme:
        """
        Enable or disable a channel on a trigger, appending the channel if absent.

        Raises:
            ResourceNotFoundException: unknown trigger id (scheme untouched)
            ValidationException: unknown channel
        """
        if channel not in VALID_CHANNELS:
            raise ValidationException(f"Unknown notification channel: {channel}", {"channel": channel})

        now = resolve_now(now, self._clock)
        with self._repository.locked(project_id) as ledger:
            scheme = self._ensure_scheme(ledger, now)
            trigger = scheme.find_trigger(trigger_id)
            if trigger is None:
                raise ResourceNotFoundException("Notification trigger", trigger_id)

            entry = trigger.find_channel(channel)
            if entry is None:
                trigger.channels.append(NotificationChannelConfig(channel=channel, enabled=enabled))
            else:
                entry.enabled = enabled
            scheme.updated_at = now

            logger.info(
                "Notification channel updated",
                extra={
                    "project_id": project_id,
                    "trigger_id": trigger_id,
                    "channel": channel,
                    "enabled": enabled,
                }
            )
            return scheme.model_copy(deep=True)

    def update_digest_channels(
        self,
        project_id: str,
        digest_id: str,
        channels: Sequence[str],
        now: Optional[datetime] = None
    ) -> ProjectNotificationScheme:
        """
        Replace a digest's channel list.

        Raises:
            ResourceNotFoundException: unknown digest id (scheme untouched)
            ValidationException: unknown channel
        """
        unknown = [channel for channel in channels if channel not in VALID_CHANNELS]
        if unknown:
            raise ValidationException("Unknown notification channels", {"channels": unknown})

        now = resolve_now(now, self._clock)
        with self._repository.locked(project_id) as ledger:
            scheme = self._ensure_scheme(ledger, now)
            digest = scheme.find_digest(digest_id)
            if digest is None:
                raise ResourceNotFoundException("Notification digest", digest_id)

            digest.channels = list(channels)
            scheme.updated_at = now

            logger.info(
                "Digest channels updated",
                extra={"project_id": project_id, "digest_id": digest_id, "channels": list(channels)}
            )
            return scheme.model_copy(deep=True)

    # ========== Queue ==========

    def enqueue(
        self,
        project_id: str,
        trigger: str,
        payload: Dict[str, Any],
        channels: Optional[Sequence[str]] = None,
        scheduled_for: Optional[datetime] = None,
        now: Optional[datetime] = None
    ) -> NotificationEvent:
        """
        Append an event to the project's queue.

        Channels default to the scheme's enabled channels for ``trigger``
        (``in_app`` when the trigger has no configuration).
        """
        if trigger not in VALID_TRIGGERS:
            raise ValidationException(f"Unknown notification trigger: {trigger}", {"trigger": trigger})
        if channels is not None:
            unknown = [channel for channel in channels if channel not in VALID_CHANNELS]
            if unknown:
                raise ValidationException("Unknown notification channels", {"channels": unknown})

        now = resolve_now(now, self._clock)
        with self._repository.locked(project_id) as ledger:
            event = self._enqueue_locked(ledger, trigger, payload, channels, scheduled_for, now)
            return copy.deepcopy(event)

    def _enqueue_locked(
        self,
        ledger: ProjectNotificationLedger,
        trigger: str,
        payload: Dict[str, Any],
        channels: Optional[Sequence[str]],
        scheduled_for: Optional[datetime],
        now: datetime
    ) -> NotificationEvent:
        if channels is None:
            config = self._ensure_scheme(ledger, now).trigger_config_for(trigger)
            resolved = config.enabled_channels() if config else [NotificationChannel.IN_APP]
        else:
            resolved = list(channels)

        event = NotificationEvent(
            id=generate_id("event"),
            project_id=ledger.project_id,
            trigger=trigger,
            payload=dict(payload),
            channels=resolved,
            scheduled_for=ensure_utc(scheduled_for) if scheduled_for else now,
            created_at=now,
        )
        ledger.queue.append(event)

        logger.debug(
            "Notification event enqueued",
            extra={
                "project_id": ledger.project_id,
                "event_id": event.id,
                "trigger": trigger,
                "channels": resolved,
            }
        )
        return event

    def emit(
        self,
        project_id: str,
        trigger: str,
        payload: Dict[str, Any],
        channels: Optional[List[str]] = None,
        now: Optional[datetime] = None
    ) -> NotificationEvent:
        return self.enqueue(project_id, trigger, payload, channels=channels, now=now)

    def list_pending_events(self, project_id: str) -> List[NotificationEvent]:
        with self._repository.locked(project_id) as ledger:
            return ledger.pending_events()

    # ========== Processor ==========

    def process_queue(self, project_id: str, now: Optional[datetime] = None) -> List[NotificationDeliveryRecord]:
        """
        Deliver due events, then send any digests whose cadence gate is open.

        Returns:
            List[NotificationDeliveryRecord]: deliveries of queued events only;
            digest deliveries are appended to the log but not returned
        """
        now = resolve_now(now, self._clock)

        with log_latency(logger, "notification_processing", project_id=project_id):
            with self._repository.locked(project_id) as ledger:
                scheme = self._ensure_scheme(ledger, now)
                processed: List[NotificationDeliveryRecord] = []

                for event in ledger.take_due_events(now + self._queue_due_window):
                    if ledger.was_delivered(event.id):
                        logger.debug(
                            "Skipping already delivered event",
                            extra={"project_id": project_id, "event_id": event.id}
                        )
                        continue
                    processed.append(self._deliver(
                        ledger,
                        event.id,
                        event.trigger,
                        event.channels,
                        NotificationFormatter.derive_recipients(event.payload),
                        NotificationFormatter.summarize(event.trigger, event.payload),
                        now,
                    ))

                digests_sent = 0
                for digest in scheme.digests:
                    if self._send_digest_if_due(ledger, digest, now):
                        digests_sent += 1

                if processed or digests_sent:
                    logger.info(
                        "Notification queue processed",
                        extra={
                            "project_id": project_id,
                            "delivered": len(processed),
                            "digests_sent": digests_sent,
                            "pending": len(ledger.queue),
                        }
                    )
                return copy.deepcopy(processed)

    def _deliver(
        self,
        ledger: ProjectNotificationLedger,
        event_id: str,
        trigger: str,
        channels: Sequence[str],
        recipients: List[str],
        summary: str,
        now: datetime
    ) -> NotificationDeliveryRecord:
        record = NotificationDeliveryRecord(
            id=generate_id("delivery"),
            event_id=event_id,
            project_id=ledger.project_id,
            trigger=trigger,
            channels=list(channels),
            delivered_at=now,
            recipients=recipients,
            summary=summary,
        )
        ledger.append_delivery(record)
        logger.debug(
            "Notification delivered",
            extra={
                "project_id": ledger.project_id,
                "event_id": event_id,
                "trigger": trigger,
                "recipient_count": len(recipients),
            }
        )
        return record

    def _send_digest_if_due(
        self,
        ledger: ProjectNotificationLedger,
        digest: NotificationDigestConfig,
        now: datetime
    ) -> bool:
        last_sent = ledger.digest_history.get(digest.id)
        if not NotificationFormatter.is_digest_due(digest, last_sent, now, self._digest_grace_minutes):
            return False

        # Synthesized and delivered in place; never parked in the queue
        event = NotificationEvent(
            id=generate_id("event"),
            project_id=ledger.project_id,
            trigger=NotificationTrigger.DIGEST,
            payload={"digest_id": digest.id, "include_triggers": list(digest.include_triggers)},
            channels=list(digest.channels),
            scheduled_for=now,
            created_at=now,
        )
        self._deliver(
            ledger,
            event.id,
            event.trigger,
            event.channels,
            list(digest.recipients),
            f"Sent {digest.name}",
            now,
        )
        ledger.digest_history[digest.id] = now

        logger.info(
            "Digest sent",
            extra={
                "project_id": ledger.project_id,
                "digest_id": digest.id,
                "previous_send": last_sent.isoformat() if last_sent else None,
            }
        )
        return True

    def process_all_queues(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """Run the processor for every project that holds notification state."""
        now = resolve_now(now, self._clock)
        delivered: Dict[str, int] = {}
        for project_id in self._repository.project_ids():
            delivered[project_id] = len(self.process_queue(project_id, now))
        return delivered

    # ========== Registrars ==========

    def register_due_soon_notifications(
        self,
        project_id: str,
        tasks: Sequence[TaskSnapshot],
        now: Optional[datetime] = None
    ) -> List[NotificationEvent]:
        """
        Enqueue one ``due_soon`` event per open task due within the look-ahead window.

        A task is registered at most once until the project is reset.
        """
        now = resolve_now(now, self._clock)
        horizon = now + self._due_soon_window
        enqueued: List[NotificationEvent] = []

        with self._repository.locked(project_id) as ledger:
            for task in tasks:
                if task.due_date is None or task.is_completed:
                    continue
                due_date = ensure_utc(task.due_date)
                if due_date < now or due_date > horizon:
                    continue
                if task.id in ledger.due_soon_registry:
                    continue

                event = self._enqueue_locked(
                    ledger,
                    NotificationTrigger.DUE_SOON,
                    {
                        "task_id": task.id,
                        "task_title": task.title,
                        "due_date": due_date.isoformat(),
                        "recipients": list(task.assignee_ids),
                    },
                    None,
                    None,
                    now,
                )
                ledger.due_soon_registry[task.id] = DueSoonRegistryEntry(
                    task_id=task.id, scheduled_for=event.scheduled_for
                )
                enqueued.append(event)

        if enqueued:
            logger.info(
                "Due-soon notifications registered",
                extra={"project_id": project_id, "count": len(enqueued)}
            )
        return enqueued

    def register_automation_run(
        self,
        project_id: str,
        automation: Dict[str, Any],
        now: Optional[datetime] = None
    ) -> AutomationRunSchedule:
        """
        Append an automation run and announce it with an ``automation_run`` event.

        Raises:
            ValidationException: missing name or invalid cadence/status
        """
        name = automation.get("name")
        if not name:
            raise ValidationException("Automation run requires a name")

        now = resolve_now(now, self._clock)
        data = {
            "id": automation.get("id") or generate_id("automation"),
            "name": name,
            "cadence": automation.get("cadence") or "daily",
            "next_run_at": automation.get("next_run_at") or now + timedelta(minutes=60),
            "owning_automation": automation.get("owning_automation") or f"{project_id}:{name}",
            "status": automation.get("status") or "scheduled",
        }
        try:
            run = AutomationRunSchedule.model_validate(data)
        except ValidationError as e:
            raise ValidationException.from_pydantic("Invalid automation run", e)

        with self._repository.locked(project_id) as ledger:
            self._ensure_runs(ledger, now).append(run)
            self._enqueue_locked(
                ledger,
                NotificationTrigger.AUTOMATION_RUN,
                {"automation_name": run.name, "cadence": run.cadence},
                None,
                None,
                now,
            )

        logger.info(
            "Automation run registered",
            extra={"project_id": project_id, "run_id": run.id, "cadence": run.cadence}
        )
        return run.model_copy(deep=True)

    def list_automation_runs(self, project_id: str, now: Optional[datetime] = None) -> List[AutomationRunSchedule]:
        """Runs sorted by next run time."""
        now = resolve_now(now, self._clock)
        with self._repository.locked(project_id) as ledger:
            runs = self._ensure_runs(ledger, now)
            return sorted(
                (run.model_copy(deep=True) for run in runs),
                key=lambda run: ensure_utc(run.next_run_at)
            )

    # ========== Read models & reset ==========

    def get_delivery_log(self, project_id: str, limit: Optional[int] = None) -> List[NotificationDeliveryRecord]:
        """Most recent deliveries first."""
        limit = self._delivery_log_limit if limit is None else limit
        with self._repository.locked(project_id) as ledger:
            return copy.deepcopy(ledger.recent_deliveries(limit))

    def get_digest_summary(self, project_id: str, now: Optional[datetime] = None) -> NotificationDigestSummary:
        now = resolve_now(now, self._clock)
        with self._repository.locked(project_id) as ledger:
            scheme = self._ensure_scheme(ledger, now)
            digests = [
                DigestStatus(
                    id=digest.id,
                    name=digest.name,
                    cadence=digest.cadence,
                    channels=list(digest.channels),
                    recipients=len(digest.recipients),
                    last_sent_at=ledger.digest_history.get(digest.id),
                    next_send_at=NotificationFormatter.next_send_at(
                        digest, ledger.digest_history.get(digest.id), now
                    ),
                )
                for digest in scheme.digests
            ]
            return NotificationDigestSummary(
                digests=digests,
                recent_deliveries=copy.deepcopy(
                    ledger.recent_deliveries(self._digest_summary_deliveries)
                ),
                upcoming_automation_runs=self.list_automation_runs(project_id, now),
            )

    def reset_project(self, project_id: str) -> None:
        """Clear scheme, queue, delivery log, digest history, registrations and runs."""
        self._repository.reset(project_id)
