"""
Notification Value Objects
===========================

Delivery scheme building blocks and the pure formatting/gating rules of
the notification processor.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from sla_engine.config import (
    NotificationTrigger, DIGEST_CADENCE_MINUTES, DEFAULT_RECIPIENT
)
from sla_engine.shared.infrastructure.clock import ensure_utc


ChannelStr = Literal["email", "slack", "teams", "in_app"]
TriggerStr = Literal["mention", "assignment", "due_soon", "automation_run", "sla_breach", "digest"]
ChannelCadenceStr = Literal["immediate", "hourly", "daily", "weekly"]
DigestCadenceStr = Literal["daily", "weekly"]


class NotificationChannelConfig(BaseModel):
    """Whether and how often a trigger is delivered on one channel."""
    channel: ChannelStr
    enabled: bool = True
    cadence: Optional[ChannelCadenceStr] = None
    window_minutes: Optional[int] = Field(default=None, ge=0)


class NotificationTriggerConfig(BaseModel):
    id: str
    label: str
    trigger: TriggerStr
    description: Optional[str] = None
    channels: List[NotificationChannelConfig] = Field(default_factory=list)
    conditions: Optional[List[str]] = None
    digest_window_minutes: Optional[int] = Field(default=None, ge=0)

    def enabled_channels(self) -> List[str]:
        return [entry.channel for entry in self.channels if entry.enabled]

    def find_channel(self, channel: str) -> Optional[NotificationChannelConfig]:
        for entry in self.channels:
            if entry.channel == channel:
                return entry
        return None


class NotificationDigestConfig(BaseModel):
    """
    Batched notification for a recipient group.

    ``send_at`` is ``"HH:MM"`` or ``"<Weekday> HH:MM"``.
    """
    id: str
    name: str
    cadence: DigestCadenceStr
    send_at: str
    channels: List[ChannelStr] = Field(default_factory=list)
    recipients: List[str] = Field(default_factory=list)
    include_triggers: List[TriggerStr] = Field(default_factory=list)

    @property
    def cadence_minutes(self) -> int:
        return DIGEST_CADENCE_MINUTES[self.cadence]


class ProjectNotificationScheme(BaseModel):
    """Per-project delivery rules: trigger channel matrix plus digests."""
    id: str
    project_id: str
    name: str
    description: Optional[str] = None
    triggers: List[NotificationTriggerConfig] = Field(default_factory=list)
    digests: List[NotificationDigestConfig] = Field(default_factory=list)
    updated_at: datetime

    def trigger_config_for(self, trigger: str) -> Optional[NotificationTriggerConfig]:
        """First trigger configuration for a trigger kind."""
        for config in self.triggers:
            if config.trigger == trigger:
                return config
        return None

    def find_trigger(self, trigger_id: str) -> Optional[NotificationTriggerConfig]:
        for config in self.triggers:
            if config.id == trigger_id:
                return config
        return None

    def find_digest(self, digest_id: str) -> Optional[NotificationDigestConfig]:
        for digest in self.digests:
            if digest.id == digest_id:
                return digest
        return None


def default_notification_scheme(scheme_id: str, project_id: str, now: datetime) -> ProjectNotificationScheme:
    """Out-of-the-box delivery rules every project starts with."""
    return ProjectNotificationScheme(
        id=scheme_id,
        project_id=project_id,
        name="Project defaults",
        description="Out-of-the-box delivery rules for project activity",
        updated_at=now,
        triggers=[
            NotificationTriggerConfig(
                id="mentions",
                label="Mentions",
                trigger="mention",
                description="Real-time alerts when teammates mention you in tasks or comments.",
                channels=[
                    NotificationChannelConfig(channel="in_app", enabled=True, cadence="immediate"),
                    NotificationChannelConfig(channel="email", enabled=True, cadence="immediate"),
                    NotificationChannelConfig(channel="slack", enabled=True, cadence="immediate"),
                ],
            ),
            NotificationTriggerConfig(
                id="assignments",
                label="Assignments",
                trigger="assignment",
                description="Notify assignees when they are added to work.",
                channels=[
                    NotificationChannelConfig(channel="in_app", enabled=True, cadence="immediate"),
                    NotificationChannelConfig(channel="email", enabled=False, cadence="immediate"),
                    NotificationChannelConfig(channel="teams", enabled=False, cadence="immediate"),
                ],
            ),
            NotificationTriggerConfig(
                id="due-soon",
                label="Due soon",
                trigger="due_soon",
                description="Surface upcoming due dates to owners and followers.",
                channels=[
                    NotificationChannelConfig(channel="in_app", enabled=True, cadence="daily", window_minutes=60 * 24),
                    NotificationChannelConfig(channel="email", enabled=True, cadence="daily", window_minutes=60 * 24),
                    NotificationChannelConfig(channel="slack", enabled=True, cadence="daily", window_minutes=60 * 12),
                ],
                digest_window_minutes=60 * 24,
            ),
            NotificationTriggerConfig(
                id="automation-runs",
                label="Automation runs",
                trigger="automation_run",
                description="Summaries of automation executions and failures.",
                channels=[
                    NotificationChannelConfig(channel="in_app", enabled=True, cadence="hourly"),
                    NotificationChannelConfig(channel="slack", enabled=True, cadence="hourly"),
                    NotificationChannelConfig(channel="email", enabled=False, cadence="daily"),
                ],
            ),
            NotificationTriggerConfig(
                id="sla-breaches",
                label="SLA breaches",
                trigger="sla_breach",
                description="Escalations when service level targets are missed.",
                channels=[
                    NotificationChannelConfig(channel="slack", enabled=True, cadence="immediate"),
                    NotificationChannelConfig(channel="teams", enabled=True, cadence="immediate"),
                    NotificationChannelConfig(channel="email", enabled=True, cadence="immediate"),
                ],
            ),
        ],
        digests=[
            NotificationDigestConfig(
                id="daily-digest",
                name="Daily roll-up",
                cadence="daily",
                send_at="08:00",
                channels=["email", "slack"],
                recipients=["project_owner", "team_leads"],
                include_triggers=["due_soon", "automation_run", "sla_breach"],
            ),
            NotificationDigestConfig(
                id="weekly-insights",
                name="Weekly insights",
                cadence="weekly",
                send_at="Monday 09:00",
                channels=["email"],
                recipients=["stakeholders"],
                include_triggers=["assignment", "sla_breach", "digest"],
            ),
        ],
    )


def _parse_int(raw: Optional[str]) -> Optional[int]:
    try:
        return int(raw) if raw is not None else None
    except ValueError:
        return None


class NotificationFormatter:
    """
    Pure functions for recipient derivation, summaries and digest timing.

    Stateless utility class - the notification service only orchestrates.
    """

    @staticmethod
    def derive_recipients(payload: Dict[str, Any]) -> List[str]:
        """
        Resolve who an event is for.

        ``recipients`` (a string or a list of strings) wins, then
        ``assignee_id``, then the whole project team.
        """
        recipients = payload.get("recipients")
        if isinstance(recipients, str):
            return [recipients]
        if isinstance(recipients, list):
            return [value for value in recipients if isinstance(value, str)]
        assignee_id = payload.get("assignee_id")
        if isinstance(assignee_id, str):
            return [assignee_id]
        return [DEFAULT_RECIPIENT]

    @staticmethod
    def summarize(trigger: str, payload: Dict[str, Any]) -> str:
        """One-line human summary of an event, keyed by trigger kind."""

        def pick(key: str, fallback: Any) -> Any:
            value = payload.get(key)
            return fallback if value is None else value

        if trigger == NotificationTrigger.MENTION:
            return f"Mentioned {pick('target', 'user')}"
        if trigger == NotificationTrigger.ASSIGNMENT:
            return f"Assigned task {pick('task_title', '')}".strip()
        if trigger == NotificationTrigger.DUE_SOON:
            return f"Due soon: {pick('task_title', payload.get('task_id'))}"
        if trigger == NotificationTrigger.AUTOMATION_RUN:
            return f"Automation {pick('automation_name', 'run')}"
        if trigger == NotificationTrigger.SLA_BREACH:
            return f"SLA breach on {pick('task_title', payload.get('task_id'))}"
        if trigger == NotificationTrigger.DIGEST:
            return f"Digest {pick('digest_id', '')}".strip()
        return "Notification"

    @staticmethod
    def is_digest_due(
        digest: NotificationDigestConfig,
        last_sent: Optional[datetime],
        now: datetime,
        grace_minutes: int = 5
    ) -> bool:
        """First-ever send is due; later sends once ``cadence - grace`` minutes have passed."""
        if last_sent is None:
            return True
        due_at = ensure_utc(last_sent) + timedelta(minutes=digest.cadence_minutes - grace_minutes)
        return ensure_utc(now) >= due_at

    @staticmethod
    def nominal_send_time(digest: NotificationDigestConfig, now: datetime) -> datetime:
        """
        Today's (date of ``now``) send time for a digest.

        The hour is read from the last whitespace separated token before the
        colon, so ``"Monday 09:00"`` yields 09:00. Unparseable parts fall back
        to 08:00.
        """
        raw_hour, _, raw_minute = digest.send_at.partition(":")
        hour_tokens = raw_hour.split()
        hour = _parse_int(hour_tokens[-1] if hour_tokens else None)
        minute = _parse_int(raw_minute.strip() or "0")
        if hour is None or not 0 <= hour <= 23:
            hour = 8
        if minute is None or not 0 <= minute <= 59:
            minute = 0
        return ensure_utc(now).replace(hour=hour, minute=minute, second=0, microsecond=0)

    @staticmethod
    def next_send_at(
        digest: NotificationDigestConfig,
        last_sent: Optional[datetime],
        now: datetime
    ) -> datetime:
        if last_sent is None:
            return NotificationFormatter.nominal_send_time(digest, now)
        return ensure_utc(last_sent) + timedelta(minutes=digest.cadence_minutes)
