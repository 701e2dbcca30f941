"""
Notification Domain Layer
=========================

Domain layer for notification delivery.

Contains:
- Entities: NotificationEvent, NotificationDeliveryRecord, AutomationRunSchedule,
  ProjectNotificationLedger
- Value Objects: channel, trigger and digest configuration, ProjectNotificationScheme
- Domain Services: Stateless formatting and digest gating (NotificationFormatter)
"""

from sla_engine.notifications.domain.entities import (
    NotificationEvent,
    NotificationDeliveryRecord,
    AutomationRunSchedule,
    DueSoonRegistryEntry,
    DigestStatus,
    NotificationDigestSummary,
    ProjectNotificationLedger,
    default_automation_runs,
)
from sla_engine.notifications.domain.value_objects import (
    NotificationChannelConfig,
    NotificationTriggerConfig,
    NotificationDigestConfig,
    ProjectNotificationScheme,
    NotificationFormatter,
    default_notification_scheme,
)

__all__ = [
    # Entities
    "NotificationEvent",
    "NotificationDeliveryRecord",
    "AutomationRunSchedule",
    "DueSoonRegistryEntry",
    "DigestStatus",
    "NotificationDigestSummary",
    "ProjectNotificationLedger",
    "default_automation_runs",
    # Value Objects & Services
    "NotificationChannelConfig",
    "NotificationTriggerConfig",
    "NotificationDigestConfig",
    "ProjectNotificationScheme",
    "NotificationFormatter",
    "default_notification_scheme",
]
