"""
Notification Application Layer
===============================

Contains:
- Services: NotificationService (also the SLA side's event sink)
- DTOs: Data transfer objects for API serialization
"""

from sla_engine.notifications.application.dto import (
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
    DigestStatusResponse,
    DigestSummaryResponse,
)
from sla_engine.notifications.application.services import (
    NotificationService,
    INotificationLedgerRepository,
)

__all__ = [
    # DTOs
    "ChannelToggleRequest",
    "DigestChannelsRequest",
    "EnqueueEventRequest",
    "ProcessQueueRequest",
    "DueSoonRequest",
    "AutomationRunRequest",
    "NotificationSchemeResponse",
    "NotificationEventResponse",
    "DeliveryRecordResponse",
    "AutomationRunResponse",
    "DigestStatusResponse",
    "DigestSummaryResponse",
    # Services
    "NotificationService",
    # Interfaces
    "INotificationLedgerRepository",
]
