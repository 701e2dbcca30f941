"""
Notification Infrastructure Repositories
=========================================

In-memory ledger storage, one ``ProjectNotificationLedger`` per project.
"""

from contextlib import AbstractContextManager
from typing import List, Optional

from sla_engine.shared.infrastructure.registry import ProjectRegistry
from sla_engine.notifications.application import INotificationLedgerRepository
from sla_engine.notifications.domain import ProjectNotificationLedger


class InMemoryNotificationRepository(INotificationLedgerRepository):
    """In-memory implementation of the notification ledger repository."""

    def __init__(self, registry: Optional[ProjectRegistry[ProjectNotificationLedger]] = None):
        self._registry = registry or ProjectRegistry(ProjectNotificationLedger, name="notifications")

    def locked(self, project_id: str) -> AbstractContextManager[ProjectNotificationLedger]:
        return self._registry.locked(project_id)

    def reset(self, project_id: str) -> bool:
        return self._registry.reset(project_id)

    def project_ids(self) -> List[str]:
        return self._registry.project_ids()

    def dispose(self) -> None:
        self._registry.dispose()
