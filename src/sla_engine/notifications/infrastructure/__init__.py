"""
Notification Infrastructure Layer
==================================

- Repositories: In-memory per-project ledgers
"""

from sla_engine.notifications.infrastructure.repositories import InMemoryNotificationRepository

__all__ = ["InMemoryNotificationRepository"]
