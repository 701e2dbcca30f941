"""
Engine Container
================

Assembles the SLA and notification services around shared state and a
single clock. One container is one independent engine instance.
"""

from typing import Optional

from sla_engine.config import Settings, settings as default_settings
from sla_engine.shared.infrastructure.clock import Clock, utc_now
from sla_engine.shared.infrastructure.logging import get_logger
from sla_engine.sla.application import (
    ISLAConfigProvider, SLAPolicyService, SLAEvaluationService, BreachRecorder
)
from sla_engine.sla.infrastructure import InMemorySLARepository, StaticConfigProvider
from sla_engine.notifications.application import NotificationService
from sla_engine.notifications.infrastructure import InMemoryNotificationRepository

logger = get_logger(__name__)


class EngineContainer:
    """
    Construct / reset / dispose lifecycle for one engine.

    The notification service doubles as the SLA side's event sink.
    """

    def __init__(
        self,
        config_provider: Optional[ISLAConfigProvider] = None,
        clock: Clock = utc_now,
        settings: Optional[Settings] = None
    ):
        settings = settings or default_settings
        self.clock = clock
        self.config_provider = config_provider or StaticConfigProvider()

        self.sla_repository = InMemorySLARepository()
        self.notification_repository = InMemoryNotificationRepository()

        self.notifications = NotificationService(
            self.notification_repository,
            clock=clock,
            queue_due_window_minutes=settings.queue_due_window_minutes,
            digest_grace_minutes=settings.digest_grace_minutes,
            due_soon_window_minutes=settings.due_soon_window_minutes,
            delivery_log_limit=settings.delivery_log_limit,
            digest_summary_deliveries=settings.digest_summary_deliveries,
        )
        self.policies = SLAPolicyService(self.sla_repository, self.config_provider, clock=clock)
        self.evaluator = SLAEvaluationService(
            self.sla_repository,
            self.policies,
            self.config_provider,
            BreachRecorder(self.notifications),
            clock=clock,
            breach_tail_size=settings.breach_tail_size,
        )

    def tick(self) -> None:
        """One engine tick: drain every project's queue and gate its digests."""
        delivered = self.notifications.process_all_queues()
        total = sum(delivered.values())
        if total:
            logger.info(
                "Engine tick complete",
                extra={"projects": len(delivered), "delivered": total}
            )

    def reset_project(self, project_id: str) -> None:
        self.evaluator.reset_project(project_id)
        self.notifications.reset_project(project_id)

    def dispose(self) -> None:
        """Drop every project's state."""
        self.sla_repository.dispose()
        self.notification_repository.dispose()
