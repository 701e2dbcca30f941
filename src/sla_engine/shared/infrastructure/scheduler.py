"""
Engine Scheduler
================

Wrapper around APScheduler that drives the periodic engine tick (queue
draining and digest gating for every known project).
"""

from typing import Any, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from sla_engine.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class EngineScheduler:
    """
    Wrapper for APScheduler for background notification processing.

    Manages the lifecycle of the scheduler and jobs.
    """

    JOB_ID = "engine_tick"

    def __init__(self, interval_seconds: int = 60):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    async def start(self, job_func: Callable[[], Any]) -> None:
        """Start the scheduler with the given job function."""
        if self._running:
            logger.warning("Engine scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()

        self._scheduler.add_job(
            job_func,
            "interval",
            seconds=self.interval_seconds,
            id=self.JOB_ID,
            name="Engine Tick Job",
            misfire_grace_time=60,
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )

        self._scheduler.start()
        self._running = True

        logger.info(
            "Engine scheduler started",
            extra={"interval_seconds": self.interval_seconds}
        )

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=True)

        self._running = False
        logger.info("Engine scheduler stopped")

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running
