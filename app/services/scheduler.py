"""Scheduler for periodic and one-shot background jobs."""

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.config import settings
from app.services.access_grants import AccessGrantRegistry
from app.utils.logger import logger


class SchedulerService:
    """Owns the AsyncIOScheduler shared by the grant sweep and file cleanups."""

    def __init__(self, registry: AccessGrantRegistry, sweep_interval_seconds: int | None = None):
        self.registry = registry
        self.sweep_interval = sweep_interval_seconds or settings.grant_sweep_interval_seconds
        self.scheduler = AsyncIOScheduler(timezone=pytz.utc)

    def start(self) -> None:
        """Start the scheduler and register the grant sweep job."""
        self.scheduler.add_job(
            self._run_sweep,
            trigger=IntervalTrigger(seconds=self.sweep_interval, timezone=pytz.utc),
            id="grant_sweep",
            name="Expired access grant sweep",
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(f"Scheduler started - grant sweep every {self.sweep_interval}s")

    def shutdown(self) -> None:
        """Shutdown the scheduler; pending one-shot cleanups are dropped."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler shutting down")

    async def _run_sweep(self) -> None:
        """Run the grant sweep (called by scheduler)."""
        try:
            removed = self.registry.sweep()
            logger.debug(f"Grant sweep completed: {removed} removed")
        except Exception as e:
            logger.error(f"Error in scheduled grant sweep: {e}", exc_info=True)
