"""
APScheduler integration for LicitaWatch.

Two interval jobs drive the pipeline: a feed sync (followed by a scrape
cycle when it finds new notices) and a standalone scrape cycle. Both
run on the coordinator's event loop.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from licitawatch.core.backends.base import BackendError
from licitawatch.core.config.models import SchedulerConfig
from licitawatch.core.feed.fetcher import ParseError
from licitawatch.core.logging import get_logger
from licitawatch.core.orchestrator.coordinator import IngestionCoordinator

logger = get_logger("scheduler")

SYNC_JOB_ID = "feed_sync"
SCRAPE_JOB_ID = "scrape_cycle"


class SchedulerService:
    """Periodic triggers for an IngestionCoordinator."""

    def __init__(
        self,
        coordinator: IngestionCoordinator,
        config: SchedulerConfig | None = None,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self.coordinator = coordinator
        self.config = config or SchedulerConfig()
        self._scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)
        self._stopped: asyncio.Event | None = None

    @property
    def scheduler(self) -> AsyncIOScheduler:
        return self._scheduler

    async def run_sync_job(self) -> None:
        """Scheduled sync; upstream failures wait for the next tick."""
        try:
            await self.coordinator.sync_and_scrape()
        except (BackendError, ParseError) as e:
            logger.warning("Scheduled sync failed, retrying next interval: %s", e)

    async def run_scrape_job(self) -> None:
        """Scheduled scrape cycle."""
        result = await self.coordinator.run_scrape_cycle()
        if result.skipped:
            logger.debug("Scheduled scrape skipped, cycle already running")

    def register_jobs(self, *, run_sync_now: bool = True) -> None:
        """Add (or replace) the sync and scrape interval jobs."""
        sync_kwargs = {"next_run_time": datetime.now(timezone.utc)} if run_sync_now else {}
        self._scheduler.add_job(
            self.run_sync_job,
            IntervalTrigger(minutes=self.config.sync_interval_minutes),
            id=SYNC_JOB_ID,
            name="Feed sync",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
            **sync_kwargs,
        )
        self._scheduler.add_job(
            self.run_scrape_job,
            IntervalTrigger(minutes=self.config.scrape_interval_minutes),
            id=SCRAPE_JOB_ID,
            name="Scrape cycle",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )

    def list_jobs(self) -> list[tuple[str, datetime | None]]:
        """(job id, next run time) for every registered job."""
        # Pending jobs carry no next_run_time until the scheduler starts
        return [(job.id, getattr(job, "next_run_time", None)) for job in self._scheduler.get_jobs()]

    def start(self) -> None:
        """Register jobs and start the scheduler on the running loop."""
        self.register_jobs()
        self._scheduler.start()
        logger.info(
            "Scheduler started: sync every %d min, scrape every %d min",
            self.config.sync_interval_minutes,
            self.config.scrape_interval_minutes,
        )

    def stop(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        if self._stopped is not None:
            self._stopped.set()
        logger.info("Scheduler stopped")

    async def run_until_stopped(self) -> None:
        """Start in foreground mode and block until stop() is called."""
        self._stopped = asyncio.Event()
        self.start()
        try:
            await self._stopped.wait()
        finally:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            await self.coordinator.wait_background()
