"""SchedulerEngine: APScheduler lifecycle for recurring jobs."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from apscheduler.job import Job

logger = logging.getLogger(__name__)


class SchedulerEngine:
    """Runs async callables on crontab schedules.

    Args:
        timezone: IANA timezone the cron expressions are evaluated in.
    """

    def __init__(self, timezone: str = "Asia/Tokyo") -> None:
        self._timezone = timezone
        self._scheduler = AsyncIOScheduler(timezone=self._timezone)
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Start the scheduler with whatever jobs are registered."""
        self._scheduler.start()
        self._running = True
        logger.info(
            "Scheduler started with %d job(s) (tz=%s)",
            len(self._scheduler.get_jobs()),
            self._timezone,
        )

    async def stop(self) -> None:
        """Shut down the scheduler."""
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    # -- Job management --------------------------------------------------------

    def add_cron_job(
        self,
        job_id: str,
        cron: str,
        func: Callable[[], Awaitable[object]],
    ) -> Job:
        """Run *func* on the crontab expression *cron*. Replaces a job with the same ID."""
        trigger = CronTrigger.from_crontab(cron, timezone=self._timezone)
        job = self._scheduler.add_job(
            self._run_job,
            trigger=trigger,
            id=job_id,
            name=job_id,
            args=[job_id, func],
            misfire_grace_time=None,
            replace_existing=True,
        )
        logger.info("Scheduled job %s (%s)", job_id, cron)
        return job

    def job_ids(self) -> list[str]:
        return [job.id for job in self._scheduler.get_jobs()]

    async def _run_job(self, job_id: str, func: Callable[[], Awaitable[object]]) -> None:
        """Callback invoked by APScheduler. Failures are logged, never raised."""
        logger.info("Running job %s", job_id)
        try:
            await func()
        except Exception:
            logger.exception("Scheduled job %s failed", job_id)
