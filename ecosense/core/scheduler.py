"""Repeating job ownership for the EcoSense dashboard."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any, TypeAlias

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]
from apscheduler.triggers.interval import IntervalTrigger  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

JobCallable: TypeAlias = Callable[[], Awaitable[None]]

TELEMETRY_JOB_ID = "telemetry_sample"
COOLDOWN_JOB_ID = "rate_limit_countdown"
AUTO_CYCLE_JOB_ID = "auto_cycle"


def build_scheduler() -> AsyncIOScheduler:
    return AsyncIOScheduler(
        timezone="UTC",
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 5,
        },
    )


class JobScheduler:
    """Single owner of every repeating timer.

    Job ids double as cancellation tokens: starting a job under an id that is
    already scheduled replaces it, cancelling an id removes it. Jobs must be
    coroutine functions so they run on the event loop rather than in the
    scheduler's thread pool.
    """

    def __init__(self, scheduler: AsyncIOScheduler | None = None) -> None:
        self._scheduler = scheduler or build_scheduler()

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Job scheduler started")

    async def shutdown(self, *, wait: bool = False) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            # AsyncIOScheduler applies the stop on the next loop iteration.
            await asyncio.sleep(0)
            logger.info("Job scheduler stopped")

    def start_interval(
        self,
        job_id: str,
        func: JobCallable,
        *,
        seconds: float,
        immediate: bool = False,
        name: str | None = None,
    ) -> None:
        """Run ``func`` every ``seconds``, replacing any job with the same id."""

        kwargs: dict[str, Any] = {}
        if immediate:
            # Omitting next_run_time lets the trigger decide; passing None would pause the job.
            kwargs["next_run_time"] = datetime.now(UTC)
        self._scheduler.add_job(
            func,
            IntervalTrigger(seconds=seconds),
            id=job_id,
            name=name or job_id,
            replace_existing=True,
            **kwargs,
        )
        logger.debug("Scheduled job %s every %ss (immediate=%s)", job_id, seconds, immediate)

    def cancel(self, job_id: str) -> bool:
        if self._scheduler.get_job(job_id) is None:
            return False
        self._scheduler.remove_job(job_id)
        logger.debug("Cancelled job %s", job_id)
        return True

    def is_scheduled(self, job_id: str) -> bool:
        return self._scheduler.get_job(job_id) is not None

    def job_ids(self) -> list[str]:
        return [job.id for job in self._scheduler.get_jobs()]


__all__ = [
    "AUTO_CYCLE_JOB_ID",
    "COOLDOWN_JOB_ID",
    "TELEMETRY_JOB_ID",
    "JobCallable",
    "JobScheduler",
    "build_scheduler",
]
