"""
Periodic job scheduler running on the application's event loop.

Each job gets its own asyncio task. Aligned jobs fire on wall-clock multiples
of their interval (an hourly job runs at minute 0). A failing run is logged
and the job waits for its next slot.

Environment Variables:
    ENABLE_SCHEDULED_JOBS: Set to 'false' to skip starting jobs (default: true)
    CACHE_CLEANUP_INTERVAL_SECONDS: Signed URL cache sweep period (default: 3600)
    ALERTS_REFRESH_INTERVAL_SECONDS: Weather alerts refresh period (default: 3600)
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

JobCallable = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class SchedulerSettings:
    enabled: bool = True
    cache_cleanup_interval_seconds: int = 3600
    alerts_refresh_interval_seconds: int = 3600


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    return SchedulerSettings(
        enabled=os.getenv("ENABLE_SCHEDULED_JOBS", "true").lower() in ("true", "1", "yes"),
        cache_cleanup_interval_seconds=int(os.getenv("CACHE_CLEANUP_INTERVAL_SECONDS", "3600")),
        alerts_refresh_interval_seconds=int(os.getenv("ALERTS_REFRESH_INTERVAL_SECONDS", "3600")),
    )


def seconds_until_next_run(interval_seconds: float, now: float, align: bool) -> float:
    """Delay before the next run; aligned jobs wait for the next interval boundary."""
    if not align:
        return interval_seconds
    remainder = now % interval_seconds
    return interval_seconds - remainder


@dataclass
class PeriodicJob:
    name: str
    func: JobCallable
    interval_seconds: float
    align: bool = True
    runs: int = 0
    failures: int = 0


class JobScheduler:
    """Owns the asyncio tasks of all registered periodic jobs."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._jobs: dict[str, PeriodicJob] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    @property
    def jobs(self) -> dict[str, PeriodicJob]:
        return dict(self._jobs)

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def add_job(
        self,
        name: str,
        func: JobCallable,
        interval_seconds: float,
        *,
        align: bool = True,
    ) -> PeriodicJob:
        if name in self._jobs:
            raise ValueError(f"Job {name} already registered")
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        job = PeriodicJob(name=name, func=func, interval_seconds=interval_seconds, align=align)
        self._jobs[name] = job
        return job

    async def run_once(self, job: PeriodicJob) -> None:
        """Run a job a single time, logging instead of raising on failure."""
        logger.info("Running scheduled job: %s", job.name)
        try:
            await job.func()
        except Exception as exc:
            job.failures += 1
            logger.error("Error in scheduled job %s: %s", job.name, exc, exc_info=True)
        else:
            logger.info("Scheduled job completed: %s", job.name)
        finally:
            job.runs += 1

    async def _loop(self, job: PeriodicJob) -> None:
        while True:
            delay = seconds_until_next_run(job.interval_seconds, self._clock(), job.align)
            await asyncio.sleep(delay)
            await self.run_once(job)

    def start(self) -> None:
        """Start one task per registered job on the running loop."""
        if self._tasks:
            logger.warning("Job scheduler already started")
            return
        logger.info("Configuring scheduled jobs...")
        for name, job in self._jobs.items():
            self._tasks[name] = asyncio.create_task(self._loop(job), name=f"job:{name}")
        logger.info("Jobs scheduled successfully: %s", ", ".join(self._jobs) or "none")

    async def stop(self) -> None:
        """Cancel all job tasks and wait for them to finish."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Stopped %d scheduled jobs", len(tasks))
