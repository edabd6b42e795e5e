"""
Scheduled jobs module.

Contains:
- scheduler: asyncio periodic job runner
- cache_jobs: signed URL sweep and weather alerts refresh
"""

from jobs.cache_jobs import clean_signed_url_cache_job, refresh_weather_alerts_job
from jobs.scheduler import (
    JobScheduler,
    PeriodicJob,
    SchedulerSettings,
    get_scheduler_settings,
    seconds_until_next_run,
)

__all__ = [
    "JobScheduler",
    "PeriodicJob",
    "SchedulerSettings",
    "get_scheduler_settings",
    "seconds_until_next_run",
    "clean_signed_url_cache_job",
    "refresh_weather_alerts_job",
]
