from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List

from apscheduler.events import EVENT_JOB_ERROR, JobExecutionEvent
from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)


class SchedulerWrapper:
    """Background scheduler for the periodic invoice jobs.

    Jobs run off the request path; a job that raises is logged here instead of
    vanishing into APScheduler's own logger.
    """

    def __init__(self, scheduler: BackgroundScheduler | None = None):
        self._scheduler = scheduler or BackgroundScheduler()
        self._scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)
        self._started = False
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._started

    def job_ids(self) -> List[str]:
        return sorted(job.id for job in self._scheduler.get_jobs())

    def start(self):
        with self._lock:
            if not self._started:
                self._scheduler.start()
                self._started = True
                logger.info("Scheduler started with jobs: %s", ", ".join(self.job_ids()) or "none")

    def add_interval_job(
        self,
        func: Callable[..., Any],
        minutes: int,
        id: str,
        *,
        max_instances: int = 1,
        coalesce: bool = True,
        misfire_grace_time: int | None = 60,
    ):
        # One sweep at a time; missed runs collapse into one.
        self._scheduler.add_job(
            func,
            "interval",
            minutes=minutes,
            id=id,
            replace_existing=True,
            max_instances=max_instances,
            coalesce=coalesce,
            misfire_grace_time=misfire_grace_time,
        )
        logger.info("Scheduled job %s every %d min", id, minutes)

    def shutdown(self):
        with self._lock:
            if self._started:
                self._scheduler.shutdown(wait=False)
                self._started = False
                logger.info("Scheduler stopped")

    def _on_job_error(self, event: JobExecutionEvent):
        logger.error(
            "Scheduled job %s failed: %s",
            event.job_id,
            event.exception,
            exc_info=event.exception,
            extra={"job_id": event.job_id},
        )
