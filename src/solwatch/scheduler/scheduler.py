"""APScheduler wrapper owned by the service container.

Usage:
    scheduler = MaintenanceScheduler()
    register_maintenance_jobs(scheduler, ...)
    scheduler.start()
    ...
    scheduler.shutdown()
"""

from typing import Any

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

log = structlog.get_logger(__name__)


class MaintenanceScheduler:
    """Owns one AsyncIOScheduler for periodic maintenance jobs."""

    def __init__(self, scheduler: AsyncIOScheduler | None = None) -> None:
        self.scheduler = scheduler or AsyncIOScheduler()
        log.debug("scheduler_created")

    @property
    def running(self) -> bool:
        return bool(self.scheduler.running)

    def start(self) -> None:
        """Start the scheduler. Safe to call multiple times."""
        if not self.scheduler.running:
            self.scheduler.start()
            log.info("scheduler_started", jobs=len(self.scheduler.get_jobs()))

    def shutdown(self) -> None:
        """Stop the scheduler without waiting for running jobs."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            log.info("scheduler_shutdown")

    def get_status(self) -> dict[str, Any]:
        jobs = self.scheduler.get_jobs()
        return {
            "running": self.running,
            "jobs": {
                job.id: job.next_run_time.isoformat() if job.next_run_time else None
                for job in jobs
            },
        }
