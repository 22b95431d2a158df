"""
Background task scheduler.

Runs the periodic discovery refresh through APScheduler so the
interval trigger, coalescing and misfire handling stay in one place.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

logger = logging.getLogger(__name__)


class SchedulerManager:
    """
    Centralized scheduler for background tasks.

    Uses APScheduler to manage periodic jobs like the new-token
    discovery refresh.
    """

    def __init__(self):
        """Initialize the scheduler manager."""
        self.scheduler = AsyncIOScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 30
            }
        )
        self._running = False
        logger.info("Scheduler manager initialized")

    async def start(self) -> None:
        """Start the scheduler."""
        if not self._running:
            self.scheduler.start()
            self._running = True
            logger.info("Scheduler started")

    async def stop(self) -> None:
        """Stop the scheduler without waiting on in-flight jobs."""
        if self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    def add_job(
        self,
        func: Callable,
        trigger: str,
        id: str,
        name: Optional[str] = None,
        **trigger_args
    ) -> None:
        """
        Add a job to the scheduler, replacing any job with the same ID.

        Args:
            func: Function to execute
            trigger: Trigger type ('interval', 'cron', 'date')
            id: Unique job identifier
            name: Human-readable job name
            **trigger_args: Arguments for the trigger
        """
        self.scheduler.add_job(
            func=func,
            trigger=trigger,
            id=id,
            name=name or id,
            replace_existing=True,
            **trigger_args
        )

        logger.info(f"Scheduled job added: {name or id} ({trigger})")

    def remove_job(self, job_id: str) -> bool:
        """
        Remove a scheduled job.

        Args:
            job_id: Job identifier to remove

        Returns:
            bool: True if removed, False if not found
        """
        if self.scheduler.get_job(job_id) is None:
            logger.warning(f"Job not found: {job_id}")
            return False
        self.scheduler.remove_job(job_id)
        logger.info(f"Removed job: {job_id}")
        return True

    def get_jobs(self) -> Dict[str, Dict[str, Any]]:
        """
        Get information about all scheduled jobs.

        Returns:
            Dict mapping job IDs to job information
        """
        jobs = {}
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs[job.id] = {
                "name": job.name,
                "next_run": next_run.isoformat() if next_run else None,
                "trigger": str(job.trigger),
            }
        return jobs

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running


__all__ = ["SchedulerManager"]
