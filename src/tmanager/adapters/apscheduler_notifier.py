"""APScheduler notification adapter - local one-shot reminders."""

import logging
from datetime import datetime, tzinfo
from typing import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

logger = logging.getLogger(__name__)

JOB_PREFIX = "reminder:"


def log_delivery(payload: dict) -> None:
    """Default delivery: write the reminder to the log."""
    logger.info(f"{payload.get('title', 'Reminder')}: {payload.get('body', '')}")


class APSchedulerNotifier:
    """
    Local notification adapter backed by an AsyncIOScheduler.

    Implements NotificationPort protocol. Each reminder is a DateTrigger job
    keyed by task id and lead-time label, so rescheduling the same task
    replaces rather than duplicates.
    """

    def __init__(
        self,
        scheduler: AsyncIOScheduler | None = None,
        enabled: bool = True,
        deliver: Callable[[dict], None] | None = None,
        timezone: tzinfo | str = "UTC",
    ):
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone)
        self.enabled = enabled
        self.deliver = deliver or log_delivery

    @staticmethod
    def job_id(task_id: str, label: str) -> str:
        return f"{JOB_PREFIX}{task_id}:{label}"

    def _fire(self, payload: dict) -> None:
        task_id = payload.get("data", {}).get("taskId")
        logger.info(f"Reminder fired for task {task_id}")
        self.deliver(payload)

    async def request_permission(self) -> bool:
        """Notifications are allowed unless disabled in config."""
        if not self.enabled:
            logger.warning("Notifications disabled (NOTIFICATIONS_ENABLED=false)")
        return self.enabled

    async def schedule_one_shot(self, fire_at: datetime, payload: dict) -> bool:
        """Add a non-repeating job that delivers `payload` at `fire_at`."""
        data = payload.get("data", {})
        task_id = data.get("taskId")
        if task_id is None:
            logger.error("Reminder payload has no taskId; not scheduling")
            return False

        label = data.get("label") or fire_at.isoformat()
        job_id = self.job_id(task_id, label)
        self.scheduler.add_job(
            self._fire,
            DateTrigger(run_date=fire_at),
            args=[payload],
            id=job_id,
            replace_existing=True,
        )
        logger.debug(f"Scheduled {job_id} at {fire_at.isoformat()}")
        return True

    async def cancel_for_task(self, task_id: str) -> int:
        """Remove every reminder job for a task."""
        removed = 0
        for job_id in self.pending_job_ids(task_id):
            self.scheduler.remove_job(job_id)
            removed += 1
        if removed:
            logger.debug(f"Cancelled {removed} reminder(s) for task {task_id}")
        return removed

    def pending_job_ids(self, task_id: str | None = None) -> list[str]:
        """Ids of scheduled reminder jobs, optionally for one task."""
        prefix = self.job_id(task_id, "") if task_id is not None else JOB_PREFIX
        return [job.id for job in self.scheduler.get_jobs() if job.id.startswith(prefix)]
