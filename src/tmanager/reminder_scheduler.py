"""Reminder scheduler - turns a task's reminder plan into local notifications."""

import asyncio
import logging
from datetime import datetime

from .core.reminders import REMINDER_CATALOG, ReminderOffset, ScheduledSet, plan_reminders
from .core.tasks import Task
from .ports.notifier import NotificationPort

logger = logging.getLogger(__name__)


class ReminderScheduler:
    """
    Schedules lead-time reminders for tasks through a NotificationPort.

    Permission is requested once per scheduler and cached. Every schedule()
    call cancels the task's existing reminders first, so rescheduling after
    an edit never leaves duplicates behind.
    """

    def __init__(
        self,
        notifier: NotificationPort,
        catalog: tuple[ReminderOffset, ...] = REMINDER_CATALOG,
    ):
        self.notifier = notifier
        self.catalog = catalog
        self._permission: bool | None = None

    async def register(self) -> bool:
        """Request notification permission (at most once)."""
        if self._permission is None:
            try:
                self._permission = bool(await self.notifier.request_permission())
            except Exception as e:
                logger.warning(f"Notification permission request failed: {e}")
                self._permission = False
            if not self._permission:
                logger.warning("Notification permission not granted; reminders disabled")
        return self._permission

    async def schedule(self, task: Task, now: datetime) -> ScheduledSet:
        """Cancel-then-schedule every reminder still ahead of `now`."""
        result = ScheduledSet(task_id=task.id)

        if not await self.register():
            result.permission_granted = False
            return result

        reminders = plan_reminders(task, now, self.catalog)
        planned = {r.label for r in reminders}
        result.skipped = [o.label for o in self.catalog if o.label not in planned]

        # Nothing is scheduled unless the existing reminders were cleared
        try:
            await self.notifier.cancel_for_task(task.id)
        except Exception as e:
            logger.error(f"Failed to clear existing reminders for task {task.id}: {e}")
            result.failed = [r.label for r in reminders]
            return result

        outcomes = await asyncio.gather(
            *(self.notifier.schedule_one_shot(r.fire_at, r.payload()) for r in reminders),
            return_exceptions=True,
        )
        for reminder, outcome in zip(reminders, outcomes):
            if isinstance(outcome, BaseException) or outcome is False:
                logger.error(f"Failed to schedule '{reminder.label}' reminder for task {task.id}: {outcome}")
                result.failed.append(reminder.label)
            else:
                result.entries.append(reminder)

        logger.info(
            f"Task {task.id}: scheduled {result.labels or 'no'} reminders"
            + (f", skipped {result.skipped}" if result.skipped else "")
        )
        return result

    async def cancel(self, task_id: str) -> int:
        """Drop all pending reminders for a task."""
        return await self.notifier.cancel_for_task(task_id)
