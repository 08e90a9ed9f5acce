"""Reminder planning - which lead-time reminders a task still needs."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .tasks import Task

REMINDER_TITLE = "Upcoming Task Reminder"


@dataclass(frozen=True)
class ReminderOffset:
    """A catalog entry: how long before the due instant a reminder fires."""

    label: str
    lead: timedelta


# The "10 minutes" entry fires 15 minutes ahead. Kept as stored until the
# label or the lead time is confirmed.
REMINDER_CATALOG: tuple[ReminderOffset, ...] = (
    ReminderOffset("10 hours", timedelta(hours=10)),
    ReminderOffset("1 hour", timedelta(hours=1)),
    ReminderOffset("10 minutes", timedelta(minutes=15)),
)


@dataclass(frozen=True)
class Reminder:
    """One planned one-shot notification for a task."""

    task_id: str
    task_title: str
    offset: ReminderOffset
    fire_at: datetime

    @property
    def label(self) -> str:
        return self.offset.label

    @property
    def body(self) -> str:
        return f'Task "{self.task_title}" is due in {self.offset.label}!'

    def payload(self) -> dict:
        """Notification content handed to the notification port."""
        return {
            "title": REMINDER_TITLE,
            "body": self.body,
            "data": {"taskId": self.task_id, "label": self.offset.label},
        }


def plan_reminders(
    task: Task,
    now: datetime,
    catalog: tuple[ReminderOffset, ...] = REMINDER_CATALOG,
) -> list[Reminder]:
    """
    Reminders whose fire time is still after `now`, in catalog order.

    Pure function - no I/O. Elapsed offsets are simply left out.
    """
    reminders = []
    for offset in catalog:
        fire_at = task.due_date - offset.lead
        if fire_at > now:
            reminders.append(Reminder(task.id, task.title, offset, fire_at))
    return reminders


@dataclass
class ScheduledSet:
    """What a scheduling call actually dispatched for one task."""

    task_id: str
    permission_granted: bool = True
    entries: list[Reminder] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def labels(self) -> list[str]:
        return [r.label for r in self.entries]

    @property
    def count(self) -> int:
        return len(self.entries)
