"""Shared workflow layer between the CLI and the reminder daemon.

Each workflow wires the pure core to the task store and reminder scheduler.
Time is always passed in, never read here.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime

from .core.errors import TaskNotFoundError, TransportError, ValidationError
from .core.reconcile import reconcile
from .core.reminders import ScheduledSet
from .core.tasks import (
    Task,
    TaskStatus,
    parse_due_date,
    require_aware,
    resolve_status,
    validate_new_task,
)
from .ports.task_store import TaskStore
from .reminder_scheduler import ReminderScheduler

logger = logging.getLogger(__name__)


@dataclass
class RefreshReport:
    """
    Reconciled task batch plus the outcome of writing changes back.

    `invalid` holds records the store returned but that failed validation;
    they take no part in reconciliation.
    """

    tasks: list[Task] = field(default_factory=list)
    written: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)
    invalid: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures and not self.invalid


async def persist_writes(store: TaskStore, writes: list[Task]) -> tuple[list[str], dict[str, str]]:
    """
    Write each changed task back concurrently.

    A failed write is recorded against its id; it never stops the others.
    Returns (written_ids, failures).
    """
    outcomes = await asyncio.gather(
        *(store.update(t.id, t.to_api()) for t in writes),
        return_exceptions=True,
    )

    written: list[str] = []
    failures: dict[str, str] = {}
    for task, outcome in zip(writes, outcomes):
        if isinstance(outcome, BaseException):
            logger.error(f"Failed to persist status {task.status.value} for task {task.id}: {outcome}")
            failures[task.id] = str(outcome) or type(outcome).__name__
        else:
            written.append(task.id)
    return written, failures


async def refresh_tasks(store: TaskStore, now: datetime) -> RefreshReport:
    """
    Fetch every task, reconcile statuses and persist what changed.

    A failed fetch propagates (TransportError); failed writes and rejected
    records are reported.
    """
    batch = await store.fetch_all()
    tasks = batch.tasks
    result = reconcile(tasks, now)
    written, failures = await persist_writes(store, result.writes)

    if result.writes:
        logger.info(
            f"Reconciled {len(tasks)} tasks: {len(written)} updated, {len(failures)} failed"
        )
    else:
        logger.debug(f"Reconciled {len(tasks)} tasks: no changes")

    return RefreshReport(
        tasks=result.resolved,
        written=written,
        failures=failures,
        invalid=batch.invalid,
    )


async def find_task(store: TaskStore, task_id: str) -> Task:
    """Look up a single task by id."""
    batch = await store.fetch_all()
    for task in batch.tasks:
        if task.id == task_id:
            return task
    if task_id in batch.invalid:
        raise ValidationError(f"Task {task_id} is invalid: {batch.invalid[task_id]}")
    raise TaskNotFoundError(f"No task with id: {task_id}")


async def add_task(
    store: TaskStore,
    title: str,
    description: str,
    due: str | datetime,
    now: datetime,
    scheduler: ReminderScheduler | None = None,
) -> tuple[Task, ScheduledSet | None]:
    """Validate, create and (optionally) schedule reminders for a new task."""
    title, description, due_date = validate_new_task(title, description, due, now)
    task = await store.add(title, description, due_date)
    logger.info(f"Added task {task.id}: {task.title}")

    scheduled = None
    if scheduler is not None:
        scheduled = await scheduler.schedule(task, now)
    return task, scheduled


async def edit_task(
    store: TaskStore,
    task_id: str,
    now: datetime,
    title: str | None = None,
    description: str | None = None,
    due: str | datetime | None = None,
    scheduler: ReminderScheduler | None = None,
) -> Task:
    """
    Update a task's text and/or due date.

    Editing puts the task back to Pending; the next reconciliation decides
    whether it stays there.
    """
    task = await find_task(store, task_id)

    changes: dict = {"status": TaskStatus.PENDING}
    if title is not None:
        if not title.strip():
            raise ValidationError("Title cannot be empty.")
        changes["title"] = title.strip()
    if description is not None:
        if not description.strip():
            raise ValidationError("Description cannot be empty.")
        changes["description"] = description.strip()
    if due is not None:
        due_date = parse_due_date(due)
        if due_date < require_aware(now):
            raise ValidationError("Cannot set due date in the past.")
        changes["due_date"] = due_date

    updated = replace(task, **changes)
    stored = await store.update(task_id, updated.to_api())
    logger.info(f"Updated task {task_id}")

    if scheduler is not None:
        await scheduler.schedule(stored, now)
    return stored


async def toggle_task(
    store: TaskStore,
    task_id: str,
    now: datetime,
    scheduler: ReminderScheduler | None = None,
) -> Task:
    """Flip a task between Done and Pending. Failed tasks are locked."""
    task = await find_task(store, task_id)
    current = resolve_status(task, now)
    if current == TaskStatus.FAILED:
        raise ValidationError("Failed tasks cannot be toggled.")

    new_status = TaskStatus.PENDING if current == TaskStatus.DONE else TaskStatus.DONE
    stored = await store.update(task_id, replace(task, status=new_status).to_api())
    logger.info(f"Task {task_id} -> {new_status.value}")

    if scheduler is not None:
        if new_status == TaskStatus.DONE:
            await scheduler.cancel(task_id)
        else:
            await scheduler.schedule(stored, now)
    return stored


async def delete_task(
    store: TaskStore,
    task_id: str,
    scheduler: ReminderScheduler | None = None,
) -> None:
    """Delete a task and drop its pending reminders."""
    await store.delete(task_id)
    logger.info(f"Deleted task {task_id}")
    if scheduler is not None:
        await scheduler.cancel(task_id)


async def sync_reminders(
    scheduler: ReminderScheduler,
    tasks: list[Task],
    now: datetime,
) -> dict[str, ScheduledSet]:
    """
    Reschedule reminders for Pending tasks; cancel them for the rest.

    Tasks are handled concurrently and independently: a notifier failure for
    one task is logged and the others still go through.
    """

    async def sync_one(task: Task) -> ScheduledSet | None:
        if task.status == TaskStatus.PENDING:
            return await scheduler.schedule(task, now)
        await scheduler.cancel(task.id)
        return None

    outcomes = await asyncio.gather(*(sync_one(t) for t in tasks), return_exceptions=True)

    results: dict[str, ScheduledSet] = {}
    for task, outcome in zip(tasks, outcomes):
        if isinstance(outcome, BaseException):
            logger.error(f"Failed to sync reminders for task {task.id}: {outcome}")
        elif outcome is not None:
            results[task.id] = outcome
    return results


async def watch_tick(
    store: TaskStore,
    scheduler: ReminderScheduler,
    now: datetime,
) -> RefreshReport | None:
    """
    One pass of the reminder daemon: reconcile, then resync reminders.

    A failed fetch is logged and skipped so the next tick can retry.
    """
    try:
        report = await refresh_tasks(store, now)
    except TransportError as e:
        logger.error(f"Refresh failed: {e}")
        return None
    await sync_reminders(scheduler, report.tasks, now)
    return report
