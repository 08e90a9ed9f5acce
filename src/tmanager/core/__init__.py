"""Functional core - pure business logic with no I/O."""

from .errors import TaskNotFoundError, TManagerError, TransportError, ValidationError
from .tasks import Task, TaskBatch, TaskStatus, parse_due_date, resolve_status, validate_new_task
from .reconcile import ReconcileResult, reconcile
from .reminders import REMINDER_CATALOG, Reminder, ReminderOffset, ScheduledSet, plan_reminders
from .task_list import DueFilter, TaskListView, TaskQuery, build_task_list

__all__ = [
    # Errors
    "TManagerError",
    "TaskNotFoundError",
    "TransportError",
    "ValidationError",
    # Tasks
    "Task",
    "TaskBatch",
    "TaskStatus",
    "parse_due_date",
    "resolve_status",
    "validate_new_task",
    # Reconciliation
    "ReconcileResult",
    "reconcile",
    # Reminders
    "REMINDER_CATALOG",
    "Reminder",
    "ReminderOffset",
    "ScheduledSet",
    "plan_reminders",
    # Task list
    "DueFilter",
    "TaskListView",
    "TaskQuery",
    "build_task_list",
]
