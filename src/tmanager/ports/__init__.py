"""Ports - interfaces/protocols for external dependencies."""

from .task_store import TaskStore
from .notifier import NotificationPort

__all__ = [
    "TaskStore",
    "NotificationPort",
]
