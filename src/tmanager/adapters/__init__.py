"""Adapters - I/O implementations of ports."""

from .rest_task_store import RestTaskStore
from .apscheduler_notifier import APSchedulerNotifier

__all__ = [
    "RestTaskStore",
    "APSchedulerNotifier",
]
