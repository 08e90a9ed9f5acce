"""Reconciliation pass - sync derived status against stored status."""

from dataclasses import dataclass, field, replace
from datetime import datetime

from .tasks import Task, resolve_status


@dataclass
class ReconcileResult:
    """Outcome of one reconciliation pass.

    `resolved` mirrors the input batch (same length and order) with derived
    statuses applied; `writes` holds only the tasks whose status changed.
    """

    resolved: list[Task] = field(default_factory=list)
    writes: list[Task] = field(default_factory=list)

    @property
    def write_ids(self) -> list[str]:
        return [t.id for t in self.writes]


def reconcile(tasks: list[Task], now: datetime) -> ReconcileResult:
    """
    Apply the status resolver to a batch of tasks.

    Pure function - no I/O. Persisting `writes` is the caller's job.
    """
    result = ReconcileResult()
    for task in tasks:
        status = resolve_status(task, now)
        if status != task.status:
            updated = replace(task, status=status)
            result.resolved.append(updated)
            result.writes.append(updated)
        else:
            result.resolved.append(task)
    return result
