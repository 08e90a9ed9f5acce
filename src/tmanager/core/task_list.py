"""Task list projection - search, filters and pagination over resolved tasks."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from .tasks import Task, TaskStatus

PAGE_SIZE = 10


class DueFilter(str, Enum):
    OVERDUE = "overdue"
    UPCOMING = "upcoming"


@dataclass(frozen=True)
class TaskQuery:
    """What the user asked to see."""

    search: str = ""
    status: TaskStatus | None = None
    due: DueFilter | None = None
    visible_count: int = PAGE_SIZE

    def show_more(self, page_size: int = PAGE_SIZE) -> "TaskQuery":
        return replace(self, visible_count=self.visible_count + page_size)


@dataclass
class TaskListView:
    items: list[Task] = field(default_factory=list)
    total: int = 0

    @property
    def has_more(self) -> bool:
        return len(self.items) < self.total


def matches(task: Task, query: TaskQuery, now: datetime) -> bool:
    """Check a single task against the query's search and filters."""
    if query.search and query.search.lower() not in task.title.lower():
        return False
    if query.status is not None and task.status != query.status:
        return False
    if query.due == DueFilter.OVERDUE and not task.is_overdue(now):
        return False
    if query.due == DueFilter.UPCOMING and task.is_overdue(now):
        return False
    return True


def build_task_list(tasks: list[Task], query: TaskQuery, now: datetime) -> TaskListView:
    """
    Filter then paginate, preserving input order.

    Pure function - expects already-reconciled tasks.
    """
    filtered = [t for t in tasks if matches(t, query, now)]
    return TaskListView(items=filtered[: max(query.visible_count, 0)], total=len(filtered))
