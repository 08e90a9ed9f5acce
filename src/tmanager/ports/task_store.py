"""Task store interface."""

from datetime import datetime
from typing import Protocol

from tmanager.core.tasks import Task, TaskBatch


class TaskStore(Protocol):
    """Interface for persisting tasks in any backend.

    Every method may raise TransportError.
    """

    async def fetch_all(self) -> TaskBatch:
        """Fetch all tasks. Records that fail validation are listed in `invalid`."""
        ...

    async def update(self, task_id: str, fields: dict) -> Task:
        """Update the given fields of a task. Returns the stored task."""
        ...

    async def add(self, title: str, description: str, due_date: datetime) -> Task:
        """Create a new Pending task."""
        ...

    async def delete(self, task_id: str) -> None:
        """Delete a task."""
        ...
