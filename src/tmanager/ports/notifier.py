"""Local notification interface."""

from datetime import datetime
from typing import Protocol


class NotificationPort(Protocol):
    """Interface for scheduling one-shot local notifications."""

    async def request_permission(self) -> bool:
        """Ask for notification permission. Returns True if granted."""
        ...

    async def schedule_one_shot(self, fire_at: datetime, payload: dict) -> bool:
        """Schedule a non-repeating notification. Returns True on success."""
        ...

    async def cancel_for_task(self, task_id: str) -> int:
        """Cancel every pending notification for a task. Returns the count."""
        ...
