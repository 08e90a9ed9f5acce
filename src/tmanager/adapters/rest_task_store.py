"""REST task store adapter - HTTP client for the /todo API."""

import asyncio
import logging
from datetime import datetime

import requests

from tmanager.config import Config, load_config
from tmanager.core.errors import TransportError, ValidationError
from tmanager.core.tasks import Task, TaskBatch, TaskStatus, format_due_date

logger = logging.getLogger(__name__)


class RestTaskStore:
    """
    REST task store adapter.

    Implements TaskStore protocol. Blocking requests calls run in a worker
    thread so the event loop is never blocked. No business logic - just I/O.
    """

    def __init__(self, config: Config | None = None, session: requests.Session | None = None):
        self.config = config or load_config()
        self._session = session or requests.Session()

    def _api_request(
        self,
        method: str,
        endpoint: str,
        error: str,
        task_id: str | None = None,
        payload: dict | None = None,
    ) -> dict | list | None:
        """Make an API request, wrapping every failure in TransportError."""
        url = f"{self.config.api_base_url}{endpoint}"
        try:
            resp = self._session.request(
                method,
                url,
                json=payload,
                timeout=self.config.request_timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"{error}: {e}", task_id=task_id) from e

        if not resp.ok:
            raise TransportError(f"{error}: HTTP {resp.status_code}", task_id=task_id)

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(f"{error}: invalid JSON response", task_id=task_id) from e

    def _parse_task(self, data: dict | list | None, error: str, task_id: str | None = None) -> Task:
        if not isinstance(data, dict):
            raise TransportError(f"{error}: unexpected response", task_id=task_id)
        try:
            return Task.from_api(data)
        except ValidationError as e:
            raise TransportError(f"{error}: {e}", task_id=task_id) from e

    def _fetch_all(self) -> TaskBatch:
        data = self._api_request("GET", "/todo", "Failed to fetch todos")
        if not isinstance(data, list):
            raise TransportError("Failed to fetch todos: expected a list")

        batch = TaskBatch()
        for index, item in enumerate(data):
            # Entries without an id are keyed by their position in the response
            if not isinstance(item, dict):
                self._reject(batch, f"#{index}", f"Malformed task entry: {item!r}")
                continue
            try:
                batch.tasks.append(Task.from_api(item))
            except ValidationError as e:
                self._reject(batch, str(item.get("id", f"#{index}")), str(e))
        return batch

    @staticmethod
    def _reject(batch: TaskBatch, key: str, reason: str) -> None:
        logger.error(f"Rejected task {key}: {reason}")
        batch.invalid[key] = reason

    def _update(self, task_id: str, fields: dict) -> Task:
        error = f"Failed to update task {task_id}"
        data = self._api_request("PUT", f"/todo/{task_id}", error, task_id=task_id, payload=fields)
        return self._parse_task(data, error, task_id)

    def _add(self, title: str, description: str, due_date: datetime) -> Task:
        payload = {
            "title": title,
            "description": description,
            "dueDate": format_due_date(due_date),
            "status": TaskStatus.PENDING.value,
        }
        data = self._api_request("POST", "/todo", "Failed to add task", payload=payload)
        return self._parse_task(data, "Failed to add task")

    def _delete(self, task_id: str) -> None:
        self._api_request(
            "DELETE",
            f"/todo/{task_id}",
            f"Failed to delete task with id: {task_id}",
            task_id=task_id,
        )

    async def fetch_all(self) -> TaskBatch:
        """Fetch all tasks, collecting records that fail validation."""
        return await asyncio.to_thread(self._fetch_all)

    async def update(self, task_id: str, fields: dict) -> Task:
        """Update a task's fields."""
        return await asyncio.to_thread(self._update, task_id, fields)

    async def add(self, title: str, description: str, due_date: datetime) -> Task:
        """Create a new Pending task."""
        return await asyncio.to_thread(self._add, title, description, due_date)

    async def delete(self, task_id: str) -> None:
        """Delete a task."""
        await asyncio.to_thread(self._delete, task_id)
