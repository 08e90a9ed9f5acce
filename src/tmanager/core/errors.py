"""Error taxonomy shared by the core, adapters and CLI."""


class TManagerError(Exception):
    """Base class for all TManager errors."""

    pass


class ValidationError(TManagerError):
    """Raised for malformed input: bad due dates, empty required fields."""

    pass


class TransportError(TManagerError):
    """Raised when the task store cannot be reached or rejects a request."""

    def __init__(self, message: str, task_id: str | None = None):
        super().__init__(message)
        self.task_id = task_id


class TaskNotFoundError(TManagerError):
    """Raised when a task id does not exist in the store."""

    pass
