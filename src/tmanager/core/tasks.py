"""Pure task domain logic - no I/O dependencies."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

from .errors import ValidationError

# A task that is not done becomes Failed once it is more than this far past due.
FAILURE_GRACE = timedelta(hours=24)


class TaskStatus(str, Enum):
    """Lifecycle status as stored by the task API."""

    PENDING = "Pending"
    DONE = "Done"
    FAILED = "Failed"

    @classmethod
    def from_api(cls, raw: str | None) -> "TaskStatus":
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            raise ValidationError(f"Unknown task status: {raw!r}") from None


def parse_due_date(value: str | datetime | None) -> datetime:
    """
    Normalize a due date to an aware UTC datetime.

    Accepts aware datetimes, ISO-8601 strings with "Z" or an offset, and naive
    ISO-8601 strings (with or without seconds), which are taken as UTC.
    Anything else raises ValidationError.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValidationError("Due date is required")
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"Invalid due date: {value!r}") from None
    elif value is None:
        raise ValidationError("Due date is required")
    else:
        raise ValidationError(f"Invalid due date: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_due_date(due: datetime) -> str:
    """Serialize a due date the way the task API stores it."""
    return due.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def require_aware(now: datetime) -> datetime:
    if now.tzinfo is None:
        raise ValidationError("Evaluation time must be timezone-aware")
    return now


@dataclass(frozen=True)
class Task:
    """
    A to-do item with a due instant and lifecycle status.

    due_date is normalized to aware UTC on construction (see parse_due_date).
    """

    id: str
    title: str
    description: str
    due_date: datetime
    status: TaskStatus = TaskStatus.PENDING

    def __post_init__(self):
        object.__setattr__(self, "due_date", parse_due_date(self.due_date))

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE

    def hours_overdue(self, now: datetime) -> float:
        """Hours past the due date (negative if not yet due)."""
        return (require_aware(now) - self.due_date) / timedelta(hours=1)

    def is_overdue(self, now: datetime) -> bool:
        return self.due_date <= require_aware(now)

    @classmethod
    def from_api(cls, data: dict) -> "Task":
        """Create Task from a task API response."""
        try:
            task_id = data["id"]
        except KeyError:
            raise ValidationError("Task payload has no id") from None
        return cls(
            id=str(task_id),
            title=data.get("title", ""),
            description=data.get("description", ""),
            due_date=parse_due_date(data.get("dueDate")),
            status=TaskStatus.from_api(data.get("status")),
        )

    def to_api(self) -> dict:
        """Serialize to the task API's JSON shape."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "dueDate": format_due_date(self.due_date),
            "status": self.status.value,
        }


@dataclass
class TaskBatch:
    """Tasks fetched from the store plus the records that failed validation."""

    tasks: list[Task] = field(default_factory=list)
    invalid: dict[str, str] = field(default_factory=dict)


def resolve_status(task: Task, now: datetime) -> TaskStatus:
    """
    Compute the status a task should have at `now`.

    Done is sticky: elapsed time never downgrades it. Otherwise a task is
    Failed only once it is strictly more than 24 hours overdue.

    Pure function - no I/O.
    """
    if task.is_done:
        return TaskStatus.DONE
    if task.hours_overdue(now) > FAILURE_GRACE / timedelta(hours=1):
        return TaskStatus.FAILED
    return TaskStatus.PENDING


def validate_new_task(
    title: str,
    description: str,
    due: str | datetime | None,
    now: datetime,
) -> tuple[str, str, datetime]:
    """
    Validate user input for creating a task.

    Returns (title, description, due_date) with text stripped and the due
    date normalized to UTC.
    """
    title = (title or "").strip()
    description = (description or "").strip()
    if not title or not description:
        raise ValidationError("Title and description are required.")
    due_date = parse_due_date(due)
    if due_date < require_aware(now):
        raise ValidationError("Cannot set due date in the past.")
    return title, description, due_date
