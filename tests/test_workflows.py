"""Tests for the shared workflow layer."""

import asyncio
from datetime import timedelta

import pytest

from tmanager.core.errors import TaskNotFoundError, TransportError, ValidationError
from tmanager.core.tasks import TaskStatus
from tmanager.reminder_scheduler import ReminderScheduler
from tmanager.workflows import (
    add_task,
    delete_task,
    edit_task,
    persist_writes,
    refresh_tasks,
    sync_reminders,
    toggle_task,
    watch_tick,
)

from fakes import FakeNotifier, FakeTaskStore, make_task


@pytest.fixture
def store(now):
    return FakeTaskStore(
        [
            make_task("t1", now - timedelta(hours=25)),
            make_task("t2", now - timedelta(hours=100), status=TaskStatus.DONE),
            make_task("t3", now + timedelta(hours=20)),
        ]
    )


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def scheduler(notifier):
    return ReminderScheduler(notifier)


class TestRefreshTasks:
    @pytest.mark.asyncio
    async def test_writes_back_failed_status(self, store, now):
        report = await refresh_tasks(store, now)

        assert report.written == ["t1"]
        assert report.ok
        assert store.tasks["t1"].status is TaskStatus.FAILED
        assert [t.id for t in report.tasks] == ["t1", "t2", "t3"]
        assert [u[0] for u in store.updates] == ["t1"]
        assert store.updates[0][1]["status"] == "Failed"

    @pytest.mark.asyncio
    async def test_second_run_writes_nothing(self, store, now):
        await refresh_tasks(store, now)
        report = await refresh_tasks(store, now)
        assert report.written == []
        assert len(store.updates) == 1

    @pytest.mark.asyncio
    async def test_partial_write_failure(self, now):
        store = FakeTaskStore([make_task(f"t{i}", now - timedelta(hours=30)) for i in (1, 2, 3)])
        store.fail_update = {"t2"}

        report = await refresh_tasks(store, now)

        assert sorted(report.written) == ["t1", "t3"]
        assert list(report.failures) == ["t2"]
        assert "HTTP 500" in report.failures["t2"]
        assert store.tasks["t1"].status is TaskStatus.FAILED
        assert store.tasks["t3"].status is TaskStatus.FAILED
        assert store.tasks["t2"].status is TaskStatus.PENDING
        # The derived view still shows the resolved status.
        assert [t.status for t in report.tasks] == [TaskStatus.FAILED] * 3

    @pytest.mark.asyncio
    async def test_fetch_failure_propagates(self, store, now):
        store.fail_fetch = True
        with pytest.raises(TransportError):
            await refresh_tasks(store, now)

    @pytest.mark.asyncio
    async def test_invalid_records_are_reported(self, store, now):
        store.invalid = {"t9": "Invalid due date: 'garbage'"}

        report = await refresh_tasks(store, now)

        assert report.invalid == {"t9": "Invalid due date: 'garbage'"}
        assert not report.ok
        assert report.written == ["t1"]


class TestPersistWrites:
    @pytest.mark.asyncio
    async def test_no_writes(self, store):
        assert await persist_writes(store, []) == ([], {})

    @pytest.mark.asyncio
    async def test_cancelled_write_is_a_failure(self, now):
        class CancellingStore(FakeTaskStore):
            async def update(self, task_id, fields):
                if task_id == "t2":
                    raise asyncio.CancelledError()
                return await super().update(task_id, fields)

        store = CancellingStore([make_task(f"t{i}", now - timedelta(hours=30)) for i in (1, 2)])
        writes = [make_task(t, now - timedelta(hours=30), status=TaskStatus.FAILED) for t in ("t1", "t2")]

        written, failures = await persist_writes(store, writes)

        assert written == ["t1"]
        assert list(failures) == ["t2"]


class TestAddTask:
    @pytest.mark.asyncio
    async def test_creates_pending_task_and_schedules(self, store, scheduler, notifier, now):
        task, scheduled = await add_task(
            store, "Dentist", "Checkup", "2025-01-16T08:00:00Z", now, scheduler=scheduler
        )

        assert task.status is TaskStatus.PENDING
        assert task.id in store.tasks
        assert scheduled.labels == ["10 hours", "1 hour", "10 minutes"]
        assert {c.task_id for c in notifier.scheduled} == {task.id}

    @pytest.mark.asyncio
    async def test_without_scheduler(self, store, now):
        task, scheduled = await add_task(store, "Dentist", "Checkup", "2025-01-16T08:00", now)
        assert scheduled is None
        assert task.title == "Dentist"

    @pytest.mark.asyncio
    async def test_validation_error_creates_nothing(self, store, now):
        with pytest.raises(ValidationError):
            await add_task(store, "", "Checkup", "2025-01-16T08:00", now)
        assert len(store.tasks) == 3


class TestEditTask:
    @pytest.mark.asyncio
    async def test_resets_status_to_pending(self, store, now):
        await refresh_tasks(store, now)
        task = await edit_task(store, "t1", now, due="2025-01-20T09:00")
        assert task.status is TaskStatus.PENDING
        assert task.due_date.day == 20

    @pytest.mark.asyncio
    async def test_updates_text(self, store, now):
        task = await edit_task(store, "t3", now, title="  New title ", description="New desc")
        assert task.title == "New title"
        assert task.description == "New desc"

    @pytest.mark.asyncio
    async def test_rejects_past_due(self, store, now):
        with pytest.raises(ValidationError, match="past"):
            await edit_task(store, "t3", now, due="2025-01-01T09:00")

    @pytest.mark.asyncio
    async def test_rejects_empty_title(self, store, now):
        with pytest.raises(ValidationError):
            await edit_task(store, "t3", now, title="  ")

    @pytest.mark.asyncio
    async def test_unknown_task(self, store, now):
        with pytest.raises(TaskNotFoundError):
            await edit_task(store, "nope", now, title="x")

    @pytest.mark.asyncio
    async def test_rejects_naive_now(self, store, now):
        with pytest.raises(ValidationError, match="timezone-aware"):
            await edit_task(store, "t3", now.replace(tzinfo=None), due="2025-01-20T09:00")

    @pytest.mark.asyncio
    async def test_invalid_record_is_not_editable(self, store, now):
        store.invalid = {"t9": "Invalid due date: 'garbage'"}
        with pytest.raises(ValidationError, match="t9 is invalid"):
            await edit_task(store, "t9", now, title="x")

    @pytest.mark.asyncio
    async def test_reschedules_reminders(self, store, scheduler, notifier, now):
        await edit_task(store, "t3", now, due="2025-01-15T17:00", scheduler=scheduler)
        assert sorted(c.label for c in notifier.scheduled) == ["1 hour", "10 minutes"]


class TestToggleTask:
    @pytest.mark.asyncio
    async def test_pending_to_done_cancels_reminders(self, store, scheduler, notifier, now):
        task = await toggle_task(store, "t3", now, scheduler=scheduler)
        assert task.status is TaskStatus.DONE
        assert notifier.cancelled == ["t3"]

    @pytest.mark.asyncio
    async def test_done_to_pending(self, store, now):
        task = await toggle_task(store, "t2", now)
        assert task.status is TaskStatus.PENDING

    @pytest.mark.asyncio
    async def test_failed_is_locked(self, store, now):
        with pytest.raises(ValidationError, match="Failed"):
            await toggle_task(store, "t1", now)
        assert store.updates == []


class TestDeleteTask:
    @pytest.mark.asyncio
    async def test_deletes_and_cancels(self, store, scheduler, notifier, now):
        await delete_task(store, "t3", scheduler=scheduler)
        assert "t3" not in store.tasks
        assert notifier.cancelled == ["t3"]

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, store):
        with pytest.raises(TransportError):
            await delete_task(store, "missing")


class TestSyncReminders:
    @pytest.mark.asyncio
    async def test_only_pending_tasks_get_reminders(self, store, scheduler, notifier, now):
        report = await refresh_tasks(store, now)
        results = await sync_reminders(scheduler, report.tasks, now)

        assert list(results) == ["t3"]
        assert {c.task_id for c in notifier.scheduled} == {"t3"}
        assert set(notifier.cancelled) == {"t1", "t2", "t3"}

    @pytest.mark.asyncio
    async def test_one_task_failure_does_not_stop_others(self, store, scheduler, notifier, now):
        notifier.fail_cancel = {"t1"}
        report = await refresh_tasks(store, now)

        results = await sync_reminders(scheduler, report.tasks, now)

        assert list(results) == ["t3"]
        assert results["t3"].labels == ["10 hours", "1 hour", "10 minutes"]
        assert set(notifier.cancelled) == {"t2", "t3"}


class TestWatchTick:
    @pytest.mark.asyncio
    async def test_reconciles_then_schedules(self, store, scheduler, notifier, now):
        report = await watch_tick(store, scheduler, now)

        assert report.written == ["t1"]
        assert store.tasks["t1"].status is TaskStatus.FAILED
        assert {c.task_id for c in notifier.scheduled} == {"t3"}

    @pytest.mark.asyncio
    async def test_fetch_failure_is_logged_not_raised(self, store, scheduler, notifier, now, caplog):
        store.fail_fetch = True

        assert await watch_tick(store, scheduler, now) is None
        assert notifier.scheduled == []
        assert "Refresh failed" in caplog.text

    @pytest.mark.asyncio
    async def test_notifications_disabled_still_reconciles(self, store, now):
        notifier = FakeNotifier(granted=False)

        report = await watch_tick(store, ReminderScheduler(notifier), now)

        assert report.written == ["t1"]
        assert notifier.scheduled == []
        assert notifier.cancelled == ["t1", "t2"]

    @pytest.mark.asyncio
    async def test_next_tick_retries_after_fetch_failure(self, store, scheduler, notifier, now):
        store.fail_fetch = True
        await watch_tick(store, scheduler, now)
        store.fail_fetch = False

        report = await watch_tick(store, scheduler, now + timedelta(minutes=5))

        assert report.written == ["t1"]
        assert {c.task_id for c in notifier.scheduled} == {"t3"}
