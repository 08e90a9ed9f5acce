"""Tests for the reconciliation pass."""

from datetime import timedelta

import pytest

from tmanager.core.reconcile import reconcile
from tmanager.core.tasks import TaskStatus, resolve_status

from fakes import make_task


@pytest.fixture
def batch(now):
    return [
        make_task("t1", now - timedelta(hours=25)),
        make_task("t2", now - timedelta(hours=100), status=TaskStatus.DONE),
        make_task("t3", now + timedelta(hours=3)),
        make_task("t4", now - timedelta(hours=2)),
        make_task("t5", now + timedelta(days=2), status=TaskStatus.FAILED),
        make_task("t6", now - timedelta(days=3), status=TaskStatus.FAILED),
    ]


class TestReconcile:
    def test_overdue_pending_written_as_failed(self, now):
        result = reconcile([make_task("t1", now - timedelta(hours=25))], now)
        assert [(t.id, t.status) for t in result.writes] == [("t1", TaskStatus.FAILED)]

    def test_done_never_written(self, now):
        result = reconcile([make_task("t2", now - timedelta(hours=100), status=TaskStatus.DONE)], now)
        assert result.writes == []
        assert result.resolved[0].status is TaskStatus.DONE

    def test_preserves_length_and_order(self, batch, now):
        result = reconcile(batch, now)
        assert [t.id for t in result.resolved] == [t.id for t in batch]

    def test_writes_are_exactly_the_changed_ids(self, batch, now):
        result = reconcile(batch, now)
        expected = [t.id for t in batch if resolve_status(t, now) != t.status]
        assert result.write_ids == expected == ["t1", "t5"]

    def test_failed_with_moved_due_date_returns_to_pending(self, batch, now):
        result = reconcile(batch, now)
        t5 = next(t for t in result.writes if t.id == "t5")
        assert t5.status is TaskStatus.PENDING

    def test_unchanged_tasks_pass_through_as_is(self, batch, now):
        result = reconcile(batch, now)
        assert result.resolved[2] is batch[2]

    def test_input_not_mutated(self, batch, now):
        reconcile(batch, now)
        assert batch[0].status is TaskStatus.PENDING

    def test_idempotent(self, batch, now):
        first = reconcile(batch, now)
        second = reconcile(first.resolved, now)
        assert second.writes == []
        assert second.resolved == first.resolved

    def test_empty_batch(self, now):
        result = reconcile([], now)
        assert result.resolved == []
        assert result.writes == []
