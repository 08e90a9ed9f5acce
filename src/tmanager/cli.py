"""TManager CLI - personal task tracker."""

import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import click
from apscheduler.triggers.interval import IntervalTrigger

from .adapters.apscheduler_notifier import APSchedulerNotifier
from .adapters.rest_task_store import RestTaskStore
from .config import Config, load_config
from .core.errors import TManagerError
from .core.reminders import plan_reminders
from .core.task_list import DueFilter, TaskQuery, build_task_list
from .core.tasks import Task, TaskStatus
from .reminder_scheduler import ReminderScheduler
from .workflows import (
    RefreshReport,
    add_task,
    delete_task,
    edit_task,
    refresh_tasks,
    toggle_task,
    watch_tick,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _local_tz(config: Config):
    try:
        return ZoneInfo(config.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {config.timezone!r}, using UTC")
        return timezone.utc


def _format_due(due: datetime, config: Config) -> str:
    return due.astimezone(_local_tz(config)).strftime("%Y-%m-%d %H:%M")


def _run(coro):
    """Run a workflow, turning domain errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except TManagerError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _report_failures(report: RefreshReport) -> None:
    for task_id, reason in report.failures.items():
        click.echo(f"Warning: could not save status for task {task_id}: {reason}", err=True)
    for task_id, reason in report.invalid.items():
        click.echo(f"Warning: skipped invalid task {task_id}: {reason}", err=True)


def _task_json(task: Task) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "status": task.status.value,
        "due_date": task.due_date.isoformat(),
    }


@click.group()
@click.version_option(package_name="tmanager")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx, debug: bool):
    """TManager - personal task tracker."""
    config = load_config()
    level = logging.DEBUG if debug else getattr(logging, config.log_level, logging.INFO)
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=level,
    )
    ctx.obj = config


@main.command("list")
@click.option("--search", "-s", default="", help="Case-insensitive title search")
@click.option(
    "--status",
    type=click.Choice([s.value for s in TaskStatus]),
    default=None,
    help="Only tasks with this status",
)
@click.option(
    "--due",
    type=click.Choice([d.value for d in DueFilter]),
    default=None,
    help="Only overdue or upcoming tasks",
)
@click.option("--limit", "-n", type=int, default=None, help="Number of tasks to show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def list_tasks(config: Config, search: str, status: str | None, due: str | None, limit: int | None, as_json: bool):
    """List tasks (reconciling overdue ones first)."""
    now = _now()
    store = RestTaskStore(config)
    report = _run(refresh_tasks(store, now))
    _report_failures(report)

    query = TaskQuery(
        search=search,
        status=TaskStatus(status) if status else None,
        due=DueFilter(due) if due else None,
        visible_count=limit if limit is not None else config.page_size,
    )
    view = build_task_list(report.tasks, query, now)

    if as_json:
        click.echo(json.dumps([_task_json(t) for t in view.items], indent=2))
        return

    if not view.items:
        click.echo("No tasks.")
        return

    for task in view.items:
        click.echo(f"[{task.status.value:7}] {task.title} (due {_format_due(task.due_date, config)})  #{task.id}")

    if view.has_more:
        click.echo(f"\n... {view.total - len(view.items)} more (use --limit)")


@main.command()
@click.argument("title")
@click.option("--description", "-d", required=True, help="Task description")
@click.option("--due", required=True, help="Due date (ISO 8601, e.g. 2025-01-20T18:00)")
@click.pass_obj
def add(config: Config, title: str, description: str, due: str):
    """Add a new task."""
    now = _now()
    store = RestTaskStore(config)
    task, _ = _run(add_task(store, title, description, due, now))

    click.echo(f"✓ Added task {task.id}: {task.title} (due {_format_due(task.due_date, config)})")
    reminders = plan_reminders(task, now)
    if reminders:
        click.echo("Reminders (while 'tmanager watch' is running):")
        for r in reminders:
            click.echo(f"  {_format_due(r.fire_at, config)}  due in {r.label}")
    else:
        click.echo("No reminders: every lead time has already passed.")


@main.command()
@click.argument("task_id")
@click.option("--title", default=None, help="New title")
@click.option("--description", "-d", default=None, help="New description")
@click.option("--due", default=None, help="New due date (ISO 8601)")
@click.pass_obj
def edit(config: Config, task_id: str, title: str | None, description: str | None, due: str | None):
    """Edit a task (status goes back to Pending)."""
    store = RestTaskStore(config)
    task = _run(edit_task(store, task_id, _now(), title=title, description=description, due=due))
    click.echo(f"✓ Updated task {task.id}: {task.title} [{task.status.value}]")


@main.command()
@click.argument("task_id")
@click.pass_obj
def toggle(config: Config, task_id: str):
    """Mark a task Done, or back to Pending."""
    store = RestTaskStore(config)
    task = _run(toggle_task(store, task_id, _now()))
    click.echo(f"✓ {task.title} is now {task.status.value}")


@main.command()
@click.argument("task_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_obj
def delete(config: Config, task_id: str, yes: bool):
    """Delete a task."""
    if not yes and not click.confirm(f"Delete task {task_id}?"):
        return
    store = RestTaskStore(config)
    _run(delete_task(store, task_id))
    click.echo(f"✓ Deleted task {task_id}")


@main.command("reconcile")
@click.pass_obj
def reconcile_cmd(config: Config):
    """Mark overdue tasks Failed and report what changed."""
    store = RestTaskStore(config)
    report = _run(refresh_tasks(store, _now()))

    click.echo(f"Checked {len(report.tasks)} tasks, updated {len(report.written)}.")
    for task_id in report.written:
        click.echo(f"  ✓ {task_id}")
    for task_id, reason in report.failures.items():
        click.echo(f"  ✗ {task_id}: {reason}")
    for task_id, reason in report.invalid.items():
        click.echo(f"  ! {task_id}: invalid, {reason}")
    if not report.ok:
        sys.exit(1)


def _deliver(payload: dict) -> None:
    click.echo(f"🔔 {payload['title']}: {payload['body']}")


def _make_notifier(config: Config) -> APSchedulerNotifier:
    return APSchedulerNotifier(
        enabled=config.notifications_enabled,
        deliver=_deliver,
        timezone=_local_tz(config),
    )


async def _watch(config: Config) -> None:
    store = RestTaskStore(config)
    notifier = _make_notifier(config)
    scheduler = ReminderScheduler(notifier)

    notifier.scheduler.start()
    if not await scheduler.register():
        click.echo("Notifications are disabled; tasks will still be reconciled.", err=True)

    async def tick() -> None:
        report = await watch_tick(store, scheduler, _now())
        if report is not None:
            _report_failures(report)

    notifier.scheduler.add_job(
        tick,
        IntervalTrigger(minutes=max(config.refresh_interval_minutes, 1)),
        id="refresh",
        next_run_time=_now(),
    )
    logger.info(f"Refreshing every {config.refresh_interval_minutes} min")

    try:
        await asyncio.Event().wait()
    finally:
        notifier.scheduler.shutdown(wait=False)


@main.command()
@click.pass_obj
def watch(config: Config):
    """Keep tasks reconciled and fire reminders before they are due."""
    click.echo("Watching tasks. Press Ctrl+C to stop")
    try:
        asyncio.run(_watch(config))
    except KeyboardInterrupt:
        click.echo("\nStopped.")


if __name__ == "__main__":
    main()
