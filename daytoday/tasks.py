from datetime import date

from fncli import UsageError, cli

from .core.errors import NotFoundError
from .core.models import DayTask
from .lib import clock
from .lib.dates import parse_date
from .lib.format import format_task
from .lib.fuzzy import find_in_pool
from .lib.parsing import parse_time
from .store import Store, open_store

__all__ = ["resolve_task"]


def _day(date_str: str | None) -> date:
    return parse_date(date_str) if date_str else clock.today()


def resolve_task(store: Store, ref: str, day: date | None = None) -> DayTask:
    """Find a task by id prefix or title, preferring the given day's tasks."""
    if day is not None:
        task = find_in_pool(ref, store.tasks_for_date(day))
        if task:
            return task
    task = find_in_pool(ref, list(store.state.tasks.values()))
    if not task:
        raise NotFoundError(f"No task found: '{ref}'")
    return task


def _join(ref: list[str]) -> str:
    text = " ".join(ref) if ref else ""
    if not text:
        raise UsageError("task reference required")
    return text


# ── cli ──────────────────────────────────────────────────────────────────────


@cli("daytoday", name="day")
def show_day(date: str | None = None) -> None:
    """Materialize routines and list a day's tasks"""
    day = _day(date)
    store = open_store()
    store.generate_tasks_for_date(day)
    tasks = store.tasks_for_date(day)
    print(day.strftime("%a %Y-%m-%d"))
    if not tasks:
        print("  nothing scheduled")
        return
    for task in tasks:
        print(f"  {format_task(task)}")


@cli("daytoday", name="add", flags={"date": ["-d", "--date"], "priority": ["-p", "--priority"]})
def add(
    title: list[str],
    date: str | None = None,
    at: str | None = None,
    priority: str | None = None,
) -> None:
    """Add a one-off task"""
    store = open_store()
    task = store.create_task_for_day(
        " ".join(title),
        _day(date),
        time=parse_time(at) if at else None,
        priority=priority,
    )
    print(f"added: {task.title} on {task.date.isoformat()}")


@cli("daytoday", name="done")
def done(ref: list[str], date: str | None = None) -> None:
    """Toggle a task done"""
    store = open_store()
    task = resolve_task(store, _join(ref), _day(date))
    updated = store.toggle_task_completed(task.id)
    print(f"✓ {updated.title}" if updated.completed else f"□ {updated.title}")


@cli("daytoday", name="mv")
def mv(ref: list[str], to: str, date: str | None = None) -> None:
    """Move a task to another date"""
    store = open_store()
    task = resolve_task(store, _join(ref), _day(date))
    moved = store.move_task(task.id, parse_date(to))
    print(f"{moved.title} → {moved.date.isoformat()}")


@cli("daytoday", name="rm")
def rm(ref: list[str], date: str | None = None) -> None:
    """Delete a task"""
    store = open_store()
    task = resolve_task(store, _join(ref), _day(date))
    store.delete_task(task.id)
    print(f"removed: {task.title}")


@cli("daytoday", name="eod")
def eod(date: str | None = None, at: str | None = None) -> None:
    """End-of-day summary, or set its time with --at"""
    store = open_store()
    if at:
        store.set_end_of_day_time(parse_time(at))
        print(f"end of day at {store.state.end_of_day_time}")
        return
    summary = store.end_of_day_summary(_day(date))
    print(f"{summary.completed} done, {summary.pending} pending")
    for title in summary.top_pending:
        print(f"  □ {title}")
