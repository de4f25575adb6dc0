from datetime import timedelta

from fncli import UsageError, cli

from . import config
from .core.errors import NotFoundError, ValidationError
from .core.models import Routine
from .core.types import UNSET
from .lib import clock
from .lib.dates import parse_date
from .lib.format import format_routine
from .lib.fuzzy import find_in_pool
from .lib.parsing import parse_recurrence, parse_time
from .store import Store, open_store

__all__ = ["resolve_routine"]


def resolve_routine(store: Store, ref: str) -> Routine:
    routine = find_in_pool(ref, store.list_routines())
    if not routine:
        raise NotFoundError(f"No routine found: '{ref}'")
    return routine


def _ref(ref: list[str]) -> str:
    text = " ".join(ref) if ref else ""
    if not text:
        raise UsageError("routine reference required")
    return text


def _count(count: str | None) -> int | None:
    if not count:
        return None
    try:
        return int(count)
    except ValueError:
        raise ValidationError(f"--count must be a whole number, got '{count}'") from None


# ── cli ──────────────────────────────────────────────────────────────────────


@cli("daytoday routine", name="add", flags={"tag": ["-t", "--tag"]})
def add(
    title: list[str],
    every: str = "daily",
    interval: int = 1,
    on: str | None = None,
    at: str | None = None,
    start: str | None = None,
    until: str | None = None,
    count: str | None = None,
    notify: str | None = None,
    tag: list[str] | None = None,
) -> None:
    """Add a routine (--every daily|weekly|monthly|yearly)"""
    recurrence = parse_recurrence(
        every,
        interval=interval,
        on=on,
        until=parse_date(until) if until else None,
        count=_count(count),
    )
    store = open_store()
    routine = store.create_routine(
        " ".join(title),
        recurrence,
        time=parse_time(at) if at else None,
        start_date=parse_date(start) if start else None,
        notification_type=notify or config.get_default_notification_type(),
        tags=tag,
    )
    print(f"added: {format_routine(routine)}")


@cli("daytoday routine", name="ls", default=True)
def ls() -> None:
    """List routines"""
    routines = open_store().list_routines()
    if not routines:
        print("no routines")
        return
    for routine in routines:
        print(f"  {format_routine(routine)}")


@cli("daytoday routine", name="edit")
def edit(ref: list[str], title: str | None = None, at: str | None = None) -> None:
    """Rename a routine or change its time; open tasks follow"""
    if title is None and at is None:
        raise UsageError("nothing to change: pass --title and/or --at")
    store = open_store()
    routine = resolve_routine(store, _ref(ref))
    updated = store.update_routine(
        routine.id,
        title=title if title is not None else UNSET,
        time=parse_time(at) if at is not None else UNSET,
    )
    print(f"updated: {format_routine(updated)}")


@cli("daytoday routine", name="rm")
def rm(ref: list[str]) -> None:
    """Delete a routine and all of its tasks"""
    store = open_store()
    routine = resolve_routine(store, _ref(ref))
    removed = store.delete_routine(routine.id)
    print(f"removed: {routine.title} ({removed} tasks)")


@cli("daytoday routine", name="preview")
def preview(ref: list[str], start: str | None = None, days: int = 31) -> None:
    """Upcoming dates a routine fires on"""
    store = open_store()
    routine = resolve_routine(store, _ref(ref))
    range_start = parse_date(start) if start else clock.today()
    dates = store.occurrences(routine.id, range_start, range_start + timedelta(days=days - 1))
    if not dates:
        print("no occurrences")
        return
    for d in dates:
        print(f"  {d.strftime('%a %Y-%m-%d')}")
