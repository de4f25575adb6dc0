import dataclasses
import logging
import uuid
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any

from . import materialize, notifications
from .core.errors import NotFoundError, ValidationError
from .core.models import (
    DayTask,
    EndOfDaySummary,
    Monthly,
    Recurrence,
    Routine,
    StoreState,
    TimeOfDay,
    Weekly,
    Yearly,
)
from .core.types import PRIORITIES, UNSET, Unset
from .db import Backend, SqliteBackend
from .lib import clock
from .lib.converters import dump_state, load_state
from .lib.dates import as_date, date_key
from .notifications import Notifier
from .recurrence import get_routine_occurrences

__all__ = ["Store", "open_store", "validate_recurrence", "validate_time"]

logger = logging.getLogger(__name__)

_PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}


# ── validation ───────────────────────────────────────────────────────────────


def _check_range(name: str, value: int | None, low: int, high: int) -> None:
    if value is not None and not low <= value <= high:
        raise ValidationError(f"{name} must be between {low} and {high}, got {value}")


def validate_time(time: TimeOfDay | None) -> None:
    if time is None:
        return
    _check_range("hour", time.hour, 0, 23)
    _check_range("minute", time.minute, 0, 59)


def validate_recurrence(rule: Recurrence) -> None:
    """Reject malformed rules; the evaluator never clamps or second-guesses them."""
    if rule.interval < 1:
        raise ValidationError(f"interval must be at least 1, got {rule.interval}")
    if rule.end_date is not None and rule.occurrence_count is not None:
        raise ValidationError("set either an end date or an occurrence count, not both")
    if rule.occurrence_count is not None and rule.occurrence_count < 1:
        raise ValidationError(f"occurrence count must be at least 1, got {rule.occurrence_count}")

    if isinstance(rule, Weekly):
        for day in rule.weekdays:
            _check_range("weekday", day, 0, 6)
    elif isinstance(rule, Monthly):
        if (rule.week_of_month is None) != (rule.day_of_week is None):
            raise ValidationError("nth-weekday rules need both week of month and day of week")
        if rule.nth_weekday and rule.day_of_month is not None:
            raise ValidationError("use either a day of month or an nth weekday, not both")
        _check_range("day of month", rule.day_of_month, 1, 31)
        _check_range("week of month", rule.week_of_month, 1, 5)
        _check_range("day of week", rule.day_of_week, 0, 6)
    elif isinstance(rule, Yearly):
        _check_range("month of year", rule.month_of_year, 0, 11)
        _check_range("day of month", rule.day_of_month, 1, 31)


def _normalize_recurrence(rule: Recurrence) -> Recurrence:
    if rule.end_date is None:
        return rule
    return dataclasses.replace(rule, end_date=as_date(rule.end_date))


def _validate_title(title: str) -> str:
    title = title.strip()
    if not title:
        raise ValidationError("title cannot be empty")
    return title


def _validate_task_fields(priority: str | None, estimated_minutes: int | None) -> None:
    if priority is not None and priority not in PRIORITIES:
        raise ValidationError(f"priority must be one of {', '.join(PRIORITIES)}")
    if estimated_minutes is not None and estimated_minutes < 0:
        raise ValidationError("estimated minutes cannot be negative")


# ── store ────────────────────────────────────────────────────────────────────


class Store:
    """Holds the live ``StoreState``; every mutation swaps it whole and persists the blob.

    Callers own the instance: build one per process around a backend and a
    notifier, and pass it where it is needed.
    """

    def __init__(
        self,
        backend: Backend,
        notifier: Notifier | None = None,
        state: StoreState | None = None,
    ):
        self.backend = backend
        self.notifier = notifier or notifications.NullNotifier()
        self._state = state if state is not None else StoreState()

    @classmethod
    def load(cls, backend: Backend, notifier: Notifier | None = None) -> "Store":
        return cls(backend, notifier, load_state(backend.load()))

    @property
    def state(self) -> StoreState:
        return self._state

    def _commit(self, state: StoreState) -> None:
        self.backend.save(dump_state(state))
        self._state = state

    # ── routines ─────────────────────────────────────────────────────────────

    def get_routine(self, routine_id: str) -> Routine:
        routine = self._state.routines.get(routine_id)
        if routine is None:
            raise NotFoundError(f"no routine '{routine_id}'")
        return routine

    def list_routines(self) -> list[Routine]:
        return sorted(self._state.routines.values(), key=lambda r: r.created)

    def create_routine(
        self,
        title: str,
        recurrence: Recurrence,
        time: TimeOfDay | None = None,
        start_date: date | None = None,
        notification_type: str | None = None,
        tags: list[str] | None = None,
    ) -> Routine:
        validate_recurrence(recurrence)
        validate_time(time)
        routine = Routine(
            id=str(uuid.uuid4()),
            title=_validate_title(title),
            recurrence=_normalize_recurrence(recurrence),
            created=clock.now(),
            time=time,
            start_date=as_date(start_date) if start_date is not None else None,
            notification_type=notification_type,
            tags=[t.lower() for t in tags or []],
        )
        self._commit(
            dataclasses.replace(self._state, routines={**self._state.routines, routine.id: routine})
        )
        return routine

    def update_routine(
        self,
        routine_id: str,
        title: str | Unset = UNSET,
        recurrence: Recurrence | Unset = UNSET,
        time: TimeOfDay | None | Unset = UNSET,
        start_date: date | None | Unset = UNSET,
        notification_type: str | None | Unset = UNSET,
        tags: list[str] | Unset = UNSET,
    ) -> Routine:
        """Apply a partial update; title and time flow onto linked tasks not yet completed."""
        routine = self.get_routine(routine_id)
        changes: dict[str, Any] = {}
        if title is not UNSET:
            changes["title"] = _validate_title(title)
        if recurrence is not UNSET:
            validate_recurrence(recurrence)
            changes["recurrence"] = _normalize_recurrence(recurrence)
        if time is not UNSET:
            validate_time(time)
            changes["time"] = time
        if start_date is not UNSET:
            changes["start_date"] = as_date(start_date) if start_date is not None else None
        if notification_type is not UNSET:
            changes["notification_type"] = notification_type
        if tags is not UNSET:
            changes["tags"] = [t.lower() for t in tags]
        updated = dataclasses.replace(routine, **changes)

        propagated = {k: v for k, v in changes.items() if k in ("title", "time")}
        tasks = self._state.tasks
        if propagated:
            tasks = {
                tid: (
                    dataclasses.replace(t, **propagated)
                    if t.routine_id == routine_id and not t.completed
                    else t
                )
                for tid, t in tasks.items()
            }
        self._commit(
            dataclasses.replace(
                self._state,
                routines={**self._state.routines, routine_id: updated},
                tasks=tasks,
            )
        )
        return updated

    def delete_routine(self, routine_id: str) -> int:
        """Delete a routine and every task bound to it. Returns the number of tasks removed."""
        self.get_routine(routine_id)
        doomed = {tid for tid, t in self._state.tasks.items() if t.routine_id == routine_id}
        routines = {rid: r for rid, r in self._state.routines.items() if rid != routine_id}
        tasks = {tid: t for tid, t in self._state.tasks.items() if tid not in doomed}
        tasks_by_date = {
            key: [tid for tid in ids if tid not in doomed] if doomed.intersection(ids) else ids
            for key, ids in self._state.tasks_by_date.items()
        }
        self._commit(
            dataclasses.replace(
                self._state, routines=routines, tasks=tasks, tasks_by_date=tasks_by_date
            )
        )
        logger.debug("deleted routine %s with %d task(s)", routine_id, len(doomed))
        return len(doomed)

    def occurrences(
        self, routine_id: str, range_start: date | datetime, range_end: date | datetime
    ) -> list[date]:
        return get_routine_occurrences(self.get_routine(routine_id), range_start, range_end)

    # ── tasks ────────────────────────────────────────────────────────────────

    def get_task(self, task_id: str) -> DayTask:
        task = self._state.tasks.get(task_id)
        if task is None:
            raise NotFoundError(f"no task '{task_id}'")
        return task

    def tasks_for_date(self, day: date | datetime) -> list[DayTask]:
        """Tasks of ``day`` in index order; dangling ids are skipped."""
        ids = self._state.tasks_by_date.get(date_key(day), [])
        return [self._state.tasks[tid] for tid in ids if tid in self._state.tasks]

    def create_task_for_day(
        self,
        title: str,
        day: date | datetime,
        time: TimeOfDay | None = None,
        priority: str | None = None,
        estimated_minutes: int | None = None,
        metadata: dict[str, Any] | None = None,
        notification_type: str | None = None,
    ) -> DayTask:
        validate_time(time)
        _validate_task_fields(priority, estimated_minutes)
        task = DayTask(
            id=str(uuid.uuid4()),
            title=_validate_title(title),
            date=as_date(day),
            created=clock.now(),
            time=time,
            notification_type=notification_type,
            priority=priority,
            estimated_minutes=estimated_minutes,
            metadata=dict(metadata or {}),
        )
        self._commit(materialize.insert(self._state, task.date, [task]))
        return task

    def update_task(
        self,
        task_id: str,
        title: str | Unset = UNSET,
        time: TimeOfDay | None | Unset = UNSET,
        priority: str | None | Unset = UNSET,
        estimated_minutes: int | None | Unset = UNSET,
        metadata: dict[str, Any] | Unset = UNSET,
        notification_type: str | None | Unset = UNSET,
    ) -> DayTask:
        """Edit a task in place. Use ``move_task`` to change its date."""
        task = self.get_task(task_id)
        changes: dict[str, Any] = {}
        if title is not UNSET:
            changes["title"] = _validate_title(title)
        if time is not UNSET:
            validate_time(time)
            changes["time"] = time
        if priority is not UNSET:
            _validate_task_fields(priority, None)
            changes["priority"] = priority
        if estimated_minutes is not UNSET:
            _validate_task_fields(None, estimated_minutes)
            changes["estimated_minutes"] = estimated_minutes
        if metadata is not UNSET:
            changes["metadata"] = dict(metadata)
        if notification_type is not UNSET:
            changes["notification_type"] = notification_type
        updated = dataclasses.replace(task, **changes)
        self._commit(dataclasses.replace(self._state, tasks={**self._state.tasks, task_id: updated}))
        return updated

    def toggle_task_completed(self, task_id: str) -> DayTask:
        task = self.get_task(task_id)
        updated = dataclasses.replace(task, completed=not task.completed)
        self._commit(dataclasses.replace(self._state, tasks={**self._state.tasks, task_id: updated}))
        return updated

    def move_task(self, task_id: str, day: date | datetime) -> DayTask:
        """Re-date a task, keeping its identity; the index follows."""
        task = self.get_task(task_id)
        target = as_date(day)
        if task.date == target:
            return task
        old_key, new_key = date_key(task.date), date_key(target)
        moved = dataclasses.replace(task, date=target)
        tasks_by_date = {
            **self._state.tasks_by_date,
            old_key: [tid for tid in self._state.tasks_by_date.get(old_key, []) if tid != task_id],
            new_key: [*self._state.tasks_by_date.get(new_key, []), task_id],
        }
        self._commit(
            dataclasses.replace(
                self._state,
                tasks={**self._state.tasks, task_id: moved},
                tasks_by_date=tasks_by_date,
            )
        )
        return moved

    def delete_task(self, task_id: str) -> None:
        task = self.get_task(task_id)
        key = date_key(task.date)
        tasks = {tid: t for tid, t in self._state.tasks.items() if tid != task_id}
        tasks_by_date = {
            **self._state.tasks_by_date,
            key: [tid for tid in self._state.tasks_by_date.get(key, []) if tid != task_id],
        }
        self._commit(dataclasses.replace(self._state, tasks=tasks, tasks_by_date=tasks_by_date))

    # ── materialization ──────────────────────────────────────────────────────

    def generate_tasks_for_date(self, day: date | datetime) -> list[DayTask]:
        """Materialize every routine firing on ``day`` that is not there yet.

        Safe to call any number of times; repeat calls insert nothing. The
        batch lands in one state swap, then reminders go out best-effort.
        """
        target = as_date(day)
        batch = materialize.plan(target, self._state)
        if not batch:
            return []
        self._commit(materialize.insert(self._state, target, batch))
        notifications.dispatch(notifications.reminders_for(batch), self.notifier)
        return batch

    def generate_tasks_for_range(
        self, range_start: date | datetime, range_end: date | datetime
    ) -> list[DayTask]:
        created: list[DayTask] = []
        current, end = as_date(range_start), as_date(range_end)
        while current <= end:
            created.extend(self.generate_tasks_for_date(current))
            current += timedelta(days=1)
        return created

    # ── end of day ───────────────────────────────────────────────────────────

    def set_end_of_day_time(self, time: TimeOfDay) -> None:
        validate_time(time)
        self._commit(dataclasses.replace(self._state, end_of_day_time=time))

    def end_of_day_summary(self, day: date | datetime, top: int = 3) -> EndOfDaySummary:
        tasks = self.tasks_for_date(day)
        pending = [t for t in tasks if not t.completed]
        ranked = sorted(
            pending,
            key=lambda t: (_PRIORITY_RANK.get(t.priority or "", 3), t.time is None, t.time),
        )
        return EndOfDaySummary(
            date=as_date(day),
            pending=len(pending),
            completed=len(tasks) - len(pending),
            top_pending=[t.title for t in ranked[:top]],
        )


def open_store(db_path: Path | None = None, notifier: Notifier | None = None) -> Store:
    """Store over the sqlite blob, with the configured reminder notifier."""
    return Store.load(SqliteBackend(db_path), notifier or notifications.notifier_from_config())
