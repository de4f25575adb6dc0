"""Turn firing routines into concrete, once-only task instances for a date.

``plan`` decides what to create, ``insert`` applies a batch as a single state
swap. Both are pure over an explicit ``StoreState``; the store owns the live
state, persistence and reminder dispatch.
"""

import dataclasses
import logging
import uuid
from collections.abc import Callable
from datetime import date, datetime

from .core.errors import IntegrityError
from .core.models import DayTask, Routine, StoreState
from .lib import clock
from .lib.dates import as_date, date_key
from .recurrence import occurs_on

__all__ = ["count_materialized", "insert", "materialized_routine_ids", "plan"]

logger = logging.getLogger(__name__)


def materialized_routine_ids(state: StoreState, day: date) -> set[str]:
    """Routine ids already represented among the indexed tasks of ``day``.

    Indexed ids missing from the task map count as absent. An indexed task
    dated on another day breaks the index invariant and raises.
    """
    key = date_key(day)
    routine_ids = set()
    for task_id in state.tasks_by_date.get(key, []):
        task = state.tasks.get(task_id)
        if task is None:
            logger.warning("index for %s references missing task %s", key, task_id)
            continue
        if task.date != as_date(day):
            raise IntegrityError(
                f"task {task_id} indexed under {key} but dated {task.date.isoformat()}"
            )
        if task.routine_id is not None:
            routine_ids.add(task.routine_id)
    return routine_ids


def count_materialized(state: StoreState, routine_id: str) -> int:
    """Instances ever created for ``routine_id`` that still exist, across all dates."""
    return sum(1 for t in state.tasks.values() if t.routine_id == routine_id)


def _instance(routine: Routine, day: date, created: datetime, task_id: str) -> DayTask:
    return DayTask(
        id=task_id,
        routine_id=routine.id,
        title=routine.title,
        date=day,
        time=routine.time,
        completed=False,
        created=created,
        notification_type=routine.notification_type,
    )


def plan(
    day: date | datetime,
    state: StoreState,
    *,
    now: datetime | None = None,
    new_id: Callable[[], str] = lambda: str(uuid.uuid4()),
) -> list[DayTask]:
    """New instances to create for ``day``; empty when every firing routine is already there."""
    target = as_date(day)
    created = now or clock.now()
    existing = materialized_routine_ids(state, target)

    batch = []
    for routine in state.routines.values():
        if routine.id in existing:
            continue
        if routine.anchor_date > target:
            continue
        count = routine.recurrence.occurrence_count
        if count is not None and count_materialized(state, routine.id) >= count:
            continue
        if occurs_on(routine, target):
            batch.append(_instance(routine, target, created, new_id()))

    if batch:
        logger.debug("materializing %d task(s) for %s", len(batch), target.isoformat())
    return batch


def insert(state: StoreState, day: date | datetime, batch: list[DayTask]) -> StoreState:
    """Apply ``batch`` to ``state`` in one step: one task-map update, one index update."""
    if not batch:
        return state
    target = as_date(day)
    key = date_key(target)
    for task in batch:
        if task.date != target:
            raise IntegrityError(
                f"task {task.id} dated {task.date.isoformat()} inserted under {key}"
            )

    tasks = {**state.tasks, **{t.id: t for t in batch}}
    ids = [*state.tasks_by_date.get(key, []), *(t.id for t in batch)]
    tasks_by_date = {**state.tasks_by_date, key: ids}
    return dataclasses.replace(state, tasks=tasks, tasks_by_date=tasks_by_date)
