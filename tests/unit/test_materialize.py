import dataclasses
from datetime import date, datetime

import pytest

from daytoday import materialize
from daytoday.core.errors import IntegrityError
from daytoday.core.models import (
    Daily,
    DayTask,
    Monthly,
    Routine,
    StoreState,
    TimeOfDay,
    Weekly,
)

CREATED = datetime(2024, 1, 1, 9, 0)


def routine(rid="r1", recurrence=None, **kwargs) -> Routine:
    return Routine(
        id=rid,
        title=kwargs.pop("title", f"routine {rid}"),
        recurrence=recurrence or Daily(),
        created=CREATED,
        **kwargs,
    )


def state_with(*routines: Routine) -> StoreState:
    return StoreState(routines={r.id: r for r in routines})


def run(state: StoreState, day: date) -> tuple[StoreState, list[DayTask]]:
    batch = materialize.plan(day, state, now=CREATED)
    return materialize.insert(state, day, batch), batch


def test_plan_builds_instance_from_routine():
    r = routine(time=TimeOfDay(7, 15), notification_type="alarm", title="stretch")
    batch = materialize.plan(date(2024, 1, 2), state_with(r), now=CREATED)

    assert len(batch) == 1
    task = batch[0]
    assert task.routine_id == "r1"
    assert task.title == "stretch"
    assert task.date == date(2024, 1, 2)
    assert task.time == TimeOfDay(7, 15)
    assert task.notification_type == "alarm"
    assert task.completed is False
    assert task.id != "r1"


def test_insert_updates_map_and_index():
    state, batch = run(state_with(routine("a"), routine("b")), date(2024, 1, 1))
    assert state.tasks_by_date["2024-01-01"] == [t.id for t in batch]
    assert all(state.tasks[t.id] == t for t in batch)


def test_second_call_is_a_no_op():
    state = state_with(routine("a"), routine("b", Weekly()))
    state, first = run(state, date(2024, 1, 3))
    again = materialize.plan(date(2024, 1, 3), state, now=CREATED)

    assert len(first) == 2
    assert again == []


def test_insert_empty_batch_returns_same_state():
    state = state_with(routine())
    assert materialize.insert(state, date(2024, 1, 1), []) is state


def test_skips_routines_not_firing():
    state = state_with(routine(recurrence=Weekly()))
    assert materialize.plan(date(2024, 1, 6), state, now=CREATED) == []


def test_skips_routine_before_anchor():
    state = state_with(routine(start_date=date(2024, 2, 1)))
    assert materialize.plan(date(2024, 1, 15), state, now=CREATED) == []


def test_occurrence_ceiling_daily():
    state = state_with(routine(recurrence=Daily(occurrence_count=3)))
    for d in (1, 2, 3):
        state, _ = run(state, date(2024, 1, d))

    assert materialize.plan(date(2024, 1, 4), state, now=CREATED) == []
    assert materialize.count_materialized(state, "r1") == 3


def test_occurrence_ceiling_counts_instances_for_any_variant():
    state = state_with(routine(recurrence=Weekly(occurrence_count=2)))
    state, _ = run(state, date(2024, 1, 1))
    state, _ = run(state, date(2024, 1, 2))

    assert materialize.plan(date(2024, 1, 3), state, now=CREATED) == []


def test_deleted_instance_frees_a_slot():
    state = state_with(routine(recurrence=Monthly(day_of_month=1, occurrence_count=1)))
    state, batch = run(state, date(2024, 1, 1))
    task_id = batch[0].id
    state = dataclasses.replace(
        state,
        tasks={},
        tasks_by_date={"2024-01-01": []},
    )

    assert state.tasks.get(task_id) is None
    assert len(materialize.plan(date(2024, 2, 1), state, now=CREATED)) == 1


def test_manual_task_does_not_block_routine():
    manual = DayTask(id="m1", title="manual", date=date(2024, 1, 1), created=CREATED)
    state = dataclasses.replace(
        state_with(routine()),
        tasks={"m1": manual},
        tasks_by_date={"2024-01-01": ["m1"]},
    )
    state, batch = run(state, date(2024, 1, 1))

    assert len(batch) == 1
    assert state.tasks_by_date["2024-01-01"] == ["m1", batch[0].id]


def test_dangling_index_id_is_treated_as_absent():
    state = dataclasses.replace(state_with(routine()), tasks_by_date={"2024-01-01": ["ghost"]})
    assert len(materialize.plan(date(2024, 1, 1), state, now=CREATED)) == 1


def test_misdated_index_entry_raises():
    stray = DayTask(id="t1", title="x", date=date(2024, 1, 2), created=CREATED, routine_id="r1")
    state = dataclasses.replace(
        state_with(routine()),
        tasks={"t1": stray},
        tasks_by_date={"2024-01-01": ["t1"]},
    )
    with pytest.raises(IntegrityError):
        materialize.plan(date(2024, 1, 1), state, now=CREATED)


def test_insert_rejects_batch_for_other_date():
    batch = materialize.plan(date(2024, 1, 1), state_with(routine()), now=CREATED)
    with pytest.raises(IntegrityError):
        materialize.insert(state_with(routine()), date(2024, 1, 2), batch)


def test_plan_is_pure():
    state = state_with(routine())
    materialize.plan(date(2024, 1, 1), state, now=CREATED)
    assert state.tasks == {}
    assert state.tasks_by_date == {}
