import json
from datetime import date, datetime
from typing import Any, cast

from ..core.errors import StorageError
from ..core.models import (
    RECURRENCE_KINDS,
    DayTask,
    Daily,
    Monthly,
    Recurrence,
    Routine,
    StoreState,
    TimeOfDay,
    Weekly,
    Yearly,
)

__all__ = [
    "dump_state",
    "load_state",
    "dict_to_recurrence",
    "dict_to_routine",
    "dict_to_task",
    "recurrence_to_dict",
    "routine_to_dict",
    "task_to_dict",
]

SCHEMA_VERSION = 1

Record = dict[str, Any]


def _parse_date(val) -> date | None:
    """Parse a date value that may be an ISO date or datetime string."""
    if isinstance(val, str) and val:
        return date.fromisoformat(val.split("T")[0])
    return None


def _parse_datetime(val) -> datetime:
    """Parse a datetime value that may be str or numeric timestamp."""
    if isinstance(val, (int, float)):
        return datetime.fromtimestamp(val)
    if isinstance(val, str) and val:
        try:
            return datetime.fromisoformat(val)
        except ValueError:
            return datetime.combine(date.fromisoformat(val), datetime.min.time())
    return datetime.min


def _parse_time(val) -> TimeOfDay | None:
    if isinstance(val, dict):
        return TimeOfDay(int(val["hour"]), int(val.get("minute", 0)))
    return None


def _time_to_dict(val: TimeOfDay | None) -> Record | None:
    return {"hour": val.hour, "minute": val.minute} if val is not None else None


def _date_str(val: date | None) -> str | None:
    return val.isoformat() if val is not None else None


def _optional_int(val) -> int | None:
    return int(val) if val is not None else None


def recurrence_to_dict(rule: Recurrence) -> Record:
    data: Record = {
        "type": rule.kind,
        "interval": rule.interval,
        "endDate": _date_str(rule.end_date),
        "occurrenceCount": rule.occurrence_count,
    }
    if isinstance(rule, Weekly):
        data["weekdays"] = sorted(rule.weekdays)
    elif isinstance(rule, Monthly):
        data["dayOfMonth"] = rule.day_of_month
        data["weekOfMonth"] = rule.week_of_month
        data["dayOfWeek"] = rule.day_of_week
    elif isinstance(rule, Yearly):
        data["monthOfYear"] = rule.month_of_year
        data["dayOfMonth"] = rule.day_of_month
    return data


def dict_to_recurrence(data: Record) -> Recurrence:
    kind = data.get("type")
    if kind not in RECURRENCE_KINDS:
        raise StorageError(f"unknown recurrence type '{kind}'")
    common = {
        "interval": int(data.get("interval") or 1),
        "end_date": _parse_date(data.get("endDate")),
        "occurrence_count": _optional_int(data.get("occurrenceCount")),
    }
    if kind == "weekly":
        return Weekly(weekdays=frozenset(int(d) for d in data.get("weekdays") or []), **common)
    if kind == "monthly":
        return Monthly(
            day_of_month=_optional_int(data.get("dayOfMonth")),
            week_of_month=_optional_int(data.get("weekOfMonth")),
            day_of_week=_optional_int(data.get("dayOfWeek")),
            **common,
        )
    if kind == "yearly":
        return Yearly(
            month_of_year=_optional_int(data.get("monthOfYear")),
            day_of_month=_optional_int(data.get("dayOfMonth")),
            **common,
        )
    return Daily(**common)


def routine_to_dict(routine: Routine) -> Record:
    return {
        "id": routine.id,
        "title": routine.title,
        "time": _time_to_dict(routine.time),
        "recurrence": recurrence_to_dict(routine.recurrence),
        "createdAt": routine.created.isoformat(),
        "startDate": _date_str(routine.start_date),
        "notificationType": routine.notification_type,
        "tags": list(routine.tags),
    }


def dict_to_routine(data: Record) -> Routine:
    return Routine(
        id=cast(str, data["id"]),
        title=cast(str, data["title"]),
        recurrence=dict_to_recurrence(data.get("recurrence") or {"type": "daily"}),
        created=_parse_datetime(data.get("createdAt")),
        time=_parse_time(data.get("time")),
        start_date=_parse_date(data.get("startDate")),
        notification_type=data.get("notificationType"),
        tags=list(data.get("tags") or []),
    )


def task_to_dict(task: DayTask) -> Record:
    return {
        "id": task.id,
        "routineId": task.routine_id,
        "title": task.title,
        "date": task.date.isoformat(),
        "time": _time_to_dict(task.time),
        "completed": task.completed,
        "createdAt": task.created.isoformat(),
        "notificationType": task.notification_type,
        "priority": task.priority,
        "estimatedMinutes": task.estimated_minutes,
        "metadata": dict(task.metadata),
    }


def dict_to_task(data: Record) -> DayTask:
    day = _parse_date(data.get("date"))
    if day is None:
        raise StorageError(f"task {data.get('id')} has no date")
    return DayTask(
        id=cast(str, data["id"]),
        title=cast(str, data["title"]),
        date=day,
        created=_parse_datetime(data.get("createdAt")),
        routine_id=data.get("routineId"),
        time=_parse_time(data.get("time")),
        completed=bool(data.get("completed", False)),
        notification_type=data.get("notificationType"),
        priority=data.get("priority"),
        estimated_minutes=_optional_int(data.get("estimatedMinutes")),
        metadata=dict(data.get("metadata") or {}),
    )


def dump_state(state: StoreState) -> str:
    """Serialize the whole store into the persisted blob."""
    return json.dumps(
        {
            "version": SCHEMA_VERSION,
            "routines": {rid: routine_to_dict(r) for rid, r in state.routines.items()},
            "tasks": {tid: task_to_dict(t) for tid, t in state.tasks.items()},
            "tasksByDate": {key: list(ids) for key, ids in state.tasks_by_date.items()},
            "endOfDayTime": _time_to_dict(state.end_of_day_time),
        },
        ensure_ascii=False,
    )


def load_state(blob: str | None) -> StoreState:
    """Inverse of ``dump_state``. An absent blob is an empty store."""
    if not blob:
        return StoreState()
    try:
        data = json.loads(blob)
        end_of_day = _parse_time(data.get("endOfDayTime"))
        return StoreState(
            routines={rid: dict_to_routine(r) for rid, r in (data.get("routines") or {}).items()},
            tasks={tid: dict_to_task(t) for tid, t in (data.get("tasks") or {}).items()},
            tasks_by_date={
                key: list(ids) for key, ids in (data.get("tasksByDate") or {}).items()
            },
            end_of_day_time=end_of_day or StoreState().end_of_day_time,
        )
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise StorageError(f"corrupt store blob: {e}") from e
