from ..core.models import Daily, DayTask, Monthly, Routine, Weekly, Yearly

__all__ = ["describe_recurrence", "format_task", "format_routine"]

_WEEKDAY_NAMES = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]
_MONTH_NAMES = ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"]
_ORDINAL_NAMES = {1: "1st", 2: "2nd", 3: "3rd", 4: "4th", 5: "last"}


def _every(interval: int, unit: str) -> str:
    return f"every {unit}" if interval == 1 else f"every {interval} {unit}s"


def describe_recurrence(routine: Routine) -> str:
    rule = routine.recurrence
    if isinstance(rule, Daily):
        text = _every(rule.interval, "day")
    elif isinstance(rule, Weekly):
        days = ",".join(_WEEKDAY_NAMES[d] for d in sorted(rule.weekdays)) or "mon-fri"
        text = f"{_every(rule.interval, 'week')} on {days}"
    elif isinstance(rule, Monthly):
        if rule.week_of_month is not None and rule.day_of_week is not None:
            on = f"{_ORDINAL_NAMES[rule.week_of_month]} {_WEEKDAY_NAMES[rule.day_of_week]}"
        else:
            on = f"day {rule.day_of_month or routine.anchor_date.day}"
        text = f"{_every(rule.interval, 'month')} on {on}"
    elif isinstance(rule, Yearly):
        month = rule.month_of_year
        if month is None:
            month = routine.anchor_date.month - 1
        day = rule.day_of_month or routine.anchor_date.day
        text = f"{_every(rule.interval, 'year')} on {_MONTH_NAMES[month]} {day}"
    else:
        text = "?"
    if rule.end_date is not None:
        text += f" until {rule.end_date.isoformat()}"
    if rule.occurrence_count is not None:
        text += f" x{rule.occurrence_count}"
    return text


def format_task(task: DayTask) -> str:
    mark = "x" if task.completed else " "
    time_str = f"{task.time} " if task.time is not None else ""
    recurring = " ↻" if task.routine_id else ""
    return f"[{mark}] {time_str}{task.title}{recurring}  [{task.id[:8]}]"


def format_routine(routine: Routine) -> str:
    time_str = f" at {routine.time}" if routine.time is not None else ""
    return f"{routine.title}  {describe_recurrence(routine)}{time_str}  [{routine.id[:8]}]"
