from datetime import date, datetime, timedelta

from .core.models import Daily, Monthly, Routine, Weekly, Yearly
from .lib.dates import (
    as_date,
    clamp_day,
    days_between,
    js_weekday,
    months_between,
    nth_weekday_of_month,
)

__all__ = ["get_routine_occurrences", "occurs_on"]

_WORKWEEK = frozenset({1, 2, 3, 4, 5})


def _daily(rule: Daily, days: int) -> bool:
    # arithmetic ceiling; the materializer's instance count stays authoritative
    if rule.occurrence_count is not None and days // rule.interval >= rule.occurrence_count:
        return False
    return days % rule.interval == 0


def _weekly(rule: Weekly, days: int, target: date) -> bool:
    if (days // 7) % rule.interval != 0:
        return False
    weekdays = rule.weekdays or _WORKWEEK
    return js_weekday(target) in weekdays


def _monthly(rule: Monthly, anchor: date, target: date) -> bool:
    month_diff = months_between(anchor, target)
    if month_diff < 0 or month_diff % rule.interval != 0:
        return False
    if rule.week_of_month is not None and rule.day_of_week is not None:
        return target.day == nth_weekday_of_month(
            target.year, target.month, rule.week_of_month, rule.day_of_week
        )
    day = rule.day_of_month if rule.day_of_month is not None else anchor.day
    return target.day == clamp_day(target.year, target.month, day)


def _yearly(rule: Yearly, anchor: date, target: date) -> bool:
    year_diff = target.year - anchor.year
    if year_diff < 0 or year_diff % rule.interval != 0:
        return False
    month = rule.month_of_year + 1 if rule.month_of_year is not None else anchor.month
    if target.month != month:
        return False
    day = rule.day_of_month if rule.day_of_month is not None else anchor.day
    return target.day == clamp_day(target.year, month, day)


def occurs_on(routine: Routine, day: date | datetime) -> bool:
    """Whether ``routine`` fires on ``day``.

    Pure and deterministic. Assumes the routine passed CRUD validation; an
    invalid interval or field is not guarded against here.
    """
    target = as_date(day)
    anchor = routine.anchor_date
    rule = routine.recurrence

    if target < anchor:
        return False
    if rule.end_date is not None and target > as_date(rule.end_date):
        return False

    days = days_between(anchor, target)
    if isinstance(rule, Daily):
        return _daily(rule, days)
    if isinstance(rule, Weekly):
        return _weekly(rule, days, target)
    if isinstance(rule, Monthly):
        return _monthly(rule, anchor, target)
    if isinstance(rule, Yearly):
        return _yearly(rule, anchor, target)
    return False


def get_routine_occurrences(
    routine: Routine, range_start: date | datetime, range_end: date | datetime
) -> list[date]:
    """Firing dates in ``[range_start, range_end]``, ascending.

    Scans day by day, so cost grows with the size of the range; callers bound
    it (a visible month for calendar previews).
    """
    current = as_date(range_start)
    end = as_date(range_end)
    occurrences = []
    while current <= end:
        if occurs_on(routine, current):
            occurrences.append(current)
        current += timedelta(days=1)
    return occurrences
