import calendar
import re
from datetime import date, datetime, timedelta

from dateutil import parser as dateutil_parser
from dateutil.parser import ParserError

from ..core.errors import ValidationError
from . import clock

__all__ = [
    "as_date",
    "clamp_day",
    "date_key",
    "days_between",
    "js_weekday",
    "last_day_of_month",
    "months_between",
    "nth_weekday_of_month",
    "parse_date",
]

_WEEKDAYS = {"mon": 0, "tue": 1, "wed": 2, "thu": 3, "fri": 4, "sat": 5, "sun": 6}
_DAY_ALIASES = {
    "monday": "mon",
    "tuesday": "tue",
    "wednesday": "wed",
    "thursday": "thu",
    "friday": "fri",
    "saturday": "sat",
    "sunday": "sun",
}
_TIME_RE = re.compile(r"^\d{1,2}:\d{2}$")


# ── calendar arithmetic ──────────────────────────────────────────────────────


def as_date(val: date | datetime) -> date:
    """Drop the time of day; every calendar computation works on local midnight."""
    if isinstance(val, datetime):
        return val.date()
    return val


def date_key(val: date | datetime) -> str:
    return as_date(val).isoformat()


def days_between(anchor: date | datetime, target: date | datetime) -> int:
    return (as_date(target) - as_date(anchor)).days


def months_between(anchor: date | datetime, target: date | datetime) -> int:
    anchor, target = as_date(anchor), as_date(target)
    return (target.year - anchor.year) * 12 + (target.month - anchor.month)


def last_day_of_month(year: int, month: int) -> int:
    """Month is 1-based."""
    return calendar.monthrange(year, month)[1]


def clamp_day(year: int, month: int, day: int) -> int:
    return min(day, last_day_of_month(year, month))


def js_weekday(val: date | datetime) -> int:
    """Weekday with Sunday=0 .. Saturday=6."""
    return (as_date(val).weekday() + 1) % 7


def nth_weekday_of_month(year: int, month: int, week_of_month: int, day_of_week: int) -> int:
    """Day of month of the n-th ``day_of_week`` (Sunday=0) in a 1-based month.

    ``week_of_month == 5`` resolves to the last such weekday, whether or not
    the month has a literal fifth one.
    """
    first_weekday = js_weekday(date(year, month, 1))
    first = 1 + (day_of_week - first_weekday + 7) % 7
    if week_of_month == 5:
        days_in_month = last_day_of_month(year, month)
        day = first
        while day + 7 <= days_in_month:
            day += 7
        return day
    return first + (week_of_month - 1) * 7


# ── parsing ──────────────────────────────────────────────────────────────────


def parse_date(text: str) -> date:
    """Parse 'today', 'tomorrow', 'yesterday', weekday names or any date dateutil accepts.

    Weekday names resolve to the next such day, today included.
    """
    lowered = text.strip().lower()
    today = clock.today()

    if lowered == "today":
        return today
    if lowered == "yesterday":
        return today - timedelta(days=1)
    if lowered == "tomorrow":
        return today + timedelta(days=1)
    lowered = _DAY_ALIASES.get(lowered, lowered)
    if lowered in _WEEKDAYS:
        days_ahead = (_WEEKDAYS[lowered] - today.weekday() + 7) % 7
        return today + timedelta(days=days_ahead)
    if _TIME_RE.match(lowered):
        raise ValidationError(f"'{text}' is a time, not a date")
    try:
        return dateutil_parser.parse(
            text, default=datetime(today.year, today.month, today.day)
        ).date()
    except (ParserError, ValueError, OverflowError):
        raise ValidationError(f"cannot parse date '{text}'") from None

