import re
from datetime import date

from ..core.errors import ValidationError
from ..core.models import Daily, Monthly, Recurrence, TimeOfDay, Weekly, Yearly

__all__ = ["parse_monthly", "parse_recurrence", "parse_time", "parse_weekdays", "parse_yearly"]

# Sunday=0, matching the recurrence model
_WEEKDAY_NUMBERS = {"sun": 0, "mon": 1, "tue": 2, "wed": 3, "thu": 4, "fri": 5, "sat": 6}
_ORDINALS = {
    "first": 1,
    "second": 2,
    "third": 3,
    "fourth": 4,
    "fifth": 5,
    "last": 5,
    "1st": 1,
    "2nd": 2,
    "3rd": 3,
    "4th": 4,
    "5th": 5,
}
_NTH_RE = re.compile(r"^(\w+)[-\s]+([a-z]+)$")


def parse_time(text: str) -> TimeOfDay:
    m = re.match(r"^(\d{1,2}):(\d{2})$", text.strip().lower())
    if m:
        h, mn = int(m.group(1)), int(m.group(2))
        if 0 <= h <= 23 and 0 <= mn <= 59:
            return TimeOfDay(h, mn)
    raise ValidationError(f"invalid time '{text}' (use HH:MM)")


def _weekday(token: str) -> int:
    key = token.strip().lower()[:3]
    if key not in _WEEKDAY_NUMBERS:
        raise ValidationError(f"unknown weekday '{token}'")
    return _WEEKDAY_NUMBERS[key]


def parse_weekdays(text: str | None) -> frozenset[int]:
    """'mon,wed,fri' -> {1, 3, 5}. 'weekdays' or nothing -> empty (Monday-Friday)."""
    if not text or text.strip().lower() in ("weekdays", "workdays"):
        return frozenset()
    if text.strip().lower() == "weekends":
        return frozenset({0, 6})
    return frozenset(_weekday(tok) for tok in text.split(",") if tok.strip())


def parse_monthly(text: str | None) -> dict[str, int]:
    """'15' -> day of month; '2nd-tue', 'last fri' -> nth weekday."""
    if not text:
        return {}
    cleaned = text.strip().lower()
    if cleaned.isdigit():
        return {"day_of_month": int(cleaned)}
    m = _NTH_RE.match(cleaned)
    if not m:
        raise ValidationError(f"cannot read monthly rule '{text}' (try '15' or 'last-fri')")
    ordinal, weekday = m.groups()
    week = int(ordinal) if ordinal.isdigit() else _ORDINALS.get(ordinal)
    if week is None:
        raise ValidationError(f"unknown ordinal '{ordinal}'")
    return {"week_of_month": week, "day_of_week": _weekday(weekday)}


def parse_yearly(text: str | None) -> dict[str, int]:
    """'25-12' (DD-MM) -> December 25th, stored with a 0-based month."""
    if not text:
        return {}
    parts = text.strip().split("-")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValidationError(f"invalid yearly date '{text}' (use DD-MM)")
    day, month = int(parts[0]), int(parts[1])
    return {"day_of_month": day, "month_of_year": month - 1}


def parse_recurrence(
    every: str,
    interval: int = 1,
    on: str | None = None,
    until: date | None = None,
    count: int | None = None,
) -> Recurrence:
    common = {"interval": interval, "end_date": until, "occurrence_count": count}
    kind = every.strip().lower()
    if kind == "daily":
        return Daily(**common)
    if kind == "weekly":
        return Weekly(weekdays=parse_weekdays(on), **common)
    if kind == "monthly":
        return Monthly(**parse_monthly(on), **common)
    if kind == "yearly":
        return Yearly(**parse_yearly(on), **common)
    raise ValidationError(f"unknown frequency '{every}' (use daily, weekly, monthly or yearly)")
