import dataclasses
from datetime import date, datetime
from typing import Any, ClassVar


@dataclasses.dataclass(frozen=True, order=True)
class TimeOfDay:
    hour: int
    minute: int = 0

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


# ── recurrence ───────────────────────────────────────────────────────────────


@dataclasses.dataclass(frozen=True, kw_only=True)
class _Rule:
    kind: ClassVar[str]
    interval: int = 1
    end_date: date | None = None
    occurrence_count: int | None = None


@dataclasses.dataclass(frozen=True, kw_only=True)
class Daily(_Rule):
    kind = "daily"


@dataclasses.dataclass(frozen=True, kw_only=True)
class Weekly(_Rule):
    """Weekdays use Sunday=0. An empty set means Monday-Friday."""

    kind = "weekly"
    weekdays: frozenset[int] = dataclasses.field(default_factory=frozenset)


@dataclasses.dataclass(frozen=True, kw_only=True)
class Monthly(_Rule):
    """Either ``day_of_month`` or ``week_of_month`` + ``day_of_week``.

    ``week_of_month == 5`` means the last matching weekday of the month.
    With neither form set, the anchor's day of month is used.
    """

    kind = "monthly"
    day_of_month: int | None = None
    week_of_month: int | None = None
    day_of_week: int | None = None

    @property
    def nth_weekday(self) -> bool:
        return self.week_of_month is not None and self.day_of_week is not None


@dataclasses.dataclass(frozen=True, kw_only=True)
class Yearly(_Rule):
    """``month_of_year`` is 0-based (January=0). Unset fields fall back to the anchor."""

    kind = "yearly"
    month_of_year: int | None = None
    day_of_month: int | None = None


Recurrence = Daily | Weekly | Monthly | Yearly

RECURRENCE_KINDS: dict[str, type[Recurrence]] = {
    "daily": Daily,
    "weekly": Weekly,
    "monthly": Monthly,
    "yearly": Yearly,
}


# ── entities ─────────────────────────────────────────────────────────────────


@dataclasses.dataclass(frozen=True)
class Routine:
    id: str
    title: str
    recurrence: Recurrence
    created: datetime
    time: TimeOfDay | None = None
    start_date: date | None = None
    notification_type: str | None = None
    tags: list[str] = dataclasses.field(default_factory=list, hash=False)

    @property
    def anchor_date(self) -> date:
        start = self.start_date if self.start_date is not None else self.created
        return start.date() if isinstance(start, datetime) else start


@dataclasses.dataclass(frozen=True)
class DayTask:
    id: str
    title: str
    date: date
    created: datetime
    routine_id: str | None = None
    time: TimeOfDay | None = None
    completed: bool = False
    notification_type: str | None = None
    priority: str | None = None
    estimated_minutes: int | None = None
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict, hash=False)


@dataclasses.dataclass(frozen=True)
class StoreState:
    routines: dict[str, Routine] = dataclasses.field(default_factory=dict)
    tasks: dict[str, DayTask] = dataclasses.field(default_factory=dict)
    tasks_by_date: dict[str, list[str]] = dataclasses.field(default_factory=dict)
    end_of_day_time: TimeOfDay = TimeOfDay(18, 0)


@dataclasses.dataclass(frozen=True)
class EndOfDaySummary:
    date: date
    pending: int = 0
    completed: int = 0
    top_pending: list[str] = dataclasses.field(default_factory=list, hash=False)
