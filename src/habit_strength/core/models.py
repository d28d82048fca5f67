"""Pydantic data models — the shared business objects.

Schedules, completion sets, scoring configuration and statistics. The store,
the tool server and the scoring engine all exchange these.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, Iterable, Iterator, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_serializer, field_validator

logger = logging.getLogger(__name__)

ALL_WEEKDAYS = frozenset(range(7))
DEFAULT_INTERVAL = 2


class Frequency(str, Enum):
    """Habit schedule frequency."""

    DAILY = "daily"
    WEEKLY = "weekly"
    INTERVAL = "interval"
    SPECIFIC_DAYS = "specific_days"


def to_day(value: Any) -> date:
    """Truncate a date, datetime or ISO date/datetime string to a calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise ValueError(f"Cannot interpret {value!r} as a date")


def to_local(value: datetime) -> datetime:
    """Naive local wall time for `value`; aware datetimes are converted first."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def clean_name(value):
    """Strip a habit name and reject blank ones."""
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("Name is required")
    return value


def check_weekdays(days):
    """Reject weekday indices outside 0-6."""
    if days is None:
        return days
    bad = sorted(d for d in days if d < 0 or d > 6)
    if bad:
        raise ValueError(f"Weekday indices must be 0-6 (Sunday=0), got {bad}")
    return days


class _Schedule(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class DailySchedule(_Schedule):
    """Every day counts."""

    frequency: Literal["daily"] = "daily"


class WeeklySchedule(_Schedule):
    """X times per week. Every day is schedulable; the target is display-only."""

    frequency: Literal["weekly"] = "weekly"
    times_per_week: int = Field(3, ge=1, le=7, alias="timesPerWeek")

    @field_validator("times_per_week", mode="before")
    @classmethod
    def _default_target(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 7:
            return value
        return 3


class IntervalSchedule(_Schedule):
    """Every `interval` days, anchored to the day the habit was created."""

    frequency: Literal["interval"] = "interval"
    interval: int = DEFAULT_INTERVAL
    created_at: date = Field(alias="createdAt")

    @field_validator("interval", mode="before")
    @classmethod
    def _default_interval(cls, value: Any) -> int:
        if isinstance(value, bool):
            return DEFAULT_INTERVAL
        try:
            interval = int(value)
        except (TypeError, ValueError):
            return DEFAULT_INTERVAL
        return interval if interval >= 2 else DEFAULT_INTERVAL

    @field_validator("created_at", mode="before")
    @classmethod
    def _truncate_anchor(cls, value: Any) -> date:
        return to_day(value)


class SpecificDaysSchedule(_Schedule):
    """Fixed weekdays, indexed 0-6 with Sunday=0."""

    frequency: Literal["specific_days"] = "specific_days"
    specific_days: frozenset[int] = Field(ALL_WEEKDAYS, alias="specificDays")

    @field_validator("specific_days", mode="before")
    @classmethod
    def _default_days(cls, value: Any) -> Any:
        if value is None:
            return ALL_WEEKDAYS
        return value

    @field_validator("specific_days")
    @classmethod
    def _check_range(cls, value: frozenset[int]) -> frozenset[int]:
        return check_weekdays(value)

    @field_serializer("specific_days")
    def _serialize_days(self, value: frozenset[int]) -> list[int]:
        return sorted(value)


HabitSchedule = Annotated[
    Union[DailySchedule, WeeklySchedule, IntervalSchedule, SpecificDaysSchedule],
    Field(discriminator="frequency"),
]

_SCHEDULE_ADAPTER: TypeAdapter[HabitSchedule] = TypeAdapter(HabitSchedule)
_SCHEDULE_TYPES = (DailySchedule, WeeklySchedule, IntervalSchedule, SpecificDaysSchedule)
_KNOWN_FREQUENCIES = {f.value for f in Frequency}
_SCHEDULE_FIELDS: dict[str, tuple[tuple[str, str], ...]] = {
    Frequency.DAILY.value: (),
    Frequency.WEEKLY.value: (("times_per_week", "timesPerWeek"),),
    Frequency.INTERVAL.value: (("interval", "interval"), ("created_at", "createdAt")),
    Frequency.SPECIFIC_DAYS.value: (("specific_days", "specificDays"),),
}


def parse_schedule(raw: Union[HabitSchedule, Mapping[str, Any], None]) -> HabitSchedule:
    """Build a schedule from a mapping, accepting snake_case or camelCase keys.

    Missing or unknown frequencies fall back to daily. Keys that are irrelevant
    to the chosen frequency are ignored. Mapping-like objects with attributes
    (e.g. ORM rows) should be converted to dicts by the caller.
    """
    if isinstance(raw, _SCHEDULE_TYPES):
        return raw
    if raw is None:
        return DailySchedule()

    data = dict(raw)
    frequency = data.get("frequency")
    if isinstance(frequency, Frequency):
        frequency = frequency.value
    if not isinstance(frequency, str) or frequency not in _KNOWN_FREQUENCIES:
        if frequency is not None:
            logger.debug("Unknown habit frequency %r, treating as daily", frequency)
        frequency = Frequency.DAILY.value

    fields = _SCHEDULE_FIELDS[frequency]
    picked = {"frequency": frequency}
    for name, alias in fields:
        if name in data and data[name] is not None:
            picked[name] = data[name]
        elif alias in data and data[alias] is not None:
            picked[name] = data[alias]
    return _SCHEDULE_ADAPTER.validate_python(picked)


class CompletionSet:
    """Immutable set of completion days keyed by epoch-day ordinal.

    Built from ISO `YYYY-MM-DD` strings, dates or datetimes. Entries that
    cannot be parsed are skipped.
    """

    __slots__ = ("_days",)

    def __init__(self, dates: Iterable[Union[str, date]] = ()):
        days = set()
        for value in dates:
            try:
                days.add(to_day(value).toordinal())
            except ValueError:
                logger.warning("Skipping unparseable completion date %r", value)
        self._days = frozenset(days)

    @classmethod
    def coerce(cls, dates: Union["CompletionSet", Iterable[Union[str, date]], None]) -> "CompletionSet":
        if isinstance(dates, CompletionSet):
            return dates
        return cls(dates or ())

    def __contains__(self, day: object) -> bool:
        if isinstance(day, datetime):
            day = day.date()
        if not isinstance(day, date):
            return False
        return day.toordinal() in self._days

    def __len__(self) -> int:
        return len(self._days)

    def __iter__(self) -> Iterator[date]:
        return iter(self.sorted())

    def __bool__(self) -> bool:
        return bool(self._days)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CompletionSet):
            return NotImplemented
        return self._days == other._days

    def __hash__(self) -> int:
        return hash(self._days)

    def __repr__(self) -> str:
        return f"CompletionSet({[d.isoformat() for d in self.sorted()]!r})"

    @property
    def earliest(self) -> Optional[date]:
        if not self._days:
            return None
        return date.fromordinal(min(self._days))

    def sorted(self) -> list[date]:
        return [date.fromordinal(o) for o in sorted(self._days)]


class ScoringConfig(BaseModel):
    """Tunable scoring parameters."""

    model_config = ConfigDict(frozen=True)

    increase_rate: float = Field(0.052, gt=0.0, le=1.0)
    decrease_rate: float = Field(0.035, gt=0.0, le=1.0)
    score_lookback_days: int = Field(60, ge=0)
    history_days: int = Field(30, ge=0)
    completion_rate_days: int = Field(30, ge=0)
    streak_max_days: int = Field(365, ge=0)


class ScoreHistoryPoint(BaseModel):
    """Running strength score at the end of one calendar day."""

    date: date
    score: float = Field(ge=0.0, le=1.0)


class HabitStats(BaseModel):
    """All derived statistics for one habit."""

    score: float = Field(ge=0.0, le=1.0, description="Habit strength from 0 (none) to 1 (ingrained)")
    current_streak: int = Field(ge=0)
    best_streak: int = Field(ge=0)
    total: int = Field(ge=0, description="Number of distinct completion days")
    completion_rate: float = Field(ge=0.0, le=1.0, description="Completed share of scheduled days")
    score_history: list[ScoreHistoryPoint] = Field(default_factory=list)


class HabitCreate(BaseModel):
    """Fields accepted when creating a habit."""

    name: str = Field(min_length=1, max_length=100)
    question: Optional[str] = Field(None, max_length=200)
    color: str = "#6c5ce7"
    icon: str = "🎯"
    frequency: Frequency = Frequency.DAILY
    times_per_week: int = Field(3, ge=1, le=7)
    interval: int = Field(DEFAULT_INTERVAL, ge=2, le=30)
    specific_days: Optional[list[int]] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return clean_name(value)

    @field_validator("specific_days")
    @classmethod
    def _check_days(cls, value: Optional[list[int]]) -> Optional[list[int]]:
        return check_weekdays(value)


class HabitUpdate(BaseModel):
    """Partial update; unset fields are left unchanged."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    question: Optional[str] = Field(None, max_length=200)
    color: Optional[str] = None
    icon: Optional[str] = None
    frequency: Optional[Frequency] = None
    times_per_week: Optional[int] = Field(None, ge=1, le=7)
    interval: Optional[int] = Field(None, ge=2, le=30)
    specific_days: Optional[list[int]] = None
    archived: Optional[bool] = None
    order: Optional[int] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: Optional[str]) -> Optional[str]:
        return clean_name(value)

    @field_validator("specific_days")
    @classmethod
    def _check_days(cls, value: Optional[list[int]]) -> Optional[list[int]]:
        return check_weekdays(value)


class HabitRecord(BaseModel):
    """A stored habit as handed out by the store."""

    id: int
    name: str
    question: Optional[str] = None
    color: str
    icon: str
    frequency: Frequency
    times_per_week: int
    interval: int
    specific_days: Optional[list[int]] = None
    archived: bool = False
    order: int = 0
    created_at: datetime

    @property
    def schedule(self) -> HabitSchedule:
        return parse_schedule({
            "frequency": self.frequency.value,
            "times_per_week": self.times_per_week,
            "interval": self.interval,
            "specific_days": self.specific_days,
            "created_at": to_local(self.created_at),
        })
