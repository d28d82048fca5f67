"""Which calendar days count toward a habit's score and streaks."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping, Union

from .models import (
    DailySchedule,
    HabitSchedule,
    IntervalSchedule,
    SpecificDaysSchedule,
    WeeklySchedule,
    parse_schedule,
)


def weekday_index(day: date) -> int:
    """Weekday index with Sunday=0 through Saturday=6."""
    return day.isoweekday() % 7


def is_day_scheduled(day: date, habit: Union[HabitSchedule, Mapping[str, Any], None]) -> bool:
    """Return True if `day` is a day the habit is expected to be done."""
    if isinstance(day, datetime):
        day = day.date()
    schedule = parse_schedule(habit)

    if isinstance(schedule, (DailySchedule, WeeklySchedule)):
        # Weekly targets are not tied to particular days, so every day is eligible.
        return True
    if isinstance(schedule, IntervalSchedule):
        days_since_start = (day - schedule.created_at).days
        return days_since_start >= 0 and days_since_start % schedule.interval == 0
    if isinstance(schedule, SpecificDaysSchedule):
        return weekday_index(day) in schedule.specific_days
    raise TypeError(f"Unsupported schedule type: {type(schedule).__name__}")
