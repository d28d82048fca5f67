"""Chart-ready series derived from completion history.

Series take either one habit's completion dates or a mapping of day to
completion count, e.g. counts summed over every habit.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Mapping, Optional, Union

from .models import CompletionSet, to_day
from .scheduling import weekday_index
from .scoring import Completions

logger = logging.getLogger(__name__)

DayCounts = Mapping[Union[str, date], int]


def _day_counts(completed: Union[Completions, DayCounts]) -> dict[date, int]:
    if not isinstance(completed, Mapping):
        return {day: 1 for day in CompletionSet.coerce(completed)}

    counts: dict[date, int] = {}
    for key, count in completed.items():
        try:
            day = to_day(key)
        except ValueError:
            logger.warning("Skipping unparseable chart date %r", key)
            continue
        counts[day] = counts.get(day, 0) + count
    return counts


def week_start(day: date, start_day: int = 0) -> date:
    """First day of the week containing `day`. `start_day` uses Sunday=0."""
    diff = (weekday_index(day) - start_day) % 7
    return day - timedelta(days=diff)


def daily_completion_data(
    completed_dates: Union[Completions, DayCounts],
    days: int = 30,
    *,
    today: Optional[date] = None,
) -> list[dict]:
    """One bar per day for the last `days` days, oldest first.

    `completed` is 0 or 1 for a single habit's dates, or the day's count
    when given a mapping.
    """
    counts = _day_counts(completed_dates)
    today = today or date.today()
    data = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        data.append({
            "date": day.isoformat(),
            "day": day.day,
            "completed": counts.get(day, 0),
        })
    return data


def weekday_distribution(completed_dates: Union[Completions, DayCounts]) -> list[int]:
    """Completion counts per weekday, Sunday first."""
    totals = [0] * 7
    for day, count in _day_counts(completed_dates).items():
        totals[weekday_index(day)] += count
    return totals
