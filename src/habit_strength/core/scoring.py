"""Habit strength and streak scoring engine.

Strength is a continuous score in [0, 1] rebuilt from the completion history
every time it is needed. A completion on a scheduled day raises it, a miss
lowers it, and days the habit is not scheduled leave it alone. Unlike a
"don't break the chain" counter, a single miss never resets it to zero.

Every function here is pure: the same completions, schedule and reference
day always give the same result.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Iterable, Iterator, Mapping, Optional, Union

from .models import (
    CompletionSet,
    HabitSchedule,
    HabitStats,
    ScoreHistoryPoint,
    ScoringConfig,
    parse_schedule,
)
from .scheduling import is_day_scheduled

logger = logging.getLogger(__name__)

MAX_SCORE = 1.0
MIN_SCORE = 0.0

DEFAULT_CONFIG = ScoringConfig()

Completions = Union[CompletionSet, Iterable[Union[str, date]]]
Schedule = Union[HabitSchedule, Mapping[str, Any], None]


def apply_day(score: float, scheduled: bool, completed: bool, config: ScoringConfig = DEFAULT_CONFIG) -> float:
    """Advance the running score by one calendar day."""
    if not scheduled:
        return score
    if completed:
        # Gains shrink as the score climbs, so 100% is hard to reach.
        increase = config.increase_rate * (1 - score * 0.5)
        return min(MAX_SCORE, score + increase)
    # Stronger habits lose more on a miss.
    decrease = config.decrease_rate * (0.5 + score * 0.5)
    return max(MIN_SCORE, score - decrease)


def _walk(
    completed: CompletionSet,
    schedule: HabitSchedule,
    days: int,
    today: date,
    config: ScoringConfig,
) -> Iterator[tuple[date, float]]:
    """Yield (day, running score) for each of the last `days` days, oldest first."""
    score = MIN_SCORE
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        score = apply_day(score, is_day_scheduled(day, schedule), day in completed, config)
        yield day, score


def calculate_habit_score(
    completed_dates: Completions,
    habit: Schedule,
    lookback_days: Optional[int] = None,
    *,
    today: Optional[date] = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> float:
    """Habit strength after walking the lookback window.

    Args:
        completed_dates: Days the habit was completed (ISO strings or dates).
        habit: Schedule model or raw schedule mapping.
        lookback_days: Window length ending today. Defaults to
            `config.score_lookback_days` (60).
        today: Last day of the window. Defaults to the current date.
        config: Increase/decrease rates.

    Returns:
        Score between 0 and 1.
    """
    completed = CompletionSet.coerce(completed_dates)
    schedule = parse_schedule(habit)
    days = config.score_lookback_days if lookback_days is None else lookback_days
    score = MIN_SCORE
    for _, score in _walk(completed, schedule, days, today or date.today(), config):
        pass
    return score


def calculate_score_history(
    completed_dates: Completions,
    habit: Schedule,
    days: Optional[int] = None,
    *,
    today: Optional[date] = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> list[ScoreHistoryPoint]:
    """Running score for every calendar day of the window, oldest first.

    Unscheduled days repeat the previous score. The last point always equals
    `calculate_habit_score` over the same window.
    """
    completed = CompletionSet.coerce(completed_dates)
    schedule = parse_schedule(habit)
    days = config.history_days if days is None else days
    return [
        ScoreHistoryPoint(date=day, score=score)
        for day, score in _walk(completed, schedule, days, today or date.today(), config)
    ]


def calculate_streak(
    completed_dates: Completions,
    habit: Schedule,
    *,
    today: Optional[date] = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> int:
    """Consecutive completed scheduled days ending today.

    A scheduled day that is not done yet today does not break the streak;
    counting then starts from yesterday. Unscheduled days are skipped.
    """
    completed = CompletionSet.coerce(completed_dates)
    if not completed:
        return 0
    schedule = parse_schedule(habit)
    today = today or date.today()

    start = 0
    if today not in completed and is_day_scheduled(today, schedule):
        start = 1

    streak = 0
    for offset in range(start, config.streak_max_days + 1):
        day = today - timedelta(days=offset)
        if not is_day_scheduled(day, schedule):
            continue
        if day not in completed:
            break
        streak += 1
    return streak


def calculate_best_streak(
    completed_dates: Completions,
    habit: Schedule,
    *,
    today: Optional[date] = None,
) -> int:
    """Longest run of completed scheduled days from the first completion to today."""
    completed = CompletionSet.coerce(completed_dates)
    if not completed:
        return 0
    schedule = parse_schedule(habit)
    end = today or date.today()

    best = 0
    current = 0
    day = completed.earliest
    while day <= end:
        if is_day_scheduled(day, schedule):
            if day in completed:
                current += 1
                best = max(best, current)
            else:
                current = 0
        day += timedelta(days=1)
    return best


def calculate_total(completed_dates: Completions) -> int:
    """Number of distinct completion days."""
    return len(CompletionSet.coerce(completed_dates))


def calculate_completion_rate(
    completed_dates: Completions,
    habit: Schedule,
    days: Optional[int] = None,
    *,
    today: Optional[date] = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> float:
    """Share of scheduled days in the trailing window that were completed."""
    completed = CompletionSet.coerce(completed_dates)
    schedule = parse_schedule(habit)
    days = config.completion_rate_days if days is None else days
    today = today or date.today()

    scheduled_days = 0
    completed_days = 0
    for offset in range(days):
        day = today - timedelta(days=offset)
        if is_day_scheduled(day, schedule):
            scheduled_days += 1
            if day in completed:
                completed_days += 1

    return completed_days / scheduled_days if scheduled_days > 0 else 0.0


def get_weekly_completions(completed_dates: Completions, week_start: date) -> int:
    """Completions in the seven days starting at `week_start`."""
    completed = CompletionSet.coerce(completed_dates)
    return sum(1 for i in range(7) if week_start + timedelta(days=i) in completed)


def get_habit_stats(
    completed_dates: Completions,
    habit: Schedule,
    *,
    today: Optional[date] = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> HabitStats:
    """All statistics for one habit. Inputs are parsed once and shared by each calculation."""
    completed = CompletionSet.coerce(completed_dates)
    schedule = parse_schedule(habit)
    today = today or date.today()

    stats = HabitStats(
        score=calculate_habit_score(completed, schedule, today=today, config=config),
        current_streak=calculate_streak(completed, schedule, today=today, config=config),
        best_streak=calculate_best_streak(completed, schedule, today=today),
        total=calculate_total(completed),
        completion_rate=calculate_completion_rate(completed, schedule, today=today, config=config),
        score_history=calculate_score_history(completed, schedule, today=today, config=config),
    )
    logger.debug(
        "Stats for %s schedule: score=%.3f streak=%d best=%d total=%d",
        schedule.frequency, stats.score, stats.current_streak, stats.best_streak, stats.total,
    )
    return stats
