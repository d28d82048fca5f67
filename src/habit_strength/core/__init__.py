"""Core business logic — schedules, scoring, chart series, and data models.

This module is framework-agnostic. It has no dependency on MCP, FastMCP,
SQLAlchemy or any server framework. The tool server, the store and any
other caller import from here.
"""

from .models import CompletionSet, HabitStats, ScoringConfig, parse_schedule
from .scheduling import is_day_scheduled
from .scoring import (
    calculate_best_streak,
    calculate_completion_rate,
    calculate_habit_score,
    calculate_score_history,
    calculate_streak,
    calculate_total,
    get_habit_stats,
    get_weekly_completions,
)

__all__ = [
    "CompletionSet",
    "HabitStats",
    "ScoringConfig",
    "calculate_best_streak",
    "calculate_completion_rate",
    "calculate_habit_score",
    "calculate_score_history",
    "calculate_streak",
    "calculate_total",
    "get_habit_stats",
    "get_weekly_completions",
    "is_day_scheduled",
    "parse_schedule",
]
