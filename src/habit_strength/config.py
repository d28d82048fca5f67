"""Environment-driven settings.

Scoring constants and window sizes can be tuned without code changes:

    HABIT_INCREASE_RATE          score gain per completion (default 0.052)
    HABIT_DECREASE_RATE          score loss per miss (default 0.035)
    HABIT_SCORE_LOOKBACK_DAYS    window for the strength score (default 60)
    HABIT_HISTORY_DAYS           points in the score chart (default 30)
    HABIT_COMPLETION_RATE_DAYS   window for the completion rate (default 30)
    LOG_LEVEL                    root log level (default INFO)
"""

from __future__ import annotations

import logging
import os
from typing import Callable, TypeVar

from .core.models import ScoringConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ENV_FIELDS: dict[str, tuple[str, Callable[[str], object]]] = {
    "HABIT_INCREASE_RATE": ("increase_rate", float),
    "HABIT_DECREASE_RATE": ("decrease_rate", float),
    "HABIT_SCORE_LOOKBACK_DAYS": ("score_lookback_days", int),
    "HABIT_HISTORY_DAYS": ("history_days", int),
    "HABIT_COMPLETION_RATE_DAYS": ("completion_rate_days", int),
}


def _env_value(name: str, cast: Callable[[str], T]) -> T:
    raw = os.environ[name]
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a {cast.__name__}, got {raw!r}") from None


def get_scoring_config() -> ScoringConfig:
    """Build the scoring configuration from the environment."""
    overrides = {}
    for env_name, (field, cast) in _ENV_FIELDS.items():
        if os.environ.get(env_name, "").strip():
            overrides[field] = _env_value(env_name, cast)
    if overrides:
        logger.info("Scoring overrides from environment: %s", overrides)
    return ScoringConfig(**overrides)


def get_log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").upper()
