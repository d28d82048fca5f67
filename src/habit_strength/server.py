"""Habit Strength MCP Server.

FastMCP server with tools for managing habits, toggling completions and
reading strength scores, streaks and chart series.
Run: habit-strength-mcp
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Optional

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import ValidationError

from .config import get_log_level, get_scoring_config
from .core.charts import daily_completion_data, week_start, weekday_distribution
from .core.models import HabitCreate, HabitRecord, HabitUpdate
from .core.scoring import get_habit_stats, get_weekly_completions
from .db import close_db, init_db
from . import store

logger = logging.getLogger(__name__)

READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=False)
WRITE = ToolAnnotations(readOnlyHint=False, destructiveHint=False, idempotentHint=False, openWorldHint=False)
DESTRUCTIVE = ToolAnnotations(readOnlyHint=False, destructiveHint=True, idempotentHint=False, openWorldHint=False)


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    """Configure logging and open the habit database."""
    logging.basicConfig(level=get_log_level(), format="%(asctime)s %(name)s %(levelname)s %(message)s")
    await init_db()
    try:
        yield
    finally:
        await close_db()


mcp = FastMCP(
    "Habit Strength",
    instructions="Track habits and ask how strong they are — strength scores, current and best streaks, completion rates and score history.",
    lifespan=lifespan,
)


def _parse_day(value: str) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"Invalid date {value!r}. Use YYYY-MM-DD.") from None


async def _require_habit(habit_id: int) -> HabitRecord:
    habit = await store.get_habit(habit_id)
    if habit is None:
        raise ValueError(f"Habit not found: {habit_id}")
    return habit


async def _stats_for(habit: HabitRecord, today: Optional[date] = None) -> dict:
    completed = await store.get_completed_dates(habit.id)
    stats = get_habit_stats(completed, habit.schedule, today=today, config=get_scoring_config())
    return stats.model_dump(mode="json")


# ─── Habits ──────────────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def habit_list(include_archived: bool = False) -> dict:
    """List habits in display order.

    Args:
        include_archived: Also return archived habits. Default False.
    """
    habits = await store.list_habits(include_archived=include_archived)
    return {
        "title": "Habits",
        "habits": [h.model_dump(mode="json") for h in habits],
        "count": len(habits),
        "summary": f"{len(habits)} habit(s)" + (" including archived" if include_archived else ""),
    }


@mcp.tool(annotations=WRITE)
async def habit_create(
    name: str,
    frequency: str = "daily",
    question: str = "",
    color: str = "#6c5ce7",
    icon: str = "🎯",
    times_per_week: int = 3,
    interval: int = 2,
    specific_days: Optional[list[int]] = None,
) -> dict:
    """Create a habit.

    Args:
        name: Habit name (max 100 characters).
        frequency: 'daily', 'weekly', 'interval' or 'specific_days'. Default 'daily'.
        question: Optional prompt such as "Did you read today?".
        color: Hex color for charts.
        icon: Emoji shown next to the habit.
        times_per_week: Weekly target (1-7), used when frequency is 'weekly'.
        interval: Days between occurrences (2-30), used when frequency is 'interval'.
        specific_days: Weekday indices with Sunday=0, used when frequency is 'specific_days'.
    """
    try:
        payload = HabitCreate(
            name=name,
            frequency=frequency,
            question=question or None,
            color=color,
            icon=icon,
            times_per_week=times_per_week,
            interval=interval,
            specific_days=specific_days,
        )
    except ValidationError as exc:
        raise ValueError(f"Invalid habit: {exc}") from exc

    habit = await store.create_habit(payload)
    return {
        "title": "Habit Created",
        "habit": habit.model_dump(mode="json"),
        "summary": f"Created '{habit.name}' ({habit.frequency.value}).",
    }


@mcp.tool(annotations=WRITE)
async def habit_update(habit_id: int, changes: dict) -> dict:
    """Update fields of a habit.

    Args:
        habit_id: Habit to update.
        changes: Any of name, question, color, icon, frequency, times_per_week,
                 interval, specific_days, archived, order.
    """
    try:
        payload = HabitUpdate.model_validate(changes)
    except ValidationError as exc:
        raise ValueError(f"Invalid changes: {exc}") from exc

    habit = await store.update_habit(habit_id, payload)
    if habit is None:
        raise ValueError(f"Habit not found: {habit_id}")
    return {
        "title": "Habit Updated",
        "habit": habit.model_dump(mode="json"),
        "summary": f"Updated '{habit.name}': {', '.join(sorted(payload.model_fields_set)) or 'no changes'}.",
    }


@mcp.tool(annotations=DESTRUCTIVE)
async def habit_delete(habit_id: int) -> dict:
    """Delete a habit and its whole completion history.

    Args:
        habit_id: Habit to delete.
    """
    if not await store.delete_habit(habit_id):
        raise ValueError(f"Habit not found: {habit_id}")
    return {"title": "Habit Deleted", "habit_id": habit_id, "summary": f"Deleted habit {habit_id}."}


# ─── Completions ─────────────────────────────────────────────────────────────


@mcp.tool(annotations=WRITE)
async def habit_toggle(habit_id: int, day: str = "") -> dict:
    """Mark a habit done (or undo it) for a day, and return refreshed stats.

    Args:
        habit_id: Habit to toggle.
        day: Day as YYYY-MM-DD. Defaults to today.
    """
    habit = await _require_habit(habit_id)
    target = _parse_day(day) or date.today()
    completed = await store.toggle_completion(habit_id, target)
    stats = await _stats_for(habit)
    return {
        "title": habit.name,
        "date": target.isoformat(),
        "completed": completed,
        "stats": stats,
        "summary": f"'{habit.name}' {'completed' if completed else 'unmarked'} on {target.isoformat()}. "
        f"Strength {stats['score']:.0%}, streak {stats['current_streak']}.",
    }


# ─── Stats ───────────────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def habit_stats(habit_id: int, as_of: str = "") -> dict:
    """Strength score, current and best streak, completion rate and score history for one habit.

    Args:
        habit_id: Habit to analyse.
        as_of: Reference day as YYYY-MM-DD. Defaults to today.
    """
    habit = await _require_habit(habit_id)
    stats = await _stats_for(habit, _parse_day(as_of))
    return {
        "title": habit.name,
        "habit": habit.model_dump(mode="json"),
        "stats": stats,
        "summary": _stats_summary(habit.name, stats),
    }


def _stats_summary(name: str, stats: dict) -> str:
    return (
        f"{name}: strength {stats['score']:.0%}, current streak {stats['current_streak']}, "
        f"best streak {stats['best_streak']}, {stats['total']} total, "
        f"{stats['completion_rate']:.0%} of scheduled days in the last {get_scoring_config().completion_rate_days}."
    )


@mcp.tool(annotations=READ_ONLY)
async def habit_overview(days: int = 30) -> dict:
    """Statistics across every active habit, with per-habit stats strongest first.

    Args:
        days: Number of days of summed daily bars. Default 30.
    """
    habits = await store.list_habits()
    today = date.today()
    rows = []
    completed_today = 0
    for habit in habits:
        completed = await store.get_completed_dates(habit.id)
        stats = get_habit_stats(completed, habit.schedule, today=today, config=get_scoring_config())
        stats = stats.model_dump(mode="json", exclude={"score_history"})
        if today.isoformat() in completed:
            completed_today += 1
        rows.append({"habit_id": habit.id, "name": habit.name, "icon": habit.icon, **stats})
    rows.sort(key=lambda r: r["score"], reverse=True)

    counts = await store.get_completion_counts()
    best_streak = max((r["best_streak"] for r in rows), default=0)
    average_score = sum(r["score"] for r in rows) / len(rows) if rows else 0.0

    if not rows:
        summary = "No active habits yet."
    else:
        strongest = rows[0]
        summary = (
            f"{len(rows)} active habit(s), {completed_today} done today. "
            f"Strongest: {strongest['name']} at {strongest['score']:.0%}. "
            f"Average strength {average_score:.0%}, best streak {best_streak}."
        )
    return {
        "title": "Habit Overview",
        "habits": rows,
        "count": len(rows),
        "completed_today": completed_today,
        "best_streak": best_streak,
        "average_score": average_score,
        "daily": daily_completion_data(counts, days, today=today),
        "weekday_distribution": weekday_distribution(counts),
        "summary": summary,
    }


@mcp.tool(annotations=READ_ONLY)
async def habit_chart_data(habit_id: int, days: int = 30) -> dict:
    """Chart series for a habit — daily completions, weekday distribution and this week's count.

    Args:
        habit_id: Habit to chart.
        days: Number of days of daily bars. Default 30.
    """
    habit = await _require_habit(habit_id)
    completed = await store.get_completed_dates(habit_id)
    today = date.today()
    this_week = get_weekly_completions(completed, week_start(today))
    return {
        "title": habit.name,
        "daily": daily_completion_data(completed, days, today=today),
        "weekday_distribution": weekday_distribution(completed),
        "this_week": this_week,
        "summary": f"{habit.name}: {this_week} completion(s) this week.",
    }


# ─── Export / Import ─────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def habit_export(format: str = "json") -> dict:
    """Export all habits and completions.

    Args:
        format: 'json' for a re-importable payload or 'csv' for a habit-by-day grid.
    """
    if format == "csv":
        content = await store.export_csv()
        return {"title": "Habit Export", "format": "csv", "content": content, "summary": "CSV export ready."}
    if format != "json":
        raise ValueError(f"Unsupported export format: {format}. Use 'json' or 'csv'.")
    data = await store.export_data()
    return {
        "title": "Habit Export",
        "format": "json",
        "data": data,
        "summary": f"Exported {len(data['habits'])} habit(s) and {len(data['completions'])} completion(s).",
    }


@mcp.tool(annotations=DESTRUCTIVE)
async def habit_import(data: dict) -> dict:
    """Replace all habits and completions with a previous JSON export.

    Args:
        data: Payload returned by habit_export(format="json").
    """
    count = await store.import_data(data)
    return {"title": "Habit Import", "completions_imported": count, "summary": f"Imported {count} completion(s)."}


def main():
    """Entry point for the CLI command."""
    mcp.run()


if __name__ == "__main__":
    main()
