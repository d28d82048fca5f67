"""Habit and completion storage — the completion-date provider for the scoring engine.

Every function opens its own session from the shared session factory, so
callers never handle SQLAlchemy objects. Habits come back as `HabitRecord`
models and completions as ISO `YYYY-MM-DD` strings.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional, Union

from pydantic import ValidationError
from sqlalchemy import delete, func, select

from .core.models import HabitCreate, HabitRecord, HabitUpdate, to_day, to_local
from .db import get_session_factory
from .sqlmodels import Completion, Habit

logger = logging.getLogger(__name__)

EXPORT_VERSION = 1


class HabitNotFoundError(LookupError):
    """Raised when an operation needs a habit that does not exist."""

    def __init__(self, habit_id: int):
        super().__init__(f"Habit not found: {habit_id}")
        self.habit_id = habit_id


def _days_to_column(days: Optional[list[int]]) -> Optional[str]:
    if days is None:
        return None
    return ",".join(str(d) for d in sorted(set(days)))


def _days_from_column(value: Optional[str]) -> Optional[list[int]]:
    if value is None:
        return None
    return [int(d) for d in value.split(",") if d.strip()]


def _to_record(row: Habit) -> HabitRecord:
    return HabitRecord(
        id=row.id,
        name=row.name,
        question=row.question,
        color=row.color,
        icon=row.icon,
        frequency=row.frequency,
        times_per_week=row.times_per_week,
        interval=row.interval,
        specific_days=_days_from_column(row.specific_days),
        archived=row.archived,
        order=row.order,
        created_at=row.created_at,
    )


def _iso_day(day: Union[str, date]) -> str:
    return to_day(day).isoformat()


async def create_habit(habit: HabitCreate) -> HabitRecord:
    """Create a habit at the end of the current ordering."""
    session_factory = get_session_factory()
    async with session_factory() as session:
        result = await session.execute(select(func.max(Habit.order)))
        max_order = result.scalar_one_or_none()
        row = Habit(
            name=habit.name,
            question=habit.question,
            color=habit.color,
            icon=habit.icon,
            frequency=habit.frequency.value,
            times_per_week=habit.times_per_week,
            interval=habit.interval,
            specific_days=_days_to_column(habit.specific_days),
            order=0 if max_order is None else max_order + 1,
            created_at=datetime.now(),
        )
        session.add(row)
        await session.commit()
        logger.info("Created habit %d (%s, %s)", row.id, row.name, row.frequency)
        return _to_record(row)


async def list_habits(include_archived: bool = False) -> list[HabitRecord]:
    """All habits, ordered by position then newest first."""
    session_factory = get_session_factory()
    async with session_factory() as session:
        query = select(Habit).order_by(Habit.order.asc(), Habit.created_at.desc())
        if not include_archived:
            query = query.where(Habit.archived.is_(False))
        result = await session.execute(query)
        return [_to_record(r) for r in result.scalars().all()]


async def get_habit(habit_id: int) -> Optional[HabitRecord]:
    session_factory = get_session_factory()
    async with session_factory() as session:
        row = await session.get(Habit, habit_id)
        return _to_record(row) if row else None


async def update_habit(habit_id: int, changes: HabitUpdate) -> Optional[HabitRecord]:
    """Apply the fields explicitly set on `changes`. Returns None for unknown habits."""
    session_factory = get_session_factory()
    async with session_factory() as session:
        row = await session.get(Habit, habit_id)
        if row is None:
            return None

        for field, value in changes.model_dump(exclude_unset=True).items():
            if field == "specific_days":
                row.specific_days = _days_to_column(value)
            elif value is None and field != "question":
                continue
            elif field == "frequency":
                row.frequency = value.value
            else:
                setattr(row, field, value)

        await session.commit()
        logger.info("Updated habit %d", habit_id)
        return _to_record(row)


async def delete_habit(habit_id: int) -> bool:
    """Delete a habit and all of its completions."""
    session_factory = get_session_factory()
    async with session_factory() as session:
        row = await session.get(Habit, habit_id)
        if row is None:
            return False
        await session.execute(delete(Completion).where(Completion.habit_id == habit_id))
        await session.delete(row)
        await session.commit()
    logger.info("Deleted habit %d", habit_id)
    return True


async def toggle_completion(habit_id: int, day: Union[str, date]) -> bool:
    """Flip the completion for `day`. Returns True if the day is now completed."""
    day_str = _iso_day(day)
    session_factory = get_session_factory()
    async with session_factory() as session:
        if await session.get(Habit, habit_id) is None:
            raise HabitNotFoundError(habit_id)

        result = await session.execute(
            select(Completion).where(Completion.habit_id == habit_id, Completion.date == day_str)
        )
        existing = result.scalar_one_or_none()
        if existing:
            await session.delete(existing)
            completed = False
        else:
            session.add(Completion(habit_id=habit_id, date=day_str, timestamp=datetime.now()))
            completed = True
        await session.commit()

    logger.debug("Habit %d %s on %s", habit_id, "completed" if completed else "uncompleted", day_str)
    return completed


async def get_completed_dates(habit_id: int) -> list[str]:
    """Every completion day of a habit, ascending."""
    session_factory = get_session_factory()
    async with session_factory() as session:
        result = await session.execute(
            select(Completion.date).where(Completion.habit_id == habit_id).order_by(Completion.date.asc())
        )
        return list(result.scalars().all())


async def get_completions_in_range(
    habit_id: int,
    start: Union[str, date],
    end: Union[str, date],
) -> list[str]:
    """Completion days between `start` and `end` inclusive, ascending."""
    session_factory = get_session_factory()
    async with session_factory() as session:
        result = await session.execute(
            select(Completion.date)
            .where(
                Completion.habit_id == habit_id,
                Completion.date >= _iso_day(start),
                Completion.date <= _iso_day(end),
            )
            .order_by(Completion.date.asc())
        )
        return list(result.scalars().all())


async def get_completion_counts(include_archived: bool = False) -> dict[str, int]:
    """Completions per day summed over habits, ascending by day."""
    session_factory = get_session_factory()
    async with session_factory() as session:
        query = (
            select(Completion.date, func.count(Completion.id))
            .join(Habit, Habit.id == Completion.habit_id)
            .group_by(Completion.date)
            .order_by(Completion.date.asc())
        )
        if not include_archived:
            query = query.where(Habit.archived.is_(False))
        result = await session.execute(query)
        return {day: count for day, count in result.all()}


async def _all_completions() -> list[Completion]:
    session_factory = get_session_factory()
    async with session_factory() as session:
        result = await session.execute(
            select(Completion).order_by(Completion.habit_id.asc(), Completion.date.asc())
        )
        return list(result.scalars().all())


async def export_data() -> dict:
    """Everything in the store as a JSON-serialisable dict."""
    habits = await list_habits(include_archived=True)
    completions = await _all_completions()
    return {
        "version": EXPORT_VERSION,
        "export_date": datetime.now(timezone.utc).isoformat(),
        "habits": [h.model_dump(mode="json") for h in habits],
        "completions": [
            {
                "habit_id": c.habit_id,
                "date": c.date,
                "value": c.value,
                "note": c.note,
                "timestamp": c.timestamp.isoformat(),
            }
            for c in completions
        ],
    }


async def export_csv(*, today: Optional[date] = None) -> str:
    """One row per habit, one column per day from the first completion to today."""
    habits = await list_habits(include_archived=True)
    completions = await _all_completions()

    by_habit: dict[int, set[str]] = {}
    for c in completions:
        by_habit.setdefault(c.habit_id, set()).add(c.date)

    end = today or date.today()
    start = min((date.fromisoformat(c.date) for c in completions), default=end)
    dates = []
    day = start
    while day <= end:
        dates.append(day.isoformat())
        day += timedelta(days=1)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["Habit", *dates])
    for habit in habits:
        done = by_habit.get(habit.id, set())
        writer.writerow([habit.name, *("1" if d in done else "0" for d in dates)])
    return buffer.getvalue()


async def _delete_everything(session) -> None:
    await session.execute(delete(Completion))
    await session.execute(delete(Habit))


async def clear_all_data() -> None:
    session_factory = get_session_factory()
    async with session_factory() as session:
        await _delete_everything(session)
        await session.commit()
    logger.info("Cleared all habits and completions")


def _habit_row(habit: HabitRecord) -> Habit:
    return Habit(
        name=habit.name,
        question=habit.question,
        color=habit.color,
        icon=habit.icon,
        frequency=habit.frequency.value,
        times_per_week=habit.times_per_week,
        interval=habit.interval,
        specific_days=_days_to_column(habit.specific_days),
        archived=habit.archived,
        order=habit.order,
        created_at=to_local(habit.created_at),
    )


def _parse_completion(entry: Any) -> Optional[tuple[int, str, float, Optional[str], datetime]]:
    """Fields of an exported completion, or None when it cannot be imported."""
    if not isinstance(entry, dict) or not isinstance(entry.get("habit_id"), int):
        logger.warning("Skipping malformed completion: %r", entry)
        return None
    try:
        day_str = _iso_day(entry["date"])
        raw_timestamp = entry.get("timestamp")
        timestamp = to_local(datetime.fromisoformat(raw_timestamp)) if raw_timestamp else datetime.now()
    except (KeyError, TypeError, ValueError):
        logger.warning("Skipping malformed completion: %r", entry)
        return None

    value = entry.get("value")
    if value is None:
        value = 1
    note = entry.get("note")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        logger.warning("Skipping completion with non-numeric value: %r", entry)
        return None
    if note is not None and (not isinstance(note, str) or len(note) > 500):
        logger.warning("Skipping completion with invalid note: %r", entry)
        return None
    return entry["habit_id"], day_str, float(value), note, timestamp


async def import_data(data: dict[str, Any]) -> int:
    """Replace the store contents with a previous `export_data()` payload.

    Habit ids are reassigned; completions follow their habit. Completions
    pointing at habits missing from the payload, duplicates and malformed
    entries are dropped. The replacement runs in one transaction, so a
    failure leaves the previous contents in place.

    Returns the number of completions imported.
    """
    if not isinstance(data, dict) or not isinstance(data.get("habits"), list) or not isinstance(data.get("completions"), list):
        raise ValueError("Invalid import data format: expected 'habits' and 'completions' lists")

    try:
        habits = [HabitRecord.model_validate(h) for h in data["habits"]]
    except ValidationError as exc:
        raise ValueError(f"Invalid habit in import data: {exc}") from exc
    completions = [c for c in map(_parse_completion, data["completions"]) if c is not None]

    session_factory = get_session_factory()
    imported = 0
    async with session_factory() as session:
        async with session.begin():
            await _delete_everything(session)

            id_map: dict[int, int] = {}
            for habit in habits:
                row = _habit_row(habit)
                session.add(row)
                await session.flush()
                id_map[habit.id] = row.id

            seen: set[tuple[int, str]] = set()
            for old_id, day_str, value, note, timestamp in completions:
                new_id = id_map.get(old_id)
                if new_id is None or (new_id, day_str) in seen:
                    continue
                seen.add((new_id, day_str))
                session.add(Completion(habit_id=new_id, date=day_str, value=value, note=note, timestamp=timestamp))
                imported += 1

    logger.info("Imported %d habits and %d completions", len(habits), imported)
    return imported
