"""SQLAlchemy models for local SQLite habit storage.

Only habit definitions and completion days are stored. Scores, streaks and
rates are always recomputed from completions by the scoring engine.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Habit(Base):
    """A habit and its schedule."""

    __tablename__ = "habits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    question: Mapped[str | None] = mapped_column(String(200), nullable=True)
    color: Mapped[str] = mapped_column(String(20), nullable=False, default="#6c5ce7")
    icon: Mapped[str] = mapped_column(String(16), nullable=False, default="🎯")
    frequency: Mapped[str] = mapped_column(String(20), nullable=False, default="daily")
    times_per_week: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    interval: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    # Comma-separated weekday indices (Sunday=0); NULL means every day.
    specific_days: Mapped[str | None] = mapped_column(String(20), nullable=True)
    archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Local wall time. Interval schedules count from its calendar day.
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (
        Index("ix_habit_archived_order", "archived", "order"),
    )


class Completion(Base):
    """One day on which a habit was done."""

    __tablename__ = "completions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    habit_id: Mapped[int] = mapped_column(ForeignKey("habits.id", ondelete="CASCADE"), nullable=False)
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False, default=1)
    note: Mapped[str | None] = mapped_column(String(500), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (
        UniqueConstraint("habit_id", "date", name="uq_completion_habit_date"),
        Index("ix_completion_habit_date", "habit_id", "date"),
    )
