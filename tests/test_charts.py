from __future__ import annotations

from datetime import date

from habit_strength.core.charts import daily_completion_data, week_start, weekday_distribution

TODAY = date(2024, 1, 10)  # Wednesday


def test_week_start_sunday():
    assert week_start(TODAY) == date(2024, 1, 7)
    assert week_start(date(2024, 1, 7)) == date(2024, 1, 7)


def test_week_start_monday():
    assert week_start(TODAY, start_day=1) == date(2024, 1, 8)
    assert week_start(date(2024, 1, 7), start_day=1) == date(2024, 1, 1)


def test_daily_completion_data():
    data = daily_completion_data(["2024-01-10", "2024-01-08"], 3, today=TODAY)
    assert data == [
        {"date": "2024-01-08", "day": 8, "completed": 1},
        {"date": "2024-01-09", "day": 9, "completed": 0},
        {"date": "2024-01-10", "day": 10, "completed": 1},
    ]


def test_daily_completion_data_default_length():
    assert len(daily_completion_data([], today=TODAY)) == 30


def test_weekday_distribution():
    # Sun 7, Mon 8, Mon 1, Sat 6
    counts = weekday_distribution(["2024-01-07", "2024-01-08", "2024-01-01", "2024-01-06"])
    assert counts == [1, 2, 0, 0, 0, 0, 1]
    assert weekday_distribution([]) == [0] * 7


def test_daily_completion_data_summed_counts():
    counts = {"2024-01-09": 3, date(2024, 1, 10): 1, "garbage": 4}
    data = daily_completion_data(counts, 3, today=TODAY)
    assert [bar["completed"] for bar in data] == [0, 3, 1]


def test_weekday_distribution_summed_counts():
    # Sun 7 twice over two habits, Mon 8 once
    assert weekday_distribution({"2024-01-07": 2, "2024-01-08": 1}) == [2, 1, 0, 0, 0, 0, 0]
