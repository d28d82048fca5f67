from __future__ import annotations

import random
from datetime import date, timedelta

import pytest

from habit_strength.core.models import HabitStats, ScoringConfig
from habit_strength.core.scoring import (
    apply_day,
    calculate_best_streak,
    calculate_completion_rate,
    calculate_habit_score,
    calculate_score_history,
    calculate_streak,
    calculate_total,
    get_habit_stats,
    get_weekly_completions,
)

TODAY = date(2024, 1, 10)  # Wednesday
DAILY = {"frequency": "daily", "createdAt": "2024-01-01"}
MON_WED_FRI = {"frequency": "specific_days", "specificDays": [1, 3, 5]}


def days_back(count: int, end: date = TODAY) -> list[str]:
    """ISO dates for `count` consecutive days ending at `end`."""
    return [(end - timedelta(days=i)).isoformat() for i in range(count)]


def recurrence(outcomes: list[bool]) -> float:
    score = 0.0
    for done in outcomes:
        if done:
            score = min(1.0, score + 0.052 * (1 - score * 0.5))
        else:
            score = max(0.0, score - 0.035 * (0.5 + score * 0.5))
    return score


class TestHabitScore:
    def test_three_completions(self):
        completed = ["2024-01-01", "2024-01-02", "2024-01-03"]
        score = calculate_habit_score(completed, DAILY, 3, today=date(2024, 1, 3))
        assert score == pytest.approx(0.15197915, abs=1e-8)
        assert score == recurrence([True, True, True])

    def test_first_steps(self):
        completed = ["2024-01-01", "2024-01-02"]
        assert calculate_habit_score(completed, DAILY, 1, today=date(2024, 1, 1)) == pytest.approx(0.052)
        assert calculate_habit_score(completed, DAILY, 2, today=date(2024, 1, 2)) == pytest.approx(0.102648)

    def test_empty_stays_zero(self):
        assert calculate_habit_score([], DAILY, today=TODAY) == 0.0
        history = calculate_score_history([], DAILY, 60, today=TODAY)
        assert all(point.score == 0.0 for point in history)

    def test_full_window_increases_with_diminishing_steps(self):
        history = calculate_score_history(days_back(60), DAILY, 60, today=TODAY)
        scores = [p.score for p in history]
        rising = scores[:26]
        increments = [b - a for a, b in zip(rising, rising[1:])]
        assert all(step > 0 for step in increments)
        assert all(later < earlier for earlier, later in zip(increments, increments[1:]))
        assert rising[-1] < 1.0
        # The 27th straight completion crosses the cap; it holds there after.
        assert scores[26:] == [1.0] * 34

    def test_miss_decays_without_reset(self):
        completed = days_back(20, TODAY - timedelta(days=1))
        before = calculate_habit_score(completed, DAILY, 21, today=TODAY - timedelta(days=1))
        after = calculate_habit_score(completed, DAILY, 21, today=TODAY)
        assert 0.0 < after < before

    def test_mixed_history_matches_recurrence(self):
        outcomes = [True, False, True, True, False, False, True, True, True, False]
        completed = [
            (TODAY - timedelta(days=len(outcomes) - 1 - i)).isoformat()
            for i, done in enumerate(outcomes) if done
        ]
        assert calculate_habit_score(completed, DAILY, len(outcomes), today=TODAY) == recurrence(outcomes)

    def test_unscheduled_days_ignored(self):
        # Only Mon/Wed/Fri count, so completions on other days change nothing.
        weekend_only = ["2024-01-06", "2024-01-07"]
        assert calculate_habit_score(weekend_only, MON_WED_FRI, 10, today=TODAY) == 0.0

    def test_zero_lookback(self):
        assert calculate_habit_score(days_back(5), DAILY, 0, today=TODAY) == 0.0

    def test_default_window_is_sixty_days(self):
        completed = days_back(90)
        assert calculate_habit_score(completed, DAILY, today=TODAY) == calculate_habit_score(
            completed, DAILY, 60, today=TODAY
        )

    def test_custom_rates(self):
        config = ScoringConfig(increase_rate=0.5, decrease_rate=0.5)
        assert calculate_habit_score(["2024-01-10"], DAILY, 1, today=TODAY, config=config) == 0.5

    def test_bounded_for_random_histories(self):
        rng = random.Random(42)
        schedules = [DAILY, MON_WED_FRI, {"frequency": "interval", "interval": 3, "createdAt": "2023-06-01"}]
        for _ in range(50):
            completed = [d for d in days_back(200) if rng.random() < rng.random()]
            for schedule in schedules:
                score = calculate_habit_score(completed, schedule, rng.randint(0, 200), today=TODAY)
                assert 0.0 <= score <= 1.0

    def test_clamped_at_one(self):
        config = ScoringConfig(increase_rate=1.0)
        assert apply_day(0.9, True, True, config) == 1.0
        assert apply_day(0.01, True, False, config) == 0.0
        assert apply_day(0.4, False, False, config) == 0.4


class TestScoreHistory:
    def test_length_and_order(self):
        history = calculate_score_history(days_back(3), DAILY, 30, today=TODAY)
        assert len(history) == 30
        assert history[0].date == TODAY - timedelta(days=29)
        assert history[-1].date == TODAY
        assert [p.date for p in history] == sorted(p.date for p in history)

    @pytest.mark.parametrize("window", [1, 7, 30, 45])
    def test_last_point_equals_score(self, window):
        rng = random.Random(window)
        completed = [d for d in days_back(60) if rng.random() < 0.6]
        for schedule in [DAILY, MON_WED_FRI, {"frequency": "interval", "interval": 2, "createdAt": "2023-12-01"}]:
            history = calculate_score_history(completed, schedule, window, today=TODAY)
            assert history[-1].score == calculate_habit_score(completed, schedule, window, today=TODAY)

    def test_unscheduled_days_carry_score(self):
        completed = ["2024-01-08", "2024-01-10"]
        history = {p.date: p.score for p in calculate_score_history(completed, MON_WED_FRI, 3, today=TODAY)}
        assert history[date(2024, 1, 9)] == history[date(2024, 1, 8)]
        assert history[date(2024, 1, 10)] > history[date(2024, 1, 9)]

    def test_serialises_iso_dates(self):
        point = calculate_score_history([], DAILY, 1, today=TODAY)[0]
        assert point.model_dump(mode="json") == {"date": "2024-01-10", "score": 0.0}

    def test_empty_window(self):
        assert calculate_score_history(days_back(3), DAILY, 0, today=TODAY) == []


class TestStreak:
    def test_empty(self):
        assert calculate_streak([], DAILY, today=TODAY) == 0

    def test_counts_through_today(self):
        assert calculate_streak(days_back(3), DAILY, today=TODAY) == 3

    def test_today_pending_does_not_break(self):
        completed = days_back(3, TODAY - timedelta(days=1))
        assert calculate_streak(completed, DAILY, today=TODAY) == 3

    def test_stops_at_first_miss(self):
        completed = ["2024-01-09", "2024-01-07", "2024-01-06"]
        assert calculate_streak(completed, DAILY, today=TODAY) == 1

    def test_yesterday_missed(self):
        completed = ["2024-01-08", "2024-01-07"]
        assert calculate_streak(completed, DAILY, today=TODAY) == 0

    def test_skips_unscheduled_days(self):
        completed = ["2024-01-01", "2024-01-03", "2024-01-05", "2024-01-08"]
        assert calculate_streak(completed, MON_WED_FRI, today=TODAY) == 4

    def test_unscheduled_today_starts_today(self):
        # Thursday 2024-01-11 is not scheduled; Wednesday was done.
        completed = ["2024-01-08", "2024-01-10"]
        assert calculate_streak(completed, MON_WED_FRI, today=date(2024, 1, 11)) == 2

    def test_bounded_lookback(self):
        completed = days_back(800)
        assert calculate_streak(completed, DAILY, today=TODAY) == 366
        config = ScoringConfig(streak_max_days=10)
        assert calculate_streak(completed, DAILY, today=TODAY, config=config) == 11

    def test_interval_habit(self):
        habit = {"frequency": "interval", "interval": 2, "createdAt": "2024-01-02"}
        completed = ["2024-01-04", "2024-01-06", "2024-01-08"]
        # 2024-01-10 is scheduled but not done yet.
        assert calculate_streak(completed, habit, today=TODAY) == 3


class TestBestStreak:
    def test_empty(self):
        assert calculate_best_streak([], DAILY, today=TODAY) == 0

    def test_longest_run(self):
        completed = ["2024-01-01", "2024-01-02", "2024-01-03", "2024-01-04", "2024-01-05", "2024-01-07", "2024-01-08"]
        assert calculate_best_streak(completed, DAILY, today=TODAY) == 5

    def test_ignores_unscheduled_days(self):
        completed = ["2024-01-01", "2024-01-03", "2024-01-05", "2024-01-08"]
        assert calculate_best_streak(completed, MON_WED_FRI, today=TODAY) == 4

    def test_future_only_completions(self):
        assert calculate_best_streak(["2024-02-01"], DAILY, today=TODAY) == 0

    def test_never_below_current_streak(self):
        rng = random.Random(7)
        for _ in range(40):
            completed = [d for d in days_back(120) if rng.random() < 0.8]
            for schedule in [DAILY, MON_WED_FRI]:
                best = calculate_best_streak(completed, schedule, today=TODAY)
                assert best >= calculate_streak(completed, schedule, today=TODAY)


class TestCompletionRate:
    def test_half(self):
        completed = days_back(30)[::2]
        assert calculate_completion_rate(completed, DAILY, 30, today=TODAY) == 0.5

    def test_only_scheduled_days_count(self):
        # Mon 8 and Wed 10 scheduled in the last three days, Wed done.
        assert calculate_completion_rate(["2024-01-10", "2024-01-09"], MON_WED_FRI, 3, today=TODAY) == 0.5

    def test_nothing_scheduled(self):
        habit = {"frequency": "specific_days", "specificDays": []}
        assert calculate_completion_rate(days_back(10), habit, today=TODAY) == 0.0

    def test_completions_outside_window_ignored(self):
        completed = days_back(10, TODAY - timedelta(days=40))
        assert calculate_completion_rate(completed, DAILY, today=TODAY) == 0.0


def test_total_counts_unique_days():
    assert calculate_total(["2024-01-01", "2024-01-01", "2024-01-02"]) == 2
    assert calculate_total([]) == 0


def test_weekly_completions():
    completed = ["2024-01-07", "2024-01-09", "2024-01-13", "2024-01-14"]
    assert get_weekly_completions(completed, date(2024, 1, 7)) == 3


class TestHabitStats:
    def test_composes_all_statistics(self):
        completed = days_back(5)
        stats = get_habit_stats(completed, DAILY, today=TODAY)
        assert isinstance(stats, HabitStats)
        assert stats.score == calculate_habit_score(completed, DAILY, 60, today=TODAY)
        assert stats.current_streak == 5
        assert stats.best_streak == 5
        assert stats.total == 5
        assert stats.completion_rate == pytest.approx(5 / 30)
        assert len(stats.score_history) == 30
        assert stats.score_history[-1].date == TODAY

    def test_empty(self):
        stats = get_habit_stats([], {"frequency": "weekly"}, today=TODAY)
        assert stats.score == 0.0
        assert stats.current_streak == 0
        assert stats.best_streak == 0
        assert stats.total == 0
        assert stats.completion_rate == 0.0

    def test_windows_follow_config(self):
        config = ScoringConfig(history_days=7, completion_rate_days=7)
        stats = get_habit_stats(days_back(7), DAILY, today=TODAY, config=config)
        assert len(stats.score_history) == 7
        assert stats.completion_rate == 1.0
