"""Tests for the streak engine."""

import random
from datetime import date, datetime, timedelta

import pytest

from app.core.errors import ValidationError
from app.core.streak_engine import CompletionEvent, compute_streak, compute_streaks

REF = date(2024, 1, 3)


# ---------------------------------------------------------------------------
# compute_streak scenarios
# ---------------------------------------------------------------------------


class TestComputeStreak:
    def test_three_consecutive_days_ending_today(self):
        events = ["2024-01-01", "2024-01-02", "2024-01-03"]
        result = compute_streak(events, REF, window_days=14)
        assert result.current_streak_days == 3
        assert result.is_active is True

    def test_two_day_gap_breaks_streak(self):
        events = ["2024-01-01", "2024-01-02", "2024-01-03"]
        result = compute_streak(events, date(2024, 1, 5), window_days=14)
        assert result.is_active is False
        assert result.current_streak_days == 0

    def test_streak_anchored_at_yesterday(self):
        events = [date(2024, 1, 1), date(2024, 1, 2)]
        result = compute_streak(events, REF, window_days=7)
        assert result.is_active is True
        assert result.current_streak_days == 2

    def test_empty_log(self):
        result = compute_streak([], REF, window_days=7)
        assert result.current_streak_days == 0
        assert result.is_active is False
        assert result.longest_streak_days == 0
        assert result.last_activity is None
        assert len(result.history) == 7

    def test_multiple_events_same_day_count_once(self):
        events = [datetime(2024, 1, 3, 9), datetime(2024, 1, 3, 18), "2024-01-03"]
        result = compute_streak(events, REF, window_days=3)
        assert result.current_streak_days == 1
        assert result.history[-1].count == 3
        assert result.history[-1].completed is True

    def test_gap_not_counted_across(self):
        events = ["2023-12-28", "2023-12-29", "2024-01-02", "2024-01-03"]
        result = compute_streak(events, REF, window_days=14)
        assert result.current_streak_days == 2
        assert result.longest_streak_days == 2

    def test_longest_and_last_activity(self):
        events = ["2023-12-01", "2023-12-02", "2023-12-03", "2023-12-04", "2024-01-03"]
        result = compute_streak(events, REF, window_days=14)
        assert result.longest_streak_days == 4
        assert result.last_activity == REF

    def test_history_window_bounds(self):
        result = compute_streak(["2024-01-02"], REF, window_days=5)
        assert [h.date for h in result.history] == [
            date(2023, 12, 30), date(2023, 12, 31), date(2024, 1, 1), date(2024, 1, 2), REF,
        ]
        assert [h.completed for h in result.history] == [False, False, False, True, False]

    def test_malformed_event_fails_fast(self):
        with pytest.raises(ValidationError):
            compute_streak(["2024-01-02", "garbage"], REF, window_days=5)


# ---------------------------------------------------------------------------
# Properties over random logs
# ---------------------------------------------------------------------------


def _random_logs(seed: int, count: int = 200):
    rng = random.Random(seed)
    for _ in range(count):
        days = {REF - timedelta(days=rng.randint(0, 20)) for _ in range(rng.randint(0, 12))}
        yield sorted(days)


def _expected_streak(days: set[date], ref: date) -> int:
    cursor = ref if ref in days else ref - timedelta(days=1)
    run = 0
    while cursor in days:
        run += 1
        cursor -= timedelta(days=1)
    return run


class TestStreakProperties:
    def test_active_iff_today_or_yesterday(self):
        for days in _random_logs(1):
            result = compute_streak(days, REF, window_days=10)
            expected = REF in days or REF - timedelta(days=1) in days
            assert result.is_active is expected

    def test_streak_is_suffix_run(self):
        for days in _random_logs(2):
            result = compute_streak(days, REF, window_days=10)
            assert result.current_streak_days == _expected_streak(set(days), REF)

    def test_history_length_and_membership(self):
        for days in _random_logs(3):
            result = compute_streak(days, REF, window_days=21)
            assert len(result.history) == 21
            for entry in result.history:
                assert entry.completed is (entry.date in days)


# ---------------------------------------------------------------------------
# compute_streaks
# ---------------------------------------------------------------------------


class TestComputeStreaks:
    def test_global_and_per_course(self):
        events = [
            CompletionEvent("t1", "2024-01-03", course_id="c1", course_name="Physics"),
            CompletionEvent("t2", "2024-01-02", course_id="c1", course_name="Physics"),
            CompletionEvent("t3", "2024-01-01", course_id="c2", course_name="Calculus"),
            CompletionEvent("t4", "2024-01-02"),
        ]
        result = compute_streaks(events, REF, global_window_days=30, course_window_days=14)

        assert result["global"].current_streak_days == 3
        assert len(result["global"].history) == 30

        courses = {c.scope: c for c in result["courses"]}
        assert set(courses) == {"c1", "c2"}
        assert courses["c1"].current_streak_days == 2
        assert courses["c1"].name == "Physics"
        assert courses["c2"].is_active is False
        assert len(courses["c2"].history) == 14

    def test_courses_sorted_by_streak(self):
        events = [
            CompletionEvent("t1", "2024-01-03", course_id="c1", course_name="B"),
            CompletionEvent("t2", "2024-01-03", course_id="c2", course_name="A"),
            CompletionEvent("t3", "2024-01-02", course_id="c2", course_name="A"),
        ]
        result = compute_streaks(events, REF, global_window_days=7, course_window_days=7)
        assert [c.name for c in result["courses"]] == ["A", "B"]

    def test_courseless_events_only_feed_global(self):
        events = [CompletionEvent("t1", "2024-01-03")]
        result = compute_streaks(events, REF, global_window_days=7, course_window_days=7)
        assert result["global"].current_streak_days == 1
        assert result["courses"] == []
