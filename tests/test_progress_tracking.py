"""Tests for streak arithmetic and the progress tracking service."""
from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from hybridcoach.exceptions import ConflictError, NotFoundError, ValidationError
from hybridcoach.models.database_models import CompletionHistory
from hybridcoach.models.enums import CompletionStatus
from hybridcoach.services.progress_tracking import (
    daily_streak,
    days_until_next_milestone,
    longest_daily_streak,
    longest_weekly_streak,
    milestones_crossed,
    next_milestone,
    weekly_streak,
)

from tests.conftest import TODAY, USER_ID

D = date(2026, 3, 2)


def _days(*offsets):
    return [D + timedelta(days=offset) for offset in offsets]


class TestDailyStreak:
    def test_empty(self):
        assert daily_streak([]) == 0
        assert longest_daily_streak([]) == 0

    def test_trailing_run(self):
        assert daily_streak(_days(0, 1, 2)) == 3
        assert daily_streak(_days(0, 1, 2, 5)) == 1

    def test_duplicates_count_once(self):
        assert daily_streak(_days(0, 0, 1, 1)) == 2

    def test_longest_run(self):
        assert longest_daily_streak(_days(0, 1, 2, 5, 6)) == 3


class TestWeeklyStreak:
    # Three sessions in each of the weeks of Mar 2 and Mar 9, one so far in the week of Mar 16.
    DATES = _days(0, 2, 4, 7, 9, 11, 14)

    def test_in_progress_week_does_not_break_run(self):
        assert weekly_streak(self.DATES, 3, D + timedelta(days=16)) == 2

    def test_current_week_counts_once_it_qualifies(self):
        dates = self.DATES + _days(15, 16)
        assert weekly_streak(dates, 3, D + timedelta(days=16)) == 3

    def test_missed_week_resets(self):
        assert weekly_streak(self.DATES, 3, D + timedelta(days=23)) == 0

    def test_minimum_must_be_positive(self):
        with pytest.raises(ValidationError):
            weekly_streak(self.DATES, 0, D)

    def test_longest_weekly_run(self):
        dates = self.DATES + _days(21, 22, 23)
        assert longest_weekly_streak(dates, 3) == 2
        assert longest_weekly_streak(dates, 1) == 4


class TestMilestones:
    @pytest.mark.parametrize(
        "streak, expected",
        [(0, 7), (7, 14), (29, 30), (364, 365), (365, 730), (800, 1095)],
    )
    def test_next_milestone(self, streak, expected):
        assert next_milestone(streak) == expected

    def test_days_until_next(self):
        assert days_until_next_milestone(5) == 2

    def test_crossed(self):
        assert milestones_crossed(6, 7) == [7]
        assert milestones_crossed(7, 7) == []
        assert milestones_crossed(13, 31) == [14, 30]
        assert milestones_crossed(364, 730) == [365, 730]

    def test_negative_streak(self):
        with pytest.raises(ValidationError):
            next_milestone(-1)


@pytest.fixture
def plan(make_profile, generator, clock):
    make_profile()
    plan = generator.generate_plan(USER_ID)
    clock.advance(7)
    return plan


def _week_workouts(plan, number):
    week = next(week for week in plan.weeks if week.week_number == number)
    return sorted(week.workouts, key=lambda workout: workout.scheduled_date)


class TestCompletion:
    def test_complete_updates_streak(self, plan, progress):
        workout = _week_workouts(plan, 1)[0]

        result = progress.complete_workout(USER_ID, workout.id, actual_duration_minutes=50, notes="solid")

        assert workout.completion_status == CompletionStatus.COMPLETED
        assert workout.completed_at == datetime(2026, 3, 9, 12, 0)
        assert result.history_id is not None
        assert result.streak.current_streak == 1
        assert result.streak.last_workout_date == date(2026, 3, 9)
        assert result.milestones_reached == []

    def test_seven_day_streak_reaches_milestone(self, plan, progress, session):
        for offset in range(1, 7):
            session.add(CompletionHistory(user_id=USER_ID, completed_at=datetime(2026, 3, 2 + offset, 7, 0)))
        session.flush()
        workout = _week_workouts(plan, 2)[0]

        result = progress.complete_workout(USER_ID, workout.id)

        assert result.streak.current_streak == 7
        assert result.milestones_reached == [7]
        assert result.streak.next_milestone == 14

    def test_undo_restores_previous_state(self, plan, progress, session):
        workout = _week_workouts(plan, 1)[0]
        progress.complete_workout(USER_ID, workout.id)

        progress.undo_completion(USER_ID, workout.id)

        assert workout.completion_status == CompletionStatus.NOT_STARTED
        assert workout.completed_at is None
        assert session.query(CompletionHistory).count() == 0
        assert progress.get_streak_info(USER_ID).current_streak == 0

    def test_undo_requires_completion(self, plan, progress):
        with pytest.raises(ConflictError):
            progress.undo_completion(USER_ID, _week_workouts(plan, 1)[0].id)

    def test_skip(self, plan, progress):
        workout = _week_workouts(plan, 1)[1]

        progress.skip_workout(USER_ID, workout.id)

        assert workout.completion_status == CompletionStatus.SKIPPED

    def test_skip_completed_workout_conflicts(self, plan, progress):
        workout = _week_workouts(plan, 1)[0]
        progress.complete_workout(USER_ID, workout.id)

        with pytest.raises(ConflictError):
            progress.skip_workout(USER_ID, workout.id)

    def test_double_completion_conflicts(self, plan, progress):
        workout = _week_workouts(plan, 1)[0]
        progress.complete_workout(USER_ID, workout.id)

        with pytest.raises(ConflictError):
            progress.complete_workout(USER_ID, workout.id)

    def test_completion_in_the_future(self, plan, progress):
        workout = _week_workouts(plan, 1)[0]
        with pytest.raises(ValidationError):
            progress.complete_workout(USER_ID, workout.id, completed_at=datetime(2026, 3, 10, 8, 0))

    def test_negative_duration(self, plan, progress):
        with pytest.raises(ValidationError):
            progress.complete_workout(USER_ID, _week_workouts(plan, 1)[0].id, actual_duration_minutes=-5)

    def test_future_workout(self, plan, progress):
        with pytest.raises(ValidationError):
            progress.complete_workout(USER_ID, _week_workouts(plan, 3)[0].id)

    def test_foreign_or_unknown_workout(self, plan, progress):
        with pytest.raises(NotFoundError):
            progress.complete_workout("someone-else", _week_workouts(plan, 1)[0].id)
        with pytest.raises(NotFoundError):
            progress.complete_workout(USER_ID, 987654)

    def test_streak_info_without_history(self, progress):
        info = progress.get_streak_info(USER_ID)

        assert info.current_streak == 0
        assert info.last_workout_date is None
        assert info.next_milestone == 7


class TestStatistics:
    @pytest.fixture
    def first_week_logged(self, plan, progress):
        monday, wednesday, friday = _week_workouts(plan, 1)
        progress.complete_workout(USER_ID, monday.id, completed_at=datetime(2026, 3, 2, 18, 0))
        progress.complete_workout(USER_ID, wednesday.id, completed_at=datetime(2026, 3, 4, 18, 0))
        progress.skip_workout(USER_ID, friday.id)
        return plan

    def test_completion_stats(self, first_week_logged, progress):
        stats = progress.get_completion_stats(USER_ID, TODAY, TODAY + timedelta(days=6))

        assert stats.completed_count == 2
        assert stats.skipped_count == 1
        assert stats.total_scheduled == 3
        assert stats.completion_percentage == 66.67

    def test_completion_stats_rejects_reversed_range(self, progress):
        with pytest.raises(ValidationError):
            progress.get_completion_stats(USER_ID, TODAY, TODAY - timedelta(days=1))

    def test_overall_stats(self, first_week_logged, progress):
        stats = progress.get_overall_stats(USER_ID)

        assert stats.total_training_days == 2
        assert stats.total_workouts_completed == 2
        assert stats.overall_plan_completion_percentage == 8.33
        assert stats.average_weekly_completion_rate == 1.0
        assert stats.workouts_completed_this_week == 0
        assert stats.workouts_completed_this_month == 2
        assert stats.first_workout_date == datetime(2026, 3, 2, 18, 0)
        assert stats.last_workout_date == datetime(2026, 3, 4, 18, 0)

    def test_weekly_streak_needs_minimum_sessions(self, first_week_logged, progress):
        info = progress.get_streak_info(USER_ID)

        assert info.current_streak == 1
        assert info.longest_streak == 1
        assert info.current_weekly_streak == 0

    def test_completion_history_range(self, first_week_logged, progress):
        assert len(progress.get_completion_history(USER_ID)) == 2
        in_range = progress.get_completion_history(USER_ID, TODAY, TODAY + timedelta(days=1))
        assert [record.completed_at.date() for record in in_range] == [TODAY]

        with pytest.raises(ValidationError):
            progress.get_completion_history(USER_ID, TODAY + timedelta(days=3), TODAY)
