"""Workout completion, streaks, milestones and completion statistics."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable, Sequence

from hybridcoach.exceptions import ConflictError, NotFoundError, ValidationError
from hybridcoach.models.database_models import CompletionHistory, UserStreak, Workout
from hybridcoach.models.enums import CompletionStatus
from hybridcoach.repositories.base import (
    CompletionHistoryRepository,
    TrainingPlanRepository,
    UserProfileRepository,
    UserStreakRepository,
)


logger = logging.getLogger(__name__)

STREAK_MILESTONES = (7, 14, 30, 60, 90, 180, 365)
DEFAULT_MIN_SESSIONS_PER_WEEK = 3


# ---------------------------------------------------------------------------
# Pure streak arithmetic
# ---------------------------------------------------------------------------


def _distinct_sorted(dates: Iterable[date]) -> list[date]:
    return sorted(set(dates))


def daily_streak(dates: Iterable[date]) -> int:
    """Length of the run of consecutive calendar days ending at the latest date."""
    days = _distinct_sorted(dates)
    if not days:
        return 0
    streak = 1
    for previous, current in zip(reversed(days[:-1]), reversed(days)):
        if (current - previous).days != 1:
            break
        streak += 1
    return streak


def longest_daily_streak(dates: Iterable[date]) -> int:
    days = _distinct_sorted(dates)
    if not days:
        return 0
    longest = run = 1
    for previous, current in zip(days, days[1:]):
        run = run + 1 if (current - previous).days == 1 else 1
        longest = max(longest, run)
    return longest


def week_start(day: date) -> date:
    """Monday of the ISO week containing ``day``."""
    return day - timedelta(days=day.weekday())


def _sessions_per_week(dates: Iterable[date]) -> dict[date, int]:
    counts: dict[date, int] = {}
    for day in _distinct_sorted(dates):
        monday = week_start(day)
        counts[monday] = counts.get(monday, 0) + 1
    return counts


def weekly_streak(dates: Iterable[date], min_sessions: int, today: date) -> int:
    """Trailing run of ISO weeks with at least ``min_sessions`` training days.

    The current week only counts once it qualifies; until then the run is
    measured from the previous week so an in-progress week never breaks it.
    """
    if min_sessions < 1:
        raise ValidationError("Minimum sessions per week must be at least 1")
    counts = _sessions_per_week(dates)
    if not counts:
        return 0
    cursor = week_start(today)
    if counts.get(cursor, 0) < min_sessions:
        cursor -= timedelta(days=7)
    streak = 0
    while counts.get(cursor, 0) >= min_sessions:
        streak += 1
        cursor -= timedelta(days=7)
    return streak


def longest_weekly_streak(dates: Iterable[date], min_sessions: int) -> int:
    counts = _sessions_per_week(dates)
    longest = run = 0
    previous: date | None = None
    for monday in sorted(counts):
        if counts[monday] < min_sessions:
            run = 0
        elif previous is not None and run and (monday - previous).days == 7:
            run += 1
        else:
            run = 1
        previous = monday
        longest = max(longest, run)
    return longest


def next_milestone(current_streak: int) -> int:
    """Smallest checkpoint above ``current_streak``; past 365 the tiers repeat every year."""
    if current_streak < 0:
        raise ValidationError("Streak length cannot be negative")
    for milestone in STREAK_MILESTONES:
        if milestone > current_streak:
            return milestone
    top = STREAK_MILESTONES[-1]
    return (current_streak // top + 1) * top


def days_until_next_milestone(current_streak: int) -> int:
    return next_milestone(current_streak) - current_streak


def milestones_crossed(previous_streak: int, current_streak: int) -> list[int]:
    if previous_streak < 0 or current_streak < 0:
        raise ValidationError("Streak length cannot be negative")
    crossed = [m for m in STREAK_MILESTONES if previous_streak < m <= current_streak]
    top = STREAK_MILESTONES[-1]
    yearly = range((previous_streak // top + 1) * top, current_streak + 1, top)
    crossed.extend(m for m in yearly if m > top)
    return crossed


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class StreakInfo:
    current_streak: int
    longest_streak: int
    current_weekly_streak: int
    longest_weekly_streak: int
    last_workout_date: date | None
    next_milestone: int
    days_until_next_milestone: int

    @classmethod
    def from_streak(cls, streak: UserStreak | None) -> "StreakInfo":
        if streak is None:
            return cls(0, 0, 0, 0, None, STREAK_MILESTONES[0], STREAK_MILESTONES[0])
        return cls(
            current_streak=streak.current_streak,
            longest_streak=streak.longest_streak,
            current_weekly_streak=streak.current_weekly_streak,
            longest_weekly_streak=streak.longest_weekly_streak,
            last_workout_date=streak.last_workout_date,
            next_milestone=next_milestone(streak.current_streak),
            days_until_next_milestone=days_until_next_milestone(streak.current_streak),
        )


@dataclass
class CompletionResult:
    workout: Workout
    history_id: int | None
    streak: StreakInfo
    milestones_reached: list[int]


@dataclass
class CompletionStats:
    completed_count: int
    skipped_count: int
    total_scheduled: int
    completion_percentage: float
    period_start: date
    period_end: date


@dataclass
class OverallStats:
    total_training_days: int
    total_workouts_completed: int
    overall_plan_completion_percentage: float
    average_weekly_completion_rate: float
    workouts_completed_this_week: int
    workouts_completed_this_month: int
    first_workout_date: datetime | None
    last_workout_date: datetime | None


def _percentage(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


class ProgressTrackingService:
    """Completion toggles plus the streak recomputation that must accompany them.

    Every mutating method leaves the workout, the history row and the streak
    flushed in the caller's session so they commit (or roll back) together.
    """

    def __init__(
        self,
        history: CompletionHistoryRepository,
        streaks: UserStreakRepository,
        plans: TrainingPlanRepository,
        profiles: UserProfileRepository,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.history = history
        self.streaks = streaks
        self.plans = plans
        self.profiles = profiles
        self.clock = clock

    # -- streaks --------------------------------------------------------------

    def _min_sessions_per_week(self, user_id: str) -> int:
        profile = self.profiles.get_complete_profile(user_id)
        if profile is None or profile.schedule is None:
            return DEFAULT_MIN_SESSIONS_PER_WEEK
        return profile.schedule.minimum_sessions_per_week or DEFAULT_MIN_SESSIONS_PER_WEEK

    def recompute_streak(self, user_id: str) -> UserStreak:
        """Reconcile the user's streak row with the distinct completion dates on record."""
        dates = self.history.distinct_completion_dates(user_id)
        streak = self.streaks.get_or_create(user_id)
        min_sessions = self._min_sessions_per_week(user_id)
        today = self.clock().date()

        streak.current_streak = daily_streak(dates)
        streak.longest_streak = max(streak.longest_streak or 0, longest_daily_streak(dates))
        streak.current_weekly_streak = weekly_streak(dates, min_sessions, today)
        streak.longest_weekly_streak = max(
            streak.longest_weekly_streak or 0, longest_weekly_streak(dates, min_sessions)
        )
        streak.last_workout_date = dates[-1] if dates else None
        self.streaks.update(streak)
        logger.debug(
            "Streak for %s: current=%d longest=%d weekly=%d",
            user_id,
            streak.current_streak,
            streak.longest_streak,
            streak.current_weekly_streak,
        )
        return streak

    def get_streak_info(self, user_id: str) -> StreakInfo:
        return StreakInfo.from_streak(self.streaks.get_by_user(user_id))

    # -- completion toggles ---------------------------------------------------

    def _owned_workout(self, user_id: str, workout_id: int) -> Workout:
        workout = self.plans.get_workout(workout_id)
        if workout is None or workout.week.plan.user_id != user_id or workout.week.plan.is_deleted:
            raise NotFoundError(f"Workout {workout_id} not found")
        return workout

    def complete_workout(
        self,
        user_id: str,
        workout_id: int,
        completed_at: datetime | None = None,
        actual_duration_minutes: int | None = None,
        notes: str | None = None,
    ) -> CompletionResult:
        now = self.clock()
        completed_at = completed_at or now
        if completed_at > now:
            raise ValidationError("Cannot complete a workout in the future")
        if actual_duration_minutes is not None and actual_duration_minutes < 0:
            raise ValidationError("Duration cannot be negative")

        workout = self._owned_workout(user_id, workout_id)
        if workout.completion_status == CompletionStatus.COMPLETED:
            raise ConflictError(f"Workout {workout_id} is already completed")
        if workout.scheduled_date > now.date():
            raise ValidationError("Cannot complete a workout scheduled for the future")

        previous = self.streaks.get_by_user(user_id)
        previous_streak = previous.current_streak if previous else 0

        workout.completion_status = CompletionStatus.COMPLETED
        workout.completed_at = completed_at
        record = self.history.add(
            CompletionHistory(
                user_id=user_id,
                workout_id=workout.id,
                completed_at=completed_at,
                actual_duration_minutes=actual_duration_minutes,
                notes=notes,
            )
        )
        streak = self.recompute_streak(user_id)
        reached = milestones_crossed(previous_streak, streak.current_streak)
        if reached:
            logger.info("User %s reached a %d-day streak", user_id, reached[-1])
        logger.info("Workout %s marked complete for user %s", workout_id, user_id)
        return CompletionResult(workout, record.id, StreakInfo.from_streak(streak), reached)

    def undo_completion(self, user_id: str, workout_id: int) -> Workout:
        workout = self._owned_workout(user_id, workout_id)
        if workout.completion_status != CompletionStatus.COMPLETED:
            raise ConflictError(f"Workout {workout_id} is not marked as completed")

        workout.completion_status = CompletionStatus.NOT_STARTED
        workout.completed_at = None
        record = self.history.get_by_workout(workout.id)
        if record is not None:
            self.history.delete(record)
        self.recompute_streak(user_id)
        logger.info("Workout %s completion undone for user %s", workout_id, user_id)
        return workout

    def skip_workout(self, user_id: str, workout_id: int) -> Workout:
        workout = self._owned_workout(user_id, workout_id)
        if workout.completion_status == CompletionStatus.COMPLETED:
            raise ConflictError(f"Workout {workout_id} is completed; undo the completion first")
        workout.completion_status = CompletionStatus.SKIPPED
        self.plans.update(workout.week.plan)
        logger.info("Workout %s skipped by user %s", workout_id, user_id)
        return workout

    # -- statistics -----------------------------------------------------------

    def get_completion_stats(self, user_id: str, start: date, end: date) -> CompletionStats:
        if start > end:
            raise ValidationError("Start date must not be after end date")
        workouts = self.plans.list_workouts_for_user(user_id, start, end)
        completed = sum(1 for w in workouts if w.completion_status == CompletionStatus.COMPLETED)
        skipped = sum(1 for w in workouts if w.completion_status == CompletionStatus.SKIPPED)
        return CompletionStats(
            completed_count=completed,
            skipped_count=skipped,
            total_scheduled=len(workouts),
            completion_percentage=_percentage(completed, len(workouts)),
            period_start=start,
            period_end=end,
        )

    def get_overall_stats(self, user_id: str) -> OverallStats:
        records = self.history.list_by_user(user_id)
        dates = self.history.distinct_completion_dates(user_id)
        now = self.clock()
        this_week = datetime.combine(week_start(now.date()), time.min)
        this_month = datetime(now.year, now.month, 1)

        plan = self.plans.get_active_plan(user_id)
        workouts: Sequence[Workout] = plan.all_workouts() if plan else []
        completed_in_plan = sum(1 for w in workouts if w.completion_status == CompletionStatus.COMPLETED)

        weeks_with_data = math.ceil(((now.date() - dates[0]).days + 1) / 7) if dates else 0
        return OverallStats(
            total_training_days=len(dates),
            total_workouts_completed=len(records),
            overall_plan_completion_percentage=_percentage(completed_in_plan, len(workouts)),
            average_weekly_completion_rate=round(len(records) / weeks_with_data, 2) if weeks_with_data else 0.0,
            workouts_completed_this_week=sum(1 for r in records if r.completed_at >= this_week),
            workouts_completed_this_month=sum(1 for r in records if r.completed_at >= this_month),
            first_workout_date=records[0].completed_at if records else None,
            last_workout_date=max(r.completed_at for r in records) if records else None,
        )

    def get_completion_history(
        self, user_id: str, start: date | None = None, end: date | None = None
    ) -> list[CompletionHistory]:
        if start is None and end is None:
            return self.history.list_by_user(user_id)
        range_start = datetime.combine(start or date.min, time.min)
        range_end = datetime.combine(end or self.clock().date(), time.max)
        if range_start > range_end:
            raise ValidationError("Start date must not be after end date")
        return self.history.list_by_user_and_range(user_id, range_start, range_end)
