"""SQLAlchemy-backed repository implementations."""
from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy.orm import Session, selectinload

from hybridcoach.models.database_models import (
    CompletionHistory,
    Exercise,
    ExerciseProgression,
    InjuryLimitation,
    PlanAdaptation,
    TrainingGoal,
    TrainingPlan,
    TrainingWeek,
    UserProfile,
    UserStreak,
    Workout,
    WorkoutExercise,
)
from hybridcoach.models.enums import DifficultyLevel, Discipline, PlanStatus, SessionType


logger = logging.getLogger(__name__)


class _SessionRepository:
    def __init__(self, session: Session):
        self.session = session


class SqlUserProfileRepository(_SessionRepository):
    def get_complete_profile(self, user_id: str) -> UserProfile | None:
        return (
            self.session.query(UserProfile)
            .filter(UserProfile.user_id == user_id)
            .options(
                selectinload(UserProfile.schedule),
                selectinload(UserProfile.background),
                selectinload(UserProfile.goals),
                selectinload(UserProfile.injuries),
            )
            .first()
        )

    def add(self, profile: UserProfile) -> UserProfile:
        self.session.add(profile)
        self.session.flush()
        return profile

    def update(self, profile: UserProfile) -> UserProfile:
        self.session.flush()
        return profile

    def get_goal(self, goal_id: int) -> TrainingGoal | None:
        return self.session.get(TrainingGoal, goal_id)

    def get_injury(self, injury_id: int) -> InjuryLimitation | None:
        return self.session.get(InjuryLimitation, injury_id)

    def add_injury(self, profile: UserProfile, injury: InjuryLimitation) -> InjuryLimitation:
        profile.injuries.append(injury)
        self.session.flush()
        return injury


class SqlExerciseRepository(_SessionRepository):
    def list_all(self) -> list[Exercise]:
        return self.session.query(Exercise).order_by(Exercise.id).all()

    def get_by_id(self, exercise_id: int) -> Exercise | None:
        return self.session.get(Exercise, exercise_id)

    def get_by_criteria(
        self,
        discipline: Discipline | None = None,
        difficulty: DifficultyLevel | None = None,
        session_type: SessionType | None = None,
    ) -> list[Exercise]:
        query = self.session.query(Exercise)
        if discipline is not None:
            query = query.filter(Exercise.primary_discipline == discipline)
        if difficulty is not None:
            query = query.filter(Exercise.difficulty_level == difficulty)
        if session_type is not None:
            query = query.filter(Exercise.session_type == session_type)
        return query.order_by(Exercise.id).all()

    def list_progressions(self) -> list[ExerciseProgression]:
        return self.session.query(ExerciseProgression).order_by(ExerciseProgression.id).all()


class SqlTrainingPlanRepository(_SessionRepository):
    def _live_plans(self):
        return self.session.query(TrainingPlan).filter(TrainingPlan.is_deleted.is_(False))

    def get_active_plan(self, user_id: str) -> TrainingPlan | None:
        return (
            self._live_plans()
            .filter(TrainingPlan.user_id == user_id, TrainingPlan.status == PlanStatus.ACTIVE)
            .options(
                selectinload(TrainingPlan.weeks)
                .selectinload(TrainingWeek.workouts)
                .selectinload(Workout.exercises),
                selectinload(TrainingPlan.plan_metadata),
            )
            .order_by(TrainingPlan.id.desc())
            .first()
        )

    def get_by_id(self, plan_id: int) -> TrainingPlan | None:
        return self._live_plans().filter(TrainingPlan.id == plan_id).first()

    def get_with_weeks(self, plan_id: int) -> TrainingPlan | None:
        return (
            self._live_plans()
            .filter(TrainingPlan.id == plan_id)
            .options(
                selectinload(TrainingPlan.weeks)
                .selectinload(TrainingWeek.workouts)
                .selectinload(Workout.exercises),
                selectinload(TrainingPlan.plan_metadata),
            )
            .first()
        )

    def create(self, plan: TrainingPlan) -> TrainingPlan:
        self.session.add(plan)
        self.session.flush()
        logger.debug("Persisted plan id=%s revision=%s", plan.id, plan.revision)
        return plan

    def update(self, plan: TrainingPlan) -> TrainingPlan:
        self.session.flush()
        return plan

    def soft_delete(self, plan: TrainingPlan) -> None:
        plan.is_deleted = True
        plan.status = PlanStatus.ABANDONED
        self.session.flush()

    def list_by_user(self, user_id: str) -> list[TrainingPlan]:
        return (
            self._live_plans()
            .filter(TrainingPlan.user_id == user_id)
            .order_by(TrainingPlan.created_at.desc(), TrainingPlan.id.desc())
            .all()
        )

    def list_active_plans(self) -> list[TrainingPlan]:
        return (
            self._live_plans()
            .filter(TrainingPlan.status == PlanStatus.ACTIVE)
            .order_by(TrainingPlan.id)
            .all()
        )

    def get_workout(self, workout_id: int) -> Workout | None:
        return self.session.get(Workout, workout_id)

    def list_workouts_for_user(self, user_id: str, start: date, end: date) -> list[Workout]:
        return (
            self.session.query(Workout)
            .join(TrainingWeek, Workout.week_id == TrainingWeek.id)
            .join(TrainingPlan, TrainingWeek.plan_id == TrainingPlan.id)
            .filter(
                TrainingPlan.user_id == user_id,
                TrainingPlan.is_deleted.is_(False),
                Workout.scheduled_date >= start,
                Workout.scheduled_date <= end,
            )
            .order_by(Workout.scheduled_date, Workout.id)
            .all()
        )

    def delete_week(self, week: TrainingWeek) -> None:
        plan = week.plan
        if plan is not None and week in plan.weeks:
            plan.weeks.remove(week)
        self.session.delete(week)
        self.session.flush()

    def delete_workout(self, workout: Workout) -> None:
        week = workout.week
        if week is not None and workout in week.workouts:
            week.workouts.remove(workout)
        self.session.delete(workout)
        self.session.flush()

    def delete_workout_exercise(self, item: WorkoutExercise) -> None:
        workout = item.workout
        if workout is not None and item in workout.exercises:
            workout.exercises.remove(item)
        self.session.delete(item)
        self.session.flush()


class SqlPlanAdaptationRepository(_SessionRepository):
    def add(self, adaptation: PlanAdaptation) -> PlanAdaptation:
        self.session.add(adaptation)
        self.session.flush()
        return adaptation

    def get_by_id(self, adaptation_id: int) -> PlanAdaptation | None:
        return self.session.get(PlanAdaptation, adaptation_id)

    def list_by_plan(self, plan_id: int) -> list[PlanAdaptation]:
        return (
            self.session.query(PlanAdaptation)
            .filter(PlanAdaptation.plan_id == plan_id)
            .order_by(PlanAdaptation.applied_at.desc(), PlanAdaptation.id.desc())
            .all()
        )

    def get_most_recent(self, plan_id: int) -> PlanAdaptation | None:
        return (
            self.session.query(PlanAdaptation)
            .filter(PlanAdaptation.plan_id == plan_id)
            .order_by(PlanAdaptation.id.desc())
            .first()
        )

    def update(self, adaptation: PlanAdaptation) -> PlanAdaptation:
        self.session.flush()
        return adaptation

    def delete(self, adaptation: PlanAdaptation) -> None:
        self.session.delete(adaptation)
        self.session.flush()


class SqlCompletionHistoryRepository(_SessionRepository):
    def add(self, record: CompletionHistory) -> CompletionHistory:
        self.session.add(record)
        self.session.flush()
        return record

    def get_by_workout(self, workout_id: int) -> CompletionHistory | None:
        return (
            self.session.query(CompletionHistory)
            .filter(CompletionHistory.workout_id == workout_id)
            .order_by(CompletionHistory.id.desc())
            .first()
        )

    def delete(self, record: CompletionHistory) -> None:
        self.session.delete(record)
        self.session.flush()

    def list_by_user(self, user_id: str) -> list[CompletionHistory]:
        return (
            self.session.query(CompletionHistory)
            .filter(CompletionHistory.user_id == user_id)
            .order_by(CompletionHistory.completed_at, CompletionHistory.id)
            .all()
        )

    def list_recent(self, user_id: str, limit: int) -> list[CompletionHistory]:
        return (
            self.session.query(CompletionHistory)
            .filter(CompletionHistory.user_id == user_id)
            .order_by(CompletionHistory.completed_at.desc(), CompletionHistory.id.desc())
            .limit(limit)
            .all()
        )

    def list_by_user_and_range(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[CompletionHistory]:
        return (
            self.session.query(CompletionHistory)
            .filter(
                CompletionHistory.user_id == user_id,
                CompletionHistory.completed_at >= start,
                CompletionHistory.completed_at <= end,
            )
            .order_by(CompletionHistory.completed_at, CompletionHistory.id)
            .all()
        )

    def distinct_completion_dates(self, user_id: str) -> list[date]:
        rows = (
            self.session.query(CompletionHistory.completed_at)
            .filter(CompletionHistory.user_id == user_id)
            .all()
        )
        return sorted({completed_at.date() for (completed_at,) in rows})


class SqlUserStreakRepository(_SessionRepository):
    def get_by_user(self, user_id: str) -> UserStreak | None:
        return self.session.query(UserStreak).filter(UserStreak.user_id == user_id).first()

    def get_or_create(self, user_id: str) -> UserStreak:
        streak = self.get_by_user(user_id)
        if streak is None:
            streak = UserStreak(
                user_id=user_id,
                current_streak=0,
                longest_streak=0,
                current_weekly_streak=0,
                longest_weekly_streak=0,
            )
            self.session.add(streak)
            self.session.flush()
        return streak

    def update(self, streak: UserStreak) -> UserStreak:
        self.session.flush()
        return streak
