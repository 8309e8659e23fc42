"""Abstract repository contracts.

The planning services only talk to these protocols, so storage can be swapped
without touching the engine. Implementations flush but never commit; the
caller owns the transaction.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Protocol

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
from hybridcoach.models.enums import DifficultyLevel, Discipline, SessionType


class UserProfileRepository(Protocol):
    def get_complete_profile(self, user_id: str) -> UserProfile | None: ...

    def add(self, profile: UserProfile) -> UserProfile: ...

    def update(self, profile: UserProfile) -> UserProfile: ...

    def get_goal(self, goal_id: int) -> TrainingGoal | None: ...

    def get_injury(self, injury_id: int) -> InjuryLimitation | None: ...

    def add_injury(self, profile: UserProfile, injury: InjuryLimitation) -> InjuryLimitation: ...


class ExerciseRepository(Protocol):
    def list_all(self) -> list[Exercise]: ...

    def get_by_id(self, exercise_id: int) -> Exercise | None: ...

    def get_by_criteria(
        self,
        discipline: Discipline | None = None,
        difficulty: DifficultyLevel | None = None,
        session_type: SessionType | None = None,
    ) -> list[Exercise]: ...

    def list_progressions(self) -> list[ExerciseProgression]: ...


class TrainingPlanRepository(Protocol):
    def get_active_plan(self, user_id: str) -> TrainingPlan | None: ...

    def get_by_id(self, plan_id: int) -> TrainingPlan | None: ...

    def get_with_weeks(self, plan_id: int) -> TrainingPlan | None: ...

    def create(self, plan: TrainingPlan) -> TrainingPlan: ...

    def update(self, plan: TrainingPlan) -> TrainingPlan: ...

    def soft_delete(self, plan: TrainingPlan) -> None: ...

    def list_by_user(self, user_id: str) -> list[TrainingPlan]: ...

    def list_active_plans(self) -> list[TrainingPlan]: ...

    def get_workout(self, workout_id: int) -> Workout | None: ...

    def list_workouts_for_user(self, user_id: str, start: date, end: date) -> list[Workout]: ...

    def delete_week(self, week: TrainingWeek) -> None: ...

    def delete_workout(self, workout: Workout) -> None: ...

    def delete_workout_exercise(self, item: WorkoutExercise) -> None: ...


class PlanAdaptationRepository(Protocol):
    def add(self, adaptation: PlanAdaptation) -> PlanAdaptation: ...

    def get_by_id(self, adaptation_id: int) -> PlanAdaptation | None: ...

    def list_by_plan(self, plan_id: int) -> list[PlanAdaptation]: ...

    def get_most_recent(self, plan_id: int) -> PlanAdaptation | None: ...

    def update(self, adaptation: PlanAdaptation) -> PlanAdaptation: ...

    def delete(self, adaptation: PlanAdaptation) -> None: ...


class CompletionHistoryRepository(Protocol):
    def add(self, record: CompletionHistory) -> CompletionHistory: ...

    def get_by_workout(self, workout_id: int) -> CompletionHistory | None: ...

    def delete(self, record: CompletionHistory) -> None: ...

    def list_by_user(self, user_id: str) -> list[CompletionHistory]: ...

    def list_recent(self, user_id: str, limit: int) -> list[CompletionHistory]: ...

    def list_by_user_and_range(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[CompletionHistory]: ...

    def distinct_completion_dates(self, user_id: str) -> list[date]: ...


class UserStreakRepository(Protocol):
    def get_by_user(self, user_id: str) -> UserStreak | None: ...

    def get_or_create(self, user_id: str) -> UserStreak: ...

    def update(self, streak: UserStreak) -> UserStreak: ...
