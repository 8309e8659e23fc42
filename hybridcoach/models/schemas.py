"""Pydantic models describing API payloads."""
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from hybridcoach.models.enums import (
    AdaptationTrigger,
    AdaptationType,
    CompletionStatus,
    DifficultyLevel,
    Discipline,
    GoalStatus,
    GoalType,
    InjuryStatus,
    InjuryType,
    IntensityDirection,
    IntensityLevel,
    PlanStatus,
    SessionType,
    TrainingPhase,
)


def _check_weekdays(value: list[int]) -> list[int]:
    if any(day < 0 or day > 6 for day in value):
        raise ValueError("weekdays must be between 0 (Monday) and 6 (Sunday)")
    return sorted(set(value))


# Profile Schemas
class ScheduleAvailabilityPayload(BaseModel):
    """Training days (0 = Monday) and weekly session bounds."""

    weekdays: list[int]
    minimum_sessions_per_week: int = Field(3, ge=1, le=7)
    maximum_sessions_per_week: int = Field(5, ge=1, le=7)

    @field_validator("weekdays")
    @classmethod
    def check_weekdays(cls, value: list[int]) -> list[int]:
        return _check_weekdays(value)

    @model_validator(mode="after")
    def check_bounds(self) -> "ScheduleAvailabilityPayload":
        if self.minimum_sessions_per_week > self.maximum_sessions_per_week:
            raise ValueError("minimum_sessions_per_week cannot exceed maximum_sessions_per_week")
        return self


class ScheduleAvailabilityResponse(BaseModel):
    weekdays: list[int]
    minimum_sessions_per_week: int
    maximum_sessions_per_week: int

    class Config:
        from_attributes = True


class TrainingBackgroundPayload(BaseModel):
    has_structured_training: bool = False
    training_years: int | None = Field(None, ge=0)
    previous_experience: str | None = None

    class Config:
        from_attributes = True


class GoalCreate(BaseModel):
    goal_type: GoalType
    description: str | None = None
    target_date: date | None = None
    priority: int = Field(1, ge=1)


class GoalResponse(GoalCreate):
    id: int
    status: GoalStatus
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class InjuryResponse(BaseModel):
    id: int
    body_part: str
    injury_type: InjuryType
    reported_date: date
    status: InjuryStatus
    movement_restrictions: str | None = None
    resolved_date: date | None = None

    class Config:
        from_attributes = True


class UserProfileCreate(BaseModel):
    """Schema for creating a user's fitness profile."""

    display_name: str | None = None
    hyrox_level: DifficultyLevel = DifficultyLevel.BEGINNER
    running_level: DifficultyLevel = DifficultyLevel.BEGINNER
    strength_level: DifficultyLevel = DifficultyLevel.BEGINNER
    schedule: ScheduleAvailabilityPayload
    background: TrainingBackgroundPayload | None = None
    goals: list[GoalCreate] = []


class UserProfileResponse(BaseModel):
    id: int
    user_id: str
    display_name: str | None = None
    hyrox_level: DifficultyLevel
    running_level: DifficultyLevel
    strength_level: DifficultyLevel
    schedule: ScheduleAvailabilityResponse | None = None
    background: TrainingBackgroundPayload | None = None
    goals: list[GoalResponse] = []
    injuries: list[InjuryResponse] = []

    class Config:
        from_attributes = True


# Training Plan Schemas
class PlanGenerateRequest(BaseModel):
    """Optional overrides for plan generation."""

    total_weeks: int | None = Field(None, ge=1, le=104)
    training_days_per_week: int | None = Field(None, ge=1, le=7)
    start_date: date | None = None


class WorkoutExerciseResponse(BaseModel):
    id: int
    exercise_id: int
    exercise_name: str | None = None
    order_index: int
    sets: int | None = None
    reps: int | None = None
    duration_seconds: int | None = None
    rest_seconds: int | None = None
    intensity_guidance: str | None = None
    notes: str | None = None

    class Config:
        from_attributes = True


class WorkoutResponse(BaseModel):
    id: int
    week_id: int
    day_of_week: int
    scheduled_date: date
    discipline: Discipline
    session_type: SessionType | None = None
    name: str
    description: str | None = None
    estimated_duration_minutes: int
    intensity_level: IntensityLevel
    is_key_workout: bool
    is_placeholder: bool
    completion_status: CompletionStatus
    completed_at: datetime | None = None
    exercises: list[WorkoutExerciseResponse] = []

    class Config:
        from_attributes = True


class TrainingWeekResponse(BaseModel):
    id: int
    week_number: int
    phase: TrainingPhase
    weekly_volume_minutes: int
    intensity_level: IntensityLevel
    start_date: date
    end_date: date
    notes: str | None = None
    workouts: list[WorkoutResponse] = []

    class Config:
        from_attributes = True


class TrainingPlanResponse(BaseModel):
    """Schema for training plan API response."""

    id: int
    user_id: str
    name: str
    start_date: date
    end_date: date
    total_weeks: int
    training_days_per_week: int
    primary_goal_id: int | None = None
    status: PlanStatus
    current_week: int
    revision: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class TrainingPlanDetail(TrainingPlanResponse):
    weeks: list[TrainingWeekResponse] = []
    warnings: list[str] = []


class PlanValidationResponse(BaseModel):
    valid: bool
    issues: list[str] = []


# Adaptation Schemas
class AdaptationRequestBase(BaseModel):
    """Every adaptation may carry the plan revision the client last saw."""

    expected_revision: int | None = Field(None, ge=1)


class MissedWorkoutsRequest(AdaptationRequestBase):
    workout_ids: list[int] = Field(min_length=1)


class IntensityChangeRequest(AdaptationRequestBase):
    direction: IntensityDirection
    reason: str | None = None


class ScheduleChangeRequest(AdaptationRequestBase):
    weekdays: list[int]
    minimum_sessions_per_week: int | None = Field(None, ge=1, le=7)
    maximum_sessions_per_week: int | None = Field(None, ge=1, le=7)

    @field_validator("weekdays")
    @classmethod
    def check_weekdays(cls, value: list[int]) -> list[int]:
        return _check_weekdays(value)


class InjuryAdaptationRequest(AdaptationRequestBase):
    injury_id: int


class GoalTimelineChangeRequest(AdaptationRequestBase):
    goal_id: int
    new_target_date: date


class PerceivedDifficultyRequest(AdaptationRequestBase):
    lookback: int | None = Field(None, ge=1, le=100)


class PlanAdaptationResponse(BaseModel):
    """Outcome of one adaptation call."""

    adaptation_id: int | None = None
    plan_id: int
    trigger: AdaptationTrigger
    adaptation_type: AdaptationType
    description: str
    workouts_affected: int
    applied_at: datetime
    success: bool
    warnings: list[str] = []
    changes: dict[str, Any] = {}
    plan_revision: int | None = None

    class Config:
        from_attributes = True


class AdaptationRecordResponse(BaseModel):
    """Stored audit record."""

    id: int
    plan_id: int
    trigger: AdaptationTrigger
    adaptation_type: AdaptationType
    description: str
    workouts_affected: int
    success: bool
    warnings: list[str] = []
    changes: dict[str, Any] | None = None
    applied_at: datetime

    class Config:
        from_attributes = True


# Progress Schemas
class WorkoutCompletionRequest(BaseModel):
    """Schema for marking a workout as complete."""

    completed_at: datetime | None = None
    actual_duration_minutes: int | None = Field(None, ge=0)
    notes: str | None = None


class StreakInfoResponse(BaseModel):
    current_streak: int
    longest_streak: int
    current_weekly_streak: int
    longest_weekly_streak: int
    last_workout_date: date | None = None
    next_milestone: int
    days_until_next_milestone: int

    class Config:
        from_attributes = True


class WorkoutCompletionResponse(BaseModel):
    workout: WorkoutResponse
    history_id: int | None = None
    streak: StreakInfoResponse
    milestones_reached: list[int] = []

    class Config:
        from_attributes = True


class CompletionStatsResponse(BaseModel):
    completed_count: int
    skipped_count: int
    total_scheduled: int
    completion_percentage: float
    period_start: date
    period_end: date

    class Config:
        from_attributes = True


class OverallStatsResponse(BaseModel):
    total_training_days: int
    total_workouts_completed: int
    overall_plan_completion_percentage: float
    average_weekly_completion_rate: float
    workouts_completed_this_week: int
    workouts_completed_this_month: int
    first_workout_date: datetime | None = None
    last_workout_date: datetime | None = None

    class Config:
        from_attributes = True


class CompletionHistoryResponse(BaseModel):
    id: int
    workout_id: int | None = None
    completed_at: datetime
    actual_duration_minutes: int | None = None
    notes: str | None = None

    class Config:
        from_attributes = True


# Injury Schemas
class InjuryReportRequest(BaseModel):
    body_part: str = Field(min_length=1, max_length=60)
    injury_type: InjuryType
    movement_restrictions: str | None = None
    severity: str | None = None
    pain_description: str | None = None


class InjuryReportResponse(BaseModel):
    injury: InjuryResponse
    adaptation: PlanAdaptationResponse | None = None

    class Config:
        from_attributes = True


class ContraindicatedExerciseResponse(BaseModel):
    exercise_id: int
    exercise_name: str
    discipline: Discipline
    severity: str
    reasons: list[str] = []


class SubstituteExerciseResponse(BaseModel):
    original_exercise_id: int
    original_exercise_name: str
    substitute_exercise_id: int
    substitute_exercise_name: str
    difficulty_level: DifficultyLevel
    reason: str
