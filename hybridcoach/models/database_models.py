"""SQLAlchemy ORM models for profiles, the exercise catalog, plans and progress."""
from __future__ import annotations

from datetime import date, datetime, timedelta
from enum import Enum as PyEnum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hybridcoach.database import Base
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
    IntensityLevel,
    MovementPattern,
    PlanStatus,
    ProgressionRelation,
    SessionType,
    TrainingPhase,
)


def enum_column(enum_cls: type[PyEnum]) -> Enum:
    """Store enums by value in a plain VARCHAR so SQLite and Postgres agree."""
    return Enum(
        enum_cls,
        native_enum=False,
        length=40,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


WEEKDAY_FIELDS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


class UserProfile(Base):
    """Per-user fitness profile (one per user)."""

    __tablename__ = "user_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    display_name: Mapped[str | None] = mapped_column(String(120), nullable=True)

    hyrox_level: Mapped[DifficultyLevel] = mapped_column(
        enum_column(DifficultyLevel), default=DifficultyLevel.BEGINNER, nullable=False
    )
    running_level: Mapped[DifficultyLevel] = mapped_column(
        enum_column(DifficultyLevel), default=DifficultyLevel.BEGINNER, nullable=False
    )
    strength_level: Mapped[DifficultyLevel] = mapped_column(
        enum_column(DifficultyLevel), default=DifficultyLevel.BEGINNER, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    schedule: Mapped[ScheduleAvailability | None] = relationship(
        back_populates="profile", uselist=False, cascade="all, delete-orphan"
    )
    background: Mapped[TrainingBackground | None] = relationship(
        back_populates="profile", uselist=False, cascade="all, delete-orphan"
    )
    goals: Mapped[list[TrainingGoal]] = relationship(
        back_populates="profile", cascade="all, delete-orphan", order_by="TrainingGoal.id"
    )
    injuries: Mapped[list[InjuryLimitation]] = relationship(
        back_populates="profile", cascade="all, delete-orphan", order_by="InjuryLimitation.id"
    )

    def level_for(self, discipline: Discipline) -> DifficultyLevel:
        """Fitness level for a discipline; hybrid work uses the lowest of the three."""
        if discipline == Discipline.HYROX:
            return self.hyrox_level
        if discipline == Discipline.RUNNING:
            return self.running_level
        if discipline == Discipline.STRENGTH:
            return self.strength_level
        return min(
            (self.hyrox_level, self.running_level, self.strength_level),
            key=lambda level: level.rank,
        )

    @property
    def active_goals(self) -> list["TrainingGoal"]:
        return [goal for goal in self.goals if goal.status == GoalStatus.ACTIVE]

    @property
    def active_injuries(self) -> list["InjuryLimitation"]:
        return [injury for injury in self.injuries if injury.status == InjuryStatus.ACTIVE]


class ScheduleAvailability(Base):
    """Seven day-flags plus session bounds owned by a profile."""

    __tablename__ = "schedule_availability"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_profiles.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    monday: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    tuesday: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    wednesday: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    thursday: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    friday: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    saturday: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sunday: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    minimum_sessions_per_week: Mapped[int] = mapped_column(Integer, default=3, nullable=False)
    maximum_sessions_per_week: Mapped[int] = mapped_column(Integer, default=5, nullable=False)

    profile: Mapped[UserProfile] = relationship(back_populates="schedule")

    def selected_weekdays(self) -> list[int]:
        """Selected days as ``date.weekday()`` numbers (Monday is 0)."""
        return [index for index, name in enumerate(WEEKDAY_FIELDS) if getattr(self, name)]

    @property
    def weekdays(self) -> list[int]:
        return self.selected_weekdays()

    def set_weekdays(self, weekdays) -> None:
        chosen = set(weekdays)
        for index, name in enumerate(WEEKDAY_FIELDS):
            setattr(self, name, index in chosen)

    def is_valid(self) -> bool:
        days = len(self.selected_weekdays())
        return (
            days >= 1
            and 1 <= self.minimum_sessions_per_week <= self.maximum_sessions_per_week <= 7
        )


class TrainingBackground(Base):
    """Free-form training history owned by a profile."""

    __tablename__ = "training_backgrounds"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_profiles.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    has_structured_training: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    training_years: Mapped[int | None] = mapped_column(Integer, nullable=True)
    previous_experience: Mapped[str | None] = mapped_column(Text, nullable=True)

    profile: Mapped[UserProfile] = relationship(back_populates="background")


class TrainingGoal(Base):
    __tablename__ = "training_goals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    goal_type: Mapped[GoalType] = mapped_column(enum_column(GoalType), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    target_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    priority: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    status: Mapped[GoalStatus] = mapped_column(
        enum_column(GoalStatus), default=GoalStatus.ACTIVE, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    profile: Mapped[UserProfile] = relationship(back_populates="goals")


class InjuryLimitation(Base):
    __tablename__ = "injury_limitations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    body_part: Mapped[str] = mapped_column(String(60), nullable=False)
    injury_type: Mapped[InjuryType] = mapped_column(enum_column(InjuryType), nullable=False)
    reported_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[InjuryStatus] = mapped_column(
        enum_column(InjuryStatus), default=InjuryStatus.ACTIVE, nullable=False
    )
    movement_restrictions: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolved_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    profile: Mapped[UserProfile] = relationship(back_populates="injuries")


# ---------------------------------------------------------------------------
# Exercise catalog
# ---------------------------------------------------------------------------


exercise_muscle_groups = Table(
    "exercise_muscle_groups",
    Base.metadata,
    Column("exercise_id", ForeignKey("exercises.id", ondelete="CASCADE"), primary_key=True),
    Column("muscle_group_id", ForeignKey("muscle_groups.id", ondelete="CASCADE"), primary_key=True),
)

exercise_equipment = Table(
    "exercise_equipment",
    Base.metadata,
    Column("exercise_id", ForeignKey("exercises.id", ondelete="CASCADE"), primary_key=True),
    Column("equipment_id", ForeignKey("equipment.id", ondelete="CASCADE"), primary_key=True),
)


class MuscleGroup(Base):
    __tablename__ = "muscle_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(60), unique=True, nullable=False)
    category: Mapped[str | None] = mapped_column(String(40), nullable=True)


class Equipment(Base):
    __tablename__ = "equipment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(60), unique=True, nullable=False)


class Contraindication(Base):
    """A body-part keyed reason an exercise is unsafe, e.g. Shoulder / Overhead."""

    __tablename__ = "contraindications"
    __table_args__ = (UniqueConstraint("injury_type", "movement_restriction", name="uq_contraindication"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    injury_type: Mapped[str] = mapped_column(String(60), nullable=False)
    movement_restriction: Mapped[str] = mapped_column(String(60), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class Exercise(Base):
    __tablename__ = "exercises"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    primary_discipline: Mapped[Discipline] = mapped_column(enum_column(Discipline), nullable=False, index=True)
    difficulty_level: Mapped[DifficultyLevel] = mapped_column(enum_column(DifficultyLevel), nullable=False)
    intensity_level: Mapped[IntensityLevel] = mapped_column(enum_column(IntensityLevel), nullable=False)
    session_type: Mapped[SessionType | None] = mapped_column(enum_column(SessionType), nullable=True)
    # "reps" for loaded lifts, "time" for stations and runs
    measure: Mapped[str] = mapped_column(String(10), default="reps", nullable=False)
    base_duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)

    muscle_groups: Mapped[list[MuscleGroup]] = relationship(secondary=exercise_muscle_groups, lazy="selectin")
    equipment: Mapped[list[Equipment]] = relationship(secondary=exercise_equipment, lazy="selectin")
    movement_patterns: Mapped[list[ExerciseMovementPattern]] = relationship(
        back_populates="exercise", cascade="all, delete-orphan", lazy="selectin"
    )
    contraindications: Mapped[list[ExerciseContraindication]] = relationship(
        back_populates="exercise", cascade="all, delete-orphan", lazy="selectin"
    )


class ExerciseMovementPattern(Base):
    __tablename__ = "exercise_movement_patterns"

    exercise_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("exercises.id", ondelete="CASCADE"), primary_key=True
    )
    movement_pattern: Mapped[MovementPattern] = mapped_column(enum_column(MovementPattern), primary_key=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    exercise: Mapped[Exercise] = relationship(back_populates="movement_patterns")


class ExerciseContraindication(Base):
    __tablename__ = "exercise_contraindications"
    __table_args__ = (UniqueConstraint("exercise_id", "contraindication_id", name="uq_exercise_contraindication"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    exercise_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("exercises.id", ondelete="CASCADE"), nullable=False, index=True
    )
    contraindication_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("contraindications.id", ondelete="CASCADE"), nullable=False
    )
    severity: Mapped[str] = mapped_column(String(20), default="relative", nullable=False)
    recommended_substitute_ids: Mapped[list | None] = mapped_column(JSON, nullable=True)

    exercise: Mapped[Exercise] = relationship(back_populates="contraindications")
    contraindication: Mapped[Contraindication] = relationship(lazy="joined")


class ExerciseProgression(Base):
    """Directed graph edge between two exercises; lookup only, never ownership."""

    __tablename__ = "exercise_progressions"
    __table_args__ = (
        UniqueConstraint("base_exercise_id", "related_exercise_id", "relation", name="uq_exercise_progression"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    base_exercise_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("exercises.id", ondelete="CASCADE"), nullable=False, index=True
    )
    related_exercise_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("exercises.id", ondelete="CASCADE"), nullable=False
    )
    relation: Mapped[ProgressionRelation] = mapped_column(enum_column(ProgressionRelation), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------


class TrainingPlan(Base):
    """Multi-week plan. ``revision`` is bumped on every write for optimistic locking."""

    __tablename__ = "training_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_weeks: Mapped[int] = mapped_column(Integer, nullable=False)
    training_days_per_week: Mapped[int] = mapped_column(Integer, nullable=False)
    primary_goal_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("training_goals.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[PlanStatus] = mapped_column(enum_column(PlanStatus), default=PlanStatus.ACTIVE, nullable=False)
    current_week: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    revision: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    weeks: Mapped[list[TrainingWeek]] = relationship(
        back_populates="plan", cascade="all, delete-orphan", order_by="TrainingWeek.week_number"
    )
    plan_metadata: Mapped[PlanMetadata | None] = relationship(
        back_populates="plan", uselist=False, cascade="all, delete-orphan"
    )
    primary_goal: Mapped[TrainingGoal | None] = relationship()

    __mapper_args__ = {"version_id_col": revision}

    def ordered_weeks(self) -> list["TrainingWeek"]:
        return sorted(self.weeks, key=lambda week: week.week_number)

    def all_workouts(self) -> list["Workout"]:
        workouts = [workout for week in self.weeks for workout in week.workouts]
        return sorted(workouts, key=lambda workout: (workout.scheduled_date, workout.id or 0))

    @property
    def warnings(self) -> list[str]:
        return list(self.plan_metadata.warnings or []) if self.plan_metadata else []


class PlanMetadata(Base):
    __tablename__ = "plan_metadata"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plan_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("training_plans.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    algorithm_version: Mapped[str] = mapped_column(String(20), nullable=False)
    generation_parameters: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    profile_snapshot: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    # JSON columns are not mutation-tracked; always assign a new list.
    modification_history: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    warnings: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    plan: Mapped[TrainingPlan] = relationship(back_populates="plan_metadata")


class TrainingWeek(Base):
    __tablename__ = "training_weeks"
    __table_args__ = (UniqueConstraint("plan_id", "week_number", name="uq_training_week_number"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plan_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("training_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    phase: Mapped[TrainingPhase] = mapped_column(enum_column(TrainingPhase), nullable=False)
    weekly_volume_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    intensity_level: Mapped[IntensityLevel] = mapped_column(enum_column(IntensityLevel), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    plan: Mapped[TrainingPlan] = relationship(back_populates="weeks")
    workouts: Mapped[list[Workout]] = relationship(
        back_populates="week", cascade="all, delete-orphan", order_by="Workout.scheduled_date"
    )

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def shift(self, days: int) -> None:
        delta = timedelta(days=days)
        self.start_date += delta
        self.end_date += delta


class Workout(Base):
    __tablename__ = "workouts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    week_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("training_weeks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)  # 0 = Monday
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    discipline: Mapped[Discipline] = mapped_column(enum_column(Discipline), nullable=False)
    session_type: Mapped[SessionType | None] = mapped_column(enum_column(SessionType), nullable=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    estimated_duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    intensity_level: Mapped[IntensityLevel] = mapped_column(enum_column(IntensityLevel), nullable=False)
    is_key_workout: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_placeholder: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completion_status: Mapped[CompletionStatus] = mapped_column(
        enum_column(CompletionStatus), default=CompletionStatus.NOT_STARTED, nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    week: Mapped[TrainingWeek] = relationship(back_populates="workouts")
    exercises: Mapped[list[WorkoutExercise]] = relationship(
        back_populates="workout", cascade="all, delete-orphan", order_by="WorkoutExercise.order_index"
    )

    def reschedule(self, new_date: date) -> None:
        self.scheduled_date = new_date
        self.day_of_week = new_date.weekday()


class WorkoutExercise(Base):
    __tablename__ = "workout_exercises"
    __table_args__ = (UniqueConstraint("workout_id", "order_index", name="uq_workout_exercise_order"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    workout_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("workouts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    exercise_id: Mapped[int] = mapped_column(Integer, ForeignKey("exercises.id"), nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    sets: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reps: Mapped[int | None] = mapped_column(Integer, nullable=True)
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rest_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    intensity_guidance: Mapped[str | None] = mapped_column(String(120), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    workout: Mapped[Workout] = relationship(back_populates="exercises")
    exercise: Mapped[Exercise] = relationship()

    @property
    def exercise_name(self) -> str | None:
        return self.exercise.name if self.exercise else None


class PlanAdaptation(Base):
    """Append-only audit record written once per adaptation attempt."""

    __tablename__ = "plan_adaptations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plan_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("training_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    trigger: Mapped[AdaptationTrigger] = mapped_column(enum_column(AdaptationTrigger), nullable=False)
    adaptation_type: Mapped[AdaptationType] = mapped_column(enum_column(AdaptationType), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    changes: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    workouts_affected: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    warnings: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    applied_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


class CompletionHistory(Base):
    __tablename__ = "completion_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    workout_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("workouts.id", ondelete="SET NULL"), nullable=True, index=True
    )
    completed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    actual_duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class UserStreak(Base):
    __tablename__ = "user_streaks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    current_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    current_weekly_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    longest_weekly_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_workout_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
