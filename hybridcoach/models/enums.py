"""Enumerations shared by the ORM models, services and API schemas."""
from __future__ import annotations

from enum import Enum


class Discipline(str, Enum):
    HYROX = "hyrox"
    RUNNING = "running"
    STRENGTH = "strength"
    HYBRID = "hybrid"


class DifficultyLevel(str, Enum):
    """Ordinal skill level; also used for a profile's per-discipline fitness."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @property
    def rank(self) -> int:
        return _DIFFICULTY_ORDER.index(self)


FitnessLevel = DifficultyLevel

_DIFFICULTY_ORDER = [
    DifficultyLevel.BEGINNER,
    DifficultyLevel.INTERMEDIATE,
    DifficultyLevel.ADVANCED,
]


class IntensityLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    MAXIMUM = "maximum"

    @property
    def rank(self) -> int:
        return _INTENSITY_ORDER.index(self)

    def shifted(self, steps: int, ceiling: "IntensityLevel | None" = None) -> "IntensityLevel":
        """Move ``steps`` levels up (positive) or down, clamped to the scale."""
        top = (ceiling or IntensityLevel.MAXIMUM).rank
        index = max(0, min(top, self.rank + steps))
        return _INTENSITY_ORDER[index]


_INTENSITY_ORDER = [
    IntensityLevel.LOW,
    IntensityLevel.MODERATE,
    IntensityLevel.HIGH,
    IntensityLevel.MAXIMUM,
]


class IntensityDirection(str, Enum):
    HARDER = "harder"
    EASIER = "easier"

    @property
    def step(self) -> int:
        return 1 if self is IntensityDirection.HARDER else -1


class TrainingPhase(str, Enum):
    FOUNDATION = "foundation"
    BUILD = "build"
    PEAK = "peak"
    RECOVERY = "recovery"


class SessionType(str, Enum):
    EASY_RUN = "easy_run"
    INTERVALS = "intervals"
    TEMPO = "tempo"
    LONG_RUN = "long_run"
    RECOVERY = "recovery"
    FULL_BODY = "full_body"
    UPPER_LOWER = "upper_lower"
    PUSH_PULL_LEGS = "push_pull_legs"
    RACE_SIMULATION = "race_simulation"
    STATION_PRACTICE = "station_practice"
    TRANSITION_DRILLS = "transition_drills"
    HYBRID_CONDITIONING = "hybrid_conditioning"


class MovementPattern(str, Enum):
    PUSH = "push"
    PULL = "pull"
    SQUAT = "squat"
    HINGE = "hinge"
    CARRY = "carry"
    CORE = "core"
    CARDIO = "cardio"


class ProgressionRelation(str, Enum):
    REGRESSION = "regression"
    PROGRESSION = "progression"
    ALTERNATIVE = "alternative"


class GoalType(str, Enum):
    HYROX_RACE = "hyrox_race"
    RUNNING_DISTANCE = "running_distance"
    STRENGTH_MILESTONE = "strength_milestone"
    GENERAL_FITNESS = "general_fitness"


class GoalStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class InjuryType(str, Enum):
    ACUTE = "acute"
    CHRONIC = "chronic"


class InjuryStatus(str, Enum):
    ACTIVE = "active"
    IMPROVING = "improving"
    RESOLVED = "resolved"


class PlanStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class CompletionStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class AdaptationTrigger(str, Enum):
    MISSED_WORKOUTS = "missed_workouts"
    INTENSITY_CHANGE = "intensity_change"
    SCHEDULE_CHANGE = "schedule_change"
    INJURY = "injury"
    GOAL_TIMELINE_CHANGE = "goal_timeline_change"
    PERCEIVED_DIFFICULTY_PATTERN = "perceived_difficulty_pattern"


class AdaptationType(str, Enum):
    INTENSITY = "intensity"
    SCHEDULE = "schedule"
    TIMELINE = "timeline"
    INJURY = "injury"
    RECOVERY = "recovery"
