"""Repository contracts consumed by the engine and their SQLAlchemy implementations."""
from hybridcoach.repositories.base import (
    CompletionHistoryRepository,
    ExerciseRepository,
    PlanAdaptationRepository,
    TrainingPlanRepository,
    UserProfileRepository,
    UserStreakRepository,
)
from hybridcoach.repositories.sql import (
    SqlCompletionHistoryRepository,
    SqlExerciseRepository,
    SqlPlanAdaptationRepository,
    SqlTrainingPlanRepository,
    SqlUserProfileRepository,
    SqlUserStreakRepository,
)

__all__ = [
    "CompletionHistoryRepository",
    "ExerciseRepository",
    "PlanAdaptationRepository",
    "TrainingPlanRepository",
    "UserProfileRepository",
    "UserStreakRepository",
    "SqlCompletionHistoryRepository",
    "SqlExerciseRepository",
    "SqlPlanAdaptationRepository",
    "SqlTrainingPlanRepository",
    "SqlUserProfileRepository",
    "SqlUserStreakRepository",
]
