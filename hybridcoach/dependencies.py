"""FastAPI dependencies shared by the routers."""
from __future__ import annotations

from typing import Annotated

from fastapi import Header, HTTPException
from sqlalchemy.orm import Session

from hybridcoach.repositories import (
    SqlCompletionHistoryRepository,
    SqlExerciseRepository,
    SqlPlanAdaptationRepository,
    SqlTrainingPlanRepository,
    SqlUserProfileRepository,
    SqlUserStreakRepository,
)
from hybridcoach.services.adaptation_engine import AdaptationEngine
from hybridcoach.services.injury_management import InjuryManagementService
from hybridcoach.services.plan_generation import PlanGenerationService
from hybridcoach.services.progress_tracking import ProgressTrackingService


def get_user_id(x_user_id: Annotated[str | None, Header()] = None) -> str:
    """Caller identity supplied by the fronting platform."""
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(status_code=400, detail="X-User-Id header is required")
    return x_user_id.strip()


def plan_generation_service(db: Session) -> PlanGenerationService:
    return PlanGenerationService(
        profiles=SqlUserProfileRepository(db),
        exercises=SqlExerciseRepository(db),
        plans=SqlTrainingPlanRepository(db),
    )


def adaptation_engine(db: Session) -> AdaptationEngine:
    return AdaptationEngine(
        plans=SqlTrainingPlanRepository(db),
        adaptations=SqlPlanAdaptationRepository(db),
        profiles=SqlUserProfileRepository(db),
        exercises=SqlExerciseRepository(db),
        history=SqlCompletionHistoryRepository(db),
    )


def progress_service(db: Session) -> ProgressTrackingService:
    return ProgressTrackingService(
        history=SqlCompletionHistoryRepository(db),
        streaks=SqlUserStreakRepository(db),
        plans=SqlTrainingPlanRepository(db),
        profiles=SqlUserProfileRepository(db),
    )


def injury_service(db: Session) -> InjuryManagementService:
    return InjuryManagementService(
        profiles=SqlUserProfileRepository(db),
        exercises=SqlExerciseRepository(db),
        engine=adaptation_engine(db),
    )
