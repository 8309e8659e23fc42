"""API endpoints for training plan management."""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from hybridcoach.database import get_db
from hybridcoach.dependencies import get_user_id, plan_generation_service
from hybridcoach.exceptions import CoachError, NotFoundError
from hybridcoach.models.database_models import TrainingPlan
from hybridcoach.models.schemas import (
    PlanGenerateRequest,
    PlanValidationResponse,
    TrainingPlanDetail,
    TrainingWeekResponse,
)
from hybridcoach.repositories import SqlTrainingPlanRepository, SqlUserProfileRepository
from hybridcoach.services.plan_generation import PlanGenerationService, PlanModifications


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/training", tags=["training_plans"])


def _modifications(plan_request: PlanGenerateRequest | None) -> PlanModifications | None:
    if plan_request is None:
        return None
    return PlanModifications(**plan_request.model_dump())


def _owned_plan(db: Session, plan_id: int, user_id: str) -> TrainingPlan:
    plan = SqlTrainingPlanRepository(db).get_with_weeks(plan_id)
    if plan is None or plan.user_id != user_id:
        raise NotFoundError(f"Training plan {plan_id} not found")
    return plan


@router.post("/plans/generate", response_model=TrainingPlanDetail, status_code=201)
async def generate_training_plan(
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
    plan_request: PlanGenerateRequest | None = None,
):
    """
    Generate a periodized training plan from the caller's profile.

    Args:
        plan_request: Optional overrides (weeks, days per week, start date)

    Returns:
        TrainingPlanDetail: Generated plan with weeks, workouts and warnings
    """
    try:
        plan = plan_generation_service(db).generate_plan(user_id, _modifications(plan_request))
        logger.info("Generated plan via API: id=%s, weeks=%d", plan.id, plan.total_weeks)
        return TrainingPlanDetail.model_validate(plan)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to generate training plan")
        raise HTTPException(status_code=500, detail=f"Failed to generate training plan: {str(e)}")


@router.post("/plans/regenerate", response_model=TrainingPlanDetail, status_code=201)
async def regenerate_training_plan(
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
    plan_request: PlanGenerateRequest | None = None,
):
    """
    Archive the active plan and generate a replacement.

    Args:
        plan_request: Optional overrides (weeks, days per week, start date)

    Returns:
        TrainingPlanDetail: The new active plan
    """
    try:
        plan = plan_generation_service(db).regenerate_plan(user_id, _modifications(plan_request))
        return TrainingPlanDetail.model_validate(plan)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to regenerate training plan")
        raise HTTPException(status_code=500, detail=f"Failed to regenerate training plan: {str(e)}")


@router.get("/plans/current", response_model=TrainingPlanDetail)
async def get_current_plan(
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """
    Get the caller's active training plan.

    Returns:
        TrainingPlanDetail: Active plan with all weeks and workouts
    """
    try:
        plan = SqlTrainingPlanRepository(db).get_active_plan(user_id)
        if not plan:
            raise HTTPException(status_code=404, detail="No active training plan found")

        logger.info("Retrieved current plan: id=%s, revision=%s", plan.id, plan.revision)
        return TrainingPlanDetail.model_validate(plan)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to retrieve current training plan")
        raise HTTPException(status_code=500, detail=f"Failed to retrieve training plan: {str(e)}")


@router.get("/plans/validate", response_model=PlanValidationResponse)
async def validate_plan_parameters(
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """Report whether the caller's profile carries enough information to plan against."""
    try:
        profile = SqlUserProfileRepository(db).get_complete_profile(user_id)
        issues = PlanGenerationService.profile_issues(profile)
        return PlanValidationResponse(valid=not issues, issues=issues)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to validate plan parameters")
        raise HTTPException(status_code=500, detail=f"Failed to validate plan parameters: {str(e)}")


@router.get("/plans/{plan_id}", response_model=TrainingPlanDetail)
async def get_plan_by_id(
    plan_id: int,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """
    Get a specific training plan with all workouts.

    Args:
        plan_id: Training plan ID

    Returns:
        TrainingPlanDetail: Plan with all weeks and workouts
    """
    try:
        return TrainingPlanDetail.model_validate(_owned_plan(db, plan_id, user_id))

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to retrieve training plan %s", plan_id)
        raise HTTPException(status_code=500, detail=f"Failed to retrieve training plan: {str(e)}")


@router.get("/plans/{plan_id}/weeks/{week_number}", response_model=TrainingWeekResponse)
async def get_plan_week(
    plan_id: int,
    week_number: int,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """
    Get one week of a training plan.

    Args:
        plan_id: Training plan ID
        week_number: 1-based week number

    Returns:
        TrainingWeekResponse: The week with its workouts
    """
    try:
        plan = _owned_plan(db, plan_id, user_id)
        week = next((w for w in plan.weeks if w.week_number == week_number), None)
        if week is None:
            raise NotFoundError(f"Week {week_number} not found in plan {plan_id}")
        return TrainingWeekResponse.model_validate(week)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to retrieve week %s of plan %s", week_number, plan_id)
        raise HTTPException(status_code=500, detail=f"Failed to retrieve plan week: {str(e)}")


@router.delete("/plans/{plan_id}", status_code=200)
async def delete_plan(
    plan_id: int,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """
    Soft delete a training plan.

    Args:
        plan_id: Training plan ID to delete

    Returns:
        dict: Success message
    """
    try:
        plan = _owned_plan(db, plan_id, user_id)
        SqlTrainingPlanRepository(db).soft_delete(plan)

        logger.info("Deleted training plan: id=%s", plan_id)
        return {"message": f"Training plan {plan_id} deleted successfully"}

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to delete plan %s", plan_id)
        raise HTTPException(status_code=500, detail=f"Failed to delete plan: {str(e)}")
