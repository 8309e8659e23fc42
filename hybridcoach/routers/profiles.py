"""API endpoints for the user's fitness profile."""
from __future__ import annotations

import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from hybridcoach.database import get_db
from hybridcoach.dependencies import get_user_id
from hybridcoach.exceptions import CoachError, ConflictError, NotFoundError, ValidationError
from hybridcoach.models.database_models import (
    ScheduleAvailability,
    TrainingBackground,
    TrainingGoal,
    UserProfile,
)
from hybridcoach.models.enums import GoalStatus
from hybridcoach.models.schemas import (
    GoalCreate,
    GoalResponse,
    ScheduleAvailabilityPayload,
    UserProfileCreate,
    UserProfileResponse,
)
from hybridcoach.repositories import SqlUserProfileRepository


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profile", tags=["profile"])


def _build_goal(payload: GoalCreate) -> TrainingGoal:
    if payload.target_date is not None and payload.target_date < date.today():
        raise ValidationError("Goal target date cannot be in the past")
    return TrainingGoal(
        goal_type=payload.goal_type,
        description=payload.description,
        target_date=payload.target_date,
        priority=payload.priority,
        status=GoalStatus.ACTIVE,
    )


def _build_schedule(payload: ScheduleAvailabilityPayload) -> ScheduleAvailability:
    schedule = ScheduleAvailability(
        minimum_sessions_per_week=payload.minimum_sessions_per_week,
        maximum_sessions_per_week=payload.maximum_sessions_per_week,
    )
    schedule.set_weekdays(payload.weekdays)
    return schedule


def _require_profile(profiles: SqlUserProfileRepository, user_id: str) -> UserProfile:
    profile = profiles.get_complete_profile(user_id)
    if profile is None:
        raise NotFoundError(f"User profile not found for user {user_id}")
    return profile


@router.post("", response_model=UserProfileResponse, status_code=201)
async def create_profile(
    payload: UserProfileCreate,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """
    Create the caller's fitness profile.

    Args:
        payload: Levels, schedule availability, background and goals

    Returns:
        UserProfileResponse: The stored profile
    """
    try:
        profiles = SqlUserProfileRepository(db)
        if profiles.get_complete_profile(user_id) is not None:
            raise ConflictError(f"User {user_id} already has a profile")

        background = None
        if payload.background is not None:
            background = TrainingBackground(**payload.background.model_dump())

        profile = UserProfile(
            user_id=user_id,
            display_name=payload.display_name,
            hyrox_level=payload.hyrox_level,
            running_level=payload.running_level,
            strength_level=payload.strength_level,
            schedule=_build_schedule(payload.schedule),
            background=background,
            goals=[_build_goal(goal) for goal in payload.goals],
        )
        profiles.add(profile)
        logger.info("Created profile %s for user %s with %d goals", profile.id, user_id, len(profile.goals))
        return UserProfileResponse.model_validate(profile)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to create profile")
        raise HTTPException(status_code=500, detail=f"Failed to create profile: {str(e)}")


@router.get("", response_model=UserProfileResponse)
async def get_profile(
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """Return the caller's profile with schedule, goals and injuries."""
    try:
        profile = _require_profile(SqlUserProfileRepository(db), user_id)
        return UserProfileResponse.model_validate(profile)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to retrieve profile")
        raise HTTPException(status_code=500, detail=f"Failed to retrieve profile: {str(e)}")


@router.put("/schedule", response_model=UserProfileResponse)
async def update_schedule(
    payload: ScheduleAvailabilityPayload,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """
    Replace the caller's schedule availability.

    The active plan is not touched; use the schedule adaptation to move its
    remaining workouts onto the new days.
    """
    try:
        profiles = SqlUserProfileRepository(db)
        profile = _require_profile(profiles, user_id)
        if profile.schedule is None:
            profile.schedule = _build_schedule(payload)
        else:
            profile.schedule.set_weekdays(payload.weekdays)
            profile.schedule.minimum_sessions_per_week = payload.minimum_sessions_per_week
            profile.schedule.maximum_sessions_per_week = payload.maximum_sessions_per_week
        profiles.update(profile)
        logger.info("Updated schedule for user %s: weekdays=%s", user_id, payload.weekdays)
        return UserProfileResponse.model_validate(profile)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to update schedule")
        raise HTTPException(status_code=500, detail=f"Failed to update schedule: {str(e)}")


@router.post("/goals", response_model=GoalResponse, status_code=201)
async def add_goal(
    payload: GoalCreate,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """Add a training goal to the caller's profile."""
    try:
        profiles = SqlUserProfileRepository(db)
        profile = _require_profile(profiles, user_id)
        goal = _build_goal(payload)
        profile.goals.append(goal)
        profiles.update(profile)
        logger.info("Added %s goal %s for user %s", goal.goal_type.value, goal.id, user_id)
        return GoalResponse.model_validate(goal)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to add goal")
        raise HTTPException(status_code=500, detail=f"Failed to add goal: {str(e)}")
