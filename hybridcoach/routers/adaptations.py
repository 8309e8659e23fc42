"""API endpoints that adapt the active plan to what actually happened."""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from hybridcoach.database import get_db
from hybridcoach.dependencies import adaptation_engine, get_user_id
from hybridcoach.exceptions import CoachError
from hybridcoach.models.schemas import (
    AdaptationRecordResponse,
    GoalTimelineChangeRequest,
    InjuryAdaptationRequest,
    IntensityChangeRequest,
    MissedWorkoutsRequest,
    PerceivedDifficultyRequest,
    PlanAdaptationResponse,
    ScheduleChangeRequest,
)
from hybridcoach.services.adaptation_engine import (
    AdaptationRequest,
    GoalTimelineChange,
    InjuryReported,
    IntensityChange,
    MissedWorkouts,
    PerceivedDifficultyPattern,
    ScheduleChange,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/adaptations", tags=["adaptations"])


def _apply(db: Session, user_id: str, request: AdaptationRequest, expected_revision: int | None):
    result = adaptation_engine(db).apply(user_id, request, expected_revision)
    return PlanAdaptationResponse.model_validate(result)


@router.post("/missed-workouts", response_model=PlanAdaptationResponse)
async def adapt_for_missed_workouts(
    payload: MissedWorkoutsRequest,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """
    Rebalance the plan after missed workouts.

    Args:
        payload: IDs of the workouts that were missed

    Returns:
        PlanAdaptationResponse: What changed and how many workouts were touched
    """
    try:
        request = MissedWorkouts(tuple(payload.workout_ids))
        return _apply(db, user_id, request, payload.expected_revision)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to adapt plan for missed workouts")
        raise HTTPException(status_code=500, detail=f"Failed to adapt plan: {str(e)}")


@router.post("/intensity", response_model=PlanAdaptationResponse)
async def adapt_for_intensity_change(
    payload: IntensityChangeRequest,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """Shift the intensity of upcoming workouts one level up or down."""
    try:
        request = IntensityChange(payload.direction, payload.reason)
        return _apply(db, user_id, request, payload.expected_revision)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to adapt plan intensity")
        raise HTTPException(status_code=500, detail=f"Failed to adapt plan: {str(e)}")


@router.post("/schedule", response_model=PlanAdaptationResponse)
async def adapt_for_schedule_change(
    payload: ScheduleChangeRequest,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """Move remaining workouts onto a new set of training days."""
    try:
        request = ScheduleChange(
            frozenset(payload.weekdays),
            payload.minimum_sessions_per_week,
            payload.maximum_sessions_per_week,
        )
        return _apply(db, user_id, request, payload.expected_revision)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to adapt plan schedule")
        raise HTTPException(status_code=500, detail=f"Failed to adapt plan: {str(e)}")


@router.post("/injury", response_model=PlanAdaptationResponse)
async def adapt_for_injury(
    payload: InjuryAdaptationRequest,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """Replace exercises contraindicated by an already recorded injury."""
    try:
        return _apply(db, user_id, InjuryReported(payload.injury_id), payload.expected_revision)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to adapt plan for injury %s", payload.injury_id)
        raise HTTPException(status_code=500, detail=f"Failed to adapt plan: {str(e)}")


@router.post("/goal-timeline", response_model=PlanAdaptationResponse)
async def adapt_for_goal_timeline_change(
    payload: GoalTimelineChangeRequest,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """Stretch or compress the plan to a goal's new target date."""
    try:
        request = GoalTimelineChange(payload.goal_id, payload.new_target_date)
        return _apply(db, user_id, request, payload.expected_revision)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to adapt plan for goal %s", payload.goal_id)
        raise HTTPException(status_code=500, detail=f"Failed to adapt plan: {str(e)}")


@router.post("/perceived-difficulty", response_model=PlanAdaptationResponse)
async def adapt_for_perceived_difficulty(
    payload: PerceivedDifficultyRequest,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """Correct the next days of training from recent "too easy" / "too hard" notes."""
    try:
        request = PerceivedDifficultyPattern(payload.lookback)
        return _apply(db, user_id, request, payload.expected_revision)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to adapt plan for perceived difficulty")
        raise HTTPException(status_code=500, detail=f"Failed to adapt plan: {str(e)}")


@router.get("", response_model=list[AdaptationRecordResponse])
async def list_adaptations(
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """
    List the adaptation history of the active plan.

    Returns:
        list[AdaptationRecordResponse]: Audit records, newest first
    """
    try:
        records = adaptation_engine(db).list_adaptations(user_id)
        return [AdaptationRecordResponse.model_validate(record) for record in records]

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to list adaptations")
        raise HTTPException(status_code=500, detail=f"Failed to list adaptations: {str(e)}")


@router.delete("/latest", status_code=200)
async def revert_last_adaptation(
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """Remove the most recent audit record when it left the plan unchanged."""
    try:
        adaptation_id = adaptation_engine(db).revert_last_adaptation(user_id)
        return {"message": f"Adaptation {adaptation_id} removed", "adaptation_id": adaptation_id}

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to revert adaptation")
        raise HTTPException(status_code=500, detail=f"Failed to revert adaptation: {str(e)}")
