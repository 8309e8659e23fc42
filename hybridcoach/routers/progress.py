"""API endpoints for workout completion, streaks and statistics."""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from hybridcoach.database import get_db
from hybridcoach.dependencies import get_user_id, progress_service
from hybridcoach.exceptions import CoachError
from hybridcoach.models.schemas import (
    CompletionHistoryResponse,
    CompletionStatsResponse,
    OverallStatsResponse,
    StreakInfoResponse,
    WorkoutCompletionRequest,
    WorkoutCompletionResponse,
    WorkoutResponse,
)
from hybridcoach.services.progress_tracking import week_start


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/progress", tags=["progress"])


def _as_naive_utc(value: datetime | None) -> datetime | None:
    # Timestamps are stored as naive UTC.
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@router.put("/workouts/{workout_id}/complete", response_model=WorkoutCompletionResponse)
async def complete_workout(
    workout_id: int,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
    completion: WorkoutCompletionRequest | None = None,
):
    """
    Mark a workout as completed and update the streak.

    Args:
        workout_id: Workout ID
        completion: Optional completion time, actual duration and notes

    Returns:
        WorkoutCompletionResponse: Updated workout, streak and any milestones reached
    """
    try:
        completion = completion or WorkoutCompletionRequest()
        result = progress_service(db).complete_workout(
            user_id,
            workout_id,
            completed_at=_as_naive_utc(completion.completed_at),
            actual_duration_minutes=completion.actual_duration_minutes,
            notes=completion.notes,
        )
        return WorkoutCompletionResponse.model_validate(result)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to complete workout %s", workout_id)
        raise HTTPException(status_code=500, detail=f"Failed to complete workout: {str(e)}")


@router.put("/workouts/{workout_id}/undo", response_model=WorkoutResponse)
async def undo_completion(
    workout_id: int,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """Revert a completion and recompute the streak."""
    try:
        workout = progress_service(db).undo_completion(user_id, workout_id)
        return WorkoutResponse.model_validate(workout)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to undo completion of workout %s", workout_id)
        raise HTTPException(status_code=500, detail=f"Failed to undo completion: {str(e)}")


@router.put("/workouts/{workout_id}/skip", response_model=WorkoutResponse)
async def skip_workout(
    workout_id: int,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """Mark a workout as deliberately skipped."""
    try:
        workout = progress_service(db).skip_workout(user_id, workout_id)
        return WorkoutResponse.model_validate(workout)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to skip workout %s", workout_id)
        raise HTTPException(status_code=500, detail=f"Failed to skip workout: {str(e)}")


@router.get("/streak", response_model=StreakInfoResponse)
async def get_streak(
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """Current and longest streaks with the next milestone."""
    try:
        return StreakInfoResponse.model_validate(progress_service(db).get_streak_info(user_id))

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to retrieve streak")
        raise HTTPException(status_code=500, detail=f"Failed to retrieve streak: {str(e)}")


@router.get("/stats", response_model=CompletionStatsResponse)
async def get_completion_stats(
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
    start: date | None = None,
    end: date | None = None,
):
    """
    Completion counts for scheduled workouts in a date range.

    Args:
        start: First day of the range (default: Monday of the current week)
        end: Last day of the range (default: six days after ``start``)

    Returns:
        CompletionStatsResponse: Completed, skipped and scheduled counts
    """
    try:
        start = start or week_start(date.today())
        end = end or start + timedelta(days=6)
        stats = progress_service(db).get_completion_stats(user_id, start, end)
        return CompletionStatsResponse.model_validate(stats)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to retrieve completion stats")
        raise HTTPException(status_code=500, detail=f"Failed to retrieve completion stats: {str(e)}")


@router.get("/stats/overall", response_model=OverallStatsResponse)
async def get_overall_stats(
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """Lifetime completion statistics."""
    try:
        return OverallStatsResponse.model_validate(progress_service(db).get_overall_stats(user_id))

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to retrieve overall stats")
        raise HTTPException(status_code=500, detail=f"Failed to retrieve overall stats: {str(e)}")


@router.get("/history", response_model=list[CompletionHistoryResponse])
async def get_completion_history(
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
    start: date | None = None,
    end: date | None = None,
):
    """Completion records, optionally limited to a date range."""
    try:
        records = progress_service(db).get_completion_history(user_id, start, end)
        return [CompletionHistoryResponse.model_validate(record) for record in records]

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to retrieve completion history")
        raise HTTPException(status_code=500, detail=f"Failed to retrieve completion history: {str(e)}")
