"""API endpoints for injury reporting and exercise safety lookups."""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from hybridcoach.database import get_db
from hybridcoach.dependencies import get_user_id, injury_service
from hybridcoach.exceptions import CoachError
from hybridcoach.models.schemas import (
    ContraindicatedExerciseResponse,
    InjuryReportRequest,
    InjuryReportResponse,
    InjuryResponse,
    SubstituteExerciseResponse,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/injuries", tags=["injuries"])


@router.post("", response_model=InjuryReportResponse, status_code=201)
async def report_injury(
    payload: InjuryReportRequest,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """
    Record an injury and adapt the active plan around it.

    Args:
        payload: Body part, injury type and optional restrictions

    Returns:
        InjuryReportResponse: The stored injury and the plan adaptation, if any
    """
    try:
        report = injury_service(db).report_injury(
            user_id,
            body_part=payload.body_part,
            injury_type=payload.injury_type,
            movement_restrictions=payload.movement_restrictions,
            severity=payload.severity,
            pain_description=payload.pain_description,
        )
        return InjuryReportResponse.model_validate(report)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to report injury")
        raise HTTPException(status_code=500, detail=f"Failed to report injury: {str(e)}")


@router.put("/{injury_id}/resolve", response_model=InjuryResponse)
async def resolve_injury(
    injury_id: int,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """Mark an injury as resolved."""
    try:
        injury = injury_service(db).resolve_injury(user_id, injury_id)
        return InjuryResponse.model_validate(injury)

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to resolve injury %s", injury_id)
        raise HTTPException(status_code=500, detail=f"Failed to resolve injury: {str(e)}")


@router.get("/active", response_model=list[InjuryResponse])
async def get_active_injuries(
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    try:
        injuries = injury_service(db).get_active_injuries(user_id)
        return [InjuryResponse.model_validate(injury) for injury in injuries]

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to retrieve active injuries")
        raise HTTPException(status_code=500, detail=f"Failed to retrieve injuries: {str(e)}")


@router.get("/contraindications", response_model=list[ContraindicatedExerciseResponse])
async def get_contraindicated_exercises(
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """Exercises the caller should avoid given their active injuries."""
    try:
        found = injury_service(db).get_contraindicated_exercises(user_id)
        return [
            ContraindicatedExerciseResponse(
                exercise_id=item.entry.id,
                exercise_name=item.entry.name,
                discipline=item.entry.discipline,
                severity=item.severity,
                reasons=[rule.describe() for rule in item.reasons],
            )
            for item in found
        ]

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to retrieve contraindicated exercises")
        raise HTTPException(status_code=500, detail=f"Failed to retrieve contraindications: {str(e)}")


@router.get("/substitutes/{exercise_id}", response_model=SubstituteExerciseResponse | None)
async def get_substitute_exercise(
    exercise_id: int,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_user_id)],
):
    """
    Safe replacement for an exercise.

    Args:
        exercise_id: Exercise to replace

    Returns:
        SubstituteExerciseResponse | None: null when no substitute is needed or none is safe
    """
    try:
        suggestion = injury_service(db).get_substitute_exercise(user_id, exercise_id)
        if suggestion is None:
            return None
        return SubstituteExerciseResponse(
            original_exercise_id=suggestion.original.id,
            original_exercise_name=suggestion.original.name,
            substitute_exercise_id=suggestion.substitute.id,
            substitute_exercise_name=suggestion.substitute.name,
            difficulty_level=suggestion.substitute.difficulty,
            reason=suggestion.reason,
        )

    except (HTTPException, CoachError):
        raise
    except Exception as e:
        logger.exception("Failed to find substitute for exercise %s", exercise_id)
        raise HTTPException(status_code=500, detail=f"Failed to find substitute: {str(e)}")
