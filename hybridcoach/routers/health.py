"""Router exposing basic system endpoints."""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from hybridcoach.database import get_db
from hybridcoach.models.database_models import Exercise, ExerciseProgression


logger = logging.getLogger(__name__)


router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/status")
async def get_status() -> dict[str, str]:
    """Return a minimal status payload."""
    return {"status": "online"}


@router.get("/catalog-status")
async def get_catalog_status(db: Annotated[Session, Depends(get_db)]) -> dict:
    """
    Check that the exercise catalog has been seeded.

    Plan generation cannot place any exercise until the catalog is loaded
    (see ``scripts/initial_setup.py``).

    Returns:
        dict: {
            "exercises": int,
            "progressions": int,
            "needs_seed": bool
        }
    """
    try:
        exercises = db.query(func.count(Exercise.id)).scalar() or 0
        progressions = db.query(func.count(ExerciseProgression.id)).scalar() or 0
        return {
            "exercises": exercises,
            "progressions": progressions,
            "needs_seed": exercises == 0,
        }

    except Exception:
        logger.exception("Catalog status check failed")
        raise HTTPException(status_code=500, detail="Failed to check catalog status")
