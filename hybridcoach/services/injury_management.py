"""Injury reporting and the contraindication queries built on the exercise catalog."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable

from hybridcoach.exceptions import CoachError, NotFoundError, ValidationError
from hybridcoach.models.database_models import InjuryLimitation, UserProfile
from hybridcoach.models.enums import InjuryStatus, InjuryType
from hybridcoach.repositories.base import ExerciseRepository, UserProfileRepository
from hybridcoach.services.adaptation_engine import AdaptationEngine, InjuryReported, PlanAdaptationResult
from hybridcoach.services.exercise_catalog import (
    CatalogEntry,
    ContraindicatedExercise,
    ExerciseCatalog,
    InjuryConstraint,
)
from hybridcoach.services.plan_generation import active_injury_constraints


logger = logging.getLogger(__name__)


def build_movement_restrictions(
    movement_restrictions: str | None, severity: str | None = None, pain_description: str | None = None
) -> str:
    """Fold the report's free-text fields into the single restrictions column."""
    parts = []
    if movement_restrictions and movement_restrictions.strip():
        parts.append(movement_restrictions.strip())
    if severity and severity.strip():
        parts.append(f"Severity: {severity.strip()}")
    if pain_description and pain_description.strip():
        parts.append(f"Pain: {pain_description.strip()}")
    return "; ".join(parts)


@dataclass
class InjuryReport:
    injury: InjuryLimitation
    adaptation: PlanAdaptationResult | None = None


@dataclass
class SubstituteSuggestion:
    original: CatalogEntry
    substitute: CatalogEntry
    reason: str


class InjuryManagementService:
    def __init__(
        self,
        profiles: UserProfileRepository,
        exercises: ExerciseRepository,
        engine: AdaptationEngine,
        clock: Callable[[], date] = date.today,
    ):
        self.profiles = profiles
        self.exercises = exercises
        self.engine = engine
        self.clock = clock

    def _require_profile(self, user_id: str) -> UserProfile:
        profile = self.profiles.get_complete_profile(user_id)
        if profile is None:
            raise NotFoundError(f"User profile not found for user {user_id}")
        return profile

    def _owned_injury(self, user_id: str, injury_id: int) -> InjuryLimitation:
        profile = self._require_profile(user_id)
        injury = self.profiles.get_injury(injury_id)
        if injury is None or injury.profile_id != profile.id:
            raise NotFoundError(f"Injury {injury_id} not found")
        return injury

    def report_injury(
        self,
        user_id: str,
        body_part: str,
        injury_type: InjuryType,
        movement_restrictions: str | None = None,
        severity: str | None = None,
        pain_description: str | None = None,
    ) -> InjuryReport:
        """Record an injury and adapt the active plan around it.

        A plan that cannot be adapted (none active, rate limited) does not fail
        the report; the injury is still recorded and the reason is logged.
        """
        if not body_part or not body_part.strip():
            raise ValidationError("Body part is required")
        profile = self._require_profile(user_id)
        logger.info("Reporting %s injury for user %s", body_part, user_id)

        injury = self.profiles.add_injury(
            profile,
            InjuryLimitation(
                body_part=body_part.strip(),
                injury_type=injury_type,
                reported_date=self.clock(),
                status=InjuryStatus.ACTIVE,
                movement_restrictions=build_movement_restrictions(movement_restrictions, severity, pain_description),
            ),
        )

        adaptation = None
        try:
            adaptation = self.engine.apply(user_id, InjuryReported(injury.id))
        except CoachError as e:
            logger.warning("Plan adaptation skipped for injury %s: %s", injury.id, e.message)
        return InjuryReport(injury=injury, adaptation=adaptation)

    def update_injury_status(self, user_id: str, injury_id: int, status: InjuryStatus) -> InjuryLimitation:
        injury = self._owned_injury(user_id, injury_id)
        previous = injury.status
        injury.status = status
        injury.resolved_date = self.clock() if status == InjuryStatus.RESOLVED else None
        self.profiles.update(injury.profile)
        logger.info("Injury %s status changed from %s to %s", injury_id, previous.value, status.value)
        return injury

    def resolve_injury(self, user_id: str, injury_id: int) -> InjuryLimitation:
        return self.update_injury_status(user_id, injury_id, InjuryStatus.RESOLVED)

    def get_active_injuries(self, user_id: str) -> list[InjuryLimitation]:
        return self._require_profile(user_id).active_injuries

    def _constraints(self, user_id: str) -> list[InjuryConstraint]:
        return active_injury_constraints(self._require_profile(user_id))

    def get_contraindicated_exercises(self, user_id: str) -> list[ContraindicatedExercise]:
        constraints = self._constraints(user_id)
        if not constraints:
            return []
        catalog = ExerciseCatalog.from_repository(self.exercises)
        return catalog.contraindicated_exercises(constraints)

    def get_substitute_exercise(self, user_id: str, exercise_id: int) -> SubstituteSuggestion | None:
        """Safe replacement for one exercise given the user's active injuries.

        Returns:
            None when the user has no active injuries or nothing safe is related
        """
        constraints = self._constraints(user_id)
        catalog = ExerciseCatalog.from_repository(self.exercises)
        original = catalog.require(exercise_id)
        if not constraints:
            logger.info("No active injuries for user %s; no substitute needed", user_id)
            return None

        substitute = catalog.substitute_for(exercise_id, constraints)
        if substitute is None:
            substitute = catalog.safe_filler(exercise_id, constraints)
        if substitute is None:
            logger.warning("No safe substitute found for exercise %s", exercise_id)
            return None
        return SubstituteSuggestion(
            original=original,
            substitute=substitute,
            reason=f"Alternative for {original.name} due to injury",
        )
