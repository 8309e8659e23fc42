"""Exercise catalog resolver.

Holds the catalog as an arena of immutable entries indexed by id. Progression
edges (regression / progression / alternative) are stored as id pairs, so
substitute lookups are plain dictionary reads with no object graph to walk.
Nothing here writes to the database; callers persist any substitution.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from hybridcoach.exceptions import NotFoundError
from hybridcoach.models.database_models import Exercise, ExerciseProgression, InjuryLimitation
from hybridcoach.models.enums import (
    DifficultyLevel,
    Discipline,
    IntensityLevel,
    MovementPattern,
    ProgressionRelation,
    SessionType,
)
from hybridcoach.repositories.base import ExerciseRepository


logger = logging.getLogger(__name__)

# Disciplines whose exercises make up a hybrid session.
HYBRID_SOURCES = (Discipline.HYROX, Discipline.STRENGTH, Discipline.RUNNING)


@dataclass(frozen=True)
class InjuryConstraint:
    """The parts of an active injury that decide contraindications."""

    body_part: str
    movement_restrictions: str = ""

    @classmethod
    def from_injury(cls, injury: InjuryLimitation) -> "InjuryConstraint":
        return cls(
            body_part=injury.body_part or "",
            movement_restrictions=injury.movement_restrictions or "",
        )


@dataclass(frozen=True)
class ContraindicationRule:
    injury_key: str
    movement_restriction: str
    severity: str = "relative"
    substitute_ids: tuple[int, ...] = ()

    def matches(self, constraint: InjuryConstraint) -> bool:
        """True when the injury's body part or stated restrictions hit this rule.

        Body parts match case-insensitively in either direction ("Shoulder" vs
        "left shoulder"); otherwise the injury's free-text restrictions must
        mention this rule's movement restriction (e.g. "Overhead").
        """
        key = self.injury_key.strip().lower()
        part = constraint.body_part.strip().lower()
        if key and part and (key in part or part in key):
            return True
        restriction = self.movement_restriction.strip().lower()
        return bool(restriction) and restriction in constraint.movement_restrictions.lower()

    def describe(self) -> str:
        return f"{self.injury_key} / {self.movement_restriction}"


@dataclass(frozen=True)
class CatalogEntry:
    id: int
    name: str
    discipline: Discipline
    difficulty: DifficultyLevel
    intensity: IntensityLevel
    session_type: SessionType | None = None
    measure: str = "reps"
    base_duration_seconds: int | None = None
    muscle_groups: frozenset[str] = frozenset()
    primary_pattern: MovementPattern | None = None
    contraindications: tuple[ContraindicationRule, ...] = ()

    @classmethod
    def from_model(cls, exercise: Exercise) -> "CatalogEntry":
        primary = next(
            (item.movement_pattern for item in exercise.movement_patterns if item.is_primary),
            None,
        )
        if primary is None and exercise.movement_patterns:
            primary = exercise.movement_patterns[0].movement_pattern
        rules = tuple(
            ContraindicationRule(
                injury_key=link.contraindication.injury_type,
                movement_restriction=link.contraindication.movement_restriction,
                severity=link.severity,
                substitute_ids=tuple(link.recommended_substitute_ids or ()),
            )
            for link in exercise.contraindications
        )
        return cls(
            id=exercise.id,
            name=exercise.name,
            discipline=exercise.primary_discipline,
            difficulty=exercise.difficulty_level,
            intensity=exercise.intensity_level,
            session_type=exercise.session_type,
            measure=exercise.measure,
            base_duration_seconds=exercise.base_duration_seconds,
            muscle_groups=frozenset(group.name for group in exercise.muscle_groups),
            primary_pattern=primary,
            contraindications=rules,
        )

    @property
    def is_timed(self) -> bool:
        return self.measure == "time"


@dataclass(frozen=True)
class ProgressionEdge:
    base_id: int
    related_id: int
    relation: ProgressionRelation


@dataclass
class ContraindicatedExercise:
    entry: CatalogEntry
    reasons: list[ContraindicationRule] = field(default_factory=list)

    @property
    def severity(self) -> str:
        return "absolute" if any(rule.severity == "absolute" for rule in self.reasons) else "relative"


def discipline_matches(entry: CatalogEntry, discipline: Discipline) -> bool:
    if discipline == Discipline.HYBRID:
        return entry.discipline == Discipline.HYBRID or entry.discipline in HYBRID_SOURCES
    return entry.discipline == discipline


class ExerciseCatalog:
    """Read-only projection over the exercise catalog and its progression graph."""

    def __init__(self, entries: Iterable[CatalogEntry], edges: Iterable[ProgressionEdge] = ()):
        self._entries: dict[int, CatalogEntry] = {entry.id: entry for entry in entries}
        self._edges: dict[int, list[ProgressionEdge]] = {}
        self._inbound_alternatives: dict[int, list[int]] = {}
        for edge in edges:
            self._edges.setdefault(edge.base_id, []).append(edge)
            if edge.relation == ProgressionRelation.ALTERNATIVE:
                self._inbound_alternatives.setdefault(edge.related_id, []).append(edge.base_id)

    @classmethod
    def from_models(
        cls, exercises: Iterable[Exercise], progressions: Iterable[ExerciseProgression] = ()
    ) -> "ExerciseCatalog":
        entries = [CatalogEntry.from_model(exercise) for exercise in exercises]
        edges = [
            ProgressionEdge(edge.base_exercise_id, edge.related_exercise_id, edge.relation)
            for edge in progressions
        ]
        return cls(entries, edges)

    @classmethod
    def from_repository(cls, repository: ExerciseRepository) -> "ExerciseCatalog":
        catalog = cls.from_models(repository.list_all(), repository.list_progressions())
        logger.debug("Loaded exercise catalog with %d entries", len(catalog))
        return catalog

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, exercise_id: object) -> bool:
        return exercise_id in self._entries

    def get(self, exercise_id: int) -> CatalogEntry | None:
        return self._entries.get(exercise_id)

    def require(self, exercise_id: int) -> CatalogEntry:
        entry = self._entries.get(exercise_id)
        if entry is None:
            raise NotFoundError(f"Exercise {exercise_id} not found")
        return entry

    def find_by_name(self, name: str) -> CatalogEntry | None:
        lowered = name.strip().lower()
        return next((entry for entry in self._entries.values() if entry.name.lower() == lowered), None)

    # -- safety ---------------------------------------------------------------

    @staticmethod
    def matching_rules(
        entry: CatalogEntry, injuries: Sequence[InjuryConstraint]
    ) -> list[ContraindicationRule]:
        return [
            rule
            for rule in entry.contraindications
            if any(rule.matches(injury) for injury in injuries)
        ]

    def is_contraindicated(self, entry: CatalogEntry, injuries: Sequence[InjuryConstraint]) -> bool:
        if not injuries:
            return False
        return bool(self.matching_rules(entry, injuries))

    def safe_exercises(
        self,
        injuries: Sequence[InjuryConstraint],
        discipline: Discipline | None = None,
        difficulty: DifficultyLevel | None = None,
        max_difficulty: DifficultyLevel | None = None,
        session_type: SessionType | None = None,
    ) -> list[CatalogEntry]:
        """Exercises with no contraindication hit by the given injuries, ordered by id."""
        result = []
        for entry in sorted(self._entries.values(), key=lambda item: item.id):
            if discipline is not None and not discipline_matches(entry, discipline):
                continue
            if difficulty is not None and entry.difficulty != difficulty:
                continue
            if max_difficulty is not None and entry.difficulty.rank > max_difficulty.rank:
                continue
            if session_type is not None and entry.session_type != session_type:
                continue
            if self.is_contraindicated(entry, injuries):
                continue
            result.append(entry)
        return result

    def contraindicated_exercises(
        self, injuries: Sequence[InjuryConstraint]
    ) -> list[ContraindicatedExercise]:
        found = []
        for entry in sorted(self._entries.values(), key=lambda item: item.name):
            rules = self.matching_rules(entry, injuries)
            if rules:
                found.append(ContraindicatedExercise(entry=entry, reasons=rules))
        return found

    # -- progression graph ----------------------------------------------------

    def related_ids(self, exercise_id: int, relation: ProgressionRelation) -> list[int]:
        related = [
            edge.related_id
            for edge in self._edges.get(exercise_id, ())
            if edge.relation == relation
        ]
        if relation == ProgressionRelation.ALTERNATIVE:
            related.extend(self._inbound_alternatives.get(exercise_id, ()))
        return related

    def regression_of(self, exercise_id: int) -> CatalogEntry | None:
        ids = self.related_ids(exercise_id, ProgressionRelation.REGRESSION)
        return self._entries.get(ids[0]) if ids else None

    def progression_of(self, exercise_id: int) -> CatalogEntry | None:
        ids = self.related_ids(exercise_id, ProgressionRelation.PROGRESSION)
        return self._entries.get(ids[0]) if ids else None

    def alternatives_of(self, exercise_id: int) -> list[CatalogEntry]:
        base = self.require(exercise_id)
        seen: set[int] = set()
        alternatives = []
        for related_id in self.related_ids(exercise_id, ProgressionRelation.ALTERNATIVE):
            entry = self._entries.get(related_id)
            if entry is None or related_id in seen or related_id == exercise_id:
                continue
            seen.add(related_id)
            alternatives.append(entry)
        alternatives.sort(key=lambda item: (abs(item.difficulty.rank - base.difficulty.rank), item.id))
        return alternatives

    def substitute_for(
        self, exercise_id: int, injuries: Sequence[InjuryConstraint]
    ) -> CatalogEntry | None:
        """Resolve a safe replacement through direct graph edges.

        A contraindicated exercise prefers its regression, then the substitutes
        recommended by the matching contraindication, then alternatives. An
        exercise that is still safe only takes an alternative. Returns ``None``
        when no edge leads to a safe candidate.
        """
        entry = self.require(exercise_id)
        candidates: list[int] = []
        if self.is_contraindicated(entry, injuries):
            candidates.extend(self.related_ids(exercise_id, ProgressionRelation.REGRESSION))
            for rule in self.matching_rules(entry, injuries):
                candidates.extend(rule.substitute_ids)
        candidates.extend(alt.id for alt in self.alternatives_of(exercise_id))

        for candidate_id in dict.fromkeys(candidates):
            if candidate_id == exercise_id:
                continue
            candidate = self._entries.get(candidate_id)
            if candidate is not None and not self.is_contraindicated(candidate, injuries):
                return candidate
        return None

    def safe_filler(
        self,
        exercise_id: int,
        injuries: Sequence[InjuryConstraint],
        exclude_ids: Iterable[int] = (),
    ) -> CatalogEntry | None:
        """A safe exercise from the same muscle-group pool, closest in discipline and difficulty."""
        entry = self.require(exercise_id)
        excluded = set(exclude_ids) | {exercise_id}
        pool = []
        for candidate in self._entries.values():
            if candidate.id in excluded:
                continue
            overlap = len(candidate.muscle_groups & entry.muscle_groups)
            if not overlap or self.is_contraindicated(candidate, injuries):
                continue
            pool.append((candidate, overlap))
        if not pool:
            return None
        pool.sort(
            key=lambda item: (
                item[0].discipline != entry.discipline,
                abs(item[0].difficulty.rank - entry.difficulty.rank),
                -item[1],
                item[0].id,
            )
        )
        return pool[0][0]
