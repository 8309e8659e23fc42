"""Seed or refresh the exercise catalog from a YAML document.

Loading is idempotent: rows are matched by name (contraindications by their
injury/restriction pair) and updated in place, so the loader can run on every
deployment. Nothing is committed here.
"""
from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Any

import yaml
from sqlalchemy.orm import Session

from hybridcoach.config import get_settings
from hybridcoach.exceptions import ValidationError
from hybridcoach.models.database_models import (
    Contraindication,
    Equipment,
    Exercise,
    ExerciseContraindication,
    ExerciseMovementPattern,
    ExerciseProgression,
    MuscleGroup,
)
from hybridcoach.models.enums import (
    DifficultyLevel,
    Discipline,
    IntensityLevel,
    MovementPattern,
    ProgressionRelation,
    SessionType,
)


logger = logging.getLogger(__name__)

SINGLE_EDGE_RELATIONS = (ProgressionRelation.REGRESSION, ProgressionRelation.PROGRESSION)


def read_catalog(path: str | Path | None = None) -> dict[str, Any]:
    """Parse the catalog YAML (defaults to the configured catalog path)."""
    catalog_path = Path(path or get_settings().catalog_path)
    with catalog_path.open("r", encoding="utf-8") as f:
        document = yaml.safe_load(f) or {}
    if not isinstance(document, dict):
        raise ValidationError(f"Catalog {catalog_path} must be a mapping at the top level")
    return document


def _enum(enum_cls, value, exercise_name: str):
    try:
        return enum_cls(value)
    except ValueError as e:
        raise ValidationError(f"Exercise '{exercise_name}': invalid {enum_cls.__name__} '{value}'") from e


def _by_name(session: Session, model, name: str):
    return session.query(model).filter(model.name == name).first()


def _upsert_muscle_groups(session: Session, items: list[dict]) -> dict[str, MuscleGroup]:
    groups = {}
    for item in items:
        group = _by_name(session, MuscleGroup, item["name"])
        if group is None:
            group = MuscleGroup(name=item["name"])
            session.add(group)
        group.category = item.get("category")
        groups[group.name] = group
    return groups


def _upsert_equipment(session: Session, names: list[str]) -> dict[str, Equipment]:
    equipment = {}
    for name in names:
        item = _by_name(session, Equipment, name)
        if item is None:
            item = Equipment(name=name)
            session.add(item)
        equipment[name] = item
    return equipment


def _upsert_contraindications(session: Session, items: list[dict]) -> dict[str, Contraindication]:
    rules = {}
    for item in items:
        rule = (
            session.query(Contraindication)
            .filter(
                Contraindication.injury_type == item["injury_type"],
                Contraindication.movement_restriction == item["movement_restriction"],
            )
            .first()
        )
        if rule is None:
            rule = Contraindication(
                injury_type=item["injury_type"], movement_restriction=item["movement_restriction"]
            )
            session.add(rule)
        rule.description = item.get("description")
        rules[item["key"]] = rule
    return rules


def _lookup(mapping: dict, key: str, kind: str, exercise_name: str):
    if key not in mapping:
        raise ValidationError(f"Exercise '{exercise_name}' references unknown {kind} '{key}'")
    return mapping[key]


def _sync_patterns(exercise: Exercise, patterns: list[MovementPattern]) -> None:
    existing = {link.movement_pattern: link for link in exercise.movement_patterns}
    for pattern, link in existing.items():
        if pattern not in patterns:
            exercise.movement_patterns.remove(link)
    for index, pattern in enumerate(patterns):
        link = existing.get(pattern)
        if link is None:
            link = ExerciseMovementPattern(movement_pattern=pattern)
            exercise.movement_patterns.append(link)
        link.is_primary = index == 0


def _sync_contraindications(
    exercise: Exercise, links: list[dict], rules: dict[str, Contraindication]
) -> list[tuple[ExerciseContraindication, list[str]]]:
    """Attach contraindication links; returns substitute names still to resolve."""
    wanted = {}
    for link in links:
        rule = _lookup(rules, link["key"], "contraindication", exercise.name)
        wanted[id(rule)] = (rule, link)

    pending = []
    kept_ids = set()
    for existing in list(exercise.contraindications):
        match = wanted.get(id(existing.contraindication))
        if match is None:
            exercise.contraindications.remove(existing)
            continue
        rule, link = match
        existing.severity = link.get("severity", "relative")
        pending.append((existing, link.get("substitutes", [])))
        kept_ids.add(id(rule))

    for key, (rule, link) in wanted.items():
        if key in kept_ids:
            continue
        created = ExerciseContraindication(contraindication=rule, severity=link.get("severity", "relative"))
        exercise.contraindications.append(created)
        pending.append((created, link.get("substitutes", [])))
    return pending


def _upsert_exercise(
    session: Session,
    item: dict,
    groups: dict[str, MuscleGroup],
    equipment: dict[str, Equipment],
    rules: dict[str, Contraindication],
) -> tuple[Exercise, list[tuple[ExerciseContraindication, list[str]]]]:
    name = item["name"]
    exercise = _by_name(session, Exercise, name)
    if exercise is None:
        exercise = Exercise(name=name)
        session.add(exercise)

    exercise.description = item.get("description")
    exercise.primary_discipline = _enum(Discipline, item["discipline"], name)
    exercise.difficulty_level = _enum(DifficultyLevel, item["difficulty"], name)
    exercise.intensity_level = _enum(IntensityLevel, item["intensity"], name)
    session_type = item.get("session_type")
    exercise.session_type = _enum(SessionType, session_type, name) if session_type else None
    exercise.measure = item.get("measure", "reps")
    if exercise.measure not in ("reps", "time"):
        raise ValidationError(f"Exercise '{name}': measure must be 'reps' or 'time'")
    exercise.base_duration_seconds = item.get("duration")

    exercise.muscle_groups = [_lookup(groups, g, "muscle group", name) for g in item.get("muscle_groups", [])]
    exercise.equipment = [_lookup(equipment, e, "equipment", name) for e in item.get("equipment", [])]
    _sync_patterns(exercise, [_enum(MovementPattern, p, name) for p in item.get("patterns", [])])
    pending = _sync_contraindications(exercise, item.get("contraindications", []), rules)
    return exercise, pending


def _validate_progressions(items: list[dict]) -> None:
    counts = Counter(
        (item["base"], item["relation"])
        for item in items
        if item["relation"] in {relation.value for relation in SINGLE_EDGE_RELATIONS}
    )
    duplicated = [f"{base} ({relation})" for (base, relation), count in counts.items() if count > 1]
    if duplicated:
        raise ValidationError(f"Exercises may have at most one regression and one progression: {duplicated}")


def _upsert_progressions(session: Session, items: list[dict], exercises: dict[str, Exercise]) -> int:
    _validate_progressions(items)
    written = 0
    for item in items:
        relation = _enum(ProgressionRelation, item["relation"], item["base"])
        base = _lookup(exercises, item["base"], "exercise", item["base"])
        related = _lookup(exercises, item["related"], "exercise", item["base"])
        if base.id == related.id:
            raise ValidationError(f"Exercise '{base.name}' cannot relate to itself")

        query = session.query(ExerciseProgression).filter(
            ExerciseProgression.base_exercise_id == base.id,
            ExerciseProgression.relation == relation,
        )
        if relation in SINGLE_EDGE_RELATIONS:
            edge = query.first()
        else:
            edge = query.filter(ExerciseProgression.related_exercise_id == related.id).first()
        if edge is None:
            edge = ExerciseProgression(base_exercise_id=base.id, relation=relation)
            session.add(edge)
        edge.related_exercise_id = related.id
        edge.notes = item.get("notes")
        written += 1
    return written


def load_catalog(session: Session, path: str | Path | None = None) -> dict[str, int]:
    """Upsert the YAML catalog into the session.

    Args:
        session: Open session; the caller commits
        path: Catalog file (defaults to ``settings.catalog_path``)

    Returns:
        Row counts per section
    """
    document = read_catalog(path)
    groups = _upsert_muscle_groups(session, document.get("muscle_groups", []))
    equipment = _upsert_equipment(session, document.get("equipment", []))
    rules = _upsert_contraindications(session, document.get("contraindications", []))

    exercises: dict[str, Exercise] = {}
    pending_substitutes = []
    for item in document.get("exercises", []):
        exercise, pending = _upsert_exercise(session, item, groups, equipment, rules)
        exercises[exercise.name] = exercise
        pending_substitutes.extend((exercise.name, link, names) for link, names in pending)
    session.flush()

    for exercise_name, link, names in pending_substitutes:
        link.recommended_substitute_ids = [
            _lookup(exercises, name, "substitute exercise", exercise_name).id for name in names
        ] or None

    progressions = _upsert_progressions(session, document.get("progressions", []), exercises)
    session.flush()

    counts = {
        "muscle_groups": len(groups),
        "equipment": len(equipment),
        "contraindications": len(rules),
        "exercises": len(exercises),
        "progressions": progressions,
    }
    logger.info("Loaded exercise catalog: %s", counts)
    return counts
