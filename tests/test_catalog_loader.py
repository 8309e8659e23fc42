"""Tests for loading the YAML exercise catalog."""
from __future__ import annotations

import textwrap

import pytest
from sqlalchemy.orm import sessionmaker

from hybridcoach.database import session_scope
from hybridcoach.exceptions import ValidationError
from hybridcoach.models.database_models import Exercise, ExerciseProgression
from hybridcoach.models.enums import DifficultyLevel, Discipline
from hybridcoach.services.catalog_loader import load_catalog, read_catalog

MINIMAL = """
muscle_groups:
  - {name: Chest, category: upper}
  - {name: Triceps, category: upper}
equipment: [Bodyweight, Bench]
contraindications:
  - {key: wrist_load, injury_type: Wrist, movement_restriction: Loaded Extension}
exercises:
  - name: Push-up
    discipline: strength
    difficulty: beginner
    intensity: moderate
    muscle_groups: [Chest, Triceps]
    equipment: [Bodyweight]
    patterns: [push]
    contraindications:
      - {key: wrist_load, substitutes: [Bench Dip]}
  - name: Bench Dip
    discipline: strength
    difficulty: beginner
    intensity: moderate
    muscle_groups: [Triceps]
    equipment: [Bench]
    patterns: [push]
  - name: Diamond Push-up
    discipline: strength
    difficulty: intermediate
    intensity: high
    muscle_groups: [Chest, Triceps]
    equipment: [Bodyweight]
    patterns: [push]
progressions:
  - {base: Push-up, related: Diamond Push-up, relation: progression}
"""


@pytest.fixture
def blank_session(db_engine):
    factory = sessionmaker(bind=db_engine, autoflush=False, autocommit=False, future=True)
    db = factory()
    try:
        yield db
    finally:
        db.rollback()
        db.close()


@pytest.fixture
def write_catalog(tmp_path):
    def _write(content: str):
        path = tmp_path / "catalog.yaml"
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return path

    return _write


def test_bundled_catalog_counts(blank_session):
    counts = load_catalog(blank_session)

    assert counts == {
        "muscle_groups": 14,
        "equipment": 14,
        "contraindications": 5,
        "exercises": 78,
        "progressions": 49,
    }


def test_reload_is_idempotent(session):
    counts = load_catalog(session)

    assert counts["exercises"] == 78
    assert session.query(Exercise).count() == 78
    assert session.query(ExerciseProgression).count() == 49


def test_overhead_press_links(session, exercise_named):
    press = exercise_named("Overhead Press")
    link = press.contraindications[0]

    assert link.severity == "absolute"
    assert link.contraindication.injury_type == "Shoulder"
    assert link.recommended_substitute_ids == [exercise_named("Push-up").id, exercise_named("Pallof Press").id]


def test_minimal_catalog(blank_session, write_catalog):
    counts = load_catalog(blank_session, write_catalog(MINIMAL))

    assert counts["exercises"] == 3
    assert counts["progressions"] == 1
    push_up = blank_session.query(Exercise).filter(Exercise.name == "Push-up").one()
    assert push_up.primary_discipline == Discipline.STRENGTH
    assert push_up.difficulty_level == DifficultyLevel.BEGINNER
    assert push_up.measure == "reps"
    assert {group.name for group in push_up.muscle_groups} == {"Chest", "Triceps"}


def test_unknown_muscle_group(blank_session, write_catalog):
    path = write_catalog(MINIMAL.replace("muscle_groups: [Triceps]", "muscle_groups: [Neck]"))

    with pytest.raises(ValidationError, match="unknown muscle group 'Neck'"):
        load_catalog(blank_session, path)


def test_invalid_discipline(blank_session, write_catalog):
    path = write_catalog(MINIMAL.replace("discipline: strength", "discipline: yoga", 1))

    with pytest.raises(ValidationError, match="invalid Discipline 'yoga'"):
        load_catalog(blank_session, path)


def test_invalid_measure(blank_session, write_catalog):
    path = write_catalog(MINIMAL.replace("intensity: high", "intensity: high\n    measure: laps"))

    with pytest.raises(ValidationError, match="measure must be"):
        load_catalog(blank_session, path)


def test_duplicate_progression(blank_session, write_catalog):
    path = write_catalog(
        MINIMAL + "  - {base: Push-up, related: Bench Dip, relation: progression}\n"
    )

    with pytest.raises(ValidationError, match="at most one regression and one progression"):
        load_catalog(blank_session, path)


def test_self_relation(blank_session, write_catalog):
    path = write_catalog(MINIMAL + "  - {base: Bench Dip, related: Bench Dip, relation: alternative}\n")

    with pytest.raises(ValidationError, match="cannot relate to itself"):
        load_catalog(blank_session, path)


def test_unknown_substitute(blank_session, write_catalog):
    path = write_catalog(MINIMAL.replace("substitutes: [Bench Dip]", "substitutes: [Ring Dip]"))

    with pytest.raises(ValidationError, match="unknown substitute exercise 'Ring Dip'"):
        load_catalog(blank_session, path)


def test_top_level_must_be_mapping(write_catalog):
    with pytest.raises(ValidationError, match="mapping at the top level"):
        read_catalog(write_catalog("- just\n- a list\n"))


def test_session_scope_commits_catalog(db_engine, write_catalog):
    factory = sessionmaker(bind=db_engine, autoflush=False, autocommit=False, future=True)

    with session_scope(factory) as db:
        load_catalog(db, write_catalog(MINIMAL))

    with session_scope(factory) as db:
        assert db.query(Exercise).count() == 3


def test_session_scope_rolls_back_failed_load(db_engine, write_catalog):
    factory = sessionmaker(bind=db_engine, autoflush=False, autocommit=False, future=True)
    path = write_catalog(MINIMAL.replace("muscle_groups: [Triceps]", "muscle_groups: [Neck]"))

    with pytest.raises(ValidationError):
        with session_scope(factory) as db:
            load_catalog(db, path)

    with session_scope(factory) as db:
        assert db.query(Exercise).count() == 0
