"""Tests for plan generation and regeneration."""
from __future__ import annotations

from datetime import timedelta

import pytest

from hybridcoach.exceptions import ConflictError, NotFoundError, PlanningError, ValidationError
from hybridcoach.models.enums import DifficultyLevel, IntensityLevel, PlanStatus, TrainingPhase
from hybridcoach.services.exercise_catalog import InjuryConstraint
from hybridcoach.services.plan_generation import PlanModifications

from tests.conftest import TODAY, USER_ID


def test_generate_plan_structure(make_profile, generator):
    """A HYROX goal eight weeks out yields an eight-week, three-day plan."""
    make_profile()

    plan = generator.generate_plan(USER_ID)

    assert plan.id is not None
    assert plan.status == PlanStatus.ACTIVE
    assert plan.revision == 1
    assert plan.total_weeks == 8
    assert plan.training_days_per_week == 3
    assert plan.start_date == TODAY
    assert plan.end_date == TODAY + timedelta(days=55)
    assert plan.name.startswith("HYROX Race Plan")
    assert plan.plan_metadata.algorithm_version == "1.0.0"
    assert plan.plan_metadata.generation_parameters["training_weekdays"] == [0, 2, 4]
    assert plan.plan_metadata.modification_history == []

    weeks = plan.ordered_weeks()
    assert [week.week_number for week in weeks] == list(range(1, 9))
    assert weeks[-1].phase == TrainingPhase.RECOVERY
    for previous, current in zip(weeks, weeks[1:]):
        assert current.start_date == previous.end_date + timedelta(days=1)
    for week in weeks:
        assert len(week.workouts) == 3
        assert {workout.scheduled_date.weekday() for workout in week.workouts} == {0, 2, 4}
        assert sum(1 for workout in week.workouts if workout.is_key_workout) == 1
        assert all(week.contains(workout.scheduled_date) for workout in week.workouts)


def test_weekly_durations_match_volume(make_profile, generator):
    make_profile()

    plan = generator.generate_plan(USER_ID)

    first = plan.ordered_weeks()[0]
    assert first.weekly_volume_minutes == 150
    assert sum(workout.estimated_duration_minutes for workout in first.workouts) == 150


def test_missing_profile(generator):
    with pytest.raises(NotFoundError):
        generator.generate_plan("nobody")


def test_profile_without_goal_is_rejected(make_profile, generator):
    make_profile(goal_type=None)

    with pytest.raises(ValidationError, match="active training goal"):
        generator.generate_plan(USER_ID)


def test_second_active_plan_conflicts(make_profile, generator):
    make_profile()
    generator.generate_plan(USER_ID)

    with pytest.raises(ConflictError) as exc_info:
        generator.generate_plan(USER_ID)
    assert exc_info.value.retry_guidance


def test_regenerate_archives_previous_plan(make_profile, generator):
    make_profile()
    first = generator.generate_plan(USER_ID)

    second = generator.regenerate_plan(USER_ID)

    assert second.id != first.id
    assert first.status == PlanStatus.ABANDONED
    assert second.status == PlanStatus.ACTIVE


def test_modifications_override_defaults(make_profile, generator):
    make_profile()

    plan = generator.generate_plan(
        USER_ID, PlanModifications(total_weeks=2, training_days_per_week=2, start_date=TODAY + timedelta(days=7))
    )

    assert plan.total_weeks == 4
    assert plan.start_date == TODAY + timedelta(days=7)
    assert all(len(week.workouts) == 2 for week in plan.weeks)


def test_too_few_days_for_minimum_sessions(make_profile, generator):
    make_profile(weekdays=(0, 1), minimum=3)

    with pytest.raises(PlanningError) as exc_info:
        generator.generate_plan(USER_ID)
    assert exc_info.value.reason == PlanningError.INSUFFICIENT_AVAILABILITY


def test_requested_days_exceed_availability(make_profile, generator):
    make_profile(weekdays=(0,), minimum=1)

    with pytest.raises(PlanningError):
        generator.generate_plan(USER_ID, PlanModifications(training_days_per_week=3))


def test_active_injuries_are_respected(make_profile, generator, catalog):
    make_profile(injuries=[("Shoulder", "No overhead pressing")])

    plan = generator.generate_plan(USER_ID)

    constraints = [InjuryConstraint("Shoulder", "No overhead pressing")]
    names = set()
    for workout in plan.all_workouts():
        for item in workout.exercises:
            entry = catalog.get(item.exercise_id)
            names.add(entry.name)
            assert not catalog.is_contraindicated(entry, constraints)
    assert "Overhead Press" not in names
    assert plan.plan_metadata.generation_parameters["injury_body_parts"] == ["Shoulder"]


def test_beginner_plan_never_reaches_maximum(make_profile, generator):
    make_profile(level=DifficultyLevel.BEGINNER, target_date=TODAY + timedelta(weeks=12))

    plan = generator.generate_plan(USER_ID)

    assert plan.total_weeks == 12
    assert all(week.intensity_level != IntensityLevel.MAXIMUM for week in plan.weeks)
    assert all(workout.intensity_level != IntensityLevel.MAXIMUM for workout in plan.all_workouts())


def test_validate_plan_parameters(make_profile, generator):
    assert generator.validate_plan_parameters(None) is False
    assert generator.profile_issues(None) == ["Profile is missing"]

    profile = make_profile()
    assert generator.validate_plan_parameters(profile) is True

    profile.schedule.set_weekdays([])
    assert generator.validate_plan_parameters(profile) is False
