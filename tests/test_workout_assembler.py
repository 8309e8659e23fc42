"""Tests for the workout assembler and the intensity mapping."""
from __future__ import annotations

from datetime import date, timedelta

from hybridcoach.models.database_models import Workout, WorkoutExercise
from hybridcoach.models.enums import (
    DifficultyLevel,
    Discipline,
    GoalType,
    IntensityLevel,
    MovementPattern,
    SessionType,
    TrainingPhase,
)
from hybridcoach.services.exercise_catalog import CatalogEntry, ExerciseCatalog, InjuryConstraint
from hybridcoach.services.periodization import PeriodizationPlanner, PlannerProfile
from hybridcoach.services.workout_assembler import (
    EXERCISES_PER_SESSION,
    PLACEHOLDER_MINUTES,
    AssemblyContext,
    IntensityMapping,
    WorkoutAssembler,
)

MONDAY = date(2026, 3, 2)

LEVELS = {
    Discipline.HYROX: DifficultyLevel.INTERMEDIATE,
    Discipline.RUNNING: DifficultyLevel.INTERMEDIATE,
    Discipline.STRENGTH: DifficultyLevel.INTERMEDIATE,
}


def _entry(entry_id, discipline=Discipline.STRENGTH, measure="reps", duration=None, pattern=MovementPattern.PUSH):
    return CatalogEntry(
        id=entry_id,
        name=f"Exercise {entry_id}",
        discipline=discipline,
        difficulty=DifficultyLevel.BEGINNER,
        intensity=IntensityLevel.MODERATE,
        measure=measure,
        base_duration_seconds=duration,
        primary_pattern=pattern,
    )


def _skeletons(weeks=4):
    profile = PlannerProfile(
        fitness_level=DifficultyLevel.INTERMEDIATE,
        selected_weekdays=(0, 2, 4),
        training_days_per_week=3,
        goal_type=GoalType.HYROX_RACE,
    )
    return PeriodizationPlanner().plan_weeks(profile, MONDAY, weeks)


def _context(injuries=()):
    return AssemblyContext(
        goal_type=GoalType.HYROX_RACE,
        fitness_levels=LEVELS,
        days_per_week=3,
        injuries=tuple(injuries),
    )


def _workout(intensity, day, placeholder=False, session_type=SessionType.FULL_BODY):
    return Workout(
        day_of_week=day.weekday(),
        scheduled_date=day,
        discipline=Discipline.STRENGTH,
        session_type=session_type,
        name="Test",
        estimated_duration_minutes=PLACEHOLDER_MINUTES if placeholder else 40,
        intensity_level=intensity,
        is_key_workout=False,
        is_placeholder=placeholder,
        exercises=[],
    )


class TestSlotPlanning:
    def test_discipline_rotation_follows_goal(self):
        week_one = [WorkoutAssembler.discipline_for_slot(GoalType.HYROX_RACE, 1, slot, 3) for slot in range(3)]
        assert week_one == [Discipline.HYROX, Discipline.RUNNING, Discipline.HYBRID]
        assert WorkoutAssembler.discipline_for_slot(GoalType.HYROX_RACE, 2, 0, 3) == Discipline.HYROX

    def test_session_type_cycles_through_phase_options(self):
        assert WorkoutAssembler.session_type_for(Discipline.RUNNING, TrainingPhase.PEAK, 0) == SessionType.INTERVALS
        assert WorkoutAssembler.session_type_for(Discipline.RUNNING, TrainingPhase.PEAK, 1) == SessionType.TEMPO

    def test_easy_sessions_run_a_step_below_the_week(self):
        assert WorkoutAssembler.workout_intensity(SessionType.EASY_RUN, IntensityLevel.MODERATE) == IntensityLevel.LOW
        assert WorkoutAssembler.workout_intensity(SessionType.INTERVALS, IntensityLevel.HIGH) == IntensityLevel.HIGH


class TestIntensityMapping:
    def test_reps_prescription(self):
        prescription = IntensityMapping.prescribe(_entry(1), IntensityLevel.HIGH)

        assert (prescription.sets, prescription.reps, prescription.duration_seconds) == (4, 8, None)
        assert prescription.rest_seconds == 120
        assert prescription.intensity_guidance == "80-90% of max"

    def test_timed_run_gets_weekly_overload(self):
        run = _entry(2, discipline=Discipline.RUNNING, measure="time", duration=600)
        prescription = IntensityMapping.prescribe(run, IntensityLevel.MODERATE, cycle_week=3)

        assert prescription.sets == 1
        assert prescription.reps is None
        assert prescription.duration_seconds == 660
        assert prescription.intensity_guidance == "Tempo pace, slightly uncomfortable"

    def test_timed_station_uses_rpe(self):
        station = _entry(3, discipline=Discipline.HYROX, measure="time", duration=300)
        prescription = IntensityMapping.prescribe(station, IntensityLevel.LOW)

        assert prescription.sets == 2
        assert prescription.duration_seconds == 240
        assert prescription.intensity_guidance == "RPE 5-6"


class TestAssembly:
    def test_week_matches_skeleton(self, catalog):
        skeleton = _skeletons()[0]
        assembled = WorkoutAssembler(catalog).assemble_week(skeleton, _context())

        assert [w.scheduled_date for w in assembled.workouts] == list(skeleton.training_dates)
        assert sum(w.estimated_duration_minutes for w in assembled.workouts) == skeleton.weekly_volume_minutes
        assert sum(1 for w in assembled.workouts if w.is_key_workout) == 1
        assert assembled.warnings == []
        for workout in assembled.workouts:
            assert len(workout.exercises) == EXERCISES_PER_SESSION[workout.session_type]
            assert [item.order_index for item in workout.exercises] == list(
                range(1, len(workout.exercises) + 1)
            )

    def test_assembly_is_deterministic(self, catalog):
        skeleton = _skeletons()[1]
        first = WorkoutAssembler(catalog).assemble_week(skeleton, _context())
        second = WorkoutAssembler(catalog).assemble_week(skeleton, _context())

        assert [[i.exercise_id for i in w.exercises] for w in first.workouts] == [
            [i.exercise_id for i in w.exercises] for w in second.workouts
        ]

    def test_injured_athlete_gets_no_contraindicated_exercises(self, catalog):
        injury = [InjuryConstraint("Shoulder")]
        assembler = WorkoutAssembler(catalog)

        for skeleton in _skeletons():
            assembled = assembler.assemble_week(skeleton, _context(injury))
            for workout in assembled.workouts:
                for item in workout.exercises:
                    assert not catalog.is_contraindicated(catalog.get(item.exercise_id), injury)

    def test_beginner_pool_excludes_harder_exercises(self, catalog):
        context = AssemblyContext(
            goal_type=GoalType.STRENGTH_MILESTONE,
            fitness_levels={discipline: DifficultyLevel.BEGINNER for discipline in LEVELS},
            days_per_week=3,
        )
        pool = WorkoutAssembler(catalog).exercise_pool(Discipline.STRENGTH, context)

        assert pool
        assert all(entry.difficulty == DifficultyLevel.BEGINNER for entry in pool)

    def test_empty_pool_schedules_placeholder(self):
        skeleton = _skeletons()[0]
        workout, warning = WorkoutAssembler(ExerciseCatalog([])).build_workout(
            skeleton, skeleton.training_dates[0], 0, _context()
        )

        assert workout.is_placeholder
        assert workout.name == "Rest / Mobility"
        assert workout.session_type == SessionType.RECOVERY
        assert workout.estimated_duration_minutes == PLACEHOLDER_MINUTES
        assert workout.exercises == []
        assert "no safe" in warning


class TestDurationsAndKeyWorkout:
    def test_fit_durations_leaves_placeholders_alone(self):
        workouts = [
            _workout(IntensityLevel.LOW, MONDAY, placeholder=True),
            _workout(IntensityLevel.MODERATE, MONDAY + timedelta(days=2)),
            _workout(IntensityLevel.MODERATE, MONDAY + timedelta(days=4), session_type=SessionType.UPPER_LOWER),
        ]
        WorkoutAssembler.fit_durations(workouts, 120)

        assert workouts[0].estimated_duration_minutes == PLACEHOLDER_MINUTES
        assert workouts[1].estimated_duration_minutes + workouts[2].estimated_duration_minutes == 100

    def test_key_workout_is_hardest_and_latest_on_ties(self):
        workouts = [
            _workout(IntensityLevel.HIGH, MONDAY),
            _workout(IntensityLevel.LOW, MONDAY + timedelta(days=2)),
            _workout(IntensityLevel.HIGH, MONDAY + timedelta(days=4)),
        ]
        key = WorkoutAssembler.flag_key_workout(workouts)

        assert key is workouts[2]
        assert [w.is_key_workout for w in workouts] == [False, False, True]

    def test_key_workout_of_empty_week(self):
        assert WorkoutAssembler.flag_key_workout([]) is None

    def test_rest_placeholder_is_never_key(self):
        workouts = [
            _workout(IntensityLevel.MODERATE, MONDAY),
            _workout(IntensityLevel.HIGH, MONDAY + timedelta(days=4), placeholder=True),
        ]
        key = WorkoutAssembler.flag_key_workout(workouts)

        assert key is workouts[0]
        assert [w.is_key_workout for w in workouts] == [True, False]

        assert WorkoutAssembler.flag_key_workout(workouts[1:]) is None
        assert workouts[1].is_key_workout is False

    def test_order_by_pattern_separates_repeats(self):
        entries = [
            _entry(1, pattern=MovementPattern.PUSH),
            _entry(2, pattern=MovementPattern.PUSH),
            _entry(3, pattern=MovementPattern.PULL),
        ]
        ordered = WorkoutAssembler.order_by_pattern(entries)

        assert [entry.id for entry in ordered] == [1, 3, 2]


class TestApplyIntensity:
    def test_represcribes_every_exercise(self):
        entry = _entry(1)
        assembler = WorkoutAssembler(ExerciseCatalog([entry]))
        workout = _workout(IntensityLevel.MODERATE, MONDAY)
        item = WorkoutExercise(exercise_id=1, order_index=1)
        assembler.prescribe_into(item, entry, IntensityLevel.MODERATE, 1)
        workout.exercises.append(item)

        assert assembler.apply_intensity(workout, IntensityLevel.HIGH, 1) is True
        assert workout.intensity_level == IntensityLevel.HIGH
        assert workout.estimated_duration_minutes == 44
        assert (item.sets, item.reps, item.rest_seconds) == (4, 8, 120)

    def test_unchanged_level_is_a_no_op(self):
        assembler = WorkoutAssembler(ExerciseCatalog([]))
        workout = _workout(IntensityLevel.LOW, MONDAY)

        assert assembler.apply_intensity(workout, IntensityLevel.LOW, 1) is False
        assert workout.estimated_duration_minutes == 40
