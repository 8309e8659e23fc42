"""Workout assembler: fills week skeletons with concrete workouts and exercises."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Sequence

from hybridcoach.models.database_models import UserProfile, Workout, WorkoutExercise
from hybridcoach.models.enums import (
    CompletionStatus,
    DifficultyLevel,
    Discipline,
    GoalType,
    IntensityLevel,
    SessionType,
    TrainingPhase,
)
from hybridcoach.services.exercise_catalog import (
    CatalogEntry,
    ExerciseCatalog,
    InjuryConstraint,
)
from hybridcoach.services.periodization import CYCLE_LENGTH, WeekSkeleton


logger = logging.getLogger(__name__)

DISCIPLINE_ROTATION: dict[GoalType | None, tuple[Discipline, ...]] = {
    GoalType.HYROX_RACE: (
        Discipline.HYROX,
        Discipline.RUNNING,
        Discipline.HYBRID,
        Discipline.HYROX,
        Discipline.STRENGTH,
    ),
    GoalType.RUNNING_DISTANCE: (
        Discipline.RUNNING,
        Discipline.STRENGTH,
        Discipline.RUNNING,
        Discipline.RUNNING,
        Discipline.HYBRID,
    ),
    GoalType.STRENGTH_MILESTONE: (
        Discipline.STRENGTH,
        Discipline.RUNNING,
        Discipline.STRENGTH,
        Discipline.HYBRID,
        Discipline.STRENGTH,
    ),
    GoalType.GENERAL_FITNESS: (
        Discipline.HYBRID,
        Discipline.STRENGTH,
        Discipline.RUNNING,
        Discipline.HYROX,
    ),
}
DISCIPLINE_ROTATION[None] = DISCIPLINE_ROTATION[GoalType.GENERAL_FITNESS]

SESSION_OPTIONS: dict[Discipline, dict[TrainingPhase, tuple[SessionType, ...]]] = {
    Discipline.RUNNING: {
        TrainingPhase.FOUNDATION: (SessionType.EASY_RUN, SessionType.LONG_RUN),
        TrainingPhase.BUILD: (SessionType.TEMPO, SessionType.EASY_RUN, SessionType.LONG_RUN),
        TrainingPhase.PEAK: (SessionType.INTERVALS, SessionType.TEMPO, SessionType.LONG_RUN),
        TrainingPhase.RECOVERY: (SessionType.RECOVERY, SessionType.EASY_RUN),
    },
    Discipline.STRENGTH: {
        TrainingPhase.FOUNDATION: (SessionType.FULL_BODY,),
        TrainingPhase.BUILD: (SessionType.UPPER_LOWER, SessionType.FULL_BODY),
        TrainingPhase.PEAK: (SessionType.PUSH_PULL_LEGS, SessionType.UPPER_LOWER),
        TrainingPhase.RECOVERY: (SessionType.FULL_BODY,),
    },
    Discipline.HYROX: {
        TrainingPhase.FOUNDATION: (SessionType.STATION_PRACTICE, SessionType.TRANSITION_DRILLS),
        TrainingPhase.BUILD: (SessionType.STATION_PRACTICE, SessionType.HYBRID_CONDITIONING),
        TrainingPhase.PEAK: (SessionType.RACE_SIMULATION, SessionType.STATION_PRACTICE),
        TrainingPhase.RECOVERY: (SessionType.STATION_PRACTICE,),
    },
    Discipline.HYBRID: {
        TrainingPhase.FOUNDATION: (SessionType.HYBRID_CONDITIONING,),
        TrainingPhase.BUILD: (SessionType.HYBRID_CONDITIONING, SessionType.TRANSITION_DRILLS),
        TrainingPhase.PEAK: (SessionType.HYBRID_CONDITIONING, SessionType.RACE_SIMULATION),
        TrainingPhase.RECOVERY: (SessionType.RECOVERY,),
    },
}

SESSION_BASE_MINUTES = {
    SessionType.EASY_RUN: 30,
    SessionType.LONG_RUN: 60,
    SessionType.INTERVALS: 45,
    SessionType.TEMPO: 40,
    SessionType.RECOVERY: 30,
    SessionType.FULL_BODY: 60,
    SessionType.UPPER_LOWER: 45,
    SessionType.PUSH_PULL_LEGS: 45,
    SessionType.RACE_SIMULATION: 90,
    SessionType.STATION_PRACTICE: 45,
    SessionType.TRANSITION_DRILLS: 40,
    SessionType.HYBRID_CONDITIONING: 50,
}

EXERCISES_PER_SESSION = {
    SessionType.EASY_RUN: 3,
    SessionType.LONG_RUN: 3,
    SessionType.RECOVERY: 3,
    SessionType.TEMPO: 4,
    SessionType.INTERVALS: 4,
    SessionType.TRANSITION_DRILLS: 4,
    SessionType.UPPER_LOWER: 5,
    SessionType.PUSH_PULL_LEGS: 5,
    SessionType.STATION_PRACTICE: 5,
    SessionType.HYBRID_CONDITIONING: 5,
    SessionType.FULL_BODY: 6,
    SessionType.RACE_SIMULATION: 6,
}

SESSION_LABELS = {
    SessionType.EASY_RUN: "Easy Run",
    SessionType.LONG_RUN: "Long Run",
    SessionType.INTERVALS: "Interval Session",
    SessionType.TEMPO: "Tempo Run",
    SessionType.RECOVERY: "Active Recovery",
    SessionType.FULL_BODY: "Full Body Strength",
    SessionType.UPPER_LOWER: "Upper/Lower Strength",
    SessionType.PUSH_PULL_LEGS: "Push/Pull/Legs Strength",
    SessionType.RACE_SIMULATION: "Race Simulation",
    SessionType.STATION_PRACTICE: "Station Practice",
    SessionType.TRANSITION_DRILLS: "Transition Drills",
    SessionType.HYBRID_CONDITIONING: "Hybrid Conditioning",
}

# Session types run one intensity step below the week's target.
EASY_SESSIONS = frozenset({SessionType.EASY_RUN, SessionType.LONG_RUN, SessionType.RECOVERY})

PLACEHOLDER_MINUTES = 20
MIN_WORKOUT_MINUTES = 15


@dataclass(frozen=True)
class Prescription:
    sets: int | None
    reps: int | None
    duration_seconds: int | None
    rest_seconds: int
    intensity_guidance: str


class IntensityMapping:
    """Intensity level to sets/reps/rest/duration, shared by generation and adaptation."""

    SETS = {
        IntensityLevel.LOW: 2,
        IntensityLevel.MODERATE: 3,
        IntensityLevel.HIGH: 4,
        IntensityLevel.MAXIMUM: 5,
    }
    REPS = {
        IntensityLevel.LOW: 12,
        IntensityLevel.MODERATE: 10,
        IntensityLevel.HIGH: 8,
        IntensityLevel.MAXIMUM: 5,
    }
    REST_SECONDS = {
        IntensityLevel.LOW: 60,
        IntensityLevel.MODERATE: 90,
        IntensityLevel.HIGH: 120,
        IntensityLevel.MAXIMUM: 180,
    }
    DURATION_FACTOR = {
        IntensityLevel.LOW: 0.8,
        IntensityLevel.MODERATE: 1.0,
        IntensityLevel.HIGH: 1.1,
        IntensityLevel.MAXIMUM: 1.2,
    }
    # Progressive overload per week inside a macro-cycle.
    WEEKLY_OVERLOAD = 0.05
    DEFAULT_DURATION_SECONDS = 300

    STRENGTH_GUIDANCE = {
        IntensityLevel.LOW: "60-70% of max",
        IntensityLevel.MODERATE: "70-80% of max",
        IntensityLevel.HIGH: "80-90% of max",
        IntensityLevel.MAXIMUM: "90-100% of max",
    }
    RUNNING_GUIDANCE = {
        IntensityLevel.LOW: "Easy pace, conversational",
        IntensityLevel.MODERATE: "Tempo pace, slightly uncomfortable",
        IntensityLevel.HIGH: "Hard pace, near maximum effort",
        IntensityLevel.MAXIMUM: "All-out effort",
    }
    RPE_GUIDANCE = {
        IntensityLevel.LOW: "RPE 5-6",
        IntensityLevel.MODERATE: "RPE 6-7",
        IntensityLevel.HIGH: "RPE 7-8",
        IntensityLevel.MAXIMUM: "RPE 9-10",
    }

    @classmethod
    def guidance(cls, discipline: Discipline, intensity: IntensityLevel) -> str:
        if discipline == Discipline.STRENGTH:
            return cls.STRENGTH_GUIDANCE[intensity]
        if discipline == Discipline.RUNNING:
            return cls.RUNNING_GUIDANCE[intensity]
        return cls.RPE_GUIDANCE[intensity]

    @classmethod
    def prescribe(cls, entry: CatalogEntry, intensity: IntensityLevel, cycle_week: int = 1) -> Prescription:
        guidance = cls.guidance(entry.discipline, intensity)
        rest = cls.REST_SECONDS[intensity]
        if entry.is_timed:
            base = entry.base_duration_seconds or cls.DEFAULT_DURATION_SECONDS
            overload = 1 + cls.WEEKLY_OVERLOAD * (max(cycle_week, 1) - 1)
            duration = int(round(base * cls.DURATION_FACTOR[intensity] * overload))
            sets = 1 if entry.discipline == Discipline.RUNNING else cls.SETS[intensity]
            return Prescription(sets, None, duration, rest, guidance)
        return Prescription(cls.SETS[intensity], cls.REPS[intensity], None, rest, guidance)


@dataclass(frozen=True)
class AssemblyContext:
    goal_type: GoalType | None
    fitness_levels: Mapping[Discipline, DifficultyLevel]
    days_per_week: int
    injuries: tuple[InjuryConstraint, ...] = ()

    @classmethod
    def from_profile(
        cls,
        profile: UserProfile,
        goal_type: GoalType | None,
        days_per_week: int,
        injuries: Sequence[InjuryConstraint] | None = None,
    ) -> "AssemblyContext":
        if injuries is None:
            injuries = [InjuryConstraint.from_injury(injury) for injury in profile.active_injuries]
        return cls(
            goal_type=goal_type,
            fitness_levels={
                Discipline.HYROX: profile.hyrox_level,
                Discipline.RUNNING: profile.running_level,
                Discipline.STRENGTH: profile.strength_level,
            },
            days_per_week=days_per_week,
            injuries=tuple(injuries),
        )

    def level_for(self, discipline: Discipline) -> DifficultyLevel:
        level = self.fitness_levels.get(discipline)
        if level is not None:
            return level
        known = list(self.fitness_levels.values()) or [DifficultyLevel.BEGINNER]
        return min(known, key=lambda item: item.rank)


@dataclass
class AssembledWeek:
    workouts: list[Workout] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def cycle_week_for(week_number: int) -> int:
    return (week_number - 1) % CYCLE_LENGTH + 1


class WorkoutAssembler:
    """Builds ``Workout``/``WorkoutExercise`` rows from week skeletons."""

    def __init__(self, catalog: ExerciseCatalog):
        self.catalog = catalog

    # -- slot planning --------------------------------------------------------

    @staticmethod
    def discipline_for_slot(
        goal_type: GoalType | None, week_number: int, slot: int, days_per_week: int
    ) -> Discipline:
        rotation = DISCIPLINE_ROTATION.get(goal_type, DISCIPLINE_ROTATION[None])
        index = ((week_number - 1) * days_per_week + slot) % len(rotation)
        return rotation[index]

    @staticmethod
    def session_type_for(discipline: Discipline, phase: TrainingPhase, occurrence: int) -> SessionType:
        options = SESSION_OPTIONS[discipline][phase]
        return options[occurrence % len(options)]

    @staticmethod
    def workout_intensity(session_type: SessionType, week_intensity: IntensityLevel) -> IntensityLevel:
        if session_type in EASY_SESSIONS:
            return week_intensity.shifted(-1)
        return week_intensity

    def plan_slot(
        self, skeleton: WeekSkeleton, slot: int, context: AssemblyContext
    ) -> tuple[Discipline, SessionType, IntensityLevel]:
        disciplines = [
            self.discipline_for_slot(context.goal_type, skeleton.week_number, index, context.days_per_week)
            for index in range(slot + 1)
        ]
        discipline = disciplines[slot]
        occurrence = disciplines[:slot].count(discipline)
        session_type = self.session_type_for(discipline, skeleton.phase, occurrence)
        return discipline, session_type, self.workout_intensity(session_type, skeleton.intensity_level)

    # -- exercise selection ---------------------------------------------------

    def exercise_pool(
        self, discipline: Discipline, context: AssemblyContext
    ) -> list[CatalogEntry]:
        pool = []
        for entry in self.catalog.safe_exercises(context.injuries, discipline=discipline):
            if entry.difficulty.rank <= context.level_for(entry.discipline).rank:
                pool.append(entry)
        return pool

    @staticmethod
    def _rotate(items: list[CatalogEntry], seed: int) -> list[CatalogEntry]:
        if not items:
            return items
        offset = seed % len(items)
        return items[offset:] + items[:offset]

    def pick_exercises(
        self,
        pool: Sequence[CatalogEntry],
        discipline: Discipline,
        session_type: SessionType,
        seed: int,
    ) -> list[CatalogEntry]:
        """Deterministic round-robin pick: matching session type first, then general work."""
        count = EXERCISES_PER_SESSION[session_type]
        matching = self._rotate([e for e in pool if e.session_type == session_type], seed)
        general = self._rotate([e for e in pool if e.session_type is None], seed)
        other = self._rotate(
            [e for e in pool if e.session_type is not None and e.session_type != session_type], seed
        )
        # A run session has one main run; the remaining slots are drills.
        main_slots = 1 if discipline == Discipline.RUNNING else count
        ordered = matching[:main_slots] + general + other + matching[main_slots:]
        chosen = list(dict.fromkeys(ordered))[:count]
        return self.order_by_pattern(chosen)

    @staticmethod
    def order_by_pattern(entries: Sequence[CatalogEntry]) -> list[CatalogEntry]:
        """Avoid two consecutive exercises with the same primary movement pattern where possible."""
        remaining = list(entries)
        ordered: list[CatalogEntry] = []
        while remaining:
            previous = ordered[-1].primary_pattern if ordered else None
            pick = next(
                (entry for entry in remaining if previous is None or entry.primary_pattern != previous),
                remaining[0],
            )
            ordered.append(pick)
            remaining.remove(pick)
        return ordered

    def prescribe_into(
        self, item: WorkoutExercise, entry: CatalogEntry, intensity: IntensityLevel, cycle_week: int
    ) -> None:
        prescription = IntensityMapping.prescribe(entry, intensity, cycle_week)
        item.sets = prescription.sets
        item.reps = prescription.reps
        item.duration_seconds = prescription.duration_seconds
        item.rest_seconds = prescription.rest_seconds
        item.intensity_guidance = prescription.intensity_guidance

    # -- workouts -------------------------------------------------------------

    @staticmethod
    def placeholder_workout(scheduled_date: date, discipline: Discipline, reason: str) -> Workout:
        return Workout(
            day_of_week=scheduled_date.weekday(),
            scheduled_date=scheduled_date,
            discipline=discipline,
            session_type=SessionType.RECOVERY,
            name="Rest / Mobility",
            description=f"Light mobility or full rest. {reason}",
            estimated_duration_minutes=PLACEHOLDER_MINUTES,
            intensity_level=IntensityLevel.LOW,
            is_key_workout=False,
            is_placeholder=True,
            completion_status=CompletionStatus.NOT_STARTED,
            exercises=[],
        )

    def build_workout(
        self,
        skeleton: WeekSkeleton,
        scheduled_date: date,
        slot: int,
        context: AssemblyContext,
        duration_minutes: int | None = None,
    ) -> tuple[Workout, str | None]:
        """Build one workout for a training date; returns the workout and an optional warning."""
        discipline, session_type, intensity = self.plan_slot(skeleton, slot, context)
        pool = self.exercise_pool(discipline, context)
        if not pool:
            warning = (
                f"Week {skeleton.week_number} {scheduled_date.isoformat()}: no safe "
                f"{discipline.value} exercises for {SESSION_LABELS[session_type]}; "
                "scheduled a rest placeholder"
            )
            logger.warning(warning)
            return self.placeholder_workout(scheduled_date, discipline, "No safe exercises available."), warning

        picks = self.pick_exercises(pool, discipline, session_type, seed=skeleton.week_number * 7 + slot)
        label = SESSION_LABELS[session_type]
        if duration_minutes is None:
            duration_minutes = int(round(self._base_minutes(session_type, intensity)))
        workout = Workout(
            day_of_week=scheduled_date.weekday(),
            scheduled_date=scheduled_date,
            discipline=discipline,
            session_type=session_type,
            name=label,
            description=(
                f"{skeleton.phase.value.title()} phase, week {skeleton.week_number}: "
                f"{label.lower()} ({discipline.value})"
            ),
            estimated_duration_minutes=duration_minutes,
            intensity_level=intensity,
            is_key_workout=False,
            is_placeholder=False,
            completion_status=CompletionStatus.NOT_STARTED,
            exercises=[],
        )
        for order, entry in enumerate(picks, start=1):
            item = WorkoutExercise(exercise_id=entry.id, order_index=order)
            self.prescribe_into(item, entry, intensity, skeleton.cycle_week)
            workout.exercises.append(item)
        return workout, None

    @staticmethod
    def _base_minutes(session_type: SessionType, intensity: IntensityLevel) -> float:
        minutes = SESSION_BASE_MINUTES[session_type]
        if intensity.rank >= IntensityLevel.HIGH.rank:
            minutes *= 1.2
        return minutes

    def assemble_week(self, skeleton: WeekSkeleton, context: AssemblyContext) -> AssembledWeek:
        assembled = AssembledWeek()
        for slot, scheduled_date in enumerate(skeleton.training_dates):
            workout, warning = self.build_workout(skeleton, scheduled_date, slot, context)
            assembled.workouts.append(workout)
            if warning:
                assembled.warnings.append(warning)

        self.fit_durations(assembled.workouts, skeleton.weekly_volume_minutes)
        self.flag_key_workout(assembled.workouts)
        return assembled

    @staticmethod
    def fit_durations(workouts: Sequence[Workout], weekly_volume_minutes: int) -> None:
        """Scale real workouts so the week's durations add up to the volume target."""
        real = [workout for workout in workouts if not workout.is_placeholder]
        if not real:
            return
        target = weekly_volume_minutes - PLACEHOLDER_MINUTES * (len(workouts) - len(real))
        target = max(target, MIN_WORKOUT_MINUTES * len(real))
        base_total = sum(WorkoutAssembler._base_minutes(w.session_type, w.intensity_level) for w in real)
        for workout in real:
            share = WorkoutAssembler._base_minutes(workout.session_type, workout.intensity_level) / base_total
            workout.estimated_duration_minutes = max(MIN_WORKOUT_MINUTES, int(round(target * share)))
        drift = target - sum(workout.estimated_duration_minutes for workout in real)
        last = real[-1]
        if last.estimated_duration_minutes + drift >= MIN_WORKOUT_MINUTES:
            last.estimated_duration_minutes += drift

    @staticmethod
    def flag_key_workout(workouts: Sequence[Workout]) -> Workout | None:
        """Flag the highest-intensity workout (latest date on ties) as the week's key workout.

        Rest placeholders are never the key workout.
        """
        candidates = [workout for workout in workouts if not workout.is_placeholder]
        key = max(candidates, key=lambda w: (w.intensity_level.rank, w.scheduled_date)) if candidates else None
        for workout in workouts:
            workout.is_key_workout = workout is key
        return key

    def apply_intensity(self, workout: Workout, intensity: IntensityLevel, cycle_week: int) -> bool:
        """Move a workout to a new intensity and re-derive every exercise prescription.

        Returns:
            bool: False when the workout already sits at ``intensity``
        """
        previous = workout.intensity_level
        if previous == intensity:
            return False
        ratio = IntensityMapping.DURATION_FACTOR[intensity] / IntensityMapping.DURATION_FACTOR[previous]
        workout.estimated_duration_minutes = max(
            MIN_WORKOUT_MINUTES if not workout.is_placeholder else 1,
            int(round(workout.estimated_duration_minutes * ratio)),
        )
        workout.intensity_level = intensity
        for item in workout.exercises:
            entry = self.catalog.get(item.exercise_id)
            if entry is None:
                logger.warning("Workout %s references unknown exercise %s", workout.id, item.exercise_id)
                continue
            self.prescribe_into(item, entry, intensity, cycle_week)
        return True
