"""Periodization planner: turns a normalized profile into week skeletons."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Sequence

from hybridcoach.exceptions import PlanningError
from hybridcoach.models.enums import DifficultyLevel, Discipline, GoalType, IntensityLevel, TrainingPhase


logger = logging.getLogger(__name__)

CYCLE_LENGTH = 4
CYCLE_PHASES = (
    TrainingPhase.FOUNDATION,
    TrainingPhase.BUILD,
    TrainingPhase.PEAK,
    TrainingPhase.RECOVERY,
)

PHASE_INTENSITY = {
    TrainingPhase.FOUNDATION: IntensityLevel.LOW,
    TrainingPhase.BUILD: IntensityLevel.MODERATE,
    TrainingPhase.PEAK: IntensityLevel.HIGH,
    TrainingPhase.RECOVERY: IntensityLevel.LOW,
}

PHASE_VOLUME_MULTIPLIER = {
    TrainingPhase.FOUNDATION: 1.0,
    TrainingPhase.BUILD: 1.15,
    TrainingPhase.PEAK: 1.25,
    TrainingPhase.RECOVERY: 0.7,
}

# Baseline minutes per training session by fitness level.
SESSION_MINUTES = {
    DifficultyLevel.BEGINNER: 40,
    DifficultyLevel.INTERMEDIATE: 50,
    DifficultyLevel.ADVANCED: 60,
}

GOAL_DISCIPLINE = {
    GoalType.HYROX_RACE: Discipline.HYROX,
    GoalType.RUNNING_DISTANCE: Discipline.RUNNING,
    GoalType.STRENGTH_MILESTONE: Discipline.STRENGTH,
    GoalType.GENERAL_FITNESS: Discipline.HYROX,
}


@dataclass(frozen=True)
class PlannerProfile:
    """Normalized planning input, independent of storage."""

    fitness_level: DifficultyLevel
    selected_weekdays: tuple[int, ...]
    training_days_per_week: int
    goal_type: GoalType | None = None


@dataclass(frozen=True)
class WeekSkeleton:
    week_number: int
    phase: TrainingPhase
    intensity_level: IntensityLevel
    weekly_volume_minutes: int
    start_date: date
    end_date: date
    training_dates: tuple[date, ...]

    @property
    def cycle_week(self) -> int:
        """1-based position inside the 4-week macro-cycle."""
        return (self.week_number - 1) % CYCLE_LENGTH + 1


def primary_discipline(goal_type: GoalType | None) -> Discipline:
    if goal_type is None:
        return Discipline.HYBRID
    return GOAL_DISCIPLINE[goal_type]


def total_weeks_for(
    target_date: date | None,
    today: date,
    default_weeks: int = 12,
    min_weeks: int = 4,
    max_weeks: int = 52,
) -> int:
    """Weeks from today to the target date rounded up and clamped to the allowed horizon."""
    if target_date is None:
        return default_weeks
    days = (target_date - today).days
    weeks = math.ceil(days / 7)
    return max(min_weeks, min(max_weeks, weeks))


class PeriodizationPlanner:
    """Deterministic 4-week macro-cycle planner (Foundation, Build, Peak, Recovery)."""

    @staticmethod
    def validate_availability(selected_weekdays: Sequence[int], days_per_week: int) -> None:
        if not selected_weekdays:
            raise PlanningError("No training days selected in schedule availability")
        if days_per_week < 1:
            raise PlanningError("Training days per week must be at least 1")
        if days_per_week > len(set(selected_weekdays)):
            raise PlanningError(
                f"{days_per_week} training days per week requested but only "
                f"{len(set(selected_weekdays))} days are available"
            )

    @staticmethod
    def select_training_days(selected_weekdays: Iterable[int], days_per_week: int) -> list[int]:
        """Pick the most evenly spaced ``days_per_week`` weekdays, Monday first.

        Example: all seven days and three sessions gives Monday, Wednesday, Friday.
        """
        available = sorted(set(selected_weekdays))
        PeriodizationPlanner.validate_availability(available, days_per_week)
        count = len(available)
        return [available[(i * count) // days_per_week] for i in range(days_per_week)]

    @staticmethod
    def phase_for_week(week_number: int, total_weeks: int) -> TrainingPhase:
        if week_number == total_weeks:
            # Taper into the goal date.
            return TrainingPhase.RECOVERY
        return CYCLE_PHASES[(week_number - 1) % CYCLE_LENGTH]

    @staticmethod
    def intensity_for(
        phase: TrainingPhase, week_number: int, fitness_level: DifficultyLevel
    ) -> IntensityLevel:
        base = PHASE_INTENSITY[phase]
        if phase == TrainingPhase.RECOVERY or week_number <= CYCLE_LENGTH:
            return base
        # Later cycles run one step hotter; beginners never reach Maximum.
        ceiling = IntensityLevel.HIGH if fitness_level == DifficultyLevel.BEGINNER else IntensityLevel.MAXIMUM
        return base.shifted(1, ceiling=ceiling)

    @staticmethod
    def weekly_volume(phase: TrainingPhase, fitness_level: DifficultyLevel, days_per_week: int) -> int:
        minutes = SESSION_MINUTES[fitness_level] * days_per_week * PHASE_VOLUME_MULTIPLIER[phase]
        return int(round(minutes))

    @staticmethod
    def training_dates(start: date, end: date, weekdays: Iterable[int]) -> tuple[date, ...]:
        chosen = set(weekdays)
        span = (end - start).days + 1
        return tuple(
            day
            for day in (start + timedelta(days=offset) for offset in range(span))
            if day.weekday() in chosen
        )

    def build_week(
        self,
        profile: PlannerProfile,
        week_number: int,
        total_weeks: int,
        start_date: date,
        weekdays: Sequence[int] | None = None,
    ) -> WeekSkeleton:
        days = weekdays if weekdays is not None else self.select_training_days(
            profile.selected_weekdays, profile.training_days_per_week
        )
        phase = self.phase_for_week(week_number, total_weeks)
        end_date = start_date + timedelta(days=6)
        return WeekSkeleton(
            week_number=week_number,
            phase=phase,
            intensity_level=self.intensity_for(phase, week_number, profile.fitness_level),
            weekly_volume_minutes=self.weekly_volume(
                phase, profile.fitness_level, profile.training_days_per_week
            ),
            start_date=start_date,
            end_date=end_date,
            training_dates=self.training_dates(start_date, end_date, days),
        )

    def plan_weeks(
        self,
        profile: PlannerProfile,
        start_date: date,
        total_weeks: int,
        first_week_number: int = 1,
        week_count: int | None = None,
    ) -> list[WeekSkeleton]:
        """Lay out week skeletons.

        Args:
            profile: Normalized planning input
            start_date: First day of ``first_week_number``
            total_weeks: Length of the whole plan (decides the final Recovery week)
            first_week_number: Absolute number of the first week to build, so phases
                continue the existing cycle during partial recomputation
            week_count: How many weeks to build (defaults to the rest of the plan)

        Returns:
            Ordered, date-contiguous week skeletons
        """
        weekdays = self.select_training_days(profile.selected_weekdays, profile.training_days_per_week)
        if week_count is None:
            week_count = total_weeks - first_week_number + 1
        skeletons = []
        for offset in range(week_count):
            skeletons.append(
                self.build_week(
                    profile,
                    week_number=first_week_number + offset,
                    total_weeks=total_weeks,
                    start_date=start_date + timedelta(days=7 * offset),
                    weekdays=weekdays,
                )
            )
        logger.debug(
            "Planned %d weeks from week %d (days=%s, level=%s)",
            len(skeletons),
            first_week_number,
            weekdays,
            profile.fitness_level.value,
        )
        return skeletons
