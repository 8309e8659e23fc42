"""Plan generation: profile analysis, periodization and assembly into a persisted plan."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable

from hybridcoach.config import Settings, get_settings
from hybridcoach.exceptions import ConflictError, NotFoundError, PlanningError, ValidationError
from hybridcoach.models.database_models import (
    PlanMetadata,
    TrainingGoal,
    TrainingPlan,
    TrainingWeek,
    UserProfile,
)
from hybridcoach.models.enums import GoalType, PlanStatus, TrainingPhase
from hybridcoach.repositories.base import ExerciseRepository, TrainingPlanRepository, UserProfileRepository
from hybridcoach.services.exercise_catalog import ExerciseCatalog, InjuryConstraint
from hybridcoach.services.periodization import (
    PeriodizationPlanner,
    PlannerProfile,
    primary_discipline,
    total_weeks_for,
)
from hybridcoach.services.workout_assembler import AssemblyContext, WorkoutAssembler


logger = logging.getLogger(__name__)

ALGORITHM_VERSION = "1.0.0"

GOAL_LABELS = {
    GoalType.HYROX_RACE: "HYROX Race",
    GoalType.RUNNING_DISTANCE: "Running",
    GoalType.STRENGTH_MILESTONE: "Strength",
    GoalType.GENERAL_FITNESS: "General Fitness",
}


@dataclass(frozen=True)
class PlanModifications:
    """Optional overrides accepted by ``regenerate_plan``."""

    total_weeks: int | None = None
    training_days_per_week: int | None = None
    start_date: date | None = None


def primary_goal_of(profile: UserProfile) -> TrainingGoal | None:
    """The active goal with the lowest priority number (oldest first on ties)."""
    goals = profile.active_goals
    if not goals:
        return None
    return min(goals, key=lambda goal: (goal.priority, goal.id or 0))


def default_days_per_week(profile: UserProfile) -> int:
    schedule = profile.schedule
    return min(schedule.maximum_sessions_per_week, len(schedule.selected_weekdays()))


def build_planner_profile(
    profile: UserProfile, goal_type: GoalType | None, days_per_week: int, weekdays=None
) -> PlannerProfile:
    selected = weekdays if weekdays is not None else profile.schedule.selected_weekdays()
    return PlannerProfile(
        fitness_level=profile.level_for(primary_discipline(goal_type)),
        selected_weekdays=tuple(sorted(selected)),
        training_days_per_week=days_per_week,
        goal_type=goal_type,
    )


def active_injury_constraints(profile: UserProfile) -> list[InjuryConstraint]:
    return [InjuryConstraint.from_injury(injury) for injury in profile.active_injuries]


def profile_snapshot(profile: UserProfile) -> dict:
    schedule = profile.schedule
    return {
        "levels": {
            "hyrox": profile.hyrox_level.value,
            "running": profile.running_level.value,
            "strength": profile.strength_level.value,
        },
        "schedule": {
            "weekdays": schedule.selected_weekdays() if schedule else [],
            "minimum_sessions_per_week": schedule.minimum_sessions_per_week if schedule else None,
            "maximum_sessions_per_week": schedule.maximum_sessions_per_week if schedule else None,
        },
        "goals": [
            {
                "id": goal.id,
                "type": goal.goal_type.value,
                "priority": goal.priority,
                "target_date": goal.target_date.isoformat() if goal.target_date else None,
                "status": goal.status.value,
            }
            for goal in profile.goals
        ],
        "injuries": [
            {"id": injury.id, "body_part": injury.body_part, "status": injury.status.value}
            for injury in profile.injuries
        ],
    }


class PlanGenerationService:
    """Generates and regenerates a user's single active training plan."""

    def __init__(
        self,
        profiles: UserProfileRepository,
        exercises: ExerciseRepository,
        plans: TrainingPlanRepository,
        settings: Settings | None = None,
        clock: Callable[[], date] = date.today,
        planner: PeriodizationPlanner | None = None,
    ):
        self.profiles = profiles
        self.exercises = exercises
        self.plans = plans
        self.settings = settings or get_settings()
        self.clock = clock
        self.planner = planner or PeriodizationPlanner()

    # -- validation -----------------------------------------------------------

    @staticmethod
    def profile_issues(profile: UserProfile | None) -> list[str]:
        if profile is None:
            return ["Profile is missing"]
        issues = []
        schedule = profile.schedule
        if schedule is None:
            issues.append("Schedule availability is missing")
        elif not schedule.is_valid():
            issues.append("Schedule availability needs at least one day and ordered session bounds")
        if not profile.active_goals:
            issues.append("At least one active training goal is required")
        return issues

    def validate_plan_parameters(self, profile: UserProfile | None) -> bool:
        """Pure check that the profile carries enough information to plan against."""
        issues = self.profile_issues(profile)
        if issues:
            logger.info("Plan parameters invalid: %s", "; ".join(issues))
        return not issues

    # -- generation -----------------------------------------------------------

    def generate_plan(self, user_id: str, modifications: PlanModifications | None = None) -> TrainingPlan:
        logger.info("Starting plan generation for user %s", user_id)
        profile = self.profiles.get_complete_profile(user_id)
        if profile is None:
            raise NotFoundError(f"User profile not found for user {user_id}")

        issues = self.profile_issues(profile)
        if issues:
            raise ValidationError("Profile is not ready for plan generation: " + "; ".join(issues))

        if self.plans.get_active_plan(user_id) is not None:
            raise ConflictError(
                f"User {user_id} already has an active training plan",
                retry_guidance="Regenerate the plan to replace the active one.",
            )

        plan = self._build_plan(profile, modifications or PlanModifications())
        self.plans.create(plan)
        logger.info(
            "Generated plan %s for user %s: %d weeks, %d days/week, %d warnings",
            plan.id,
            user_id,
            plan.total_weeks,
            plan.training_days_per_week,
            len(plan.plan_metadata.warnings),
        )
        return plan

    def regenerate_plan(self, user_id: str, modifications: PlanModifications | None = None) -> TrainingPlan:
        """Archive the current active plan (if any) and generate a fresh one."""
        logger.info("Regenerating plan for user %s", user_id)
        existing = self.plans.get_active_plan(user_id)
        if existing is not None:
            existing.status = PlanStatus.ABANDONED
            self.plans.update(existing)
            logger.info("Archived plan %s as abandoned", existing.id)
        return self.generate_plan(user_id, modifications)

    def _build_plan(self, profile: UserProfile, modifications: PlanModifications) -> TrainingPlan:
        today = self.clock()
        schedule = profile.schedule
        selected = schedule.selected_weekdays()
        if len(selected) < schedule.minimum_sessions_per_week:
            raise PlanningError(
                f"Only {len(selected)} days selected but at least "
                f"{schedule.minimum_sessions_per_week} sessions per week are required"
            )

        days_per_week = modifications.training_days_per_week or default_days_per_week(profile)
        self.planner.validate_availability(selected, days_per_week)

        goal = primary_goal_of(profile)
        goal_type = goal.goal_type if goal else None
        if modifications.total_weeks is not None:
            total_weeks = max(
                self.settings.min_plan_weeks, min(self.settings.max_plan_weeks, modifications.total_weeks)
            )
        else:
            total_weeks = total_weeks_for(
                goal.target_date if goal else None,
                today,
                default_weeks=self.settings.default_plan_weeks,
                min_weeks=self.settings.min_plan_weeks,
                max_weeks=self.settings.max_plan_weeks,
            )
        start_date = modifications.start_date or today

        injuries = active_injury_constraints(profile)
        planner_profile = build_planner_profile(profile, goal_type, days_per_week)
        logger.info(
            "Plan parameters: weeks=%d days_per_week=%d goal=%s injuries=%d",
            total_weeks,
            days_per_week,
            goal_type.value if goal_type else None,
            len(injuries),
        )

        skeletons = self.planner.plan_weeks(planner_profile, start_date, total_weeks)
        assembler = WorkoutAssembler(ExerciseCatalog.from_repository(self.exercises))
        context = AssemblyContext.from_profile(profile, goal_type, days_per_week, injuries)

        warnings: list[str] = []
        weeks = []
        for skeleton in skeletons:
            assembled = assembler.assemble_week(skeleton, context)
            warnings.extend(assembled.warnings)
            weeks.append(
                TrainingWeek(
                    week_number=skeleton.week_number,
                    phase=skeleton.phase,
                    weekly_volume_minutes=skeleton.weekly_volume_minutes,
                    intensity_level=skeleton.intensity_level,
                    start_date=skeleton.start_date,
                    end_date=skeleton.end_date,
                    workouts=assembled.workouts,
                )
            )

        label = GOAL_LABELS.get(goal_type, "Training")
        plan = TrainingPlan(
            user_id=profile.user_id,
            name=f"{label} Plan - {start_date:%b %Y}",
            start_date=start_date,
            end_date=start_date + timedelta(days=total_weeks * 7 - 1),
            total_weeks=total_weeks,
            training_days_per_week=days_per_week,
            primary_goal_id=goal.id if goal else None,
            status=PlanStatus.ACTIVE,
            current_week=1,
            is_deleted=False,
            weeks=weeks,
            plan_metadata=PlanMetadata(
                algorithm_version=ALGORITHM_VERSION,
                generation_parameters={
                    "total_weeks": total_weeks,
                    "training_days_per_week": days_per_week,
                    "training_weekdays": list(
                        self.planner.select_training_days(selected, days_per_week)
                    ),
                    "injury_body_parts": [injury.body_part for injury in injuries],
                    "primary_goal_type": goal_type.value if goal_type else None,
                    "generated_on": today.isoformat(),
                },
                profile_snapshot=profile_snapshot(profile),
                modification_history=[],
                warnings=warnings,
            ),
        )
        self._check_coherence(plan)
        return plan

    @staticmethod
    def _check_coherence(plan: TrainingPlan) -> None:
        weeks = plan.weeks
        for week in weeks:
            if not week.workouts:
                raise PlanningError(f"Week {week.week_number} has no workouts")
        for previous, current in zip(weeks, weeks[1:]):
            if current.start_date != previous.end_date + timedelta(days=1):
                raise PlanningError(f"Week {current.week_number} is not contiguous with week {previous.week_number}")
            if current.phase != TrainingPhase.RECOVERY and current.weekly_volume_minutes < previous.weekly_volume_minutes * 0.8:
                logger.warning(
                    "Week %d has significantly lower volume than week %d",
                    current.week_number,
                    previous.week_number,
                )
