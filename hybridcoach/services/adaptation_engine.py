"""Adaptation engine: re-balances an active plan in response to real-world triggers.

Every call goes through ``AdaptationEngine.apply`` with one of the trigger
dataclasses below. Handlers validate first, then mutate only future,
not-yet-started workouts, and the engine writes exactly one ``PlanAdaptation``
record per call (``success=False`` for no-ops). The engine flushes through
its repositories but never commits.
"""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, ClassVar, Iterable, Sequence, Union

from sqlalchemy.orm.exc import StaleDataError

from hybridcoach.config import Settings, get_settings
from hybridcoach.exceptions import ConflictError, NotFoundError, PlanningError, ValidationError
from hybridcoach.models.database_models import (
    PlanAdaptation,
    ScheduleAvailability,
    TrainingPlan,
    TrainingWeek,
    UserProfile,
    Workout,
)
from hybridcoach.models.enums import (
    AdaptationTrigger,
    AdaptationType,
    CompletionStatus,
    GoalType,
    IntensityDirection,
    IntensityLevel,
    InjuryStatus,
    SessionType,
    TrainingPhase,
)
from hybridcoach.repositories.base import (
    CompletionHistoryRepository,
    ExerciseRepository,
    PlanAdaptationRepository,
    TrainingPlanRepository,
    UserProfileRepository,
)
from hybridcoach.services.exercise_catalog import ExerciseCatalog
from hybridcoach.services.periodization import PeriodizationPlanner, WeekSkeleton
from hybridcoach.services.plan_generation import (
    active_injury_constraints,
    build_planner_profile,
    primary_goal_of,
)
from hybridcoach.services.workout_assembler import (
    PLACEHOLDER_MINUTES,
    AssemblyContext,
    WorkoutAssembler,
    cycle_week_for,
)


logger = logging.getLogger(__name__)

REENTRY_PREFIX = "[Re-entry]"
REENTRY_VOLUME_FACTOR = 0.75
MISSED_WORKOUT_WARNING_THRESHOLD = 7
WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

TOO_EASY_PATTERN = re.compile(
    r"\b(too\s+easy|way\s+too\s+easy|felt\s+easy|not\s+challenging|too\s+light|could\s+do\s+more)\b",
    re.IGNORECASE,
)
TOO_HARD_PATTERN = re.compile(
    r"\b(too\s+hard|too\s+difficult|too\s+heavy|too\s+intense|exhausted|couldn'?t\s+finish|could\s+not\s+finish)\b",
    re.IGNORECASE,
)


# ---------------------------------------------------------------------------
# Trigger variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MissedWorkouts:
    workout_ids: tuple[int, ...]

    kind: ClassVar[AdaptationTrigger] = AdaptationTrigger.MISSED_WORKOUTS


@dataclass(frozen=True)
class IntensityChange:
    direction: IntensityDirection
    reason: str | None = None

    kind: ClassVar[AdaptationTrigger] = AdaptationTrigger.INTENSITY_CHANGE


@dataclass(frozen=True)
class ScheduleChange:
    weekdays: frozenset[int]
    minimum_sessions_per_week: int | None = None
    maximum_sessions_per_week: int | None = None

    kind: ClassVar[AdaptationTrigger] = AdaptationTrigger.SCHEDULE_CHANGE


@dataclass(frozen=True)
class InjuryReported:
    injury_id: int

    kind: ClassVar[AdaptationTrigger] = AdaptationTrigger.INJURY


@dataclass(frozen=True)
class GoalTimelineChange:
    goal_id: int
    new_target_date: date

    kind: ClassVar[AdaptationTrigger] = AdaptationTrigger.GOAL_TIMELINE_CHANGE


@dataclass(frozen=True)
class PerceivedDifficultyPattern:
    lookback: int | None = None

    kind: ClassVar[AdaptationTrigger] = AdaptationTrigger.PERCEIVED_DIFFICULTY_PATTERN


AdaptationRequest = Union[
    MissedWorkouts,
    IntensityChange,
    ScheduleChange,
    InjuryReported,
    GoalTimelineChange,
    PerceivedDifficultyPattern,
]


@dataclass
class PlanAdaptationResult:
    adaptation_id: int | None
    plan_id: int
    trigger: AdaptationTrigger
    adaptation_type: AdaptationType
    description: str
    workouts_affected: int
    applied_at: datetime
    success: bool
    warnings: list[str] = field(default_factory=list)
    changes: dict[str, Any] = field(default_factory=dict)
    plan_revision: int | None = None


@dataclass
class _Outcome:
    adaptation_type: AdaptationType
    description: str
    workouts_affected: int = 0
    success: bool = True
    warnings: list[str] = field(default_factory=list)
    changes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def noop(
        cls,
        adaptation_type: AdaptationType,
        reason: str,
        changes: dict[str, Any] | None = None,
    ) -> "_Outcome":
        return cls(
            adaptation_type=adaptation_type,
            description=f"Adaptation not applied: {reason}",
            workouts_affected=0,
            success=False,
            warnings=[reason],
            changes=changes or {},
        )


@dataclass
class _Context:
    user_id: str
    plan: TrainingPlan
    profile: UserProfile
    today: date
    assembler: WorkoutAssembler

    @property
    def catalog(self) -> ExerciseCatalog:
        return self.assembler.catalog


def longest_consecutive_run(ordered: Sequence[Workout], missed_ids: set[int]) -> int:
    """Longest run of adjacent scheduled workouts (in plan order) that were all missed."""
    best = current = 0
    for workout in ordered:
        if workout.id in missed_ids:
            current += 1
            best = max(best, current)
        else:
            current = 0
    return best


class AdaptationEngine:
    """Dispatches adaptation triggers against a user's active plan."""

    def __init__(
        self,
        plans: TrainingPlanRepository,
        adaptations: PlanAdaptationRepository,
        profiles: UserProfileRepository,
        exercises: ExerciseRepository,
        history: CompletionHistoryRepository,
        settings: Settings | None = None,
        clock: Callable[[], date] = date.today,
        now: Callable[[], datetime] = datetime.utcnow,
        planner: PeriodizationPlanner | None = None,
    ):
        self.plans = plans
        self.adaptations = adaptations
        self.profiles = profiles
        self.exercises = exercises
        self.history = history
        self.settings = settings or get_settings()
        self.clock = clock
        self.now = now
        self.planner = planner or PeriodizationPlanner()
        self._handlers: dict[type, Callable[[_Context, Any], _Outcome]] = {
            MissedWorkouts: self._handle_missed_workouts,
            IntensityChange: self._handle_intensity_change,
            ScheduleChange: self._handle_schedule_change,
            InjuryReported: self._handle_injury,
            GoalTimelineChange: self._handle_goal_timeline_change,
            PerceivedDifficultyPattern: self._handle_perceived_difficulty,
        }

    # -- entry points ---------------------------------------------------------

    def apply(
        self,
        user_id: str,
        request: AdaptationRequest,
        expected_revision: int | None = None,
    ) -> PlanAdaptationResult:
        handler = self._handlers.get(type(request))
        if handler is None:
            raise ValidationError(f"Unsupported adaptation trigger: {type(request).__name__}")

        plan = self.plans.get_active_plan(user_id)
        if plan is None:
            raise ConflictError(
                f"User {user_id} has no active training plan",
                retry_guidance="Generate a plan before requesting adaptations.",
            )
        if expected_revision is not None and plan.revision != expected_revision:
            raise ConflictError(
                f"Plan {plan.id} is at revision {plan.revision}, expected {expected_revision}",
                retry_guidance="Reload the plan and retry the adaptation.",
            )
        self._check_rate_limit(plan)

        profile = self.profiles.get_complete_profile(user_id)
        if profile is None:
            raise NotFoundError(f"User profile not found for user {user_id}")

        ctx = _Context(
            user_id=user_id,
            plan=plan,
            profile=profile,
            today=self.clock(),
            assembler=WorkoutAssembler(ExerciseCatalog.from_repository(self.exercises)),
        )
        logger.info(
            "Applying %s adaptation to plan %s (revision %s) for user %s",
            request.kind.value,
            plan.id,
            plan.revision,
            user_id,
        )
        try:
            outcome = handler(ctx, request)
            result = self._record(ctx, request.kind, outcome)
        except StaleDataError as exc:
            logger.warning("Concurrent modification of plan %s detected", plan.id)
            raise ConflictError(
                f"Plan {plan.id} was modified concurrently",
                retry_guidance="Reload the plan and retry the adaptation.",
            ) from exc
        logger.info(
            "Adaptation %s on plan %s: success=%s affected=%d warnings=%d",
            request.kind.value,
            plan.id,
            result.success,
            result.workouts_affected,
            len(result.warnings),
        )
        return result

    def adapt_for_missed_workouts(
        self, user_id: str, workout_ids: Iterable[int], expected_revision: int | None = None
    ) -> PlanAdaptationResult:
        return self.apply(user_id, MissedWorkouts(tuple(workout_ids)), expected_revision)

    def adapt_for_intensity_change(
        self,
        user_id: str,
        direction: IntensityDirection,
        reason: str | None = None,
        expected_revision: int | None = None,
    ) -> PlanAdaptationResult:
        return self.apply(user_id, IntensityChange(direction, reason), expected_revision)

    def adapt_for_schedule_change(
        self,
        user_id: str,
        weekdays: Iterable[int],
        minimum_sessions_per_week: int | None = None,
        maximum_sessions_per_week: int | None = None,
        expected_revision: int | None = None,
    ) -> PlanAdaptationResult:
        request = ScheduleChange(frozenset(weekdays), minimum_sessions_per_week, maximum_sessions_per_week)
        return self.apply(user_id, request, expected_revision)

    def adapt_for_injury(
        self, user_id: str, injury_id: int, expected_revision: int | None = None
    ) -> PlanAdaptationResult:
        return self.apply(user_id, InjuryReported(injury_id), expected_revision)

    def adapt_for_goal_timeline_change(
        self, user_id: str, goal_id: int, new_target_date: date, expected_revision: int | None = None
    ) -> PlanAdaptationResult:
        return self.apply(user_id, GoalTimelineChange(goal_id, new_target_date), expected_revision)

    def adapt_for_perceived_difficulty(
        self, user_id: str, lookback: int | None = None, expected_revision: int | None = None
    ) -> PlanAdaptationResult:
        return self.apply(user_id, PerceivedDifficultyPattern(lookback), expected_revision)

    def list_adaptations(self, user_id: str) -> list[PlanAdaptation]:
        plan = self.plans.get_active_plan(user_id)
        if plan is None:
            raise ConflictError(f"User {user_id} has no active training plan")
        return self.adaptations.list_by_plan(plan.id)

    def revert_last_adaptation(self, user_id: str) -> int:
        """Delete the most recent audit record when it did not change the plan."""
        plan = self.plans.get_active_plan(user_id)
        if plan is None:
            raise ConflictError(f"User {user_id} has no active training plan")
        latest = self.adaptations.get_most_recent(plan.id)
        if latest is None:
            raise NotFoundError(f"Plan {plan.id} has no adaptations")
        if latest.success:
            raise ConflictError(
                f"Adaptation {latest.id} changed the plan and cannot be removed",
                retry_guidance="Apply a compensating adaptation instead.",
            )
        adaptation_id = latest.id
        self.adaptations.delete(latest)
        logger.info("Reverted no-op adaptation %s on plan %s", adaptation_id, plan.id)
        return adaptation_id

    def pending_missed_workouts(self, plan: TrainingPlan) -> list[int]:
        """Past NotStarted workouts that no earlier missed-workout adaptation handled."""
        today = self.clock()
        processed = set(self._consumed(plan, AdaptationTrigger.MISSED_WORKOUTS, "missed_workout_ids"))
        return [
            workout.id
            for workout in plan.all_workouts()
            if workout.scheduled_date < today
            and workout.completion_status == CompletionStatus.NOT_STARTED
            and not workout.is_placeholder
            and workout.id not in processed
        ]

    # -- bookkeeping ----------------------------------------------------------

    def _check_rate_limit(self, plan: TrainingPlan) -> None:
        days = self.settings.min_days_between_adaptations
        if days <= 0:
            return
        latest = self.adaptations.get_most_recent(plan.id)
        if latest is None or not latest.success:
            return
        elapsed = self.now() - latest.applied_at
        if elapsed < timedelta(days=days):
            raise ConflictError(
                f"Plan {plan.id} was adapted {elapsed.days} day(s) ago; adaptations are limited to one every {days} days",
                retry_guidance=f"Retry after {(latest.applied_at + timedelta(days=days)).date().isoformat()}.",
            )

    def _record(self, ctx: _Context, trigger: AdaptationTrigger, outcome: _Outcome) -> PlanAdaptationResult:
        plan = ctx.plan
        applied_at = self.now()
        record = PlanAdaptation(
            plan_id=plan.id,
            trigger=trigger,
            adaptation_type=outcome.adaptation_type,
            description=outcome.description,
            changes=outcome.changes,
            workouts_affected=outcome.workouts_affected,
            success=outcome.success,
            warnings=list(outcome.warnings),
            applied_at=applied_at,
        )
        if outcome.success:
            # Touch the plan row so the revision counter moves even when only children changed.
            plan.updated_at = applied_at
        self.adaptations.add(record)
        if outcome.success and plan.plan_metadata is not None:
            metadata = plan.plan_metadata
            metadata.modification_history = [
                *(metadata.modification_history or []),
                {
                    "adaptation_id": record.id,
                    "trigger": trigger.value,
                    "type": outcome.adaptation_type.value,
                    "applied_at": applied_at.isoformat(),
                    "description": outcome.description,
                    "workouts_affected": outcome.workouts_affected,
                    "changes": outcome.changes,
                },
            ]
        self.plans.update(plan)

        return PlanAdaptationResult(
            adaptation_id=record.id,
            plan_id=plan.id,
            trigger=trigger,
            adaptation_type=outcome.adaptation_type,
            description=outcome.description,
            workouts_affected=outcome.workouts_affected,
            applied_at=applied_at,
            success=outcome.success,
            warnings=list(outcome.warnings),
            changes=outcome.changes,
            plan_revision=plan.revision,
        )

    @staticmethod
    def _consumed(plan: TrainingPlan, trigger: AdaptationTrigger, key: str) -> list:
        """Values a previous successful run of ``trigger`` stored under ``changes[key]``."""
        metadata = plan.plan_metadata
        if metadata is None:
            return []
        values = []
        for entry in metadata.modification_history or []:
            if entry.get("trigger") != trigger.value:
                continue
            value = (entry.get("changes") or {}).get(key)
            if isinstance(value, list):
                values.extend(value)
            elif value is not None:
                values.append(value)
        return values

    @staticmethod
    def _is_adjustable(workout: Workout, today: date) -> bool:
        return workout.scheduled_date >= today and workout.completion_status == CompletionStatus.NOT_STARTED

    @classmethod
    def _is_shiftable(cls, workout: Workout, today: date) -> bool:
        """Adjustable and a real session; rest placeholders stay at low intensity."""
        return cls._is_adjustable(workout, today) and not workout.is_placeholder

    def _goal_type(self, ctx: _Context) -> GoalType | None:
        goal = ctx.plan.primary_goal or primary_goal_of(ctx.profile)
        return goal.goal_type if goal else None

    def _plan_weekdays(self, ctx: _Context) -> list[int]:
        schedule = ctx.profile.schedule
        selected = schedule.selected_weekdays() if schedule else []
        days = min(ctx.plan.training_days_per_week, len(selected))
        return self.planner.select_training_days(selected, days)

    def _assembly_context(self, ctx: _Context, days_per_week: int) -> AssemblyContext:
        return AssemblyContext.from_profile(
            ctx.profile,
            self._goal_type(ctx),
            days_per_week,
            active_injury_constraints(ctx.profile),
        )

    def _shift_workouts(
        self, ctx: _Context, workouts: Sequence[Workout], step: int
    ) -> tuple[list[int], int]:
        """Shift workouts one level; returns (changed ids, count left unchanged by clamping)."""
        changed: list[int] = []
        clamped = 0
        for workout in workouts:
            target = workout.intensity_level.shifted(step)
            if ctx.assembler.apply_intensity(workout, target, cycle_week_for(workout.week.week_number)):
                changed.append(workout.id)
            else:
                clamped += 1
        self._scan_intensity_jumps(ctx.plan)
        return changed, clamped

    @staticmethod
    def _scan_intensity_jumps(plan: TrainingPlan) -> None:
        workouts = plan.all_workouts()
        for previous, current in zip(workouts, workouts[1:]):
            if abs(current.intensity_level.rank - previous.intensity_level.rank) > 2:
                logger.warning(
                    "Plan %s jumps from %s on %s to %s on %s",
                    plan.id,
                    previous.intensity_level.value,
                    previous.scheduled_date,
                    current.intensity_level.value,
                    current.scheduled_date,
                )

    # -- handlers -------------------------------------------------------------

    def _handle_missed_workouts(self, ctx: _Context, request: MissedWorkouts) -> _Outcome:
        if not request.workout_ids:
            raise ValidationError("At least one missed workout id is required")
        plan, today = ctx.plan, ctx.today
        ordered = plan.all_workouts()
        by_id = {workout.id: workout for workout in ordered}
        unknown = [workout_id for workout_id in request.workout_ids if workout_id not in by_id]
        if unknown:
            raise NotFoundError(f"Workouts {unknown} are not part of plan {plan.id}")

        processed = set(self._consumed(plan, AdaptationTrigger.MISSED_WORKOUTS, "missed_workout_ids"))
        qualifying = [
            by_id[workout_id]
            for workout_id in dict.fromkeys(request.workout_ids)
            if workout_id not in processed
            and by_id[workout_id].scheduled_date < today
            and by_id[workout_id].completion_status in (CompletionStatus.NOT_STARTED, CompletionStatus.SKIPPED)
        ]
        if not qualifying:
            return _Outcome.noop(
                AdaptationType.RECOVERY,
                "none of the referenced workouts is an unprocessed past miss",
                changes={"requested_workout_ids": list(request.workout_ids)},
            )

        affected: set[int] = set()
        marked = []
        for workout in qualifying:
            if workout.completion_status == CompletionStatus.NOT_STARTED:
                workout.completion_status = CompletionStatus.SKIPPED
                marked.append(workout.id)
                affected.add(workout.id)

        missed_ids = {workout.id for workout in qualifying}
        run = longest_consecutive_run(ordered, missed_ids)
        extend = run >= self.settings.missed_workout_extension_threshold
        changes: dict[str, Any] = {
            "missed_workout_ids": sorted(missed_ids),
            "marked_skipped": marked,
            "consecutive_missed": run,
            "extended": extend,
        }
        warnings: list[str] = []

        inserted: TrainingWeek | None = None
        if extend:
            inserted, shifted_ids, week_warnings = self._insert_reentry_week(ctx)
            affected.update(shifted_ids)
            warnings.extend(week_warnings)
            changes["inserted_week_number"] = inserted.week_number
            changes["new_end_date"] = plan.end_date.isoformat()

        ramped = self._apply_reentry_ramp(ctx, 2 if extend else 1, inserted, affected)
        changes["ramped_week_numbers"] = ramped

        if len(qualifying) >= MISSED_WORKOUT_WARNING_THRESHOLD:
            warnings.append(
                f"{len(qualifying)} workouts missed; consider regenerating the plan from your current fitness"
            )

        created = len(inserted.workouts) if inserted is not None else 0
        description = (
            f"Re-entry ramp after {len(qualifying)} missed workout(s): "
            f"intensity lowered for {len(ramped)} week(s)"
        )
        if extend:
            description += f"; plan extended by one week to {plan.end_date.isoformat()}"
        return _Outcome(
            adaptation_type=AdaptationType.RECOVERY,
            description=description,
            workouts_affected=len(affected) + created,
            warnings=warnings,
            changes=changes,
        )

    def _insert_reentry_week(self, ctx: _Context) -> tuple[TrainingWeek, list[int], list[str]]:
        """Insert a lighter week before the next future week and push later weeks back by 7 days."""
        plan, today = ctx.plan, ctx.today
        weeks = plan.ordered_weeks()
        displaced = next((week for week in weeks if week.start_date > today), None)
        if displaced is not None:
            number = displaced.week_number
            start = displaced.start_date
            phase = displaced.phase
            intensity = displaced.intensity_level.shifted(-1)
            volume = displaced.weekly_volume_minutes
            later = [week for week in weeks if week.week_number >= number]
        else:
            last = weeks[-1]
            number = last.week_number + 1
            start = last.end_date + timedelta(days=1)
            phase = TrainingPhase.RECOVERY
            intensity = IntensityLevel.LOW
            volume = last.weekly_volume_minutes
            later = []

        shifted_ids: list[int] = []
        if later:
            # Park numbers out of range first so (plan, week_number) stays unique on every UPDATE.
            for week in later:
                week.week_number = -week.week_number
            self.plans.update(plan)
            for week in later:
                week.week_number = -week.week_number + 1
                week.shift(7)
                for workout in week.workouts:
                    workout.reschedule(workout.scheduled_date + timedelta(days=7))
                    shifted_ids.append(workout.id)

        weekdays = self._plan_weekdays(ctx)
        end = start + timedelta(days=6)
        skeleton = WeekSkeleton(
            week_number=number,
            phase=phase,
            intensity_level=intensity,
            weekly_volume_minutes=int(round(volume * REENTRY_VOLUME_FACTOR)),
            start_date=start,
            end_date=end,
            training_dates=self.planner.training_dates(start, end, weekdays),
        )
        assembled = ctx.assembler.assemble_week(skeleton, self._assembly_context(ctx, len(weekdays)))
        for workout in assembled.workouts:
            workout.description = f"{REENTRY_PREFIX} {workout.description}"
        week = TrainingWeek(
            week_number=skeleton.week_number,
            phase=skeleton.phase,
            weekly_volume_minutes=skeleton.weekly_volume_minutes,
            intensity_level=skeleton.intensity_level,
            start_date=skeleton.start_date,
            end_date=skeleton.end_date,
            notes="Re-entry week after missed workouts",
            workouts=assembled.workouts,
        )
        plan.weeks.append(week)
        plan.end_date += timedelta(days=7)
        plan.total_weeks += 1
        self.plans.update(plan)
        if assembled.warnings and plan.plan_metadata is not None:
            plan.plan_metadata.warnings = [*(plan.plan_metadata.warnings or []), *assembled.warnings]
        logger.info("Inserted re-entry week %d into plan %s", number, plan.id)
        return week, shifted_ids, assembled.warnings

    def _apply_reentry_ramp(
        self,
        ctx: _Context,
        week_count: int,
        inserted: TrainingWeek | None,
        affected: set[int],
    ) -> list[int]:
        today = ctx.today
        upcoming = [week for week in ctx.plan.ordered_weeks() if week.end_date >= today][:week_count]
        ramped = []
        for week in upcoming:
            ramped.append(week.week_number)
            if week is inserted:
                continue
            week.intensity_level = week.intensity_level.shifted(-1)
            for workout in week.workouts:
                if not self._is_shiftable(workout, today):
                    continue
                lowered = workout.intensity_level.shifted(-1)
                if ctx.assembler.apply_intensity(workout, lowered, cycle_week_for(week.week_number)):
                    if not (workout.description or "").startswith(REENTRY_PREFIX):
                        workout.description = f"{REENTRY_PREFIX} {workout.description or workout.name}"
                    affected.add(workout.id)
        return ramped

    def _handle_intensity_change(self, ctx: _Context, request: IntensityChange) -> _Outcome:
        today = ctx.today
        eligible = [workout for workout in ctx.plan.all_workouts() if self._is_shiftable(workout, today)]
        if not eligible:
            return _Outcome.noop(AdaptationType.INTENSITY, "no upcoming workouts to adjust")

        step = request.direction.step
        changed, clamped = self._shift_workouts(ctx, eligible, step)
        for week in ctx.plan.weeks:
            if week.start_date > today:
                week.intensity_level = week.intensity_level.shifted(step)

        bound = "maximum" if step > 0 else "minimum"
        warnings = []
        if clamped:
            warnings.append(f"{clamped} workout(s) already at {bound} intensity were left unchanged")
        changes = {
            "direction": request.direction.value,
            "changed_workout_ids": changed,
            "clamped": clamped,
        }
        if request.reason:
            changes["reason"] = request.reason
        return _Outcome(
            adaptation_type=AdaptationType.INTENSITY,
            description=f"Shifted {len(changed)} upcoming workout(s) {request.direction.value}",
            workouts_affected=len(changed),
            warnings=warnings,
            changes=changes,
        )

    def _handle_schedule_change(self, ctx: _Context, request: ScheduleChange) -> _Outcome:
        plan, profile, today = ctx.plan, ctx.profile, ctx.today
        weekdays = sorted(set(request.weekdays))
        if any(day < 0 or day > 6 for day in weekdays):
            raise ValidationError("Weekdays must be between 0 (Monday) and 6 (Sunday)")
        if not weekdays:
            raise PlanningError("No training days selected in schedule availability")

        schedule = profile.schedule
        if schedule is None:
            schedule = ScheduleAvailability()
            profile.schedule = schedule
        minimum = request.minimum_sessions_per_week or schedule.minimum_sessions_per_week or 1
        maximum = request.maximum_sessions_per_week or schedule.maximum_sessions_per_week or 7
        if not 1 <= minimum <= maximum <= 7:
            raise ValidationError("Session bounds must satisfy 1 <= minimum <= maximum <= 7")
        if len(weekdays) < minimum:
            raise PlanningError(
                f"Only {len(weekdays)} days selected but at least {minimum} sessions per week are required"
            )
        days_per_week = min(maximum, len(weekdays))
        selection = self.planner.select_training_days(weekdays, days_per_week)

        unchanged = (
            sorted(schedule.selected_weekdays()) == weekdays
            and schedule.minimum_sessions_per_week == minimum
            and schedule.maximum_sessions_per_week == maximum
            and plan.training_days_per_week == days_per_week
        )
        if unchanged:
            return _Outcome.noop(AdaptationType.SCHEDULE, "schedule unchanged")

        schedule.set_weekdays(weekdays)
        schedule.minimum_sessions_per_week = minimum
        schedule.maximum_sessions_per_week = maximum
        self.profiles.update(profile)
        previous_days = plan.training_days_per_week
        plan.training_days_per_week = days_per_week

        context = self._assembly_context(ctx, days_per_week)
        removed_ids: list[int] = []
        moved_ids: list[int] = []
        created: list[Workout] = []
        warnings: list[str] = []
        for week in plan.ordered_weeks():
            if week.end_date < today:
                continue
            result = self._reschedule_week(ctx, week, selection, weekdays, days_per_week, context)
            removed_ids.extend(result["removed"])
            moved_ids.extend(result["moved"])
            created.extend(result["created"])
            warnings.extend(result["warnings"])
        self.plans.update(plan)

        if days_per_week < previous_days:
            warnings.append(
                f"Training days reduced from {previous_days} to {days_per_week} per week; "
                "remaining weeks carry fewer sessions"
            )
        day_names = ", ".join(WEEKDAY_NAMES[day] for day in selection)
        return _Outcome(
            adaptation_type=AdaptationType.SCHEDULE,
            description=f"Rescheduled remaining weeks onto {day_names} ({days_per_week} days per week)",
            workouts_affected=len(removed_ids) + len(moved_ids) + len(created),
            warnings=warnings,
            changes={
                "weekdays": weekdays,
                "training_weekdays": list(selection),
                "training_days_per_week": days_per_week,
                "previous_training_days_per_week": previous_days,
                "removed_workout_ids": removed_ids,
                "moved_workout_ids": moved_ids,
                "created_workout_ids": [workout.id for workout in created],
            },
        )

    @staticmethod
    def _pin_weekday(selection: Sequence[int], pinned: int, weekdays: Sequence[int]) -> list[int]:
        """Swap ``pinned`` into the selection in place of its nearest selected day.

        A weekday the user no longer selected is never pinned; the selection
        keeps its size either way.
        """
        if pinned in selection or pinned not in weekdays:
            return list(selection)
        nearest = min(selection, key=lambda day: (abs(day - pinned), day))
        return sorted((set(selection) - {nearest}) | {pinned})

    def _reschedule_week(
        self,
        ctx: _Context,
        week: TrainingWeek,
        selection: Sequence[int],
        weekdays: Sequence[int],
        days_per_week: int,
        context: AssemblyContext,
    ) -> dict[str, list]:
        today = ctx.today
        adjustable = [workout for workout in week.workouts if self._is_adjustable(workout, today)]
        fixed = [workout for workout in week.workouts if workout not in adjustable]
        fixed_dates = {workout.scheduled_date for workout in fixed if workout.scheduled_date >= today}
        key = next((workout for workout in adjustable if workout.is_key_workout), None)

        week_days = list(selection)
        if key is not None and key.scheduled_date not in fixed_dates:
            week_days = self._pin_weekday(week_days, key.scheduled_date.weekday(), weekdays)
        skeleton = WeekSkeleton(
            week_number=week.week_number,
            phase=week.phase,
            intensity_level=week.intensity_level,
            weekly_volume_minutes=week.weekly_volume_minutes,
            start_date=week.start_date,
            end_date=week.end_date,
            training_dates=self.planner.training_dates(week.start_date, week.end_date, week_days),
        )
        targets = [day for day in skeleton.training_dates if day >= today]

        kept: dict[date, Workout] = {}
        moved: list[int] = []
        if key is not None:
            if key.scheduled_date in targets and key.scheduled_date not in fixed_dates:
                kept[key.scheduled_date] = key
            else:
                open_dates = [day for day in targets if day not in fixed_dates]
                if open_dates:
                    nearest = min(open_dates, key=lambda day: (abs((day - key.scheduled_date).days), day))
                    key.reschedule(nearest)
                    kept[nearest] = key
                    moved.append(key.id)

        for workout in sorted(adjustable, key=lambda item: (item.scheduled_date, item.id or 0)):
            if workout is key:
                continue
            day = workout.scheduled_date
            if day in targets and day not in kept and day not in fixed_dates:
                kept[day] = workout

        kept_workouts = list(kept.values())
        removed = [workout for workout in adjustable if not any(workout is item for item in kept_workouts)]
        removed_ids = [workout.id for workout in removed]
        for workout in removed:
            self.plans.delete_workout(workout)

        created: list[Workout] = []
        warnings: list[str] = []
        per_session = max(PLACEHOLDER_MINUTES, int(round(week.weekly_volume_minutes / days_per_week)))
        for slot, day in enumerate(skeleton.training_dates):
            if day < today or day in kept or day in fixed_dates:
                continue
            workout, warning = ctx.assembler.build_workout(skeleton, day, slot, context, duration_minutes=per_session)
            week.workouts.append(workout)
            created.append(workout)
            if warning:
                warnings.append(warning)

        key_is_fixed = any(workout.is_key_workout for workout in fixed)
        key_survived = key is not None and any(key is item for item in kept_workouts)
        if not key_is_fixed and not key_survived:
            ctx.assembler.flag_key_workout(
                [workout for workout in week.workouts if self._is_shiftable(workout, today)]
            )
        # Flush so new workouts get ids for the audit payload.
        self.plans.update(ctx.plan)
        return {"removed": removed_ids, "moved": moved, "created": created, "warnings": warnings}

    def _handle_injury(self, ctx: _Context, request: InjuryReported) -> _Outcome:
        injury = self.profiles.get_injury(request.injury_id)
        if injury is None or injury.profile_id != ctx.profile.id:
            raise NotFoundError(f"Injury {request.injury_id} not found")
        if injury.status != InjuryStatus.ACTIVE:
            raise ValidationError(f"Injury {injury.id} is {injury.status.value}, not active")

        constraints = active_injury_constraints(ctx.profile)
        catalog = ctx.catalog
        today = ctx.today
        substitutions: list[dict[str, Any]] = []
        affected: list[int] = []
        emptied: list[int] = []
        for workout in ctx.plan.all_workouts():
            if not self._is_adjustable(workout, today):
                continue
            changed = False
            for item in list(workout.exercises):
                entry = catalog.get(item.exercise_id)
                if entry is None or not catalog.is_contraindicated(entry, constraints):
                    continue
                in_use = {other.exercise_id for other in workout.exercises}
                substitute = catalog.substitute_for(entry.id, constraints)
                method = "graph"
                if substitute is None or substitute.id in in_use:
                    substitute = catalog.safe_filler(entry.id, constraints, exclude_ids=in_use)
                    method = "muscle_group_filler"
                if substitute is None:
                    self.plans.delete_workout_exercise(item)
                    method = "removed"
                else:
                    item.exercise = self.exercises.get_by_id(substitute.id)
                    item.exercise_id = substitute.id
                    item.notes = f"Substituted for {entry.name} ({injury.body_part} injury)"
                    ctx.assembler.prescribe_into(
                        item, substitute, workout.intensity_level, cycle_week_for(workout.week.week_number)
                    )
                substitutions.append(
                    {
                        "workout_id": workout.id,
                        "original_exercise_id": entry.id,
                        "substitute_exercise_id": substitute.id if substitute else None,
                        "method": method,
                    }
                )
                changed = True
            if changed:
                affected.append(workout.id)
                if not workout.exercises:
                    self._convert_to_placeholder(workout, f"All exercises conflict with the {injury.body_part} injury.")
                    emptied.append(workout.id)

        if not affected:
            return _Outcome.noop(
                AdaptationType.INJURY,
                f"no upcoming workouts contain exercises contraindicated for {injury.body_part}",
                changes={"injury_id": injury.id},
            )
        self.plans.update(ctx.plan)
        warnings = []
        if emptied:
            warnings.append(f"{len(emptied)} workout(s) had no safe exercises left and became rest days")
        return _Outcome(
            adaptation_type=AdaptationType.INJURY,
            description=(
                f"Replaced {len(substitutions)} contraindicated exercise(s) in {len(affected)} "
                f"workout(s) for {injury.body_part} injury"
            ),
            workouts_affected=len(affected),
            warnings=warnings,
            changes={
                "injury_id": injury.id,
                "substitutions": substitutions,
                "placeholder_workout_ids": emptied,
            },
        )

    @staticmethod
    def _convert_to_placeholder(workout: Workout, reason: str) -> None:
        workout.session_type = SessionType.RECOVERY
        workout.name = "Rest / Mobility"
        workout.description = f"Light mobility or full rest. {reason}"
        workout.intensity_level = IntensityLevel.LOW
        workout.estimated_duration_minutes = PLACEHOLDER_MINUTES
        workout.is_placeholder = True

    def _handle_goal_timeline_change(self, ctx: _Context, request: GoalTimelineChange) -> _Outcome:
        plan, profile, today = ctx.plan, ctx.profile, ctx.today
        goal = self.profiles.get_goal(request.goal_id)
        if goal is None or goal.profile_id != profile.id:
            raise NotFoundError(f"Goal {request.goal_id} not found")
        new_date = request.new_target_date
        if new_date <= today:
            raise ValidationError("Goal target date must be in the future")
        horizon = math.ceil((new_date - today).days / 7)
        if horizon < self.settings.min_plan_weeks:
            raise ValidationError(
                f"New target date leaves {horizon} week(s); at least {self.settings.min_plan_weeks} are required"
            )

        previous_date = goal.target_date
        goal.target_date = new_date
        self.profiles.update(profile)
        changes: dict[str, Any] = {
            "goal_id": goal.id,
            "previous_target_date": previous_date.isoformat() if previous_date else None,
            "new_target_date": new_date.isoformat(),
        }
        if plan.primary_goal_id != goal.id:
            if previous_date == new_date:
                return _Outcome.noop(AdaptationType.TIMELINE, "goal target date unchanged", changes=changes)
            # The goal date is saved either way; only the primary goal drives the plan horizon.
            changes["plan_horizon_changed"] = False
            return _Outcome(
                adaptation_type=AdaptationType.TIMELINE,
                description=(
                    f"Updated target date of goal {goal.id} to {new_date.isoformat()}; "
                    "plan horizon unchanged because it follows the primary goal"
                ),
                workouts_affected=0,
                changes=changes,
            )

        weeks = plan.ordered_weeks()
        kept = [week for week in weeks if week.start_date <= today]
        future = [week for week in weeks if week.start_date > today]
        next_start = kept[-1].end_date + timedelta(days=1) if kept else plan.start_date
        future_count = max(1, math.ceil((new_date - next_start).days / 7))
        warnings: list[str] = []
        if len(kept) + future_count > self.settings.max_plan_weeks:
            future_count = max(1, self.settings.max_plan_weeks - len(kept))
            warnings.append(f"Plan capped at {self.settings.max_plan_weeks} weeks")
        new_total = len(kept) + future_count
        if new_total == plan.total_weeks and previous_date == new_date:
            return _Outcome.noop(AdaptationType.TIMELINE, "timeline unchanged", changes=changes)

        removed = sum(len(week.workouts) for week in future)
        for week in future:
            self.plans.delete_week(week)

        weekdays = self._plan_weekdays(ctx)
        goal_type = self._goal_type(ctx)
        planner_profile = build_planner_profile(profile, goal_type, len(weekdays), weekdays=weekdays)
        skeletons = self.planner.plan_weeks(
            planner_profile,
            next_start,
            new_total,
            first_week_number=len(kept) + 1,
            week_count=future_count,
        )
        context = self._assembly_context(ctx, len(weekdays))
        created = 0
        for skeleton in skeletons:
            assembled = ctx.assembler.assemble_week(skeleton, context)
            warnings.extend(assembled.warnings)
            created += len(assembled.workouts)
            plan.weeks.append(
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
        previous_total = plan.total_weeks
        plan.total_weeks = new_total
        plan.end_date = next_start + timedelta(days=7 * future_count - 1)
        self.plans.update(plan)

        if new_total < previous_total:
            warnings.append(
                f"Timeline compressed from {previous_total} to {new_total} weeks; remaining phases are shorter"
            )
        changes.update(
            {
                "previous_total_weeks": previous_total,
                "total_weeks": new_total,
                "rebuilt_from_week": len(kept) + 1,
                "removed_workouts": removed,
                "created_workouts": created,
            }
        )
        return _Outcome(
            adaptation_type=AdaptationType.TIMELINE,
            description=(
                f"Goal date moved to {new_date.isoformat()}; plan now runs {new_total} weeks "
                f"(rebuilt from week {len(kept) + 1})"
            ),
            workouts_affected=removed + created,
            warnings=warnings,
            changes=changes,
        )

    def _handle_perceived_difficulty(self, ctx: _Context, request: PerceivedDifficultyPattern) -> _Outcome:
        lookback = request.lookback or self.settings.perceived_difficulty_lookback
        consumed = self._consumed(ctx.plan, AdaptationTrigger.PERCEIVED_DIFFICULTY_PATTERN, "newest_history_id")
        last_consumed = max(consumed, default=0)
        recent = self.history.list_recent(ctx.user_id, lookback)
        notes = [record for record in recent if record.notes and record.id > last_consumed]

        too_easy = [record.id for record in notes if TOO_EASY_PATTERN.search(record.notes)]
        too_hard = [record.id for record in notes if TOO_HARD_PATTERN.search(record.notes)]
        needed = self.settings.perceived_difficulty_min_matches
        changes: dict[str, Any] = {"too_easy_notes": too_easy, "too_hard_notes": too_hard}
        if len(too_easy) >= needed and len(too_hard) >= needed:
            return _Outcome.noop(AdaptationType.INTENSITY, "feedback is mixed between too easy and too hard", changes)
        if len(too_easy) >= needed:
            direction = IntensityDirection.HARDER
        elif len(too_hard) >= needed:
            direction = IntensityDirection.EASIER
        else:
            return _Outcome.noop(
                AdaptationType.INTENSITY,
                f"fewer than {needed} recent notes share a difficulty pattern",
                changes,
            )

        horizon_days = self.settings.perceived_difficulty_horizon_days
        horizon_end = ctx.today + timedelta(days=horizon_days)
        eligible = [
            workout
            for workout in ctx.plan.all_workouts()
            if self._is_shiftable(workout, ctx.today) and workout.scheduled_date < horizon_end
        ]
        if not eligible:
            return _Outcome.noop(
                AdaptationType.INTENSITY, f"no workouts scheduled in the next {horizon_days} days", changes
            )

        changed, clamped = self._shift_workouts(ctx, eligible, direction.step)
        warnings = []
        if clamped:
            bound = "maximum" if direction is IntensityDirection.HARDER else "minimum"
            warnings.append(f"{clamped} workout(s) already at {bound} intensity were left unchanged")
        matched = too_easy if direction is IntensityDirection.HARDER else too_hard
        changes.update(
            {
                "direction": direction.value,
                "changed_workout_ids": changed,
                "horizon_days": horizon_days,
                "newest_history_id": max(record.id for record in notes),
            }
        )
        return _Outcome(
            adaptation_type=AdaptationType.INTENSITY,
            description=(
                f"{len(matched)} recent notes report sessions as too "
                f"{'easy' if direction is IntensityDirection.HARDER else 'hard'}; "
                f"shifted {len(changed)} workout(s) in the next {horizon_days} days {direction.value}"
            ),
            workouts_affected=len(changed),
            warnings=warnings,
            changes=changes,
        )
