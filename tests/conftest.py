"""Pytest configuration for global fixtures and logging setup."""
from __future__ import annotations

import os
import tempfile
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterator, Sequence

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_DIR"] = os.environ.get("LOG_DIR") or tempfile.mkdtemp(prefix="hybridcoach-logs-")
os.environ["MIN_DAYS_BETWEEN_ADAPTATIONS"] = "0"

from hybridcoach.logging_config import configure_logging

configure_logging()

from hybridcoach.database import get_db, init_db
from hybridcoach.main import app
from hybridcoach.models.database_models import (
    Exercise,
    InjuryLimitation,
    ScheduleAvailability,
    TrainingGoal,
    UserProfile,
)
from hybridcoach.models.enums import DifficultyLevel, GoalStatus, GoalType, InjuryStatus, InjuryType
from hybridcoach.repositories import (
    SqlCompletionHistoryRepository,
    SqlExerciseRepository,
    SqlPlanAdaptationRepository,
    SqlTrainingPlanRepository,
    SqlUserProfileRepository,
    SqlUserStreakRepository,
)
from hybridcoach.services.adaptation_engine import AdaptationEngine
from hybridcoach.services.catalog_loader import load_catalog
from hybridcoach.services.exercise_catalog import ExerciseCatalog
from hybridcoach.services.injury_management import InjuryManagementService
from hybridcoach.services.plan_generation import PlanGenerationService
from hybridcoach.services.progress_tracking import ProgressTrackingService

# A Monday, so generated weeks line up with ISO weeks.
TODAY = date(2026, 3, 2)
USER_ID = "athlete-1"


class Clock:
    """Settable clock shared by every service built in a test."""

    def __init__(self, today: date = TODAY):
        self.today = today

    def date(self) -> date:
        return self.today

    def now(self) -> datetime:
        return datetime.combine(self.today, time(12, 0))

    def advance(self, days: int) -> None:
        self.today += timedelta(days=days)


@pytest.fixture
def db_engine() -> Iterator[Engine]:
    """In-memory SQLite engine shared across threads for one test."""

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(db_engine: Engine) -> Iterator[Session]:
    """Session with the bundled exercise catalog loaded."""

    factory = sessionmaker(bind=db_engine, autoflush=False, autocommit=False, future=True)
    db = factory()
    load_catalog(db)
    db.commit()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def catalog(session: Session) -> ExerciseCatalog:
    return ExerciseCatalog.from_repository(SqlExerciseRepository(session))


@pytest.fixture
def exercise_named(session: Session) -> Callable[[str], Exercise]:
    def _lookup(name: str) -> Exercise:
        return session.query(Exercise).filter(Exercise.name == name).one()

    return _lookup


@pytest.fixture
def make_profile(session: Session) -> Callable[..., UserProfile]:
    """Factory persisting a profile with a schedule, one goal and optional injuries."""

    def _make(
        user_id: str = USER_ID,
        weekdays: Sequence[int] = (0, 2, 4),
        minimum: int = 3,
        maximum: int = 5,
        goal_type: GoalType | None = GoalType.HYROX_RACE,
        target_date: date | None = TODAY + timedelta(weeks=8),
        level: DifficultyLevel = DifficultyLevel.INTERMEDIATE,
        injuries: Sequence[tuple[str, str]] = (),
    ) -> UserProfile:
        schedule = ScheduleAvailability(minimum_sessions_per_week=minimum, maximum_sessions_per_week=maximum)
        schedule.set_weekdays(weekdays)
        goals = []
        if goal_type is not None:
            goals.append(
                TrainingGoal(goal_type=goal_type, target_date=target_date, priority=1, status=GoalStatus.ACTIVE)
            )
        profile = UserProfile(
            user_id=user_id,
            hyrox_level=level,
            running_level=level,
            strength_level=level,
            schedule=schedule,
            goals=goals,
            injuries=[
                InjuryLimitation(
                    body_part=body_part,
                    injury_type=InjuryType.CHRONIC,
                    reported_date=TODAY,
                    status=InjuryStatus.ACTIVE,
                    movement_restrictions=restrictions,
                )
                for body_part, restrictions in injuries
            ],
        )
        SqlUserProfileRepository(session).add(profile)
        return profile

    return _make


@pytest.fixture
def generator(session: Session, clock: Clock) -> PlanGenerationService:
    return PlanGenerationService(
        profiles=SqlUserProfileRepository(session),
        exercises=SqlExerciseRepository(session),
        plans=SqlTrainingPlanRepository(session),
        clock=clock.date,
    )


@pytest.fixture
def adaptation(session: Session, clock: Clock) -> AdaptationEngine:
    return AdaptationEngine(
        plans=SqlTrainingPlanRepository(session),
        adaptations=SqlPlanAdaptationRepository(session),
        profiles=SqlUserProfileRepository(session),
        exercises=SqlExerciseRepository(session),
        history=SqlCompletionHistoryRepository(session),
        clock=clock.date,
        now=clock.now,
    )


@pytest.fixture
def progress(session: Session, clock: Clock) -> ProgressTrackingService:
    return ProgressTrackingService(
        history=SqlCompletionHistoryRepository(session),
        streaks=SqlUserStreakRepository(session),
        plans=SqlTrainingPlanRepository(session),
        profiles=SqlUserProfileRepository(session),
        clock=clock.now,
    )


@pytest.fixture
def injuries(session: Session, adaptation: AdaptationEngine, clock: Clock) -> InjuryManagementService:
    return InjuryManagementService(
        profiles=SqlUserProfileRepository(session),
        exercises=SqlExerciseRepository(session),
        engine=adaptation,
        clock=clock.date,
    )


@pytest.fixture
def test_client(db_engine: Engine) -> Iterator[TestClient]:
    """FastAPI test client bound to a fresh, seeded in-memory database."""

    factory = sessionmaker(bind=db_engine, autoflush=False, autocommit=False, future=True)
    seed = factory()
    try:
        load_catalog(seed)
        seed.commit()
    finally:
        seed.close()

    def override_get_db():
        db = factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def profile_payload(weekdays=(0, 2, 4), minimum=3, maximum=5, weeks_to_goal=8) -> dict:
    """Request body for ``POST /api/profile``, dated from the real current day."""

    target = date.today() + timedelta(weeks=weeks_to_goal)
    return {
        "display_name": "Test Athlete",
        "hyrox_level": "intermediate",
        "running_level": "intermediate",
        "strength_level": "intermediate",
        "schedule": {
            "weekdays": list(weekdays),
            "minimum_sessions_per_week": minimum,
            "maximum_sessions_per_week": maximum,
        },
        "background": {"has_structured_training": True, "training_years": 3},
        "goals": [{"goal_type": "hyrox_race", "target_date": target.isoformat(), "priority": 1}],
    }
