"""Tests for the asynchronous scheduler job."""
from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict

import pytest

from hybridcoach.models.database_models import TrainingPlan
from hybridcoach.repositories import SqlPlanAdaptationRepository
from scripts import run_scheduler

from tests.conftest import USER_ID


@pytest.mark.asyncio
async def test_run_daily_job_invokes_sweep(monkeypatch):
    recorded: Dict[str, Any] = {}

    def fake_sweep() -> Dict[int, Dict[str, Any]]:
        recorded["sweep_called"] = True
        return {1: {"status": "adapted", "workouts_affected": 4, "missed": 3}}

    monkeypatch.setattr(run_scheduler, "sweep_missed_workouts", fake_sweep)

    await run_scheduler.run_daily_job()

    assert recorded["sweep_called"] is True


@pytest.mark.asyncio
async def test_run_daily_job_survives_sweep_failure(monkeypatch):
    def fake_sweep_failure() -> Dict[int, Dict[str, Any]]:
        raise RuntimeError("boom")

    monkeypatch.setattr(run_scheduler, "sweep_missed_workouts", fake_sweep_failure)

    # Failure is logged, never raised into the scheduler loop
    await run_scheduler.run_daily_job()


def test_sweep_without_active_plans(session):
    assert run_scheduler.sweep_missed_workouts(session_factory=lambda: session) == {}


def test_sweep_adapts_plan_with_missed_workouts(session, clock, make_profile, generator):
    # The sweep runs against the real calendar, so the plan is anchored two weeks back from it.
    make_profile(target_date=date.today() + timedelta(weeks=6))
    clock.today = date.today() - timedelta(days=14)
    plan = generator.generate_plan(USER_ID)
    plan_id = plan.id
    session.commit()

    summary = run_scheduler.sweep_missed_workouts(session_factory=lambda: session)

    assert summary[plan_id]["status"] == "adapted"
    assert summary[plan_id]["missed"] == 6
    refreshed = session.get(TrainingPlan, plan_id)
    assert refreshed.total_weeks == 9
    assert len(SqlPlanAdaptationRepository(session).list_by_plan(plan_id)) == 1

    again = run_scheduler.sweep_missed_workouts(session_factory=lambda: session)
    assert again[plan_id] == {"status": "clean", "workouts_affected": 0}


def test_dry_run_reports_without_adapting(session, clock, make_profile, generator):
    make_profile(target_date=date.today() + timedelta(weeks=6))
    clock.today = date.today() - timedelta(days=14)
    plan_id = generator.generate_plan(USER_ID).id
    session.commit()

    summary = run_scheduler.sweep_missed_workouts(session_factory=lambda: session, dry_run=True)

    assert summary[plan_id] == {"status": "pending", "workouts_affected": 0, "missed": 6}
    assert SqlPlanAdaptationRepository(session).list_by_plan(plan_id) == []
    assert session.get(TrainingPlan, plan_id).total_weeks == 8
