"""Standalone scheduler process running the daily missed-workout sweep."""
from __future__ import annotations

import argparse
import asyncio
import logging
from collections import Counter
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import Any, Dict

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from filelock import FileLock

from hybridcoach.config import get_settings
from hybridcoach.database import SessionLocal, run_migrations
from hybridcoach.dependencies import adaptation_engine
from hybridcoach.exceptions import CoachError
from hybridcoach.logging_config import configure_logging
from hybridcoach.repositories import SqlTrainingPlanRepository
from hybridcoach.services.adaptation_engine import MissedWorkouts


logger = logging.getLogger("scheduler")

# A sweep missed while the host was down still runs once within this window.
MISFIRE_GRACE_SECONDS = 6 * 60 * 60


def acquire_lock(lock_path: Path) -> FileLock:
    """Take the single-instance lock without waiting; raises ``TimeoutError`` when held."""
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    lock = FileLock(str(lock_path))
    lock.acquire(timeout=0)
    return lock


def sweep_missed_workouts(session_factory=SessionLocal, dry_run: bool = False) -> Dict[int, Dict[str, Any]]:
    """
    Adapt every active plan for workouts that slipped by unrecorded.

    Each plan is its own unit of work: a failure rolls back that plan only.

    Args:
        session_factory: Callable returning a new session
        dry_run: Report pending misses without adapting any plan

    Returns:
        dict: mapping plan id -> summary payload with status and workouts affected
    """
    db = session_factory()
    summary: Dict[int, Dict[str, Any]] = {}

    try:
        targets = [(plan.id, plan.user_id) for plan in SqlTrainingPlanRepository(db).list_active_plans()]
        logger.info("Sweeping %d active plans for missed workouts", len(targets))

        for plan_id, user_id in targets:
            engine = adaptation_engine(db)
            plan = engine.plans.get_active_plan(user_id)
            if plan is None or plan.id != plan_id:
                summary[plan_id] = {"status": "inactive", "workouts_affected": 0}
                continue

            missed = engine.pending_missed_workouts(plan)
            if not missed:
                summary[plan_id] = {"status": "clean", "workouts_affected": 0}
                continue
            if dry_run:
                summary[plan_id] = {"status": "pending", "workouts_affected": 0, "missed": len(missed)}
                continue

            try:
                result = engine.apply(user_id, MissedWorkouts(tuple(missed)))
                db.commit()
            except CoachError as e:
                db.rollback()
                logger.warning("Missed-workout adaptation failed for plan %s: %s", plan_id, e.message)
                summary[plan_id] = {"status": "failed", "workouts_affected": 0, "reason": e.message}
                continue

            summary[plan_id] = {
                "status": "adapted" if result.success else "unchanged",
                "workouts_affected": result.workouts_affected,
                "missed": len(missed),
            }
            logger.info(
                "Plan %s | missed=%d | affected=%d | success=%s",
                plan_id,
                len(missed),
                result.workouts_affected,
                result.success,
            )

        return summary
    except Exception:
        db.rollback()
        logger.exception("Unhandled error during missed-workout sweep")
        raise
    finally:
        db.close()


async def run_daily_job(dry_run: bool = False) -> None:
    start = datetime.now(timezone.utc)
    logger.info("Missed-workout sweep started%s", " (dry run)" if dry_run else "")

    try:
        sweep = sweep_missed_workouts if not dry_run else partial(sweep_missed_workouts, dry_run=True)
        sweep_summary = await asyncio.to_thread(sweep)
    except Exception:
        logger.exception("Missed-workout sweep failed")
        return

    statuses = Counter(details["status"] for details in sweep_summary.values())
    elapsed = (datetime.now(timezone.utc) - start).total_seconds()
    logger.info(
        "Missed-workout sweep finished in %.2fs | plans=%d | %s",
        elapsed,
        len(sweep_summary),
        ", ".join(f"{status}={count}" for status, count in sorted(statuses.items())) or "nothing to do",
    )
    for plan_id, details in sweep_summary.items():
        logger.debug("Plan %s -> %s", plan_id, details)


async def main(run_now: bool, dry_run: bool = False) -> None:
    configure_logging()
    settings = get_settings()
    run_migrations()

    lock_path = settings.scheduler_lock_file
    lock = acquire_lock(lock_path)
    logger.info("Acquired scheduler lock at %s", lock_path)
    try:
        if run_now or dry_run:
            await run_daily_job(dry_run=dry_run)
            return

        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            run_daily_job,
            "cron",
            hour=settings.scheduler_hour,
            minute=settings.scheduler_minute,
            coalesce=True,
            misfire_grace_time=MISFIRE_GRACE_SECONDS,
        )
        scheduler.start()

        logger.info(
            "Missed-workout sweep scheduled daily at %02d:%02d. Press Ctrl+C to exit.",
            settings.scheduler_hour,
            settings.scheduler_minute,
        )
        await asyncio.Event().wait()
    finally:
        lock.release()
        logger.info("Released scheduler lock at %s", lock_path)
        if lock_path.exists():
            lock_path.unlink()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the missed-workout sweep scheduler")
    parser.add_argument("--run-now", action="store_true", help="Execute the sweep immediately and exit")
    parser.add_argument("--dry-run", action="store_true", help="Report pending missed workouts without adapting plans")
    args = parser.parse_args()

    try:
        asyncio.run(main(run_now=args.run_now, dry_run=args.dry_run))
    except TimeoutError:
        logger.warning("Scheduler already running; exiting.")
