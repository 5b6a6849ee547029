"""Interval and daily jobs run inside the API process.

The jobs share the API's ``RiskEngine``, so scheduled ticks, on-demand
refreshes and the alert feed all see one alert store and one notification
cooldown.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from filelock import FileLock

from loadwatch.config import Settings
from loadwatch.models.schemas import Role
from loadwatch.services.pipeline import RiskEngine


logger = logging.getLogger("scheduler")

PIPELINE_JOB_ID = "acwr-pipeline"
SUMMARY_JOB_ID = "daily-summary"


def acquire_lock(lock_path: Path) -> FileLock:
    """Take the scheduler lock without waiting; raises ``filelock.Timeout`` when held."""
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    lock = FileLock(str(lock_path))
    lock.acquire(timeout=0)
    return lock


def release_lock(lock: FileLock, lock_path: Path) -> None:
    lock.release()
    logger.info("Released scheduler lock at %s", lock_path)
    if lock_path.exists():
        lock_path.unlink()


async def run_pipeline_job(engine: RiskEngine, role: Role = Role.ADMIN) -> None:
    """One scheduler tick: recompute every athlete and merge alerts."""
    start = datetime.now(timezone.utc)

    try:
        result = await asyncio.to_thread(engine.run_pipeline, role)
    except Exception:
        logger.exception("Pipeline tick failed")
        return

    elapsed = (datetime.now(timezone.utc) - start).total_seconds()
    logger.info(
        "Pipeline tick finished in %.2fs | users=%d | created=%d | active=%d",
        elapsed,
        result.users_evaluated,
        result.alerts_created,
        result.active_alerts,
    )


async def run_summary_job(engine: RiskEngine) -> None:
    """Daily staff digest of athletes in the high and caution bands."""
    try:
        sent = await asyncio.to_thread(engine.send_daily_summaries)
    except Exception:
        logger.exception("Daily summary job failed")
        return
    logger.info("Daily summary job finished | sent=%d", sent)


def build_scheduler(engine: RiskEngine, settings: Settings) -> AsyncIOScheduler:
    """Scheduler with the interval pipeline tick (first run immediately) and the cron digest."""
    scheduler = AsyncIOScheduler(timezone=settings.timezone)
    scheduler.add_job(
        run_pipeline_job,
        "interval",
        id=PIPELINE_JOB_ID,
        args=[engine, Role(settings.scheduler_role)],
        minutes=settings.scheduler_interval_minutes,
        max_instances=1,
        coalesce=True,
        next_run_time=datetime.now(timezone.utc),
    )
    scheduler.add_job(
        run_summary_job,
        "cron",
        id=SUMMARY_JOB_ID,
        args=[engine],
        hour=settings.summary_hour,
        minute=settings.summary_minute,
    )
    return scheduler
