"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from filelock import Timeout

from loadwatch.config import get_settings
from loadwatch.logging_config import configure_logging
from loadwatch.routers import alerts, analytics, health
from loadwatch.scheduler import acquire_lock, build_scheduler, release_lock
from loadwatch.scheduler import logger as scheduler_logger
from loadwatch.services.pipeline import get_risk_engine


configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the interval scheduler against the same engine the routers use."""
    settings = get_settings()
    app.state.scheduler = None
    lock = None

    if settings.scheduler_enabled:
        try:
            lock = acquire_lock(settings.scheduler_lock_file)
        except Timeout:
            logger.warning(
                "Scheduler lock %s held by another process; serving without scheduled runs",
                settings.scheduler_lock_file,
            )
        else:
            engine = app.dependency_overrides.get(get_risk_engine, get_risk_engine)()
            app.state.scheduler = build_scheduler(engine, settings)
            app.state.scheduler.start()
            scheduler_logger.info(
                "Scheduler running (every %d min, summary at %02d:%02d %s)",
                settings.scheduler_interval_minutes,
                settings.summary_hour,
                settings.summary_minute,
                settings.timezone,
            )

    try:
        yield
    finally:
        if app.state.scheduler is not None:
            app.state.scheduler.shutdown(wait=False)
        if lock is not None:
            release_lock(lock, settings.scheduler_lock_file)


app = FastAPI(title="Loadwatch ACWR Risk API", lifespan=lifespan)


@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    """Simple health probe for liveness checks."""
    return {"status": "ok"}


# Include routers
app.include_router(health.router)
app.include_router(alerts.router)
app.include_router(analytics.router)
