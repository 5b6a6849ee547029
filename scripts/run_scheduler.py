"""Serve the risk API with its in-process scheduler.

Scheduled ticks and ``POST /api/alerts/refresh`` must share one alert
store, so the scheduler lives inside the API process (see
``loadwatch.main.lifespan``). Run a single worker.
"""
from __future__ import annotations

import argparse
import logging

import uvicorn

from loadwatch.config import get_settings
from loadwatch.database import run_migrations
from loadwatch.logging_config import configure_logging


logger = logging.getLogger("scheduler")


def main(host: str | None = None, port: int | None = None) -> None:
    configure_logging()
    settings = get_settings()
    run_migrations()

    if not settings.scheduler_enabled:
        logger.warning("SCHEDULER_ENABLED is false; only on-demand refreshes will run")

    uvicorn.run(
        "loadwatch.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        workers=1,
        log_config=None,
    )


def cli() -> None:
    parser = argparse.ArgumentParser(description="Run the risk API and its scheduler")
    parser.add_argument("--host", help="Bind address (defaults to API_HOST)")
    parser.add_argument("--port", type=int, help="Bind port (defaults to API_PORT)")
    args = parser.parse_args()
    main(host=args.host, port=args.port)


if __name__ == "__main__":
    cli()
