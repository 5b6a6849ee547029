"""Process-wide logging setup.

Everything goes to the console and ``<log_dir>/loadwatch.log``; records of
the ``scheduler`` logger are also written to ``<log_dir>/scheduler.log``.
"""
from __future__ import annotations

from logging.config import dictConfig
from pathlib import Path

from pydantic import ValidationError

from loadwatch.config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_configured = False


def _file_handler(path: Path, level: str) -> dict:
    return {
        "class": "logging.FileHandler",
        "filename": str(path),
        "encoding": "utf-8",
        "formatter": "pipe",
        "level": level,
    }


def build_logging_config(log_dir: Path, level: str) -> dict:
    """``dictConfig`` schema for the engine, the API and the scheduler jobs."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"pipe": {"format": LOG_FORMAT}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "pipe",
                "level": level,
            },
            "engine_file": _file_handler(log_dir / "loadwatch.log", level),
            "scheduler_file": _file_handler(log_dir / "scheduler.log", level),
        },
        "loggers": {
            # Propagates to root as well, so ticks also appear in loadwatch.log.
            "scheduler": {"handlers": ["scheduler_file"], "level": level},
        },
        "root": {"level": level, "handlers": ["console", "engine_file"]},
    }


def configure_logging() -> None:
    """Apply the logging config; later calls in the same process are no-ops."""

    global _configured
    if _configured:
        return

    try:
        settings = get_settings()
    except ValidationError:
        # A broken .env must not prevent log output about it.
        log_dir, level = Path("logs"), "INFO"
    else:
        log_dir, level = settings.log_dir, settings.log_level

    log_dir.mkdir(parents=True, exist_ok=True)
    dictConfig(build_logging_config(log_dir, level))
    _configured = True
