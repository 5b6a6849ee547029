"""SQLAlchemy engine, session factory and Alembic entry point."""
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from loadwatch.config import get_settings


PROJECT_ROOT = Path(__file__).resolve().parent.parent

settings = get_settings()
engine = create_engine(settings.database_url, echo=settings.debug, future=True)


if engine.dialect.name == "sqlite":

    @event.listens_for(engine, "connect")
    def enable_sqlite_foreign_keys(dbapi_conn, connection_record):
        """SQLite ignores ON DELETE rules on users and teams unless asked."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class Base(DeclarativeBase):
    """Declarative base for the training history tables."""


SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def alembic_config(database_url: str | None = None) -> Config:
    """Alembic config pointing at ``migrations/`` and the given (or configured) database."""

    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", database_url or settings.database_url)
    # env.py leaves the dictConfig handlers from configure_logging() in place.
    cfg.attributes["configure_logger"] = False
    return cfg


def run_migrations(target_revision: str = "head", database_url: str | None = None) -> None:
    """Upgrade the schema to ``target_revision``."""

    command.upgrade(alembic_config(database_url), target_revision)
