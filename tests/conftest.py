"""Pytest configuration for global fixtures and logging setup."""
from __future__ import annotations

import os
import tempfile
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Callable, Iterator
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ["DATABASE_URL"] = os.environ.get("DATABASE_URL") or "sqlite://"
os.environ["LOG_DIR"] = os.environ.get("LOG_DIR") or str(Path(tempfile.gettempdir()) / "loadwatch-test-logs")
os.environ["TIMEZONE"] = "Asia/Tokyo"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ.pop("ALERT_RULES_PATH", None)

from loadwatch.logging_config import configure_logging

configure_logging()

from loadwatch.config import get_settings
from loadwatch.database import Base
from loadwatch.exceptions import UpstreamFetchError
from loadwatch.main import app
from loadwatch.models.database_models import StaffTeamLink, Team, TrainingRecord, User
from loadwatch.models.schemas import AlertRule, Role, RosterMember, StaffMember, TrainingEntry
from loadwatch.services.alert_rules import default_rules
from loadwatch.services.pipeline import RiskEngine, get_risk_engine
from loadwatch.services.training_repository import SqlTrainingRepository

TOKYO = ZoneInfo("Asia/Tokyo")


class InMemorySource:
    """Dictionary-backed training data source for pipeline tests."""

    def __init__(self) -> None:
        self.members: dict[str, RosterMember] = {}
        self.entries: dict[str, list[TrainingEntry]] = {}
        self.staff: dict[str, StaffMember] = {}
        self.staff_teams: dict[str, set[str]] = {}
        self.rules: list[AlertRule] = default_rules()
        self.failing_users: set[str] = set()
        self.roster_fails = False

    def add_athlete(self, user_id: str, name: str, team_id: str = "team-1", team_name: str = "Team One") -> None:
        self.members[user_id] = RosterMember(
            user_id=user_id, display_name=name, team_id=team_id, team_name=team_name
        )
        self.entries.setdefault(user_id, [])

    def add_load(self, user_id: str, day: date, load: float) -> None:
        self.entries.setdefault(user_id, []).append(TrainingEntry(user_id=user_id, date=day, load=load))

    def add_staff(self, user_id: str, name: str, team_ids: set[str]) -> None:
        self.staff[user_id] = StaffMember(user_id=user_id, display_name=name)
        self.staff_teams[user_id] = set(team_ids)

    def fetch_training_history(self, user_id: str) -> list[TrainingEntry]:
        if user_id in self.failing_users:
            raise UpstreamFetchError(f"training history for {user_id}", "connection reset")
        return list(self.entries.get(user_id, []))

    def fetch_roster(self, role: Role, scope: str | None) -> list[RosterMember]:
        if self.roster_fails:
            raise UpstreamFetchError(f"{role.value} roster", "timeout")
        if role is Role.ATHLETE:
            return [self.members[scope]] if scope in self.members else []
        if role is Role.STAFF:
            teams = self.staff_teams.get(scope or "", set())
            return [m for m in self.members.values() if m.team_id in teams]
        return list(self.members.values())

    def fetch_team_roster(self, team_id: str) -> list[RosterMember]:
        return [m for m in self.members.values() if m.team_id == team_id]

    def fetch_staff(self) -> list[StaffMember]:
        return list(self.staff.values())

    def fetch_alert_rule_config(self) -> list[AlertRule]:
        return list(self.rules)


def tokyo(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=TOKYO)


@pytest.fixture
def memory_source() -> InMemorySource:
    return InMemorySource()


@pytest.fixture
def sql_engine():
    """In-memory SQLite shared across connections."""

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(sql_engine) -> sessionmaker:
    return sessionmaker(bind=sql_engine, autoflush=False, future=True)


@pytest.fixture
def seed(session_factory) -> Callable[..., None]:
    """Insert ORM rows in one transaction."""

    def _seed(*rows) -> None:
        session: Session = session_factory()
        try:
            session.add_all(rows)
            session.commit()
        finally:
            session.close()

    return _seed


@pytest.fixture
def seeded_club(seed) -> None:
    """Two teams, three athletes, one staff member coaching team A, one admin."""

    seed(
        Team(id="team-a", name="Sprinters"),
        Team(id="team-b", name="Throwers"),
    )
    seed(
        User(id="ath-1", name="Aoi", role="athlete", team_id="team-a"),
        User(id="ath-2", name="Ren", role="athlete", team_id="team-a"),
        User(id="ath-3", name="Kai", role="athlete", team_id="team-b"),
        User(id="coach-1", name="Coach Sato", role="staff", team_id=None, email="sato@example.com"),
        User(id="admin-1", name="Admin", role="admin", team_id=None),
    )
    seed(StaffTeamLink(staff_user_id="coach-1", team_id="team-a"))


@pytest.fixture
def repository(session_factory) -> SqlTrainingRepository:
    return SqlTrainingRepository(session_factory)


@pytest.fixture
def risk_engine(repository) -> RiskEngine:
    return RiskEngine(repository, settings=get_settings())


@pytest.fixture
def test_client(risk_engine) -> Iterator[TestClient]:
    """Provide a FastAPI test client bound to the in-memory engine."""

    app.dependency_overrides[get_risk_engine] = lambda: risk_engine
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_risk_engine, None)


def training_block(user_id: str, last_day: date, days: int, load: float) -> list[TrainingRecord]:
    """``days`` consecutive daily records ending on ``last_day``."""
    return [
        TrainingRecord(user_id=user_id, date=last_day - timedelta(days=offset), load=load)
        for offset in range(days)
    ]
