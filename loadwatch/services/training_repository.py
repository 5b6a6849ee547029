"""Inbound collaborators: training history, rosters and rule configuration."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from loadwatch.exceptions import UpstreamFetchError
from loadwatch.models.database_models import StaffTeamLink, Team, TrainingRecord, User
from loadwatch.models.schemas import AlertRule, Role, RosterMember, StaffMember, TrainingEntry
from loadwatch.services.alert_rules import load_rule_config


logger = logging.getLogger(__name__)


class TrainingDataSource(Protocol):
    """What the pipeline needs from the outside world."""

    def fetch_training_history(self, user_id: str) -> list[TrainingEntry]: ...

    def fetch_roster(self, role: Role, scope: str | None) -> list[RosterMember]: ...

    def fetch_team_roster(self, team_id: str) -> list[RosterMember]: ...

    def fetch_staff(self) -> list[StaffMember]: ...

    def fetch_alert_rule_config(self) -> list[AlertRule]: ...


def _dedupe(members: list[RosterMember]) -> list[RosterMember]:
    """Keep the first occurrence of each user id (an athlete can be reached via several teams)."""
    seen: dict[str, RosterMember] = {}
    for member in members:
        seen.setdefault(member.user_id, member)
    return list(seen.values())


class SqlTrainingRepository:
    """SQLAlchemy-backed implementation of :class:`TrainingDataSource`."""

    def __init__(self, session_factory: Callable[[], Session], rules_path: Path | None = None):
        self._session_factory = session_factory
        self.rules_path = rules_path

    def _athlete_query(self):
        return (
            select(User.id, User.name, User.team_id, Team.name)
            .outerjoin(Team, User.team_id == Team.id)
            .where(User.role == Role.ATHLETE.value)
        )

    @staticmethod
    def _to_members(rows) -> list[RosterMember]:
        return [
            RosterMember(
                user_id=user_id,
                display_name=name or "",
                team_id=team_id,
                team_name=team_name,
            )
            for user_id, name, team_id, team_name in rows
        ]

    def fetch_training_history(self, user_id: str) -> list[TrainingEntry]:
        """Return every training record of ``user_id`` in date order."""
        statement = (
            select(TrainingRecord)
            .where(TrainingRecord.user_id == user_id)
            .order_by(TrainingRecord.date, TrainingRecord.id)
        )
        try:
            with self._session_factory() as session:
                records = session.scalars(statement).all()
                return [
                    TrainingEntry(
                        user_id=record.user_id,
                        date=record.date,
                        rpe=record.rpe,
                        duration_minutes=record.duration_min,
                        load=record.load,
                    )
                    for record in records
                ]
        except SQLAlchemyError as exc:
            raise UpstreamFetchError(f"training history for {user_id}", str(exc)) from exc

    def fetch_roster(self, role: Role, scope: str | None) -> list[RosterMember]:
        """
        Resolve who a caller may see.

        Args:
            role: Caller role
            scope: The caller's user id (athlete/staff); ignored for admin

        Returns:
            Athletes in scope, de-duplicated by id
        """
        if role is Role.ATHLETE:
            if not scope:
                return []
            statement = (
                select(User.id, User.name, User.team_id, Team.name)
                .outerjoin(Team, User.team_id == Team.id)
                .where(User.id == scope)
            )
        elif role is Role.STAFF:
            if not scope:
                return []
            team_ids = select(StaffTeamLink.team_id).where(StaffTeamLink.staff_user_id == scope)
            statement = self._athlete_query().where(User.team_id.in_(team_ids))
        else:
            statement = self._athlete_query()

        try:
            with self._session_factory() as session:
                rows = session.execute(statement.order_by(User.name, User.id)).all()
        except SQLAlchemyError as exc:
            raise UpstreamFetchError(f"{role.value} roster", str(exc)) from exc

        return _dedupe(self._to_members(rows))

    def fetch_team_roster(self, team_id: str) -> list[RosterMember]:
        statement = self._athlete_query().where(User.team_id == team_id).order_by(User.name, User.id)
        try:
            with self._session_factory() as session:
                rows = session.execute(statement).all()
        except SQLAlchemyError as exc:
            raise UpstreamFetchError(f"team roster {team_id}", str(exc)) from exc
        return self._to_members(rows)

    def fetch_staff(self) -> list[StaffMember]:
        statement = select(User).where(User.role == Role.STAFF.value).order_by(User.id)
        try:
            with self._session_factory() as session:
                return [
                    StaffMember(user_id=user.id, display_name=user.name or "", email=user.email)
                    for user in session.scalars(statement).all()
                ]
        except SQLAlchemyError as exc:
            raise UpstreamFetchError("staff list", str(exc)) from exc

    def fetch_alert_rule_config(self) -> list[AlertRule]:
        return load_rule_config(self.rules_path)
