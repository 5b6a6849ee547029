"""SQLAlchemy ORM models backing the training-history collaborator."""
from datetime import date, datetime
from sqlalchemy import Integer, Date, DateTime, Float, String, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from loadwatch.database import Base


class Team(Base):
    """A coaching team grouping athletes."""

    __tablename__ = "teams"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    members: Mapped[list["User"]] = relationship("User", back_populates="team")


class User(Base):
    """Athlete, staff or admin account."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, index=True)  # athlete, staff, admin
    team_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("teams.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    team: Mapped["Team | None"] = relationship("Team", back_populates="members")


class StaffTeamLink(Base):
    """Assignment of a staff user to a team they coach."""

    __tablename__ = "staff_team_links"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    staff_user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    team_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True
    )

    team: Mapped["Team"] = relationship("Team")

    __table_args__ = (
        Index("ix_staff_team_links_unique", "staff_user_id", "team_id", unique=True),
    )


class TrainingRecord(Base):
    """A logged training session (session RPE x minutes, or an explicit load)."""

    __tablename__ = "training_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    rpe: Mapped[float | None] = mapped_column(Float, nullable=True)  # 0-10 session RPE
    duration_min: Mapped[float | None] = mapped_column(Float, nullable=True)
    load: Mapped[float | None] = mapped_column(Float, nullable=True)  # explicit load overrides rpe x duration

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_training_records_user_date", "user_id", "date"),
    )
