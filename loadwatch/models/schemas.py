"""Pydantic models for the load-risk engine and its API payloads."""
from __future__ import annotations

from datetime import date, datetime, tzinfo
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RiskBand(str, Enum):
    """Discrete injury-risk band derived from an ACWR value."""

    HIGH = "high"
    CAUTION = "caution"
    GOOD = "good"
    LOW = "low"
    UNKNOWN = "unknown"


class AlertType(str, Enum):
    HIGH_RISK = "high_risk"
    CAUTION = "caution"
    LOW_LOAD = "low_load"
    NO_DATA = "no_data"
    REMINDER = "reminder"
    SRPE_HIGH = "srpe_high"
    SRPE_SPIKE = "srpe_spike"


class AlertPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort weight, larger is more urgent."""
        return {"high": 3, "medium": 2, "low": 1}[self.value]


class RuleCondition(str, Enum):
    """Tag selecting the evaluation function of an alert rule."""

    ACWR_ABOVE = "acwr_above"
    ACWR_BELOW = "acwr_below"
    NO_TRAINING_DAYS = "no_training_days"
    NO_TRAINING_TODAY = "no_training_today"
    SRPE_ABOVE = "srpe_above"
    SRPE_SPIKE_RATIO = "srpe_spike_ratio"


class Role(str, Enum):
    ATHLETE = "athlete"
    STAFF = "staff"
    ADMIN = "admin"


class TrainingEntry(BaseModel):
    """One logged training session as supplied by the history collaborator."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    date: date
    rpe: float | None = None
    duration_minutes: float | None = None
    load: float | None = None


class LoadPoint(BaseModel):
    """Total positive load of one user on one calendar day."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    date: date
    load: float = Field(gt=0)


class AcwrPoint(BaseModel):
    """Acute/chronic load pair and their ratio for one user on one date.

    ``ratio`` is ``None`` whenever the chronic window holds no load.
    ``is_mature`` is true once the user's load history spans enough days
    for the ratio to be trusted by alerting.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    date: date
    acute_load: float
    chronic_load: float
    ratio: float | None = None
    is_mature: bool = False


class TeamAcwrPoint(BaseModel):
    """Mean ratio of the roster members that have a ratio on ``date``."""

    model_config = ConfigDict(frozen=True)

    date: date
    team_ratio: float
    athlete_count: int = Field(ge=1, description="Members contributing a ratio on this date")
    roster_size: int = Field(ge=0, description="Members in the roster")
    risk_band: RiskBand


class RosterMember(BaseModel):
    """An athlete in scope for a pipeline run."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    display_name: str = ""
    team_id: str | None = None
    team_name: str | None = None


class StaffMember(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    display_name: str = ""
    email: str | None = None


class AlertRule(BaseModel):
    """Configured alert rule, evaluated once per user per pipeline run."""

    id: str
    type: AlertType
    condition: RuleCondition
    threshold: float
    enabled: bool = True
    description: str = ""


class AlertRuleFile(BaseModel):
    """Top-level layout of the YAML rule override file."""

    alert_rules: list[AlertRule] = Field(min_length=1)


class Alert(BaseModel):
    """Alert emitted by a firing rule.

    Only ``is_read`` and ``is_dismissed`` change after creation, and only
    through the alert store.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    user_name: str | None = None
    type: AlertType
    priority: AlertPriority
    title: str
    message: str

    acwr_value: float | None = None
    threshold_exceeded: str | None = None

    last_training_date: date | None = None
    days_since_last_training: int | None = None

    srpe_value: float | None = None
    srpe_avg_7d: float | None = None
    srpe_spike_ratio: float | None = None

    is_read: bool = False
    is_dismissed: bool = False
    created_at: datetime
    expires_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        """Return True once ``now`` is past ``expires_at``."""
        if self.expires_at is None:
            return False
        return now > self.expires_at

    def created_date(self, tz: tzinfo) -> date:
        """Calendar day of ``created_at`` in the engine's local zone."""
        return self.created_at.astimezone(tz).date()


class AcwrSeriesItem(BaseModel):
    """API view of an :class:`AcwrPoint` with its risk band."""

    date: date
    acute_load: float
    chronic_load: float
    ratio: float | None
    is_mature: bool
    risk_band: RiskBand


class RefreshRequest(BaseModel):
    """Body of the on-demand pipeline trigger."""

    role: Role = Role.ADMIN
    scope: str | None = Field(
        default=None,
        description="User id for athlete/staff roles; ignored for admin.",
    )


class PipelineResult(BaseModel):
    """Summary of one pipeline run."""

    started_at: datetime
    users_evaluated: int = 0
    users_skipped: int = 0
    alerts_generated: int = 0
    alerts_created: int = 0
    notifications_sent: int = 0
    active_alerts: int = 0
