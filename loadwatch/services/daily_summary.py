"""Daily ACWR risk digest for coaching staff."""
from __future__ import annotations

from datetime import date

from pydantic import BaseModel

from loadwatch.models.schemas import AcwrPoint, RiskBand, RosterMember
from loadwatch.services.risk_classifier import classify


class AthleteRiskSummary(BaseModel):
    athlete_name: str
    team_name: str
    latest_ratio: float
    risk_band: RiskBand
    last_training_date: date
    days_since_last_training: int


class DailySummary(BaseModel):
    """Athletes in the high and caution bands for one staff member."""

    staff_name: str
    date: date
    high_risk: list[AthleteRiskSummary] = []
    caution: list[AthleteRiskSummary] = []

    @property
    def subject(self) -> str:
        return f"ACWR risk summary ({self.date.isoformat()})"

    @property
    def text(self) -> str:
        lines = [
            f"Hello {self.staff_name},",
            f"Here is the ACWR risk summary as of {self.date.isoformat()}.",
            "",
        ]

        if self.high_risk:
            lines.append("High risk (ACWR > 1.5):")
            lines.extend(_format_row(row) for row in self.high_risk)
        else:
            lines.append("No athletes at high risk.")
        lines.append("")

        if self.caution:
            lines.append("Caution (1.3 < ACWR <= 1.5):")
            lines.extend(_format_row(row) for row in self.caution)
            lines.append("")

        lines.append(
            "This message is generated automatically. Final decisions should "
            "account for the athlete's condition on the day."
        )
        return "\n".join(lines)


def _format_row(row: AthleteRiskSummary) -> str:
    return (
        f"- {row.team_name} / {row.athlete_name}: ACWR {row.latest_ratio:.2f}, "
        f"last training {row.last_training_date.isoformat()} "
        f"({row.days_since_last_training} days ago)"
    )


def summarize_athlete(
    member: RosterMember,
    series: list[AcwrPoint],
    today: date,
) -> AthleteRiskSummary | None:
    """Summary row for one athlete, or None when there is no mature ratio."""
    if not series:
        return None
    latest = series[-1]
    if not latest.is_mature or latest.ratio is None:
        return None
    # Band of the printed two-decimal value.
    ratio = round(latest.ratio, 2)
    band = classify(ratio)
    if band is RiskBand.UNKNOWN:
        return None

    return AthleteRiskSummary(
        athlete_name=member.display_name or "Unnamed athlete",
        team_name=member.team_name or "Unknown team",
        latest_ratio=ratio,
        risk_band=band,
        last_training_date=latest.date,
        days_since_last_training=(today - latest.date).days,
    )


def build_daily_summary(
    staff_name: str,
    today: date,
    rows: list[AthleteRiskSummary],
) -> DailySummary | None:
    """
    Group athlete rows into a digest.

    Returns:
        DailySummary, or None when nobody is in the high or caution band
    """
    high = sorted(
        (r for r in rows if r.risk_band is RiskBand.HIGH),
        key=lambda r: r.latest_ratio,
        reverse=True,
    )
    caution = sorted(
        (r for r in rows if r.risk_band is RiskBand.CAUTION),
        key=lambda r: r.latest_ratio,
        reverse=True,
    )
    if not high and not caution:
        return None

    return DailySummary(
        staff_name=staff_name or "Coach",
        date=today,
        high_risk=high,
        caution=caution,
    )
