"""Tests for the staff risk digest."""
from __future__ import annotations

from datetime import date

from loadwatch.models.schemas import AcwrPoint, RiskBand, RosterMember
from loadwatch.services.daily_summary import build_daily_summary, summarize_athlete

TODAY = date(2024, 3, 5)


def _member(user_id: str, name: str = "Aoi", team: str | None = "Sprinters") -> RosterMember:
    return RosterMember(user_id=user_id, display_name=name, team_id="team-a", team_name=team)


def _series(ratio: float | None, day: date = date(2024, 3, 3), mature: bool = True) -> list[AcwrPoint]:
    return [
        AcwrPoint(
            user_id="x",
            date=day,
            acute_load=100.0,
            chronic_load=50.0,
            ratio=ratio,
            is_mature=mature,
        )
    ]


class TestSummarizeAthlete:
    """Test suite for per-athlete rows."""

    def test_row_for_mature_ratio(self):
        row = summarize_athlete(_member("a"), _series(1.666), TODAY)

        assert row.latest_ratio == 1.67
        assert row.risk_band is RiskBand.HIGH
        assert row.last_training_date == date(2024, 3, 3)
        assert row.days_since_last_training == 2
        assert row.team_name == "Sprinters"

    def test_no_row_without_mature_ratio(self):
        assert summarize_athlete(_member("a"), _series(2.0, mature=False), TODAY) is None
        assert summarize_athlete(_member("a"), _series(None), TODAY) is None
        assert summarize_athlete(_member("a"), [], TODAY) is None

    def test_band_follows_printed_ratio(self):
        row = summarize_athlete(_member("a"), _series(1.3004), TODAY)

        assert row.latest_ratio == 1.3
        assert row.risk_band is RiskBand.GOOD

    def test_missing_team_name_placeholder(self):
        row = summarize_athlete(_member("a", team=None), _series(1.0), TODAY)

        assert row.team_name == "Unknown team"


class TestBuildDailySummary:
    """Test suite for digest assembly."""

    def test_nobody_at_risk_means_no_summary(self):
        rows = [summarize_athlete(_member("a"), _series(1.0), TODAY)]

        assert build_daily_summary("Coach Sato", TODAY, rows) is None

    def test_groups_and_sorts_by_ratio(self):
        rows = [
            summarize_athlete(_member("a", "Aoi"), _series(1.6), TODAY),
            summarize_athlete(_member("b", "Ren"), _series(2.1), TODAY),
            summarize_athlete(_member("c", "Kai"), _series(1.4), TODAY),
            summarize_athlete(_member("d", "Mei"), _series(0.5), TODAY),
        ]

        summary = build_daily_summary("Coach Sato", TODAY, rows)

        assert [r.athlete_name for r in summary.high_risk] == ["Ren", "Aoi"]
        assert [r.athlete_name for r in summary.caution] == ["Kai"]
        assert summary.subject == "ACWR risk summary (2024-03-05)"

    def test_text_lists_athletes(self):
        rows = [summarize_athlete(_member("c", "Kai"), _series(1.4), TODAY)]

        text = build_daily_summary("Coach Sato", TODAY, rows).text

        assert text.startswith("Hello Coach Sato,")
        assert "No athletes at high risk." in text
        assert "- Sprinters / Kai: ACWR 1.40, last training 2024-03-03 (2 days ago)" in text
