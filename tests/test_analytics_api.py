"""Integration tests for the ACWR analytics endpoints."""
from __future__ import annotations

from datetime import datetime, timedelta

from fastapi.testclient import TestClient

from conftest import TOKYO, training_block


class TestUserAcwr:
    """Test suite for a single athlete's series."""

    def test_series_with_risk_band(self, test_client: TestClient, seeded_club, seed):
        today = datetime.now(TOKYO).date()
        seed(*training_block("ath-2", today, 28, 40.0))

        response = test_client.get("/api/analytics/acwr/ath-2")

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 28
        assert data[0]["ratio"] is None
        assert data[0]["risk_band"] == "unknown"
        assert data[-1]["ratio"] == 1.0
        assert data[-1]["is_mature"] is True
        assert data[-1]["risk_band"] == "good"

    def test_date_range_filter(self, test_client: TestClient, seeded_club, seed):
        today = datetime.now(TOKYO).date()
        seed(*training_block("ath-2", today, 28, 40.0))

        response = test_client.get(
            "/api/analytics/acwr/ath-2",
            params={"start_date": (today - timedelta(days=2)).isoformat(), "end_date": today.isoformat()},
        )

        assert [item["date"] for item in response.json()] == [
            (today - timedelta(days=offset)).isoformat() for offset in (2, 1, 0)
        ]

    def test_inverted_range_rejected(self, test_client: TestClient):
        response = test_client.get(
            "/api/analytics/acwr/ath-2",
            params={"start_date": "2024-03-10", "end_date": "2024-03-01"},
        )

        assert response.status_code == 400

    def test_no_history_is_empty(self, test_client: TestClient, seeded_club):
        response = test_client.get("/api/analytics/acwr/ath-3")

        assert response.status_code == 200
        assert response.json() == []


class TestTeamAcwr:
    """Test suite for the team series."""

    def test_team_series(self, test_client: TestClient, seeded_club, seed):
        today = datetime.now(TOKYO).date()
        seed(*training_block("ath-1", today, 28, 40.0), *training_block("ath-2", today, 28, 20.0))

        response = test_client.get("/api/analytics/teams/team-a/acwr")

        assert response.status_code == 200
        last = response.json()[-1]
        assert last["date"] == today.isoformat()
        assert last["team_ratio"] == 1.0
        assert last["athlete_count"] == 2
        assert last["roster_size"] == 2
        assert last["risk_band"] == "good"

    def test_days_limit(self, test_client: TestClient, seeded_club, seed):
        today = datetime.now(TOKYO).date()
        seed(*training_block("ath-1", today, 28, 40.0))

        response = test_client.get("/api/analytics/teams/team-a/acwr", params={"days": 3})

        assert len(response.json()) == 3

    def test_team_without_data(self, test_client: TestClient, seeded_club):
        response = test_client.get("/api/analytics/teams/team-b/acwr")

        assert response.status_code == 200
        assert response.json() == []
