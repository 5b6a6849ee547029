"""Integration tests for the alert feed endpoints."""
from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from conftest import TOKYO, training_block
from loadwatch.models.database_models import TrainingRecord


def _today() -> date:
    return datetime.now(TOKYO).date()


@pytest.fixture
def club_with_history(seeded_club, seed) -> None:
    """ath-1 spikes this week, ath-2 trains steadily, ath-3 has no history."""
    today = _today()
    seed(
        *training_block("ath-1", today, 7, 50.0),
        *[
            TrainingRecord(user_id="ath-1", date=today - timedelta(days=offset), load=30.0)
            for offset in (7, 9, 11, 14, 16, 18, 21, 23, 25)
        ],
        *training_block("ath-2", today, 28, 40.0),
    )


@pytest.fixture
def refreshed(test_client: TestClient, club_with_history) -> TestClient:
    response = test_client.post("/api/alerts/refresh")
    assert response.status_code == 200
    return test_client


class TestSystemEndpoints:
    """Test suite for liveness endpoints."""

    def test_health(self, test_client: TestClient):
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_status(self, test_client: TestClient):
        response = test_client.get("/api/health/status")

        assert response.status_code == 200
        assert response.json()["status"] == "online"
        assert response.json()["timezone"] == "Asia/Tokyo"


class TestRefresh:
    """Test suite for the on-demand pipeline trigger."""

    def test_admin_refresh(self, test_client: TestClient, club_with_history):
        response = test_client.post("/api/alerts/refresh")

        data = response.json()
        assert response.status_code == 200
        assert data["users_evaluated"] == 3
        assert data["alerts_created"] == 2
        assert data["active_alerts"] == 2

    def test_repeat_refresh_creates_nothing(self, refreshed: TestClient):
        data = refreshed.post("/api/alerts/refresh").json()

        assert data["alerts_generated"] == 2
        assert data["alerts_created"] == 0

    def test_staff_refresh_limited_to_linked_teams(self, test_client: TestClient, club_with_history):
        response = test_client.post("/api/alerts/refresh", json={"role": "staff", "scope": "coach-1"})

        assert response.status_code == 200
        assert response.json()["users_evaluated"] == 2

    def test_invalid_role_rejected(self, test_client: TestClient):
        response = test_client.post("/api/alerts/refresh", json={"role": "owner"})

        assert response.status_code == 422


class TestAlertFeed:
    """Test suite for the read models and flag flips."""

    def test_active_sorted_by_priority(self, refreshed: TestClient):
        data = refreshed.get("/api/alerts/active").json()

        assert data["count"] == 2
        assert [a["type"] for a in data["alerts"]] == ["high_risk", "caution"]
        assert data["alerts"][0]["acwr_value"] == 3.89
        assert data["alerts"][0]["user_name"] == "Aoi"

    def test_active_scoped_by_team_and_user(self, refreshed: TestClient):
        assert refreshed.get("/api/alerts/active", params={"team_id": "team-a"}).json()["count"] == 2
        assert refreshed.get("/api/alerts/active", params={"team_id": "team-b"}).json()["count"] == 0
        assert refreshed.get("/api/alerts/active", params={"user_id": "ath-2"}).json()["count"] == 0

    def test_mark_read(self, refreshed: TestClient):
        alert_id = refreshed.get("/api/alerts/active").json()["alerts"][0]["id"]

        response = refreshed.post(f"/api/alerts/{alert_id}/read")

        assert response.status_code == 200
        assert response.json()["alert"]["is_read"] is True
        assert refreshed.get("/api/alerts/unread").json()["count"] == 1

    def test_dismiss_removes_from_feed(self, refreshed: TestClient):
        alert_id = refreshed.get("/api/alerts/active").json()["alerts"][0]["id"]

        assert refreshed.post(f"/api/alerts/{alert_id}/dismiss").status_code == 200
        refreshed.post("/api/alerts/refresh")

        alerts = refreshed.get("/api/alerts/active").json()["alerts"]
        assert [a["type"] for a in alerts] == ["caution"]

    def test_read_all(self, refreshed: TestClient):
        response = refreshed.post("/api/alerts/read-all")

        assert response.json() == {"status": "success", "updated": 2}
        assert refreshed.get("/api/alerts/unread").json()["count"] == 0

    @pytest.mark.parametrize("action", ["read", "dismiss"])
    def test_unknown_alert_is_404(self, test_client: TestClient, action: str):
        response = test_client.post(f"/api/alerts/does-not-exist/{action}")

        assert response.status_code == 404
