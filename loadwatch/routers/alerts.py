"""Alert feed API endpoints."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from loadwatch.exceptions import AlertNotFoundError, UpstreamFetchError
from loadwatch.models.schemas import Alert, PipelineResult, RefreshRequest
from loadwatch.services.pipeline import RiskEngine, get_risk_engine


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/alerts", tags=["alerts"])


def _scope(engine: RiskEngine, user_id: str | None, team_id: str | None) -> list[str] | None:
    """Resolve query filters to a set of user ids (None means everyone)."""
    if user_id is None and team_id is None:
        return None

    user_ids: list[str] = []
    if user_id is not None:
        user_ids.append(user_id)
    if team_id is not None:
        try:
            roster = engine.source.fetch_team_roster(team_id)
        except UpstreamFetchError as exc:
            logger.exception("Team roster lookup failed for %s", team_id)
            raise HTTPException(status_code=502, detail="Failed to load team roster") from exc
        user_ids.extend(member.user_id for member in roster)
    return user_ids


def _payload(alerts: list[Alert]) -> dict:
    return {
        "count": len(alerts),
        "alerts": [alert.model_dump(mode="json") for alert in alerts],
    }


@router.get("/active")
async def get_active_alerts(
    user_id: str | None = None,
    team_id: str | None = None,
    engine: RiskEngine = Depends(get_risk_engine),
) -> dict:
    """
    Get the active alert feed.

    Args:
        user_id: Restrict to one user
        team_id: Restrict to the athletes of one team

    Returns:
        Dictionary with count and alerts sorted by priority, then newest first
    """
    now = datetime.now(timezone.utc)
    return _payload(engine.store.active(now, _scope(engine, user_id, team_id)))


@router.get("/unread")
async def get_unread_alerts(
    user_id: str | None = None,
    engine: RiskEngine = Depends(get_risk_engine),
) -> dict:
    """Active alerts that have not been read yet."""
    now = datetime.now(timezone.utc)
    return _payload(engine.store.unread(now, _scope(engine, user_id, None)))


@router.post("/read-all")
async def mark_all_alerts_read(
    user_id: str | None = None,
    engine: RiskEngine = Depends(get_risk_engine),
) -> dict:
    updated = engine.store.mark_all_as_read(_scope(engine, user_id, None))
    return {"status": "success", "updated": updated}


@router.post("/refresh")
def refresh_alerts(
    request: RefreshRequest | None = None,
    engine: RiskEngine = Depends(get_risk_engine),
) -> PipelineResult:
    """
    Run the pipeline on demand.

    Safe to call while the scheduler is running; same-day duplicates are
    discarded by the store.
    """
    request = request or RefreshRequest()
    logger.info("On-demand refresh requested | role=%s | scope=%s", request.role.value, request.scope)
    return engine.run_pipeline(role=request.role, scope=request.scope)


@router.post("/{alert_id}/read")
async def mark_alert_read(
    alert_id: str,
    engine: RiskEngine = Depends(get_risk_engine),
) -> dict:
    """
    Mark an alert as read.

    Raises:
        HTTPException: 404 if alert not found
    """
    try:
        alert = engine.store.mark_as_read(alert_id)
    except AlertNotFoundError:
        raise HTTPException(status_code=404, detail="Alert not found")

    return {"status": "success", "alert": alert.model_dump(mode="json")}


@router.post("/{alert_id}/dismiss")
async def dismiss_alert(
    alert_id: str,
    engine: RiskEngine = Depends(get_risk_engine),
) -> dict:
    """
    Dismiss an alert; it never reappears in the active feed.

    Raises:
        HTTPException: 404 if alert not found
    """
    try:
        alert = engine.store.dismiss(alert_id)
    except AlertNotFoundError:
        raise HTTPException(status_code=404, detail="Alert not found")

    return {"status": "success", "alert": alert.model_dump(mode="json")}
