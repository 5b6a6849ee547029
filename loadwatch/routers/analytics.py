"""API endpoints for ACWR series."""
from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from loadwatch.exceptions import UpstreamFetchError
from loadwatch.models.schemas import AcwrSeriesItem, TeamAcwrPoint
from loadwatch.services.pipeline import RiskEngine, get_risk_engine
from loadwatch.services.risk_classifier import classify_point


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


def _in_range(day: date, start_date: date | None, end_date: date | None) -> bool:
    if start_date is not None and day < start_date:
        return False
    if end_date is not None and day > end_date:
        return False
    return True


@router.get("/acwr/{user_id}", response_model=list[AcwrSeriesItem])
def get_user_acwr(
    user_id: str,
    start_date: date | None = None,
    end_date: date | None = None,
    engine: RiskEngine = Depends(get_risk_engine),
) -> list[AcwrSeriesItem]:
    """
    Get one athlete's ACWR series.

    Query parameters:
        start_date: Optional first date (YYYY-MM-DD)
        end_date: Optional last date (YYYY-MM-DD)

    Returns:
        Chronological ratio points with their risk band; immature points
        are reported as ``unknown``
    """
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")

    try:
        series = engine.acwr_series(user_id)
    except UpstreamFetchError as exc:
        logger.exception("ACWR series failed for user %s", user_id)
        raise HTTPException(status_code=502, detail="Failed to load training history") from exc

    return [
        AcwrSeriesItem(
            date=point.date,
            acute_load=round(point.acute_load, 1),
            chronic_load=round(point.chronic_load, 1),
            ratio=round(point.ratio, 2) if point.ratio is not None else None,
            is_mature=point.is_mature,
            risk_band=classify_point(point),
        )
        for point in series
        if _in_range(point.date, start_date, end_date)
    ]


@router.get("/teams/{team_id}/acwr", response_model=list[TeamAcwrPoint])
def get_team_acwr(
    team_id: str,
    days: int | None = Query(default=None, ge=1, le=365),
    engine: RiskEngine = Depends(get_risk_engine),
) -> list[TeamAcwrPoint]:
    """
    Get the team's mean ACWR per date.

    Query parameters:
        days: Optional limit to the most recent N points
    """
    try:
        series = engine.team_series(team_id)
    except UpstreamFetchError as exc:
        logger.exception("Team ACWR failed for team %s", team_id)
        raise HTTPException(status_code=502, detail="Failed to load team roster") from exc

    if days is not None:
        series = series[-days:]
    return series
