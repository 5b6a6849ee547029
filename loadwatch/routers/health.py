"""Router exposing basic system endpoints."""
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from loadwatch.services.pipeline import RiskEngine, get_risk_engine


router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/status")
async def get_status(engine: RiskEngine = Depends(get_risk_engine)) -> dict:
    """Return a minimal status payload with alert store counters."""
    now = datetime.now(timezone.utc)
    return {
        "status": "online",
        "timezone": engine.settings.timezone,
        "alerts_total": len(engine.store),
        "alerts_active": len(engine.store.active(now)),
    }
