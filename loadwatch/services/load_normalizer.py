"""Turn raw training entries into one positive daily load per user."""
from __future__ import annotations

import logging
import math
from collections import defaultdict
from datetime import date
from typing import Iterable

from loadwatch.models.schemas import LoadPoint, TrainingEntry


logger = logging.getLogger(__name__)


def _finite_positive(value: float | None) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def entry_load(entry: TrainingEntry) -> float | None:
    """
    Return the load of a single session, or None if it has no usable load.

    An explicit positive load wins; otherwise session RPE x duration is used.
    A product that is not positive, or a missing or non-finite factor,
    yields None.
    """
    if _finite_positive(entry.load):
        return float(entry.load)

    rpe, minutes = entry.rpe, entry.duration_minutes
    if rpe is None or minutes is None:
        return None
    if not (math.isfinite(rpe) and math.isfinite(minutes)):
        return None

    product = rpe * minutes
    return product if _finite_positive(product) else None


def normalize_entries(entries: Iterable[TrainingEntry]) -> list[LoadPoint]:
    """
    Aggregate entries into one LoadPoint per (user_id, date).

    Same-day loads are summed. Entries without a usable load are dropped,
    never zero-filled. Output is sorted by user then date.
    """
    totals: dict[tuple[str, date], float] = defaultdict(float)
    dropped = 0

    for entry in entries:
        load = entry_load(entry)
        if load is None:
            dropped += 1
            continue
        totals[(entry.user_id, entry.date)] += load

    if dropped:
        logger.debug("Dropped %d training entries without a usable load", dropped)

    return [
        LoadPoint(user_id=user_id, date=day, load=load)
        for (user_id, day), load in sorted(totals.items())
    ]
