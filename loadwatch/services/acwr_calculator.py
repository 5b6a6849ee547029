"""
Acute:Chronic Workload Ratio series calculation.

Uses the uncoupled rolling-window form:

- acute load: sum of daily loads over ``[d-6, d]``
- chronic load: sum of daily loads over ``[d-27, d-7]`` divided by 3,
  i.e. the mean weekly load of the three weeks before the acute week
- ratio: acute / chronic, ``None`` when chronic load is not positive

Every consumer (alerting, team aggregation, summaries) goes through this
module so that all views share one definition of the windows.
"""
from __future__ import annotations

import logging
import math
from bisect import bisect_left, bisect_right
from collections import defaultdict
from datetime import date, timedelta
from typing import Iterable

from loadwatch.models.schemas import AcwrPoint, LoadPoint


logger = logging.getLogger(__name__)

ACUTE_DAYS = 7
CHRONIC_WEEKS = 3
CHRONIC_DAYS = ACUTE_DAYS * CHRONIC_WEEKS
DEFAULT_MATURITY_DAYS = 21


class _LoadIndex:
    """One user's daily loads in date order, searchable by window."""

    def __init__(self, loads: dict[date, float]):
        self.dates = sorted(loads)
        self._loads = [loads[d] for d in self.dates]

    def window_sum(self, start: date, end: date) -> float:
        """Sum of loads with ``start <= date <= end``."""
        lo = bisect_left(self.dates, start)
        hi = bisect_right(self.dates, end)
        return math.fsum(self._loads[lo:hi])


def acute_window(day: date) -> tuple[date, date]:
    return day - timedelta(days=ACUTE_DAYS - 1), day


def chronic_window(day: date) -> tuple[date, date]:
    return (
        day - timedelta(days=ACUTE_DAYS + CHRONIC_DAYS - 1),
        day - timedelta(days=ACUTE_DAYS),
    )


def calculate_acwr_series(
    points: Iterable[LoadPoint],
    maturity_days: int = DEFAULT_MATURITY_DAYS,
) -> list[AcwrPoint]:
    """
    Compute one AcwrPoint per distinct load date of a single user.

    Gaps between dates are not interpolated. The calculation is a full
    recomputation over the whole history on every call.

    Args:
        points: Load points of one user, in any order
        maturity_days: History span (first load date to point date,
            inclusive) required before a point is flagged mature

    Returns:
        Chronological list of AcwrPoint
    """
    loads: dict[date, float] = defaultdict(float)
    user_ids: set[str] = set()
    for point in points:
        loads[point.date] += point.load
        user_ids.add(point.user_id)

    if not loads:
        return []
    if len(user_ids) > 1:
        raise ValueError(f"calculate_acwr_series expects one user, got {sorted(user_ids)}")
    user_id = user_ids.pop()

    index = _LoadIndex(loads)
    first_date = index.dates[0]
    series: list[AcwrPoint] = []

    for day in index.dates:
        acute_load = index.window_sum(*acute_window(day))
        if acute_load <= 0:
            continue

        chronic_load = index.window_sum(*chronic_window(day)) / CHRONIC_WEEKS
        ratio = acute_load / chronic_load if chronic_load > 0 else None
        history_days = (day - first_date).days + 1

        series.append(
            AcwrPoint(
                user_id=user_id,
                date=day,
                acute_load=acute_load,
                chronic_load=chronic_load,
                ratio=ratio,
                is_mature=history_days >= maturity_days,
            )
        )

    logger.debug("Computed %d ACWR points for user %s", len(series), user_id)
    return series


def calculate_series_by_user(
    points: Iterable[LoadPoint],
    maturity_days: int = DEFAULT_MATURITY_DAYS,
) -> dict[str, list[AcwrPoint]]:
    """Split mixed-user load points and compute each user's series."""
    grouped: dict[str, list[LoadPoint]] = defaultdict(list)
    for point in points:
        grouped[point.user_id].append(point)
    return {
        user_id: calculate_acwr_series(user_points, maturity_days=maturity_days)
        for user_id, user_points in grouped.items()
    }


def latest_point(series: list[AcwrPoint]) -> AcwrPoint | None:
    """Return the most recent point of a chronological series."""
    return series[-1] if series else None
