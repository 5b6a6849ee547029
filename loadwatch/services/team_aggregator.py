"""Team-level ACWR averaging over a roster."""
from __future__ import annotations

import math
from collections import defaultdict
from datetime import date
from typing import Iterable, Mapping

from loadwatch.models.schemas import AcwrPoint, TeamAcwrPoint
from loadwatch.services.risk_classifier import classify


def aggregate_team_series(
    roster: Iterable[str],
    series_by_user: Mapping[str, list[AcwrPoint]],
    mature_only: bool = True,
) -> list[TeamAcwrPoint]:
    """
    Average the members' ratios date by date.

    Only members with a ratio on a given date count toward that date's mean
    and ``athlete_count``; members without data are excluded rather than
    treated as zero. Dates with no contributing member are omitted.

    Args:
        roster: User ids in scope (duplicates are ignored)
        series_by_user: Each member's ACWR series; users outside the roster are ignored
        mature_only: Skip ratios from histories too short to be trusted

    Returns:
        Chronological list of TeamAcwrPoint
    """
    members = list(dict.fromkeys(roster))
    ratios_by_date: dict[date, list[float]] = defaultdict(list)

    for user_id in members:
        for point in series_by_user.get(user_id, []):
            if point.ratio is None or not math.isfinite(point.ratio):
                continue
            if mature_only and not point.is_mature:
                continue
            ratios_by_date[point.date].append(point.ratio)

    team_series: list[TeamAcwrPoint] = []
    for day in sorted(ratios_by_date):
        ratios = ratios_by_date[day]
        team_ratio = round(math.fsum(ratios) / len(ratios), 2)
        team_series.append(
            TeamAcwrPoint(
                date=day,
                team_ratio=team_ratio,
                athlete_count=len(ratios),
                roster_size=len(members),
                risk_band=classify(team_ratio),
            )
        )

    return team_series
