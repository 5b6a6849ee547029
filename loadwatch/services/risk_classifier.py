"""Map ACWR values onto risk bands.

Bands (operational categories, not diagnoses):

- ``high``     ratio > 1.5
- ``caution``  1.3 < ratio <= 1.5
- ``good``     0.8 <= ratio <= 1.3
- ``low``      ratio < 0.8
- ``unknown``  no usable ratio

Maturity is not checked here; callers gate on ``AcwrPoint.is_mature``.
"""
from __future__ import annotations

import math

from loadwatch.models.schemas import AcwrPoint, RiskBand

HIGH_THRESHOLD = 1.5
CAUTION_THRESHOLD = 1.3
LOW_THRESHOLD = 0.8


def classify(ratio: float | None) -> RiskBand:
    """Return the risk band of ``ratio``; None and non-finite values are unknown."""
    if ratio is None or not math.isfinite(ratio):
        return RiskBand.UNKNOWN
    if ratio > HIGH_THRESHOLD:
        return RiskBand.HIGH
    if ratio > CAUTION_THRESHOLD:
        return RiskBand.CAUTION
    if ratio >= LOW_THRESHOLD:
        return RiskBand.GOOD
    return RiskBand.LOW


def classify_point(point: AcwrPoint | None) -> RiskBand:
    """Band of a point, or unknown when the point is missing or immature."""
    if point is None or not point.is_mature:
        return RiskBand.UNKNOWN
    return classify(point.ratio)
