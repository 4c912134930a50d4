"""Calibration and time buffering for Battle Plan.

Raw estimates are inflated by a confidence multiplier and by a learned
per-category correction factor (average actual/estimate ratio), then rounded
up to the next 5 minutes. Planning never uses the raw estimate.
"""

import math
from typing import Iterable, Optional

from battleplan.models.calibration import CalibrationEntry
from battleplan.models.constants import (
    BUFFER_ROUNDING_MINUTES,
    CALIBRATION_FACTOR_MAX,
    CALIBRATION_FACTOR_MIN,
    CONFIDENCE_MULTIPLIERS,
    DEFAULT_CONFIDENCE_MULTIPLIER,
)


def calibration_factor(entries: Iterable[CalibrationEntry]) -> float:
    """Mean actual/estimate ratio, clamped to [1.0, 2.0].

    Entries with non-positive buckets are ignored. No usable history means
    no adjustment (1.0).

    Args:
        entries: Recent calibration entries for one category (already windowed)

    Returns:
        Correction factor
    """
    ratios = [
        e.actual_bucket / e.estimate_bucket
        for e in entries
        if e.estimate_bucket and e.estimate_bucket > 0 and e.actual_bucket and e.actual_bucket > 0
    ]
    if not ratios:
        return CALIBRATION_FACTOR_MIN

    avg = sum(ratios) / len(ratios)
    return max(CALIBRATION_FACTOR_MIN, min(CALIBRATION_FACTOR_MAX, avg))


def confidence_multiplier(confidence: Optional[str]) -> float:
    return CONFIDENCE_MULTIPLIERS.get(confidence, DEFAULT_CONFIDENCE_MULTIPLIER)


def round_up(minutes: float, increment: int = BUFFER_ROUNDING_MINUTES) -> int:
    """Round up to the next multiple of `increment`."""
    # Guard against float noise such as 15 * 1.1 * 1.0 == 16.500000000000004
    return int(math.ceil(round(minutes, 6) / increment) * increment)


def buffered_minutes(
    estimate_bucket: Optional[int],
    confidence: Optional[str],
    factor: float = CALIBRATION_FACTOR_MIN,
) -> Optional[int]:
    """Planning minutes for an estimate.

    Returns:
        estimate x confidence multiplier x calibration factor, rounded up to
        5 minutes; None when the estimate or confidence is missing.
    """
    if not estimate_bucket or not confidence:
        return None
    return round_up(estimate_bucket * confidence_multiplier(confidence) * factor)
