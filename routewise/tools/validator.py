"""
Segment validation against daily driving limits.

Pure functions: a leg is valid when both its duration and its distance fit
within one day's limits. Invalid legs get evenly spaced split points that
the optimizer turns into real stops.
"""

import math
from typing import List

from ..schemas.route import Leg, Preferences, SplitPoint, ValidationResult

PLACEHOLDER_STOP = "Intermediate stop {day}"


def days_needed(distance_km: float, duration_hours: float, preferences: Preferences) -> int:
    """Number of driving days the leg needs under the (effective) preferences."""
    prefs = preferences.effective()
    return math.ceil(max(
        duration_hours / prefs.max_daily_drive_hours,
        distance_km / prefs.max_daily_distance_km,
    ))


def suggest_splits(distance_km: float, duration_hours: float, days: int) -> List[SplitPoint]:
    """
    Evenly spaced split points for a leg spread over ``days`` days.

    Split k (1-based) sits at proportion k/days of both the distance and the
    duration. No split is produced when days <= 1.
    """
    if days <= 1:
        return []

    return [
        SplitPoint(
            day=day,
            stop_location=PLACEHOLDER_STOP.format(day=day),
            distance_from_origin_km=distance_km * day / days,
            hours_from_origin=duration_hours * day / days,
        )
        for day in range(1, days)
    ]


def validate(leg: Leg, preferences: Preferences) -> ValidationResult:
    """
    Evaluate one computed leg against the daily constraints.

    Args:
        leg: Computed (or estimated) leg
        preferences: User preferences; unset limits take the defaults

    Returns:
        ValidationResult; when invalid, both issue strings are emitted if both
        limits are exceeded, and suggested_splits holds days_needed - 1 points
        (empty when days_needed <= 1)
    """
    prefs = preferences.effective()
    max_hours = prefs.max_daily_drive_hours
    max_km = prefs.max_daily_distance_km

    issues = []
    if leg.duration_hours > max_hours:
        issues.append(
            f"Drive time ({leg.duration_hours:.1f}h) exceeds maximum daily drive time ({max_hours:g}h)"
        )
    if leg.distance_km > max_km:
        issues.append(
            f"Distance ({leg.distance_km:.1f}km) exceeds maximum daily distance ({max_km:g}km)"
        )

    if not issues:
        return ValidationResult(valid=True)

    days = days_needed(leg.distance_km, leg.duration_hours, prefs)
    return ValidationResult(
        valid=False,
        issues=issues,
        suggested_splits=suggest_splits(leg.distance_km, leg.duration_hours, days),
        days_needed=days,
    )
