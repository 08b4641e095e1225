"""
Great-circle distance tools.

This module provides the haversine distance used to report how far a
resolved town is from the original location, and the great-circle
interpolation used to sample candidate stops along an over-long leg.
"""

import logging
import math
from typing import Tuple, List

logger = logging.getLogger(__name__)

# Earth radius in kilometers
EARTH_RADIUS_KM = 6371.0

Coordinates = Tuple[float, float]


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on Earth.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)

    dlat = lat2_rad - lat1_rad
    dlon = math.radians(lon2 - lon1)

    a = math.sin(dlat / 2)**2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_between(point_a: Coordinates, point_b: Coordinates) -> float:
    """Haversine distance between two (lat, lng) pairs, in kilometers."""
    return haversine_distance(point_a[0], point_a[1], point_b[0], point_b[1])


def interpolate_great_circle(start: Coordinates, end: Coordinates, fraction: float) -> Coordinates:
    """
    Point at ``fraction`` (0..1) of the way along the great circle from start to end.

    Args:
        start: (lat, lng) of the first point
        end: (lat, lng) of the second point
        fraction: Progress along the arc

    Returns:
        (lat, lng) of the intermediate point
    """
    lat1, lon1 = map(math.radians, start)
    lat2, lon2 = map(math.radians, end)

    delta = distance_between(start, end) / EARTH_RADIUS_KM
    if delta == 0:
        return start

    a = math.sin((1 - fraction) * delta) / math.sin(delta)
    b = math.sin(fraction * delta) / math.sin(delta)

    x = a * math.cos(lat1) * math.cos(lon1) + b * math.cos(lat2) * math.cos(lon2)
    y = a * math.cos(lat1) * math.sin(lon1) + b * math.cos(lat2) * math.sin(lon2)
    z = a * math.sin(lat1) + b * math.sin(lat2)

    lat = math.atan2(z, math.sqrt(x**2 + y**2))
    lon = math.atan2(y, x)
    return math.degrees(lat), math.degrees(lon)


def sample_along(start: Coordinates, end: Coordinates, parts: int) -> List[Coordinates]:
    """Return the ``parts - 1`` evenly spaced interior points between start and end."""
    points = [interpolate_great_circle(start, end, step / parts) for step in range(1, parts)]
    logger.debug(f"Sampled {len(points)} points between {start} and {end}")
    return points
