import math
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from routewise.agents.optimizer import RouteOptimizer
from routewise.memory.trip_store import TripStore
from routewise.schemas.route import GeocodeResult, Leg, stable_route_id
from routewise.tools.distance import EARTH_RADIUS_KM, distance_between
from routewise.utils.exceptions import LocationNotFoundError, RequestDeniedError

KM_PER_DEGREE = 2 * math.pi * EARTH_RADIUS_KM / 360


def on_equator(km: float) -> Tuple[float, float]:
    """Coordinates ``km`` kilometers east of (0, 0) along the equator."""
    return 0.0, km / KM_PER_DEGREE


class TableDirections:
    """
    Directions stub over a straight road.

    Every known place sits at a kilometer mark; a leg's distance is the
    difference of the marks and its duration assumes a constant speed.
    Unknown names raise LocationNotFoundError like a ZERO_RESULTS status.
    """

    def __init__(self, positions: Dict[str, float], speed_kmh: float = 100.0, denied: bool = False):
        self.positions = positions
        self.speed_kmh = speed_kmh
        self.denied = denied
        self.calls: List[Tuple[str, str, object]] = []

    def compute_leg(self, origin, destination, options=None) -> Leg:
        self.calls.append((origin, destination, options))
        if self.denied:
            raise RequestDeniedError("Google Maps API key has restrictions. Please configure the API key.")
        for name in (origin, destination):
            if name not in self.positions:
                raise LocationNotFoundError(f"ZERO_RESULTS: no results for {origin} to {destination}")

        distance_km = abs(self.positions[destination] - self.positions[origin])
        duration_hours = distance_km / self.speed_kmh
        return Leg(
            origin=f"{origin} (formatted)",
            destination=f"{destination} (formatted)",
            distance_km=distance_km,
            duration_hours=duration_hours,
            distance_text=f"{distance_km:.0f} km",
            duration_text=f"{duration_hours:.1f} hours",
            route_id=stable_route_id(origin, destination, distance_km, duration_hours),
        )


class TableGeocoder:
    """
    Geocoding stub: fixed coordinates per name, and reverse lookups that
    return the configured towns within ``radius_km`` of the point, nearest first.
    """

    def __init__(
        self,
        coordinates: Dict[str, Tuple[float, float]],
        towns: Optional[List[GeocodeResult]] = None,
        radius_km: float = 60.0,
    ):
        self.coordinates = coordinates
        self.towns = towns or []
        self.radius_km = radius_km
        self.geocode_calls: List[str] = []
        self.reverse_calls: List[Tuple[float, float]] = []

    def geocode(self, text: str) -> GeocodeResult:
        self.geocode_calls.append(text)
        if text not in self.coordinates:
            raise LocationNotFoundError(f"No coordinates found for location: {text}")
        return GeocodeResult(coordinates=self.coordinates[text], formatted_address=text, types=["locality"])

    def reverse_geocode(self, coordinates: Sequence[float], result_types: Sequence[str] = ()) -> List[GeocodeResult]:
        point = (coordinates[0], coordinates[1])
        self.reverse_calls.append(point)
        matches = [
            town for town in self.towns
            if distance_between(point, town.coordinates) <= self.radius_km
            and (not result_types or set(town.types) & set(result_types))
        ]
        if not matches:
            raise LocationNotFoundError(f"No results found for coordinates: {point[0]},{point[1]}")
        return sorted(matches, key=lambda town: distance_between(point, town.coordinates))


def town(name: str, coordinates: Tuple[float, float], *types: str) -> GeocodeResult:
    return GeocodeResult(coordinates=coordinates, formatted_address=name, types=list(types or ("locality", "political")))


@pytest.fixture
def no_sleep():
    delays = []
    return delays.append


@pytest.fixture
def cross_country():
    return TableDirections({"New York": 0, "Los Angeles": 4000})


@pytest.fixture
def patagonia_directions():
    return TableDirections({"El Calafate": 0, "El Chaltén": 215, "Ushuaia": 870})


@pytest.fixture
def patagonia_geocoder():
    return TableGeocoder(
        coordinates={"Mount Fitz Roy": (-49.2714, -73.0431)},
        towns=[town("El Chaltén", (-49.3315, -72.8863))],
        radius_km=100.0,
    )


@pytest.fixture
def make_optimizer(no_sleep):
    def factory(directions, geocoder=None, **kwargs):
        kwargs.setdefault("request_delay", 0)
        return RouteOptimizer(directions, geocoder=geocoder, sleep=no_sleep, **kwargs)
    return factory


@pytest.fixture
def store():
    return TripStore()
