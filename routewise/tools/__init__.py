"""
Tools package for the route planning engine.

This package contains:
- Great-circle distance and interpolation
- Directions and geocoding providers (Google Maps web services)
- Nearest-town resolution for unroutable locations
- Segment validation against daily driving limits
- Plain-text narration of route plans
"""

from .distance import haversine_distance, distance_between, interpolate_great_circle, sample_along
from .directions import DirectionsOptions, DirectionsProvider, GoogleDirectionsClient
from .geocoding import GeocodingProvider, GoogleGeocodingClient
from .location_resolver import LocationResolver, pick_town
from .validator import validate, suggest_splits, days_needed
from .narrative import format_duration, generate_recommendations, format_route_message

__all__ = [
    "haversine_distance",
    "distance_between",
    "interpolate_great_circle",
    "sample_along",
    "DirectionsOptions",
    "DirectionsProvider",
    "GoogleDirectionsClient",
    "GeocodingProvider",
    "GoogleGeocodingClient",
    "LocationResolver",
    "pick_town",
    "validate",
    "suggest_splits",
    "days_needed",
    "format_duration",
    "generate_recommendations",
    "format_route_message",
]
