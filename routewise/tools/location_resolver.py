"""
Nearest-town resolution for locations the directions provider cannot route to.

Natural features ("Mount Fitz Roy", "Torres del Paine") usually geocode fine
but are not routable. Reverse geocoding their coordinates, restricted to
localities and administrative areas, yields a nearby town that is.
"""

from typing import List

from ..schemas.route import GeocodeResult, NearestTown
from ..utils.exceptions import LocationResolutionError, ProviderError
from ..utils.logger import get_logger
from .distance import distance_between
from .geocoding import GeocodingProvider, TOWN_RESULT_TYPES

logger = get_logger(__name__)


def pick_town(results: List[GeocodeResult]):
    """
    Choose the best town name among reverse geocoding results.

    Ranking: a locality wins outright; otherwise the first
    administrative_area_level_1 result, then the first
    administrative_area_level_2 result, then the first result at all.

    Returns:
        (name, confidence) tuple
    """
    level_1 = None
    level_2 = None
    for result in results:
        if "locality" in result.types:
            return result.formatted_address, "high"
        if "administrative_area_level_1" in result.types and level_1 is None:
            level_1 = result.formatted_address
        elif "administrative_area_level_2" in result.types and level_2 is None:
            level_2 = result.formatted_address

    if level_1:
        return level_1, "medium"
    if level_2:
        return level_2, "low"
    return results[0].formatted_address, "low"


class LocationResolver:
    """Fallback layer over a GeocodingProvider."""

    def __init__(self, geocoder: GeocodingProvider):
        self.geocoder = geocoder

    def find_nearest_town(self, raw_location: str) -> NearestTown:
        """
        Resolve a raw location to the nearest named town.

        Args:
            raw_location: Location the directions provider did not recognize

        Returns:
            NearestTown with confidence and the great-circle distance between
            the original coordinates and the chosen result

        Raises:
            LocationResolutionError: Geocoding or reverse geocoding failed
        """
        if not raw_location or not raw_location.strip():
            raise LocationResolutionError("Cannot resolve an empty location")

        logger.info("nearest_town_lookup", location=raw_location)

        try:
            origin_hit = self.geocoder.geocode(raw_location)
            results = self.geocoder.reverse_geocode(origin_hit.coordinates, TOWN_RESULT_TYPES)
        except ProviderError as e:
            logger.warning("nearest_town_failed", location=raw_location, error=str(e))
            raise LocationResolutionError(
                f"Could not find a town near {raw_location}: {e.message}",
                {"location": raw_location}
            ) from e

        if not results:
            raise LocationResolutionError(f"No towns found near {raw_location}", {"location": raw_location})

        name, confidence = pick_town(results)
        distance_km = distance_between(origin_hit.coordinates, results[0].coordinates)

        logger.info(
            "nearest_town_found",
            location=raw_location,
            nearest_town=name,
            confidence=confidence,
            distance_km=round(distance_km, 1)
        )

        return NearestTown(
            original_location=raw_location,
            resolved_name=name,
            coordinates=results[0].coordinates,
            confidence=confidence,
            distance_km=distance_km,
        )
