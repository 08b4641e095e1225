"""Forward and reverse geocoding backed by the Google Geocoding API."""

from typing import List, Optional, Protocol, Sequence, Dict, Any

from ..schemas.route import GeocodeResult
from ..utils.exceptions import LocationNotFoundError
from ..utils.logger import get_logger
from .directions import GoogleMapsHTTP

logger = get_logger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

# Result types accepted when looking for a town near some coordinates
TOWN_RESULT_TYPES = ("locality", "administrative_area_level_1", "administrative_area_level_2")


class GeocodingProvider(Protocol):
    """Resolves place text to coordinates and coordinates back to places."""

    def geocode(self, text: str) -> GeocodeResult:
        ...

    def reverse_geocode(
        self,
        coordinates: Sequence[float],
        result_types: Sequence[str] = TOWN_RESULT_TYPES,
    ) -> List[GeocodeResult]:
        ...


def _parse_result(result: Dict[str, Any]) -> Optional[GeocodeResult]:
    location = (result.get("geometry") or {}).get("location") or {}
    if location.get("lat") is None or location.get("lng") is None:
        return None
    return GeocodeResult(
        coordinates=(float(location["lat"]), float(location["lng"])),
        formatted_address=result.get("formatted_address", ""),
        types=result.get("types") or [],
        place_id=result.get("place_id"),
    )


class GoogleGeocodingClient(GoogleMapsHTTP):
    """GeocodingProvider implementation for the Google Geocoding web service."""

    def geocode(self, text: str) -> GeocodeResult:
        """
        Geocode a location to its most relevant result.

        Args:
            text: Free-text place ("Mount Fitz Roy", "Curitiba, Brazil")

        Returns:
            First GeocodeResult returned by the API

        Raises:
            LocationNotFoundError: No result carried coordinates
            ProviderError: Any other provider failure
        """
        logger.info("geocode_request", location=text)
        payload = self._get_json(GEOCODE_URL, {"address": text}, text)

        for raw in payload.get("results") or []:
            parsed = _parse_result(raw)
            if parsed:
                logger.info(
                    "geocoded",
                    location=text,
                    formatted_address=parsed.formatted_address,
                    coordinates=parsed.coordinates
                )
                return parsed

        logger.warning("geocode_no_coordinates", location=text)
        raise LocationNotFoundError(f"No coordinates found for location: {text}")

    def reverse_geocode(
        self,
        coordinates: Sequence[float],
        result_types: Sequence[str] = TOWN_RESULT_TYPES,
    ) -> List[GeocodeResult]:
        """
        Reverse geocode coordinates, restricted to the given result types.

        Returns:
            Results in API order (most specific first)
        """
        lat, lng = coordinates
        params = {"latlng": f"{lat},{lng}"}
        if result_types:
            params["result_type"] = "|".join(result_types)

        logger.info("reverse_geocode_request", lat=lat, lng=lng, result_types=list(result_types))
        payload = self._get_json(GEOCODE_URL, params, f"{lat},{lng}")

        results = [r for r in (_parse_result(raw) for raw in payload.get("results") or []) if r]
        if not results:
            raise LocationNotFoundError(f"No results found for coordinates: {lat},{lng}")
        return results
