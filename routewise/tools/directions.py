"""Driving directions provider backed by the Google Directions API."""

import time
import requests
from typing import List, Optional, Protocol, Callable, Dict, Any
from pydantic import BaseModel, Field

from ..schemas.route import Leg, stable_route_id
from ..utils.config import settings
from ..utils.exceptions import (
    ConfigurationError,
    LocationNotFoundError,
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    RequestDeniedError,
)
from ..utils.logger import get_logger
from ..utils.retry import retry_with_exponential_backoff

logger = get_logger(__name__)

DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"

# Avoidance terms the Directions API understands; anything else is ignored
SUPPORTED_AVOID = ("tolls", "highways", "ferries")

NOT_FOUND_STATUSES = ("ZERO_RESULTS", "NOT_FOUND")


class DirectionsOptions(BaseModel):
    """Per-call routing options."""
    avoid: List[str] = Field(default_factory=list)
    waypoints: List[str] = Field(default_factory=list)


class DirectionsProvider(Protocol):
    """Anything that can turn two place names into a drivable Leg."""

    def compute_leg(self, origin: str, destination: str, options: Optional[DirectionsOptions] = None) -> Leg:
        ...


def check_google_status(payload: Dict[str, Any], subject: str) -> None:
    """
    Raise the matching ProviderError for a non-OK Google Maps status.

    Args:
        payload: Decoded JSON response
        subject: What was being looked up, for error messages
    """
    status = payload.get("status", "UNKNOWN_ERROR")
    if status == "OK":
        return

    message = payload.get("error_message") or f"API returned status: {status}"
    context = {"status": status, "subject": subject}

    if status in NOT_FOUND_STATUSES:
        raise LocationNotFoundError(f"{status}: no results for {subject}", context)
    if status == "REQUEST_DENIED":
        raise RequestDeniedError(
            "Google Maps API key has restrictions. Please configure the API key "
            f"to allow server-side requests. ({message})",
            context,
        )
    if status == "OVER_QUERY_LIMIT":
        raise ProviderRateLimitError(f"Google Maps quota exceeded: {message}", context=context)
    raise ProviderError(f"Google Maps API error: {message}", context)


class GoogleMapsHTTP:
    """Shared GET-with-timeout-and-retry for the Google Maps web services."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        max_attempts: Optional[int] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.api_key = api_key or settings.google_maps_api_key
        if not self.api_key:
            raise ConfigurationError("GOOGLE_MAPS_API_KEY is not configured")
        self.timeout = timeout or settings.request_timeout
        self.session = session or requests.Session()
        self._get_json = retry_with_exponential_backoff(
            max_attempts=max_attempts or settings.provider_max_attempts,
            base_delay=0.5,
            max_delay=5.0,
            sleep=sleep,
        )(self._get_json_once)

    def _get_json_once(self, url: str, params: Dict[str, Any], subject: str) -> Dict[str, Any]:
        try:
            response = self.session.get(url, params={**params, "key": self.api_key}, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise ProviderTimeoutError(f"Request for {subject} timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"Request for {subject} failed: {e}") from e

        if response.status_code != 200:
            logger.error(
                "google_maps_http_error",
                url=url,
                status_code=response.status_code,
                subject=subject
            )
            raise ProviderError(f"Failed to reach Google Maps: HTTP {response.status_code}")

        payload = response.json()
        check_google_status(payload, subject)
        return payload


class GoogleDirectionsClient(GoogleMapsHTTP):
    """DirectionsProvider implementation for the Google Directions web service."""

    def compute_leg(self, origin: str, destination: str, options: Optional[DirectionsOptions] = None) -> Leg:
        """
        Calculate the driving leg between two places.

        Args:
            origin: Starting location
            destination: Ending location
            options: Avoidance terms and waypoints

        Returns:
            Leg with the summed distance/duration of the returned route

        Raises:
            LocationNotFoundError: An endpoint was not recognized
            ProviderError: Any other provider failure (timeouts included)
        """
        options = options or DirectionsOptions()
        params = {
            "origin": origin,
            "destination": destination,
            "mode": "driving",
            "units": "metric",
        }
        avoid = [a for a in options.avoid if a in SUPPORTED_AVOID]
        if avoid:
            params["avoid"] = "|".join(avoid)
        if options.waypoints:
            params["waypoints"] = "|".join(options.waypoints)

        subject = f"{origin} to {destination}"
        logger.info("directions_request", origin=origin, destination=destination, waypoints=options.waypoints)

        started = time.monotonic()
        payload = self._get_json(DIRECTIONS_URL, params, subject)
        leg = parse_directions_response(payload, subject)

        logger.info(
            "directions_computed",
            origin=origin,
            destination=destination,
            distance_km=leg.distance_km,
            duration_hours=leg.duration_hours,
            elapsed_seconds=round(time.monotonic() - started, 3)
        )
        return leg


def parse_directions_response(payload: Dict[str, Any], subject: str) -> Leg:
    """
    Convert a Directions API payload into a Leg.

    Multi-leg routes (waypoints) are summed into a single Leg.
    """
    routes = payload.get("routes") or []
    if not routes:
        raise LocationNotFoundError(f"No routes found for {subject}", {"status": "ZERO_RESULTS"})

    legs = routes[0].get("legs") or []
    if not legs:
        raise LocationNotFoundError(f"No legs found for {subject}", {"status": "ZERO_RESULTS"})

    distance_km = sum(leg["distance"]["value"] for leg in legs) / 1000.0
    duration_hours = sum(leg["duration"]["value"] for leg in legs) / 3600.0

    if len(legs) == 1:
        distance_text = legs[0]["distance"].get("text", "")
        duration_text = legs[0]["duration"].get("text", "")
    else:
        distance_text = f"{distance_km:,.0f} km"
        duration_text = f"{duration_hours:.1f} hours"

    start_address = legs[0].get("start_address", "")
    end_address = legs[-1].get("end_address", "")

    return Leg(
        origin=start_address,
        destination=end_address,
        distance_km=distance_km,
        duration_hours=duration_hours,
        distance_text=distance_text,
        duration_text=duration_text,
        route_id=stable_route_id(start_address, end_address, distance_km, duration_hours),
    )
