"""
Route Optimizer for the chat-turn workflow.

Computes every requested segment through the DirectionsProvider, validates
it against the daily limits and replaces any over-limit segment with a chain
of shorter ones. Unrecognized endpoints are retried once through the
LocationResolver. Failures of a single segment are recorded as warnings and
never abort the rest of the plan.
"""

import logging
import re
import time
from typing import Callable, Dict, List, Optional, Tuple

from ..schemas.route import (
    GeocodeResult,
    Leg,
    NearestTown,
    Preferences,
    ResolvedFrom,
    RoutePlan,
    RouteSummary,
    Segment,
    SegmentRequest,
    ValidationResult,
    stable_route_id,
)
from ..tools.directions import DirectionsOptions, DirectionsProvider
from ..tools.distance import Coordinates, distance_between, interpolate_great_circle, sample_along
from ..tools.geocoding import GeocodingProvider
from ..tools.location_resolver import LocationResolver
from ..tools.narrative import format_duration
from ..tools.validator import validate
from ..utils.config import settings
from ..utils.exceptions import (
    DecompositionExhausted,
    LocationNotFoundError,
    LocationResolutionError,
    ProviderError,
    RequestDeniedError,
)

logger = logging.getLogger(__name__)

SPLIT_STOP_LABEL = "Intermediate stop {day} between {origin} and {destination}"
AGGREGATE_FAILURE = "No routes could be calculated successfully"

_SPLIT_STOP_PATTERN = re.compile(r"^Intermediate stop \d+ between .+ and .+$")


def is_split_stop(name: str) -> bool:
    """True for stop names generated from SPLIT_STOP_LABEL; those are never geocoded."""
    return bool(_SPLIT_STOP_PATTERN.match(name))


class _Run:
    """Mutable bookkeeping for one optimize()/calculate() call."""

    def __init__(self, preferences: Preferences):
        self.preferences = preferences
        self.options = DirectionsOptions(avoid=preferences.avoid)
        self.warnings: List[str] = []
        self.resolutions: Dict[str, Optional[NearestTown]] = {}
        self.coordinates: Dict[str, Optional[Coordinates]] = {}
        self.calls = 0
        self.breakdown_applied = False


class RouteOptimizer:
    """
    Turns SegmentRequests into a validated RoutePlan.

    Args:
        directions: DirectionsProvider used for every leg
        geocoder: Optional GeocodingProvider; enables stop naming, stop
            discovery and (unless ``resolver`` is given) location resolution
        resolver: Optional LocationResolver override
        max_split_depth: Recursion cap for decomposition
        request_delay: Seconds to wait between consecutive directions calls
        sleep: Sleep function (injectable for tests)
    """

    def __init__(
        self,
        directions: DirectionsProvider,
        geocoder: Optional[GeocodingProvider] = None,
        resolver: Optional[LocationResolver] = None,
        max_split_depth: Optional[int] = None,
        request_delay: Optional[float] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.directions = directions
        self.geocoder = geocoder
        self.resolver = resolver or (LocationResolver(geocoder) if geocoder is not None else None)
        self.max_split_depth = settings.max_split_depth if max_split_depth is None else max_split_depth
        self.request_delay = settings.directions_request_delay if request_delay is None else request_delay
        self.sleep = sleep or time.sleep

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def optimize(self, requests: List[SegmentRequest], preferences: Optional[Preferences] = None) -> RoutePlan:
        """
        Compute, validate and break down every request.

        Args:
            requests: Ordered segment requests
            preferences: Daily limits; unset values take the defaults

        Returns:
            RoutePlan whose segments are the final leaves in request order
        """
        return self._run(requests, preferences, decompose=True)

    def calculate(self, requests: List[SegmentRequest], preferences: Optional[Preferences] = None) -> RoutePlan:
        """Compute and validate every request without decomposing invalid ones."""
        return self._run(requests, preferences, decompose=False)

    def _run(self, requests: List[SegmentRequest], preferences: Optional[Preferences], decompose: bool) -> RoutePlan:
        run = _Run((preferences or Preferences()).effective())
        logger.info(f"Optimizing {len(requests)} segments (decompose={decompose})")

        if not requests:
            return RoutePlan.failed(AGGREGATE_FAILURE, ["No route segments were provided"], run.preferences)

        segments: List[Segment] = []
        for request in requests:
            try:
                segments.extend(self._process(request, run, depth=0, decompose=decompose))
            except RequestDeniedError as e:
                logger.error(f"Directions request denied: {e.message}")
                return RoutePlan.failed(e.message, run.warnings + [e.message], run.preferences)
            except (ProviderError, LocationResolutionError) as e:
                logger.warning(f"Failed to calculate {request.origin} to {request.destination}: {e.message}")
                run.warnings.append(
                    f"Failed to calculate route from {request.origin} to {request.destination}: {e.message}"
                )

        if not segments:
            return RoutePlan.failed(AGGREGATE_FAILURE, run.warnings, run.preferences)

        notes = [s.resolved_from.note() for s in segments if s.resolved_from is not None]
        summary = RouteSummary.from_segments(segments)
        logger.info(
            f"Route plan ready: {summary.total_segments} segments, "
            f"{summary.total_distance_km} km, {summary.invalid_segments} invalid"
        )

        return RoutePlan(
            success=True,
            segments=segments,
            summary=summary,
            warnings=run.warnings + [n for n in notes if n],
            preferences=run.preferences,
            breakdown_applied=run.breakdown_applied,
        )

    # ------------------------------------------------------------------
    # Per-segment pipeline
    # ------------------------------------------------------------------

    def _process(self, request: SegmentRequest, run: _Run, depth: int, decompose: bool = True) -> List[Segment]:
        segment, validation = self._evaluate(request, run)
        return self._settle(segment, validation, run, depth, decompose)

    def _evaluate(self, request: SegmentRequest, run: _Run) -> Tuple[Segment, ValidationResult]:
        leg, resolved_from = self._compute(request, run)
        validation = validate(leg, run.preferences)
        return Segment.from_leg(request, leg, validation, resolved_from), validation

    def _settle(
        self,
        segment: Segment,
        validation: ValidationResult,
        run: _Run,
        depth: int,
        decompose: bool = True,
    ) -> List[Segment]:
        """Accept a computed segment, or replace it by its decomposition."""
        if validation.valid or not decompose:
            return [segment]

        try:
            return self._decompose(segment, validation, run, depth)
        except DecompositionExhausted as e:
            logger.warning(e.message)
            run.warnings.append(e.message)
            return [segment]

    def _call_directions(self, origin: str, destination: str, waypoints: List[str], run: _Run) -> Leg:
        if run.calls and self.request_delay > 0:
            self.sleep(self.request_delay)
        run.calls += 1

        options = run.options.model_copy(update={"waypoints": list(waypoints)})
        return self.directions.compute_leg(origin, destination, options)

    def _compute(self, request: SegmentRequest, run: _Run) -> Tuple[Leg, Optional[ResolvedFrom]]:
        """Compute one leg, falling back to nearest-town resolution when an endpoint is unknown."""
        origin_town = run.resolutions.get(request.origin)
        destination_town = run.resolutions.get(request.destination)

        try:
            leg = self._call_directions(
                origin_town.resolved_name if origin_town else request.origin,
                destination_town.resolved_name if destination_town else request.destination,
                request.waypoints,
                run,
            )
        except LocationNotFoundError:
            if self.resolver is None:
                raise
            logger.info(f"Location not recognized for {request.origin} to {request.destination}, resolving")

            origin_town = origin_town or self._resolve(request.origin, run)
            destination_town = destination_town or self._resolve(request.destination, run)
            if origin_town is None and destination_town is None:
                raise

            leg = self._call_directions(
                origin_town.resolved_name if origin_town else request.origin,
                destination_town.resolved_name if destination_town else request.destination,
                request.waypoints,
                run,
            )

        if origin_town is None and destination_town is None:
            return leg, None

        return leg, ResolvedFrom(
            original_origin=request.origin,
            original_destination=request.destination,
            origin_resolution=origin_town,
            destination_resolution=destination_town,
        )

    def _resolve(self, name: str, run: _Run) -> Optional[NearestTown]:
        if name in run.resolutions:
            return run.resolutions[name]
        if is_split_stop(name):
            logger.info(f"Not resolving generated stop '{name}'")
            run.resolutions[name] = None
            return None
        try:
            town = self.resolver.find_nearest_town(name)
        except LocationResolutionError as e:
            logger.info(f"Could not resolve {name}: {e.message}")
            town = None
        run.resolutions[name] = town
        return town

    # ------------------------------------------------------------------
    # Decomposition
    # ------------------------------------------------------------------

    def _decompose(self, segment: Segment, validation: ValidationResult, run: _Run, depth: int) -> List[Segment]:
        """
        Replace an over-limit segment by a chain of shorter leaves.

        Strategies are tried in order: named split points, discovered towns,
        then estimated placeholder legs. A candidate chain is rejected as
        soon as one of its direct sub-segments is not strictly shorter and
        quicker than the parent, before that sub-segment is split any further.

        Raises:
            DecompositionExhausted: Depth cap reached or no strategy worked
        """
        label = f"{segment.origin} to {segment.destination}"
        if depth >= self.max_split_depth:
            raise DecompositionExhausted(
                f"Could not break down {label}: maximum split depth ({self.max_split_depth}) reached",
                {"depth": depth},
            )

        strategies = (
            ("suggested_splits", self._split_at_suggested_points),
            ("stop_discovery", self._split_at_discovered_stops),
            ("placeholders", self._split_with_placeholders),
        )
        for name, strategy in strategies:
            warnings_before = len(run.warnings)
            try:
                leaves = strategy(segment, validation, run, depth)
            except RequestDeniedError:
                raise
            except (ProviderError, LocationResolutionError) as e:
                logger.info(f"Decomposition '{name}' failed for {label}: {e.message}")
                leaves = None

            if leaves:
                logger.info(f"Split {label} into {len(leaves)} segments using '{name}'")
                run.breakdown_applied = True
                return leaves

            # Discard warnings raised while exploring a rejected chain
            del run.warnings[warnings_before:]

        raise DecompositionExhausted(
            f"Could not break down {label} into segments within the daily limits",
            {"issues": segment.issues},
        )

    @staticmethod
    def _shrinks(parent: Segment, child: Segment) -> bool:
        return child.distance_km < parent.distance_km and child.duration_hours < parent.duration_hours

    def _recompute_chain(self, parent: Segment, chain: List[str], run: _Run, depth: int) -> Optional[List[Segment]]:
        """
        Compute every leg of ``chain`` and settle each one at ``depth + 1``.

        Returns None when a direct sub-segment does not shrink; no leg of the
        chain is decomposed until all of them have been checked.
        """
        children: List[Tuple[Segment, ValidationResult]] = []
        for origin, destination in zip(chain, chain[1:]):
            child, validation = self._evaluate(SegmentRequest(origin=origin, destination=destination), run)
            if not self._shrinks(parent, child):
                logger.info(
                    f"Rejected stop chain for {parent.origin} to {parent.destination}: "
                    f"{origin} to {destination} is {child.distance_km:.0f} km"
                )
                return None
            children.append((child, validation))

        leaves: List[Segment] = []
        for child, validation in children:
            leaves.extend(self._settle(child, validation, run, depth + 1))
        return leaves

    def _split_at_suggested_points(self, segment, validation, run, depth) -> Optional[List[Segment]]:
        """Chain through the towns nearest to the evenly spaced split points; every point must be named."""
        if not validation.suggested_splits or segment.distance_km <= 0:
            return None

        endpoints = self._endpoint_coordinates(segment, run)
        if endpoints is None:
            return None

        chain = [segment.origin]
        for split in validation.suggested_splits:
            fraction = split.distance_from_origin_km / segment.distance_km
            town = self._town_at(interpolate_great_circle(endpoints[0], endpoints[1], fraction))
            if town is None or town.formatted_address in chain or town.formatted_address == segment.destination:
                return None
            chain.append(town.formatted_address)
        chain.append(segment.destination)

        return self._recompute_chain(segment, chain, run, depth)

    def _split_at_discovered_stops(self, segment, validation, run, depth) -> Optional[List[Segment]]:
        """
        Chain through real towns found along the great circle.

        Twice as many points as driving days are sampled and reverse geocoded;
        the chain then greedily hops to the farthest town whose straight-line
        distance from the current stop respects the daily distance cap.
        """
        endpoints = self._endpoint_coordinates(segment, run)
        if endpoints is None:
            return None

        start, end = endpoints
        max_hop = run.preferences.max_daily_distance_km

        candidates: Dict[str, Coordinates] = {}
        for point in sample_along(start, end, 2 * max(validation.days_needed, 2)):
            town = self._town_at(point)
            if town is None or town.formatted_address in (segment.origin, segment.destination):
                continue
            candidates.setdefault(town.formatted_address, town.coordinates)

        chain: List[Tuple[str, Coordinates]] = [(segment.origin, start)]
        while distance_between(chain[-1][1], end) > max_hop:
            current = chain[-1][1]
            progress = distance_between(start, current)
            reachable = [
                (name, point) for name, point in candidates.items()
                if distance_between(current, point) <= max_hop and distance_between(start, point) > progress
            ]
            if not reachable:
                return None
            chain.append(max(reachable, key=lambda candidate: distance_between(start, candidate[1])))
        chain.append((segment.destination, end))

        if len(chain) <= 2:
            return None
        return self._recompute_chain(segment, [name for name, _ in chain], run, depth)

    def _split_with_placeholders(self, segment, validation, run, depth) -> Optional[List[Segment]]:
        days = validation.days_needed
        if days <= 1:
            return None

        chain = [segment.origin]
        chain.extend(
            SPLIT_STOP_LABEL.format(day=split.day, origin=segment.origin, destination=segment.destination)
            for split in validation.suggested_splits
        )
        chain.append(segment.destination)

        leaves = []
        for origin, destination in zip(chain, chain[1:]):
            distance_km = segment.distance_km / days
            duration_hours = segment.duration_hours / days
            leg = Leg(
                origin=origin,
                destination=destination,
                distance_km=distance_km,
                duration_hours=duration_hours,
                distance_text=f"{distance_km:,.0f} km",
                duration_text=format_duration(duration_hours),
                route_id=stable_route_id(origin, destination, distance_km, duration_hours),
                estimated=True,
            )
            request = SegmentRequest(origin=origin, destination=destination)
            leaves.append(Segment.from_leg(request, leg, validate(leg, run.preferences)))

        run.warnings.append(
            f"Stops between {segment.origin} and {segment.destination} are estimated; "
            "distances and times for those days are approximate"
        )
        return leaves

    # ------------------------------------------------------------------
    # Geocoding helpers
    # ------------------------------------------------------------------

    def _endpoint_coordinates(self, segment: Segment, run: _Run) -> Optional[Tuple[Coordinates, Coordinates]]:
        if self.geocoder is None:
            return None
        start = self._coordinates_of(segment.origin, run)
        end = self._coordinates_of(segment.destination, run)
        if start is None or end is None:
            return None
        return start, end

    def _coordinates_of(self, name: str, run: _Run) -> Optional[Coordinates]:
        if name not in run.coordinates:
            town = run.resolutions.get(name)
            try:
                run.coordinates[name] = town.coordinates if town else self.geocoder.geocode(name).coordinates
            except LocationNotFoundError:
                run.coordinates[name] = None
        return run.coordinates[name]

    def _town_at(self, point: Coordinates) -> Optional[GeocodeResult]:
        try:
            results = self.geocoder.reverse_geocode(point, ("locality",))
        except LocationNotFoundError:
            return None
        return results[0] if results else None
