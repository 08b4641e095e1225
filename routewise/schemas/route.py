"""
Pydantic schemas for route planning data structures.

A RoutePlan is the only artifact persisted back into trip state. Segment
origin/destination hold the *requested* names, so consecutive segments chain
exactly; the provider's formatted addresses stay on the Leg.
"""
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Literal
from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator

from ..utils.config import settings


AVOIDABLE_FEATURES = ("tolls", "highways", "ferries", "unpaved")


# ============================================================================
# INPUT MODELS
# ============================================================================

class Preferences(BaseModel):
    """Daily driving constraints. Unset limits are defaulted by effective()."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    max_daily_drive_hours: Optional[float] = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("max_daily_drive_hours", "max_daily_drive_h"),
        description="Maximum hours to drive in a single day",
    )
    max_daily_distance_km: Optional[float] = Field(
        default=None,
        gt=0,
        description="Maximum distance to drive in a single day (km)",
    )
    avoid: List[str] = Field(default_factory=list, description="Things to avoid (tolls, highways, ferries)")
    daytime_only: Optional[bool] = Field(default=None, description="Whether to drive only during daytime")

    @field_validator("avoid", mode="before")
    @classmethod
    def _normalize_avoid(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        seen = []
        for item in value:
            item = str(item).strip().lower()
            if item and item not in seen:
                seen.append(item)
        return seen

    def effective(self) -> "Preferences":
        """Return a copy with unset daily limits replaced by the configured defaults."""
        return self.model_copy(update={
            "max_daily_drive_hours": self.max_daily_drive_hours or settings.default_max_daily_drive_hours,
            "max_daily_distance_km": self.max_daily_distance_km or settings.default_max_daily_distance_km,
        })

    def merged_with(self, other: Optional["Preferences"]) -> "Preferences":
        """Overlay the fields that are set on ``other`` onto this instance."""
        if other is None:
            return self
        update = {}
        if other.max_daily_drive_hours is not None:
            update["max_daily_drive_hours"] = other.max_daily_drive_hours
        if other.max_daily_distance_km is not None:
            update["max_daily_distance_km"] = other.max_daily_distance_km
        if other.avoid:
            update["avoid"] = other.avoid
        if other.daytime_only is not None:
            update["daytime_only"] = other.daytime_only
        return self.model_copy(update=update)


class SegmentRequest(BaseModel):
    """One requested leg between two named places."""
    model_config = ConfigDict(frozen=True)

    origin: str = Field(..., min_length=1, description="Starting location (city, address, or coordinates)")
    destination: str = Field(..., min_length=1, description="Ending location (city, address, or coordinates)")
    waypoints: List[str] = Field(default_factory=list, description="Optional intermediate stops")

    @field_validator("origin", "destination", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("waypoints", mode="before")
    @classmethod
    def _clean_waypoints(cls, value):
        if value is None:
            return []
        return [w.strip() for w in value if isinstance(w, str) and w.strip()]


def chain_requests(stops: List[str], waypoints: Optional[List[str]] = None) -> List[SegmentRequest]:
    """Build consecutive requests stops[0]→stops[1]→… ."""
    return [
        SegmentRequest(origin=a, destination=b, waypoints=waypoints or [])
        for a, b in zip(stops, stops[1:])
    ]


# ============================================================================
# PROVIDER RESULT MODELS
# ============================================================================

def stable_route_id(origin: str, destination: str, distance_km: float, duration_hours: float) -> str:
    """Deterministic id for a computed leg, so identical inputs give identical plans."""
    key = f"{origin}|{destination}|{distance_km:.3f}|{duration_hours:.4f}"
    return uuid.uuid5(uuid.NAMESPACE_URL, key).hex


class Leg(BaseModel):
    """Result of one directions computation."""
    origin: str
    destination: str
    distance_km: float = Field(..., ge=0)
    duration_hours: float = Field(..., ge=0)
    distance_text: str = ""
    duration_text: str = ""
    route_id: str = ""
    estimated: bool = False


class GeocodeResult(BaseModel):
    """A forward or reverse geocoding hit."""
    coordinates: Tuple[float, float]
    formatted_address: str
    types: List[str] = []
    place_id: Optional[str] = None


class NearestTown(BaseModel):
    """Outcome of resolving a raw location to the closest named town."""
    original_location: str
    resolved_name: str
    coordinates: Tuple[float, float]
    confidence: Literal["high", "medium", "low"]
    distance_km: float


class ResolvedFrom(BaseModel):
    """Original vs. resolved endpoints of a recomputed segment."""
    original_origin: str
    original_destination: str
    origin_resolution: Optional[NearestTown] = None
    destination_resolution: Optional[NearestTown] = None

    def note(self) -> str:
        notes = []
        if self.origin_resolution:
            notes.append(
                f"Origin '{self.original_origin}' resolved to '{self.origin_resolution.resolved_name}' "
                f"({self.origin_resolution.distance_km:.1f} km away)"
            )
        if self.destination_resolution:
            notes.append(
                f"Destination '{self.original_destination}' resolved to "
                f"'{self.destination_resolution.resolved_name}' "
                f"({self.destination_resolution.distance_km:.1f} km away)"
            )
        return "; ".join(notes)


# ============================================================================
# ROUTE PLAN MODELS
# ============================================================================

class SplitPoint(BaseModel):
    """Linear-interpolation estimate of where one day's drive should end."""
    day: int
    stop_location: str
    distance_from_origin_km: float
    hours_from_origin: float


class ValidationResult(BaseModel):
    """Verdict of the segment validator for one leg."""
    valid: bool
    issues: List[str] = []
    suggested_splits: List[SplitPoint] = []
    days_needed: int = 1


class Segment(BaseModel):
    """A leg plus validation metadata within a route plan."""
    origin: str
    destination: str
    distance_km: float
    duration_hours: float
    distance_text: str = ""
    duration_text: str = ""
    route_id: Optional[str] = None
    valid: bool
    issues: List[str] = []
    suggested_splits: List[SplitPoint] = []
    waypoints: List[str] = []
    resolved_from: Optional[ResolvedFrom] = None
    estimated: bool = False

    @classmethod
    def from_leg(
        cls,
        request: SegmentRequest,
        leg: Leg,
        validation: ValidationResult,
        resolved_from: Optional[ResolvedFrom] = None,
    ) -> "Segment":
        return cls(
            origin=request.origin,
            destination=request.destination,
            distance_km=leg.distance_km,
            duration_hours=leg.duration_hours,
            distance_text=leg.distance_text,
            duration_text=leg.duration_text,
            route_id=leg.route_id,
            valid=validation.valid,
            issues=validation.issues,
            suggested_splits=validation.suggested_splits,
            waypoints=request.waypoints,
            resolved_from=resolved_from,
            estimated=leg.estimated,
        )


class RouteSummary(BaseModel):
    """Aggregate figures over the final segment list."""
    total_segments: int = 0
    total_distance_km: float = 0.0
    total_duration_hours: float = 0.0
    valid_segments: int = 0
    invalid_segments: int = 0
    resolved_segments: int = 0
    average_distance_per_segment: float = 0.0
    average_duration_per_segment: float = 0.0

    @classmethod
    def from_segments(cls, segments: List[Segment]) -> "RouteSummary":
        if not segments:
            return cls()

        total_distance = sum(s.distance_km for s in segments)
        total_duration = sum(s.duration_hours for s in segments)
        count = len(segments)

        return cls(
            total_segments=count,
            total_distance_km=round(total_distance, 1),
            total_duration_hours=round(total_duration, 1),
            valid_segments=sum(1 for s in segments if s.valid),
            invalid_segments=sum(1 for s in segments if not s.valid),
            resolved_segments=sum(1 for s in segments if s.resolved_from is not None),
            average_distance_per_segment=round(total_distance / count, 1),
            average_duration_per_segment=round(total_duration / count, 1),
        )


class RoutePlan(BaseModel):
    """The ordered, validated chain of segments plus aggregate summary."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    success: bool = True
    error: Optional[str] = None
    segments: List[Segment] = []
    summary: RouteSummary = Field(default_factory=RouteSummary)
    warnings: List[str] = []
    preferences: Preferences = Field(default_factory=Preferences)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    breakdown_applied: bool = False

    @classmethod
    def failed(cls, error: str, warnings: List[str], preferences: Preferences) -> "RoutePlan":
        return cls(success=False, error=error, warnings=warnings, preferences=preferences)

    def stops(self) -> List[str]:
        """Place names in visiting order: first origin, then every destination."""
        if not self.segments:
            return []
        return [self.segments[0].origin] + [s.destination for s in self.segments]

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")

    def fingerprint(self) -> dict:
        """Serialized plan without the per-run id and timestamp."""
        return self.model_dump(mode="json", exclude={"id", "created_at"})
