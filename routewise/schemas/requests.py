"""
Pydantic schemas for API request bodies and tool-call arguments
"""
from typing import List, Optional, Literal, Dict, Any
from pydantic import BaseModel, Field, field_validator

from .route import Preferences, RoutePlan, SegmentRequest


class ChatMessageRequest(BaseModel):
    """Request body for one chat turn on a trip"""
    message: str = Field(
        ...,
        min_length=1,
        description="Natural language travel request",
        examples=["Plan a road trip from Curitiba to Ushuaia, no more than 8 hours a day"],
    )


class ToolCallRequest(BaseModel):
    """Request body for invoking a route operation directly"""
    arguments: Dict[str, Any] = Field(default_factory=dict, description="Operation arguments")


class ChatResponse(BaseModel):
    """Response body for one chat turn"""
    trip_id: str
    reply: str = Field(..., description="Assistant reply text")
    status: str = Field(..., description="planned, failed, clarification_needed or not_a_route_request")
    needs_clarification: bool = False
    plan: Optional[RoutePlan] = None
    recommendations: List[Dict[str, Any]] = Field(default_factory=list)


# ============================================================================
# OPERATION ARGUMENTS
# ============================================================================

class DateConstraint(BaseModel):
    """Fixed date or reservation that must be respected"""
    location: str = Field(..., description="Location for the constraint")
    start_date: Optional[str] = Field(default=None, description="Start date (ISO format)")
    end_date: Optional[str] = Field(default=None, description="End date (ISO format)")
    description: Optional[str] = Field(default=None, description="Description of the constraint")

    def note(self) -> Optional[str]:
        if self.start_date and self.end_date:
            return f"Must be in {self.location} from {self.start_date} to {self.end_date}"
        if self.start_date:
            return f"Must be in {self.location} on {self.start_date}"
        return None


class PlanRouteArgs(BaseModel):
    """Arguments of plan_route"""
    origin: str = Field(..., min_length=1, description="Starting location (city, address, or coordinates)")
    destinations: List[str] = Field(
        ...,
        min_length=1,
        description="Array of destination names in order as provided by user.",
    )
    transport_mode: Literal["driving", "walking", "bicycling", "transit"] = Field(
        default="driving",
        description="Preferred mode of transportation. Defaults to 'driving'.",
    )
    constraints: Preferences = Field(default_factory=Preferences, description="Travel constraints and preferences")
    date_constraints: List[DateConstraint] = Field(
        default_factory=list,
        description="Fixed dates or reservations that must be respected",
    )

    @field_validator("destinations", mode="before")
    @classmethod
    def _drop_blank(cls, value):
        if isinstance(value, list):
            return [d.strip() for d in value if isinstance(d, str) and d.strip()]
        return value


class OptimizeRouteArgs(BaseModel):
    """Arguments of optimize_route"""
    segments: List[SegmentRequest] = Field(
        ...,
        min_length=1,
        description="Array of route segments to calculate and optimize",
    )
    user_preferences: Preferences = Field(
        default_factory=Preferences,
        description="User driving preferences for validation (optional - will use trip data if not provided)",
    )


class CalculateRouteArgs(BaseModel):
    """Arguments of calculate_route"""
    segments: List[SegmentRequest] = Field(..., min_length=1, description="Array of route segments to calculate")
    user_preferences: Preferences = Field(
        default_factory=Preferences,
        description="User driving preferences for validation",
    )
