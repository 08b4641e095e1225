"""
Pydantic schemas for RouteWise
"""
from .route import (
    Preferences,
    SegmentRequest,
    Leg,
    GeocodeResult,
    NearestTown,
    ResolvedFrom,
    SplitPoint,
    ValidationResult,
    Segment,
    RouteSummary,
    RoutePlan,
    chain_requests,
)
from .requests import (
    ChatMessageRequest,
    ToolCallRequest,
    ChatResponse,
    DateConstraint,
    PlanRouteArgs,
    OptimizeRouteArgs,
    CalculateRouteArgs,
)

__all__ = [
    # Route models
    "Preferences",
    "SegmentRequest",
    "Leg",
    "GeocodeResult",
    "NearestTown",
    "ResolvedFrom",
    "SplitPoint",
    "ValidationResult",
    "Segment",
    "RouteSummary",
    "RoutePlan",
    "chain_requests",
    # API request models
    "ChatMessageRequest",
    "ToolCallRequest",
    "ChatResponse",
    # Operation arguments
    "DateConstraint",
    "PlanRouteArgs",
    "OptimizeRouteArgs",
    "CalculateRouteArgs",
]
