"""
State definitions for the chat-turn workflow.

RouteState is the trip context carried between turns. It is immutable:
every update goes through one of the merge functions below, which return a
new RouteState. ChatTurnState is the per-turn dict that flows through the
LangGraph nodes.
"""

from typing import TypedDict, List, Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field

from ..schemas.route import Preferences, RoutePlan
from ..schemas.requests import DateConstraint


class RouteState(BaseModel):
    """Trip context reused across chat turns."""
    model_config = ConfigDict(frozen=True)

    origin: Optional[str] = None
    destinations: List[str] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)
    date_constraints: List[DateConstraint] = Field(default_factory=list)
    current_plan: Optional[RoutePlan] = None


def merge_trip_details(
    state: RouteState,
    origin: Optional[str] = None,
    destinations: Optional[List[str]] = None,
    preferences: Optional[Preferences] = None,
    date_constraints: Optional[List[DateConstraint]] = None,
) -> RouteState:
    """
    Return a new state with newly extracted trip details merged in.

    A new destination list replaces the stored one (the user re-stated the
    route); preferences are overlaid field by field so that a turn that only
    says "avoid tolls" keeps earlier hour/km limits.
    """
    update: Dict[str, Any] = {}
    if origin:
        update["origin"] = origin
    if destinations:
        update["destinations"] = list(destinations)
    if preferences is not None:
        update["preferences"] = state.preferences.merged_with(preferences)
    if date_constraints:
        update["date_constraints"] = list(date_constraints)
    return state.model_copy(update=update)


def replace_plan(state: RouteState, plan: RoutePlan) -> RouteState:
    """Return a new state whose current plan is ``plan``; plans are never merged."""
    return state.model_copy(update={"current_plan": plan})


def stored_chain(state: RouteState) -> List[str]:
    """
    The previously stored stop chain, origin first.

    Falls back to the stops of the current plan when no destination list
    was recorded.
    """
    chain: List[str] = []
    for stop in ([state.origin] if state.origin else []) + list(state.destinations):
        if stop and (not chain or chain[-1].lower() != stop.lower()):
            chain.append(stop)

    if len(chain) >= 2:
        return chain
    if state.current_plan is not None:
        return state.current_plan.stops()
    return chain


class ChatTurnState(TypedDict):
    """
    State object that flows through the chat-turn LangGraph workflow.

    - detect: sets is_route_request
    - extract: sets extraction or needs_clarification
    - optimize: sets plan
    - persist: sets new_route_state and reply
    """
    # Input
    trip_id: str
    message: str
    route_state: RouteState

    # Detection / extraction
    is_route_request: bool
    extraction: Optional[Any]
    needs_clarification: bool

    # Optimizer output
    plan: Optional[RoutePlan]
    recommendations: List[Dict[str, Any]]

    # Persist output
    new_route_state: Optional[RouteState]
    reply: str

    # Metadata
    status: str
