"""
Route operations exposed as function-calling tools.

The set of operations is closed: every OperationKind has exactly one typed
argument model and one handler, and the function-calling schemas returned by
operation_definitions() are a stable contract with the language model.
"""

import json
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel, Field, ValidationError

from ..schemas.requests import CalculateRouteArgs, OptimizeRouteArgs, PlanRouteArgs
from ..schemas.route import RoutePlan, chain_requests
from ..tools.narrative import generate_recommendations
from ..utils.exceptions import InvalidOperationError
from .optimizer import RouteOptimizer
from .state import RouteState, merge_trip_details, replace_plan

if TYPE_CHECKING:
    from ..memory.trip_store import TripStore

logger = logging.getLogger(__name__)


class OperationKind(str, Enum):
    PLAN_ROUTE = "plan_route"
    OPTIMIZE_ROUTE = "optimize_route"
    CALCULATE_ROUTE = "calculate_route"


ARGUMENT_MODELS: Dict[OperationKind, Type[BaseModel]] = {
    OperationKind.PLAN_ROUTE: PlanRouteArgs,
    OperationKind.OPTIMIZE_ROUTE: OptimizeRouteArgs,
    OperationKind.CALCULATE_ROUTE: CalculateRouteArgs,
}


class OperationResult(BaseModel):
    """Outcome of one operation; failures are reported here, never raised."""
    success: bool
    operation: Optional[OperationKind] = None
    plan: Optional[RoutePlan] = None
    recommendations: List[Dict[str, Any]] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)
    error: Optional[str] = None


# ============================================================================
# FUNCTION-CALLING SCHEMAS
# ============================================================================

_SEGMENT_ITEMS = {
    "type": "object",
    "properties": {
        "origin": {"type": "string", "description": "Starting location (city, address, or coordinates)"},
        "destination": {"type": "string", "description": "Ending location (city, address, or coordinates)"},
        "waypoints": {
            "type": "array",
            "description": "Optional intermediate stops",
            "items": {"type": "string"},
        },
    },
    "required": ["origin", "destination"],
}

_USER_PREFERENCES = {
    "max_daily_drive_h": {"type": "number", "description": "Maximum hours to drive in a single day"},
    "max_daily_distance_km": {"type": "number", "description": "Maximum distance to drive in a single day (km)"},
    "avoid": {
        "type": "array",
        "description": "Things to avoid (tolls, highways, ferries)",
        "items": {"type": "string"},
    },
}


def operation_definitions() -> List[Dict[str, Any]]:
    """Function-calling definitions for every OperationKind, in enum order."""
    return [
        {
            "type": "function",
            "function": {
                "name": OperationKind.PLAN_ROUTE.value,
                "description": "Plan a complete route from an origin to multiple destinations. This tool handles "
                               "the initial route planning and automatically optimizes segments based on user "
                               "constraints.",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "origin": {"type": "string", "description": "Starting location (city, address, or coordinates)"},
                        "destinations": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": "Array of destination names in order as provided by user.",
                        },
                        "transport_mode": {
                            "type": "string",
                            "enum": ["driving", "walking", "bicycling", "transit"],
                            "description": "Preferred mode of transportation. Defaults to 'driving'.",
                        },
                        "constraints": {
                            "type": "object",
                            "description": "Travel constraints and preferences",
                            "properties": {
                                "max_daily_drive_hours": _USER_PREFERENCES["max_daily_drive_h"],
                                "max_daily_distance_km": _USER_PREFERENCES["max_daily_distance_km"],
                                "daytime_only": {"type": "boolean", "description": "Whether to drive only during daytime"},
                                "avoid": _USER_PREFERENCES["avoid"],
                            },
                        },
                        "date_constraints": {
                            "type": "array",
                            "description": "Fixed dates or reservations that must be respected",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "location": {"type": "string", "description": "Location for the constraint"},
                                    "start_date": {"type": "string", "description": "Start date (ISO format)"},
                                    "end_date": {"type": "string", "description": "End date (ISO format)"},
                                    "description": {"type": "string", "description": "Description of the constraint"},
                                },
                            },
                        },
                    },
                    "required": ["origin", "destinations"],
                },
            },
        },
        {
            "type": "function",
            "function": {
                "name": OperationKind.OPTIMIZE_ROUTE.value,
                "description": "Automatically calculate and optimize a complete route with real-world distances and "
                               "times. Validates all segments against user preferences and splits long segments into "
                               "manageable parts.",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "segments": {
                            "type": "array",
                            "description": "Array of route segments to calculate and optimize",
                            "items": _SEGMENT_ITEMS,
                        },
                        "user_preferences": {
                            "type": "object",
                            "description": "User driving preferences for validation (optional - will use trip data "
                                           "if not provided)",
                            "properties": _USER_PREFERENCES,
                        },
                    },
                    "required": ["segments"],
                },
            },
        },
        {
            "type": "function",
            "function": {
                "name": OperationKind.CALCULATE_ROUTE.value,
                "description": "Calculate accurate driving routes using Google Directions API. Validates routes "
                               "against user preferences and suggests splits for long segments.",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "segments": {
                            "type": "array",
                            "description": "Array of route segments to calculate",
                            "items": _SEGMENT_ITEMS,
                        },
                        "user_preferences": {
                            "type": "object",
                            "description": "User driving preferences for validation",
                            "properties": _USER_PREFERENCES,
                        },
                    },
                    "required": ["segments"],
                },
            },
        },
    ]


# ============================================================================
# DISPATCH
# ============================================================================

def parse_operation(name: str, arguments: Union[str, Dict[str, Any], None]):
    """
    Turn a raw tool call into (OperationKind, typed arguments).

    Raises:
        InvalidOperationError: Unknown operation name, malformed JSON or
            arguments that fail validation
    """
    try:
        kind = OperationKind(name)
    except ValueError as e:
        raise InvalidOperationError(f"Unknown operation: {name}", context={"operation": name}) from e

    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments) if arguments.strip() else {}
        except json.JSONDecodeError as e:
            raise InvalidOperationError(f"Invalid JSON arguments for {name}: {e.msg}") from e
    if not isinstance(arguments, dict):
        raise InvalidOperationError(f"Arguments for {name} must be an object")

    try:
        args = ARGUMENT_MODELS[kind].model_validate(arguments)
    except ValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise InvalidOperationError(f"Invalid arguments for {name}", validation_errors=errors) from e

    return kind, args


class OperationDispatcher:
    """
    Runs operations against a RouteOptimizer, optionally persisting into a TripStore.

    When a trip id and store are given, plan_route merges its origin,
    destinations and constraints into the trip state, and every successful
    plan replaces the trip's current plan.
    """

    def __init__(self, optimizer: RouteOptimizer, store: Optional["TripStore"] = None):
        self.optimizer = optimizer
        self.store = store

    def dispatch_tool_call(
        self,
        name: str,
        arguments: Union[str, Dict[str, Any], None],
        trip_id: Optional[str] = None,
    ) -> OperationResult:
        try:
            kind, args = parse_operation(name, arguments)
        except InvalidOperationError as e:
            logger.warning(f"Rejected tool call '{name}': {e.message} {e.validation_errors}")
            detail = f"{e.message}: {'; '.join(e.validation_errors)}" if e.validation_errors else e.message
            return OperationResult(success=False, error=detail)
        return self.dispatch(kind, args, trip_id)

    def dispatch(self, kind: OperationKind, args: BaseModel, trip_id: Optional[str] = None) -> OperationResult:
        """
        Execute one operation.

        Args:
            kind: Operation to run
            args: Argument model matching ``kind``
            trip_id: Trip whose state is read and updated (optional)

        Returns:
            OperationResult
        """
        expected = ARGUMENT_MODELS[kind]
        if not isinstance(args, expected):
            return OperationResult(
                success=False,
                operation=kind,
                error=f"{kind.value} expects {expected.__name__}, got {type(args).__name__}",
            )

        state = self._load(trip_id)
        logger.info(f"Dispatching {kind.value} for trip {trip_id or '-'}")

        if kind is OperationKind.PLAN_ROUTE:
            result, state = self._plan_route(args, state, trip_id)
        elif kind is OperationKind.OPTIMIZE_ROUTE:
            plan = self.optimizer.optimize(args.segments, state.preferences.merged_with(args.user_preferences))
            result = self._result(kind, plan)
        elif kind is OperationKind.CALCULATE_ROUTE:
            plan = self.optimizer.calculate(args.segments, state.preferences.merged_with(args.user_preferences))
            result = self._result(kind, plan)
        else:
            raise InvalidOperationError(f"Unsupported operation: {kind}")

        if result.success and result.plan is not None:
            self._save(trip_id, replace_plan(state, result.plan))
        return result

    def _plan_route(self, args: PlanRouteArgs, state: RouteState, trip_id: Optional[str]):
        state = merge_trip_details(
            state,
            origin=args.origin,
            destinations=args.destinations,
            preferences=args.constraints,
            date_constraints=args.date_constraints,
        )

        notes = []
        if args.transport_mode != "driving":
            notes.append(f"Only driving routes are supported; planned a driving route instead of {args.transport_mode}")
        if state.preferences.daytime_only:
            notes.append("Daytime driving only: plan each day's drive to finish before dark")
        for constraint in args.date_constraints:
            note = constraint.note()
            if note:
                notes.append(note)

        plan = self.optimizer.optimize(chain_requests([args.origin] + args.destinations), state.preferences)
        result = self._result(OperationKind.PLAN_ROUTE, plan)
        result.notes.extend(notes)

        if not plan.success:
            # Keep the new trip details even though no plan was produced
            self._save(trip_id, state)
        return result, state

    @staticmethod
    def _result(kind: OperationKind, plan: RoutePlan) -> OperationResult:
        if not plan.success:
            return OperationResult(success=False, operation=kind, plan=plan, error=plan.error)
        return OperationResult(
            success=True,
            operation=kind,
            plan=plan,
            recommendations=generate_recommendations(plan),
        )

    # ------------------------------------------------------------------
    # Trip state
    # ------------------------------------------------------------------

    def _load(self, trip_id: Optional[str]) -> RouteState:
        if self.store is None or trip_id is None:
            return RouteState()
        return self.store.get(trip_id)

    def _save(self, trip_id: Optional[str], state: RouteState) -> None:
        if self.store is not None and trip_id is not None:
            self.store.save(trip_id, state)
