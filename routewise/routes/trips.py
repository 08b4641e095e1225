"""
API routes for trip chat turns, stored routes and direct route operations
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException

from routewise.schemas import ChatMessageRequest, ChatResponse, ToolCallRequest
from routewise.agents.graph import run_chat_turn
from routewise.agents.operations import OperationDispatcher, OperationResult, operation_definitions
from routewise.agents.optimizer import RouteOptimizer
from routewise.memory import TripStore, get_trip_store
from routewise.tools.directions import GoogleDirectionsClient
from routewise.tools.geocoding import GoogleGeocodingClient
from routewise.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["trips"])

_optimizer: Optional[RouteOptimizer] = None


def get_optimizer() -> RouteOptimizer:
    """Lazily build the Google-backed optimizer shared by all requests."""
    global _optimizer

    if _optimizer is None:
        try:
            _optimizer = RouteOptimizer(GoogleDirectionsClient(), geocoder=GoogleGeocodingClient())
        except ConfigurationError as e:
            logger.error(f"Route optimizer unavailable: {e.message}")
            raise HTTPException(status_code=503, detail=e.message)
        logger.info("RouteOptimizer initialized with Google Maps providers")
    return _optimizer


@router.post("/trips/{trip_id}/chat", response_model=ChatResponse)
def chat(
    trip_id: str,
    request: ChatMessageRequest,
    store: TripStore = Depends(get_trip_store),
    optimizer: RouteOptimizer = Depends(get_optimizer),
):
    """
    Run one chat turn on a trip

    Example: "Plan a road trip from Curitiba to Ushuaia, max 8 hours a day"
    """
    logger.info(f"Chat turn for trip {trip_id}")
    return run_chat_turn(trip_id, request.message, store, optimizer)


@router.get("/trips/{trip_id}/route")
def get_route(trip_id: str, store: TripStore = Depends(get_trip_store)):
    """Current route plan of a trip"""
    plan = store.get(trip_id).current_plan
    if plan is None:
        raise HTTPException(status_code=404, detail="No route planned for this trip")
    return plan.to_dict()


@router.delete("/trips/{trip_id}")
def delete_trip(trip_id: str, store: TripStore = Depends(get_trip_store)):
    """Forget a trip's route state"""
    if not store.delete(trip_id):
        raise HTTPException(status_code=404, detail="Trip not found")
    return {"trip_id": trip_id, "status": "deleted"}


@router.get("/tools")
def list_tools():
    """Function-calling definitions of the route operations"""
    return {"tools": operation_definitions()}


@router.post("/tools/{operation}", response_model=OperationResult)
def call_tool(
    operation: str,
    request: ToolCallRequest,
    trip_id: Optional[str] = None,
    store: TripStore = Depends(get_trip_store),
    optimizer: RouteOptimizer = Depends(get_optimizer),
):
    """
    Invoke plan_route, optimize_route or calculate_route directly

    Invalid arguments come back as success=false with an error message.
    """
    dispatcher = OperationDispatcher(optimizer, store)
    return dispatcher.dispatch_tool_call(operation, request.arguments, trip_id=trip_id)
