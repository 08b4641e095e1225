"""
LangGraph workflow for one chat turn.

detect → (extract | END) → (optimize | clarify) → persist → END

A turn is one sequential extract → optimize → persist run. The graph only
computes the new RouteState; run_chat_turn writes it to the store once the
graph has finished, so an interrupted turn leaves the trip untouched.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from langgraph.graph import StateGraph, END

from ..schemas.requests import ChatResponse
from ..tools.narrative import format_route_message, generate_recommendations
from .extractor import RequestExtractor, extract_preferences, is_route_request, merge_extraction
from .optimizer import RouteOptimizer
from .state import ChatTurnState, RouteState, merge_trip_details, replace_plan

if TYPE_CHECKING:
    from ..memory.trip_store import TripStore

logger = logging.getLogger(__name__)

NOT_A_ROUTE_REPLY = (
    "I can plan driving routes for you. Tell me where you are starting from and "
    "where you want to go, for example: \"Plan a road trip from Curitiba to Ushuaia, "
    "no more than 8 hours of driving per day\"."
)

CLARIFY_REPLY = (
    "I couldn't identify at least two places for your route. Which city are you "
    "starting from, and which destinations do you want to visit, in order?"
)


def route_after_detect(state: ChatTurnState) -> str:
    return "extract" if state["is_route_request"] else END


def route_after_extract(state: ChatTurnState) -> str:
    return "clarify" if state["needs_clarification"] else "optimize"


def create_chat_graph(optimizer: RouteOptimizer, extractor: Optional[RequestExtractor] = None):
    """
    Create the LangGraph workflow for a chat turn.

    Args:
        optimizer: RouteOptimizer used by the optimize node
        extractor: RequestExtractor used by the extract node

    Returns:
        Compiled LangGraph application
    """
    extractor = extractor or RequestExtractor()

    def detect_node(state: ChatTurnState) -> Dict[str, Any]:
        detected = is_route_request(state["message"])
        logger.info(f"Trip {state['trip_id']}: route request detected = {detected}")
        if not detected:
            return {"is_route_request": False, "reply": NOT_A_ROUTE_REPLY, "status": "not_a_route_request"}
        return {"is_route_request": True}

    def extract_node(state: ChatTurnState) -> Dict[str, Any]:
        extraction = extractor.extract(state["message"], state["route_state"])
        if extraction is None:
            logger.info(f"Trip {state['trip_id']}: nothing to plan, asking for clarification")
            return {"extraction": None, "needs_clarification": True}
        return {"extraction": extraction, "needs_clarification": False}

    def optimize_node(state: ChatTurnState) -> Dict[str, Any]:
        extraction = state["extraction"]
        preferences = state["route_state"].preferences.merged_with(extraction.preferences)
        plan = optimizer.optimize(extraction.segments, preferences)
        recommendations = generate_recommendations(plan) if plan.success else []
        if not plan.success:
            logger.warning(f"Trip {state['trip_id']}: route planning failed: {plan.error}")
        return {
            "plan": plan,
            "recommendations": recommendations,
            "status": "planned" if plan.success else "failed",
        }

    def clarify_node(state: ChatTurnState) -> Dict[str, Any]:
        return {"reply": CLARIFY_REPLY, "status": "clarification_needed"}

    def persist_node(state: ChatTurnState) -> Dict[str, Any]:
        route_state: RouteState = state["route_state"]
        extraction = state.get("extraction")
        plan = state.get("plan")

        if extraction is not None:
            route_state = merge_extraction(route_state, extraction)
        elif state.get("needs_clarification"):
            # Limits stated without places still apply to the next turn
            route_state = merge_trip_details(route_state, preferences=extract_preferences(state["message"]))

        if plan is not None and plan.success:
            route_state = replace_plan(route_state, plan)

        update: Dict[str, Any] = {"new_route_state": route_state}
        if plan is not None:
            update["reply"] = format_route_message(plan, state.get("recommendations"))
        return update

    workflow = StateGraph(ChatTurnState)

    workflow.add_node("detect", detect_node)
    workflow.add_node("extract", extract_node)
    workflow.add_node("optimize", optimize_node)
    workflow.add_node("clarify", clarify_node)
    workflow.add_node("persist", persist_node)

    workflow.set_entry_point("detect")
    workflow.add_conditional_edges("detect", route_after_detect, {"extract": "extract", END: END})
    workflow.add_conditional_edges("extract", route_after_extract, {"optimize": "optimize", "clarify": "clarify"})
    workflow.add_edge("optimize", "persist")
    workflow.add_edge("clarify", "persist")
    workflow.add_edge("persist", END)

    return workflow.compile()


def run_chat_turn(
    trip_id: str,
    message: str,
    store: "TripStore",
    optimizer: RouteOptimizer,
    extractor: Optional[RequestExtractor] = None,
) -> ChatResponse:
    """
    Run one chat turn for a trip and persist the resulting state.

    Args:
        trip_id: Trip identifier
        message: User message
        store: TripStore holding the trip's RouteState
        optimizer: RouteOptimizer for the optimize node
        extractor: Optional RequestExtractor override

    Returns:
        ChatResponse with the reply, plan and clarification flag
    """
    graph = create_chat_graph(optimizer, extractor)

    initial_state: ChatTurnState = {
        "trip_id": trip_id,
        "message": message,
        "route_state": store.get(trip_id),
        "is_route_request": False,
        "extraction": None,
        "needs_clarification": False,
        "plan": None,
        "recommendations": [],
        "new_route_state": None,
        "reply": "",
        "status": "started",
    }

    final_state = graph.invoke(initial_state)

    if final_state.get("new_route_state") is not None:
        store.save(trip_id, final_state["new_route_state"])

    return ChatResponse(
        trip_id=trip_id,
        reply=final_state["reply"],
        status=final_state["status"],
        needs_clarification=final_state["needs_clarification"],
        plan=final_state.get("plan"),
        recommendations=final_state.get("recommendations") or [],
    )
