"""
LangGraph agents package for conversational route planning.

This package contains the trip state value object, the request extractor,
the route optimizer, the closed set of route operations and the chat-turn
workflow that ties them together.
"""

from .state import (
    RouteState,
    ChatTurnState,
    merge_trip_details,
    replace_plan,
    stored_chain,
)
from .extractor import RequestExtractor, Extraction, DEFAULT_STRATEGIES, is_route_request, merge_extraction
from .optimizer import RouteOptimizer
from .operations import OperationKind, OperationDispatcher, OperationResult, operation_definitions
from .graph import create_chat_graph, run_chat_turn

__all__ = [
    "RouteState",
    "ChatTurnState",
    "merge_trip_details",
    "replace_plan",
    "stored_chain",
    "RequestExtractor",
    "Extraction",
    "DEFAULT_STRATEGIES",
    "is_route_request",
    "merge_extraction",
    "RouteOptimizer",
    "OperationKind",
    "OperationDispatcher",
    "OperationResult",
    "operation_definitions",
    "create_chat_graph",
    "run_chat_turn",
]
