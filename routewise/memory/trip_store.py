"""
In-memory trip state storage.

Holds one RouteState per trip id. Saves replace the stored state wholesale,
so concurrent turns on the same trip resolve as last writer wins.
"""

import logging
from typing import Dict

from ..agents.state import RouteState

logger = logging.getLogger(__name__)


class TripStore:
    """Dictionary-backed RouteState store keyed by trip id."""

    def __init__(self):
        self._trips: Dict[str, RouteState] = {}

    def get(self, trip_id: str) -> RouteState:
        """Return the stored state, or an empty RouteState for an unknown trip."""
        return self._trips.get(trip_id) or RouteState()

    def exists(self, trip_id: str) -> bool:
        return trip_id in self._trips

    def save(self, trip_id: str, state: RouteState) -> None:
        self._trips[trip_id] = state
        plan = state.current_plan
        logger.info(
            f"Saved trip {trip_id}: {len(state.destinations)} destinations, "
            f"plan={'none' if plan is None else plan.id}"
        )

    def delete(self, trip_id: str) -> bool:
        """Remove a trip; returns False when it was not stored."""
        removed = self._trips.pop(trip_id, None) is not None
        if removed:
            logger.info(f"Deleted trip {trip_id}")
        return removed
