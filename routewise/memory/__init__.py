"""
Memory layer initialization and convenience functions.

This module provides the process-wide TripStore used by the API routes.
"""

import logging
from typing import Optional

from .trip_store import TripStore

logger = logging.getLogger(__name__)

# Global store instance
_trip_store: Optional[TripStore] = None


def get_trip_store() -> TripStore:
    """Return the shared TripStore, creating it on first use."""
    global _trip_store

    if _trip_store is None:
        _trip_store = TripStore()
        logger.info("TripStore initialized")
    return _trip_store


__all__ = ["TripStore", "get_trip_store"]
