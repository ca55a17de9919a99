"""
Exception types raised by the recommendation and scheduling core.
"""

from enum import Enum


class NotFoundReason(str, Enum):
    NO_DATA = "no_data"
    ALL_USED = "all_used"
    NO_SUITABLE = "no_suitable"
    FILTERS_EXHAUSTED = "filters_exhausted"


class ItineraryEngineError(Exception):
    """Base class for errors surfaced by the engine."""


class RecommendationNotFound(ItineraryEngineError):
    """No candidate survived filtering for a gap."""

    def __init__(self, reason: NotFoundReason, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


class InvalidInputError(ItineraryEngineError):
    """Caller supplied a gap, profile or edit the engine cannot act on."""


class CandidateFetchError(ItineraryEngineError):
    """The candidate provider failed to return a pool."""


class TripNotFoundError(ItineraryEngineError):
    """No trip with the given id is known."""
