"""Structural checks that run before any planning work."""
from __future__ import annotations

from itinerary_optimizer.errors import EmptyDesiredStops, EmptyTravelerList, InvalidDateRange
from itinerary_optimizer.schemas import TripRequest


def validate_trip(request: TripRequest) -> None:
    """Raise the first structural problem found in ``request``; no side effects."""
    if not request.travelers:
        raise EmptyTravelerList()
    if not request.desired_stops:
        raise EmptyDesiredStops()
    if request.end is not None:
        if (request.start.tzinfo is None) != (request.end.tzinfo is None):
            raise InvalidDateRange("Start and end dates must both carry a timezone or neither.")
        if request.start > request.end:
            raise InvalidDateRange()
