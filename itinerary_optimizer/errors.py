"""Failure kinds raised by the optimisation pipeline."""
from __future__ import annotations


class ItineraryError(Exception):
    """Base class for every pipeline failure."""


class TripValidationError(ItineraryError, ValueError):
    """The trip request is structurally invalid; the caller must fix it and resubmit."""


class EmptyTravelerList(TripValidationError):
    def __init__(self, message: str = "The trip has no travelers.") -> None:
        super().__init__(message)


class EmptyDesiredStops(TripValidationError):
    def __init__(self, message: str = "The trip has no desired stops.") -> None:
        super().__init__(message)


class InvalidDateRange(TripValidationError):
    def __init__(self, message: str = "The start date must not be after the end date.") -> None:
        super().__init__(message)


class NoFeasibleItinerary(ItineraryError):
    def __init__(
        self,
        message: str = (
            "No feasible itinerary fits the available time. "
            "Try lengthening the trip or reducing the desired stops."
        ),
    ) -> None:
        super().__init__(message)


class AirportLookupUnavailable(ItineraryError):
    """The airport lookup could not answer; the affected leg is flown as land."""
