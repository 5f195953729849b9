from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

TransportType = Literal["land", "air"]
StopKind = Literal["departure", "stay", "airport", "return"]
WarningKind = Literal["AirportLookupUnavailable", "DeadlineOverrunAfterTrim"]

_AIRPORT_NAME = re.compile(
    r"airport|空港|机场|機場|aéroport|aeropuerto|aeroporto|flughafen",
    re.IGNORECASE,
)


def looks_like_airport(name: str) -> bool:
    return bool(_AIRPORT_NAME.search(name or ""))


# ------- Geography -------
class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    longitude: float = Field(..., ge=-180.0, le=180.0)
    latitude: float = Field(..., ge=-90.0, le=90.0)


class Place(BaseModel):
    """A resolved location. ``is_airport`` is decided once, when the place is built."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    country: Optional[str] = None
    region: Optional[str] = None
    point: GeoPoint
    is_airport: bool = False

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        # Older clients send ``coordinates: [lon, lat]``.
        coords = data.pop("coordinates", None)
        if "point" not in data and coords is not None:
            lon, lat = coords
            data["point"] = {"longitude": lon, "latitude": lat}
        if data.get("is_airport") is None:
            data["is_airport"] = looks_like_airport(str(data.get("name", "")))
        return data

    @property
    def coordinates(self) -> tuple[float, float]:
        return (self.point.longitude, self.point.latitude)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Place):
            return NotImplemented
        return self.name == other.name and self.point == other.point

    def __hash__(self) -> int:
        return hash((self.name, self.point))


# ------- Request models -------
class Traveler(BaseModel):
    id: str
    name: str
    color: Optional[str] = None


class DesiredStop(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    place: Place
    requesters: List[str] = Field(..., min_length=1)
    priority: int = Field(..., ge=1, le=5)
    stay_duration: float = Field(..., ge=0.0, description="Required stay in hours")


class TripRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    name: Optional[str] = None
    travelers: List[Traveler] = Field(default_factory=list)
    departure: Place
    start: datetime
    end: Optional[datetime] = None
    return_to_departure: bool = False
    desired_stops: List[DesiredStop] = Field(default_factory=list)


# ------- Response models -------
class ItineraryStop(BaseModel):
    id: str
    place: Place
    arrival: datetime
    departure: datetime
    requesters: List[str] = Field(default_factory=list)
    kind: StopKind = "stay"
    desired_stop_id: Optional[str] = None
    priority: Optional[int] = None

    @property
    def stay_hours(self) -> float:
        return (self.departure - self.arrival).total_seconds() / 3600.0


class Leg(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    source: str = Field(..., alias="from")
    destination: str = Field(..., alias="to")
    transport_type: TransportType
    estimated_duration: float
    distance_km: float = 0.0
    degraded: bool = False


class PlanWarning(BaseModel):
    kind: WarningKind
    message: str


class ItineraryScores(BaseModel):
    equality: float = 0.0
    efficiency: float = 0.0
    combined: float = 0.0


class Itinerary(BaseModel):
    id: str
    stops: List[ItineraryStop] = Field(default_factory=list)
    legs: List[Leg] = Field(default_factory=list)
    satisfaction: Dict[str, float] = Field(default_factory=dict)
    scores: ItineraryScores = Field(default_factory=ItineraryScores)
    warnings: List[PlanWarning] = Field(default_factory=list)
    trimmed: bool = False

    def stop_by_id(self, stop_id: str) -> Optional[ItineraryStop]:
        for stop in self.stops:
            if stop.id == stop_id:
                return stop
        return None


class OptimizeResponse(BaseModel):
    itinerary: Itinerary
    notes: Optional[Dict[str, Any]] = None
