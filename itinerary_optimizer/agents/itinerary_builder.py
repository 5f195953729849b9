"""Turns an ordered list of stops into dated itinerary stops and transport legs."""
from __future__ import annotations

import asyncio
import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from itinerary_optimizer.errors import AirportLookupUnavailable
from itinerary_optimizer.schemas import (
    DesiredStop,
    ItineraryStop,
    Leg,
    Place,
    PlanWarning,
    StopKind,
    TransportType,
    TripRequest,
)
from itinerary_optimizer.tools.airports import AirportLookup
from itinerary_optimizer.tools.geo import (
    determine_transport_type,
    estimate_duration_hours,
    place_distance_km,
)

logger = logging.getLogger(__name__)

SubLeg = Tuple[Place, Place, TransportType]


@dataclass
class BuildResult:
    stops: List[ItineraryStop] = field(default_factory=list)
    legs: List[Leg] = field(default_factory=list)
    warnings: List[PlanWarning] = field(default_factory=list)


@dataclass(frozen=True)
class _Hop:
    origin: Place
    target: Place
    desired: Optional[DesiredStop]
    mode: TransportType


def advance_clock(clock: datetime, travel_hours: float) -> datetime:
    """Move the clock forward by the travel time rounded up to whole days."""
    return clock + timedelta(days=math.ceil(travel_hours / 24.0))


async def build_itinerary(
    ordered: Sequence[DesiredStop],
    request: TripRequest,
    airport_lookup: AirportLookup,
) -> BuildResult:
    """Walk ``ordered`` from the departure place, dating every stop.

    Air hops are routed through the nearest airports on both ends. Every sub-leg
    advances the clock by whole days; stays then run for their exact duration.
    """
    hops = _plan_hops(ordered, request)
    airports = await _resolve_airports(hops, airport_lookup)

    result = BuildResult()
    clock = request.start
    current = ItineraryStop(
        id=str(uuid.uuid4()),
        place=request.departure,
        arrival=clock,
        departure=clock,
        kind="departure",
    )
    result.stops.append(current)

    for hop in hops:
        sub_legs, degraded = _route_hop(hop, airports)
        if degraded:
            logger.warning(
                "No airport pair for %s -> %s; using a direct land leg",
                hop.origin.name,
                hop.target.name,
            )
            result.warnings.append(
                PlanWarning(
                    kind="AirportLookupUnavailable",
                    message=(
                        f"No airport found for the flight from {hop.origin.name} to "
                        f"{hop.target.name}; planned as a direct land leg."
                    ),
                )
            )
        for idx, (origin, target, mode) in enumerate(sub_legs):
            final = idx == len(sub_legs) - 1
            current, leg, clock = _travel(current, origin, target, mode, clock, hop, final, degraded)
            result.stops.append(current)
            result.legs.append(leg)

    logger.debug(
        "Built %d stops and %d legs ending %s", len(result.stops), len(result.legs), clock.isoformat()
    )
    return result


def _plan_hops(ordered: Sequence[DesiredStop], request: TripRequest) -> List[_Hop]:
    hops: List[_Hop] = []
    prev = request.departure
    for desired in ordered:
        hops.append(_Hop(prev, desired.place, desired, determine_transport_type(prev, desired.place)))
        prev = desired.place
    if request.return_to_departure:
        hops.append(_Hop(prev, request.departure, None, determine_transport_type(prev, request.departure)))
    return hops


async def _resolve_airports(
    hops: Sequence[_Hop],
    airport_lookup: AirportLookup,
) -> Dict[Place, Optional[Place]]:
    """Look up every airport the air hops need, concurrently and once per place."""
    needed: List[Place] = []
    for hop in hops:
        if hop.mode != "air":
            continue
        for place in (hop.origin, hop.target):
            if not place.is_airport and place not in needed:
                needed.append(place)
    if not needed:
        return {}
    found = await asyncio.gather(*(_lookup(airport_lookup, place) for place in needed))
    return dict(zip(needed, found))


async def _lookup(airport_lookup: AirportLookup, place: Place) -> Optional[Place]:
    try:
        return await airport_lookup.nearest_airport(place.point)
    except AirportLookupUnavailable:
        logger.warning("Airport lookup unavailable near %s", place.name, exc_info=True)
        return None


def _route_hop(hop: _Hop, airports: Dict[Place, Optional[Place]]) -> Tuple[List[SubLeg], bool]:
    """Split a hop into sub-legs; the flag is set when an air hop had to go by land."""
    if hop.mode == "land":
        return [(hop.origin, hop.target, "land")], False

    dep_airport = hop.origin if hop.origin.is_airport else airports.get(hop.origin)
    arr_airport = hop.target if hop.target.is_airport else airports.get(hop.target)
    if dep_airport is None or arr_airport is None or dep_airport == arr_airport:
        return [(hop.origin, hop.target, "land")], True

    waypoints: List[Place] = [hop.origin]
    for place in (dep_airport, arr_airport, hop.target):
        if place != waypoints[-1]:
            waypoints.append(place)
    sub_legs: List[SubLeg] = []
    for a, b in zip(waypoints, waypoints[1:]):
        mode: TransportType = "air" if a.is_airport and b.is_airport else "land"
        sub_legs.append((a, b, mode))
    return sub_legs, False


def _travel(
    current: ItineraryStop,
    origin: Place,
    target: Place,
    mode: TransportType,
    clock: datetime,
    hop: _Hop,
    final: bool,
    degraded: bool,
) -> Tuple[ItineraryStop, Leg, datetime]:
    distance = place_distance_km(origin, target)
    duration = estimate_duration_hours(distance, mode)
    clock = advance_clock(clock, duration)

    kind: StopKind
    if not final:
        kind, departure = "airport", clock
    elif hop.desired is None:
        kind, departure = "return", clock
    else:
        kind, departure = "stay", clock + timedelta(hours=hop.desired.stay_duration)

    desired = hop.desired if final else None
    stop = ItineraryStop(
        id=str(uuid.uuid4()),
        place=target,
        arrival=clock,
        departure=departure,
        requesters=list(desired.requesters) if desired else [],
        kind=kind,
        desired_stop_id=desired.id if desired else None,
        priority=desired.priority if desired else None,
    )
    leg = Leg(
        id=str(uuid.uuid4()),
        source=current.id,
        destination=stop.id,
        transport_type=mode,
        estimated_duration=round(duration, 4),
        distance_km=round(distance, 3),
        degraded=degraded,
    )
    return stop, leg, departure
