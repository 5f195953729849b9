"""Utility agent that normalizes raw trip payloads."""
from __future__ import annotations

import random
import uuid
from typing import Any, Dict, List, Optional

MEMBER_COLORS: List[str] = [
    "#FF5733", "#33FF57", "#3357FF", "#F033FF", "#FF33F0",
    "#33FFF0", "#F0FF33", "#5733FF", "#FF8C33", "#33A1FF",
]

# Client payloads use camelCase; the models use snake_case.
_TRIP_KEYS = {
    "members": "travelers",
    "departureLocation": "departure",
    "startDate": "start",
    "endDate": "end",
    "returnToDeparture": "return_to_departure",
    "desiredLocations": "desired_stops",
}
_STOP_KEYS = {
    "location": "place",
    "stayDuration": "stay_duration",
}


def extract_foundation(
    payload: Any,
    *,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """Return a dict ready for ``TripRequest.model_validate``.

    Accepts the "raw" request payload, a ``TripRequest`` instance, or anything
    that exposes ``model_dump`` similar to Pydantic models. Missing ids are
    filled with uuid4 strings and traveler colours are (re)assigned so they stay
    distinct whenever the traveler count changes.
    """
    raw: Dict[str, Any]
    if hasattr(payload, "model_dump"):
        raw = payload.model_dump(mode="python")  # type: ignore[assignment]
    elif isinstance(payload, dict):
        raw = dict(payload)
    else:
        raise TypeError("Unsupported payload type for foundation extraction")

    trip = _rename(raw, _TRIP_KEYS)
    trip.setdefault("id", str(uuid.uuid4()))

    travelers = [dict(t) for t in trip.get("travelers") or []]
    for traveler in travelers:
        traveler.setdefault("id", str(uuid.uuid4()))
        traveler.setdefault("name", traveler["id"])
    trip["travelers"] = assign_member_colors(travelers, rng=rng)

    stops: List[Dict[str, Any]] = []
    for stop in trip.get("desired_stops") or []:
        item = _rename(dict(stop), _STOP_KEYS)
        item.setdefault("id", str(uuid.uuid4()))
        stops.append(item)
    trip["desired_stops"] = stops

    return trip


def assign_member_colors(
    travelers: List[Dict[str, Any]],
    *,
    rng: Optional[random.Random] = None,
) -> List[Dict[str, Any]]:
    """Give every traveler a palette colour; extra travelers get random hex colours."""
    palette = list(MEMBER_COLORS)
    if len(travelers) > len(palette):
        rng = rng or random.Random()
        for _ in range(len(travelers) - len(palette)):
            palette.append(f"#{rng.randrange(0x1000000):06X}")
    return [{**traveler, "color": palette[idx]} for idx, traveler in enumerate(travelers)]


def _rename(data: Dict[str, Any], mapping: Dict[str, str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in data.items():
        target = mapping.get(key, key)
        # snake_case wins when a payload carries both spellings
        if target in out and key != target:
            continue
        out[target] = value
    return out
