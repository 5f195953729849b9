"""Fairness and efficiency scoring of a finished itinerary."""
from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

from itinerary_optimizer.schemas import Itinerary, ItineraryScores, Traveler, TripRequest
from itinerary_optimizer.tools.geo import place_distance_km

INCLUSION_WEIGHT = 0.4
PRIORITY_WEIGHT = 0.6
VARIANCE_CAP = 0.25
REFERENCE_DISTANCE_KM = 10_000.0
REFERENCE_DURATION_HOURS = 100.0
EQUALITY_WEIGHT = 0.7
EFFICIENCY_WEIGHT = 0.3


def satisfaction_scores(request: TripRequest, itinerary: Itinerary) -> Dict[str, float]:
    """Per-traveler ``0.4 * inclusion + 0.6 * mean(priority / 5)``, each in [0, 1]."""
    included = {s.desired_stop_id for s in itinerary.stops if s.desired_stop_id}
    scores: Dict[str, float] = {}
    for traveler in request.travelers:
        desired = [d for d in request.desired_stops if traveler.id in d.requesters]
        if not desired:
            scores[traveler.id] = 0.0
            continue
        kept = [d for d in desired if d.id in included]
        inclusion = len(kept) / len(desired)
        weighted = sum(d.priority / 5 for d in kept) / len(kept) if kept else 0.0
        scores[traveler.id] = _clamp(INCLUSION_WEIGHT * inclusion + PRIORITY_WEIGHT * weighted)
    return scores


def equality_score(satisfaction: Iterable[float]) -> float:
    values = list(satisfaction)
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    normalized_variance = min(variance / VARIANCE_CAP, 1.0)
    return _clamp(0.5 * min(values) + 0.5 * (1 - normalized_variance))


def efficiency_score(itinerary: Itinerary) -> float:
    total_distance = 0.0
    total_duration = 0.0
    for leg in itinerary.legs:
        src = itinerary.stop_by_id(leg.source)
        dst = itinerary.stop_by_id(leg.destination)
        if src is None or dst is None:
            continue
        total_distance += place_distance_km(src.place, dst.place)
        total_duration += leg.estimated_duration
    distance_score = 1 - min(total_distance / REFERENCE_DISTANCE_KM, 1.0)
    duration_score = 1 - min(total_duration / REFERENCE_DURATION_HOURS, 1.0)
    return _clamp(0.6 * distance_score + 0.4 * duration_score)


def score_itinerary(request: TripRequest, itinerary: Itinerary) -> Itinerary:
    """Return a copy of ``itinerary`` with satisfaction and scores filled in."""
    satisfaction = satisfaction_scores(request, itinerary)
    equality = equality_score(satisfaction.values())
    efficiency = efficiency_score(itinerary)
    combined = EQUALITY_WEIGHT * equality + EFFICIENCY_WEIGHT * efficiency
    return itinerary.model_copy(
        update={
            "satisfaction": {k: round(v, 4) for k, v in satisfaction.items()},
            "scores": ItineraryScores(
                equality=round(equality, 4),
                efficiency=round(efficiency, 4),
                combined=round(_clamp(combined), 4),
            ),
        }
    )


def rank_itineraries(candidates: Sequence[Itinerary]) -> List[Itinerary]:
    """Best combined score first; equal scores keep generation order."""
    return sorted(candidates, key=lambda it: it.scores.combined, reverse=True)


def satisfaction_percent(satisfaction: Dict[str, float], travelers: Sequence[Traveler]) -> Dict[str, int]:
    """Display form of the satisfaction map on a 0-100 scale."""
    return {t.id: int(round(satisfaction.get(t.id, 0.0) * 100)) for t in travelers}


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))
