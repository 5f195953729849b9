"""Fairness-first greedy choice of which desired stops fit the time budget."""
from __future__ import annotations

import logging
import math
import random
from typing import Callable, Dict, List, Optional, Set

from itinerary_optimizer.schemas import DesiredStop, TripRequest

logger = logging.getLogger(__name__)

# Slack applied to the summed stays when the trip has no end date.
AUTO_BUDGET_FACTOR = 1.5
MAX_FAIRNESS_PASSES = 10

SelectStrategy = Callable[[TripRequest, random.Random], List[DesiredStop]]


def budget_hours(request: TripRequest) -> float:
    if request.end is not None:
        return (request.end - request.start).total_seconds() / 3600.0
    total = sum(stop.stay_duration for stop in request.desired_stops)
    return float(math.ceil(total * AUTO_BUDGET_FACTOR))


def select_stops(request: TripRequest, rng: Optional[random.Random] = None) -> List[DesiredStop]:
    """Pick the desired stops to visit, returned in request order.

    Travelers take turns (in a freshly shuffled order each pass) claiming their
    highest-priority stop that still fits. Once nobody can claim anything, the
    least-served travelers get first refusal on whatever budget is left, then
    any remaining stop is added by priority regardless of who asked for it.
    """
    rng = rng or random.Random()
    budget = budget_hours(request)
    stops = list(request.desired_stops)
    # sorted() is stable, so equal priorities keep request order
    by_priority = sorted(stops, key=lambda s: -s.priority)

    selected: Set[str] = set()
    counts: Dict[str, int] = {t.id: 0 for t in request.travelers}
    used = 0.0

    def fits(stop: DesiredStop) -> bool:
        return stop.id not in selected and used + stop.stay_duration <= budget

    def take(stop: DesiredStop) -> None:
        nonlocal used
        selected.add(stop.id)
        used += stop.stay_duration
        # a shared stop serves every requester at once
        for requester in stop.requesters:
            if requester in counts:
                counts[requester] += 1

    travelers = list(request.travelers)
    for pass_no in range(1, MAX_FAIRNESS_PASSES + 1):
        rng.shuffle(travelers)
        added = False
        for traveler in travelers:
            pick = next(
                (s for s in by_priority if traveler.id in s.requesters and fits(s)),
                None,
            )
            if pick is not None:
                take(pick)
                added = True
        if not added:
            logger.debug("Fairness passes settled after %d pass(es)", pass_no)
            break

    for traveler in sorted(request.travelers, key=lambda t: counts[t.id]):
        for stop in by_priority:
            if traveler.id in stop.requesters and fits(stop):
                take(stop)
    for stop in by_priority:
        if fits(stop):
            take(stop)

    logger.debug(
        "Selected %d of %d stops using %.1f of %.1f budget hours",
        len(selected),
        len(stops),
        used,
        budget,
    )
    return [stop for stop in stops if stop.id in selected]
