"""Proportional shortening of stays when a built itinerary overruns its end date."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from itinerary_optimizer.schemas import ItineraryStop, PlanWarning

logger = logging.getLogger(__name__)

_DAY = timedelta(days=1)
MIN_TRIMMABLE_STAY = timedelta(days=2)
MIN_STAY_AFTER_TRIM = _DAY


@dataclass
class TrimResult:
    stops: List[ItineraryStop]
    trimmed: bool = False
    warning: Optional[PlanWarning] = None


def trim_to_deadline(stops: Sequence[ItineraryStop], deadline: Optional[datetime]) -> TrimResult:
    """Shorten stays of two days or more so the last arrival moves toward ``deadline``.

    Each eligible stay loses ``floor(stay_days * overrun_days / total_stay_days)``
    days but keeps at least one; the overrun runs from the deadline to the end
    of the trip (the last departure). Every stop is re-dated from the previous
    stop's adjusted departure plus the travel gap it originally had. If the result still
    arrives late, a warning is attached and the partially trimmed stops are
    returned anyway.
    """
    stops = list(stops)
    if deadline is None or not stops or stops[-1].arrival <= deadline:
        return TrimResult(stops)

    overrun_hours = (stops[-1].departure - deadline).total_seconds() / 3600.0
    overrun_days = math.ceil(overrun_hours / 24.0)
    total_stay_days = sum(s.stay_hours for s in stops if s.kind == "stay") / 24.0
    logger.debug("Itinerary overruns deadline by %d day(s); %.1f stay days available", overrun_days, total_stay_days)

    adjusted: List[ItineraryStop] = [stops[0]]
    trimmed = False
    for prev, stop in zip(stops, stops[1:]):
        travel_gap = stop.arrival - prev.departure
        arrival = adjusted[-1].departure + travel_gap
        stay = stop.departure - stop.arrival
        if stop.kind == "stay" and stay >= MIN_TRIMMABLE_STAY and total_stay_days > 0:
            stay_days = stay.total_seconds() / 86400.0
            reduction = math.floor(stay_days * overrun_days / total_stay_days + 1e-9)
            new_stay = max(MIN_STAY_AFTER_TRIM, stay - reduction * _DAY)
            if new_stay != stay:
                trimmed = True
            stay = new_stay
        adjusted.append(stop.model_copy(update={"arrival": arrival, "departure": arrival + stay}))

    warning: Optional[PlanWarning] = None
    if adjusted[-1].arrival > deadline:
        late = adjusted[-1].arrival - deadline
        logger.warning("Trimmed itinerary still ends %s after the deadline", late)
        warning = PlanWarning(
            kind="DeadlineOverrunAfterTrim",
            message=(
                f"Even after shortening stays the trip ends {late} after "
                f"{deadline.isoformat()}; consider a later end date or fewer stops."
            ),
        )
    return TrimResult(adjusted, trimmed, warning)
