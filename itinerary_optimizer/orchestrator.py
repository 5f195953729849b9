# itinerary_optimizer/orchestrator.py
from __future__ import annotations

import asyncio
import logging
import random
import uuid
from typing import Any, Dict, FrozenSet, List, Optional, Set

from itinerary_optimizer import config
from itinerary_optimizer.agents.deadline_trimmer import trim_to_deadline
from itinerary_optimizer.agents.foundation_agent import extract_foundation
from itinerary_optimizer.agents.itinerary_builder import build_itinerary
from itinerary_optimizer.agents.location_selector import SelectStrategy, select_stops
from itinerary_optimizer.agents.route_sequencer import SEQUENCERS, SequenceStrategy, sequence_stops
from itinerary_optimizer.agents.scorer import rank_itineraries, score_itinerary
from itinerary_optimizer.agents.validator import validate_trip
from itinerary_optimizer.errors import NoFeasibleItinerary
from itinerary_optimizer.llm import describe_itinerary
from itinerary_optimizer.schemas import DesiredStop, Itinerary, OptimizeResponse, TripRequest
from itinerary_optimizer.tools.airports import AirportLookup, default_airport_lookup

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
logger.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
logger.propagate = False


async def optimize(
    request: TripRequest,
    *,
    airport_lookup: Optional[AirportLookup] = None,
    seed: Optional[int] = None,
    candidates: int = 1,
    select: SelectStrategy = select_stops,
    sequence: SequenceStrategy = sequence_stops,
) -> Itinerary:
    """Plan the best itinerary for ``request``.

    Each candidate gets its own random source derived from ``seed``, so a fixed
    seed makes the whole pipeline a pure function of its inputs. Candidates are
    built concurrently and the highest combined score wins.
    """
    validate_trip(request)
    lookup = airport_lookup or default_airport_lookup()

    logger.info(
        "Optimizing trip %s: %d traveler(s), %d desired stop(s), start %s, end %s",
        request.id,
        len(request.travelers),
        len(request.desired_stops),
        request.start.isoformat(),
        request.end.isoformat() if request.end else "auto",
    )

    selections = _candidate_selections(request, seed, candidates, select)
    if not selections:
        raise NoFeasibleItinerary()

    built = await asyncio.gather(
        *(_build_candidate(request, chosen, lookup, sequence) for chosen in selections)
    )
    ranked = rank_itineraries(built)
    for idx, itinerary in enumerate(ranked):
        logger.debug(
            "Candidate %d: equality %.3f, efficiency %.3f, combined %.3f",
            idx,
            itinerary.scores.equality,
            itinerary.scores.efficiency,
            itinerary.scores.combined,
        )

    best = ranked[0]
    logger.info(
        "Scored %d candidate(s); best combined %.3f with %d stops, %d legs, %d warning(s)",
        len(ranked),
        best.scores.combined,
        len(best.stops),
        len(best.legs),
        len(best.warnings),
    )
    return best


def plan_itinerary(request: TripRequest, **kwargs: Any) -> Itinerary:
    """Synchronous wrapper around :func:`optimize`."""
    return asyncio.run(optimize(request, **kwargs))


async def orchestrate_trip(
    payload: Dict[str, Any],
    *,
    airport_lookup: Optional[AirportLookup] = None,
) -> Dict[str, Any]:
    """Normalise a raw payload, optimise it and optionally attach narrative notes."""
    seed = payload.get("seed")
    candidates = int(payload.get("candidates") or 1)
    candidates = max(1, min(candidates, config.OPTIMIZE_MAX_CANDIDATES))
    sequencer_name = payload.get("sequencer") or "nearest_neighbor"
    sequence = SEQUENCERS.get(sequencer_name)
    if sequence is None:
        raise ValueError(f"Unknown sequencer '{sequencer_name}'")

    rng = random.Random(seed)
    request = TripRequest.model_validate(extract_foundation(payload, rng=rng))
    itinerary = await optimize(
        request,
        airport_lookup=airport_lookup,
        seed=seed,
        candidates=candidates,
        sequence=sequence,
    )

    notes: Optional[Dict[str, Any]] = None
    if payload.get("include_notes"):
        try:
            notes = await asyncio.to_thread(describe_itinerary, request, itinerary)
        except Exception as exc:
            logger.exception("Itinerary notes failed: %s", exc)
            notes = {"error": str(exc)}

    response = OptimizeResponse(itinerary=itinerary, notes=notes)
    return response.model_dump(mode="json", by_alias=True)


def _candidate_selections(
    request: TripRequest,
    seed: Optional[int],
    candidates: int,
    select: SelectStrategy,
) -> List[List[DesiredStop]]:
    master = random.Random(seed)
    seen: Set[FrozenSet[str]] = set()
    selections: List[List[DesiredStop]] = []
    for _ in range(max(1, candidates)):
        chosen = select(request, random.Random(master.getrandbits(64)))
        key = frozenset(stop.id for stop in chosen)
        if not chosen or key in seen:
            continue
        seen.add(key)
        selections.append(chosen)
    logger.info(
        "Generated %d distinct selection(s) from %d attempt(s)", len(selections), max(1, candidates)
    )
    return selections


async def _build_candidate(
    request: TripRequest,
    chosen: List[DesiredStop],
    airport_lookup: AirportLookup,
    sequence: SequenceStrategy,
) -> Itinerary:
    ordered = sequence(request.departure, chosen, request.return_to_departure)
    built = await build_itinerary(ordered, request, airport_lookup)
    trim = trim_to_deadline(built.stops, request.end)
    warnings = list(built.warnings)
    if trim.warning is not None:
        warnings.append(trim.warning)
    itinerary = Itinerary(
        id=str(uuid.uuid4()),
        stops=trim.stops,
        legs=built.legs,
        warnings=warnings,
        trimmed=trim.trimmed,
    )
    return score_itinerary(request, itinerary)
