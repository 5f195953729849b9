"""Visiting order for the selected stops."""
from __future__ import annotations

from typing import Callable, List, Sequence

from itinerary_optimizer.schemas import DesiredStop, Place
from itinerary_optimizer.tools.geo import distance_matrix

SequenceStrategy = Callable[[Place, Sequence[DesiredStop], bool], List[DesiredStop]]

TWO_OPT_MAX_ITERATIONS = 50


def sequence_stops(
    departure: Place,
    stops: Sequence[DesiredStop],
    return_to_departure: bool = False,
) -> List[DesiredStop]:
    """Nearest-neighbour tour from ``departure``; ties go to the earlier stop.

    The departure (and any return to it) is not part of the result. This is an
    O(n^2) approximation, not an exact tour.
    """
    if len(stops) <= 1:
        return list(stops)
    matrix = distance_matrix([departure] + [s.place for s in stops])
    order = _nearest_neighbour(matrix)
    return [stops[i - 1] for i in order]


def two_opt_sequence(
    departure: Place,
    stops: Sequence[DesiredStop],
    return_to_departure: bool = False,
) -> List[DesiredStop]:
    """Nearest-neighbour seed improved by 2-opt segment reversals."""
    if len(stops) <= 2:
        return sequence_stops(departure, stops, return_to_departure)
    matrix = distance_matrix([departure] + [s.place for s in stops])
    route = [0] + _nearest_neighbour(matrix)
    if return_to_departure:
        route.append(0)
    last = len(route) - 2 if return_to_departure else len(route) - 1

    def length(path: List[int]) -> float:
        return sum(matrix[a][b] for a, b in zip(path, path[1:]))

    best = length(route)
    for _ in range(TWO_OPT_MAX_ITERATIONS):
        improved = False
        for i in range(1, last):
            for j in range(i + 1, last + 1):
                candidate = route[:i] + route[i:j + 1][::-1] + route[j + 1:]
                cost = length(candidate)
                if cost < best - 1e-9:
                    route, best, improved = candidate, cost, True
        if not improved:
            break

    body = route[1:-1] if return_to_departure else route[1:]
    return [stops[i - 1] for i in body]


def _nearest_neighbour(matrix: List[List[float]]) -> List[int]:
    unvisited = list(range(1, len(matrix)))
    current = 0
    order: List[int] = []
    while unvisited:
        # min() keeps the first of equal distances
        nxt = min(unvisited, key=lambda j: matrix[current][j])
        order.append(nxt)
        unvisited.remove(nxt)
        current = nxt
    return order


SEQUENCERS = {
    "nearest_neighbor": sequence_stops,
    "two_opt": two_opt_sequence,
}
