import asyncio
from datetime import datetime, timedelta

import pytest

from itinerary_optimizer.agents.scorer import (
    efficiency_score,
    equality_score,
    rank_itineraries,
    satisfaction_percent,
    score_itinerary,
)
from itinerary_optimizer.errors import (
    EmptyDesiredStops,
    EmptyTravelerList,
    InvalidDateRange,
    NoFeasibleItinerary,
)
from itinerary_optimizer.orchestrator import optimize, plan_itinerary
from itinerary_optimizer.agents.route_sequencer import two_opt_sequence
from itinerary_optimizer.schemas import (
    DesiredStop,
    GeoPoint,
    Itinerary,
    ItineraryScores,
    Place,
    Traveler,
    TripRequest,
)
from itinerary_optimizer.tools.airports import StaticAirportLookup

START = datetime(2025, 9, 1, 10)


def _place(name: str, lon: float, lat: float) -> Place:
    return Place(name=name, point=GeoPoint(longitude=lon, latitude=lat))


HOME = _place("Home", 0, 0)
TOKYO = _place("Tokyo", 139.6917, 35.6895)
CITIES = {
    "Paris": _place("Paris", 2.3522, 48.8566),
    "Amsterdam": _place("Amsterdam", 4.9041, 52.3676),
    "Berlin": _place("Berlin", 13.4050, 52.5200),
    "Kyoto": _place("Kyoto", 135.7681, 35.0116),
}


def _request(travelers, stops, **kwargs) -> TripRequest:
    return TripRequest(
        id="trip",
        travelers=[Traveler(id=t, name=t.title()) for t in travelers],
        departure=kwargs.pop("departure", HOME),
        start=START,
        desired_stops=stops,
        **kwargs,
    )


def _run(request, **kwargs) -> Itinerary:
    kwargs.setdefault("airport_lookup", StaticAirportLookup())
    return asyncio.run(optimize(request, **kwargs))


def _assert_invariants(request: TripRequest, itinerary: Itinerary) -> None:
    assert itinerary.stops[0].place == request.departure
    assert itinerary.stops[0].arrival == request.start
    arrivals = [s.arrival for s in itinerary.stops]
    assert arrivals == sorted(arrivals)
    ids = {s.id for s in itinerary.stops}
    assert len(itinerary.legs) == len(itinerary.stops) - 1
    for leg in itinerary.legs:
        assert leg.source in ids and leg.destination in ids
    if request.return_to_departure:
        assert itinerary.stops[-1].place == request.departure
    by_desired = {}
    for stop in itinerary.stops:
        if stop.desired_stop_id:
            assert stop.desired_stop_id not in by_desired
            by_desired[stop.desired_stop_id] = stop
    for desired in request.desired_stops:
        if desired.id in by_desired:
            assert by_desired[desired.id].requesters == desired.requesters
    for value in (itinerary.scores.equality, itinerary.scores.efficiency, itinerary.scores.combined):
        assert 0.0 <= value <= 1.0


def test_single_traveler_short_hop():
    stop = DesiredStop(
        id="cafe", place=_place("Cafe", 0, 0.01), requesters=["solo"], priority=5, stay_duration=24
    )
    request = _request(["solo"], [stop])
    itinerary = _run(request, seed=1)

    _assert_invariants(request, itinerary)
    assert len(itinerary.stops) == 2
    assert itinerary.legs[0].transport_type == "land"
    assert itinerary.stops[1].stay_hours == 24
    assert itinerary.satisfaction == {"solo": 1.0}
    assert itinerary.scores.equality == 1.0
    assert itinerary.warnings == []


def test_shared_stop_gives_everyone_equal_satisfaction():
    shared = DesiredStop(
        id="shared",
        place=_place("Lake", 0.2, 0.2),
        requesters=["a", "b", "c"],
        priority=5,
        stay_duration=24,
    )
    request = _request(["a", "b", "c"], [shared], end=START + timedelta(days=3))
    itinerary = _run(request, seed=11)

    _assert_invariants(request, itinerary)
    assert set(itinerary.satisfaction.values()) == {1.0}
    assert itinerary.scores.equality == 1.0


def test_group_trip_from_tokyo_keeps_invariants():
    stops = [
        DesiredStop(id="paris", place=CITIES["Paris"], requesters=["aki", "chloe"], priority=5, stay_duration=72),
        DesiredStop(id="ams", place=CITIES["Amsterdam"], requesters=["ben"], priority=4, stay_duration=48),
        DesiredStop(id="berlin", place=CITIES["Berlin"], requesters=["chloe"], priority=3, stay_duration=48),
        DesiredStop(id="kyoto", place=CITIES["Kyoto"], requesters=["aki", "ben"], priority=2, stay_duration=24),
    ]
    request = _request(
        ["aki", "ben", "chloe"],
        stops,
        departure=TOKYO,
        return_to_departure=True,
        end=START + timedelta(days=20),
    )
    itinerary = _run(request, seed=7, candidates=4)

    _assert_invariants(request, itinerary)
    assert "air" in {leg.transport_type for leg in itinerary.legs}
    assert set(itinerary.satisfaction) == {"aki", "ben", "chloe"}


def test_validation_runs_before_planning():
    stop = DesiredStop(id="x", place=_place("X", 1, 1), requesters=["a"], priority=3, stay_duration=1)
    with pytest.raises(EmptyTravelerList):
        _run(_request([], [stop]))
    with pytest.raises(EmptyDesiredStops):
        _run(_request(["a"], []))
    with pytest.raises(InvalidDateRange):
        _run(_request(["a"], [stop], end=START - timedelta(hours=1)))


def test_budget_too_small_is_infeasible():
    stop = DesiredStop(id="x", place=_place("X", 1, 1), requesters=["a"], priority=3, stay_duration=48)
    with pytest.raises(NoFeasibleItinerary) as excinfo:
        _run(_request(["a"], [stop], end=START + timedelta(hours=12)))
    assert "lengthening" in str(excinfo.value)


def test_rerunning_the_implied_request_reproduces_the_route():
    stops = [
        DesiredStop(id="paris", place=CITIES["Paris"], requesters=["a"], priority=4, stay_duration=48),
        DesiredStop(id="berlin", place=CITIES["Berlin"], requesters=["b"], priority=3, stay_duration=24),
        DesiredStop(id="kyoto", place=CITIES["Kyoto"], requesters=["a", "b"], priority=5, stay_duration=24),
    ]
    request = _request(["a", "b"], stops, departure=TOKYO, return_to_departure=True)
    first = _run(request, seed=5)

    implied = _request(
        ["a", "b"],
        [
            DesiredStop(
                id=s.desired_stop_id,
                place=s.place,
                requesters=s.requesters,
                priority=s.priority,
                stay_duration=s.stay_hours,
            )
            for s in first.stops
            if s.desired_stop_id
        ],
        departure=first.stops[0].place,
        return_to_departure=True,
    )
    second = _run(implied, seed=5)

    assert [s.place.name for s in second.stops] == [s.place.name for s in first.stops]
    assert [l.transport_type for l in second.legs] == [l.transport_type for l in first.legs]


def test_fixed_seed_is_deterministic():
    stops = [
        DesiredStop(id=name, place=place, requesters=["a"] if i % 2 else ["b"], priority=3, stay_duration=48)
        for i, (name, place) in enumerate(CITIES.items())
    ]
    request = _request(["a", "b"], stops, departure=TOKYO, end=START + timedelta(days=8))
    first = _run(request, seed=42, candidates=3)
    second = _run(request, seed=42, candidates=3)
    assert [s.place.name for s in first.stops] == [s.place.name for s in second.stops]
    assert first.scores == second.scores


def test_best_candidate_wins():
    mine = DesiredStop(id="mine", place=_place("Mine", 0.1, 0), requesters=["a"], priority=5, stay_duration=24)
    yours = DesiredStop(id="yours", place=_place("Yours", 0.2, 0), requesters=["b"], priority=5, stay_duration=24)
    request = _request(["a", "b"], [mine, yours])
    picks = iter([[mine], [mine, yours]])

    def alternate(req, rng):
        return next(picks)

    itinerary = _run(request, seed=0, candidates=2, select=alternate)
    assert {s.desired_stop_id for s in itinerary.stops if s.desired_stop_id} == {"mine", "yours"}
    assert itinerary.scores.equality == 1.0


def test_two_opt_strategy_plugs_in():
    stops = [
        DesiredStop(id=name, place=place, requesters=["a"], priority=3, stay_duration=24)
        for name, place in CITIES.items()
    ]
    request = _request(["a"], stops, departure=TOKYO, return_to_departure=True)
    itinerary = plan_itinerary(
        request, airport_lookup=StaticAirportLookup(), seed=2, sequence=two_opt_sequence
    )
    _assert_invariants(request, itinerary)


def test_equality_rewards_floor_and_low_spread():
    assert equality_score([1.0, 1.0]) == 1.0
    assert equality_score([1.0, 0.0]) == 0.0
    assert equality_score([]) == 0.0
    assert equality_score([0.5, 0.5]) == pytest.approx(0.75)
    assert equality_score([0.8, 0.6]) > equality_score([1.0, 0.4])


def test_efficiency_and_combined_stay_in_bounds():
    stop = DesiredStop(id="far", place=CITIES["Paris"], requesters=["a"], priority=3, stay_duration=24)
    request = _request(["a"], [stop], departure=TOKYO, return_to_departure=True)
    itinerary = _run(request, seed=3)
    assert 0.0 <= efficiency_score(itinerary) < 0.5
    rescored = score_itinerary(request, itinerary)
    assert rescored.scores == itinerary.scores


def test_rank_keeps_generation_order_on_ties():
    tied = [
        Itinerary(id=str(i), scores=ItineraryScores(combined=score))
        for i, score in enumerate([0.4, 0.9, 0.4, 0.9])
    ]
    assert [it.id for it in rank_itineraries(tied)] == ["1", "3", "0", "2"]


def test_satisfaction_percent_scales_for_display():
    travelers = [Traveler(id="a", name="A"), Traveler(id="b", name="B")]
    assert satisfaction_percent({"a": 0.876}, travelers) == {"a": 88, "b": 0}


class NoAirports:
    async def nearest_airport(self, point):
        return None


def test_long_hop_without_airports_is_degraded_and_warned():
    london = _place("London", -0.1276, 51.5072)
    stop = DesiredStop(id="london", place=london, requesters=["a"], priority=4, stay_duration=48)
    request = _request(["a"], [stop], departure=TOKYO)
    itinerary = _run(request, airport_lookup=NoAirports(), seed=1)

    _assert_invariants(request, itinerary)
    assert [s.place.name for s in itinerary.stops] == ["Tokyo", "London"]
    (leg,) = itinerary.legs
    assert leg.transport_type == "land"
    assert leg.degraded is True
    assert [w.kind for w in itinerary.warnings] == ["AirportLookupUnavailable"]


def test_travel_days_past_end_date_are_reported_not_rejected():
    # the stay fits the budget but the two travel days do not
    stop = DesiredStop(
        id="coast", place=_place("Coast", 0, 5), requesters=["a"], priority=5, stay_duration=24
    )
    request = _request(["a"], [stop], end=START + timedelta(days=2), return_to_departure=True)
    itinerary = _run(request, seed=1)

    _assert_invariants(request, itinerary)
    assert itinerary.stops[-1].arrival == START + timedelta(days=3)
    assert itinerary.trimmed is False
    assert [w.kind for w in itinerary.warnings] == ["DeadlineOverrunAfterTrim"]
