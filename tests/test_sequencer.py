import pytest

from route_sequencer.models.domain import Coordinates, Stop
from route_sequencer.services.routing.cache import SegmentCache
from route_sequencer.services.routing.models import OptimizationMethod, VehicleType
from route_sequencer.services.routing.resolver import SegmentResolver
from route_sequencer.services.routing.sequencer import (
    CostModel,
    LocationSequencer,
    STRATEGY_BOUNDED_SEARCH,
    STRATEGY_LOCKED_ORDER,
    STRATEGY_NEAREST_NEIGHBOR,
    STRATEGY_PASSTHROUGH,
    bounded_permutations,
)


def _stop(stop_id: str, lat: float, lon: float, *, locked: bool = False, position: int | None = None) -> Stop:
    return Stop(
        id=stop_id,
        address=f"{stop_id} street",
        coordinates=Coordinates(latitude=lat, longitude=lon),
        is_locked=locked,
        position=position,
    )


def _sequencer() -> LocationSequencer:
    return LocationSequencer(SegmentResolver([], SegmentCache()))


def _ids(stops):
    return [stop.id for stop in stops]


def test_two_stops_pass_through_unchanged():
    stops = [_stop("a", 0.0, 0.0), _stop("b", 0.0, 0.1)]

    plan = _sequencer().plan(stops, OptimizationMethod.BALANCED, False, VehicleType.CAR)

    assert plan.strategy == STRATEGY_PASSTHROUGH
    assert _ids(plan.stops) == ["a", "b"]


def test_two_stops_still_honor_a_lock():
    stops = [_stop("a", 0.0, 0.0, locked=True, position=1), _stop("b", 0.0, 0.1)]

    plan = _sequencer().plan(stops, OptimizationMethod.BALANCED, False, VehicleType.CAR)

    assert _ids(plan.stops) == ["b", "a"]


def test_all_locked_stops_follow_their_positions():
    stops = [
        _stop("c", 0.0, 0.2, locked=True, position=2),
        _stop("a", 0.0, 0.0, locked=True, position=0),
        _stop("b", 0.0, 0.1, locked=True, position=1),
    ]

    plan = _sequencer().plan(stops, OptimizationMethod.SHORTEST_DISTANCE, True, VehicleType.TRUCK)

    assert plan.strategy == STRATEGY_LOCKED_ORDER
    assert _ids(plan.stops) == ["a", "b", "c"]


def test_loop_over_convex_quadrilateral_removes_the_crossing():
    # Given order a -> c -> b -> d crosses itself; the perimeter does not.
    a = _stop("a", 0.0, 0.0)
    b = _stop("b", 0.0, 0.1)
    c = _stop("c", 0.1, 0.1)
    d = _stop("d", 0.1, 0.0)
    stops = [a, c, b, d]
    sequencer = _sequencer()

    plan = sequencer.plan(stops, OptimizationMethod.SHORTEST_DISTANCE, True, VehicleType.CAR)

    assert plan.strategy == STRATEGY_BOUNDED_SEARCH
    assert set(_ids(plan.stops)) == {"a", "b", "c", "d"}
    optimized = sequencer.order_score(plan.stops, OptimizationMethod.SHORTEST_DISTANCE, True, VehicleType.CAR)
    given = sequencer.order_score(stops, OptimizationMethod.SHORTEST_DISTANCE, True, VehicleType.CAR)
    assert optimized <= given
    assert optimized < given - 1.0


def test_locked_stop_keeps_its_index_among_optimized_stops():
    stops = [
        _stop("a", 0.0, 0.0),
        _stop("far", 0.0, 0.5),
        _stop("pinned", 0.5, 0.5, locked=True, position=1),
        _stop("b", 0.0, 0.1),
        _stop("c", 0.0, 0.2),
    ]

    plan = _sequencer().plan(stops, OptimizationMethod.SHORTEST_DISTANCE, False, VehicleType.CAR)

    assert len(plan.stops) == 5
    assert plan.stops[1].id == "pinned"
    unlocked_order = [stop.id for stop in plan.stops if stop.id != "pinned"]
    # Either direction of the straight run is equally short.
    assert unlocked_order in (["a", "b", "c", "far"], ["far", "c", "b", "a"])


def test_locked_stop_at_end():
    stops = [
        _stop("depot", 0.0, 0.0, locked=True, position=3),
        _stop("a", 0.0, 0.1),
        _stop("b", 0.0, 0.2),
        _stop("c", 0.0, 0.3),
    ]

    plan = _sequencer().plan(stops, OptimizationMethod.BALANCED, False, VehicleType.CAR)

    assert plan.stops[-1].id == "depot"
    assert len(plan.stops) == 4


def test_bounded_permutations_are_capped_and_start_with_input_order():
    stops = [_stop(str(index), 0.0, index * 0.01) for index in range(5)]

    orderings = list(bounded_permutations(stops, 20))

    assert len(orderings) == 20
    assert _ids(orderings[0]) == ["0", "1", "2", "3", "4"]
    assert len({tuple(_ids(order)) for order in orderings}) == 20
    # A new call starts from the beginning again.
    assert _ids(next(bounded_permutations(stops, 20))) == ["0", "1", "2", "3", "4"]


def test_bounded_permutations_smaller_than_cap():
    stops = [_stop(str(index), 0.0, index * 0.01) for index in range(3)]

    assert len(list(bounded_permutations(stops, 20))) == 6


def test_many_stops_use_nearest_neighbor_from_the_first_stop():
    positions = [0, 7, 2, 9, 4, 1, 8, 3, 6, 5]
    stops = [_stop(f"s{value}", 0.0, value * 0.01) for value in positions]

    plan = _sequencer().plan(stops, OptimizationMethod.BALANCED, False, VehicleType.CAR)

    assert plan.strategy == STRATEGY_NEAREST_NEIGHBOR
    assert _ids(plan.stops) == [f"s{value}" for value in range(10)]


def test_many_stops_in_a_loop_use_a_loop_aware_variant():
    stops = [_stop(f"s{index}", (index % 3) * 0.05, index * 0.02) for index in range(10)]

    plan = _sequencer().plan(stops, OptimizationMethod.FASTEST_TIME, True, VehicleType.CAR)

    assert plan.strategy.startswith("loop-aware:")
    assert plan.stops[0].id == "s0"
    assert sorted(_ids(plan.stops)) == sorted(_ids(stops))


def test_nearest_neighbor_ties_go_to_input_order():
    start = _stop("start", 0.0, 0.0)
    first = _stop("first", 0.0, 0.1)
    second = _stop("second", 0.0, 0.1)
    model = CostModel(bounded_search_max_stops=0)
    sequencer = LocationSequencer(SegmentResolver([], SegmentCache()), model)

    plan = sequencer.plan([start, first, second], OptimizationMethod.SHORTEST_DISTANCE, False, VehicleType.CAR)

    assert _ids(plan.stops) == ["start", "first", "second"]


def test_farthest_first_handles_coincident_stops():
    same = [_stop(f"s{index}", 1.0, 1.0) for index in range(4)]
    sequencer = _sequencer()

    order = sequencer._farthest_first_loop(same[0], same[1:])

    assert _ids(order) == ["s0", "s1", "s2", "s3"]


def test_order_score_falls_back_when_resolution_fails():
    class ExplodingResolver:
        def resolve(self, origin, destination, vehicle_type):
            raise RuntimeError("boom")

    model = CostModel()
    sequencer = LocationSequencer(ExplodingResolver(), model)
    stops = [_stop("a", 0.0, 0.0), _stop("b", 0.0, 0.1)]

    score = sequencer.order_score(stops, OptimizationMethod.FASTEST_TIME, False, VehicleType.TRUCK)

    hop = sequencer.loop_score(stops, OptimizationMethod.SHORTEST_DISTANCE) / 2
    assert score == pytest.approx(hop / 50.0 * 60.0)


def test_cost_model_scores_by_method():
    model = CostModel()

    assert model.score(10.0, 20.0, OptimizationMethod.SHORTEST_DISTANCE) == 10.0
    assert model.score(10.0, 20.0, OptimizationMethod.FASTEST_TIME) == 20.0
    assert model.score(10.0, 20.0, OptimizationMethod.BALANCED) == pytest.approx(16.0)
    assert model.banded_speed(12.0) == 65.0
    assert model.banded_speed(6.0) == 55.0
    assert model.banded_speed(1.0) == 40.0


def test_order_score_skips_legs_without_coordinates():
    sequencer = _sequencer()
    unlocated = Stop(id="nowhere", address="Unknown")
    stops = [_stop("a", 0.0, 0.0), unlocated, _stop("b", 0.0, 0.1)]

    assert unlocated.is_located is False
    assert sequencer.order_score(stops, OptimizationMethod.SHORTEST_DISTANCE, False, VehicleType.CAR) == 0.0
