"""Heuristic visit-order optimization.

Small sets of unlocked stops get a bounded search (nearest-neighbor seed plus a
capped number of permutations, scored on resolved segments). Larger sets use
the nearest-neighbor family directly, with a loop-aware variant when the route
must return to its start. None of this guarantees an optimal tour.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import islice, permutations
from typing import Callable, Iterator, NamedTuple, Sequence

from ...models.domain import Stop
from ..geospatial import distance_km
from .models import OptimizationMethod, VehicleType
from .resolver import SegmentResolver

STRATEGY_PASSTHROUGH = "passthrough"
STRATEGY_LOCKED_ORDER = "locked-order"
STRATEGY_BOUNDED_SEARCH = "bounded-search"
STRATEGY_NEAREST_NEIGHBOR = "nearest-neighbor"
STRATEGY_LOOP_AWARE = "loop-aware"

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CostModel:
    """Scoring constants and search limits.

    These are tunable heuristics carried over as defaults; none of the speed
    bands or weights is derived from a physical model.
    """

    distance_weight: float = 0.4
    time_weight: float = 0.6

    # Per-step nearest-neighbor speeds.
    step_base_speed_kmh: float = 50.0
    long_hop_km: float = 10.0
    medium_hop_km: float = 5.0
    long_hop_multiplier: float = 1.3
    medium_hop_multiplier: float = 1.1
    short_hop_multiplier: float = 0.8
    step_balanced_speed_kmh: float = 55.0

    # Banded speeds for whole-loop comparison.
    highway_speed_kmh: float = 65.0
    suburban_speed_kmh: float = 55.0
    urban_speed_kmh: float = 40.0

    # Straight-line speeds when a resolved segment is unavailable while scoring.
    fastest_fallback_car_kmh: float = 65.0
    fastest_fallback_truck_kmh: float = 50.0
    balanced_fallback_car_kmh: float = 60.0
    balanced_fallback_truck_kmh: float = 55.0

    bounded_search_max_stops: int = 8
    permutation_max_stops: int = 6
    permutation_limit: int = 20
    alternate_second_candidates: int = 3

    def blend(self, distance: float, minutes: float) -> float:
        return distance * self.distance_weight + minutes * self.time_weight

    def score(self, distance: float, minutes: float, method: OptimizationMethod) -> float:
        if method == OptimizationMethod.SHORTEST_DISTANCE:
            return distance
        if method == OptimizationMethod.FASTEST_TIME:
            return minutes
        return self.blend(distance, minutes)

    def step_score(self, distance: float, method: OptimizationMethod) -> float:
        """Greedy per-hop cost against the current stop."""
        if method == OptimizationMethod.FASTEST_TIME:
            if distance > self.long_hop_km:
                multiplier = self.long_hop_multiplier
            elif distance > self.medium_hop_km:
                multiplier = self.medium_hop_multiplier
            else:
                multiplier = self.short_hop_multiplier
            return distance / (self.step_base_speed_kmh * multiplier) * 60.0
        minutes = distance / self.step_balanced_speed_kmh * 60.0
        return self.score(distance, minutes, method)

    def banded_speed(self, distance: float) -> float:
        # Longer hops are assumed to use faster roads.
        if distance > self.long_hop_km:
            return self.highway_speed_kmh
        if distance > self.medium_hop_km:
            return self.suburban_speed_kmh
        return self.urban_speed_kmh

    def banded_score(self, distance: float, method: OptimizationMethod) -> float:
        minutes = distance / self.banded_speed(distance) * 60.0
        return self.score(distance, minutes, method)

    def fallback_score(self, distance: float, method: OptimizationMethod, vehicle_type: VehicleType) -> float:
        is_truck = vehicle_type == VehicleType.TRUCK
        if method == OptimizationMethod.FASTEST_TIME:
            speed = self.fastest_fallback_truck_kmh if is_truck else self.fastest_fallback_car_kmh
        else:
            speed = self.balanced_fallback_truck_kmh if is_truck else self.balanced_fallback_car_kmh
        return self.score(distance, distance / speed * 60.0, method)


class SequencePlan(NamedTuple):
    stops: list[Stop]
    strategy: str


def bounded_permutations(stops: Sequence[Stop], limit: int) -> Iterator[list[Stop]]:
    """Yield at most ``limit`` orderings of ``stops``, lexicographic in input order.

    The first ordering is always the input order itself. Each call starts a
    fresh sequence.
    """
    for ordering in islice(permutations(stops), max(limit, 0)):
        yield list(ordering)


def _hop(a: Stop, b: Stop) -> float:
    return distance_km(a.coordinates, b.coordinates)


def _pop_best(remaining: list[Stop], score: Callable[[Stop], float]) -> Stop:
    # min() keeps the first of equal scores, so ties go to input order.
    best_index = min(range(len(remaining)), key=lambda index: score(remaining[index]))
    return remaining.pop(best_index)


class LocationSequencer:
    def __init__(self, resolver: SegmentResolver, cost_model: CostModel | None = None) -> None:
        self.resolver = resolver
        self.cost_model = cost_model or CostModel()

    def sequence(
        self,
        stops: Sequence[Stop],
        method: OptimizationMethod,
        is_loop: bool,
        vehicle_type: VehicleType,
    ) -> list[Stop]:
        return self.plan(stops, method, is_loop, vehicle_type).stops

    def plan(
        self,
        stops: Sequence[Stop],
        method: OptimizationMethod,
        is_loop: bool,
        vehicle_type: VehicleType,
    ) -> SequencePlan:
        """Order ``stops`` and report which strategy produced the order."""
        stops = list(stops)
        method = OptimizationMethod(method)
        vehicle_type = VehicleType(vehicle_type)
        locked = [stop for stop in stops if stop.is_locked]
        unlocked = [stop for stop in stops if not stop.is_locked]

        if len(stops) <= 2:
            return SequencePlan(self._merge(len(stops), locked, unlocked), STRATEGY_PASSTHROUGH)

        if not unlocked:
            ordered = sorted(stops, key=lambda stop: stop.position or 0)
            return SequencePlan(ordered, STRATEGY_LOCKED_ORDER)

        if len(unlocked) <= self.cost_model.bounded_search_max_stops:
            optimized, strategy = self._bounded_search(unlocked, method, is_loop, vehicle_type)
        else:
            optimized, strategy = self._nearest_neighbor_family(unlocked, method, is_loop)

        logger.debug(
            f"Sequenced {len(unlocked)} unlocked / {len(locked)} locked stops with {strategy} ({method.value})"
        )
        return SequencePlan(self._merge(len(stops), locked, optimized), strategy)

    @staticmethod
    def _merge(total: int, locked: Sequence[Stop], optimized: Sequence[Stop]) -> list[Stop]:
        """Put locked stops at their indices and fill the gaps in optimized order."""
        pinned: dict[int, Stop] = {}
        for stop in locked:
            if stop.position is not None and 0 <= stop.position < total:
                pinned.setdefault(stop.position, stop)

        result: list[Stop] = []
        pending = iter(optimized)
        for index in range(total):
            if index in pinned:
                result.append(pinned[index])
                continue
            next_stop = next(pending, None)
            if next_stop is not None:
                result.append(next_stop)

        # Anything that could not be placed keeps its relative order at the end.
        result.extend(pending)
        placed = {id(stop) for stop in result}
        result.extend(
            sorted((stop for stop in locked if id(stop) not in placed), key=lambda stop: stop.position or 0)
        )
        return result

    def order_score(
        self,
        order: Sequence[Stop],
        method: OptimizationMethod,
        is_loop: bool,
        vehicle_type: VehicleType,
    ) -> float:
        """Cost of a complete order, using resolved segments where possible."""
        if not order:
            return 0.0
        edge_count = len(order) if is_loop else len(order) - 1
        total = 0.0
        for index in range(edge_count):
            origin = order[index]
            destination = order[(index + 1) % len(order)]
            if not (origin.is_located and destination.is_located):
                continue
            try:
                segment = self.resolver.resolve(origin, destination, vehicle_type)
                total += self.cost_model.score(segment.distance_km, segment.duration_min, method)
            except Exception as exc:
                logger.warning(f"Scoring {origin.id} -> {destination.id} on straight-line estimate: {exc}")
                total += self.cost_model.fallback_score(_hop(origin, destination), method, vehicle_type)
        return total

    def loop_score(self, order: Sequence[Stop], method: OptimizationMethod) -> float:
        """Straight-line cost of visiting ``order`` and returning to its first stop."""
        total = 0.0
        for index, origin in enumerate(order):
            destination = order[(index + 1) % len(order)]
            total += self.cost_model.banded_score(_hop(origin, destination), method)
        return total

    def _bounded_search(
        self,
        stops: list[Stop],
        method: OptimizationMethod,
        is_loop: bool,
        vehicle_type: VehicleType,
    ) -> tuple[list[Stop], str]:
        if len(stops) <= 1:
            return list(stops), STRATEGY_BOUNDED_SEARCH

        best_order, _ = self._nearest_neighbor_family(stops, method, is_loop)
        best_score = self.order_score(best_order, method, is_loop, vehicle_type)

        if len(stops) <= self.cost_model.permutation_max_stops:
            for candidate in bounded_permutations(stops, self.cost_model.permutation_limit):
                score = self.order_score(candidate, method, is_loop, vehicle_type)
                if score < best_score:
                    best_order, best_score = candidate, score

        logger.debug(f"Bounded search best score {best_score:.1f} for {method.value}")
        return best_order, STRATEGY_BOUNDED_SEARCH

    def _nearest_neighbor_family(
        self,
        stops: list[Stop],
        method: OptimizationMethod,
        is_loop: bool,
    ) -> tuple[list[Stop], str]:
        if len(stops) <= 1:
            return list(stops), STRATEGY_NEAREST_NEIGHBOR
        if is_loop and len(stops) >= 3:
            order, variant = self._loop_aware(stops, method)
            return order, f"{STRATEGY_LOOP_AWARE}:{variant}"
        return self._nearest_neighbor(stops, method), STRATEGY_NEAREST_NEIGHBOR

    def _nearest_neighbor(self, stops: list[Stop], method: OptimizationMethod) -> list[Stop]:
        current = stops[0]
        result = [current]
        remaining = list(stops[1:])
        while remaining:
            origin = current
            current = _pop_best(remaining, lambda stop: self.cost_model.step_score(_hop(origin, stop), method))
            result.append(current)
        return result

    def _loop_aware(self, stops: list[Stop], method: OptimizationMethod) -> tuple[list[Stop], str]:
        start, others = stops[0], stops[1:]

        candidates: list[tuple[str, list[Stop]]] = [
            ("nearest-first", self._nearest_first_loop(start, others, method)),
            ("farthest-first", self._farthest_first_loop(start, others)),
        ]
        for second in others[: self.cost_model.alternate_second_candidates]:
            rest = [stop for stop in others if stop is not second]
            candidates.append(("alternate-second", self._distance_loop_tail([start, second], rest)))

        best_order: list[Stop] = stops
        best_variant = candidates[0][0]
        best_score = float("inf")
        for variant, order in candidates:
            score = self.loop_score(order, method)
            logger.debug(f"  loop strategy {variant}: score {score:.1f}")
            if score < best_score:
                best_order, best_variant, best_score = order, variant, score
        return best_order, best_variant

    def _nearest_first_loop(self, start: Stop, others: Sequence[Stop], method: OptimizationMethod) -> list[Stop]:
        result = [start]
        remaining = list(others)
        current = start

        while remaining:
            origin = current
            closing = len(remaining) == 1

            def score(stop: Stop) -> float:
                value = self.cost_model.banded_score(_hop(origin, stop), method)
                if closing:
                    value += self.cost_model.banded_score(_hop(stop, start), method)
                return value

            current = _pop_best(remaining, score)
            result.append(current)
        return result

    def _farthest_first_loop(self, start: Stop, others: Sequence[Stop]) -> list[Stop]:
        farthest = None
        max_distance = 0.0
        for stop in others:
            distance = _hop(start, stop)
            if distance > max_distance:
                farthest, max_distance = stop, distance

        if farthest is None:
            return [start, *others]
        rest = [stop for stop in others if stop is not farthest]
        return self._distance_loop_tail([start, farthest], rest)

    @staticmethod
    def _distance_loop_tail(prefix: list[Stop], remaining: Sequence[Stop]) -> list[Stop]:
        """Extend ``prefix`` greedily by distance, charging the last pick its way home."""
        start = prefix[0]
        result = list(prefix)
        remaining = list(remaining)
        current = result[-1]

        while remaining:
            origin = current
            closing = len(remaining) == 1
            current = _pop_best(
                remaining,
                lambda stop: _hop(origin, stop) + (_hop(stop, start) if closing else 0.0),
            )
            result.append(current)
        return result
