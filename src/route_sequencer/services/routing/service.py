"""Routing orchestration service."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Sequence

from ...config import Settings, settings as default_settings
from ...models.domain import Coordinates, Stop
from ...schemas.routing import (
    CoordinatesModel,
    LineStringModel,
    OptimizationMetadata,
    RouteModel,
    RouteOptimizationRequest,
    RouteOptimizationResponse,
    SegmentModel,
    StopModel,
)
from .cache import RouteCache, RouteCacheStats, SegmentCache, route_fingerprint
from .geocoding import NominatimGeocoder
from .models import OptimizationMethod, Route, Segment, VehicleType
from .providers import OpenRouteServiceProvider, SegmentProvider, build_default_providers
from .resolver import SegmentResolver
from .sequencer import CostModel, LocationSequencer

logger = logging.getLogger(__name__)


def _resolve_position(stop: StopModel, total: int) -> int | None:
    if stop.lock_position == "start":
        return 0
    if stop.lock_position == "end":
        return total - 1
    return stop.order


def build_stops(payload: Sequence[StopModel]) -> list[Stop]:
    """Convert request stops to domain stops, rejecting anything unroutable."""
    if len(payload) < 2:
        raise ValueError("At least 2 stops are required to calculate a route.")

    missing = [stop.address or stop.id for stop in payload if stop.coordinates is None]
    if missing:
        raise ValueError(f"The following stops have no coordinates: {', '.join(missing)}")

    seen_ids: set[str] = set()
    taken_positions: dict[int, str] = {}
    stops: list[Stop] = []
    total = len(payload)
    for item in payload:
        if item.id in seen_ids:
            raise ValueError(f"Duplicate stop id '{item.id}'.")
        seen_ids.add(item.id)

        position = _resolve_position(item, total) if item.is_locked else item.order
        if item.is_locked:
            if position is None:
                raise ValueError(f"Locked stop '{item.id}' needs a position (order or lock_position).")
            if not 0 <= position < total:
                raise ValueError(f"Locked stop '{item.id}' position {position} is outside 0..{total - 1}.")
            if position in taken_positions:
                raise ValueError(
                    f"Locked stops '{taken_positions[position]}' and '{item.id}' share position {position}."
                )
            taken_positions[position] = item.id

        stops.append(
            Stop(
                id=item.id,
                address=item.address,
                coordinates=Coordinates(
                    latitude=item.coordinates.latitude,
                    longitude=item.coordinates.longitude,
                ),
                is_locked=item.is_locked,
                position=position,
            )
        )
    return stops


def resolve_route_segments(
    resolver: SegmentResolver,
    locations: Sequence[Stop],
    vehicle_type: VehicleType,
    is_loop: bool,
) -> list[Segment]:
    segments = [
        resolver.resolve(origin, destination, vehicle_type)
        for origin, destination in zip(locations, locations[1:])
    ]
    if is_loop and len(locations) > 2:
        segments.append(resolver.resolve(locations[-1], locations[0], vehicle_type))
    return segments


def _generate_route_id() -> str:
    return f"route_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _stop_model(stop: Stop) -> StopModel:
    return StopModel(
        id=stop.id,
        address=stop.address,
        coordinates=CoordinatesModel(latitude=stop.coordinates.latitude, longitude=stop.coordinates.longitude)
        if stop.coordinates is not None
        else None,
        is_locked=stop.is_locked,
        lock_position="fixed" if stop.is_locked else None,
        order=stop.position,
    )


def route_to_model(route: Route) -> RouteModel:
    return RouteModel(
        id=route.route_id,
        locations=[_stop_model(stop) for stop in route.locations],
        total_distance_km=route.total_distance_km,
        total_duration_min=route.total_duration_min,
        vehicle_type=route.vehicle_type,
        is_loop=route.is_loop,
        optimization_method=route.optimization_method,
        segments=[
            SegmentModel(
                origin=_stop_model(segment.origin),
                destination=_stop_model(segment.destination),
                distance_km=segment.distance_km,
                duration_min=segment.duration_min,
                instructions=list(segment.instructions),
                polyline=LineStringModel(coordinates=[[lon, lat] for lon, lat in segment.polyline])
                if segment.polyline
                else None,
                provider=segment.provider,
            )
            for segment in route.segments
        ],
    )


def _provider_tag(segments: Sequence[Segment]) -> str:
    names: list[str] = []
    for segment in segments:
        if segment.provider not in names:
            names.append(segment.provider)
    return "+".join(names) or "none"


class RouteOptimizationService:
    """Order stops, resolve their segments and memoize whole routes.

    One instance serves the whole process: it owns the shared route cache and
    builds a fresh segment cache for every optimization run, so concurrent runs
    never share segment state.
    """

    def __init__(
        self,
        config: Settings | None = None,
        providers: Sequence[SegmentProvider] | None = None,
        route_cache: RouteCache | None = None,
        geocoder: NominatimGeocoder | None = None,
        cost_model: CostModel | None = None,
    ) -> None:
        self.config = config or default_settings
        self.providers = list(providers) if providers is not None else build_default_providers(self.config)
        self.route_cache = route_cache or RouteCache(
            ttl_seconds=self.config.route_cache_ttl_seconds,
            max_entries=self.config.route_cache_max_entries,
        )
        self.geocoder = geocoder or NominatimGeocoder(
            base_url=self.config.nominatim_base_url,
            user_agent=self.config.nominatim_user_agent,
            timeout=self.config.provider_timeout_seconds,
        )
        self.cost_model = cost_model or CostModel()

    def has_truck_routing(self) -> bool:
        return any(isinstance(provider, OpenRouteServiceProvider) for provider in self.providers)

    def optimize(self, payload: RouteOptimizationRequest) -> RouteOptimizationResponse:
        started = time.perf_counter()
        vehicle_type = VehicleType(payload.vehicle_type)
        method = OptimizationMethod(payload.optimization_method)

        stops = build_stops(payload.stops)
        fingerprint = route_fingerprint(stops, vehicle_type, method, payload.is_loop)

        cached = self.route_cache.get(fingerprint)
        if cached is not None:
            logger.debug("Route found in cache, returning immediately")
            return RouteOptimizationResponse(
                route=route_to_model(cached),
                metadata=OptimizationMetadata(
                    calculation_time_ms=(time.perf_counter() - started) * 1000.0,
                    algorithm="cache-hit",
                    provider="cache",
                    source="cache",
                ),
            )

        segment_cache = SegmentCache(self.config.segment_cache_size)
        resolver = SegmentResolver(self.providers, segment_cache)
        sequencer = LocationSequencer(resolver, self.cost_model)

        plan = sequencer.plan(stops, method, payload.is_loop, vehicle_type)
        segments = resolve_route_segments(resolver, plan.stops, vehicle_type, payload.is_loop)

        route = Route(
            route_id=_generate_route_id(),
            locations=plan.stops,
            total_distance_km=sum(segment.distance_km for segment in segments),
            total_duration_min=sum(segment.duration_min for segment in segments),
            vehicle_type=vehicle_type,
            is_loop=payload.is_loop,
            segments=segments,
            optimization_method=method,
        )
        self.route_cache.put(fingerprint, route)

        elapsed_ms = (time.perf_counter() - started) * 1000.0
        logger.info(
            f"Optimized {len(stops)} stops ({vehicle_type.value}, {method.value}, loop={payload.is_loop}) "
            f"with {plan.strategy}: {route.total_distance_km:.1f} km / {route.total_duration_min:.0f} min, "
            f"{len(segment_cache)} segments cached, {elapsed_ms:.0f} ms"
        )

        return RouteOptimizationResponse(
            route=route_to_model(route),
            metadata=OptimizationMetadata(
                calculation_time_ms=elapsed_ms,
                algorithm=plan.strategy,
                provider=_provider_tag(segments),
                source="computed",
            ),
        )

    def geocode(self, address: str) -> Coordinates | None:
        return self.geocoder.geocode(address)

    def cache_stats(self) -> RouteCacheStats:
        return self.route_cache.stats()

    def clear_cache(self) -> None:
        self.route_cache.clear()
        logger.info("Route cache cleared")
