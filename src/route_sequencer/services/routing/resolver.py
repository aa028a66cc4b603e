"""Segment resolution with layered provider fallback."""

from __future__ import annotations

import logging
from typing import Sequence

from ...models.domain import Stop
from .cache import SegmentCache, segment_key
from .exceptions import ProviderError
from .models import Segment, VehicleType
from .providers import GeodesicEstimator, SegmentProvider

logger = logging.getLogger(__name__)


class SegmentResolver:
    """Resolve stop pairs into segments, memoizing every answer for the run.

    Degraded straight-line answers are cached as well, so a provider that is
    already failing is not asked again for the same pair in the same run.
    """

    def __init__(
        self,
        providers: Sequence[SegmentProvider],
        cache: SegmentCache,
        fallback: GeodesicEstimator | None = None,
    ) -> None:
        self.providers = list(providers)
        self.cache = cache
        self.fallback = fallback or GeodesicEstimator()

    def resolve(self, origin: Stop, destination: Stop, vehicle_type: VehicleType) -> Segment:
        if not (origin.is_located and destination.is_located):
            raise ValueError("Both stops must have coordinates to resolve a segment.")

        vehicle_type = VehicleType(vehicle_type)
        key = segment_key(origin, destination, vehicle_type)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Segment cache hit: {origin.address[:20]} -> {destination.address[:20]}")
            return cached

        segment = self._resolve_uncached(origin, destination, vehicle_type)
        self.cache.put(key, segment)
        return segment

    def _resolve_uncached(self, origin: Stop, destination: Stop, vehicle_type: VehicleType) -> Segment:
        for provider in self.providers:
            if not provider.supports(vehicle_type):
                continue
            logger.debug(f"Calling {provider.name} for {origin.address[:20]} -> {destination.address[:20]}")
            try:
                return provider.resolve(origin, destination, vehicle_type)
            except ProviderError as exc:
                logger.warning(f"{provider.name} failed for segment {origin.id} -> {destination.id}: {exc}")

        logger.warning(
            f"All routing providers failed for {origin.id} -> {destination.id}, using straight-line estimate"
        )
        return self.fallback.resolve(origin, destination, vehicle_type)
