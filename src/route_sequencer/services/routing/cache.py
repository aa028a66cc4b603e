"""In-memory caches for resolved segments and whole routes.

Neither cache survives a process restart. The segment cache is scoped to a
single optimization run; the route cache is shared process-wide.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Callable, Optional, Sequence

from ...models.domain import Stop
from .models import OptimizationMethod, Route, Segment, VehicleType

DEFAULT_SEGMENT_CACHE_SIZE = 100
DEFAULT_ROUTE_CACHE_TTL_SECONDS = 30 * 60
DEFAULT_ROUTE_CACHE_MAX_ENTRIES = 50

logger = logging.getLogger(__name__)


def segment_key(origin: Stop, destination: Stop, vehicle_type: VehicleType) -> str:
    return f"{origin.id}-{destination.id}-{VehicleType(vehicle_type).value}"


def route_fingerprint(
    stops: Sequence[Stop],
    vehicle_type: VehicleType,
    method: OptimizationMethod,
    is_loop: bool,
) -> str:
    """Build the route cache key for a request.

    Coordinates are rounded to 4 decimal places and kept in request order, so
    the same stops submitted in a different order produce a different key.
    Stop ids and lock pins are not part of the key: a request with the same
    coordinates but different ids or locks is served the route cached for the
    earlier request, with that request's ids and lock layout.
    """
    location_part = "-".join(
        f"{stop.coordinates.latitude:.4f}_{stop.coordinates.longitude:.4f}"
        if stop.coordinates is not None
        else "none_none"
        for stop in stops
    )
    loop_flag = "true" if is_loop else "false"
    return (
        f"{location_part}_{VehicleType(vehicle_type).value}"
        f"_{OptimizationMethod(method).value}_{loop_flag}"
    )


class SegmentCache:
    """Bounded segment map with strict insertion-order eviction."""

    def __init__(self, capacity: int = DEFAULT_SEGMENT_CACHE_SIZE) -> None:
        if capacity < 1:
            raise ValueError("Segment cache capacity must be at least 1.")
        self.capacity = capacity
        self._entries: OrderedDict[str, Segment] = OrderedDict()

    def get(self, key: str) -> Optional[Segment]:
        # Reads never touch the eviction order.
        return self._entries.get(key)

    def put(self, key: str, segment: Segment) -> None:
        if key in self._entries:
            self._entries[key] = segment
            return
        while len(self._entries) >= self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Segment cache full, evicted {evicted}")
        self._entries[key] = segment

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(slots=True)
class RouteCacheStats:
    count: int
    approximate_size_bytes: int


@dataclass(slots=True)
class _RouteEntry:
    route: Route
    timestamp: float


class RouteCache:
    """Fingerprint-keyed route cache with time-to-live and size-based eviction."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_ROUTE_CACHE_TTL_SECONDS,
        max_entries: int = DEFAULT_ROUTE_CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("Route cache TTL must be positive.")
        if max_entries < 1:
            raise ValueError("Route cache must hold at least one entry.")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, _RouteEntry] = {}
        self._lock = threading.Lock()

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if now - entry.timestamp > self.ttl_seconds]
        for key in expired:
            del self._entries[key]
            logger.debug(f"Expired route removed from cache: {key[:20]}...")

    def get(self, fingerprint: str) -> Optional[Route]:
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            entry = self._entries.get(fingerprint)
            if entry is not None and now - entry.timestamp < self.ttl_seconds:
                logger.debug(f"Route cache hit: {fingerprint[:20]}...")
                return entry.route
            return None

    def put(self, fingerprint: str, route: Route) -> None:
        with self._lock:
            self._entries[fingerprint] = _RouteEntry(route=route, timestamp=self._clock())
            logger.debug(f"Route cached: {fingerprint[:20]}...")
            if len(self._entries) > self.max_entries:
                oldest = min(self._entries, key=lambda key: self._entries[key].timestamp)
                del self._entries[oldest]
                logger.debug("Route cache over capacity, evicted oldest route")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> RouteCacheStats:
        with self._lock:
            size = sum(
                len(json.dumps(asdict(entry), default=str)) for entry in self._entries.values()
            )
            return RouteCacheStats(count=len(self._entries), approximate_size_bytes=size)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
