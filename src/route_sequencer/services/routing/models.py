"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ...models.domain import Stop


class VehicleType(str, Enum):
    CAR = "car"
    TRUCK = "truck"


class OptimizationMethod(str, Enum):
    SHORTEST_DISTANCE = "shortest_distance"
    FASTEST_TIME = "fastest_time"
    BALANCED = "balanced"


@dataclass(slots=True)
class Segment:
    origin: Stop
    destination: Stop
    distance_km: float
    duration_min: float
    instructions: List[str] = field(default_factory=list)
    # [lon, lat] pairs; None when only a straight-line estimate was available.
    polyline: Optional[List[tuple[float, float]]] = None
    provider: str = "geodesic"


@dataclass(slots=True)
class Route:
    route_id: str
    locations: List[Stop]
    total_distance_km: float
    total_duration_min: float
    vehicle_type: VehicleType
    is_loop: bool
    segments: List[Segment]
    optimization_method: OptimizationMethod
