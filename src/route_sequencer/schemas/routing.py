"""Routing request/response schemas."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ..services.routing.models import OptimizationMethod, VehicleType


class CoordinatesModel(BaseModel):
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


class StopModel(BaseModel):
    id: str = Field(..., min_length=1)
    address: str = ""
    coordinates: Optional[CoordinatesModel] = None
    is_locked: bool = False
    lock_position: Optional[Literal["start", "end", "fixed"]] = Field(
        default=None,
        description="Where a locked stop is pinned. 'fixed' (or omitted) uses `order`.",
    )
    order: Optional[int] = Field(default=None, ge=0, description="Zero-based index for a fixed locked stop.")


class RouteOptimizationRequest(BaseModel):
    stops: List[StopModel]
    vehicle_type: VehicleType = VehicleType.CAR
    optimization_method: OptimizationMethod = OptimizationMethod.BALANCED
    is_loop: bool = False


class LineStringModel(BaseModel):
    type: Literal["LineString"] = "LineString"
    coordinates: List[List[float]] = Field(..., description="[longitude, latitude] pairs.")


class SegmentModel(BaseModel):
    origin: StopModel
    destination: StopModel
    distance_km: float
    duration_min: float
    instructions: List[str]
    polyline: Optional[LineStringModel] = None
    provider: str


class RouteModel(BaseModel):
    id: str
    locations: List[StopModel]
    total_distance_km: float
    total_duration_min: float
    vehicle_type: VehicleType
    is_loop: bool
    segments: List[SegmentModel]
    optimization_method: OptimizationMethod


class OptimizationMetadata(BaseModel):
    calculation_time_ms: float
    algorithm: str
    provider: str
    source: Literal["cache", "computed"]


class RouteOptimizationResponse(BaseModel):
    route: RouteModel
    metadata: OptimizationMetadata


class GeocodeResponse(BaseModel):
    address: str
    latitude: float
    longitude: float


class CacheStatsResponse(BaseModel):
    route_count: int
    approximate_size_bytes: int
