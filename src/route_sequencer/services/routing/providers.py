"""Segment providers, one per fallback tier.

Each provider turns an ordered pair of located stops into a ``Segment`` or
raises ``ProviderError``. The resolver walks them in order and finishes with
``GeodesicEstimator``, which cannot fail.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from ...config import Settings
from ...models.domain import Stop
from ..geospatial import distance_km
from .exceptions import ProviderError
from .models import Segment, VehicleType
from .ors_client import OpenRouteServiceClient
from .osrm_client import OSRMClient
from .polyline import decode_polyline

logger = logging.getLogger(__name__)

# The generic driving profile cannot model weight or height limits, so truck
# segments from it are stretched by these factors.
TRUCK_DISTANCE_FACTOR = 1.1
TRUCK_DURATION_FACTOR = 1.4

FALLBACK_SPEED_KMH = {VehicleType.CAR: 70.0, VehicleType.TRUCK: 50.0}


class SegmentProvider(Protocol):
    name: str

    def supports(self, vehicle_type: VehicleType) -> bool:
        ...

    def resolve(self, origin: Stop, destination: Stop, vehicle_type: VehicleType) -> Segment:
        ...


def _waypoints(origin: Stop, destination: Stop) -> list[tuple[float, float]]:
    return [
        (origin.coordinates.latitude, origin.coordinates.longitude),
        (destination.coordinates.latitude, destination.coordinates.longitude),
    ]


def _step_text(instruction: Any, step_distance_km: float) -> str:
    if isinstance(instruction, str) and instruction.strip():
        return instruction
    return f"Continue for {step_distance_km:.1f} km"


class OpenRouteServiceProvider:
    """Heavy-vehicle routing; the provider models truck restrictions itself."""

    name = "openrouteservice"

    def __init__(self, client: OpenRouteServiceClient) -> None:
        self.client = client

    def supports(self, vehicle_type: VehicleType) -> bool:
        return vehicle_type == VehicleType.TRUCK

    def resolve(self, origin: Stop, destination: Stop, vehicle_type: VehicleType) -> Segment:
        data = self.client.directions(_waypoints(origin, destination))
        try:
            route = data["routes"][0]
            summary = route["summary"]
            distance = float(summary["distance"])
            duration = float(summary["duration"]) / 60.0
            legs = route.get("segments") or [{}]
            instructions = [
                _step_text(step.get("instruction"), float(step.get("distance", 0.0)))
                for step in legs[0].get("steps") or []
            ]
            geometry = route.get("geometry")
            polyline = (
                [(lon, lat) for lat, lon in decode_polyline(geometry)]
                if isinstance(geometry, str) and geometry
                else None
            )
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as exc:
            raise ProviderError(self.name, f"malformed directions response: {exc}") from exc

        return Segment(
            origin=origin,
            destination=destination,
            distance_km=distance,
            duration_min=duration,
            instructions=instructions,
            polyline=polyline,
            provider=self.name,
        )


class OSRMProvider:
    """General-purpose car routing, stretched for trucks."""

    name = "osrm"

    def __init__(self, client: OSRMClient) -> None:
        self.client = client

    def supports(self, vehicle_type: VehicleType) -> bool:
        return True

    def resolve(self, origin: Stop, destination: Stop, vehicle_type: VehicleType) -> Segment:
        data = self.client.route(_waypoints(origin, destination))
        try:
            route = data["routes"][0]
            distance = float(route["distance"]) / 1000.0
            duration = float(route["duration"]) / 60.0
            legs = route.get("legs") or [{}]
            instructions = [
                _step_text(
                    (step.get("maneuver") or {}).get("instruction"),
                    float(step.get("distance", 0.0)) / 1000.0,
                )
                for step in legs[0].get("steps") or []
            ]
            geometry = route.get("geometry")
            polyline = (
                [(float(lon), float(lat)) for lon, lat in geometry["coordinates"]]
                if isinstance(geometry, dict) and geometry.get("coordinates")
                else None
            )
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as exc:
            raise ProviderError(self.name, f"malformed route response: {exc}") from exc

        if vehicle_type == VehicleType.TRUCK:
            distance *= TRUCK_DISTANCE_FACTOR
            duration *= TRUCK_DURATION_FACTOR

        return Segment(
            origin=origin,
            destination=destination,
            distance_km=distance,
            duration_min=duration,
            instructions=instructions,
            polyline=polyline,
            provider=self.name,
        )


@dataclass(slots=True)
class GeodesicEstimator:
    """Straight-line estimate used when every network tier has failed."""

    car_speed_kmh: float = FALLBACK_SPEED_KMH[VehicleType.CAR]
    truck_speed_kmh: float = FALLBACK_SPEED_KMH[VehicleType.TRUCK]
    name: str = "geodesic"

    def speed_for(self, vehicle_type: VehicleType) -> float:
        return self.truck_speed_kmh if vehicle_type == VehicleType.TRUCK else self.car_speed_kmh

    def resolve(self, origin: Stop, destination: Stop, vehicle_type: VehicleType) -> Segment:
        distance = distance_km(origin.coordinates, destination.coordinates)
        duration = distance / self.speed_for(vehicle_type) * 60.0
        return Segment(
            origin=origin,
            destination=destination,
            distance_km=distance,
            duration_min=duration,
            instructions=[f"Travel {distance:.1f} km to {destination.address}"],
            polyline=None,
            provider=self.name,
        )


def build_default_providers(config: Settings) -> list[SegmentProvider]:
    """Provider tiers in fallback order for the given configuration."""
    providers: list[SegmentProvider] = []
    if config.ors_api_key:
        providers.append(
            OpenRouteServiceProvider(
                OpenRouteServiceClient(
                    api_key=config.ors_api_key,
                    base_url=config.ors_base_url,
                    timeout=config.provider_timeout_seconds,
                    max_retries=config.provider_max_retries,
                    backoff_seconds=config.provider_backoff_seconds,
                )
            )
        )
        logger.info("OpenRouteService API key configured - real truck routing enabled")
    if config.osrm_base_url:
        providers.append(
            OSRMProvider(
                OSRMClient(
                    base_url=config.osrm_base_url,
                    profile=config.osrm_profile,
                    timeout=config.provider_timeout_seconds,
                    max_retries=config.provider_max_retries,
                    backoff_seconds=config.provider_backoff_seconds,
                )
            )
        )
    else:
        logger.warning("OSRM base URL is not configured; segments fall back to straight-line estimates")
    return providers
