"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...services.routing.service import RouteOptimizationService
from ..dependencies import get_routing_service

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_osrm_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.routing.osrm_client import check_health as osrm_health_check
    return osrm_health_check


@router.get("/health/osrm", status_code=status.HTTP_200_OK)
def health_osrm(service: RouteOptimizationService = Depends(get_routing_service)) -> dict:
    """Check OSRM service health."""
    base_url = service.config.osrm_base_url
    if not base_url:
        return {"service": "osrm", "healthy": False, "error": "OSRM base URL is not configured."}
    osrm_health_check = _get_osrm_health_check()
    return {"service": "osrm", "healthy": osrm_health_check(base_url)}


@router.get("/health/capabilities", status_code=status.HTTP_200_OK)
def capabilities(service: RouteOptimizationService = Depends(get_routing_service)) -> dict:
    """Report which routing tiers are active."""
    return {
        "truck_routing": service.has_truck_routing(),
        "providers": [provider.name for provider in service.providers] + ["geodesic"],
    }
