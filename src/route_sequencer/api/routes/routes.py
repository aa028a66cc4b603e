"""Routing endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...schemas.routing import CacheStatsResponse, RouteOptimizationRequest, RouteOptimizationResponse
from ...services.routing.service import RouteOptimizationService
from ..dependencies import get_routing_service

router = APIRouter(prefix="/routes", tags=["routes"])

logger = logging.getLogger(__name__)


@router.post("/optimize", response_model=RouteOptimizationResponse, status_code=status.HTTP_200_OK)
def optimize(
    payload: RouteOptimizationRequest,
    service: RouteOptimizationService = Depends(get_routing_service),
) -> RouteOptimizationResponse:
    try:
        return service.optimize(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error optimizing route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize route: {str(exc)}",
        ) from exc


@router.get("/cache", response_model=CacheStatsResponse, status_code=status.HTTP_200_OK)
def cache_stats(service: RouteOptimizationService = Depends(get_routing_service)) -> CacheStatsResponse:
    stats = service.cache_stats()
    return CacheStatsResponse(route_count=stats.count, approximate_size_bytes=stats.approximate_size_bytes)


@router.delete("/cache", status_code=status.HTTP_204_NO_CONTENT)
def clear_cache(service: RouteOptimizationService = Depends(get_routing_service)) -> None:
    """Drop every cached route."""
    service.clear_cache()
