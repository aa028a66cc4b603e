"""Address lookup endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...schemas.routing import GeocodeResponse
from ...services.routing.service import RouteOptimizationService
from ..dependencies import get_routing_service

router = APIRouter(tags=["geocoding"])


@router.get("/geocode", response_model=GeocodeResponse, status_code=status.HTTP_200_OK)
def geocode(
    address: str = Query(..., min_length=1, description="Free-text address to look up."),
    service: RouteOptimizationService = Depends(get_routing_service),
) -> GeocodeResponse:
    coordinates = service.geocode(address)
    if coordinates is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No match for address '{address}'.")
    return GeocodeResponse(address=address, latitude=coordinates.latitude, longitude=coordinates.longitude)
