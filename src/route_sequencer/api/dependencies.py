"""Request-scoped access to the application's services."""

from __future__ import annotations

from fastapi import Request

from ..services.routing.service import RouteOptimizationService


def get_routing_service(request: Request) -> RouteOptimizationService:
    return request.app.state.routing_service
