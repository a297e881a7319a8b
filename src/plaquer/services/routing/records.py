"""Payload handed to the route persistence collaborator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Protocol

from ...models.domain import RoutePoint
from ..errors import InsufficientWaypointsError
from .models import RouteMetrics
from .state import RouteState


@dataclass(slots=True)
class RouteRecordPayload:
    name: str
    description: str
    points: List[RoutePoint]
    total_distance_km: float
    total_duration_minutes: float
    is_estimated: bool
    is_public: bool


class RouteStore(Protocol):
    def create_route(
        self,
        name: str,
        description: str,
        points: List[RoutePoint],
        distance_km: float,
        is_public: bool,
    ) -> Any: ...


def build_route_record(
    name: str,
    route: RouteState,
    metrics: RouteMetrics,
    *,
    description: str = "",
    is_public: bool = False,
) -> RouteRecordPayload:
    name = name.strip()
    if not name:
        raise ValueError("Route name is required.")
    points = route.route_points()
    if len(points) < 2:
        raise InsufficientWaypointsError(len(points))
    return RouteRecordPayload(
        name=name,
        description=description.strip(),
        points=points,
        total_distance_km=round(metrics.total_distance_km, 3),
        total_duration_minutes=round(metrics.total_duration_minutes, 1),
        is_estimated=metrics.is_estimated,
        is_public=is_public,
    )


def save_route(store: RouteStore, payload: RouteRecordPayload) -> Any:
    """Hand a validated payload to the host's store and return its record."""
    return store.create_route(
        payload.name,
        payload.description,
        payload.points,
        payload.total_distance_km,
        payload.is_public,
    )
