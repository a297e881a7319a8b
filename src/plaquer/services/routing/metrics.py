"""Distance and walking-time totals for a route."""

from __future__ import annotations

import logging
from typing import Sequence

import httpx

from ...config import settings
from ...models.domain import Plaque
from ..cancellation import CancellationToken, RequestCancelled
from ..geospatial import distance_km
from .models import EMPTY_METRICS, RouteMetrics, RouteSegment, RouteStep
from .osrm_client import RoutingService

logger = logging.getLogger(__name__)


def format_distance(km: float) -> str:
    if km < 1:
        return f"{round(km * 1000)}m"
    return f"{km:.1f}km"


def estimate_route_metrics(
    points: Sequence[Plaque],
    *,
    correction_factor: float | None = None,
    minutes_per_km: float | None = None,
) -> RouteMetrics:
    """Straight-line estimate: Haversine legs scaled by the street correction factor.

    Plaques without coordinates are skipped and their neighbours joined
    directly.
    """
    factor = correction_factor if correction_factor is not None else settings.routing_correction_factor
    pace = minutes_per_km if minutes_per_km is not None else settings.walking_minutes_per_km

    located = [(plaque, plaque.coordinates) for plaque in points]
    located = [(plaque, coords) for plaque, coords in located if coords is not None]
    if len(located) < 2:
        return EMPTY_METRICS

    segments: list[RouteSegment] = []
    for (from_plaque, start), (to_plaque, end) in zip(located, located[1:]):
        leg_km = distance_km(start, end) * factor
        segments.append(
            RouteSegment(
                from_id=from_plaque.id,
                to_id=to_plaque.id,
                distance_km=leg_km,
                duration_min=leg_km * pace,
                geometry=(start, end),
                steps=(
                    RouteStep(
                        instruction=f"Walk {format_distance(leg_km)} to {to_plaque.title or 'the next stop'}",
                        distance_km=leg_km,
                        duration_min=leg_km * pace,
                        coordinates=(start, end),
                    ),
                ),
            )
        )
    total_km = sum(segment.distance_km for segment in segments)
    return RouteMetrics(
        total_distance_km=total_km,
        total_duration_minutes=total_km * pace,
        segments=tuple(segments),
        is_estimated=True,
    )


async def compute_route_metrics(
    points: Sequence[Plaque],
    routing_service: RoutingService | None = None,
    token: CancellationToken | None = None,
) -> RouteMetrics:
    """Route totals from the routing service, falling back to the straight-line estimate.

    Cancellation is not a failure: ``RequestCancelled`` propagates so the
    caller can discard the request instead of showing an estimate.
    """
    if len(points) < 2:
        return EMPTY_METRICS
    if routing_service is None:
        return estimate_route_metrics(points)

    try:
        route = await routing_service.compute_walking_route(points, token)
    except RequestCancelled:
        raise
    except (ConnectionError, ValueError, httpx.HTTPError) as exc:
        logger.warning(f"Walking route request failed: {exc}. Using straight-line estimate.")
        return estimate_route_metrics(points)

    return RouteMetrics(
        total_distance_km=route.total_distance_km,
        total_duration_minutes=route.total_duration_min,
        segments=tuple(route.segments),
        is_estimated=False,
    )
