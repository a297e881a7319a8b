"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True, slots=True)
class RouteStep:
    """One turn-by-turn walking instruction within a segment."""

    instruction: str
    distance_km: float
    duration_min: float
    coordinates: tuple[tuple[float, float], ...] = ()


@dataclass(frozen=True, slots=True)
class RouteSegment:
    from_id: int
    to_id: int
    distance_km: float
    duration_min: float
    geometry: tuple[tuple[float, float], ...] = ()
    steps: tuple[RouteStep, ...] = ()


@dataclass(frozen=True, slots=True)
class RouteMetrics:
    total_distance_km: float
    total_duration_minutes: float
    segments: tuple[RouteSegment, ...] = ()
    is_estimated: bool = True


EMPTY_METRICS = RouteMetrics(total_distance_km=0.0, total_duration_minutes=0.0)


@dataclass(slots=True)
class WalkingRoute:
    """Result of a multi-waypoint walking request to a routing service."""

    total_distance_km: float
    total_duration_min: float
    segments: List[RouteSegment] = field(default_factory=list)
