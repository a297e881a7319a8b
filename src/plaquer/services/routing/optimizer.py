"""Greedy nearest-neighbour ordering of route waypoints."""

from __future__ import annotations

import math
from typing import Sequence

from ...models.domain import Plaque
from ..geospatial import distance_km


def _distance_or_inf(a: Plaque, b: Plaque) -> float:
    start, end = a.coordinates, b.coordinates
    if start is None or end is None:
        return math.inf
    return distance_km(start, end)


def route_length_km(points: Sequence[Plaque]) -> float:
    """Straight-line length of the route, ignoring legs touching points without coordinates."""
    total = 0.0
    for current, following in zip(points, points[1:]):
        leg = _distance_or_inf(current, following)
        if math.isfinite(leg):
            total += leg
    return total


def optimize_route(points: Sequence[Plaque]) -> list[Plaque]:
    """Reorder waypoints by always walking to the nearest unvisited one.

    The first point stays the start. This is a heuristic, not an optimal
    tour. Points without coordinates are infinitely far away, so they end up
    at the tail in their original relative order.
    """
    if len(points) < 3:
        return list(points)

    ordered = [points[0]]
    remaining = list(points[1:])
    while remaining:
        last = ordered[-1]
        # min() keeps the earliest candidate on ties
        nearest_index = min(range(len(remaining)), key=lambda index: _distance_or_inf(last, remaining[index]))
        ordered.append(remaining.pop(nearest_index))
    return ordered
