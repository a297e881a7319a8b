"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Any

from shapely.geometry import Polygon

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(a: tuple[float, float], b: tuple[float, float]) -> float:
    """Great-circle distance between two ``(lat, lng)`` pairs.

    Both pairs must hold finite values; parse raw input with
    :func:`parse_coordinate` before calling.
    """

    if a == b:
        return 0.0
    return haversine_km(a[0], a[1], b[0], b[1])


def parse_coordinate(value: Any) -> float | None:
    """Parse a latitude/longitude that may arrive as a number or a numeric string.

    Returns None for missing, unparsable or non-finite values.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def destination_point(lat: float, lon: float, bearing: float, distance: float) -> tuple[float, float]:
    """Point reached travelling ``distance`` km from (lat, lon) on the given initial bearing."""

    delta = distance / EARTH_RADIUS_KM
    theta = math.radians(bearing)
    phi1 = math.radians(lat)
    lambda1 = math.radians(lon)

    phi2 = math.asin(math.sin(phi1) * math.cos(delta) + math.cos(phi1) * math.sin(delta) * math.cos(theta))
    lambda2 = lambda1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )
    return math.degrees(phi2), (math.degrees(lambda2) + 540) % 360 - 180


def circle_polygon(center: tuple[float, float], radius_km: float, segments: int = 64) -> Polygon:
    """Approximate the distance-filter circle as a polygon in (lng, lat) order."""

    if radius_km <= 0:
        raise ValueError("radius_km must be positive")
    if segments < 3:
        raise ValueError("A circle needs at least 3 segments")
    lat, lon = center
    ring = []
    for step in range(segments):
        point_lat, point_lon = destination_point(lat, lon, step * 360.0 / segments, radius_km)
        ring.append((point_lon, point_lat))
    return Polygon(ring)
