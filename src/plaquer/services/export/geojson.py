"""GeoJSON export of routes and the distance-filter circle."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Sequence

from shapely.geometry import LineString, Point, mapping

from ...models.domain import Plaque
from ..errors import InsufficientWaypointsError
from ..filtering.models import DistanceFilter
from ..geospatial import circle_polygon
from ..routing.models import RouteMetrics


def route_to_features(points: Sequence[Plaque], metrics: RouteMetrics) -> List[Dict[str, Any]]:
    """One Point feature per located waypoint plus a LineString for the walk.

    When the metrics carry per-segment geometry (routing-service results) the
    line follows it; otherwise it joins the waypoints directly.
    """
    located = [(plaque, plaque.coordinates) for plaque in points]
    located = [(plaque, coords) for plaque, coords in located if coords is not None]
    if len(located) < 2:
        raise InsufficientWaypointsError(len(located))

    features: List[Dict[str, Any]] = []
    for order, (plaque, (lat, lng)) in enumerate(located):
        features.append(
            {
                "type": "Feature",
                "geometry": mapping(Point(lng, lat)),
                "properties": {
                    "order": order,
                    "plaque_id": plaque.id,
                    "title": plaque.title,
                    "role": "start" if order == 0 else "end" if order == len(located) - 1 else "stop",
                },
            }
        )

    path: list[tuple[float, float]] = []
    for segment in metrics.segments:
        for lat, lng in segment.geometry:
            if not path or path[-1] != (lng, lat):
                path.append((lng, lat))
    if len(path) < 2:
        path = [(lng, lat) for _, (lat, lng) in located]

    features.append(
        {
            "type": "Feature",
            "geometry": mapping(LineString(path)),
            "properties": {
                "kind": "route",
                "total_distance_km": round(metrics.total_distance_km, 3),
                "total_duration_minutes": round(metrics.total_duration_minutes, 1),
                "is_estimated": metrics.is_estimated,
                "stop_count": len(located),
            },
        }
    )
    return features


def distance_filter_feature(distance_filter: DistanceFilter, segments: int = 64) -> Dict[str, Any] | None:
    """Polygon feature for an active distance filter, or None when it is off."""
    if not distance_filter.active:
        return None
    polygon = circle_polygon(distance_filter.center, distance_filter.radius_km, segments=segments)
    return {
        "type": "Feature",
        "geometry": mapping(polygon),
        "properties": {
            "kind": "distance_filter",
            "radius_km": distance_filter.radius_km,
            "location_name": distance_filter.location_name,
        },
    }


def feature_collection(features: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "FeatureCollection", "features": features}


def save_geojson(collection: Dict[str, Any], output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as f:
        json.dump(collection, f, indent=2, ensure_ascii=False)
