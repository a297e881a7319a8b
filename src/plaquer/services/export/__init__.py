"""Export services."""

from .geojson import (
    distance_filter_feature,
    feature_collection,
    route_to_features,
    save_geojson,
)
from .gpx import GPX_MEDIA_TYPE, build_gpx, gpx_filename

__all__ = [
    "GPX_MEDIA_TYPE",
    "build_gpx",
    "gpx_filename",
    "route_to_features",
    "distance_filter_feature",
    "feature_collection",
    "save_geojson",
]
