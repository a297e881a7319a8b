"""Routing request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..services.routing.models import RouteMetrics, RouteSegment
from ..services.routing.records import RouteRecordPayload
from .plaques import PlaqueModel


class RouteRequest(BaseModel):
    plaques: List[PlaqueModel] = Field(..., description="Waypoints in walking order; index 0 is the start.")
    use_routing_service: bool = Field(
        default=True,
        description="Ask the configured walking-routing service first; fall back to the straight-line estimate.",
    )


class RouteStepModel(BaseModel):
    instruction: str
    distance_km: float
    duration_min: float
    coordinates: List[tuple[float, float]] = Field(default_factory=list)


class RouteSegmentModel(BaseModel):
    from_id: int
    to_id: int
    distance_km: float
    duration_min: float
    geometry: List[tuple[float, float]] = Field(default_factory=list)
    steps: List[RouteStepModel] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, segment: RouteSegment) -> "RouteSegmentModel":
        return cls(
            from_id=segment.from_id,
            to_id=segment.to_id,
            distance_km=segment.distance_km,
            duration_min=segment.duration_min,
            geometry=list(segment.geometry),
            steps=[
                RouteStepModel(
                    instruction=step.instruction,
                    distance_km=step.distance_km,
                    duration_min=step.duration_min,
                    coordinates=list(step.coordinates),
                )
                for step in segment.steps
            ],
        )


class RouteMetricsModel(BaseModel):
    total_distance_km: float
    total_duration_minutes: float
    is_estimated: bool
    segments: List[RouteSegmentModel] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, metrics: RouteMetrics) -> "RouteMetricsModel":
        return cls(
            total_distance_km=round(metrics.total_distance_km, 3),
            total_duration_minutes=round(metrics.total_duration_minutes, 1),
            is_estimated=metrics.is_estimated,
            segments=[RouteSegmentModel.from_domain(segment) for segment in metrics.segments],
        )


class OptimizeResponse(BaseModel):
    plaques: List[PlaqueModel]
    original_distance_km: float
    optimized_distance_km: float


class GPXExportRequest(BaseModel):
    plaques: List[PlaqueModel]
    name: Optional[str] = Field(default=None, description="Route name written into the GPX metadata.")
    persist: bool = Field(default=False, description="Also write the GPX file into a run directory.")


class GeoJSONExportRequest(BaseModel):
    plaques: List[PlaqueModel]
    use_routing_service: bool = False
    persist: bool = False


class RouteRecordDetails(BaseModel):
    name: str
    description: str = ""
    is_public: bool = False


class RouteRecordRequest(RouteRecordDetails):
    plaques: List[PlaqueModel]
    use_routing_service: bool = False


class RoutePointModel(BaseModel):
    plaque_id: int
    order: int
    latitude: float
    longitude: float
    title: str


class RouteRecordModel(BaseModel):
    name: str
    description: str
    points: List[RoutePointModel]
    total_distance_km: float
    total_duration_minutes: float
    is_estimated: bool
    is_public: bool

    @classmethod
    def from_domain(cls, payload: RouteRecordPayload) -> "RouteRecordModel":
        return cls(
            name=payload.name,
            description=payload.description,
            points=[
                RoutePointModel(
                    plaque_id=point.plaque_id,
                    order=point.order,
                    latitude=point.latitude,
                    longitude=point.longitude,
                    title=point.title,
                )
                for point in payload.points
            ],
            total_distance_km=payload.total_distance_km,
            total_duration_minutes=payload.total_duration_minutes,
            is_estimated=payload.is_estimated,
            is_public=payload.is_public,
        )
