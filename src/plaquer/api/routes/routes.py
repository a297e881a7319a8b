"""Walking route endpoints: metrics, optimisation, exports and save payloads."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, HTTPException, Response, status

from ...config import settings
from ...models.domain import Plaque
from ...persistence.filesystem import FileStorage
from ...schemas.plaques import PlaqueModel
from ...schemas.routing import (
    GeoJSONExportRequest,
    GPXExportRequest,
    OptimizeResponse,
    RouteMetricsModel,
    RouteRecordModel,
    RouteRecordRequest,
    RouteRequest,
)
from ...services.export import (
    GPX_MEDIA_TYPE,
    build_gpx,
    feature_collection,
    gpx_filename,
    route_to_features,
    save_geojson,
)
from ...services.export.gpx import DEFAULT_ROUTE_NAME
from ...services.map_state.sessions import default_routing_service
from ...services.routing.metrics import compute_route_metrics
from ...services.routing.models import RouteMetrics
from ...services.routing.optimizer import optimize_route, route_length_km
from ...services.routing.records import build_route_record
from ...services.routing.state import RouteMode, RouteState

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["routes"])


def get_routing_service():
    return default_routing_service()


def _plaques(models: List[PlaqueModel]) -> list[Plaque]:
    return [item.to_domain() for item in models]


async def _metrics(points: list[Plaque], use_routing_service: bool) -> RouteMetrics:
    service = get_routing_service() if use_routing_service else None
    return await compute_route_metrics(points, service)


@router.post("/metrics", response_model=RouteMetricsModel, status_code=status.HTTP_200_OK)
async def route_metrics(payload: RouteRequest) -> RouteMetricsModel:
    try:
        metrics = await _metrics(_plaques(payload.plaques), payload.use_routing_service)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error computing route metrics: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to compute route metrics: {str(exc)}"
        ) from exc
    return RouteMetricsModel.from_domain(metrics)


@router.post("/optimize", response_model=OptimizeResponse, status_code=status.HTTP_200_OK)
def optimize(payload: RouteRequest) -> OptimizeResponse:
    """Greedy nearest-neighbour ordering; the first waypoint stays the start."""
    points = _plaques(payload.plaques)
    ordered = optimize_route(points)
    return OptimizeResponse(
        plaques=[PlaqueModel.from_domain(plaque) for plaque in ordered],
        original_distance_km=round(route_length_km(points), 3),
        optimized_distance_km=round(route_length_km(ordered), 3),
    )


@router.post("/export/gpx", status_code=status.HTTP_200_OK)
def export_gpx(payload: GPXExportRequest) -> Response:
    now = datetime.now(timezone.utc)
    try:
        document = build_gpx(_plaques(payload.plaques), name=payload.name or DEFAULT_ROUTE_NAME, now=now)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    filename = gpx_filename(now)
    if payload.persist:
        storage = FileStorage()
        run_dir = storage.make_run_directory(prefix="gpx")
        storage.write_text(run_dir / filename, document)
        logger.info(f"Saved GPX export to {run_dir / filename}")
    return Response(
        content=document,
        media_type=GPX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/export/geojson", status_code=status.HTTP_200_OK)
async def export_geojson(payload: GeoJSONExportRequest) -> dict:
    points = _plaques(payload.plaques)
    try:
        metrics = await _metrics(points, payload.use_routing_service)
        collection = feature_collection(route_to_features(points, metrics))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    if payload.persist:
        storage = FileStorage()
        run_dir = storage.make_run_directory(prefix="geojson")
        save_geojson(collection, run_dir / "route.geojson")
        storage.write_json(
            run_dir / "summary.json",
            {
                "stops": len(points),
                "total_distance_km": round(metrics.total_distance_km, 3),
                "total_duration_minutes": round(metrics.total_duration_minutes, 1),
                "is_estimated": metrics.is_estimated,
                "created_at": datetime.now(timezone.utc).isoformat(),
                "generator": settings.app_name,
            },
        )
        logger.info(f"Saved GeoJSON export to {run_dir}")
    return collection


@router.post("/record", response_model=RouteRecordModel, status_code=status.HTTP_200_OK)
async def route_record(payload: RouteRecordRequest) -> RouteRecordModel:
    """Validate a route and return the payload the host persists."""
    points = _plaques(payload.plaques)
    route = RouteState(points=tuple(points), mode=RouteMode.ENABLED)
    try:
        metrics = await _metrics(points, payload.use_routing_service)
        record = build_route_record(
            payload.name,
            route,
            metrics,
            description=payload.description,
            is_public=payload.is_public,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return RouteRecordModel.from_domain(record)
