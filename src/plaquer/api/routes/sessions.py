"""Map session endpoints: a server-held engine per open map."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Response, status

from ...models.domain import Plaque
from ...schemas.plaques import DistanceFilterModel
from ...schemas.routing import RouteMetricsModel, RouteRecordDetails, RouteRecordModel
from ...schemas.sessions import (
    DispatchRequest,
    DispatchResponse,
    LocateRequest,
    MapStateModel,
    MembershipRequest,
    PlaquesRequest,
    SearchLocationRequest,
    SessionCreateRequest,
    SessionResponse,
    SetLocationRequest,
    SyncFilterResponse,
)
from ...services.errors import GeolocationError
from ...services.export import GPX_MEDIA_TYPE, gpx_filename
from ...services.filtering.models import SetMembership
from ...services.geocoding.geolocation import ReportedPosition
from ...services.map_state.machine import DispatchResult, MapStateMachine
from ...services.map_state.sessions import SessionNotFoundError, SessionRegistry

router = APIRouter(prefix="/sessions", tags=["sessions"])

registry = SessionRegistry()


def _machine(session_id: str) -> MapStateMachine:
    try:
        return registry.get(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


def _session_response(session_id: str, machine: MapStateMachine) -> SessionResponse:
    visible_ids = [plaque.id for plaque in machine.visible_plaques()]
    return SessionResponse(
        session_id=session_id,
        state=MapStateModel.from_domain(machine.state),
        visible_count=len(visible_ids),
        visible_ids=visible_ids,
    )


def _dispatch_response(session_id: str, machine: MapStateMachine, result: Optional[DispatchResult]) -> DispatchResponse:
    if result is None:
        # superseded by a newer request; report the current state unchanged
        result = DispatchResult(state=machine.state, changed=False)
    visible_ids = [plaque.id for plaque in machine.visible_plaques()]
    return DispatchResponse.build(session_id, result, visible_ids)


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def create_session(payload: SessionCreateRequest) -> SessionResponse:
    try:
        plaques = [item.to_domain() for item in payload.plaques]
        initial_filter = payload.distance_filter.to_domain() if payload.distance_filter else None
        session_id, machine = registry.create(
            plaques,
            membership=SetMembership(payload.visited_ids, payload.favorite_ids),
            initial_filter=initial_filter,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _session_response(session_id, machine)


@router.get("/{session_id}", response_model=SessionResponse, status_code=status.HTTP_200_OK)
def get_session(session_id: str) -> SessionResponse:
    return _session_response(session_id, _machine(session_id))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_session(session_id: str) -> Response:
    try:
        registry.close(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{session_id}/actions", response_model=DispatchResponse, status_code=status.HTTP_200_OK)
def dispatch_action(session_id: str, payload: DispatchRequest) -> DispatchResponse:
    machine = _machine(session_id)

    def lookup(plaque_id: int) -> Plaque:
        plaque = machine.get_plaque(plaque_id)
        if plaque is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Plaque {plaque_id} is not part of session {session_id}"
            )
        return plaque

    action = payload.action.to_action(lookup)
    try:
        result = machine.dispatch(action)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _dispatch_response(session_id, machine, result)


@router.post("/{session_id}/location", response_model=DispatchResponse, status_code=status.HTTP_200_OK)
async def set_location(session_id: str, payload: SetLocationRequest) -> DispatchResponse:
    """Centre the distance filter on a point the user picked on the map."""
    machine = _machine(session_id)
    try:
        result = await machine.set_location(payload.center, radius_km=payload.radius_km)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _dispatch_response(session_id, machine, result)


@router.post("/{session_id}/search", response_model=DispatchResponse, status_code=status.HTTP_200_OK)
async def search_location(session_id: str, payload: SearchLocationRequest) -> DispatchResponse:
    machine = _machine(session_id)
    try:
        result = await machine.search_location(payload.query, radius_km=payload.radius_km)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _dispatch_response(session_id, machine, result)


@router.post("/{session_id}/locate", response_model=DispatchResponse, status_code=status.HTTP_200_OK)
async def locate(session_id: str, payload: LocateRequest) -> DispatchResponse:
    machine = _machine(session_id)
    provider = ReportedPosition(payload.latitude, payload.longitude, payload.error_code)
    try:
        result = await machine.locate_user(provider, radius_km=payload.radius_km)
    except GeolocationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"reason": exc.reason.value, "message": exc.user_message},
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _dispatch_response(session_id, machine, result)


@router.put("/{session_id}/distance-filter", response_model=SyncFilterResponse, status_code=status.HTTP_200_OK)
def sync_distance_filter(session_id: str, payload: Optional[DistanceFilterModel] = None) -> SyncFilterResponse:
    """Adopt the host's distance filter; nothing is echoed back as a notification."""
    machine = _machine(session_id)
    try:
        applied = machine.sync_external_filter(payload.to_domain() if payload is not None else None)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    base = _session_response(session_id, machine)
    return SyncFilterResponse(**base.model_dump(), applied=[type(action).__name__ for action in applied])


@router.post("/{session_id}/metrics/refresh", response_model=RouteMetricsModel, status_code=status.HTTP_200_OK)
async def refresh_metrics(session_id: str) -> RouteMetricsModel:
    machine = _machine(session_id)
    try:
        metrics = await machine.refresh_metrics()
    except Exception as exc:
        logging.exception(f"Error refreshing route metrics: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to refresh route metrics: {str(exc)}"
        ) from exc
    return RouteMetricsModel.from_domain(metrics)


@router.get("/{session_id}/export/gpx", status_code=status.HTTP_200_OK)
def export_gpx(session_id: str, name: Optional[str] = None) -> Response:
    machine = _machine(session_id)
    try:
        document = machine.export_gpx(name=name) if name else machine.export_gpx()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return Response(
        content=document,
        media_type=GPX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{gpx_filename()}"'},
    )


@router.get("/{session_id}/export/geojson", status_code=status.HTTP_200_OK)
def export_geojson(session_id: str) -> dict:
    """Route and distance-filter overlay for the session map."""
    return _machine(session_id).export_geojson()


@router.post("/{session_id}/record", response_model=RouteRecordModel, status_code=status.HTTP_200_OK)
def route_record(session_id: str, payload: RouteRecordDetails) -> RouteRecordModel:
    """Payload for saving the session's route, using its latest metrics."""
    machine = _machine(session_id)
    try:
        record = machine.route_record(payload.name, description=payload.description, is_public=payload.is_public)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return RouteRecordModel.from_domain(record)


@router.put("/{session_id}/plaques", response_model=SessionResponse, status_code=status.HTTP_200_OK)
def replace_plaques(session_id: str, payload: PlaquesRequest) -> SessionResponse:
    """Swap in a fresh plaque list; the route keeps the plaques it already holds."""
    machine = _machine(session_id)
    machine.set_plaques(item.to_domain() for item in payload.plaques)
    return _session_response(session_id, machine)


@router.put("/{session_id}/membership", response_model=SessionResponse, status_code=status.HTTP_200_OK)
def replace_membership(session_id: str, payload: MembershipRequest) -> SessionResponse:
    machine = _machine(session_id)
    machine.set_membership(SetMembership(payload.visited_ids, payload.favorite_ids))
    return _session_response(session_id, machine)
