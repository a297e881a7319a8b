"""Engine session: owns map state, dispatches actions and runs async lookups."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Sequence

import httpx

from ...config import settings
from ...models.domain import Coord, Plaque
from ..cancellation import PendingRequests, RequestCancelled
from ..errors import LocationNotFoundError
from ..export.geojson import distance_filter_feature, feature_collection, route_to_features
from ..export.gpx import DEFAULT_ROUTE_NAME, build_gpx
from ..filtering.engine import apply_filters, count_within_radius
from ..filtering.models import NO_MEMBERSHIP, DistanceFilter, FilterCriteria, Membership
from ..geocoding.geolocation import GeolocationProvider, locate
from ..geocoding.nominatim import Geocoder
from ..geospatial import parse_coordinate
from ..routing.metrics import compute_route_metrics
from ..routing.models import RouteMetrics
from ..routing.osrm_client import RoutingService
from ..routing.records import RouteRecordPayload, build_route_record
from .actions import (
    Action,
    AddWaypoint,
    ClearFilter,
    ClearRoute,
    OptimizeRoute,
    RemoveWaypoint,
    ReorderWaypoint,
    ResetStandardFilters,
    RouteMetricsResolved,
    SetLocationFilter,
    SetView,
    ToggleRouteMode,
    UpdateRadius,
)
from .dedup import ActionDeduplicator
from .reconcile import reconcile
from .reducer import MapState, reduce

logger = logging.getLogger(__name__)

SELECTED_LOCATION = "Selected Location"
MY_LOCATION = "My Location"
LOCATION_ZOOM = 14

_LOOKUP_ERRORS = (httpx.HTTPError, ConnectionError, ValueError, asyncio.TimeoutError)


@dataclass(frozen=True, slots=True)
class Notification:
    key: str
    message: str
    level: str = "info"


@dataclass(slots=True)
class DispatchResult:
    state: MapState
    changed: bool
    duplicate: bool = False
    notifications: list[Notification] = field(default_factory=list)


def _plaques_label(count: int) -> str:
    return f"{count} plaque{'s' if count != 1 else ''}"


def _stops_label(count: int) -> str:
    return f"{count} stop{'s' if count != 1 else ''}"


def _radius_label(radius_km: float) -> str:
    if radius_km < 1:
        return f"{round(radius_km * 1000)}m"
    return f"{radius_km:g}km"


def _valid_center(center: Sequence[float]) -> Coord:
    if len(center) != 2:
        raise ValueError("A location needs a latitude and a longitude.")
    lat = parse_coordinate(center[0])
    lng = parse_coordinate(center[1])
    if lat is None or lng is None or not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        raise ValueError(f"Invalid location coordinates: {tuple(center)!r}")
    return (lat, lng)


class MapStateMachine:
    """Single-threaded owner of filter, route and view state for one session.

    ``dispatch`` applies one action synchronously. The async methods only
    await collaborators and then dispatch a resolved action; a result whose
    request was superseded or whose session has closed is dropped.
    ``on_distance_filter_change`` hears about distance-filter changes the
    engine makes itself, never about ones it received from
    ``sync_external_filter``.
    """

    def __init__(
        self,
        plaques: Iterable[Plaque] = (),
        *,
        membership: Membership = NO_MEMBERSHIP,
        routing_service: RoutingService | None = None,
        geocoder: Geocoder | None = None,
        clock: Callable[[], float] = time.monotonic,
        notification_window_ms: int | None = None,
        initial_filter: DistanceFilter | None = None,
        on_distance_filter_change: Callable[[DistanceFilter], None] | None = None,
    ) -> None:
        self._plaques: tuple[Plaque, ...] = tuple(plaques)
        self._by_id = {plaque.id: plaque for plaque in self._plaques}
        self.membership = membership
        self.routing_service = routing_service
        self.geocoder = geocoder
        self.on_distance_filter_change = on_distance_filter_change
        self.deduplicator = ActionDeduplicator(
            clock=clock,
            window_ms=notification_window_ms if notification_window_ms is not None else settings.notification_window_ms,
        )
        self._pending = PendingRequests()
        self._closed = False
        self._visible_cache: tuple[tuple, list[Plaque]] | None = None

        state = MapState()
        if initial_filter is not None:
            state = MapState(criteria=FilterCriteria(distance_filter=initial_filter))
        self._state = state

    # -- accessors ---------------------------------------------------------

    @property
    def state(self) -> MapState:
        return self._state

    @property
    def plaques(self) -> tuple[Plaque, ...]:
        return self._plaques

    @property
    def metrics(self) -> RouteMetrics:
        return self._state.metrics

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_requests(self) -> int:
        return len(self._pending)

    def get_plaque(self, plaque_id: int) -> Plaque | None:
        return self._by_id.get(plaque_id)

    def set_plaques(self, plaques: Iterable[Plaque]) -> None:
        self._plaques = tuple(plaques)
        self._by_id = {plaque.id: plaque for plaque in self._plaques}
        self._visible_cache = None

    def set_membership(self, membership: Membership) -> None:
        self.membership = membership
        self._visible_cache = None

    def visible_plaques(self) -> list[Plaque]:
        key = (self._plaques, self._state.criteria, self.membership)
        cached = self._visible_cache
        if cached is not None and cached[0][0] is key[0] and cached[0][1:] == key[1:]:
            return list(cached[1])
        visible = apply_filters(self._plaques, self._state.criteria, self.membership)
        self._visible_cache = (key, visible)
        return list(visible)

    # -- dispatch ----------------------------------------------------------

    def dispatch(self, action: Action) -> DispatchResult:
        return self._apply(action, notify=True)

    def _apply(self, action: Action, *, notify: bool) -> DispatchResult:
        if self._closed:
            raise RuntimeError("This map session has been closed.")
        before = self._state
        duplicate = isinstance(action, AddWaypoint) and before.route.contains(action.plaque.id)
        after = reduce(before, action)
        changed = after != before
        self._state = after
        if after.route_version != before.route_version:
            # any in-flight routing result now describes an older route
            self._pending.cancel("metrics")

        notifications: list[Notification] = []
        if notify:
            for notification in self._notifications_for(action, before, after, duplicate):
                if self.deduplicator.should_emit(notification.key):
                    notifications.append(notification)
        return DispatchResult(state=after, changed=changed, duplicate=duplicate, notifications=notifications)

    def _notifications_for(
        self, action: Action, before: MapState, after: MapState, duplicate: bool
    ) -> list[Notification]:
        if isinstance(action, AddWaypoint):
            plaque = action.plaque
            if duplicate:
                return [Notification(f"duplicate-{plaque.id}", f'"{plaque.title}" is already in your route', "info")]
            return [
                Notification(
                    f"added-{plaque.id}",
                    f'Added "{plaque.title}" to route ({_stops_label(len(after.route))})',
                    "success",
                )
            ]
        if isinstance(action, RemoveWaypoint):
            index = before.route.index_of(action.plaque_id)
            if index is None:
                return []
            title = before.route.points[index].title
            return [Notification(f"removed-{action.plaque_id}", f'Removed "{title}" from route', "info")]
        if isinstance(action, ReorderWaypoint) and after.route.points != before.route.points:
            return [Notification("route-reordered", "Route reordered", "info")]
        if isinstance(action, OptimizeRoute) and after.route.points != before.route.points:
            return [Notification("route-optimized", "Route optimized for walking distance", "success")]
        if isinstance(action, ClearRoute) and before.route.points:
            return [Notification("route-cleared", "Route cleared", "info")]
        if isinstance(action, ToggleRouteMode):
            if after.route.enabled:
                return [
                    Notification(
                        "route-mode-on",
                        "Route planning mode activated. Add plaques from their popups to build your route.",
                        "info",
                    )
                ]
            return [Notification("route-mode-off", "Route planning mode deactivated", "info")]
        if isinstance(action, SetLocationFilter):
            count = count_within_radius(self._plaques, action.center, action.radius_km)
            return [
                Notification(
                    "location-filter-set",
                    f"Found {_plaques_label(count)} within {_radius_label(action.radius_km)} of {action.location_name}",
                    "success",
                )
            ]
        if isinstance(action, UpdateRadius):
            distance = after.criteria.distance_filter
            if not distance.active:
                return []
            count = count_within_radius(self._plaques, distance.center, distance.radius_km)
            return [
                Notification(
                    "radius-update",
                    f"{_plaques_label(count)} within {_radius_label(distance.radius_km)} of {distance.location_name}",
                    "info",
                )
            ]
        if isinstance(action, ClearFilter) and before.criteria.distance_filter.enabled:
            return [Notification("filter-cleared", "Distance filter cleared - showing all plaques", "info")]
        if isinstance(action, ResetStandardFilters) and before.criteria.has_attribute_filters:
            return [Notification("filters-reset", "Filters reset", "info")]
        return []

    def _announce_distance_filter(self) -> None:
        if self.on_distance_filter_change is not None:
            self.on_distance_filter_change(self._state.criteria.distance_filter)

    # -- route helpers -----------------------------------------------------

    def add_to_route(self, plaque_id: int) -> DispatchResult:
        plaque = self._by_id.get(plaque_id)
        if plaque is None:
            raise KeyError(plaque_id)
        return self.dispatch(AddWaypoint(plaque))

    def route_record(self, name: str, *, description: str = "", is_public: bool = False) -> RouteRecordPayload:
        return build_route_record(
            name,
            self._state.route,
            self._state.metrics,
            description=description,
            is_public=is_public,
        )

    def export_gpx(self, *, name: str = DEFAULT_ROUTE_NAME, now: datetime | None = None) -> str:
        return build_gpx(self._state.route.points, name=name, now=now)

    def export_geojson(self) -> dict:
        """Map overlay: the route, once it has two located stops, and the active filter circle."""
        features = []
        route = self._state.route
        if len(route.route_points()) >= 2:
            features.extend(route_to_features(route.points, self._state.metrics))
        circle = distance_filter_feature(self._state.criteria.distance_filter)
        if circle is not None:
            features.append(circle)
        return feature_collection(features)

    # -- distance filter ---------------------------------------------------

    def update_radius(self, radius_km: float) -> DispatchResult:
        result = self.dispatch(UpdateRadius(radius_km))
        if result.changed and self._state.criteria.distance_filter.active:
            self._announce_distance_filter()
        return result

    def clear_distance_filter(self) -> DispatchResult:
        result = self.dispatch(ClearFilter())
        self._announce_distance_filter()
        return result

    def sync_external_filter(self, external: DistanceFilter | None) -> list[Action]:
        """Adopt a distance filter controlled by the host, without echoing it back."""
        actions = reconcile(self._state.criteria.distance_filter, external)
        for action in actions:
            self._apply(action, notify=False)
        return actions

    def _set_location_filter(self, center: Coord, location_name: str, radius_km: float | None) -> DispatchResult:
        radius = radius_km if radius_km is not None else self._state.criteria.distance_filter.radius_km
        result = self.dispatch(SetLocationFilter(center=center, radius_km=radius, location_name=location_name))
        self._apply(SetView(center=center, zoom=LOCATION_ZOOM), notify=False)
        self._announce_distance_filter()
        result.state = self._state
        return result

    async def _reverse_name(self, center: Coord, default_name: str, token) -> str:
        if self.geocoder is None:
            return default_name
        try:
            name = await self.geocoder.reverse_geocode(center[0], center[1], token)
        except RequestCancelled:
            raise
        except _LOOKUP_ERRORS as exc:
            logger.warning(f"Reverse geocoding failed for {center}: {exc}. Using '{default_name}'.")
            return default_name
        return name or default_name

    async def set_location(
        self,
        center: Sequence[float],
        *,
        radius_km: float | None = None,
        default_name: str = SELECTED_LOCATION,
    ) -> DispatchResult | None:
        """Centre the distance filter on ``center``, naming it by reverse geocoding.

        Returns None when the request was superseded or the session closed
        before the name resolved.
        """
        coords = _valid_center(center)
        token = self._pending.issue("location")
        try:
            name = await self._reverse_name(coords, default_name, token)
        except RequestCancelled:
            return None
        finally:
            self._pending.release(token)
        if token.cancelled or self._closed:
            logger.debug(f"Discarding location result for {coords}")
            return None
        return self._set_location_filter(coords, name, radius_km)

    async def search_location(self, query: str, *, radius_km: float | None = None) -> DispatchResult | None:
        """Forward-geocode ``query`` and centre the distance filter on the result.

        Raises ``LocationNotFoundError`` (leaving filters untouched) when the
        query resolves to no coordinates.
        """
        if self.geocoder is None or not query.strip():
            raise LocationNotFoundError(query)
        token = self._pending.issue("location")
        try:
            result = await self.geocoder.forward_geocode(query, token)
        except RequestCancelled:
            return None
        except _LOOKUP_ERRORS as exc:
            logger.warning(f"Forward geocoding failed for '{query}': {exc}")
            raise LocationNotFoundError(query) from exc
        finally:
            self._pending.release(token)
        if token.cancelled or self._closed:
            return None
        if result is None:
            raise LocationNotFoundError(query)
        return self._set_location_filter(result.coordinates, result.name or query, radius_km)

    async def locate_user(
        self,
        provider: GeolocationProvider | None,
        *,
        radius_km: float | None = None,
        timeout: float | None = None,
    ) -> DispatchResult | None:
        """Centre the distance filter on the device position.

        ``GeolocationError`` propagates with its reason and nothing changes.
        """
        coords = await locate(provider, timeout)
        if self._closed:
            return None
        return await self.set_location(coords, radius_km=radius_km, default_name=MY_LOCATION)

    # -- metrics -----------------------------------------------------------

    async def refresh_metrics(self) -> RouteMetrics:
        """Ask the routing service for real walking metrics for the current route."""
        points = self._state.route.points
        version = self._state.route_version
        if self.routing_service is None or len(points) < 2:
            return self._state.metrics
        token = self._pending.issue("metrics")
        try:
            metrics = await compute_route_metrics(points, self.routing_service, token)
        except RequestCancelled:
            return self._state.metrics
        finally:
            self._pending.release(token)
        if token.cancelled or self._closed:
            logger.debug(f"Discarding routing result for route version {version}")
            return self._state.metrics
        self._apply(RouteMetricsResolved(metrics=metrics, route_version=version), notify=False)
        return self._state.metrics

    # -- lifecycle ---------------------------------------------------------

    def close(self) -> None:
        self._pending.cancel_all()
        self.deduplicator.reset()
        self._closed = True
