"""Pure state transitions for the map: view, filters and route."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional, assert_never

from ...config import settings
from ...models.domain import Coord, Plaque
from ..filtering.models import DistanceFilter, FilterCriteria
from ..routing.metrics import estimate_route_metrics
from ..routing.models import EMPTY_METRICS, RouteMetrics
from ..routing.optimizer import optimize_route
from ..routing.state import RouteState
from .actions import (
    Action,
    AddWaypoint,
    ClearFilter,
    ClearRoute,
    HidePlaqueDetails,
    OptimizeRoute,
    RemoveWaypoint,
    ReorderWaypoint,
    ResetStandardFilters,
    RouteMetricsResolved,
    SetColors,
    SetLocationFilter,
    SetOnlyFavorites,
    SetOnlyVisited,
    SetPostcodes,
    SetProfessions,
    SetSearch,
    SetView,
    ShowPlaqueDetails,
    ToggleRouteMode,
    UpdateRadius,
)


@dataclass(frozen=True, slots=True)
class MapView:
    center: Coord = settings.default_center
    zoom: int = settings.default_zoom
    showing_details: Optional[Plaque] = None


@dataclass(frozen=True, slots=True)
class MapState:
    view: MapView = field(default_factory=MapView)
    criteria: FilterCriteria = field(
        default_factory=lambda: FilterCriteria(distance_filter=DistanceFilter(radius_km=settings.default_radius_km))
    )
    route: RouteState = field(default_factory=RouteState)
    # bumped on every change to route points so late routing results can be recognised as stale
    route_version: int = 0
    metrics: RouteMetrics = EMPTY_METRICS


def _with_route(state: MapState, route: RouteState) -> MapState:
    if route is state.route:
        return state
    if route.points == state.route.points:
        return replace(state, route=route)
    return replace(
        state,
        route=route,
        route_version=state.route_version + 1,
        metrics=estimate_route_metrics(route.points),
    )


def _with_criteria(state: MapState, **changes) -> MapState:
    return replace(state, criteria=replace(state.criteria, **changes))


def reduce(state: MapState, action: Action) -> MapState:
    """Apply one action. No I/O, no notifications; an ignored action returns ``state`` itself."""
    criteria = state.criteria

    if isinstance(action, SetView):
        return replace(state, view=replace(state.view, center=action.center, zoom=action.zoom))
    elif isinstance(action, SetSearch):
        return _with_criteria(state, search_query=action.query)
    elif isinstance(action, SetLocationFilter):
        distance = DistanceFilter(
            enabled=True,
            center=action.center,
            radius_km=action.radius_km,
            location_name=action.location_name,
        )
        return _with_criteria(state, distance_filter=distance)
    elif isinstance(action, UpdateRadius):
        return _with_criteria(state, distance_filter=replace(criteria.distance_filter, radius_km=action.radius_km))
    elif isinstance(action, ClearFilter):
        return _with_criteria(state, distance_filter=criteria.distance_filter.cleared())
    elif isinstance(action, SetColors):
        return _with_criteria(state, selected_colors=frozenset(action.colors))
    elif isinstance(action, SetPostcodes):
        return _with_criteria(state, selected_postcodes=frozenset(action.postcodes))
    elif isinstance(action, SetProfessions):
        return _with_criteria(state, selected_professions=frozenset(action.professions))
    elif isinstance(action, SetOnlyVisited):
        return _with_criteria(state, only_visited=action.only_visited)
    elif isinstance(action, SetOnlyFavorites):
        return _with_criteria(state, only_favorites=action.only_favorites)
    elif isinstance(action, ResetStandardFilters):
        return replace(state, criteria=criteria.reset_standard())
    elif isinstance(action, ToggleRouteMode):
        return _with_route(state, state.route.toggle_mode())
    elif isinstance(action, AddWaypoint):
        return _with_route(state, state.route.add(action.plaque))
    elif isinstance(action, RemoveWaypoint):
        return _with_route(state, state.route.remove(action.plaque_id))
    elif isinstance(action, ReorderWaypoint):
        return _with_route(state, state.route.reorder(action.from_index, action.to_index))
    elif isinstance(action, ClearRoute):
        return _with_route(state, state.route.clear())
    elif isinstance(action, OptimizeRoute):
        return _with_route(state, state.route.with_points(tuple(optimize_route(state.route.points))))
    elif isinstance(action, ShowPlaqueDetails):
        return replace(state, view=replace(state.view, showing_details=action.plaque))
    elif isinstance(action, HidePlaqueDetails):
        return replace(state, view=replace(state.view, showing_details=None))
    elif isinstance(action, RouteMetricsResolved):
        if action.route_version != state.route_version:
            return state
        return replace(state, metrics=action.metrics)
    else:
        assert_never(action)
