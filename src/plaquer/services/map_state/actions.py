"""The closed set of actions accepted by the map state reducer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ...models.domain import Coord, Plaque
from ..routing.models import RouteMetrics


@dataclass(frozen=True, slots=True)
class SetView:
    center: Coord
    zoom: int


@dataclass(frozen=True, slots=True)
class SetSearch:
    query: str


@dataclass(frozen=True, slots=True)
class SetLocationFilter:
    center: Coord
    radius_km: float
    location_name: str


@dataclass(frozen=True, slots=True)
class UpdateRadius:
    radius_km: float


@dataclass(frozen=True, slots=True)
class ClearFilter:
    pass


@dataclass(frozen=True, slots=True)
class SetColors:
    colors: frozenset[str]


@dataclass(frozen=True, slots=True)
class SetPostcodes:
    postcodes: frozenset[str]


@dataclass(frozen=True, slots=True)
class SetProfessions:
    professions: frozenset[str]


@dataclass(frozen=True, slots=True)
class SetOnlyVisited:
    only_visited: bool


@dataclass(frozen=True, slots=True)
class SetOnlyFavorites:
    only_favorites: bool


@dataclass(frozen=True, slots=True)
class ResetStandardFilters:
    pass


@dataclass(frozen=True, slots=True)
class ToggleRouteMode:
    pass


@dataclass(frozen=True, slots=True)
class AddWaypoint:
    plaque: Plaque


@dataclass(frozen=True, slots=True)
class RemoveWaypoint:
    plaque_id: int


@dataclass(frozen=True, slots=True)
class ReorderWaypoint:
    from_index: int
    to_index: int


@dataclass(frozen=True, slots=True)
class ClearRoute:
    pass


@dataclass(frozen=True, slots=True)
class OptimizeRoute:
    pass


@dataclass(frozen=True, slots=True)
class ShowPlaqueDetails:
    plaque: Plaque


@dataclass(frozen=True, slots=True)
class HidePlaqueDetails:
    pass


@dataclass(frozen=True, slots=True)
class RouteMetricsResolved:
    """A routing-service result for the route at ``route_version``."""

    metrics: RouteMetrics
    route_version: int


Action = Union[
    SetView,
    SetSearch,
    SetLocationFilter,
    UpdateRadius,
    ClearFilter,
    SetColors,
    SetPostcodes,
    SetProfessions,
    SetOnlyVisited,
    SetOnlyFavorites,
    ResetStandardFilters,
    ToggleRouteMode,
    AddWaypoint,
    RemoveWaypoint,
    ReorderWaypoint,
    ClearRoute,
    OptimizeRoute,
    ShowPlaqueDetails,
    HidePlaqueDetails,
    RouteMetricsResolved,
]
