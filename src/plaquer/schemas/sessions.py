"""Map session request/response schemas."""

from __future__ import annotations

from typing import Annotated, Callable, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from ..models.domain import Plaque
from ..services.map_state import actions
from ..services.map_state.machine import DispatchResult, Notification
from ..services.map_state.reducer import MapState
from .plaques import DistanceFilterModel, FilterCriteriaModel, PlaqueModel
from .routing import RouteMetricsModel

PlaqueLookup = Callable[[int], Plaque]


class SessionCreateRequest(BaseModel):
    plaques: List[PlaqueModel] = Field(default_factory=list)
    visited_ids: List[int] = Field(default_factory=list)
    favorite_ids: List[int] = Field(default_factory=list)
    distance_filter: Optional[DistanceFilterModel] = Field(
        default=None, description="Distance filter already held by the host, if any."
    )


class SetViewModel(BaseModel):
    type: Literal["set_view"]
    center: tuple[float, float]
    zoom: int = Field(..., ge=0, le=22)

    def to_action(self, lookup: PlaqueLookup) -> actions.Action:
        return actions.SetView(center=self.center, zoom=self.zoom)


class SetSearchModel(BaseModel):
    type: Literal["set_search"]
    query: str = ""

    def to_action(self, lookup: PlaqueLookup) -> actions.Action:
        return actions.SetSearch(query=self.query)


class UpdateRadiusModel(BaseModel):
    type: Literal["update_radius"]
    radius_km: float = Field(..., gt=0)

    def to_action(self, lookup: PlaqueLookup) -> actions.Action:
        return actions.UpdateRadius(radius_km=self.radius_km)


class ClearFilterModel(BaseModel):
    type: Literal["clear_filter"]

    def to_action(self, lookup: PlaqueLookup) -> actions.Action:
        return actions.ClearFilter()


class SetColorsModel(BaseModel):
    type: Literal["set_colors"]
    colors: List[str] = Field(default_factory=list)

    def to_action(self, lookup: PlaqueLookup) -> actions.Action:
        return actions.SetColors(colors=frozenset(self.colors))


class SetPostcodesModel(BaseModel):
    type: Literal["set_postcodes"]
    postcodes: List[str] = Field(default_factory=list)

    def to_action(self, lookup: PlaqueLookup) -> actions.Action:
        return actions.SetPostcodes(postcodes=frozenset(self.postcodes))


class SetProfessionsModel(BaseModel):
    type: Literal["set_professions"]
    professions: List[str] = Field(default_factory=list)

    def to_action(self, lookup: PlaqueLookup) -> actions.Action:
        return actions.SetProfessions(professions=frozenset(self.professions))


class SetOnlyVisitedModel(BaseModel):
    type: Literal["set_only_visited"]
    only_visited: bool

    def to_action(self, lookup: PlaqueLookup) -> actions.Action:
        return actions.SetOnlyVisited(only_visited=self.only_visited)


class SetOnlyFavoritesModel(BaseModel):
    type: Literal["set_only_favorites"]
    only_favorites: bool

    def to_action(self, lookup: PlaqueLookup) -> actions.Action:
        return actions.SetOnlyFavorites(only_favorites=self.only_favorites)


class ResetStandardFiltersModel(BaseModel):
    type: Literal["reset_standard_filters"]

    def to_action(self, lookup: PlaqueLookup) -> actions.Action:
        return actions.ResetStandardFilters()


class ToggleRouteModeModel(BaseModel):
    type: Literal["toggle_route_mode"]

    def to_action(self, lookup: PlaqueLookup) -> actions.Action:
        return actions.ToggleRouteMode()


class AddWaypointModel(BaseModel):
    type: Literal["add_waypoint"]
    plaque_id: int

    def to_action(self, lookup: PlaqueLookup) -> actions.Action:
        return actions.AddWaypoint(plaque=lookup(self.plaque_id))


class RemoveWaypointModel(BaseModel):
    type: Literal["remove_waypoint"]
    plaque_id: int

    def to_action(self, lookup: PlaqueLookup) -> actions.Action:
        return actions.RemoveWaypoint(plaque_id=self.plaque_id)


class ReorderWaypointModel(BaseModel):
    type: Literal["reorder_waypoint"]
    from_index: int
    to_index: int

    def to_action(self, lookup: PlaqueLookup) -> actions.Action:
        return actions.ReorderWaypoint(from_index=self.from_index, to_index=self.to_index)


class ClearRouteModel(BaseModel):
    type: Literal["clear_route"]

    def to_action(self, lookup: PlaqueLookup) -> actions.Action:
        return actions.ClearRoute()


class OptimizeRouteModel(BaseModel):
    type: Literal["optimize_route"]

    def to_action(self, lookup: PlaqueLookup) -> actions.Action:
        return actions.OptimizeRoute()


class ShowPlaqueDetailsModel(BaseModel):
    type: Literal["show_plaque_details"]
    plaque_id: int

    def to_action(self, lookup: PlaqueLookup) -> actions.Action:
        return actions.ShowPlaqueDetails(plaque=lookup(self.plaque_id))


class HidePlaqueDetailsModel(BaseModel):
    type: Literal["hide_plaque_details"]

    def to_action(self, lookup: PlaqueLookup) -> actions.Action:
        return actions.HidePlaqueDetails()


ActionModel = Annotated[
    Union[
        SetViewModel,
        SetSearchModel,
        UpdateRadiusModel,
        ClearFilterModel,
        SetColorsModel,
        SetPostcodesModel,
        SetProfessionsModel,
        SetOnlyVisitedModel,
        SetOnlyFavoritesModel,
        ResetStandardFiltersModel,
        ToggleRouteModeModel,
        AddWaypointModel,
        RemoveWaypointModel,
        ReorderWaypointModel,
        ClearRouteModel,
        OptimizeRouteModel,
        ShowPlaqueDetailsModel,
        HidePlaqueDetailsModel,
    ],
    Field(discriminator="type"),
]


class MembershipRequest(BaseModel):
    visited_ids: List[int] = Field(default_factory=list)
    favorite_ids: List[int] = Field(default_factory=list)


class PlaquesRequest(BaseModel):
    plaques: List[PlaqueModel]


class DispatchRequest(BaseModel):
    action: ActionModel


class SetLocationRequest(BaseModel):
    center: tuple[float, float] = Field(..., description="(latitude, longitude) picked by the user.")
    radius_km: Optional[float] = Field(default=None, gt=0)


class SearchLocationRequest(BaseModel):
    query: str = Field(..., min_length=1)
    radius_km: Optional[float] = Field(default=None, gt=0)


class LocateRequest(BaseModel):
    """Position already reported by the client's geolocation API."""

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    error_code: Optional[int] = Field(default=None, description="GeolocationPositionError code, when it failed.")
    radius_km: Optional[float] = Field(default=None, gt=0)


class RouteStateModel(BaseModel):
    mode: str
    points: List[PlaqueModel]
    version: int


class MapViewModel(BaseModel):
    center: tuple[float, float]
    zoom: int
    showing_details: Optional[PlaqueModel] = None


class MapStateModel(BaseModel):
    view: MapViewModel
    criteria: FilterCriteriaModel
    route: RouteStateModel
    metrics: RouteMetricsModel

    @classmethod
    def from_domain(cls, state: MapState) -> "MapStateModel":
        details = state.view.showing_details
        return cls(
            view=MapViewModel(
                center=state.view.center,
                zoom=state.view.zoom,
                showing_details=PlaqueModel.from_domain(details) if details is not None else None,
            ),
            criteria=FilterCriteriaModel.from_domain(state.criteria),
            route=RouteStateModel(
                mode=state.route.mode.value,
                points=[PlaqueModel.from_domain(plaque) for plaque in state.route.points],
                version=state.route_version,
            ),
            metrics=RouteMetricsModel.from_domain(state.metrics),
        )


class NotificationModel(BaseModel):
    key: str
    message: str
    level: str

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationModel":
        return cls(key=notification.key, message=notification.message, level=notification.level)


class SessionResponse(BaseModel):
    session_id: str
    state: MapStateModel
    visible_count: int
    visible_ids: List[int]


class DispatchResponse(SessionResponse):
    changed: bool
    duplicate: bool = False
    notifications: List[NotificationModel] = Field(default_factory=list)

    @classmethod
    def build(cls, session_id: str, result: DispatchResult, visible_ids: List[int]) -> "DispatchResponse":
        return cls(
            session_id=session_id,
            state=MapStateModel.from_domain(result.state),
            visible_count=len(visible_ids),
            visible_ids=visible_ids,
            changed=result.changed,
            duplicate=result.duplicate,
            notifications=[NotificationModel.from_domain(item) for item in result.notifications],
        )


class SyncFilterResponse(SessionResponse):
    applied: List[str] = Field(default_factory=list, description="Names of the actions applied to catch up.")
