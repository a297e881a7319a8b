"""Plaque and filter request/response schemas."""

from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

from ..models.domain import Plaque
from ..services.filtering.models import DistanceFilter, FilterCriteria


class PlaqueModel(BaseModel):
    id: int
    title: str = ""
    location: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[Union[float, str]] = None
    longitude: Optional[Union[float, str]] = None
    color: Optional[str] = None
    profession: Optional[str] = None
    postcode: Optional[str] = None
    visited: bool = False
    description: Optional[str] = None
    inscription: Optional[str] = None

    def to_domain(self) -> Plaque:
        return Plaque(**self.model_dump())

    @classmethod
    def from_domain(cls, plaque: Plaque) -> "PlaqueModel":
        return cls(
            id=plaque.id,
            title=plaque.title,
            location=plaque.location,
            address=plaque.address,
            latitude=plaque.latitude,
            longitude=plaque.longitude,
            color=plaque.color,
            profession=plaque.profession,
            postcode=plaque.postcode,
            visited=plaque.visited,
            description=plaque.description,
            inscription=plaque.inscription,
        )


class DistanceFilterModel(BaseModel):
    enabled: bool = False
    center: Optional[tuple[float, float]] = Field(default=None, description="(latitude, longitude)")
    radius_km: float = Field(1.0, gt=0)
    location_name: Optional[str] = None

    def to_domain(self) -> DistanceFilter:
        return DistanceFilter(
            enabled=self.enabled,
            center=self.center,
            radius_km=self.radius_km,
            location_name=self.location_name,
        )

    @classmethod
    def from_domain(cls, distance_filter: DistanceFilter) -> "DistanceFilterModel":
        return cls(
            enabled=distance_filter.enabled,
            center=distance_filter.center,
            radius_km=distance_filter.radius_km,
            location_name=distance_filter.location_name,
        )


class FilterCriteriaModel(BaseModel):
    distance_filter: DistanceFilterModel = Field(default_factory=DistanceFilterModel)
    selected_colors: List[str] = Field(default_factory=list)
    selected_postcodes: List[str] = Field(default_factory=list)
    selected_professions: List[str] = Field(default_factory=list)
    only_visited: bool = False
    only_favorites: bool = False
    search_query: str = ""

    def to_domain(self) -> FilterCriteria:
        return FilterCriteria(
            distance_filter=self.distance_filter.to_domain(),
            selected_colors=frozenset(self.selected_colors),
            selected_postcodes=frozenset(self.selected_postcodes),
            selected_professions=frozenset(self.selected_professions),
            only_visited=self.only_visited,
            only_favorites=self.only_favorites,
            search_query=self.search_query,
        )

    @classmethod
    def from_domain(cls, criteria: FilterCriteria) -> "FilterCriteriaModel":
        return cls(
            distance_filter=DistanceFilterModel.from_domain(criteria.distance_filter),
            selected_colors=sorted(criteria.selected_colors),
            selected_postcodes=sorted(criteria.selected_postcodes),
            selected_professions=sorted(criteria.selected_professions),
            only_visited=criteria.only_visited,
            only_favorites=criteria.only_favorites,
            search_query=criteria.search_query,
        )


class FilterRequest(BaseModel):
    plaques: List[PlaqueModel]
    criteria: FilterCriteriaModel = Field(default_factory=FilterCriteriaModel)
    visited_ids: List[int] = Field(default_factory=list, description="Plaques the user has visited.")
    favorite_ids: List[int] = Field(default_factory=list, description="Plaques the user has favourited.")


class FilterResponse(BaseModel):
    count: int
    total: int
    plaques: List[PlaqueModel]


class FilterOptionsRequest(BaseModel):
    plaques: List[PlaqueModel]


class FilterOptionsResponse(BaseModel):
    colors: List[str]
    postcodes: List[str]
    professions: List[str]


class RadiusCountRequest(BaseModel):
    plaques: List[PlaqueModel]
    center: tuple[float, float]
    radius_km: float = Field(..., gt=0)


class RadiusCountResponse(BaseModel):
    count: int
    radius_km: float
    circle: Dict = Field(default_factory=dict, description="GeoJSON polygon of the search circle.")
