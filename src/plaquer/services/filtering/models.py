"""Filter state models."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Protocol

from ...models.domain import Coord


@dataclass(frozen=True, slots=True)
class DistanceFilter:
    enabled: bool = False
    center: Optional[Coord] = None
    radius_km: float = 1.0
    location_name: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.radius_km > 0:
            raise ValueError(f"radius_km must be positive (got {self.radius_km}).")

    @property
    def active(self) -> bool:
        return self.enabled and self.center is not None

    def cleared(self) -> DistanceFilter:
        # radius survives a clear so re-enabling keeps the user's last choice
        return replace(self, enabled=False, center=None, location_name=None)


@dataclass(frozen=True, slots=True)
class FilterCriteria:
    distance_filter: DistanceFilter = field(default_factory=DistanceFilter)
    selected_colors: frozenset[str] = frozenset()
    selected_postcodes: frozenset[str] = frozenset()
    selected_professions: frozenset[str] = frozenset()
    only_visited: bool = False
    only_favorites: bool = False
    search_query: str = ""

    @property
    def has_attribute_filters(self) -> bool:
        return bool(
            self.selected_colors
            or self.selected_postcodes
            or self.selected_professions
            or self.only_visited
            or self.only_favorites
        )

    def reset_standard(self) -> FilterCriteria:
        """Drop attribute and membership filters, keeping distance filter and search."""
        return replace(
            self,
            selected_colors=frozenset(),
            selected_postcodes=frozenset(),
            selected_professions=frozenset(),
            only_visited=False,
            only_favorites=False,
        )


class Membership(Protocol):
    def is_visited(self, plaque_id: int) -> bool: ...

    def is_favorite(self, plaque_id: int) -> bool: ...


class SetMembership:
    """Membership lookups backed by in-memory id sets."""

    def __init__(self, visited_ids: Iterable[int] = (), favorite_ids: Iterable[int] = ()) -> None:
        self.visited_ids = frozenset(visited_ids)
        self.favorite_ids = frozenset(favorite_ids)

    def is_visited(self, plaque_id: int) -> bool:
        return plaque_id in self.visited_ids

    def is_favorite(self, plaque_id: int) -> bool:
        return plaque_id in self.favorite_ids


NO_MEMBERSHIP = SetMembership()
