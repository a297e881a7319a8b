"""Ordered, duplicate-free route of plaques being planned."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from ...models.domain import Plaque, RoutePoint


class RouteMode(str, Enum):
    DISABLED = "disabled"
    ENABLED = "enabled"


@dataclass(frozen=True, slots=True)
class RouteState:
    """Waypoints in visiting order (index 0 is the start) plus the planning mode.

    Every transition returns a new state; the current one is never mutated.
    """

    points: tuple[Plaque, ...] = ()
    mode: RouteMode = RouteMode.DISABLED

    @property
    def enabled(self) -> bool:
        return self.mode is RouteMode.ENABLED

    @property
    def ids(self) -> list[int]:
        return [plaque.id for plaque in self.points]

    def __len__(self) -> int:
        return len(self.points)

    def contains(self, plaque_id: int) -> bool:
        return any(plaque.id == plaque_id for plaque in self.points)

    def index_of(self, plaque_id: int) -> int | None:
        for index, plaque in enumerate(self.points):
            if plaque.id == plaque_id:
                return index
        return None

    def add(self, plaque: Plaque) -> RouteState:
        if self.contains(plaque.id):
            return self
        return replace(self, points=(*self.points, plaque))

    def remove(self, plaque_id: int) -> RouteState:
        if not self.contains(plaque_id):
            return self
        return replace(self, points=tuple(plaque for plaque in self.points if plaque.id != plaque_id))

    def reorder(self, from_index: int, to_index: int) -> RouteState:
        size = len(self.points)
        if from_index == to_index:
            return self
        if not (0 <= from_index < size and 0 <= to_index < size):
            return self
        points = list(self.points)
        moved = points.pop(from_index)
        points.insert(to_index, moved)
        return replace(self, points=tuple(points))

    def clear(self) -> RouteState:
        if not self.points:
            return self
        return replace(self, points=())

    def toggle_mode(self) -> RouteState:
        if self.enabled:
            # leaving planning discards the in-progress route
            return RouteState(points=(), mode=RouteMode.DISABLED)
        return replace(self, mode=RouteMode.ENABLED)

    def with_points(self, points: tuple[Plaque, ...]) -> RouteState:
        return replace(self, points=points)

    def route_points(self) -> list[RoutePoint]:
        """Flatten to ``RoutePoint`` records, skipping plaques without coordinates.

        ``order`` is renumbered densely over the points that are kept.
        """
        flat: list[RoutePoint] = []
        for plaque in self.points:
            coordinates = plaque.coordinates
            if coordinates is None:
                continue
            flat.append(
                RoutePoint(
                    plaque_id=plaque.id,
                    order=len(flat),
                    latitude=coordinates[0],
                    longitude=coordinates[1],
                    title=plaque.title,
                )
            )
        return flat
