"""Domain models for plaques and the positions derived from them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from ..services.geospatial import parse_coordinate

Coord = tuple[float, float]
RawCoordinate = Union[float, int, str, None]

UNKNOWN = "Unknown"


@dataclass(frozen=True, slots=True)
class Plaque:
    """A geo-tagged point of interest as delivered by the plaque data source.

    Coordinates are kept as received (numbers or numeric strings); use
    ``coordinates`` to get a validated ``(lat, lng)`` pair.
    """

    id: int
    title: str = ""
    location: Optional[str] = None
    address: Optional[str] = None
    latitude: RawCoordinate = None
    longitude: RawCoordinate = None
    color: Optional[str] = None
    profession: Optional[str] = None
    postcode: Optional[str] = None
    visited: bool = False
    description: Optional[str] = None
    inscription: Optional[str] = None

    @property
    def coordinates(self) -> Coord | None:
        lat = parse_coordinate(self.latitude)
        lng = parse_coordinate(self.longitude)
        if lat is None or lng is None:
            return None
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
            return None
        return (lat, lng)


@dataclass(frozen=True, slots=True)
class RoutePoint:
    """Flat, ordered representation of a waypoint handed to persistence."""

    plaque_id: int
    order: int
    latitude: float
    longitude: float
    title: str
