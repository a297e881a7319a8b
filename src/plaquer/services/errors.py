"""Exceptions raised by the route engine services."""

from __future__ import annotations

from enum import Enum


class InsufficientWaypointsError(ValueError):
    """Raised when saving or exporting a route with fewer than two usable points."""

    def __init__(self, count: int, required: int = 2) -> None:
        super().__init__(f"A route needs at least {required} waypoints with coordinates (got {count}).")
        self.count = count
        self.required = required


class LocationNotFoundError(ValueError):
    """Raised when a location search resolves to no coordinates."""

    def __init__(self, query: str) -> None:
        super().__init__(f"Location not found: '{query}'")
        self.query = query


class GeolocationFailure(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"
    UNSUPPORTED = "unsupported"


_GEOLOCATION_MESSAGES = {
    GeolocationFailure.PERMISSION_DENIED: "Please enable location access in your browser settings.",
    GeolocationFailure.POSITION_UNAVAILABLE: "Location information is unavailable.",
    GeolocationFailure.TIMEOUT: "Location request timed out.",
    GeolocationFailure.UNSUPPORTED: "Geolocation is not supported by your browser.",
}


class GeolocationError(Exception):
    """Device position could not be obtained; ``reason`` tells the user why."""

    def __init__(self, reason: GeolocationFailure, detail: str | None = None) -> None:
        self.reason = reason
        self.detail = detail
        super().__init__(self.user_message)

    @property
    def user_message(self) -> str:
        return f"Could not access your location. {_GEOLOCATION_MESSAGES[self.reason]}"
