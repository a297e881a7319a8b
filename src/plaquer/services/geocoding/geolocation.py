"""Device position lookups with a hard timeout."""

from __future__ import annotations

import asyncio
from typing import Protocol

from ...config import settings
from ..errors import GeolocationError, GeolocationFailure
from ..geospatial import parse_coordinate

# W3C GeolocationPositionError codes as reported by browsers
_BROWSER_ERROR_CODES = {
    1: GeolocationFailure.PERMISSION_DENIED,
    2: GeolocationFailure.POSITION_UNAVAILABLE,
    3: GeolocationFailure.TIMEOUT,
}


class GeolocationProvider(Protocol):
    async def current_position(self) -> tuple[float, float]: ...


class ReportedPosition:
    """Position (or failure) already obtained by the client, e.g. a browser."""

    def __init__(
        self,
        latitude: float | None = None,
        longitude: float | None = None,
        error_code: int | None = None,
    ) -> None:
        self.latitude = latitude
        self.longitude = longitude
        self.error_code = error_code

    async def current_position(self) -> tuple[float, float]:
        if self.error_code is not None:
            reason = _BROWSER_ERROR_CODES.get(self.error_code, GeolocationFailure.UNSUPPORTED)
            raise GeolocationError(reason, f"client reported error code {self.error_code}")
        lat = parse_coordinate(self.latitude)
        lng = parse_coordinate(self.longitude)
        if lat is None or lng is None:
            raise GeolocationError(GeolocationFailure.POSITION_UNAVAILABLE, "no coordinates reported")
        return (lat, lng)


async def locate(provider: GeolocationProvider | None, timeout: float | None = None) -> tuple[float, float]:
    """Ask ``provider`` for the device position, failing after ``timeout`` seconds."""
    if provider is None:
        raise GeolocationError(GeolocationFailure.UNSUPPORTED)
    limit = timeout if timeout is not None else settings.geolocation_timeout_seconds
    try:
        return await asyncio.wait_for(provider.current_position(), timeout=limit)
    except asyncio.TimeoutError as exc:
        raise GeolocationError(GeolocationFailure.TIMEOUT, f"no position after {limit:g}s") from exc
