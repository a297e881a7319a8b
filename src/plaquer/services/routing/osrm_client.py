"""HTTP client for requesting walking routes from an OSRM service."""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Protocol, Sequence

import httpx

from ...config import settings
from ...models.domain import Plaque
from ..cancellation import CancellationToken
from .models import RouteSegment, RouteStep, WalkingRoute

logger = logging.getLogger(__name__)


class RoutingService(Protocol):
    async def compute_walking_route(
        self, points: Sequence[Plaque], token: CancellationToken | None = None
    ) -> WalkingRoute: ...


class OSRMWalkingClient:
    """Multi-waypoint walking routes via the OSRM ``/route`` endpoint.

    Every consecutive pair of waypoints becomes one leg in the response and
    one ``RouteSegment`` in the result. Responses are kept in a bounded
    least-recently-used cache keyed by the waypoint sequence.
    """

    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        cache_size: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds
        self._transport = transport
        self.cache_size = cache_size if cache_size is not None else settings.osrm_cache_size
        self._cache: OrderedDict[str, dict] = OrderedDict()

    def _get_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            transport=self._transport,
        )

    async def route(self, coordinates: Sequence[tuple[float, float]], token: CancellationToken | None = None) -> dict:
        """Raw OSRM route response for (lat, lon) waypoints, with per-step geometry."""
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required for OSRM route.")

        # OSRM route endpoint expects coordinates as "lon,lat;lon,lat;..."
        coordinate_str = ";".join(f"{lon},{lat}" for lat, lon in coordinates)
        params = {
            "overview": "false",
            "geometries": "polyline",
            "steps": "true",
        }
        url = f"{self.base_url}/route/v1/{self.profile}/{coordinate_str}"
        cache_key = _cache_key(coordinates)
        cached = self._cache.get(cache_key)
        if cached is not None:
            self._cache.move_to_end(cache_key)
            logger.debug(f"OSRM route cache hit for {len(coordinates)} waypoints")
            return cached

        async with self._get_client() as client:
            attempt = 0
            while True:
                if token is not None:
                    token.raise_if_cancelled()
                try:
                    response = await client.get(url, params=params)
                    response.raise_for_status()
                    data = response.json()
                    if data.get("code") != "Ok" or not data.get("routes"):
                        error_msg = data.get("message", "Unknown OSRM route error")
                        raise ValueError(f"OSRM route request failed: {error_msg}")
                    self._remember(cache_key, data)
                    return data
                except httpx.HTTPStatusError:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    await asyncio.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"OSRM route request timed out after {self.max_retries} retries: {e}")
                        raise
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM route timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    await asyncio.sleep(wait_time)
                except (httpx.ConnectError, httpx.NetworkError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ConnectionError(f"Failed to connect to OSRM service at {self.base_url}: {e}") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    await asyncio.sleep(wait_time)

    async def compute_walking_route(
        self, points: Sequence[Plaque], token: CancellationToken | None = None
    ) -> WalkingRoute:
        located = [(plaque, plaque.coordinates) for plaque in points]
        located = [(plaque, coords) for plaque, coords in located if coords is not None]
        if len(located) < 2:
            raise ValueError("At least two waypoints with coordinates are required for a walking route.")

        data = await self.route([coords for _, coords in located], token)
        route = data["routes"][0]
        legs = route.get("legs") or []
        if len(legs) != len(located) - 1:
            raise ValueError(f"OSRM returned {len(legs)} legs for {len(located)} waypoints.")

        segments: list[RouteSegment] = []
        for index, leg in enumerate(legs):
            from_plaque, from_coords = located[index]
            to_plaque, to_coords = located[index + 1]
            geometry: list[tuple[float, float]] = []
            steps: list[RouteStep] = []
            for step in leg.get("steps") or []:
                encoded = step.get("geometry")
                step_coords = decode_polyline(encoded) if isinstance(encoded, str) and encoded else []
                for coordinate in step_coords:
                    if not geometry or geometry[-1] != coordinate:
                        geometry.append(coordinate)
                steps.append(
                    RouteStep(
                        instruction=step_instruction(step),
                        distance_km=float(step.get("distance", 0.0)) / 1000.0,
                        duration_min=float(step.get("duration", 0.0)) / 60.0,
                        coordinates=tuple(step_coords),
                    )
                )
            segments.append(
                RouteSegment(
                    from_id=from_plaque.id,
                    to_id=to_plaque.id,
                    distance_km=float(leg.get("distance", 0.0)) / 1000.0,
                    duration_min=float(leg.get("duration", 0.0)) / 60.0,
                    geometry=tuple(geometry) or (from_coords, to_coords),
                    steps=tuple(steps),
                )
            )

        return WalkingRoute(
            total_distance_km=float(route.get("distance", 0.0)) / 1000.0,
            total_duration_min=float(route.get("duration", 0.0)) / 60.0,
            segments=segments,
        )


def _cache_key(coordinates: Sequence[tuple[float, float]]) -> str:
    return ";".join(f"{lat:.6f},{lon:.6f}" for lat, lon in coordinates)


def step_instruction(step: dict) -> str:
    """Readable instruction from an OSRM step's maneuver and street name."""
    maneuver = step.get("maneuver") or {}
    kind = maneuver.get("type", "")
    modifier = maneuver.get("modifier")
    name = step.get("name") or ""

    if kind == "arrive":
        return "Arrive at destination"
    if kind == "depart":
        return f"Start on {name}" if name else "Start walking"
    if kind in ("roundabout", "rotary"):
        text = "Take the roundabout"
    elif modifier == "uturn":
        text = "Make a U-turn"
    elif kind in ("continue", "new name") or modifier in (None, "straight"):
        text = "Continue"
    else:
        text = f"Turn {modifier}"
    return f"{text} onto {name}" if name else text


def decode_polyline(polyline: str) -> list[tuple[float, float]]:
    """Decode Google polyline string to list of (lat, lon) coordinates.

    OSRM uses Google's polyline encoding format for route geometry.
    """
    coordinates = []
    index = 0
    lat = 0
    lon = 0

    while index < len(polyline):
        # Decode latitude
        shift = 0
        result = 0
        while True:
            b = ord(polyline[index]) - 63
            index += 1
            result |= (b & 0x1f) << shift
            shift += 5
            if b < 0x20:
                break
        dlat = ~(result >> 1) if (result & 1) else (result >> 1)
        lat += dlat

        # Decode longitude
        shift = 0
        result = 0
        while True:
            b = ord(polyline[index]) - 63
            index += 1
            result |= (b & 0x1f) << shift
            shift += 5
            if b < 0x20:
                break
        dlon = ~(result >> 1) if (result & 1) else (result >> 1)
        lon += dlon

        coordinates.append((lat / 1e5, lon / 1e5))

    return coordinates


def check_health(base_url: str | None = None) -> bool:
    """Check OSRM service health with a minimal two-point walking route."""
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    try:
        # Two points in central London
        test_coords = "-0.1278,51.5074;-0.1275,51.5080"
        url = f"{base.rstrip('/')}/route/v1/{settings.osrm_profile}/{test_coords}"
        response = httpx.get(url, params={"overview": "false"}, timeout=5.0)
        response.raise_for_status()
        return response.json().get("code") == "Ok"
    except (httpx.HTTPError, ValueError):
        return False
