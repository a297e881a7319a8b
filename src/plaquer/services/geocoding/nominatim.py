"""Forward and reverse geocoding against a Nominatim-compatible service."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from ...config import settings
from ..cancellation import CancellationToken
from ..geospatial import parse_coordinate

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GeocodeResult:
    latitude: float
    longitude: float
    name: str

    @property
    def coordinates(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


class Geocoder(Protocol):
    async def reverse_geocode(
        self, lat: float, lng: float, token: CancellationToken | None = None
    ) -> str | None: ...

    async def forward_geocode(
        self, query: str, token: CancellationToken | None = None
    ) -> GeocodeResult | None: ...


def short_display_name(display_name: str, parts: int = 2) -> str:
    """Keep the first comma-separated parts of a Nominatim display name."""
    pieces = [piece.strip() for piece in display_name.split(",") if piece.strip()]
    return ", ".join(pieces[:parts])


class NominatimGeocoder:
    def __init__(
        self,
        base_url: str | None = None,
        user_agent: str | None = None,
        timeout: float | None = None,
        country_codes: str | None = "gb",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.geocoder_base_url).rstrip("/")
        self.country_codes = country_codes
        self.user_agent = user_agent or settings.geocoder_user_agent
        self.timeout = timeout if timeout is not None else settings.geocoder_timeout_seconds
        self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            headers={"User-Agent": self.user_agent, "Accept": "application/json"},
            transport=self._transport,
        )

    async def _get_json(self, path: str, params: dict, token: CancellationToken | None) -> object:
        if token is not None:
            token.raise_if_cancelled()
        async with self._get_client() as client:
            response = await client.get(f"{self.base_url}/{path}", params=params)
            response.raise_for_status()
            return response.json()

    async def reverse_geocode(
        self, lat: float, lng: float, token: CancellationToken | None = None
    ) -> str | None:
        data = await self._get_json(
            "reverse",
            {"format": "json", "lat": lat, "lon": lng, "zoom": 16, "addressdetails": 1},
            token,
        )
        if not isinstance(data, dict):
            return None
        display_name = data.get("display_name")
        if not display_name:
            return None
        return short_display_name(str(display_name)) or None

    async def forward_geocode(
        self, query: str, token: CancellationToken | None = None
    ) -> GeocodeResult | None:
        query = query.strip()
        if not query:
            return None
        params: dict = {"format": "json", "q": query, "limit": 1}
        if self.country_codes:
            params["countrycodes"] = self.country_codes
        data = await self._get_json("search", params, token)
        if not isinstance(data, list) or not data:
            logger.info(f"No geocoding result for '{query}'")
            return None
        first = data[0]
        lat = parse_coordinate(first.get("lat"))
        lng = parse_coordinate(first.get("lon"))
        if lat is None or lng is None:
            return None
        name = short_display_name(str(first.get("display_name") or "")) or query
        return GeocodeResult(latitude=lat, longitude=lng, name=name)
