"""In-memory registry of map sessions served over HTTP."""

from __future__ import annotations

import logging
import time
import uuid
from functools import lru_cache
from typing import Callable, Dict, Iterable, Optional

from ...config import settings
from ...models.domain import Plaque
from ..filtering.models import DistanceFilter, Membership, NO_MEMBERSHIP
from ..geocoding.nominatim import Geocoder, NominatimGeocoder
from ..routing.osrm_client import OSRMWalkingClient, RoutingService
from .machine import MapStateMachine

logger = logging.getLogger(__name__)


@lru_cache()
def _osrm_client(base_url: str) -> OSRMWalkingClient:
    """One client per OSRM URL so every session shares its route cache."""
    return OSRMWalkingClient(base_url=base_url)


def default_routing_service() -> Optional[RoutingService]:
    if not settings.osrm_base_url:
        return None
    return _osrm_client(settings.osrm_base_url)


def default_geocoder() -> Optional[Geocoder]:
    return NominatimGeocoder()


class SessionNotFoundError(KeyError):
    def __init__(self, session_id: str) -> None:
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Map session '{self.session_id}' not found"


class SessionRegistry:
    """Owns one ``MapStateMachine`` per session id until it is closed.

    Sessions untouched for longer than ``ttl_seconds`` are closed and
    dropped the next time the registry is used.
    """

    def __init__(
        self,
        routing_factory: Callable[[], Optional[RoutingService]] = default_routing_service,
        geocoder_factory: Callable[[], Optional[Geocoder]] = default_geocoder,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.routing_factory = routing_factory
        self.geocoder_factory = geocoder_factory
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.session_ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, MapStateMachine] = {}
        self._last_seen: Dict[str, float] = {}

    def create(
        self,
        plaques: Iterable[Plaque],
        *,
        membership: Membership = NO_MEMBERSHIP,
        initial_filter: DistanceFilter | None = None,
    ) -> tuple[str, MapStateMachine]:
        self.evict_idle()
        session_id = uuid.uuid4().hex
        machine = MapStateMachine(
            plaques,
            membership=membership,
            routing_service=self.routing_factory(),
            geocoder=self.geocoder_factory(),
            initial_filter=initial_filter,
        )
        self._sessions[session_id] = machine
        self._last_seen[session_id] = self._clock()
        logger.info(f"Opened map session {session_id} with {len(machine.plaques)} plaques")
        return session_id, machine

    def get(self, session_id: str) -> MapStateMachine:
        self.evict_idle()
        machine = self._sessions.get(session_id)
        if machine is None:
            raise SessionNotFoundError(session_id)
        self._last_seen[session_id] = self._clock()
        return machine

    def close(self, session_id: str) -> None:
        machine = self._sessions.pop(session_id, None)
        self._last_seen.pop(session_id, None)
        if machine is None:
            raise SessionNotFoundError(session_id)
        machine.close()
        logger.info(f"Closed map session {session_id}")

    def evict_idle(self) -> list[str]:
        """Close every session idle for longer than the TTL; returns their ids."""
        cutoff = self._clock() - self.ttl_seconds
        expired = [session_id for session_id, seen in self._last_seen.items() if seen < cutoff]
        for session_id in expired:
            self._last_seen.pop(session_id)
            machine = self._sessions.pop(session_id)
            machine.close()
        if expired:
            logger.info(f"Evicted {len(expired)} idle map session(s)")
        return expired

    def __len__(self) -> int:
        return len(self._sessions)
