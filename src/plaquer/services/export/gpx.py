"""GPX waypoint export for planned routes."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Sequence
from xml.sax.saxutils import escape, quoteattr

from ...config import settings
from ...models.domain import Plaque
from ..errors import InsufficientWaypointsError

GPX_MEDIA_TYPE = "application/gpx+xml"
DEFAULT_ROUTE_NAME = "Plaque Walking Route"


def _format_time(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _format_coordinate(value: float) -> str:
    # xsd:decimal has no exponent form
    return format(Decimal(repr(float(value))), "f")


def build_gpx(
    points: Sequence[Plaque],
    *,
    name: str = DEFAULT_ROUTE_NAME,
    creator: str | None = None,
    now: datetime | None = None,
) -> str:
    """Render route waypoints as a minimal GPX 1.1 document.

    Plaques without coordinates are left out; fewer than two remaining
    raises ``InsufficientWaypointsError`` and nothing is produced.
    """
    located = [(plaque, plaque.coordinates) for plaque in points]
    located = [(plaque, coords) for plaque, coords in located if coords is not None]
    if len(located) < 2:
        raise InsufficientWaypointsError(len(located))

    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f"<gpx version=\"1.1\" creator={quoteattr(creator or settings.gpx_creator)}>",
        f"  <metadata><name>{escape(name)}</name><time>{_format_time(now or datetime.now(timezone.utc))}</time></metadata>",
    ]
    for index, (plaque, (lat, lng)) in enumerate(located):
        title = plaque.title or f"Stop {index + 1}"
        desc = plaque.description or plaque.inscription or ""
        lines.append(
            f'  <wpt lat="{_format_coordinate(lat)}" lon="{_format_coordinate(lng)}">'
            f"<name>{escape(title)}</name><desc>{escape(desc)}</desc></wpt>"
        )
    lines.append("</gpx>")
    return "\n".join(lines) + "\n"


def gpx_filename(now: datetime | None = None) -> str:
    moment = now or datetime.now(timezone.utc)
    return f"route-{int(moment.timestamp() * 1000)}.gpx"
