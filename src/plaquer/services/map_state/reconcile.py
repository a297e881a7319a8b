"""One-way sync of an externally controlled distance filter into engine actions."""

from __future__ import annotations

from ..filtering.models import DistanceFilter
from .actions import Action, ClearFilter, SetLocationFilter, UpdateRadius

UNKNOWN_LOCATION = "Unknown Location"


def reconcile(internal: DistanceFilter, external: DistanceFilter | None) -> list[Action]:
    """Actions that bring ``internal`` in line with ``external``.

    Only ``enabled``, ``radius_km`` and ``location_name`` are compared; a
    differing centre alone is not a change. Returns no actions when the two
    already agree or there is no external value.
    """
    if external is None:
        return []
    external_name = external.location_name
    if external.enabled and external.center is not None:
        external_name = external_name or UNKNOWN_LOCATION
    if (
        external.enabled == internal.enabled
        and external.radius_km == internal.radius_km
        and external_name == internal.location_name
    ):
        return []
    if external.enabled and external.center is not None:
        return [
            SetLocationFilter(
                center=external.center,
                radius_km=external.radius_km,
                location_name=external.location_name or UNKNOWN_LOCATION,
            )
        ]
    actions: list[Action] = [ClearFilter()]
    if external.radius_km != internal.radius_km:
        actions.append(UpdateRadius(radius_km=external.radius_km))
    return actions
