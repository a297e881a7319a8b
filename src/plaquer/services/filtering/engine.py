"""Apply distance, attribute and membership filters to a plaque list."""

from __future__ import annotations

from typing import Iterable, Sequence

from ...models.domain import UNKNOWN, Coord, Plaque
from ..geospatial import distance_km
from .models import NO_MEMBERSHIP, FilterCriteria, Membership


def _matches_search(plaque: Plaque, query: str) -> bool:
    needle = query.lower()
    for text in (plaque.title, plaque.description, plaque.location):
        if text and needle in text.lower():
            return True
    return False


def within_radius(plaque: Plaque, center: Coord, radius_km: float) -> bool:
    coordinates = plaque.coordinates
    if coordinates is None:
        return False
    return distance_km(center, coordinates) <= radius_km


def _matches_selection(value: str | None, selection: frozenset[str], *, casefold: bool = False) -> bool:
    if not selection:
        return True
    if not value:
        return False
    if casefold:
        return value.lower() in selection
    return value in selection


def apply_filters(
    plaques: Sequence[Plaque],
    criteria: FilterCriteria,
    membership: Membership = NO_MEMBERSHIP,
) -> list[Plaque]:
    """Return the plaques passing every active predicate, in input order.

    Predicates are evaluated cheapest first: free-text search (only while no
    distance filter is active), distance, colour/postcode/profession
    selections, then the visited and favourite membership lookups.
    """

    distance = criteria.distance_filter
    query = criteria.search_query.strip()
    colors = frozenset(color.lower() for color in criteria.selected_colors)

    visible: list[Plaque] = []
    for plaque in plaques:
        if query and not distance.active and not _matches_search(plaque, query):
            continue
        if distance.active and not within_radius(plaque, distance.center, distance.radius_km):
            continue
        if not _matches_selection(plaque.color, colors, casefold=True):
            continue
        if not _matches_selection(plaque.postcode, criteria.selected_postcodes):
            continue
        if not _matches_selection(plaque.profession, criteria.selected_professions):
            continue
        if criteria.only_visited and not (plaque.visited or membership.is_visited(plaque.id)):
            continue
        if criteria.only_favorites and not membership.is_favorite(plaque.id):
            continue
        visible.append(plaque)
    return visible


def count_within_radius(plaques: Iterable[Plaque], center: Coord, radius_km: float) -> int:
    return sum(1 for plaque in plaques if within_radius(plaque, center, radius_km))


def available_values(plaques: Iterable[Plaque]) -> dict[str, list[str]]:
    """Distinct colours, postcodes and professions present in ``plaques``.

    Colours are lower-cased; the ``"Unknown"`` sentinel and blanks are skipped.
    """

    colors: set[str] = set()
    postcodes: set[str] = set()
    professions: set[str] = set()
    for plaque in plaques:
        if plaque.color and plaque.color != UNKNOWN:
            colors.add(plaque.color.lower())
        if plaque.postcode and plaque.postcode != UNKNOWN:
            postcodes.add(plaque.postcode)
        if plaque.profession and plaque.profession != UNKNOWN:
            professions.add(plaque.profession)
    return {
        "colors": sorted(colors),
        "postcodes": sorted(postcodes),
        "professions": sorted(professions),
    }
