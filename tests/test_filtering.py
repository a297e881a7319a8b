import pytest

from plaquer.models.domain import Plaque
from plaquer.services.filtering.engine import apply_filters, available_values, count_within_radius
from plaquer.services.filtering.models import DistanceFilter, FilterCriteria, SetMembership

LONDON = (51.5074, -0.1278)


def _plaque(pid: int, lat=51.5080, lng=-0.1275, **extra) -> Plaque:
    return Plaque(id=pid, title=f"Plaque {pid}", latitude=lat, longitude=lng, **extra)


def _sample_plaques() -> list[Plaque]:
    return [
        _plaque(1, color="blue", postcode="WC2", profession="Writer", description="Novelist lived here"),
        _plaque(2, 51.5500, -0.0900, color="Green", postcode="N1", profession="Engineer"),
        _plaque(3, None, None, color="blue", postcode="WC2", profession="Scientist"),
        _plaque(4, "51.5075", "-0.1280", color="brown", postcode="SW1", profession="Writer", location="Strand"),
        _plaque(5, 51.5090, -0.1300, color="Unknown", postcode="Unknown", profession="Unknown"),
    ]


def test_empty_criteria_is_identity():
    plaques = _sample_plaques()

    assert apply_filters(plaques, FilterCriteria(), SetMembership()) == plaques


def test_distance_filter_london_scenario():
    near = _plaque(1, 51.5080, -0.1275)
    far = _plaque(2, 51.5500, -0.0900)
    criteria = FilterCriteria(
        distance_filter=DistanceFilter(enabled=True, center=LONDON, radius_km=1.0, location_name="Charing Cross")
    )

    assert apply_filters([near, far], criteria) == [near]


def test_distance_filter_drops_plaques_without_coordinates():
    criteria = FilterCriteria(distance_filter=DistanceFilter(enabled=True, center=LONDON, radius_km=50.0))

    visible = apply_filters(_sample_plaques(), criteria)

    assert [plaque.id for plaque in visible] == [1, 2, 4, 5]


def test_enabled_filter_without_center_is_inactive():
    plaques = _sample_plaques()
    criteria = FilterCriteria(distance_filter=DistanceFilter(enabled=True, center=None, radius_km=0.1))

    assert apply_filters(plaques, criteria) == plaques


def test_colour_selection_is_case_insensitive():
    criteria = FilterCriteria(selected_colors=frozenset({"BLUE", "green"}))

    visible = apply_filters(_sample_plaques(), criteria)

    assert [plaque.id for plaque in visible] == [1, 2, 3]


def test_attribute_filters_are_anded():
    criteria = FilterCriteria(
        selected_postcodes=frozenset({"WC2", "SW1"}),
        selected_professions=frozenset({"Writer"}),
    )

    visible = apply_filters(_sample_plaques(), criteria)

    assert [plaque.id for plaque in visible] == [1, 4]


def test_only_visited_uses_plaque_flag_and_membership():
    plaques = _sample_plaques() + [_plaque(6, visited=True)]
    criteria = FilterCriteria(only_visited=True)

    visible = apply_filters(plaques, criteria, SetMembership(visited_ids={2}))

    assert [plaque.id for plaque in visible] == [2, 6]


def test_only_favorites_uses_membership():
    criteria = FilterCriteria(only_favorites=True)

    visible = apply_filters(_sample_plaques(), criteria, SetMembership(favorite_ids={3, 5}))

    assert [plaque.id for plaque in visible] == [3, 5]


def test_search_matches_title_description_and_location():
    plaques = _sample_plaques()

    assert [p.id for p in apply_filters(plaques, FilterCriteria(search_query="novelist"))] == [1]
    assert [p.id for p in apply_filters(plaques, FilterCriteria(search_query="STRAND"))] == [4]
    assert [p.id for p in apply_filters(plaques, FilterCriteria(search_query="plaque 2"))] == [2]


def test_search_is_ignored_while_distance_filter_is_active():
    criteria = FilterCriteria(
        distance_filter=DistanceFilter(enabled=True, center=LONDON, radius_km=1.0),
        search_query="no such plaque",
    )

    visible = apply_filters(_sample_plaques(), criteria)

    assert [plaque.id for plaque in visible] == [1, 4, 5]


def test_count_within_radius():
    assert count_within_radius(_sample_plaques(), LONDON, 1.0) == 3
    assert count_within_radius(_sample_plaques(), LONDON, 10.0) == 4


def test_available_values_skip_unknown_and_lowercase_colours():
    values = available_values(_sample_plaques())

    assert values == {
        "colors": ["blue", "brown", "green"],
        "postcodes": ["N1", "SW1", "WC2"],
        "professions": ["Engineer", "Scientist", "Writer"],
    }


def test_distance_filter_rejects_non_positive_radius():
    with pytest.raises(ValueError):
        DistanceFilter(radius_km=0)


def test_cleared_filter_keeps_radius():
    distance = DistanceFilter(enabled=True, center=LONDON, radius_km=2.5, location_name="Soho")

    cleared = distance.cleared()

    assert cleared == DistanceFilter(enabled=False, center=None, radius_km=2.5, location_name=None)
    assert not cleared.active


def test_reset_standard_keeps_distance_filter_and_search():
    distance = DistanceFilter(enabled=True, center=LONDON, radius_km=2.0)
    criteria = FilterCriteria(
        distance_filter=distance,
        selected_colors=frozenset({"blue"}),
        only_visited=True,
        only_favorites=True,
        search_query="keats",
    )

    reset = criteria.reset_standard()

    assert reset == FilterCriteria(distance_filter=distance, search_query="keats")
    assert not reset.has_attribute_filters
