import math

import pytest

from plaquer.models.domain import Plaque
from plaquer.services.geospatial import (
    circle_polygon,
    destination_point,
    distance_km,
    haversine_km,
    parse_coordinate,
)

LONDON = (51.5074, -0.1278)


@pytest.mark.parametrize("point", [LONDON, (0.0, 0.0), (-33.8688, 151.2093), (89.9, 179.9)])
def test_distance_to_self_is_zero(point):
    assert distance_km(point, point) == 0.0


@pytest.mark.parametrize(
    "a, b",
    [
        (LONDON, (51.5500, -0.0900)),
        ((48.8566, 2.3522), LONDON),
        ((40.7128, -74.0060), (34.0522, -118.2437)),
    ],
)
def test_distance_is_symmetric(a, b):
    assert distance_km(a, b) == pytest.approx(distance_km(b, a))


def test_haversine_matches_known_distances():
    assert haversine_km(51.5074, -0.1278, 51.5080, -0.1275) == pytest.approx(0.07, abs=0.01)
    assert haversine_km(51.5074, -0.1278, 51.5500, -0.0900) == pytest.approx(5.4, abs=0.1)
    # London to Paris
    assert haversine_km(51.5074, -0.1278, 48.8566, 2.3522) == pytest.approx(343.5, abs=1.0)


@pytest.mark.parametrize(
    "value, expected",
    [
        (51.5, 51.5),
        (-0.09, -0.09),
        (7, 7.0),
        ("51.5080", 51.508),
        ("  -0.1275 ", -0.1275),
    ],
)
def test_parse_coordinate_accepts_numbers_and_numeric_strings(value, expected):
    assert parse_coordinate(value) == pytest.approx(expected)


@pytest.mark.parametrize("value", [None, "", "   ", "north", float("nan"), float("inf"), True, [51.5]])
def test_parse_coordinate_rejects_unusable_values(value):
    assert parse_coordinate(value) is None


def test_plaque_coordinates_require_both_values_in_range():
    assert Plaque(id=1, latitude="51.5", longitude="-0.1").coordinates == (51.5, -0.1)
    assert Plaque(id=2, latitude=51.5, longitude=None).coordinates is None
    assert Plaque(id=3, latitude=91.0, longitude=0.0).coordinates is None
    assert Plaque(id=4, latitude=0.0, longitude=-181.0).coordinates is None


def test_destination_point_travels_requested_distance_east():
    lat, lon = destination_point(LONDON[0], LONDON[1], 90.0, 2.0)

    assert haversine_km(LONDON[0], LONDON[1], lat, lon) == pytest.approx(2.0, rel=1e-6)
    assert lat == pytest.approx(LONDON[0], abs=1e-3)
    assert lon > LONDON[1]


def test_circle_polygon_vertices_sit_on_the_radius():
    polygon = circle_polygon(LONDON, 1.0, segments=32)

    ring = list(polygon.exterior.coords)[:-1]
    assert len(ring) == 32
    for lng, lat in ring:
        assert distance_km(LONDON, (lat, lng)) == pytest.approx(1.0, rel=1e-6)
    assert polygon.contains(polygon.centroid)
    assert math.isclose(polygon.centroid.y, LONDON[0], abs_tol=1e-3)


@pytest.mark.parametrize("radius, segments", [(0.0, 64), (-1.0, 64), (1.0, 2)])
def test_circle_polygon_rejects_bad_arguments(radius, segments):
    with pytest.raises(ValueError):
        circle_polygon(LONDON, radius, segments=segments)
