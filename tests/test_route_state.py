import math

import pytest

from plaquer.models.domain import Plaque, RoutePoint
from plaquer.services.routing.optimizer import optimize_route, route_length_km
from plaquer.services.routing.state import RouteMode, RouteState


def _plaque(pid: int, lat=51.5, lng=-0.1) -> Plaque:
    return Plaque(id=pid, title=f"Plaque {pid}", latitude=lat, longitude=lng)


def _route(*pids: int, mode: RouteMode = RouteMode.ENABLED) -> RouteState:
    return RouteState(points=tuple(_plaque(pid, 51.5 + pid / 1000, -0.1) for pid in pids), mode=mode)


def test_add_appends_new_plaque_last_and_remove_keeps_order():
    route = _route(1, 2, 3)

    route = route.add(_plaque(4))
    assert route.ids == [1, 2, 3, 4]

    route = route.remove(2)
    assert route.ids == [1, 3, 4]


def test_adding_same_id_twice_is_a_noop():
    route = _route(1, 2)

    again = route.add(_plaque(2, 10.0, 10.0))

    assert again is route
    assert again.ids == [1, 2]


def test_remove_missing_id_is_a_noop():
    route = _route(1, 2)

    assert route.remove(99) is route


@pytest.mark.parametrize("index", [0, 1, 2])
def test_reorder_to_same_index_is_a_noop(index):
    route = _route(1, 2, 3)

    assert route.reorder(index, index) is route


@pytest.mark.parametrize("from_index, to_index", [(-1, 0), (0, 3), (5, 1)])
def test_reorder_out_of_bounds_is_a_noop(from_index, to_index):
    route = _route(1, 2, 3)

    assert route.reorder(from_index, to_index) is route


def test_reorder_moves_waypoint():
    route = _route(1, 2, 3, 4)

    assert route.reorder(0, 2).ids == [2, 3, 1, 4]
    assert route.reorder(3, 1).ids == [1, 4, 2, 3]


def test_toggle_from_enabled_clears_points():
    route = _route(1, 2, 3)

    toggled = route.toggle_mode()

    assert toggled.mode is RouteMode.DISABLED
    assert toggled.points == ()


def test_toggle_from_disabled_preserves_points():
    route = _route(1, 2, mode=RouteMode.DISABLED)

    toggled = route.toggle_mode()

    assert toggled.enabled
    assert toggled.ids == [1, 2]


def test_clear_empties_in_any_mode():
    assert _route(1, 2).clear().points == ()
    assert _route(1, 2, mode=RouteMode.DISABLED).clear().points == ()


def test_route_points_skip_plaques_without_coordinates():
    route = RouteState(points=(_plaque(1, 51.5, -0.1), _plaque(2, None, None), _plaque(3, "51.6", "-0.2")))

    assert route.route_points() == [
        RoutePoint(plaque_id=1, order=0, latitude=51.5, longitude=-0.1, title="Plaque 1"),
        RoutePoint(plaque_id=3, order=1, latitude=51.6, longitude=-0.2, title="Plaque 3"),
    ]


def test_optimize_keeps_start_and_visits_nearest_first():
    start = _plaque(1, 51.50, -0.10)
    far = _plaque(2, 51.60, -0.10)
    near = _plaque(3, 51.51, -0.10)
    middle = _plaque(4, 51.55, -0.10)

    ordered = optimize_route([start, far, near, middle])

    assert [plaque.id for plaque in ordered] == [1, 3, 4, 2]
    assert route_length_km(ordered) < route_length_km([start, far, near, middle])


def test_optimize_returns_a_permutation_with_same_start():
    points = [_plaque(pid, 51.5 + math.sin(pid) / 50, -0.1 + math.cos(pid * 3) / 50) for pid in range(1, 9)]

    ordered = optimize_route(points)

    assert ordered[0] is points[0]
    assert sorted(plaque.id for plaque in ordered) == sorted(plaque.id for plaque in points)


def test_optimize_pushes_plaques_without_coordinates_to_the_tail():
    points = [_plaque(1, 51.5, -0.1), _plaque(2, None, None), _plaque(3, 51.51, -0.1), _plaque(4, "x", "y")]

    assert [plaque.id for plaque in optimize_route(points)] == [1, 3, 2, 4]


def test_optimize_leaves_short_routes_untouched():
    points = [_plaque(1, 51.6, -0.1), _plaque(2, 51.5, -0.1)]

    assert optimize_route(points) == points
    assert optimize_route([]) == []
