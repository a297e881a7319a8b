import json
import math
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from plaquer.api.routes import routes as routes_api
from plaquer.api.routes import sessions as sessions_api
from plaquer.main import create_app
from plaquer.persistence.filesystem import FileStorage
from plaquer.services.geocoding.nominatim import GeocodeResult
from plaquer.services.map_state.sessions import SessionRegistry

KM_IN_DEGREES = 180 / (math.pi * 6371)


class DummyGeocoder:
    async def reverse_geocode(self, lat, lng, token=None):
        return "Strand, Covent Garden"

    async def forward_geocode(self, query, token=None):
        if query == "Camden Town":
            return GeocodeResult(51.5390, -0.1426, "Camden Town, London")
        return None


def _plaque(pid: int, lat, lng, **extra) -> dict:
    return {"id": pid, "title": f"Plaque {pid}", "latitude": lat, "longitude": lng, **extra}


def _london_plaques() -> list[dict]:
    return [
        _plaque(1, 51.5080, -0.1275, color="blue", postcode="WC2", profession="Writer"),
        _plaque(2, "51.5500", "-0.0900", color="green", postcode="N1", profession="Engineer"),
        _plaque(3, 51.5110, -0.1210, color="Blue", postcode="WC2", profession="Unknown"),
    ]


def _colinear_plaques() -> list[dict]:
    return [_plaque(pid, 51.5 + index * KM_IN_DEGREES, -0.1) for index, pid in enumerate((1, 2, 3))]


@pytest.fixture
def client(monkeypatch):
    registry = SessionRegistry(routing_factory=lambda: None, geocoder_factory=DummyGeocoder)
    monkeypatch.setattr(sessions_api, "registry", registry)
    monkeypatch.setattr(routes_api, "get_routing_service", lambda: None)
    return TestClient(create_app())


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}
    assert client.get("/").json()["status"] == "running"


def test_health_osrm_without_service(client, monkeypatch):
    from plaquer.config import settings

    monkeypatch.setattr(settings, "osrm_base_url", None)

    payload = client.get("/api/health/osrm").json()

    assert payload == {"service": "osrm", "configured": False, "healthy": False}


def test_filter_plaques_by_distance(client):
    response = client.post(
        "/api/plaques/filter",
        json={
            "plaques": _london_plaques(),
            "criteria": {
                "distance_filter": {
                    "enabled": True,
                    "center": [51.5074, -0.1278],
                    "radius_km": 1.0,
                    "location_name": "Charing Cross",
                }
            },
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 2
    assert body["total"] == 3
    assert [plaque["id"] for plaque in body["plaques"]] == [1, 3]


def test_filter_plaques_by_attributes_and_membership(client):
    response = client.post(
        "/api/plaques/filter",
        json={
            "plaques": _london_plaques(),
            "criteria": {"selected_colors": ["BLUE"], "only_favorites": True},
            "favorite_ids": [3],
        },
    )

    assert [plaque["id"] for plaque in response.json()["plaques"]] == [3]


def test_filter_rejects_non_positive_radius(client):
    response = client.post(
        "/api/plaques/filter",
        json={"plaques": [], "criteria": {"distance_filter": {"radius_km": 0}}},
    )

    assert response.status_code == 422


def test_filter_options(client):
    response = client.post("/api/plaques/filter-options", json={"plaques": _london_plaques()})

    assert response.json() == {
        "colors": ["blue", "green"],
        "postcodes": ["N1", "WC2"],
        "professions": ["Engineer", "Writer"],
    }


def test_within_radius_count_and_circle(client):
    response = client.post(
        "/api/plaques/within-radius",
        json={"plaques": _london_plaques(), "center": [51.5074, -0.1278], "radius_km": 1.0},
    )

    body = response.json()
    assert body["count"] == 2
    assert body["circle"]["type"] == "Polygon"


def test_route_metrics_fallback(client):
    response = client.post("/api/routes/metrics", json={"plaques": _colinear_plaques()})

    assert response.status_code == 200
    body = response.json()
    assert body["total_distance_km"] == pytest.approx(2.8)
    assert body["total_duration_minutes"] == pytest.approx(33.6)
    assert body["is_estimated"] is True
    assert len(body["segments"]) == 2


def test_route_optimize_keeps_first_stop(client):
    plaques = [
        _plaque(1, 51.50, -0.10),
        _plaque(2, 51.60, -0.10),
        _plaque(3, 51.51, -0.10),
    ]

    body = client.post("/api/routes/optimize", json={"plaques": plaques}).json()

    assert [plaque["id"] for plaque in body["plaques"]] == [1, 3, 2]
    assert body["optimized_distance_km"] < body["original_distance_km"]


def test_export_gpx_download_and_persist(client, monkeypatch, tmp_path: Path):
    monkeypatch.setattr(routes_api, "FileStorage", lambda: FileStorage(root=tmp_path))

    response = client.post(
        "/api/routes/export/gpx",
        json={"plaques": _london_plaques(), "name": "Evening walk", "persist": True},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/gpx+xml")
    assert response.headers["content-disposition"].startswith('attachment; filename="route-')
    assert "<name>Evening walk</name>" in response.text
    saved = list((tmp_path / "outputs").glob("gpx_*/*.gpx"))
    assert len(saved) == 1
    assert saved[0].read_text(encoding="utf-8") == response.text


def test_export_gpx_rejects_single_point(client):
    response = client.post("/api/routes/export/gpx", json={"plaques": _london_plaques()[:1]})

    assert response.status_code == 400
    assert "at least 2 waypoints" in response.json()["detail"]


def test_export_geojson_persists_summary(client, monkeypatch, tmp_path: Path):
    monkeypatch.setattr(routes_api, "FileStorage", lambda: FileStorage(root=tmp_path))

    response = client.post("/api/routes/export/geojson", json={"plaques": _colinear_plaques(), "persist": True})

    assert response.status_code == 200
    assert response.json()["type"] == "FeatureCollection"
    assert len(response.json()["features"]) == 4
    summaries = list((tmp_path / "outputs").glob("geojson_*/summary.json"))
    assert len(summaries) == 1
    saved = summaries[0].parent / "route.geojson"
    assert json.loads(saved.read_text(encoding="utf-8")) == response.json()


def test_route_record_payload(client):
    response = client.post(
        "/api/routes/record",
        json={"name": "Three stops", "plaques": _colinear_plaques(), "is_public": True},
    )

    body = response.json()
    assert body["name"] == "Three stops"
    assert [point["order"] for point in body["points"]] == [0, 1, 2]
    assert body["total_distance_km"] == pytest.approx(2.8)
    assert body["is_public"] is True


def test_route_record_requires_name(client):
    response = client.post("/api/routes/record", json={"name": " ", "plaques": _colinear_plaques()})

    assert response.status_code == 400


def _create_session(client, **extra) -> str:
    response = client.post("/api/sessions", json={"plaques": _london_plaques(), **extra})
    assert response.status_code == 201
    return response.json()["session_id"]


def test_session_route_planning_flow(client):
    session_id = _create_session(client)

    client.post(f"/api/sessions/{session_id}/actions", json={"action": {"type": "toggle_route_mode"}})
    first = client.post(
        f"/api/sessions/{session_id}/actions", json={"action": {"type": "add_waypoint", "plaque_id": 1}}
    ).json()
    duplicate = client.post(
        f"/api/sessions/{session_id}/actions", json={"action": {"type": "add_waypoint", "plaque_id": 1}}
    ).json()
    client.post(f"/api/sessions/{session_id}/actions", json={"action": {"type": "add_waypoint", "plaque_id": 3}})

    assert [n["key"] for n in first["notifications"]] == ["added-1"]
    assert duplicate["duplicate"] is True
    assert duplicate["changed"] is False

    state = client.get(f"/api/sessions/{session_id}").json()["state"]
    assert state["route"]["mode"] == "enabled"
    assert [plaque["id"] for plaque in state["route"]["points"]] == [1, 3]
    assert state["metrics"]["is_estimated"] is True

    gpx = client.get(f"/api/sessions/{session_id}/export/gpx")
    assert gpx.status_code == 200
    assert gpx.text.count("<wpt ") == 2

    record = client.post(
        f"/api/sessions/{session_id}/record",
        json={"name": "Short walk", "description": "Covent Garden loop", "is_public": True},
    ).json()
    assert [point["plaque_id"] for point in record["points"]] == [1, 3]
    assert record["description"] == "Covent Garden loop"
    assert record["is_public"] is True

    overlay = client.get(f"/api/sessions/{session_id}/export/geojson").json()
    assert overlay["type"] == "FeatureCollection"
    assert [feature["geometry"]["type"] for feature in overlay["features"]] == ["Point", "Point", "LineString"]


def test_session_record_requires_json_name(client):
    session_id = _create_session(client)

    assert client.post(f"/api/sessions/{session_id}/record", params={"name": "Short walk"}).status_code == 422


def test_session_add_unknown_plaque_is_not_found(client):
    session_id = _create_session(client)

    response = client.post(
        f"/api/sessions/{session_id}/actions", json={"action": {"type": "add_waypoint", "plaque_id": 42}}
    )

    assert response.status_code == 404


def test_session_location_search_and_filtering(client):
    session_id = _create_session(client)

    located = client.post(f"/api/sessions/{session_id}/location", json={"center": [51.5074, -0.1278]}).json()
    assert located["state"]["criteria"]["distance_filter"]["location_name"] == "Strand, Covent Garden"
    assert located["visible_ids"] == [1, 3]
    assert located["notifications"][0]["key"] == "location-filter-set"

    searched = client.post(f"/api/sessions/{session_id}/search", json={"query": "Camden Town"}).json()
    assert searched["state"]["criteria"]["distance_filter"]["location_name"] == "Camden Town, London"

    missing = client.post(f"/api/sessions/{session_id}/search", json={"query": "Atlantis"})
    assert missing.status_code == 400
    state = client.get(f"/api/sessions/{session_id}").json()["state"]
    assert state["criteria"]["distance_filter"]["location_name"] == "Camden Town, London"


def test_session_locate_reports_geolocation_reason(client):
    session_id = _create_session(client)

    response = client.post(f"/api/sessions/{session_id}/locate", json={"error_code": 1})

    assert response.status_code == 422
    assert response.json()["detail"]["reason"] == "permission_denied"

    located = client.post(f"/api/sessions/{session_id}/locate", json={"latitude": 51.508, "longitude": -0.1275})
    assert located.status_code == 200
    assert located.json()["state"]["criteria"]["distance_filter"]["enabled"] is True


def test_session_external_filter_sync(client):
    session_id = _create_session(client)
    external = {"enabled": True, "center": [51.5074, -0.1278], "radius_km": 2.0, "location_name": "Host"}

    first = client.put(f"/api/sessions/{session_id}/distance-filter", json=external).json()
    second = client.put(f"/api/sessions/{session_id}/distance-filter", json=external).json()

    assert first["applied"] == ["SetLocationFilter"]
    assert second["applied"] == []
    assert first["state"]["criteria"]["distance_filter"]["radius_km"] == 2.0


def test_session_lifecycle(client):
    session_id = _create_session(client, distance_filter={"enabled": False, "radius_km": 3.0})

    assert client.get(f"/api/sessions/{session_id}").json()["state"]["criteria"]["distance_filter"]["radius_km"] == 3.0
    assert client.delete(f"/api/sessions/{session_id}").status_code == 204
    assert client.get(f"/api/sessions/{session_id}").status_code == 404
    assert client.delete(f"/api/sessions/{session_id}").status_code == 404


def test_session_membership_and_plaque_updates(client):
    session_id = _create_session(client)
    client.post(
        f"/api/sessions/{session_id}/actions",
        json={"action": {"type": "set_only_favorites", "only_favorites": True}},
    )

    assert client.get(f"/api/sessions/{session_id}").json()["visible_ids"] == []

    updated = client.put(f"/api/sessions/{session_id}/membership", json={"favorite_ids": [2, 3]}).json()
    assert updated["visible_ids"] == [2, 3]

    replaced = client.put(
        f"/api/sessions/{session_id}/plaques",
        json={"plaques": [_plaque(3, 51.5110, -0.1210), _plaque(7, 51.5, -0.1)]},
    ).json()
    assert replaced["visible_ids"] == [3]
