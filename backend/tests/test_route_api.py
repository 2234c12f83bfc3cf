"""
Tests for route planning, both through the service and the HTTP API.
"""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))
from campusnav.main import app  # type: ignore
from campusnav.services.db import get_session
from campusnav.services.geometry import from_meters
from campusnav.services.routing import (
    ROUTE_NO_PATH,
    ROUTE_NO_WALKWAYS,
    ROUTE_OK,
    ROUTE_TOO_FAR,
    plan_route,
)
from campusnav.services.validation import WalkwayValidationError
from campusnav.services.walkway_store import (
    FeatureRecord,
    delete_feature,
    list_features,
    list_walkways,
    replace_walkways,
    save_feature,
    save_walkway,
)
from campusnav.services.walkways import Feature, Walkway

LNG0 = -77.05
LAT0 = 38.90


def at(east_m: float, north_m: float) -> tuple:
    return (LNG0 + from_meters(east_m), LAT0 + from_meters(north_m))


def _cross() -> list:
    return [
        Walkway(geometry=[(0, 0), (10, 0)]),
        Walkway(geometry=[(5, -5), (5, 5)]),
    ]


def test_plan_route_between_network_nodes() -> None:
    result = plan_route(_cross(), (0, 0), (10, 0))
    assert result.status == ROUTE_OK
    assert result.found
    assert result.distance == pytest.approx(10.0)
    assert [tuple(c) for c in result.coordinates] == [(0.0, 0.0), (5.0, 0.0), (10.0, 0.0)]
    assert result.start_snap_meters == pytest.approx(0.0)


def test_plan_route_reports_distance_in_meters() -> None:
    walkways = [Walkway(geometry=[at(0, 0), at(100, 0)])]
    result = plan_route(walkways, at(10, 5), at(60, -5))
    assert result.found
    assert result.distance_meters == pytest.approx(50.0)
    assert result.start_snap_meters == pytest.approx(5.0)
    assert result.end_snap_meters == pytest.approx(5.0)


def test_plan_route_distinguishes_failures() -> None:
    assert plan_route([], (0, 0), (1, 1)).status == ROUTE_NO_WALKWAYS

    walkways = [Walkway(geometry=[at(0, 0), at(100, 0)])]
    too_far = plan_route(walkways, at(0, 0), at(50, 500))
    assert too_far.status == ROUTE_TOO_FAR
    assert too_far.start_snap_meters == pytest.approx(0.0)
    assert too_far.end_snap_meters is None
    assert not too_far.found

    islands = walkways + [Walkway(geometry=[at(0, 300), at(100, 300)])]
    no_path = plan_route(islands, at(10, 0), at(10, 300))
    assert no_path.status == ROUTE_NO_PATH
    assert no_path.distance is None


def test_plan_route_rejects_invalid_endpoints() -> None:
    with pytest.raises(WalkwayValidationError):
        plan_route(_cross(), (float("nan"), 0), (10, 0))


@pytest.fixture
def client():
    with TestClient(app) as c:
        replace_walkways([w.id for w in list_walkways()], [])
        for feature in list_features():
            delete_feature(feature.id)
        yield c


def test_route_endpoint(client: TestClient) -> None:
    save_walkway(Walkway(geometry=[at(0, 0), at(100, 0)]))
    save_walkway(Walkway(geometry=[at(50, -50), at(50, 50)]))

    resp = client.post("/api/route", json={"start": list(at(0, 0)), "end": list(at(50, 40))})

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["found"] is True
    assert data["distanceMeters"] == pytest.approx(90.0)
    assert data["coordinates"][0] == pytest.approx(list(at(0, 0)))
    assert data["coordinates"][-1] == pytest.approx(list(at(50, 40)))


def test_route_endpoint_reports_no_route_as_status(client: TestClient) -> None:
    resp = client.post("/api/route", json={"start": [0, 0], "end": [1, 1]})
    assert resp.status_code == 200
    assert resp.json()["status"] == "no_walkways"
    assert resp.json()["found"] is False


def test_route_by_feature_search(client: TestClient) -> None:
    save_walkway(Walkway(geometry=[at(0, 0), at(100, 0)]))
    building = save_feature(
        Feature(
            geometry={
                "type": "Polygon",
                "coordinates": [[list(at(80, 10)), list(at(90, 10)), list(at(90, 20)), list(at(80, 20)), list(at(80, 10))]],
            },
            properties={"type": "building", "name": "Library"},
        )
    )
    save_feature(
        Feature(
            geometry={"type": "Point", "coordinates": list(at(85, 5))},
            properties={"type": "entrance", "name": "LI-S1", "buildingId": building.id},
        )
    )

    resp = client.post("/api/route", json={"start": list(at(0, 0)), "endQuery": "library"})

    data = resp.json()
    assert data["status"] == "ok"
    assert data["distanceMeters"] == pytest.approx(85.0)
    assert data["endSnapMeters"] == pytest.approx(5.0)


def test_route_query_without_match_is_404(client: TestClient) -> None:
    resp = client.post("/api/route", json={"start": [0, 0], "endQuery": "nowhere"})
    assert resp.status_code == 404


def test_route_request_needs_both_ends(client: TestClient) -> None:
    assert client.post("/api/route", json={"start": [0, 0]}).status_code == 422


def test_route_to_feature_with_broken_location_is_404(client: TestClient) -> None:
    save_walkway(Walkway(geometry=[at(0, 0), at(100, 0)]))
    with get_session() as session:
        session.add(
            FeatureRecord(id="old", kind="entrance", geometry={"type": "Point", "coordinates": []}, properties={"type": "entrance", "name": "E1"})
        )
        session.commit()

    resp = client.post("/api/route", json={"start": list(at(0, 0)), "endQuery": "E1"})
    assert resp.status_code == 404
