"""
Tests for the walkway editing endpoints.

Each test starts from an empty store.  Coordinates are built around a
campus-sized origin with offsets in metres so snapping tolerances apply
as they would in production.
"""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))
from campusnav.main import app  # type: ignore
from campusnav.services.db import get_session
from campusnav.services.geometry import from_meters
from campusnav.services.walkway_store import FeatureRecord, StoreError, delete_feature, list_features, list_walkways, replace_walkways

LNG0 = -77.05
LAT0 = 38.90


def at(east_m: float, north_m: float) -> list:
    return [LNG0 + from_meters(east_m), LAT0 + from_meters(north_m)]


def _clear_store() -> None:
    replace_walkways([w.id for w in list_walkways()], [])
    for feature in list_features():
        delete_feature(feature.id)


@pytest.fixture
def client():
    with TestClient(app) as c:
        _clear_store()
        yield c


def _line_feature(*coords, **props) -> dict:
    properties = {"type": "walkway"}
    properties.update(props)
    return {
        "type": "Feature",
        "geometry": {"type": "LineString", "coordinates": list(coords)},
        "properties": properties,
    }


def _create(client: TestClient, *coords, **props) -> dict:
    resp = client.post("/api/walkways", json=_line_feature(*coords, **props))
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_health(client: TestClient) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}


def test_create_list_and_delete_walkway(client: TestClient) -> None:
    created = _create(client, at(0, 0), at(50, 0), name="Lawn path")
    walkway_id = created["properties"]["_id"]
    assert walkway_id
    assert created["properties"]["control"] == created["geometry"]["coordinates"]

    listing = client.get("/api/walkways").json()
    assert listing["type"] == "FeatureCollection"
    assert [f["properties"]["_id"] for f in listing["features"]] == [walkway_id]

    assert client.delete(f"/api/walkways/{walkway_id}").json() == {"deletedIds": [walkway_id]}
    assert client.delete(f"/api/walkways/{walkway_id}").status_code == 404
    assert client.get("/api/walkways").json()["features"] == []


def test_upsert_overwrites_by_id(client: TestClient) -> None:
    created = _create(client, at(0, 0), at(50, 0))
    walkway_id = created["properties"]["_id"]
    _create(client, at(0, 0), at(80, 0), _id=walkway_id, name="Renamed")
    features = client.get("/api/walkways").json()["features"]
    assert len(features) == 1
    assert features[0]["properties"]["name"] == "Renamed"


@pytest.mark.parametrize(
    "feature",
    [
        _line_feature([0, 0]),
        _line_feature([0, 0], [0, 0]),
        _line_feature([500, 0], [1, 1]),
        {"type": "Feature", "geometry": {"type": "Point", "coordinates": [0, 0]}, "properties": {}},
    ],
)
def test_invalid_walkways_are_rejected(client: TestClient, feature: dict) -> None:
    assert client.post("/api/walkways", json=feature).status_code == 422
    assert client.get("/api/walkways").json()["features"] == []


def test_draw_segments_line_and_snaps_to_network(client: TestClient) -> None:
    existing = _create(client, at(0, 0), at(100, 0))
    drawn = [at(40, 1.5), at(40, 30), at(70, 30)]

    resp = client.post("/api/walkways/draw", json={"coordinates": drawn, "name": "Spur"})

    assert resp.status_code == 201
    features = resp.json()["features"]
    assert [f["properties"]["segmentIndex"] for f in features] == [0, 1]
    assert len({f["properties"]["group"] for f in features}) == 1
    first = features[0]["geometry"]["coordinates"][0]
    assert first[1] == pytest.approx(existing["geometry"]["coordinates"][0][1])
    assert all(f["properties"]["name"] == "Spur" for f in features)
    assert len(client.get("/api/walkways").json()["features"]) == 3


def test_bend_preview_does_not_persist_but_commit_does(client: TestClient) -> None:
    created = _create(client, at(0, 0), at(40, 0))
    walkway_id = created["properties"]["_id"]
    body = {"segmentIndex": 0, "bendPoint": at(20, 10)}

    preview = client.post(f"/api/walkways/{walkway_id}/bend/preview", json=body)
    assert preview.status_code == 200
    assert len(preview.json()["coordinates"]) > 2
    stored = client.get("/api/walkways").json()["features"][0]
    assert stored["properties"]["curved"] is False

    bent = client.post(f"/api/walkways/{walkway_id}/bend", json=body).json()
    assert bent["properties"]["curved"] is True
    assert bent["properties"]["control"][1] == pytest.approx(body["bendPoint"])
    assert bent["geometry"]["coordinates"][0] == pytest.approx(at(0, 0))
    assert bent["geometry"]["coordinates"][-1] == pytest.approx(at(40, 0))

    straight = client.post(f"/api/walkways/{walkway_id}/uncurve").json()
    assert straight["properties"]["curved"] is False
    assert straight["geometry"]["coordinates"] == straight["properties"]["control"]
    assert len(straight["geometry"]["coordinates"]) == 3


def test_bend_errors(client: TestClient) -> None:
    created = _create(client, at(0, 0), at(40, 0))
    walkway_id = created["properties"]["_id"]
    bad_index = client.post(f"/api/walkways/{walkway_id}/bend", json={"segmentIndex": 3, "bendPoint": at(20, 10)})
    assert bad_index.status_code == 400
    bad_point = client.post(f"/api/walkways/{walkway_id}/bend", json={"segmentIndex": 0, "bendPoint": [400, 0]})
    assert bad_point.status_code == 422
    missing = client.post("/api/walkways/nope/bend", json={"segmentIndex": 0, "bendPoint": at(20, 10)})
    assert missing.status_code == 404


def test_split_replaces_walkway_with_two_new_ones(client: TestClient) -> None:
    created = _create(client, at(0, 0), at(40, 0), name="Quad")
    walkway_id = created["properties"]["_id"]

    resp = client.post(f"/api/walkways/{walkway_id}/split", json={"point": at(10, 2)})

    assert resp.status_code == 200
    data = resp.json()
    assert data["deletedId"] == walkway_id
    new_ids = {f["properties"]["_id"] for f in data["features"]}
    assert len(new_ids) == 2 and walkway_id not in new_ids
    stored = client.get("/api/walkways").json()["features"]
    assert {f["properties"]["_id"] for f in stored} == new_ids
    assert all(f["properties"]["name"] == "Quad" for f in stored)


def test_split_at_endpoint_is_rejected(client: TestClient) -> None:
    created = _create(client, at(0, 0), at(40, 0))
    walkway_id = created["properties"]["_id"]
    resp = client.post(f"/api/walkways/{walkway_id}/split", json={"point": at(-5, 0)})
    assert resp.status_code == 400
    assert len(client.get("/api/walkways").json()["features"]) == 1


def test_rectangle_and_polygon_selection_policies(client: TestClient) -> None:
    forty = _create(client, at(0, 0), at(100, 0))["properties"]["_id"]
    inside = _create(client, at(0, 5), at(30, 5))["properties"]["_id"]
    west, south = at(-10, -10)
    east, north = at(40, 10)

    rect = client.post("/api/walkways/select/rectangle", json={"bounds": [west, south, east, north]}).json()
    assert set(rect["ids"]) == {inside}
    loose = client.post(
        "/api/walkways/select/rectangle", json={"bounds": [west, south, east, north], "ratio": 0.3}
    ).json()
    assert set(loose["ids"]) == {forty, inside}

    polygon = [[west, south], [east, south], [east, north], [west, north]]
    lasso = client.post("/api/walkways/select/polygon", json={"polygon": polygon}).json()
    assert lasso["ids"] == [inside]


def test_bulk_delete_by_rectangle_and_polygon(client: TestClient) -> None:
    keep = _create(client, at(0, 0), at(100, 0))["properties"]["_id"]
    drop = _create(client, at(0, 5), at(30, 5))["properties"]["_id"]
    west, south = at(-10, -10)
    east, north = at(40, 10)

    resp = client.post("/api/walkways/delete/rectangle", json={"bounds": [west, south, east, north]})
    assert resp.json() == {"deletedIds": [drop]}
    remaining = [f["properties"]["_id"] for f in client.get("/api/walkways").json()["features"]]
    assert remaining == [keep]

    polygon = [[west, south], [east, south], [east, north], [west, north]]
    resp = client.post("/api/walkways/delete/polygon", json={"polygon": polygon})
    assert resp.json() == {"deletedIds": []}


def test_normalize_splits_legacy_polylines(client: TestClient) -> None:
    legacy = _create(client, at(0, 0), at(20, 0), at(20, 20), name="Old path")["properties"]["_id"]
    single = _create(client, at(50, 50), at(60, 50))["properties"]["_id"]

    data = client.post("/api/walkways/normalize").json()

    assert data["deletedIds"] == [legacy]
    assert [f["properties"]["segmentIndex"] for f in data["created"]] == [0, 1]
    ids = {f["properties"]["_id"] for f in client.get("/api/walkways").json()["features"]}
    assert single in ids and legacy not in ids
    assert len(ids) == 3


def test_geometry_update_snaps_to_other_walkways(client: TestClient) -> None:
    other = _create(client, at(0, 0), at(0, 50))
    edited = _create(client, at(10, 0), at(40, 0))
    walkway_id = edited["properties"]["_id"]

    resp = client.put(
        f"/api/walkways/{walkway_id}/geometry",
        json={"coordinates": [at(1, 1), at(40, 0)]},
    )

    assert resp.status_code == 200
    coords = resp.json()["geometry"]["coordinates"]
    assert coords[0] == pytest.approx(other["geometry"]["coordinates"][0])
    assert resp.json()["properties"]["control"] == coords


def test_store_failure_maps_to_503(client: TestClient, monkeypatch) -> None:
    from campusnav.api import routes_walkways

    def broken():
        raise StoreError("Failed to list walkways")

    monkeypatch.setattr(routes_walkways, "list_walkways", broken)
    assert client.get("/api/walkways").status_code == 503


def test_draw_ignores_entrances_with_broken_geometry(client: TestClient) -> None:
    with get_session() as session:
        session.add(
            FeatureRecord(id="old", kind="entrance", geometry={"type": "Point", "coordinates": []}, properties={"type": "entrance", "name": "E1"})
        )
        session.commit()

    resp = client.post("/api/walkways/draw", json={"coordinates": [at(0, 0), at(30, 0)]})

    assert resp.status_code == 201
    assert len(resp.json()["features"]) == 1
