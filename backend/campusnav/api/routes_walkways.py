"""
Routes for creating, editing and selecting walkways.

Every endpoint works on the persisted walkway set: edits are computed
by the pure functions in :mod:`services.editing` and
:mod:`services.drawing` and then written back through the store.
Validation failures surface as 422 and store failures as 503 via the
application's exception handlers; unknown walkway ids give 404.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, HTTPException

from .models import (
    BendPreviewResponse,
    BendRequest,
    DeleteResponse,
    DrawWalkwayRequest,
    FeatureCollection,
    GeoJSONFeature,
    GeometryUpdateRequest,
    NormalizeResponse,
    PolygonRequest,
    RectangleRequest,
    SelectionResponse,
    SplitRequest,
    SplitResponse,
)
from ..services.drawing import (
    build_node_index,
    collect_walkway_nodes,
    magnetize_polyline,
    normalize_walkways,
    segment_drawn_line,
    snap_edited_polyline,
)
from ..services.editing import BendSession, select_by_polygon, select_by_rectangle, split_walkway, uncurve
from ..services.settings import SELECT_RATIO
from ..services.validation import WalkwayValidationError, clean_coordinates
from ..services.walkway_store import (
    delete_walkway,
    get_walkway,
    list_features,
    list_walkways,
    replace_walkways,
    save_walkway,
)
from ..services.walkways import Walkway, dump_coordinates

router = APIRouter()


def _to_feature(walkway: Walkway) -> GeoJSONFeature:
    return GeoJSONFeature(**walkway.to_feature())


def _collection(walkways: List[Walkway]) -> FeatureCollection:
    return FeatureCollection(features=[_to_feature(w) for w in walkways])


def _require_walkway(walkway_id: str) -> Walkway:
    walkway = get_walkway(walkway_id)
    if walkway is None:
        raise HTTPException(status_code=404, detail="Walkway not found")
    return walkway


@router.get("/walkways", response_model=FeatureCollection)
def get_walkways() -> FeatureCollection:
    """Return all stored walkways as a GeoJSON FeatureCollection."""
    return _collection(list_walkways())


@router.post("/walkways", response_model=GeoJSONFeature)
def upsert_walkway(body: GeoJSONFeature) -> GeoJSONFeature:
    """Insert a walkway, or replace it when ``properties._id`` is present."""
    if body.geometry.get("type") != "LineString":
        raise WalkwayValidationError("Walkways must have LineString geometry")
    walkway = Walkway.from_feature(body.model_dump())
    return _to_feature(save_walkway(walkway))


@router.delete("/walkways/{walkway_id}", response_model=DeleteResponse)
def remove_walkway(walkway_id: str) -> DeleteResponse:
    if not delete_walkway(walkway_id):
        raise HTTPException(status_code=404, detail="Walkway not found")
    return DeleteResponse(deletedIds=[walkway_id])


@router.post("/walkways/draw", response_model=FeatureCollection, status_code=201)
def draw_walkway(body: DrawWalkwayRequest) -> FeatureCollection:
    """Store a freshly drawn polyline.

    The line is magnetized onto the existing network (unless ``snap`` is
    false) and decomposed into two-point walkways sharing a group marker.
    """
    coords = clean_coordinates(body.coordinates)
    if body.snap:
        walkways = list_walkways()
        nodes = build_node_index(walkways, list_features())
        coords = magnetize_polyline(coords, walkways, nodes)
    segments = segment_drawn_line(coords, name=body.name)
    if not segments:
        raise WalkwayValidationError("A walkway needs at least two distinct valid points")
    return _collection(replace_walkways([], segments))


@router.post("/walkways/normalize", response_model=NormalizeResponse)
def normalize() -> NormalizeResponse:
    """Split every straight multi-vertex walkway into two-point segments."""
    plan = normalize_walkways(list_walkways())
    created = replace_walkways(plan.deleted_ids, plan.created) if plan.created else []
    return NormalizeResponse(created=[_to_feature(w) for w in created], deletedIds=plan.deleted_ids)


@router.put("/walkways/{walkway_id}/geometry", response_model=GeoJSONFeature)
def update_geometry(walkway_id: str, body: GeometryUpdateRequest) -> GeoJSONFeature:
    """Replace a walkway's vertices after a vertex edit.

    Edited walkways become straight: the new vertices are both the
    geometry and the control polygon.
    """
    walkway = _require_walkway(walkway_id)
    coords = clean_coordinates(body.coordinates)
    if body.snap:
        others = [w for w in list_walkways() if w.id != walkway_id]
        coords = snap_edited_polyline(coords, collect_walkway_nodes(others))
    updated = walkway.copy(geometry=coords, control=list(coords), curved=False)
    return _to_feature(save_walkway(updated))


@router.post("/walkways/{walkway_id}/bend/preview", response_model=BendPreviewResponse)
def preview_bend(walkway_id: str, body: BendRequest) -> BendPreviewResponse:
    """Geometry the walkway would take for a bend, without saving it."""
    walkway = _require_walkway(walkway_id)
    try:
        session = BendSession(walkway, body.segmentIndex)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    coords = session.preview(body.bendPoint)
    session.cancel()
    return BendPreviewResponse(
        walkwayId=walkway_id,
        segmentIndex=body.segmentIndex,
        coordinates=dump_coordinates(coords),
    )


@router.post("/walkways/{walkway_id}/bend", response_model=GeoJSONFeature)
def commit_bend(walkway_id: str, body: BendRequest) -> GeoJSONFeature:
    """Bend one control segment through ``bendPoint`` and save the result."""
    walkway = _require_walkway(walkway_id)
    try:
        session = BendSession(walkway, body.segmentIndex)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _to_feature(session.commit(body.bendPoint, save_walkway))


@router.post("/walkways/{walkway_id}/uncurve", response_model=GeoJSONFeature)
def uncurve_walkway(walkway_id: str) -> GeoJSONFeature:
    walkway = _require_walkway(walkway_id)
    return _to_feature(save_walkway(uncurve(walkway)))


@router.post("/walkways/{walkway_id}/split", response_model=SplitResponse)
def split(walkway_id: str, body: SplitRequest) -> SplitResponse:
    """Replace a walkway by the two halves on either side of ``point``."""
    walkway = _require_walkway(walkway_id)
    try:
        halves = split_walkway(walkway, body.point, body.segmentIndex)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    if halves is None:
        raise HTTPException(status_code=400, detail="Split point coincides with an existing vertex")
    saved = replace_walkways([walkway_id], halves)
    return SplitResponse(deletedId=walkway_id, features=[_to_feature(w) for w in saved])


@router.post("/walkways/select/rectangle", response_model=SelectionResponse)
def select_rectangle(body: RectangleRequest) -> SelectionResponse:
    ratio = SELECT_RATIO if body.ratio is None else body.ratio
    return SelectionResponse(ids=select_by_rectangle(list_walkways(), body.bounds, ratio))


@router.post("/walkways/select/polygon", response_model=SelectionResponse)
def select_polygon(body: PolygonRequest) -> SelectionResponse:
    return SelectionResponse(ids=select_by_polygon(list_walkways(), body.polygon))


@router.post("/walkways/delete/rectangle", response_model=DeleteResponse)
def delete_rectangle(body: RectangleRequest) -> DeleteResponse:
    """Delete every walkway a rectangle selection would pick."""
    ratio = SELECT_RATIO if body.ratio is None else body.ratio
    ids = select_by_rectangle(list_walkways(), body.bounds, ratio)
    if ids:
        replace_walkways(ids, [])
    return DeleteResponse(deletedIds=ids)


@router.post("/walkways/delete/polygon", response_model=DeleteResponse)
def delete_polygon(body: PolygonRequest) -> DeleteResponse:
    """Delete every walkway lying entirely inside the lasso polygon."""
    ids = select_by_polygon(list_walkways(), body.polygon)
    if ids:
        replace_walkways(ids, [])
    return DeleteResponse(deletedIds=ids)
