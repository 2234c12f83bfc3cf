"""
Routes for buildings, entrances, rooms and other campus features.

Features are not part of the routing graph; they are the things a
visitor searches for and the anchors an editor names entrances after.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from .models import (
    DeleteResponse,
    EntranceNameRequest,
    EntranceNameResponse,
    FeatureCollection,
    GeoJSONFeature,
)
from ..services.features import SEARCH_LIMIT, auto_name_entrance, search_features
from ..services.validation import require_coordinate, validate_feature
from ..services.walkway_store import delete_feature, list_features, save_feature
from ..services.walkways import Feature

router = APIRouter()


def _to_feature(feature: Feature) -> GeoJSONFeature:
    return GeoJSONFeature(**feature.to_feature())


@router.get("/features", response_model=FeatureCollection)
def get_features(kind: Optional[str] = Query(default=None, description="Only return this feature type")) -> FeatureCollection:
    return FeatureCollection(features=[_to_feature(f) for f in list_features(kind)])


@router.post("/features", response_model=GeoJSONFeature)
def upsert_feature(body: GeoJSONFeature) -> GeoJSONFeature:
    """Insert or replace a feature.

    A new entrance saved without a name gets the auto-suggested one,
    along with the building and compass direction it was derived from.
    """
    feature = validate_feature(Feature.from_feature(body.model_dump()))
    if feature.kind == "entrance" and not feature.name and feature.geometry_type == "Point":
        suggestion = auto_name_entrance(feature.geometry["coordinates"], list_features())
        feature.properties["name"] = suggestion.suggested_name
        feature.properties["direction"] = suggestion.direction
        if suggestion.building_id:
            feature.properties.setdefault("buildingId", suggestion.building_id)
    return _to_feature(save_feature(feature))


@router.delete("/features/{feature_id}", response_model=DeleteResponse)
def remove_feature(feature_id: str) -> DeleteResponse:
    if not delete_feature(feature_id):
        raise HTTPException(status_code=404, detail="Feature not found")
    return DeleteResponse(deletedIds=[feature_id])


@router.post("/features/entrance-name", response_model=EntranceNameResponse)
def suggest_entrance_name(body: EntranceNameRequest) -> EntranceNameResponse:
    """Suggest a ``PREFIX-DIRn`` name for an entrance at ``point``."""
    suggestion = auto_name_entrance(require_coordinate(body.point), list_features())
    return EntranceNameResponse(
        suggestedName=suggestion.suggested_name,
        buildingId=suggestion.building_id,
        direction=suggestion.direction,
    )


@router.get("/features/search", response_model=FeatureCollection)
def search(
    q: str = Query(..., description="Case-insensitive search text"),
    limit: int = Query(default=SEARCH_LIMIT, ge=1, le=50),
) -> FeatureCollection:
    matches = search_features(list_features(), q, limit)
    return FeatureCollection(features=[_to_feature(f) for f in matches])
