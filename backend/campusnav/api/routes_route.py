"""
Route planning endpoint.

A route is computed from scratch on every request over the walkways
currently in the store.  Either end may be given as a coordinate or as
search text, in which case the best matching feature is resolved to a
point first (an entrance, a room's building entrance, or a building).
"No route" outcomes are normal 200 responses carrying a status.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException

from .models import Position, RouteRequest, RouteResponse
from ..services.features import resolve_feature_coordinate, search_features
from ..services.routing import plan_route
from ..services.settings import MAX_SNAP_METERS
from ..services.walkway_store import list_features, list_walkways
from ..services.walkways import Feature, dump_coordinates

logger = logging.getLogger(__name__)

router = APIRouter()


def _resolve_endpoint(point: Optional[Position], query: Optional[str], features: List[Feature]) -> Position:
    if point is not None:
        return point
    matches = search_features(features, query or "", limit=1)
    if not matches:
        raise HTTPException(status_code=404, detail=f"No feature matches {query!r}")
    coord = resolve_feature_coordinate(matches[0], features)
    if coord is None:
        raise HTTPException(status_code=404, detail=f"Feature {matches[0].name!r} has no usable location")
    return [coord.x, coord.y]


@router.post("/route", response_model=RouteResponse)
def route(body: RouteRequest) -> RouteResponse:
    """Shortest walk between two points over the current walkway network."""
    features = list_features() if (body.startQuery or body.endQuery) else []
    start = _resolve_endpoint(body.start, body.startQuery, features)
    end = _resolve_endpoint(body.end, body.endQuery, features)
    max_snap = MAX_SNAP_METERS if body.maxSnapMeters is None else body.maxSnapMeters

    result = plan_route(list_walkways(), start, end, max_snap_meters=max_snap)
    logger.info("route %s -> %s: %s", start, end, result.status)
    return RouteResponse(
        status=result.status,
        found=result.found,
        distance=result.distance,
        distanceMeters=result.distance_meters,
        coordinates=dump_coordinates(result.coordinates),
        startSnapMeters=result.start_snap_meters,
        endSnapMeters=result.end_snap_meters,
    )
