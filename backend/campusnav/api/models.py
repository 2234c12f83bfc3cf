"""
Pydantic data models for the campus walkway API.

Walkways and features travel as GeoJSON ``Feature`` objects whose
stable identifier sits in ``properties._id``.  The remaining models
describe the bodies of the editing, selection and routing endpoints.
Field names follow the camelCase used by the map frontend.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

# A [longitude, latitude] pair.
Position = List[float]


class GeoJSONFeature(BaseModel):
    """A GeoJSON feature as stored and returned by the API."""

    type: Literal["Feature"] = "Feature"
    geometry: Dict[str, Any] = Field(..., description="GeoJSON geometry object")
    properties: Dict[str, Any] = Field(default_factory=dict, description="Feature properties, including _id")


class FeatureCollection(BaseModel):
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: List[GeoJSONFeature] = Field(default_factory=list)


class DrawWalkwayRequest(BaseModel):
    """A polyline drawn on the map, to be stored as one or more walkways."""

    coordinates: List[Position] = Field(..., min_length=2, description="Drawn vertices")
    name: Optional[str] = Field(default=None, description="Name or code applied to every segment")
    snap: bool = Field(default=True, description="Magnetize vertices onto the existing network")


class GeometryUpdateRequest(BaseModel):
    """New vertices for an existing walkway after a vertex edit."""

    coordinates: List[Position] = Field(..., min_length=2)
    snap: bool = Field(default=True, description="Snap vertices to nearby walkway nodes")


class BendRequest(BaseModel):
    segmentIndex: int = Field(..., ge=0, description="Control segment to bend")
    bendPoint: Position = Field(..., min_length=2, max_length=2, description="Point the curve passes through")


class BendPreviewResponse(BaseModel):
    walkwayId: str
    segmentIndex: int
    coordinates: List[Position]


class SplitRequest(BaseModel):
    point: Position = Field(..., min_length=2, max_length=2, description="Where to cut the walkway")
    segmentIndex: Optional[int] = Field(
        default=None, ge=0, description="Geometry segment to cut; closest segment when omitted"
    )


class SplitResponse(BaseModel):
    deletedId: str
    features: List[GeoJSONFeature]


class RectangleRequest(BaseModel):
    bounds: List[float] = Field(..., min_length=4, max_length=4, description="west, south, east, north")
    ratio: Optional[float] = Field(
        default=None, ge=0.0, le=1.0, description="Minimum inside fraction; server default when omitted"
    )


class PolygonRequest(BaseModel):
    polygon: List[Position] = Field(..., min_length=3, description="Lasso ring, open or closed")


class SelectionResponse(BaseModel):
    ids: List[str]


class DeleteResponse(BaseModel):
    deletedIds: List[str]


class NormalizeResponse(BaseModel):
    created: List[GeoJSONFeature]
    deletedIds: List[str]


class EntranceNameRequest(BaseModel):
    point: Position = Field(..., min_length=2, max_length=2)


class EntranceNameResponse(BaseModel):
    suggestedName: str
    buildingId: Optional[str] = None
    direction: str


class RouteRequest(BaseModel):
    """Route between two points, or two features found by search."""

    start: Optional[Position] = Field(default=None, min_length=2, max_length=2)
    end: Optional[Position] = Field(default=None, min_length=2, max_length=2)
    startQuery: Optional[str] = Field(default=None, description="Search text resolved to a start feature")
    endQuery: Optional[str] = Field(default=None, description="Search text resolved to an end feature")
    maxSnapMeters: Optional[float] = Field(default=None, gt=0.0)

    @model_validator(mode="after")
    def _check_endpoints(self) -> "RouteRequest":
        if self.start is None and not self.startQuery:
            raise ValueError("either start or startQuery is required")
        if self.end is None and not self.endQuery:
            raise ValueError("either end or endQuery is required")
        return self


class RouteResponse(BaseModel):
    status: str = Field(..., description="ok, no_walkways, too_far or no_path")
    found: bool
    distance: Optional[float] = Field(default=None, description="Length in planar degree units")
    distanceMeters: Optional[float] = None
    coordinates: List[Position] = Field(default_factory=list)
    startSnapMeters: Optional[float] = None
    endSnapMeters: Optional[float] = None
