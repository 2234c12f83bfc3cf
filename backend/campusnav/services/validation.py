"""
Input validation in front of the geometry kernel.

Walkway and feature records arrive from the store and from API clients
and may contain non-finite values, coordinates outside the world
extents or too few points to form a line or polygon.  Single records
are rejected with :class:`WalkwayValidationError`; bulk loads drop the
offending record and carry on so one bad walkway cannot take routing
down.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, List, Sequence

from .geometry import Coordinate
from .walkways import Feature, Walkway

logger = logging.getLogger(__name__)

MAX_LONGITUDE = 180.0
MAX_LATITUDE = 90.0


class WalkwayValidationError(ValueError):
    """Raised when a coordinate or walkway cannot enter the kernel."""


def is_valid_coordinate(value: Sequence[float]) -> bool:
    try:
        x = float(value[0])
        y = float(value[1])
    except (TypeError, ValueError, IndexError):
        return False
    if not (math.isfinite(x) and math.isfinite(y)):
        return False
    return abs(x) <= MAX_LONGITUDE and abs(y) <= MAX_LATITUDE


def require_coordinate(value: Sequence[float]) -> Coordinate:
    """Return ``value`` as a :class:`Coordinate` or raise.

    Raises:
        WalkwayValidationError: If the value is non-finite or outside
            the world extents.
    """
    if not is_valid_coordinate(value):
        raise WalkwayValidationError(f"Invalid coordinate: {value!r}")
    return Coordinate(float(value[0]), float(value[1]))


def clean_coordinates(coords: Iterable[Sequence[float]]) -> List[Coordinate]:
    """Drop invalid points and consecutive exact duplicates."""
    cleaned: List[Coordinate] = []
    for c in coords:
        if not is_valid_coordinate(c):
            continue
        point = Coordinate(float(c[0]), float(c[1]))
        if cleaned and cleaned[-1] == point:
            continue
        cleaned.append(point)
    return cleaned


def validate_walkway(walkway: Walkway) -> Walkway:
    """Return a cleaned copy of ``walkway``.

    Invalid points are removed from both the geometry and the control
    polygon.  A straight walkway always leaves with ``control`` equal to
    ``geometry``; a curved walkway whose control polygon did not survive
    cleaning is demoted to straight.

    Raises:
        WalkwayValidationError: If fewer than two distinct points remain.
    """
    geometry = clean_coordinates(walkway.geometry)
    if len(geometry) < 2:
        raise WalkwayValidationError(
            f"Walkway {walkway.id or '<new>'} needs at least two distinct valid points"
        )
    curved = walkway.curved
    control = clean_coordinates(walkway.control) if curved else []
    if len(control) < 2:
        control = list(geometry)
        curved = False
    return walkway.copy(geometry=geometry, control=control, curved=curved)


def sanitize_walkways(walkways: Iterable[Walkway]) -> List[Walkway]:
    """Validate every walkway, dropping (and logging) the invalid ones."""
    result: List[Walkway] = []
    for walkway in walkways:
        try:
            result.append(validate_walkway(walkway))
        except WalkwayValidationError as exc:
            logger.warning("Dropping walkway %s: %s", walkway.id, exc)
    return result


def _polygon_ring(ring: Any) -> List[List[float]]:
    cleaned = clean_coordinates(ring if isinstance(ring, (list, tuple)) else [])
    if len(set(cleaned)) < 3:
        raise WalkwayValidationError("Polygon rings need at least three distinct valid points")
    return [[c.x, c.y] for c in cleaned]


def validate_feature(feature: Feature) -> Feature:
    """Return a copy of ``feature`` with checked ``Point``/``Polygon`` coordinates.

    Other geometry types are passed through untouched.

    Raises:
        WalkwayValidationError: If a point is invalid or a polygon has no
            usable ring.
    """
    geometry = dict(feature.geometry)
    coords = geometry.get("coordinates")
    if feature.geometry_type == "Point":
        point = require_coordinate(coords)
        geometry["coordinates"] = [point.x, point.y]
    elif feature.geometry_type == "Polygon":
        if not isinstance(coords, (list, tuple)) or not coords:
            raise WalkwayValidationError(f"Feature {feature.id or '<new>'} has no polygon rings")
        geometry["coordinates"] = [_polygon_ring(ring) for ring in coords]
    return Feature(geometry=geometry, properties=dict(feature.properties), id=feature.id)
