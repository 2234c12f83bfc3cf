"""
Non-routable campus features: buildings, entrances, rooms.

The helpers in this module support two workflows.  When an editor
drops a new entrance, :func:`auto_name_entrance` proposes a name such
as ``HU-N3`` from the building it belongs to, the compass side it sits
on and the indices already taken.  When a visitor types a destination,
:func:`search_features` finds candidates and
:func:`resolve_feature_coordinate` turns the chosen feature into the
point the route planner should aim for.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .geometry import (
    Coordinate,
    as_coordinate,
    bearing,
    point_in_polygon,
    point_to_polyline_distance,
    polygon_centroid,
)
from .validation import clean_coordinates, is_valid_coordinate
from .walkways import Feature

SEARCH_LIMIT = 8

_PREFIX_RE = re.compile(r"^([A-Z0-9]+)-", re.IGNORECASE)
_DIRECTION_RE = re.compile(r"-([NSEW]{1,2})\d*$", re.IGNORECASE)
_INDEX_RE = re.compile(r"(\d+)$")

# Upper bearing limits (exclusive) of each compass sector, clockwise
# from north.  Anything from 337.5 upwards wraps back to "N".
_SECTORS = (
    (22.5, "N"),
    (67.5, "NE"),
    (112.5, "E"),
    (157.5, "SE"),
    (202.5, "S"),
    (247.5, "SW"),
    (292.5, "W"),
    (337.5, "NW"),
)


@dataclass
class EntranceSuggestion:
    suggested_name: str
    building_id: Optional[str]
    direction: str


def outer_ring(feature: Feature) -> List[Coordinate]:
    """Exterior ring of a ``Polygon`` feature.

    Empty for other geometry types and for rings with fewer than three
    valid points.
    """
    if feature.geometry_type != "Polygon":
        return []
    rings = feature.geometry.get("coordinates")
    if not isinstance(rings, (list, tuple)) or not rings or not isinstance(rings[0], (list, tuple)):
        return []
    ring = clean_coordinates(rings[0])
    return ring if len(ring) >= 3 else []


def point_of(feature: Feature) -> Optional[Coordinate]:
    """The feature's point, or None for other or malformed geometry."""
    if feature.geometry_type != "Point":
        return None
    coords = feature.geometry.get("coordinates")
    return as_coordinate(coords) if is_valid_coordinate(coords) else None


def buildings(features: Iterable[Feature]) -> List[Feature]:
    return [f for f in features if f.kind == "building" and f.geometry_type == "Polygon"]


def find_building_for_point(point: Sequence[float], candidates: Sequence[Feature]) -> Optional[Feature]:
    """The building containing ``point``, else the one with the closest outline."""
    for building in candidates:
        ring = outer_ring(building)
        if ring and point_in_polygon(point, ring):
            return building

    best: Optional[Feature] = None
    best_d = 0.0
    for building in candidates:
        ring = outer_ring(building)
        if not ring:
            continue
        closed = ring if ring[0] == ring[-1] else ring + [ring[0]]
        d = point_to_polyline_distance(point, closed)
        if best is None or d < best_d:
            best, best_d = building, d
    return best


def direction_from(building: Feature, point: Sequence[float]) -> str:
    """8-way compass direction from the building's centroid to ``point``."""
    centroid = polygon_centroid(outer_ring(building))
    if centroid is None:
        return "N"
    b = bearing(centroid, point)
    for limit, label in _SECTORS:
        if b < limit:
            return label
    return "N"


def acronym(name: str) -> str:
    """Short uppercase code for a building name.

    >>> acronym("Hughes")
    'HU'
    >>> acronym("Science and Engineering Hall")
    'SAE'
    """
    words = str(name).split()
    if len(words) <= 1:
        w = words[0].upper() if words else ""
        return (w[0:1] or "B") + (w[1:2] or "L")
    return "".join(w[0] for w in words).upper()[:3]


def prefix_from_name(name: str) -> Optional[str]:
    m = _PREFIX_RE.match(name or "")
    return m.group(1).upper() if m else None


def direction_from_name(name: str) -> Optional[str]:
    m = _DIRECTION_RE.search(name or "")
    return m.group(1).upper() if m else None


def index_from_name(name: str) -> Optional[int]:
    m = _INDEX_RE.search(name or "")
    return int(m.group(1)) if m else None


def next_entrance_index(
    prefix: str,
    direction: str,
    building_id: Optional[str],
    features: Iterable[Feature],
) -> int:
    """Smallest positive index not yet used for ``prefix`` and ``direction``.

    Only entrances of ``building_id`` are considered when it is given.
    An entrance's direction comes from its ``direction`` property, or is
    read back from its name.
    """
    used = set()
    for f in features:
        if f.kind != "entrance":
            continue
        if building_id and f.properties.get("buildingId") != building_id:
            continue
        name = f.name or ""
        direction_of = f.properties.get("direction") or direction_from_name(name)
        if direction_of != direction or prefix_from_name(name) != prefix:
            continue
        index = index_from_name(name)
        if index:
            used.add(index)
    index = 1
    while index in used:
        index += 1
    return index


def auto_name_entrance(point: Sequence[float], features: Sequence[Feature]) -> EntranceSuggestion:
    """Suggest a ``PREFIX-DIRn`` name for an entrance placed at ``point``.

    The prefix is the building's ``prefix`` property, otherwise an
    acronym of its name, otherwise ``BLD`` when no building is found.
    """
    building = find_building_for_point(point, buildings(features))
    building_id = building.id if building else None
    if building is not None and building.properties.get("prefix"):
        prefix = str(building.properties["prefix"]).upper()
    elif building is not None and building.name:
        prefix = acronym(building.name)
    else:
        prefix = "BLD"
    direction = direction_from(building, point) if building is not None else "N"
    index = next_entrance_index(prefix, direction, building_id, features)
    return EntranceSuggestion(f"{prefix}-{direction}{index}", building_id, direction)


def search_key(feature: Feature) -> str:
    props = feature.properties
    parts = [props.get("name"), props.get("number"), props.get("buildingId"), props.get("type")]
    return " ".join(str(p) for p in parts if p)


def search_features(features: Iterable[Feature], query: str, limit: int = SEARCH_LIMIT) -> List[Feature]:
    """Case-insensitive substring search over name, number, building and type."""
    if not query or not query.strip():
        return []
    q = query.strip().lower()
    matches: List[Feature] = []
    for feature in features:
        if q in search_key(feature).lower():
            matches.append(feature)
            if len(matches) >= limit:
                break
    return matches


def _first_entrance(features: Sequence[Feature], building_id: Optional[str]) -> Optional[Feature]:
    if not building_id:
        return None
    for f in features:
        if f.kind == "entrance" and f.properties.get("buildingId") == building_id and point_of(f):
            return f
    return None


def resolve_feature_coordinate(feature: Feature, features: Sequence[Feature]) -> Optional[Coordinate]:
    """Point a route to or from ``feature`` should use.

    Entrances resolve to themselves, rooms to the first entrance of
    their building, buildings to their first entrance or else their
    centroid.  Anything else falls back to its own point geometry.
    """
    kind = feature.kind
    if kind == "entrance":
        return point_of(feature)
    if kind == "room":
        entrance = _first_entrance(features, feature.properties.get("buildingId"))
        if entrance is not None:
            return point_of(entrance)
    if kind == "building":
        entrance = _first_entrance(features, feature.id)
        if entrance is not None:
            return point_of(entrance)
        ring = outer_ring(feature)
        if ring:
            return polygon_centroid(ring)
    return point_of(feature)
