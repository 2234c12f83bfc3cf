"""
Domain records for walkways and campus features.

Both kinds of record are persisted as GeoJSON ``Feature`` objects with
the stable identifier stored in ``properties._id``.  The dataclasses in
this module are the in-memory view used by the routing and editing
code; :meth:`Walkway.from_feature` / :meth:`Walkway.to_feature` convert
between the two.

``from_feature`` performs only structural conversion.  Coordinates that
cannot be read as numbers become ``NaN`` pairs so that
:mod:`validation` can drop them together with other invalid points.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence

from .geometry import Coordinate

# Property keys that map onto Walkway attributes; everything else is
# carried through untouched in ``Walkway.extra``.
_WALKWAY_KEYS = {"_id", "name", "type", "curved", "control", "segmented", "segmentIndex", "group"}


def new_record_id() -> str:
    """Generate a fresh identifier for a walkway, feature or group."""
    return uuid.uuid4().hex


def parse_coordinates(raw: Any) -> List[Coordinate]:
    """Read a GeoJSON coordinate array into :class:`Coordinate` values."""
    coords: List[Coordinate] = []
    if not isinstance(raw, (list, tuple)):
        return coords
    for item in raw:
        try:
            coords.append(Coordinate(float(item[0]), float(item[1])))
        except (TypeError, ValueError, IndexError):
            coords.append(Coordinate(math.nan, math.nan))
    return coords


def dump_coordinates(coords: Sequence[Coordinate]) -> List[List[float]]:
    return [[c[0], c[1]] for c in coords]


@dataclass
class Walkway:
    """A persisted walkway segment.

    Attributes:
        geometry: Rendered polyline (possibly a sampled curve).
        control: Straight-line skeleton the curve was built from.  Equal
            to ``geometry`` whenever ``curved`` is False.
        id: Stable identifier; ``None`` until the store assigns one.
        name: Optional display name or code.
        curved: Whether ``geometry`` is a resampled curve.
        segment_index: Position of this segment within the drawn line it
            was decomposed from.
        group: Marker shared by all segments decomposed from one line.
        kind: Feature type, always ``"walkway"`` for routable records.
        segmented: Whether the record is a single editable segment.
        extra: Any other properties, preserved on round trips.
    """

    geometry: List[Coordinate]
    control: List[Coordinate] = field(default_factory=list)
    id: Optional[str] = None
    name: Optional[str] = None
    curved: bool = False
    segment_index: Optional[int] = None
    group: Optional[str] = None
    kind: str = "walkway"
    segmented: bool = True
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.geometry = [Coordinate(c[0], c[1]) for c in self.geometry]
        if self.control:
            self.control = [Coordinate(c[0], c[1]) for c in self.control]
        else:
            self.control = list(self.geometry)

    def copy(self, **changes: Any) -> "Walkway":
        """Return a shallow copy with fresh coordinate lists."""
        changes.setdefault("geometry", list(self.geometry))
        changes.setdefault("control", list(self.control))
        changes.setdefault("extra", dict(self.extra))
        return replace(self, **changes)

    def segments(self) -> List[tuple]:
        """Consecutive ``(a, b)`` pairs of the rendered geometry."""
        return list(zip(self.geometry, self.geometry[1:]))

    @classmethod
    def from_feature(cls, feature: Dict[str, Any]) -> "Walkway":
        geometry = feature.get("geometry") or {}
        props = dict(feature.get("properties") or {})
        segment_index = props.get("segmentIndex")
        return cls(
            geometry=parse_coordinates(geometry.get("coordinates")),
            control=parse_coordinates(props.get("control")),
            id=props.get("_id"),
            name=props.get("name"),
            curved=bool(props.get("curved", False)),
            segment_index=int(segment_index) if segment_index is not None else None,
            group=props.get("group"),
            kind=props.get("type") or "walkway",
            segmented=bool(props.get("segmented", True)),
            extra={k: v for k, v in props.items() if k not in _WALKWAY_KEYS},
        )

    def to_feature(self) -> Dict[str, Any]:
        props: Dict[str, Any] = dict(self.extra)
        props.update(
            {
                "type": self.kind,
                "name": self.name,
                "curved": self.curved,
                "control": dump_coordinates(self.control),
                "segmented": self.segmented,
            }
        )
        if self.segment_index is not None:
            props["segmentIndex"] = self.segment_index
        if self.group is not None:
            props["group"] = self.group
        if self.id is not None:
            props["_id"] = self.id
        return {
            "type": "Feature",
            "geometry": {"type": "LineString", "coordinates": dump_coordinates(self.geometry)},
            "properties": props,
        }


@dataclass
class Feature:
    """A non-routable campus feature (building, entrance, room, ...)."""

    geometry: Dict[str, Any]
    properties: Dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None

    @property
    def kind(self) -> Optional[str]:
        return self.properties.get("type")

    @property
    def name(self) -> Optional[str]:
        return self.properties.get("name")

    @property
    def geometry_type(self) -> Optional[str]:
        return self.geometry.get("type")

    @classmethod
    def from_feature(cls, feature: Dict[str, Any]) -> "Feature":
        props = dict(feature.get("properties") or {})
        return cls(
            geometry=dict(feature.get("geometry") or {}),
            properties=props,
            id=props.get("_id"),
        )

    def to_feature(self) -> Dict[str, Any]:
        props = dict(self.properties)
        if self.id is not None:
            props["_id"] = self.id
        return {"type": "Feature", "geometry": self.geometry, "properties": props}
