"""
Helpers for turning hand-drawn and hand-edited polylines into walkways.

A line drawn on the map rarely lands exactly on the existing network.
:func:`magnetize_polyline` pulls every vertex onto the closest walkway
segment (or, failing that, onto a known node) so the new walkway shares
coordinates with its neighbours and the network builder can join them.
:func:`segment_drawn_line` then decomposes the line into two-point
walkways so each segment can be bent on its own.

Snap radii are given in metres and converted to planar units with the
configured scale factor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set

from .features import point_of
from .geometry import Coordinate, as_coordinate, distance, from_meters, project_point_onto_segment
from .settings import DRAW_SNAP_METERS, EDIT_SNAP_METERS
from .walkways import Feature, Walkway, new_record_id

logger = logging.getLogger(__name__)

# Vertices closer than this to the previous one are dropped.
DRAW_DEDUPE_METERS = 0.1
EDIT_DEDUPE_METERS = 0.05

ENTRANCE_KINDS = ("entrance", "exit")


def split_into_segments(coords: Sequence[Sequence[float]]) -> List[List[Coordinate]]:
    """Consecutive two-point segments of a polyline."""
    pts = [as_coordinate(c) for c in coords]
    return [[a, b] for a, b in zip(pts, pts[1:])]


def segment_drawn_line(
    coords: Sequence[Sequence[float]],
    name: Optional[str] = None,
) -> List[Walkway]:
    """Turn a drawn polyline into unsaved straight walkways.

    A two-point line becomes a single walkway.  Longer lines become one
    walkway per segment; those carry their ``segment_index`` and share a
    freshly generated ``group`` marker.
    """
    pts = [as_coordinate(c) for c in coords]
    if len(pts) < 2:
        return []
    if len(pts) == 2:
        return [Walkway(geometry=pts, name=name)]
    group = new_record_id()
    return [
        Walkway(geometry=pair, name=name, segment_index=i, group=group)
        for i, pair in enumerate(split_into_segments(pts))
    ]


@dataclass
class NormalizePlan:
    """Records to create and ids to delete when normalising walkways."""

    created: List[Walkway] = field(default_factory=list)
    deleted_ids: List[str] = field(default_factory=list)


def normalize_walkways(walkways: Iterable[Walkway]) -> NormalizePlan:
    """Plan the split of legacy multi-vertex walkways into segments.

    Straight walkways with more than two vertices are replaced by
    two-point walkways that keep the original name and type.  Curved
    walkways are left alone: their geometry is a sampled curve and
    splitting it would discard the bend.  Records without an id are
    still decomposed, but there is nothing to delete for them.
    """
    plan = NormalizePlan()
    for walkway in walkways:
        if walkway.curved or len(walkway.geometry) <= 2:
            continue
        group = walkway.group or new_record_id()
        for i, pair in enumerate(split_into_segments(walkway.geometry)):
            plan.created.append(
                Walkway(
                    geometry=pair,
                    name=walkway.name,
                    kind=walkway.kind,
                    segment_index=i,
                    group=group,
                    extra=dict(walkway.extra),
                )
            )
        if walkway.id:
            plan.deleted_ids.append(walkway.id)
    logger.info(
        "normalize_walkways: %d new segments, %d walkways replaced",
        len(plan.created),
        len(plan.deleted_ids),
    )
    return plan


def collect_walkway_nodes(walkways: Iterable[Walkway]) -> List[Coordinate]:
    """Every distinct vertex of every walkway, in first-seen order."""
    nodes: List[Coordinate] = []
    seen: Set[Coordinate] = set()
    for walkway in walkways:
        for c in walkway.geometry:
            if c in seen:
                continue
            seen.add(c)
            nodes.append(c)
    return nodes


def build_node_index(walkways: Iterable[Walkway], features: Iterable[Feature] = ()) -> List[Coordinate]:
    """Snap targets for drawing: walkway endpoints plus entrance/exit points."""
    nodes: List[Coordinate] = []
    for walkway in walkways:
        if walkway.geometry:
            nodes.append(walkway.geometry[0])
            nodes.append(walkway.geometry[-1])
    for feature in features:
        if feature.kind in ENTRANCE_KINDS:
            point = point_of(feature)
            if point is not None:
                nodes.append(point)
    return nodes


def _nearest_node(point: Coordinate, nodes: Sequence[Coordinate], radius: float) -> Optional[Coordinate]:
    best: Optional[Coordinate] = None
    best_d = radius
    for node in nodes:
        d = distance(point, node)
        if d <= best_d and (best is None or d < best_d):
            best, best_d = node, d
    return best


def _nearest_on_walkways(point: Coordinate, walkways: Sequence[Walkway], radius: float) -> Optional[Coordinate]:
    best: Optional[Coordinate] = None
    best_d = radius
    for walkway in walkways:
        for a, b in walkway.segments():
            proj, _ = project_point_onto_segment(a, b, point)
            d = distance(point, proj)
            if d <= best_d and (best is None or d < best_d):
                best, best_d = proj, d
    return best


def dedupe_polyline(coords: Sequence[Sequence[float]], min_gap_meters: float) -> List[Coordinate]:
    """Drop vertices within ``min_gap_meters`` of the last kept vertex.

    The input is returned unchanged if fewer than two vertices survive.
    """
    pts = [as_coordinate(c) for c in coords]
    gap = from_meters(min_gap_meters)
    cleaned: List[Coordinate] = []
    for c in pts:
        if not cleaned or distance(cleaned[-1], c) > gap:
            cleaned.append(c)
    return cleaned if len(cleaned) >= 2 else pts


def magnetize_polyline(
    coords: Sequence[Sequence[float]],
    walkways: Sequence[Walkway],
    nodes: Sequence[Coordinate],
    snap_meters: float = DRAW_SNAP_METERS,
) -> List[Coordinate]:
    """Snap a freshly drawn polyline onto the existing network.

    Each vertex moves to the closest point on any walkway segment within
    ``snap_meters``; if there is none it moves to the closest node within
    the same radius.  When a line of three or more vertices ends within
    ``snap_meters`` of its start, the loop is closed exactly.  Finally
    near-duplicate vertices are removed.
    """
    pts = [as_coordinate(c) for c in coords]
    if len(pts) < 2:
        return pts
    radius = from_meters(snap_meters)

    snapped: List[Coordinate] = []
    for p in pts:
        target = _nearest_on_walkways(p, walkways, radius)
        if target is None:
            target = _nearest_node(p, nodes, radius)
        snapped.append(target if target is not None else p)

    if len(snapped) > 2 and distance(snapped[0], snapped[-1]) <= radius:
        snapped[-1] = snapped[0]

    return dedupe_polyline(snapped, DRAW_DEDUPE_METERS)


def snap_edited_polyline(
    coords: Sequence[Sequence[float]],
    nodes: Sequence[Coordinate],
    tolerance_meters: float = EDIT_SNAP_METERS,
) -> List[Coordinate]:
    """Snap the vertices of an edited walkway to nearby known nodes."""
    radius = from_meters(tolerance_meters)
    snapped: List[Coordinate] = []
    for c in coords:
        p = as_coordinate(c)
        node = _nearest_node(p, nodes, radius)
        snapped.append(node if node is not None else p)
    return dedupe_polyline(snapped, EDIT_DEDUPE_METERS)
