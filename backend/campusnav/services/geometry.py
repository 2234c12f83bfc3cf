"""
Planar geometry kernel for the walkway network.

The campus covers a few hundred metres, so longitude/latitude pairs are
treated as points on a flat plane and compared with plain Euclidean
distance.  Callers convert planar lengths to metres with
:func:`to_meters` / :func:`from_meters`, which apply the single local
scale factor configured in :mod:`settings`.

Functions in this module assume finite input coordinates; filtering of
NaN/inf values and out-of-world points happens in :mod:`validation`
before anything reaches the kernel.  Zero-length segments are still
tolerated: every division clamps its denominator to :data:`EPSILON`.

Polygons are passed as a single ring (a sequence of coordinates).  The
ring may be open or closed; a duplicated closing vertex is ignored.
"""

from __future__ import annotations

import math
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

from .settings import METERS_PER_DEGREE

# Smallest denominator used anywhere in the kernel.
EPSILON = 1e-12

# Two coordinates closer than this on both axes are the same location.
COORD_EPS = 1e-10

# Slack on segment parameters when deciding whether an intersection
# falls inside both segments (and when it sits on an endpoint).
PARAM_EPS = 1e-9


class Coordinate(NamedTuple):
    """Immutable (x, y) pair: x is longitude, y is latitude."""

    x: float
    y: float


def as_coordinate(value: Sequence[float]) -> Coordinate:
    """Coerce a ``[x, y]`` list or tuple to a :class:`Coordinate`."""
    return Coordinate(float(value[0]), float(value[1]))


def distance(p: Sequence[float], q: Sequence[float]) -> float:
    """Planar Euclidean distance between two points."""
    return math.hypot(q[0] - p[0], q[1] - p[1])


def to_meters(planar: float) -> float:
    """Convert a planar (degree) length to metres."""
    return planar * METERS_PER_DEGREE


def from_meters(meters: float) -> float:
    """Convert metres to a planar (degree) length."""
    return meters / METERS_PER_DEGREE


def almost_equal(a: Sequence[float], b: Sequence[float], eps: float = COORD_EPS) -> bool:
    """Return True when both axes of ``a`` and ``b`` differ by less than ``eps``."""
    return abs(a[0] - b[0]) < eps and abs(a[1] - b[1]) < eps


def midpoint(a: Sequence[float], b: Sequence[float]) -> Coordinate:
    return Coordinate((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)


def lerp(a: Sequence[float], b: Sequence[float], t: float) -> Coordinate:
    return Coordinate(a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t)


def polyline_length(line: Sequence[Sequence[float]]) -> float:
    """Sum of planar segment lengths along ``line``."""
    return sum(distance(p, q) for p, q in zip(line, line[1:]))


# -------------------------------------------------------------------------
# Segment primitives
# -------------------------------------------------------------------------


def project_point_onto_segment(
    a: Sequence[float],
    b: Sequence[float],
    p: Sequence[float],
) -> Tuple[Coordinate, float]:
    """Project ``p`` onto the segment ``ab``.

    The parametric position is clamped to ``[0, 1]`` so the result never
    extrapolates past either endpoint.  When clamping happens the
    endpoint itself is returned unchanged, which keeps exact-match node
    lookups working downstream.

    Args:
        a: First endpoint of the segment.
        b: Second endpoint of the segment.
        p: Point to project.

    Returns:
        A tuple ``(point, t)`` where ``point`` is the closest point on the
        segment and ``t`` its parametric position from ``a`` (0) to ``b`` (1).
    """
    vx = b[0] - a[0]
    vy = b[1] - a[1]
    wx = p[0] - a[0]
    wy = p[1] - a[1]
    vv = max(vx * vx + vy * vy, EPSILON)
    t = (vx * wx + vy * wy) / vv
    if t <= 0.0:
        return as_coordinate(a), 0.0
    if t >= 1.0:
        return as_coordinate(b), 1.0
    return Coordinate(a[0] + t * vx, a[1] + t * vy), t


def segment_intersection(
    a: Sequence[float],
    b: Sequence[float],
    c: Sequence[float],
    d: Sequence[float],
) -> List[Tuple[Coordinate, float, float]]:
    """Intersect segment ``ab`` with segment ``cd``.

    Parallel and collinear segments report no intersection; overlapping
    collinear walkways are not split.  When the crossing lies on one of
    the four endpoints (within :data:`PARAM_EPS` in parameter space) that
    endpoint is returned verbatim so that T-junctions and shared
    endpoints produce bit-identical coordinates.

    Returns:
        An empty list, or a single ``(point, t_ab, t_cd)`` tuple.
    """
    rx = b[0] - a[0]
    ry = b[1] - a[1]
    sx = d[0] - c[0]
    sy = d[1] - c[1]
    denom = rx * sy - ry * sx
    scale = math.hypot(rx, ry) * math.hypot(sx, sy)
    if abs(denom) <= EPSILON * max(scale, EPSILON):
        return []
    qx = c[0] - a[0]
    qy = c[1] - a[1]
    t = (qx * sy - qy * sx) / denom
    u = (qx * ry - qy * rx) / denom
    if t < -PARAM_EPS or t > 1.0 + PARAM_EPS or u < -PARAM_EPS or u > 1.0 + PARAM_EPS:
        return []
    t = min(max(t, 0.0), 1.0)
    u = min(max(u, 0.0), 1.0)
    if t <= PARAM_EPS:
        point, t = as_coordinate(a), 0.0
    elif t >= 1.0 - PARAM_EPS:
        point, t = as_coordinate(b), 1.0
    elif u <= PARAM_EPS:
        point, u = as_coordinate(c), 0.0
    elif u >= 1.0 - PARAM_EPS:
        point, u = as_coordinate(d), 1.0
    else:
        point = Coordinate(a[0] + t * rx, a[1] + t * ry)
    return [(point, t, u)]


def point_to_polyline_distance(p: Sequence[float], line: Sequence[Sequence[float]]) -> float:
    """Shortest planar distance from ``p`` to any segment of ``line``."""
    if len(line) == 1:
        return distance(p, line[0])
    best = math.inf
    for a, b in zip(line, line[1:]):
        proj, _ = project_point_onto_segment(a, b, p)
        best = min(best, distance(p, proj))
    return best


# -------------------------------------------------------------------------
# Polygon primitives
# -------------------------------------------------------------------------


def _ring(polygon: Sequence[Sequence[float]]) -> List[Coordinate]:
    ring = [as_coordinate(p) for p in polygon]
    if len(ring) > 1 and ring[0] == ring[-1]:
        ring = ring[:-1]
    return ring


def _ring_edges(ring: List[Coordinate]) -> Iterable[Tuple[Coordinate, Coordinate]]:
    n = len(ring)
    for i in range(n):
        yield ring[i], ring[(i + 1) % n]


def _on_segment(a: Sequence[float], b: Sequence[float], p: Sequence[float]) -> bool:
    proj, _ = project_point_onto_segment(a, b, p)
    return almost_equal(proj, p)


def point_on_boundary(point: Sequence[float], polygon: Sequence[Sequence[float]]) -> bool:
    """Return True if ``point`` lies on an edge of ``polygon``."""
    ring = _ring(polygon)
    return any(_on_segment(a, b, point) for a, b in _ring_edges(ring))


def point_in_polygon(
    point: Sequence[float],
    polygon: Sequence[Sequence[float]],
    include_boundary: bool = True,
) -> bool:
    """Even–odd ray casting test.

    Args:
        point: The point to classify.
        polygon: Polygon ring.
        include_boundary: Whether points on an edge count as inside.

    Returns:
        True if the point lies inside the polygon.
    """
    ring = _ring(polygon)
    if len(ring) < 3:
        return False
    if point_on_boundary(point, ring):
        return include_boundary
    x, y = point[0], point[1]
    inside = False
    for a, b in _ring_edges(ring):
        if (a.y > y) != (b.y > y):
            dy = b.y - a.y
            if abs(dy) < EPSILON:
                dy = EPSILON
            x_cross = a.x + (y - a.y) * (b.x - a.x) / dy
            if x < x_cross:
                inside = not inside
    return inside


def bbox_polygon(bounds: Sequence[float]) -> List[Coordinate]:
    """Rectangle ring for ``(west, south, east, north)`` bounds.

    Swapped corners are tolerated; the ring always runs counter-clockwise
    from the south-west corner.
    """
    x0, y0, x1, y1 = (float(v) for v in bounds)
    west, east = min(x0, x1), max(x0, x1)
    south, north = min(y0, y1), max(y0, y1)
    return [
        Coordinate(west, south),
        Coordinate(east, south),
        Coordinate(east, north),
        Coordinate(west, north),
        Coordinate(west, south),
    ]


def clip_line_pieces(
    line: Sequence[Sequence[float]],
    polygon: Sequence[Sequence[float]],
) -> List[Tuple[Coordinate, Coordinate]]:
    """Split every segment of ``line`` wherever it crosses a polygon edge.

    The returned pieces each lie entirely inside or entirely outside the
    polygon (boundary aside), so the side of a piece can be decided by
    testing its midpoint.
    """
    ring = _ring(polygon)
    pieces: List[Tuple[Coordinate, Coordinate]] = []
    for a, b in zip(line, line[1:]):
        cuts = {0.0, 1.0}
        for c, d in _ring_edges(ring):
            for _, t, _ in segment_intersection(a, b, c, d):
                cuts.add(t)
        ordered = sorted(cuts)
        for t0, t1 in zip(ordered, ordered[1:]):
            if t1 - t0 <= PARAM_EPS:
                continue
            pieces.append((lerp(a, b, t0), lerp(a, b, t1)))
    return pieces


def line_containment_ratio(
    line: Sequence[Sequence[float]],
    polygon: Sequence[Sequence[float]],
) -> float:
    """Fraction of the length of ``line`` that falls inside ``polygon``.

    The line is clipped at every polygon edge crossing and each piece is
    classified by its midpoint.  The result is clamped to ``[0, 1]``.
    """
    total = max(polyline_length(line), EPSILON)
    inside = 0.0
    for p0, p1 in clip_line_pieces(line, polygon):
        if point_in_polygon(midpoint(p0, p1), polygon):
            inside += distance(p0, p1)
    return min(1.0, max(0.0, inside / total))


def line_within_polygon(
    line: Sequence[Sequence[float]],
    polygon: Sequence[Sequence[float]],
) -> bool:
    """Boolean "within" test for a line against a polygon.

    Every vertex and every clipped piece must lie inside the polygon or
    on its boundary, and at least one piece must reach the interior (a
    line running only along the boundary is not within).
    """
    if len(_ring(polygon)) < 3:
        return False
    if not all(point_in_polygon(p, polygon) for p in line):
        return False
    touches_interior = False
    for p0, p1 in clip_line_pieces(line, polygon):
        mid = midpoint(p0, p1)
        if not point_in_polygon(mid, polygon):
            return False
        if point_in_polygon(mid, polygon, include_boundary=False):
            touches_interior = True
    return touches_interior


def polygon_area(polygon: Sequence[Sequence[float]]) -> float:
    """Signed shoelace area; positive for counter-clockwise rings."""
    ring = _ring(polygon)
    area = 0.0
    for a, b in _ring_edges(ring):
        area += a.x * b.y - b.x * a.y
    return 0.5 * area


def polygon_centroid(polygon: Sequence[Sequence[float]]) -> Optional[Coordinate]:
    """Area-weighted centroid of a polygon ring.

    Degenerate (zero-area) rings fall back to the vertex average.  An
    empty ring yields ``None``.
    """
    ring = _ring(polygon)
    if not ring:
        return None
    area = polygon_area(ring)
    if abs(area) < EPSILON * EPSILON:
        n = len(ring)
        return Coordinate(sum(p.x for p in ring) / n, sum(p.y for p in ring) / n)
    cx = 0.0
    cy = 0.0
    for a, b in _ring_edges(ring):
        cross = a.x * b.y - b.x * a.y
        cx += (a.x + b.x) * cross
        cy += (a.y + b.y) * cross
    factor = 1.0 / (6.0 * area)
    return Coordinate(cx * factor, cy * factor)


def bearing(origin: Sequence[float], target: Sequence[float]) -> float:
    """Compass bearing from ``origin`` to ``target`` in degrees [0, 360).

    0 is north (+y) and angles grow clockwise, matching map convention.
    """
    dx = target[0] - origin[0]
    dy = target[1] - origin[1]
    return math.degrees(math.atan2(dx, dy)) % 360.0
