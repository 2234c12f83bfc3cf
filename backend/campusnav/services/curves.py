"""
Centripetal Catmull–Rom resampling for bent walkway segments.

A bend turns one straight segment ``[A, B]`` of a walkway's control
polygon into the three control points ``[A, bend, B]``; the rendered
geometry is then the Catmull–Rom curve through those points.  The curve
is evaluated with the Barry–Goldman pyramid, vectorised over the sample
parameters with numpy.

End segments use reflected phantom points (``2*P0 - P1`` and
``2*Pn - Pn-1``) so the curve is defined all the way to both ends.
The output starts exactly at the first control point, hits every
interior control point at index ``k * samples`` and ends exactly at the
last control point.
"""

from __future__ import annotations

from typing import List, Sequence

import numpy as np

from .geometry import EPSILON, Coordinate, as_coordinate
from .settings import CURVE_ALPHA, CURVE_SAMPLES


def _knot(ti: float, pi: np.ndarray, pj: np.ndarray, alpha: float) -> float:
    d = float(np.hypot(*(pj - pi)))
    return ti + max(d ** alpha, EPSILON)


def _interp(pa, pb, ta: float, tb: float, t: np.ndarray) -> np.ndarray:
    span = tb - ta
    if abs(span) < EPSILON:
        span = EPSILON
    return ((tb - t) * pa + (t - ta) * pb) / span


def catmull_rom(
    points: Sequence[Sequence[float]],
    samples: int = CURVE_SAMPLES,
    alpha: float = CURVE_ALPHA,
) -> List[Coordinate]:
    """Sample a Catmull–Rom spline through ``points``.

    Args:
        points: Control points, at least two.
        samples: Samples per control segment; values below 2 are raised to 2.
        alpha: Knot parameterisation, clamped to ``[0, 1]``.  0 is the
            uniform, 0.5 the centripetal and 1 the chordal variant.

    Returns:
        ``(len(points) - 1) * samples + 1`` coordinates.  Inputs with
        fewer than two points are returned unchanged.
    """
    pts = [as_coordinate(p) for p in points]
    if len(pts) < 2:
        return pts
    a = min(max(float(alpha), 0.0), 1.0)
    s = max(2, int(samples))

    ctrl = np.asarray(pts, dtype=float)
    padded = np.vstack([2.0 * ctrl[0] - ctrl[1], ctrl, 2.0 * ctrl[-1] - ctrl[-2]])

    out: List[Coordinate] = []
    for i in range(len(padded) - 3):
        p0, p1, p2, p3 = padded[i], padded[i + 1], padded[i + 2], padded[i + 3]
        t0 = 0.0
        t1 = _knot(t0, p0, p1, a)
        t2 = _knot(t1, p1, p2, a)
        t3 = _knot(t2, p2, p3, a)
        t = np.linspace(t1, t2, s, endpoint=False)[:, None]

        a1 = _interp(p0, p1, t0, t1, t)
        a2 = _interp(p1, p2, t1, t2, t)
        a3 = _interp(p2, p3, t2, t3, t)
        b1 = _interp(a1, a2, t0, t2, t)
        b2 = _interp(a2, a3, t1, t3, t)
        curve = _interp(b1, b2, t1, t2, t)

        # The first sample of every piece is its control point.
        out.append(pts[i])
        for x, y in curve[1:]:
            if np.isfinite(x) and np.isfinite(y):
                out.append(Coordinate(float(x), float(y)))
    out.append(pts[-1])
    return out


def replace_segment_with_local_curve(
    coords: Sequence[Sequence[float]],
    segment_index: int,
    bend: Sequence[float],
    samples: int = CURVE_SAMPLES,
    alpha: float = CURVE_ALPHA,
) -> List[Coordinate]:
    """Rebuild a polyline with one segment replaced by a local curve.

    Segment ``segment_index`` (``coords[i]`` to ``coords[i + 1]``) is
    replaced by the Catmull–Rom curve through ``[A, bend, B]``; every
    other segment stays straight.
    """
    pts = [as_coordinate(c) for c in coords]
    out: List[Coordinate] = [pts[0]]
    for i in range(len(pts) - 1):
        a, b = pts[i], pts[i + 1]
        if i == segment_index:
            smooth = catmull_rom([a, bend, b], samples, alpha)
            out.extend(smooth[1:])
        else:
            out.append(b)
    return out


def update_control_for_segment(
    coords: Sequence[Sequence[float]],
    segment_index: int,
    bend: Sequence[float],
) -> List[Coordinate]:
    """Insert ``bend`` into the control polygon between the segment's ends."""
    pts = [as_coordinate(c) for c in coords]
    return pts[: segment_index + 1] + [as_coordinate(bend)] + pts[segment_index + 1 :]
