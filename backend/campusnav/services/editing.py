"""
Editing operations on walkway segments.

Each walkway keeps a straight-line control polygon next to its rendered
geometry.  A segment moves between two states:

* **straight** – ``geometry == control``;
* **curved** – ``geometry`` is a Catmull–Rom resampling of ``control``.

:func:`bend` moves a segment to curved, :func:`uncurve` back to straight.
:func:`split_walkway` replaces one record by two new ones and is final
for the original.  Bulk selection comes in two deliberately different
flavours: rectangles pick walkways that are at least half inside,
polygons only walkways that are entirely inside.

Interactive bending goes through :class:`BendSession`, which separates
previews (never persisted) from the single commit.

All functions here return new :class:`Walkway` values; persistence is
left to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .curves import replace_segment_with_local_curve, update_control_for_segment
from .geometry import (
    Coordinate,
    almost_equal,
    bbox_polygon,
    distance,
    line_containment_ratio,
    line_within_polygon,
    midpoint,
    project_point_onto_segment,
)
from .settings import CURVE_ALPHA, CURVE_SAMPLES, SELECT_RATIO
from .validation import require_coordinate
from .walkways import Walkway, new_record_id

logger = logging.getLogger(__name__)


def _check_segment_index(control: Sequence[Coordinate], segment_index: int) -> None:
    if not 0 <= segment_index < len(control) - 1:
        raise ValueError(
            f"segment index {segment_index} out of range for {len(control) - 1} control segments"
        )


def bend(
    walkway: Walkway,
    segment_index: int,
    bend_point: Sequence[float],
    samples: int = CURVE_SAMPLES,
    alpha: float = CURVE_ALPHA,
) -> Walkway:
    """Bend one control segment of ``walkway`` through ``bend_point``.

    The control segment ``[A, B]`` becomes ``[A, bend, B]`` and the
    rendered geometry is rebuilt with that segment replaced by the
    Catmull–Rom curve through the three points.

    Raises:
        ValueError: If ``segment_index`` does not address a control
            segment, or the bend point is not a valid coordinate.
    """
    _check_segment_index(walkway.control, segment_index)
    bend_pt = require_coordinate(bend_point)
    geometry = replace_segment_with_local_curve(walkway.control, segment_index, bend_pt, samples, alpha)
    control = update_control_for_segment(walkway.control, segment_index, bend_pt)
    return walkway.copy(geometry=geometry, control=control, curved=True, segmented=True)


def uncurve(walkway: Walkway) -> Walkway:
    """Drop the sampled curve and render the control polygon directly."""
    return walkway.copy(geometry=list(walkway.control), curved=False)


def segment_handles(walkway: Walkway) -> List[Coordinate]:
    """Drag-handle positions: the midpoint of every control segment."""
    return [midpoint(a, b) for a, b in zip(walkway.control, walkway.control[1:])]


@dataclass
class SnapInfo:
    """Closest point on a walkway to a query coordinate."""

    walkway: Walkway
    snapped: Coordinate
    segment_index: int
    t: float
    distance: float


def find_closest_snap(
    walkways: Iterable[Walkway],
    coordinate: Sequence[float],
    max_distance: Optional[float] = None,
) -> Optional[SnapInfo]:
    """Find the nearest point on any walkway segment.

    Args:
        walkways: Walkways to search.
        coordinate: Query point.
        max_distance: Planar cut-off; ``None`` means unlimited.

    Returns:
        A :class:`SnapInfo` for the closest segment, or ``None`` when no
        segment is within ``max_distance``.
    """
    best: Optional[SnapInfo] = None
    for walkway in walkways:
        for i, (a, b) in enumerate(walkway.segments()):
            proj, t = project_point_onto_segment(a, b, coordinate)
            d = distance(coordinate, proj)
            if max_distance is not None and d > max_distance:
                continue
            if best is None or d < best.distance:
                best = SnapInfo(walkway, proj, i, t, d)
    return best


def split_walkway(
    walkway: Walkway,
    point: Sequence[float],
    segment_index: Optional[int] = None,
) -> Optional[Tuple[Walkway, Walkway]]:
    """Split ``walkway`` in two at ``point``.

    The point is projected onto the walkway's geometry (onto
    ``segment_index`` when given, otherwise onto the closest segment).
    Both halves inherit the original's name, type and group, receive
    fresh identifiers and lose ``segment_index``.  Each half is straight
    with its own geometry as control polygon.

    Returns:
        ``(first, second)``, or ``None`` if the point coincides with an
        existing vertex of the segment (nothing to split).
    """
    coords = walkway.geometry
    if segment_index is None:
        snap = find_closest_snap([walkway], point)
        if snap is None:
            return None
        j, p = snap.segment_index, snap.snapped
    else:
        if not 0 <= segment_index < len(coords) - 1:
            raise ValueError(f"segment index {segment_index} out of range")
        j = segment_index
        p, _ = project_point_onto_segment(coords[j], coords[j + 1], point)

    if almost_equal(p, coords[j]) or almost_equal(p, coords[j + 1]):
        return None

    first = list(coords[: j + 1]) + [p]
    second = [p] + list(coords[j + 1 :])
    halves = tuple(
        walkway.copy(
            id=new_record_id(),
            geometry=part,
            control=list(part),
            curved=False,
            segment_index=None,
        )
        for part in (first, second)
    )
    logger.debug("split_walkway: %s -> %s, %s", walkway.id, halves[0].id, halves[1].id)
    return halves  # type: ignore[return-value]


def select_by_rectangle(
    walkways: Iterable[Walkway],
    bounds: Sequence[float],
    min_ratio: float = SELECT_RATIO,
) -> List[str]:
    """Ids of walkways with at least ``min_ratio`` of their length inside ``bounds``.

    ``bounds`` is ``(west, south, east, north)``.
    """
    rect = bbox_polygon(bounds)
    selected: List[str] = []
    for walkway in walkways:
        if not walkway.id:
            continue
        if line_containment_ratio(walkway.geometry, rect) >= min_ratio:
            selected.append(walkway.id)
    return selected


def select_by_polygon(walkways: Iterable[Walkway], polygon: Sequence[Sequence[float]]) -> List[str]:
    """Ids of walkways lying entirely within ``polygon``."""
    return [w.id for w in walkways if w.id and line_within_polygon(w.geometry, polygon)]


class BendSession:
    """Two-phase bend of one control segment.

    The session snapshots the walkway when it is opened, so every
    :meth:`preview` is computed against the untouched pre-drag control
    polygon no matter how many times it is called.  Nothing is written
    until :meth:`commit`; :meth:`cancel` abandons the drag.  Once
    committed or cancelled the session cannot be reused.
    """

    OPEN = "open"
    COMMITTED = "committed"
    CANCELLED = "cancelled"

    def __init__(
        self,
        walkway: Walkway,
        segment_index: int,
        samples: int = CURVE_SAMPLES,
        alpha: float = CURVE_ALPHA,
    ) -> None:
        _check_segment_index(walkway.control, segment_index)
        self._walkway = walkway.copy()
        self.segment_index = segment_index
        self.samples = samples
        self.alpha = alpha
        self.state = self.OPEN

    @property
    def original(self) -> Walkway:
        return self._walkway.copy()

    @property
    def handle(self) -> Coordinate:
        return segment_handles(self._walkway)[self.segment_index]

    def _require_open(self) -> None:
        if self.state != self.OPEN:
            raise RuntimeError(f"bend session already {self.state}")

    def preview(self, bend_point: Sequence[float]) -> List[Coordinate]:
        """Geometry the walkway would have if released at ``bend_point``."""
        self._require_open()
        return replace_segment_with_local_curve(
            self._walkway.control,
            self.segment_index,
            require_coordinate(bend_point),
            self.samples,
            self.alpha,
        )

    def commit(self, bend_point: Sequence[float], save: Callable[[Walkway], Walkway]) -> Walkway:
        """Apply the bend and persist it through ``save``.

        The session is closed even if ``save`` fails; after a store error
        the walkway must be re-fetched and a new session opened.
        """
        self._require_open()
        updated = bend(self._walkway, self.segment_index, bend_point, self.samples, self.alpha)
        try:
            return save(updated)
        finally:
            self.state = self.COMMITTED

    def cancel(self) -> None:
        if self.state == self.OPEN:
            self.state = self.CANCELLED
