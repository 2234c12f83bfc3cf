"""
Route planning between two arbitrary campus points.

This module glues the engine together for a single query: it builds a
fresh graph from the current walkways, snaps the start and end points
onto it, runs the path search and converts the answer to metres.

"No route" situations are ordinary results, reported through
:attr:`RouteResult.status` rather than raised, so callers can tell them
apart from genuine faults.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from .geometry import Coordinate, from_meters, to_meters
from .network import build_graph
from .path_search import path_coordinates, shortest_path
from .point_insertion import insert_point
from .settings import MAX_SNAP_METERS
from .validation import require_coordinate
from .walkways import Walkway

logger = logging.getLogger(__name__)

ROUTE_OK = "ok"
ROUTE_NO_WALKWAYS = "no_walkways"
ROUTE_TOO_FAR = "too_far"
ROUTE_NO_PATH = "no_path"


@dataclass
class RouteResult:
    """Answer to a route query.

    ``distance`` is in planar units and ``distance_meters`` in metres;
    both are ``None`` unless ``status`` is ``"ok"``.
    """

    status: str
    distance: Optional[float] = None
    distance_meters: Optional[float] = None
    coordinates: List[Coordinate] = field(default_factory=list)
    start_snap_meters: Optional[float] = None
    end_snap_meters: Optional[float] = None

    @property
    def found(self) -> bool:
        return self.status == ROUTE_OK


def plan_route(
    walkways: Iterable[Walkway],
    start: Sequence[float],
    end: Sequence[float],
    max_snap_meters: float = MAX_SNAP_METERS,
) -> RouteResult:
    """Compute the shortest walk between ``start`` and ``end``.

    Raises:
        WalkwayValidationError: If either endpoint is not a valid coordinate.
    """
    start_pt = require_coordinate(start)
    end_pt = require_coordinate(end)

    graph = build_graph(walkways)
    if not graph.nodes:
        return RouteResult(status=ROUTE_NO_WALKWAYS)

    max_snap = from_meters(max_snap_meters)
    start_info = insert_point(graph, start_pt, max_snap)
    end_info = insert_point(graph, end_pt, max_snap)
    if start_info is None or end_info is None:
        return RouteResult(
            status=ROUTE_TOO_FAR,
            start_snap_meters=to_meters(start_info.distance) if start_info else None,
            end_snap_meters=to_meters(end_info.distance) if end_info else None,
        )

    result = shortest_path(graph, start_info.node_index, end_info.node_index)
    if result is None:
        logger.info("plan_route: no path between %s and %s", start_pt, end_pt)
        return RouteResult(
            status=ROUTE_NO_PATH,
            start_snap_meters=to_meters(start_info.distance),
            end_snap_meters=to_meters(end_info.distance),
        )

    return RouteResult(
        status=ROUTE_OK,
        distance=result.distance,
        distance_meters=to_meters(result.distance),
        coordinates=path_coordinates(graph, result),
        start_snap_meters=to_meters(start_info.distance),
        end_snap_meters=to_meters(end_info.distance),
    )
