"""
Insert arbitrary points (route start/end) into a built graph.

The point is projected onto every edge and the closest projection wins.
If it lands on one of that edge's endpoints the existing node is reused;
otherwise the edge is split in two around a new node.  The graph is
modified in place.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

from .geometry import Coordinate, almost_equal, distance, project_point_onto_segment
from .network import Edge, Graph

logger = logging.getLogger(__name__)


@dataclass
class InsertResult:
    """Outcome of a successful insertion.

    Attributes:
        node_index: Node representing the inserted point.
        snapped: Location of that node on the network.
        distance: Planar distance from the requested point to ``snapped``.
    """

    node_index: int
    snapped: Coordinate
    distance: float


def _remove_neighbor(graph: Graph, src: int, dst: int, weight: float) -> None:
    entries = graph.adjacency[src]
    for i, nb in enumerate(entries):
        if nb.to == dst and math.isclose(nb.weight, weight, rel_tol=1e-12, abs_tol=1e-15):
            del entries[i]
            return


def _split_edge(graph: Graph, edge_index: int, point: Coordinate) -> int:
    edge: Edge = graph.edges.pop(edge_index)
    _remove_neighbor(graph, edge.a, edge.b, edge.weight)
    _remove_neighbor(graph, edge.b, edge.a, edge.weight)
    new_index = graph.add_node(point)
    graph.add_edge(edge.a, new_index)
    graph.add_edge(new_index, edge.b)
    return new_index


def insert_point(
    graph: Graph,
    coordinate: Sequence[float],
    max_snap_distance: Optional[float] = None,
) -> Optional[InsertResult]:
    """Attach ``coordinate`` to the nearest edge of ``graph``.

    Args:
        graph: Graph to modify in place.
        coordinate: Point to insert.
        max_snap_distance: Largest allowed planar distance between the
            point and the network.  ``None`` disables the limit.

    Returns:
        An :class:`InsertResult`, or ``None`` when the graph has no edges
        or the nearest edge is further than ``max_snap_distance``.
    """
    if not graph.edges:
        return None

    best_index = -1
    best_point: Optional[Coordinate] = None
    best_dist = math.inf
    for idx, edge in enumerate(graph.edges):
        proj, _ = project_point_onto_segment(edge.coord_a, edge.coord_b, coordinate)
        d = distance(coordinate, proj)
        if d < best_dist:
            best_index, best_point, best_dist = idx, proj, d

    if max_snap_distance is not None and best_dist > max_snap_distance:
        logger.debug("insert_point: %s is %.3g from the network, limit %.3g", coordinate, best_dist, max_snap_distance)
        return None

    edge = graph.edges[best_index]
    if almost_equal(best_point, edge.coord_a):
        return InsertResult(edge.a, edge.coord_a, best_dist)
    if almost_equal(best_point, edge.coord_b):
        return InsertResult(edge.b, edge.coord_b, best_dist)

    new_index = _split_edge(graph, best_index, best_point)
    return InsertResult(new_index, best_point, best_dist)
