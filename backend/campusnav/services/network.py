"""
Walkway network builder.

Walkways are drawn independently, so two of them that visibly cross
share no vertex.  :func:`build_graph` turns the full walkway set into a
single routable graph:

1. Every pair of segments belonging to different walkways is
   intersected.  This is a plain O(S²) scan over the total segment
   count S, which is fine at campus scale (tens to low hundreds of
   segments) but is the first thing to replace with a spatial index if
   the network grows.
2. Each walkway's vertex list is refined by inserting its intersection
   points in order along each segment.
3. Refined vertices are deduplicated by exact coordinate into nodes and
   consecutive vertices become weighted edges.
4. Nodes that are not identical but lie within the merge tolerance get
   a bridging adjacency entry so lines that barely miss still connect.

The graph is never persisted and never updated across edits; callers
rebuild it from the current walkway set before each query.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from .geometry import Coordinate, almost_equal, distance, from_meters, segment_intersection
from .settings import NODE_MERGE_METERS
from .validation import sanitize_walkways
from .walkways import Walkway

logger = logging.getLogger(__name__)


@dataclass
class Neighbor:
    """Adjacency entry: the node reached and the cost to reach it."""

    to: int
    weight: float


@dataclass
class Edge:
    """Undirected edge between two node indices.

    The endpoint coordinates are kept alongside the indices so point
    insertion can project onto the edge without looking nodes up.
    """

    a: int
    b: int
    weight: float
    coord_a: Coordinate
    coord_b: Coordinate


@dataclass
class Graph:
    """Routing graph derived from the walkway set.

    Attributes:
        nodes: Node coordinates; a node's index is its position here.
        adjacency: Per-node neighbour lists, parallel to ``nodes``.
        edges: Walkway edges, used for geometric queries.  Bridges added
            during consolidation live in ``adjacency`` only.
    """

    nodes: List[Coordinate] = field(default_factory=list)
    adjacency: List[List[Neighbor]] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)

    def add_node(self, coord: Coordinate) -> int:
        self.nodes.append(coord)
        self.adjacency.append([])
        return len(self.nodes) - 1

    def connect(self, a: int, b: int, weight: float) -> None:
        """Add a symmetric adjacency entry between ``a`` and ``b``."""
        self.adjacency[a].append(Neighbor(b, weight))
        self.adjacency[b].append(Neighbor(a, weight))

    def add_edge(self, a: int, b: int) -> Edge:
        coord_a = self.nodes[a]
        coord_b = self.nodes[b]
        edge = Edge(a, b, distance(coord_a, coord_b), coord_a, coord_b)
        self.edges.append(edge)
        self.connect(a, b, edge.weight)
        return edge

    def neighbors(self, index: int) -> List[Neighbor]:
        return self.adjacency[index]


def find_intersections(
    walkways: List[Walkway],
) -> Dict[Tuple[int, int], List[Tuple[float, Coordinate]]]:
    """Collect crossing points keyed by ``(walkway index, segment index)``.

    Segments of the same walkway are consecutive and never compared with
    each other.  Each value lists ``(t, point)`` pairs for that segment.
    """
    hits: Dict[Tuple[int, int], List[Tuple[float, Coordinate]]] = defaultdict(list)
    coords = [w.geometry for w in walkways]
    for i in range(len(coords)):
        ci = coords[i]
        for j in range(i + 1, len(coords)):
            cj = coords[j]
            for si in range(len(ci) - 1):
                a, b = ci[si], ci[si + 1]
                for sj in range(len(cj) - 1):
                    c, d = cj[sj], cj[sj + 1]
                    for point, t_ab, t_cd in segment_intersection(a, b, c, d):
                        hits[(i, si)].append((t_ab, point))
                        hits[(j, sj)].append((t_cd, point))
    return hits


def refine_vertices(
    walkway_index: int,
    coords: List[Coordinate],
    hits: Dict[Tuple[int, int], List[Tuple[float, Coordinate]]],
) -> List[Coordinate]:
    """Insert intersection points into one walkway's vertex sequence.

    Points are ordered by their parameter along each segment, and any
    vertex that coincides with the previously emitted one is skipped.
    """
    out: List[Coordinate] = []

    def push(point: Coordinate) -> None:
        if out and almost_equal(out[-1], point):
            return
        out.append(point)

    for si in range(len(coords) - 1):
        push(coords[si])
        for _, point in sorted(hits.get((walkway_index, si), []), key=lambda item: item[0]):
            push(point)
    push(coords[-1])
    return out


def connect_nearby_nodes(graph: Graph, tolerance: float) -> int:
    """Bridge distinct nodes closer than ``tolerance`` (planar units).

    Node identities are not merged; a symmetric adjacency entry weighted
    by the actual gap is added instead.  Pairs that are already direct
    neighbours are left alone.

    Returns:
        The number of bridges added.
    """
    n = len(graph.nodes)
    if n < 2 or tolerance <= 0.0:
        return 0
    pts = np.asarray(graph.nodes, dtype=float)
    bridges = 0
    for i in range(n - 1):
        gaps = np.hypot(pts[i + 1 :, 0] - pts[i, 0], pts[i + 1 :, 1] - pts[i, 1])
        for offset in np.nonzero(gaps <= tolerance)[0]:
            j = i + 1 + int(offset)
            if any(nb.to == j for nb in graph.adjacency[i]):
                continue
            graph.connect(i, j, float(gaps[offset]))
            bridges += 1
    return bridges


def build_graph(
    walkways: Iterable[Walkway],
    merge_tolerance: Optional[float] = None,
) -> Graph:
    """Build a routing graph from the full walkway set.

    Args:
        walkways: Current walkway records.  Invalid records are dropped
            (and logged) instead of failing the build.
        merge_tolerance: Bridging distance in planar units.  Defaults to
            ``NODE_MERGE_METERS`` converted with the local scale factor.

    Returns:
        A fresh :class:`Graph`.  Disconnected components are allowed.
    """
    valid = sanitize_walkways(walkways)
    tolerance = from_meters(NODE_MERGE_METERS) if merge_tolerance is None else merge_tolerance

    hits = find_intersections(valid)
    refined = [refine_vertices(i, w.geometry, hits) for i, w in enumerate(valid)]

    graph = Graph()
    index_of: Dict[Coordinate, int] = {}

    def node_for(coord: Coordinate) -> int:
        idx = index_of.get(coord)
        if idx is None:
            idx = graph.add_node(coord)
            index_of[coord] = idx
        return idx

    # Nodes are created pair by pair so a walkway that collapsed to a
    # single vertex while refining leaves no orphan behind.
    for coords in refined:
        for p, q in zip(coords, coords[1:]):
            ia = node_for(p)
            ib = node_for(q)
            if ia != ib:
                graph.add_edge(ia, ib)

    bridges = connect_nearby_nodes(graph, tolerance)
    logger.debug(
        "build_graph: %d walkways -> %d nodes, %d edges, %d bridges (%d crossings)",
        len(valid),
        len(graph.nodes),
        len(graph.edges),
        bridges,
        sum(len(v) for v in hits.values()) // 2,
    )
    return graph
