"""
Shortest path search over a walkway graph.

Dijkstra's algorithm with a binary heap.  Heap entries carry a
monotonically increasing counter as a secondary key, so ties between
equal tentative distances are resolved in the order nodes were first
relaxed.  Given the same graph and endpoints the result is always the
same path.
"""

from __future__ import annotations

import heapq
import math
from dataclasses import dataclass, field
from itertools import count
from typing import List, Optional

from .geometry import Coordinate
from .network import Graph


@dataclass
class PathResult:
    """A found route: total planar distance and the node indices walked."""

    distance: float
    path: List[int] = field(default_factory=list)


def shortest_path(graph: Graph, start: int, end: int) -> Optional[PathResult]:
    """Find the cheapest path from ``start`` to ``end``.

    Args:
        graph: Graph to search.
        start: Index of the start node.
        end: Index of the end node.

    Returns:
        A :class:`PathResult`, or ``None`` if ``end`` is unreachable from
        ``start``.  ``start == end`` yields a single-node path of length 0.

    Raises:
        IndexError: If either index does not address a node.
    """
    n = len(graph.nodes)
    for idx in (start, end):
        if not 0 <= idx < n:
            raise IndexError(f"node index {idx} out of range for graph with {n} nodes")

    dist = [math.inf] * n
    prev: List[Optional[int]] = [None] * n
    visited = [False] * n
    dist[start] = 0.0
    tie = count()
    heap = [(0.0, next(tie), start)]

    while heap:
        d, _, u = heapq.heappop(heap)
        if visited[u]:
            continue
        visited[u] = True
        if u == end:
            break
        for nb in graph.adjacency[u]:
            alt = d + nb.weight
            if alt < dist[nb.to]:
                dist[nb.to] = alt
                prev[nb.to] = u
                heapq.heappush(heap, (alt, next(tie), nb.to))

    if math.isinf(dist[end]):
        return None

    path: List[int] = []
    cur: Optional[int] = end
    while cur is not None:
        path.append(cur)
        cur = prev[cur]
    path.reverse()
    return PathResult(distance=dist[end], path=path)


def path_coordinates(graph: Graph, result: PathResult) -> List[Coordinate]:
    """Map a path of node indices to their coordinates."""
    return [graph.nodes[i] for i in result.path]
