"""
Connectivity engine for LinkMap.

Turns an ordered set of markers into a degree-bounded proximity graph:

1. Every unordered pair (i, j), i < j, is a candidate edge when its pixel
   distance is within min(thr_i, thr_j) / meters_per_pixel.
2. Candidates are sorted by distance; ties keep pair enumeration order.
3. Edges are accepted greedily while both endpoints are below the degree cap.
   A rejected candidate is never revisited.

The result is a pure projection of the inputs. It is recomputed from scratch
whenever markers or the scale change and is never persisted or patched.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

import networkx as nx

from linkmap.constants import MAX_DEGREE
from linkmap.models import is_number


@dataclass
class GraphResult:
    """Undirected edges over marker indices plus the degree of each marker."""
    edges: List[Tuple[int, int]] = field(default_factory=list)
    degree: List[int] = field(default_factory=list)

    def to_networkx(self) -> nx.Graph:
        """Build an undirected NetworkX graph with one node per marker index."""
        G = nx.Graph()
        G.add_nodes_from(range(len(self.degree)))
        G.add_edges_from(self.edges)
        return G


def _normalize_cap(max_degree: Any) -> int:
    """Floor the cap and clamp it to >= 0."""
    if not is_number(max_degree) or math.isnan(max_degree):
        return 0
    if math.isinf(max_degree):
        return 0 if max_degree < 0 else 2 ** 31
    return max(0, int(math.floor(max_degree)))


def compute_graph(points: Sequence[Any], meters_per_pixel: float,
                  max_degree: float = MAX_DEGREE) -> GraphResult:
    """
    Compute the degree-bounded proximity graph.

    Args:
        points: Ordered markers; each needs x, y (image pixels) and threshold (meters)
        meters_per_pixel: Scale of the image. Anything other than a finite
            positive number yields an empty graph.
        max_degree: Maximum number of edges per point

    Returns:
        GraphResult with edges as (i, j) index pairs, i < j, in acceptance order
    """
    n = len(points)
    result = GraphResult(edges=[], degree=[0] * n)

    if not is_number(meters_per_pixel) or not math.isfinite(meters_per_pixel) or meters_per_pixel <= 0:
        return result

    cap = _normalize_cap(max_degree)

    candidates = []
    for i in range(n):
        a = points[i]
        for j in range(i + 1, n):
            b = points[j]
            distance = math.hypot(b.x - a.x, b.y - a.y)
            limit_px = min(a.threshold, b.threshold) / meters_per_pixel
            if distance <= limit_px:
                candidates.append((distance, i, j))

    # list.sort is stable, so equal distances keep (i, j) generation order
    candidates.sort(key=lambda c: c[0])

    degree = result.degree
    for _, i, j in candidates:
        if degree[i] < cap and degree[j] < cap:
            degree[i] += 1
            degree[j] += 1
            result.edges.append((i, j))

    return result


def graph_summary(result: GraphResult, max_degree: float = MAX_DEGREE) -> Dict[str, Any]:
    """
    Summarize a computed graph for display.

    Returns:
        Dict with keys:
        - edges: number of accepted edges
        - components: number of connected components (isolated markers count)
        - isolated: marker indices with no edges
        - saturated: marker indices whose degree reached the cap
    """
    G = result.to_networkx()
    cap = _normalize_cap(max_degree)
    return {
        "edges": G.number_of_edges(),
        "components": nx.number_connected_components(G) if len(G) else 0,
        "isolated": sorted(nx.isolates(G)),
        "saturated": [i for i, d in enumerate(result.degree) if cap and d >= cap],
    }
