"""Level-of-detail selection and graph filtering.

Two independent mechanisms live here:

* camera-distance tiers (1 to 4) with hysteresis, used by an interactive
  viewer to decide how much to show while zooming;
* static filtering of a :class:`VisualizationGraph` by the per-node LOD
  tier assigned at conversion time (0 to 5).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Dict, List, Set

from .ivm import MAX_LOD, MIN_LOD, VisualizationEdge, VisualizationGraph, VisualizationNode, calculate_stats

logger = logging.getLogger(__name__)

# Camera distances, in world units, at or below which a tier activates.
STREET_THRESHOLD = 25.0
NEIGHBORHOOD_THRESHOLD = 60.0
DISTRICT_THRESHOLD = 120.0

LOD_THRESHOLDS: Dict[int, float] = {
    4: STREET_THRESHOLD,
    3: NEIGHBORHOOD_THRESHOLD,
    2: DISTRICT_THRESHOLD,
}

# Fraction of a tier's threshold the camera must travel past before the tier drops.
HYSTERESIS_FACTOR = 0.08

CITY_LOD = 1


# ===================================================================
# Camera distance
# ===================================================================

def camera_distance_to_origin(x: float, y: float, z: float) -> float:
    return math.sqrt(x * x + y * y + z * z)


def calculate_lod_from_distance(distance: float) -> int:
    """Map a camera distance to a tier: 4 street, 3 neighborhood, 2 district, 1 city."""
    if distance <= STREET_THRESHOLD:
        return 4
    if distance <= NEIGHBORHOOD_THRESHOLD:
        return 3
    if distance <= DISTRICT_THRESHOLD:
        return 2
    return CITY_LOD


def threshold_for_lod(lod: int) -> float:
    return LOD_THRESHOLDS.get(lod, math.inf)


def calculate_lod_with_hysteresis(distance: float, current_lod: int) -> int:
    """Like :func:`calculate_lod_from_distance`, but slow to drop detail.

    Moving to a finer tier happens as soon as the raw threshold is
    crossed. Moving to a coarser tier only happens once the distance is
    beyond the current tier's threshold by ``HYSTERESIS_FACTOR`` of it.
    """
    raw = calculate_lod_from_distance(distance)
    if raw > current_lod:
        return raw
    if raw < current_lod:
        threshold = threshold_for_lod(current_lod)
        if distance > threshold + threshold * HYSTERESIS_FACTOR:
            return raw
    return current_lod


# ===================================================================
# Static tiers
# ===================================================================

def recommended_lod(node_count: int) -> int:
    """Suggest a starting tier so that large graphs open coarse."""
    if node_count < 50:
        return 5
    if node_count < 200:
        return 4
    if node_count < 500:
        return 3
    if node_count < 1000:
        return 2
    if node_count < 5000:
        return 1
    return 0


def node_counts_by_lod(graph: VisualizationGraph) -> Dict[int, int]:
    counts = {level: 0 for level in range(MIN_LOD, MAX_LOD + 1)}
    for node in graph.nodes:
        counts[node.lod] = counts.get(node.lod, 0) + 1
    return counts


def cumulative_node_counts(graph: VisualizationGraph) -> Dict[int, int]:
    """Number of nodes visible at each tier."""
    total = 0
    cumulative: Dict[int, int] = {}
    for level, count in sorted(node_counts_by_lod(graph).items()):
        total += count
        cumulative[level] = total
    return cumulative


def newly_visible(graph: VisualizationGraph, from_level: int, to_level: int) -> List[VisualizationNode]:
    if to_level <= from_level:
        return []
    return [n for n in graph.nodes if from_level < n.lod <= to_level]


def newly_hidden(graph: VisualizationGraph, from_level: int, to_level: int) -> List[VisualizationNode]:
    if to_level >= from_level:
        return []
    return [n for n in graph.nodes if to_level < n.lod <= from_level]


# ===================================================================
# Filtering
# ===================================================================

@dataclass
class LODFilterResult:
    nodes: List[VisualizationNode] = field(default_factory=list)
    edges: List[VisualizationEdge] = field(default_factory=list)
    hidden_node_count: int = 0
    hidden_edge_count: int = 0
    # original edge id -> collapsed edge id
    collapsed_edges: Dict[str, str] = field(default_factory=dict)


def ancestors_of(node_id: str, nodes_by_id: Dict[str, VisualizationNode]) -> List[str]:
    """Parent chain of *node_id*, nearest first. Stops at a dangling or cyclic link."""
    chain: List[str] = []
    seen = {node_id}
    current = nodes_by_id.get(node_id)
    while current is not None and current.parent_id is not None and current.parent_id not in seen:
        chain.append(current.parent_id)
        seen.add(current.parent_id)
        current = nodes_by_id.get(current.parent_id)
    return chain


def filter_graph_by_lod(
    graph: VisualizationGraph,
    level: int,
    include_ancestors: bool = False,
    collapse_edges: bool = False,
) -> LODFilterResult:
    """Keep nodes whose tier is at most *level* and edges between kept nodes.

    Args:
        include_ancestors: also keep every ancestor (via ``parent_id``) of a
            kept node, whatever its tier.
        collapse_edges: instead of dropping an edge with a hidden endpoint,
            re-attach it to the endpoint's nearest visible ancestor. The
            rewritten edge is flagged ``collapsed`` in its properties;
            duplicates and self-loops created this way are dropped.
    """
    by_id = graph.node_map()
    visible_ids: Set[str] = {n.id for n in graph.nodes if n.lod <= level}
    if include_ancestors:
        for node_id in list(visible_ids):
            for ancestor in ancestors_of(node_id, by_id):
                if ancestor in by_id:
                    visible_ids.add(ancestor)
    nodes = [n for n in graph.nodes if n.id in visible_ids]

    edges: List[VisualizationEdge] = []
    collapsed: Dict[str, str] = {}
    seen: Set[str] = set()
    for edge in graph.edges:
        source, target = edge.source, edge.target
        if source in visible_ids and target in visible_ids:
            edges.append(edge)
            seen.add(f"{source}->{target}:{edge.kind}")
            continue
        if not collapse_edges:
            continue
        source = _visible_ancestor(source, visible_ids, by_id)
        target = _visible_ancestor(target, visible_ids, by_id)
        if source is None or target is None or source == target:
            continue
        key = f"{source}->{target}:{edge.kind}"
        if key in seen:
            continue
        seen.add(key)
        properties = dict(edge.metadata.properties)
        properties.update(collapsed=True, original_source=edge.source, original_target=edge.target)
        rewritten = replace(
            edge,
            id=f"collapsed:{edge.id}",
            source=source,
            target=target,
            metadata=replace(edge.metadata, properties=properties),
        )
        edges.append(rewritten)
        collapsed[edge.id] = rewritten.id

    return LODFilterResult(
        nodes=nodes,
        edges=edges,
        hidden_node_count=len(graph.nodes) - len(nodes),
        hidden_edge_count=len(graph.edges) - len(edges),
        collapsed_edges=collapsed,
    )


def _visible_ancestor(node_id: str, visible: Set[str], by_id: Dict[str, VisualizationNode]):
    if node_id in visible:
        return node_id
    for ancestor in ancestors_of(node_id, by_id):
        if ancestor in visible:
            return ancestor
    return None


def create_lod_graph(
    graph: VisualizationGraph,
    level: int,
    include_ancestors: bool = False,
    collapse_edges: bool = False,
) -> VisualizationGraph:
    """A new graph holding only what is visible at *level*.

    Bounds are kept from the full graph so a viewer keeps its framing.
    """
    result = filter_graph_by_lod(graph, level, include_ancestors, collapse_edges)
    properties = dict(graph.metadata.properties)
    properties.update(
        lod_level=level,
        hidden_nodes=result.hidden_node_count,
        hidden_edges=result.hidden_edge_count,
    )
    metadata = replace(
        graph.metadata,
        stats=calculate_stats(result.nodes, result.edges),
        properties=properties,
    )
    logger.debug(
        "LOD %d keeps %d/%d nodes, %d/%d edges",
        level, len(result.nodes), len(graph.nodes), len(result.edges), len(graph.edges),
    )
    return VisualizationGraph(nodes=result.nodes, edges=result.edges, metadata=metadata, bounds=graph.bounds)
