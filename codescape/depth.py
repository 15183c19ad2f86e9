"""Abstraction depth: shortest ``imports`` hop count from an entry point."""

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .graph import DependencyEdge, DependencyNode

ENTRY_POINT_PATTERN = re.compile(r"^(index|main|app|server|entry)\.[tj]sx?$")


@dataclass
class DepthResult:
    depths: Dict[str, int] = field(default_factory=dict)
    entry_points: List[str] = field(default_factory=list)
    max_depth: int = 0
    orphans: List[str] = field(default_factory=list)


def _file_name(node: DependencyNode) -> str:
    return node.name or node.path.rsplit("/", 1)[-1]


def identify_entry_points(
    nodes: Sequence[DependencyNode],
    edges: Sequence[DependencyEdge],
) -> List[str]:
    """Entry points in node order.

    Filename matches and importers nobody imports are both taken; root-level
    paths are used only when neither yields anything, and every node only
    when that is empty too.
    """
    if not nodes:
        return []

    imported = {e.target for e in edges if e.kind == "imports"}
    importing = {e.source for e in edges if e.kind == "imports"}

    entry: Dict[str, None] = {}
    for node in nodes:
        if ENTRY_POINT_PATTERN.match(_file_name(node)):
            entry[node.id] = None
    for node in nodes:
        if node.id in importing and node.id not in imported:
            entry[node.id] = None

    if not entry:
        for node in nodes:
            if "/" not in node.path:
                entry[node.id] = None
    if not entry:
        for node in nodes:
            entry[node.id] = None
    return list(entry)


def calculate_abstraction_depth(
    nodes: Sequence[DependencyNode],
    edges: Sequence[DependencyEdge],
) -> DepthResult:
    """Multi-source BFS over ``imports`` edges.

    Nodes unreachable from every entry point are orphans and get
    ``max_depth + 1``; ``max_depth`` then reflects the orphan depth.
    """
    if not nodes:
        return DepthResult()

    index = {node.id: i for i, node in enumerate(nodes)}
    adjacency: List[List[int]] = [[] for _ in nodes]
    for edge in edges:
        if edge.kind != "imports":
            continue
        src = index.get(edge.source)
        dst = index.get(edge.target)
        if src is not None and dst is not None:
            adjacency[src].append(dst)

    entry_points = identify_entry_points(nodes, edges)
    depth = [-1] * len(nodes)
    queue: deque = deque()
    for node_id in entry_points:
        i = index[node_id]
        depth[i] = 0
        queue.append(i)

    max_depth = 0
    while queue:
        current = queue.popleft()
        for neighbour in adjacency[current]:
            if depth[neighbour] == -1:
                depth[neighbour] = depth[current] + 1
                max_depth = max(max_depth, depth[neighbour])
                queue.append(neighbour)

    orphans = [nodes[i].id for i, d in enumerate(depth) if d == -1]
    if orphans:
        max_depth += 1
        for i, d in enumerate(depth):
            if d == -1:
                depth[i] = max_depth

    return DepthResult(
        depths={node.id: depth[i] for i, node in enumerate(nodes)},
        entry_points=entry_points,
        max_depth=max_depth,
        orphans=orphans,
    )
