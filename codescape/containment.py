"""Structural parent/child hierarchy (file -> class -> method).

Derived from ``contains`` edges only; imports and calls never affect it.
Entities left without a container fall back to the file node sharing
their path.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .graph import DependencyEdge, DependencyNode

CONTAINER_KINDS = frozenset({"directory", "file", "class", "abstract_class", "interface", "module"})
CHILD_KINDS = frozenset({"class", "abstract_class", "interface", "enum", "function", "method", "variable"})


@dataclass
class ContainmentHierarchy:
    parents: Dict[str, str] = field(default_factory=dict)
    children: Dict[str, List[str]] = field(default_factory=dict)
    roots: List[str] = field(default_factory=list)

    def parent_of(self, node_id: str) -> Optional[str]:
        return self.parents.get(node_id)

    def children_of(self, node_id: str) -> List[str]:
        return self.children.get(node_id, [])

    def ancestors(self, node_id: str) -> List[str]:
        """Parent chain from nearest to the root."""
        chain: List[str] = []
        seen = {node_id}
        current = self.parents.get(node_id)
        while current is not None and current not in seen:
            chain.append(current)
            seen.add(current)
            current = self.parents.get(current)
        return chain


def build_containment_hierarchy(
    nodes: Sequence[DependencyNode],
    edges: Sequence[DependencyEdge],
) -> ContainmentHierarchy:
    hierarchy = ContainmentHierarchy()
    by_id = {n.id: n for n in nodes}

    for edge in edges:
        if edge.kind != "contains" or edge.target in hierarchy.parents:
            continue
        parent = by_id.get(edge.source)
        child = by_id.get(edge.target)
        if parent is None or child is None or parent.kind not in CONTAINER_KINDS:
            continue
        hierarchy.parents[child.id] = parent.id

    files_by_path = {n.path: n.id for n in nodes if n.kind == "file"}
    for node in nodes:
        if node.id in hierarchy.parents or node.kind not in CHILD_KINDS:
            continue
        file_id = files_by_path.get(node.path)
        if file_id is not None and file_id != node.id:
            hierarchy.parents[node.id] = file_id

    for node in nodes:
        parent_id = hierarchy.parents.get(node.id)
        if parent_id is None:
            hierarchy.roots.append(node.id)
        else:
            hierarchy.children.setdefault(parent_id, []).append(node.id)
    return hierarchy
