"""Typed dependency graph with dense integer indices.

Nodes live in an arena list; each node's position in that list is its
index, and adjacency is stored as per-node lists of edge indices.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

NODE_KINDS = (
    "file",
    "directory",
    "class",
    "interface",
    "function",
    "method",
    "variable",
    "enum",
    "abstract_class",
    "module",
)

EDGE_KINDS = ("contains", "imports", "extends", "implements", "calls", "depends_on")


@dataclass
class DependencyNode:
    id: str
    kind: str
    name: str
    path: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_external(self) -> bool:
        return bool(self.metadata.get("is_external"))


@dataclass
class DependencyEdge:
    source: str
    target: str
    kind: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return f"{self.source}--{self.kind}-->{self.target}"


class DependencyGraph:
    """Owns the nodes and edges produced by one build."""

    def __init__(self) -> None:
        self._nodes: List[DependencyNode] = []
        self._index: Dict[str, int] = {}
        self._edges: List[DependencyEdge] = []
        self._edge_keys: Dict[Tuple[str, str, str], int] = {}
        self._outgoing: List[List[int]] = []
        self._incoming: List[List[int]] = []

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def add_node(self, node: DependencyNode) -> DependencyNode:
        """Insert *node*; an existing node with the same id is kept instead."""
        if node.kind not in NODE_KINDS:
            raise ValueError(f"Unknown node kind '{node.kind}' for {node.id}")
        existing = self._index.get(node.id)
        if existing is not None:
            logger.debug("Duplicate node id %s ignored", node.id)
            return self._nodes[existing]
        self._index[node.id] = len(self._nodes)
        self._nodes.append(node)
        self._outgoing.append([])
        self._incoming.append([])
        return node

    def has_node(self, node_id: str) -> bool:
        return node_id in self._index

    def get_node(self, node_id: str) -> Optional[DependencyNode]:
        idx = self._index.get(node_id)
        return self._nodes[idx] if idx is not None else None

    def index_of(self, node_id: str) -> int:
        return self._index[node_id]

    def node_at(self, index: int) -> DependencyNode:
        return self._nodes[index]

    @property
    def nodes(self) -> List[DependencyNode]:
        return list(self._nodes)

    def nodes_of_kind(self, *kinds: str) -> List[DependencyNode]:
        return [n for n in self._nodes if n.kind in kinds]

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def add_edge(self, edge: DependencyEdge) -> DependencyEdge:
        """Insert *edge*; repeats of (source, target, kind) bump ``count``.

        Raises:
            ValueError: unknown edge kind or an endpoint not in the graph.
        """
        if edge.kind not in EDGE_KINDS:
            raise ValueError(f"Unknown edge kind '{edge.kind}'")
        src = self._index.get(edge.source)
        dst = self._index.get(edge.target)
        if src is None or dst is None:
            missing = edge.source if src is None else edge.target
            raise ValueError(f"Edge {edge.id} references unknown node {missing}")

        key = (edge.source, edge.target, edge.kind)
        existing = self._edge_keys.get(key)
        if existing is not None:
            kept = self._edges[existing]
            kept.metadata["count"] = kept.metadata.get("count", 1) + 1
            return kept

        edge_index = len(self._edges)
        self._edge_keys[key] = edge_index
        self._edges.append(edge)
        self._outgoing[src].append(edge_index)
        self._incoming[dst].append(edge_index)
        return edge

    def connect(self, source: str, target: str, kind: str, **metadata: Any) -> DependencyEdge:
        return self.add_edge(DependencyEdge(source, target, kind, dict(metadata)))

    def has_edge(self, source: str, target: str, kind: str) -> bool:
        return (source, target, kind) in self._edge_keys

    @property
    def edges(self) -> List[DependencyEdge]:
        return list(self._edges)

    def edges_of_kind(self, kind: str) -> List[DependencyEdge]:
        return [e for e in self._edges if e.kind == kind]

    def outgoing(self, node_id: str, kind: Optional[str] = None) -> List[DependencyEdge]:
        edges = (self._edges[i] for i in self._outgoing[self._index[node_id]])
        return [e for e in edges if kind is None or e.kind == kind]

    def incoming(self, node_id: str, kind: Optional[str] = None) -> List[DependencyEdge]:
        edges = (self._edges[i] for i in self._incoming[self._index[node_id]])
        return [e for e in edges if kind is None or e.kind == kind]

    def adjacency(self, kind: Optional[str] = None) -> List[List[int]]:
        """Successor node indices per node index, in edge insertion order."""
        result: List[List[int]] = []
        for out in self._outgoing:
            result.append([
                self._index[self._edges[i].target]
                for i in out
                if kind is None or self._edges[i].kind == kind
            ])
        return result

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[DependencyNode]:
        return iter(self._nodes)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [
                {"id": n.id, "kind": n.kind, "name": n.name, "path": n.path, "metadata": n.metadata}
                for n in self._nodes
            ],
            "edges": [
                {"id": e.id, "source": e.source, "target": e.target, "kind": e.kind, "metadata": e.metadata}
                for e in self._edges
            ],
        }
