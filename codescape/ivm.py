"""Renderer-agnostic visualization model (IVM) and its converter.

A :class:`VisualizationGraph` is derived once from a complete
:class:`~codescape.graph.DependencyGraph`. Positions start on a grid (or a
containment tree) and are overwritten by a layout engine afterwards.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .containment import build_containment_hierarchy
from .geometry import BoundingBox, Position3D, bounds_from_positions
from .graph import DependencyGraph

logger = logging.getLogger(__name__)

IVM_SCHEMA_VERSION = "1.0.0"

DEFAULT_LOD = 3
MIN_LOD = 0
MAX_LOD = 5

NODE_TYPE_LOD: Dict[str, int] = {
    "repository": 0,
    "package": 1,
    "namespace": 1,
    "directory": 2,
    "module": 2,
    "file": 3,
    "class": 4,
    "abstract_class": 4,
    "interface": 4,
    "enum": 4,
    "function": 4,
    "type": 5,
    "method": 5,
    "variable": 5,
}

NODE_KINDS = tuple(NODE_TYPE_LOD)

EDGE_KINDS = (
    "imports",
    "exports",
    "extends",
    "implements",
    "calls",
    "uses",
    "contains",
    "depends_on",
    "type_of",
    "returns",
    "parameter_of",
)

# Dependency-node metadata keys promoted to first-class IVM metadata.
_PROMOTED_KEYS = frozenset({"language", "loc", "complexity", "start_line", "end_line"})


# ===================================================================
# Model
# ===================================================================

@dataclass
class NodeLocation:
    start_line: int
    end_line: int
    start_column: Optional[int] = None
    end_column: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"start_line": self.start_line, "end_line": self.end_line}
        if self.start_column is not None:
            data["start_column"] = self.start_column
        if self.end_column is not None:
            data["end_column"] = self.end_column
        return data


@dataclass
class NodeMetadata:
    label: str
    path: str
    language: Optional[str] = None
    loc: Optional[int] = None
    complexity: Optional[float] = None
    dependency_count: int = 0
    dependent_count: int = 0
    location: Optional[NodeLocation] = None
    properties: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"label": self.label, "path": self.path}
        for key in ("language", "loc", "complexity"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        data["dependency_count"] = self.dependency_count
        data["dependent_count"] = self.dependent_count
        if self.location is not None:
            data["location"] = self.location.to_dict()
        if self.properties:
            data["properties"] = self.properties
        return data


@dataclass
class NodeStyle:
    color: Optional[str] = None
    size: Optional[float] = None
    shape: Optional[str] = None
    opacity: Optional[float] = None
    highlighted: Optional[bool] = None
    selected: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass
class VisualizationNode:
    id: str
    kind: str
    metadata: NodeMetadata
    position: Position3D = field(default_factory=Position3D)
    lod: int = DEFAULT_LOD
    parent_id: Optional[str] = None
    style: Optional[NodeStyle] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.kind,
            "position": self.position.to_dict(),
            "lod": self.lod,
            "metadata": self.metadata.to_dict(),
        }
        if self.parent_id is not None:
            data["parent_id"] = self.parent_id
        if self.style is not None:
            data["style"] = self.style.to_dict()
        return data


@dataclass
class EdgeMetadata:
    label: Optional[str] = None
    weight: Optional[float] = None
    circular: Optional[bool] = None
    reference: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {k: v for k, v in self.__dict__.items() if v is not None and k != "properties"}
        if self.properties:
            data["properties"] = self.properties
        return data


@dataclass
class VisualizationEdge:
    id: str
    source: str
    target: str
    kind: str
    lod: int = DEFAULT_LOD
    metadata: EdgeMetadata = field(default_factory=EdgeMetadata)
    style: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "type": self.kind,
            "lod": self.lod,
            "metadata": self.metadata.to_dict(),
        }
        if self.style is not None:
            data["style"] = self.style
        return data


@dataclass
class GraphStats:
    total_nodes: int = 0
    total_edges: int = 0
    nodes_by_type: Dict[str, int] = field(default_factory=dict)
    edges_by_type: Dict[str, int] = field(default_factory=dict)
    total_loc: int = 0
    avg_complexity: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


@dataclass
class GraphMetadata:
    name: str
    root_path: str
    schema_version: str = IVM_SCHEMA_VERSION
    generated_at: str = ""
    stats: Optional[GraphStats] = field(default_factory=GraphStats)
    languages: List[str] = field(default_factory=list)
    properties: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "schema_version": self.schema_version,
            "generated_at": self.generated_at,
            "root_path": self.root_path,
            "stats": self.stats.to_dict() if self.stats is not None else None,
            "languages": list(self.languages),
            "properties": self.properties,
        }


@dataclass
class VisualizationGraph:
    nodes: List[VisualizationNode]
    edges: List[VisualizationEdge]
    metadata: GraphMetadata
    bounds: Optional[BoundingBox] = field(default_factory=BoundingBox)

    def node_map(self) -> Dict[str, VisualizationNode]:
        return {node.id: node for node in self.nodes}

    def get_node(self, node_id: str) -> Optional[VisualizationNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def children_of(self, node_id: str) -> List[VisualizationNode]:
        return [node for node in self.nodes if node.parent_id == node_id]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "metadata": self.metadata.to_dict(),
            "bounds": self.bounds.to_dict() if self.bounds is not None else None,
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VisualizationGraph":
        """Rebuild a graph from :meth:`to_dict` output.

        Missing fields become empty values so that a validator can report
        them instead of this method failing.
        """
        return cls(
            nodes=[_node_from_dict(n) for n in data.get("nodes", [])],
            edges=[_edge_from_dict(e) for e in data.get("edges", [])],
            metadata=_metadata_from_dict(data.get("metadata") or {}),
            bounds=BoundingBox.from_dict(data["bounds"]) if data.get("bounds") else None,
        )

    @classmethod
    def from_json(cls, text: str) -> "VisualizationGraph":
        return cls.from_dict(json.loads(text))


def _known(cls: type, data: Mapping[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


def _node_from_dict(data: Mapping[str, Any]) -> VisualizationNode:
    meta = data.get("metadata") or {}
    location = meta.get("location")
    style = data.get("style")
    return VisualizationNode(
        id=data.get("id", ""),
        kind=data.get("type", ""),
        position=Position3D.from_dict(data.get("position") or {}),
        lod=data.get("lod", DEFAULT_LOD),
        parent_id=data.get("parent_id"),
        metadata=NodeMetadata(
            label=meta.get("label", ""),
            path=meta.get("path", ""),
            language=meta.get("language"),
            loc=meta.get("loc"),
            complexity=meta.get("complexity"),
            dependency_count=meta.get("dependency_count", 0),
            dependent_count=meta.get("dependent_count", 0),
            location=NodeLocation(**_known(NodeLocation, location)) if location else None,
            properties=dict(meta.get("properties") or {}),
        ),
        style=NodeStyle(**_known(NodeStyle, style)) if style else None,
    )


def _edge_from_dict(data: Mapping[str, Any]) -> VisualizationEdge:
    meta = dict(data.get("metadata") or {})
    properties = meta.pop("properties", None) or {}
    return VisualizationEdge(
        id=data.get("id", ""),
        source=data.get("source", ""),
        target=data.get("target", ""),
        kind=data.get("type", ""),
        lod=data.get("lod", DEFAULT_LOD),
        metadata=EdgeMetadata(properties=dict(properties), **_known(EdgeMetadata, meta)),
        style=data.get("style"),
    )


def _metadata_from_dict(data: Mapping[str, Any]) -> GraphMetadata:
    stats = data.get("stats")
    return GraphMetadata(
        name=data.get("name", ""),
        root_path=data.get("root_path", ""),
        schema_version=data.get("schema_version", ""),
        generated_at=data.get("generated_at", ""),
        stats=GraphStats(**_known(GraphStats, stats)) if stats else None,
        languages=list(data.get("languages", [])),
        properties=dict(data.get("properties") or {}),
    )


# ===================================================================
# LOD, ids, positions, stats
# ===================================================================

def assign_lod(kind: str) -> int:
    """Static LOD tier for a node kind; coarse structure gets low tiers."""
    return NODE_TYPE_LOD.get(kind, DEFAULT_LOD)


def assign_edge_lod(source_lod: int, target_lod: int) -> int:
    """An edge shows up once both of its endpoints are visible."""
    return max(source_lod, target_lod)


def edge_id(source: str, kind: str, target: str) -> str:
    return f"{source}--{kind}-->{target}"


def assign_grid_positions(nodes: Sequence[VisualizationNode], spacing: float = 100.0) -> None:
    """Lay nodes out row-major on a square grid centred on the origin."""
    if not nodes:
        return
    grid_size = math.ceil(math.sqrt(len(nodes)))
    half = grid_size * spacing / 2
    for index, node in enumerate(nodes):
        row, col = divmod(index, grid_size)
        node.position = Position3D(col * spacing - half, 0.0, row * spacing - half)


def assign_hierarchical_positions(
    nodes: Sequence[VisualizationNode],
    horizontal_spacing: float = 100.0,
    vertical_spacing: float = 50.0,
) -> None:
    """Place containment roots in a row and each level of children below its parent."""
    children: Dict[str, List[VisualizationNode]] = {}
    for node in nodes:
        if node.parent_id is not None:
            children.setdefault(node.parent_id, []).append(node)

    placed: set = set()

    def _place(node: VisualizationNode, x: float, y: float) -> None:
        stack = [(node, x, y)]
        while stack:
            current, cx, cy = stack.pop()
            if current.id in placed:
                continue
            placed.add(current.id)
            current.position = Position3D(cx, cy, 0.0)
            kids = children.get(current.id, [])
            width = len(kids) * horizontal_spacing
            for i, child in enumerate(kids):
                child_x = cx - width / 2 + i * horizontal_spacing + horizontal_spacing / 2
                stack.append((child, child_x, cy - vertical_spacing))

    roots = [n for n in nodes if n.parent_id is None]
    root_width = len(roots) * horizontal_spacing * 2
    for i, root in enumerate(roots):
        _place(root, -root_width / 2 + i * horizontal_spacing * 2 + horizontal_spacing, 0.0)


def calculate_bounds(nodes: Sequence[VisualizationNode]) -> BoundingBox:
    return bounds_from_positions(node.position for node in nodes)


def calculate_stats(
    nodes: Sequence[VisualizationNode],
    edges: Sequence[VisualizationEdge],
) -> GraphStats:
    stats = GraphStats(total_nodes=len(nodes), total_edges=len(edges))
    complexity_sum = 0.0
    complexity_count = 0
    for node in nodes:
        stats.nodes_by_type[node.kind] = stats.nodes_by_type.get(node.kind, 0) + 1
        if node.metadata.loc is not None:
            stats.total_loc += node.metadata.loc
        if node.metadata.complexity is not None:
            complexity_sum += node.metadata.complexity
            complexity_count += 1
    for edge in edges:
        stats.edges_by_type[edge.kind] = stats.edges_by_type.get(edge.kind, 0) + 1
    if complexity_count:
        stats.avg_complexity = complexity_sum / complexity_count
    return stats


def refresh_graph(graph: VisualizationGraph) -> VisualizationGraph:
    """Recompute bounds and stats in place after positions or membership change."""
    graph.bounds = calculate_bounds(graph.nodes)
    graph.metadata.stats = calculate_stats(graph.nodes, graph.edges)
    return graph


# ===================================================================
# Converter
# ===================================================================

def _node_metadata(name: str, path: str, raw: Mapping[str, Any]) -> NodeMetadata:
    metadata = NodeMetadata(
        label=name,
        path=path,
        language=raw.get("language"),
        loc=raw.get("loc"),
        complexity=raw.get("complexity"),
        properties={k: v for k, v in raw.items() if k not in _PROMOTED_KEYS},
    )
    start = raw.get("start_line")
    if start is not None:
        metadata.location = NodeLocation(start_line=start, end_line=raw.get("end_line", start))
    return metadata


def convert_dependency_graph(
    graph: DependencyGraph,
    name: str = "codebase",
    root_path: str = ".",
    position_strategy: Optional[str] = "grid",
    spacing: float = 100.0,
    properties: Optional[Dict[str, Any]] = None,
) -> VisualizationGraph:
    """Map a dependency graph onto the visualization model.

    *position_strategy* is ``"grid"``, ``"hierarchical"`` or None (all
    nodes at the origin).
    """
    dep_nodes = graph.nodes
    dep_edges = graph.edges
    hierarchy = build_containment_hierarchy(dep_nodes, dep_edges)

    nodes: List[VisualizationNode] = []
    by_id: Dict[str, VisualizationNode] = {}
    for dep in dep_nodes:
        node = VisualizationNode(
            id=dep.id,
            kind=dep.kind,
            lod=assign_lod(dep.kind),
            parent_id=hierarchy.parent_of(dep.id),
            metadata=_node_metadata(dep.name, dep.path, dep.metadata),
        )
        nodes.append(node)
        by_id[node.id] = node

    edges: List[VisualizationEdge] = []
    for dep in dep_edges:
        source = by_id[dep.source]
        target = by_id[dep.target]
        if dep.kind != "contains":
            source.metadata.dependency_count += 1
            target.metadata.dependent_count += 1
        edges.append(VisualizationEdge(
            id=edge_id(dep.source, dep.kind, dep.target),
            source=dep.source,
            target=dep.target,
            kind=dep.kind,
            lod=assign_edge_lod(source.lod, target.lod),
            metadata=EdgeMetadata(
                label=dep.kind,
                weight=float(dep.metadata.get("count", 1)),
                circular=True if dep.source == dep.target else None,
                properties=dict(dep.metadata),
            ),
        ))

    if position_strategy == "hierarchical":
        assign_hierarchical_positions(nodes, spacing, spacing / 2)
    elif position_strategy == "grid":
        assign_grid_positions(nodes, spacing)

    languages: Dict[str, None] = {}
    for node in nodes:
        if node.metadata.language and node.metadata.language != "unknown":
            languages[node.metadata.language] = None

    metadata = GraphMetadata(
        name=name,
        root_path=root_path,
        schema_version=IVM_SCHEMA_VERSION,
        generated_at=datetime.now(timezone.utc).isoformat(),
        stats=calculate_stats(nodes, edges),
        languages=list(languages),
        properties=dict(properties or {}),
    )
    logger.debug("Converted %d nodes and %d edges to the visualization model", len(nodes), len(edges))
    return VisualizationGraph(nodes=nodes, edges=edges, metadata=metadata, bounds=calculate_bounds(nodes))
