"""Structural checks for visualization graphs.

``validate_graph`` never raises: every problem is reported as a
:class:`ValidationError` in either ``errors`` or ``warnings``.
``assert_valid_graph`` escalates to :class:`GraphValidationError` only
when there is at least one error.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, List, Optional, Set

from .errors import GraphValidationError
from .geometry import BoundingBox, Position3D
from .ivm import (
    EDGE_KINDS,
    IVM_SCHEMA_VERSION,
    MAX_LOD,
    MIN_LOD,
    NODE_KINDS,
    GraphMetadata,
    VisualizationEdge,
    VisualizationGraph,
    VisualizationNode,
)


@dataclass
class ValidationError:
    code: str
    message: str
    path: str
    value: Any = None

    def __str__(self) -> str:
        return f"[{self.code}] {self.path}: {self.message}"


@dataclass
class ValidationResult:
    valid: bool = True
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationError] = field(default_factory=list)

    def error_codes(self) -> List[str]:
        return [e.code for e in self.errors]

    def warning_codes(self) -> List[str]:
        return [w.code for w in self.warnings]

    def merge(self, other: "ValidationResult") -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.valid = not self.errors


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_finite_number(value: Any) -> bool:
    return _is_number(value) and math.isfinite(value)


def _is_lod(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and MIN_LOD <= value <= MAX_LOD


def validate_position(position: Optional[Position3D], path: str) -> ValidationResult:
    result = ValidationResult()
    if position is None:
        result.errors.append(ValidationError("INVALID_POSITION", "Position is required", path))
    else:
        for axis in ("x", "y", "z"):
            value = getattr(position, axis, None)
            if not _is_finite_number(value):
                result.errors.append(ValidationError(
                    "INVALID_POSITION", f"Position {axis} must be a finite number", f"{path}.{axis}", value,
                ))
    result.valid = not result.errors
    return result


def validate_node(node: VisualizationNode, path: str) -> ValidationResult:
    result = ValidationResult()
    errors, warnings = result.errors, result.warnings

    if not node.id:
        errors.append(ValidationError("MISSING_ID", "Node must have a non-empty id", f"{path}.id", node.id))
    if node.kind not in NODE_KINDS:
        errors.append(ValidationError(
            "INVALID_NODE_TYPE", f"Invalid node type: {node.kind}", f"{path}.type", node.kind,
        ))
    result.merge(validate_position(node.position, f"{path}.position"))
    if not _is_lod(node.lod):
        errors.append(ValidationError(
            "INVALID_LOD", f"LOD must be an integer between {MIN_LOD} and {MAX_LOD}", f"{path}.lod", node.lod,
        ))

    meta = node.metadata
    if not meta.label:
        errors.append(ValidationError("MISSING_LABEL", "Node metadata must have a label", f"{path}.metadata.label"))
    if not meta.path:
        errors.append(ValidationError("MISSING_PATH", "Node metadata must have a path", f"{path}.metadata.path"))
    if meta.loc is not None and (not _is_finite_number(meta.loc) or meta.loc < 0):
        warnings.append(ValidationError(
            "INVALID_LOC", "Lines of code should be a non-negative number", f"{path}.metadata.loc", meta.loc,
        ))
    if meta.complexity is not None and (not _is_finite_number(meta.complexity) or meta.complexity < 0):
        warnings.append(ValidationError(
            "INVALID_COMPLEXITY", "Complexity should be a non-negative number",
            f"{path}.metadata.complexity", meta.complexity,
        ))
    if node.parent_id is not None and (not isinstance(node.parent_id, str) or not node.parent_id):
        errors.append(ValidationError(
            "INVALID_PARENT_ID", "Parent id must be a non-empty string", f"{path}.parent_id", node.parent_id,
        ))

    result.valid = not errors
    return result


def validate_edge(edge: VisualizationEdge, path: str, node_ids: Set[str]) -> ValidationResult:
    result = ValidationResult()
    errors = result.errors

    if not edge.id:
        errors.append(ValidationError("MISSING_ID", "Edge must have a non-empty id", f"{path}.id", edge.id))
    if not edge.source:
        errors.append(ValidationError("MISSING_SOURCE", "Edge must have a source", f"{path}.source"))
    elif edge.source not in node_ids:
        errors.append(ValidationError(
            "INVALID_SOURCE", f"Edge source not found: {edge.source}", f"{path}.source", edge.source,
        ))
    if not edge.target:
        errors.append(ValidationError("MISSING_TARGET", "Edge must have a target", f"{path}.target"))
    elif edge.target not in node_ids:
        errors.append(ValidationError(
            "INVALID_TARGET", f"Edge target not found: {edge.target}", f"{path}.target", edge.target,
        ))
    if edge.kind not in EDGE_KINDS:
        errors.append(ValidationError(
            "INVALID_EDGE_TYPE", f"Invalid edge type: {edge.kind}", f"{path}.type", edge.kind,
        ))
    if not _is_lod(edge.lod):
        errors.append(ValidationError(
            "INVALID_LOD", f"LOD must be an integer between {MIN_LOD} and {MAX_LOD}", f"{path}.lod", edge.lod,
        ))
    if edge.source and edge.source == edge.target:
        result.warnings.append(ValidationError(
            "SELF_REFERENCE", "Edge references the same node as source and target", path, edge.source,
        ))

    result.valid = not errors
    return result


def validate_graph_metadata(metadata: Optional[GraphMetadata], path: str = "metadata") -> ValidationResult:
    result = ValidationResult()
    errors = result.errors
    if metadata is None:
        errors.append(ValidationError("INVALID_METADATA", "Graph metadata is required", path))
        result.valid = False
        return result

    if not metadata.name:
        errors.append(ValidationError("MISSING_NAME", "Graph metadata must have a name", f"{path}.name"))
    if not metadata.schema_version:
        errors.append(ValidationError(
            "MISSING_SCHEMA_VERSION", "Graph metadata must have a schema version", f"{path}.schema_version",
        ))
    elif metadata.schema_version != IVM_SCHEMA_VERSION:
        result.warnings.append(ValidationError(
            "VERSION_MISMATCH",
            f"Schema version {metadata.schema_version} differs from current {IVM_SCHEMA_VERSION}",
            f"{path}.schema_version",
            metadata.schema_version,
        ))
    if not metadata.generated_at:
        errors.append(ValidationError(
            "MISSING_GENERATED_AT", "Graph metadata must have a generation timestamp", f"{path}.generated_at",
        ))
    if not metadata.root_path:
        errors.append(ValidationError("MISSING_ROOT_PATH", "Graph metadata must have a root path", f"{path}.root_path"))
    if metadata.stats is None:
        errors.append(ValidationError("MISSING_STATS", "Graph metadata must have stats", f"{path}.stats"))

    result.valid = not errors
    return result


def validate_bounds(bounds: Optional[BoundingBox], path: str = "bounds") -> ValidationResult:
    result = ValidationResult()
    if bounds is None:
        result.errors.append(ValidationError("MISSING_BOUNDS", "Graph must have bounds", path))
    else:
        result.merge(validate_position(bounds.min, f"{path}.min"))
        result.merge(validate_position(bounds.max, f"{path}.max"))
        if not result.errors:
            for axis in ("x", "y", "z"):
                if getattr(bounds.min, axis) > getattr(bounds.max, axis):
                    result.errors.append(ValidationError(
                        "INVALID_BOUNDS", f"Bounds min.{axis} exceeds max.{axis}", f"{path}.min.{axis}",
                    ))
    result.valid = not result.errors
    return result


def validate_graph(graph: VisualizationGraph) -> ValidationResult:
    """Run every node, edge, metadata and bounds check on *graph*."""
    result = ValidationResult()

    node_ids: Set[str] = set()
    duplicates: List[str] = []
    for i, node in enumerate(graph.nodes):
        result.merge(validate_node(node, f"nodes[{i}]"))
        if node.id:
            if node.id in node_ids and node.id not in duplicates:
                duplicates.append(node.id)
            node_ids.add(node.id)
    if duplicates:
        result.errors.append(ValidationError(
            "DUPLICATE_NODE_IDS", f"Duplicate node IDs found: {', '.join(duplicates)}", "nodes", duplicates,
        ))

    edge_ids: Set[str] = set()
    duplicate_edges: List[str] = []
    for i, edge in enumerate(graph.edges):
        result.merge(validate_edge(edge, f"edges[{i}]", node_ids))
        if edge.id:
            if edge.id in edge_ids and edge.id not in duplicate_edges:
                duplicate_edges.append(edge.id)
            edge_ids.add(edge.id)
    if duplicate_edges:
        result.errors.append(ValidationError(
            "DUPLICATE_EDGE_IDS", f"Duplicate edge IDs found: {', '.join(duplicate_edges)}", "edges", duplicate_edges,
        ))

    for i, node in enumerate(graph.nodes):
        if node.parent_id and node.parent_id not in node_ids:
            result.errors.append(ValidationError(
                "INVALID_PARENT_REFERENCE",
                f"Node references non-existent parent: {node.parent_id}",
                f"nodes[{i}].parent_id",
                node.parent_id,
            ))

    result.merge(validate_graph_metadata(graph.metadata))
    result.merge(validate_bounds(graph.bounds))
    result.valid = not result.errors
    return result


def is_valid_graph(graph: VisualizationGraph) -> bool:
    return validate_graph(graph).valid


def assert_valid_graph(graph: VisualizationGraph) -> ValidationResult:
    """Validate and raise :class:`GraphValidationError` if there are errors.

    Warnings alone never raise. Returns the result so callers can log them.
    """
    result = validate_graph(graph)
    if not result.valid:
        raise GraphValidationError(result)
    return result
