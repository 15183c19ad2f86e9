"""Tests for visualization graph validation."""

import math

import pytest

from codescape.errors import GraphValidationError
from codescape.geometry import BoundingBox, Position3D, zero_bounds
from codescape.ivm import GraphMetadata, VisualizationEdge, VisualizationGraph
from codescape.validator import (
    assert_valid_graph,
    is_valid_graph,
    validate_bounds,
    validate_edge,
    validate_graph,
    validate_node,
)


def _graph(nodes, edges=(), **metadata):
    meta = {"name": "test", "root_path": ".", "generated_at": "2024-01-01T00:00:00+00:00"}
    meta.update(metadata)
    return VisualizationGraph(
        nodes=list(nodes),
        edges=list(edges),
        metadata=GraphMetadata(**meta),
        bounds=zero_bounds(),
    )


def _edge(source, target, kind="imports", edge_id=None):
    return VisualizationEdge(id=edge_id or f"{source}->{target}", source=source, target=target, kind=kind)


def test_minimal_graph_is_valid(node_factory):
    """Test a small well-formed graph."""
    graph = _graph([node_factory("a"), node_factory("b")], [_edge("a", "b")])
    result = validate_graph(graph)
    assert result.valid
    assert result.errors == []
    assert is_valid_graph(graph)


def test_empty_graph_is_valid():
    """Test that no nodes and no edges is fine."""
    assert validate_graph(_graph([])).valid


class TestNodeChecks:
    """Tests for per-node validation."""

    def test_missing_id(self, node_factory):
        """Test the MISSING_ID code."""
        node = node_factory("")
        node.metadata.label = "x"
        assert "MISSING_ID" in validate_node(node, "nodes[0]").error_codes()

    def test_invalid_type(self, node_factory):
        """Test unknown node kinds."""
        result = validate_node(node_factory("a", kind="widget"), "nodes[0]")
        assert result.error_codes() == ["INVALID_NODE_TYPE"]
        assert result.errors[0].path == "nodes[0].type"

    @pytest.mark.parametrize("lod", [-1, 6, 2.5, True])
    def test_invalid_lod(self, node_factory, lod):
        """Test LOD range and integer checks."""
        assert "INVALID_LOD" in validate_node(node_factory("a", lod=lod), "n").error_codes()

    def test_non_finite_position(self, node_factory):
        """Test NaN and infinite coordinates."""
        node = node_factory("a")
        node.position = Position3D(math.nan, 0.0, math.inf)
        result = validate_node(node, "nodes[0]")
        paths = [e.path for e in result.errors if e.code == "INVALID_POSITION"]
        assert paths == ["nodes[0].position.x", "nodes[0].position.z"]

    def test_missing_label_and_path(self, node_factory):
        """Test required metadata fields."""
        node = node_factory("a")
        node.metadata.label = ""
        node.metadata.path = ""
        codes = validate_node(node, "n").error_codes()
        assert "MISSING_LABEL" in codes
        assert "MISSING_PATH" in codes

    def test_negative_loc_is_warning(self, node_factory):
        """Test that bad metrics only warn."""
        node = node_factory("a")
        node.metadata.loc = -3
        node.metadata.complexity = math.nan
        result = validate_node(node, "n")
        assert result.valid
        assert result.warning_codes() == ["INVALID_LOC", "INVALID_COMPLEXITY"]


class TestEdgeChecks:
    """Tests for per-edge validation."""

    def test_dangling_endpoints(self):
        """Test source and target references."""
        result = validate_edge(_edge("a", "z"), "edges[0]", {"a"})
        assert result.error_codes() == ["INVALID_TARGET"]
        result = validate_edge(_edge("", "a"), "edges[0]", {"a"})
        assert result.error_codes() == ["MISSING_SOURCE"]

    def test_invalid_edge_type(self):
        """Test unknown edge kinds."""
        result = validate_edge(_edge("a", "b", kind="links"), "e", {"a", "b"})
        assert result.error_codes() == ["INVALID_EDGE_TYPE"]

    def test_self_reference_warns(self):
        """Test that a self-loop is a warning, not an error."""
        result = validate_edge(_edge("a", "a", kind="calls"), "e", {"a"})
        assert result.valid
        assert result.warning_codes() == ["SELF_REFERENCE"]


class TestGraphChecks:
    """Tests for whole-graph validation."""

    def test_duplicate_node_ids(self, node_factory):
        """Test that repeated node ids are reported once."""
        graph = _graph([node_factory("a"), node_factory("a"), node_factory("a")])
        result = validate_graph(graph)
        assert result.error_codes() == ["DUPLICATE_NODE_IDS"]
        assert result.errors[0].value == ["a"]

    def test_duplicate_edge_ids(self, node_factory):
        """Test repeated edge ids."""
        graph = _graph(
            [node_factory("a"), node_factory("b")],
            [_edge("a", "b", edge_id="e1"), _edge("b", "a", edge_id="e1")],
        )
        assert validate_graph(graph).error_codes() == ["DUPLICATE_EDGE_IDS"]

    def test_dangling_parent(self, node_factory):
        """Test parent ids that name no node."""
        graph = _graph([node_factory("child", kind="method", parent_id="ghost")])
        result = validate_graph(graph)
        assert result.error_codes() == ["INVALID_PARENT_REFERENCE"]
        assert result.errors[0].path == "nodes[0].parent_id"

    def test_edge_to_missing_node(self, node_factory):
        """Test whole-graph endpoint checks."""
        result = validate_graph(_graph([node_factory("a")], [_edge("x", "a")]))
        assert result.error_codes() == ["INVALID_SOURCE"]

    def test_version_mismatch_warns(self, node_factory):
        """Test that another schema version only warns."""
        result = validate_graph(_graph([node_factory("a")], schema_version="0.9.0"))
        assert result.valid
        assert result.warning_codes() == ["VERSION_MISMATCH"]

    def test_missing_metadata_fields(self):
        """Test required graph metadata."""
        graph = _graph([], name="", root_path="", generated_at="")
        graph.metadata.stats = None
        codes = validate_graph(graph).error_codes()
        assert {"MISSING_NAME", "MISSING_ROOT_PATH", "MISSING_GENERATED_AT", "MISSING_STATS"} <= set(codes)

    def test_inverted_bounds(self):
        """Test min > max bounds."""
        box = BoundingBox(Position3D(1.0, 0.0, 0.0), Position3D(0.0, 0.0, 0.0))
        assert validate_bounds(box).error_codes() == ["INVALID_BOUNDS"]
        assert validate_bounds(None).error_codes() == ["MISSING_BOUNDS"]


class TestAssertValid:
    """Tests for the raising wrapper."""

    def test_raises_with_result(self, node_factory):
        """Test that errors raise GraphValidationError carrying the result."""
        graph = _graph([node_factory("a", kind="widget")])
        with pytest.raises(GraphValidationError) as exc_info:
            assert_valid_graph(graph)
        assert exc_info.value.result.error_codes() == ["INVALID_NODE_TYPE"]
        assert "nodes[0].type" in str(exc_info.value)

    def test_warnings_do_not_raise(self, node_factory):
        """Test that a warning-only graph returns its result."""
        graph = _graph([node_factory("a")], [_edge("a", "a", kind="calls")])
        result = assert_valid_graph(graph)
        assert result.valid
        assert result.warning_codes() == ["SELF_REFERENCE"]
