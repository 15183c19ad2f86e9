"""Tests for the dependency graph -> visualization model conversion."""

import json

from codescape.geometry import Position3D
from codescape.graph import DependencyGraph, DependencyNode
from codescape.graph_builder import build_dependency_graph
from codescape.ivm import (
    IVM_SCHEMA_VERSION,
    VisualizationGraph,
    assign_edge_lod,
    assign_grid_positions,
    assign_lod,
    calculate_stats,
    convert_dependency_graph,
    refresh_graph,
)
from codescape.validator import validate_graph


def _convert(parser, files, **kwargs):
    return convert_dependency_graph(build_dependency_graph(files, parser).graph, **kwargs)


class TestLodAssignment:
    """Tests for static LOD tiers."""

    def test_node_tiers(self):
        """Test coarse structure below fine detail."""
        assert assign_lod("directory") == 2
        assert assign_lod("module") == 2
        assert assign_lod("file") == 3
        assert assign_lod("class") == 4
        assert assign_lod("function") == 4
        assert assign_lod("method") == 5
        assert assign_lod("variable") == 5

    def test_unknown_kind_gets_default(self):
        """Test the default tier for unmapped kinds."""
        assert assign_lod("mystery") == 3

    def test_edge_tier_is_max_of_endpoints(self):
        """Test edge LOD."""
        assert assign_edge_lod(3, 5) == 5
        assert assign_edge_lod(2, 2) == 2


def test_every_node_and_edge_converted(sample_build, sample_visual_graph):
    """Test a one-to-one mapping of nodes and edges."""
    assert [n.id for n in sample_visual_graph.nodes] == [n.id for n in sample_build.graph.nodes]
    assert len(sample_visual_graph.edges) == sample_build.graph.edge_count
    for edge in sample_visual_graph.edges:
        source = sample_visual_graph.get_node(edge.source)
        target = sample_visual_graph.get_node(edge.target)
        assert edge.lod == max(source.lod, target.lod)


def test_parent_links_follow_containment(sample_visual_graph):
    """Test parent ids derived from contains edges."""
    graph = sample_visual_graph
    method = graph.get_node("method:src/services/userService.ts:UserService.describe")
    assert method.parent_id == "class:src/services/userService.ts:UserService"
    assert graph.get_node(method.parent_id).parent_id == "file:src/services/userService.ts"
    assert graph.get_node("file:src/index.ts").parent_id is None
    assert graph.get_node("external:express").parent_id is None


def test_dependency_counts_ignore_containment(parser, three_file_project):
    """Test dependency/dependent counts over non-contains edges."""
    graph = _convert(parser, three_file_project)
    index = graph.get_node("file:src/index.ts")
    assert index.metadata.dependency_count == 1
    assert index.metadata.dependent_count == 0
    helper = graph.get_node("function:src/helper.ts:helper")
    assert helper.metadata.dependency_count == 0
    assert helper.metadata.dependent_count == 1
    service = graph.get_node("class:src/service.ts:Service")
    assert service.metadata.dependent_count == 1


def test_metadata_promotion(parser, three_file_project):
    """Test that language, loc and location are first-class fields."""
    graph = _convert(parser, three_file_project)
    run = graph.get_node("method:src/service.ts:Service.run")
    assert run.metadata.label == "run"
    assert run.metadata.path == "src/service.ts"
    assert run.metadata.language == "typescript"
    assert run.metadata.location.start_line == 6
    assert run.metadata.location.end_line == 9
    assert "start_line" not in run.metadata.properties
    assert run.metadata.properties["visibility"] == "public"


def test_graph_metadata(parser, three_file_project):
    """Test name, version, timestamp, languages and stats."""
    graph = _convert(parser, three_file_project, name="demo", root_path="/repo")
    meta = graph.metadata
    assert meta.name == "demo"
    assert meta.root_path == "/repo"
    assert meta.schema_version == IVM_SCHEMA_VERSION
    assert meta.generated_at
    assert meta.languages == ["typescript"]
    assert meta.stats.total_nodes == len(graph.nodes)
    assert meta.stats.total_edges == len(graph.edges)
    assert sum(meta.stats.nodes_by_type.values()) == len(graph.nodes)
    assert meta.stats.edges_by_type["imports"] == 2


def test_sample_languages(sample_visual_graph):
    """Test languages in first-seen order, without 'unknown'."""
    assert set(sample_visual_graph.metadata.languages) == {"typescript", "javascript"}


def test_converted_graph_validates(sample_visual_graph):
    """Test that a converted graph has no validation errors."""
    result = validate_graph(sample_visual_graph)
    assert result.valid, [str(e) for e in result.errors]


def test_empty_graph():
    """Test that an empty dependency graph converts to an empty, valid model."""
    graph = convert_dependency_graph(DependencyGraph(), name="empty", root_path=".")
    assert graph.nodes == []
    assert graph.edges == []
    assert graph.bounds.to_dict() == {"min": {"x": 0.0, "y": 0.0, "z": 0.0}, "max": {"x": 0.0, "y": 0.0, "z": 0.0}}
    assert graph.metadata.stats.total_nodes == 0
    assert validate_graph(graph).valid


def test_edge_weight_from_repeat_count():
    """Test that repeated calls raise the edge weight."""
    dep = DependencyGraph()
    dep.add_node(DependencyNode("file:a.ts", "file", "a.ts", "a.ts"))
    dep.add_node(DependencyNode("function:a.ts:f", "function", "f", "a.ts"))
    dep.connect("file:a.ts", "function:a.ts:f", "calls")
    dep.connect("file:a.ts", "function:a.ts:f", "calls")
    (edge,) = convert_dependency_graph(dep).edges
    assert edge.metadata.weight == 2.0
    assert edge.metadata.label == "calls"


# ── Positions ────────────────────────────────────────────────────


def test_grid_positions(node_factory):
    """Test the row-major square grid."""
    nodes = [node_factory(f"n{i}") for i in range(4)]
    assign_grid_positions(nodes, spacing=100.0)
    assert [(n.position.x, n.position.z) for n in nodes] == [
        (-100.0, -100.0), (0.0, -100.0), (-100.0, 0.0), (0.0, 0.0),
    ]
    assert all(n.position.y == 0.0 for n in nodes)


def test_hierarchical_positions(parser, three_file_project):
    """Test children placed one level below their parent."""
    graph = _convert(parser, three_file_project, position_strategy="hierarchical", spacing=100.0)
    service_file = graph.get_node("file:src/service.ts")
    service = graph.get_node("class:src/service.ts:Service")
    run = graph.get_node("method:src/service.ts:Service.run")
    assert service_file.position.y == 0.0
    assert service.position.y == -50.0
    assert run.position.y == -100.0


def test_no_position_strategy(parser, three_file_project):
    """Test that None leaves every node at the origin."""
    graph = _convert(parser, three_file_project, position_strategy=None)
    assert all(n.position == Position3D() for n in graph.nodes)


def test_refresh_graph(sample_visual_graph):
    """Test bounds and stats recomputation after edits."""
    graph = sample_visual_graph
    graph.nodes[0].position = Position3D(1000.0, 5.0, -1000.0)
    del graph.edges[0]
    refresh_graph(graph)
    assert graph.bounds.max.x >= 1000.0
    assert graph.bounds.min.z <= -1000.0
    assert graph.metadata.stats.total_edges == len(graph.edges)


def test_calculate_stats_complexity(node_factory):
    """Test loc totals and the complexity average."""
    a = node_factory("a")
    b = node_factory("b")
    c = node_factory("c", kind="class")
    a.metadata.loc, a.metadata.complexity = 10, 2.0
    b.metadata.loc, b.metadata.complexity = 5, 4.0
    stats = calculate_stats([a, b, c], [])
    assert stats.total_loc == 15
    assert stats.avg_complexity == 3.0
    assert stats.nodes_by_type == {"file": 2, "class": 1}


# ── Serialization ────────────────────────────────────────────────


def test_json_round_trip(sample_visual_graph):
    """Test that from_json restores what to_json wrote."""
    text = sample_visual_graph.to_json()
    restored = VisualizationGraph.from_json(text)
    assert restored.to_dict() == sample_visual_graph.to_dict()


def test_json_uses_snake_case(sample_visual_graph):
    """Test the serialized key names."""
    data = json.loads(sample_visual_graph.to_json())
    assert set(data) == {"nodes", "edges", "metadata", "bounds"}
    assert "schema_version" in data["metadata"]
    assert "generated_at" in data["metadata"]
    method = next(n for n in data["nodes"] if n["type"] == "method")
    assert "parent_id" in method
    assert "dependency_count" in method["metadata"]


def test_from_dict_tolerates_missing_fields():
    """Test that partial documents load and fail validation instead of raising."""
    graph = VisualizationGraph.from_dict({"nodes": [{"id": "x"}]})
    assert graph.nodes[0].kind == ""
    assert graph.bounds is None
    result = validate_graph(graph)
    assert not result.valid
    assert "INVALID_NODE_TYPE" in result.error_codes()
    assert "MISSING_BOUNDS" in result.error_codes()
