"""Tests for the dependency graph, containment and abstraction depth."""

import pytest

from codescape.containment import build_containment_hierarchy
from codescape.depth import calculate_abstraction_depth, identify_entry_points
from codescape.graph import DependencyEdge, DependencyGraph, DependencyNode


def _file(path: str) -> DependencyNode:
    return DependencyNode(id=f"file:{path}", kind="file", name=path.rsplit("/", 1)[-1], path=path)


def _imports(*pairs):
    return [DependencyEdge(f"file:{a}", f"file:{b}", "imports") for a, b in pairs]


class TestDependencyGraph:
    """Tests for the arena-backed graph."""

    def test_add_and_lookup(self):
        """Test node insertion and index lookup."""
        graph = DependencyGraph()
        graph.add_node(_file("a.ts"))
        graph.add_node(_file("b.ts"))
        assert graph.node_count == 2
        assert graph.index_of("file:b.ts") == 1
        assert graph.node_at(0).path == "a.ts"
        assert graph.get_node("file:missing") is None

    def test_duplicate_node_keeps_first(self):
        """Test that a repeated id keeps the existing node."""
        graph = DependencyGraph()
        first = graph.add_node(DependencyNode("file:a.ts", "file", "a.ts", "a.ts", {"v": 1}))
        second = graph.add_node(DependencyNode("file:a.ts", "file", "a.ts", "a.ts", {"v": 2}))
        assert second is first
        assert len(graph) == 1

    def test_unknown_kind_rejected(self):
        """Test that unknown node and edge kinds raise."""
        graph = DependencyGraph()
        with pytest.raises(ValueError):
            graph.add_node(DependencyNode("x", "widget", "x", "x"))
        graph.add_node(_file("a.ts"))
        with pytest.raises(ValueError):
            graph.connect("file:a.ts", "file:a.ts", "likes")

    def test_dangling_edge_rejected(self):
        """Test that edges to unknown nodes raise."""
        graph = DependencyGraph()
        graph.add_node(_file("a.ts"))
        with pytest.raises(ValueError):
            graph.connect("file:a.ts", "file:b.ts", "imports")

    def test_repeated_edges_counted(self):
        """Test that repeated (source, target, kind) edges are merged with a count."""
        graph = DependencyGraph()
        graph.add_node(_file("a.ts"))
        graph.add_node(_file("b.ts"))
        graph.connect("file:a.ts", "file:b.ts", "imports")
        edge = graph.connect("file:a.ts", "file:b.ts", "imports")
        graph.connect("file:a.ts", "file:b.ts", "depends_on")
        assert graph.edge_count == 2
        assert edge.metadata["count"] == 2
        assert [e.kind for e in graph.outgoing("file:a.ts")] == ["imports", "depends_on"]
        assert [e.source for e in graph.incoming("file:b.ts", "imports")] == ["file:a.ts"]
        assert graph.adjacency("imports") == [[1], []]

    def test_to_dict(self):
        """Test plain-dict export."""
        graph = DependencyGraph()
        graph.add_node(_file("a.ts"))
        data = graph.to_dict()
        assert data["nodes"][0]["id"] == "file:a.ts"
        assert data["edges"] == []


class TestContainment:
    """Tests for parent/child hierarchy derivation."""

    def test_contains_edges_define_parents(self):
        """Test file -> class -> method chains."""
        nodes = [
            _file("a.ts"),
            DependencyNode("class:a.ts:A", "class", "A", "a.ts"),
            DependencyNode("method:a.ts:A.run", "method", "run", "a.ts"),
        ]
        edges = [
            DependencyEdge("file:a.ts", "class:a.ts:A", "contains"),
            DependencyEdge("class:a.ts:A", "method:a.ts:A.run", "contains"),
        ]
        hierarchy = build_containment_hierarchy(nodes, edges)
        assert hierarchy.parent_of("method:a.ts:A.run") == "class:a.ts:A"
        assert hierarchy.ancestors("method:a.ts:A.run") == ["class:a.ts:A", "file:a.ts"]
        assert hierarchy.roots == ["file:a.ts"]

    def test_orphan_entities_fall_back_to_file(self):
        """Test that entities without a contains edge attach to their file."""
        nodes = [_file("a.ts"), DependencyNode("function:a.ts:f", "function", "f", "a.ts")]
        hierarchy = build_containment_hierarchy(nodes, [])
        assert hierarchy.parent_of("function:a.ts:f") == "file:a.ts"
        assert hierarchy.children_of("file:a.ts") == ["function:a.ts:f"]

    def test_imports_do_not_create_parents(self):
        """Test that only contains edges matter."""
        nodes = [_file("a.ts"), _file("b.ts")]
        hierarchy = build_containment_hierarchy(nodes, _imports(("a.ts", "b.ts")))
        assert hierarchy.parents == {}


class TestAbstractionDepth:
    """Tests for entry points and BFS depth."""

    def test_entry_point_by_filename(self):
        """Test that index/main/app/server/entry files are entry points."""
        nodes = [_file("src/index.ts"), _file("src/lib.ts"), _file("src/main.js")]
        assert identify_entry_points(nodes, []) == ["file:src/index.ts", "file:src/main.js"]

    def test_entry_point_by_zero_incoming_importer(self):
        """Test that importers nobody imports are entry points too."""
        nodes = [_file("src/cli.ts"), _file("src/lib.ts")]
        edges = _imports(("src/cli.ts", "src/lib.ts"))
        assert identify_entry_points(nodes, edges) == ["file:src/cli.ts"]

    def test_fallback_to_root_level_then_all(self):
        """Test the root-level and all-nodes fallbacks."""
        assert identify_entry_points([_file("a.ts"), _file("src/b.ts")], []) == ["file:a.ts"]
        nodes = [_file("src/a.ts"), _file("src/b.ts")]
        assert identify_entry_points(nodes, []) == ["file:src/a.ts", "file:src/b.ts"]

    def test_depth_is_shortest_path(self):
        """Test BFS depth along imports."""
        nodes = [_file("index.ts"), _file("a.ts"), _file("b.ts"), _file("c.ts")]
        edges = _imports(("index.ts", "a.ts"), ("a.ts", "b.ts"), ("index.ts", "b.ts"), ("b.ts", "c.ts"))
        result = calculate_abstraction_depth(nodes, edges)
        assert result.depths == {
            "file:index.ts": 0,
            "file:a.ts": 1,
            "file:b.ts": 1,
            "file:c.ts": 2,
        }
        assert result.max_depth == 2
        assert result.orphans == []

    def test_orphans_get_max_plus_one(self):
        """Test that unreachable nodes sit one level below the deepest."""
        nodes = [_file("index.ts"), _file("a.ts"), _file("lonely.ts")]
        result = calculate_abstraction_depth(nodes, _imports(("index.ts", "a.ts")))
        assert result.depths["file:lonely.ts"] == 2
        assert result.orphans == ["file:lonely.ts"]
        assert result.max_depth == 2

    def test_cycles_terminate(self):
        """Test that import cycles do not loop."""
        nodes = [_file("index.ts"), _file("a.ts"), _file("b.ts")]
        edges = _imports(("index.ts", "a.ts"), ("a.ts", "b.ts"), ("b.ts", "a.ts"))
        result = calculate_abstraction_depth(nodes, edges)
        assert result.depths["file:b.ts"] == 2

    def test_empty(self):
        """Test that no nodes gives an empty result."""
        result = calculate_abstraction_depth([], [])
        assert result.depths == {} and result.max_depth == 0
