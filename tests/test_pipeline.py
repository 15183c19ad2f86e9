"""Tests for the end-to-end pipeline."""

from pathlib import Path

import pytest

from codescape.errors import LayoutError
from codescape.pipeline import CodescapePipeline, collect_sources, load_manifest


@pytest.fixture
def pipeline(parser) -> CodescapePipeline:
    return CodescapePipeline(parser=parser)


def _write(root: Path, relative: str, content: str = "") -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class TestCollectSources:
    """Tests for source discovery."""

    def test_skips_vendor_and_unsupported(self, temp_dir: Path):
        """Test that node_modules, build output and non-source files are skipped."""
        _write(temp_dir, "src/a.ts", "export const a = 1;")
        _write(temp_dir, "src/b.js")
        _write(temp_dir, "node_modules/pkg/index.js")
        _write(temp_dir, "dist/a.js")
        _write(temp_dir, "README.md")
        sources = collect_sources(temp_dir)
        assert [s.path for s in sources] == ["src/a.ts", "src/b.js"]
        assert sources[0].content == "export const a = 1;"

    def test_sample_project(self, sample_project_path: Path):
        """Test the fixture project's file list."""
        paths = [s.path for s in collect_sources(sample_project_path)]
        assert paths[0] == "src/index.ts"
        assert len(paths) == 6
        assert "src/utils/log.js" in paths


class TestLoadManifest:
    """Tests for package.json loading."""

    def test_sample_manifest(self, sample_project_path: Path):
        """Test reading dependencies."""
        manifest = load_manifest(sample_project_path)
        assert manifest["dependencies"] == {"express": "^4.18.0"}

    def test_missing_or_unreadable(self, temp_dir: Path):
        """Test that absent, broken or non-object manifests give None."""
        assert load_manifest(temp_dir) is None
        (temp_dir / "package.json").write_text("{oops", encoding="utf-8")
        assert load_manifest(temp_dir) is None
        (temp_dir / "package.json").write_text("[1, 2]", encoding="utf-8")
        assert load_manifest(temp_dir) is None


class TestPipeline:
    """Tests for CodescapePipeline."""

    def test_run_directory(self, pipeline: CodescapePipeline, sample_project_path: Path):
        """Test the sample project through every stage."""
        result = pipeline.run_directory(sample_project_path)
        assert result.engine == "city"
        assert result.validation.valid
        assert result.stages["files"] == 6
        assert result.stages["file_errors"] == 0
        assert result.stages["nodes"] == len(result.graph.nodes)
        assert result.graph.metadata.name == "sample_project"
        index = result.graph.get_node("file:src/index.ts")
        assert index.position == result.layout.positions["file:src/index.ts"]

    def test_without_externals(self, pipeline: CodescapePipeline, sample_project_path: Path):
        """Test the include_external switch."""
        result = pipeline.run_directory(sample_project_path, include_external=False)
        assert not [n for n in result.graph.nodes if n.kind == "module"]
        assert result.layout.metadata["external_count"] == 0

    def test_explicit_engine_with_overrides(self, pipeline: CodescapePipeline, three_file_project):
        """Test choosing an engine and passing settings to it."""
        result = pipeline.run(three_file_project, layout="force", overrides={"max_iterations": 5})
        assert result.engine == "force"
        assert result.layout.metadata["iterations"] <= 5
        assert result.validation.valid

    def test_radial_city_by_name(self, pipeline: CodescapePipeline, sample_project_path: Path):
        """Test the radial city engine through the pipeline."""
        result = pipeline.run_directory(sample_project_path, layout="radial-city")
        assert result.engine == "radial-city"
        assert result.validation.valid
        assert set(result.layout.positions) == {n.id for n in result.graph.nodes}

    def test_config_settings_reach_engine(self, parser, sample_project_path: Path):
        """Test [layout.<engine>] settings from the config."""
        pipeline = CodescapePipeline(parser=parser, config={"layout": {"city": {"floor_height": 10.0}}})
        result = pipeline.run_directory(sample_project_path)
        assert result.graph.get_node("file:src/services/baseService.ts").position.y == 20.0

    def test_unknown_engine(self, pipeline: CodescapePipeline, three_file_project):
        """Test that an unregistered engine type raises LayoutError."""
        with pytest.raises(LayoutError):
            pipeline.run(three_file_project, layout="hexagon")

    def test_empty_directory(self, pipeline: CodescapePipeline, temp_dir: Path):
        """Test that an empty tree yields an empty, valid graph with no layout."""
        result = pipeline.run_directory(temp_dir)
        assert result.graph.nodes == []
        assert result.layout is None
        assert result.engine is None
        assert result.validation.valid

    def test_partial_failure_reported(self, pipeline: CodescapePipeline):
        """Test that a failing file is counted and the rest still builds."""
        result = pipeline.run([("a.ts", "export function a() {}"), ("b.txt", "plain")])
        assert result.stages["file_errors"] == 1
        assert result.stages["files"] == 1
        assert result.graph.get_node("function:a.ts:a") is not None


def test_end_to_end_three_files(pipeline: CodescapePipeline):
    """Test an entry point, a greeter and a utility class through every stage."""
    files = [
        ("src/index.ts", "import { greet } from './greet';\nconsole.log(greet('world'));\n"),
        ("src/greet.ts", "export function greet(name: string): string {\n  return `Hello ${name}`;\n}\n"),
        ("src/utils.ts", (
            "export class StringUtils {\n"
            "  static upper(s: string): string { return s.toUpperCase(); }\n"
            "}\n"
            "export function trim(s: string): string { return s.trim(); }\n"
        )),
    ]
    result = pipeline.run(files, name="greeter")
    graph = result.graph
    kinds = [n.kind for n in graph.nodes]
    assert kinds.count("file") == 3
    assert kinds.count("function") >= 2
    assert kinds.count("class") >= 1
    assert any(e.kind == "imports" for e in graph.edges)
    assert all(n.position.is_finite() for n in graph.nodes)
    box = graph.bounds
    assert box.min.x <= box.max.x and box.min.y <= box.max.y and box.min.z <= box.max.z
    assert graph.metadata.stats.total_nodes == len(graph.nodes)
    assert graph.metadata.stats.total_edges == len(graph.edges)
    assert result.validation.valid


def test_empty_input(pipeline: CodescapePipeline):
    """Test that zero files gives zero nodes, zero stats and a schema version."""
    result = pipeline.run([])
    stats = result.graph.metadata.stats
    assert (stats.total_nodes, stats.total_edges, stats.total_loc) == (0, 0, 0)
    assert stats.nodes_by_type == {}
    assert result.graph.metadata.schema_version == "1.0.0"
