"""End-to-end pipeline: source files to a positioned visualization graph."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .config import layout_overrides
from .graph_builder import BuildOptions, BuildResult, GraphBuilder, SourceFile, SourceInput
from .ivm import VisualizationGraph, convert_dependency_graph
from .layout import LayoutRegistry, LayoutResult, apply_layout_to_graph, default_registry
from .parser import SKIP_DIRS, SourceParser, is_supported_file
from .validator import ValidationResult, validate_graph

logger = logging.getLogger(__name__)

AUTO_LAYOUT = "auto"


def collect_sources(root: Path) -> List[SourceFile]:
    """Read every grammar-backed file under *root*, in sorted path order.

    Paths are stored relative to *root* with ``/`` separators.
    """
    root = Path(root)
    sources: List[SourceFile] = []
    for file_path in sorted(root.rglob("*")):
        if not file_path.is_file() or not is_supported_file(file_path):
            continue
        relative = file_path.relative_to(root)
        if any(part in SKIP_DIRS for part in relative.parts):
            continue
        content = file_path.read_text(encoding="utf-8", errors="replace")
        sources.append(SourceFile(relative.as_posix(), content))
    logger.debug("Collected %d source files under %s", len(sources), root)
    return sources


def load_manifest(root: Path) -> Optional[Dict[str, Any]]:
    """Parsed ``package.json`` at *root*, or None if absent or unreadable."""
    manifest_path = Path(root) / "package.json"
    if not manifest_path.exists():
        return None
    try:
        with open(manifest_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable %s: %s", manifest_path, exc)
        return None
    return data if isinstance(data, dict) else None


@dataclass
class PipelineResult:
    build: BuildResult
    graph: VisualizationGraph
    validation: ValidationResult
    layout: Optional[LayoutResult] = None
    engine: Optional[str] = None
    stages: Dict[str, int] = field(default_factory=dict)


class CodescapePipeline:
    """Coordinates parsing, graph building, conversion, layout and validation.

    The parser and the layout registry are explicit handles so that
    grammars and engines can be shared across runs.
    """

    def __init__(
        self,
        parser: Optional[SourceParser] = None,
        registry: Optional[LayoutRegistry] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        self.parser = parser or SourceParser()
        self.registry = registry or default_registry()
        self.config = config or {}

    def build(self, sources: Iterable[SourceInput], options: Optional[BuildOptions] = None) -> BuildResult:
        return GraphBuilder(self.parser, options).build(sources)

    def layout(
        self,
        graph: VisualizationGraph,
        engine_type: str = AUTO_LAYOUT,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> Optional[LayoutResult]:
        """Run one engine over *graph* and merge its positions in place.

        ``"auto"`` picks the first registered engine that can handle the
        graph; returns None when none can.

        Raises:
            LayoutError: *engine_type* names an engine that is not registered.
        """
        if engine_type == AUTO_LAYOUT:
            engine = self.registry.auto_select(graph)
            if engine is None:
                logger.info("No layout engine applies; keeping initial positions")
                return None
        else:
            engine = self.registry.require(engine_type)
        settings = layout_overrides(self.config, engine.type)
        settings.update(overrides or {})
        result = engine.layout(graph, settings)
        result.metadata.setdefault("engine", engine.type)
        apply_layout_to_graph(graph, result)
        logger.debug("Applied %s layout to %d nodes", engine.type, len(result.positions))
        return result

    def run(
        self,
        sources: Iterable[SourceInput],
        name: str = "codebase",
        root_path: str = ".",
        layout: str = AUTO_LAYOUT,
        options: Optional[BuildOptions] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> PipelineResult:
        build = self.build(sources, options)
        graph = convert_dependency_graph(build.graph, name=name, root_path=root_path)
        layout_result = self.layout(graph, layout, overrides)
        validation = validate_graph(graph)
        for warning in validation.warnings:
            logger.warning("%s: %s", warning.path, warning.message)
        return PipelineResult(
            build=build,
            graph=graph,
            validation=validation,
            layout=layout_result,
            engine=layout_result.metadata.get("engine") if layout_result else None,
            stages={
                "files": len(build.analyses),
                "file_errors": len(build.errors),
                "nodes": len(graph.nodes),
                "edges": len(graph.edges),
            },
        )

    def run_directory(
        self,
        root: Path,
        layout: str = AUTO_LAYOUT,
        include_external: bool = True,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> PipelineResult:
        root = Path(root)
        options = BuildOptions(include_external=include_external, manifest=load_manifest(root))
        return self.run(
            collect_sources(root),
            name=root.resolve().name or "codebase",
            root_path=str(root),
            layout=layout,
            options=options,
            overrides=overrides,
        )
