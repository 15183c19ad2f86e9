"""Typer-based CLI for codescape."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__, config
from .errors import CodescapeError
from .ivm import VisualizationGraph
from .layout import default_registry
from .lod import create_lod_graph
from .pipeline import AUTO_LAYOUT, CodescapePipeline
from .validator import validate_graph

app = typer.Typer(
    help="Codescape: turn a JavaScript/TypeScript source tree into a 3D code map.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

err_console = Console(stderr=True)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"codescape v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    )
):
    """Codescape: parse, graph, and lay out a codebase for 3D visualization."""
    pass


def _configure_logging(verbose: bool) -> None:
    # stdout may carry the graph JSON
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def _load_settings() -> dict:
    try:
        return config.load_config()
    except CodescapeError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)


def _read_graph(graph_file: Path) -> VisualizationGraph:
    try:
        return VisualizationGraph.from_json(graph_file.read_text(encoding="utf-8"))
    except (ValueError, TypeError, KeyError, AttributeError) as exc:
        typer.echo(f"Error: {graph_file} is not a visualization graph: {exc}", err=True)
        raise typer.Exit(code=1)


def _write_graph(graph: VisualizationGraph, output: Optional[Path]) -> None:
    text = graph.to_json()
    if output is None:
        typer.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")
    typer.echo(f"Wrote {output}", err=True)


@app.command("build")
def build(
    project_path: Path = typer.Argument(..., exists=True, file_okay=False, help="Path to source project."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write graph JSON here instead of stdout."),
    layout: str = typer.Option(AUTO_LAYOUT, "--layout", "-l", help="Layout engine type, or 'auto'."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for randomized layout steps."),
    external: bool = typer.Option(True, "--external/--no-external", help="Include external package nodes."),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
):
    """Parse a project, build its graph, lay it out and emit JSON."""
    _configure_logging(verbose)
    settings = _load_settings()
    pipeline = CodescapePipeline(config=settings)
    overrides = {"seed": seed} if seed is not None else None
    try:
        result = pipeline.run_directory(project_path, layout=layout, include_external=external, overrides=overrides)
    except CodescapeError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    _write_graph(result.graph, output)

    table = Table(title="Codescape build", title_style="bold cyan")
    table.add_column("Metric", style="dim")
    table.add_column("Value", justify="right")
    for key, value in result.stages.items():
        table.add_row(key.replace("_", " "), str(value))
    table.add_row("layout", result.engine or "none")
    table.add_row("valid", "yes" if result.validation.valid else "no")
    err_console.print(table)
    for path, message in sorted(result.build.errors.items()):
        err_console.print(f"  [yellow]partial[/yellow] {path}: {message}")


@app.command("validate")
def validate(graph_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Graph JSON file.")):
    """Check a graph JSON file against the visualization model rules."""
    graph = _read_graph(graph_file)
    result = validate_graph(graph)
    for error in result.errors:
        typer.echo(f"error   {error.code:<28} {error.path}: {error.message}")
    for warning in result.warnings:
        typer.echo(f"warning {warning.code:<28} {warning.path}: {warning.message}")
    if not result.valid:
        typer.echo(f"Invalid: {len(result.errors)} error(s), {len(result.warnings)} warning(s).")
        raise typer.Exit(code=1)
    typer.echo(f"Valid: {len(graph.nodes)} nodes, {len(graph.edges)} edges, {len(result.warnings)} warning(s).")


@app.command("lod")
def lod(
    graph_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Graph JSON file."),
    level: Optional[int] = typer.Option(None, "--level", "-l", min=0, max=5, help="Highest LOD tier to keep."),
    ancestors: bool = typer.Option(False, "--ancestors", help="Keep the parent chain of every kept node."),
    collapse: bool = typer.Option(False, "--collapse", help="Re-attach hidden edges to visible ancestors."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write filtered JSON here instead of stdout."),
):
    """Filter a graph JSON file down to one level of detail."""
    graph = _read_graph(graph_file)
    if level is None:
        level = config.default_lod_level(_load_settings())
    _write_graph(create_lod_graph(graph, level, include_ancestors=ancestors, collapse_edges=collapse), output)


@app.command("engines")
def engines():
    """List layout engines in auto-selection order."""
    for index, engine in enumerate(default_registry().get_all(), 1):
        typer.echo(f"{index}. {engine.type}")
