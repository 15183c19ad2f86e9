"""Cell layout: a class as a cell, its members as organelles inside a membrane."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..geometry import BoundingBox, Position3D, zero_bounds
from ..ivm import VisualizationGraph, VisualizationNode
from .base import ConfigInput, LayoutConfig, LayoutEngine, LayoutResult

CELL_KINDS = ("class", "abstract_class")
NUCLEUS_KINDS = ("variable",)

GOLDEN_ANGLE = math.pi * (3 - math.sqrt(5))

# Maximum angular perturbation, in radians, applied to shell organelles.
ANGULAR_JITTER = 0.15


@dataclass
class CellLayoutConfig(LayoutConfig):
    membrane_radius: float = 10.0
    organelle_spacing: float = 1.5
    nucleus_radius: float = 3.0
    # Lay out this class instead of the first class that has members.
    cell_id: Optional[str] = None


def _shell_radii(cfg: CellLayoutConfig):
    """Return (nucleus, inner, outer) radii, each clamped inside the membrane."""
    membrane = max(cfg.membrane_radius, 0.0)
    spacing = max(cfg.organelle_spacing, 0.0)
    outer = max(membrane - spacing, 0.0)
    inner = min(max(cfg.nucleus_radius, 0.0) + spacing, outer)
    nucleus = min(max(cfg.nucleus_radius, 0.0), inner)
    return nucleus, inner, outer


def _on_sphere(center: Position3D, r: float, theta: float, phi: float) -> Position3D:
    return Position3D(
        center.x + r * math.sin(phi) * math.cos(theta),
        center.y + r * math.cos(phi),
        center.z + r * math.sin(phi) * math.sin(theta),
    )


class CellLayoutEngine(LayoutEngine):
    """Place a class's direct children inside a sphere around the class.

    Variables cluster in the nucleus; methods, functions and other members
    sit on a golden-angle spiral in the outer shell. Every child lies at
    most ``membrane_radius`` from the class center. The random stream is
    seeded from the class id, so the same class always lays out the same.
    """

    type = "cell"
    config_class = CellLayoutConfig

    def can_handle(self, graph: VisualizationGraph) -> bool:
        parents = {node.parent_id for node in graph.nodes if node.parent_id is not None}
        return any(node.kind in CELL_KINDS and node.id in parents for node in graph.nodes)

    def layout(self, graph: VisualizationGraph, config: ConfigInput = None) -> LayoutResult:
        cfg: CellLayoutConfig = self.resolve_config(config)
        cell = self._pick_cell(graph, cfg.cell_id)
        if cell is None:
            return self._finish({}, cfg, {"organelle_count": 0}, bounds=zero_bounds())

        center = cell.position.copy()
        positions: Dict[str, Position3D] = {cell.id: center.copy()}
        organelles = graph.children_of(cell.id)
        state = [n for n in organelles if n.kind in NUCLEUS_KINDS]
        behaviour = [n for n in organelles if n.kind not in NUCLEUS_KINDS]

        rng = random.Random(cell.id)
        nucleus, inner, outer = _shell_radii(cfg)
        self._place_nucleus(state, center, nucleus, rng, positions)
        self._place_shell(behaviour, center, inner, outer, rng, positions)

        membrane = max(cfg.membrane_radius, 0.0)
        bounds = BoundingBox(
            Position3D(center.x - membrane, center.y - membrane, center.z - membrane),
            Position3D(center.x + membrane, center.y + membrane, center.z + membrane),
        )
        result = self._finish(positions, cfg, bounds=bounds)
        result.metadata = {
            "cell_id": cell.id,
            "cell_center": result.positions[cell.id].to_dict(),
            "membrane_radius": membrane * cfg.scale,
            "nucleus_radius": nucleus * cfg.scale,
            "organelle_count": len(organelles),
        }
        return result

    @staticmethod
    def _pick_cell(graph: VisualizationGraph, cell_id: Optional[str]) -> Optional[VisualizationNode]:
        if cell_id is not None:
            node = graph.get_node(cell_id)
            return node if node is not None and node.kind in CELL_KINDS else None
        classes = [n for n in graph.nodes if n.kind in CELL_KINDS]
        parents = {n.parent_id for n in graph.nodes if n.parent_id is not None}
        for node in classes:
            if node.id in parents:
                return node
        return classes[0] if classes else None

    @staticmethod
    def _place_nucleus(
        nodes: List[VisualizationNode],
        center: Position3D,
        radius: float,
        rng: random.Random,
        positions: Dict[str, Position3D],
    ) -> None:
        count = len(nodes)
        for i, node in enumerate(nodes):
            t = i / max(count - 1, 1)
            r = radius * math.sqrt(t) * 0.8
            phi = math.acos(1 - 2 * (rng.random() * 0.3 + 0.35))
            positions[node.id] = _on_sphere(center, r, i * GOLDEN_ANGLE, phi)

    @staticmethod
    def _place_shell(
        nodes: List[VisualizationNode],
        center: Position3D,
        inner: float,
        outer: float,
        rng: random.Random,
        positions: Dict[str, Position3D],
    ) -> None:
        # Jitter only rotates a point on its sphere, so its radius stays <= outer.
        count = len(nodes)
        for i, node in enumerate(nodes):
            t = (i + 0.5) / count
            r = inner + (outer - inner) * (0.3 + t * 0.7)
            theta = i * GOLDEN_ANGLE + rng.uniform(-ANGULAR_JITTER, ANGULAR_JITTER)
            phi = math.acos(1 - 2 * t) + rng.uniform(-ANGULAR_JITTER, ANGULAR_JITTER)
            positions[node.id] = _on_sphere(center, r, theta, phi)
