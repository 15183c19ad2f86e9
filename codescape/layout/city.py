"""City layout: files as buildings, directories as neighborhoods."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List

from ..geometry import Position3D
from ..ivm import VisualizationGraph, VisualizationNode
from .base import ConfigInput, LayoutConfig, LayoutEngine, LayoutResult, is_external, sort_by_label
from .blocks import file_blocks, place_block_children


@dataclass
class CityLayoutConfig(LayoutConfig):
    building_size: float = 2.0
    street_width: float = 1.0
    floor_height: float = 3.0
    neighborhood_gap: float = 5.0
    external_ring_radius: float = 50.0
    # entities sit just above their file's base
    child_y_offset: float = 0.1


def directory_of(path: str) -> str:
    """Directory part of a ``/``-separated path, or ``"root"`` for bare names."""
    slash = path.rfind("/")
    return path[:slash] if slash >= 0 else "root"


def group_by_directory(nodes: List[VisualizationNode]) -> Dict[str, List[VisualizationNode]]:
    groups: Dict[str, List[VisualizationNode]] = {}
    for node in nodes:
        path = node.metadata.path or node.metadata.label or ""
        groups.setdefault(directory_of(path), []).append(node)
    return {key: groups[key] for key in sorted(groups)}


class CityLayoutEngine(LayoutEngine):
    """Place internal files on the X-Z plane, one grid per directory.

    A file's height is its abstraction depth times ``floor_height``.
    Classes, functions and the rest of a file's descendants are packed on a
    grid inside that file's ``building_size`` footprint. External packages
    sit on a ring of ``external_ring_radius`` at ground level. Everything is
    sorted by label or id first so output is stable.
    """

    type = "city"
    config_class = CityLayoutConfig

    def can_handle(self, graph: VisualizationGraph) -> bool:
        return any(node.kind == "file" for node in graph.nodes)

    def layout(self, graph: VisualizationGraph, config: ConfigInput = None) -> LayoutResult:
        cfg: CityLayoutConfig = self.resolve_config(config)
        positions: Dict[str, Position3D] = {}

        internal = [n for n in graph.nodes if not is_external(n)]
        files = [n for n in internal if n.kind == "file"]
        externals = [n for n in graph.nodes if is_external(n)]
        neighborhoods = group_by_directory(files)

        grid_spacing = (cfg.building_size + cfg.street_width) * cfg.spacing
        offset_x = 0.0
        for members in neighborhoods.values():
            ordered = sort_by_label(members)
            grid_size = max(1, math.ceil(math.sqrt(len(ordered))))
            for i, node in enumerate(ordered):
                col = i % grid_size
                row = i // grid_size
                depth = node.metadata.properties.get("depth") or 0
                positions[node.id] = Position3D(
                    offset_x + col * grid_spacing,
                    depth * cfg.floor_height,
                    row * grid_spacing,
                )
            offset_x += grid_size * grid_spacing + cfg.neighborhood_gap

        blocks, _ = file_blocks(internal)
        child_count = 0
        for file_id, children in blocks.items():
            place_block_children(
                positions, positions[file_id], children,
                cfg.building_size * cfg.spacing, cfg.child_y_offset,
            )
            child_count += len(children)

        if externals:
            ordered = sort_by_label(externals)
            step = 2 * math.pi / len(ordered)
            for i, node in enumerate(ordered):
                angle = i * step
                positions[node.id] = Position3D(
                    math.cos(angle) * cfg.external_ring_radius,
                    0.0,
                    math.sin(angle) * cfg.external_ring_radius,
                )

        result = self._finish(positions, cfg)
        box = result.bounds
        result.metadata = {
            "building_size": cfg.building_size,
            "floor_height": cfg.floor_height,
            "neighborhood_count": len(neighborhoods),
            "neighborhoods": list(neighborhoods),
            "child_count": child_count,
            "external_count": len(externals),
            "ground_plane": {
                "y": cfg.origin.y,
                "width": box.max.x - box.min.x,
                "depth": box.max.z - box.min.z,
            },
        }
        return result
