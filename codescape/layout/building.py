"""Building layout: one file as a building, its classes as floors."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..geometry import BoundingBox, Position3D, zero_bounds
from ..ivm import VisualizationGraph, VisualizationNode
from .base import ConfigInput, LayoutConfig, LayoutEngine, LayoutResult, is_external, sort_by_label

CLASS_KINDS = ("class", "abstract_class")


@dataclass
class BuildingLayoutConfig(LayoutConfig):
    floor_height: float = 4.0
    room_size: float = 2.0
    room_spacing: float = 1.0
    wall_padding: float = 2.0
    # Lay out this file instead of the first internal one.
    file_id: Optional[str] = None


class BuildingLayoutEngine(LayoutEngine):
    """Stack a file's classes as floors above a ground floor of file-level members.

    Rooms (methods, functions, variables) are arranged in a square grid on
    their floor. The building stands at the file node's current position.
    """

    type = "building"
    config_class = BuildingLayoutConfig

    def can_handle(self, graph: VisualizationGraph) -> bool:
        return any(
            node.parent_id is not None and node.kind in ("class", "function")
            for node in graph.nodes
        )

    def layout(self, graph: VisualizationGraph, config: ConfigInput = None) -> LayoutResult:
        cfg: BuildingLayoutConfig = self.resolve_config(config)
        building = self._pick_building(graph, cfg.file_id)
        if building is None:
            return self._finish({}, cfg, {"floor_count": 0}, bounds=zero_bounds())

        origin = building.position.copy()
        positions: Dict[str, Position3D] = {building.id: origin.copy()}
        children = graph.children_of(building.id)
        classes = sort_by_label(n for n in children if n.kind in CLASS_KINDS)
        ground = sort_by_label(n for n in children if n.kind not in CLASS_KINDS)

        floor = 0
        max_width = 0.0
        max_depth = 0.0
        if ground:
            width, depth = self._layout_floor(ground, origin, 0.0, cfg, positions)
            max_width = max(max_width, width)
            max_depth = max(max_depth, depth)
            floor += 1

        floors: List[Dict[str, Any]] = []
        for cls in classes:
            floor_y = floor * cfg.floor_height
            positions[cls.id] = Position3D(origin.x, origin.y + floor_y, origin.z)
            rooms = sort_by_label(graph.children_of(cls.id))
            if rooms:
                width, depth = self._layout_floor(rooms, origin, floor_y, cfg, positions)
                max_width = max(max_width, width)
                max_depth = max(max_depth, depth)
            floors.append({"class_id": cls.id, "floor_index": floor, "y": floor_y})
            floor += 1

        total_height = floor * cfg.floor_height
        pad = cfg.wall_padding
        bounds = BoundingBox(
            Position3D(origin.x - pad, origin.y, origin.z - pad),
            Position3D(
                origin.x + max(max_width, cfg.room_size) + pad,
                origin.y + total_height,
                origin.z + max(max_depth, cfg.room_size) + pad,
            ),
        )
        metadata = {
            "file_id": building.id,
            "floor_count": floor,
            "floor_height": cfg.floor_height,
            "building_width": max_width + pad * 2,
            "building_depth": max_depth + pad * 2,
            "total_height": total_height,
            "floors": floors,
        }
        return self._finish(positions, cfg, metadata, bounds=bounds)

    @staticmethod
    def _pick_building(graph: VisualizationGraph, file_id: Optional[str]) -> Optional[VisualizationNode]:
        if file_id is not None:
            node = graph.get_node(file_id)
            return node if node is not None and node.kind == "file" else None
        for node in graph.nodes:
            if node.kind == "file" and not is_external(node):
                return node
        return None

    @staticmethod
    def _layout_floor(
        rooms: List[VisualizationNode],
        origin: Position3D,
        floor_y: float,
        cfg: BuildingLayoutConfig,
        positions: Dict[str, Position3D],
    ) -> Tuple[float, float]:
        """Place *rooms* on a square grid; returns the floor's (width, depth)."""
        grid_size = max(1, math.ceil(math.sqrt(len(rooms))))
        step = (cfg.room_size + cfg.room_spacing) * cfg.spacing
        half = cfg.room_size / 2
        for i, room in enumerate(rooms):
            col = i % grid_size
            row = i // grid_size
            positions[room.id] = Position3D(
                origin.x + col * step + half,
                origin.y + floor_y + half,
                origin.z + row * step + half,
            )
        return grid_size * step, math.ceil(len(rooms) / grid_size) * step
