"""Radial city layout: depth rings, directory arcs and file blocks."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from ..geometry import Position3D
from ..ivm import VisualizationGraph, VisualizationNode
from .base import ConfigInput, LayoutConfig, LayoutEngine, LayoutResult, is_external, sort_by_label
from .blocks import block_footprint, file_blocks, place_block_children
from .city import directory_of, group_by_directory

# Clockwise order of infrastructure zones on the external ring.
ZONE_ORDER = ("database", "api", "queue", "cache", "auth", "logging", "filesystem", "general")

TWO_PI = 2 * math.pi


@dataclass
class RadialCityLayoutConfig(LayoutConfig):
    ring_spacing: float = 20.0
    arc_padding: float = 0.05
    building_spacing: float = 6.0
    center_radius: float = 10.0
    density: float = 1.0
    child_y_offset: float = 0.1


def ring_radius(depth: int, center_radius: float, ring_spacing: float) -> float:
    return center_radius + depth * ring_spacing


def _polar(angle: float, radius: float) -> Position3D:
    return Position3D(math.cos(angle) * radius, 0.0, math.sin(angle) * radius)


def assign_arcs(
    districts: Sequence[Tuple[str, int]],
    arc_padding: float,
) -> List[Tuple[str, float, float]]:
    """Split the circle among ``(id, node_count)`` districts by node count.

    ``arc_padding`` radians separate neighbouring arcs. Returns
    ``(id, start, end)`` triples starting at angle 0.
    """
    total = sum(count for _, count in districts)
    if not districts or total == 0:
        return []
    usable = max(0.0, TWO_PI - arc_padding * len(districts))
    arcs = []
    angle = 0.0
    for district_id, count in districts:
        size = count / total * usable
        arcs.append((district_id, angle, angle + size))
        angle += size + arc_padding
    return arcs


def positions_in_arc(
    node_ids: Sequence[str],
    start: float,
    end: float,
    radius: float,
    spacing: float,
) -> Dict[str, Position3D]:
    """Spread *node_ids* along an arc, at least *spacing* apart by chord.

    Angles are clamped just short of *end* so crowded arcs pile up at their
    end rather than spill into the next arc.
    """
    if not node_ids:
        return {}
    radius = max(radius, 0.1)
    half_chord = spacing / (2 * radius)
    min_step = math.pi if half_chord >= 1 else 2 * math.asin(half_chord)
    span = end - start
    step = max(span / len(node_ids) if len(node_ids) > 1 else span, min_step)
    return {
        node_id: _polar(min(start + (i + 0.5) * step, end - 0.001), radius)
        for i, node_id in enumerate(node_ids)
    }


def blocks_in_arc(
    blocks: Sequence[Tuple[str, float]],
    start: float,
    end: float,
    radius: float,
) -> Dict[str, Position3D]:
    """Place ``(id, footprint)`` blocks along an arc, each taking angle in proportion to its width."""
    if not blocks:
        return {}
    radius = max(radius, 0.1)
    span = end - start
    if len(blocks) == 1:
        return {blocks[0][0]: _polar(start + span / 2, radius)}
    total = sum(width for _, width in blocks)
    placed = {}
    before = 0.0
    for block_id, width in blocks:
        placed[block_id] = _polar(start + (before + width / 2) / total * span, radius)
        before += width
    return placed


def entry_positions(node_ids: Sequence[str], center_radius: float) -> Dict[str, Position3D]:
    """One entry point sits at the origin; several share a circle of half the center radius."""
    if len(node_ids) == 1:
        return {node_ids[0]: Position3D()}
    step = TWO_PI / len(node_ids) if node_ids else 0.0
    return {node_id: _polar(i * step, center_radius * 0.5) for i, node_id in enumerate(node_ids)}


def _effective_depths(files: Sequence[VisualizationNode]) -> Dict[str, int]:
    if any((f.metadata.properties.get("depth") or 0) > 0 for f in files):
        return {f.id: int(f.metadata.properties.get("depth") or 0) for f in files}
    # no depth information: fall back to path nesting below the shallowest file
    segments = {
        f.id: len([s for s in (f.metadata.path or f.metadata.label or "").split("/") if s])
        for f in files
    }
    shallowest = min(segments.values(), default=0)
    return {node_id: max(0, count - shallowest) for node_id, count in segments.items()}


def _zones(externals: Sequence[VisualizationNode]) -> List[Tuple[str, List[VisualizationNode]]]:
    groups: Dict[str, List[VisualizationNode]] = {}
    for node in externals:
        zone = node.metadata.properties.get("infrastructure_type") or "general"
        groups.setdefault(zone, []).append(node)
    ordered = [(zone, groups[zone]) for zone in ZONE_ORDER if zone in groups]
    ordered += [(zone, groups[zone]) for zone in sorted(groups) if zone not in ZONE_ORDER]
    return ordered


class RadialCityLayoutEngine(LayoutEngine):
    """Lay files out on concentric rings, one ring per abstraction depth.

    Entry points (depth 0) sit in the center. Deeper files are grouped by
    directory into districts, and each district gets an arc of its ring in
    proportion to its file count. Rings grow outward when a ring is too
    short to hold its files ``building_spacing`` apart, and every ring
    beyond it moves out by the same amount.

    Each file is a square block; its classes, functions and other
    descendants are packed on a grid inside the block. Entities without a
    file ancestor go into a block at the end of their directory's arc, or
    at the origin when no district matches. External packages share the
    outermost ring, grouped into infrastructure zones.
    """

    type = "radial-city"
    config_class = RadialCityLayoutConfig

    def can_handle(self, graph: VisualizationGraph) -> bool:
        return any(node.kind == "file" for node in graph.nodes)

    def layout(self, graph: VisualizationGraph, config: ConfigInput = None) -> LayoutResult:
        cfg: RadialCityLayoutConfig = self.resolve_config(config)
        ring_spacing = cfg.ring_spacing * cfg.density * cfg.spacing
        center_radius = cfg.center_radius * cfg.density * cfg.spacing
        building_spacing = cfg.building_spacing * cfg.density * cfg.spacing
        positions: Dict[str, Position3D] = {}

        internal = [n for n in graph.nodes if not is_external(n)]
        externals = [n for n in graph.nodes if is_external(n)]
        files = sort_by_label(n for n in internal if n.kind == "file")
        depths = _effective_depths(files)
        blocks, orphans = file_blocks(internal)

        entries = [f for f in files if depths[f.id] == 0]
        positions.update(entry_positions([f.id for f in entries], center_radius))
        for entry in entries:
            children = blocks[entry.id]
            place_block_children(
                positions, positions[entry.id], children, block_footprint(children), cfg.child_y_offset,
            )

        # depth -> [(district, files)], districts in directory order
        rings: Dict[int, List[Tuple[str, List[VisualizationNode]]]] = {}
        districts = group_by_directory([f for f in files if depths[f.id] > 0])
        for district_id, members in districts.items():
            by_depth: Dict[int, List[VisualizationNode]] = {}
            for node in members:
                by_depth.setdefault(depths[node.id], []).append(node)
            for depth, nodes in by_depth.items():
                rings.setdefault(depth, []).append((district_id, nodes))

        orphans_by_dir: Dict[str, List[VisualizationNode]] = {}
        for node in orphans:
            orphans_by_dir.setdefault(directory_of(node.metadata.path or node.metadata.label or ""), []).append(node)

        radius_offset = 0.0
        district_arcs = []
        for depth in sorted(rings):
            assignments = rings[depth]
            count = sum(len(nodes) for _, nodes in assignments)
            base = ring_radius(depth, center_radius, ring_spacing) + radius_offset
            radius = max(base, count * building_spacing / TWO_PI)
            radius_offset += radius - base

            arcs = assign_arcs([(d, len(nodes)) for d, nodes in assignments], cfg.arc_padding)
            for (district_id, start, end), (_, nodes) in zip(arcs, assignments):
                footprints = [(n.id, block_footprint(blocks[n.id])) for n in nodes]
                placed = blocks_in_arc(footprints, start, end, radius)
                positions.update(placed)
                for node_id, size in footprints:
                    place_block_children(positions, placed[node_id], blocks[node_id], size, cfg.child_y_offset)

                homeless = orphans_by_dir.pop(district_id, [])
                if homeless:
                    place_block_children(
                        positions, _polar(end - 0.01, radius), homeless,
                        block_footprint(homeless), cfg.child_y_offset,
                    )

                district_arcs.append({
                    "id": district_id,
                    "arc_start": start,
                    "arc_end": end,
                    "inner_radius": max(0.0, radius - ring_spacing / 2),
                    "outer_radius": radius + ring_spacing / 2,
                    "ring_depth": depth,
                    "node_count": len(nodes),
                })

        for homeless in orphans_by_dir.values():
            for node in homeless:
                positions[node.id] = Position3D()

        zones = []
        if externals:
            max_depth = max(depths.values(), default=0)
            base = ring_radius(max_depth + 1, center_radius, ring_spacing) + radius_offset
            radius = max(base, len(externals) * building_spacing / TWO_PI)
            padding = cfg.arc_padding * 2
            usable = max(0.0, TWO_PI - padding * len(_zones(externals)))
            angle = 0.0
            for zone, members in _zones(externals):
                size = len(members) / len(externals) * usable
                ordered = sort_by_label(members)
                positions.update(positions_in_arc(
                    [n.id for n in ordered], angle, angle + size, radius, building_spacing,
                ))
                zones.append({"type": zone, "arc_start": angle, "arc_end": angle + size, "node_count": len(members)})
                angle += size + padding

        return self._finish(positions, cfg, metadata={
            "district_count": len(districts),
            "ring_count": len(set(depths.values())),
            "entry_point_count": len(entries),
            "external_count": len(externals),
            "district_arcs": district_arcs,
            "infrastructure_zones": zones,
        })
