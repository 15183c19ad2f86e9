"""File blocks: grouping entity nodes under their file and packing them in a grid."""

from __future__ import annotations

import math
from typing import Dict, List, Sequence, Tuple

from ..geometry import Position3D
from ..ivm import VisualizationNode

WIDE_KINDS = frozenset({"class", "abstract_class", "interface"})

MIN_FOOTPRINT = 4.0
MAX_FOOTPRINT = 20.0


def block_footprint(children: Sequence[VisualizationNode]) -> float:
    """Side length of a square block big enough for *children*.

    Classes and interfaces count 1.5, everything else 1. The result is
    ``ceil(sqrt(weight)) * 2 + 2`` clamped to ``[4, 20]``.
    """
    if not children:
        return MIN_FOOTPRINT
    weight = sum(1.5 if child.kind in WIDE_KINDS else 1.0 for child in children)
    size = math.ceil(math.sqrt(weight)) * 2 + 2
    return float(min(MAX_FOOTPRINT, max(MIN_FOOTPRINT, size)))


def place_in_grid(
    children: Sequence[VisualizationNode],
    size: float,
    y_offset: float = 0.0,
) -> List[Tuple[str, Position3D]]:
    """Offsets from a block's center for *children* on a square grid.

    Children are ordered by id; every offset lies strictly inside
    ``[-size / 2, size / 2]`` on X and Z.
    """
    if not children:
        return []
    ordered = sorted(children, key=lambda n: n.id)
    grid = math.ceil(math.sqrt(len(ordered)))
    cell = size / grid
    half = size / 2
    placed = []
    for i, child in enumerate(ordered):
        col, row = i % grid, i // grid
        placed.append((child.id, Position3D((col + 0.5) * cell - half, y_offset, (row + 0.5) * cell - half)))
    return placed


def file_blocks(
    nodes: Sequence[VisualizationNode],
) -> Tuple[Dict[str, List[VisualizationNode]], List[VisualizationNode]]:
    """Assign every non-file node to the file at the top of its parent chain.

    Returns ``(blocks, orphans)``: ``blocks`` maps each file id to its
    descendants in input order, ``orphans`` holds nodes with no file
    ancestor, including those caught in a parent cycle.
    """
    by_id = {node.id: node for node in nodes}
    blocks: Dict[str, List[VisualizationNode]] = {n.id: [] for n in nodes if n.kind == "file"}
    orphans: List[VisualizationNode] = []

    for node in nodes:
        if node.kind == "file":
            continue
        seen = set()
        current = node.parent_id
        owner = None
        while current and current not in seen:
            seen.add(current)
            if current in blocks:
                owner = current
                break
            parent = by_id.get(current)
            current = parent.parent_id if parent is not None else None
        if owner is None:
            orphans.append(node)
        else:
            blocks[owner].append(node)
    return blocks, orphans


def place_block_children(
    positions: Dict[str, Position3D],
    center: Position3D,
    children: Sequence[VisualizationNode],
    size: float,
    y_offset: float,
) -> None:
    """Write absolute positions for *children* packed around *center*."""
    for node_id, local in place_in_grid(children, size, y_offset):
        positions[node_id] = Position3D(center.x + local.x, center.y + local.y, center.z + local.z)
