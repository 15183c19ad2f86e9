"""3D points and axis-aligned bounding boxes.

All helpers are pure: they return new objects and never mutate their
arguments. An *empty* box has ``min`` at +inf and ``max`` at -inf, so the
first expansion turns it into a valid, zero-sized box around that point.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping

INF = math.inf


@dataclass
class Position3D:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y) and math.isfinite(self.z)

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Position3D":
        return cls(float(data.get("x", 0.0)), float(data.get("y", 0.0)), float(data.get("z", 0.0)))

    def copy(self) -> "Position3D":
        return Position3D(self.x, self.y, self.z)


@dataclass
class BoundingBox:
    min: Position3D = field(default_factory=Position3D)
    max: Position3D = field(default_factory=Position3D)

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {"min": self.min.to_dict(), "max": self.max.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BoundingBox":
        return cls(Position3D.from_dict(data.get("min", {})), Position3D.from_dict(data.get("max", {})))


def distance(a: Position3D, b: Position3D) -> float:
    return math.sqrt((a.x - b.x) ** 2 + (a.y - b.y) ** 2 + (a.z - b.z) ** 2)


def empty_bounds() -> BoundingBox:
    return BoundingBox(Position3D(INF, INF, INF), Position3D(-INF, -INF, -INF))


def zero_bounds() -> BoundingBox:
    return BoundingBox(Position3D(), Position3D())


def is_empty_bounds(box: BoundingBox) -> bool:
    return box.min.x > box.max.x or box.min.y > box.max.y or box.min.z > box.max.z


def is_valid_bounds(box: BoundingBox) -> bool:
    """Finite and componentwise ``min <= max``."""
    return (
        box.min.is_finite()
        and box.max.is_finite()
        and not is_empty_bounds(box)
    )


def expand_bounds(box: BoundingBox, point: Position3D) -> BoundingBox:
    return BoundingBox(
        Position3D(min(box.min.x, point.x), min(box.min.y, point.y), min(box.min.z, point.z)),
        Position3D(max(box.max.x, point.x), max(box.max.y, point.y), max(box.max.z, point.z)),
    )


def merge_bounds(a: BoundingBox, b: BoundingBox) -> BoundingBox:
    """Smallest box enclosing both; merging with an empty box is the identity."""
    return BoundingBox(
        Position3D(min(a.min.x, b.min.x), min(a.min.y, b.min.y), min(a.min.z, b.min.z)),
        Position3D(max(a.max.x, b.max.x), max(a.max.y, b.max.y), max(a.max.z, b.max.z)),
    )


def pad_bounds(box: BoundingBox, padding: float) -> BoundingBox:
    if is_empty_bounds(box):
        return box
    return BoundingBox(
        Position3D(box.min.x - padding, box.min.y - padding, box.min.z - padding),
        Position3D(box.max.x + padding, box.max.y + padding, box.max.z + padding),
    )


def bounds_center(box: BoundingBox) -> Position3D:
    if is_empty_bounds(box):
        return Position3D()
    return Position3D(
        (box.min.x + box.max.x) / 2,
        (box.min.y + box.max.y) / 2,
        (box.min.z + box.max.z) / 2,
    )


def bounds_size(box: BoundingBox) -> Position3D:
    if is_empty_bounds(box):
        return Position3D()
    return Position3D(box.max.x - box.min.x, box.max.y - box.min.y, box.max.z - box.min.z)


def bounds_diagonal(box: BoundingBox) -> float:
    size = bounds_size(box)
    return math.sqrt(size.x ** 2 + size.y ** 2 + size.z ** 2)


def bounds_intersect(a: BoundingBox, b: BoundingBox) -> bool:
    if is_empty_bounds(a) or is_empty_bounds(b):
        return False
    return (
        a.min.x <= b.max.x and a.max.x >= b.min.x
        and a.min.y <= b.max.y and a.max.y >= b.min.y
        and a.min.z <= b.max.z and a.max.z >= b.min.z
    )


def bounds_contains(box: BoundingBox, point: Position3D) -> bool:
    return (
        box.min.x <= point.x <= box.max.x
        and box.min.y <= point.y <= box.max.y
        and box.min.z <= point.z <= box.max.z
    )


def bounds_from_positions(positions: Iterable[Position3D]) -> BoundingBox:
    """Bounding box of *positions*; no positions gives a zero-sized box at the origin."""
    box = empty_bounds()
    for position in positions:
        box = expand_bounds(box, position)
    if is_empty_bounds(box):
        return zero_bounds()
    return box
