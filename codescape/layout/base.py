"""Layout engine interface, configuration and result types."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional, Type, TypeVar, Union

from ..geometry import BoundingBox, Position3D, bounds_from_positions
from ..ivm import VisualizationGraph, VisualizationNode

C = TypeVar("C", bound="LayoutConfig")


@dataclass
class LayoutConfig:
    """Fields every engine accepts. Positions are mapped ``origin + p * scale``."""

    spacing: float = 1.0
    scale: float = 1.0
    origin: Position3D = field(default_factory=Position3D)

    @classmethod
    def from_mapping(cls: Type[C], data: Optional[Mapping[str, Any]] = None) -> C:
        """Build a config from a plain dict, ignoring keys this config lacks."""
        data = dict(data or {})
        names = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in names}
        origin = kwargs.get("origin")
        if isinstance(origin, Mapping):
            kwargs["origin"] = Position3D.from_dict(origin)
        elif isinstance(origin, (list, tuple)):
            kwargs["origin"] = Position3D(*origin)
        return cls(**kwargs)


@dataclass
class LayoutResult:
    positions: Dict[str, Position3D] = field(default_factory=dict)
    bounds: BoundingBox = field(default_factory=BoundingBox)
    metadata: Dict[str, Any] = field(default_factory=dict)


ConfigInput = Union[LayoutConfig, Mapping[str, Any], None]


class LayoutEngine(ABC):
    """A spatial layout algorithm.

    ``type`` identifies the engine in a registry; ``can_handle`` decides
    whether the engine applies to a graph during auto-selection.
    """

    type: str = ""
    config_class: Type[LayoutConfig] = LayoutConfig

    @abstractmethod
    def layout(self, graph: VisualizationGraph, config: ConfigInput = None) -> LayoutResult:
        ...

    @abstractmethod
    def can_handle(self, graph: VisualizationGraph) -> bool:
        ...

    def resolve_config(self, config: ConfigInput) -> Any:
        if config is None:
            return self.config_class()
        if isinstance(config, self.config_class):
            return config
        if isinstance(config, LayoutConfig):
            return self.config_class.from_mapping(
                {f.name: getattr(config, f.name) for f in fields(config)}
            )
        return self.config_class.from_mapping(config)

    @staticmethod
    def _finish(
        positions: Dict[str, Position3D],
        config: LayoutConfig,
        metadata: Optional[Dict[str, Any]] = None,
        bounds: Optional[BoundingBox] = None,
    ) -> LayoutResult:
        """Apply origin/scale and compute bounds when the engine has none of its own."""
        origin, scale = config.origin, config.scale
        if scale != 1.0 or origin.x or origin.y or origin.z:
            positions = {
                node_id: _transform(p, origin, scale) for node_id, p in positions.items()
            }
            if bounds is not None:
                bounds = BoundingBox(_transform(bounds.min, origin, scale), _transform(bounds.max, origin, scale))
        if bounds is None:
            bounds = bounds_from_positions(positions.values())
        return LayoutResult(positions=positions, bounds=bounds, metadata=dict(metadata or {}))


def _transform(p: Position3D, origin: Position3D, scale: float) -> Position3D:
    return Position3D(origin.x + p.x * scale, origin.y + p.y * scale, origin.z + p.z * scale)


def is_external(node: VisualizationNode) -> bool:
    return bool(node.metadata.properties.get("is_external"))


def sort_by_label(nodes: Any) -> list:
    return sorted(nodes, key=lambda n: (n.metadata.label or "", n.id))


def apply_layout_to_graph(graph: VisualizationGraph, result: LayoutResult) -> VisualizationGraph:
    """Copy layout positions onto the graph's nodes and recompute its bounds.

    Nodes the layout did not position keep their current position.
    """
    for node in graph.nodes:
        position = result.positions.get(node.id)
        if position is not None:
            node.position = position.copy()
    graph.bounds = bounds_from_positions(node.position for node in graph.nodes)
    return graph
