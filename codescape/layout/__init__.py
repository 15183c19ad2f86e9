"""Spatial layout engines for the visualization model."""

from .base import LayoutConfig, LayoutEngine, LayoutResult, apply_layout_to_graph
from .building import BuildingLayoutConfig, BuildingLayoutEngine
from .cell import CellLayoutConfig, CellLayoutEngine
from .city import CityLayoutConfig, CityLayoutEngine
from .force_directed import ForceDirectedConfig, ForceDirectedLayoutEngine
from .radial_city import RadialCityLayoutConfig, RadialCityLayoutEngine
from .registry import LayoutRegistry, default_registry

__all__ = [
    "BuildingLayoutConfig",
    "BuildingLayoutEngine",
    "CellLayoutConfig",
    "CellLayoutEngine",
    "CityLayoutConfig",
    "CityLayoutEngine",
    "ForceDirectedConfig",
    "ForceDirectedLayoutEngine",
    "LayoutConfig",
    "LayoutEngine",
    "LayoutRegistry",
    "LayoutResult",
    "RadialCityLayoutConfig",
    "RadialCityLayoutEngine",
    "apply_layout_to_graph",
    "default_registry",
]
