"""Ordered registry of layout engines."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from ..errors import LayoutError
from ..ivm import VisualizationGraph
from .base import LayoutEngine
from .building import BuildingLayoutEngine
from .cell import CellLayoutEngine
from .city import CityLayoutEngine
from .force_directed import ForceDirectedLayoutEngine
from .radial_city import RadialCityLayoutEngine

logger = logging.getLogger(__name__)


class LayoutRegistry:
    """Engines kept in registration order.

    Re-registering a type replaces the engine but keeps its original
    position, so auto-selection order only changes through ``unregister``.
    """

    def __init__(self) -> None:
        self._engines: Dict[str, LayoutEngine] = {}

    def register(self, engine: LayoutEngine) -> None:
        if not engine.type:
            raise ValueError("Layout engine must define a non-empty type")
        self._engines[engine.type] = engine

    def unregister(self, engine_type: str) -> bool:
        return self._engines.pop(engine_type, None) is not None

    def get(self, engine_type: str) -> Optional[LayoutEngine]:
        return self._engines.get(engine_type)

    def require(self, engine_type: str) -> LayoutEngine:
        engine = self._engines.get(engine_type)
        if engine is None:
            raise LayoutError(
                f"No layout engine registered for '{engine_type}'. "
                f"Available: {', '.join(self._engines) or '(none)'}"
            )
        return engine

    def has(self, engine_type: str) -> bool:
        return engine_type in self._engines

    def get_all(self) -> List[LayoutEngine]:
        return list(self._engines.values())

    def types(self) -> List[str]:
        return list(self._engines)

    @property
    def size(self) -> int:
        return len(self._engines)

    def __len__(self) -> int:
        return len(self._engines)

    def auto_select(self, graph: VisualizationGraph) -> Optional[LayoutEngine]:
        """First engine, in registration order, whose ``can_handle`` is true."""
        for engine in self._engines.values():
            if engine.can_handle(graph):
                logger.debug("Auto-selected layout engine %s", engine.type)
                return engine
        return None


def default_registry() -> LayoutRegistry:
    """A fresh registry holding the built-in engines in auto-selection order."""
    registry = LayoutRegistry()
    registry.register(CityLayoutEngine())
    registry.register(RadialCityLayoutEngine())
    registry.register(BuildingLayoutEngine())
    registry.register(CellLayoutEngine())
    registry.register(ForceDirectedLayoutEngine())
    return registry
