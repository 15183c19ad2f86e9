"""Force-directed layout: repulsion between all nodes, springs along edges."""

from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from ..geometry import Position3D
from ..ivm import VisualizationGraph
from .base import ConfigInput, LayoutConfig, LayoutEngine, LayoutResult

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, float], None]


@dataclass
class ForceDirectedConfig(LayoutConfig):
    repulsion_strength: float = 1000.0
    attraction_strength: float = 0.1
    link_distance: float = 100.0
    damping: float = 0.9
    time_step: float = 0.1
    center_gravity: float = 0.01
    max_iterations: int = 500
    # Halt once no node moved farther than this in one step.
    min_displacement: float = 0.01
    # Optional wall-clock cap in seconds; results are then no longer reproducible.
    max_duration: Optional[float] = None
    enable_3d: bool = True
    seed: int = 42
    fixed_nodes: Tuple[str, ...] = field(default_factory=tuple)


class ForceDirectedLayoutEngine(LayoutEngine):
    """General-purpose fallback layout for any non-empty graph.

    Starts from the nodes' current positions. Coincident nodes are pushed
    apart along directions drawn from ``random.Random(seed)``, so two runs
    with the same input and seed produce identical positions.
    """

    type = "force"
    config_class = ForceDirectedConfig

    def __init__(self, on_progress: Optional[ProgressCallback] = None) -> None:
        self.on_progress = on_progress

    def can_handle(self, graph: VisualizationGraph) -> bool:
        return len(graph.nodes) > 0

    def layout(self, graph: VisualizationGraph, config: ConfigInput = None) -> LayoutResult:
        cfg: ForceDirectedConfig = self.resolve_config(config)
        nodes = graph.nodes
        n = len(nodes)
        if n == 0:
            return self._finish({}, cfg, {"iterations": 0, "energy": 0.0, "converged": True})

        index = {node.id: i for i, node in enumerate(nodes)}
        xs = [node.position.x for node in nodes]
        ys = [node.position.y for node in nodes]
        zs = [node.position.z if cfg.enable_3d else 0.0 for node in nodes]
        vx = [0.0] * n
        vy = [0.0] * n
        vz = [0.0] * n
        fixed = [node.id in cfg.fixed_nodes for node in nodes]

        springs: List[Tuple[int, int, float]] = []
        for edge in graph.edges:
            s = index.get(edge.source)
            t = index.get(edge.target)
            if s is None or t is None or s == t:
                continue
            springs.append((s, t, edge.metadata.weight or 1.0))

        rng = random.Random(cfg.seed)
        deadline = time.perf_counter() + cfg.max_duration if cfg.max_duration else None
        iterations = 0
        energy = 0.0
        converged = False

        while iterations < cfg.max_iterations:
            fx = [0.0] * n
            fy = [0.0] * n
            fz = [0.0] * n

            for i in range(n):
                for j in range(i + 1, n):
                    dx = xs[i] - xs[j]
                    dy = ys[i] - ys[j]
                    dz = zs[i] - zs[j]
                    dist = math.sqrt(dx * dx + dy * dy + dz * dz)
                    if dist > 0:
                        ux, uy, uz = dx / dist, dy / dist, dz / dist
                    else:
                        ux, uy, uz = _random_direction(rng, cfg.enable_3d)
                    effective = max(dist, 1.0)
                    force = cfg.repulsion_strength / (effective * effective)
                    fx[i] += ux * force
                    fy[i] += uy * force
                    fz[i] += uz * force
                    fx[j] -= ux * force
                    fy[j] -= uy * force
                    fz[j] -= uz * force

            for s, t, weight in springs:
                dx = xs[t] - xs[s]
                dy = ys[t] - ys[s]
                dz = zs[t] - zs[s]
                dist = math.sqrt(dx * dx + dy * dy + dz * dz)
                if dist == 0:
                    continue
                force = cfg.attraction_strength * (dist - cfg.link_distance) * weight
                ux, uy, uz = dx / dist, dy / dist, dz / dist
                fx[s] += ux * force
                fy[s] += uy * force
                fz[s] += uz * force
                fx[t] -= ux * force
                fy[t] -= uy * force
                fz[t] -= uz * force

            max_step = 0.0
            energy = 0.0
            moving = 0
            for i in range(n):
                if fixed[i]:
                    continue
                fx[i] -= xs[i] * cfg.center_gravity
                fy[i] -= ys[i] * cfg.center_gravity
                fz[i] -= zs[i] * cfg.center_gravity
                vx[i] = vx[i] * cfg.damping + fx[i] * cfg.time_step
                vy[i] = vy[i] * cfg.damping + fy[i] * cfg.time_step
                vz[i] = vz[i] * cfg.damping + fz[i] * cfg.time_step if cfg.enable_3d else 0.0
                sx = vx[i] * cfg.time_step
                sy = vy[i] * cfg.time_step
                sz = vz[i] * cfg.time_step
                xs[i] += sx
                ys[i] += sy
                zs[i] += sz
                max_step = max(max_step, math.sqrt(sx * sx + sy * sy + sz * sz))
                energy += vx[i] * vx[i] + vy[i] * vy[i] + vz[i] * vz[i]
                moving += 1

            iterations += 1
            energy = energy / moving if moving else 0.0
            if self.on_progress is not None and iterations % 10 == 0:
                self.on_progress(iterations, energy)
            if max_step < cfg.min_displacement:
                converged = True
                break
            if deadline is not None and time.perf_counter() > deadline:
                logger.debug("Force layout stopped by time cap after %d iterations", iterations)
                break

        logger.debug(
            "Force layout: %d nodes, %d iterations, energy %.4f, converged=%s",
            n, iterations, energy, converged,
        )
        positions: Dict[str, Position3D] = {
            node.id: Position3D(xs[i], ys[i], zs[i]) for i, node in enumerate(nodes)
        }
        return self._finish(
            positions,
            cfg,
            {"iterations": iterations, "energy": energy, "converged": converged},
        )


def _random_direction(rng: random.Random, three_d: bool) -> Tuple[float, float, float]:
    theta = rng.uniform(0.0, 2.0 * math.pi)
    if not three_d:
        return math.cos(theta), math.sin(theta), 0.0
    z = rng.uniform(-1.0, 1.0)
    r = math.sqrt(1.0 - z * z)
    return r * math.cos(theta), r * math.sin(theta), z
