"""
Hill and elevation generation.

Two-part elevation model:

1. Discrete growth: a few full-height origins grow outward one neighbor at a
   time, each new cell a little lower than the cell it grew from, until the
   budget runs out.
2. Continuous gradient: one or two random map edges are raised, every cell
   gets a height proportional to its proximity to the nearest raised edge and
   hill cells are blended on top of it.

All heights end up in the ``height`` metadata of each touched cell and stay
within [0, 100].
"""

from typing import Dict, List, Optional, Set

import numpy as np
import structlog

from ..config.generation_settings import CompassDirection, HillsSettings
from ..utils.random import pop_random, rand_choice
from .lcg_prng import RandomFunc, make_rng
from .terrain_data import TerrainData
from .voronoi_graph import VoronoiGraph

logger = structlog.get_logger()

MAX_HEIGHT = 100.0
MIN_HILL_HEIGHT = 10.0
GRADIENT_HILL_BLEND = 0.3

HILL_KEYS = ("height", "hill", "hill_origin", "parent_hill", "gradient")

EDGE_ORDER = [
    CompassDirection.NORTH,
    CompassDirection.SOUTH,
    CompassDirection.EAST,
    CompassDirection.WEST,
]


def _lim(value: float) -> float:
    """Clamp a height to [0, 100]."""
    return float(np.clip(value, 0, MAX_HEIGHT))


def distance_to_edge(x: float, z: float, edge: CompassDirection, grid_size: float) -> float:
    """Distance from a point to one map edge; north is z = 0."""
    if edge == CompassDirection.NORTH:
        return z
    if edge == CompassDirection.SOUTH:
        return grid_size - z
    if edge == CompassDirection.EAST:
        return grid_size - x
    if edge == CompassDirection.WEST:
        return x
    raise ValueError(f"Unknown map edge: {edge}")


class HillsGenerator:
    """Grows hills on a Voronoi graph and derives the elevation field."""

    def __init__(
        self,
        graph: VoronoiGraph,
        settings: Optional[HillsSettings] = None,
        rng: Optional[RandomFunc] = None,
    ):
        self.graph = graph
        self.settings = settings or HillsSettings()
        self.rng = rng or make_rng(None)

        self.hill_cells: Set[int] = set()
        # Insertion order of hill cells, used for random picks
        self._hill_order: List[int] = []
        self.hill_origins: List[int] = []
        self.cell_heights: Dict[int, float] = {}
        self.gradient_edges: List[CompassDirection] = []

    def generate(self) -> List[int]:
        """
        Place hills and compute heights.

        Returns:
            Hill cell ids in the order they were added
        """
        if self.graph is None or not self.graph.cells:
            logger.error("No Voronoi graph available for hills")
            return []

        self.clear()
        budget = self.settings.budget
        logger.info(
            "Generating hills",
            budget=budget,
            origins=self.settings.origins,
            gradient=self.settings.gradient,
        )

        budget_used = 0
        for cell_id in self._select_origins(self.settings.origins):
            if budget_used >= budget:
                break
            self._add_hill_cell(cell_id, MAX_HEIGHT, parent=None)
            self.hill_origins.append(cell_id)
            self.graph.cells[cell_id].metadata.hill_origin = True
            budget_used += 1

        remaining = budget - budget_used
        if remaining > 0:
            self._expand(remaining)

        if self.settings.gradient:
            self._apply_gradient()

        logger.info(
            "Hills generated",
            hill_cells=len(self.hill_cells),
            gradient_edges=[e.value for e in self.gradient_edges],
        )
        return list(self._hill_order)

    def _select_origins(self, num_origins: int) -> List[int]:
        available = list(range(self.graph.n_cells))
        origins = []
        while len(origins) < num_origins and available:
            origins.append(pop_random(self.rng, available))
        return origins

    def _add_hill_cell(self, cell_id: int, height: float, parent: Optional[int]) -> None:
        self.hill_cells.add(cell_id)
        self._hill_order.append(cell_id)
        self.cell_heights[cell_id] = height

        metadata = self.graph.cells[cell_id].metadata
        metadata.hill = True
        metadata.height = height
        metadata.parent_hill = parent

    def _non_hill_neighbors(self, cell_id: int) -> List[int]:
        return [n for n in self.graph.cell_neighbors[cell_id] if n not in self.hill_cells]

    def _expand(self, remaining: int) -> None:
        budget_used = 0
        iteration = 0

        while budget_used < remaining and self._hill_order:
            parent = rand_choice(self.rng, self._hill_order)
            candidates = self._non_hill_neighbors(parent)

            if not candidates:
                # Frontier of this cell is exhausted, look at every hill cell
                frontier: Dict[int, None] = {}
                for hill_id in self._hill_order:
                    for neighbor in self._non_hill_neighbors(hill_id):
                        frontier.setdefault(neighbor, None)
                if not frontier:
                    break
                candidates = list(frontier)

            new_cell = rand_choice(self.rng, candidates)
            parent_height = self.cell_heights.get(parent) or MAX_HEIGHT
            height = max(MIN_HILL_HEIGHT, parent_height - (5 + self.rng() * 10))
            self._add_hill_cell(new_cell, height, parent)
            budget_used += 1

            iteration += 1
            if iteration > remaining * 2:
                logger.warning("Maximum hill expansion iterations reached", iterations=iteration)
                break

    def _apply_gradient(self) -> None:
        grid_size = self.graph.grid_size
        edges = list(EDGE_ORDER)
        count = 1 + int(self.rng() * 2)
        self.gradient_edges = [pop_random(self.rng, edges) for _ in range(count)]

        for cell in self.graph.cells:
            factor = 0.0
            for edge in self.gradient_edges:
                dist = distance_to_edge(cell.site.x, cell.site.z, edge, grid_size)
                factor = max(factor, max(0.0, 1 - dist / grid_size))
            gradient_height = factor * MAX_HEIGHT

            if cell.id in self.hill_cells:
                hill_height = self.cell_heights.get(cell.id, 0.0)
                height = _lim(max(hill_height, gradient_height + hill_height * GRADIENT_HILL_BLEND))
            else:
                height = _lim(gradient_height)
                cell.metadata.gradient = True
            self.cell_heights[cell.id] = height
            cell.metadata.height = height

    def clear(self) -> None:
        self.graph.reset_metadata(*HILL_KEYS)
        self.hill_cells = set()
        self._hill_order = []
        self.hill_origins = []
        self.cell_heights = {}
        self.gradient_edges = []

    def get_cell_height(self, cell_id: int) -> float:
        return self.cell_heights.get(cell_id, 0.0)

    def is_hill_cell(self, cell_id: int) -> bool:
        return cell_id in self.hill_cells

    def get_hill_cells(self) -> List[int]:
        return list(self._hill_order)

    def get_hill_origins(self) -> List[int]:
        return list(self.hill_origins)

    def get_height_stats(self) -> dict:
        heights = np.array(list(self.cell_heights.values()), dtype=np.float64)
        if heights.size == 0:
            return {"total_cells": 0, "hill_cells": 0, "gradient_edges": []}
        return {
            "min_height": float(heights.min()),
            "max_height": float(heights.max()),
            "avg_height": float(heights.mean()),
            "total_cells": int(heights.size),
            "hill_cells": len(self.hill_cells),
            "gradient_edges": [e.value for e in self.gradient_edges],
        }

    def create_hill_features(self, terrain_data: TerrainData) -> List[str]:
        if not self.hill_cells:
            return []

        sites = [self.graph.cells[i].site for i in self._hill_order]
        feature = terrain_data.create_feature("hills")
        feature.add_point_distribution([(s.x, s.z) for s in sites])
        feature.set_centroid(
            sum(s.x for s in sites) / len(sites), sum(s.z for s in sites) / len(sites)
        )
        for cell_id in self._hill_order:
            feature.add_affected_tiles(self.graph.cells[cell_id].affected_tiles)
        feature.set_metadata("hill_cell_count", len(self.hill_cells))
        feature.set_metadata("heights", [self.get_cell_height(i) for i in self._hill_order])
        feature.set_metadata("origins", self.get_hill_origins())
        feature.set_metadata("stats", self.get_height_stats())
        return [feature.id]
