"""
Lake generation.

Lakes grow like hills in reverse: a couple of deep origins spread into
neighboring cells that get progressively shallower. Origins avoid the coast
and hill cells, and lakes never spread onto the coast.
"""

from typing import Dict, List, Optional, Set

import numpy as np
import structlog

from ..config.generation_settings import LakesSettings
from ..utils.random import pop_random, rand_choice
from .interfaces import CoastalCellSource, HillCellSource
from .lcg_prng import RandomFunc, make_rng
from .terrain_data import TerrainData
from .voronoi_graph import VoronoiGraph

logger = structlog.get_logger()

MIN_LAKE_DEPTH = 5.0

LAKE_KEYS = ("lake", "lake_origin", "depth", "parent_lake")


class LakesGenerator:
    """Grows lakes on a Voronoi graph."""

    def __init__(
        self,
        graph: VoronoiGraph,
        settings: Optional[LakesSettings] = None,
        rng: Optional[RandomFunc] = None,
        coastline: Optional[CoastalCellSource] = None,
        hills: Optional[HillCellSource] = None,
    ):
        self.graph = graph
        self.settings = settings or LakesSettings()
        self.rng = rng or make_rng(None)
        self.coastline = coastline
        self.hills = hills

        self.lake_cells: Set[int] = set()
        self._lake_order: List[int] = []
        self.lake_origins: List[int] = []
        self.lake_depths: Dict[int, float] = {}

    def generate(self) -> List[int]:
        """
        Place lake origins and grow them until the budget is spent.

        Returns:
            Lake cell ids in the order they were added
        """
        if self.graph is None or not self.graph.cells:
            logger.error("No Voronoi graph available for lakes")
            return []

        self.clear()
        budget = self.settings.budget
        max_depth = self.settings.max_depth
        logger.info("Generating lakes", budget=budget, origins=self.settings.origins)

        budget_used = 0
        for cell_id in self._select_origins(self.settings.origins):
            if budget_used >= budget:
                break
            self._add_lake_cell(cell_id, max_depth, parent=None)
            self.lake_origins.append(cell_id)
            self.graph.cells[cell_id].metadata.lake_origin = True
            budget_used += 1

        remaining = budget - budget_used
        if remaining > 0:
            self._expand(remaining)

        logger.info("Lakes generated", lake_cells=len(self.lake_cells), origins=len(self.lake_origins))
        return list(self._lake_order)

    def _is_coastal(self, cell_id: int) -> bool:
        return self.coastline is not None and self.coastline.is_coastal_cell(cell_id)

    def _select_origins(self, num_origins: int) -> List[int]:
        available = [
            cell_id
            for cell_id in range(self.graph.n_cells)
            if not self._is_coastal(cell_id)
            and not (self.hills is not None and self.hills.is_hill_cell(cell_id))
        ]
        origins = []
        while len(origins) < num_origins and available:
            origins.append(pop_random(self.rng, available))
        return origins

    def _add_lake_cell(self, cell_id: int, depth: float, parent: Optional[int]) -> None:
        self.lake_cells.add(cell_id)
        self._lake_order.append(cell_id)
        self.lake_depths[cell_id] = depth

        metadata = self.graph.cells[cell_id].metadata
        metadata.lake = True
        metadata.depth = depth
        metadata.parent_lake = parent

    def _non_lake_neighbors(self, cell_id: int) -> List[int]:
        return [
            n
            for n in self.graph.cell_neighbors[cell_id]
            if n not in self.lake_cells and not self._is_coastal(n)
        ]

    def _expand(self, remaining: int) -> None:
        budget_used = 0
        iteration = 0

        while budget_used < remaining and self._lake_order:
            parent = rand_choice(self.rng, self._lake_order)
            candidates = self._non_lake_neighbors(parent)

            if not candidates:
                frontier: Dict[int, None] = {}
                for lake_id in self._lake_order:
                    for neighbor in self._non_lake_neighbors(lake_id):
                        frontier.setdefault(neighbor, None)
                if not frontier:
                    break
                candidates = list(frontier)

            new_cell = rand_choice(self.rng, candidates)
            parent_depth = self.lake_depths.get(parent) or self.settings.max_depth
            depth = max(MIN_LAKE_DEPTH, parent_depth - (3 + self.rng() * 7))
            self._add_lake_cell(new_cell, depth, parent)
            budget_used += 1

            iteration += 1
            if iteration > remaining * 2:
                logger.warning("Maximum lake expansion iterations reached", iterations=iteration)
                break

    def clear(self) -> None:
        self.graph.reset_metadata(*LAKE_KEYS)
        self.lake_cells = set()
        self._lake_order = []
        self.lake_origins = []
        self.lake_depths = {}

    def get_lake_depth(self, cell_id: int) -> float:
        return self.lake_depths.get(cell_id, 0.0)

    def is_lake_cell(self, cell_id: int) -> bool:
        return cell_id in self.lake_cells

    def get_lake_cells(self) -> List[int]:
        return list(self._lake_order)

    def get_lake_origins(self) -> List[int]:
        return list(self.lake_origins)

    def get_depth_stats(self) -> dict:
        depths = np.array(list(self.lake_depths.values()), dtype=np.float64)
        return {
            "min_depth": float(depths.min()) if depths.size else 0.0,
            "max_depth": float(depths.max()) if depths.size else 0.0,
            "avg_depth": float(depths.mean()) if depths.size else 0.0,
            "total_cells": int(depths.size),
            "lake_cells": len(self.lake_cells),
            "origins": len(self.lake_origins),
        }

    def create_lake_features(self, terrain_data: TerrainData) -> List[str]:
        if not self.lake_cells:
            return []

        sites = [self.graph.cells[i].site for i in self._lake_order]
        feature = terrain_data.create_feature("lakes")
        feature.add_point_distribution([(s.x, s.z) for s in sites])
        feature.set_centroid(
            sum(s.x for s in sites) / len(sites), sum(s.z for s in sites) / len(sites)
        )
        for cell_id in self._lake_order:
            feature.add_affected_tiles(self.graph.cells[cell_id].affected_tiles)
        feature.set_metadata("lake_cell_count", len(self.lake_cells))
        feature.set_metadata("depths", [self.get_lake_depth(i) for i in self._lake_order])
        feature.set_metadata("origins", self.get_lake_origins())
        feature.set_metadata("stats", self.get_depth_stats())
        return [feature.id]
