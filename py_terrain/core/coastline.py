"""
Coastline generation.

Marks a band of cells along one map edge as coast. The band thickness is a
percentage of the grid size; when the first band catches no sites it is widened
a few times before giving up.
"""

import math
from typing import List, Optional, Set

import structlog

from ..config.generation_settings import CoastlineSettings, CompassDirection
from .geometry import centroid
from .lcg_prng import RandomFunc, make_rng
from .terrain_data import TerrainData
from .voronoi_graph import VoronoiGraph

logger = structlog.get_logger()

MIN_PERCENT = 0.05
MAX_PERCENT = 0.20
MAX_RETRIES = 3
RETRY_GROWTH = 1.2

COAST_KEYS = ("is_coastline", "coast_direction")


class CoastlineError(ValueError):
    """Raised when no cell can be placed on the coastline."""


def in_band(x: float, z: float, direction: CompassDirection, thickness: float, grid_size: float) -> bool:
    """Check whether a site lies inside the coastal band of one edge."""
    if direction == CompassDirection.NORTH:
        return z <= thickness
    if direction == CompassDirection.SOUTH:
        return z >= grid_size - thickness
    if direction == CompassDirection.EAST:
        return x >= grid_size - thickness
    if direction == CompassDirection.WEST:
        return x <= thickness
    raise ValueError(f"Unknown coast direction: {direction}")


class CoastlineGenerator:
    """Selects the coastal band of a Voronoi graph."""

    def __init__(
        self,
        graph: VoronoiGraph,
        settings: Optional[CoastlineSettings] = None,
        rng: Optional[RandomFunc] = None,
    ):
        self.graph = graph
        self.settings = settings or CoastlineSettings()
        self.rng = rng or make_rng(None)

        self.coastal_cells: Set[int] = set()
        self.direction: Optional[CompassDirection] = None
        self.thickness = 0.0
        self.retries = 0

    def _percent(self) -> float:
        configured = self.settings.percent
        if configured is None:
            configured = self.settings.budget
        if configured is not None and math.isfinite(configured):
            percent = configured / 100
        else:
            percent = 0.15 + self.rng() * 0.05
        return max(MIN_PERCENT, min(MAX_PERCENT, percent))

    def generate(self) -> List[int]:
        """
        Mark the coastal band.

        Returns:
            Sorted ids of coastal cells

        Raises:
            CoastlineError: If the band stays empty after all retries
        """
        self.clear()
        direction = CompassDirection(self.settings.direction)
        grid_size = self.graph.grid_size
        max_thickness = grid_size * MAX_PERCENT
        thickness = grid_size * self._percent()

        logger.info("Generating coastline", direction=direction.value, thickness=thickness)

        selected = self._select(direction, thickness)
        retries = 0
        while not selected and retries < MAX_RETRIES:
            retries += 1
            thickness = min(max_thickness, thickness * RETRY_GROWTH)
            logger.debug("Coastline band empty, widening", retry=retries, thickness=thickness)
            selected = self._select(direction, thickness)

        self.retries = retries
        if not selected:
            raise CoastlineError(
                f"No cells within {thickness:.1f} units of the {direction.value} edge "
                f"after {retries} retries"
            )

        for cell_id in selected:
            metadata = self.graph.cells[cell_id].metadata
            metadata.is_coastline = True
            metadata.coast_direction = direction.value
        self.coastal_cells = set(selected)
        self.direction = direction
        self.thickness = thickness

        logger.info("Coastline generated", cells=len(selected), retries=retries)
        return selected

    def _select(self, direction: CompassDirection, thickness: float) -> List[int]:
        return [
            cell.id
            for cell in self.graph.cells
            if not cell.site.is_boundary
            and in_band(cell.site.x, cell.site.z, direction, thickness, self.graph.grid_size)
        ]

    def clear(self) -> None:
        self.graph.reset_metadata(*COAST_KEYS)
        self.coastal_cells = set()
        self.direction = None
        self.thickness = 0.0
        self.retries = 0

    def is_coastal_cell(self, cell_id: int) -> bool:
        return cell_id in self.coastal_cells

    def get_coastal_cells(self) -> List[int]:
        return sorted(self.coastal_cells)

    def get_coastline_stats(self) -> dict:
        return {
            "total_cells": len(self.coastal_cells),
            "direction": self.direction.value if self.direction else None,
            "thickness": self.thickness,
            "retries": self.retries,
        }

    def create_coastline_features(self, terrain_data: TerrainData) -> List[str]:
        """Record the whole coast as one feature; returns the created ids."""
        if not self.coastal_cells:
            return []

        cell_ids = self.get_coastal_cells()
        sites = [self.graph.cells[i].site for i in cell_ids]
        feature = terrain_data.create_feature("coastline")
        center = centroid(sites)
        feature.set_centroid(center.x, center.z)
        feature.add_point_distribution([(p.x, p.z) for p in sites])
        for cell_id in cell_ids:
            feature.add_affected_tiles(self.graph.cells[cell_id].affected_tiles)
        feature.set_metadata("direction", self.direction.value)
        feature.set_metadata("thickness", self.thickness)
        feature.set_metadata("cell_count", len(cell_ids))
        feature.set_metadata("cells", cell_ids)
        return [feature.id]
