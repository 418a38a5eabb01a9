"""
Marsh generation.

A marsh forms on land squeezed between the sea and a lake: a cell qualifies
when a short breadth-first walk over cell adjacency reaches both a coastal
cell and a lake cell.
"""

import math
from collections import Counter, deque
from typing import Dict, List, Optional, Set

import structlog

from ..config.generation_settings import MarshSettings
from .interfaces import CoastalCellSource, LakeCellSource
from .terrain_data import TerrainData
from .voronoi_graph import VoronoiGraph

logger = structlog.get_logger()

# BFS stops expanding past this depth; farther cells report infinity
BFS_DEPTH_CAP = 3

MARSH_KEYS = ("marsh", "dist_to_coast", "dist_to_lake")


class MarshGenerator:
    """Detects wetland cells close to both coast and lakes."""

    def __init__(
        self,
        graph: Optional[VoronoiGraph],
        coastline: Optional[CoastalCellSource],
        lakes: Optional[LakeCellSource],
        settings: Optional[MarshSettings] = None,
    ):
        self.graph = graph
        self.coastline = coastline
        self.lakes = lakes
        self.settings = settings or MarshSettings()

        self.marsh_cells: Set[int] = set()
        self.distances: Dict[int, Dict[str, float]] = {}

    def generate(self) -> List[int]:
        """
        Mark marsh cells.

        Returns:
            Sorted marsh cell ids; empty when a collaborator is missing or
            either the coast or the lake set is empty
        """
        if self.graph is None or not self.graph.cells:
            logger.error("No Voronoi graph available for marshes")
            return []

        self.clear()
        if self.coastline is None or self.lakes is None:
            logger.error(
                "Marsh generation needs coastline and lakes",
                has_coastline=self.coastline is not None,
                has_lakes=self.lakes is not None,
            )
            return []

        coastal = set(self.coastline.get_coastal_cells())
        lakes = set(self.lakes.get_lake_cells())
        if not coastal or not lakes:
            logger.info("No coast or lake cells, skipping marshes", coast=len(coastal), lakes=len(lakes))
            return []

        logger.info("Generating marshes", coast=len(coastal), lakes=len(lakes))
        max_distance = self.settings.max_distance

        for cell in self.graph.cells:
            if cell.id in coastal or self.lakes.is_lake_cell(cell.id):
                continue

            dist_coast = self.distance_to_set(cell.id, coastal)
            dist_lake = self.distance_to_set(cell.id, lakes)
            if dist_coast <= max_distance and dist_lake <= max_distance:
                self.marsh_cells.add(cell.id)
                self.distances[cell.id] = {"coast": dist_coast, "lake": dist_lake}
                cell.metadata.marsh = True
                cell.metadata.dist_to_coast = dist_coast
                cell.metadata.dist_to_lake = dist_lake

        logger.info("Marshes generated", marsh_cells=len(self.marsh_cells))
        return self.get_marsh_cells()

    def distance_to_set(self, start: int, targets: Set[int], cap: int = BFS_DEPTH_CAP) -> float:
        """
        Hop count from ``start`` to the nearest cell in ``targets``.

        Args:
            start: Cell to measure from
            targets: Target cell ids
            cap: Maximum hop count explored

        Returns:
            Distance in hops, or ``math.inf`` when no target is within ``cap``
        """
        if start in targets:
            return 0
        visited = {start}
        queue = deque([(start, 0)])

        while queue:
            current, dist = queue.popleft()
            if dist >= cap:
                continue
            for neighbor in self.graph.cell_neighbors[current]:
                if neighbor in visited:
                    continue
                if neighbor in targets:
                    return dist + 1
                visited.add(neighbor)
                queue.append((neighbor, dist + 1))

        return math.inf

    def clear(self) -> None:
        if self.graph is not None:
            self.graph.reset_metadata(*MARSH_KEYS)
        self.marsh_cells = set()
        self.distances = {}

    def is_marsh_cell(self, cell_id: int) -> bool:
        return cell_id in self.marsh_cells

    def get_marsh_cells(self) -> List[int]:
        return sorted(self.marsh_cells)

    def get_marsh_stats(self) -> dict:
        coast = Counter(int(d["coast"]) for d in self.distances.values())
        lake = Counter(int(d["lake"]) for d in self.distances.values())
        return {
            "total_cells": len(self.marsh_cells),
            "coast_distribution": dict(sorted(coast.items())),
            "lake_distribution": dict(sorted(lake.items())),
        }

    def create_marsh_features(self, terrain_data: TerrainData) -> List[str]:
        if not self.marsh_cells:
            return []

        cell_ids = self.get_marsh_cells()
        sites = [self.graph.cells[i].site for i in cell_ids]
        feature = terrain_data.create_feature("marshes")
        feature.add_point_distribution([(s.x, s.z) for s in sites])
        feature.set_centroid(
            sum(s.x for s in sites) / len(sites), sum(s.z for s in sites) / len(sites)
        )
        for cell_id in cell_ids:
            feature.add_affected_tiles(self.graph.cells[cell_id].affected_tiles)
        feature.set_metadata("marsh_cell_count", len(cell_ids))
        feature.set_metadata("cells", cell_ids)
        feature.set_metadata("stats", self.get_marsh_stats())
        return [feature.id]
