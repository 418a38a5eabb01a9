"""
River generation.

Each river starts on a cell close to a map edge and runs, through the
elevation-aware A* search, to the nearest body of water (coast, lake or
marsh). Without any water on the map a river crosses to the opposite edge.
Rivers in one pass never share cells, and their start and end points are kept
apart by a minimum separation.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

import numpy as np
import structlog

from ..config.generation_settings import CompassDirection, RiversSettings
from ..utils.random import rand_choice
from .geometry import Point
from .interfaces import CoastalCellSource, LakeCellSource, MarshCellSource
from .lcg_prng import RIVERS_SEED_OFFSET, LCGPRNG, RandomFunc, make_rng
from .pathfinding import RiverPathfinder, cell_elevation
from .terrain_data import TerrainData
from .voronoi_graph import VoronoiGraph

logger = structlog.get_logger()

RIVER_KEYS = ("river", "river_index", "river_position", "river_elevation")

OPPOSITE_EDGE = {
    CompassDirection.NORTH: CompassDirection.SOUTH,
    CompassDirection.SOUTH: CompassDirection.NORTH,
    CompassDirection.EAST: CompassDirection.WEST,
    CompassDirection.WEST: CompassDirection.EAST,
}


def edge_distances(site: Point, grid_size: float) -> List[Tuple[CompassDirection, float]]:
    """Distance from a site to each map edge, in N, S, E, W order."""
    return [
        (CompassDirection.NORTH, site.z),
        (CompassDirection.SOUTH, grid_size - site.z),
        (CompassDirection.EAST, grid_size - site.x),
        (CompassDirection.WEST, site.x),
    ]


def nearest_edge(site: Point, grid_size: float) -> CompassDirection:
    return min(edge_distances(site, grid_size), key=lambda item: item[1])[0]


@dataclass
class River:
    """One committed river path."""

    index: int
    path: List[int]
    start_edge: CompassDirection
    # End chosen without the end-point separation
    end_relaxed: bool = False
    elevations: List[float] = field(default_factory=list)
    length: float = 0.0

    @property
    def start_cell(self) -> int:
        return self.path[0]

    @property
    def end_cell(self) -> int:
        return self.path[-1]

    def __len__(self) -> int:
        return len(self.path)


class RiversGenerator:
    """
    Routes rivers from map edges to water.

    Args:
        graph: Cell graph
        settings: River settings
        seed: Base seed; river ``i`` draws from ``seed + 2000 + i``
        rng: Shared random function used when no seed is given
        coastline: Source of coastal cells
        lakes: Source of lake cells
        marshes: Source of marsh cells
    """

    def __init__(
        self,
        graph: Optional[VoronoiGraph],
        settings: Optional[RiversSettings] = None,
        seed: Optional[int] = None,
        rng: Optional[RandomFunc] = None,
        coastline: Optional[CoastalCellSource] = None,
        lakes: Optional[LakeCellSource] = None,
        marshes: Optional[MarshCellSource] = None,
    ):
        self.graph = graph
        self.settings = settings or RiversSettings()
        self.seed = seed
        self.rng = rng or make_rng(None)
        self.coastline = coastline
        self.lakes = lakes
        self.marshes = marshes

        self.rivers: List[River] = []
        self.river_cells: Set[int] = set()
        self.failed_rivers: List[int] = []
        self.used_starts: List[Point] = []
        self.used_ends: List[Point] = []

        self.pathfinder: Optional[RiverPathfinder] = None
        if graph is not None:
            self.pathfinder = RiverPathfinder(
                graph,
                elevation=self.get_cell_elevation,
                is_marsh=self._is_marsh,
                is_lake=self._is_lake,
                max_iterations=self.settings.max_iterations,
            )

    def _is_coastal(self, cell_id: int) -> bool:
        return self.coastline is not None and self.coastline.is_coastal_cell(cell_id)

    def _is_lake(self, cell_id: int) -> bool:
        return self.lakes is not None and self.lakes.is_lake_cell(cell_id)

    def _is_marsh(self, cell_id: int) -> bool:
        return self.marshes is not None and self.marshes.is_marsh_cell(cell_id)

    def get_cell_elevation(self, cell_id: int) -> float:
        return cell_elevation(self.graph, cell_id)

    def _rng_for(self, index: int) -> RandomFunc:
        if self.seed is None:
            return self.rng
        return LCGPRNG(self.seed + RIVERS_SEED_OFFSET + index)

    def generate(self) -> List[River]:
        """
        Route ``settings.count`` rivers.

        Failed rivers are logged and skipped; the others still run.

        Returns:
            Successfully committed rivers
        """
        if self.graph is None or not self.graph.cells:
            logger.error("No Voronoi graph available for rivers")
            return []

        self.clear()
        logger.info("Generating rivers", count=self.settings.count, seed=self.seed)

        for index in range(self.settings.count):
            river = self._generate_river(index, self._rng_for(index))
            if river is None:
                self.failed_rivers.append(index)
                continue
            self._commit(river)

        logger.info(
            "Rivers generated",
            rivers=len(self.rivers),
            failed=len(self.failed_rivers),
            cells=len(self.river_cells),
        )
        return list(self.rivers)

    def _water_targets(self) -> List[int]:
        cells = set()
        if self.coastline is not None:
            cells.update(self.coastline.get_coastal_cells())
        if self.lakes is not None:
            cells.update(self.lakes.get_lake_cells())
        if self.marshes is not None:
            cells.update(self.marshes.get_marsh_cells())
        return sorted(cells)

    def _too_close(self, site: Point, used: List[Point]) -> bool:
        return any(site.distance_to(p) < self.settings.min_separation for p in used)

    def _start_candidates(self, water: Set[int]) -> List[int]:
        tolerance = self.settings.edge_tolerance
        grid_size = self.graph.grid_size
        candidates = []
        for cell in self.graph.cells:
            if cell.id in self.river_cells or cell.id in water or self._is_coastal(cell.id):
                continue
            if min(d for _, d in edge_distances(cell.site, grid_size)) > tolerance:
                continue
            if self._too_close(cell.site, self.used_starts):
                continue
            candidates.append(cell.id)
        return candidates

    def _edge_cells(self, edge: CompassDirection) -> List[int]:
        tolerance = self.settings.edge_tolerance
        grid_size = self.graph.grid_size
        return [
            cell.id
            for cell in self.graph.cells
            if dict(edge_distances(cell.site, grid_size))[edge] <= tolerance
        ]

    def _generate_river(self, index: int, rng: RandomFunc) -> Optional[River]:
        water = self._water_targets()
        candidates = self._start_candidates(set(water))
        if not candidates:
            logger.warning("No valid river start", river=index)
            return None

        start = rand_choice(rng, candidates)
        start_site = self.graph.cells[start].site
        start_edge = nearest_edge(start_site, self.graph.grid_size)

        targets = water or self._edge_cells(OPPOSITE_EDGE[start_edge])
        targets = [t for t in targets if t not in self.river_cells and t != start]
        if not targets:
            logger.warning("No river targets", river=index, start=start)
            return None

        by_distance = sorted(targets, key=lambda t: start_site.distance_to(self.graph.cells[t].site))
        valid = [t for t in by_distance if not self._too_close(self.graph.cells[t].site, self.used_ends)]
        relaxed = not valid
        end = valid[0] if valid else by_distance[0]
        if relaxed:
            logger.warning("River end separation relaxed", river=index, end=end)

        path = self.pathfinder.find_path(start, [end], claimed=self.river_cells)
        if not path:
            logger.warning("River pathfinding failed", river=index, start=start, end=end)
            return None

        logger.debug("River routed", river=index, start=start, end=end, cells=len(path))
        return River(index=index, path=path, start_edge=start_edge, end_relaxed=relaxed)

    def _commit(self, river: River) -> None:
        sites = [self.graph.cells[c].site for c in river.path]
        river.elevations = [self.get_cell_elevation(c) for c in river.path]
        river.length = sum(a.distance_to(b) for a, b in zip(sites, sites[1:]))

        for position, cell_id in enumerate(river.path):
            metadata = self.graph.cells[cell_id].metadata
            metadata.river = True
            metadata.river_index = river.index
            metadata.river_position = position
            metadata.river_elevation = river.elevations[position]
            self.river_cells.add(cell_id)

        self.rivers.append(river)
        self.used_starts.append(sites[0])
        self.used_ends.append(sites[-1])

    def clear(self) -> None:
        if self.graph is not None:
            self.graph.reset_metadata(*RIVER_KEYS)
        self.rivers = []
        self.river_cells = set()
        self.failed_rivers = []
        self.used_starts = []
        self.used_ends = []

    def is_river_cell(self, cell_id: int) -> bool:
        return cell_id in self.river_cells

    def get_river_cells(self) -> List[int]:
        return sorted(self.river_cells)

    def get_river_paths(self) -> List[List[int]]:
        return [list(r.path) for r in self.rivers]

    def get_river_stats(self) -> dict:
        lengths = np.array([r.length for r in self.rivers], dtype=np.float64)
        return {
            "total_rivers": len(self.rivers),
            "attempted": self.settings.count,
            "failed": len(self.failed_rivers),
            "total_cells": len(self.river_cells),
            "avg_length": float(lengths.mean()) if lengths.size else 0.0,
            "max_length": float(lengths.max()) if lengths.size else 0.0,
        }

    def create_river_features(self, terrain_data: TerrainData) -> List[str]:
        """One ``river`` feature per river, with the site polyline as its curve."""
        ids = []
        for river in self.rivers:
            points = [self.graph.cells[c].site.as_tuple() for c in river.path]
            feature = terrain_data.create_feature("river")
            feature.add_bezier_curve(points)
            feature.add_point_distribution(points)
            for cell_id in river.path:
                feature.add_affected_tiles(self.graph.cells[cell_id].affected_tiles)
            feature.calculate_centroid_from_bezier_curves()
            feature.set_metadata("river_index", river.index)
            feature.set_metadata("cells", list(river.path))
            feature.set_metadata("start_edge", river.start_edge.value)
            feature.set_metadata("length", river.length)
            feature.set_metadata("elevations", list(river.elevations))
            feature.set_metadata("end_relaxed", river.end_relaxed)
            ids.append(feature.id)
        return ids
