"""
Tributary generation.

Tributaries branch off committed rivers. Branch points are interior cells of
a parent path, spaced apart and with room around them; for each one a source
cell is sampled to one side of the local flow and routed to the branch point
with the river pathfinder. Existing river cells stay passable but cost 100
times more to enter, so tributaries join their parent instead of cutting
across other rivers. Branching recurses on each new tributary up to the
configured depth, with the distance band and the branch probability shrinking
at every level.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Set

import structlog

from ..config.generation_settings import TributarySettings
from ..utils.random import rand_choice
from .lcg_prng import RandomFunc, make_rng
from .pathfinding import RiverPathfinder
from .rivers import RiversGenerator
from .terrain_data import TerrainData
from .voronoi_graph import VoronoiGraph

logger = structlog.get_logger()

RIVER_CROSSING_PENALTY = 100.0
# Distance band shrinks by this factor per depth level
DEPTH_DISTANCE_DECAY = 0.6
# Fraction of a path excluded at each end when picking branch points
PATH_MARGIN_RATIO = 0.15
MIN_TRIBUTARY_CELLS = 2

TRIBUTARY_KEYS = (
    "tributary",
    "tributary_index",
    "tributary_depth",
    "tributary_parent",
    "tributary_position",
)


@dataclass
class Tributary:
    """A branch flowing from its source into a parent path."""

    index: int
    # Source first; the confluence cell on the parent is not included
    path: List[int]
    depth: int
    river_index: int
    # Tributary index of the parent, None when the parent is a river
    parent_tributary: Optional[int]
    confluence: int


class TributariesGenerator:
    """Branches tributaries off the rivers of a ``RiversGenerator``."""

    def __init__(
        self,
        graph: Optional[VoronoiGraph],
        rivers: Optional[RiversGenerator],
        settings: Optional[TributarySettings] = None,
        rng: Optional[RandomFunc] = None,
    ):
        self.graph = graph
        self.rivers = rivers
        self.settings = settings or TributarySettings()
        self.rng = rng or make_rng(None)

        self.tributaries: List[Tributary] = []
        self.tributary_cells: Set[int] = set()
        self.pathfinder: Optional[RiverPathfinder] = None

    def generate(self) -> List[Tributary]:
        """
        Branch tributaries off every committed river.

        Returns:
            All tributaries, in creation order
        """
        if self.graph is None or self.rivers is None:
            logger.error(
                "Tributary generation needs a graph and rivers",
                has_graph=self.graph is not None,
                has_rivers=self.rivers is not None,
            )
            return []

        self.clear()
        self.pathfinder = self.rivers.pathfinder
        logger.info(
            "Generating tributaries",
            rivers=len(self.rivers.rivers),
            max_depth=self.settings.max_depth,
        )

        for river in self.rivers.rivers:
            self._branch(river.path, depth=1, river_index=river.index, parent_tributary=None)

        logger.info(
            "Tributaries generated",
            tributaries=len(self.tributaries),
            cells=len(self.tributary_cells),
        )
        return list(self.tributaries)

    def _claimed(self, cell_id: int) -> bool:
        return self.rivers.is_river_cell(cell_id) or cell_id in self.tributary_cells

    def distance_band(self, depth: int):
        """Allowed source distance from the branch point at one depth level."""
        scale = DEPTH_DISTANCE_DECAY ** (depth - 1)
        return self.settings.min_distance * scale, self.settings.max_distance * scale

    def branch_points(self, path: List[int]) -> List[int]:
        """
        Path positions eligible for branching.

        Interior positions outside the head and tail margins, spaced at
        least ``branching_separation`` apart, whose cell has at least two
        unclaimed neighbors.
        """
        margin = max(1, round(len(path) * PATH_MARGIN_RATIO))
        points: List[int] = []
        for position in range(margin, len(path) - margin):
            if points and position - points[-1] < self.settings.branching_separation:
                continue
            free = [n for n in self.graph.cell_neighbors[path[position]] if not self._claimed(n)]
            if len(free) >= 2:
                points.append(position)
        return points

    def _branch(
        self,
        path: List[int],
        depth: int,
        river_index: int,
        parent_tributary: Optional[int],
    ) -> None:
        if depth > self.settings.max_depth:
            return

        probability = self.settings.branch_probability ** depth
        for position in self.branch_points(path):
            if self.rng() >= probability:
                continue

            tributary = self._grow(path, position, depth, river_index, parent_tributary)
            if tributary is not None:
                self._branch(tributary.path, depth + 1, river_index, tributary.index)

    def _grow(
        self,
        path: List[int],
        position: int,
        depth: int,
        river_index: int,
        parent_tributary: Optional[int],
    ) -> Optional[Tributary]:
        branch_cell = path[position]
        branch_site = self.graph.cells[branch_cell].site
        prev_site = self.graph.cells[path[position - 1]].site
        next_site = self.graph.cells[path[min(position + 1, len(path) - 1)]].site
        flow_x, flow_z = next_site.x - prev_site.x, next_site.z - prev_site.z

        side = 1 if self.rng() < 0.5 else -1
        low, high = self.distance_band(depth)

        candidates = []
        for cell in self.graph.cells:
            if self._claimed(cell.id):
                continue
            dist = branch_site.distance_to(cell.site)
            if not low <= dist <= high:
                continue
            cross = flow_x * (cell.site.z - branch_site.z) - flow_z * (cell.site.x - branch_site.x)
            if cross * side <= 0:
                continue
            candidates.append((dist, cell.id))

        if not candidates:
            logger.debug("No tributary source candidates", branch_cell=branch_cell, depth=depth)
            return None

        # Farthest first, ties by id
        candidates.sort(key=lambda item: (-item[0], item[1]))
        top = [cell_id for _, cell_id in candidates[: self.settings.top_candidates]]
        source = rand_choice(self.rng, top)

        route = self.pathfinder.find_path(
            source,
            [branch_cell],
            claimed=self.tributary_cells - {branch_cell},
            penalized=self.rivers.river_cells,
            penalty=RIVER_CROSSING_PENALTY,
        )
        cells = route[:-1]
        if len(cells) < MIN_TRIBUTARY_CELLS or any(self._claimed(c) for c in cells):
            logger.debug(
                "Tributary discarded",
                branch_cell=branch_cell,
                source=source,
                route_cells=len(route),
            )
            return None

        tributary = Tributary(
            index=len(self.tributaries),
            path=cells,
            depth=depth,
            river_index=river_index,
            parent_tributary=parent_tributary,
            confluence=branch_cell,
        )
        self._commit(tributary)
        return tributary

    def _commit(self, tributary: Tributary) -> None:
        for position, cell_id in enumerate(tributary.path):
            metadata = self.graph.cells[cell_id].metadata
            metadata.tributary = True
            metadata.tributary_index = tributary.index
            metadata.tributary_depth = tributary.depth
            metadata.tributary_parent = tributary.river_index
            metadata.tributary_position = position
            self.tributary_cells.add(cell_id)
        self.tributaries.append(tributary)
        logger.debug(
            "Tributary added",
            index=tributary.index,
            depth=tributary.depth,
            cells=len(tributary.path),
        )

    def clear(self) -> None:
        if self.graph is not None:
            self.graph.reset_metadata(*TRIBUTARY_KEYS)
        self.tributaries = []
        self.tributary_cells = set()

    def is_tributary_cell(self, cell_id: int) -> bool:
        return cell_id in self.tributary_cells

    def get_tributary_cells(self) -> List[int]:
        return sorted(self.tributary_cells)

    def get_tributary_stats(self) -> dict:
        by_depth = {}
        for tributary in self.tributaries:
            by_depth[tributary.depth] = by_depth.get(tributary.depth, 0) + 1
        return {
            "total_tributaries": len(self.tributaries),
            "total_cells": len(self.tributary_cells),
            "by_depth": dict(sorted(by_depth.items())),
            "max_depth_reached": max(by_depth) if by_depth else 0,
        }

    def create_tributary_features(self, terrain_data: TerrainData) -> List[str]:
        ids = []
        for tributary in self.tributaries:
            cells = tributary.path + [tributary.confluence]
            points = [self.graph.cells[c].site.as_tuple() for c in cells]
            feature = terrain_data.create_feature("tributary")
            feature.add_bezier_curve(points)
            for cell_id in tributary.path:
                feature.add_affected_tiles(self.graph.cells[cell_id].affected_tiles)
            feature.calculate_centroid_from_bezier_curves()
            feature.set_metadata("tributary_index", tributary.index)
            feature.set_metadata("river_index", tributary.river_index)
            feature.set_metadata("parent_tributary", tributary.parent_tributary)
            feature.set_metadata("depth", tributary.depth)
            feature.set_metadata("cells", list(tributary.path))
            feature.set_metadata("confluence", tributary.confluence)
            feature.set_metadata("length", math.fsum(
                math.dist(a, b) for a, b in zip(points, points[1:])
            ))
            ids.append(feature.id)
        return ids
