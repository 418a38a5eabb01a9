"""
Elevation-aware A* over the Voronoi cell graph.

Rivers and tributaries share this search. Moves that go downhill are cheap,
uphill moves are penalized in proportion to the climb, and cells that still
have a lower neighbor are favored so paths keep descending. The cost and
heuristic formulas are part of the observable behavior: changing a constant
changes which cells a seeded map's rivers run through.
"""

import heapq
import math
from itertools import count
from typing import Callable, Collection, Dict, List, Optional, Sequence

import structlog

from .voronoi_graph import VoronoiGraph

logger = structlog.get_logger()

DEFAULT_MAX_ITERATIONS = 1000
MIN_MOVE_COST = 0.01
IMPASSABLE_ELEVATION = 150.0

# Fallback elevation range when no height field has been generated
FALLBACK_ELEVATION_RANGE = 30.0


def cell_elevation(graph: VoronoiGraph, cell_id: int) -> float:
    """
    Resolve the elevation of a cell.

    Uses the ``height`` metadata written by the hills stage. Without it the
    elevation rises with distance from the map center, scaled to [0, 30].
    """
    cell = graph.cells[cell_id]
    if cell.metadata.height is not None:
        return cell.metadata.height

    center = graph.grid_size / 2
    dist = math.hypot(cell.site.x - center, cell.site.z - center)
    max_dist = math.sqrt(2) * graph.grid_size / 2
    return (dist / max_dist) * FALLBACK_ELEVATION_RANGE


class RiverPathfinder:
    """
    Weighted A* search between cells.

    Args:
        graph: Cell graph to search
        elevation: Elevation lookup, defaults to ``cell_elevation``
        is_marsh: Marsh membership test; marsh cells are cheap and passable
        is_lake: Lake membership test; lake cells are passable
        max_iterations: Cap on expanded nodes per search
    """

    def __init__(
        self,
        graph: VoronoiGraph,
        elevation: Optional[Callable[[int], float]] = None,
        is_marsh: Optional[Callable[[int], bool]] = None,
        is_lake: Optional[Callable[[int], bool]] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ):
        self.graph = graph
        self.elevation = elevation or (lambda cell_id: cell_elevation(graph, cell_id))
        self.is_marsh = is_marsh or (lambda cell_id: False)
        self.is_lake = is_lake or (lambda cell_id: False)
        self.max_iterations = max_iterations
        self.last_iterations = 0

    def has_lower_neighbor(self, cell_id: int) -> bool:
        height = self.elevation(cell_id)
        return any(self.elevation(n) < height for n in self.graph.cell_neighbors[cell_id])

    def movement_cost(self, from_id: int, to_id: int) -> float:
        """
        Cost of stepping from one cell to a neighbor.

        Downhill moves cost ``max(0.01, 1 - |dh| * 0.2)``; uphill moves cost
        ``1 + dh * 0.5`` plus ``dh * 0.1`` on steep climbs. Marsh halves the
        cost, high ground adds 10% and a destination with a lower neighbor
        costs 30%.
        """
        from_height = self.elevation(from_id)
        to_height = self.elevation(to_id)
        change = to_height - from_height

        if change <= 0:
            cost = max(MIN_MOVE_COST, 1.0 - abs(change) * 0.2)
        else:
            cost = 1.0 + change * 0.5
            if change > 20:
                cost += change * 0.1

        if self.is_marsh(to_id):
            cost *= 0.5
        if to_height > 80:
            cost *= 1.1
        if self.has_lower_neighbor(to_id):
            cost *= 0.3

        return max(MIN_MOVE_COST, cost)

    def heuristic(self, cell_id: int, targets: Sequence[int]) -> float:
        """
        Estimated cost to the closest target.

        Distance plus an elevation bias: 0.1 per unit when the target is
        higher, minus 0.3 per unit when it is lower.
        """
        if not targets:
            return 0.0

        site = self.graph.cells[cell_id].site
        height = self.elevation(cell_id)
        best = math.inf
        for target in targets:
            dist = site.distance_to(self.graph.cells[target].site)
            diff = height - self.elevation(target)
            if diff < 0:
                estimate = dist + abs(diff) * 0.1
            else:
                estimate = dist - diff * 0.3
            best = min(best, estimate)
        return best

    def is_obstacle(self, cell_id: int, claimed: Collection[int]) -> bool:
        """Claimed cells block; lakes and marshes never do; peaks above 150 block."""
        if cell_id in claimed:
            return True
        if self.is_lake(cell_id) or self.is_marsh(cell_id):
            return False
        return self.elevation(cell_id) > IMPASSABLE_ELEVATION

    def find_path(
        self,
        start: int,
        targets: Sequence[int],
        claimed: Collection[int] = frozenset(),
        penalized: Collection[int] = frozenset(),
        penalty: float = 1.0,
    ) -> List[int]:
        """
        Search for the cheapest path from ``start`` to any target.

        The search stops as soon as a target enters the open set.

        Args:
            start: Start cell id
            targets: Acceptable end cells
            claimed: Cells that may not be entered
            penalized: Cells whose entry cost is multiplied by ``penalty``
            penalty: Entry cost multiplier for ``penalized`` cells

        Returns:
            Cell ids from start to the reached target, or an empty list when
            the search is exhausted or hits the iteration cap
        """
        target_set = set(targets)
        self.last_iterations = 0
        if not target_set:
            return []
        if start in target_set:
            return [start]

        came_from: Dict[int, int] = {}
        g_score: Dict[int, float] = {start: 0.0}
        tie = count()
        open_heap = [(self.heuristic(start, targets), next(tie), start)]
        f_score: Dict[int, float] = {start: open_heap[0][0]}

        iterations = 0
        while open_heap:
            if iterations >= self.max_iterations:
                logger.warning(
                    "Pathfinding iteration cap reached",
                    start=start,
                    iterations=iterations,
                )
                self.last_iterations = iterations
                return []

            f, _, current = heapq.heappop(open_heap)
            if f > f_score.get(current, math.inf):
                continue  # stale
            iterations += 1

            for neighbor in self.graph.cell_neighbors[current]:
                if self.is_obstacle(neighbor, claimed):
                    continue

                step = self.movement_cost(current, neighbor)
                if neighbor in penalized:
                    step *= penalty
                tentative = g_score[current] + step
                if tentative >= g_score.get(neighbor, math.inf):
                    continue

                came_from[neighbor] = current
                g_score[neighbor] = tentative
                if neighbor in target_set:
                    self.last_iterations = iterations
                    return self._reconstruct(came_from, neighbor)

                f_score[neighbor] = tentative + self.heuristic(neighbor, targets)
                heapq.heappush(open_heap, (f_score[neighbor], next(tie), neighbor))

        self.last_iterations = iterations
        logger.warning("Pathfinding exhausted open set", start=start, iterations=iterations)
        return []

    @staticmethod
    def _reconstruct(came_from: Dict[int, int], end: int) -> List[int]:
        path = [end]
        while path[-1] in came_from:
            path.append(came_from[path[-1]])
        path.reverse()
        return path
