"""
Incremental Delaunay triangulation (Bowyer-Watson).

Points are inserted one at a time in input order into a large enclosing
super-triangle. Every triangle whose circumcircle strictly contains the new
point is removed and the resulting cavity is re-triangulated around the point.
Insertion order decides which triangulation is produced for near-cocircular
inputs, so callers that need reproducible output must keep it stable.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from .geometry import Edge, HalfEdge, Point, Triangle, orientation

logger = structlog.get_logger()

# Points closer than this to an already inserted point are skipped
DUPLICATE_EPSILON = 1e-5

# Super-triangle extent, in multiples of the bounding box size
SUPER_TRIANGLE_MARGIN = 20

IndexTriangle = Tuple[int, int, int]


@dataclass
class TriangulationResult:
    """Triangles, unique edges and circumcenters of a point set."""

    points: List[Point]
    triangles: List[Triangle] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    # One entry per triangle, None for degenerate triangles
    circumcenters: List[Optional[Point]] = field(default_factory=list)

    @property
    def triangle_indices(self) -> List[int]:
        """Flat list of point indices, three per triangle."""
        return [index for triangle in self.triangles for index in triangle.indices]

    def half_edges(self) -> List[HalfEdge]:
        """
        Directed edges of every triangle with their opposite half-edge.

        Half-edge ``3 * t + k`` runs from vertex ``k`` to vertex ``k + 1`` of
        triangle ``t``.
        """
        directed: Dict[Tuple[int, int], int] = {}
        for t, triangle in enumerate(self.triangles):
            for k in range(3):
                start = triangle.indices[k]
                end = triangle.indices[(k + 1) % 3]
                directed[(start, end)] = 3 * t + k

        half_edges = []
        for t, triangle in enumerate(self.triangles):
            for k in range(3):
                start = triangle.indices[k]
                end = triangle.indices[(k + 1) % 3]
                half_edges.append(
                    HalfEdge(start, end, t, directed.get((end, start), -1))
                )
        return half_edges

    def is_empty(self) -> bool:
        return not self.triangles


def in_circumcircle(a: Point, b: Point, c: Point, p: Point) -> bool:
    """
    Standard in-circle determinant for a counterclockwise triangle abc.

    Returns True only when ``p`` lies strictly inside the circumcircle; there
    is no epsilon, so cocircular points are never reported inside.
    """
    adx, adz = a.x - p.x, a.z - p.z
    bdx, bdz = b.x - p.x, b.z - p.z
    cdx, cdz = c.x - p.x, c.z - p.z

    det = (
        (adx * adx + adz * adz) * (bdx * cdz - cdx * bdz)
        - (bdx * bdx + bdz * bdz) * (adx * cdz - cdx * adz)
        + (cdx * cdx + cdz * cdz) * (adx * bdz - bdx * adz)
    )
    return det > 0


class DelaunayTriangulation:
    """Bowyer-Watson triangulator over a fixed list of points."""

    def __init__(self, points: Sequence[Point]):
        self.points = list(points)
        self._vertices: List[Point] = []
        self._triangles: List[IndexTriangle] = []

    def triangulate(self) -> TriangulationResult:
        """
        Triangulate the points.

        Returns:
            TriangulationResult whose triangle indices refer to the input
            point list. Fewer than three distinct points give an empty result.
        """
        result = TriangulationResult(points=self.points)
        if len(self.points) < 3:
            logger.debug("Too few points to triangulate", points=len(self.points))
            return result

        self._vertices = list(self.points)
        n = len(self.points)
        self._triangles = [self._oriented(*self._add_super_triangle())]

        inserted: List[int] = []
        skipped = 0
        for index, point in enumerate(self.points):
            if any(
                abs(point.x - self.points[j].x) < DUPLICATE_EPSILON
                and abs(point.z - self.points[j].z) < DUPLICATE_EPSILON
                for j in inserted
            ):
                skipped += 1
                continue
            self._insert(index)
            inserted.append(index)

        if skipped:
            logger.debug("Skipped duplicate points", skipped=skipped)

        kept = [t for t in self._triangles if max(t) < n]
        result.triangles = [
            Triangle(self.points[i], self.points[j], self.points[k], (i, j, k))
            for i, j, k in kept
        ]
        result.edges = self._unique_edges(kept)
        result.circumcenters = self._circumcenters(result.triangles)

        logger.debug(
            "Triangulation complete",
            points=n,
            triangles=len(result.triangles),
            edges=len(result.edges),
        )
        return result

    def _add_super_triangle(self) -> IndexTriangle:
        """Append three vertices enclosing every point and return their indices."""
        xs = [p.x for p in self.points]
        zs = [p.z for p in self.points]
        min_x, max_x = min(xs), max(xs)
        min_z, max_z = min(zs), max(zs)

        delta_max = max(max_x - min_x, max_z - min_z) or 1.0
        mid_x = (min_x + max_x) / 2
        mid_z = (min_z + max_z) / 2

        base = len(self._vertices)
        self._vertices.extend(
            [
                Point(mid_x - SUPER_TRIANGLE_MARGIN * delta_max, mid_z - delta_max),
                Point(mid_x, mid_z + SUPER_TRIANGLE_MARGIN * delta_max),
                Point(mid_x + SUPER_TRIANGLE_MARGIN * delta_max, mid_z - delta_max),
            ]
        )
        return (base, base + 1, base + 2)

    def _oriented(self, i: int, j: int, k: int) -> IndexTriangle:
        """Return the triangle with counterclockwise vertex order."""
        if orientation(self._vertices[i], self._vertices[j], self._vertices[k]) < 0:
            return (i, k, j)
        return (i, j, k)

    def _insert(self, index: int) -> None:
        point = self._vertices[index]

        bad: List[IndexTriangle] = []
        good: List[IndexTriangle] = []
        for triangle in self._triangles:
            a, b, c = (self._vertices[i] for i in triangle)
            if in_circumcircle(a, b, c, point):
                bad.append(triangle)
            else:
                good.append(triangle)

        # Cavity boundary: edges belonging to exactly one bad triangle
        edge_count: Dict[Tuple[int, int], int] = {}
        for triangle in bad:
            for u, v in _triangle_edges(triangle):
                key = (min(u, v), max(u, v))
                edge_count[key] = edge_count.get(key, 0) + 1

        boundary = [
            (u, v)
            for triangle in bad
            for u, v in _triangle_edges(triangle)
            if edge_count[(min(u, v), max(u, v))] == 1
        ]

        self._triangles = good + [self._oriented(u, v, index) for u, v in boundary]

    def _unique_edges(self, triangles: List[IndexTriangle]) -> List[Edge]:
        seen = set()
        edges = []
        for triangle in triangles:
            for u, v in _triangle_edges(triangle):
                key = (min(u, v), max(u, v))
                if key in seen:
                    continue
                seen.add(key)
                edges.append(
                    Edge(self.points[key[0]], self.points[key[1]], f"{key[0]}-{key[1]}")
                )
        return edges

    @staticmethod
    def _circumcenters(triangles: List[Triangle]) -> List[Optional[Point]]:
        centers = []
        for triangle in triangles:
            center = triangle.circumcenter()
            if center is None:
                logger.debug("Degenerate triangle", indices=triangle.indices)
            centers.append(center)
        return centers


def _triangle_edges(triangle: IndexTriangle) -> List[Tuple[int, int]]:
    i, j, k = triangle
    return [(i, j), (j, k), (k, i)]


def triangulate(points: Sequence[Point]) -> TriangulationResult:
    """Convenience wrapper around DelaunayTriangulation."""
    return DelaunayTriangulation(points).triangulate()
