"""
Geometry primitives for the Voronoi/Delaunay terrain graph.

Coordinates use the map plane convention (x, z): x grows east, z grows south,
both within [0, grid_size] for every real site.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

# Tolerance used when comparing point coordinates
POINT_EPSILON = 1e-6

# Below this the circumcircle determinant is treated as degenerate
DEGENERATE_DETERMINANT = 1e-10


@dataclass(frozen=True)
class Point:
    """A 2D point in map space."""

    x: float
    z: float
    is_boundary: bool = False

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.z - other.z)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.z)

    def __str__(self) -> str:
        return f"({self.x:.2f}, {self.z:.2f})"


def points_equal(a: Point, b: Point, epsilon: float = POINT_EPSILON) -> bool:
    """Check whether two points coincide within a tolerance."""
    return abs(a.x - b.x) < epsilon and abs(a.z - b.z) < epsilon


def distance(a: Point, b: Point) -> float:
    return math.hypot(a.x - b.x, a.z - b.z)


def angle_between(center: Point, point: Point) -> float:
    """Angle of ``point`` around ``center`` in radians, in (-pi, pi]."""
    return math.atan2(point.z - center.z, point.x - center.x)


def sort_counterclockwise(center: Point, points: Sequence[Point]) -> List[Point]:
    """
    Order points by angle around a center.

    Sorting uses the angle as the only key; points with equal angles keep
    their input order.

    Args:
        center: Point to sort around
        points: Points to order

    Returns:
        New list sorted by increasing angle
    """
    return sorted(points, key=lambda p: angle_between(center, p))


def orientation(a: Point, b: Point, c: Point) -> float:
    """Twice the signed area of triangle abc, positive when counterclockwise."""
    return (b.x - a.x) * (c.z - a.z) - (b.z - a.z) * (c.x - a.x)


def polygon_area(vertices: Sequence[Point]) -> float:
    """Unsigned shoelace area of a polygon."""
    if len(vertices) < 3:
        return 0.0
    total = 0.0
    for i, current in enumerate(vertices):
        nxt = vertices[(i + 1) % len(vertices)]
        total += current.x * nxt.z - nxt.x * current.z
    return abs(total) / 2.0


def polygon_perimeter(vertices: Sequence[Point]) -> float:
    if len(vertices) < 2:
        return 0.0
    return sum(
        distance(vertices[i], vertices[(i + 1) % len(vertices)])
        for i in range(len(vertices))
    )


def centroid(points: Sequence[Point]) -> Optional[Point]:
    """Arithmetic mean of a set of points, None when empty."""
    if not points:
        return None
    return Point(
        sum(p.x for p in points) / len(points),
        sum(p.z for p in points) / len(points),
    )


@dataclass(frozen=True)
class Edge:
    """Undirected segment between two points."""

    a: Point
    b: Point
    id: str = ""

    def length(self) -> float:
        return distance(self.a, self.b)

    def midpoint(self) -> Point:
        return Point((self.a.x + self.b.x) / 2, (self.a.z + self.b.z) / 2)

    def same_as(self, other: "Edge") -> bool:
        """Check whether two edges join the same endpoints in either direction."""
        return (points_equal(self.a, other.a) and points_equal(self.b, other.b)) or (
            points_equal(self.a, other.b) and points_equal(self.b, other.a)
        )


@dataclass(frozen=True)
class Triangle:
    """Triangle over three points, remembering their source indices."""

    a: Point
    b: Point
    c: Point
    indices: Tuple[int, int, int] = (-1, -1, -1)

    @property
    def points(self) -> Tuple[Point, Point, Point]:
        return (self.a, self.b, self.c)

    def circumcenter(self) -> Optional[Point]:
        """
        Center of the circle through the three vertices.

        Returns:
            The circumcenter, or None when the vertices are (nearly) collinear
        """
        ax, az = self.a.x, self.a.z
        bx, bz = self.b.x, self.b.z
        cx, cz = self.c.x, self.c.z

        d = 2 * (ax * (bz - cz) + bx * (cz - az) + cx * (az - bz))
        if abs(d) < DEGENERATE_DETERMINANT:
            return None

        a_sq = ax * ax + az * az
        b_sq = bx * bx + bz * bz
        c_sq = cx * cx + cz * cz
        ux = (a_sq * (bz - cz) + b_sq * (cz - az) + c_sq * (az - bz)) / d
        uz = (a_sq * (cx - bx) + b_sq * (ax - cx) + c_sq * (bx - ax)) / d
        return Point(ux, uz)

    def area(self) -> float:
        return abs(orientation(self.a, self.b, self.c)) / 2.0

    def contains_point(self, point: Point) -> bool:
        """Barycentric containment test, boundary inclusive."""
        d1 = orientation(point, self.a, self.b)
        d2 = orientation(point, self.b, self.c)
        d3 = orientation(point, self.c, self.a)
        has_neg = d1 < 0 or d2 < 0 or d3 < 0
        has_pos = d1 > 0 or d2 > 0 or d3 > 0
        return not (has_neg and has_pos)

    def has_vertex(self, point: Point, epsilon: float = POINT_EPSILON) -> bool:
        return any(points_equal(point, p, epsilon) for p in self.points)


@dataclass(frozen=True)
class HalfEdge:
    """Directed edge of one triangle; ``opposite`` is -1 on the hull."""

    start: int
    end: int
    triangle: int
    opposite: int = -1

    def is_boundary(self) -> bool:
        return self.opposite == -1


@dataclass(frozen=True)
class VoronoiEdge:
    """Segment between two circumcenters separating two cells."""

    start: Point
    end: Point
    cell_a: int
    cell_b: int
    weight: Optional[float] = None

    def length(self) -> float:
        return distance(self.start, self.end)

    def midpoint(self) -> Point:
        return Point((self.start.x + self.end.x) / 2, (self.start.z + self.end.z) / 2)

    def other_cell(self, cell_id: int) -> int:
        """Cell on the other side of this edge from ``cell_id``."""
        if cell_id == self.cell_a:
            return self.cell_b
        if cell_id == self.cell_b:
            return self.cell_a
        raise ValueError(f"Cell {cell_id} does not border this edge")

    @property
    def effective_weight(self) -> float:
        return self.length() if self.weight is None else self.weight
