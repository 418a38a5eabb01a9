"""Tests for the Bowyer-Watson triangulation."""

import numpy as np
import pytest
from scipy.spatial import Delaunay

from py_terrain.core.delaunay import in_circumcircle, triangulate
from py_terrain.core.geometry import Point


@pytest.fixture
def random_points():
    """Sixty well spread random points."""
    coords = np.random.default_rng(42).uniform(0, 100, size=(60, 2))
    return [Point(float(x), float(z)) for x, z in coords]


class TestSmallInputs:
    """Test trivial and degenerate inputs."""

    def test_single_triangle(self):
        """Three points give one triangle, three edges and one circumcenter."""
        result = triangulate([Point(0, 0), Point(1, 0), Point(0, 1)])

        assert len(result.triangles) == 1
        assert len(result.edges) == 3
        assert len(result.circumcenters) == 1
        center = result.circumcenters[0]
        assert center.x == pytest.approx(0.5)
        assert center.z == pytest.approx(0.5)
        assert sorted(result.triangle_indices) == [0, 1, 2]

    def test_too_few_points(self):
        assert triangulate([]).is_empty()
        assert triangulate([Point(0, 0), Point(1, 1)]).is_empty()

    def test_duplicate_points_skipped(self):
        """A point within 1e-5 of an inserted point does not add triangles."""
        points = [Point(0, 0), Point(1, 0), Point(0, 1), Point(0, 0.000001)]
        result = triangulate(points)

        assert len(result.triangles) == 1
        assert 3 not in result.triangle_indices

    def test_cocircular_square(self):
        """Four cocircular points still cover the square with two triangles."""
        result = triangulate([Point(0, 0), Point(1, 0), Point(1, 1), Point(0, 1)])

        assert len(result.triangles) == 2
        assert sum(t.area() for t in result.triangles) == pytest.approx(1.0)

    def test_in_circumcircle_is_strict(self):
        a, b, c = Point(0, 0), Point(1, 0), Point(0, 1)
        assert in_circumcircle(a, b, c, Point(0.4, 0.4))
        assert not in_circumcircle(a, b, c, Point(1, 1))
        assert not in_circumcircle(a, b, c, Point(3, 3))


class TestTriangulationProperties:
    """Test invariants on a random point set."""

    def test_triangles_counterclockwise(self, random_points):
        result = triangulate(random_points)
        for triangle in result.triangles:
            a, b, c = triangle.points
            cross = (b.x - a.x) * (c.z - a.z) - (b.z - a.z) * (c.x - a.x)
            assert cross > 0

    def test_empty_circumcircle(self, random_points):
        """No input point lies strictly inside any triangle's circumcircle."""
        result = triangulate(random_points)
        assert not result.is_empty()

        for triangle, center in zip(result.triangles, result.circumcenters):
            if center is None:
                continue
            radius = center.distance_to(triangle.a)
            for index, point in enumerate(random_points):
                if index in triangle.indices:
                    continue
                assert center.distance_to(point) >= radius - 1e-6

    def test_subset_of_scipy_delaunay(self, random_points):
        """Every triangle also appears in the reference triangulation."""
        result = triangulate(random_points)
        reference = Delaunay(np.array([[p.x, p.z] for p in random_points]))
        reference_set = {frozenset(int(i) for i in simplex) for simplex in reference.simplices}

        ours = {frozenset(t.indices) for t in result.triangles}
        assert ours <= reference_set

    def test_edges_unique(self, random_points):
        result = triangulate(random_points)
        ids = [edge.id for edge in result.edges]
        assert len(ids) == len(set(ids))
        for edge_id in ids:
            low, high = (int(v) for v in edge_id.split("-"))
            assert low < high

    def test_circumcenter_per_triangle(self, random_points):
        result = triangulate(random_points)
        assert len(result.circumcenters) == len(result.triangles)
        assert len(result.triangle_indices) == 3 * len(result.triangles)

    def test_half_edge_opposites(self, random_points):
        """Opposite half-edges point back to each other and run reversed."""
        half_edges = triangulate(random_points).half_edges()
        boundary = 0
        for index, he in enumerate(half_edges):
            if he.is_boundary():
                boundary += 1
                continue
            twin = half_edges[he.opposite]
            assert twin.opposite == index
            assert (twin.start, twin.end) == (he.end, he.start)
        assert boundary >= 3

    def test_deterministic(self, random_points):
        first = triangulate(random_points)
        second = triangulate(random_points)
        assert first.triangle_indices == second.triangle_indices
