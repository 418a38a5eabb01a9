"""Tests for Voronoi graph generation."""

import math

import numpy as np
import pytest

from py_terrain.config.generation_settings import SiteDistribution, VoronoiSettings
from py_terrain.core.geometry import Point
from py_terrain.core.lcg_prng import LCGPRNG
from py_terrain.core.voronoi_graph import (
    CellMetadata,
    build_voronoi_graph,
    clean_points,
    generate_grid_sites,
    generate_hexagonal_sites,
    generate_poisson_sites,
    generate_random_sites,
    generate_voronoi_graph,
    get_boundary_points,
    is_edge_cell,
)


@pytest.fixture
def graph():
    """60 random sites on a 600x600 grid."""
    settings = VoronoiSettings(num_sites=60, distribution=SiteDistribution.RANDOM)
    return generate_voronoi_graph(settings, grid_size=600, seed=12345)


class TestSiteGeneration:
    """Test site distributions."""

    def test_random_sites_spacing(self):
        sites = generate_random_sites(40, 20, 600, LCGPRNG(1))
        assert 0 < len(sites) <= 40
        for i, a in enumerate(sites):
            for b in sites[i + 1:]:
                assert a.distance_to(b) >= 20

    def test_poisson_sites_spacing(self):
        sites = generate_poisson_sites(30, 300, LCGPRNG(1))
        assert len(sites) > 10
        for i, a in enumerate(sites):
            assert 30 <= a.x < 270 and 30 <= a.z < 270
            for b in sites[i + 1:]:
                assert a.distance_to(b) >= 30

    def test_grid_sites_count(self):
        """Spacing 60 on a 300 grid gives a 5x5 lattice."""
        sites = generate_grid_sites(60, 300, LCGPRNG(1))
        assert len(sites) == 25
        for site in sites:
            assert 0 <= site.x <= 299 and 0 <= site.z <= 299

    def test_hexagonal_sites_in_bounds(self):
        sites = generate_hexagonal_sites(50, 300, LCGPRNG(1))
        assert len(sites) > 20
        for site in sites:
            assert 0 <= site.x <= 299 and 0 <= site.z <= 299

    def test_clean_points(self):
        """Near duplicates are dropped and coordinates rounded half up."""
        cleaned = clean_points([Point(1.0625, 2.0), Point(1.07, 2.0), Point(5, 5)])
        assert cleaned == [Point(1.063, 2.0), Point(5, 5)]

    def test_boundary_points(self):
        boundary = get_boundary_points(600)
        assert len(boundary) == 8
        assert all(p.is_boundary for p in boundary)
        assert all(p.x < 0 or p.x > 600 or p.z < 0 or p.z > 600 for p in boundary)


class TestVoronoiGraph:
    """Test the assembled cell graph."""

    def test_boundary_sites_are_not_cells(self, graph):
        assert len(graph.sites) == graph.n_cells + 8
        assert not any(cell.site.is_boundary for cell in graph.cells)
        assert len(graph.cell_site_index) == graph.n_cells

    def test_sites_inside_grid(self, graph):
        assert np.all(graph.points >= 0)
        assert np.all(graph.points <= 600)

    def test_adjacency_symmetric(self, graph):
        for cell_id, neighbors in enumerate(graph.cell_neighbors):
            assert cell_id not in neighbors
            for neighbor in neighbors:
                assert cell_id in graph.cell_neighbors[neighbor]

    def test_graph_connected(self, graph):
        seen = {0}
        stack = [0]
        while stack:
            for neighbor in graph.neighbors(stack.pop()):
                if neighbor not in seen:
                    seen.add(neighbor)
                    stack.append(neighbor)
        assert len(seen) == graph.n_cells

    def test_vertices_counterclockwise(self, graph):
        for cell in graph.cells:
            assert len(cell.vertices) >= 3
            angles = [math.atan2(v.z - cell.site.z, v.x - cell.site.x) for v in cell.vertices]
            assert angles == sorted(angles)

    def test_voronoi_edges_join_neighbors(self, graph):
        assert graph.voronoi_edges
        for edge in graph.voronoi_edges:
            assert edge.cell_b in graph.neighbors(edge.cell_a)

    def test_edge_cells(self, graph):
        edge_cells = graph.get_edge_cells()
        assert edge_cells
        for cell in graph.cells:
            if is_edge_cell(cell.vertices, 600):
                assert graph.is_edge_cell(cell.id)

    def test_cell_areas_positive(self, graph):
        assert all(cell.area > 0 for cell in graph.cells)

    def test_find_closest_cell(self, graph):
        for cell in graph.cells[:10]:
            assert graph.find_closest_cell(cell.site.x, cell.site.z) == cell.id

    def test_deterministic(self, graph):
        settings = VoronoiSettings(num_sites=60, distribution=SiteDistribution.RANDOM)
        again = generate_voronoi_graph(settings, grid_size=600, seed=12345)

        np.testing.assert_array_equal(graph.points, again.points)
        assert graph.cell_neighbors == again.cell_neighbors

    def test_different_seeds(self, graph):
        settings = VoronoiSettings(num_sites=60, distribution=SiteDistribution.RANDOM)
        other = generate_voronoi_graph(settings, grid_size=600, seed=54321)
        assert not np.array_equal(graph.points, other.points)

    def test_get_cell_out_of_range(self, graph):
        assert graph.get_cell(-1) is None
        assert graph.get_cell(graph.n_cells) is None


class TestCellMetadata:
    """Test the per-cell metadata record."""

    def test_unknown_key(self):
        metadata = CellMetadata()
        with pytest.raises(KeyError):
            metadata.get("volcano")
        with pytest.raises(KeyError):
            metadata.set("volcano", True)

    def test_reset(self, graph):
        graph.cells[0].set_metadata("hill", True)
        graph.cells[0].set_metadata("height", 42.0)
        graph.reset_metadata("hill", "height")

        assert graph.cells[0].get_metadata("hill") is False
        assert graph.cells[0].get_metadata("height") is None


class TestTiles:
    """Test tile assignment."""

    def test_assign_tiles_to_nearest_cell(self):
        settings = VoronoiSettings(num_sites=20, distribution=SiteDistribution.RANDOM, assign_tiles=True)
        graph = generate_voronoi_graph(settings, grid_size=100, seed=7)

        total = sum(len(cell.affected_tiles) for cell in graph.cells)
        assert total == 100 * 100

        for cell in graph.cells[:5]:
            for tx, tz in cell.affected_tiles[:20]:
                nearest = min(
                    graph.cells,
                    key=lambda c: (c.site.x - tx) ** 2 + (c.site.z - tz) ** 2,
                )
                assert cell.site.distance_to(Point(tx, tz)) == pytest.approx(
                    nearest.site.distance_to(Point(tx, tz))
                )

    def test_point_inside_own_cell(self):
        sites = [Point(25, 25), Point(75, 25), Point(50, 75)] + get_boundary_points(100)
        graph = build_voronoi_graph(sites, 100)
        assert graph.n_cells == 3
        for cell in graph.cells:
            assert cell.is_point_inside(cell.site)
