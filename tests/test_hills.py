"""Tests for hill growth and the elevation gradient."""

import pytest

from py_terrain.config.generation_settings import (
    CompassDirection,
    HillsSettings,
    SiteDistribution,
    VoronoiSettings,
)
from py_terrain.core.hills import HillsGenerator, distance_to_edge
from py_terrain.core.lcg_prng import LCGPRNG
from py_terrain.core.terrain_data import TerrainData
from py_terrain.core.voronoi_graph import generate_voronoi_graph


@pytest.fixture
def graph():
    settings = VoronoiSettings(num_sites=150, distribution=SiteDistribution.RANDOM)
    return generate_voronoi_graph(settings, grid_size=600, seed=12345)


def run_hills(graph, seed=12345, **overrides):
    generator = HillsGenerator(graph, HillsSettings(**overrides), LCGPRNG(seed))
    generator.generate()
    return generator


class TestDistanceToEdge:
    """Test edge distance helper."""

    def test_edges(self):
        assert distance_to_edge(100, 50, CompassDirection.NORTH, 600) == 50
        assert distance_to_edge(100, 50, CompassDirection.SOUTH, 600) == 550
        assert distance_to_edge(100, 50, CompassDirection.EAST, 600) == 500
        assert distance_to_edge(100, 50, CompassDirection.WEST, 600) == 100


class TestHillGrowth:
    """Test discrete hill placement."""

    def test_budget_respected(self, graph):
        hills = run_hills(graph, budget=40, origins=3, gradient=False)
        assert len(hills.get_hill_cells()) == 40
        assert len(hills.get_hill_origins()) == 3

    def test_origins_at_full_height(self, graph):
        hills = run_hills(graph, budget=40, origins=3, gradient=False)
        for origin in hills.get_hill_origins():
            assert hills.get_cell_height(origin) == 100
            assert graph.cells[origin].metadata.hill_origin

    def test_children_lower_than_parent(self, graph):
        hills = run_hills(graph, budget=60, origins=2, gradient=False)
        origins = set(hills.get_hill_origins())
        for cell_id in hills.get_hill_cells():
            if cell_id in origins:
                continue
            parent = graph.cells[cell_id].metadata.parent_hill
            assert hills.is_hill_cell(parent)
            height = hills.get_cell_height(cell_id)
            assert height == 10 or height <= hills.get_cell_height(parent) - 5

    def test_budget_below_origin_count(self, graph):
        hills = run_hills(graph, budget=2, origins=3, gradient=False)
        assert len(hills.get_hill_cells()) == 2

    def test_budget_larger_than_graph(self, graph):
        hills = run_hills(graph, budget=1000, origins=3, gradient=False)
        assert len(hills.get_hill_cells()) == graph.n_cells

    def test_flags_match_set(self, graph):
        hills = run_hills(graph, budget=50)
        for cell in graph.cells:
            assert cell.metadata.hill == hills.is_hill_cell(cell.id)

    def test_deterministic(self, graph):
        first = run_hills(graph, budget=50)
        first_cells, first_heights = first.get_hill_cells(), dict(first.cell_heights)
        second = run_hills(graph, budget=50)
        assert second.get_hill_cells() == first_cells
        assert second.cell_heights == first_heights


class TestGradient:
    """Test the edge gradient."""

    def test_heights_within_range(self, graph):
        hills = run_hills(graph, budget=50, gradient=True)
        for cell in graph.cells:
            assert 0 <= cell.metadata.height <= 100

    def test_every_cell_has_height(self, graph):
        hills = run_hills(graph, budget=50, gradient=True)
        assert len(hills.cell_heights) == graph.n_cells

    def test_non_hill_cells_marked_gradient(self, graph):
        hills = run_hills(graph, budget=50, gradient=True)
        for cell in graph.cells:
            assert cell.metadata.gradient == (not hills.is_hill_cell(cell.id))

    def test_one_or_two_edges(self, graph):
        hills = run_hills(graph, budget=50, gradient=True)
        assert 1 <= len(hills.gradient_edges) <= 2
        assert len(set(hills.gradient_edges)) == len(hills.gradient_edges)

    def test_regenerate_without_gradient_clears_heights(self, graph):
        hills = run_hills(graph, budget=20, gradient=True)
        hills.settings = HillsSettings(budget=20, gradient=False)
        hills.generate()

        for cell in graph.cells:
            if hills.is_hill_cell(cell.id):
                assert cell.metadata.height is not None
            else:
                assert cell.metadata.height is None
                assert not cell.metadata.gradient


class TestHillQueries:
    """Test stats and feature output."""

    def test_height_stats(self, graph):
        hills = run_hills(graph, budget=30, gradient=False)
        stats = hills.get_height_stats()
        assert stats["hill_cells"] == 30
        assert stats["max_height"] == 100
        assert stats["min_height"] >= 10

    def test_empty_stats(self, graph):
        hills = HillsGenerator(graph, HillsSettings(), LCGPRNG(1))
        assert hills.get_height_stats()["total_cells"] == 0

    def test_hill_feature(self, graph):
        hills = run_hills(graph, budget=30, gradient=False)
        terrain_data = TerrainData(600)
        ids = hills.create_hill_features(terrain_data)

        assert ids == ["hills_1"]
        feature = terrain_data.get_feature("hills_1")
        assert feature.get_metadata("hill_cell_count") == 30
        assert len(feature.point_distributions[0]) == 30
