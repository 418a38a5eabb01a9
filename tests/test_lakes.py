"""Tests for lake generation."""

import pytest

from py_terrain.config.generation_settings import (
    CoastlineSettings,
    HillsSettings,
    LakesSettings,
    SiteDistribution,
    VoronoiSettings,
)
from py_terrain.core.coastline import CoastlineGenerator
from py_terrain.core.hills import HillsGenerator
from py_terrain.core.lakes import LakesGenerator
from py_terrain.core.lcg_prng import LCGPRNG
from py_terrain.core.terrain_data import TerrainData
from py_terrain.core.voronoi_graph import generate_voronoi_graph


@pytest.fixture
def graph():
    settings = VoronoiSettings(num_sites=150, distribution=SiteDistribution.RANDOM)
    return generate_voronoi_graph(settings, grid_size=600, seed=12345)


@pytest.fixture
def coastline(graph):
    generator = CoastlineGenerator(graph, CoastlineSettings(percent=15), LCGPRNG(3))
    generator.generate()
    return generator


@pytest.fixture
def hills(graph):
    generator = HillsGenerator(graph, HillsSettings(budget=20, gradient=False), LCGPRNG(1))
    generator.generate()
    return generator


class TestLakesGenerator:
    """Test lake growth."""

    def test_budget_and_depths(self, graph):
        lakes = LakesGenerator(graph, LakesSettings(budget=25, origins=2), LCGPRNG(1))
        cells = lakes.generate()

        assert len(cells) == 25
        for cell_id in cells:
            assert 5 <= lakes.get_lake_depth(cell_id) <= 50
        for origin in lakes.get_lake_origins():
            assert lakes.get_lake_depth(origin) == 50

    def test_avoids_coast(self, graph, coastline):
        lakes = LakesGenerator(graph, LakesSettings(budget=40), LCGPRNG(1), coastline=coastline)
        for cell_id in lakes.generate():
            assert not coastline.is_coastal_cell(cell_id)

    def test_origins_avoid_hills(self, graph, coastline, hills):
        lakes = LakesGenerator(
            graph, LakesSettings(budget=30, origins=4), LCGPRNG(1), coastline=coastline, hills=hills
        )
        lakes.generate()
        for origin in lakes.get_lake_origins():
            assert not hills.is_hill_cell(origin)
            assert not coastline.is_coastal_cell(origin)

    def test_flags_match_set(self, graph, coastline):
        lakes = LakesGenerator(graph, LakesSettings(), LCGPRNG(1), coastline=coastline)
        lakes.generate()
        for cell in graph.cells:
            assert cell.metadata.lake == lakes.is_lake_cell(cell.id)
            if cell.metadata.lake:
                assert cell.metadata.depth == lakes.get_lake_depth(cell.id)

    def test_deterministic(self, graph, coastline):
        first = LakesGenerator(graph, LakesSettings(), LCGPRNG(9), coastline=coastline).generate()
        second = LakesGenerator(graph, LakesSettings(), LCGPRNG(9), coastline=coastline).generate()
        assert first == second

    def test_zero_budget(self, graph):
        lakes = LakesGenerator(graph, LakesSettings(budget=0), LCGPRNG(1))
        assert lakes.generate() == []
        assert lakes.get_depth_stats()["lake_cells"] == 0

    def test_stats_and_feature(self, graph):
        lakes = LakesGenerator(graph, LakesSettings(budget=10, origins=1), LCGPRNG(1))
        lakes.generate()

        stats = lakes.get_depth_stats()
        assert stats["lake_cells"] == 10
        assert stats["origins"] == 1
        assert stats["max_depth"] == 50

        terrain_data = TerrainData(600)
        assert lakes.create_lake_features(terrain_data) == ["lakes_1"]
