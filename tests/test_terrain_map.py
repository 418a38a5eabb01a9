"""Tests for the terrain generation pipeline."""

import json
from unittest.mock import patch

import pytest

from py_terrain.config.generation_settings import (
    HillsSettings,
    RiversSettings,
    SiteDistribution,
    TerrainSettings,
    VoronoiSettings,
)
from py_terrain.core.coastline import CoastlineError, CoastlineGenerator
from py_terrain.core.rivers import OPPOSITE_EDGE, edge_distances
from py_terrain.core.terrain_map import TerrainMap, generate_terrain


def scenario_settings(**overrides):
    """Seed 12345, 50 random sites, 2 rivers and 100 hill cells."""
    values = dict(
        grid_size=600,
        seed=12345,
        voronoi=VoronoiSettings(num_sites=50, distribution=SiteDistribution.RANDOM),
        hills=HillsSettings(budget=100, origins=3, gradient=True),
        rivers=RiversSettings(count=2),
    )
    values.update(overrides)
    return TerrainSettings(**values)


@pytest.fixture
def terrain():
    return generate_terrain(scenario_settings())


class TestScenario:
    """Test the reference map."""

    def test_stages_ran(self, terrain):
        assert terrain.graph.n_cells > 40
        assert terrain.coastline.get_coastal_cells()
        assert terrain.hills.get_hill_cells()
        assert terrain.errors == []

    def test_one_or_two_rivers(self, terrain):
        assert 1 <= len(terrain.rivers.rivers) <= 2
        assert all(river.path for river in terrain.rivers.rivers)

    def test_river_paths(self, terrain):
        graph = terrain.graph
        water = set(terrain.coastline.get_coastal_cells())
        water |= set(terrain.lakes.get_lake_cells())
        water |= set(terrain.marshes.get_marsh_cells())

        for river in terrain.rivers.rivers:
            start_site = graph.cells[river.start_cell].site
            assert min(d for _, d in edge_distances(start_site, 600)) <= 20
            if water:
                assert river.end_cell in water
            else:
                end_site = graph.cells[river.end_cell].site
                assert dict(edge_distances(end_site, 600))[OPPOSITE_EDGE[river.start_edge]] <= 20

    def test_heights_in_range(self, terrain):
        for cell in terrain.graph.cells:
            assert 0 <= cell.metadata.height <= 100

    def test_deterministic(self, terrain):
        again = generate_terrain(scenario_settings())

        assert again.rivers.get_river_paths() == terrain.rivers.get_river_paths()
        assert again.hills.get_hill_cells() == terrain.hills.get_hill_cells()
        assert again.hills.cell_heights == terrain.hills.cell_heights
        assert again.lakes.get_lake_cells() == terrain.lakes.get_lake_cells()
        assert [t.path for t in again.tributaries.tributaries] == [
            t.path for t in terrain.tributaries.tributaries
        ]

    def test_features_created(self, terrain):
        stats = terrain.terrain_data.get_feature_stats()
        assert stats["coastline"] == 1
        assert stats["hills"] == 1
        assert stats.get("river", 0) == len(terrain.rivers.rivers)
        assert stats.get("tributary", 0) == len(terrain.tributaries.tributaries)


class TestTerrainMap:
    """Test pipeline orchestration."""

    def test_regenerate_drops_disabled_stages(self, terrain):
        terrain.settings = scenario_settings(rivers=RiversSettings(enabled=False))
        terrain.generate()

        assert terrain.rivers is None
        assert terrain.tributaries is None
        assert not any(c.metadata.river or c.metadata.tributary for c in terrain.graph.cells)
        assert "river" not in terrain.terrain_data.get_feature_stats()

    def test_disabled_coastline(self):
        settings = scenario_settings()
        settings.coastline.enabled = False
        terrain = generate_terrain(settings)

        assert terrain.coastline is None
        assert terrain.marshes.get_marsh_cells() == []
        assert not any(c.metadata.is_coastline for c in terrain.graph.cells)

    def test_coastline_failure_is_recorded(self):
        with patch.object(CoastlineGenerator, "generate", side_effect=CoastlineError("no coast")):
            terrain = generate_terrain(scenario_settings())

        assert terrain.errors == ["coastline: no coast"]
        assert terrain.coastline.get_coastal_cells() == []
        assert terrain.hills is not None
        assert terrain.rivers is not None

    def test_summary(self, terrain):
        summary = terrain.summary()
        assert summary["generated"]
        assert summary["cells"] == terrain.graph.n_cells
        assert summary["rivers"]["total_rivers"] == len(terrain.rivers.rivers)
        assert summary["generation_time_seconds"] > 0

    def test_default_settings_reach_rivers(self):
        assert TerrainSettings() == scenario_settings()
        terrain = generate_terrain(TerrainSettings())

        assert terrain.rivers.rivers
        assert all(river.path for river in terrain.rivers.rivers)

    def test_summary_before_generation(self):
        assert TerrainMap().summary() == {"generated": False}

    def test_export(self, terrain):
        document = terrain.export(timestamp="2024-01-01T00:00:00+00:00")
        assert document["rivers"] == [
            {
                "index": i,
                "vertex_indices": path,
                "vertices": document["rivers"][i]["vertices"],
            }
            for i, path in enumerate(terrain.rivers.get_river_paths())
        ]
        assert document["coastlines"][0]["direction"] == "N"
        assert document["metadata"]["settings"]["seed"] == 12345
        json.dumps(document)

    def test_export_before_generation(self):
        with pytest.raises(ValueError):
            TerrainMap().export()

    def test_unseeded_map(self):
        terrain = generate_terrain(scenario_settings(seed=None))
        assert terrain.graph.n_cells > 0
        assert terrain.graph.seed is None
