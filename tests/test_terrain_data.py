"""Tests for the terrain feature catalog."""

import pytest

from py_terrain.core.terrain_data import TerrainData, TerrainFeature


@pytest.fixture
def terrain_data():
    data = TerrainData(grid_size=10)
    river = data.create_feature("river")
    river.add_bezier_curve([(0, 0), (2, 2), (4, 0)])
    river.add_affected_tiles([(0, 0), (1, 1)])
    hills = data.create_feature("hills")
    hills.add_affected_tile(1, 1)
    hills.add_affected_tile(5, 5)
    data.create_feature("river")
    return data


class TestTerrainFeature:
    """Test feature records."""

    def test_centroid_from_curves(self):
        feature = TerrainFeature("river", "river_1")
        feature.add_bezier_curve([(0, 0), (2, 2), (4, 0)])
        feature.calculate_centroid_from_bezier_curves()
        assert feature.centroid == pytest.approx((2, 2 / 3))

    def test_centroid_from_tiles(self):
        feature = TerrainFeature("lakes", "lakes_1")
        feature.add_affected_tiles([(0, 0), (4, 2)])
        feature.calculate_centroid_from_tiles()
        assert feature.centroid == (2, 1)

    def test_centroid_unchanged_without_data(self):
        feature = TerrainFeature("lakes", "lakes_1").set_centroid(3, 4)
        feature.calculate_centroid_from_tiles().calculate_centroid_from_bezier_curves()
        assert feature.centroid == (3, 4)

    def test_metadata(self):
        feature = TerrainFeature("river", "river_1").set_metadata("length", 12.5)
        assert feature.get_metadata("length") == 12.5
        assert feature.get_metadata("missing", "n/a") == "n/a"

    def test_to_dict(self):
        feature = TerrainFeature("river", "river_1").set_centroid(1, 2)
        data = feature.to_dict()
        assert data["centroid"] == {"x": 1, "z": 2}
        assert TerrainFeature.from_dict(data) == feature


class TestTerrainData:
    """Test the catalog."""

    def test_ids_use_shared_counter(self, terrain_data):
        assert list(terrain_data.features) == ["river_1", "hills_2", "river_3"]

    def test_get_by_type(self, terrain_data):
        rivers = terrain_data.get_features_by_type("river")
        assert [f.id for f in rivers] == ["river_1", "river_3"]
        assert terrain_data.get_features_by_type("volcano") == []

    def test_remove(self, terrain_data):
        assert terrain_data.remove_feature("river_1")
        assert not terrain_data.remove_feature("river_1")
        assert terrain_data.get_feature("river_1") is None

    def test_stats(self, terrain_data):
        assert terrain_data.get_feature_stats() == {"river": 2, "hills": 1}

    def test_coverage(self, terrain_data):
        coverage = terrain_data.get_feature_coverage()
        assert coverage["total_tiles"] == 100
        assert coverage["covered_tiles"] == 3
        assert coverage["coverage_percentage"] == pytest.approx(3.0)

    def test_clear_resets_counter(self, terrain_data):
        terrain_data.clear_features()
        assert terrain_data.get_all_features() == []
        assert terrain_data.create_feature("lakes").id == "lakes_1"

    def test_round_trip(self, terrain_data):
        restored = TerrainData.from_dict(terrain_data.to_dict(), grid_size=10)
        assert restored.features == terrain_data.features
        assert restored.create_feature("marshes").id == "marshes_4"
