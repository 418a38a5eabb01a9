"""
Terrain feature catalog.

Every generator materializes its output as ``TerrainFeature`` records in a
shared ``TerrainData`` catalog: a centroid, optional curve control points,
point sets, covered tiles and free-form metadata. Rendering and export read
the catalog without knowing which generator produced a record.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

Coordinate = Tuple[float, float]
Tile = Tuple[int, int]


@dataclass
class TerrainFeature:
    """Geometric output of one generator run."""

    type: str
    id: str
    centroid: Coordinate = (0.0, 0.0)
    bezier_curves: List[List[Coordinate]] = field(default_factory=list)
    point_distributions: List[List[Coordinate]] = field(default_factory=list)
    affected_tiles: List[Tile] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def set_centroid(self, x: float, z: float) -> "TerrainFeature":
        self.centroid = (x, z)
        return self

    def add_bezier_curve(self, control_points: Sequence[Coordinate]) -> "TerrainFeature":
        self.bezier_curves.append([tuple(p) for p in control_points])
        return self

    def add_point_distribution(self, points: Sequence[Coordinate]) -> "TerrainFeature":
        self.point_distributions.append([tuple(p) for p in points])
        return self

    def add_affected_tile(self, x: int, z: int) -> "TerrainFeature":
        self.affected_tiles.append((x, z))
        return self

    def add_affected_tiles(self, tiles: Iterable[Tile]) -> "TerrainFeature":
        self.affected_tiles.extend(tuple(t) for t in tiles)
        return self

    def set_metadata(self, key: str, value: Any) -> "TerrainFeature":
        self.metadata[key] = value
        return self

    def get_metadata(self, key: str, default: Any = None) -> Any:
        return self.metadata.get(key, default)

    def calculate_centroid_from_tiles(self) -> "TerrainFeature":
        """Set the centroid to the mean of the affected tiles, if any."""
        if self.affected_tiles:
            n = len(self.affected_tiles)
            self.centroid = (
                sum(t[0] for t in self.affected_tiles) / n,
                sum(t[1] for t in self.affected_tiles) / n,
            )
        return self

    def calculate_centroid_from_bezier_curves(self) -> "TerrainFeature":
        """Set the centroid to the mean of all curve control points, if any."""
        points = [p for curve in self.bezier_curves for p in curve]
        if points:
            self.centroid = (
                sum(p[0] for p in points) / len(points),
                sum(p[1] for p in points) / len(points),
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "id": self.id,
            "centroid": {"x": self.centroid[0], "z": self.centroid[1]},
            "bezier_curves": [[list(p) for p in curve] for curve in self.bezier_curves],
            "point_distributions": [[list(p) for p in pts] for pts in self.point_distributions],
            "affected_tiles": [list(t) for t in self.affected_tiles],
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TerrainFeature":
        centroid = data.get("centroid") or {"x": 0.0, "z": 0.0}
        return cls(
            type=data["type"],
            id=data["id"],
            centroid=(centroid["x"], centroid["z"]),
            bezier_curves=[[tuple(p) for p in c] for c in data.get("bezier_curves", [])],
            point_distributions=[[tuple(p) for p in d] for d in data.get("point_distributions", [])],
            affected_tiles=[tuple(t) for t in data.get("affected_tiles", [])],
            metadata=dict(data.get("metadata", {})),
        )


class TerrainData:
    """Catalog of terrain features keyed by ``"{type}_{counter}"`` ids."""

    def __init__(self, grid_size: float = 600.0):
        self.grid_size = grid_size
        self.features: Dict[str, TerrainFeature] = {}
        self.feature_counter = 0

    def generate_feature_id(self, feature_type: str) -> str:
        self.feature_counter += 1
        return f"{feature_type}_{self.feature_counter}"

    def add_feature(self, feature: TerrainFeature) -> TerrainFeature:
        self.features[feature.id] = feature
        return feature

    def create_feature(self, feature_type: str) -> TerrainFeature:
        return self.add_feature(TerrainFeature(feature_type, self.generate_feature_id(feature_type)))

    def get_feature(self, feature_id: str) -> Optional[TerrainFeature]:
        return self.features.get(feature_id)

    def get_features_by_type(self, feature_type: str) -> List[TerrainFeature]:
        return [f for f in self.features.values() if f.type == feature_type]

    def remove_feature(self, feature_id: str) -> bool:
        return self.features.pop(feature_id, None) is not None

    def get_all_features(self) -> List[TerrainFeature]:
        return list(self.features.values())

    def clear_features(self) -> None:
        self.features.clear()
        self.feature_counter = 0

    def get_feature_stats(self) -> Dict[str, int]:
        """Number of features per type."""
        stats: Dict[str, int] = {}
        for feature in self.features.values():
            stats[feature.type] = stats.get(feature.type, 0) + 1
        return stats

    def get_feature_coverage(self) -> Dict[str, float]:
        """Share of grid tiles touched by at least one feature."""
        total_tiles = int(self.grid_size) * int(self.grid_size)
        covered = {tile for f in self.features.values() for tile in f.affected_tiles}
        return {
            "total_tiles": total_tiles,
            "covered_tiles": len(covered),
            "coverage_percentage": (len(covered) / total_tiles) * 100 if total_tiles else 0.0,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "features": [f.to_dict() for f in self.features.values()],
            "feature_counter": self.feature_counter,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], grid_size: float = 600.0) -> "TerrainData":
        terrain_data = cls(grid_size)
        terrain_data.feature_counter = data.get("feature_counter", 0)
        for feature_data in data.get("features", []):
            feature = TerrainFeature.from_dict(feature_data)
            terrain_data.features[feature.id] = feature
        return terrain_data
