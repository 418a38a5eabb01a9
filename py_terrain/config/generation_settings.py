"""
Settings for terrain generation.

Each generator reads one section of ``TerrainSettings``. Defaults reproduce
the standard 600x600 map with 2 rivers, a northern coastline and a hill
gradient.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class CompassDirection(str, Enum):
    """Map edges, with north at z = 0."""

    NORTH = "N"
    SOUTH = "S"
    EAST = "E"
    WEST = "W"


class SiteDistribution(str, Enum):
    """How Voronoi sites are scattered over the grid."""

    RANDOM = "random"
    POISSON = "poisson"
    GRID = "grid"
    HEXAGONAL = "hexagonal"


class VoronoiSettings(BaseModel):
    """Site placement for the Voronoi graph."""

    num_sites: int = Field(default=50, ge=3, le=5000, description="Number of sites (random/grid/hexagonal)")
    distribution: SiteDistribution = Field(default=SiteDistribution.RANDOM, description="Site distribution")
    min_distance: float = Field(default=10.0, ge=0, description="Minimum spacing for random sites")
    poisson_radius: float = Field(default=25.0, gt=0, description="Minimum spacing for poisson sites")
    grid_spacing: Optional[float] = Field(default=None, gt=0, description="Spacing for grid/hexagonal sites")
    add_boundary_points: bool = Field(default=True, description="Surround the grid with 8 boundary points")
    assign_tiles: bool = Field(default=False, description="Assign integer grid tiles to their nearest cell")


class CoastlineSettings(BaseModel):
    """Coastline band along one map edge."""

    enabled: bool = Field(default=True, description="Generate a coastline")
    direction: CompassDirection = Field(default=CompassDirection.NORTH, description="Edge the coast runs along")
    budget: Optional[float] = Field(default=50, ge=0, le=100, description="Band thickness budget, in percent")
    percent: Optional[float] = Field(default=None, ge=0, le=100, description="Band thickness in percent, overrides budget")


class HillsSettings(BaseModel):
    """Discrete hill growth plus edge gradient."""

    enabled: bool = Field(default=True, description="Generate hills")
    budget: int = Field(default=100, ge=0, le=1000, description="Number of hill cells to place")
    origins: int = Field(default=3, ge=1, le=50, description="Number of full-height hill origins")
    gradient: bool = Field(default=True, description="Blend a height gradient from 1-2 map edges")


class LakesSettings(BaseModel):
    """Budgeted lake growth."""

    enabled: bool = Field(default=True, description="Generate lakes")
    budget: int = Field(default=30, ge=0, le=500, description="Number of lake cells to place")
    origins: int = Field(default=2, ge=1, le=20, description="Number of lake origins")
    max_depth: float = Field(default=50.0, gt=0, le=100, description="Depth of lake origins")


class MarshSettings(BaseModel):
    """Wetlands between coast and lakes."""

    enabled: bool = Field(default=True, description="Generate marshes")
    max_distance: int = Field(default=2, ge=1, le=3, description="Max BFS distance to both coast and lake")


class RiversSettings(BaseModel):
    """Rivers from map edges to water."""

    enabled: bool = Field(default=True, description="Generate rivers")
    count: int = Field(default=2, ge=0, le=20, description="Number of rivers to attempt")
    min_separation: float = Field(default=50.0, ge=0, description="Minimum distance between river starts, and between ends")
    edge_tolerance: float = Field(default=20.0, gt=0, description="Max distance of a river start from a map edge")
    max_iterations: int = Field(default=1000, ge=1, description="A* iteration cap per river")


class TributarySettings(BaseModel):
    """Branches off committed rivers."""

    enabled: bool = Field(default=True, description="Generate tributaries")
    max_depth: int = Field(default=3, ge=1, le=5, description="Maximum branching depth")
    branch_probability: float = Field(default=0.7, ge=0, le=1, description="Chance a branch point spawns a tributary")
    min_distance: float = Field(default=15.0, ge=0, description="Minimum source distance from the branch point")
    max_distance: float = Field(default=80.0, gt=0, description="Maximum source distance from the branch point")
    branching_separation: int = Field(default=5, ge=1, description="Minimum path steps between branch points")
    top_candidates: int = Field(default=5, ge=1, description="Sample sources among this many farthest candidates")


class TerrainSettings(BaseModel):
    """Complete settings for one terrain generation pass."""

    grid_size: float = Field(default=600.0, ge=50, le=5000, description="Map side length")
    seed: Optional[int] = Field(default=12345, description="Base seed, None for an unseeded map")
    voronoi: VoronoiSettings = Field(default_factory=VoronoiSettings)
    coastline: CoastlineSettings = Field(default_factory=CoastlineSettings)
    hills: HillsSettings = Field(default_factory=HillsSettings)
    lakes: LakesSettings = Field(default_factory=LakesSettings)
    marshes: MarshSettings = Field(default_factory=MarshSettings)
    rivers: RiversSettings = Field(default_factory=RiversSettings)
    tributaries: TributarySettings = Field(default_factory=TributarySettings)
