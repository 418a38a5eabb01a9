"""
Voronoi graph generation for terrain maps.

Sites are scattered over a square grid with one of several distributions,
triangulated with Bowyer-Watson, and turned into Voronoi cells whose vertices
are the circumcenters of the incident triangles. The resulting cell graph is
the shared substrate every feature generator reads and annotates through the
per-cell metadata.
"""

import math
from dataclasses import asdict, dataclass, field, fields
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import structlog
from scipy.spatial import cKDTree

from ..config.generation_settings import SiteDistribution, VoronoiSettings
from ..utils.random import rand_index
from .delaunay import TriangulationResult, triangulate
from .geometry import (
    Point,
    VoronoiEdge,
    polygon_area,
    polygon_perimeter,
    sort_counterclockwise,
)
from .lcg_prng import RandomFunc, make_rng

logger = structlog.get_logger()

# Sites closer than this to a kept site are dropped before triangulation
MIN_SITE_SEPARATION = 0.1

# Boundary points sit this fraction of the grid outside each edge
BOUNDARY_MARGIN_RATIO = 0.1

POISSON_ATTEMPTS = 30


@dataclass
class CellMetadata:
    """Feature annotations of one cell; every field is owned by one generator."""

    # Hills
    height: Optional[float] = None
    hill: bool = False
    hill_origin: bool = False
    parent_hill: Optional[int] = None
    gradient: bool = False

    # Coastline
    is_coastline: bool = False
    coast_direction: Optional[str] = None

    # Lakes
    lake: bool = False
    lake_origin: bool = False
    depth: Optional[float] = None
    parent_lake: Optional[int] = None

    # Marshes
    marsh: bool = False
    dist_to_coast: Optional[float] = None
    dist_to_lake: Optional[float] = None

    # Rivers
    river: bool = False
    river_index: Optional[int] = None
    river_position: Optional[int] = None
    river_elevation: Optional[float] = None

    # Tributaries
    tributary: bool = False
    tributary_index: Optional[int] = None
    tributary_depth: Optional[int] = None
    tributary_parent: Optional[int] = None
    tributary_position: Optional[int] = None

    def get(self, key: str):
        if key not in _METADATA_DEFAULTS:
            raise KeyError(f"Unknown cell metadata key: {key}")
        return getattr(self, key)

    def set(self, key: str, value) -> None:
        if key not in _METADATA_DEFAULTS:
            raise KeyError(f"Unknown cell metadata key: {key}")
        setattr(self, key, value)

    def reset(self, *keys: str) -> None:
        """Restore the given keys to their defaults."""
        for key in keys:
            self.set(key, _METADATA_DEFAULTS[key])

    def as_dict(self) -> Dict[str, object]:
        return asdict(self)


_METADATA_DEFAULTS = {f.name: f.default for f in fields(CellMetadata)}


@dataclass
class VoronoiCell:
    """Voronoi polygon around one site."""

    id: int
    site: Point
    # Circumcenters ordered counterclockwise around the site
    vertices: List[Point] = field(default_factory=list)
    neighbors: List[int] = field(default_factory=list)
    area: float = 0.0
    perimeter: float = 0.0
    metadata: CellMetadata = field(default_factory=CellMetadata)
    affected_tiles: List[Tuple[int, int]] = field(default_factory=list)

    def get_metadata(self, key: str):
        return self.metadata.get(key)

    def set_metadata(self, key: str, value) -> None:
        self.metadata.set(key, value)

    def is_point_inside(self, point: Point) -> bool:
        """Ray-casting point-in-polygon test against the cell vertices."""
        inside = False
        vertices = self.vertices
        j = len(vertices) - 1
        for i in range(len(vertices)):
            vi, vj = vertices[i], vertices[j]
            if (vi.z > point.z) != (vj.z > point.z):
                x_cross = (vj.x - vi.x) * (point.z - vi.z) / (vj.z - vi.z) + vi.x
                if point.x < x_cross:
                    inside = not inside
            j = i
        return inside


@dataclass
class VoronoiGraph:
    """Cell graph built from a set of sites."""

    grid_size: float
    seed: Optional[int]

    # All triangulated sites, boundary points included
    sites: List[Point]
    triangulation: TriangulationResult

    # Per-cell data, indexed by cell id
    cells: List[VoronoiCell]
    points: np.ndarray  # (n_cells, 2) site coordinates
    cell_neighbors: List[List[int]]
    border_flags: np.ndarray  # 1 where the cell reaches outside the grid

    voronoi_edges: List[VoronoiEdge] = field(default_factory=list)
    # Site index in ``sites`` for each cell id
    cell_site_index: List[int] = field(default_factory=list)

    _kdtree: Optional[cKDTree] = field(default=None, repr=False)

    def __len__(self) -> int:
        return len(self.cells)

    def __iter__(self) -> Iterator[VoronoiCell]:
        return iter(self.cells)

    @property
    def n_cells(self) -> int:
        return len(self.cells)

    def get_cell(self, cell_id: int) -> Optional[VoronoiCell]:
        if 0 <= cell_id < len(self.cells):
            return self.cells[cell_id]
        return None

    def neighbors(self, cell_id: int) -> List[int]:
        return self.cell_neighbors[cell_id]

    def cell_distance(self, a: int, b: int) -> float:
        return self.cells[a].site.distance_to(self.cells[b].site)

    def is_edge_cell(self, cell_id: int) -> bool:
        return bool(self.border_flags[cell_id])

    def get_edge_cells(self) -> List[int]:
        return [int(i) for i in np.flatnonzero(self.border_flags)]

    def find_closest_cell(self, x: float, z: float) -> int:
        """Id of the cell whose site is nearest to (x, z)."""
        if self._kdtree is None:
            self._kdtree = cKDTree(self.points)
        _, index = self._kdtree.query([x, z])
        return int(index)

    def reset_metadata(self, *keys: str) -> None:
        """Restore metadata keys to defaults on every cell."""
        for cell in self.cells:
            cell.metadata.reset(*keys)

    def assign_tiles(self) -> None:
        """
        Assign every integer tile of the grid to its nearest cell.

        Uses a KD-tree query over all tile coordinates, so the whole grid is
        resolved in one vectorized call.
        """
        size = int(math.ceil(self.grid_size))
        xs, zs = np.meshgrid(np.arange(size), np.arange(size), indexing="ij")
        tiles = np.column_stack([xs.ravel(), zs.ravel()])
        if self._kdtree is None:
            self._kdtree = cKDTree(self.points)
        _, owners = self._kdtree.query(tiles)

        for cell in self.cells:
            cell.affected_tiles = []
        for (tx, tz), owner in zip(tiles.tolist(), owners.tolist()):
            self.cells[owner].affected_tiles.append((tx, tz))

        logger.debug("Assigned tiles to cells", tiles=len(tiles), cells=len(self.cells))


def generate_random_sites(
    num_sites: int, min_distance: float, grid_size: float, rng: RandomFunc
) -> List[Point]:
    """
    Uniform random sites with a minimum spacing.

    Gives up after ``num_sites * 10`` candidates, so dense settings can
    return fewer sites than requested.
    """
    sites: List[Point] = []
    max_attempts = num_sites * 10
    attempts = 0

    while len(sites) < num_sites and attempts < max_attempts:
        candidate = Point(rng() * grid_size, rng() * grid_size)
        if all(candidate.distance_to(site) >= min_distance for site in sites):
            sites.append(candidate)
        attempts += 1

    return sites


def generate_poisson_sites(radius: float, grid_size: float, rng: RandomFunc) -> List[Point]:
    """
    Bridson's Poisson disk sampling.

    Args:
        radius: Minimum distance between sites
        grid_size: Map side length
        rng: Random function

    Returns:
        Sites kept at least ``radius`` away from the map edges
    """
    cell_size = radius / math.sqrt(2)
    grid_width = int(math.ceil(grid_size / cell_size))
    background: Dict[Tuple[int, int], Point] = {}
    min_distance = radius * 1.01
    margin = radius

    def grid_key(point: Point) -> Tuple[int, int]:
        return (int(point.x // cell_size), int(point.z // cell_size))

    first = Point(
        margin + rng() * (grid_size - 2 * margin),
        margin + rng() * (grid_size - 2 * margin),
    )
    sites = [first]
    active = [first]
    background[grid_key(first)] = first

    while active:
        index = rand_index(rng, len(active))
        point = active[index]
        found = False

        for _ in range(POISSON_ATTEMPTS):
            angle = rng() * 2 * math.pi
            dist = min_distance + rng() * min_distance
            candidate = Point(point.x + math.cos(angle) * dist, point.z + math.sin(angle) * dist)

            if not (margin <= candidate.x < grid_size - margin and margin <= candidate.z < grid_size - margin):
                continue

            gx, gz = grid_key(candidate)
            valid = True
            for dx in range(-2, 3):
                for dz in range(-2, 3):
                    nx, nz = gx + dx, gz + dz
                    if not (0 <= nx < grid_width and 0 <= nz < grid_width):
                        continue
                    neighbor = background.get((nx, nz))
                    if neighbor is not None and candidate.distance_to(neighbor) < min_distance:
                        valid = False
                        break
                if not valid:
                    break

            if valid:
                sites.append(candidate)
                active.append(candidate)
                background[(gx, gz)] = candidate
                found = True
                break

        if not found:
            active.pop(index)

    return sites


def generate_grid_sites(spacing: float, grid_size: float, rng: RandomFunc) -> List[Point]:
    """Square lattice with a 20% jitter."""
    sites = []
    x = spacing / 2
    while x < grid_size:
        z = spacing / 2
        while z < grid_size:
            offset_x = (rng() - 0.5) * spacing * 0.2
            offset_z = (rng() - 0.5) * spacing * 0.2
            sites.append(
                Point(
                    max(0.0, min(grid_size - 1, x + offset_x)),
                    max(0.0, min(grid_size - 1, z + offset_z)),
                )
            )
            z += spacing
        x += spacing
    return sites


def generate_hexagonal_sites(spacing: float, grid_size: float, rng: RandomFunc) -> List[Point]:
    """Hexagonal lattice with a 10% jitter; odd rows shift by half a spacing."""
    sites = []
    hex_height = spacing * math.sqrt(3) / 2
    row = 0
    z = hex_height / 2
    while z < grid_size:
        x = spacing / 2 + (row % 2) * spacing / 2
        while x < grid_size:
            offset_x = (rng() - 0.5) * spacing * 0.1
            offset_z = (rng() - 0.5) * spacing * 0.1
            sites.append(
                Point(
                    max(0.0, min(grid_size - 1, x + offset_x)),
                    max(0.0, min(grid_size - 1, z + offset_z)),
                )
            )
            x += spacing
        row += 1
        z += hex_height
    return sites


def generate_sites(settings: VoronoiSettings, grid_size: float, rng: RandomFunc) -> List[Point]:
    """
    Scatter sites according to the configured distribution.

    Raises:
        ValueError: If the distribution is not supported
    """
    distribution = SiteDistribution(settings.distribution)
    spacing = settings.grid_spacing or grid_size / math.sqrt(settings.num_sites)

    if distribution == SiteDistribution.RANDOM:
        return generate_random_sites(settings.num_sites, settings.min_distance, grid_size, rng)
    if distribution == SiteDistribution.POISSON:
        return generate_poisson_sites(settings.poisson_radius or settings.min_distance, grid_size, rng)
    if distribution == SiteDistribution.GRID:
        return generate_grid_sites(spacing, grid_size, rng)
    if distribution == SiteDistribution.HEXAGONAL:
        return generate_hexagonal_sites(spacing, grid_size, rng)
    raise ValueError(f"Unsupported site distribution: {distribution}")


def clean_points(sites: Sequence[Point], min_separation: float = MIN_SITE_SEPARATION) -> List[Point]:
    """
    Drop sites too close to an earlier kept site and round to 3 decimals.

    Args:
        sites: Raw sites in generation order
        min_separation: Minimum distance between kept sites

    Returns:
        Cleaned sites, order preserved
    """
    cleaned: List[Point] = []
    for site in sites:
        if any(site.distance_to(kept) < min_separation for kept in cleaned):
            continue
        cleaned.append(Point(_round3(site.x), _round3(site.z), site.is_boundary))
    return cleaned


def _round3(value: float) -> float:
    # Half-up rounding, not Python's banker's rounding
    return math.floor(value * 1000 + 0.5) / 1000


def get_boundary_points(grid_size: float) -> List[Point]:
    """Eight points just outside the grid that close off the edge cells."""
    margin = grid_size * BOUNDARY_MARGIN_RATIO
    half = grid_size / 2
    far = grid_size + margin
    coords = [
        (-margin, -margin), (half, -margin), (far, -margin),
        (-margin, half), (far, half),
        (-margin, far), (half, far), (far, far),
    ]
    return [Point(x, z, is_boundary=True) for x, z in coords]


def is_edge_cell(vertices: Sequence[Point], grid_size: float) -> bool:
    """Check whether any vertex of a cell falls outside [0, grid_size]."""
    for vertex in vertices:
        if not (math.isfinite(vertex.x) and math.isfinite(vertex.z)):
            return True
        if vertex.x < 0 or vertex.x > grid_size or vertex.z < 0 or vertex.z > grid_size:
            return True
    return False


def _clip_to_grid(vertices: Sequence[Point], grid_size: float) -> List[Point]:
    return [
        Point(max(0.0, min(grid_size, v.x)), max(0.0, min(grid_size, v.z)))
        for v in vertices
    ]


def build_voronoi_graph(
    sites: Sequence[Point], grid_size: float, seed: Optional[int] = None
) -> VoronoiGraph:
    """
    Triangulate sites and assemble the Voronoi cell graph.

    Boundary sites take part in the triangulation but do not become cells;
    cell ids number the remaining sites in order.

    Args:
        sites: Sites to triangulate, boundary points flagged ``is_boundary``
        grid_size: Map side length
        seed: Seed recorded on the graph

    Returns:
        VoronoiGraph with cells, adjacency and Voronoi edges
    """
    sites = list(sites)
    tri = triangulate(sites)

    site_to_cell: Dict[int, int] = {}
    cell_site_index: List[int] = []
    for index, site in enumerate(sites):
        if not site.is_boundary:
            site_to_cell[index] = len(cell_site_index)
            cell_site_index.append(index)

    incident: List[List[int]] = [[] for _ in sites]
    for t, triangle in enumerate(tri.triangles):
        for index in triangle.indices:
            incident[index].append(t)

    half_edges = tri.half_edges()
    hull_sites = {he.start for he in half_edges if he.is_boundary()}

    cells: List[VoronoiCell] = []
    for cell_id, site_index in enumerate(cell_site_index):
        site = sites[site_index]
        unique: Dict[Tuple[float, float], Point] = {}
        for t in incident[site_index]:
            center = tri.circumcenters[t]
            if center is None:
                continue
            unique.setdefault((round(center.x, 6), round(center.z, 6)), center)
        vertices = sort_counterclockwise(site, list(unique.values()))
        clipped = _clip_to_grid(vertices, grid_size)
        cells.append(
            VoronoiCell(
                id=cell_id,
                site=site,
                vertices=vertices,
                area=polygon_area(clipped),
                perimeter=polygon_perimeter(clipped),
            )
        )

    # Triangle pairs sharing an edge, in (t1, t2) order
    pairs = []
    for index, he in enumerate(half_edges):
        if he.opposite > index:
            t1, t2 = he.triangle, half_edges[he.opposite].triangle
            pairs.append((min(t1, t2), max(t1, t2), he.start, he.end))
    pairs.sort()

    neighbor_sets: List[set] = [set() for _ in cells]
    voronoi_edges: List[VoronoiEdge] = []
    for t1, t2, u, v in pairs:
        if u not in site_to_cell or v not in site_to_cell:
            continue
        cell_u, cell_v = site_to_cell[u], site_to_cell[v]
        neighbor_sets[cell_u].add(cell_v)
        neighbor_sets[cell_v].add(cell_u)
        start, end = tri.circumcenters[t1], tri.circumcenters[t2]
        if start is not None and end is not None:
            voronoi_edges.append(VoronoiEdge(start, end, cell_u, cell_v))

    cell_neighbors = [sorted(s) for s in neighbor_sets]
    border_flags = np.zeros(len(cells), dtype=np.uint8)
    for cell in cells:
        cell.neighbors = cell_neighbors[cell.id]
        if is_edge_cell(cell.vertices, grid_size) or cell_site_index[cell.id] in hull_sites:
            border_flags[cell.id] = 1

    points = np.array([[c.site.x, c.site.z] for c in cells], dtype=np.float64).reshape(-1, 2)

    return VoronoiGraph(
        grid_size=grid_size,
        seed=seed,
        sites=sites,
        triangulation=tri,
        cells=cells,
        points=points,
        cell_neighbors=cell_neighbors,
        border_flags=border_flags,
        voronoi_edges=voronoi_edges,
        cell_site_index=cell_site_index,
    )


def generate_voronoi_graph(
    settings: VoronoiSettings,
    grid_size: float = 600.0,
    seed: Optional[int] = None,
    rng: Optional[RandomFunc] = None,
) -> VoronoiGraph:
    """
    Generate sites and build the Voronoi graph.

    Args:
        settings: Site placement settings
        grid_size: Map side length
        seed: Base seed; ignored when ``rng`` is given
        rng: Random function to draw sites from

    Returns:
        Complete VoronoiGraph
    """
    logger.info(
        "Generating Voronoi graph",
        grid_size=grid_size,
        distribution=SiteDistribution(settings.distribution).value,
        seed=seed,
    )
    if rng is None:
        rng = make_rng(seed)

    sites = clean_points(generate_sites(settings, grid_size, rng))
    if settings.add_boundary_points:
        sites.extend(get_boundary_points(grid_size))

    graph = build_voronoi_graph(sites, grid_size, seed)
    if settings.assign_tiles:
        graph.assign_tiles()

    logger.info(
        "Voronoi graph generated",
        cells=graph.n_cells,
        triangles=len(graph.triangulation.triangles),
        voronoi_edges=len(graph.voronoi_edges),
        edge_cells=int(graph.border_flags.sum()),
    )
    return graph
