"""
Core terrain generation functionality.
"""

from .voronoi_graph import VoronoiGraph, VoronoiCell, CellMetadata, generate_voronoi_graph, build_voronoi_graph
from .delaunay import DelaunayTriangulation, TriangulationResult, triangulate
from .coastline import CoastlineGenerator, CoastlineError
from .hills import HillsGenerator
from .lakes import LakesGenerator
from .marshes import MarshGenerator
from .pathfinding import RiverPathfinder
from .rivers import RiversGenerator, River
from .tributaries import TributariesGenerator, Tributary
from .terrain_data import TerrainData, TerrainFeature
from .terrain_map import TerrainMap, generate_terrain

__all__ = ['VoronoiGraph', 'VoronoiCell', 'CellMetadata', 'generate_voronoi_graph', 'build_voronoi_graph',
           'DelaunayTriangulation', 'TriangulationResult', 'triangulate',
           'CoastlineGenerator', 'CoastlineError', 'HillsGenerator', 'LakesGenerator',
           'MarshGenerator', 'RiverPathfinder', 'RiversGenerator', 'River',
           'TributariesGenerator', 'Tributary', 'TerrainData', 'TerrainFeature',
           'TerrainMap', 'generate_terrain']
