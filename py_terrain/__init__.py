"""
Procedural terrain generation on a Voronoi/Delaunay cell graph.
"""

__version__ = "0.1.0"
