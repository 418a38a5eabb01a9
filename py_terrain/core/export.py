"""
Voronoi export document.

Builds a JSON-ready dictionary of the cell graph for downstream renderers and
tools: triangulated points, the flat triangle index list, Voronoi edges with
length and weight, per-cell vertices and neighbors, circumcenters, river
paths and coastline cell lists.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import structlog

from .geometry import Point
from .voronoi_graph import VoronoiGraph

logger = structlog.get_logger()

EXPORT_VERSION = "1.0"


def _point(point: Optional[Point]) -> Dict[str, Any]:
    if point is None:
        return {"x": None, "z": None, "is_boundary": False}
    return {"x": point.x, "z": point.z, "is_boundary": point.is_boundary}


def build_voronoi_export(
    graph: VoronoiGraph,
    river_paths: Sequence[Sequence[int]] = (),
    coastlines: Sequence[Dict[str, Any]] = (),
    settings: Optional[Dict[str, Any]] = None,
    description: str = "Voronoi terrain graph export",
    version: str = EXPORT_VERSION,
    timestamp: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Serialize a cell graph.

    Args:
        graph: Cell graph to export
        river_paths: Cell-id paths, one per river
        coastlines: Dicts with ``cells`` and optionally ``id`` and ``direction``
        settings: Generation settings recorded in the metadata
        description: Free text stored in the metadata
        version: Export format version
        timestamp: ISO timestamp, defaults to now (UTC)

    Returns:
        Export document
    """
    if graph is None:
        raise ValueError("A Voronoi graph is required for export")

    tri = graph.triangulation

    points = [
        {"index": i, "x": p.x, "z": p.z, "is_boundary": p.is_boundary}
        for i, p in enumerate(graph.sites)
    ]

    edges = []
    for index, edge in enumerate(graph.voronoi_edges):
        key = f"{min(edge.cell_a, edge.cell_b)}-{max(edge.cell_a, edge.cell_b)}"
        edges.append(
            {
                "index": index,
                "key": key,
                "cells": [edge.cell_a, edge.cell_b],
                "point_a": _point(edge.start),
                "point_b": _point(edge.end),
                "length": edge.length(),
                "weight": edge.effective_weight,
            }
        )

    cells = [
        {
            "index": cell.id,
            "site": {"x": cell.site.x, "z": cell.site.z, "index": graph.cell_site_index[cell.id]},
            "vertices": [{"x": v.x, "z": v.z} for v in cell.vertices],
            "neighbors": list(cell.neighbors),
            "is_edge": graph.is_edge_cell(cell.id),
            "area": cell.area,
        }
        for cell in graph.cells
    ]

    circumcenters = [
        {"index": i, "x": c.x if c else None, "z": c.z if c else None}
        for i, c in enumerate(tri.circumcenters)
    ]

    rivers = []
    for index, path in enumerate(river_paths):
        cell_ids = list(path)
        rivers.append(
            {
                "index": index,
                "vertex_indices": cell_ids,
                "vertices": [
                    {"index": c, "x": graph.cells[c].site.x, "z": graph.cells[c].site.z}
                    for c in cell_ids
                ],
            }
        )

    exported_coastlines = [
        {
            "index": index,
            "id": coastline.get("id") or f"coastline_{index + 1}",
            "direction": coastline.get("direction"),
            "cells": list(coastline.get("cells", [])),
        }
        for index, coastline in enumerate(coastlines)
    ]

    document = {
        "metadata": {
            "export_timestamp": timestamp or datetime.now(timezone.utc).isoformat(),
            "version": version,
            "description": description,
            "grid_size": graph.grid_size,
            "seed": graph.seed,
            "settings": settings or {},
        },
        "points": points,
        "triangles": tri.triangle_indices,
        "edges": edges,
        "voronoi_cells": cells,
        "delaunay_circumcenters": circumcenters,
        "rivers": rivers,
        "coastlines": exported_coastlines,
        "index_mapping": {"cell_site_index": list(graph.cell_site_index)},
    }

    logger.debug(
        "Built Voronoi export",
        points=len(points),
        cells=len(cells),
        edges=len(edges),
        rivers=len(rivers),
    )
    return document


def export_to_json(document: Dict[str, Any], indent: Optional[int] = None) -> str:
    return json.dumps(document, indent=indent)


def coastline_entries(feature_cells: List[int], direction: Optional[str]) -> List[Dict[str, Any]]:
    """Coastline list for ``build_voronoi_export``; empty when there is no coast."""
    if not feature_cells:
        return []
    return [{"id": "coastline_1", "direction": direction, "cells": list(feature_cells)}]
