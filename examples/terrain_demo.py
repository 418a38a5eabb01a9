#!/usr/bin/env python3
"""
Generate a terrain map and write its Voronoi export.

Usage:
    python examples/terrain_demo.py [seed] [output.json]

Defaults to seed 12345 and ``terrain_<seed>.json`` in the current directory.
"""

import sys
from pathlib import Path

from py_terrain.config import TerrainSettings, VoronoiSettings
from py_terrain.core import generate_terrain
from py_terrain.core.export import export_to_json


def main():
    seed = int(sys.argv[1]) if len(sys.argv) > 1 else 12345
    output = Path(sys.argv[2]) if len(sys.argv) > 2 else Path(f"terrain_{seed}.json")

    settings = TerrainSettings(
        seed=seed,
        voronoi=VoronoiSettings(num_sites=300, distribution="random"),
    )

    print(f"=== Terrain Demo (seed {seed}) ===\n")
    terrain = generate_terrain(settings)
    summary = terrain.summary()

    print(f"Cells:       {summary['cells']} ({summary['edge_cells']} on the map edge)")
    print(f"Triangles:   {summary['triangles']}")
    if summary["coastline"]:
        coast = summary["coastline"]
        print(f"Coastline:   {coast['total_cells']} cells along {coast['direction']}")
    if summary["hills"]:
        print(f"Hills:       {summary['hills']['hill_cells']} cells, "
              f"max height {summary['hills']['max_height']:.1f}")
    if summary["lakes"]:
        print(f"Lakes:       {summary['lakes']['lake_cells']} cells")
    if summary["marshes"]:
        print(f"Marshes:     {summary['marshes']['total_cells']} cells")
    if summary["rivers"]:
        rivers = summary["rivers"]
        print(f"Rivers:      {rivers['total_rivers']}/{rivers['attempted']}, "
              f"avg length {rivers['avg_length']:.1f}")
    if summary["tributaries"]:
        print(f"Tributaries: {summary['tributaries']['total_tributaries']}")
    for error in summary["errors"]:
        print(f"Warning:     {error}")

    output.write_text(export_to_json(terrain.export(), indent=2))
    print(f"\nExport written to {output}")
    print(f"Generated in {summary['generation_time_seconds']:.2f}s")


if __name__ == "__main__":
    main()
