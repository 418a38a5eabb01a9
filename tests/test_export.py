"""Tests for the Voronoi export document."""

import json

import pytest

from py_terrain.config.generation_settings import SiteDistribution, VoronoiSettings
from py_terrain.core.export import build_voronoi_export, coastline_entries, export_to_json
from py_terrain.core.voronoi_graph import generate_voronoi_graph


@pytest.fixture
def graph():
    settings = VoronoiSettings(num_sites=40, distribution=SiteDistribution.RANDOM)
    return generate_voronoi_graph(settings, grid_size=300, seed=12345)


class TestVoronoiExport:
    """Test export structure."""

    def test_top_level_keys(self, graph):
        document = build_voronoi_export(graph, timestamp="2024-01-01T00:00:00+00:00")
        assert set(document) == {
            "metadata", "points", "triangles", "edges", "voronoi_cells",
            "delaunay_circumcenters", "rivers", "coastlines", "index_mapping",
        }
        assert document["metadata"]["export_timestamp"] == "2024-01-01T00:00:00+00:00"
        assert document["metadata"]["grid_size"] == 300
        assert document["metadata"]["seed"] == 12345

    def test_points_and_triangles(self, graph):
        document = build_voronoi_export(graph)
        assert len(document["points"]) == len(graph.sites)
        assert sum(p["is_boundary"] for p in document["points"]) == 8
        assert len(document["triangles"]) % 3 == 0
        assert len(document["delaunay_circumcenters"]) == len(document["triangles"]) // 3

    def test_cells(self, graph):
        document = build_voronoi_export(graph)
        cells = document["voronoi_cells"]
        assert len(cells) == graph.n_cells
        for entry, cell in zip(cells, graph.cells):
            assert entry["index"] == cell.id
            assert entry["neighbors"] == cell.neighbors
            assert document["points"][entry["site"]["index"]]["x"] == cell.site.x

    def test_edges(self, graph):
        edges = build_voronoi_export(graph)["edges"]
        assert len(edges) == len(graph.voronoi_edges)
        for edge in edges:
            a, b = edge["cells"]
            assert edge["key"] == f"{min(a, b)}-{max(a, b)}"
            assert edge["weight"] == pytest.approx(edge["length"])

    def test_rivers_and_coastlines(self, graph):
        document = build_voronoi_export(
            graph,
            river_paths=[[0, 1, 2]],
            coastlines=coastline_entries([3, 4], "N"),
        )
        river = document["rivers"][0]
        assert river["vertex_indices"] == [0, 1, 2]
        assert river["vertices"][1]["x"] == graph.cells[1].site.x
        assert document["coastlines"] == [
            {"index": 0, "id": "coastline_1", "direction": "N", "cells": [3, 4]}
        ]

    def test_no_coastline(self):
        assert coastline_entries([], "N") == []

    def test_json_serializable(self, graph):
        text = export_to_json(build_voronoi_export(graph, settings={"seed": 1}), indent=2)
        assert json.loads(text)["metadata"]["settings"] == {"seed": 1}

    def test_missing_graph(self):
        with pytest.raises(ValueError):
            build_voronoi_export(None)
