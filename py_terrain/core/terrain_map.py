"""
Terrain generation pipeline.

``TerrainMap`` owns the settings, the cell graph, the feature catalog and one
seeded random stream per stage. A generation pass rebuilds the graph from
scratch and runs the stages in dependency order:

    voronoi -> coastline -> hills -> lakes -> marshes -> rivers -> tributaries

Each stage reads only the results of stages that have already finished, so
the same seed and settings always give the same map.
"""

import time
from typing import Any, Dict, List, Optional

import structlog

from ..config.generation_settings import TerrainSettings
from .coastline import CoastlineError, CoastlineGenerator
from .export import build_voronoi_export, coastline_entries
from .hills import HillsGenerator
from .lakes import LakesGenerator
from .lcg_prng import (
    COASTLINE_SEED_OFFSET,
    HILLS_SEED_OFFSET,
    LAKES_SEED_OFFSET,
    TRIBUTARIES_SEED_OFFSET,
    make_rng,
)
from .marshes import MarshGenerator
from .rivers import RiversGenerator
from .terrain_data import TerrainData
from .tributaries import TributariesGenerator
from .voronoi_graph import VoronoiGraph, generate_voronoi_graph

logger = structlog.get_logger()


class TerrainMap:
    """One terrain map and the generators that produced it."""

    def __init__(self, settings: Optional[TerrainSettings] = None):
        self.settings = settings or TerrainSettings()
        self.terrain_data = TerrainData(self.settings.grid_size)

        self.graph: Optional[VoronoiGraph] = None
        self.coastline: Optional[CoastlineGenerator] = None
        self.hills: Optional[HillsGenerator] = None
        self.lakes: Optional[LakesGenerator] = None
        self.marshes: Optional[MarshGenerator] = None
        self.rivers: Optional[RiversGenerator] = None
        self.tributaries: Optional[TributariesGenerator] = None

        self.errors: List[str] = []
        self.generation_time = 0.0

    def _reset(self) -> None:
        self.graph = None
        self.coastline = None
        self.hills = None
        self.lakes = None
        self.marshes = None
        self.rivers = None
        self.tributaries = None
        self.errors = []
        self.terrain_data = TerrainData(self.settings.grid_size)

    def generate(self) -> "TerrainMap":
        """
        Run a full generation pass, discarding any previous result.

        A coastline that cannot be placed is logged and skipped; every other
        stage still runs.

        Returns:
            self, for chaining
        """
        self._reset()
        settings = self.settings
        seed = settings.seed
        started = time.perf_counter()

        logger.info("Generating terrain map", seed=seed, grid_size=settings.grid_size)

        self.graph = generate_voronoi_graph(
            settings.voronoi, grid_size=settings.grid_size, seed=seed
        )

        if settings.coastline.enabled:
            self.coastline = CoastlineGenerator(
                self.graph, settings.coastline, make_rng(seed, COASTLINE_SEED_OFFSET)
            )
            try:
                self.coastline.generate()
            except CoastlineError as exc:
                logger.warning("Coastline skipped", error=str(exc))
                self.errors.append(f"coastline: {exc}")
                self.coastline.clear()

        if settings.hills.enabled:
            self.hills = HillsGenerator(self.graph, settings.hills, make_rng(seed, HILLS_SEED_OFFSET))
            self.hills.generate()

        if settings.lakes.enabled:
            self.lakes = LakesGenerator(
                self.graph,
                settings.lakes,
                make_rng(seed, LAKES_SEED_OFFSET),
                coastline=self.coastline,
                hills=self.hills,
            )
            self.lakes.generate()

        if settings.marshes.enabled:
            self.marshes = MarshGenerator(self.graph, self.coastline, self.lakes, settings.marshes)
            self.marshes.generate()

        if settings.rivers.enabled:
            self.rivers = RiversGenerator(
                self.graph,
                settings.rivers,
                seed=seed,
                coastline=self.coastline,
                lakes=self.lakes,
                marshes=self.marshes,
            )
            self.rivers.generate()

            if settings.tributaries.enabled:
                self.tributaries = TributariesGenerator(
                    self.graph,
                    self.rivers,
                    settings.tributaries,
                    make_rng(seed, TRIBUTARIES_SEED_OFFSET),
                )
                self.tributaries.generate()

        self.create_features()
        self.generation_time = time.perf_counter() - started

        logger.info(
            "Terrain map generated",
            cells=self.graph.n_cells,
            features=len(self.terrain_data.features),
            seconds=round(self.generation_time, 3),
        )
        return self

    def create_features(self) -> None:
        """Materialize every stage's output into the feature catalog."""
        self.terrain_data.clear_features()
        for generator, method in (
            (self.coastline, "create_coastline_features"),
            (self.hills, "create_hill_features"),
            (self.lakes, "create_lake_features"),
            (self.marshes, "create_marsh_features"),
            (self.rivers, "create_river_features"),
            (self.tributaries, "create_tributary_features"),
        ):
            if generator is not None:
                getattr(generator, method)(self.terrain_data)

    def summary(self) -> Dict[str, Any]:
        """Counts and stats of the last pass."""
        if self.graph is None:
            return {"generated": False}

        return {
            "generated": True,
            "seed": self.settings.seed,
            "grid_size": self.settings.grid_size,
            "cells": self.graph.n_cells,
            "edge_cells": len(self.graph.get_edge_cells()),
            "triangles": len(self.graph.triangulation.triangles),
            "coastline": self.coastline.get_coastline_stats() if self.coastline else None,
            "hills": self.hills.get_height_stats() if self.hills else None,
            "lakes": self.lakes.get_depth_stats() if self.lakes else None,
            "marshes": self.marshes.get_marsh_stats() if self.marshes else None,
            "rivers": self.rivers.get_river_stats() if self.rivers else None,
            "tributaries": self.tributaries.get_tributary_stats() if self.tributaries else None,
            "features": self.terrain_data.get_feature_stats(),
            "errors": list(self.errors),
            "generation_time_seconds": self.generation_time,
        }

    def export(self, timestamp: Optional[str] = None) -> Dict[str, Any]:
        """Voronoi export document of the last pass."""
        if self.graph is None:
            raise ValueError("Map has not been generated")

        river_paths = self.rivers.get_river_paths() if self.rivers else []
        coast = (
            coastline_entries(
                self.coastline.get_coastal_cells(),
                self.coastline.direction.value if self.coastline.direction else None,
            )
            if self.coastline
            else []
        )
        return build_voronoi_export(
            self.graph,
            river_paths=river_paths,
            coastlines=coast,
            settings=self.settings.model_dump(mode="json"),
            timestamp=timestamp,
        )


def generate_terrain(settings: Optional[TerrainSettings] = None) -> TerrainMap:
    """Build and generate a map in one call."""
    return TerrainMap(settings).generate()
