"""FastAPI main application."""

import uuid
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .. import __version__
from ..config import settings
from ..config.generation_settings import TerrainSettings
from ..core.terrain_map import TerrainMap
from ..utils.logging import configure_logging

configure_logging(settings.log_level, settings.log_format)

logger = structlog.get_logger()

app = FastAPI(
    title="Terrain Generator API",
    description="Procedural terrain on a Voronoi/Delaunay cell graph",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.allowed_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Generated maps, oldest first
_maps: "OrderedDict[str, StoredMap]" = OrderedDict()


class StoredMap:
    """A generated map kept in memory with its bookkeeping."""

    def __init__(self, map_id: str, name: str, terrain: TerrainMap):
        self.id = map_id
        self.name = name
        self.terrain = terrain
        self.created_at = datetime.now(timezone.utc)


# Request/Response models
class MapGenerationRequest(BaseModel):
    """Request to generate a new map."""

    map_name: Optional[str] = Field(None, description="Custom map name")
    settings: TerrainSettings = Field(default_factory=TerrainSettings, description="Generation settings")


class MapSummary(BaseModel):
    """Summary information about a generated map."""

    id: str
    name: str
    seed: Optional[int]
    grid_size: float
    cells_count: int
    rivers_count: int
    tributaries_count: int
    features: Dict[str, int]
    errors: List[str]
    created_at: datetime
    generation_time_seconds: float


class RiverInfo(BaseModel):
    """Information about a river."""

    index: int
    length: float
    source_cell: int
    mouth_cell: int
    cell_count: int
    start_edge: str


def _summary(stored: StoredMap) -> MapSummary:
    terrain = stored.terrain
    return MapSummary(
        id=stored.id,
        name=stored.name,
        seed=terrain.settings.seed,
        grid_size=terrain.settings.grid_size,
        cells_count=terrain.graph.n_cells,
        rivers_count=len(terrain.rivers.rivers) if terrain.rivers else 0,
        tributaries_count=len(terrain.tributaries.tributaries) if terrain.tributaries else 0,
        features=terrain.terrain_data.get_feature_stats(),
        errors=list(terrain.errors),
        created_at=stored.created_at,
        generation_time_seconds=terrain.generation_time,
    )


def _get_map(map_id: str) -> StoredMap:
    stored = _maps.get(map_id)
    if stored is None:
        raise HTTPException(status_code=404, detail="Map not found")
    return stored


# API endpoints
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Terrain Generator API",
        "version": __version__,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "maps_stored": len(_maps)}


@app.post("/maps/generate", response_model=MapSummary)
def generate_map(request: MapGenerationRequest):
    """
    Generate a map synchronously and keep it in the in-memory registry.

    The oldest map is evicted once ``max_stored_maps`` is reached.
    """
    terrain_settings = request.settings
    # Service defaults apply only where the request left the field out
    if "grid_size" not in terrain_settings.model_fields_set:
        terrain_settings.grid_size = settings.default_grid_size
    if "seed" not in terrain_settings.model_fields_set:
        terrain_settings.seed = settings.default_seed
    logger.info("Map generation requested", seed=terrain_settings.seed, name=request.map_name)

    if terrain_settings.voronoi.num_sites > settings.max_sites:
        raise HTTPException(
            status_code=400,
            detail=f"num_sites exceeds the limit of {settings.max_sites}",
        )

    try:
        terrain = TerrainMap(terrain_settings).generate()
    except ValueError as e:
        logger.error("Map generation failed", error=str(e))
        raise HTTPException(status_code=400, detail=str(e))

    map_id = str(uuid.uuid4())
    name = request.map_name or f"Map {terrain_settings.seed}"
    _maps[map_id] = StoredMap(map_id, name, terrain)
    while len(_maps) > settings.max_stored_maps:
        evicted, _ = _maps.popitem(last=False)
        logger.info("Evicted stored map", map_id=evicted)

    logger.info("Map generated", map_id=map_id, cells=terrain.graph.n_cells)
    return _summary(_maps[map_id])


@app.get("/maps", response_model=List[MapSummary])
async def list_maps():
    """List all stored maps, newest first."""
    return [_summary(stored) for stored in reversed(_maps.values())]


@app.get("/maps/{map_id}", response_model=MapSummary)
async def get_map(map_id: str):
    """Get map details."""
    return _summary(_get_map(map_id))


@app.get("/maps/{map_id}/export")
async def get_map_export(map_id: str) -> Dict[str, Any]:
    """Voronoi export document of a map."""
    return _get_map(map_id).terrain.export()


@app.get("/maps/{map_id}/features")
async def get_map_features(map_id: str, feature_type: Optional[str] = None) -> List[Dict[str, Any]]:
    """Terrain features of a map, optionally filtered by type."""
    terrain_data = _get_map(map_id).terrain.terrain_data
    features = (
        terrain_data.get_features_by_type(feature_type)
        if feature_type
        else terrain_data.get_all_features()
    )
    return [feature.to_dict() for feature in features]


@app.get("/maps/{map_id}/rivers", response_model=List[RiverInfo])
async def get_map_rivers(map_id: str):
    """Rivers of a map."""
    terrain = _get_map(map_id).terrain
    if terrain.rivers is None:
        return []
    return [
        RiverInfo(
            index=river.index,
            length=river.length,
            source_cell=river.start_cell,
            mouth_cell=river.end_cell,
            cell_count=len(river.path),
            start_edge=river.start_edge.value,
        )
        for river in terrain.rivers.rivers
    ]


@app.delete("/maps/{map_id}")
async def delete_map(map_id: str):
    """Remove a map from the registry."""
    _get_map(map_id)
    del _maps[map_id]
    logger.info("Map deleted", map_id=map_id)
    return {"deleted": map_id}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
