"""
Configuration modules for terrain generation.
"""

from .config import Settings, settings
from .generation_settings import (
    CoastlineSettings,
    CompassDirection,
    HillsSettings,
    LakesSettings,
    MarshSettings,
    RiversSettings,
    SiteDistribution,
    TerrainSettings,
    TributarySettings,
    VoronoiSettings,
)

__all__ = ['Settings', 'settings', 'CoastlineSettings', 'CompassDirection',
           'HillsSettings', 'LakesSettings', 'MarshSettings', 'RiversSettings',
           'SiteDistribution', 'TerrainSettings', 'TributarySettings', 'VoronoiSettings']
