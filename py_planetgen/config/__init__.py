"""
Configuration for planet generation.
"""

from .generation import (
    BiomeColors,
    BiomeConfig,
    BiomeThresholds,
    BoundaryConfig,
    ConfigurationError,
    ContinentConfig,
    MountainConfig,
    PlanetConfig,
    PlanetGenerationSettings,
    PlateConfig,
    PrecipitationConfig,
    TemperatureConfig,
    WindConfig,
    WindDeflectionConfig,
    load_planet_config,
    resolve_planet_config,
)
from .settings import Settings, get_settings, load_env_file

__all__ = [
    "BiomeColors",
    "BiomeConfig",
    "BiomeThresholds",
    "BoundaryConfig",
    "ConfigurationError",
    "ContinentConfig",
    "MountainConfig",
    "PlanetConfig",
    "PlanetGenerationSettings",
    "PlateConfig",
    "PrecipitationConfig",
    "TemperatureConfig",
    "WindConfig",
    "WindDeflectionConfig",
    "load_planet_config",
    "resolve_planet_config",
    "Settings",
    "get_settings",
    "load_env_file",
]
