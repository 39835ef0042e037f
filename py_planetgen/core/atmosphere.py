"""
Atmosphere pipeline.

Builds the atmospheric fields of a generated planet in dependency order:
wind (optionally deflected by terrain) -> vertical air -> temperature
(advected by the wind) -> precipitation.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

import structlog

from ..config.generation import PlanetConfig
from .cube_field import CubeField
from .precipitation import PrecipitationField
from .temperature import TemperatureField
from .vertical_air import VerticalAirField
from .wind import MountainInfluenceMap, WindField

if TYPE_CHECKING:
    from .planet import PlanetData

logger = structlog.get_logger()


@dataclass(frozen=True, eq=False)
class Atmosphere:
    """All atmospheric fields of one planet."""

    wind: WindField
    vertical_air: VerticalAirField
    temperature: TemperatureField
    precipitation: PrecipitationField
    mountain_influence: Optional[MountainInfluenceMap] = None


def build_wind(heights: CubeField, config: PlanetConfig) -> Tuple[WindField, Optional[MountainInfluenceMap]]:
    """Wind at the configured resolution, deflected by terrain when enabled."""
    resolution = config.wind.resolution
    if config.deflection.enabled:
        return WindField.build_with_terrain(resolution, config.wind, heights, config.deflection)
    return WindField.build(resolution, config.wind), None


def build_atmosphere(planet: "PlanetData", config: Optional[PlanetConfig] = None) -> Atmosphere:
    """
    Build every atmospheric field for a planet.

    A wind field already attached to the planet is reused.
    """
    config = config or PlanetConfig()

    influence = None
    if planet.wind_map is not None:
        wind = planet.wind_map
    else:
        wind, influence = build_wind(planet.faces, config)

    vertical_air = VerticalAirField.build(wind)

    temperature = TemperatureField.build(wind.resolution, config.temperature)
    for _ in range(config.temperature.advection_steps):
        temperature = temperature.advect(wind, config.temperature.advection_dt)

    precipitation = PrecipitationField.build(
        vertical_air, config.precipitation, temperature=temperature, heights=planet.faces
    )

    logger.info(
        "Atmosphere built",
        resolution=wind.resolution,
        advection_steps=config.temperature.advection_steps,
        terrain_deflection=influence is not None,
    )
    return Atmosphere(
        wind=wind,
        vertical_air=vertical_air,
        temperature=temperature,
        precipitation=precipitation,
        mountain_influence=influence,
    )
