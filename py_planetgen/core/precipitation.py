"""
Precipitation field.

Rain follows rising air: the vertical-air value is turned into uplift
(1 - vertical) / 2 and weighted by how much moisture the air can hold
(warmer air holds more) and how much water is available (oceans supply
more than land). The result is smoothed with a cross-face box blur.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import structlog

from ..config.generation import PrecipitationConfig
from .cube_field import CubeField
from .cube_sphere import face_directions
from .temperature import TemperatureField
from .vertical_air import VerticalAirField

logger = structlog.get_logger()


def precipitation_to_color(precipitation) -> np.ndarray:
    """Dry tan/yellow through green to wet blue."""
    t = np.clip(np.asarray(precipitation, dtype=np.float64), 0.0, 1.0)
    dry = np.clip(t / 0.5, 0.0, 1.0)
    wet = np.clip((t - 0.5) / 0.5, 0.0, 1.0)
    low = np.stack([1.0 - 0.5 * dry, 1.0 - 0.2 * dry, 0.2 + 0.8 * dry], axis=-1)
    high = np.stack([0.5 - 0.4 * wet, 0.8 - 0.4 * wet, np.ones_like(wet)], axis=-1)
    return np.where((t < 0.5)[..., None], low, high)


def water_availability(
    heights: Optional[np.ndarray], warmth: np.ndarray, config: Optional[PrecipitationConfig] = None
) -> np.ndarray:
    """Moisture supply: warm oceans most, cold land least, config.default_water without terrain."""
    config = config or PrecipitationConfig()
    if heights is None:
        return np.full(np.shape(warmth), config.default_water)
    ocean = config.ocean_water + config.ocean_water_warmth * warmth
    land = config.land_water + config.land_water_warmth * warmth
    return np.where(heights <= 0.0, ocean, land)


@dataclass(frozen=True, eq=False)
class PrecipitationField:
    """Precipitation in [0, 1] on a cubemap."""

    values: CubeField

    @property
    def resolution(self) -> int:
        return self.values.resolution

    @classmethod
    def build(
        cls,
        vertical_air: VerticalAirField,
        config: Optional[PrecipitationConfig] = None,
        temperature: Optional[TemperatureField] = None,
        heights: Optional[CubeField] = None,
    ) -> "PrecipitationField":
        """
        Build precipitation from vertical air motion.

        Args:
            vertical_air: Normalized divergence field
            config: Weights and blur passes
            temperature: Optional temperature field for moisture capacity
            heights: Optional terrain heights for water availability
        """
        config = config or PrecipitationConfig()
        dirs = face_directions(vertical_air.resolution)
        uplift = (1.0 - vertical_air.values.values) * 0.5

        if temperature is not None:
            warmth = temperature.warmth(temperature.sample_many(dirs))
            capacity = 1.0 - config.temperature_weight * (1.0 - warmth)
        else:
            warmth = np.full(uplift.shape, 0.5)
            capacity = np.ones_like(uplift)

        terrain = heights.sample_many(dirs) if heights is not None else None
        water = water_availability(terrain, warmth, config)
        effective_water = 1.0 - config.ocean_weight * (1.0 - water)

        precipitation = np.clip(uplift * capacity * effective_water, 0.0, 1.0)
        field = CubeField(precipitation).blur(config.blur_passes)

        logger.info(
            "Precipitation field built",
            resolution=vertical_air.resolution,
            blur_passes=config.blur_passes,
            mean=round(float(field.values.mean()), 4),
        )
        return cls(field)

    def sample(self, direction) -> float:
        return self.values.sample(direction)

    def sample_many(self, directions: np.ndarray) -> np.ndarray:
        return self.values.sample_many(directions)

    def sample_color(self, direction) -> np.ndarray:
        return precipitation_to_color(self.sample(direction))
