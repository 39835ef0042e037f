"""
Temperature field.

Base temperature follows latitude only:
    T = pole_temp + (equator_temp - pole_temp) * cos(latitude)

Wind transports it with semi-Lagrangian advection: every grid point looks
back along the wind and takes the previous temperature found there.
"""

from dataclasses import dataclass, replace
from typing import Optional

import numpy as np
import structlog

from ..config.generation import TemperatureConfig
from .cube_field import CubeField
from .cube_sphere import face_directions, normalize
from .wind import WindField

logger = structlog.get_logger()


def latitude_temperature(directions: np.ndarray, equator_temp: float, pole_temp: float) -> np.ndarray:
    """Temperature from latitude for unit directions shaped (..., 3)."""
    y = np.clip(normalize(directions)[..., 1], -1.0, 1.0)
    return pole_temp + (equator_temp - pole_temp) * np.cos(np.arcsin(y))


def temperature_to_color(temperature, min_temp: float, max_temp: float) -> np.ndarray:
    """
    Colour ramp from cold to hot.

    Stops: pale blue, teal, green-yellow, yellow-orange, red.
    """
    span = max_temp - min_temp
    t = np.asarray(temperature, dtype=np.float64)
    t = np.clip((t - min_temp) / span if span > 0 else np.zeros_like(t), 0.0, 1.0)

    band = np.minimum((t / 0.2).astype(np.intp), 4)
    lt = np.clip((t - band * 0.2) / 0.2, 0.0, 1.0)
    one = np.ones_like(lt)
    zero = np.zeros_like(lt)

    stops = [
        (0.5 * one, 0.8 + 0.2 * lt, one),
        (0.5 - 0.3 * lt, 1.0 - 0.2 * lt, 1.0 - 0.5 * lt),
        (0.2 + 0.8 * lt, 0.8 + 0.2 * lt, 0.5 - 0.5 * lt),
        (one, 1.0 - 0.5 * lt, zero),
        (one, 0.5 - 0.5 * lt, zero),
    ]
    channels = [np.choose(band, [stop[c] for stop in stops]) for c in range(3)]
    return np.stack(channels, axis=-1)


@dataclass(frozen=True, eq=False)
class TemperatureField:
    """Temperatures (°C) on a cubemap with the profile and colour range behind them."""

    temperatures: CubeField
    min_temp: float
    max_temp: float
    pole_temp: float = -20.0
    equator_temp: float = 30.0

    @property
    def resolution(self) -> int:
        return self.temperatures.resolution

    @classmethod
    def build(cls, resolution: int, config: Optional[TemperatureConfig] = None) -> "TemperatureField":
        config = config or TemperatureConfig()
        field = CubeField.from_function(
            resolution, lambda dirs: latitude_temperature(dirs, config.equator_temp, config.pole_temp)
        )
        logger.info(
            "Temperature field built",
            resolution=resolution,
            equator=config.equator_temp,
            pole=config.pole_temp,
        )
        return cls(field, config.min_temp, config.max_temp, config.pole_temp, config.equator_temp)

    def advect(self, wind: WindField, dt: float) -> "TemperatureField":
        """
        One semi-Lagrangian step.

        Returns a new field; this one is left untouched and its profile and
        colour range are carried over.
        """
        dirs = face_directions(self.resolution)
        velocity = wind.sample_many(dirs)
        departure = normalize(dirs - velocity * dt)
        advected = self.temperatures.sample_many(departure)
        return replace(self, temperatures=CubeField(advected))

    def sample(self, direction) -> float:
        return self.temperatures.sample(direction)

    def sample_many(self, directions: np.ndarray) -> np.ndarray:
        return self.temperatures.sample_many(directions)

    def warmth(self, temperatures: np.ndarray) -> np.ndarray:
        """Temperatures mapped to [0, 1] from pole (0) to equator (1)."""
        span = self.equator_temp - self.pole_temp
        if span <= 0:
            return np.full(np.shape(temperatures), 0.5)
        return np.clip((np.asarray(temperatures) - self.pole_temp) / span, 0.0, 1.0)

    def sample_color(self, direction) -> np.ndarray:
        return temperature_to_color(self.sample(direction), self.min_temp, self.max_temp)
