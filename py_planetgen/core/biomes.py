"""
Biome colouring from climate.

Colours blend smoothly between biome zones instead of switching at hard
thresholds. Each biome has a centre in (temperature, precipitation) space;
its weight is a Gaussian of the distance to that centre and the final
colour is the weight-normalized mix. Ice and tundra ignore precipitation.

Snow on high ground, a sandy shore strip and the ocean floor are layered
on top of the blend.
"""

from typing import Optional

import numpy as np

from ..config.generation import BiomeColors, BiomeConfig, BiomeThresholds

SNOW_COLOR = np.array([0.95, 0.95, 1.0, 1.0])
SHORE_COLOR = np.array([0.85, 0.75, 0.45, 1.0])


def _gaussian(temperature, precipitation, temp_center, temp_spread, precip_center=None, precip_spread=None):
    d = ((temperature - temp_center) / temp_spread) ** 2
    if precip_center is not None:
        d = d + ((precipitation - precip_center) / precip_spread) ** 2
    return np.exp(-0.5 * d)


def biome_weights(temperature, precipitation, th: BiomeThresholds) -> np.ndarray:
    """
    Weights for [ice, tundra, desert, savanna, temperate, jungle].

    Returns:
        Array shaped temperature.shape + (6,)
    """
    temperature = np.asarray(temperature, dtype=np.float64)
    precipitation = np.asarray(precipitation, dtype=np.float64)

    ice_center = th.ice_temp - 5.0
    tundra_center = (th.ice_temp + th.boreal_temp) / 2.0
    temperate_center = (th.boreal_temp + th.hot_temp) / 2.0
    hot_center = th.hot_temp + 5.0

    desert_precip = th.desert_precip / 2.0
    savanna_precip = (th.desert_precip + th.jungle_precip) / 2.0
    temperate_precip = (th.temperate_precip + th.jungle_precip) / 2.0
    jungle_precip = th.jungle_precip + 0.15

    ice_spread = max(abs(th.tundra_temp - th.ice_temp), 3.0)
    tundra_spread = max(abs(th.boreal_temp - th.ice_temp), 3.0) / 2.0 + 2.0
    desert_spread = max(abs(th.hot_temp - th.boreal_temp), 3.0)
    savanna_spread = max(abs(th.hot_temp - th.temperate_temp), 3.0)
    temperate_spread = max(abs(th.hot_temp - th.boreal_temp), 3.0) / 2.0 + 2.0
    jungle_spread = max(abs(th.hot_temp - th.temperate_temp), 3.0)

    desert_precip_spread = max(th.desert_precip, 0.05) + 0.05
    savanna_precip_spread = max(abs(th.jungle_precip - th.desert_precip), 0.05) / 2.0 + 0.05

    t, p = temperature, precipitation
    weights = [
        _gaussian(t, p, ice_center, ice_spread),
        _gaussian(t, p, tundra_center, tundra_spread),
        _gaussian(t, p, hot_center, desert_spread, desert_precip, desert_precip_spread),
        _gaussian(t, p, hot_center, savanna_spread, savanna_precip, savanna_precip_spread),
        _gaussian(t, p, temperate_center, temperate_spread, temperate_precip, 0.25),
        _gaussian(t, p, hot_center, jungle_spread, jungle_precip, 0.2),
    ]
    return np.stack(weights, axis=-1)


def biome_base_color(temperature, precipitation, colors: BiomeColors, th: BiomeThresholds) -> np.ndarray:
    """Gaussian blend of biome colours, RGBA shaped temperature.shape + (4,)."""
    palette = np.array(
        [colors.ice, colors.tundra, colors.desert, colors.savanna, colors.temperate, colors.jungle],
        dtype=np.float64,
    )
    palette = np.concatenate([palette, np.ones((6, 1))], axis=1)

    weights = biome_weights(temperature, precipitation, th)
    total = weights.sum(axis=-1, keepdims=True)
    blended = (weights / np.where(total < 1e-10, 1.0, total)) @ palette

    fallback = np.append(np.asarray(colors.temperate, dtype=np.float64), 1.0)
    return np.where(total < 1e-10, fallback, blended)


def biome_color(
    height_above_sea,
    temperature,
    precipitation,
    height,
    config: Optional[BiomeConfig] = None,
    sea_level: float = 0.0,
) -> np.ndarray:
    """
    RGBA colour for surface points.

    Args:
        height_above_sea: Height relative to sea level
        temperature: Temperature in °C
        precipitation: Precipitation in [0, 1]
        height: Absolute terrain height
        config: Biome thresholds, colours and snow/shore settings
        sea_level: Terrain height of the sea surface
    """
    config = config or BiomeConfig()
    above = np.asarray(height_above_sea, dtype=np.float64)
    height = np.asarray(height, dtype=np.float64)

    depth = np.clip(-height, 0.0, 1.0)[..., None]
    ocean_floor = np.concatenate(
        [
            0.9 - depth * 0.2,
            0.85 - depth * 0.2,
            0.7 - depth * 0.2,
            np.ones_like(depth),
        ],
        axis=-1,
    )

    snow_line = config.snow_threshold
    transition_start = snow_line - (snow_line - sea_level) * config.snow_transition
    span = snow_line - transition_start
    snow_blend = np.clip((height - transition_start) / span, 0.0, 1.0) if span > 0 else (height > snow_line) * 1.0
    shore_blend = 1.0 - np.clip(above / config.shore_width, 0.0, 1.0)

    color = biome_base_color(temperature, precipitation, config.colors, config.thresholds)
    color = color + (SHORE_COLOR - color) * shore_blend[..., None]
    color = color + (SNOW_COLOR - color) * np.asarray(snow_blend)[..., None]

    color = np.where((height > snow_line)[..., None], SNOW_COLOR, color)
    return np.where((above <= 0.0)[..., None], ocean_floor, color)
