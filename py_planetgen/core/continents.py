"""
Continent and height synthesis.

Elevation is built from three layers:
- Continent noise (domain warped by a distortion layer) decides land vs ocean
- Detail noise roughens the coastline and adds relief
- Plate texture noise and boundary mountains are layered on top

Sea level is height 0.
"""

from typing import List

import numpy as np
import structlog

from ..config.generation import ContinentConfig, MountainConfig
from ..utils.random import derive_seed
from .boundaries import BoundaryData, BoundaryType
from .cube_sphere import normalize, tangent_east
from .noise import NoiseConfig
from .plates import TectonicPlate

logger = structlog.get_logger()


class ContinentNoise:
    """Noise layers that shape continents and ocean basins."""

    def __init__(self, seed: int, config: ContinentConfig):
        self.config = config
        self.continent = NoiseConfig(
            derive_seed(seed, "continents/continent"), config.continent_frequency, config.continent_amplitude
        )
        self.distortion = NoiseConfig(
            derive_seed(seed, "continents/distortion"), config.distortion_frequency, config.distortion_amplitude
        )
        self.detail = NoiseConfig(
            derive_seed(seed, "continents/detail"), config.detail_frequency, config.detail_amplitude
        )

    def layers(self, directions: np.ndarray):
        """
        Continent and detail values for directions shaped (..., 3).

        The continent layer is sampled at a position pushed east by the
        distortion layer, which breaks up round blobs.
        """
        dirs = normalize(directions)
        warp = self.distortion.sample_many(dirs)
        warped = normalize(dirs + tangent_east(dirs) * warp[..., None])
        return self.continent.sample_many(warped), self.detail.sample_many(dirs)

    def heights(self, directions: np.ndarray) -> np.ndarray:
        """Continent heights for directions shaped (..., 3)."""
        cfg = self.config
        continent, detail = self.layers(directions)
        adjusted = cfg.continent_threshold + detail * cfg.coastline_roughness
        excess = continent - adjusted

        growth = np.clip(excess / cfg.growth_range, 0.0, 1.0)
        land = cfg.land_base_height + growth * cfg.land_height + detail * growth
        ocean = -cfg.ocean_depth_amplitude + detail * cfg.ocean_detail_factor
        return np.where(excess > 0.0, land, ocean)

    def continent_mask(self, directions: np.ndarray) -> np.ndarray:
        """Land mask in [0, 1]; zero in the ocean, ramping up inland."""
        cfg = self.config
        continent, detail = self.layers(directions)
        adjusted = cfg.continent_threshold + detail * cfg.coastline_roughness
        ramp = np.clip((continent - cfg.continent_threshold) / (1.0 - cfg.continent_threshold), 0.0, 1.0)
        return np.where(continent > adjusted, ramp, 0.0)

    def sample_height(self, direction) -> float:
        return float(self.heights(np.asarray(direction, dtype=np.float64)[None, :])[0])

    def sample_continent_mask(self, direction) -> float:
        return float(self.continent_mask(np.asarray(direction, dtype=np.float64)[None, :])[0])


def plate_texture(
    plate_map: np.ndarray, plates: List[TectonicPlate], directions: np.ndarray, weight: float
) -> np.ndarray:
    """Per-plate noise, each cell sampled with its own plate's noise."""
    texture = np.zeros(plate_map.shape, dtype=np.float64)
    if weight == 0.0:
        return texture
    for plate in plates:
        cells = plate_map == plate.id
        if cells.any():
            texture[cells] = plate.noise.sample_many(directions[cells]) * weight
    return texture


def mountain_uplift(
    boundary_data: BoundaryData, directions: np.ndarray, config: MountainConfig, seed: int
) -> np.ndarray:
    """
    Height change from plate boundaries.

    Convergent bands are raised into ridges whose crest height varies with
    a ridge noise; divergent bands sink into rifts. Both fall off
    quadratically over mountain_width cells.
    """
    distances = boundary_data.distances
    types = boundary_data.types
    with np.errstate(invalid="ignore"):
        falloff = np.where(
            distances < config.mountain_width, (1.0 - distances / config.mountain_width) ** 2, 0.0
        )

    uplift = np.zeros(distances.shape, dtype=np.float64)

    ridges = (types == BoundaryType.CONVERGENT) & (falloff > 0.0)
    if ridges.any():
        ridge_noise = NoiseConfig(derive_seed(seed, "mountains/ridge"), config.ridge_frequency, 1.0)
        variation = np.abs(ridge_noise.sample_many(directions[ridges]))
        w = config.ridge_noise_weight
        uplift[ridges] = config.mountain_height * falloff[ridges] * (1.0 - w + w * variation)

    rifts = (types == BoundaryType.DIVERGENT) & (falloff > 0.0)
    uplift[rifts] = -config.rift_depth * falloff[rifts]

    logger.debug("Mountain uplift applied", ridge_cells=int(ridges.sum()), rift_cells=int(rifts.sum()))
    return uplift


def synthesize_heights(
    continent_noise: ContinentNoise,
    plate_map: np.ndarray,
    plates: List[TectonicPlate],
    boundary_data: BoundaryData,
    directions: np.ndarray,
    mountains: MountainConfig,
    seed: int,
) -> np.ndarray:
    """Final per-cell heights, shaped like plate_map."""
    heights = continent_noise.heights(directions)
    heights += plate_texture(plate_map, plates, directions, continent_noise.config.plate_noise_weight)
    heights += mountain_uplift(boundary_data, directions, mountains, seed)

    land = float(np.mean(heights > 0.0))
    logger.info(
        "Heights synthesized",
        land_fraction=round(land, 3),
        min_height=float(heights.min()),
        max_height=float(heights.max()),
    )
    return heights
