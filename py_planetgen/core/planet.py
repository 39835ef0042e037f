"""
Planet generation entry point.

generate() runs the terrain pipeline:
1. Plates: placement, relaxation, assignment, microplates, merge, smoothing
2. Boundary classification and distance field
3. Continent heights, plate texture and boundary mountains

Atmospheric fields are built separately from the finished planet
(see py_planetgen.core.atmosphere); with_wind_field() returns a copy of the
planet carrying its wind field.
"""

from dataclasses import dataclass, replace
from typing import List, Optional

import numpy as np
import structlog

from ..config.generation import PlanetConfig, PlanetGenerationSettings
from .atmosphere import build_wind
from .boundaries import BoundaryData
from .continents import ContinentNoise, synthesize_heights
from .cube_field import CubeField
from .cube_sphere import face_directions
from .plates import PlateGenerator, TectonicPlate
from .wind import WindField

logger = structlog.get_logger()


@dataclass(frozen=True, eq=False)
class PlanetData:
    """Generated planet surface."""

    faces: CubeField
    face_grid_size: int
    radius: float
    plate_map: np.ndarray
    plates: List[TectonicPlate]
    continent_noise: ContinentNoise
    boundary_data: BoundaryData
    seed: int
    initial_plate_count: int
    wind_map: Optional[WindField] = None

    @property
    def heightmaps(self) -> np.ndarray:
        """Heights shaped (6, N, N) indexed [face, y, x]."""
        return self.faces.values

    def sample_height(self, direction) -> float:
        """Bilinear terrain height at a direction (sea level is 0)."""
        return self.faces.sample(direction)

    def sample_continent_mask(self, direction) -> float:
        return self.continent_noise.sample_continent_mask(direction)

    def plate_at(self, face: int, x: int, y: int) -> int:
        return int(self.plate_map[face, y, x])

    def plate_for_cell(self, face: int, x: int, y: int) -> TectonicPlate:
        return self.plates[self.plate_at(face, x, y)]

    def with_wind_field(self, config: Optional[PlanetConfig] = None) -> "PlanetData":
        """Copy of this planet with wind_map built (self if it already has one)."""
        if self.wind_map is not None:
            return self
        wind, _ = build_wind(self.faces, config or PlanetConfig())
        return replace(self, wind_map=wind)


def generate(
    settings: Optional[PlanetGenerationSettings] = None, config: Optional[PlanetConfig] = None
) -> PlanetData:
    """
    Generate a planet.

    Args:
        settings: Per-planet knobs; defaults to config.generation
        config: Tunables for every subsystem; defaults to PlanetConfig()

    Returns:
        PlanetData, identical for identical settings and config
    """
    config = config or PlanetConfig()
    settings = settings or config.generation
    size = settings.face_grid_size

    logger.info(
        "Generating planet",
        seed=settings.seed,
        radius=settings.radius,
        face_grid_size=size,
        plates=settings.num_plates,
        micro_plates=settings.num_micro_plates,
    )

    plate_result = PlateGenerator(settings, config.plates).generate()
    plate_map = plate_result.plate_map
    plates = plate_result.plates

    boundary_data = BoundaryData.calculate(plate_map, plates, config.boundaries)

    continent_noise = ContinentNoise(settings.seed, settings.continents)
    heights = synthesize_heights(
        continent_noise,
        plate_map,
        plates,
        boundary_data,
        face_directions(size),
        settings.mountains,
        settings.seed,
    )

    for array in (plate_map, boundary_data.types, boundary_data.distances):
        array.setflags(write=False)

    logger.info("Planet generated", plates=len(plates), face_grid_size=size)
    return PlanetData(
        faces=CubeField(heights),
        face_grid_size=size,
        radius=settings.radius,
        plate_map=plate_map,
        plates=plates,
        continent_noise=continent_noise,
        boundary_data=boundary_data,
        seed=settings.seed,
        initial_plate_count=plate_result.initial_plate_count,
    )
