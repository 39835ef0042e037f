"""
Engine-agnostic mesh data for a generated planet.

Produces plain numpy buffers that any renderer can upload:
- Stitched sphere mesh (seam vertices shared between faces)
- Plate or height-band vertex colours, or biome colours from climate fields
- Plate motion arrows (position, orientation quaternion, scale)
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Protocol

import numpy as np
import structlog
from scipy.spatial.transform import Rotation

from ..config.generation import BiomeConfig
from .biomes import biome_color
from .boundaries import BOUNDARY_COLORS, BoundaryType
from .cube_sphere import face_directions, normalize
from .planet import PlanetData

logger = structlog.get_logger()


class FieldSampler(Protocol):
    """Anything that can sample a scalar field at unit directions."""

    def sample_many(self, directions: np.ndarray) -> np.ndarray: ...


class ViewMode(str, Enum):
    """Vertex colouring modes for MeshData.from_planet."""

    PLATES = "plates"
    CONTINENTS = "continents"


@dataclass(frozen=True, eq=False)
class MeshData:
    """Raw triangle mesh buffers."""

    positions: np.ndarray
    normals: np.ndarray
    colors: np.ndarray
    indices: np.ndarray
    cells: np.ndarray

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @classmethod
    def from_planet(
        cls,
        planet: PlanetData,
        view_mode: ViewMode = ViewMode.CONTINENTS,
        config: Optional[BiomeConfig] = None,
    ) -> "MeshData":
        """
        Build the planet mesh.

        Grid points with the same direction (face seams and corners) become a
        single vertex; the first occurrence in [face, y, x] order supplies its
        height and colour.

        Args:
            planet: Generated planet
            view_mode: Plate colours or height-band colours
            config: Snow and shore settings for the height bands
        """
        config = config or BiomeConfig()
        size = planet.face_grid_size
        dirs = face_directions(size).reshape(-1, 3)
        heights = planet.heightmaps.reshape(-1)

        keys = np.rint(dirs * ((size - 1) * 16)).astype(np.int64)
        _, first, inverse = np.unique(keys, axis=0, return_index=True, return_inverse=True)
        order = np.argsort(first)
        rank = np.empty_like(order)
        rank[order] = np.arange(len(order))
        vertex_of_cell = rank[inverse.reshape(-1)]
        cells = first[order]

        positions = dirs[cells] * (planet.radius + heights[cells])[:, None]

        idx = vertex_of_cell.reshape(6, size, size)
        i0, i1 = idx[:, :-1, :-1], idx[:, :-1, 1:]
        i2, i3 = idx[:, 1:, :-1], idx[:, 1:, 1:]
        indices = np.stack([i0, i1, i2, i1, i3, i2], axis=-1).reshape(-1).astype(np.uint32)

        if view_mode is ViewMode.PLATES:
            colors = plate_view_colors(planet)[cells]
        else:
            colors = continent_view_colors(heights[cells], config)

        logger.debug("Mesh built", vertices=len(positions), triangles=len(indices) // 3, view=view_mode.value)
        return cls(
            positions=positions,
            normals=normalize(positions),
            colors=colors,
            indices=indices,
            cells=cells,
        )

    def with_colors(self, colors: np.ndarray) -> "MeshData":
        return replace(self, colors=np.asarray(colors, dtype=np.float64))


def plate_view_colors(planet: PlanetData) -> np.ndarray:
    """Plate debug colours blended with boundary colours, per cell (flattened)."""
    palette = np.array([p.debug_color for p in planet.plates], dtype=np.float64)
    colors = palette[planet.plate_map.reshape(-1)]

    boundary = planet.boundary_data
    types = boundary.types.reshape(-1)
    distances = boundary.distances.reshape(-1)
    banded = (types >= 0) & np.isfinite(distances)
    if not banded.any():
        return colors

    band_colors = np.array([BOUNDARY_COLORS[BoundaryType(t)] for t in range(len(BoundaryType))])
    t = np.minimum(distances[banded] / boundary.max_distance, 1.0)
    opacity = (1.0 - t * t)[:, None]
    edge = band_colors[types[banded]]
    colors[banded, :3] = colors[banded, :3] * (1.0 - opacity) + edge * opacity
    return colors


def continent_view_colors(heights: np.ndarray, config: BiomeConfig) -> np.ndarray:
    """Height-band colours: ocean floor, shore sand, lowland, highland, snow."""
    h = np.asarray(heights, dtype=np.float64)
    shore = config.shore_width
    snow = config.snow_threshold
    highland = max(snow * 0.5, shore * 2.0)

    def ramp(lo, hi):
        return np.clip((h - lo) / (hi - lo), 0.0, 1.0) if hi > lo else np.zeros_like(h)

    depth = np.clip(-h, 0.0, 1.0)
    f_shore = np.clip(h / shore, 0.0, 1.0)
    f_low = ramp(shore, highland)
    f_high = ramp(highland, snow)

    ocean = np.stack([0.9 - depth * 0.2, 0.85 - depth * 0.2, 0.7 - depth * 0.2], axis=-1)
    sand = np.stack([0.85 - f_shore * 0.45, 0.75 - f_shore * 0.25, 0.45 - f_shore * 0.3], axis=-1)
    lowland = np.stack([0.4 - f_low * 0.35, 0.5 - f_low * 0.3, 0.15 - f_low * 0.1], axis=-1)
    upland = np.stack([0.05 + f_high * 0.2, 0.2 + f_high * 0.2, 0.05 + f_high * 0.15], axis=-1)
    white = np.broadcast_to(np.array([0.95, 0.95, 1.0]), ocean.shape)

    rgb = np.select(
        [h[..., None] <= 0.0, h[..., None] > snow, h[..., None] > highland, h[..., None] > shore],
        [ocean, white, upland, lowland],
        default=sand,
    )
    return np.concatenate([rgb, np.ones(h.shape + (1,))], axis=-1)


def calculate_biome_colors(
    positions: np.ndarray,
    planet_radius: float,
    temperature: FieldSampler,
    precipitation: FieldSampler,
    config: Optional[BiomeConfig] = None,
    sea_level: float = 0.0,
) -> np.ndarray:
    """
    Biome colours for mesh vertices.

    Land vertices get config.land_temperature_bonus added to the sampled
    temperature.
    """
    config = config or BiomeConfig()
    positions = np.asarray(positions, dtype=np.float64)
    radii = np.linalg.norm(positions, axis=-1)
    dirs = normalize(positions)

    height = radii - planet_radius
    above = height - sea_level
    temps = temperature.sample_many(dirs)
    temps = np.where(above > 0.0, temps + config.land_temperature_bonus, temps)
    rain = precipitation.sample_many(dirs)

    return biome_color(above, temps, rain, height, config, sea_level)


@dataclass(frozen=True, eq=False)
class PlateArrowData:
    """Arrow marking a plate's motion."""

    plate_id: int
    position: np.ndarray
    rotation: np.ndarray  # quaternion (x, y, z, w) turning +Z onto the motion
    scale: float


def calculate_plate_arrows(planet: PlanetData) -> List[PlateArrowData]:
    """
    One arrow per plate that owns cells.

    The arrow sits above the mean position of the plate's cells and points
    along the plate's surface velocity there. Plates with no cells or no
    motion at their centre are skipped.
    """
    size = planet.face_grid_size
    dirs = face_directions(size)
    positions = dirs * (planet.radius + planet.heightmaps)[..., None]
    scale = planet.radius * 0.2
    z_axis = np.array([[0.0, 0.0, 1.0]])

    arrows = []
    for plate in planet.plates:
        cells = planet.plate_map == plate.id
        if not cells.any():
            continue

        normal = normalize(positions[cells].mean(axis=0))
        motion = plate.velocity_at(normal)
        tangent = motion - normal * float(motion @ normal)
        if np.linalg.norm(tangent) < 1e-6:
            logger.debug("Plate has no surface motion at its centre", plate=plate.id)
            continue

        rotation, _ = Rotation.align_vectors(normalize(tangent)[None, :], z_axis)
        arrows.append(
            PlateArrowData(
                plate_id=plate.id,
                position=normal * (planet.radius + 1.0),
                rotation=rotation.as_quat(),
                scale=scale,
            )
        )
    return arrows
