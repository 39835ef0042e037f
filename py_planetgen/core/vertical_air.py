"""
Vertical air motion from wind divergence.

Surface divergence of the wind field is estimated with central differences
along each face's grid axes, using neighbours across face seams, and
normalized to [-1, 1]:
- Negative: converging surface air, rising motion
- Positive: diverging surface air, sinking motion
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

import numpy as np
import structlog

from .cube_field import CubeField
from .cube_sphere import NUM_FACES, cube_face_points, grid_to_uv, normalize
from .wind import WindField

logger = structlog.get_logger()


@lru_cache(maxsize=16)
def face_tangents(resolution: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Unit tangents along increasing x and y for every grid point.

    Computed by finite differences of the normalized cube mapping.
    """
    du = 2.0 / (resolution - 1)
    coords = grid_to_uv(np.arange(resolution), resolution)
    v, u = np.meshgrid(coords, coords, indexing="ij")
    faces = np.arange(NUM_FACES)[:, None, None]

    def point(uu, vv):
        return normalize(cube_face_points(faces, uu[None], vv[None]))

    tangent_u = normalize(point(u + du, v) - point(u - du, v))
    tangent_v = normalize(point(u, v + du) - point(u, v - du))
    return tangent_u, tangent_v


def divergence_to_color(values: np.ndarray) -> np.ndarray:
    """White at zero, blue for rising (negative), red for sinking (positive)."""
    values = np.asarray(values, dtype=np.float64)
    t = np.clip(np.abs(values), 0.0, 1.0)
    rising = np.stack([1.0 - t, 1.0 - t, np.ones_like(t)], axis=-1)
    sinking = np.stack([np.ones_like(t), 1.0 - t, 1.0 - t], axis=-1)
    return np.where((values < 0.0)[..., None], rising, sinking)


@dataclass(frozen=True, eq=False)
class VerticalAirField:
    """Normalized divergence of the wind field."""

    values: CubeField

    @property
    def resolution(self) -> int:
        return self.values.resolution

    @classmethod
    def build(cls, wind: WindField) -> "VerticalAirField":
        n = wind.resolution
        tangent_u, tangent_v = face_tangents(n)
        p = wind.velocities.halo

        def along(vectors, axis):
            return np.sum(vectors * axis, axis=-1)

        d_dx = (along(p[:, 1:-1, 2:], tangent_u) - along(p[:, 1:-1, :-2], tangent_u)) / 2.0
        d_dy = (along(p[:, 2:, 1:-1], tangent_v) - along(p[:, :-2, 1:-1], tangent_v)) / 2.0
        divergence = d_dx + d_dy

        peak = float(np.abs(divergence).max())
        if peak > 1e-12:
            divergence = divergence / peak

        logger.info("Vertical air field built", resolution=n, peak_divergence=peak)
        return cls(CubeField(divergence))

    def sample(self, direction) -> float:
        return self.values.sample(direction)

    def sample_many(self, directions: np.ndarray) -> np.ndarray:
        return self.values.sample_many(directions)

    def sample_color(self, direction) -> np.ndarray:
        return divergence_to_color(self.sample(direction))
