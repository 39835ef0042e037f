"""
Wind field and terrain deflection.

The base wind is a banded circulation: meridional flow whose direction
alternates between latitude bands (Hadley, Ferrel and polar cells) plus a
zonal east/west component, both blended across band edges with smoothstep.

High terrain is turned into a mountain influence map (blocking cost plus
ridge direction), and wind crossing a ridge is redirected along it.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
import structlog

from ..config.generation import WindConfig, WindDeflectionConfig
from .cube_field import CubeField, pad_faces
from .cube_sphere import face_directions, normalize, tangent_east

logger = structlog.get_logger()

_NEIGHBORS = [(0, 1), (1, 0), (0, -1), (-1, 0)]


def latitude_blend(abs_latitude: np.ndarray, turn_points: Sequence[float], values: Sequence[float]) -> np.ndarray:
    """
    Smoothstep interpolation of values across latitude band edges.

    Args:
        abs_latitude: Absolute latitude in degrees
        turn_points: Four band edges, e.g. [0, 30, 60, 90]
        values: Value at each band edge
    """
    lat = np.asarray(abs_latitude, dtype=np.float64)
    tp = np.asarray(turn_points, dtype=np.float64)
    vals = np.asarray(values, dtype=np.float64)

    segment = np.where(lat < tp[1], 0, np.where(lat < tp[2], 1, 2))
    start = tp[segment]
    end = tp[segment + 1]
    t = np.clip((lat - start) / (end - start), 0.0, 1.0)
    s = t * t * (3.0 - 2.0 * t)
    return vals[segment] + (vals[segment + 1] - vals[segment]) * s


def wind_velocities(directions: np.ndarray, config: WindConfig) -> np.ndarray:
    """Banded circulation velocity for unit directions shaped (..., 3)."""
    up = normalize(directions)
    latitude = np.degrees(np.arcsin(np.clip(up[..., 1], -1.0, 1.0)))
    abs_lat = np.abs(latitude)

    east = tangent_east(up)
    north = normalize(np.cross(up, east))

    meridional = config.meridional_speed * latitude_blend(abs_lat, config.turn_points, config.signs)
    meridional = np.where(latitude < 0.0, -meridional, meridional)
    zonal = config.zonal_speed * latitude_blend(abs_lat, config.turn_points, config.zonal_signs)

    return north * meridional[..., None] + east * zonal[..., None]


def wind_to_color(velocities: np.ndarray, directions: np.ndarray, max_speed: float) -> np.ndarray:
    """
    RGB encoding of wind: red for eastward, green for northward, blue for speed.
    """
    east = tangent_east(directions)
    north = normalize(np.cross(directions, east))
    scale = max_speed if max_speed > 0 else 1.0
    e = np.sum(velocities * east, axis=-1) / scale
    n = np.sum(velocities * north, axis=-1) / scale
    speed = np.linalg.norm(velocities, axis=-1) / scale
    return np.clip(np.stack([0.5 + 0.5 * e, 0.5 + 0.5 * n, speed], axis=-1), 0.0, 1.0)


@dataclass(frozen=True, eq=False)
class MountainInfluenceMap:
    """Terrain blocking cost and ridge direction on a cubemap."""

    costs: CubeField
    ridge_tangents: CubeField

    @property
    def resolution(self) -> int:
        return self.costs.resolution

    @classmethod
    def build(cls, heights: CubeField, resolution: int, config: WindDeflectionConfig) -> "MountainInfluenceMap":
        """
        Cost from terrain height and ridge tangents from the height gradient.

        Cost spreads outward spread_radius cells, decaying each step; cells
        reached by the spread take the ridge direction of their source.
        """
        dirs = face_directions(resolution)
        h = heights.sample_many(dirs)
        costs = np.clip((h - config.height_threshold) / config.height_scale, 0.0, 1.0)

        eps = 2.0 / resolution * 0.5
        east = tangent_east(dirs)
        north = normalize(np.cross(dirs, east))

        def slope(axis):
            ahead = heights.sample_many(normalize(dirs + axis * eps))
            behind = heights.sample_many(normalize(dirs - axis * eps))
            return (ahead - behind) / (2.0 * eps)

        grad_e = slope(east)
        grad_n = slope(north)
        gradient = east * grad_e[..., None] + north * grad_n[..., None]

        tangents = normalize(np.cross(dirs, gradient))
        tangents = np.where((costs > 0.0)[..., None], tangents, 0.0)

        n = resolution
        for _ in range(config.spread_radius):
            padded_costs = pad_faces(costs)
            padded_tangents = pad_faces(tangents)
            new_costs = costs.copy()
            new_tangents = tangents.copy()
            for dy, dx in _NEIGHBORS:
                source = padded_costs[:, 1 + dy : 1 + dy + n, 1 + dx : 1 + dx + n] * config.spread_decay
                better = source > new_costs
                new_costs = np.where(better, source, new_costs)
                new_tangents = np.where(
                    better[..., None], padded_tangents[:, 1 + dy : 1 + dy + n, 1 + dx : 1 + dx + n], new_tangents
                )
            costs, tangents = new_costs, new_tangents

        logger.debug("Mountain influence built", resolution=resolution, blocked=int(np.count_nonzero(costs > 0.01)))
        return cls(costs=CubeField(costs), ridge_tangents=CubeField(tangents))

    def sample(self, direction) -> Tuple[float, np.ndarray]:
        """Cost and unit ridge tangent (zero where there is no ridge)."""
        cost = self.costs.sample(direction)
        return cost, normalize(self.ridge_tangents.sample(direction))


@dataclass(frozen=True, eq=False)
class WindField:
    """Wind velocity vectors on a cubemap."""

    velocities: CubeField

    @property
    def resolution(self) -> int:
        return self.velocities.resolution

    @classmethod
    def build(cls, resolution: int, config: Optional[WindConfig] = None) -> "WindField":
        config = config or WindConfig()
        field = CubeField.from_function(resolution, lambda dirs: wind_velocities(dirs, config))
        logger.info("Wind field built", resolution=resolution)
        return cls(field)

    @classmethod
    def build_with_terrain(
        cls,
        resolution: int,
        config: WindConfig,
        heights: CubeField,
        deflection: WindDeflectionConfig,
    ) -> Tuple["WindField", MountainInfluenceMap]:
        """Build the wind and bend it around high terrain."""
        wind = cls.build(resolution, config)
        influence = MountainInfluenceMap.build(heights, resolution, deflection)
        return wind.deflected(influence, deflection), influence

    def deflected(self, influence: MountainInfluenceMap, config: WindDeflectionConfig) -> "WindField":
        """
        New field with wind redirected along ridges.

        The across-ridge part of the wind is turned along the ridge, blended
        in by cost * strength, projected back to the tangent plane and
        rescaled to the original speed.
        """
        if influence.resolution != self.resolution:
            raise ValueError("Mountain influence and wind resolutions differ")

        dirs = face_directions(self.resolution)
        costs = influence.costs.values
        ridge = normalize(influence.ridge_tangents.values)
        ridge_normal = normalize(np.cross(dirs, ridge))
        has_ridge = np.linalg.norm(ridge_normal, axis=-1) > 1e-6

        wind = np.array(self.velocities.values)
        for _ in range(config.deflection_iterations):
            speed = np.linalg.norm(wind, axis=-1)
            along = np.sum(wind * ridge, axis=-1)
            across = np.sum(wind * ridge_normal, axis=-1)
            sign = np.where(along >= 0.0, 1.0, -1.0)

            deflected = ridge * (along + np.abs(across) * sign)[..., None]
            blend = (costs * config.deflection_strength)[..., None]
            blended = wind + (deflected - wind) * blend

            tangent = blended - dirs * np.sum(blended * dirs, axis=-1, keepdims=True)
            length = np.linalg.norm(tangent, axis=-1)
            rescaled = tangent * (speed / np.where(length > 1e-6, length, 1.0))[..., None]
            rescaled = np.where((length > 1e-6)[..., None], rescaled, wind)

            active = (costs >= 0.01) & (speed >= 1e-6) & has_ridge
            wind = np.where(active[..., None], rescaled, wind)

        logger.debug("Wind deflected", iterations=config.deflection_iterations)
        return WindField(CubeField(wind))

    def sample(self, direction) -> np.ndarray:
        return self.velocities.sample(direction)

    def sample_many(self, directions: np.ndarray) -> np.ndarray:
        return self.velocities.sample_many(directions)

    def max_speed(self) -> float:
        return float(np.linalg.norm(self.velocities.values, axis=-1).max())

    def sample_color(self, direction) -> np.ndarray:
        direction = normalize(np.asarray(direction, dtype=np.float64))
        return wind_to_color(self.sample(direction), direction, self.max_speed())
