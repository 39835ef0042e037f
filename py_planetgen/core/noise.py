"""
Coherent 3D noise sampled on unit-sphere directions.
"""

from dataclasses import dataclass, field

import numpy as np
from opensimplex import OpenSimplex


@dataclass(frozen=True)
class NoiseConfig:
    """OpenSimplex noise with a fixed seed, frequency and amplitude."""

    seed: int
    frequency: float
    amplitude: float
    _generator: OpenSimplex = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "seed", int(self.seed))
        object.__setattr__(self, "frequency", float(self.frequency))
        object.__setattr__(self, "amplitude", float(self.amplitude))
        object.__setattr__(self, "_generator", OpenSimplex(seed=self.seed))

    def sample(self, direction) -> float:
        """Noise value at a direction, in [-amplitude, amplitude]."""
        f = self.frequency
        return (
            self._generator.noise3(
                float(direction[0]) * f, float(direction[1]) * f, float(direction[2]) * f
            )
            * self.amplitude
        )

    def sample_many(self, directions: np.ndarray) -> np.ndarray:
        """Noise values for an array of directions shaped (..., 3)."""
        directions = np.asarray(directions, dtype=np.float64)
        points = directions.reshape(-1, 3) * self.frequency
        noise3 = self._generator.noise3
        values = np.fromiter(
            (noise3(x, y, z) for x, y, z in points.tolist()),
            dtype=np.float64,
            count=len(points),
        )
        return (values * self.amplitude).reshape(directions.shape[:-1])
