"""
Generic cubemap container.

A CubeField stores one value per grid point on each of the six cube faces,
as an array shaped (6, N, N) for scalars or (6, N, N, C) for vectors and
colours. It provides the shared cross-face machinery used by every field:
- Out-of-range grid indices resolved onto the neighbouring face
- A padded "halo" copy for stencil operations (blur, divergence, voting)
- Bilinear sampling by direction that stays continuous across face seams
"""

from functools import cached_property, lru_cache
from typing import Callable, Tuple

import numpy as np

from .cube_sphere import (
    NUM_FACES,
    cube_face_points,
    directions_to_cube_uv,
    face_directions,
    grid_to_uv,
    normalize,
    uv_to_grid,
)


def resolve_cells(faces, xs, ys, resolution: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Map grid indices that may fall outside [0, N) onto the face owning them.

    Out-of-range indices are converted to a direction with the source face's
    parameterization and re-located on the face that direction projects to.
    In-range indices are returned unchanged.
    """
    faces, xs, ys = np.broadcast_arrays(
        np.asarray(faces, dtype=np.intp),
        np.asarray(xs, dtype=np.intp),
        np.asarray(ys, dtype=np.intp),
    )
    n = resolution
    inside = (xs >= 0) & (xs < n) & (ys >= 0) & (ys < n)

    dirs = normalize(cube_face_points(faces, grid_to_uv(xs, n), grid_to_uv(ys, n)))
    new_faces, nu, nv = directions_to_cube_uv(dirs)
    nx = np.clip(np.floor(uv_to_grid(nu, n) + 0.5), 0, n - 1).astype(np.intp)
    ny = np.clip(np.floor(uv_to_grid(nv, n) + 0.5), 0, n - 1).astype(np.intp)

    return (
        np.where(inside, faces, new_faces),
        np.where(inside, xs, nx),
        np.where(inside, ys, ny),
    )


@lru_cache(maxsize=16)
def halo_indices(resolution: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Source (face, y, x) for every cell of a one-cell padded cubemap.

    Returns:
        Three arrays shaped (6, N + 2, N + 2); padded cell [f, y + 1, x + 1]
        reads from grid cell [face, row, col] of the unpadded field.
    """
    f = np.arange(NUM_FACES)[:, None, None]
    y = np.arange(-1, resolution + 1)[None, :, None]
    x = np.arange(-1, resolution + 1)[None, None, :]
    faces, xs, ys = resolve_cells(f, x, y, resolution)
    for a in (faces, ys, xs):
        a.setflags(write=False)
    return faces, ys, xs


def pad_faces(values: np.ndarray) -> np.ndarray:
    """Copy of values with a one-cell border filled from neighbouring faces."""
    hf, hy, hx = halo_indices(values.shape[1])
    return values[hf, hy, hx]


def box_blur(values: np.ndarray, passes: int) -> np.ndarray:
    """Repeated 3x3 box blur with cross-face neighbours."""
    n = values.shape[1]
    out = values
    for _ in range(passes):
        p = pad_faces(out)
        acc = np.zeros_like(out)
        for dy in range(3):
            for dx in range(3):
                acc += p[:, dy : dy + n, dx : dx + n]
        out = acc / 9.0
    return out


class CubeField:
    """Six square faces of per-cell values with cross-face sampling."""

    def __init__(self, values: np.ndarray):
        values = np.array(values, dtype=np.float64)
        if values.ndim < 3 or values.shape[0] != NUM_FACES or values.shape[1] != values.shape[2]:
            raise ValueError(f"Cube field values must be shaped (6, N, N, ...), got {values.shape}")
        if values.shape[1] < 2:
            raise ValueError("Cube field resolution must be at least 2")
        values.setflags(write=False)
        self.values = values

    @classmethod
    def from_function(cls, resolution: int, fn: Callable[[np.ndarray], np.ndarray]) -> "CubeField":
        """Build a field by evaluating fn on the (6, N, N, 3) grid directions."""
        return cls(fn(face_directions(resolution)))

    @property
    def resolution(self) -> int:
        return self.values.shape[1]

    @property
    def value_shape(self) -> Tuple[int, ...]:
        return self.values.shape[3:]

    @property
    def directions(self) -> np.ndarray:
        return face_directions(self.resolution)

    @cached_property
    def halo(self) -> np.ndarray:
        """Padded values, shape (6, N + 2, N + 2, ...)."""
        padded = pad_faces(self.values)
        padded.setflags(write=False)
        return padded

    def __getitem__(self, face: int) -> np.ndarray:
        return self.values[face]

    def value_at(self, face: int, x: int, y: int):
        """Value at a grid cell; out-of-range indices resolve cross-face."""
        f, xs, ys = resolve_cells(face, x, y, self.resolution)
        return self.values[int(f), int(ys), int(xs)]

    def value_range(self) -> Tuple[float, float]:
        return float(self.values.min()), float(self.values.max())

    def map(self, fn: Callable[[np.ndarray], np.ndarray]) -> "CubeField":
        """New field with fn applied to the values array."""
        return CubeField(fn(self.values))

    def blur(self, passes: int = 1) -> "CubeField":
        """New field smoothed with repeated cross-face 3x3 box blur."""
        return CubeField(box_blur(self.values, passes))

    def sample_many(self, directions: np.ndarray) -> np.ndarray:
        """
        Bilinear samples for directions shaped (..., 3).

        The upper interpolation corner may lie one cell beyond the face
        edge; it is read from the halo so samples blend across seams.
        """
        faces, u, v = directions_to_cube_uv(directions)
        return self._bilinear(faces, u, v)

    def sample(self, direction):
        """Bilinear sample at a single direction."""
        value = self.sample_many(np.asarray(direction, dtype=np.float64)[None, :])[0]
        return float(value) if value.ndim == 0 else value

    def sample_face_uv(self, face: int, u: float, v: float):
        """Bilinear sample at face coordinates, bypassing face selection."""
        value = self._bilinear(
            np.array([face], dtype=np.intp), np.array([u], dtype=np.float64), np.array([v], dtype=np.float64)
        )[0]
        return float(value) if value.ndim == 0 else value

    def _bilinear(self, faces, u, v) -> np.ndarray:
        n = self.resolution
        fx = uv_to_grid(u, n)
        fy = uv_to_grid(v, n)
        x0 = np.clip(np.floor(fx), 0, n - 1).astype(np.intp)
        y0 = np.clip(np.floor(fy), 0, n - 1).astype(np.intp)

        extra = (None,) * len(self.value_shape)
        tx = (fx - x0)[(...,) + extra]
        ty = (fy - y0)[(...,) + extra]

        p = self.halo
        px = x0 + 1
        py = y0 + 1
        v00 = p[faces, py, px]
        v10 = p[faces, py, px + 1]
        v01 = p[faces, py + 1, px]
        v11 = p[faces, py + 1, px + 1]

        top = v00 + (v10 - v00) * tx
        bottom = v01 + (v11 - v01) * tx
        return top + (bottom - top) * ty
