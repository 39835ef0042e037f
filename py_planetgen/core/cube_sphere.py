"""
Cube-sphere coordinate mapping.

Every grid <-> sphere conversion in the package goes through this module:
- (face, u, v) -> cube surface point via a fixed per-face embedding
- direction -> (face, u, v) by dominant axis projection
- grid index <-> normalized face coordinate

The scalar helpers delegate to the vectorized ones so there is only one
numeric definition of the mapping.
"""

from functools import lru_cache
from typing import Tuple

import numpy as np

# Rows map (u, v, 1) to (x, y, z) for each face
FACE_EMBEDDINGS = np.array(
    [
        [[0, 0, 1], [0, 1, 0], [-1, 0, 0]],  # 0: +X (1, v, -u)
        [[0, 0, -1], [0, 1, 0], [1, 0, 0]],  # 1: -X (-1, v, u)
        [[1, 0, 0], [0, 0, 1], [0, -1, 0]],  # 2: +Y (u, 1, -v)
        [[1, 0, 0], [0, 0, -1], [0, 1, 0]],  # 3: -Y (u, -1, v)
        [[1, 0, 0], [0, 1, 0], [0, 0, 1]],  # 4: +Z (u, v, 1)
        [[-1, 0, 0], [0, 1, 0], [0, 0, -1]],  # 5: -Z (-u, v, -1)
    ],
    dtype=np.float64,
)

NUM_FACES = 6
EPSILON = 1e-12


def normalize(vectors: np.ndarray) -> np.ndarray:
    """
    Normalize vectors along the last axis.

    Zero-length (or near zero) vectors come back as zero vectors instead
    of NaNs.
    """
    vectors = np.asarray(vectors, dtype=np.float64)
    lengths = np.linalg.norm(vectors, axis=-1, keepdims=True)
    safe = np.where(lengths > EPSILON, lengths, 1.0)
    return np.where(lengths > EPSILON, vectors / safe, 0.0)


def cube_face_points(faces, u, v) -> np.ndarray:
    """
    Vectorized cube embedding.

    Args:
        faces: Face indices (0-5), broadcastable against u and v
        u: Horizontal face coordinates in [-1, 1]
        v: Vertical face coordinates in [-1, 1]

    Returns:
        Array of shape broadcast(faces, u, v) + (3,) with cube surface points
        (not normalized)
    """
    faces, u, v = np.broadcast_arrays(
        np.asarray(faces, dtype=np.intp),
        np.asarray(u, dtype=np.float64),
        np.asarray(v, dtype=np.float64),
    )
    uv1 = np.stack([u, v, np.ones_like(u)], axis=-1)
    return np.einsum("...ij,...j->...i", FACE_EMBEDDINGS[faces], uv1)


def cube_face_point(face: int, u: float, v: float) -> np.ndarray:
    """Map face coordinates to a point on the unit cube (not normalized)."""
    if not 0 <= face < NUM_FACES:
        raise ValueError(f"Invalid cube face index: {face}")
    return cube_face_points(face, u, v)


def directions_to_cube_uv(directions) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Vectorized inverse mapping.

    The face is chosen by the dominant axis; ties resolve to X first, then Y,
    then Z.

    Returns:
        Tuple of (faces, u, v) arrays shaped like directions[..., 0]
    """
    d = np.asarray(directions, dtype=np.float64)
    x, y, z = d[..., 0], d[..., 1], d[..., 2]
    ax, ay, az = np.abs(x), np.abs(y), np.abs(z)

    x_major = (ax >= ay) & (ax >= az)
    y_major = ~x_major & (ay >= ax) & (ay >= az)
    z_major = ~x_major & ~y_major

    faces = np.select(
        [x_major & (x > 0), x_major, y_major & (y > 0), y_major, z_major & (z > 0)],
        [0, 1, 2, 3, 4],
        default=5,
    )
    major = np.select([x_major, y_major], [ax, ay], default=az)
    major = np.where(major > EPSILON, major, 1.0)

    u_num = np.choose(faces, [-z, z, x, x, x, -x])
    v_num = np.choose(faces, [y, y, -z, z, y, y])
    return faces.astype(np.intp), u_num / major, v_num / major


def direction_to_cube_uv(direction) -> Tuple[int, float, float]:
    """Map a 3D direction to (face, u, v)."""
    faces, u, v = directions_to_cube_uv(np.asarray(direction, dtype=np.float64)[None, :])
    return int(faces[0]), float(u[0]), float(v[0])


def grid_to_uv(index, resolution: int):
    """Grid index to normalized face coordinate in [-1, 1]."""
    return (np.asarray(index, dtype=np.float64) / (resolution - 1)) * 2.0 - 1.0


def uv_to_grid(coord, resolution: int):
    """Normalized face coordinate to fractional grid index."""
    return ((np.asarray(coord, dtype=np.float64) + 1.0) * 0.5) * (resolution - 1)


@lru_cache(maxsize=16)
def face_directions(resolution: int) -> np.ndarray:
    """
    Unit directions for every grid point of every face.

    Returns:
        Read-only array of shape (6, resolution, resolution, 3) indexed
        [face, y, x]
    """
    if resolution < 2:
        raise ValueError(f"Cube face resolution must be at least 2, got {resolution}")

    coords = grid_to_uv(np.arange(resolution), resolution)
    v, u = np.meshgrid(coords, coords, indexing="ij")
    faces = np.arange(NUM_FACES)[:, None, None]
    directions = normalize(cube_face_points(faces, u[None], v[None]))
    directions.setflags(write=False)
    return directions


def tangent_east(normals: np.ndarray) -> np.ndarray:
    """
    East vector in the tangent plane (Y is north).

    Falls back to X x normal at the poles.
    """
    normals = np.asarray(normals, dtype=np.float64)
    east = np.cross(np.array([0.0, 1.0, 0.0]), normals)
    fallback = np.cross(np.array([1.0, 0.0, 0.0]), normals)
    degenerate = np.sum(east * east, axis=-1, keepdims=True) < EPSILON
    return normalize(np.where(degenerate, fallback, east))
