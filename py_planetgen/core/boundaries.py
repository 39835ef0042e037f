"""
Plate boundary classification.

Cells touching another plate are classified from the relative motion of
the two plates at the boundary:
- Convergent: plates close on each other across the boundary
- Divergent: plates pull apart
- Transform: mostly sideways motion, or too slow to tell

A flood fill then spreads distance-to-boundary (and the boundary type) a
few cells inward so consumers can draw soft bands.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional, Tuple

import numpy as np
import structlog

from ..config.generation import BoundaryConfig
from .cube_sphere import face_directions, normalize
from .plates import TectonicPlate

logger = structlog.get_logger()

NO_BOUNDARY = -1

# (dy, dx) in-face neighbours: right, down, left, up
_NEIGHBORS = [(0, 1), (1, 0), (0, -1), (-1, 0)]


class BoundaryType(IntEnum):
    """Relative motion class of a plate boundary."""

    CONVERGENT = 0
    DIVERGENT = 1
    TRANSFORM = 2

    @property
    def color(self) -> Tuple[float, float, float]:
        return BOUNDARY_COLORS[self]


BOUNDARY_COLORS = {
    BoundaryType.CONVERGENT: (1.0, 0.0, 0.0),
    BoundaryType.DIVERGENT: (0.0, 0.5, 1.0),
    BoundaryType.TRANSFORM: (1.0, 1.0, 0.0),
}


def classify_boundary(
    position: np.ndarray,
    plate_a: TectonicPlate,
    plate_b: TectonicPlate,
    min_threshold: float = 0.005,
    relative_threshold: float = 0.02,
) -> BoundaryType:
    """
    Classify the boundary between two plates at a position.

    The across-boundary normal is the line from plate A's centre to plate
    B's centre, projected into the tangent plane at position. The closing
    speed is the relative velocity of A with respect to B along that normal.
    Swapping the plates flips both vectors, so the result is symmetric.

    Degenerate cases (coincident centres, no tangent component, no
    relative motion) are classified as transform.
    """
    position = np.asarray(position, dtype=np.float64)

    center_line = plate_b.direction - plate_a.direction
    length = np.linalg.norm(center_line)
    if length < 1e-3:
        return BoundaryType.TRANSFORM
    center_line = center_line / length

    normal = center_line - position * float(center_line @ position)
    length = np.linalg.norm(normal)
    if length < 1e-4:
        return BoundaryType.TRANSFORM
    normal = normal / length

    relative = plate_a.velocity_at(position) - plate_b.velocity_at(position)
    relative_speed = float(np.linalg.norm(relative))
    if relative_speed < 1e-6:
        return BoundaryType.TRANSFORM

    closing = float(relative @ normal)
    threshold = max(min_threshold, relative_speed * relative_threshold)

    if closing > threshold:
        return BoundaryType.CONVERGENT
    if closing < -threshold:
        return BoundaryType.DIVERGENT
    return BoundaryType.TRANSFORM


def _shift_slices(dy: int, dx: int, n: int):
    """Slices (parent, child) for moving values one step by (dy, dx) inside a face."""
    parent = (slice(max(0, -dy), n + min(0, -dy)), slice(max(0, -dx), n + min(0, -dx)))
    child = (slice(max(0, dy), n + min(0, dy)), slice(max(0, dx), n + min(0, dx)))
    return parent, child


@dataclass(frozen=True, eq=False)
class BoundaryData:
    """Per-cell boundary type and distance to the nearest boundary."""

    types: np.ndarray
    distances: np.ndarray
    max_distance: float = 10.0
    pair_types: Dict[Tuple[int, int], BoundaryType] = field(default_factory=dict)

    @classmethod
    def calculate(
        cls,
        plate_map: np.ndarray,
        plates: List[TectonicPlate],
        config: Optional[BoundaryConfig] = None,
    ) -> "BoundaryData":
        """
        Classify boundary cells and build the distance field.

        Each unordered plate pair is classified once, at the midpoint of the
        first boundary edge found between them (faces scanned in row-major
        order), and every cell on that pair's boundary takes the cached type.
        A cell touching several plates keeps the type of its first differing
        neighbour (right, down, left, up); later pairs never overwrite it.
        """
        config = config or BoundaryConfig()
        n = plate_map.shape[1]
        directions = face_directions(n)

        types = np.full(plate_map.shape, NO_BOUNDARY, dtype=np.int8)
        distances = np.full(plate_map.shape, np.inf, dtype=np.float64)
        pair_types: Dict[Tuple[int, int], BoundaryType] = {}

        differs = np.zeros(plate_map.shape, dtype=bool)
        for dy, dx in _NEIGHBORS:
            parent, child = _shift_slices(dy, dx, n)
            parent, child = (slice(None),) + parent, (slice(None),) + child
            differs[parent] |= plate_map[parent] != plate_map[child]

        for face, y, x in zip(*np.nonzero(differs)):
            a = int(plate_map[face, y, x])
            for dy, dx in _NEIGHBORS:
                ny, nx = y + dy, x + dx
                if not (0 <= ny < n and 0 <= nx < n):
                    continue
                b = int(plate_map[face, ny, nx])
                if a == b:
                    continue

                pair = (min(a, b), max(a, b))
                boundary = pair_types.get(pair)
                if boundary is None:
                    midpoint = normalize(directions[face, y, x] + directions[face, ny, nx])
                    boundary = classify_boundary(
                        midpoint, plates[pair[0]], plates[pair[1]], config.min_threshold, config.relative_threshold
                    )
                    pair_types[pair] = boundary
                if distances[face, y, x] != 0.0:
                    types[face, y, x] = boundary
                    distances[face, y, x] = 0.0

        width = max(config.min_width, int(n * config.width_fraction))
        for step in range(1, width + 1):
            frontier = distances == step - 1
            for dy, dx in _NEIGHBORS:
                parent, child = _shift_slices(dy, dx, n)
                for face in range(6):
                    reach = frontier[face][parent] & np.isinf(distances[face][child])
                    if not reach.any():
                        continue
                    distances[face][child][reach] = float(step)
                    types[face][child][reach] = types[face][parent][reach]

        data = cls(
            types=types, distances=distances, max_distance=config.color_max_distance, pair_types=pair_types
        )
        logger.info(
            "Plate boundaries classified",
            boundary_cells=int(np.count_nonzero(distances == 0)),
            width=width,
            **{t.name.lower(): c for t, c in data.type_counts().items()},
        )
        return data

    def type_counts(self):
        """Boundary cell count (distance 0) per type."""
        edge = self.types[self.distances == 0]
        return {t: int(np.count_nonzero(edge == t)) for t in BoundaryType}

    def get_boundary(self, face: int, x: int, y: int) -> Optional[BoundaryType]:
        value = int(self.types[face, y, x])
        return None if value == NO_BOUNDARY else BoundaryType(value)

    def get_distance(self, face: int, x: int, y: int) -> float:
        return float(self.distances[face, y, x])

    def get_boundary_color(
        self, face: int, x: int, y: int
    ) -> Optional[Tuple[Tuple[float, float, float], float]]:
        """
        Boundary colour and opacity for a cell.

        Opacity falls off quadratically with distance, reaching zero at
        max_distance. Cells outside any boundary band return None.
        """
        boundary = self.get_boundary(face, x, y)
        distance = self.get_distance(face, x, y)
        if boundary is None or np.isinf(distance):
            return None
        t = min(distance / self.max_distance, 1.0)
        return boundary.color, 1.0 - t * t

    get_boundary_color_with_opacity = get_boundary_color
