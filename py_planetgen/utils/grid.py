"""Grid sizing shared by configuration and the cube-sphere mapping."""

import math


def face_grid_size(radius: float, cells_per_unit: float) -> int:
    """Grid points per face edge for a planet of the given radius."""
    return int(math.ceil(radius * cells_per_unit)) + 1
