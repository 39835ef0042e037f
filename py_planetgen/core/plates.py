"""
Tectonic plate generation and cell assignment.

Pipeline:
1. Place major plate seeds uniformly on the sphere
2. Relax seeds apart to a minimum chord distance
3. Assign cells to the nearest seed through a noise-warped, flow-advected
   direction field
4. Seed microplates next to existing boundaries and re-assign
5. Randomly merge neighbouring plates and compact plate ids
6. Smooth the map with one majority vote pass
"""

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

import numpy as np
import structlog

from ..config.generation import ConfigurationError, PlanetGenerationSettings, PlateConfig
from ..utils.random import derive_seed, domain_rng
from .cube_field import pad_faces
from .cube_sphere import EPSILON, face_directions, normalize
from .noise import NoiseConfig

logger = structlog.get_logger()

DEBUG_COLORS = [
    (1.0, 0.0, 0.0, 1.0),  # red
    (0.0, 1.0, 0.0, 1.0),  # green
    (0.0, 0.0, 1.0, 1.0),  # blue
    (1.0, 1.0, 0.0, 1.0),  # yellow
    (1.0, 0.0, 1.0, 1.0),  # magenta
    (0.0, 1.0, 1.0, 1.0),  # cyan
    (1.0, 0.5, 0.0, 1.0),  # orange
    (0.5, 0.0, 1.0, 1.0),  # violet
    (0.0, 0.5, 1.0, 1.0),  # sky blue
    (0.5, 1.0, 0.0, 1.0),  # lime
]

# Row-major 8-neighbourhood, used for vote tie-breaking order
NEIGHBOR_OFFSETS_8 = [(-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1)]
NEIGHBOR_OFFSETS_4 = [(0, 1), (1, 0), (0, -1), (-1, 0)]


class PlateSizeClass(str, Enum):
    """Plate size classes."""

    REGULAR = "regular"
    MICRO = "micro"


@dataclass(frozen=True, eq=False)
class TectonicPlate:
    """One tectonic plate."""

    id: int
    direction: np.ndarray
    size_class: PlateSizeClass
    noise: NoiseConfig
    angular_velocity: np.ndarray
    debug_color: Tuple[float, float, float, float]
    absorbed: Tuple[int, ...] = ()

    @property
    def is_micro(self) -> bool:
        return self.size_class is PlateSizeClass.MICRO

    def velocity_at(self, position: np.ndarray) -> np.ndarray:
        """Surface velocity of the plate at a position."""
        return np.cross(self.angular_velocity, position)


@dataclass
class PlateGenerationResult:
    """Output of PlateGenerator.generate()."""

    plate_map: np.ndarray
    plates: List[TectonicPlate]
    initial_plate_count: int
    relaxation_iterations: int = 0
    merges: Dict[int, List[int]] = field(default_factory=dict)


def _orthogonal(v: np.ndarray) -> np.ndarray:
    axis = np.array([1.0, 0.0, 0.0]) if abs(v[0]) < 0.9 else np.array([0.0, 1.0, 0.0])
    return normalize(np.cross(v, axis))


def chord_distances(directions: np.ndarray) -> np.ndarray:
    """Pairwise chord distances between unit directions."""
    dots = np.clip(directions @ directions.T, -1.0, 1.0)
    return np.sqrt(np.maximum(0.0, 2.0 * (1.0 - dots)))


def relax_plate_directions(
    directions: np.ndarray, min_distance: float, max_iterations: int = 50, tolerance: float = 1e-6
) -> Tuple[np.ndarray, int]:
    """
    Push plate seeds apart until every pair is at least min_distance apart.

    Each pass accumulates, for every pair closer than min_distance, half the
    deficit on each seed along the line connecting them, then renormalizes.
    Stops early once a pass moves nothing.

    Args:
        directions: (P, 3) unit vectors
        min_distance: Minimum chord distance
        max_iterations: Pass cap
        tolerance: Deficit below which a pair counts as separated

    Returns:
        Tuple of (relaxed directions, passes that moved something)
    """
    dirs = normalize(np.array(directions, dtype=np.float64))
    count = len(dirs)

    for iteration in range(max_iterations):
        offsets = np.zeros_like(dirs)
        moved = False

        for i in range(count):
            for j in range(i + 1, count):
                dot = min(1.0, max(-1.0, float(dirs[i] @ dirs[j])))
                chord = math.sqrt(max(0.0, 2.0 * (1.0 - dot)))
                deficit = min_distance - chord
                if deficit <= tolerance:
                    continue

                axis = dirs[i] - dirs[j]
                length = np.linalg.norm(axis)
                axis = axis / length if length > EPSILON else _orthogonal(dirs[i])
                offsets[i] += axis * (deficit * 0.5)
                offsets[j] -= axis * (deficit * 0.5)
                moved = True

        if not moved:
            return dirs, iteration
        dirs = normalize(dirs + offsets)

    return dirs, max_iterations


def plate_adjacency(plate_map: np.ndarray, num_plates: int) -> List[Set[int]]:
    """Neighbouring plate ids per plate, using 4-neighbours across faces."""
    n = plate_map.shape[1]
    padded = pad_faces(plate_map)
    adjacency = [set() for _ in range(num_plates)]

    for dy, dx in NEIGHBOR_OFFSETS_4:
        neighbors = padded[:, 1 + dy : 1 + dy + n, 1 + dx : 1 + dx + n]
        mask = plate_map != neighbors
        if not mask.any():
            continue
        pairs = np.unique(np.stack([plate_map[mask], neighbors[mask]], axis=1), axis=0)
        for a, b in pairs.tolist():
            adjacency[a].add(b)
            adjacency[b].add(a)
    return adjacency


def boundary_cells(plate_map: np.ndarray) -> np.ndarray:
    """Cells whose right or down in-face neighbour belongs to another plate."""
    mask = np.zeros(plate_map.shape, dtype=bool)
    mask[:, :, :-1] |= plate_map[:, :, :-1] != plate_map[:, :, 1:]
    mask[:, :-1, :] |= plate_map[:, :-1, :] != plate_map[:, 1:, :]
    return mask


def smooth_plate_map(plate_map: np.ndarray) -> np.ndarray:
    """
    One 8-neighbour majority vote pass.

    The cell itself votes twice. Ties go to the label seen first, checking
    the cell itself and then its neighbours in row-major order.
    """
    n = plate_map.shape[1]
    padded = pad_faces(plate_map)
    labels = np.stack(
        [plate_map]
        + [padded[:, 1 + dy : 1 + dy + n, 1 + dx : 1 + dx + n] for dy, dx in NEIGHBOR_OFFSETS_8]
    )
    weights = [2] + [1] * len(NEIGHBOR_OFFSETS_8)

    counts = np.zeros(labels.shape, dtype=np.int32)
    for k in range(len(labels)):
        for j, w in enumerate(weights):
            counts[k] += w * (labels[k] == labels[j])

    best = np.argmax(counts, axis=0)
    return np.take_along_axis(labels, best[None], axis=0)[0]


class PlateGenerator:
    """Builds the plate list and plate map for one planet."""

    def __init__(self, settings: PlanetGenerationSettings, config: Optional[PlateConfig] = None):
        self.settings = settings
        self.config = config or PlateConfig()
        self.seed = settings.seed
        self.resolution = settings.face_grid_size

        if settings.num_plates < 1:
            raise ConfigurationError("At least one tectonic plate is required")
        if self.resolution < 2:
            raise ConfigurationError(
                f"Planet grid too small: radius={settings.radius}, cells_per_unit={settings.cells_per_unit}"
            )

        self._warped = None

    def make_plate(self, plate_id: int, direction, size_class: PlateSizeClass) -> TectonicPlate:
        """Create a plate with its own noise and motion streams."""
        direction = normalize(np.asarray(direction, dtype=np.float64))
        cfg = self.config

        frequency = cfg.noise_frequency
        amplitude = cfg.noise_amplitude
        if size_class is PlateSizeClass.MICRO:
            frequency *= cfg.micro_frequency_scale
            amplitude *= cfg.micro_amplitude_scale
        noise = NoiseConfig(derive_seed(self.seed, f"plates/noise/{plate_id}"), frequency, amplitude)

        rng = domain_rng(self.seed, f"plates/motion/{plate_id}")
        axis = np.array(rng.unit_vector())
        speed = rng.uniform(cfg.min_plate_speed, cfg.max_plate_speed)
        angular_velocity = normalize(np.cross(direction, axis)) * speed

        return TectonicPlate(
            id=plate_id,
            direction=direction,
            size_class=size_class,
            noise=noise,
            angular_velocity=angular_velocity,
            debug_color=DEBUG_COLORS[plate_id % len(DEBUG_COLORS)],
        )

    def place_plates(self) -> Tuple[List[TectonicPlate], int]:
        """
        Place and relax the major plates.

        Returns:
            Tuple of (plates, relaxation passes)
        """
        seeds = np.array(
            [
                domain_rng(self.seed, f"plates/direction/{i}").unit_vector()
                for i in range(self.settings.num_plates)
            ]
        )
        relaxed, iterations = relax_plate_directions(
            seeds, self.config.min_plate_distance, self.config.relaxation_iterations
        )
        plates = [self.make_plate(i, d, PlateSizeClass.REGULAR) for i, d in enumerate(relaxed)]
        logger.debug("Major plates placed", count=len(plates), relaxation_passes=iterations)
        return plates, iterations

    def seed_microplates(self, plate_map: np.ndarray, plates: List[TectonicPlate]) -> List[TectonicPlate]:
        """
        Create microplates anchored on boundaries of the current plate map.

        Returns:
            The new microplates, ids continuing after the existing plates
        """
        mask = boundary_cells(plate_map)
        has_boundary = bool(mask.any())
        if not has_boundary and self.settings.num_micro_plates:
            logger.warning("No plate boundaries for microplates, seeding anywhere")

        n = self.resolution
        directions = face_directions(n)
        jitter = self.config.micro_jitter
        micro = []

        for k in range(self.settings.num_micro_plates):
            rng = domain_rng(self.seed, f"plates/micro/{k}")
            while True:
                face = rng.randrange(6)
                y = rng.randrange(n)
                x = rng.randrange(n)
                if not has_boundary or mask[face, y, x]:
                    break

            offset = np.array([rng.uniform(-jitter, jitter) for _ in range(3)])
            direction = normalize(directions[face, y, x] + offset)
            micro.append(self.make_plate(len(plates) + k, direction, PlateSizeClass.MICRO))

        logger.debug("Microplates seeded", count=len(micro))
        return micro

    def _noise_vectors(self, domain: str, frequency: float, directions: np.ndarray) -> np.ndarray:
        channels = [
            NoiseConfig(derive_seed(self.seed, f"{domain}/{axis}"), frequency, 1.0).sample_many(directions)
            for axis in "xyz"
        ]
        return np.stack(channels, axis=-1)

    def warp_directions(self) -> np.ndarray:
        """
        Cell directions bent by tangential noise and flow advection.

        Returns:
            (6 * N * N, 3) unit directions in [face, y, x] order
        """
        if self._warped is not None:
            return self._warped

        base = face_directions(self.resolution).reshape(-1, 3)
        cfg = self.config

        noise = self._noise_vectors("plates/warp", cfg.warp_frequency, base)
        tangential = noise - base * np.sum(noise * base, axis=1, keepdims=True)
        dirs = normalize(base + tangential * cfg.warp_strength)

        angle = self.settings.flow_warp_step_angle
        cos_a, sin_a = math.cos(angle), math.sin(angle)
        for _ in range(self.settings.flow_warp_steps):
            flow = self._noise_vectors("plates/flow", self.settings.flow_warp_freq, dirs)
            tangent = normalize(flow - dirs * np.sum(flow * dirs, axis=1, keepdims=True))
            dirs = normalize(dirs * cos_a + tangent * sin_a)

        self._warped = dirs
        return dirs

    def assign_cells(self, plates: List[TectonicPlate]) -> np.ndarray:
        """Assign every cell to the plate with the lowest weighted distance score."""
        warped = self.warp_directions()
        centers = np.array([p.direction for p in plates])
        weights = np.array([self.config.micro_plate_weight if p.is_micro else 1.0 for p in plates])

        scores = (weights**2)[None, :] * (1.0 - warped @ centers.T)
        n = self.resolution
        return np.argmin(scores, axis=1).reshape(6, n, n)

    def merge_plates(
        self, plate_map: np.ndarray, plates: List[TectonicPlate]
    ) -> Tuple[np.ndarray, List[TectonicPlate], Dict[int, List[int]]]:
        """
        Randomly merge neighbouring plates, then compact ids to 0..K-1.

        Returns:
            Tuple of (plate map, surviving plates, merges keyed by the
            primary's new id)
        """
        count = len(plates)
        areas = np.bincount(plate_map.ravel(), minlength=count)
        adjacency = plate_adjacency(plate_map, count)
        rng = domain_rng(self.seed, "plates/merge")
        cfg = self.config

        owner = list(range(count))
        absorbed: Dict[int, List[int]] = {}
        used: Set[int] = set()

        for p in sorted(range(count), key=lambda i: (-int(areas[i]), i)):
            if p in used or not rng.random_bool(cfg.merge_probability):
                continue

            candidates = sorted(adjacency[p] - used - {p})
            if not candidates:
                continue
            rng.shuffle(candidates)
            take = 2 if rng.random_bool(cfg.merge_two_probability) else 1

            targets = candidates[:take]
            used.add(p)
            used.update(targets)
            for t in targets:
                owner[t] = p
            absorbed[p] = targets

        survivors = [p for p in range(count) if owner[p] == p]
        new_ids = {old: new for new, old in enumerate(survivors)}
        lookup = np.array([new_ids[owner[p]] for p in range(count)], dtype=plate_map.dtype)

        merged_plates = [
            replace(
                plates[old],
                id=new,
                debug_color=DEBUG_COLORS[new % len(DEBUG_COLORS)],
                absorbed=tuple(absorbed.get(old, ())),
            )
            for new, old in enumerate(survivors)
        ]
        merges = {new_ids[p]: targets for p, targets in absorbed.items()}

        logger.info("Plates merged", before=count, after=len(merged_plates), merges=len(merges))
        return lookup[plate_map], merged_plates, merges

    def generate(self) -> PlateGenerationResult:
        """Run the full plate pipeline."""
        plates, iterations = self.place_plates()
        plate_map = self.assign_cells(plates)

        plates = plates + self.seed_microplates(plate_map, plates)
        initial_count = len(plates)
        plate_map = self.assign_cells(plates)

        plate_map, plates, merges = self.merge_plates(plate_map, plates)
        plate_map = smooth_plate_map(plate_map)

        logger.info(
            "Plates generated",
            plates=len(plates),
            initial_plates=initial_count,
            grid_size=self.resolution,
        )
        return PlateGenerationResult(
            plate_map=plate_map,
            plates=plates,
            initial_plate_count=initial_count,
            relaxation_iterations=iterations,
            merges=merges,
        )
