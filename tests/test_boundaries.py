"""Tests for plate boundary classification."""

import numpy as np
import pytest

from py_planetgen.config import BoundaryConfig, PlanetGenerationSettings
from py_planetgen.core.boundaries import BOUNDARY_COLORS, NO_BOUNDARY, BoundaryData, BoundaryType, classify_boundary
from py_planetgen.core.cube_sphere import normalize
from py_planetgen.core.noise import NoiseConfig
from py_planetgen.core.planet import generate
from py_planetgen.core.plates import PlateSizeClass, TectonicPlate


def make_plate(plate_id, direction, angular_velocity):
    """Regular plate with flat noise and a fixed rotation."""
    return TectonicPlate(
        id=plate_id,
        direction=normalize(np.array(direction, dtype=float)),
        size_class=PlateSizeClass.REGULAR,
        noise=NoiseConfig(plate_id, 1.0, 0.0),
        angular_velocity=np.array(angular_velocity, dtype=float),
        debug_color=(1.0, 1.0, 1.0, 1.0),
    )


class TestClassifyBoundary:
    """Test relative motion classification."""

    @pytest.fixture
    def position(self):
        return normalize(np.array([1.0, 0.0, 0.0]))

    def test_convergent(self, position):
        """Test plates closing across the boundary."""
        # A sits at -Z and moves towards +Z at the boundary; B sits at +Z and is still
        a = make_plate(0, [1.0, 0.0, -1.0], [0.0, -1.0, 0.0])
        b = make_plate(1, [1.0, 0.0, 1.0], [0.0, 0.0, 0.0])
        assert classify_boundary(position, a, b) is BoundaryType.CONVERGENT

    def test_divergent(self, position):
        """Test plates pulling apart."""
        a = make_plate(0, [1.0, 0.0, -1.0], [0.0, 1.0, 0.0])
        b = make_plate(1, [1.0, 0.0, 1.0], [0.0, 0.0, 0.0])
        assert classify_boundary(position, a, b) is BoundaryType.DIVERGENT

    def test_transform(self, position):
        """Test motion parallel to the boundary."""
        # Motion along Y is parallel to the boundary
        a = make_plate(0, [1.0, 0.0, -1.0], [0.0, 0.0, 1.0])
        b = make_plate(1, [1.0, 0.0, 1.0], [0.0, 0.0, 0.0])
        assert classify_boundary(position, a, b) is BoundaryType.TRANSFORM

    def test_symmetric(self, position):
        """Test that swapping the plates keeps the classification."""
        a = make_plate(0, [1.0, 0.2, -1.0], [0.3, -1.0, 0.1])
        b = make_plate(1, [1.0, -0.1, 1.0], [0.0, 0.4, -0.2])
        assert classify_boundary(position, a, b) == classify_boundary(position, b, a)

    def test_no_relative_motion(self, position):
        """Test plates moving together."""
        a = make_plate(0, [1.0, 0.0, -1.0], [0.0, 1.0, 0.0])
        b = make_plate(1, [1.0, 0.0, 1.0], [0.0, 1.0, 0.0])
        assert classify_boundary(position, a, b) is BoundaryType.TRANSFORM

    def test_coincident_centres(self, position):
        """Test plates sharing a centre."""
        a = make_plate(0, [1.0, 0.0, 0.0], [0.0, 1.0, 0.0])
        b = make_plate(1, [1.0, 0.0, 0.0], [0.0, -1.0, 0.0])
        assert classify_boundary(position, a, b) is BoundaryType.TRANSFORM


class TestBoundaryData:
    """Test the boundary distance field."""

    @pytest.fixture
    def plates(self):
        return [
            make_plate(0, [1.0, 0.0, -1.0], [0.0, -1.0, 0.0]),
            make_plate(1, [1.0, 0.0, 1.0], [0.0, 0.0, 0.0]),
        ]

    @pytest.fixture
    def plate_map(self):
        plate_map = np.zeros((6, 11, 11), dtype=np.int64)
        plate_map[0, :, 6:] = 1
        return plate_map

    @pytest.fixture
    def data(self, plate_map, plates):
        return BoundaryData.calculate(plate_map, plates, BoundaryConfig(min_width=3, color_max_distance=10.0))

    def test_boundary_pairs_have_zero_distance(self, data):
        """Test that cells on both sides of the boundary sit at distance 0."""
        assert np.all(data.distances[0, :, 5] == 0.0)
        assert np.all(data.distances[0, :, 6] == 0.0)
        assert np.all(data.types[0, :, 5] != NO_BOUNDARY)

    def test_distance_grows_away_from_boundary(self, data):
        """Test distances counting up away from the boundary."""
        np.testing.assert_array_equal(data.distances[0, 4, 2:5], [3.0, 2.0, 1.0])
        np.testing.assert_array_equal(data.distances[0, 4, 7:10], [1.0, 2.0, 3.0])
        assert np.isinf(data.distances[0, 4, 0])

    def test_band_inherits_type(self, data):
        """Test that band cells inherit the boundary type."""
        assert data.types[0, 4, 3] == data.types[0, 4, 5]

    def test_untouched_faces(self, data):
        """Test faces without plate boundaries."""
        assert np.all(data.types[1] == NO_BOUNDARY)
        assert data.get_boundary(1, 3, 3) is None
        assert data.get_boundary_color(1, 3, 3) is None

    def test_color_opacity(self, data):
        """Test boundary colour and quadratic opacity falloff."""
        boundary = data.get_boundary(0, 5, 4)
        color, opacity = data.get_boundary_color(0, 5, 4)
        assert color == BOUNDARY_COLORS[boundary]
        assert opacity == 1.0

        _, faded = data.get_boundary_color_with_opacity(0, 3, 4)
        assert abs(faded - (1.0 - 0.2**2)) < 1e-12

    def test_type_counts(self, data):
        """Test that type counts cover every boundary cell."""
        counts = data.type_counts()
        assert sum(counts.values()) == int(np.count_nonzero(data.distances == 0.0))

    def test_color_property(self):
        """Test the colour property of a boundary type."""
        assert BoundaryType.CONVERGENT.color == (1.0, 0.0, 0.0)


def boundary_edges(plate_map):
    """In-face edges (face, y, x, ny, nx) joining cells on different plates."""
    edges = []
    for dy, dx in [(0, 1), (1, 0)]:
        n = plate_map.shape[1]
        a = plate_map[:, : n - dy, : n - dx]
        b = plate_map[:, dy:, dx:]
        for face, y, x in zip(*np.nonzero(a != b)):
            edges.append((face, y, x, y + dy, x + dx))
    return edges


def foreign_plates(plate_map, face, y, x):
    """Plates other than the cell's own among its in-face 4-neighbours."""
    n = plate_map.shape[1]
    own = plate_map[face, y, x]
    found = set()
    for dy, dx in [(0, 1), (1, 0), (0, -1), (-1, 0)]:
        ny, nx = y + dy, x + dx
        if 0 <= ny < n and 0 <= nx < n and plate_map[face, ny, nx] != own:
            found.add(int(plate_map[face, ny, nx]))
    return found


class TestBoundarySymmetry:
    """Test that both sides of a plate pair carry one classification."""

    @pytest.fixture(scope="class")
    def planet(self):
        settings = PlanetGenerationSettings(radius=20.0, cells_per_unit=2.0, num_plates=15, num_micro_plates=5, seed=42)
        return generate(settings)

    def test_edge_cells_at_zero_distance(self, planet):
        """Both cells of every boundary edge sit at distance 0."""
        distances = planet.boundary_data.distances
        for face, y, x, ny, nx in boundary_edges(planet.plate_map):
            assert distances[face, y, x] == 0.0
            assert distances[face, ny, nx] == 0.0

    def test_every_pair_classified_once(self, planet):
        """Each adjacent plate pair has one cached type."""
        plate_map = planet.plate_map
        pairs = {
            tuple(sorted((int(plate_map[f, y, x]), int(plate_map[f, ny, nx]))))
            for f, y, x, ny, nx in boundary_edges(plate_map)
        }
        assert pairs == set(planet.boundary_data.pair_types)

    def test_two_plate_edges_share_type(self, planet):
        """Edges whose cells only touch each other's plate have equal types."""
        plate_map = planet.plate_map
        types = planet.boundary_data.types
        pair_types = planet.boundary_data.pair_types
        checked = 0
        for face, y, x, ny, nx in boundary_edges(plate_map):
            a, b = int(plate_map[face, y, x]), int(plate_map[face, ny, nx])
            if foreign_plates(plate_map, face, y, x) != {b} or foreign_plates(plate_map, face, ny, nx) != {a}:
                continue
            assert types[face, y, x] == types[face, ny, nx] == pair_types[(min(a, b), max(a, b))]
            checked += 1
        assert checked > 0

    def test_junction_cells_take_one_of_their_pairs(self, planet):
        """A cell touching several plates carries the type of one of its pairs."""
        plate_map = planet.plate_map
        types = planet.boundary_data.types
        pair_types = planet.boundary_data.pair_types
        for face, y, x in zip(*np.nonzero(planet.boundary_data.distances == 0.0)):
            own = int(plate_map[face, y, x])
            allowed = {pair_types[(min(own, o), max(own, o))] for o in foreign_plates(plate_map, face, y, x)}
            assert BoundaryType(int(types[face, y, x])) in allowed

    def test_ragged_two_plate_boundary(self):
        """A jagged boundary between two plates is one type on both sides."""
        plates = [
            make_plate(0, [1.0, 0.0, -1.0], [0.0, -1.0, 0.0]),
            make_plate(1, [1.0, 0.0, 1.0], [0.0, 0.3, 0.0]),
        ]
        plate_map = np.zeros((6, 15, 15), dtype=np.int64)
        for y in range(15):
            plate_map[0, y, 5 + (y * 7) % 5 :] = 1
        plate_map[2, 4:9, 3:12] = 1

        data = BoundaryData.calculate(plate_map, plates)
        assert set(data.pair_types) == {(0, 1)}
        expected = data.pair_types[(0, 1)]
        for face, y, x, ny, nx in boundary_edges(plate_map):
            assert data.types[face, y, x] == data.types[face, ny, nx] == expected
