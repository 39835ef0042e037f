"""Tests for tectonic plate generation."""

import numpy as np
import pytest
from pydantic import ValidationError

from py_planetgen.config import ConfigurationError, PlanetGenerationSettings, PlateConfig
from py_planetgen.core.plates import (
    PlateGenerator,
    PlateSizeClass,
    boundary_cells,
    chord_distances,
    plate_adjacency,
    relax_plate_directions,
    smooth_plate_map,
)
from py_planetgen.utils.random import domain_rng


class TestRelaxation:
    """Test seed relaxation."""

    @pytest.mark.parametrize("seed", range(20))
    def test_minimum_separation(self, seed):
        """15 random seeds reach a 0.5 chord separation within the default 50 passes."""
        seeds = np.array([domain_rng(seed, f"test/seed/{i}").unit_vector() for i in range(15)])
        relaxed, iterations = relax_plate_directions(seeds, 0.5)
        assert iterations < 50

        distances = chord_distances(relaxed)
        np.fill_diagonal(distances, np.inf)
        assert distances.min() >= 0.5 - 1e-3
        np.testing.assert_allclose(np.linalg.norm(relaxed, axis=1), 1.0)

    def test_stops_at_pass_cap(self):
        """An impossible separation gives up after exactly 50 passes."""
        seeds = np.array([domain_rng(3, f"test/seed/{i}").unit_vector() for i in range(12)])
        relaxed, iterations = relax_plate_directions(seeds, 1.9)
        assert iterations == 50
        np.testing.assert_allclose(np.linalg.norm(relaxed, axis=1), 1.0)

    def test_coincident_seeds_separate(self):
        """Test that coincident seeds are pushed apart."""
        seeds = np.array([[0.0, 0.0, 1.0], [0.0, 0.0, 1.0]])
        relaxed, _ = relax_plate_directions(seeds, 0.4, max_iterations=200)
        assert chord_distances(relaxed)[0, 1] >= 0.4 - 1e-3

    def test_separated_seeds_untouched(self):
        """Test that well-separated seeds are not moved."""
        seeds = np.array([[1.0, 0.0, 0.0], [-1.0, 0.0, 0.0]])
        relaxed, iterations = relax_plate_directions(seeds, 0.5)
        assert iterations == 0
        np.testing.assert_allclose(relaxed, seeds)


class TestPlateMapHelpers:
    """Test adjacency, boundary detection and smoothing."""

    def test_smoothing_removes_isolated_cell(self):
        """Test that an isolated cell joins its surrounding plate."""
        plate_map = np.zeros((6, 7, 7), dtype=np.int64)
        plate_map[2, 3, 3] = 1
        smoothed = smooth_plate_map(plate_map)
        assert np.all(smoothed == 0)

    def test_smoothing_keeps_large_regions(self):
        """Test that smoothing keeps large plate regions."""
        plate_map = np.zeros((6, 9, 9), dtype=np.int64)
        plate_map[1, :, 4:] = 1
        smoothed = smooth_plate_map(plate_map)
        np.testing.assert_array_equal(smoothed[1, 2:-2, 5:-1], 1)
        np.testing.assert_array_equal(smoothed[1, 2:-2, :3], 0)

    def test_boundary_cells(self):
        """Test detecting cells next to another plate."""
        plate_map = np.zeros((6, 5, 5), dtype=np.int64)
        plate_map[0, :, 3:] = 1
        mask = boundary_cells(plate_map)
        assert mask[0, :, 2].all()
        assert not mask[0, :, 3].any()
        assert not mask[1:].any()

    def test_adjacency_is_symmetric_and_crosses_faces(self):
        """Test that adjacency is symmetric and spans face seams."""
        plate_map = np.zeros((6, 5, 5), dtype=np.int64)
        plate_map[5] = 1
        adjacency = plate_adjacency(plate_map, 2)
        assert adjacency[0] == {1}
        assert adjacency[1] == {0}


class TestPlateGenerator:
    """Test the full plate pipeline on a small planet."""

    @pytest.fixture
    def generator(self, small_settings):
        return PlateGenerator(small_settings, PlateConfig())

    @pytest.fixture
    def result(self, generator):
        return generator.generate()

    def test_rejects_zero_plates(self):
        """Test rejecting a planet without plates."""
        with pytest.raises(ValidationError):
            PlanetGenerationSettings(num_plates=0)
        settings = PlanetGenerationSettings.model_construct(num_plates=0)
        with pytest.raises(ConfigurationError):
            PlateGenerator(settings)

    def test_every_cell_assigned(self, result, small_settings):
        """Test that every cell holds a valid plate id."""
        n = small_settings.face_grid_size
        assert result.plate_map.shape == (6, n, n)
        assert result.plate_map.min() >= 0
        assert result.plate_map.max() < len(result.plates)

    def test_initial_count_includes_microplates(self, result, small_settings):
        """Test that the initial count includes microplates."""
        assert result.initial_plate_count == small_settings.num_plates + small_settings.num_micro_plates
        assert len(result.plates) <= result.initial_plate_count

    def test_ids_are_compact(self, result):
        """Test that plate ids are 0..P-1 after merging."""
        assert [p.id for p in result.plates] == list(range(len(result.plates)))

    def test_merge_records_absorbed_plates(self, result):
        """Test that merges record the plates they absorbed."""
        absorbed = sum(len(targets) for targets in result.merges.values())
        assert len(result.plates) + absorbed == result.initial_plate_count
        for new_id, targets in result.merges.items():
            assert list(result.plates[new_id].absorbed) == targets

    def test_microplates_flagged(self, generator):
        """Test microplate size class and ids."""
        plates, _ = generator.place_plates()
        plate_map = generator.assign_cells(plates)
        micro = generator.seed_microplates(plate_map, plates)
        assert len(micro) == 2
        assert all(p.size_class is PlateSizeClass.MICRO for p in micro)
        assert [p.id for p in micro] == [len(plates), len(plates) + 1]

    def test_plate_motion_is_tangent_at_centre(self, result):
        """Test that plate motion is tangent at the plate centre."""
        for plate in result.plates:
            velocity = plate.velocity_at(plate.direction)
            assert abs(float(velocity @ plate.direction)) < 1e-9

    def test_deterministic(self, small_settings):
        """Test that plate generation is deterministic."""
        a = PlateGenerator(small_settings).generate()
        b = PlateGenerator(small_settings).generate()
        np.testing.assert_array_equal(a.plate_map, b.plate_map)
        assert len(a.plates) == len(b.plates)

    def test_single_plate(self):
        """Test a planet covered by one plate."""
        settings = PlanetGenerationSettings(radius=3.0, num_plates=1, num_micro_plates=0, seed=3)
        result = PlateGenerator(settings).generate()
        assert len(result.plates) == 1
        assert np.all(result.plate_map == 0)
