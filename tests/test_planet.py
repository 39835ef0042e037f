"""End-to-end tests for planet generation."""

import hashlib

import numpy as np
import pytest

from py_planetgen.config import PlanetConfig, PlanetGenerationSettings
from py_planetgen.core import BoundaryType, generate
from py_planetgen.core.cube_sphere import face_directions


def digest(*arrays):
    h = hashlib.sha256()
    for a in arrays:
        h.update(np.ascontiguousarray(a).tobytes())
    return h.hexdigest()


class TestGenerate:
    """Test the full pipeline at the default size."""

    @pytest.fixture(scope="class")
    def settings(self):
        return PlanetGenerationSettings(radius=20.0, cells_per_unit=2.0, num_plates=15, num_micro_plates=5, seed=42)

    @pytest.fixture(scope="class")
    def planet(self, settings):
        return generate(settings)

    def test_grid(self, planet):
        """Test grid size and planet metadata."""
        assert planet.face_grid_size == 41
        assert planet.heightmaps.shape == (6, 41, 41)
        assert planet.plate_map.shape == (6, 41, 41)
        assert planet.radius == 20.0
        assert planet.seed == 42

    def test_plate_counts(self, planet):
        """Test plate counts before and after merging."""
        assert planet.initial_plate_count == 20
        assert 1 <= len(planet.plates) <= 20
        assert planet.plate_map.min() >= 0
        assert planet.plate_map.max() < len(planet.plates)

    def test_boundaries_found(self, planet):
        """Test that every boundary type occurs."""
        counts = planet.boundary_data.type_counts()
        assert sum(counts.values()) > 0
        assert set(counts) == set(BoundaryType)

    def test_land_and_ocean(self, planet):
        """Test that the planet has both land and ocean."""
        land = float(np.mean(planet.heightmaps > 0.0))
        assert 0.0 < land < 1.0

    def test_arrays_read_only(self, planet):
        """Test that generated arrays are read only."""
        assert not planet.heightmaps.flags.writeable
        assert not planet.plate_map.flags.writeable
        assert not planet.boundary_data.distances.flags.writeable

    def test_sampling(self, planet):
        """Test height and continent mask sampling."""
        dirs = face_directions(41)
        assert planet.sample_height(dirs[4, 20, 20]) == pytest.approx(planet.heightmaps[4, 20, 20], abs=1e-9)
        mask = planet.sample_continent_mask(dirs[4, 20, 20])
        assert 0.0 <= mask <= 1.0

    def test_plate_lookup(self, planet):
        """Test plate lookups by cell."""
        plate_id = planet.plate_at(2, 10, 30)
        assert plate_id == planet.plate_map[2, 30, 10]
        assert planet.plate_for_cell(2, 10, 30).id == plate_id

    def test_deterministic(self, planet, settings):
        """Test that generation is deterministic."""
        again = generate(settings)
        assert digest(planet.heightmaps, planet.plate_map) == digest(again.heightmaps, again.plate_map)
        assert digest(planet.boundary_data.types) == digest(again.boundary_data.types)


class TestGenerateOptions:
    """Test settings and config plumbing on small planets."""

    def test_seed_changes_planet(self, small_settings):
        """Test that a new seed changes the planet."""
        a = generate(small_settings)
        b = generate(small_settings.model_copy(update={"seed": small_settings.seed + 1}))
        assert digest(a.heightmaps) != digest(b.heightmaps)

    def test_settings_default_to_config(self, small_settings):
        """Test that settings default to the config's generation section."""
        planet = generate(config=PlanetConfig(generation=small_settings))
        assert planet.face_grid_size == small_settings.face_grid_size

    def test_no_merging(self, small_settings):
        """Test generation with merging disabled."""
        config = PlanetConfig(plates={"merge_probability": 0.0})
        planet = generate(small_settings, config)
        assert len(planet.plates) == planet.initial_plate_count
