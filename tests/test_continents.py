"""Tests for continent and height synthesis."""

from dataclasses import FrozenInstanceError

import numpy as np
import pytest

from py_planetgen.config import ContinentConfig, MountainConfig
from py_planetgen.core.boundaries import BoundaryData, BoundaryType, NO_BOUNDARY
from py_planetgen.core.continents import ContinentNoise, mountain_uplift, plate_texture
from py_planetgen.core.cube_sphere import face_directions
from py_planetgen.core.noise import NoiseConfig


class TestContinentNoise:
    """Test continent layers."""

    @pytest.fixture
    def noise(self):
        return ContinentNoise(11, ContinentConfig())

    @pytest.fixture
    def directions(self):
        return face_directions(9)

    def test_heights_shape_and_bounds(self, noise, directions):
        """Test height array shape and amplitude bounds."""
        heights = noise.heights(directions)
        assert heights.shape == (6, 9, 9)
        cfg = ContinentConfig()
        low = -cfg.ocean_depth_amplitude - cfg.detail_amplitude * cfg.ocean_detail_factor
        high = cfg.land_base_height + cfg.land_height + cfg.detail_amplitude
        assert heights.min() >= low - 1e-9
        assert heights.max() <= high + 1e-9

    def test_mask_zero_in_ocean(self, noise, directions):
        """Test that the continent mask is 0 in the ocean."""
        heights = noise.heights(directions)
        mask = noise.continent_mask(directions)
        assert np.all(mask >= 0.0) and np.all(mask <= 1.0)
        assert np.all(mask[heights < 0.0] == 0.0)

    def test_scalar_matches_vectorized(self, noise, directions):
        """Test scalar sampling against the vectorized path."""
        d = directions[2, 4, 5]
        assert abs(noise.sample_height(d) - noise.heights(d[None])[0]) < 1e-12
        assert abs(noise.sample_continent_mask(d) - noise.continent_mask(d[None])[0]) < 1e-12

    def test_deterministic(self, directions):
        """Test that continent heights are deterministic."""
        a = ContinentNoise(3, ContinentConfig()).heights(directions)
        b = ContinentNoise(3, ContinentConfig()).heights(directions)
        np.testing.assert_array_equal(a, b)

    def test_seed_changes_heights(self, directions):
        """Test that a new seed changes the heights."""
        a = ContinentNoise(3, ContinentConfig()).heights(directions)
        b = ContinentNoise(4, ContinentConfig()).heights(directions)
        assert not np.array_equal(a, b)


class TestMountains:
    """Test boundary uplift."""

    @pytest.fixture
    def directions(self):
        return face_directions(7)

    def _boundary(self, boundary_type):
        types = np.full((6, 7, 7), NO_BOUNDARY, dtype=np.int8)
        distances = np.full((6, 7, 7), np.inf)
        types[0, :, :4] = boundary_type
        distances[0, :, :4] = np.array([3.0, 2.0, 1.0, 0.0])
        return BoundaryData(types=types, distances=distances)

    def test_convergent_raises(self, directions):
        """Test uplift along convergent boundaries."""
        config = MountainConfig()
        uplift = mountain_uplift(self._boundary(BoundaryType.CONVERGENT), directions, config, seed=1)
        assert np.all(uplift[0, :, 3] > 0.0)
        assert np.all(uplift[0, :, 3] <= config.mountain_height)
        assert np.all(uplift[0, :, 0] == 0.0)
        assert np.all(uplift[1:] == 0.0)

    def test_divergent_sinks(self, directions):
        """Test rift depth along divergent boundaries."""
        config = MountainConfig()
        uplift = mountain_uplift(self._boundary(BoundaryType.DIVERGENT), directions, config, seed=1)
        np.testing.assert_allclose(uplift[0, :, 3], -config.rift_depth)
        np.testing.assert_allclose(uplift[0, :, 2], -config.rift_depth * (2.0 / 3.0) ** 2)

    def test_transform_flat(self, directions):
        """Test that transform boundaries add no relief."""
        uplift = mountain_uplift(self._boundary(BoundaryType.TRANSFORM), directions, MountainConfig(), seed=1)
        assert np.all(uplift == 0.0)


class TestPlateTexture:
    """Test the plate texture layer."""

    def test_zero_weight(self):
        """Test that a zero weight adds no plate texture."""
        plate_map = np.zeros((6, 5, 5), dtype=np.int64)
        texture = plate_texture(plate_map, [], face_directions(5), 0.0)
        assert np.all(texture == 0.0)


class TestNoiseConfig:
    """Test the seeded noise wrapper."""

    def test_scalar_matches_vectorized(self):
        """Test scalar sampling against the vectorized path."""
        noise = NoiseConfig(5, 2.0, 0.5)
        dirs = face_directions(5)[0, 1:3, 1:3]
        many = noise.sample_many(dirs)
        assert many.shape == (2, 2)
        assert noise.sample(dirs[1, 0]) == pytest.approx(many[1, 0])

    def test_amplitude_bounds(self):
        """Test that noise stays within its amplitude."""
        values = NoiseConfig(8, 3.0, 0.25).sample_many(face_directions(7))
        assert np.abs(values).max() <= 0.25 + 1e-9

    def test_equality(self):
        """Test value equality of noise configs."""
        assert NoiseConfig(1, 2.0, 3.0) == NoiseConfig(1, 2.0, 3.0)
        assert NoiseConfig(1, 2.0, 3.0) != NoiseConfig(2, 2.0, 3.0)

    def test_hashable(self):
        """Equal configs hash alike and can key a dict."""
        assert hash(NoiseConfig(1, 2, 3)) == hash(NoiseConfig(1, 2.0, 3.0))
        assert len({NoiseConfig(1, 2.0, 3.0), NoiseConfig(1, 2.0, 3.0), NoiseConfig(4, 2.0, 3.0)}) == 2

    def test_immutable(self):
        """Test that noise configs cannot be modified."""
        with pytest.raises(FrozenInstanceError):
            NoiseConfig(1, 2.0, 3.0).seed = 5
