"""Shared pytest fixtures."""

import pytest

from py_planetgen.config import PlanetGenerationSettings
from py_planetgen.config.settings import Settings
from py_planetgen.utils.logging import configure_logging


def pytest_configure(config):
    configure_logging(Settings(log_level="WARNING", log_format="console"))


@pytest.fixture
def small_settings():
    """Planet small enough for fast tests (11 grid points per face edge)."""
    return PlanetGenerationSettings(radius=5.0, cells_per_unit=2.0, num_plates=6, num_micro_plates=2, seed=7)
