"""
Pytest configuration file for sound field synthesis tests.
"""

import os
import pytest
import numpy as np
from dataclasses import replace

from sfsynth.synthesis.config import (SFSConfig, SecondarySourceConfig, ScatteringConfig,
                                      ArrayGeometry, Dimension)
from sfsynth.synthesis.geometry import secondary_source_positions
from sfsynth.synthesis.binaural import synthetic_hrir_dataset


@pytest.fixture
def test_config():
    """Return a 3D test configuration with a low truncation order."""
    return SFSConfig(
        dimension=Dimension.THREE,
        normalize=False,
        scattering=ScatteringConfig(spherical_order=10, cylindrical_order=10),
    )


@pytest.fixture
def linear_config():
    """Configuration of a 40 element linear array over 6 m at y = 2 m."""
    return SFSConfig(
        secondary_sources=SecondarySourceConfig(
            geometry=ArrayGeometry.LINEAR, number=40, size=6.0, center=(0.0, 2.0, 0.0)),
    )


@pytest.fixture
def linear_array(linear_config):
    """The secondary sources of linear_config."""
    return secondary_source_positions(linear_config)


@pytest.fixture
def circular_array():
    """A circular array of 64 elements with a diameter of 3 m."""
    conf = replace(SFSConfig(), secondary_sources=SecondarySourceConfig(
        geometry=ArrayGeometry.CIRCULAR, number=64, size=3.0))
    return secondary_source_positions(conf)


@pytest.fixture
def hrirs():
    """Synthetic HRIR dataset at the default sample rate."""
    return synthetic_hrir_dataset(44100, n_azimuths=72, length=64)


@pytest.fixture
def random_points():
    """Reproducible random points in a 2 m cube around the origin."""
    rng = np.random.default_rng(42)
    return rng.uniform(-1.0, 1.0, size=(20, 3))


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return os.path.join(os.path.dirname(__file__), 'fixtures')
