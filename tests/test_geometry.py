"""
Tests for secondary source array generation.

The reference tables in fixtures/ hold [x, y, z, nx, ny, nz, weight] rows
for a linear, a circular and a box-shaped array of 4 m size.
"""

import os
import math
import pytest
import numpy as np

from sfsynth.synthesis.config import SFSConfig, SecondarySourceConfig, ArrayGeometry
from sfsynth.synthesis.geometry import secondary_source_positions, secondary_source_diameter
from sfsynth.synthesis.utils import SecondarySources


def _array(geometry, number, size=4.0, center=(0.0, 0.0, 0.0)):
    conf = SFSConfig(secondary_sources=SecondarySourceConfig(
        geometry=geometry, number=number, size=size, center=center))
    return secondary_source_positions(conf)


class TestArrayGeometries:
    """Tests for the generated array layouts."""

    @pytest.mark.parametrize("geometry,number,fixture", [
        (ArrayGeometry.LINEAR, 21, 'x0_linear.txt'),
        (ArrayGeometry.CIRCULAR, 63, 'x0_circle.txt'),
        (ArrayGeometry.BOX, 84, 'x0_box.txt'),
    ])
    def test_reference_tables(self, fixtures_dir, geometry, number, fixture):
        """Generated arrays match the reference tables."""
        expected = np.loadtxt(os.path.join(fixtures_dir, fixture))
        x0 = _array(geometry, number)
        assert len(x0) == number
        np.testing.assert_allclose(x0.table, expected, atol=1e-4)

    def test_linear_center(self):
        """Arrays are shifted to the configured center."""
        x0 = _array(ArrayGeometry.LINEAR, 40, size=6.0, center=(0.0, 2.0, 0.0))
        np.testing.assert_allclose(x0.positions[:, 1], 2.0)
        np.testing.assert_allclose(x0.positions[[0, -1], 0], [-3.0, 3.0])
        np.testing.assert_allclose(x0.weights, 6.0 / 39)

    def test_circular_faces_center(self):
        """Circular arrays face their center."""
        x0 = _array(ArrayGeometry.CIRCULAR, 16, size=3.0, center=(1.0, 0.0, 0.0))
        inward = np.array([1.0, 0.0, 0.0]) - x0.positions
        inward /= np.linalg.norm(inward, axis=1)[:, np.newaxis]
        np.testing.assert_allclose(x0.directions, inward, atol=1e-12)
        np.testing.assert_allclose(x0.weights, 2 * math.pi * 1.5 / 16)

    def test_single_element(self):
        """A one-element linear array sits at the center."""
        x0 = _array(ArrayGeometry.LINEAR, 1)
        np.testing.assert_allclose(x0.positions, [[0.0, 0.0, 0.0]])

    def test_custom(self):
        """Custom arrays come from the configured table."""
        table = np.array([[0.0, 1.0, 0.0, 0.0, -1.0, 0.0],
                          [1.0, 1.0, 0.0, 0.0, -1.0, 0.0]])
        conf = SFSConfig(secondary_sources=SecondarySourceConfig(geometry=ArrayGeometry.CUSTOM, x0=table))
        x0 = secondary_source_positions(conf)
        np.testing.assert_allclose(x0.positions, table[:, :3])
        np.testing.assert_array_equal(x0.weights, [1.0, 1.0])


class TestArrayDiameter:
    """Tests for the array diameter."""

    def test_linear(self, fixtures_dir):
        """The diameter of a linear array is its length."""
        x0 = SecondarySources.from_table(np.loadtxt(os.path.join(fixtures_dir, 'x0_linear.txt')))
        diameter, center = secondary_source_diameter(x0)
        assert abs(diameter - 4.0) < 1e-9
        np.testing.assert_allclose(center, [0.0, 0.0, 0.0], atol=1e-9)

    def test_circle_odd_number(self):
        """With an odd number of elements no two are opposite."""
        x0 = _array(ArrayGeometry.CIRCULAR, 63)
        diameter, center = secondary_source_diameter(x0)
        half_angle = 31 * math.pi / 63
        assert abs(diameter - 4.0 * math.sin(half_angle)) < 1e-9
        assert abs(np.linalg.norm(center) - 2.0 * math.cos(half_angle)) < 1e-9

    def test_box(self, fixtures_dir):
        """The diameter of a box array runs between opposite corners."""
        x0 = SecondarySources.from_table(np.loadtxt(os.path.join(fixtures_dir, 'x0_box.txt')))
        diameter, center = secondary_source_diameter(x0)
        assert abs(diameter - math.sqrt(4.4**2 + 4.0**2)) < 1e-9
        np.testing.assert_allclose(center, [0.0, 0.0, 0.0], atol=1e-9)
