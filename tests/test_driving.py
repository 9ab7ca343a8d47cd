"""
Tests for WFS driving functions.

Expansion-based driving functions are compared with finite differences of
the expansion they are derived from, and with the closed-form driving
functions of the same virtual sources.
"""

import math
import pytest
import numpy as np
from dataclasses import replace

from sfsynth.synthesis.config import SFSConfig, BinauralConfig, Dimension
from sfsynth.synthesis.utils import SecondarySources, VirtualSource
from sfsynth.synthesis.expansion import (spherical_expansion_plane_wave, spherical_expansion_point_source,
                                         cylindrical_expansion_plane_wave, cylindrical_expansion_line_source)
from sfsynth.synthesis.scattering import sphere_scattering, cylinder_scattering
from sfsynth.synthesis.basis import spherical_basis, cylindrical_basis, sound_field_mono_basis
from sfsynth.synthesis.driving import (driving_function_mono_wfs, driving_function_mono_wfs_expansion,
                                       driving_function_imp_wfs, driving_signals_imp)
from sfsynth.synthesis.exceptions import (MissingReferenceError, NumericalDegeneracyError,
                                          UnsupportedModelError, InvalidArgumentError)


XQ = np.array([0.2, -0.1, 0.0])


@pytest.fixture
def scattered_x0():
    """Secondary sources around XQ in generic positions and orientations."""
    offsets = np.array([[1.0, 0.2, 0.3], [-0.5, 0.8, -0.4], [0.3, -0.9, 0.1],
                        [-0.7, -0.6, 0.0], [0.1, 0.4, -0.9]])
    directions = np.array([[0.3, -1.0, 0.2], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0],
                           [-0.5, 0.5, 0.5], [0.0, -1.0, 0.0]])
    return SecondarySources(offsets + XQ, directions)


def _normal_derivative(coefficients, x0, conf, basis):
    h = 1e-6
    values = []
    for sign in (1, -1):
        points = x0.positions + sign * h * x0.directions
        table = basis(points[:, 0], points[:, 1], points[:, 2], coefficients.frequency,
                      coefficients.origin, conf)
        values.append(sound_field_mono_basis(coefficients, table))
    return (values[0] - values[1]) / (2 * h)


@pytest.fixture
def conf_3d():
    """3D configuration with orders high enough for a 1.5 m array at 300 Hz."""
    return SFSConfig(dimension=Dimension.THREE)


class TestExpansionDriving:
    """Driving functions of multipole expansions."""

    F = 1000.0

    def test_regular_spherical(self, test_config, scattered_x0):
        """D = -2 dP/dn for a regular spherical expansion."""
        A = spherical_expansion_plane_wave((0.3, -1.0, 0.2), self.F, XQ, test_config)
        D = driving_function_mono_wfs_expansion(scattered_x0, A, test_config)
        expected = -2 * _normal_derivative(A, scattered_x0, test_config, spherical_basis)
        np.testing.assert_allclose(D, expected, rtol=1e-5, atol=1e-6)

    def test_singular_spherical(self, test_config, scattered_x0):
        """D = -2 dP/dn for the field scattered by a sphere."""
        A = spherical_expansion_point_source(XQ + np.array([0.0, 2.0, 0.0]), self.F, XQ, test_config)
        B = sphere_scattering(A, 0.3, 0.0, test_config)
        D = driving_function_mono_wfs_expansion(scattered_x0, B, test_config)
        expected = -2 * _normal_derivative(B, scattered_x0, test_config, spherical_basis)
        np.testing.assert_allclose(D, expected, rtol=1e-5, atol=1e-6)

    def test_regular_cylindrical(self, test_config, scattered_x0):
        """D = -2 dP/dn for a regular cylindrical expansion."""
        A = cylindrical_expansion_plane_wave((1.0, -1.0, 0.0), self.F, XQ, test_config)
        D = driving_function_mono_wfs_expansion(scattered_x0, A, test_config)
        expected = -2 * _normal_derivative(A, scattered_x0, test_config, cylindrical_basis)
        np.testing.assert_allclose(D, expected, rtol=1e-5, atol=1e-6)

    def test_singular_cylindrical(self, test_config, scattered_x0):
        """D = -2 dP/dn for the field scattered by a cylinder."""
        A = cylindrical_expansion_plane_wave((0.0, -1.0, 0.0), self.F, XQ, test_config)
        B = cylinder_scattering(A, 0.3, math.inf, test_config)
        D = driving_function_mono_wfs_expansion(scattered_x0, B, test_config)
        expected = -2 * _normal_derivative(B, scattered_x0, test_config, cylindrical_basis)
        np.testing.assert_allclose(D, expected, rtol=1e-5, atol=1e-6)

    def test_source_at_center(self, test_config):
        """Secondary sources at the expansion center are rejected."""
        x0 = SecondarySources([XQ], [[0.0, -1.0, 0.0]])
        A = spherical_expansion_plane_wave((0.0, -1.0, 0.0), self.F, XQ, test_config)
        with pytest.raises(NumericalDegeneracyError):
            driving_function_mono_wfs_expansion(x0, A, test_config)


class TestClosedFormDriving:
    """Closed-form driving functions agree with their expansions."""

    F = 300.0

    def test_plane_wave(self, conf_3d, circular_array):
        """Plane wave driving equals the driving of its spherical expansion."""
        direction = (0.0, -1.0, 0.0)
        D = driving_function_mono_wfs(circular_array, VirtualSource.plane_wave(direction), self.F, conf_3d)
        A = spherical_expansion_plane_wave(direction, self.F, (0.0, 0.0, 0.0), conf_3d)
        np.testing.assert_allclose(D, driving_function_mono_wfs_expansion(circular_array, A, conf_3d),
                                   rtol=1e-6, atol=1e-8)

    def test_point_source(self, conf_3d, circular_array):
        """Point source driving equals the driving of its spherical expansion."""
        xs = (0.0, 3.0, 0.0)
        D = driving_function_mono_wfs(circular_array, VirtualSource.point(xs), self.F, conf_3d)
        A = spherical_expansion_point_source(xs, self.F, (0.0, 0.0, 0.0), conf_3d)
        np.testing.assert_allclose(D, driving_function_mono_wfs_expansion(circular_array, A, conf_3d),
                                   rtol=1e-5, atol=1e-8)

    def test_line_source(self, circular_array):
        """2D line source driving equals the driving of its cylindrical expansion."""
        conf = SFSConfig(dimension=Dimension.TWO)
        xs = (0.0, 3.0, 0.0)
        D = driving_function_mono_wfs(circular_array, VirtualSource.line(xs), self.F, conf)
        A = cylindrical_expansion_line_source(xs, self.F, (0.0, 0.0, 0.0), conf)
        np.testing.assert_allclose(D, driving_function_mono_wfs_expansion(circular_array, A, conf),
                                   rtol=1e-5, atol=1e-8)

    def test_plane_wave_closed_form(self, conf_3d, linear_array):
        """D = 2jk <n, n0> exp(-jk n.x0)."""
        k = conf_3d.wavenumber(self.F)
        D = driving_function_mono_wfs(linear_array, VirtualSource.plane_wave((0.0, -1.0, 0.0)),
                                      self.F, conf_3d)
        np.testing.assert_allclose(D, 2j * k * np.exp(2j * k) * np.ones(40))

    def test_two_and_a_half_dimensional_correction(self, conf_3d, linear_array):
        """2.5D driving is corrected by sqrt(2 pi |xref - x0| / (jk))."""
        source = VirtualSource.point((0.5, 3.0, 0.0))
        conf_25d = replace(conf_3d, dimension=Dimension.TWO_AND_A_HALF, xref=(0.0, 0.5, 0.0))
        k = conf_3d.wavenumber(self.F)
        distance = np.linalg.norm(linear_array.positions - np.array([0.0, 0.5, 0.0]), axis=1)
        np.testing.assert_allclose(driving_function_mono_wfs(linear_array, source, self.F, conf_25d),
                                   driving_function_mono_wfs(linear_array, source, self.F, conf_3d)
                                   * np.sqrt(2 * math.pi * distance / (1j * k)))

    def test_focused_source(self, conf_3d, linear_array):
        """Focused sources give finite driving signals converging on xs."""
        D = driving_function_mono_wfs(linear_array, VirtualSource.focused((0.0, 1.0, 0.0)), self.F, conf_3d)
        assert np.all(np.isfinite(D))
        assert np.all(np.abs(D) > 0)

    def test_missing_reference(self, linear_array):
        """2.5D driving needs a reference point in strict mode."""
        conf = SFSConfig(xref=None, strict=True)
        with pytest.raises(MissingReferenceError):
            driving_function_mono_wfs(linear_array, VirtualSource.plane_wave((0.0, -1.0, 0.0)), 500.0, conf)

    def test_coincident_source_strict(self):
        """A virtual point source at a secondary source is rejected in strict mode."""
        x0 = SecondarySources([[0.0, 0.0, 0.0]], [[0.0, -1.0, 0.0]])
        conf = SFSConfig(dimension=Dimension.THREE, strict=True)
        with pytest.raises(NumericalDegeneracyError):
            driving_function_mono_wfs(x0, VirtualSource.point((0.0, 0.0, 0.0)), 500.0, conf)


class TestImpulseDriving:
    """Time-domain driving functions."""

    def test_plane_wave(self, conf_3d, linear_array):
        """Plane wave delays follow the wave front, weights are 2 <n, n0>."""
        delays, weights = driving_function_imp_wfs(linear_array, VirtualSource.plane_wave((0.0, -1.0, 0.0)),
                                                   conf_3d)
        np.testing.assert_allclose(delays, -2.0 / 343.0)
        np.testing.assert_allclose(weights, 2.0)

    def test_plane_wave_25d(self, linear_array, linear_config):
        """2.5D weights include sqrt(2 pi |xref - x0|)."""
        _, weights = driving_function_imp_wfs(linear_array, VirtualSource.plane_wave((0.0, -1.0, 0.0)),
                                              linear_config)
        distance = np.linalg.norm(linear_array.positions, axis=1)
        np.testing.assert_allclose(weights, 2.0 * np.sqrt(2 * math.pi * distance))

    def test_point_source(self, conf_3d, linear_array):
        """Point source delays are distances over c."""
        delays, weights = driving_function_imp_wfs(linear_array, VirtualSource.point((0.0, 3.0, 0.0)), conf_3d)
        r = np.linalg.norm(linear_array.positions - np.array([0.0, 3.0, 0.0]), axis=1)
        np.testing.assert_allclose(delays, r / 343.0)
        np.testing.assert_allclose(weights, 1.0 / (2 * math.pi * r**2))

    def test_unsupported(self, conf_3d, linear_array):
        """Line and focused sources have no time-domain driving function."""
        with pytest.raises(UnsupportedModelError):
            driving_function_imp_wfs(linear_array, VirtualSource.line((0.0, 3.0, 0.0)), conf_3d)
        with pytest.raises(UnsupportedModelError):
            driving_function_imp_wfs(linear_array, VirtualSource.focused((0.0, 1.0, 0.0)), conf_3d)

    def test_driving_signals(self, caplog):
        """Impulses start at the earliest active element and are truncated."""
        conf = SFSConfig(binaural=BinauralConfig(ir_length=16))
        delays = 0.5 + np.array([0.0, 10.0, -5.0, 100.0]) / 44100
        weights = np.array([1.0, 2.0, 0.0, 3.0])
        signals = driving_signals_imp(delays, weights, conf)
        assert signals.shape == (16, 4)
        expected = np.zeros((16, 4))
        expected[0, 0] = 1.0
        expected[10, 1] = 2.0
        np.testing.assert_array_equal(signals, expected)
        assert "dropped" in caplog.text

    def test_driving_signals_mismatch(self):
        """Delays and weights must match."""
        with pytest.raises(InvalidArgumentError):
            driving_signals_imp(np.zeros(3), np.ones(4), SFSConfig())
