"""
Tests for binaural rendering.
"""

import math
import pytest
import numpy as np

from sfsynth.synthesis.config import SFSConfig, BinauralConfig
from sfsynth.synthesis.utils import SecondarySources, HRIRInterpolation
from sfsynth.synthesis.binaural import (
    HRIRDataset, HeadphoneCompensation, synthetic_hrir_dataset, fix_ir_length,
    compensate_headphone, binaural_impulse_response, ir_point_source
)
from sfsynth.synthesis.exceptions import HRIRError, InvalidArgumentError


@pytest.fixture
def binaural_config():
    """Short impulse responses at 44.1 kHz."""
    return SFSConfig(binaural=BinauralConfig(ir_length=128))


@pytest.fixture
def four_directions():
    """Dataset with four azimuths whose impulse responses are unit pulses."""
    azimuths = [0.0, math.pi / 2, -math.pi / 2, -math.pi]
    left = np.eye(4)[[2, 3, 1, 0]]
    return HRIRDataset(azimuths, left, 2 * left, 44100)


class TestHRIRDataset:
    """Tests for HRIR datasets and lookups."""

    def test_sorted_by_azimuth(self, four_directions):
        """Measurements are sorted by azimuth."""
        np.testing.assert_allclose(four_directions.azimuths, [-math.pi, -math.pi / 2, 0.0, math.pi / 2])
        np.testing.assert_array_equal(four_directions.left, np.eye(4))
        assert four_directions.length == 4

    def test_nearest(self, four_directions):
        """Nearest lookup picks the closest azimuth on the circle."""
        np.testing.assert_array_equal(four_directions.get_ir(0.1)[:, 0], [0, 0, 1, 0])
        np.testing.assert_array_equal(four_directions.get_ir(3.0)[:, 0], [1, 0, 0, 0])
        np.testing.assert_array_equal(four_directions.get_ir(-3.0)[:, 1], [2, 0, 0, 0])

    def test_linear(self, four_directions):
        """Linear lookup weights the neighbouring azimuths."""
        ir = four_directions.get_ir(math.pi / 4, HRIRInterpolation.LINEAR)
        np.testing.assert_allclose(ir[:, 0], [0, 0, 0.5, 0.5], atol=1e-12)
        np.testing.assert_allclose(ir[:, 1], [0, 0, 1.0, 1.0], atol=1e-12)
        # Between +pi/2 and -pi across the wrap
        ir = four_directions.get_ir(3 * math.pi / 4, HRIRInterpolation.LINEAR)
        np.testing.assert_allclose(ir[:, 0], [0.5, 0, 0, 0.5], atol=1e-12)
        ir = four_directions.get_ir(0.0, HRIRInterpolation.LINEAR)
        np.testing.assert_allclose(ir[:, 0], [0, 0, 1, 0], atol=1e-12)

    def test_invalid(self):
        """Inconsistent datasets are rejected."""
        with pytest.raises(HRIRError):
            HRIRDataset([0.0, 1.0], np.zeros((2, 8)), np.zeros((2, 7)), 44100)
        with pytest.raises(HRIRError):
            HRIRDataset([0.0, 1.0], np.zeros((3, 8)), np.zeros((3, 8)), 44100)
        with pytest.raises(HRIRError):
            HRIRDataset([], np.zeros((0, 8)), np.zeros((0, 8)), 44100)

    def test_synthetic_dataset(self, hrirs):
        """Sources on the left arrive earlier and louder at the left ear."""
        ir = hrirs.get_ir(math.pi / 2)
        assert np.argmax(ir[:, 0]) < np.argmax(ir[:, 1])
        assert ir[:, 0].max() > ir[:, 1].max()
        ir = hrirs.get_ir(-math.pi / 2)
        assert np.argmax(ir[:, 1]) < np.argmax(ir[:, 0])
        assert hrirs.azimuths.shape == (72,)
        assert hrirs.length == 64


class TestHelpers:
    """Tests for length fixing and headphone compensation."""

    def test_fix_ir_length(self):
        """Impulse responses are truncated or zero-padded."""
        ir = np.arange(10.0).reshape(5, 2)
        assert fix_ir_length(ir, 3).shape == (3, 2)
        padded = fix_ir_length(ir, 8)
        assert padded.shape == (8, 2)
        np.testing.assert_array_equal(padded[5:], 0.0)

    def test_compensation_disabled(self, binaural_config):
        """Without compensation the impulse response is unchanged."""
        ir = np.ones((128, 2))
        np.testing.assert_array_equal(compensate_headphone(ir, binaural_config), ir)


class TestBinauralImpulseResponse:
    """Tests for binaural rendering of secondary sources."""

    def test_single_source(self, hrirs, binaural_config):
        """A single source in front of the listener."""
        ir = ir_point_source((0.0, 0.0, 0.0), math.pi / 2, (0.0, 1.0, 0.0), hrirs, binaural_config)
        assert ir.shape == (128, 2)
        expected = fix_ir_length(hrirs.get_ir(0.0), 128) / (4 * math.pi)
        np.testing.assert_allclose(ir, expected)

    def test_head_rotation(self, hrirs, binaural_config):
        """A listener facing +x hears a source at +y on the left."""
        ir = ir_point_source((0.0, 0.0, 0.0), 0.0, (0.0, 2.0, 0.0), hrirs, binaural_config)
        expected = fix_ir_length(hrirs.get_ir(math.pi / 2), 128) / (8 * math.pi)
        np.testing.assert_allclose(ir, expected)

    def test_superposition(self, hrirs, binaural_config):
        """Contributions of several sources add up, delayed by their driving signals."""
        x0 = SecondarySources([[0.0, 1.0, 0.0], [1.0, 0.0, 0.0]], [[0.0, -1.0, 0.0], [-1.0, 0.0, 0.0]])
        d = np.zeros((5, 2))
        d[0, 0] = 1.0
        d[3, 1] = 2.0
        ir = binaural_impulse_response((0.0, 0.0, 0.0), math.pi / 2, x0, d, hrirs, binaural_config)
        front = fix_ir_length(hrirs.get_ir(0.0), 128)
        right = fix_ir_length(hrirs.get_ir(-math.pi / 2), 128)
        expected = front / (4 * math.pi)
        expected[3:] += 2 * right[:-3] / (4 * math.pi)
        np.testing.assert_allclose(ir, expected)

    def test_one_dimensional_driving_signal(self, hrirs, binaural_config):
        """A single driving signal may be passed as a vector."""
        x0 = SecondarySources([[0.0, 1.0, 0.0]], [[0.0, -1.0, 0.0]])
        a = binaural_impulse_response((0.0, 0.0, 0.0), 0.0, x0, np.array([1.0, 0.0]), hrirs, binaural_config)
        b = binaural_impulse_response((0.0, 0.0, 0.0), 0.0, x0, np.ones((1, 1)), hrirs, binaural_config)
        np.testing.assert_allclose(a, b)

    def test_headphone_compensation(self, hrirs):
        """Compensation filters are applied to the rendered response."""
        plain = SFSConfig(binaural=BinauralConfig(ir_length=128))
        compensated = SFSConfig(binaural=BinauralConfig(ir_length=128, headphone_compensation=True))
        args = ((0.0, 0.0, 0.0), math.pi / 2, (0.3, 1.0, 0.0), hrirs)
        reference = ir_point_source(*args, plain)

        halved = ir_point_source(*args, compensated, HeadphoneCompensation([0.5], [0.5]))
        np.testing.assert_allclose(halved, 0.5 * reference)

        delayed = ir_point_source(*args, compensated, HeadphoneCompensation([0.0, 1.0], [1.0]))
        np.testing.assert_allclose(delayed[1:, 0], reference[:-1, 0])
        assert delayed[0, 0] == 0.0
        np.testing.assert_allclose(delayed[:, 1], reference[:, 1])

    def test_errors(self, hrirs, binaural_config):
        """Invalid renderings are rejected."""
        x0 = SecondarySources([[0.0, 1.0, 0.0]], [[0.0, -1.0, 0.0]])
        listener = (0.0, 0.0, 0.0)
        with pytest.raises(InvalidArgumentError):
            binaural_impulse_response(listener, 0.0, x0, np.ones((4, 2)), hrirs, binaural_config)
        with pytest.raises(HRIRError):
            binaural_impulse_response(listener, 0.0, x0, np.ones((4, 1)),
                                      synthetic_hrir_dataset(48000, 8, 16), binaural_config)
        with pytest.raises(InvalidArgumentError):
            binaural_impulse_response((0.0, 1.0, 0.0), 0.0, x0, np.ones((4, 1)), hrirs, binaural_config)
        compensated = SFSConfig(binaural=BinauralConfig(ir_length=128, headphone_compensation=True))
        with pytest.raises(InvalidArgumentError):
            binaural_impulse_response(listener, 0.0, x0, np.ones((4, 1)), hrirs, compensated)
