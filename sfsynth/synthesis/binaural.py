"""
Binaural Rendering Module

This module renders binaural room impulse responses of secondary source
arrays: every secondary source is replaced by the head-related impulse
response (HRIR) for its direction relative to the listener, convolved with
its driving signal and attenuated by its distance.

HRIR datasets are supplied externally; a synthetic dataset with a simple
spherical head model is provided for testing.
"""

import numpy as np
import math
import logging
from dataclasses import dataclass
from typing import Optional

from .config import SFSConfig
from .utils import SecondarySources, HRIRInterpolation, Vector3, correct_azimuth
from .exceptions import HRIRError, InvalidArgumentError

# Set up logging
logger = logging.getLogger(__name__)


@dataclass(eq=False)
class HRIRDataset:
    """
    Head-related impulse responses measured on a horizontal circle.

    Attributes:
        azimuths: Measurement azimuths in radians, shape (M,)
        left: Left ear impulse responses, shape (M, L)
        right: Right ear impulse responses, shape (M, L)
        sample_rate: Sample rate in Hz
        distance: Measurement distance in meters
    """
    azimuths: np.ndarray
    left: np.ndarray
    right: np.ndarray
    sample_rate: int
    distance: float = 1.0

    def __post_init__(self):
        """Validate the dataset and sort it by azimuth."""
        azimuths = correct_azimuth(np.asarray(self.azimuths, dtype=float).reshape(-1))
        left = np.atleast_2d(np.asarray(self.left, dtype=float))
        right = np.atleast_2d(np.asarray(self.right, dtype=float))

        if azimuths.shape[0] == 0:
            raise HRIRError("HRIR dataset contains no measurements")
        if left.shape != right.shape:
            raise HRIRError(f"Left {left.shape} and right {right.shape} impulse responses differ in shape")
        if left.shape[0] != azimuths.shape[0]:
            raise HRIRError(f"Got {left.shape[0]} impulse responses for {azimuths.shape[0]} azimuths")
        if self.sample_rate <= 0:
            raise HRIRError("HRIR sample rate must be positive")

        order = np.argsort(azimuths)
        self.azimuths = azimuths[order]
        self.left = left[order]
        self.right = right[order]

    @property
    def length(self) -> int:
        """Number of samples per impulse response."""
        return self.left.shape[1]

    def get_ir(self, azimuth: float,
               method: HRIRInterpolation = HRIRInterpolation.NEAREST) -> np.ndarray:
        """
        Impulse response pair for a direction.

        Args:
            azimuth: Source azimuth relative to the head, in radians
            method: Interpolation between measured azimuths

        Returns:
            Impulse responses of shape (L, 2), left and right
        """
        azimuth = correct_azimuth(float(azimuth))
        # Angular distance on the circle
        difference = np.abs(correct_azimuth(self.azimuths - azimuth))

        if method == HRIRInterpolation.NEAREST or self.azimuths.shape[0] == 1:
            idx = int(np.argmin(difference))
            return np.column_stack([self.left[idx], self.right[idx]])

        if method == HRIRInterpolation.LINEAR:
            # Neighbours below and above, wrapping around the circle
            upper = int(np.searchsorted(self.azimuths, azimuth)) % self.azimuths.shape[0]
            lower = (upper - 1) % self.azimuths.shape[0]
            span = correct_azimuth(self.azimuths[upper] - self.azimuths[lower])
            if span <= 0:
                span += 2 * math.pi
            t = correct_azimuth(azimuth - self.azimuths[lower])
            if t < 0:
                t += 2 * math.pi
            t = min(t / span, 1.0)
            left = (1 - t) * self.left[lower] + t * self.left[upper]
            right = (1 - t) * self.right[lower] + t * self.right[upper]
            return np.column_stack([left, right])

        raise HRIRError(f"Unsupported HRIR interpolation method: {method}")


@dataclass(eq=False)
class HeadphoneCompensation:
    """
    Headphone compensation filters.

    Attributes:
        left: FIR filter for the left channel
        right: FIR filter for the right channel
    """
    left: np.ndarray
    right: np.ndarray

    def __post_init__(self):
        self.left = np.asarray(self.left, dtype=float).reshape(-1)
        self.right = np.asarray(self.right, dtype=float).reshape(-1)
        if self.left.size == 0 or self.right.size == 0:
            raise HRIRError("Headphone compensation filters must not be empty")


def synthetic_hrir_dataset(sample_rate: int = 44100, n_azimuths: int = 360,
                           length: int = 256) -> HRIRDataset:
    """
    Generate a synthetic HRIR dataset from a simple spherical head model.

    This provides interaural time and level differences only, and is meant
    for tests and demonstrations, not for listening.

    Args:
        sample_rate: The sample rate in Hz
        n_azimuths: Number of equally spaced azimuths
        length: Impulse response length in samples

    Returns:
        A synthetic HRIR dataset
    """
    head_radius = 0.0875  # meters
    speed_of_sound = 343.0  # m/s
    azimuths = np.linspace(-math.pi, math.pi, n_azimuths, endpoint=False)

    left = np.zeros((n_azimuths, length))
    right = np.zeros((n_azimuths, length))
    center = length // 4
    itd_max = head_radius / speed_of_sound * sample_rate
    envelope = np.exp(-0.5 * np.arange(length) / length)

    for i, azimuth in enumerate(azimuths):
        # Positive azimuths lie to the left of the listener
        itd = itd_max * math.sin(azimuth)
        itd_samples = int(round(abs(itd)))
        level = 0.5 * (1 + 0.5 * abs(math.sin(azimuth)))
        if itd >= 0:
            left[i, center] = level
            right[i, center + itd_samples] = 1 - level
        else:
            left[i, center + itd_samples] = 1 - level
            right[i, center] = level

    return HRIRDataset(azimuths, left * envelope, right * envelope, sample_rate)


def fix_ir_length(ir: np.ndarray, length: int) -> np.ndarray:
    """Truncate or zero-pad impulse responses along the first axis."""
    ir = np.asarray(ir)
    if ir.shape[0] >= length:
        return ir[:length].copy()
    padding = [(0, length - ir.shape[0])] + [(0, 0)] * (ir.ndim - 1)
    return np.pad(ir, padding)


def compensate_headphone(ir: np.ndarray, conf: SFSConfig,
                         hcomp: Optional[HeadphoneCompensation] = None) -> np.ndarray:
    """
    Apply headphone compensation to a binaural impulse response.

    Compensation is applied only if enabled in the configuration. The result
    keeps the configured impulse response length.

    Args:
        ir: Binaural impulse response of shape (N, 2)
        conf: Configuration
        hcomp: Compensation filters, required when compensation is enabled

    Returns:
        Compensated impulse response of shape (N, 2)

    Raises:
        InvalidArgumentError: If compensation is enabled but no filters are given
    """
    if not conf.binaural.headphone_compensation:
        return np.asarray(ir).copy()
    if hcomp is None:
        raise InvalidArgumentError("Headphone compensation is enabled but no filters were supplied")

    left = np.convolve(ir[:, 0], hcomp.left)
    right = np.convolve(ir[:, 1], hcomp.right)
    return fix_ir_length(np.column_stack([left, right]), conf.binaural.ir_length)


def binaural_impulse_response(X: Vector3, phi: float, x0: SecondarySources, d: np.ndarray,
                              irs: HRIRDataset, conf: SFSConfig,
                              hcomp: Optional[HeadphoneCompensation] = None) -> np.ndarray:
    """
    Binaural impulse response of a driven secondary source array.

    For every secondary source the HRIR for its direction as seen from the
    listener is convolved with its driving signal, fixed to the configured
    length and weighted by the free-field attenuation 1/(4 pi |X - x0|).

    Args:
        X: Listener position
        phi: Listener head orientation (azimuth) in radians
        x0: Secondary sources
        d: Driving signals of shape (n_samples, n_sources)
        irs: HRIR dataset
        conf: Configuration
        hcomp: Headphone compensation filters

    Returns:
        Binaural impulse response of shape (ir_length, 2)

    Raises:
        InvalidArgumentError: For mismatched driving signals, a source at the
            listener position or missing compensation filters
        HRIRError: If the dataset sample rate differs from the configuration
    """
    d = np.asarray(d, dtype=float)
    if d.ndim == 1:
        d = d[:, np.newaxis]
    if d.ndim != 2 or d.shape[1] != len(x0):
        raise InvalidArgumentError(f"Driving signals of shape {d.shape} do not match {len(x0)} secondary sources")
    if irs.sample_rate != conf.binaural.sample_rate:
        raise HRIRError(f"HRIR sample rate {irs.sample_rate} Hz does not match {conf.binaural.sample_rate} Hz")
    if conf.binaural.headphone_compensation and hcomp is None:
        raise InvalidArgumentError("Headphone compensation is enabled but no filters were supplied")

    X = np.asarray(X, dtype=float).reshape(3)
    offset = x0.positions - X
    distances = np.linalg.norm(offset, axis=1)
    if np.any(distances < np.finfo(float).eps):
        raise InvalidArgumentError("A secondary source coincides with the listener position")

    length = conf.binaural.ir_length
    phi = correct_azimuth(float(phi))
    gains = 1 / (4 * math.pi * distances)
    alphas = correct_azimuth(np.arctan2(offset[:, 1], offset[:, 0]) - phi)

    ir = np.zeros((length, 2))
    active = np.flatnonzero(np.any(d != 0, axis=0))
    logger.info(f"Rendering binaural impulse response of {active.size} active secondary sources")

    for i in active:
        hrir = irs.get_ir(alphas[i], conf.binaural.interpolation)
        contribution = np.column_stack([np.convolve(hrir[:, 0], d[:, i]),
                                        np.convolve(hrir[:, 1], d[:, i])])
        ir += gains[i] * fix_ir_length(contribution, length)

    return compensate_headphone(ir, conf, hcomp)


def ir_point_source(X: Vector3, phi: float, xs: Vector3, irs: HRIRDataset, conf: SFSConfig,
                    hcomp: Optional[HeadphoneCompensation] = None) -> np.ndarray:
    """
    Binaural impulse response of a single point source.

    This is the reference a synthesized sound field is compared with.

    Args:
        X: Listener position
        phi: Listener head orientation in radians
        xs: Source position
        irs: HRIR dataset
        conf: Configuration
        hcomp: Headphone compensation filters

    Returns:
        Binaural impulse response of shape (ir_length, 2)
    """
    source = SecondarySources([xs], [np.asarray(xs, dtype=float) - np.asarray(X, dtype=float)])
    return binaural_impulse_response(X, phi, source, np.ones((1, 1)), irs, conf, hcomp)
