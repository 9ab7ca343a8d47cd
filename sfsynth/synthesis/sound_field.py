"""
Sound Field Superposition Module

Computes the monochromatic sound field of a driven secondary source array
on a sampling grid and normalizes it at the reference point.
"""

import numpy as np
import logging
from typing import Tuple, Union

from .config import SFSConfig
from .utils import SampleGrid, SecondarySources, SourceType, ComplexField, as_source_type, xyz_grid
from .greens import greens_function_mono, validate_frequency
from .exceptions import InvalidArgumentError, UnsupportedModelError, NumericalDegeneracyError
from . import vector_ops

# Set up logging
logger = logging.getLogger(__name__)


def _check_driving_signals(D: np.ndarray, x0: SecondarySources) -> np.ndarray:
    D = np.asarray(D)
    if D.ndim != 1 or D.shape[0] != len(x0):
        raise InvalidArgumentError(
            f"Driving signals of shape {D.shape} do not match {len(x0)} secondary sources")
    return D.astype(complex)


def _superpose_vectorized(xx: np.ndarray, yy: np.ndarray, zz: np.ndarray, x0: SecondarySources,
                          src: SourceType, weights: np.ndarray, f: float, conf: SFSConfig) -> np.ndarray:
    points = np.ascontiguousarray(np.column_stack([xx.ravel(), yy.ravel(), zz.ravel()]))
    weights = np.ascontiguousarray(weights, dtype=np.complex128)
    k = conf.wavenumber(f)

    if src == SourceType.PLANE:
        field = vector_ops.superpose_plane_waves(points, np.ascontiguousarray(x0.directions), weights, k)
        return field.reshape(xx.shape)

    coincident = vector_ops.count_coincident(points, x0.positions)
    if coincident:
        if conf.strict:
            raise NumericalDegeneracyError(f"{coincident} sample(s) coincide with a secondary source")
        logger.warning(f"{coincident} sample(s) coincide with a secondary source, "
                       f"evaluating them at {conf.singular_distance} m")
    field = vector_ops.superpose_point_sources(points, np.ascontiguousarray(x0.positions), weights,
                                               k, conf.singular_distance)
    return field.reshape(xx.shape)


def sound_field_mono(grid: SampleGrid, x0: SecondarySources, src: Union[SourceType, str],
                     D: np.ndarray, f: float, conf: SFSConfig) -> Tuple[ComplexField, np.ndarray,
                                                                        np.ndarray, np.ndarray]:
    """
    Compute the sound field of a driven secondary source array.

    P(x) = sum_i D_i * w_i * G(x - x0_i), with w_i the integration weight of
    element i. Plane wave secondary sources propagate along their own
    orientation. No selection is applied here: inactive elements must carry
    zero driving signals.

    Args:
        grid: Sampling grid
        x0: Secondary sources
        src: Secondary source model ('ps', 'ls' or 'pw')
        D: Complex driving signal per secondary source
        f: Frequency in Hz
        conf: Configuration

    Returns:
        Tuple (P, x, y, z) of the complex field, shaped like the grid's
        non-degenerate axes, and the 1-D axis samples

    Raises:
        InvalidArgumentError: If D does not match x0 or f is not positive
        UnsupportedModelError: For focused secondary sources
        NumericalDegeneracyError: For coincident samples in strict mode
    """
    src = as_source_type(src)
    if src == SourceType.FOCUSED:
        raise UnsupportedModelError("Focused sources cannot be used as secondary sources")
    f = validate_frequency(f)
    D = _check_driving_signals(D, x0)

    xx, yy, zz, x, y, z = xyz_grid(grid)
    weights = D * x0.weights

    logger.info(f"Computing sound field of {len(x0)} secondary sources ({src.value}) "
                f"at {f} Hz on {xx.size} samples")

    if conf.use_vectorization and src in (SourceType.POINT, SourceType.PLANE):
        logger.debug("Using compiled superposition kernel")
        P = _superpose_vectorized(xx, yy, zz, x0, src, weights, f, conf)
    else:
        P = np.zeros(xx.shape, dtype=complex)
        for i in range(len(x0)):
            xs = x0.directions[i] if src == SourceType.PLANE else x0.positions[i]
            P += weights[i] * greens_function_mono(xx, yy, zz, xs, src, f, conf)

    if conf.normalize:
        P = norm_sound_field(P, grid, conf)

    return P, x, y, z


def norm_sound_field(P: ComplexField, grid: SampleGrid, conf: SFSConfig) -> ComplexField:
    """
    Normalize a sound field to unit magnitude at the reference point.

    The field is divided by its magnitude at the grid sample nearest to
    conf.xref. Applying the normalization twice gives the same result.
    Without a reference point the field is returned unchanged.

    Args:
        P: Complex field sampled on grid
        grid: Sampling grid of P
        conf: Configuration, providing xref

    Returns:
        Normalized copy of P

    Raises:
        InvalidArgumentError: If P does not match the grid
        NumericalDegeneracyError: In strict mode, if the field vanishes at
            the reference point
    """
    P = np.asarray(P)
    xx, yy, zz = xyz_grid(grid)[:3]
    if P.shape != xx.shape:
        raise InvalidArgumentError(f"Field of shape {P.shape} does not match grid of shape {xx.shape}")

    if conf.xref is None:
        logger.debug("No reference point configured, skipping normalization")
        return P.copy()

    xref = conf.xref
    idx = np.argmin((xx - xref[0])**2 + (yy - xref[1])**2 + (zz - xref[2])**2)
    magnitude = np.abs(P.flat[idx])

    if magnitude == 0 or not np.isfinite(magnitude):
        if conf.strict:
            raise NumericalDegeneracyError(f"Cannot normalize, field magnitude at reference point is {magnitude}")
        logger.warning(f"Field magnitude at reference point is {magnitude}, skipping normalization")
        return P.copy()

    return P / magnitude
