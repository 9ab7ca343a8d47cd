"""
Driving Functions Module

Wave field synthesis (WFS) driving functions for secondary source arrays.
The driving signal of each element is D = -2 dP/dn, the directional
derivative of the desired field along the element's orientation. In 2.5D
synthesis it is corrected by sqrt(2 pi |xref - x0| / (jk)) so the field is
reproduced correctly at the reference point.

Driving functions can be derived from a virtual source model or from a
multipole expansion of the desired field, e.g. a scattered field.
"""

import numpy as np
import math
import logging
from typing import Tuple

from scipy import special

from .config import SFSConfig, Dimension
from .utils import SecondarySources, VirtualSource, SourceType, DrivingSignals
from .math_utils import (spherical_harmonics_table, spherical_harmonics_dtheta, spherical_hankel2,
                         cart2sph, cart2pol, POLE_CLEARANCE)
from .expansion import ExpansionCoefficients, ExpansionType, ExpansionFlavor
from .greens import validate_frequency, resolve_coincident
from .selection import reference_point
from .exceptions import InvalidArgumentError, UnsupportedModelError, NumericalDegeneracyError

# Set up logging
logger = logging.getLogger(__name__)


def _dimension_correction(x0: SecondarySources, k: float, conf: SFSConfig) -> np.ndarray:
    if conf.dimension != Dimension.TWO_AND_A_HALF:
        return np.ones(len(x0), dtype=complex)
    xref = reference_point(conf, "2.5D driving functions")
    distance = np.linalg.norm(xref - x0.positions, axis=1)
    return np.sqrt(2 * math.pi * distance / (1j * k))


def driving_function_mono_wfs(x0: SecondarySources, source: VirtualSource, f: float,
                              conf: SFSConfig) -> DrivingSignals:
    """
    WFS driving signals for a virtual source.

    - plane wave: D = 2jk <n, n0> exp(-jk n.x0)
    - point source: D = -2 dG/dn with G = exp(-jkr) / (4 pi r)
    - line source: D = -2 dG/dn with G = -j/4 H0^(2)(kr)
    - focused source: D = -2 dG/dn with G = exp(+jkr) / (4 pi r)

    Secondary source selection is not applied; multiply the result by the
    (tapered) activation vector.

    Args:
        x0: Secondary sources
        source: The virtual source
        f: Frequency in Hz
        conf: Configuration

    Returns:
        Complex driving signal per secondary source
    """
    f = validate_frequency(f)
    k = conf.wavenumber(f)
    positions, n0 = x0.positions, x0.directions
    xs = source.vector

    if source.type == SourceType.PLANE:
        D = 2j * k * (n0 @ xs) * np.exp(-1j * k * (positions @ xs))

    elif source.type in (SourceType.POINT, SourceType.FOCUSED):
        offset = positions - xs
        r = resolve_coincident(np.linalg.norm(offset, axis=1), conf, "virtual source")
        cos_n = np.einsum('ij,ij->i', offset, n0) / r
        sign = -1.0 if source.type == SourceType.POINT else 1.0
        G = np.exp(sign * 1j * k * r) / (4 * math.pi * r)
        D = -2 * cos_n * G * (sign * 1j * k - 1 / r)

    elif source.type == SourceType.LINE:
        offset = positions - xs
        offset[:, 2] = 0.0
        r = resolve_coincident(np.linalg.norm(offset, axis=1), conf, "virtual line source")
        cos_n = np.einsum('ij,ij->i', offset, n0) / r
        # d/dr H0^(2)(kr) = -k H1^(2)(kr)
        D = -2 * cos_n * (1j * k / 4) * special.hankel2(1, k * r)

    else:
        raise UnsupportedModelError(f"No WFS driving function for '{source.type.value}'")

    return D * _dimension_correction(x0, k, conf)


def _spherical_gradient(coefficients: ExpansionCoefficients, r: np.ndarray, theta: np.ndarray,
                        phi: np.ndarray, k: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    order = coefficients.order
    Y = spherical_harmonics_table(order, theta, phi)
    dY = spherical_harmonics_dtheta(Y, order, theta, phi)
    regular = coefficients.flavor == ExpansionFlavor.REGULAR

    grad_r = np.zeros(r.shape, dtype=complex)
    grad_theta = np.zeros(r.shape, dtype=complex)
    grad_phi = np.zeros(r.shape, dtype=complex)
    for n in range(order + 1):
        if regular:
            radial = special.spherical_jn(n, k * r)
            dradial = special.spherical_jn(n, k * r, derivative=True)
        else:
            radial = spherical_hankel2(n, k * r)
            dradial = spherical_hankel2(n, k * r, derivative=True)

        block = slice(n * n, (n + 1) ** 2)
        values = coefficients.values[block]
        orders = np.arange(-n, n + 1)
        grad_r += k * dradial * (values @ Y[block])
        grad_theta += radial / r * (values @ dY[block])
        grad_phi += radial / (r * np.sin(theta)) * ((1j * orders * values) @ Y[block])

    return grad_r, grad_theta, grad_phi


def driving_function_mono_wfs_sphexp(x0: SecondarySources, coefficients: ExpansionCoefficients,
                                     conf: SFSConfig) -> DrivingSignals:
    """
    WFS driving signals for a field given by a spherical expansion.

    The normal derivative is evaluated analytically from the radial and
    angular derivatives of the basis functions. Polar angles are clamped
    away from the poles.

    Args:
        x0: Secondary sources, none of them at the expansion center
        coefficients: Regular or singular spherical expansion
        conf: Configuration

    Returns:
        Complex driving signal per secondary source

    Raises:
        NumericalDegeneracyError: If a secondary source sits at the center
    """
    if coefficients.kind != ExpansionType.SPHERICAL:
        raise InvalidArgumentError("Expected spherical expansion coefficients")
    k = conf.wavenumber(coefficients.frequency)

    relative = x0.positions - np.asarray(coefficients.origin)
    r, theta, phi = cart2sph(relative[:, 0], relative[:, 1], relative[:, 2])
    if np.any(r < np.finfo(float).eps):
        raise NumericalDegeneracyError("A secondary source coincides with the expansion center")
    theta = np.clip(theta, POLE_CLEARANCE, math.pi - POLE_CLEARANCE)

    grad_r, grad_theta, grad_phi = _spherical_gradient(coefficients, r, theta, phi, k)

    # Spherical unit vectors
    e_r = np.column_stack([np.sin(theta) * np.cos(phi), np.sin(theta) * np.sin(phi), np.cos(theta)])
    e_theta = np.column_stack([np.cos(theta) * np.cos(phi), np.cos(theta) * np.sin(phi), -np.sin(theta)])
    e_phi = np.column_stack([-np.sin(phi), np.cos(phi), np.zeros_like(phi)])

    n0 = x0.directions
    dP_dn = (grad_r * np.einsum('ij,ij->i', n0, e_r)
             + grad_theta * np.einsum('ij,ij->i', n0, e_theta)
             + grad_phi * np.einsum('ij,ij->i', n0, e_phi))

    logger.debug(f"WFS driving from spherical expansion of order {coefficients.order}")
    return -2 * dP_dn * _dimension_correction(x0, k, conf)


def driving_function_mono_wfs_cylexp(x0: SecondarySources, coefficients: ExpansionCoefficients,
                                     conf: SFSConfig) -> DrivingSignals:
    """
    WFS driving signals for a field given by a cylindrical expansion.

    Args:
        x0: Secondary sources, none of them on the expansion axis
        coefficients: Regular or singular cylindrical expansion
        conf: Configuration

    Returns:
        Complex driving signal per secondary source

    Raises:
        NumericalDegeneracyError: If a secondary source sits on the axis
    """
    if coefficients.kind != ExpansionType.CYLINDRICAL:
        raise InvalidArgumentError("Expected cylindrical expansion coefficients")
    k = conf.wavenumber(coefficients.frequency)

    relative = x0.positions - np.asarray(coefficients.origin)
    rho, phi = cart2pol(relative[:, 0], relative[:, 1])
    if np.any(rho < np.finfo(float).eps):
        raise NumericalDegeneracyError("A secondary source lies on the expansion axis")

    regular = coefficients.flavor == ExpansionFlavor.REGULAR
    grad_rho = np.zeros(rho.shape, dtype=complex)
    grad_phi = np.zeros(rho.shape, dtype=complex)
    N = coefficients.order
    for m in range(-N, N + 1):
        if regular:
            radial, dradial = special.jv(m, k * rho), special.jvp(m, k * rho)
        else:
            radial, dradial = special.hankel2(m, k * rho), special.h2vp(m, k * rho)
        term = coefficients.values[m + N] * np.exp(1j * m * phi)
        grad_rho += k * dradial * term
        grad_phi += 1j * m / rho * radial * term

    n0 = x0.directions
    dP_dn = (grad_rho * (n0[:, 0] * np.cos(phi) + n0[:, 1] * np.sin(phi))
             + grad_phi * (-n0[:, 0] * np.sin(phi) + n0[:, 1] * np.cos(phi)))

    logger.debug(f"WFS driving from cylindrical expansion of order {N}")
    return -2 * dP_dn * _dimension_correction(x0, k, conf)


def driving_function_mono_wfs_expansion(x0: SecondarySources, coefficients: ExpansionCoefficients,
                                        conf: SFSConfig) -> DrivingSignals:
    """WFS driving signals for a spherical or cylindrical expansion."""
    if coefficients.kind == ExpansionType.SPHERICAL:
        return driving_function_mono_wfs_sphexp(x0, coefficients, conf)
    return driving_function_mono_wfs_cylexp(x0, coefficients, conf)


def driving_function_imp_wfs(x0: SecondarySources, source: VirtualSource,
                             conf: SFSConfig) -> Tuple[np.ndarray, np.ndarray]:
    """
    Delays and weights of time-domain WFS driving signals.

    These are the high-frequency approximations of the monochromatic
    driving functions without their frequency pre-filter (jk in 3D,
    sqrt(jk) in 2.5D).

    Args:
        x0: Secondary sources
        source: Plane wave or point source
        conf: Configuration

    Returns:
        Tuple of (delays in seconds, weights) per secondary source

    Raises:
        UnsupportedModelError: For line and focused sources
    """
    positions, n0 = x0.positions, x0.directions
    xs = source.vector

    if conf.dimension == Dimension.TWO_AND_A_HALF:
        xref = reference_point(conf, "2.5D driving functions")
        g0 = np.sqrt(2 * math.pi * np.linalg.norm(xref - positions, axis=1))
    else:
        g0 = np.ones(len(x0))

    if source.type == SourceType.PLANE:
        delays = positions @ xs / conf.speed_of_sound
        weights = 2 * g0 * (n0 @ xs)
    elif source.type == SourceType.POINT:
        offset = positions - xs
        r = resolve_coincident(np.linalg.norm(offset, axis=1), conf, "virtual source")
        delays = r / conf.speed_of_sound
        weights = g0 * np.einsum('ij,ij->i', offset, n0) / (2 * math.pi * r**2)
    else:
        raise UnsupportedModelError(f"No time-domain WFS driving function for '{source.type.value}'")

    return delays, weights


def driving_signals_imp(delays: np.ndarray, weights: np.ndarray, conf: SFSConfig) -> np.ndarray:
    """
    Build integer-delay impulse driving signals.

    Delays are shifted so that the earliest active element starts at
    sample 0 and rounded to the sample grid. Impulses beyond the configured
    length are dropped.

    Args:
        delays: Delay per secondary source in seconds
        weights: Weight per secondary source, 0 for inactive elements
        conf: Configuration, providing sample rate and length

    Returns:
        Driving signals of shape (ir_length, n_sources)
    """
    delays = np.asarray(delays, dtype=float)
    weights = np.asarray(weights, dtype=float)
    if delays.shape != weights.shape or delays.ndim != 1:
        raise InvalidArgumentError(f"Delays {delays.shape} and weights {weights.shape} must be matching vectors")

    length = conf.binaural.ir_length
    signals = np.zeros((length, delays.shape[0]))
    active = weights != 0
    if not np.any(active):
        return signals

    samples = np.round((delays - delays[active].min()) * conf.binaural.sample_rate).astype(int)
    inside = active & (samples < length)
    if np.any(active & ~inside):
        logger.warning(f"{int(np.count_nonzero(active & ~inside))} driving impulse(s) exceed "
                       f"{length} samples and are dropped")
    columns = np.flatnonzero(inside)
    signals[samples[columns], columns] = weights[columns]
    return signals
