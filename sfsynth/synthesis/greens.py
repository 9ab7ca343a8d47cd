"""
Green's Functions Module

Monochromatic free-field Green's functions of point sources, line sources
and plane waves, with time convention exp(+j*omega*t).
"""

import numpy as np
import math
import logging
from typing import Union
from scipy import special

from .config import SFSConfig, COINCIDENCE_TOLERANCE
from .utils import SourceType, Vector3, as_source_type
from .exceptions import InvalidArgumentError, UnsupportedModelError, NumericalDegeneracyError

# Set up logging
logger = logging.getLogger(__name__)


def validate_frequency(f: float) -> float:
    """Check that a frequency is finite and positive."""
    if not np.isfinite(f) or f <= 0:
        raise InvalidArgumentError(f"Frequency must be positive, got {f}")
    return float(f)


def resolve_coincident(r: np.ndarray, conf: SFSConfig, what: str = "source") -> np.ndarray:
    """
    Apply the coincident-sample policy to an array of distances.

    Distances below COINCIDENCE_TOLERANCE are replaced by the configured
    singular distance, or rejected in strict mode.

    Args:
        r: Distances in meters
        conf: Configuration
        what: Description used in log and error messages

    Returns:
        Distances safe to divide by

    Raises:
        NumericalDegeneracyError: In strict mode, if any distance is coincident
    """
    coincident = r < COINCIDENCE_TOLERANCE
    if not np.any(coincident):
        return r
    count = int(np.count_nonzero(coincident))
    if conf.strict:
        raise NumericalDegeneracyError(f"{count} sample(s) coincide with the {what}")
    logger.warning(f"{count} sample(s) coincide with the {what}, "
                   f"evaluating them at {conf.singular_distance} m")
    return np.where(coincident, conf.singular_distance, r)


def greens_function_mono(x: np.ndarray, y: np.ndarray, z: np.ndarray,
                         xs: Vector3, src: Union[SourceType, str], f: float,
                         conf: SFSConfig) -> np.ndarray:
    """
    Evaluate the Green's function of a source at a set of points.

    - point source: exp(-jkr) / (4 pi r)
    - line source: -j/4 H0^(2)(kr), r measured perpendicular to the line,
      which runs parallel to the z-axis through xs
    - plane wave: exp(-jk n.x), xs giving the propagation direction

    Args:
        x, y, z: Coordinates of the evaluation points, equal shapes
        xs: Source position, or direction for plane waves
        src: Source model
        f: Frequency in Hz
        conf: Configuration

    Returns:
        Complex array shaped like x

    Raises:
        UnsupportedModelError: For models without a Green's function (fs)
        InvalidArgumentError: For a non-positive frequency or zero direction
        NumericalDegeneracyError: For coincident samples in strict mode
    """
    src = as_source_type(src)
    f = validate_frequency(f)
    x, y, z = np.broadcast_arrays(np.asarray(x, dtype=float), np.asarray(y, dtype=float),
                                  np.asarray(z, dtype=float))
    xs = np.asarray(xs, dtype=float).reshape(3)
    k = conf.wavenumber(f)

    if src == SourceType.POINT:
        r = np.sqrt((x - xs[0])**2 + (y - xs[1])**2 + (z - xs[2])**2)
        r = resolve_coincident(r, conf, "point source")
        return np.exp(-1j * k * r) / (4 * math.pi * r)

    if src == SourceType.LINE:
        r = np.sqrt((x - xs[0])**2 + (y - xs[1])**2)
        r = resolve_coincident(r, conf, "line source")
        return -1j / 4 * special.hankel2(0, k * r)

    if src == SourceType.PLANE:
        norm = np.linalg.norm(xs)
        if norm < np.finfo(float).eps:
            raise InvalidArgumentError("Plane wave direction must not be zero")
        n = xs / norm
        return np.exp(-1j * k * (n[0] * x + n[1] * y + n[2] * z))

    raise UnsupportedModelError(f"No Green's function for source model '{src.value}'")
