"""
Multipole Expansion Module

Expansion coefficients of elementary sources in spherical and cylindrical
basis functions around an expansion center xq.

Regular expansions use the radial functions j_n(kr) (spherical) or
J_m(k rho) (cylindrical) and are valid in a region around xq that contains
no sources. Singular expansions use the outgoing Hankel functions
h_n^(2)(kr) or H_m^(2)(k rho) and describe fields radiated by sources near
xq, e.g. scattered fields.

Spherical coefficients of degree n and order m are stored at the linear
index n*n + n + m, cylindrical coefficients of order m at m + N.
"""

import numpy as np
import math
import logging
from enum import Enum, auto
from dataclasses import dataclass, replace
from typing import Optional

from scipy import special

from .config import SFSConfig
from .utils import Vector3
from .math_utils import spherical_harmonics_table, spherical_hankel2, cart2sph, cart2pol, acn_index
from .greens import validate_frequency
from .exceptions import InvalidArgumentError, NumericalDegeneracyError

# Set up logging
logger = logging.getLogger(__name__)


class ExpansionType(Enum):
    """
    Basis functions of an expansion.

    Attributes:
        SPHERICAL: Spherical harmonics with spherical Bessel/Hankel functions
        CYLINDRICAL: Circular harmonics with Bessel/Hankel functions
    """
    SPHERICAL = auto()
    CYLINDRICAL = auto()


class ExpansionFlavor(Enum):
    """
    Radial behaviour of an expansion.

    Attributes:
        REGULAR: Bessel functions, finite at the expansion center
        SINGULAR: Outgoing Hankel functions, singular at the expansion center
    """
    REGULAR = auto()
    SINGULAR = auto()


def coefficient_count(kind: ExpansionType, order: int) -> int:
    """Number of coefficients of an expansion truncated at the given order."""
    if kind == ExpansionType.SPHERICAL:
        return (order + 1) ** 2
    return 2 * order + 1


@dataclass(frozen=True, eq=False)
class ExpansionCoefficients:
    """
    Coefficients of a truncated multipole expansion.

    Attributes:
        kind: Spherical or cylindrical basis
        flavor: Regular or singular radial functions
        order: Truncation order N
        values: Complex coefficients, (N+1)^2 or 2N+1 entries
        origin: Expansion center xq
        frequency: Frequency in Hz
    """
    kind: ExpansionType
    flavor: ExpansionFlavor
    order: int
    values: np.ndarray
    origin: Vector3
    frequency: float

    def __post_init__(self):
        """Validate and freeze the coefficient array."""
        if self.order < 0:
            raise InvalidArgumentError(f"Expansion order must be non-negative, got {self.order}")

        values = np.array(self.values, dtype=complex).reshape(-1)
        expected = coefficient_count(self.kind, self.order)
        if values.shape[0] != expected:
            raise InvalidArgumentError(
                f"Order {self.order} {self.kind.name.lower()} expansion needs {expected} coefficients, "
                f"got {values.shape[0]}")
        values.setflags(write=False)

        object.__setattr__(self, 'values', values)
        object.__setattr__(self, 'origin', tuple(float(c) for c in self.origin))
        object.__setattr__(self, 'frequency', validate_frequency(self.frequency))

    def index(self, n: int, m: Optional[int] = None) -> int:
        """
        Linear index of a coefficient.

        Spherical expansions take degree n and order m, cylindrical
        expansions take the order alone.
        """
        if self.kind == ExpansionType.SPHERICAL:
            if m is None or abs(m) > n or n > self.order:
                raise InvalidArgumentError(f"No spherical coefficient for n={n}, m={m}")
            return acn_index(n, m)
        if abs(n) > self.order:
            raise InvalidArgumentError(f"No cylindrical coefficient for m={n}")
        return n + self.order

    def with_values(self, values: np.ndarray, flavor: ExpansionFlavor) -> 'ExpansionCoefficients':
        """Copy with new coefficient values and flavor."""
        return replace(self, values=values, flavor=flavor)


def _unit_direction(direction: Vector3, planar: bool = False) -> np.ndarray:
    n = np.asarray(direction, dtype=float).reshape(3).copy()
    if planar:
        n[2] = 0.0
    norm = np.linalg.norm(n)
    if norm < np.finfo(float).eps:
        raise InvalidArgumentError(f"Cannot use {tuple(direction)} as a propagation direction")
    return n / norm


def spherical_expansion_plane_wave(ns: Vector3, f: float, xq: Vector3,
                                   conf: SFSConfig) -> ExpansionCoefficients:
    """
    Regular spherical expansion of a plane wave.

    A_nm = 4 pi (-j)^n conj(Y_n^m(ns)) exp(-jk ns.xq), so that the expansion
    around xq reproduces exp(-jk ns.x).

    Args:
        ns: Propagation direction
        f: Frequency in Hz
        xq: Expansion center
        conf: Configuration, providing the truncation order

    Returns:
        Regular spherical expansion coefficients
    """
    f = validate_frequency(f)
    n = _unit_direction(ns)
    xq = np.asarray(xq, dtype=float)
    order = conf.scattering.spherical_order
    k = conf.wavenumber(f)

    _, theta, phi = cart2sph(n[0], n[1], n[2])
    Y = spherical_harmonics_table(order, theta, phi)
    degrees = np.floor(np.sqrt(np.arange(Y.shape[0]))).astype(int)
    values = 4 * math.pi * (-1j) ** degrees * np.conj(Y) * np.exp(-1j * k * (n @ xq))

    logger.debug(f"Spherical plane wave expansion of order {order} at {f} Hz")
    return ExpansionCoefficients(ExpansionType.SPHERICAL, ExpansionFlavor.REGULAR, order,
                                 values, tuple(xq), f)


def spherical_expansion_point_source(xs: Vector3, f: float, xq: Vector3,
                                     conf: SFSConfig) -> ExpansionCoefficients:
    """
    Regular spherical expansion of a point source.

    A_nm = -jk h_n^(2)(k rs) conj(Y_n^m(theta_s, phi_s)), with (rs, theta_s,
    phi_s) the position of the source relative to xq. The expansion is valid
    for |x - xq| < rs.

    Args:
        xs: Source position
        f: Frequency in Hz
        xq: Expansion center
        conf: Configuration, providing the truncation order

    Returns:
        Regular spherical expansion coefficients

    Raises:
        NumericalDegeneracyError: If the source sits at the expansion center
    """
    f = validate_frequency(f)
    xq = np.asarray(xq, dtype=float)
    relative = np.asarray(xs, dtype=float) - xq
    order = conf.scattering.spherical_order
    k = conf.wavenumber(f)

    rs, theta, phi = cart2sph(*relative)
    if rs < np.finfo(float).eps:
        raise NumericalDegeneracyError("Point source coincides with the expansion center")

    Y = spherical_harmonics_table(order, theta, phi)
    values = np.zeros_like(Y)
    for n in range(order + 1):
        hn = spherical_hankel2(n, k * rs)
        for m in range(-n, n + 1):
            values[acn_index(n, m)] = -1j * k * hn * np.conj(Y[acn_index(n, m)])

    return ExpansionCoefficients(ExpansionType.SPHERICAL, ExpansionFlavor.REGULAR, order,
                                 values, tuple(xq), f)


def cylindrical_expansion_plane_wave(ns: Vector3, f: float, xq: Vector3,
                                     conf: SFSConfig) -> ExpansionCoefficients:
    """
    Regular cylindrical expansion of a plane wave.

    A_m = (-j)^m exp(-jm phi_pw) exp(-jk ns.xq) for m = -N..N. Only the
    projection of ns onto the x-y plane is used.

    Args:
        ns: Propagation direction
        f: Frequency in Hz
        xq: Expansion center
        conf: Configuration, providing the truncation order

    Returns:
        Regular cylindrical expansion coefficients
    """
    f = validate_frequency(f)
    n = _unit_direction(ns, planar=True)
    xq = np.asarray(xq, dtype=float)
    order = conf.scattering.cylindrical_order
    k = conf.wavenumber(f)

    phi_pw = math.atan2(n[1], n[0])
    m = np.arange(-order, order + 1)
    values = (-1j) ** m * np.exp(-1j * m * phi_pw) * np.exp(-1j * k * (n @ xq))

    logger.debug(f"Cylindrical plane wave expansion of order {order} at {f} Hz")
    return ExpansionCoefficients(ExpansionType.CYLINDRICAL, ExpansionFlavor.REGULAR, order,
                                 values, tuple(xq), f)


def cylindrical_expansion_line_source(xs: Vector3, f: float, xq: Vector3,
                                      conf: SFSConfig) -> ExpansionCoefficients:
    """
    Regular cylindrical expansion of a line source.

    A_m = -j/4 H_m^(2)(k rho_s) exp(-jm phi_s), valid for distances to the
    expansion center below rho_s.

    Args:
        xs: Source position, the line runs parallel to the z-axis
        f: Frequency in Hz
        xq: Expansion center
        conf: Configuration, providing the truncation order

    Returns:
        Regular cylindrical expansion coefficients

    Raises:
        NumericalDegeneracyError: If the line passes through the expansion center
    """
    f = validate_frequency(f)
    xq = np.asarray(xq, dtype=float)
    relative = np.asarray(xs, dtype=float) - xq
    order = conf.scattering.cylindrical_order
    k = conf.wavenumber(f)

    rho_s, phi_s = cart2pol(relative[0], relative[1])
    if rho_s < np.finfo(float).eps:
        raise NumericalDegeneracyError("Line source passes through the expansion center")

    m = np.arange(-order, order + 1)
    values = -1j / 4 * special.hankel2(m, k * rho_s) * np.exp(-1j * m * phi_s)

    return ExpansionCoefficients(ExpansionType.CYLINDRICAL, ExpansionFlavor.REGULAR, order,
                                 values, tuple(xq), f)
