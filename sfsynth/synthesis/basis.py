"""
Basis Function Tables Module

Precomputed radial and angular basis functions on a set of points, used
to evaluate many expansions (incident, scattered) on the same grid without
recomputing Bessel functions and harmonics.

Tables hold (N+1)^2 spherical or 2N+1 cylindrical entries per point; at
high orders and fine grids they are large, and callers should size grids
accordingly.
"""

import numpy as np
import logging
from dataclasses import dataclass
from typing import Tuple

from scipy import special

from .config import SFSConfig
from .utils import SampleGrid, Vector3, ComplexField, xyz_grid
from .math_utils import spherical_harmonics_table, spherical_hankel2, cart2sph, cart2pol
from .expansion import ExpansionCoefficients, ExpansionType, ExpansionFlavor
from .greens import validate_frequency
from .exceptions import InvalidArgumentError

# Set up logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class BasisTable:
    """
    Basis functions evaluated on a set of points.

    For spherical tables, regular[n] = j_n(kr), singular[n] = h_n^(2)(kr)
    and angular[n*n+n+m] = Y_n^m. For cylindrical tables, regular[m+N] =
    J_m(k rho), singular[m+N] = H_m^(2)(k rho) and angular[m+N] =
    exp(jm phi). Singular functions are set to 0 at the expansion center.

    Attributes:
        kind: Spherical or cylindrical
        order: Truncation order N
        frequency: Frequency in Hz
        origin: Expansion center
        regular: Regular radial functions
        singular: Singular radial functions
        angular: Angular functions
    """
    kind: ExpansionType
    order: int
    frequency: float
    origin: Vector3
    regular: np.ndarray
    singular: np.ndarray
    angular: np.ndarray

    @property
    def shape(self) -> Tuple[int, ...]:
        """Shape of the evaluation points."""
        return self.angular.shape[1:]


def _relative(x, y, z, xq) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    x, y, z = np.broadcast_arrays(np.asarray(x, dtype=float), np.asarray(y, dtype=float),
                                  np.asarray(z, dtype=float))
    xq = np.asarray(xq, dtype=float).reshape(3)
    return x - xq[0], y - xq[1], z - xq[2]


def spherical_basis(x: np.ndarray, y: np.ndarray, z: np.ndarray, f: float, xq: Vector3,
                    conf: SFSConfig) -> BasisTable:
    """
    Spherical basis functions around xq on a set of points.

    Args:
        x, y, z: Coordinates of the points, broadcastable
        f: Frequency in Hz
        xq: Expansion center
        conf: Configuration, providing the truncation order

    Returns:
        Spherical basis table
    """
    f = validate_frequency(f)
    order = conf.scattering.spherical_order
    k = conf.wavenumber(f)
    r, theta, phi = cart2sph(*_relative(x, y, z, xq))
    kr = k * r
    at_center = r == 0

    regular = np.zeros((order + 1,) + r.shape)
    singular = np.zeros((order + 1,) + r.shape, dtype=complex)
    with np.errstate(invalid='ignore', divide='ignore', over='ignore'):
        for n in range(order + 1):
            regular[n] = special.spherical_jn(n, kr)
            singular[n] = np.where(at_center, 0, spherical_hankel2(n, kr))

    logger.debug(f"Spherical basis of order {order} on {r.size} points")
    return BasisTable(ExpansionType.SPHERICAL, order, f, tuple(float(c) for c in np.ravel(xq)),
                      regular, singular, spherical_harmonics_table(order, theta, phi))


def cylindrical_basis(x: np.ndarray, y: np.ndarray, z: np.ndarray, f: float, xq: Vector3,
                      conf: SFSConfig) -> BasisTable:
    """
    Cylindrical basis functions around the axis through xq on a set of points.

    Args:
        x, y, z: Coordinates of the points, broadcastable
        f: Frequency in Hz
        xq: Point on the expansion axis, which runs parallel to z
        conf: Configuration, providing the truncation order

    Returns:
        Cylindrical basis table
    """
    f = validate_frequency(f)
    order = conf.scattering.cylindrical_order
    k = conf.wavenumber(f)
    dx, dy, _ = _relative(x, y, z, xq)
    rho, phi = cart2pol(dx, dy)
    krho = k * rho
    at_center = rho == 0

    shape = (2 * order + 1,) + rho.shape
    regular = np.zeros(shape)
    singular = np.zeros(shape, dtype=complex)
    angular = np.zeros(shape, dtype=complex)
    with np.errstate(invalid='ignore', divide='ignore', over='ignore'):
        for m in range(-order, order + 1):
            regular[m + order] = special.jv(m, krho)
            singular[m + order] = np.where(at_center, 0, special.hankel2(m, krho))
            angular[m + order] = np.exp(1j * m * phi)

    logger.debug(f"Cylindrical basis of order {order} on {rho.size} points")
    return BasisTable(ExpansionType.CYLINDRICAL, order, f, tuple(float(c) for c in np.ravel(xq)),
                      regular, singular, angular)


def spherical_basis_grid(grid: SampleGrid, f: float, xq: Vector3, conf: SFSConfig) -> BasisTable:
    """Spherical basis table on the samples of a grid."""
    xx, yy, zz = xyz_grid(grid)[:3]
    return spherical_basis(xx, yy, zz, f, xq, conf)


def cylindrical_basis_grid(grid: SampleGrid, f: float, xq: Vector3, conf: SFSConfig) -> BasisTable:
    """Cylindrical basis table on the samples of a grid."""
    xx, yy, zz = xyz_grid(grid)[:3]
    return cylindrical_basis(xx, yy, zz, f, xq, conf)


def sound_field_mono_basis(coefficients: ExpansionCoefficients, basis: BasisTable) -> ComplexField:
    """
    Evaluate an expansion on a precomputed basis table.

    Regular coefficients are combined with the regular radial functions,
    singular coefficients with the singular ones.

    Args:
        coefficients: Expansion coefficients
        basis: Basis table with the same kind, frequency and origin and at
            least the order of the coefficients

    Returns:
        Complex field shaped like the basis points

    Raises:
        InvalidArgumentError: If coefficients and table do not match
    """
    if coefficients.kind != basis.kind:
        raise InvalidArgumentError(
            f"Cannot evaluate {coefficients.kind.name.lower()} coefficients on a "
            f"{basis.kind.name.lower()} basis")
    if coefficients.order > basis.order:
        raise InvalidArgumentError(
            f"Coefficients of order {coefficients.order} exceed basis order {basis.order}")
    if not np.isclose(coefficients.frequency, basis.frequency):
        raise InvalidArgumentError(
            f"Coefficients at {coefficients.frequency} Hz do not match basis at {basis.frequency} Hz")
    if not np.allclose(coefficients.origin, basis.origin):
        raise InvalidArgumentError(
            f"Coefficients around {coefficients.origin} do not match basis around {basis.origin}")

    radial = basis.regular if coefficients.flavor == ExpansionFlavor.REGULAR else basis.singular
    P = np.zeros(basis.shape, dtype=complex)
    N = coefficients.order

    if coefficients.kind == ExpansionType.SPHERICAL:
        for n in range(N + 1):
            start, stop = n * n, (n + 1) ** 2
            harmonics = np.tensordot(coefficients.values[start:stop], basis.angular[start:stop], axes=1)
            P += radial[n] * harmonics
    else:
        offset = basis.order - N
        for m in range(-N, N + 1):
            P += coefficients.values[m + N] * radial[m + N + offset] * basis.angular[m + N + offset]

    return P
