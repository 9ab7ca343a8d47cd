"""
Scattering Module

Scattering of an incident field, given as a regular expansion, by a sphere
or an infinite cylinder centered at the expansion center.

The scatterer's surface obeys the boundary condition dp/dr + sigma * p = 0
on r = R, with p the total (incident plus scattered) pressure. An
admittance of sigma = inf gives a sound-soft body, sigma = 0 a sound-hard
one. Negative and complex admittances are evaluated as given.
"""

import numpy as np
import math
import logging
from enum import Enum, auto
from dataclasses import dataclass
from scipy import special

from .config import SFSConfig
from .utils import Vector3
from .math_utils import spherical_hankel2, acn_index
from .expansion import ExpansionCoefficients, ExpansionType, ExpansionFlavor
from .exceptions import InvalidArgumentError, NumericalDegeneracyError

# Set up logging
logger = logging.getLogger(__name__)


class ScattererShape(Enum):
    """
    Shape of a scattering body.

    Attributes:
        SPHERE: Rigid or soft sphere
        CYLINDER: Infinite cylinder parallel to the z-axis
    """
    SPHERE = auto()
    CYLINDER = auto()


@dataclass(frozen=True)
class Scatterer:
    """
    A scattering body.

    Attributes:
        shape: Sphere or cylinder
        radius: Radius in meters
        admittance: Boundary admittance sigma, inf for sound-soft
        position: Center of the body
    """
    shape: ScattererShape
    radius: float
    admittance: complex = math.inf
    position: Vector3 = (0.0, 0.0, 0.0)

    def __post_init__(self):
        """Validate the scatterer geometry."""
        if not self.radius > 0:
            raise InvalidArgumentError(f"Scatterer radius must be positive, got {self.radius}")
        object.__setattr__(self, 'position', tuple(float(c) for c in self.position))


def _is_soft(sigma: complex) -> bool:
    return np.isinf(np.abs(sigma))


def _transfer(f, df, h, dh, k: float, sigma: complex) -> complex:
    if _is_soft(sigma):
        numerator, denominator = f, h
    else:
        numerator, denominator = k * df + sigma * f, k * dh + sigma * h
    if denominator == 0 or not np.isfinite(denominator):
        raise NumericalDegeneracyError(f"Degenerate scattering denominator {denominator} for sigma={sigma}")
    return -numerator / denominator


def _check_incident(A: ExpansionCoefficients, kind: ExpansionType, radius: float) -> None:
    if A.kind != kind:
        raise InvalidArgumentError(f"Expected {kind.name.lower()} coefficients, got {A.kind.name.lower()}")
    if A.flavor != ExpansionFlavor.REGULAR:
        raise InvalidArgumentError("The incident field must be given as a regular expansion")
    if not radius > 0:
        raise InvalidArgumentError(f"Scatterer radius must be positive, got {radius}")


def sphere_scattering(A: ExpansionCoefficients, radius: float, sigma: complex,
                      conf: SFSConfig) -> ExpansionCoefficients:
    """
    Singular expansion of the field scattered by a sphere.

    B_nm = -(k j_n'(kR) + sigma j_n(kR)) / (k h_n'(kR) + sigma h_n(kR)) * A_nm,
    and B_nm = -j_n(kR) / h_n(kR) * A_nm for a sound-soft sphere.

    Args:
        A: Regular spherical expansion of the incident field, centered on
            the sphere
        radius: Sphere radius in meters
        sigma: Boundary admittance
        conf: Configuration, providing the speed of sound

    Returns:
        Singular spherical expansion of the scattered field

    Raises:
        InvalidArgumentError: For a non-regular or cylindrical expansion
        NumericalDegeneracyError: If a denominator vanishes
    """
    _check_incident(A, ExpansionType.SPHERICAL, radius)
    k = conf.wavenumber(A.frequency)
    kr = k * radius

    B = np.zeros_like(A.values)
    for n in range(A.order + 1):
        T = _transfer(special.spherical_jn(n, kr), special.spherical_jn(n, kr, derivative=True),
                      spherical_hankel2(n, kr), spherical_hankel2(n, kr, derivative=True), k, sigma)
        start, stop = acn_index(n, -n), acn_index(n, n) + 1
        B[start:stop] = T * A.values[start:stop]

    logger.debug(f"Sphere scattering, R={radius} m, sigma={sigma}, order {A.order}")
    return A.with_values(B, ExpansionFlavor.SINGULAR)


def cylinder_scattering(A: ExpansionCoefficients, radius: float, sigma: complex,
                        conf: SFSConfig) -> ExpansionCoefficients:
    """
    Singular expansion of the field scattered by an infinite cylinder.

    B_m = -(k J_m'(kR) + sigma J_m(kR)) / (k H_m'(kR) + sigma H_m(kR)) * A_m,
    and B_m = -J_m(kR) / H_m(kR) * A_m for a sound-soft cylinder.

    Args:
        A: Regular cylindrical expansion of the incident field, centered on
            the cylinder axis
        radius: Cylinder radius in meters
        sigma: Boundary admittance
        conf: Configuration, providing the speed of sound

    Returns:
        Singular cylindrical expansion of the scattered field

    Raises:
        InvalidArgumentError: For a non-regular or spherical expansion
        NumericalDegeneracyError: If a denominator vanishes
    """
    _check_incident(A, ExpansionType.CYLINDRICAL, radius)
    k = conf.wavenumber(A.frequency)
    kr = k * radius

    B = np.zeros_like(A.values)
    for m in range(-A.order, A.order + 1):
        T = _transfer(special.jv(m, kr), special.jvp(m, kr), special.hankel2(m, kr),
                      special.h2vp(m, kr), k, sigma)
        B[m + A.order] = T * A.values[m + A.order]

    logger.debug(f"Cylinder scattering, R={radius} m, sigma={sigma}, order {A.order}")
    return A.with_values(B, ExpansionFlavor.SINGULAR)


_SOLVERS = {
    ScattererShape.SPHERE: (ExpansionType.SPHERICAL, sphere_scattering),
    ScattererShape.CYLINDER: (ExpansionType.CYLINDRICAL, cylinder_scattering),
}


def scatter(A: ExpansionCoefficients, scatterer: Scatterer, conf: SFSConfig) -> ExpansionCoefficients:
    """
    Scattered field of a scatterer placed at the expansion center.

    Args:
        A: Regular expansion of the incident field
        scatterer: The scattering body, centered on A.origin
        conf: Configuration, providing the speed of sound

    Returns:
        Singular expansion of the scattered field

    Raises:
        InvalidArgumentError: If the scatterer is not at the expansion center
            or its shape does not match the expansion
    """
    kind, solver = _SOLVERS[scatterer.shape]
    if kind != A.kind:
        raise InvalidArgumentError(
            f"A {scatterer.shape.name.lower()} needs {kind.name.lower()} coefficients")
    if not np.allclose(scatterer.position, A.origin):
        raise InvalidArgumentError(
            f"Scatterer at {scatterer.position} is not at the expansion center {A.origin}")
    return solver(A, scatterer.radius, scatterer.admittance, conf)
