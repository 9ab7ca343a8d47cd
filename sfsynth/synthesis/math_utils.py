"""
Core Mathematical Functions for Multipole Expansions

This module provides the mathematical building blocks of the expansion and
scattering solver: associated Legendre functions, complex spherical
harmonics and their polar derivative, spherical Hankel functions and
coordinate transformations.

Spherical harmonics are orthonormal and include the Condon-Shortley phase.
Coefficients of degree n and order m are stored at the linear (ACN) index
n*n + n + m. All functions accept scalar and array inputs.

See Also:
    - expansion: For expansion coefficients of elementary sources
    - basis: For precomputed basis function tables
"""

import numpy as np
import math
import functools
from typing import Union, Tuple, Iterator
from scipy import special

from .exceptions import MathError

# Type alias for scalar or array arguments
ArrayLike = Union[float, np.ndarray]

# Cache size for factorial memoization
_FACTORIAL_CACHE_SIZE = 256

# Polar angles are kept this far from the poles where 1/sin(theta) appears
POLE_CLEARANCE = 1e-10


@functools.lru_cache(maxsize=_FACTORIAL_CACHE_SIZE)
def factorial(n: int) -> int:
    """
    Compute factorial, optimized with caching for repeated calls.

    Args:
        n: Non-negative integer

    Returns:
        n! (n factorial)

    Raises:
        MathError.DomainError: If n is negative

    Examples:
        >>> factorial(5)
        120
    """
    if n < 0:
        raise MathError.DomainError("Factorial not defined for negative numbers")
    if n <= 1:
        return 1
    return n * factorial(n - 1)


def acn_index(n: int, m: int) -> int:
    """Linear index of degree n and order m."""
    return n * n + n + m


def _legendre_recursion(order: int, m: int, x: np.ndarray) -> Iterator[Tuple[int, np.ndarray]]:
    # Yields (n, P_n^m(x)) for n = m..order, m >= 0
    somx2 = np.sqrt((1.0 - x) * (1.0 + x))
    pmm = np.ones_like(x)
    fact = 1.0
    for _ in range(m):
        pmm = pmm * (-fact) * somx2
        fact += 2.0
    yield m, pmm
    if order == m:
        return

    pmmp1 = x * (2.0 * m + 1.0) * pmm
    yield m + 1, pmmp1

    # P_n^m(x) = ((2n-1)x * P_{n-1}^m(x) - (n+m-1) * P_{n-2}^m(x)) / (n-m)
    for n in range(m + 2, order + 1):
        pnn = (x * (2.0 * n - 1.0) * pmmp1 - (n + m - 1.0) * pmm) / (n - m)
        pmm, pmmp1 = pmmp1, pnn
        yield n, pnn


def associated_legendre(l: int, m: int, x: ArrayLike) -> ArrayLike:
    """
    Compute the associated Legendre function P_l^m(x).

    The Condon-Shortley phase (-1)^m is included. Negative orders follow
    P_l^{-m} = (-1)^m (l-m)!/(l+m)! P_l^m.

    Args:
        l: Degree (l >= 0)
        m: Order, |m| > l gives zero
        x: Value or array with -1 <= x <= 1

    Returns:
        The associated Legendre function value(s)

    Raises:
        MathError.DomainError: If l < 0 or x is outside [-1, 1]

    Examples:
        >>> associated_legendre(2, 1, 0.5)
        -1.299038...
    """
    if l < 0:
        raise MathError.DomainError(f"Degree l must be non-negative, got {l}")

    m_abs = abs(m)
    if m_abs > l:
        return np.zeros_like(x, dtype=float) if isinstance(x, np.ndarray) else 0.0

    x_array = np.asarray(x, dtype=float)
    if np.any(np.abs(x_array) > 1.0 + 1e-10):
        raise MathError.DomainError("Input x must be in range [-1, 1], got values outside this range")
    x_array = np.clip(x_array, -1.0, 1.0)

    for n, value in _legendre_recursion(l, m_abs, x_array):
        if n == l:
            result = value
    if m < 0:
        result = result * ((-1) ** m_abs * factorial(l - m_abs) / factorial(l + m_abs))

    return result if isinstance(x, np.ndarray) else float(result)


def spherical_harmonic(n: int, m: int, theta: ArrayLike, phi: ArrayLike) -> ArrayLike:
    """
    Compute the complex spherical harmonic Y_n^m(theta, phi).

    Args:
        n: Degree (n >= 0)
        m: Order (-n <= m <= n)
        theta: Polar angle in radians [0, pi]
        phi: Azimuth angle in radians

    Returns:
        Complex value(s) of Y_n^m
    """
    if abs(m) > n:
        raise MathError.DomainError(f"Order m must satisfy -n <= m <= n, got n={n}, m={m}")
    norm = math.sqrt((2 * n + 1) / (4 * math.pi) * factorial(n - m) / factorial(n + m))
    x = np.cos(np.asarray(theta, dtype=float))
    return norm * associated_legendre(n, m, x) * np.exp(1j * m * np.asarray(phi, dtype=float))


def spherical_harmonics_table(order: int, theta: ArrayLike, phi: ArrayLike) -> np.ndarray:
    """
    Compute all complex spherical harmonics up to a given order.

    This runs the Legendre recursion once per order m, which is much faster
    than evaluating each harmonic separately on large grids.

    Args:
        order: Maximum degree N
        theta: Polar angles in radians
        phi: Azimuth angles in radians, broadcastable against theta

    Returns:
        Array of shape ((N+1)^2, *shape) with Y_n^m at index n*n + n + m
    """
    theta, phi = np.broadcast_arrays(np.asarray(theta, dtype=float), np.asarray(phi, dtype=float))
    x = np.clip(np.cos(theta), -1.0, 1.0)
    table = np.zeros(((order + 1) ** 2,) + theta.shape, dtype=complex)

    for m in range(order + 1):
        azimuthal = np.exp(1j * m * phi)
        for n, legendre in _legendre_recursion(order, m, x):
            norm = math.sqrt((2 * n + 1) / (4 * math.pi) * factorial(n - m) / factorial(n + m))
            ynm = norm * legendre * azimuthal
            table[acn_index(n, m)] = ynm
            if m > 0:
                # Y_n^{-m} = (-1)^m conj(Y_n^m)
                table[acn_index(n, -m)] = (-1) ** m * np.conj(ynm)

    return table


def spherical_harmonics_dtheta(table: np.ndarray, order: int, theta: ArrayLike, phi: ArrayLike) -> np.ndarray:
    """
    Polar derivative of a spherical harmonics table.

    Uses dY_n^m/dtheta = m cot(theta) Y_n^m + sqrt((n-m)(n+m+1)) e^{-j phi} Y_n^{m+1}.
    Polar angles are clamped away from the poles.

    Args:
        table: Output of spherical_harmonics_table for the same angles
        order: Maximum degree N of the table
        theta: Polar angles in radians
        phi: Azimuth angles in radians

    Returns:
        Array shaped like table
    """
    theta = np.clip(np.asarray(theta, dtype=float), POLE_CLEARANCE, math.pi - POLE_CLEARANCE)
    cot = np.cos(theta) / np.sin(theta)
    phase = np.exp(-1j * np.asarray(phi, dtype=float))

    dtheta = np.zeros_like(table)
    for n in range(order + 1):
        for m in range(-n, n + 1):
            value = m * cot * table[acn_index(n, m)]
            if m < n:
                value = value + math.sqrt((n - m) * (n + m + 1)) * phase * table[acn_index(n, m + 1)]
            dtheta[acn_index(n, m)] = value
    return dtheta


def spherical_hankel2(n: int, x: ArrayLike, derivative: bool = False) -> ArrayLike:
    """Spherical Hankel function of the second kind h_n^(2)(x) = j_n(x) - j y_n(x)."""
    return special.spherical_jn(n, x, derivative=derivative) - 1j * special.spherical_yn(n, x, derivative=derivative)


def cart2sph(x: ArrayLike, y: ArrayLike, z: ArrayLike) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Convert Cartesian to spherical coordinates.

    Returns:
        Tuple (r, theta, phi) with polar angle theta in [0, pi] (0 at r = 0)
        and azimuth phi in (-pi, pi]
    """
    x, y, z = (np.asarray(c, dtype=float) for c in (x, y, z))
    r = np.sqrt(x**2 + y**2 + z**2)
    with np.errstate(invalid='ignore', divide='ignore'):
        cos_theta = np.where(r > 0, z / np.where(r > 0, r, 1.0), 1.0)
    theta = np.arccos(np.clip(cos_theta, -1.0, 1.0))
    phi = np.arctan2(y, x)
    return r, theta, phi


def cart2pol(x: ArrayLike, y: ArrayLike) -> Tuple[np.ndarray, np.ndarray]:
    """Convert Cartesian x-y coordinates to polar (rho, phi)."""
    x, y = np.asarray(x, dtype=float), np.asarray(y, dtype=float)
    return np.sqrt(x**2 + y**2), np.arctan2(y, x)
