"""
Vectorized Superposition Kernels

This module provides compiled kernels that superpose the Green's functions
of many secondary sources on many sample points. The outer loop over
sample points runs in parallel; each sample is independent, so the result
does not depend on scheduling.
"""

import numpy as np
import numba

from .config import COINCIDENCE_TOLERANCE


@numba.njit(parallel=True)
def superpose_point_sources(points: np.ndarray, x0: np.ndarray, weights: np.ndarray,
                            k: float, singular_distance: float) -> np.ndarray:
    """
    Sum of weighted point source Green's functions.

    Args:
        points: Sample points of shape (n_points, 3)
        x0: Source positions of shape (n_sources, 3)
        weights: Complex source weights of shape (n_sources,)
        k: Wavenumber in rad/m
        singular_distance: Distance used for coincident samples

    Returns:
        Complex pressure of shape (n_points,)
    """
    n_points = points.shape[0]
    n_sources = x0.shape[0]
    result = np.zeros(n_points, dtype=np.complex128)

    for i in numba.prange(n_points):
        acc = 0j
        for j in range(n_sources):
            dx = points[i, 0] - x0[j, 0]
            dy = points[i, 1] - x0[j, 1]
            dz = points[i, 2] - x0[j, 2]
            r = np.sqrt(dx * dx + dy * dy + dz * dz)
            if r < COINCIDENCE_TOLERANCE:
                r = singular_distance
            acc += weights[j] * np.exp(-1j * k * r) / (4.0 * np.pi * r)
        result[i] = acc

    return result


@numba.njit(parallel=True)
def superpose_plane_waves(points: np.ndarray, directions: np.ndarray, weights: np.ndarray,
                          k: float) -> np.ndarray:
    """
    Sum of weighted plane waves.

    Args:
        points: Sample points of shape (n_points, 3)
        directions: Unit propagation directions of shape (n_sources, 3)
        weights: Complex source weights of shape (n_sources,)
        k: Wavenumber in rad/m

    Returns:
        Complex pressure of shape (n_points,)
    """
    n_points = points.shape[0]
    n_sources = directions.shape[0]
    result = np.zeros(n_points, dtype=np.complex128)

    for i in numba.prange(n_points):
        acc = 0j
        for j in range(n_sources):
            projection = (directions[j, 0] * points[i, 0] + directions[j, 1] * points[i, 1]
                          + directions[j, 2] * points[i, 2])
            acc += weights[j] * np.exp(-1j * k * projection)
        result[i] = acc

    return result


def count_coincident(points: np.ndarray, x0: np.ndarray) -> int:
    """Number of (sample, source) pairs closer than the coincidence tolerance."""
    count = 0
    for position in x0:
        r = np.linalg.norm(points - position, axis=1)
        count += int(np.count_nonzero(r < COINCIDENCE_TOLERANCE))
    return count
