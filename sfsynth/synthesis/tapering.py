"""
Tapering Module

Applies a Hann-shaped roll-off to the edges of the active part of a
secondary source array, reducing truncation artefacts.
"""

import numpy as np
import logging
from typing import List, Optional, Tuple
from scipy.signal import windows

from .config import SFSConfig
from .utils import SecondarySources, ActivationVector
from .exceptions import InvalidArgumentError

# Set up logging
logger = logging.getLogger(__name__)


def _active_runs(active: np.ndarray) -> List[Tuple[int, int]]:
    # (start, stop) of each contiguous run of True values
    padded = np.concatenate(([0], active.astype(int), [0]))
    edges = np.flatnonzero(np.diff(padded))
    return list(zip(edges[0::2], edges[1::2]))


def _edge_window(length: int, fraction: float) -> np.ndarray:
    """Taper of a single run of `length` active elements."""
    window = np.ones(length)
    n_edge = min(int(round(fraction * length / 2)), length // 2)
    if n_edge > 0:
        rise = windows.hann(2 * n_edge + 2, sym=True)[1:n_edge + 1]
        window[:n_edge] = rise
        window[length - n_edge:] = rise[::-1]
    return window


def tapering_window(x0: SecondarySources, activity: ActivationVector, conf: SFSConfig,
                    closed: Optional[bool] = None) -> np.ndarray:
    """
    Compute tapering weights for the active secondary sources.

    Every contiguous run of active elements is tapered at both of its
    ends. On closed arrays a run wrapping past the last element continues
    at the first one, and a completely active closed array is not tapered.

    Args:
        x0: Secondary sources, in array order
        activity: Activation vector, values in [0, 1]
        conf: Configuration with tapering settings
        closed: Whether the array is closed, defaults to the configured
            array geometry

    Returns:
        Activation multiplied by the taper, inactive elements stay 0

    Raises:
        InvalidArgumentError: If activity does not match the array
    """
    activity = np.asarray(activity, dtype=float)
    if activity.shape != (len(x0),):
        raise InvalidArgumentError(f"Activity of shape {activity.shape} does not match {len(x0)} secondary sources")

    if not conf.tapering.enabled:
        return activity.copy()

    if closed is None:
        closed = conf.secondary_sources.geometry.is_closed

    active = activity > 0
    n = active.shape[0]
    window = np.zeros(n)
    if not np.any(active):
        return window
    if closed and np.all(active):
        return activity.copy()

    # Rotate closed arrays so that they start at an inactive element
    shift = int(np.argmin(active)) if closed else 0
    rolled = np.roll(active, -shift)
    for start, stop in _active_runs(rolled):
        indices = (np.arange(start, stop) + shift) % n
        window[indices] = _edge_window(stop - start, conf.tapering.length)

    logger.debug(f"Tapered {len(_active_runs(rolled))} active run(s) on a "
                 f"{'closed' if closed else 'open'} array")
    return activity * window
