"""
Secondary Source Selection Module

Decides which secondary sources take part in the synthesis of a virtual
source, based on the geometry of each element relative to the source.
"""

import numpy as np
import logging

from .config import SFSConfig
from .utils import SecondarySources, VirtualSource, SourceType, ActivationVector
from .exceptions import MissingReferenceError, UnsupportedModelError

# Set up logging
logger = logging.getLogger(__name__)


def reference_point(conf: SFSConfig, purpose: str) -> np.ndarray:
    """
    Return the configured reference point.

    An unset reference point falls back to the origin, or raises in strict
    mode.

    Raises:
        MissingReferenceError: In strict mode, if conf.xref is None
    """
    if conf.xref is not None:
        return np.asarray(conf.xref, dtype=float)
    if conf.strict:
        raise MissingReferenceError(f"A reference point is required for {purpose}")
    logger.warning(f"No reference point configured for {purpose}, using the origin")
    return np.zeros(3)


def secondary_source_selection(x0: SecondarySources, source: VirtualSource,
                               conf: SFSConfig) -> ActivationVector:
    """
    Select the secondary sources active for a virtual source.

    An element is active
    - for a plane wave with direction n_pw, if <n_pw, n0> >= eps
    - for a point or line source at xs, if <x0 - xs, n0> > 0
    - for a focused source at xs, if <xs - xref, x0 - xs> > 0

    Args:
        x0: Secondary sources
        source: The virtual source
        conf: Configuration, providing xref for focused sources

    Returns:
        Activation vector with values 0.0 or 1.0 per element

    Raises:
        MissingReferenceError: For focused sources without xref in strict mode
    """
    positions = x0.positions
    directions = x0.directions
    xs = source.vector

    if source.type == SourceType.PLANE:
        active = directions @ xs >= np.finfo(float).eps
    elif source.type in (SourceType.POINT, SourceType.LINE):
        active = np.einsum('ij,ij->i', positions - xs, directions) > 0
    elif source.type == SourceType.FOCUSED:
        xref = reference_point(conf, "focused source selection")
        active = (positions - xs) @ (xs - xref) > 0
    else:
        raise UnsupportedModelError(f"Cannot select secondary sources for '{source.type.value}'")

    logger.debug(f"Selected {int(np.count_nonzero(active))} of {len(x0)} secondary sources "
                 f"for a {source.type.name.lower()} source")
    return active.astype(float)
