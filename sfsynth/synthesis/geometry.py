"""
Secondary Source Geometry Module

Generates secondary source arrays from the configuration and provides
geometric measures of an array.
"""

import numpy as np
import math
import logging
from typing import Tuple
from scipy.spatial import distance

from .config import SFSConfig, ArrayGeometry
from .utils import SecondarySources
from .exceptions import ConfigurationError

# Set up logging
logger = logging.getLogger(__name__)


def _linear_array(number: int, size: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    positions = np.zeros((number, 3))
    if number > 1:
        positions[:, 0] = np.linspace(-size / 2, size / 2, number)
        spacing = size / (number - 1)
    else:
        spacing = 1.0
    directions = np.tile([0.0, -1.0, 0.0], (number, 1))
    return positions, directions, np.full(number, spacing)


def _circular_array(number: int, size: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    radius = size / 2
    angles = np.linspace(0, 2 * math.pi, number, endpoint=False)
    unit = np.column_stack([np.cos(angles), np.sin(angles), np.zeros(number)])
    return radius * unit, -unit, np.full(number, 2 * math.pi * radius / number)


def _box_array(number: int, size: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    per_side = number // 4
    spacing = size / (per_side - 1)
    offset = size / 2 + spacing
    along = np.linspace(-size / 2, size / 2, per_side)

    # (fixed axis, fixed value, running coordinates, inward normal) per side,
    # walking counterclockwise
    sides = [
        (0, offset, along, (-1.0, 0.0, 0.0)),
        (1, offset, along[::-1], (0.0, -1.0, 0.0)),
        (0, -offset, along[::-1], (1.0, 0.0, 0.0)),
        (1, -offset, along, (0.0, 1.0, 0.0)),
    ]
    positions, directions = [], []
    for axis, value, running, normal in sides:
        side = np.zeros((per_side, 3))
        side[:, axis] = value
        side[:, 1 - axis] = running
        positions.append(side)
        directions.append(np.tile(normal, (per_side, 1)))

    weights = np.full(per_side, spacing)
    weights[[0, -1]] = spacing * (1 + math.sqrt(2)) / 2
    return np.vstack(positions), np.vstack(directions), np.tile(weights, 4)


def secondary_source_positions(conf: SFSConfig) -> SecondarySources:
    """
    Generate the secondary source array described by the configuration.

    - linear: evenly spaced along x, facing -y, weight equal to the spacing
    - circular: on a circle of diameter size, facing the center
    - box: number/4 elements per side of a square, facing inward, with
      sides at a distance of size/2 plus one spacing from the center
    - custom: the configured x0 table

    Args:
        conf: Configuration with secondary source settings

    Returns:
        The secondary sources, shifted to the configured center

    Raises:
        ConfigurationError: For an unknown geometry
    """
    settings = conf.secondary_sources
    if settings.geometry == ArrayGeometry.CUSTOM:
        return SecondarySources.from_table(settings.x0)

    builders = {
        ArrayGeometry.LINEAR: _linear_array,
        ArrayGeometry.CIRCULAR: _circular_array,
        ArrayGeometry.BOX: _box_array,
    }
    if settings.geometry not in builders:
        raise ConfigurationError(f"Unsupported array geometry: {settings.geometry}")

    positions, directions, weights = builders[settings.geometry](settings.number, settings.size)
    positions = positions + np.asarray(settings.center)

    logger.info(f"Created {settings.geometry.value} array with {positions.shape[0]} secondary sources")
    return SecondarySources(positions, directions, weights)


def secondary_source_diameter(x0: SecondarySources) -> Tuple[float, np.ndarray]:
    """
    Compute the diameter and center of a secondary source array.

    The diameter is the largest distance between two elements. The center
    is the midpoint of the first pair, in row-major order, with that
    distance.

    Args:
        x0: Secondary sources

    Returns:
        Tuple of (diameter, center)
    """
    positions = x0.positions
    distances = distance.cdist(positions, positions)
    i, j = np.unravel_index(np.argmax(distances), distances.shape)
    center = (positions[i] + positions[j]) / 2
    return float(distances[i, j]), center
