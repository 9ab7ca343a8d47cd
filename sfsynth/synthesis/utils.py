"""
General Utility Functions and Definitions

This module contains type definitions, enumerations and data classes used
across the synthesis package: source models, secondary source arrays and
sampling grids.

See Also:
    - config: For centralized configuration management
    - math_utils: For mathematical utility functions
"""

import math
import numpy as np
from enum import Enum, auto
from dataclasses import dataclass
from typing import Tuple, Optional, Union

from .exceptions import InvalidArgumentError, UnsupportedModelError

# Type aliases for improved readability
Vector3 = Tuple[float, float, float]  # (x, y, z) in meters
AxisRange = Union[float, Tuple[float, float]]  # fixed value or (min, max)
ComplexField = np.ndarray  # Complex pressure, shaped like the grid
DrivingSignals = np.ndarray  # Shape: (n_sources,), complex
ActivationVector = np.ndarray  # Shape: (n_sources,), values in [0, 1]

# Default number of samples per non-degenerate grid axis
DEFAULT_RESOLUTION = 300


class SourceType(Enum):
    """
    Closed set of source models.

    The value of each member is the short tag used in configuration files.

    Attributes:
        POINT: Monopole radiating spherical waves
        LINE: Infinite line source parallel to the z-axis
        PLANE: Plane wave, positioned by its propagation direction
        FOCUSED: Point source reproduced in front of the array
    """
    POINT = 'ps'
    LINE = 'ls'
    PLANE = 'pw'
    FOCUSED = 'fs'


class HRIRInterpolation(Enum):
    """
    HRIR interpolation methods between measured azimuths.

    Attributes:
        NEAREST: Nearest measured azimuth
        LINEAR: Linear weighting of the two neighbouring azimuths
    """
    NEAREST = auto()  # Nearest neighbor (fastest)
    LINEAR = auto()   # Linear interpolation on the circle


def as_source_type(value: Union[SourceType, str]) -> SourceType:
    """
    Convert a source model tag to a SourceType member.

    Args:
        value: SourceType member or its tag ('ps', 'ls', 'pw', 'fs')

    Returns:
        The matching SourceType

    Raises:
        UnsupportedModelError: If the tag names no known source model
    """
    if isinstance(value, SourceType):
        return value
    try:
        return SourceType(value)
    except ValueError:
        raise UnsupportedModelError(f"Unknown source model '{value}'") from None


def _as_unit_vectors(vectors: np.ndarray, what: str) -> np.ndarray:
    norms = np.linalg.norm(vectors, axis=-1)
    if np.any(norms < np.finfo(float).eps):
        raise InvalidArgumentError(f"{what} must not contain zero-length vectors")
    return vectors / norms[..., np.newaxis]


def _read_only(array: np.ndarray) -> np.ndarray:
    array = np.array(array, copy=True)
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class VirtualSource:
    """
    A virtual source to be synthesized.

    For plane waves the position holds the propagation direction, which is
    normalized on construction. All other models use it as a location.

    Attributes:
        type: The source model
        position: Location (ps, ls, fs) or propagation direction (pw)
    """
    type: SourceType
    position: Vector3

    def __post_init__(self):
        """Validate and normalize inputs after initialization."""
        object.__setattr__(self, 'type', as_source_type(self.type))

        position = np.asarray(self.position, dtype=float).reshape(-1)
        if position.shape != (3,):
            raise InvalidArgumentError(f"Source position must have 3 components, got {position.shape[0]}")
        if self.type == SourceType.PLANE:
            position = _as_unit_vectors(position, "Plane wave direction")
        object.__setattr__(self, 'position', tuple(float(p) for p in position))

    @property
    def vector(self) -> np.ndarray:
        """Position or direction as a numpy array."""
        return np.array(self.position)

    @classmethod
    def point(cls, position: Vector3) -> 'VirtualSource':
        return cls(SourceType.POINT, position)

    @classmethod
    def line(cls, position: Vector3) -> 'VirtualSource':
        return cls(SourceType.LINE, position)

    @classmethod
    def plane_wave(cls, direction: Vector3) -> 'VirtualSource':
        return cls(SourceType.PLANE, direction)

    @classmethod
    def focused(cls, position: Vector3) -> 'VirtualSource':
        return cls(SourceType.FOCUSED, position)


@dataclass(eq=False)
class SecondarySources:
    """
    An ordered array of secondary sources (loudspeakers).

    The arrays are stored read-only; the order of elements is the physical
    order along the array, which the tapering stage relies on.

    Attributes:
        positions: Element positions, shape (n, 3)
        directions: Unit orientation vectors, shape (n, 3)
        weights: Integration weights, shape (n,)
    """
    positions: np.ndarray
    directions: np.ndarray
    weights: Optional[np.ndarray] = None

    def __post_init__(self):
        """Validate shapes and normalize directions."""
        positions = np.atleast_2d(np.asarray(self.positions, dtype=float))
        directions = np.atleast_2d(np.asarray(self.directions, dtype=float))

        if positions.ndim != 2 or positions.shape[1] != 3 or positions.shape[0] == 0:
            raise InvalidArgumentError(f"Positions must have shape (n, 3), got {positions.shape}")
        if directions.shape != positions.shape:
            raise InvalidArgumentError(
                f"Directions shape {directions.shape} does not match positions shape {positions.shape}")

        if self.weights is None:
            weights = np.ones(positions.shape[0])
        else:
            weights = np.asarray(self.weights, dtype=float).reshape(-1)
            if weights.shape[0] != positions.shape[0]:
                raise InvalidArgumentError(
                    f"Got {weights.shape[0]} weights for {positions.shape[0]} secondary sources")

        self.positions = _read_only(positions)
        self.directions = _read_only(_as_unit_vectors(directions, "Secondary source directions"))
        self.weights = _read_only(weights)

    @classmethod
    def from_table(cls, table: np.ndarray) -> 'SecondarySources':
        """
        Create an array from a [x, y, z, nx, ny, nz, weight] table.

        Tables with six columns get unit weights.
        """
        table = np.atleast_2d(np.asarray(table, dtype=float))
        if table.shape[1] not in (6, 7):
            raise InvalidArgumentError(f"Secondary source table must have 6 or 7 columns, got {table.shape[1]}")
        weights = table[:, 6] if table.shape[1] == 7 else None
        return cls(table[:, 0:3], table[:, 3:6], weights)

    @property
    def table(self) -> np.ndarray:
        """The array as a (n, 7) table."""
        return np.column_stack([self.positions, self.directions, self.weights])

    def __len__(self) -> int:
        return self.positions.shape[0]


@dataclass(frozen=True)
class SampleGrid:
    """
    A rectilinear sampling grid.

    Each axis is either a fixed value (degenerate axis) or a (min, max)
    range sampled at `resolution` points.

    Attributes:
        x: Fixed x value or (min, max)
        y: Fixed y value or (min, max)
        z: Fixed z value or (min, max)
        resolution: Number of samples per non-degenerate axis
    """
    x: AxisRange
    y: AxisRange
    z: AxisRange = 0.0
    resolution: int = DEFAULT_RESOLUTION

    def __post_init__(self):
        """Validate the axis ranges and the resolution."""
        for name in ('x', 'y', 'z'):
            value = getattr(self, name)
            if np.ndim(value) == 0:
                object.__setattr__(self, name, float(value))
                continue
            if len(value) != 2:
                raise InvalidArgumentError(f"Axis {name} must be a scalar or a (min, max) pair")
            low, high = float(value[0]), float(value[1])
            if low > high:
                raise InvalidArgumentError(f"Axis {name} has min {low} greater than max {high}")
            object.__setattr__(self, name, low if low == high else (low, high))

        if int(self.resolution) < 2:
            raise InvalidArgumentError(f"Grid resolution must be at least 2, got {self.resolution}")

    def is_degenerate(self, axis: str) -> bool:
        """Whether the given axis holds a single fixed value."""
        return not isinstance(getattr(self, axis), tuple)

    def axes(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Sample positions along x, y and z."""
        result = []
        for name in ('x', 'y', 'z'):
            value = getattr(self, name)
            if self.is_degenerate(name):
                result.append(np.array([value]))
            else:
                result.append(np.linspace(value[0], value[1], int(self.resolution)))
        return tuple(result)

    def coordinates(self) -> Tuple[np.ndarray, ...]:
        """Expanded coordinates, see xyz_grid."""
        return xyz_grid(self)


def xyz_grid(grid: SampleGrid) -> Tuple[np.ndarray, ...]:
    """
    Expand a sampling grid into coordinate arrays.

    The coordinate arrays are shaped like the non-degenerate axes: a single
    axis gives a 1-D array, two axes (a, b) in x-y-z order give an array of
    shape (n_b, n_a), and three axes give (ny, nx, nz).

    Args:
        grid: The sampling grid

    Returns:
        Tuple (xx, yy, zz, x, y, z) of expanded coordinates followed by the
        1-D axis samples
    """
    x, y, z = grid.axes()
    axes = [x, y, z]
    active = [i for i, name in enumerate('xyz') if not grid.is_degenerate(name)]

    if len(active) == 0:
        expanded = [axis.copy() for axis in axes]
    elif len(active) == 1:
        n = axes[active[0]].shape[0]
        expanded = [axis if i == active[0] else np.full(n, axis[0]) for i, axis in enumerate(axes)]
    elif len(active) == 2:
        a, b = active
        aa, bb = np.meshgrid(axes[a], axes[b])
        expanded = []
        for i, axis in enumerate(axes):
            if i == a:
                expanded.append(aa)
            elif i == b:
                expanded.append(bb)
            else:
                expanded.append(np.full(aa.shape, axis[0]))
    else:
        expanded = list(np.meshgrid(x, y, z))

    return expanded[0], expanded[1], expanded[2], x, y, z


def correct_azimuth(phi: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Wrap azimuth angles into [-pi, pi).

    Args:
        phi: Angle(s) in radians

    Returns:
        Wrapped angle(s), same type as input
    """
    wrapped = np.mod(np.asarray(phi, dtype=float) + math.pi, 2 * math.pi) - math.pi
    return wrapped if isinstance(phi, np.ndarray) else float(wrapped)
