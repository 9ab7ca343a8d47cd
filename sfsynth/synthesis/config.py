"""
Configuration Management Module

This module provides centralized configuration management for sound field
synthesis, including physical constants, default settings, and
configuration utilities.

A configuration is immutable once built and is passed explicitly into every
entry point, so results never depend on hidden global state.
"""

from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from enum import Enum
import json
import math
import numpy as np

from .utils import Vector3, HRIRInterpolation
from .exceptions import ConfigurationError


# =====================================================================================
# Constants
# =====================================================================================

# Physics constants
SPEED_OF_SOUND = 343.0  # m/s at room temperature

# Binaural rendering
DEFAULT_SAMPLE_RATE = 44100  # Hz
SUPPORTED_SAMPLE_RATES = [44100, 48000, 96000]
DEFAULT_IR_LENGTH = 4096  # samples

# Secondary source arrays
DEFAULT_NUMBER_OF_SOURCES = 64
DEFAULT_ARRAY_SIZE = 3.0  # m
DEFAULT_TAPER_LENGTH = 0.2  # fraction of the active array

# Expansion truncation
DEFAULT_SPHERICAL_ORDER = 23
DEFAULT_CYLINDRICAL_ORDER = 23
MAX_SUPPORTED_ORDER = 80  # Bessel recursions lose precision beyond this

# Samples closer than this to a point or line source are coincident
COINCIDENCE_TOLERANCE = 1e-10  # m
DEFAULT_SINGULAR_DISTANCE = 0.01  # m


class Dimension(Enum):
    """
    Dimensionality of the synthesis.

    Attributes:
        TWO: Line sources in a plane
        TWO_AND_A_HALF: Point sources on a line or curve in a plane
        THREE: Point sources on a surface
    """
    TWO = '2D'
    TWO_AND_A_HALF = '2.5D'
    THREE = '3D'


class ArrayGeometry(Enum):
    """
    Layout of the secondary source array.

    Attributes:
        LINEAR: Equally spaced elements along the x-axis
        CIRCULAR: Elements on a circle, facing its center
        BOX: Elements on the four sides of a square, facing inward
        CUSTOM: Elements taken from an explicit table
    """
    LINEAR = 'linear'
    CIRCULAR = 'circular'
    BOX = 'box'
    CUSTOM = 'custom'

    @property
    def is_closed(self) -> bool:
        """Whether the last element neighbours the first one."""
        return self in (ArrayGeometry.CIRCULAR, ArrayGeometry.BOX)


# =====================================================================================
# Configuration Classes
# =====================================================================================

@dataclass(frozen=True)
class SecondarySourceConfig:
    """Configuration of the secondary source array"""

    geometry: ArrayGeometry = ArrayGeometry.LINEAR
    number: int = DEFAULT_NUMBER_OF_SOURCES
    size: float = DEFAULT_ARRAY_SIZE  # length, diameter or side length in m
    center: Vector3 = (0.0, 0.0, 0.0)

    # [x, y, z, nx, ny, nz, weight] table for custom arrays
    x0: Optional[np.ndarray] = None

    def __post_init__(self):
        """Validate configuration after initialization"""
        object.__setattr__(self, 'geometry', ArrayGeometry(self.geometry))
        object.__setattr__(self, 'center', tuple(float(c) for c in self.center))

        if len(self.center) != 3:
            raise ConfigurationError("Array center must have 3 components")

        if self.geometry == ArrayGeometry.CUSTOM:
            if self.x0 is None:
                raise ConfigurationError("Custom array geometry requires an x0 table")
            table = np.atleast_2d(np.asarray(self.x0, dtype=float))
            if table.shape[1] not in (6, 7):
                raise ConfigurationError(f"x0 table must have 6 or 7 columns, got {table.shape[1]}")
            table.setflags(write=False)
            object.__setattr__(self, 'x0', table)
            return

        if self.number < 1:
            raise ConfigurationError("Number of secondary sources must be positive")

        if self.geometry == ArrayGeometry.BOX and (self.number % 4 != 0 or self.number < 8):
            raise ConfigurationError(
                f"Box arrays need a multiple of 4 elements (at least 8), got {self.number}")

        if self.size <= 0:
            raise ConfigurationError("Array size must be positive")


@dataclass(frozen=True)
class TaperingConfig:
    """Configuration of the tapering window"""

    enabled: bool = True
    length: float = DEFAULT_TAPER_LENGTH  # fraction of each active run

    def __post_init__(self):
        """Validate configuration after initialization"""
        if not 0.0 <= self.length <= 1.0:
            raise ConfigurationError(f"Taper length must be between 0 and 1, got {self.length}")


@dataclass(frozen=True)
class ScatteringConfig:
    """Configuration of multipole expansions and scatterers"""

    spherical_order: int = DEFAULT_SPHERICAL_ORDER
    cylindrical_order: int = DEFAULT_CYLINDRICAL_ORDER

    # Boundary admittance, inf for a sound-soft body, 0 for a sound-hard one
    admittance: complex = math.inf

    def __post_init__(self):
        """Validate configuration after initialization"""
        for name in ('spherical_order', 'cylindrical_order'):
            order = getattr(self, name)
            if order < 0 or order > MAX_SUPPORTED_ORDER:
                raise ConfigurationError(f"{name} must be between 0 and {MAX_SUPPORTED_ORDER}, got {order}")


@dataclass(frozen=True)
class BinauralConfig:
    """Configuration for binaural rendering"""

    sample_rate: int = DEFAULT_SAMPLE_RATE
    ir_length: int = DEFAULT_IR_LENGTH  # samples of the rendered impulse response
    headphone_compensation: bool = False
    interpolation: HRIRInterpolation = HRIRInterpolation.NEAREST

    def __post_init__(self):
        """Validate configuration after initialization"""
        if isinstance(self.interpolation, str):
            object.__setattr__(self, 'interpolation', HRIRInterpolation[self.interpolation])

        if self.sample_rate not in SUPPORTED_SAMPLE_RATES:
            raise ConfigurationError(
                f"Sample rate {self.sample_rate} not supported. Use one of: {SUPPORTED_SAMPLE_RATES}")

        if self.ir_length < 1:
            raise ConfigurationError("Impulse response length must be positive")


@dataclass(frozen=True)
class SFSConfig:
    """Complete configuration for sound field synthesis"""

    dimension: Dimension = Dimension.TWO_AND_A_HALF
    speed_of_sound: float = SPEED_OF_SOUND

    # Reference point for normalization, focused sources and 2.5D driving
    xref: Optional[Vector3] = (0.0, 0.0, 0.0)
    normalize: bool = True

    # Raise on degenerate input instead of applying the documented fallbacks
    strict: bool = False
    singular_distance: float = DEFAULT_SINGULAR_DISTANCE

    # Performance settings
    use_vectorization: bool = True

    secondary_sources: SecondarySourceConfig = field(default_factory=SecondarySourceConfig)
    tapering: TaperingConfig = field(default_factory=TaperingConfig)
    scattering: ScatteringConfig = field(default_factory=ScatteringConfig)
    binaural: BinauralConfig = field(default_factory=BinauralConfig)

    def __post_init__(self):
        """Validate configuration after initialization"""
        object.__setattr__(self, 'dimension', Dimension(self.dimension))

        if self.xref is not None:
            if len(self.xref) != 3:
                raise ConfigurationError("Reference point must have 3 components")
            object.__setattr__(self, 'xref', tuple(float(c) for c in self.xref))

        if self.speed_of_sound <= 0:
            raise ConfigurationError("Speed of sound must be positive")

        if self.singular_distance <= 0:
            raise ConfigurationError("Singular distance must be positive")

    def wavenumber(self, frequency: float) -> float:
        """Wavenumber k = 2*pi*f/c for the configured speed of sound."""
        return 2 * math.pi * frequency / self.speed_of_sound

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for serialization"""
        x0 = self.secondary_sources.x0
        admittance = complex(self.scattering.admittance)
        return {
            'dimension': self.dimension.value,
            'speed_of_sound': self.speed_of_sound,
            'xref': None if self.xref is None else list(self.xref),
            'normalize': self.normalize,
            'strict': self.strict,
            'singular_distance': self.singular_distance,
            'use_vectorization': self.use_vectorization,
            'secondary_sources': {
                'geometry': self.secondary_sources.geometry.value,
                'number': self.secondary_sources.number,
                'size': self.secondary_sources.size,
                'center': list(self.secondary_sources.center),
                'x0': None if x0 is None else x0.tolist()
            },
            'tapering': {
                'enabled': self.tapering.enabled,
                'length': self.tapering.length
            },
            'scattering': {
                'spherical_order': self.scattering.spherical_order,
                'cylindrical_order': self.scattering.cylindrical_order,
                # JSON has no complex numbers or infinity
                'admittance': [repr(admittance.real), repr(admittance.imag)]
            },
            'binaural': {
                'sample_rate': self.binaural.sample_rate,
                'ir_length': self.binaural.ir_length,
                'headphone_compensation': self.binaural.headphone_compensation,
                'interpolation': self.binaural.interpolation.name
            }
        }

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'SFSConfig':
        """Create configuration from dictionary"""
        scattering_dict = dict(config_dict.get('scattering', {}))
        if 'admittance' in scattering_dict:
            real, imag = scattering_dict['admittance']
            admittance = complex(float(real), float(imag))
            scattering_dict['admittance'] = admittance.real if admittance.imag == 0 else admittance

        sources_dict = dict(config_dict.get('secondary_sources', {}))
        if sources_dict.get('x0') is not None:
            sources_dict['x0'] = np.array(sources_dict['x0'])

        options = {key: config_dict[key] for key in (
            'dimension', 'speed_of_sound', 'xref', 'normalize', 'strict',
            'singular_distance', 'use_vectorization') if key in config_dict}

        return cls(
            secondary_sources=SecondarySourceConfig(**sources_dict),
            tapering=TaperingConfig(**config_dict.get('tapering', {})),
            scattering=ScatteringConfig(**scattering_dict),
            binaural=BinauralConfig(**config_dict.get('binaural', {})),
            **options
        )

    def save(self, file_path: str) -> None:
        """Save configuration to file"""
        with open(file_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, file_path: str) -> 'SFSConfig':
        """Load configuration from file"""
        with open(file_path, 'r') as f:
            return cls.from_dict(json.load(f))


# Create a default configuration
default_config = SFSConfig()
