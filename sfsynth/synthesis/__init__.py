"""
Sound Field Synthesis Package

Monochromatic sound field synthesis with secondary source arrays: Green's
functions, secondary source selection and tapering, superposition,
multipole expansions with analytic scattering, and binaural rendering.
"""

from .config import SFSConfig, Dimension, ArrayGeometry
from .utils import SourceType, VirtualSource, SecondarySources, SampleGrid
from .greens import greens_function_mono
from .selection import secondary_source_selection
from .tapering import tapering_window
from .geometry import secondary_source_positions, secondary_source_diameter
from .sound_field import sound_field_mono, norm_sound_field
from .driving import driving_function_mono_wfs, driving_function_mono_wfs_expansion
from .binaural import binaural_impulse_response, HRIRDataset

__version__ = '0.1.0'
