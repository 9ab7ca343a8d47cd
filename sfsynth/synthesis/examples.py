"""
Example Usage and Demonstrations

This module contains example scenes demonstrating the synthesis pipeline:
a plane wave reproduced by a tapered linear array, the field scattered by
a sphere and a cylinder, and a binaural impulse response of the array.
"""

import math
from dataclasses import replace
from typing import Dict, Any, Optional

from .config import SFSConfig, SecondarySourceConfig, ArrayGeometry, Dimension
from .utils import SampleGrid, VirtualSource
from .geometry import secondary_source_positions
from .selection import secondary_source_selection
from .tapering import tapering_window
from .driving import (driving_function_mono_wfs, driving_function_mono_wfs_expansion,
                      driving_function_imp_wfs, driving_signals_imp)
from .sound_field import sound_field_mono
from .expansion import (spherical_expansion_plane_wave, spherical_expansion_point_source,
                        cylindrical_expansion_plane_wave)
from .scattering import Scatterer, ScattererShape, scatter
from .basis import spherical_basis_grid, cylindrical_basis_grid, sound_field_mono_basis
from .binaural import synthetic_hrir_dataset, binaural_impulse_response


def example_config(dimension: Dimension = Dimension.TWO_AND_A_HALF) -> SFSConfig:
    """Linear array of 40 elements over 6 m, centered at (0, 2, 0)."""
    return SFSConfig(
        dimension=dimension,
        secondary_sources=SecondarySourceConfig(
            geometry=ArrayGeometry.LINEAR, number=40, size=6.0, center=(0.0, 2.0, 0.0)),
    )


def create_plane_wave_scene(conf: Optional[SFSConfig] = None, f: float = 4000.0,
                            resolution: int = 300) -> Dict[str, Any]:
    """
    Synthesize a plane wave travelling in -y direction.

    The driving signals are restricted to the selected, tapered secondary
    sources and the field is computed on x, y in [-2, 2] m at z = 0.
    """
    conf = conf or example_config()
    grid = SampleGrid(x=(-2.0, 2.0), y=(-2.0, 2.0), z=0.0, resolution=resolution)

    x0 = secondary_source_positions(conf)
    source = VirtualSource.plane_wave((0.0, -1.0, 0.0))
    activity = secondary_source_selection(x0, source, conf)
    window = tapering_window(x0, activity, conf)
    D = driving_function_mono_wfs(x0, source, f, conf) * window

    P, x, y, _ = sound_field_mono(grid, x0, 'ps', D, f, conf)
    return {'P': P, 'x': x, 'y': y, 'x0': x0, 'D': D, 'window': window}


def create_scattering_scene(conf: Optional[SFSConfig] = None, f: float = 4000.0,
                            resolution: int = 100) -> Dict[str, Any]:
    """
    Scattering of a plane wave and a point source by a sound-soft sphere and
    of a plane wave by a sound-soft cylinder.

    The scatterers (radius 0.3 m) sit at xq = (0.6, -0.3, 0), which is also
    the reference point. Scattered fields are evaluated directly from their
    expansions and synthesized by the linear array from the expansion-based
    driving functions.
    """
    conf = conf or example_config(Dimension.THREE)
    radius = 0.3
    xq = (2 * radius, -radius, 0.0)
    conf = replace(conf, xref=xq)
    grid = SampleGrid(x=(-2.0, 2.0), y=(-2.0, 2.0), z=0.0, resolution=resolution)
    x0 = secondary_source_positions(conf)

    sphere = Scatterer(ScattererShape.SPHERE, radius, conf.scattering.admittance, xq)
    cylinder = Scatterer(ScattererShape.CYLINDER, radius, conf.scattering.admittance, xq)

    A_pw = spherical_expansion_plane_wave((0.0, -1.0, 0.0), f, xq, conf)
    A_ps = spherical_expansion_point_source((0.0, 3.0, 0.0), f, xq, conf)
    A_cyl = cylindrical_expansion_plane_wave((0.0, -1.0, 0.0), f, xq, conf)
    B_pw = scatter(A_pw, sphere, conf)
    B_ps = scatter(A_ps, sphere, conf)
    B_cyl = scatter(A_cyl, cylinder, conf)

    spherical = spherical_basis_grid(grid, f, xq, conf)
    cylindrical = cylindrical_basis_grid(grid, f, xq, conf)

    result = {
        'incident_pw': sound_field_mono_basis(A_pw, spherical),
        'scattered_pw': sound_field_mono_basis(B_pw, spherical),
        'scattered_ps': sound_field_mono_basis(B_ps, spherical),
        'scattered_cylinder': sound_field_mono_basis(B_cyl, cylindrical),
    }

    D_sphere = driving_function_mono_wfs_expansion(x0, B_pw, conf)
    result['synthesized_pw'] = sound_field_mono(grid, x0, 'ps', D_sphere, f, conf)[0]
    D_cylinder = driving_function_mono_wfs_expansion(x0, B_cyl, replace(conf, dimension=Dimension.TWO))
    result['synthesized_cylinder'] = sound_field_mono(grid, x0, 'ls', D_cylinder, f, conf)[0]
    return result


def create_binaural_scene(conf: Optional[SFSConfig] = None) -> Dict[str, Any]:
    """
    Binaural impulse response of a plane wave synthesized by the linear array
    for a listener at the origin looking towards the array.
    """
    conf = conf or example_config()
    x0 = secondary_source_positions(conf)
    source = VirtualSource.plane_wave((0.0, -1.0, 0.0))
    window = tapering_window(x0, secondary_source_selection(x0, source, conf), conf)

    delays, weights = driving_function_imp_wfs(x0, source, conf)
    d = driving_signals_imp(delays, weights * window, conf)
    irs = synthetic_hrir_dataset(conf.binaural.sample_rate)

    ir = binaural_impulse_response((0.0, 0.0, 0.0), math.pi / 2, x0, d, irs, conf)
    return {'ir': ir, 'd': d, 'sample_rate': conf.binaural.sample_rate}
