"""
Smoke tests for the example scenes.
"""

import numpy as np

from sfsynth.synthesis.config import Dimension
from sfsynth.synthesis.examples import (example_config, create_plane_wave_scene, create_scattering_scene,
                                        create_binaural_scene)


class TestExampleScenes:
    """The example scenes run end to end."""

    def test_example_config(self):
        """The example array is a 40 element linear array at y = 2 m."""
        conf = example_config(Dimension.THREE)
        assert conf.dimension == Dimension.THREE
        assert conf.secondary_sources.number == 40
        assert conf.secondary_sources.center == (0.0, 2.0, 0.0)

    def test_plane_wave_scene(self):
        """The synthesized plane wave is normalized at the origin."""
        scene = create_plane_wave_scene(resolution=21)
        P = scene['P']
        assert P.shape == (21, 21)
        assert abs(abs(P[10, 10]) - 1.0) < 1e-12
        assert np.count_nonzero(scene['D']) == np.count_nonzero(scene['window'])
        assert scene['window'].max() == 1.0
        assert scene['window'][0] < 1.0

    def test_scattering_scene(self):
        """All scattering fields are computed on the grid."""
        scene = create_scattering_scene(resolution=20)
        assert set(scene) == {'incident_pw', 'scattered_pw', 'scattered_ps', 'scattered_cylinder',
                              'synthesized_pw', 'synthesized_cylinder'}
        for field in scene.values():
            assert field.shape == (20, 20)
            assert np.all(np.isfinite(field))

    def test_binaural_scene(self):
        """The binaural response of a symmetric scene is the same at both ears."""
        scene = create_binaural_scene()
        ir = scene['ir']
        assert ir.shape == (4096, 2)
        assert scene['sample_rate'] == 44100
        assert np.max(np.abs(ir)) > 0
        np.testing.assert_allclose(ir[:, 0], ir[:, 1], rtol=1e-9, atol=1e-12)
