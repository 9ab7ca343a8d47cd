"""
Sound Field Synthesis (SFSynth) Package

Monochromatic sound field synthesis with secondary source arrays, analytic
scattering by spheres and cylinders, and binaural room impulse responses.
"""
