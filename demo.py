#!/usr/bin/env python
"""
SFSynth Demonstration Script

This script runs the example scenes of the sound field synthesis package
and prints a short summary of each result.
"""

import logging
import argparse
import numpy as np
from sfsynth.synthesis.examples import (
    create_plane_wave_scene,
    create_scattering_scene,
    create_binaural_scene
)

def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='SFSynth Demonstration Script')
    parser.add_argument('demo', nargs='?', choices=['planewave', 'scattering', 'binaural', 'all'],
                      default='all', help='Which demo to run (default: all)')
    parser.add_argument('--frequency', type=float, default=4000.0,
                      help='Frequency in Hz for the monochromatic scenes (default: 4000)')
    parser.add_argument('--resolution', type=int, default=100,
                      help='Grid samples per axis (default: 100)')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')
    return parser.parse_args()

if __name__ == "__main__":
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    print("Sound Field Synthesis (SFSynth) Demonstrations")
    print("==============================================")

    if args.demo == 'planewave' or args.demo == 'all':
        print("\nRunning Plane Wave Demo:")
        print("------------------------")
        scene = create_plane_wave_scene(f=args.frequency, resolution=args.resolution)
        print(f"Active secondary sources: {int(np.count_nonzero(scene['window']))} of {len(scene['x0'])}")
        print(f"Field shape: {scene['P'].shape}, max |P| = {np.max(np.abs(scene['P'])):.3f}")

    if args.demo == 'scattering' or args.demo == 'all':
        print("\nRunning Scattering Demo:")
        print("------------------------")
        scene = create_scattering_scene(f=args.frequency, resolution=args.resolution)
        for name, field in scene.items():
            print(f"{name:>22}: max |P| = {np.max(np.abs(field)):.3f}")

    if args.demo == 'binaural' or args.demo == 'all':
        print("\nRunning Binaural Demo:")
        print("----------------------")
        scene = create_binaural_scene()
        ir = scene['ir']
        print(f"Impulse response: {ir.shape[0]} samples at {scene['sample_rate']} Hz")
        print(f"Peak level left/right: {np.max(np.abs(ir[:, 0])):.4f} / {np.max(np.abs(ir[:, 1])):.4f}")

    if args.demo == 'all':
        print("\nAll demonstrations complete!")
