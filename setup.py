"""
Setup script for the SFSynth package.
"""

from setuptools import setup, find_packages

setup(
    name="sfsynth",
    version="0.1.0",
    description="Monochromatic Sound Field Synthesis and Binaural Rendering",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy>=1.20.0",
        "scipy>=1.7.0",
        "numba>=0.56.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Topic :: Multimedia :: Sound/Audio",
        "Topic :: Scientific/Engineering :: Physics",
    ],
    python_requires=">=3.8",
)
