"""
Setup script for mcspace package.

Installation:
    pip install -e .
    pip install -e ".[dev]"    # with test tooling
"""

from setuptools import setup, find_packages

setup(
    name="mcspace",
    version="0.1.0",
    description="Particle space, groups and geometries for Metropolis Monte Carlo",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24",
        "scipy>=1.10",
        "numba>=0.58",
        "h5py>=3.8",
        "pyyaml>=6.0",
        "tqdm>=4.65",
    ],
    extras_require={
        "dev": ["pytest>=7.3", "black>=23.0", "mypy>=1.3", "ipython>=8.12"],
        "all": ["pytest>=7.3"],
    },
)
