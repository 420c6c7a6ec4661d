"""
MCSPACE: Particle space for Monte Carlo simulations

Particle storage, molecular groups and container geometry for Metropolis
Monte Carlo of molecular systems, with cheap trial/accepted synchronisation.

Modules:
    core: Particles, catalogs, elastic groups, change records and the space
    geometry: Container shapes and periodic boundaries
    molecules: Random insertion of molecules
    io: YAML configuration and HDF5 checkpoints
"""

__version__ = "0.1.0"

from mcspace.core.space import Space
from mcspace.core.group import Group
from mcspace.core.change import Change
from mcspace.core.random import Random
from mcspace.geometry.boundary import Geometry
from mcspace.molecules.inserter import RandomInserter
from mcspace.io.config import load_setup
from mcspace.logging_config import setup_logging

__all__ = [
    "Space",
    "Group",
    "Change",
    "Random",
    "Geometry",
    "RandomInserter",
    "load_setup",
    "setup_logging",
]
