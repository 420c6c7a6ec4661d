"""IO module: YAML configuration and HDF5 checkpoints."""

from mcspace.io.config import SimulationSetup, load_setup, load_yaml
from mcspace.io.checkpoint import load_space, save_space

__all__ = ["SimulationSetup", "load_setup", "load_yaml", "load_space", "save_space"]
