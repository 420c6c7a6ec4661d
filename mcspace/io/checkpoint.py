"""
Input/Output of simulation state (HDF5).

Layout of a checkpoint file:

    /particles     compound dataset, one PARTICLE_DTYPE record per buffer slot
    /groups        (G, 5) int64 table: molecule id, atomic, begin, end, trueend
    /cm            (G, 3) float64 cached mass centers
    attrs          version, geometry (JSON), capabilities, randomseed (optional)
"""

import json
import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import h5py
import numpy as np

from mcspace import __version__
from mcspace.errors import ConfigurationError
from mcspace.core.catalog import AtomRegistry, MoleculeRegistry
from mcspace.core.elastic import ParticleBuffer
from mcspace.core.group import Group
from mcspace.core.particle import PARTICLE_DTYPE, Capability
from mcspace.core.random import Random
from mcspace.core.space import Space
from mcspace.geometry.boundary import Geometry

logger = logging.getLogger(__name__)


def save_space(space: Space, path: Union[str, Path], random: Optional[Random] = None):
    """
    Write particles, group partition, geometry and (optionally) the random state.

    Parameters:
        space: Space to store
        path: Output file (overwritten)
        random: Random source whose state is stored with the space
    """
    logger.info(f"Saving space to: {path}")
    table = np.array([[g.id, int(g.atomic), g.begin, g.end, g.trueend] for g in space.groups],
                     dtype=np.int64).reshape(-1, 5)
    cm = np.array([g.cm for g in space.groups], dtype=np.float64).reshape(-1, 3)

    with h5py.File(path, "w") as f:
        f.attrs["version"] = __version__
        f.attrs["geometry"] = json.dumps(space.geo.to_dict())
        f.attrs["capabilities"] = int(space.capabilities.value)
        if random is not None:
            f.attrs["randomseed"] = random.state
        if len(space.p):
            f.create_dataset("particles", data=space.p, compression="gzip")
        else:
            f.create_dataset("particles", data=space.p)
        f.create_dataset("groups", data=table)
        f.create_dataset("cm", data=cm)

    logger.info(f"Space saved: {len(space.groups)} groups, {len(space.p)} particles")


def load_space(path: Union[str, Path], atoms: Optional[AtomRegistry] = None,
               molecules: Optional[MoleculeRegistry] = None) -> Tuple[Space, Optional[Random]]:
    """
    Restore a space written by `save_space`.

    Returns:
        (space, random) where random is None if no state was stored

    Raises:
        ConfigurationError: if the file is not a valid checkpoint
    """
    logger.info(f"Loading space from: {path}")
    if not h5py.is_hdf5(path):
        raise ConfigurationError(f"File '{path}' is not a valid HDF5 file.")

    with h5py.File(path, "r") as f:
        for key in ("particles", "groups", "cm"):
            if key not in f:
                raise ConfigurationError(f"checkpoint '{path}' lacks dataset '{key}'")
        particles = f["particles"][()]
        table = f["groups"][()]
        cm = f["cm"][()]
        geometry = Geometry.from_dict(json.loads(f.attrs["geometry"]))
        capabilities = Capability(int(f.attrs.get("capabilities", Capability.ALL.value)))
        token = f.attrs.get("randomseed")

    if particles.dtype.names != PARTICLE_DTYPE.names:
        raise ConfigurationError(f"checkpoint '{path}': unexpected particle layout {particles.dtype}")
    particles = particles.astype(PARTICLE_DTYPE)

    space = Space(geometry, atoms, molecules, capabilities)
    space.buffer = ParticleBuffer(len(particles))
    space.buffer.extend(particles)
    for (molid, atomic, begin, end, trueend), c in zip(table, cm):
        g = Group(space.buffer, int(begin), int(trueend), id=int(molid), atomic=bool(atomic),
                  capabilities=capabilities)
        g.resize(int(end) - int(begin))
        g.cm = np.array(c, dtype=np.float64)
        space.groups.append(g)

    random = None
    if token is not None:
        random = Random()
        random.state = token.decode("utf-8") if isinstance(token, bytes) else str(token)

    logger.info(f"Space loaded: {len(space.groups)} groups, {len(space.p)} particles")
    return space, random
