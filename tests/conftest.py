"""
Shared pytest fixtures for mcspace tests.
"""

import numpy as np
import pytest

from mcspace.core.catalog import AtomData, MoleculeData, Registry
from mcspace.core.particle import Particle, empty_particles
from mcspace.core.random import Random
from mcspace.core.space import Space
from mcspace.geometry.boundary import Geometry


@pytest.fixture
def rand() -> Random:
    """Deterministically seeded random source."""
    return Random()


@pytest.fixture
def atoms() -> Registry:
    """Catalog with two charged atom types and one dipolar type."""
    reg = Registry()
    reg.append(AtomData("Na", Particle(charge=1.0, radius=1.0), dp=0.5))
    reg.append(AtomData("Cl", Particle(charge=-1.0, radius=1.5), dp=0.5, weight=2.0))
    reg.append(AtomData("D", Particle(radius=1.0, mulen=2.0, mu=(0, 0, 1))))
    return reg


@pytest.fixture
def molecules(atoms) -> Registry:
    """Catalog with an atomic salt and a rigid dimer."""
    reg = Registry()
    salt = MoleculeData("salt", atomic=True)
    salt.atoms = [0, 1]
    salt.add_conformation([atoms[0].p, atoms[1].p])
    reg.append(salt)

    dimer = MoleculeData("dimer")
    conf = empty_particles(2)
    conf['id'] = [2, 2]
    conf['pos'] = [(0, 0, -1), (0, 0, 1)]
    conf['radius'] = 1.0
    dimer.add_conformation(conf)
    reg.append(dimer)
    return reg


@pytest.fixture
def cube() -> Geometry:
    return Geometry.cuboid((10.0, 10.0, 10.0))


def make_particles(values, atom_id: int = 0) -> np.ndarray:
    """Particles with x-coordinates (and charges) taken from `values`."""
    p = empty_particles(len(values))
    p['id'] = atom_id
    p['pos'][:, 0] = values
    p['charge'] = values
    return p


@pytest.fixture
def space(cube, atoms, molecules) -> Space:
    """Space with three groups of 6, 4 and 2 particles."""
    s = Space(cube, atoms, molecules)
    s.push_back(1, make_particles([0.1, 0.2, 0.3, 0.4, 0.5, 0.6], atom_id=2))
    s.push_back(1, make_particles([1.0, 1.1, 1.2, 1.3], atom_id=2))
    s.push_back(0, make_particles([2.0, 2.1]))
    return s
