"""Core module: particles, catalogs, groups and simulation space."""

from mcspace.core.particle import Particle, PARTICLE_DTYPE, Capability
from mcspace.core.random import Random, DiscreteDistribution
from mcspace.core.vector import QuaternionRotate, Tensor
from mcspace.core.catalog import AtomData, MoleculeData, Registry
from mcspace.core.elastic import ElasticRange, ParticleBuffer
from mcspace.core.group import Group
from mcspace.core.change import Change, GroupChange
from mcspace.core.space import Space

__all__ = [
    "Particle",
    "PARTICLE_DTYPE",
    "Capability",
    "Random",
    "DiscreteDistribution",
    "QuaternionRotate",
    "Tensor",
    "AtomData",
    "MoleculeData",
    "Registry",
    "ElasticRange",
    "ParticleBuffer",
    "Group",
    "Change",
    "GroupChange",
    "Space",
]
