"""Tests for particle records, capabilities and internal rotation."""

import math

import numpy as np
import pytest

from mcspace.errors import ConfigurationError
from mcspace.core.particle import (
    Capability, Particle, PARTICLE_DTYPE, as_particle_array, empty_particles,
    particle_from_dict, particle_to_dict, rotate_particles,
)
from mcspace.core.vector import QuaternionRotate, Tensor


def test_defaults():
    p = empty_particles(2)
    assert p.dtype == PARTICLE_DTYPE
    assert list(p['id']) == [-1, -1]
    np.testing.assert_array_equal(p['mu'][0], [1, 0, 0])
    np.testing.assert_array_equal(p['scdir'][1], [1, 0, 0])


def test_capability_parse():
    assert Capability.parse(["charge", "Dipole"]) == Capability.CHARGE | Capability.DIPOLE
    assert Capability.parse("all") == Capability.ALL
    with pytest.raises(ConfigurationError):
        Capability.parse("spin")


def test_record_keys_follow_capabilities():
    p = Particle(id=3, pos=(1, 2, 3), charge=-1.0, radius=2.0)
    j = p.to_dict(Capability.CHARGE)
    assert j == {"id": 3, "pos": [1.0, 2.0, 3.0], "q": -1.0}
    full = p.to_dict()
    assert set(full) == {"id", "pos", "q", "r", "mulen", "mu", "Q", "sclen", "scdir"}


def test_particle_from_dict_uses_defaults():
    p = Particle.from_dict({"id": 1, "q": 2.0})
    assert p.charge == 2.0
    assert p.radius == 0.0
    np.testing.assert_array_equal(p.mu, [1, 0, 0])
    with pytest.raises(ConfigurationError):
        particle_from_dict({"Q": [1, 2, 3]})
    with pytest.raises(ConfigurationError):
        particle_from_dict({"pos": [1, 2]})


def test_disabled_capabilities_are_not_read():
    rec = particle_from_dict({"q": 2.0, "r": 3.0}, Capability.RADIUS)
    assert rec['charge'] == 0.0 and rec['radius'] == 3.0


def test_record_round_trip_through_dict():
    p = Particle(id=2, pos=(0, 1, 0), mulen=1.5, mu=(0, 1, 0), Q=Tensor(1, 2, 3, 4, 5, 6),
                 sclen=4.0, scdir=(0, 0, 1))
    q = Particle.from_dict(p.to_dict())
    assert q.Q == p.Q
    np.testing.assert_array_equal(q.scdir, p.scdir)
    assert particle_to_dict(q.to_structured_array()[0]) == p.to_dict()


def test_as_particle_array():
    a = as_particle_array([Particle(id=0), Particle(id=1)])
    assert list(a['id']) == [0, 1]
    with pytest.raises(ConfigurationError):
        as_particle_array(np.zeros(3))


def test_rotation_moves_all_orientations_and_keeps_scalars():
    p = Particle(charge=1.0, radius=2.0, mulen=3.0, mu=(1, 0, 0), scdir=(0, 1, 0),
                 Q=Tensor(1, 2, 3, 4, 5, 6))
    rot = QuaternionRotate(math.pi / 2, (0, 1, 0))
    p.rotate(rot)
    np.testing.assert_allclose(p.mu, rot.rotate_vectors([1, 0, 0]), atol=1e-12)
    np.testing.assert_allclose(p.scdir, rot.rotate_vectors([0, 1, 0]), atol=1e-12)
    np.testing.assert_allclose(p.Q.coefficients, [6, 5, -3, 4, -2, 1], atol=1e-12)
    assert (p.charge, p.radius, p.mulen) == (1.0, 2.0, 3.0)
    np.testing.assert_array_equal(p.pos, [0, 0, 0])


def test_rotation_skips_disabled_capabilities():
    p = empty_particles(3)
    p['mu'] = (0, 0, 1)
    rot = QuaternionRotate(math.pi / 2, (1, 0, 0))
    rotate_particles(p, rot, Capability.CIGAR)
    np.testing.assert_array_equal(p['mu'], [(0, 0, 1)] * 3)
    np.testing.assert_allclose(p['scdir'], [(1, 0, 0)] * 3, atol=1e-12)
    rotate_particles(p, rot, Capability.DIPOLE)
    np.testing.assert_allclose(p['mu'], [(0, -1, 0)] * 3, atol=1e-12)
