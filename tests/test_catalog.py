"""Tests for atom/molecule catalogs and conformation selection."""

import numpy as np
import pytest

from mcspace import units
from mcspace.errors import ConfigurationError, ContractViolation, ResourceExhaustedError
from mcspace.core.catalog import AtomData, MoleculeData, Registry, atom_template
from mcspace.core.particle import Capability, Particle, empty_particles


def test_atom_record_units():
    a = AtomData.from_dict({"Na": {"q": 1.0, "r": 1.9, "activity": 0.1, "eps": 0.5, "dp": 0.4}})
    assert a.name == "Na"
    assert a.p.charge == 1.0 and a.p.radius == 1.9
    assert a.activity == pytest.approx(units.molar(0.1))
    assert a.eps == pytest.approx(units.kJmol(0.5))
    j = a.to_dict()["Na"]
    assert j["activity"] == pytest.approx(0.1)
    assert j["eps"] == pytest.approx(0.5)
    assert "pos" not in j


@pytest.mark.parametrize("record", [{"A": 1}, {"A": {}, "B": {}}, ["A"]])
def test_malformed_atom_record(record):
    with pytest.raises(ConfigurationError):
        AtomData.from_dict(record)


def test_registry_ids_follow_order_and_freeze():
    reg = Registry()
    reg.extend_from_records({"b": {}, "a": {}}, AtomData.from_dict)
    assert [a.name for a in reg] == ["a", "b"]
    assert [a.id for a in reg] == [0, 1]
    assert reg.id_of("b") == 1
    assert reg.find_name("c") is None
    with pytest.raises(ConfigurationError):
        reg.id_of("c")
    with pytest.raises(ContractViolation):
        reg[5]
    reg.freeze()
    with pytest.raises(ContractViolation):
        reg.append(AtomData("c"))


def test_atom_template(atoms):
    t = atom_template(atoms, 1)
    assert len(t) == 1 and t['charge'][0] == -1.0 and t['id'][0] == 1


def test_molecule_record_round_trip():
    m = MoleculeData.from_dict({"water": {"atomic": False, "insdir": [1, 1, 0],
                                          "activity": 0.05, "keeppos": True}})
    j = m.to_dict()["water"]
    assert j["insdir"] == [1.0, 1.0, 0.0]
    assert j["activity"] == pytest.approx(0.05)
    assert j["keeppos"] is True
    again = MoleculeData.from_dict(m.to_dict())
    np.testing.assert_array_equal(again.insdir, m.insdir)
    assert again.activity == pytest.approx(m.activity)


def test_conformations_are_weighted(rand):
    m = MoleculeData("m")
    a, b = empty_particles(2), empty_particles(2)
    a['id'] = b['id'] = 0
    b['pos'][0] = (1, 2, 3)
    m.add_conformation(a, weight=0.0)
    m.add_conformation(b, weight=1.0)
    assert m.num_conformations() == 2
    for _ in range(20):
        confid, v = m.random_conformation(rand)
        assert confid == 1
        np.testing.assert_array_equal(v['pos'][0], [1, 2, 3])
    v['pos'][0] = 0
    np.testing.assert_array_equal(m.conformations[1]['pos'][0], [1, 2, 3])


def test_frozen_molecule_entries_reject_mutation(molecules):
    dimer = molecules[1]
    molecules.freeze()
    assert dimer.frozen
    with pytest.raises(ContractViolation):
        dimer.add_conformation(dimer.conformations[0], 5.0)
    with pytest.raises(ContractViolation):
        dimer.set_inserter(lambda geo, other, mol, rand: other)
    assert dimer.num_conformations() == 1
    assert dimer.inserter is None


def test_conformation_size_must_match_atoms():
    m = MoleculeData("m")
    m.atoms = [0, 0, 0]
    with pytest.raises(ConfigurationError):
        m.add_conformation(empty_particles(2))


def test_missing_conformation_is_resource_error(rand):
    with pytest.raises(ResourceExhaustedError, match="No configurations"):
        MoleculeData("empty").random_conformation(rand)


def test_capability_subset_in_atom_record():
    a = AtomData("X", Particle(charge=1.0, radius=2.0))
    assert "q" not in a.to_dict(Capability.RADIUS)["X"]
