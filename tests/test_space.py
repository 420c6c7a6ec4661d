"""Tests for change records and trial/accepted space synchronisation."""

import numpy as np
import pytest

from mcspace.errors import ContractViolation, StaleRangeError
from mcspace.core.change import Change, GroupChange
from mcspace.core.space import Space
from mcspace.core.vector import point

from conftest import make_particles


def test_change_builder():
    change = Change()
    assert change.empty()
    d = change.add_group(2)
    d.touch(2, 5)
    assert change.add_group(2) is d
    change.add_group(0, all_changed=True)
    assert change.touched() == [2, 0]
    assert not change.empty()
    change.clear()
    assert change.empty() and change.touched() == []


def test_change_with_volume_only_is_not_empty():
    assert not Change(dV=1.5).empty()


def test_duplicate_group_entries_are_rejected():
    with pytest.raises(ContractViolation):
        Change(groups=[GroupChange(1), GroupChange(1)])


def test_push_back_rebases_existing_groups(cube):
    space = Space(cube)
    first = space.push_back(0, make_particles([1.0, 2.0]))
    for i in range(10):
        space.push_back(0, make_particles([float(i)] * 7))
    assert space.buffer.generation > 1
    assert [float(c) for c in first.active['charge']] == [1.0, 2.0]
    assert [g.begin for g in space.groups[:3]] == [0, 2, 9]


def test_push_back_sets_molecule_fields(space):
    salt, dimer = space.groups[2], space.groups[0]
    assert salt.atomic and not dimer.atomic
    np.testing.assert_allclose(dimer.cm, [0.35, 0, 0])


def test_find_molecules_and_atoms(space):
    assert [g.size() for g in space.find_molecules(1)] == [6, 4]
    space.groups[1].deactivate(0, 4)
    assert len(list(space.find_molecules(1, active_only=True))) == 1
    assert len(list(space.find_atoms(2))) == 6
    assert len(space.active_particles()) == 8


def test_sync_copies_only_touched_offsets(space):
    trial = space.copy()
    before = space.p.copy()
    trial.groups[0].active['pos'] += 1.0
    trial.groups[1].active['pos'] += 1.0

    change = Change()
    change.add_group(0).touch(2, 5)
    space.sync(trial, change)

    after = space.p
    assert after[[2, 5]].tobytes() == trial.p[[2, 5]].tobytes()
    untouched = np.setdiff1d(np.arange(len(after)), [2, 5])
    assert after[untouched].tobytes() == before[untouched].tobytes()


def test_sync_all_changed_ignores_offsets(space):
    trial = space.copy()
    trial.groups[1].translate(point(0.5, 0, 0), trial.geo.boundary)
    change = Change()
    change.add_group(1, all_changed=True).touch(99)
    space.sync(trial, change)
    assert space.groups[1].active.tobytes() == trial.groups[1].active.tobytes()
    np.testing.assert_allclose(space.groups[1].cm, trial.groups[1].cm)


def test_sync_copies_window_after_deactivation(space):
    trial = space.copy()
    trial.groups[0].deactivate(1, 3)
    change = Change()
    change.add_group(0).deactivated.append((1, 3))
    space.sync(trial, change)
    assert space.groups[0].size() == 4
    assert space.groups[0].window.tobytes() == trial.groups[0].window.tobytes()


def test_sync_rejects_offsets_outside_group(space):
    trial = space.copy()
    trial.groups[2].deactivate(0, 1)
    change = Change()
    change.add_group(2).touch(1)
    with pytest.raises(ContractViolation):
        space.sync(trial, change)


def test_failed_sync_leaves_group_partition_unchanged(space):
    trial = space.copy()
    trial.groups[0].deactivate(0, 3)
    change = Change()
    change.add_group(0).touch(4)
    with pytest.raises(ContractViolation):
        space.sync(trial, change)
    assert space.groups[0].size() == 6


def test_sync_rejects_unknown_group(space):
    change = Change()
    change.add_group(7)
    with pytest.raises(ContractViolation):
        space.sync(space.copy(), change)


def test_sync_volume_change_is_left_to_caller(space):
    volume = space.geo.get_volume()
    space.sync(space.copy(), Change(dV=10.0))
    assert space.geo.get_volume() == volume


def test_triggers(space):
    calls = []
    space.change_triggers.append(lambda s, c: calls.append(("change", c.dV)))
    space.sync_triggers.append(lambda s, o, c: calls.append(("sync", len(c))))
    change = Change(dV=1.0)
    space.apply_change(change)
    space.sync(space.copy(), change)
    assert calls == [("change", 1.0), ("sync", 0)]


def test_copy_is_independent(space):
    trial = space.copy()
    trial.groups[0].active['charge'] = 0.0
    trial.geo.set_length((20, 20, 20))
    assert space.groups[0].active['charge'][0] == pytest.approx(0.1)
    assert space.geo.get_volume() == pytest.approx(1000.0)
    assert trial.atoms is space.atoms


def test_group_held_across_reallocation_must_be_rebased(cube):
    space = Space(cube)
    g = space.push_back(0, make_particles([1.0]))
    detached = g.clone(space.buffer)
    space.push_back(0, make_particles([2.0] * 50))
    with pytest.raises(StaleRangeError):
        detached.active
    assert space.groups[0].active['charge'][0] == 1.0
