"""
Simulation space: particle buffer, groups and container geometry.

A Monte Carlo move works on a trial copy of the accepted space and records
what it modified in a `Change`. On acceptance the accepted space pulls only
the listed groups/offsets from the trial space:

    trial = accepted.copy()
    trial.groups[2].translate(d, trial.geo.boundary)
    change = Change()
    change.add_group(2, all_changed=True)
    accepted.sync(trial, change)      # cost ~ size of change, not of system
"""

import logging
import numpy as np
from typing import Callable, Iterator, List, Optional

from mcspace.errors import ContractViolation
from mcspace.core.catalog import AtomRegistry, MoleculeRegistry, Registry
from mcspace.core.change import Change
from mcspace.core.elastic import ParticleBuffer
from mcspace.core.group import Group
from mcspace.core.particle import Capability, as_particle_array, empty_particles

logger = logging.getLogger(__name__)


class Space:
    """
    Particles, groups and geometry of one simulation state.

    Attributes:
        buffer: Particle storage owned by this space
        groups: Groups, each a window into `buffer`
        geo: Container geometry
        atoms: Atom catalog (shared, read-only after setup)
        molecules: Molecule catalog (shared, read-only after setup)
        change_triggers: Called as f(space, change) by `apply_change`
        sync_triggers: Called as f(space, other, change) at the end of `sync`
    """

    def __init__(self, geometry, atoms: Optional[AtomRegistry] = None,
                 molecules: Optional[MoleculeRegistry] = None,
                 capabilities: Capability = Capability.ALL):
        self.buffer = ParticleBuffer()
        self.groups: List[Group] = []
        self.geo = geometry
        self.atoms = atoms if atoms is not None else Registry()
        self.molecules = molecules if molecules is not None else Registry()
        self.capabilities = Capability.parse(capabilities)
        self.change_triggers: List[Callable] = []
        self.sync_triggers: List[Callable] = []

    @property
    def p(self) -> np.ndarray:
        """All particles in the buffer (active and inactive)."""
        return self.buffer.data

    # ------------------------------------------------------------------
    # Population
    # ------------------------------------------------------------------

    def push_back(self, molid: int, particles) -> Group:
        """
        Append particles as a new group of molecule type `molid`.

        If the buffer is reallocated every existing group is rebased.

        Returns:
            The new group
        """
        particles = as_particle_array(particles)
        origin = self.groups[0].begin if self.groups else 0
        start = len(self.buffer)
        if self.buffer.extend(particles):
            for g in self.groups:
                g.rebase(self.buffer, origin, origin)
            logger.debug(f"Rebased {len(self.groups)} groups after buffer reallocation")

        g = Group(self.buffer, start, start + len(particles), id=molid,
                  capabilities=self.capabilities)
        if 0 <= molid < len(self.molecules):
            g.atomic = self.molecules[molid].atomic
        if not g.atomic and not g.empty():
            g.update_mass_center(self.geo, self.atoms)
        self.groups.append(g)
        return g

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find_molecules(self, molid: int, active_only: bool = False) -> Iterator[Group]:
        """Groups of molecule type `molid` (lazy)."""
        for g in self.groups:
            if g.id == molid and not (active_only and g.empty()):
                yield g

    def find_atoms(self, atomid: int) -> Iterator:
        """Active particles with type id `atomid` across all groups (lazy, records are views)."""
        for g in self.groups:
            yield from g.find_id(atomid)

    def active_particles(self) -> np.ndarray:
        """Copy of all active particles, in group order."""
        parts = [g.active for g in self.groups]
        if not parts:
            return empty_particles(0)
        return np.concatenate(parts)

    def num_particles(self, active_only: bool = True) -> int:
        if active_only:
            return sum(g.size() for g in self.groups)
        return len(self.buffer)

    # ------------------------------------------------------------------
    # Trial / accepted synchronisation
    # ------------------------------------------------------------------

    def sync(self, other: "Space", change: Change):
        """
        Copy the parts of `other` listed in `change` into this space.

        For each group entry the active/inactive partition and cached fields
        are copied; then either all active particles (`all`), the whole
        capacity window (activated/deactivated spans) or the touched offsets.
        Groups absent from `change` are not touched. The volume change is
        left to the caller.

        Raises:
            ContractViolation: unknown group index, capacity mismatch or
                touched offset outside the active range
        """
        for d in change.groups:
            if not (0 <= d.index < len(self.groups) and d.index < len(other.groups)):
                raise ContractViolation(f"sync: group index {d.index} out of range")
            g, go = self.groups[d.index], other.groups[d.index]
            offsets = np.asarray([] if d.all else d.atoms, dtype=np.intp)
            if len(offsets) and (offsets.min() < 0 or offsets.max() >= go.size()):
                raise ContractViolation(
                    f"sync: touched offsets {d.atoms} outside group {d.index} "
                    f"of size {go.size()}")
            g.assign(go)
            if d.resized:
                g.window[:] = go.window
            elif d.all:
                g.active[:] = go.active
            elif len(offsets):
                g.active[offsets] = go.active[offsets]
        for trigger in self.sync_triggers:
            trigger(self, other, change)

    def apply_change(self, change: Change):
        """Notify change triggers."""
        for trigger in self.change_triggers:
            trigger(self, change)

    def copy(self) -> "Space":
        """
        Independent copy (e.g. the trial space).

        The buffer and geometry are copied and groups rebased onto the new
        buffer; catalogs are shared.
        """
        other = Space.__new__(Space)
        other.buffer = self.buffer.copy()
        other.groups = [g.clone(other.buffer) for g in self.groups]
        other.geo = self.geo.copy()
        other.atoms = self.atoms
        other.molecules = self.molecules
        other.capabilities = self.capabilities
        other.change_triggers = list(self.change_triggers)
        other.sync_triggers = list(self.sync_triggers)
        return other

    def to_dict(self) -> dict:
        return {
            "geometry": self.geo.to_dict(),
            "groups": [g.to_dict() for g in self.groups],
            "particles": {"active": self.num_particles(), "total": len(self.buffer)},
        }

    def __repr__(self) -> str:
        return f"Space(groups={len(self.groups)}, particles={len(self.buffer)}, geometry={self.geo!r})"
