"""
Groups: molecules or atomic species occupying one elastic window of the
particle buffer.
"""

import copy
import numpy as np
from typing import Callable, Iterator, Sequence

from mcspace.errors import ContractViolation
from mcspace.core.elastic import ElasticRange, ParticleBuffer
from mcspace.core.particle import Capability, rotate_particles
from mcspace.core.vector import BoundaryFunction, QuaternionRotate, point_to_list


class GroupSubset:
    """Selected active offsets of a group; records are read and written through."""

    def __init__(self, group: "Group", offsets: Sequence[int]):
        self.group = group
        self.offsets = np.asarray(offsets, dtype=np.intp).reshape(-1)
        if len(self.offsets) and (self.offsets.min() < 0 or self.offsets.max() >= group.size()):
            raise IndexError(f"offsets {self.offsets.tolist()} outside active range of size {group.size()}")

    def __len__(self) -> int:
        return len(self.offsets)

    def __getitem__(self, i: int):
        return self.group.active[self.offsets[i]]

    def __iter__(self):
        active = self.group.active
        for i in self.offsets:
            yield active[i]

    @property
    def data(self) -> np.ndarray:
        """Copy of the selected records."""
        return self.group.active[self.offsets]

    @property
    def positions(self) -> np.ndarray:
        return self.group.active['pos'][self.offsets]


class Group(ElasticRange):
    """
    End-point representation of a molecule or atomic species.

    Attributes:
        id: Molecule type id
        atomic: True if the group holds independent atoms (salt etc.)
        cm: Cached mass center
        capabilities: Internal coordinates that follow rotations
    """

    def __init__(self, buffer: ParticleBuffer, begin: int, end: int, id: int = -1,
                 atomic: bool = False, capabilities: Capability = Capability.ALL):
        super().__init__(buffer, begin, end)
        self.id = id
        self.atomic = atomic
        self.cm = np.zeros(3)
        self.capabilities = capabilities

    def assign(self, other: "Group") -> "Group":
        """
        Copy the active/inactive partition and cached fields from `other`.

        Particle contents are not copied.

        Raises:
            ContractViolation: if the capacities differ
        """
        if self is other:
            return self
        if self.capacity() != other.capacity():
            raise ContractViolation(
                f"group assignment: capacity {self.capacity()} != {other.capacity()}")
        self.resize(other.size())
        self.id = other.id
        self.atomic = other.atomic
        self.cm = other.cm.copy()
        self.capabilities = other.capabilities
        return self

    def clone(self, buffer: ParticleBuffer, old_origin: int = 0, new_origin: int = 0) -> "Group":
        """Independent group bound to `buffer` (e.g. a copied buffer)."""
        g = copy.copy(self)
        g.cm = self.cm.copy()
        g.rebase(buffer, old_origin, new_origin)
        return g

    # ------------------------------------------------------------------
    # Selections
    # ------------------------------------------------------------------

    def find_id(self, id: int) -> Iterator:
        """Active particles with matching type id (lazy, records are views)."""
        return self.filter(lambda p: p['id'] == id)

    def filter(self, predicate: Callable) -> Iterator:
        for p in self.active:
            if predicate(p):
                yield p

    def find_index(self, offsets: Sequence[int]) -> GroupSubset:
        return GroupSubset(self, offsets)

    @property
    def positions(self) -> np.ndarray:
        """Writable (N, 3) view of active positions."""
        return self.active['pos']

    # ------------------------------------------------------------------
    # Geometric operations
    # ------------------------------------------------------------------

    def unwrap(self, vdist: Callable[[np.ndarray, np.ndarray], np.ndarray]):
        """Remove periodic boundaries relative to the mass center."""
        pos = self.positions
        if len(pos):
            pos[:] = self.cm + vdist(pos, self.cm)

    def wrap(self, boundary: BoundaryFunction):
        boundary(self.cm)
        pos = self.positions
        if len(pos):
            boundary(pos)

    def translate(self, d: np.ndarray, boundary: BoundaryFunction):
        """Translate mass center and active particles by `d`."""
        self.cm += d
        boundary(self.cm)
        pos = self.positions
        if len(pos):
            pos += d
            boundary(pos)

    def rotate(self, rot: QuaternionRotate, boundary: BoundaryFunction):
        """
        Rotate active particles around the mass center.

        Positions are rotated about `cm` and wrapped; enabled internal
        coordinates (dipole, quadrupole, rod direction) by the same rotation.
        """
        active = self.active
        if len(active) == 0:
            return
        active['pos'] = rot(active['pos'], boundary, shift=self.cm)
        rotate_particles(active, rot, self.capabilities)

    def update_mass_center(self, geometry, atoms=None) -> np.ndarray:
        """
        Recompute the mass center from active particles.

        Parameters:
            geometry: Geometry providing boundary-aware averaging
            atoms: Atom registry; if given, atom weights are used

        Raises:
            ContractViolation: if a particle id is not in `atoms`
        """
        active = self.active
        if len(active):
            weights = None
            if atoms is not None and len(atoms):
                ids = active['id']
                if ids.min() < 0 or ids.max() >= len(atoms):
                    raise ContractViolation(
                        f"mass center: particle ids {sorted(set(ids.tolist()))} "
                        f"not all in atom catalog of size {len(atoms)}")
                weights = atoms.weights()[ids]
            self.cm = geometry.mass_center(active['pos'], weights)
        return self.cm

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "atomic": self.atomic,
            "cm": point_to_list(self.cm),
            "size": self.size(),
            "capacity": self.capacity(),
        }

    def __repr__(self) -> str:
        return (f"Group(id={self.id}, atomic={self.atomic}, begin={self.begin}, "
                f"size={self.size()}, capacity={self.capacity()})")
