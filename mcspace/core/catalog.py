"""
Atom and molecule type catalogs.

Catalogs are built once at startup, frozen, and then passed explicitly to
every component that needs type lookups. Ids always equal the catalog index
and entries are never removed, so an id stays valid for the lifetime of the
registry.
"""

import logging
import numpy as np
from typing import Callable, Generic, Iterator, List, Optional, Tuple, TypeVar

from mcspace import units
from mcspace.errors import ConfigurationError, ContractViolation, ResourceExhaustedError
from mcspace.core.particle import (
    Capability, Particle, as_particle_array, empty_particles,
)
from mcspace.core.random import DiscreteDistribution, Random
from mcspace.core.vector import point, point_from_list, point_to_list

logger = logging.getLogger(__name__)


def _single_entry(j, what: str):
    if not isinstance(j, dict) or len(j) != 1:
        raise ConfigurationError(f"Invalid record for {what}: single-key mapping expected")
    name, val = next(iter(j.items()))
    if val is None:
        val = {}
    if not isinstance(val, dict):
        raise ConfigurationError(f"Invalid record for {what} '{name}': mapping expected")
    return str(name), val


class AtomData:
    """
    General properties for atoms.

    Attributes:
        name: Atom name
        p: Template particle with the type's default properties
        eps: LJ epsilon [kT]
        activity: Chemical activity [particles/Å³]
        dp: Translational displacement parameter [Å]
        dprot: Rotational displacement parameter [rad]
        weight: Weight (mass) used for mass centres
    """

    def __init__(self, name: str = "", p: Optional[Particle] = None, eps: float = 0.0,
                 activity: float = 0.0, dp: float = 0.0, dprot: float = 0.0, weight: float = 1.0):
        self.name = name
        self.p = p if p is not None else Particle()
        self.eps = eps
        self.activity = activity
        self.dp = dp
        self.dprot = dprot
        self.weight = weight

    @property
    def id(self) -> int:
        return self.p.id

    @id.setter
    def id(self, value: int):
        self.p.id = value

    def to_dict(self, capabilities: Capability = Capability.ALL,
                temperature: float = units.DEFAULT_TEMPERATURE) -> dict:
        j = self.p.to_dict(capabilities)
        j.pop("pos", None)
        j["activity"] = self.activity / units.molar(1.0)
        j["dp"] = self.dp
        j["dprot"] = self.dprot
        j["eps"] = self.eps / units.kJmol(1.0, temperature)
        j["weight"] = self.weight
        return {self.name: j}

    @classmethod
    def from_dict(cls, j: dict, capabilities: Capability = Capability.ALL,
                  temperature: float = units.DEFAULT_TEMPERATURE) -> "AtomData":
        name, val = _single_entry(j, "AtomData")
        a = cls(name=name)
        try:
            a.p = Particle.from_dict(val, capabilities)
            a.activity = units.molar(float(val.get("activity", 0.0)))
            a.dp = float(val.get("dp", 0.0))
            a.dprot = float(val.get("dprot", 0.0))
            a.eps = units.kJmol(float(val.get("eps", 0.0)), temperature)
            a.weight = float(val.get("weight", 1.0))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"atom '{name}': {e}") from e
        return a

    def __repr__(self) -> str:
        return f"AtomData(name={self.name!r}, id={self.id})"


class MoleculeData:
    """
    General properties for molecules.

    A molecule type holds a list of stored conformations; one is drawn at
    random with probability proportional to its weight (default 1). The
    `inserter` callable turns a conformation into trial coordinates for
    grand canonical moves, Widom insertion or initial configurations.
    """

    def __init__(self, name: str = "", atomic: bool = False, rotate: bool = True,
                 keeppos: bool = False, activity: float = 0.0,
                 insdir=(1.0, 1.0, 1.0), insoffset=(0.0, 0.0, 0.0)):
        self.id = -1
        self.name = name
        self.structure = None
        self.atomic = atomic         # True if atomic group (salt etc.)
        self.rotate = rotate         # rotate upon insertion
        self.keeppos = keeppos       # keep original positions of `structure`
        self.activity = activity     # [particles/Å³]
        self.insdir = point(*insdir)
        self.insoffset = point(*insoffset)
        self.Ninit = 0

        self.atoms: List[int] = []   # atom ids in molecule
        self.conformations: List[np.ndarray] = []
        self.conf_dist = DiscreteDistribution()

        self.inserter: Optional[Callable] = None
        self._frozen = False

    def _check_mutable(self):
        if self._frozen:
            raise ContractViolation(f"molecule '{self.name}' is frozen; modify it during setup only")

    def freeze(self) -> "MoleculeData":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def add_conformation(self, particles, weight: float = 1.0):
        """
        Store a single conformation.

        Parameters:
            particles: Particle array (copied)
            weight: Relative weight of conformation

        Raises:
            ContractViolation: if the entry is frozen
        """
        self._check_mutable()
        vec = np.array(as_particle_array(particles), copy=True)
        if self.atoms and len(vec) != len(self.atoms):
            raise ConfigurationError(
                f"molecule '{self.name}': conformation has {len(vec)} particles, "
                f"expected {len(self.atoms)}")
        if not self.atoms:
            self.atoms = [int(i) for i in vec['id']]
        self.conformations.append(vec)
        self.conf_dist.push(weight)

    def num_conformations(self) -> int:
        return len(self.conformations)

    def random_conformation(self, rand: Random) -> Tuple[int, np.ndarray]:
        """
        Weighted random conformation.

        Returns:
            (index, particles) where particles is a copy of the stored conformation

        Raises:
            ResourceExhaustedError: if no conformation is stored
        """
        if not self.conformations:
            raise ResourceExhaustedError(
                f"No configurations for molecule '{self.name}'. "
                f"Perhaps you forgot to specify the 'atomic' keyword?")
        confid = self.conf_dist(rand)
        return confid, self.conformations[confid].copy()

    def set_inserter(self, inserter: Callable):
        self._check_mutable()
        self.inserter = inserter

    def insert(self, geo, rand: Random, other: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Random conformation placed in the container by the molecule's inserter.

        Without an inserter a default `RandomInserter` is used for this call.

        Parameters:
            geo: Geometry
            rand: Random source
            other: Existing particles (for overlap checks)
        """
        inserter = self.inserter
        if inserter is None:
            from mcspace.molecules.inserter import RandomInserter
            inserter = RandomInserter.from_molecule(self)
        return inserter(geo, other if other is not None else empty_particles(0), self, rand)

    def to_dict(self) -> dict:
        return {self.name: {
            "activity": self.activity / units.molar(1.0),
            "atomic": self.atomic,
            "id": self.id,
            "insdir": point_to_list(self.insdir),
            "insoffset": point_to_list(self.insoffset),
            "keeppos": self.keeppos,
        }}

    @classmethod
    def from_dict(cls, j: dict) -> "MoleculeData":
        name, val = _single_entry(j, "MoleculeData")
        m = cls(name=name)
        try:
            m.activity = units.molar(float(val.get("activity", 0.0)))
            m.atomic = bool(val.get("atomic", m.atomic))
            m.rotate = bool(val.get("rotate", m.rotate))
            m.keeppos = bool(val.get("keeppos", m.keeppos))
            m.id = int(val.get("id", m.id))
            m.Ninit = int(val.get("Ninit", m.Ninit))
            if "insdir" in val:
                m.insdir = point_from_list(val["insdir"])
            if "insoffset" in val:
                m.insoffset = point_from_list(val["insoffset"])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"molecule '{name}': {e}") from e
        m.structure = val.get("structure")
        return m

    def __repr__(self) -> str:
        return (f"MoleculeData(name={self.name!r}, id={self.id}, atomic={self.atomic}, "
                f"conformations={len(self.conformations)})")


T = TypeVar("T", AtomData, MoleculeData)


class Registry(Generic[T]):
    """Append-only catalog addressed by integer id (== index)."""

    def __init__(self, items=()):
        self._items: List[T] = []
        self._frozen = False
        for item in items:
            self.append(item)

    def append(self, item: T) -> T:
        if self._frozen:
            raise ContractViolation("catalog is frozen; entries can only be added during setup")
        item.id = len(self._items)
        self._items.append(item)
        return item

    def extend_from_records(self, records, factory: Callable[[dict], T]) -> List[T]:
        """
        Append entries from a list of single-key mappings (list order) or
        from one mapping (sorted key order).
        """
        if isinstance(records, dict):
            records = [{k: records[k]} for k in sorted(records)]
        if not isinstance(records, (list, tuple)):
            raise ConfigurationError("catalog: list or mapping of records expected")
        added = [self.append(factory(r)) for r in records]
        logger.info(f"Catalog: added {len(added)} entries ({', '.join(i.name for i in added)})")
        return added

    def freeze(self) -> "Registry[T]":
        """Block further appends and freeze molecule entries."""
        self._frozen = True
        for item in self._items:
            if isinstance(item, MoleculeData):
                item.freeze()
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def find_name(self, name: str) -> Optional[T]:
        """First entry with matching name, or None."""
        for item in self._items:
            if item.name == name:
                return item
        return None

    def id_of(self, name: str) -> int:
        item = self.find_name(name)
        if item is None:
            raise ConfigurationError(f"unknown name '{name}'")
        return item.id

    def __getitem__(self, id: int) -> T:
        if not 0 <= id < len(self._items):
            raise ContractViolation(f"type id {id} not in catalog of size {len(self._items)}")
        return self._items[id]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def weights(self) -> np.ndarray:
        """Per-id weight array (atom catalogs)."""
        return np.array([getattr(i, "weight", 1.0) for i in self._items], dtype=np.float64)

    def to_list(self, **kwargs) -> list:
        return [item.to_dict(**kwargs) for item in self._items]


AtomRegistry = Registry[AtomData]
MoleculeRegistry = Registry[MoleculeData]


def atom_template(atoms: Registry, atom_id: int) -> np.ndarray:
    """1-element particle array holding the template particle of an atom type."""
    return atoms[atom_id].p.to_structured_array()
