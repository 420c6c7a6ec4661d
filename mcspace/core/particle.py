"""
Particle state using NumPy structured arrays.

Every particle record carries the full set of capability fields; a
`Capability` flag set chosen per Space decides which of them are live, i.e.
serialized and rotated. Rotation and (de)serialization are dispatched over
the enabled flags.

Record keys:

    Keyword  | Capability   | Description
    -------- | ------------ | ------------------------------------------
    id       | (always)     | Type id (index in the atom catalog)
    pos      | (always)     | Position [Å]
    q        | CHARGE       | Valency [e]
    r        | RADIUS       | Radius [Å]
    mu       | DIPOLE       | Dipole moment unit vector
    mulen    | DIPOLE       | Dipole moment scalar [eÅ]
    Q        | QUADRUPOLE   | Quadrupole tensor (xx, xy, xz, yy, yz, zz)
    scdir    | CIGAR        | Sphero-cylinder direction unit vector
    sclen    | CIGAR        | Sphero-cylinder length [Å]
"""

import enum
import numpy as np
from typing import Iterable, Optional, Sequence, Union

from mcspace.errors import ConfigurationError
from mcspace.core.vector import (
    QuaternionRotate, Tensor, matrices_to_tensors, point_from_list, point_to_list,
    tensors_to_matrices,
)


PARTICLE_DTYPE = np.dtype([
    ('id', np.int32),              # type id
    ('pos', np.float64, 3),        # x, y, z [Å]
    ('charge', np.float64),        # valency [e]
    ('radius', np.float64),        # [Å]
    ('mu', np.float64, 3),         # dipole unit vector
    ('mulen', np.float64),         # dipole scalar [eÅ]
    ('Q', np.float64, 6),          # quadrupole coefficients
    ('scdir', np.float64, 3),      # sphero-cylinder direction
    ('sclen', np.float64),         # sphero-cylinder length [Å]
])


class Capability(enum.Flag):
    NONE = 0
    CHARGE = enum.auto()
    RADIUS = enum.auto()
    DIPOLE = enum.auto()
    QUADRUPOLE = enum.auto()
    CIGAR = enum.auto()
    ALL = CHARGE | RADIUS | DIPOLE | QUADRUPOLE | CIGAR

    @classmethod
    def parse(cls, names: Union["Capability", str, Iterable[str]]) -> "Capability":
        """Capability from a flag, a name or a list of names (case insensitive)."""
        if isinstance(names, Capability):
            return names
        if isinstance(names, str):
            names = [names]
        flags = cls.NONE
        for name in names:
            try:
                flags |= cls[name.upper()]
            except KeyError:
                raise ConfigurationError(f"unknown particle capability '{name}'") from None
        return flags


def empty_particles(n: int) -> np.ndarray:
    """Allocate `n` particle records with default values."""
    p = np.zeros(n, dtype=PARTICLE_DTYPE)
    p['id'] = -1
    p['mu'] = (1.0, 0.0, 0.0)
    p['scdir'] = (1.0, 0.0, 0.0)
    return p


def as_particle_array(particles) -> np.ndarray:
    """Coerce a structured array, a `Particle` or a sequence of `Particle`s to PARTICLE_DTYPE."""
    if isinstance(particles, Particle):
        return particles.to_structured_array()
    if isinstance(particles, np.ndarray):
        if particles.dtype != PARTICLE_DTYPE:
            raise ConfigurationError(f"particle array has dtype {particles.dtype}, expected PARTICLE_DTYPE")
        return particles.reshape(-1)
    particles = list(particles)
    out = empty_particles(len(particles))
    for i, p in enumerate(particles):
        out[i] = p.to_structured_array()[0] if isinstance(p, Particle) else p
    return out


# ============================================================================
# Rotation of internal coordinates (visitor over enabled capabilities)
# ============================================================================

def _rotate_dipole(p: np.ndarray, rot: QuaternionRotate):
    p['mu'] = rot.rotate_vectors(p['mu'])


def _rotate_quadrupole(p: np.ndarray, rot: QuaternionRotate):
    p['Q'] = matrices_to_tensors(rot.rotate_tensor(tensors_to_matrices(p['Q'])))


def _rotate_cigar(p: np.ndarray, rot: QuaternionRotate):
    p['scdir'] = rot.rotate_vectors(p['scdir'])


_ROTATORS = {
    Capability.DIPOLE: _rotate_dipole,
    Capability.QUADRUPOLE: _rotate_quadrupole,
    Capability.CIGAR: _rotate_cigar,
}


def rotate_particles(p: np.ndarray, rot: QuaternionRotate,
                     capabilities: Capability = Capability.ALL):
    """
    Rotate internal coordinates (dipole, quadrupole, rod direction) in place.

    Positions and scalar properties are left untouched.

    Parameters:
        p: Structured particle array (or a view into the particle buffer)
        rot: Rotation to apply
        capabilities: Enabled capabilities; others are skipped
    """
    if len(p) == 0:
        return
    for flag, rotator in _ROTATORS.items():
        if flag in capabilities:
            rotator(p, rot)


# ============================================================================
# Record (de)serialization
# ============================================================================

def particle_to_dict(p, capabilities: Capability = Capability.ALL) -> dict:
    """Single particle record (np.void or 1-element array) → field-named mapping."""
    j = {"id": int(p['id']), "pos": point_to_list(p['pos'])}
    if Capability.CHARGE in capabilities:
        j["q"] = float(p['charge'])
    if Capability.RADIUS in capabilities:
        j["r"] = float(p['radius'])
    if Capability.DIPOLE in capabilities:
        j["mulen"] = float(p['mulen'])
        j["mu"] = point_to_list(p['mu'])
    if Capability.QUADRUPOLE in capabilities:
        j["Q"] = [float(v) for v in p['Q']]
    if Capability.CIGAR in capabilities:
        j["sclen"] = float(p['sclen'])
        j["scdir"] = point_to_list(p['scdir'])
    return j


def particle_from_dict(j: dict, capabilities: Capability = Capability.ALL,
                       out: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Field-named mapping → particle record.

    Missing keys keep the value already present in `out` (or the default).

    Parameters:
        j: Record
        capabilities: Only keys of enabled capabilities are read
        out: Record (np.void view) to update; a new one is allocated if None

    Returns:
        The updated record
    """
    if not isinstance(j, dict):
        raise ConfigurationError(f"particle record must be a mapping, got {type(j).__name__}")
    if out is None:
        out = empty_particles(1)[0]
    if "id" in j:
        out['id'] = int(j["id"])
    if "pos" in j:
        out['pos'] = point_from_list(j["pos"])
    if Capability.CHARGE in capabilities and "q" in j:
        out['charge'] = float(j["q"])
    if Capability.RADIUS in capabilities and "r" in j:
        out['radius'] = float(j["r"])
    if Capability.DIPOLE in capabilities:
        if "mulen" in j:
            out['mulen'] = float(j["mulen"])
        if "mu" in j:
            out['mu'] = point_from_list(j["mu"])
    if Capability.QUADRUPOLE in capabilities and "Q" in j:
        out['Q'] = Tensor.from_list(j["Q"]).coefficients
    if Capability.CIGAR in capabilities:
        if "sclen" in j:
            out['sclen'] = float(j["sclen"])
        if "scdir" in j:
            out['scdir'] = point_from_list(j["scdir"])
    return out


class Particle:
    """Single particle (for convenience)."""

    def __init__(self, id: int = -1, pos: Sequence[float] = (0.0, 0.0, 0.0),
                 charge: float = 0.0, radius: float = 0.0,
                 mu: Sequence[float] = (1.0, 0.0, 0.0), mulen: float = 0.0,
                 Q: Optional[Tensor] = None,
                 scdir: Sequence[float] = (1.0, 0.0, 0.0), sclen: float = 0.0):
        """
        Initialize a single particle.

        Parameters:
            id: Type id
            pos: (x, y, z) position [Å]
            charge: Valency [e]
            radius: Radius [Å]
            mu: Dipole moment unit vector
            mulen: Dipole moment scalar [eÅ]
            Q: Quadrupole tensor
            scdir: Sphero-cylinder direction unit vector
            sclen: Sphero-cylinder length [Å]
        """
        self.id = id
        self.pos = np.array(pos, dtype=np.float64)
        self.charge = charge
        self.radius = radius
        self.mu = np.array(mu, dtype=np.float64)
        self.mulen = mulen
        self.Q = Q if Q is not None else Tensor()
        self.scdir = np.array(scdir, dtype=np.float64)
        self.sclen = sclen

    def to_structured_array(self) -> np.ndarray:
        """Convert to a 1-element structured array."""
        p = empty_particles(1)
        p['id'][0] = self.id
        p['pos'][0] = self.pos
        p['charge'][0] = self.charge
        p['radius'][0] = self.radius
        p['mu'][0] = self.mu
        p['mulen'][0] = self.mulen
        p['Q'][0] = self.Q.coefficients
        p['scdir'][0] = self.scdir
        p['sclen'][0] = self.sclen
        return p

    @classmethod
    def from_record(cls, rec) -> "Particle":
        return cls(id=int(rec['id']), pos=rec['pos'], charge=float(rec['charge']),
                   radius=float(rec['radius']), mu=rec['mu'], mulen=float(rec['mulen']),
                   Q=Tensor(*rec['Q']), scdir=rec['scdir'], sclen=float(rec['sclen']))

    def rotate(self, rot: QuaternionRotate, capabilities: Capability = Capability.ALL):
        """Rotate internal coordinates; position is not touched."""
        p = self.to_structured_array()
        rotate_particles(p, rot, capabilities)
        self.mu = p['mu'][0].copy()
        self.scdir = p['scdir'][0].copy()
        self.Q = Tensor(*p['Q'][0])

    def to_dict(self, capabilities: Capability = Capability.ALL) -> dict:
        return particle_to_dict(self.to_structured_array()[0], capabilities)

    @classmethod
    def from_dict(cls, j: dict, capabilities: Capability = Capability.ALL) -> "Particle":
        return cls.from_record(particle_from_dict(j, capabilities))

    def __repr__(self) -> str:
        return f"Particle(id={self.id}, pos={self.pos})"
