"""
Random insertion of molecules into a container.

Inserters are callables `inserter(geo, other, mol, rand) -> particles` used
for grand canonical moves, Widom insertion and initial configurations. The
retry loop is bounded; when the budget is spent an `InsertionError` is raised
and the calling move should reject the trial instead of stopping the run.
"""

import logging
import numpy as np
from typing import Optional, Sequence

from mcspace.errors import ConfigurationError, InsertionError
from mcspace.core.particle import Capability, rotate_particles
from mcspace.core.vector import QuaternionRotate, point

logger = logging.getLogger(__name__)


class RandomInserter:
    """
    Insert a random conformation at a random position and orientation.

    Parameters:
        dir: Per-axis scaling of the random position (e.g. (1, 1, 0) inserts in the xy plane)
        offset: Added to the (scaled) random position
        check_overlap: Reject positions sticking out of the container
        check_particle_overlap: Reject hard-sphere overlap with existing particles
        rotate: Randomly rotate the conformation
        keeppos: Keep the stored coordinates (no translation or rotation)
        max_trials: Retry budget
    """

    def __init__(self, dir: Sequence[float] = (1.0, 1.0, 1.0),
                 offset: Sequence[float] = (0.0, 0.0, 0.0),
                 check_overlap: bool = True, check_particle_overlap: bool = False,
                 rotate: bool = True, keeppos: bool = False, max_trials: int = 2000,
                 capabilities: Capability = Capability.ALL):
        self.dir = point(*dir)
        self.offset = point(*offset)
        self.check_overlap = check_overlap
        self.check_particle_overlap = check_particle_overlap
        self.rotate = rotate
        self.keeppos = keeppos
        self.max_trials = max_trials
        self.capabilities = capabilities

    @classmethod
    def from_molecule(cls, mol, **kwargs) -> "RandomInserter":
        """Inserter configured from a molecule's `insdir`, `insoffset`, `rotate` and `keeppos`."""
        return cls(dir=mol.insdir, offset=mol.insoffset, rotate=mol.rotate,
                   keeppos=mol.keeppos, **kwargs)

    def __call__(self, geo, other: np.ndarray, mol, rand) -> np.ndarray:
        """
        Trial coordinates for one molecule of type `mol`.

        Parameters:
            geo: Geometry
            other: Existing (active) particles, for particle overlap checks
            mol: MoleculeData
            rand: Random source

        Raises:
            ConfigurationError: if the container has no volume
            InsertionError: if no valid placement was found within `max_trials`
            ResourceExhaustedError: if the molecule has no conformation
        """
        if abs(geo.get_volume()) < 1e-20:
            raise ConfigurationError("cannot insert into a container with zero volume")

        for _ in range(self.max_trials):
            _, v = mol.random_conformation(rand)
            if mol.atomic:
                self._place_atoms(v, geo, rand)
            elif not self.keeppos:
                self._place_molecule(v, geo, rand)
            elif self._container_overlap(v, geo):
                logger.warning(f"Stored positions of '{mol.name}' collide with the container")
                raise InsertionError(1, mol.name)

            if self.check_overlap and self._container_overlap(v, geo):
                continue
            if self.check_particle_overlap and self._particle_overlap(v, other, geo):
                continue
            return v

        logger.warning(f"Insertion of '{mol.name}' gave up after {self.max_trials} trials")
        raise InsertionError(self.max_trials, mol.name)

    def _place_atoms(self, v: np.ndarray, geo, rand):
        """Independent random position and orientation for every atom."""
        for i in range(len(v)):
            rot = QuaternionRotate.random(rand)
            rotate_particles(v[i:i + 1], rot, self.capabilities)
            pos = geo.randompos(rand) * self.dir + self.offset
            geo.boundary(pos)
            v['pos'][i] = pos

    def _place_molecule(self, v: np.ndarray, geo, rand):
        """Rigid body placement: center at origin, rotate, move to a random position."""
        cm = geo.mass_center(v['pos'])
        v['pos'] = geo.vdist(v['pos'], cm)
        if self.rotate:
            rot = QuaternionRotate.random(rand)
            v['pos'] = rot(v['pos'])
            rotate_particles(v, rot, self.capabilities)
        a = geo.randompos(rand) * self.dir + self.offset
        v['pos'] += a
        geo.boundary(v['pos'])

    @staticmethod
    def _container_overlap(v: np.ndarray, geo) -> bool:
        return any(geo.collision(pos) for pos in v['pos'])

    @staticmethod
    def _particle_overlap(v: np.ndarray, other: Optional[np.ndarray], geo) -> bool:
        if other is None or len(other) == 0:
            return False
        for p in v:
            d2 = geo.sqdist(other['pos'], p['pos'])
            contact = other['radius'] + p['radius']
            if np.any(d2 < contact * contact):
                return True
        return False
