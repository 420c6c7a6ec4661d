"""
Particle arena and elastic ranges.

`ParticleBuffer` owns a growable structured array. Windows into it are kept
as integer offsets plus the buffer generation at which they were derived;
every reallocation bumps the generation and the owner must rebase the
windows before they can be used again.

An `ElasticRange` is a window [begin, trueend) whose active part
[begin, end) can shrink and grow without inserting or erasing:

    - just deactivated elements are moved to `end` and can be retrieved from there;
    - just activated elements are placed at `end - n`;
    - the true size is given by `capacity()`.
"""

import logging
import numpy as np

from mcspace.errors import ContractViolation, StaleRangeError
from mcspace.core.particle import as_particle_array, empty_particles

logger = logging.getLogger(__name__)


class ParticleBuffer:
    """Contiguous particle storage with amortised growth."""

    def __init__(self, capacity: int = 0):
        self._data = empty_particles(capacity)
        self._size = 0
        self.generation = 0

    @property
    def data(self) -> np.ndarray:
        """View of the used part of the buffer."""
        return self._data[:self._size]

    def __len__(self) -> int:
        return self._size

    def capacity(self) -> int:
        return len(self._data)

    def reserve(self, n: int) -> bool:
        """
        Make room for at least `n` particles.

        Returns:
            True if the storage was reallocated (all windows must be rebased)
        """
        if n <= len(self._data):
            return False
        new = empty_particles(max(n, 2 * len(self._data)))
        new[:self._size] = self._data[:self._size]
        self._data = new
        self.generation += 1
        logger.debug(f"Particle buffer reallocated: capacity={len(new)}, generation={self.generation}")
        return True

    def extend(self, particles) -> bool:
        """
        Append particles to the back.

        Returns:
            True if the storage was reallocated
        """
        particles = as_particle_array(particles)
        n = len(particles)
        reallocated = self.reserve(self._size + n)
        self._data[self._size:self._size + n] = particles
        self._size += n
        return reallocated

    def copy(self) -> "ParticleBuffer":
        other = ParticleBuffer.__new__(ParticleBuffer)
        other._data = self._data.copy()
        other._size = self._size
        other.generation = 0
        return other

    def __repr__(self) -> str:
        return f"ParticleBuffer(size={self._size}, capacity={len(self._data)}, generation={self.generation})"


def rotate_block(a: np.ndarray, first: int, middle: int, last: int):
    """In-place left rotation of a[first:last] so that a[middle] becomes a[first]."""
    if first < middle < last:
        a[first:last] = np.concatenate((a[middle:last], a[first:middle]))


class ElasticRange:
    """
    Window [begin, trueend) into a ParticleBuffer with an active part [begin, end).

    Offsets passed to `deactivate`, `activate` and `resize` are relative to
    `begin`. Invariant: size() + inactive_size() == capacity().
    """

    def __init__(self, buffer: ParticleBuffer, begin: int, end: int):
        if not 0 <= begin <= end <= len(buffer):
            raise ContractViolation(f"range [{begin}, {end}) outside buffer of size {len(buffer)}")
        self._buffer = buffer
        self._begin = begin
        self._end = end
        self._trueend = end
        self._generation = buffer.generation

    # ------------------------------------------------------------------
    # Offsets
    # ------------------------------------------------------------------

    @property
    def begin(self) -> int:
        return self._begin

    @property
    def end(self) -> int:
        return self._end

    @property
    def trueend(self) -> int:
        return self._trueend

    def size(self) -> int:
        return self._end - self._begin

    def capacity(self) -> int:
        return self._trueend - self._begin

    def inactive_size(self) -> int:
        return self._trueend - self._end

    def empty(self) -> bool:
        return self._end == self._begin

    def __len__(self) -> int:
        return self.size()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def _storage(self) -> np.ndarray:
        if self._generation != self._buffer.generation:
            raise StaleRangeError(
                f"range [{self._begin}, {self._trueend}) used after buffer reallocation "
                f"(generation {self._generation} != {self._buffer.generation}); rebase first")
        return self._buffer.data

    @property
    def active(self) -> np.ndarray:
        """Writable view of the active particles."""
        return self._storage()[self._begin:self._end]

    @property
    def inactive(self) -> np.ndarray:
        """Writable view of the deactivated particles."""
        return self._storage()[self._end:self._trueend]

    @property
    def window(self) -> np.ndarray:
        """Writable view of the whole capacity window."""
        return self._storage()[self._begin:self._trueend]

    def __iter__(self):
        return iter(self.active)

    def __getitem__(self, offset: int):
        if not 0 <= offset < self.size():
            raise IndexError(f"offset {offset} outside active range of size {self.size()}")
        return self.active[offset]

    # ------------------------------------------------------------------
    # Elasticity
    # ------------------------------------------------------------------

    def deactivate(self, first: int, last: int):
        """
        Deactivate [first, last) by moving it to the end of the active part.

        Raises:
            ContractViolation: if the span is not within [0, size()]
        """
        if not 0 <= first <= last <= self.size():
            raise ContractViolation(
                f"deactivate: span [{first}, {last}) outside active range [0, {self.size()})")
        n = last - first
        rotate_block(self._storage(), self._begin + first, self._begin + last, self._end)
        self._end -= n

    def activate(self, first: int, last: int):
        """
        Activate previously deactivated elements [first, last); they end up at end-n.

        Raises:
            ContractViolation: if the span is not within [size(), capacity()]
        """
        if not self.size() <= first <= last <= self.capacity():
            raise ContractViolation(
                f"activate: span [{first}, {last}) outside inactive range "
                f"[{self.size()}, {self.capacity()})")
        n = last - first
        rotate_block(self._storage(), self._end, self._begin + first, self._begin + last)
        self._end += n

    def resize(self, n: int):
        """Move the active/inactive boundary so that size() == n."""
        if not 0 <= n <= self.capacity():
            raise ContractViolation(f"resize: {n} outside capacity {self.capacity()}")
        self._end = self._begin + n

    # ------------------------------------------------------------------
    # Relocation
    # ------------------------------------------------------------------

    def rebase(self, buffer: ParticleBuffer, old_origin: int = 0, new_origin: int = 0):
        """
        Re-derive the window after reallocation or when binding to a copied buffer.

        All three endpoints are recomputed by their offset from `old_origin`
        (the first window's begin) and placed relative to `new_origin`.

        Raises:
            ContractViolation: if size or capacity changed during relocation
        """
        size, capacity = self.size(), self.capacity()
        shift = new_origin - old_origin
        self._buffer = buffer
        self._begin += shift
        self._end += shift
        self._trueend += shift
        self._generation = buffer.generation
        if size != self.size() or capacity != self.capacity() or self._trueend > len(buffer):
            raise ContractViolation("Group relocation error")

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(begin={self._begin}, end={self._end}, "
                f"trueend={self._trueend})")
