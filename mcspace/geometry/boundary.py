"""
Simulation container geometries.

A single `Geometry` class covers the closed set of container shapes; every
operation (distance, wrap, volume, random position, collision) dispatches on
`Geometry.kind` in one place:

    BOX       unbounded box; no wrapping, the side lengths only bound random placement
    CUBOID    box with periodic boundaries toggled per axis (e.g. XY slit)
    CYLINDER  cylindrical cell, periodic along z only
    SPHERE    spherical cell, no periodicity

Minimum image and wrapping correct each periodic axis once per call.
Callers must keep displacements below half a side length per step.
"""

import enum
import math
import numpy as np
import numba
from typing import Optional, Sequence

from mcspace.errors import ConfigurationError, ContractViolation
from mcspace.core.vector import point_from_list, point_to_list


class GeometryKind(enum.Enum):
    BOX = "box"
    CUBOID = "cuboid"
    CYLINDER = "cylinder"
    SPHERE = "sphere"


# ============================================================================
# Numba-accelerated boundary kernels
# ============================================================================

@numba.njit(fastmath=True, cache=True)
def _anint(x: float) -> float:
    """Round half away from zero."""
    if x > 0.0:
        return float(int(x + 0.5))
    return float(int(x - 0.5))


@numba.njit(fastmath=True, cache=True)
def minimum_image_kernel(r: np.ndarray, length: np.ndarray, half: np.ndarray,
                         periodic: np.ndarray):
    """
    Apply the minimum image convention to distance vectors in place.

    Parameters:
        r: Distance vectors (N, 3)
        length: Side lengths (3,)
        half: Half side lengths (3,)
        periodic: Per-axis periodicity flags (3,)
    """
    for i in range(r.shape[0]):
        for k in range(3):
            if periodic[k]:
                if r[i, k] > half[k]:
                    r[i, k] -= length[k]
                elif r[i, k] < -half[k]:
                    r[i, k] += length[k]


@numba.njit(fastmath=True, cache=True)
def wrap_kernel(a: np.ndarray, length: np.ndarray, half: np.ndarray,
                length_inv: np.ndarray, periodic: np.ndarray):
    """
    Fold positions back into the primary cell in place.

    Parameters:
        a: Positions (N, 3)
        length: Side lengths (3,)
        half: Half side lengths (3,)
        length_inv: Inverse side lengths (3,)
        periodic: Per-axis periodicity flags (3,)
    """
    for i in range(a.shape[0]):
        for k in range(3):
            if periodic[k] and abs(a[i, k]) > half[k]:
                a[i, k] -= length[k] * _anint(a[i, k] * length_inv[k])


# ============================================================================
# Geometry
# ============================================================================

_PERIODICITY = {
    GeometryKind.BOX: (False, False, False),
    GeometryKind.CYLINDER: (False, False, True),
    GeometryKind.SPHERE: (False, False, False),
}


class Geometry:
    """
    Container geometry.

    Example:
        geo = Geometry.cuboid((2, 3, 4))
        a = np.array([1.1, 1.5, -2.001])
        geo.boundary(a)       # a -> (-0.9, 1.5, 1.999)
        r = geo.vdist(a, b)   # minimum image distance vector
    """

    def __init__(self, kind: GeometryKind = GeometryKind.CUBOID,
                 length: Sequence[float] = (1.0, 1.0, 1.0),
                 periodic: Sequence[bool] = (True, True, True),
                 radius: float = 0.0):
        self.kind = GeometryKind(kind)
        self.radius = 0.0
        if self.kind is GeometryKind.CUBOID:
            self.periodic = np.array(periodic, dtype=np.bool_)
        else:
            self.periodic = np.array(_PERIODICITY[self.kind], dtype=np.bool_)
        self.set_length(length)
        if self.kind is GeometryKind.CYLINDER:
            self.set_radius(radius, self.len[2])
        elif self.kind is GeometryKind.SPHERE:
            self.set_radius(radius)
        self._check_volume()

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def box(cls, length) -> "Geometry":
        return cls(GeometryKind.BOX, _as_length(length))

    @classmethod
    def cuboid(cls, length, periodic: Sequence[bool] = (True, True, True)) -> "Geometry":
        return cls(GeometryKind.CUBOID, _as_length(length), periodic)

    @classmethod
    def slit(cls, length) -> "Geometry":
        """Cuboid with periodic boundaries in x and y only."""
        return cls(GeometryKind.CUBOID, _as_length(length), (True, True, False))

    @classmethod
    def cylinder(cls, radius: float, length: float) -> "Geometry":
        return cls(GeometryKind.CYLINDER, (2 * radius, 2 * radius, length), radius=radius)

    @classmethod
    def sphere(cls, radius: float) -> "Geometry":
        return cls(GeometryKind.SPHERE, (2 * radius,) * 3, radius=radius)

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    def set_length(self, length: Sequence[float]):
        """Set side lengths of the (bounding) box."""
        self.len = np.array(length, dtype=np.float64)
        self.len_half = 0.5 * self.len
        with np.errstate(divide='ignore'):
            self.len_inv = 1.0 / self.len

    def set_radius(self, radius: float, length: Optional[float] = None):
        """Set radius (and cylinder length); updates the bounding box."""
        self.radius = float(radius)
        d = 2 * self.radius
        if self.kind is GeometryKind.CYLINDER:
            self.set_length((d, d, self.len[2] if length is None else length))
        elif self.kind is GeometryKind.SPHERE:
            self.set_length((d, d, d))
        else:
            raise ContractViolation(f"{self.kind.value} geometry has no radius")

    @property
    def length(self) -> np.ndarray:
        return self.len

    def _check_volume(self):
        if not self.get_volume() > 0:
            raise ConfigurationError(f"{self.kind.value}: volume is zero or less")

    def set_volume(self, volume: float, scaling: Sequence[float] = (1.0, 1.0, 1.0)):
        """
        Set container volume.

        Parameters:
            volume: New volume [Å³]
            scaling: Relative side lengths for box geometries (default cube)

        Raises:
            ConfigurationError: if the volume or the resulting shape is not positive
        """
        if not volume > 0:
            raise ConfigurationError(f"cannot set volume {volume}; must be positive")
        if self.kind in (GeometryKind.BOX, GeometryKind.CUBOID):
            s = np.asarray(scaling, dtype=np.float64)
            if s.shape != (3,) or np.any(s <= 0):
                raise ConfigurationError("volume scaling must hold three positive numbers")
            self.set_length(np.cbrt(volume / np.prod(s)) * s)
        elif self.kind is GeometryKind.CYLINDER:
            self.set_radius(math.sqrt(volume / (math.pi * self.len[2])))
        elif self.kind is GeometryKind.SPHERE:
            self.set_radius(np.cbrt(3 * volume / (4 * math.pi)))
        self._check_volume()

    def get_volume(self, dim: int = 3) -> float:
        """
        Volume (dim=3), cross-section area (dim=2) or length (dim=1).

        For boxes the area is x·y and the length is z; for cylinders the
        area is the disk and the length is the axis; for spheres the area is
        the equatorial disk and the length the diameter.
        """
        if dim not in (1, 2, 3):
            raise ContractViolation(f"dimension must be 1, 2 or 3, got {dim}")
        if self.kind in (GeometryKind.BOX, GeometryKind.CUBOID):
            if dim == 1:
                return float(self.len[2])
            if dim == 2:
                return float(self.len[0] * self.len[1])
            return float(np.prod(self.len))
        if self.kind is GeometryKind.CYLINDER:
            r2 = self.radius**2
            if dim == 1:
                return float(self.len[2])
            if dim == 2:
                return math.pi * r2
            return math.pi * r2 * float(self.len[2])
        if dim == 1:
            return 2 * self.radius
        if dim == 2:
            return math.pi * self.radius**2
        return 4.0 / 3.0 * math.pi * self.radius**3

    # ------------------------------------------------------------------
    # Random placement
    # ------------------------------------------------------------------

    def randompos(self, rand, out: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Uniform random position inside the container.

        Parameters:
            rand: Callable returning doubles in [0,1)
            out: Optional (3,) array to write into

        Returns:
            The position (`out` if given)
        """
        m = np.empty(3) if out is None else out
        if self.kind in (GeometryKind.BOX, GeometryKind.CUBOID):
            m[0] = (rand() - 0.5) * self.len[0]
            m[1] = (rand() - 0.5) * self.len[1]
            m[2] = (rand() - 0.5) * self.len[2]
        elif self.kind is GeometryKind.CYLINDER:
            r2 = self.radius**2
            d = 2 * self.radius
            m[2] = (rand() - 0.5) * self.len[2]
            while True:
                m[0] = (rand() - 0.5) * d
                m[1] = (rand() - 0.5) * d
                if m[0]**2 + m[1]**2 <= r2:
                    break
        else:
            r2 = self.radius**2
            d = 2 * self.radius
            while True:
                m[0] = (rand() - 0.5) * d
                m[1] = (rand() - 0.5) * d
                m[2] = (rand() - 0.5) * d
                if m @ m <= r2:
                    break
        return m

    # ------------------------------------------------------------------
    # Distances and boundaries
    # ------------------------------------------------------------------

    @property
    def is_periodic(self) -> bool:
        return bool(self.periodic.any())

    def vdist(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """
        (Minimum image) distance vector a - b.

        Broadcasts: `a` and/or `b` may be (3,) or (N, 3).
        """
        r = np.subtract(a, b, dtype=np.float64)
        if self.is_periodic:
            minimum_image_kernel(r.reshape(-1, 3), self.len, self.len_half, self.periodic)
        return r

    def sqdist(self, a: np.ndarray, b: np.ndarray):
        r = self.vdist(a, b)
        return np.sum(r * r, axis=-1)

    def boundary(self, a: np.ndarray):
        """Apply periodic boundaries in place to a point (3,) or points (N, 3)."""
        if not self.is_periodic or a.size == 0:
            return
        flat = a.reshape(-1, 3)
        if not np.shares_memory(flat, a):
            raise ContractViolation("boundary: positions must be a writable array view")
        wrap_kernel(flat, self.len, self.len_half, self.len_inv, self.periodic)

    def unwrap(self, a: np.ndarray, ref: np.ndarray):
        """Remove periodic boundaries with respect to a reference point (in place)."""
        a[...] = self.vdist(a, ref) + ref

    def collision(self, a: np.ndarray, radius: float = 0.0) -> bool:
        """True if a sphere of `radius` at `a` sticks out of the container."""
        a = np.asarray(a, dtype=np.float64)
        if self.kind is GeometryKind.BOX:
            return False
        if self.kind is GeometryKind.CUBOID:
            outside = (np.abs(a) + radius > self.len_half) & ~self.periodic
            return bool(outside.any())
        if self.kind is GeometryKind.CYLINDER:
            return bool(math.hypot(a[0], a[1]) + radius > self.radius)
        return bool(math.sqrt(a @ a) + radius > self.radius)

    def mass_center(self, positions: np.ndarray, weights: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Weighted centre of a set of positions, honouring periodic boundaries.

        Positions are unwrapped relative to the first one, averaged and
        wrapped back into the cell.
        """
        positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        if len(positions) == 0:
            return np.zeros(3)
        if weights is None:
            weights = np.ones(len(positions))
        weights = np.asarray(weights, dtype=np.float64)
        total = weights.sum()
        if total == 0:
            raise ContractViolation("mass centre: total weight is zero")
        ref = positions[0]
        shifted = self.vdist(positions, ref)
        cm = ref + (weights[:, None] * shifted).sum(axis=0) / total
        self.boundary(cm)
        return cm

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        j = {"type": self.kind.value}
        if self.kind in (GeometryKind.BOX, GeometryKind.CUBOID):
            j["length"] = point_to_list(self.len)
            if self.kind is GeometryKind.CUBOID:
                j["periodic"] = [bool(p) for p in self.periodic]
        elif self.kind is GeometryKind.CYLINDER:
            j["radius"] = self.radius
            j["length"] = float(self.len[2])
        else:
            j["radius"] = self.radius
        return j

    @classmethod
    def from_dict(cls, j: dict) -> "Geometry":
        """
        Create from a record such as {"length": [2, 3, 4]} (periodic cuboid),
        {"type": "slit", "length": 10}, {"type": "cylinder", "radius": 5, "length": 20}
        or {"type": "sphere", "radius": 10}.

        Raises:
            ConfigurationError: unknown type, missing keys or non-positive volume
        """
        if not isinstance(j, dict):
            raise ConfigurationError("geometry: mapping expected")
        kind = str(j.get("type", "cuboid")).lower()
        try:
            if kind == "cuboid":
                return cls.cuboid(j["length"], j.get("periodic", (True, True, True)))
            if kind == "slit":
                return cls.slit(j["length"])
            if kind == "box":
                return cls.box(j["length"])
            if kind == "cylinder":
                return cls.cylinder(float(j["radius"]), float(j["length"]))
            if kind == "sphere":
                return cls.sphere(float(j["radius"]))
        except KeyError as e:
            raise ConfigurationError(f"geometry '{kind}': missing key {e}") from None
        except ConfigurationError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"geometry '{kind}': {e}") from e
        raise ConfigurationError(f"unknown geometry type '{kind}'")

    def copy(self) -> "Geometry":
        return Geometry.from_dict(self.to_dict())

    def __repr__(self) -> str:
        return f"Geometry({self.kind.value}, length={self.len}, radius={self.radius})"


def _as_length(length) -> np.ndarray:
    if np.isscalar(length):
        return np.full(3, float(length))
    return point_from_list(length)
