"""
Geometric primitives: points, symmetric tensors and quaternion rotation.

Points are plain float64 NumPy arrays of shape (3,) so that they can be
written directly into the `pos`, `mu` and `scdir` fields of the particle
buffer. Rotation is delegated to scipy.spatial.transform.Rotation.
"""

import math
import numpy as np
from typing import Callable, Optional, Sequence
from scipy.spatial.transform import Rotation

from mcspace.errors import ConfigurationError

BoundaryFunction = Callable[[np.ndarray], None]

ORIGIN = np.zeros(3)


def point(x: float = 0.0, y: float = 0.0, z: float = 0.0) -> np.ndarray:
    """Create a 3d point."""
    return np.array([x, y, z], dtype=np.float64)


def point_from_list(values: Sequence[float]) -> np.ndarray:
    """
    Deserialize a point.

    Raises:
        ConfigurationError: if `values` does not hold exactly three numbers
    """
    try:
        arr = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"cannot convert {values!r} to a point: {e}") from e
    if arr.shape != (3,):
        raise ConfigurationError(f"point: array with exactly three numbers expected, got {values!r}")
    return arr


def point_to_list(p: np.ndarray) -> list:
    return [float(v) for v in p]


# ============================================================================
# Tensor
# ============================================================================

class Tensor:
    """
    Symmetric 3x3 tensor stored as six independent coefficients.

    Coefficient order: (xx, xy, xz, yy, yz, zz).
    """

    def __init__(self, xx: float = 0.0, xy: float = 0.0, xz: float = 0.0,
                 yy: float = 0.0, yz: float = 0.0, zz: float = 0.0):
        self.matrix = np.array([[xx, xy, xz],
                                [xy, yy, yz],
                                [xz, yz, zz]], dtype=np.float64)

    @classmethod
    def from_list(cls, values: Sequence[float]) -> "Tensor":
        """
        Deserialize from six coefficients.

        Raises:
            ConfigurationError: if `values` is not an array of exactly six numbers
        """
        if isinstance(values, (str, bytes)) or not hasattr(values, "__len__") or len(values) != 6:
            raise ConfigurationError("tensor: array with exactly six coefficients expected")
        return cls(*(float(v) for v in values))

    @property
    def coefficients(self) -> np.ndarray:
        m = self.matrix
        return np.array([m[0, 0], m[0, 1], m[0, 2], m[1, 1], m[1, 2], m[2, 2]])

    def to_list(self) -> list:
        return [float(v) for v in self.coefficients]

    def rotate(self, m: np.ndarray) -> "Tensor":
        """Similarity rotation T' = R T Rᵗ (in place)."""
        self.matrix = m @ self.matrix @ m.T
        return self

    def __getitem__(self, index):
        return self.matrix[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Tensor):
            return NotImplemented
        return bool(np.array_equal(self.matrix, other.matrix))

    def __repr__(self) -> str:
        return f"Tensor({', '.join(f'{v:g}' for v in self.coefficients)})"


def tensors_to_matrices(coefficients: np.ndarray) -> np.ndarray:
    """(N, 6) coefficient array → (N, 3, 3) symmetric matrices."""
    c = np.asarray(coefficients, dtype=np.float64).reshape(-1, 6)
    m = np.empty((len(c), 3, 3))
    m[:, 0, 0] = c[:, 0]
    m[:, 0, 1] = m[:, 1, 0] = c[:, 1]
    m[:, 0, 2] = m[:, 2, 0] = c[:, 2]
    m[:, 1, 1] = c[:, 3]
    m[:, 1, 2] = m[:, 2, 1] = c[:, 4]
    m[:, 2, 2] = c[:, 5]
    return m


def matrices_to_tensors(m: np.ndarray) -> np.ndarray:
    """(N, 3, 3) matrices → (N, 6) coefficient array."""
    return np.stack([m[:, 0, 0], m[:, 0, 1], m[:, 0, 2],
                     m[:, 1, 1], m[:, 1, 2], m[:, 2, 2]], axis=-1)


# ============================================================================
# Spherical coordinates and random unit vectors
# ============================================================================

def xyz2rtp(p: np.ndarray, origin: np.ndarray = ORIGIN) -> np.ndarray:
    """
    Convert cartesian to spherical coordinates.

    Returns:
        (r, theta, phi) with r in [0, inf), theta in [-pi, pi) and phi in [0, pi]
    """
    xyz = np.asarray(p, dtype=np.float64) - origin
    radius = np.linalg.norm(xyz)
    return np.array([radius,
                     math.atan2(xyz[1], xyz[0]),
                     math.acos(xyz[2] / radius)])


def rtp2xyz(rtp: np.ndarray, origin: np.ndarray = ORIGIN) -> np.ndarray:
    """Convert spherical (r, theta, phi) to cartesian coordinates, shifted by `origin`."""
    r, theta, phi = rtp
    return origin + r * np.array([math.cos(theta) * math.sin(phi),
                                  math.sin(theta) * math.sin(phi),
                                  math.cos(phi)])


def ranunit_neuman(rand) -> np.ndarray:
    """Random unit vector by rejection in the unit cube ("sphere picking")."""
    while True:
        p = np.array([rand() - 0.5, rand() - 0.5, rand() - 0.5])
        r2 = p @ p
        if 0.0 < r2 <= 0.25:
            return p / math.sqrt(r2)


def ranunit_polar(rand) -> np.ndarray:
    """Random unit vector using polar coordinates ("sphere picking")."""
    return rtp2xyz((1.0, 2 * math.pi * rand(), math.acos(2 * rand() - 1)))


ranunit = ranunit_polar


# ============================================================================
# Quaternion rotation
# ============================================================================

class QuaternionRotate:
    """
    Rotation by `angle` around `axis`.

    Example:
        rot = QuaternionRotate(math.pi / 2, (0, 1, 0))
        rot(point(1, 0, 0))          # -> (0, 0, -1)
        rot.rotate_tensor(matrix)    # R M Rᵗ
    """

    def __init__(self, angle: float = 0.0, axis: Sequence[float] = (0.0, 0.0, 1.0)):
        self.set(angle, axis)

    def set(self, angle: float, axis: Sequence[float]) -> "QuaternionRotate":
        u = np.asarray(axis, dtype=np.float64)
        norm = np.linalg.norm(u)
        if norm == 0:
            raise ConfigurationError("rotation axis must be non-zero")
        self.angle = float(angle)
        self.axis = u / norm
        self.rotation = Rotation.from_rotvec(self.angle * self.axis)
        self.matrix = self.rotation.as_matrix()
        return self

    @classmethod
    def random(cls, rand, max_angle: float = 2 * math.pi) -> "QuaternionRotate":
        """Random rotation angle in [0, max_angle) around a random unit vector."""
        angle = max_angle * rand()
        return cls(angle, ranunit(rand))

    @property
    def quaternion(self) -> np.ndarray:
        """Scalar-last quaternion (x, y, z, w)."""
        return self.rotation.as_quat()

    def __call__(self, a: np.ndarray, boundary: Optional[BoundaryFunction] = None,
                 shift: np.ndarray = ORIGIN) -> np.ndarray:
        """
        Rotate point(s) around `shift`, applying `boundary` before and after.

        Parameters:
            a: Point (3,) or points (N, 3)
            boundary: In-place boundary function (e.g. Geometry.boundary)
            shift: Rotation center

        Returns:
            Rotated copy of `a`
        """
        a = np.array(a, dtype=np.float64) - shift
        if boundary is not None:
            boundary(a)
        a = self.rotation.apply(a) + shift
        if boundary is not None:
            boundary(a)
        return a

    def rotate_vectors(self, v: np.ndarray) -> np.ndarray:
        """Rotate direction vector(s) without shift or boundaries."""
        return self.rotation.apply(v)

    def rotate_tensor(self, m: np.ndarray) -> np.ndarray:
        """Rotate matrix or stack of matrices: R M Rᵗ."""
        return self.matrix @ m @ self.matrix.T

    def __repr__(self) -> str:
        return f"QuaternionRotate(angle={self.angle:.4f}, axis={self.axis})"
