"""Tests for points, tensors and quaternion rotation."""

import math

import numpy as np
import pytest

from mcspace.errors import ConfigurationError
from mcspace.core.vector import (
    QuaternionRotate, Tensor, point, point_from_list, point_to_list, ranunit_neuman,
    ranunit_polar, rtp2xyz, xyz2rtp,
)
from mcspace.geometry.boundary import Geometry


def test_point_serialization():
    p = point_from_list([1, 2, 3])
    assert point_to_list(p) == [1.0, 2.0, 3.0]
    with pytest.raises(ConfigurationError):
        point_from_list([1, 2])
    with pytest.raises(ConfigurationError):
        point_from_list("abc")


def test_tensor_from_list_requires_six_values():
    t = Tensor.from_list([1, 2, 3, 4, 5, 6])
    assert t.to_list() == [1, 2, 3, 4, 5, 6]
    assert t[0, 1] == t[1, 0] == 2
    with pytest.raises(ConfigurationError):
        Tensor.from_list([1, 2, 3])


def test_tensor_rotation_about_y():
    q = QuaternionRotate(math.pi / 2, (0, 1, 0))
    t = Tensor(1, 2, 3, 4, 5, 6).rotate(q.matrix)
    np.testing.assert_allclose(t.coefficients, [6, 5, -3, 4, -2, 1], atol=1e-12)


def test_rotate_point():
    q = QuaternionRotate(math.pi / 2, (0, 1, 0))
    np.testing.assert_allclose(q(point(1, 0, 0)), [0, 0, -1], atol=1e-12)


def test_rotate_point_with_shift_and_boundary():
    geo = Geometry.cuboid((10, 10, 10))
    q = QuaternionRotate(math.pi, (0, 0, 1))
    # point and centre are 1.5 apart across the periodic x wall
    out = q(point(-4.5, 0, 0), geo.boundary, shift=point(4.0, 0, 0))
    np.testing.assert_allclose(out, [2.5, 0, 0], atol=1e-12)


def test_quaternion_and_zero_axis():
    q = QuaternionRotate(math.pi, (0, 0, 2))
    np.testing.assert_allclose(np.abs(q.quaternion), [0, 0, 1, 0], atol=1e-12)
    with pytest.raises(ConfigurationError):
        QuaternionRotate(1.0, (0, 0, 0))


def test_spherical_round_trip():
    p = point(1.0, -2.0, 0.5)
    np.testing.assert_allclose(rtp2xyz(xyz2rtp(p)), p, atol=1e-12)


def test_random_unit_vectors(rand):
    for f in (ranunit_neuman, ranunit_polar):
        for _ in range(20):
            assert np.linalg.norm(f(rand)) == pytest.approx(1.0)


def test_random_rotation_is_proper(rand):
    q = QuaternionRotate.random(rand)
    assert np.linalg.det(q.matrix) == pytest.approx(1.0)
    np.testing.assert_allclose(q.matrix @ q.matrix.T, np.eye(3), atol=1e-12)
