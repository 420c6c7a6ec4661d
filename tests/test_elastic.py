"""Tests for the particle buffer and elastic ranges."""

import numpy as np
import pytest

from mcspace.errors import ContractViolation, StaleRangeError
from mcspace.core.elastic import ElasticRange, ParticleBuffer

from conftest import make_particles

VALUES = [10, 20, 30, 40, 50, 60]


@pytest.fixture
def elastic():
    buf = ParticleBuffer()
    buf.extend(make_particles(VALUES))
    return ElasticRange(buf, 0, len(buf))


def charges(a) -> list:
    return [int(c) for c in a['charge']]


def test_deactivate_middle_span(elastic):
    elastic.deactivate(1, 3)
    assert elastic.size() == 4
    assert charges(elastic.active) == [10, 40, 50, 60]
    assert charges(elastic.inactive) == [20, 30]
    assert elastic.size() + elastic.inactive_size() == elastic.capacity() == 6

    elastic.activate(elastic.size(), elastic.size() + 2)
    assert elastic.size() == 6
    assert charges(elastic.active)[-2:] == [20, 30]


def test_deactivate_and_reactivate_all(elastic):
    elastic.deactivate(0, elastic.size())
    assert elastic.empty()
    assert charges(elastic.inactive) == VALUES
    elastic.activate(0, elastic.capacity())
    assert charges(elastic.active) == VALUES


def test_activate_from_the_back_of_the_inactive_part(elastic):
    elastic.deactivate(0, 3)
    assert charges(elastic.inactive) == [10, 20, 30]
    elastic.activate(5, 6)
    assert charges(elastic.active) == [40, 50, 60, 30]
    assert sorted(charges(elastic.window)) == VALUES


def test_random_sequence_only_permutes(elastic, rand):
    for _ in range(200):
        if rand() < 0.5 and elastic.size() > 0:
            first = rand.range(0, elastic.size() - 1)
            last = rand.range(first, elastic.size())
            elastic.deactivate(first, last)
        elif elastic.inactive_size() > 0:
            first = rand.range(elastic.size(), elastic.capacity() - 1)
            last = rand.range(first, elastic.capacity())
            elastic.activate(first, last)
        assert elastic.size() + elastic.inactive_size() == elastic.capacity()
        assert sorted(charges(elastic.window)) == VALUES


@pytest.mark.parametrize("span", [(-1, 2), (2, 1), (3, 7)])
def test_deactivate_outside_window(elastic, span):
    with pytest.raises(ContractViolation):
        elastic.deactivate(*span)


def test_activate_requires_inactive_span(elastic):
    elastic.deactivate(4, 6)
    with pytest.raises(ContractViolation):
        elastic.activate(3, 5)
    with pytest.raises(ContractViolation):
        elastic.resize(7)


def test_stale_range_after_reallocation(elastic):
    buf = elastic._buffer
    buf.extend(make_particles(range(100)))
    with pytest.raises(StaleRangeError):
        elastic.active
    elastic.rebase(buf)
    assert charges(elastic.active) == VALUES


def test_buffer_growth_is_amortised():
    buf = ParticleBuffer()
    reallocations = sum(buf.extend(make_particles([1.0])) for _ in range(64))
    assert len(buf) == 64
    assert reallocations <= 8
    assert buf.generation == reallocations


def test_rebase_detects_relocation_error(elastic):
    small = ParticleBuffer()
    small.extend(make_particles([1, 2]))
    with pytest.raises(ContractViolation, match="relocation"):
        elastic.rebase(small)


def test_views_write_through(elastic):
    elastic.active['charge'][0] = -1
    elastic[1]['pos'] = (5, 5, 5)
    data = elastic._buffer.data
    assert data['charge'][0] == -1
    np.testing.assert_array_equal(data['pos'][1], [5, 5, 5])
