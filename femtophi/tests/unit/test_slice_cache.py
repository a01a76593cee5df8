"""
Unit tests for Partition and SliceCache.

Tests that partitions select the right rows and that slices are computed
once per key and table.
"""

from __future__ import annotations

import awkward as ak
import numpy as np
import pytest

from femtophi.modules.data_model import ParticleType
from femtophi.modules.slice_cache import Partition, SliceCache
from femtophi.tests.utils import FemtoFrameBuilder


@pytest.fixture
def particles(simple_frame: FemtoFrameBuilder) -> ak.Array:
    return simple_frame.build()[1]


def phi_partition() -> Partition:
    return Partition("partsOne", lambda t: t["part_type"] == int(ParticleType.kPhi))


@pytest.mark.unit
class TestPartition:
    """Test partition selection and binding."""

    def test_selects_phi_candidates(self, particles: ak.Array) -> None:
        partition = phi_partition()
        rows = partition.bind(particles)

        assert len(partition) == 3
        assert ak.all(rows["part_type"] == int(ParticleType.kPhi))
        # table order and original row indices are kept
        assert ak.to_list(rows["index"]) == [3, 4, 7]

    def test_bind_same_table_is_memoized(self, particles: ak.Array) -> None:
        partition = phi_partition()
        first = partition.bind(particles)
        assert partition.bind(particles) is first

    def test_bind_new_table_reevaluates(self, particles: ak.Array) -> None:
        partition = phi_partition()
        partition.bind(particles)
        rows = partition.bind(particles[:4])
        assert len(rows) == 1

    def test_unbound_rows_raise(self) -> None:
        with pytest.raises(RuntimeError, match="not bound"):
            phi_partition().rows


@pytest.mark.unit
class TestSliceCache:
    """Test cached slicing by key."""

    def test_slice_by_collision(self, particles: ak.Array) -> None:
        partition = phi_partition()
        partition.bind(particles)
        cache = SliceCache()

        group0 = partition.slice_by_cached("fd_collision_id", 0, cache)
        group1 = partition.slice_by_cached("fd_collision_id", 1, cache)

        assert ak.to_list(group0["index"]) == [3]
        assert ak.to_list(group1["index"]) == [4, 7]

    def test_repeated_lookup_returns_identical_object(self, particles: ak.Array) -> None:
        cache = SliceCache()

        first = cache.slice_by_cached(particles, "fd_collision_id", 1, name="all")
        second = cache.slice_by_cached(particles, "fd_collision_id", np.int64(1), name="all")

        assert second is first
        assert cache.stats.hits == 1
        assert cache.stats.misses == 1
        assert cache.stats.groupings == 1

    def test_unknown_key_gives_empty_slice(self, particles: ak.Array) -> None:
        cache = SliceCache()
        empty = cache.slice_by_cached(particles, "fd_collision_id", 42)

        assert len(empty) == 0
        assert empty.fields == particles.fields

    def test_new_table_regroups(self, particles: ak.Array) -> None:
        cache = SliceCache()
        before = cache.slice_by_cached(particles, "fd_collision_id", 1)
        after = cache.slice_by_cached(particles[:5], "fd_collision_id", 1)

        assert len(before) == 4
        assert len(after) == 1
        assert cache.stats.groupings == 2

    def test_names_are_independent(self, particles: ak.Array) -> None:
        cache = SliceCache()
        phis = particles[particles["part_type"] == int(ParticleType.kPhi)]

        all_rows = cache.slice_by_cached(particles, "fd_collision_id", 1, name="all")
        phi_rows = cache.slice_by_cached(phis, "fd_collision_id", 1, name="phis")

        assert len(all_rows) == 4
        assert len(phi_rows) == 2

    def test_reset(self, particles: ak.Array) -> None:
        cache = SliceCache()
        first = cache.slice_by_cached(particles, "fd_collision_id", 0)
        cache.reset()
        second = cache.slice_by_cached(particles, "fd_collision_id", 0)

        assert second is not first
        assert cache.stats.groupings == 2
