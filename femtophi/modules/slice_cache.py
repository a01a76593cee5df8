"""
Partitions and cached per-key slices of a table

A ``Partition`` is a filtered view of the table it is bound to. A
``SliceCache`` groups a table (or partition) by one column and hands out
the rows belonging to a key. Within one pass over a table, the grouping is
computed once and each key's slice is computed once; repeated lookups
return the identical object. Binding a different table starts a new pass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import awkward as ak
import numpy as np


@dataclass
class SliceStats:
    """Lookup counters of a SliceCache"""

    hits: int = 0
    misses: int = 0
    groupings: int = 0


class Partition:
    """
    Rows of a bound table selected by a predicate

    Usage:
        >>> phis = Partition("phis", lambda t: t.part_type == ParticleType.kPhi)
        >>> phis.bind(particles)
        >>> group = phis.slice_by_cached("fd_collision_id", 3, cache)
    """

    def __init__(self, name: str, predicate: Callable[[ak.Array], ak.Array]) -> None:
        self.name = name
        self.predicate = predicate
        self._table: ak.Array | None = None
        self._rows: ak.Array | None = None

    def bind(self, table: ak.Array) -> ak.Array:
        """Attach to ``table``; the selection is evaluated once per table"""
        if self._table is not table:
            self._table = table
            self._rows = table[self.predicate(table)]
        return self._rows

    @property
    def rows(self) -> ak.Array:
        if self._rows is None:
            raise RuntimeError(f"Partition '{self.name}' is not bound to a table")
        return self._rows

    def slice_by_cached(self, column: str, key: int, cache: "SliceCache") -> ak.Array:
        """Rows of this partition with ``column == key``"""
        return cache.slice_by_cached(self.rows, column, key, name=self.name)

    def __len__(self) -> int:
        return len(self.rows)


class SliceCache:
    """Per-key slices of a table, computed once per pass"""

    def __init__(self) -> None:
        self.logger = logging.getLogger("FemtoPhi.SliceCache")
        self.stats = SliceStats()
        self._groupings: dict[tuple[str, str], tuple[ak.Array, dict[int, np.ndarray]]] = {}
        self._slices: dict[tuple[str, str, int], ak.Array] = {}

    def reset(self) -> None:
        """Forget all groupings and slices"""
        self._groupings.clear()
        self._slices.clear()

    def _grouping(self, table: ak.Array, column: str, name: str) -> dict[int, np.ndarray]:
        cached = self._groupings.get((name, column))
        if cached is not None and cached[0] is table:
            return cached[1]

        # New table for this (name, column): the slices of the old one are stale
        self._slices = {k: v for k, v in self._slices.items() if k[:2] != (name, column)}

        values = ak.to_numpy(table[column])
        order = np.argsort(values, kind="stable")
        keys, starts, counts = np.unique(values[order], return_index=True, return_counts=True)
        groups = {
            int(key): order[start:start + count]
            for key, start, count in zip(keys, starts, counts)
        }
        self._groupings[(name, column)] = (table, groups)
        self.stats.groupings += 1
        self.logger.debug(f"Grouped '{name}' by {column}: {len(groups)} keys, {len(table)} rows")
        return groups

    def slice_by_cached(self, table: ak.Array, column: str, key: int, name: str = "") -> ak.Array:
        """
        Rows of ``table`` whose ``column`` equals ``key``

        Args:
            table: Table or bound partition rows
            column: Grouping column (e.g. 'fd_collision_id')
            key: Value to select
            name: Identifies the table among others grouped by the same column

        Returns:
            Awkward array of matching rows, in table order; empty if the key
            does not occur
        """
        key = int(key)
        groups = self._grouping(table, column, name)

        cache_key = (name, column, key)
        cached = self._slices.get(cache_key)
        if cached is not None:
            self.stats.hits += 1
            return cached

        self.stats.misses += 1
        rows = groups.get(key)
        if rows is None:
            rows = np.zeros(0, dtype=np.int64)
        result = table[rows]
        self._slices[cache_key] = result
        return result
