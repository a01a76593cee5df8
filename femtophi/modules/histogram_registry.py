"""
Named collection of histograms

A ``HistogramRegistry`` owns ``hist.Hist`` objects addressed by a path such
as ``"PhiChild_pos/hPt"``. Histograms are booked once with ``add`` and
filled with ``fill``; the registry keeps the title, axis binning and free
metadata of each booking, and counts fill entries independently of the
bin contents (flow bins included).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Sequence

import hist
import numpy as np
import pandas as pd

from .exceptions import HistogramError
from .task_config import AxisSpec


class OutputPolicy(Enum):
    """What happens to a registry at the end of the workflow"""

    ANALYSIS_OBJECT = "analysis_object"
    TRANSIENT = "transient"


@dataclass
class HistogramSpec:
    """Booking record of one histogram"""

    path: str
    title: str
    axes: tuple[AxisSpec, ...]
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def ndim(self) -> int:
        return len(self.axes)


class HistogramRegistry:
    """
    Histograms of one output object

    Attributes:
        name: Registry name, used as output directory
        policy: Output handling policy
    """

    def __init__(self, name: str, policy: OutputPolicy = OutputPolicy.ANALYSIS_OBJECT) -> None:
        self.name = name
        self.policy = policy
        self.logger = logging.getLogger(f"FemtoPhi.HistogramRegistry.{name}")
        self._histograms: dict[str, hist.Hist] = {}
        self._specs: dict[str, HistogramSpec] = {}
        self._entries: dict[str, int] = {}

    def add(self, path: str, title: str, axes: Sequence[AxisSpec | Any],
            metadata: dict[str, Any] | None = None) -> hist.Hist:
        """
        Book a histogram

        Args:
            path: ``Folder/hName`` address inside the registry
            title: ROOT-style title, ``"; x label; y label"``
            axes: One AxisSpec (or ``[nbins, low, high]``) per dimension
            metadata: Free key/value annotations (e.g. the PDG code)

        Returns:
            The booked histogram

        Raises:
            HistogramError: If the path is already booked or the axes are invalid
        """
        if path in self._histograms:
            raise HistogramError(f"Histogram '{path}' already booked in registry '{self.name}'")
        if not 1 <= len(axes) <= 3:
            raise HistogramError(f"Histogram '{path}': expected 1 to 3 axes, got {len(axes)}")

        specs = tuple(AxisSpec.parse(axis, f"{path} axis {i}") for i, axis in enumerate(axes))
        labels = _axis_labels(title, len(specs))
        hist_axes = [spec.to_axis(f"x{i}", labels[i]) for i, spec in enumerate(specs)]

        histogram = hist.Hist(*hist_axes, storage=hist.storage.Double())
        self._histograms[path] = histogram
        self._specs[path] = HistogramSpec(path, title, specs, dict(metadata or {}))
        self._entries[path] = 0
        self.logger.debug(f"Booked {path} with {[s.n_bins for s in specs]} bins")
        return histogram

    def fill(self, path: str, *values: Any) -> None:
        """
        Fill one histogram

        Args:
            path: Booked histogram path
            *values: One scalar or array per axis

        Raises:
            HistogramError: If the path is not booked or the value count is wrong
        """
        histogram = self.get(path)
        if len(values) != histogram.ndim:
            raise HistogramError(
                f"Histogram '{path}' has {histogram.ndim} axes, got {len(values)} values"
            )
        arrays = [np.atleast_1d(np.asarray(v, dtype=np.float64)) for v in values]
        histogram.fill(*arrays)
        self._entries[path] += len(arrays[0])

    def get(self, path: str) -> hist.Hist:
        try:
            return self._histograms[path]
        except KeyError:
            raise HistogramError(f"Histogram '{path}' not booked in registry '{self.name}'")

    def spec(self, path: str) -> HistogramSpec:
        self.get(path)
        return self._specs[path]

    def entries(self, path: str) -> int:
        """Number of filled values, flow bins included"""
        self.get(path)
        return self._entries[path]

    def paths(self) -> list[str]:
        return list(self._histograms)

    def reset(self) -> None:
        """Zero every histogram, keeping the bookings"""
        for path, histogram in self._histograms.items():
            histogram.reset()
            self._entries[path] = 0

    def __contains__(self, path: str) -> bool:
        return path in self._histograms

    def __iter__(self) -> Iterator[str]:
        return iter(self._histograms)

    def __len__(self) -> int:
        return len(self._histograms)

    def summary(self) -> pd.DataFrame:
        """One row per histogram: dimensions, bins, entries and in-range integral"""
        rows = []
        for path, histogram in self._histograms.items():
            spec = self._specs[path]
            rows.append({
                "registry": self.name,
                "path": path,
                "ndim": spec.ndim,
                "bins": "x".join(str(a.n_bins) for a in spec.axes),
                "entries": self._entries[path],
                "integral": float(histogram.sum()),
            })
        return pd.DataFrame(rows, columns=["registry", "path", "ndim", "bins", "entries", "integral"])

    def write(self, directory: Any, prefix: str = "") -> int:
        """
        Write all histograms into a writable uproot directory

        Histograms land under ``<prefix>/<registry name>/<path>``.

        Returns:
            Number of histograms written
        """
        base = "/".join(part for part in (prefix, self.name) if part)
        for path, histogram in self._histograms.items():
            directory[f"{base}/{path}"] = histogram
        self.logger.info(f"Wrote {len(self._histograms)} histograms to {base}")
        return len(self._histograms)


def _axis_labels(title: str, ndim: int) -> list[str]:
    """Axis labels from a ROOT-style ``"title; x; y"`` string"""
    parts = [p.strip() for p in title.split(";")][1:]
    return [parts[i] if i < len(parts) else "" for i in range(ndim)]
