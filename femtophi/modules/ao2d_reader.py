"""
Module for reading femto derived tables from AO2D-style ROOT files using uproot

A file holds one or more data frames (``DF_<n>`` directories); each data
frame carries a collision tree, a particle tree and the row-aligned particle
extension tree. Files written without data-frame directories are read as a
single frame from the file root.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Sequence

import awkward as ak
import numpy as np
import uproot

from .column_config import ColumnConfig
from .data_model import add_dca, join_tables, make_collision_table, make_particle_table
from .exceptions import DataLoadError

FRAME_PREFIX = "DF_"


@dataclass
class DataFrameChunk:
    """One data frame: the unit handed to the tasks in a single pass"""

    name: str
    source: Path
    collisions: ak.Array
    particles: ak.Array

    def __len__(self) -> int:
        return len(self.collisions)


class AO2DReader:
    """Class for loading femto collision and particle tables from ROOT files"""

    def __init__(self, paths: Sequence[str | Path] | str | Path,
                 column_config: ColumnConfig | None = None,
                 max_frames: int | None = None):
        """
        Initialize with input files

        Parameters:
        - paths: One path or a list of paths to AO2D files
        - column_config: ColumnConfig instance (packaged default if None)
        - max_frames: Stop after this many data frames (all if None)
        """
        if isinstance(paths, (str, Path)):
            paths = [paths]
        self.paths = [Path(p) for p in paths]
        self.column_config = column_config if column_config is not None else ColumnConfig()
        self.max_frames = max_frames
        self.logger = logging.getLogger("FemtoPhi.AO2DReader")

        missing = [p for p in self.paths if not p.exists()]
        if missing:
            raise DataLoadError(
                f"Input file(s) not found: {[str(p) for p in missing]}\n"
                f"Please check the paths given with --input"
            )

    def frame_names(self, path: Path) -> list[str]:
        """Data frame directories of one file, ``[""]`` for a flat file"""
        try:
            with uproot.open(path) as file:
                names = sorted(
                    (k for k in file.keys(recursive=False, cycle=False) if k.startswith(FRAME_PREFIX)),
                    key=_frame_sort_key,
                )
        except (OSError, ValueError) as e:
            raise DataLoadError(f"Error reading ROOT file {path}: {e}")
        return names or [""]

    def __iter__(self) -> Iterator[DataFrameChunk]:
        n_frames = 0
        for path in self.paths:
            self.logger.info(f"Processing {path}")
            for frame in self.frame_names(path):
                if self.max_frames is not None and n_frames >= self.max_frames:
                    return
                yield self.read_frame(path, frame)
                n_frames += 1

    def read_frame(self, path: Path, frame: str) -> DataFrameChunk:
        """
        Load one data frame

        Returns:
        - DataFrameChunk with collision and joined particle tables

        Raises:
        - DataLoadError: If a tree is missing or the particle tables are misaligned
        - ColumnMissingError: If a required column is missing
        """
        name = frame or path.stem
        try:
            with uproot.open(path) as file:
                directory = file[frame] if frame else file
                collisions = make_collision_table(self._read_columns(directory, "collisions", name))
                base = make_particle_table(self._read_columns(directory, "particles", name))
                ext_columns = self._read_columns(directory, "extparticles", name, len(base))
        except (OSError, ValueError) as e:
            raise DataLoadError(f"Error reading {name} from ROOT file {path}: {e}")

        particles = join_tables(base, ak.zip(ext_columns, depth_limit=1)) if ext_columns else base
        particles = add_dca(particles)

        self.logger.info(
            f"Loaded {name}: {len(collisions)} collisions, {len(particles)} particles"
        )
        return DataFrameChunk(name=name, source=path, collisions=collisions, particles=particles)

    def _read_columns(self, directory, table: str, frame: str,
                      n_rows: int | None = None) -> dict[str, object]:
        tree_name = self.column_config.tree_name(table)
        if tree_name not in directory:
            if n_rows is not None and not self.column_config.columns(table, optional=False):
                # Extension tables without required columns may be absent
                self.logger.warning(f"Table {tree_name} not found in {frame}, filling with NaN")
                return {name: np.full(n_rows, np.nan) for name in self.column_config.columns(table)}
            raise DataLoadError(
                f"Table '{tree_name}' not found in {frame}\n"
                f"Available: {list(directory.keys(recursive=False, cycle=False))}"
            )

        tree = directory[tree_name]
        validation = self.column_config.validate(table, list(tree.keys()))
        events = tree.arrays(validation["valid"], library="ak") if validation["valid"] else None
        n_entries = tree.num_entries

        rename_map = self.column_config.rename_map(table)
        columns: dict[str, object] = {}
        for branch in validation["valid"]:
            values = events[branch]
            if rename_map[branch] == "children_ids":
                columns["children_ids"] = values
            else:
                columns[rename_map[branch]] = ak.to_numpy(values)
        for name in validation["missing_optional"]:
            columns[name] = np.full(n_entries, np.nan)
        return columns


def _frame_sort_key(name: str) -> tuple[int, str]:
    suffix = name[len(FRAME_PREFIX):]
    return (int(suffix), name) if suffix.isdigit() else (0, name)
