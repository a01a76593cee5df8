"""
Table layout of the femtoscopic derived data

Collisions and particles are held as awkward record arrays, one record per
row. Particle rows are the join of the base particle table and its extension
table. Every table carries an ``index`` (position in the table) and a
``global_index`` (position plus the table offset); particle rows refer to
their collision through ``fd_collision_id`` and to their children through
``children_ids``.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Mapping

import awkward as ak
import numpy as np
import vector

from .exceptions import DataLoadError

vector.register_awkward()


class ParticleType(IntEnum):
    """Particle-type tag stored in the ``part_type`` column"""

    kTrack = 0
    kMCTruthTrack = 1
    kV0 = 2
    kV0Child = 3
    kCascade = 4
    kCascadeBachelor = 5
    kPhi = 6
    kPhiChild = 7
    kD0 = 8
    kD0Child = 9


# Folder names used by the particle histograms
PARTICLE_TYPE_NAMES = {
    ParticleType.kTrack: "Tracks",
    ParticleType.kMCTruthTrack: "MCTruthTracks",
    ParticleType.kV0: "V0",
    ParticleType.kV0Child: "V0Child",
    ParticleType.kCascade: "Cascade",
    ParticleType.kCascadeBachelor: "CascadeBachelor",
    ParticleType.kPhi: "Phi",
    ParticleType.kPhiChild: "PhiChild",
    ParticleType.kD0: "D0",
    ParticleType.kD0Child: "D0Child",
}

# Types whose TempFitVar is a DCA (single tracks); the others use the
# cosine of the pointing angle
TRACK_LIKE_TYPES = frozenset({
    ParticleType.kTrack,
    ParticleType.kMCTruthTrack,
    ParticleType.kV0Child,
    ParticleType.kCascadeBachelor,
    ParticleType.kPhiChild,
    ParticleType.kD0Child,
})

COLLISION_FIELDS = ("pos_z", "mult_v0m", "mult_ntr", "sphericity", "mag_field")

PARTICLE_FIELDS = (
    "fd_collision_id", "pt", "eta", "phi", "part_type", "cut", "pid_cut",
    "temp_fit_var", "children_ids", "mass",
)

EXT_PARTICLE_FIELDS = (
    "sign",
    "tpc_n_cls_found", "tpc_n_cls_findable", "tpc_n_cls_crossed_rows",
    "tpc_n_cls_shared", "tpc_inner_param", "tpc_signal", "dca_z",
    "tpc_nsigma_el", "tpc_nsigma_pi", "tpc_nsigma_ka", "tpc_nsigma_pr", "tpc_nsigma_de",
    "tof_nsigma_el", "tof_nsigma_pi", "tof_nsigma_ka", "tof_nsigma_pr", "tof_nsigma_de",
    "daugh_dca", "trans_radius", "decay_vtx_x", "decay_vtx_y", "decay_vtx_z",
)


def _index_columns(n_rows: int, offset: int) -> dict[str, np.ndarray]:
    index = np.arange(n_rows, dtype=np.int64)
    return {"index": index, "global_index": index + offset}


def make_collision_table(columns: Mapping[str, Any], offset: int = 0) -> ak.Array:
    """
    Build a collision table from column arrays

    Collision fields that are not given are filled with NaN.

    Args:
        columns: Mapping of collision field name to 1D array-like
        offset: Global index of the first row

    Returns:
        Awkward record array with index fields added

    Raises:
        DataLoadError: If the columns are not of equal length
    """
    arrays = {name: np.asarray(values) for name, values in columns.items()}
    n_rows = _common_length(arrays, "collisions")
    for name in COLLISION_FIELDS:
        arrays.setdefault(name, np.full(n_rows, np.nan))
    return ak.zip({**_index_columns(n_rows, offset), **arrays}, depth_limit=1)


def make_particle_table(columns: Mapping[str, Any], offset: int = 0) -> ak.Array:
    """
    Build a particle table from column arrays

    ``children_ids`` may be jagged; every other column is flat. The derived
    fields ``p``, ``has_children`` and ``dca`` are added here.

    Args:
        columns: Mapping of particle field name to array-like
        offset: Global index of the first row

    Returns:
        Awkward record array with index and derived fields

    Raises:
        DataLoadError: If the columns are not of equal length
    """
    arrays: dict[str, Any] = {
        name: np.asarray(values) for name, values in columns.items() if name != "children_ids"
    }
    n_rows = _common_length(arrays, "particles")
    arrays["children_ids"] = _children_column(columns.get("children_ids"), n_rows)

    table = ak.zip({**_index_columns(n_rows, offset), **arrays}, depth_limit=1)
    return add_derived_fields(table)


def add_derived_fields(particles: ak.Array) -> ak.Array:
    """Attach total momentum, the child-presence flag and the 3D DCA"""
    momentum = vector.zip({
        "pt": particles["pt"],
        "eta": particles["eta"],
        "phi": particles["phi"],
    })
    particles = ak.with_field(particles, momentum.p, "p")
    particles = ak.with_field(particles, ak.num(particles["children_ids"], axis=1) > 0, "has_children")
    return add_dca(particles)


def add_dca(particles: ak.Array) -> ak.Array:
    """
    Attach the 3D DCA built from the transverse (TempFitVar) and
    longitudinal DCA; tables without ``dca_z`` or with ``dca`` already set
    are returned unchanged
    """
    if "dca_z" not in particles.fields or "dca" in particles.fields:
        return particles
    dca = np.sqrt(particles["temp_fit_var"] ** 2 + particles["dca_z"] ** 2)
    return ak.with_field(particles, dca, "dca")


def join_tables(base: ak.Array, extension: ak.Array) -> ak.Array:
    """
    Join two row-aligned tables into one record array

    Fields of ``extension`` that already exist in ``base`` are ignored.

    Raises:
        DataLoadError: If the tables differ in length
    """
    if len(base) != len(extension):
        raise DataLoadError(
            f"Cannot join tables of different length: {len(base)} vs {len(extension)}"
        )
    joined = base
    for field in extension.fields:
        if field in base.fields:
            continue
        joined = ak.with_field(joined, extension[field], field)
    return joined


def _children_column(values: Any, n_rows: int) -> ak.Array:
    """Jagged int64 list of child global indices, empty lists when absent"""
    if values is None or len(values) == 0:
        return ak.unflatten(np.zeros(0, dtype=np.int64), np.zeros(n_rows, dtype=np.int64))
    children = ak.Array(values)
    if len(children) != n_rows:
        raise DataLoadError(
            f"children_ids has {len(children)} rows, expected {n_rows}"
        )
    if ak.sum(ak.num(children, axis=1)) == 0:
        return ak.unflatten(np.zeros(0, dtype=np.int64), np.zeros(n_rows, dtype=np.int64))
    return ak.values_astype(children, np.int64)


def _common_length(arrays: Mapping[str, Any], table: str) -> int:
    lengths = {name: len(values) for name, values in arrays.items()}
    if not lengths:
        return 0
    unique = set(lengths.values())
    if len(unique) > 1:
        raise DataLoadError(f"Columns of the {table} table differ in length: {lengths}")
    return unique.pop()
