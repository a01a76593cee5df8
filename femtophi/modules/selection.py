"""
Cut-bit and PID checks on femto particles

The cut bitmask of a particle records which selections of the producer
("cutCulator") it passed. The PID bitmask records, for each configured nσ
threshold, species and detector, whether the particle is compatible; bit
``n_species * N_DETECTORS * i_nsigma + species * N_DETECTORS + detector``.
"""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any, Sequence

from .data_model import ParticleType
from .exceptions import ConfigurationError
from .task_config import TaskConfig


class PIDDetector(IntEnum):
    """Detector combination encoded in the PID bitmask"""

    kTPC = 0
    kTPCTOF = 1


N_DETECTORS = len(PIDDetector)


def passes_cut_bits(cut: int, mask: int) -> bool:
    """True if every bit of ``mask`` is set in ``cut``"""
    cut, mask = int(cut), int(mask)
    return (cut & mask) == mask


def _nsigma_index(nsigma: float, nsigma_values: Sequence[float]) -> int:
    for i, value in enumerate(nsigma_values):
        if abs(value - nsigma) < 1e-6:
            return i
    raise ConfigurationError(
        f"PID threshold {nsigma} is not among the stored thresholds {list(nsigma_values)}"
    )


def is_pid_selected(pid_cut: int, species: int, n_species: int, nsigma: float,
                    nsigma_values: Sequence[float], detector: PIDDetector = PIDDetector.kTPC) -> bool:
    """
    Check the PID bit of one species at one nσ threshold

    Args:
        pid_cut: PID bitmask of the particle
        species: Index of the species among the stored ones
        n_species: Number of stored species
        nsigma: Threshold to test; must be one of ``nsigma_values``
        nsigma_values: Thresholds stored in the bitmask, in storage order
        detector: Detector combination

    Raises:
        ConfigurationError: If ``nsigma`` is not a stored threshold or
                            ``species`` is out of range
    """
    if not 0 <= species < n_species:
        raise ConfigurationError(f"PID species index {species} outside [0, {n_species})")
    i_nsigma = _nsigma_index(nsigma, nsigma_values)
    bit = n_species * N_DETECTORS * i_nsigma + species * N_DETECTORS + int(detector)
    return bool(int(pid_cut) & (1 << bit))


def is_full_pid_selected(pid_cut: int, momentum: float, pid_threshold: float, species: int,
                         n_species: int, nsigma_values: Sequence[float],
                         nsigma_tpc: float, nsigma_tpctof: float) -> bool:
    """
    TPC-only PID below ``pid_threshold``, combined TPC+TOF PID above it
    """
    if momentum < pid_threshold:
        return is_pid_selected(pid_cut, species, n_species, nsigma_tpc, nsigma_values,
                               PIDDetector.kTPC)
    return is_pid_selected(pid_cut, species, n_species, nsigma_tpctof, nsigma_values,
                           PIDDetector.kTPCTOF)


class ChildSelection:
    """
    Acceptance of a Phi child pair

    The particle-type check is always applied. The cut-bitmask and PID
    checks are applied only when enabled in the task configuration.
    """

    def __init__(self, config: TaskConfig) -> None:
        self.logger = logging.getLogger("FemtoPhi.ChildSelection")
        child = config.child
        task = config.task

        self.apply_cut_bits = task["apply_cut_bits"]
        self.apply_pid = task["apply_pid"]
        self.cut_pos = child["cut_pos"]
        self.cut_neg = child["cut_neg"]
        self.index_pos = child["index_pos"]
        self.index_neg = child["index_neg"]
        self.n_species = child["n_species"]
        self.nsigma_values = list(child["pid_nsigma_max"])
        self.nsigma_max_pos = child["pid_nsigma_max_pos"]
        self.nsigma_max_neg = child["pid_nsigma_max_neg"]
        self.pid_threshold = task["pid_momentum_threshold"]
        self.nsigma_tpctof = task["pid_nsigma_tpctof"]

        if self.apply_pid:
            self._check_pid_config()

    def _check_pid_config(self) -> None:
        """
        Reject PID settings that cannot be decoded from the bitmask

        Raises:
            ConfigurationError: If a threshold is not stored or a species
                                index is out of range
        """
        for name, species in (("ConfChildPosIndex", self.index_pos), ("ConfChildNegIndex", self.index_neg)):
            if not 0 <= species < self.n_species:
                raise ConfigurationError(
                    f"{name}: PID species index {species} outside [0, {self.n_species})"
                )
        for name, nsigma in (("ConfChildPosPidnSigmaMax", self.nsigma_max_pos),
                             ("ConfChildNegPidnSigmaMax", self.nsigma_max_neg),
                             ("ConfPIDnSigmaTPCTOF", self.nsigma_tpctof)):
            try:
                _nsigma_index(nsigma, self.nsigma_values)
            except ConfigurationError as e:
                raise ConfigurationError(f"{name}: {e}") from e
        self.logger.debug(f"PID selection enabled with thresholds {self.nsigma_values}")

    def accepts(self, pos_child: Any, neg_child: Any) -> bool:
        """True if both rows are Phi children passing the enabled checks"""
        if pos_child["part_type"] != ParticleType.kPhiChild or neg_child["part_type"] != ParticleType.kPhiChild:
            return False

        if self.apply_cut_bits:
            if not (passes_cut_bits(pos_child["cut"], self.cut_pos)
                    and passes_cut_bits(neg_child["cut"], self.cut_neg)):
                return False

        if self.apply_pid:
            pos_ok = is_full_pid_selected(
                pos_child["pid_cut"], pos_child["p"], self.pid_threshold, self.index_pos,
                self.n_species, self.nsigma_values, self.nsigma_max_pos, self.nsigma_tpctof,
            )
            neg_ok = is_full_pid_selected(
                neg_child["pid_cut"], neg_child["p"], self.pid_threshold, self.index_neg,
                self.n_species, self.nsigma_values, self.nsigma_max_neg, self.nsigma_tpctof,
            )
            if not (pos_ok and neg_ok):
                return False

        return True
