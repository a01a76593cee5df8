"""
QA task for Phi candidates in the femto derived data

For every collision the task fills the event histograms, then looks at the
Phi candidates of that collision. A candidate with children is accepted
when its two children can be resolved consistently with the child indices
it records and both children pass the child selection; for an accepted
candidate the Phi histograms and both child histograms are filled once.

Inconsistent children are reported with a warning and the candidate is
skipped. Nothing else is handled here.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

import awkward as ak
import numpy as np

from .data_model import ParticleType
from .event_histo import EventHisto
from .histogram_registry import HistogramRegistry, OutputPolicy
from .particle_histo import ParticleHisto
from .selection import ChildSelection
from .slice_cache import Partition, SliceCache
from .task_config import TaskConfig

TASK_NAME = "femto-universe-debug-phi"
MISMATCH_MESSAGE = "Indices of Phi children do not match"


@dataclass
class CollisionSummary:
    """Candidate bookkeeping of one processed collision"""

    candidates: int = 0
    without_children: int = 0
    mismatched: int = 0
    rejected: int = 0
    accepted: int = 0


@dataclass
class TaskStats(CollisionSummary):
    """Bookkeeping accumulated over all processed collisions"""

    collisions: int = 0

    def add(self, summary: CollisionSummary) -> None:
        self.collisions += 1
        for key, value in asdict(summary).items():
            setattr(self, key, getattr(self, key) + value)


@dataclass
class PhiQAHistograms:
    """Histogram delegates filled by the per-collision operation"""

    event: EventHisto
    phi: ParticleHisto
    pos_child: ParticleHisto
    neg_child: ParticleHisto


class ChildResolver:
    """
    Locate the two children of a Phi candidate

    ``"index"`` mode looks the children up by the global indices recorded
    in the candidate. They must exist in the table and belong to the
    candidate's collision.

    ``"positional"`` mode takes the rows directly preceding the candidate
    (positive child at index - 2, negative child at index - 1); their global
    indices must equal the recorded ones.
    """

    MODES = ("index", "positional")

    def __init__(self, mode: str = "index") -> None:
        if mode not in self.MODES:
            raise ValueError(f"Unknown child lookup mode '{mode}', expected one of {self.MODES}")
        self.mode = mode
        self._table: ak.Array | None = None
        self._global_index: np.ndarray = np.zeros(0, dtype=np.int64)

    def _bind(self, particles: ak.Array) -> None:
        if self._table is not particles:
            self._table = particles
            self._global_index = ak.to_numpy(particles["global_index"])

    def resolve(self, part: Any, particles: ak.Array) -> tuple[Any, Any] | None:
        """
        Children of ``part`` as (positive, negative) rows

        Returns:
            The two rows, or None if they are inconsistent with the
            candidate's recorded child indices
        """
        self._bind(particles)
        children_ids = part["children_ids"]
        if len(children_ids) < 2:
            return None
        pos_id, neg_id = int(children_ids[0]), int(children_ids[1])

        if self.mode == "positional":
            pos_row, neg_row = int(part["index"]) - 2, int(part["index"]) - 1
            if pos_row < 0:
                return None
            if self._global_index[pos_row] != pos_id or self._global_index[neg_row] != neg_id:
                return None
            return particles[pos_row], particles[neg_row]

        pos_row, neg_row = self._row_of(pos_id), self._row_of(neg_id)
        if pos_row is None or neg_row is None:
            return None
        pos_child, neg_child = particles[pos_row], particles[neg_row]
        collision_id = part["fd_collision_id"]
        if pos_child["fd_collision_id"] != collision_id or neg_child["fd_collision_id"] != collision_id:
            return None
        return pos_child, neg_child

    def _row_of(self, global_index: int) -> int | None:
        if len(self._global_index) == 0:
            return None
        row = global_index - int(self._global_index[0])
        if not 0 <= row < len(self._global_index) or self._global_index[row] != global_index:
            return None
        return row


def fill_phi_qa(collision: Any, particles: ak.Array, candidates: ak.Array,
                histos: PhiQAHistograms, selection: ChildSelection, resolver: ChildResolver,
                logger: logging.Logger) -> CollisionSummary:
    """
    Fill the QA histograms of one collision

    Args:
        collision: Collision row
        particles: Full particle table the candidates were taken from
        candidates: Phi candidates of this collision
        histos: Histogram delegates to fill
        selection: Child pair selection
        resolver: Child lookup
        logger: Receives the child-index mismatch warnings

    Returns:
        CollisionSummary of the candidates seen
    """
    summary = CollisionSummary()
    histos.event.fill_qa(collision)

    for part in candidates:
        summary.candidates += 1
        if not part["has_children"]:
            summary.without_children += 1
            continue

        children = resolver.resolve(part, particles)
        if children is None:
            logger.warning(MISMATCH_MESSAGE)
            summary.mismatched += 1
            continue
        pos_child, neg_child = children

        if not selection.accepts(pos_child, neg_child):
            summary.rejected += 1
            continue

        histos.phi.fill_qa(part)
        histos.pos_child.fill_qa(pos_child)
        histos.neg_child.fill_qa(neg_child)
        summary.accepted += 1

    return summary


class FemtoUniverseDebugPhi:
    """
    Produce QA plots for the Phi selection of the femto derived data

    Attributes:
        config: TaskConfig of the task
        cache: SliceCache used to slice the candidates by collision
        parts_one: Partition of the Phi candidates
        event_registry: Registry "Event"
        phi_registry: Registry "FullPhiQA"
        stats: TaskStats accumulated by process
    """

    name = TASK_NAME

    def __init__(self, config: TaskConfig | None = None) -> None:
        self.config = config if config is not None else TaskConfig()
        self.logger = logging.getLogger("FemtoPhi.FemtoUniverseDebugPhi")

        self.cache = SliceCache()
        self.parts_one = Partition(
            "partsOne", lambda particles: particles["part_type"] == int(ParticleType.kPhi)
        )

        self.event_histo = EventHisto()
        self.pos_child_histos = ParticleHisto(ParticleType.kPhiChild, 3)
        self.neg_child_histos = ParticleHisto(ParticleType.kPhiChild, 4)
        self.phi_histos = ParticleHisto(ParticleType.kPhi)

        self.event_registry = HistogramRegistry("Event", OutputPolicy.ANALYSIS_OBJECT)
        self.phi_registry = HistogramRegistry("FullPhiQA", OutputPolicy.ANALYSIS_OBJECT)

        self.selection = ChildSelection(self.config)
        self.resolver = ChildResolver(self.config.task["child_lookup"])
        self.stats = TaskStats()

    @property
    def histos(self) -> PhiQAHistograms:
        return PhiQAHistograms(
            event=self.event_histo,
            phi=self.phi_histos,
            pos_child=self.pos_child_histos,
            neg_child=self.neg_child_histos,
        )

    def init(self) -> None:
        """Book all histograms; nothing is filled"""
        phi = self.config.phi
        child = self.config.child
        is_mc = self.config.task["is_mc"]
        is_debug = self.config.task["is_debug"]

        self.event_histo.init(self.event_registry)
        self.pos_child_histos.init(self.phi_registry, child["temp_fit_var_pt_bins"],
                                   child["temp_fit_var_bins"], is_mc, child["pdg_code_pos"], is_debug)
        self.neg_child_histos.init(self.phi_registry, child["temp_fit_var_pt_bins"],
                                   child["temp_fit_var_bins"], is_mc, child["pdg_code_neg"], is_debug)
        self.phi_histos.init(self.phi_registry, phi["temp_fit_var_pt_bins"],
                             phi["temp_fit_var_bins"], is_mc, phi["pdg_code"], is_debug)
        self.logger.info(
            f"Booked {len(self.event_registry)} event and {len(self.phi_registry)} Phi QA histograms "
            f"(child lookup: {self.resolver.mode})"
        )

    def process(self, collision: Any, particles: ak.Array) -> None:
        """
        Fill the QA histograms for one collision

        Args:
            collision: Collision row
            particles: Joined particle table of the data frame
        """
        self.parts_one.bind(particles)
        group = self.parts_one.slice_by_cached("fd_collision_id", collision["global_index"], self.cache)
        summary = fill_phi_qa(collision, particles, group, self.histos,
                              self.selection, self.resolver, self.logger)
        self.stats.add(summary)

    def output_registries(self) -> list[HistogramRegistry]:
        return [self.event_registry, self.phi_registry]
