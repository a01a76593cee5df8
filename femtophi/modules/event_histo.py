"""Event QA histograms"""

from __future__ import annotations

import logging
from typing import Any

from .exceptions import HistogramError
from .histogram_registry import HistogramRegistry
from .task_config import AxisSpec

EVENT_FOLDER = "Event"


class EventHisto:
    """Books and fills the per-collision QA histograms"""

    def __init__(self) -> None:
        self.logger = logging.getLogger("FemtoPhi.EventHisto")
        self.registry: HistogramRegistry | None = None

    def init(self, registry: HistogramRegistry) -> None:
        """Book the event histograms in ``registry``"""
        self.registry = registry
        registry.add(f"{EVENT_FOLDER}/zvtxhist", "; vtx_{z} (cm); Entries",
                     [AxisSpec(300, -12.5, 12.5)])
        registry.add(f"{EVENT_FOLDER}/MultV0M", "; vMultV0M; Entries",
                     [AxisSpec(16384, 0, 32768)])
        registry.add(f"{EVENT_FOLDER}/MultNTr", "; vMultNTr; Entries",
                     [AxisSpec(200, 0, 200)])
        registry.add(f"{EVENT_FOLDER}/MultNTrVSMultV0M", "; vMultNTr; vMultV0M",
                     [AxisSpec(200, 0, 200), AxisSpec(1024, 0, 32768)])
        registry.add(f"{EVENT_FOLDER}/Sphericity", "; Sphericity; Entries",
                     [AxisSpec(100, 0, 1)])

    def fill_qa(self, collision: Any) -> None:
        """Fill every event histogram once for ``collision``"""
        if self.registry is None:
            raise HistogramError("EventHisto.fill_qa called before init")
        registry = self.registry
        registry.fill(f"{EVENT_FOLDER}/zvtxhist", collision["pos_z"])
        registry.fill(f"{EVENT_FOLDER}/MultV0M", collision["mult_v0m"])
        registry.fill(f"{EVENT_FOLDER}/MultNTr", collision["mult_ntr"])
        registry.fill(f"{EVENT_FOLDER}/MultNTrVSMultV0M", collision["mult_ntr"], collision["mult_v0m"])
        registry.fill(f"{EVENT_FOLDER}/Sphericity", collision["sphericity"])
