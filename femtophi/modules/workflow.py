"""
Workflow driver

Builds the list of tasks, hands every data frame to them collision by
collision, and writes the analysis output of all registries.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import pandas as pd
import uproot
from tqdm import tqdm

from ..utils.logging_config import get_tqdm_kwargs
from .ao2d_reader import DataFrameChunk
from .debug_phi_task import FemtoUniverseDebugPhi
from .exceptions import OutputError
from .histogram_registry import OutputPolicy
from .task_config import TaskConfig

logger = logging.getLogger("FemtoPhi.Workflow")

WorkflowSpec = list


def define_data_processing(config: TaskConfig | None = None) -> WorkflowSpec:
    """
    Create and initialize the tasks of the workflow

    Args:
        config: Configuration handed to the tasks (defaults if None)

    Returns:
        List of initialized tasks
    """
    task = FemtoUniverseDebugPhi(config)
    task.init()
    return [task]


def run_workflow(workflow: WorkflowSpec, frames: Iterable[DataFrameChunk]) -> int:
    """
    Process every collision of every data frame with every task

    Returns:
        Number of collisions processed
    """
    n_collisions = 0
    with tqdm(frames, **get_tqdm_kwargs(desc="Data frames", unit="DF")) as pbar:
        for frame in pbar:
            for collision in frame.collisions:
                for task in workflow:
                    task.process(collision, frame.particles)
            n_collisions += len(frame)
            pbar.set_postfix(collisions=n_collisions)
    for task in workflow:
        logger.info(f"{task.name}: {task.stats}")
    return n_collisions


def write_results(workflow: WorkflowSpec, output_path: str | Path) -> Path:
    """
    Write all analysis-object registries to a ROOT file

    Histograms are stored as ``<task name>/<registry>/<histogram path>``.

    Raises:
        OutputError: If the file cannot be written
    """
    output_path = Path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with uproot.recreate(output_path) as file:
            n_written = 0
            for task in workflow:
                for registry in task.output_registries():
                    if registry.policy is OutputPolicy.TRANSIENT:
                        continue
                    n_written += registry.write(file, prefix=task.name)
    except OSError as e:
        raise OutputError(f"Cannot write analysis results to {output_path}: {e}")
    logger.info(f"Wrote {n_written} histograms to {output_path}")
    return output_path


def results_summary(workflow: WorkflowSpec) -> pd.DataFrame:
    """Histogram summary of every registry of every task"""
    frames = []
    for task in workflow:
        for registry in task.output_registries():
            summary = registry.summary()
            summary.insert(0, "task", task.name)
            frames.append(summary)
    if not frames:
        return pd.DataFrame()
    return pd.concat(frames, ignore_index=True)
