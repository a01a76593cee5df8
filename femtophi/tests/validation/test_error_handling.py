"""
Validation tests for error handling.

Ensures bad input files, misaligned tables, misuse of histograms and
unwritable outputs raise the right exceptions with clear messages.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
import uproot

from femtophi.modules.ao2d_reader import AO2DReader
from femtophi.modules.exceptions import (
    ColumnMissingError,
    DataLoadError,
    HistogramError,
    OutputError,
)
from femtophi.modules.histogram_registry import HistogramRegistry
from femtophi.modules.workflow import define_data_processing, write_results
from femtophi.tests.utils import FemtoFrameBuilder, write_mock_ao2d


def write_base_trees(file, frame: FemtoFrameBuilder) -> None:
    """Collision and particle trees of ``frame`` in DF_1, without the extension tree"""
    collisions = frame.collision_columns()
    columns = frame.particle_columns()
    file["DF_1/O2fdcollision"] = {
        "fPosZ": collisions["pos_z"],
        "fMultV0M": collisions["mult_v0m"],
        "fMultNtr": collisions["mult_ntr"],
    }
    file["DF_1/O2fdparticle"] = {
        "fIndexFDCollisions": columns["fd_collision_id"],
        "fPt": columns["pt"],
        "fEta": columns["eta"],
        "fPhi": columns["phi"],
        "fPartType": columns["part_type"],
        "fCut": columns["cut"],
        "fPIDCut": columns["pid_cut"],
        "fTempFitVar": columns["temp_fit_var"],
        "fIndexArrayFDParticles": columns["children_ids"],
    }


@pytest.mark.validation
class TestInputErrors:
    """Test errors raised while reading input."""

    def test_missing_input_file(self, tmp_test_dir: Path) -> None:
        with pytest.raises(DataLoadError, match="not found"):
            AO2DReader(tmp_test_dir / "missing.root")

    def test_not_a_root_file(self, tmp_test_dir: Path) -> None:
        fake = tmp_test_dir / "fake.root"
        fake.write_text("not a ROOT file")

        with pytest.raises(DataLoadError, match="fake.root"):
            list(AO2DReader(fake))

    def test_missing_required_column(self, tmp_test_dir: Path, simple_frame: FemtoFrameBuilder) -> None:
        path = write_mock_ao2d(tmp_test_dir / "nopt.root", [simple_frame], drop_columns=["pt"])

        with pytest.raises(ColumnMissingError) as exc_info:
            list(AO2DReader(path))
        assert exc_info.value.column == "fPt"
        assert exc_info.value.tree == "O2fdparticle"

    def test_missing_particle_tree(self, tmp_test_dir: Path) -> None:
        path = tmp_test_dir / "nocoll.root"
        with uproot.recreate(path) as file:
            file["DF_1/O2fdcollision"] = {
                "fPosZ": np.zeros(2),
                "fMultV0M": np.zeros(2),
                "fMultNtr": np.zeros(2),
            }

        with pytest.raises(DataLoadError, match="O2fdparticle"):
            list(AO2DReader(path))

    def test_missing_extension_tree_is_tolerated(self, tmp_test_dir: Path,
                                                 simple_frame: FemtoFrameBuilder) -> None:
        path = tmp_test_dir / "noext.root"
        with uproot.recreate(path) as file:
            write_base_trees(file, simple_frame)

        chunk = AO2DReader(path).read_frame(path, "DF_1")
        assert len(chunk.particles) == len(simple_frame.particles)
        assert np.all(np.isnan(chunk.particles["tpc_signal"].to_numpy()))

    def test_misaligned_extension_table(self, tmp_test_dir: Path, simple_frame: FemtoFrameBuilder) -> None:
        path = tmp_test_dir / "misaligned.root"
        with uproot.recreate(path) as file:
            write_base_trees(file, simple_frame)
            file["DF_1/O2fdextparticle"] = {"fSign": np.ones(3, dtype=np.float32)}

        with pytest.raises(DataLoadError, match="different length"):
            list(AO2DReader(path))


@pytest.mark.validation
class TestProcessingErrors:
    """Test errors raised by histograms and output."""

    def test_fill_unbooked(self) -> None:
        with pytest.raises(HistogramError, match="hPt"):
            HistogramRegistry("FullPhiQA").fill("Phi/hPt", 1.0)

    def test_init_twice(self) -> None:
        workflow = define_data_processing()
        with pytest.raises(HistogramError, match="already booked"):
            workflow[0].init()

    def test_unwritable_output(self, tmp_test_dir: Path) -> None:
        blocker = tmp_test_dir / "blocker"
        blocker.write_text("")
        workflow = define_data_processing()

        with pytest.raises(OutputError, match="Cannot write"):
            write_results(workflow, blocker / "AnalysisResults.root")
