"""
Global pytest fixtures and configuration for the test suite.

Provides reusable fixtures for testing the QA task components without
duplicating setup code across test modules.
"""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Generator

import pytest

from femtophi.modules.data_model import ParticleType
from femtophi.modules.task_config import TaskConfig
from femtophi.tests.utils import FemtoFrameBuilder, write_mock_ao2d


@pytest.fixture
def tmp_test_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test operations.

    Automatically cleaned up after test completion.

    Yields:
        Path to temporary directory
    """
    tmp_dir = Path(tempfile.mkdtemp(prefix="femtophi_test_"))
    try:
        yield tmp_dir
    finally:
        if tmp_dir.exists():
            shutil.rmtree(tmp_dir)


@pytest.fixture
def tmp_output_dir(tmp_test_dir: Path) -> Path:
    """Create a temporary output directory."""
    output_dir = tmp_test_dir / "output"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


@pytest.fixture
def default_config() -> TaskConfig:
    """Task configuration with the built-in defaults."""
    return TaskConfig()


@pytest.fixture
def sample_task_config_dict() -> Dict[str, Any]:
    """
    Provide a task configuration dictionary as written in TOML.

    Returns:
        Dictionary with [phi], [child] and [task] tables
    """
    return {
        "phi": {
            "pdg_code": 333,
            "temp_fit_var_bins": [100, 0.9, 1.0],
        },
        "child": {
            "pdg_code_pos": 321,
            "pdg_code_neg": -321,
            "temp_fit_var_pt_bins": {"edges": [0.5, 1.0, 2.0, 4.05]},
        },
        "task": {
            "child_lookup": "positional",
        },
    }


@pytest.fixture
def task_config_file(tmp_test_dir: Path, sample_task_config_dict: Dict[str, Any]) -> Path:
    """
    Create a temporary task configuration TOML file.

    Returns:
        Path to the TOML file
    """
    import tomli_w

    config_file = tmp_test_dir / "femto_debug_phi.toml"
    with open(config_file, "wb") as f:
        tomli_w.dump(sample_task_config_dict, f)
    return config_file


@pytest.fixture
def simple_frame() -> FemtoFrameBuilder:
    """
    One data frame with two collisions.

    Collision 0: a track and one Phi candidate with consistent children.
    Collision 1: one Phi candidate without children and one with
    consistent children.
    """
    frame = FemtoFrameBuilder(seed=7)
    c0 = frame.add_collision(pos_z=1.5, mult_v0m=800.0, mult_ntr=12.0, sphericity=0.3)
    frame.add_particle(c0, ParticleType.kTrack, pt=0.8)
    frame.add_phi(c0, pt=1.2)
    c1 = frame.add_collision(pos_z=-3.0, mult_v0m=2500.0, mult_ntr=40.0, sphericity=0.7)
    frame.add_phi(c1, pt=2.0, with_children=False)
    frame.add_phi(c1, pt=2.5)
    return frame


@pytest.fixture
def mock_ao2d_file(tmp_test_dir: Path, simple_frame: FemtoFrameBuilder) -> Path:
    """
    AO2D file with two data frames.

    DF_1 holds ``simple_frame``; DF_2 holds one collision with a single
    consistent Phi candidate.
    """
    second = FemtoFrameBuilder(seed=11)
    c0 = second.add_collision(pos_z=0.5)
    second.add_phi(c0, pt=1.8)
    return write_mock_ao2d(tmp_test_dir / "AO2D.root", [simple_frame, second])


def pytest_configure(config: pytest.Config) -> None:
    """
    Configure pytest with custom markers.

    Args:
        config: pytest configuration object
    """
    config.addinivalue_line("markers", "unit: Unit tests of single components")
    config.addinivalue_line("markers", "integration: Tests running several components together")
    config.addinivalue_line("markers", "validation: Tests of input validation and error handling")
