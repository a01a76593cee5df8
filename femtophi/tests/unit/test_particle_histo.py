"""
Unit tests for the particle QA histograms.

Tests folder naming, the booked histogram sets and that configuration
values (PDG code, TempFitVar binning) reach the booked histograms.
"""

from __future__ import annotations

import pytest

from femtophi.modules.data_model import ParticleType
from femtophi.modules.exceptions import HistogramError
from femtophi.modules.histogram_registry import HistogramRegistry
from femtophi.modules.particle_histo import ParticleHisto
from femtophi.modules.task_config import AxisSpec
from femtophi.tests.utils import FemtoFrameBuilder

PT_BINS = AxisSpec(20, 0.5, 4.05)
CHILD_BINS = AxisSpec(300, -0.15, 0.15)
PHI_BINS = AxisSpec(300, 0.95, 1.0)


def booked(particle_type: ParticleType, suffix: int = 0, is_debug: bool = True,
           pdg_code: int = 321, bins: AxisSpec = CHILD_BINS):
    registry = HistogramRegistry("FullPhiQA")
    histo = ParticleHisto(particle_type, suffix)
    histo.init(registry, PT_BINS, bins, False, pdg_code, is_debug)
    return histo, registry


@pytest.mark.unit
class TestFolders:
    """Test folder names and TempFitVar choice."""

    @pytest.mark.parametrize("particle_type,suffix,folder", [
        (ParticleType.kPhi, 0, "Phi"),
        (ParticleType.kPhiChild, 3, "PhiChild_pos"),
        (ParticleType.kPhiChild, 4, "PhiChild_neg"),
        (ParticleType.kTrack, 1, "Tracks_one"),
        (ParticleType.kV0, 2, "V0_two"),
    ])
    def test_folder_name(self, particle_type: ParticleType, suffix: int, folder: str) -> None:
        assert ParticleHisto(particle_type, suffix).folder == folder

    def test_bad_suffix(self) -> None:
        with pytest.raises(HistogramError, match="suffix"):
            ParticleHisto(ParticleType.kPhi, 5)

    def test_temp_fit_var_histogram(self) -> None:
        assert ParticleHisto(ParticleType.kPhiChild, 3).temp_fit_var_name == "hDCAxy"
        assert ParticleHisto(ParticleType.kPhi).temp_fit_var_name == "hCPA"


@pytest.mark.unit
class TestBooking:
    """Test the booked histogram sets."""

    def test_child_debug_set(self) -> None:
        _, registry = booked(ParticleType.kPhiChild, 3)

        assert len(registry) == 25
        for name in ["hPt", "hEta", "hPhi", "hEtaPhi", "hDCAxy", "hCharge", "hTPCdEdX",
                     "nSigmaTPC_ka", "nSigmaTOF_pi"]:
            assert f"PhiChild_pos/{name}" in registry

    def test_phi_debug_set(self) -> None:
        _, registry = booked(ParticleType.kPhi, bins=PHI_BINS)

        assert len(registry) == 12
        for name in ["hCPA", "hInvMass", "hInvMassPt", "hDecayVtxZ"]:
            assert f"Phi/{name}" in registry
        assert "Phi/hCharge" not in registry

    def test_without_debug(self) -> None:
        _, registry = booked(ParticleType.kPhiChild, 4, is_debug=False)

        assert sorted(registry.paths()) == sorted(
            f"PhiChild_neg/{name}" for name in ["hPt", "hEta", "hPhi", "hEtaPhi", "hDCAxy"]
        )

    def test_pdg_code_recorded(self) -> None:
        histo, registry = booked(ParticleType.kPhiChild, 3, pdg_code=2212)

        assert histo.pdg_code == 2212
        for path in registry:
            assert registry.spec(path).metadata["pdg_code"] == 2212

    def test_temp_fit_var_binning(self) -> None:
        bins = AxisSpec(50, -0.1, 0.1)
        _, registry = booked(ParticleType.kPhiChild, 3, bins=bins)

        spec = registry.spec("PhiChild_pos/hDCAxy")
        assert spec.axes == (PT_BINS, bins)

    def test_mc_not_available(self) -> None:
        registry = HistogramRegistry("FullPhiQA")
        with pytest.raises(HistogramError, match="MC"):
            ParticleHisto(ParticleType.kPhi).init(registry, PT_BINS, PHI_BINS, True, 333, False)
        assert len(registry) == 0

    def test_two_roles_share_registry(self) -> None:
        registry = HistogramRegistry("FullPhiQA")
        ParticleHisto(ParticleType.kPhiChild, 3).init(registry, PT_BINS, CHILD_BINS, False, 321, True)
        ParticleHisto(ParticleType.kPhiChild, 4).init(registry, PT_BINS, CHILD_BINS, False, -321, True)

        assert len(registry) == 50


@pytest.mark.unit
class TestFilling:
    """Test filling from particle rows."""

    def test_fill_child(self, simple_frame: FemtoFrameBuilder) -> None:
        _, particles = simple_frame.build()
        histo, registry = booked(ParticleType.kPhiChild, 3)

        histo.fill_qa(particles[1])

        for path in registry:
            assert registry.entries(path) == 1
        assert registry.get("PhiChild_pos/hPt").sum() == 1

    def test_fill_phi(self, simple_frame: FemtoFrameBuilder) -> None:
        _, particles = simple_frame.build()
        histo, registry = booked(ParticleType.kPhi, bins=PHI_BINS)

        histo.fill_qa(particles[3])
        histo.fill_qa(particles[7])

        for path in registry:
            assert registry.entries(path) == 2
        assert registry.get("Phi/hInvMass").sum() == 2

    def test_fill_without_extension_columns(self, simple_frame: FemtoFrameBuilder) -> None:
        """Rows without extension fields still fill every histogram."""
        from femtophi.modules.data_model import make_particle_table

        columns = simple_frame.particle_columns()
        base = {name: columns[name] for name in
                ["fd_collision_id", "pt", "eta", "phi", "part_type", "cut", "pid_cut",
                 "temp_fit_var", "children_ids"]}
        particles = make_particle_table(base)
        histo, registry = booked(ParticleType.kPhiChild, 3)

        histo.fill_qa(particles[1])

        assert registry.entries("PhiChild_pos/hTPCdEdX") == 1
        assert registry.get("PhiChild_pos/hTPCdEdX").sum() == 0

    def test_fill_before_init(self, simple_frame: FemtoFrameBuilder) -> None:
        _, particles = simple_frame.build()
        with pytest.raises(HistogramError, match="before init"):
            ParticleHisto(ParticleType.kPhi).fill_qa(particles[3])
