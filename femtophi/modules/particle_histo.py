"""
Particle QA histograms

One ``ParticleHisto`` books a folder of histograms for one particle type
(and role suffix) and fills it from particle rows. The folder name is the
particle type name followed by the suffix, e.g. ``PhiChild_pos``.

Track-like particles (single tracks and decay children) use the DCA in the
transverse plane as TempFitVar; composite particles (V0, Phi, ...) use the
cosine of the pointing angle.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from .data_model import PARTICLE_TYPE_NAMES, TRACK_LIKE_TYPES, ParticleType
from .exceptions import HistogramError
from .histogram_registry import HistogramRegistry
from .task_config import AxisSpec

FOLDER_SUFFIXES = ("", "_one", "_two", "_pos", "_neg")

# (name, title, column, binning) of the 1D histograms booked for every particle
_KINEMATICS = (
    ("hPt", "; #it{p}_{T} (GeV/#it{c}); Entries", "pt", AxisSpec(240, 0, 6)),
    ("hEta", "; #eta; Entries", "eta", AxisSpec(200, -1.5, 1.5)),
    ("hPhi", "; #phi; Entries", "phi", AxisSpec(200, 0, 2 * math.pi)),
)

_NSIGMA_SPECIES = (("el", "e"), ("pi", "#pi"), ("ka", "K"), ("pr", "p"), ("de", "d"))


class ParticleHisto:
    """
    QA histograms of one particle type in one role

    Args:
        particle_type: ParticleType of the rows filled into this folder
        suffix: Index into FOLDER_SUFFIXES (0 none, 1 _one, 2 _two, 3 _pos, 4 _neg)
    """

    def __init__(self, particle_type: ParticleType, suffix: int = 0) -> None:
        if not 0 <= suffix < len(FOLDER_SUFFIXES):
            raise HistogramError(f"Folder suffix index {suffix} out of range")
        self.particle_type = ParticleType(particle_type)
        self.folder = PARTICLE_TYPE_NAMES[self.particle_type] + FOLDER_SUFFIXES[suffix]
        self.track_like = self.particle_type in TRACK_LIKE_TYPES
        self.temp_fit_var_name = "hDCAxy" if self.track_like else "hCPA"
        self.logger = logging.getLogger(f"FemtoPhi.ParticleHisto.{self.folder}")

        self.registry: HistogramRegistry | None = None
        self.pdg_code: int | None = None
        self.is_mc = False
        self.is_debug = False

    def init(self, registry: HistogramRegistry, temp_fit_var_pt_bins: AxisSpec,
             temp_fit_var_bins: AxisSpec, is_mc: bool, pdg_code: int, is_debug: bool) -> None:
        """
        Book the folder in ``registry``

        Args:
            registry: Registry receiving the histograms
            temp_fit_var_pt_bins: pT binning of the pT vs. TempFitVar plot
            temp_fit_var_bins: TempFitVar binning of the pT vs. TempFitVar plot
            is_mc: Book MC-truth histograms
            pdg_code: PDG code of the particle, recorded on every histogram
            is_debug: Book the debug histogram set

        Raises:
            HistogramError: If MC-truth histograms are requested
        """
        if is_mc:
            raise HistogramError(
                f"{self.folder}: MC-truth histograms need MC particle tables, "
                f"which the femto derived data does not provide"
            )
        self.registry = registry
        self.pdg_code = int(pdg_code)
        self.is_mc = is_mc
        self.is_debug = is_debug
        metadata = {"pdg_code": self.pdg_code, "particle_type": self.particle_type.name}

        for name, title, _, axis in _KINEMATICS:
            registry.add(self._path(name), title, [axis], metadata)
        registry.add(self._path("hEtaPhi"), "; #phi; #eta",
                     [AxisSpec(200, 0, 2 * math.pi), AxisSpec(200, -1.5, 1.5)], metadata)

        if self.track_like:
            temp_fit_var_title = "; #it{p}_{T} (GeV/#it{c}); DCA_{xy} (cm)"
        else:
            temp_fit_var_title = "; #it{p}_{T} (GeV/#it{c}); cos#alpha"
        registry.add(self._path(self.temp_fit_var_name), temp_fit_var_title,
                     [AxisSpec.parse(temp_fit_var_pt_bins), AxisSpec.parse(temp_fit_var_bins)],
                     metadata)

        if is_debug:
            if self.track_like:
                self._init_debug_track(registry, metadata)
            else:
                self._init_debug_composite(registry, metadata)

        self.logger.debug(f"Booked {self.folder} (PDG {self.pdg_code}, debug={is_debug})")

    def _init_debug_track(self, registry: HistogramRegistry, metadata: dict) -> None:
        add = registry.add
        add(self._path("hCharge"), "; Charge; Entries", [AxisSpec(5, -2.5, 2.5)], metadata)
        add(self._path("hTPCfindable"), "; TPC findable clusters; Entries",
            [AxisSpec(163, -0.5, 162.5)], metadata)
        add(self._path("hTPCfound"), "; TPC found clusters; Entries",
            [AxisSpec(163, -0.5, 162.5)], metadata)
        add(self._path("hTPCcrossedOverFindable"), "; TPC ratio findable; Entries",
            [AxisSpec(100, 0.5, 1.5)], metadata)
        add(self._path("hTPCcrossedRows"), "; TPC crossed rows; Entries",
            [AxisSpec(163, -0.5, 162.5)], metadata)
        add(self._path("hTPCfindableVsCrossed"), ";TPC findable clusters ; TPC crossed rows;",
            [AxisSpec(163, -0.5, 162.5), AxisSpec(163, -0.5, 162.5)], metadata)
        add(self._path("hTPCshared"), "; TPC shared clusters; Entries",
            [AxisSpec(163, -0.5, 162.5)], metadata)
        add(self._path("hDCAz"), "; #it{p}_{T} (GeV/#it{c}); DCA_{z} (cm)",
            [AxisSpec(100, 0, 10), AxisSpec(500, -5, 5)], metadata)
        add(self._path("hDCA"), "; #it{p}_{T} (GeV/#it{c}); DCA (cm)",
            [AxisSpec(100, 0, 10), AxisSpec(301, 0.0, 1.5)], metadata)
        add(self._path("hTPCdEdX"), "; #it{p} (GeV/#it{c}); TPC Signal",
            [AxisSpec(100, 0, 10), AxisSpec(1000, 0, 1000)], metadata)
        for species, label in _NSIGMA_SPECIES:
            add(self._path(f"nSigmaTPC_{species}"), f"; #it{{p}} (GeV/#it{{c}}); n#sigma_{{TPC}}^{{{label}}}",
                [AxisSpec(100, 0, 10), AxisSpec(200, -4.975, 5.025)], metadata)
            add(self._path(f"nSigmaTOF_{species}"), f"; #it{{p}} (GeV/#it{{c}}); n#sigma_{{TOF}}^{{{label}}}",
                [AxisSpec(100, 0, 10), AxisSpec(200, -4.975, 5.025)], metadata)

    def _init_debug_composite(self, registry: HistogramRegistry, metadata: dict) -> None:
        add = registry.add
        add(self._path("hDaughDCA"), "; DCA^{daugh} (cm); Entries", [AxisSpec(1000, 0, 10)], metadata)
        add(self._path("hTransRadius"), "; #it{r}_{xy} (cm); Entries", [AxisSpec(1500, 0, 150)], metadata)
        add(self._path("hDecayVtxX"), "; #it{Vtx}_{x} (cm); Entries", [AxisSpec(2000, 0, 200)], metadata)
        add(self._path("hDecayVtxY"), "; #it{Vtx}_{y} (cm); Entries", [AxisSpec(2000, 0, 200)], metadata)
        add(self._path("hDecayVtxZ"), "; #it{Vtx}_{z} (cm); Entries", [AxisSpec(2000, 0, 200)], metadata)
        add(self._path("hInvMass"), "; M_{K^{+}K^{-}} (GeV/#it{c}^{2}); Entries",
            [AxisSpec(400, 0.98, 1.06)], metadata)
        add(self._path("hInvMassPt"), "; #it{p}_{T} (GeV/#it{c}); M_{K^{+}K^{-}} (GeV/#it{c}^{2})",
            [AxisSpec(20, 0.5, 4.05), AxisSpec(400, 0.98, 1.06)], metadata)

    def fill_qa(self, part: Any) -> None:
        """
        Fill every booked histogram once for the particle row ``part``

        Raises:
            HistogramError: If called before init
        """
        if self.registry is None:
            raise HistogramError(f"{self.folder}: fill_qa called before init")
        fill = self.registry.fill

        for name, _, column, _ in _KINEMATICS:
            fill(self._path(name), part[column])
        fill(self._path("hEtaPhi"), part["phi"], part["eta"])
        fill(self._path(self.temp_fit_var_name), part["pt"], part["temp_fit_var"])

        if self.is_debug:
            if self.track_like:
                self._fill_debug_track(part)
            else:
                self._fill_debug_composite(part)

    def _fill_debug_track(self, part: Any) -> None:
        fill = self.registry.fill
        value = _field_getter(part)

        findable = value("tpc_n_cls_findable")
        crossed = value("tpc_n_cls_crossed_rows")
        fill(self._path("hCharge"), value("sign"))
        fill(self._path("hTPCfindable"), findable)
        fill(self._path("hTPCfound"), value("tpc_n_cls_found"))
        fill(self._path("hTPCcrossedOverFindable"), crossed / findable if findable else math.nan)
        fill(self._path("hTPCcrossedRows"), crossed)
        fill(self._path("hTPCfindableVsCrossed"), findable, crossed)
        fill(self._path("hTPCshared"), value("tpc_n_cls_shared"))
        fill(self._path("hDCAz"), part["pt"], value("dca_z"))
        fill(self._path("hDCA"), part["pt"], value("dca"))
        fill(self._path("hTPCdEdX"), part["p"], value("tpc_signal"))
        for species, _ in _NSIGMA_SPECIES:
            fill(self._path(f"nSigmaTPC_{species}"), part["p"], value(f"tpc_nsigma_{species}"))
            fill(self._path(f"nSigmaTOF_{species}"), part["p"], value(f"tof_nsigma_{species}"))

    def _fill_debug_composite(self, part: Any) -> None:
        fill = self.registry.fill
        value = _field_getter(part)

        fill(self._path("hDaughDCA"), value("daugh_dca"))
        fill(self._path("hTransRadius"), value("trans_radius"))
        fill(self._path("hDecayVtxX"), value("decay_vtx_x"))
        fill(self._path("hDecayVtxY"), value("decay_vtx_y"))
        fill(self._path("hDecayVtxZ"), value("decay_vtx_z"))
        fill(self._path("hInvMass"), value("mass"))
        fill(self._path("hInvMassPt"), part["pt"], value("mass"))

    def _path(self, name: str) -> str:
        return f"{self.folder}/{name}"


def _field_getter(part: Any):
    """Column accessor returning NaN for columns absent from the row"""
    fields = set(part.fields)

    def value(name: str) -> float:
        if name not in fields:
            return math.nan
        return part[name]

    return value
