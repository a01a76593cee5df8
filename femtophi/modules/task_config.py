"""
Configuration of the Phi QA task

Parameters are declared once, as ``Configurable`` entries grouped into
``phi`` (Phi candidate), ``child`` (Phi children) and ``task`` (task
behaviour). Each entry carries the external name it is known by in the
framework configuration, a typed default and a help string.

Values are resolved in three layers: the baked-in defaults, an optional TOML
file, and explicit overrides (``group.key`` or external name).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping

import hist
import numpy as np
import tomli
import tomli_w

from .exceptions import ConfigurationError

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "femto_debug_phi.toml"


def _is_finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


@dataclass(frozen=True)
class AxisSpec:
    """
    Binning of one histogram axis.

    Either regular (``nbins`` between ``low`` and ``high``) or variable width
    (explicit ``edges``). In TOML a regular axis is written ``[nbins, low,
    high]`` and a variable one ``{edges = [...]}``.
    """

    nbins: int | None = None
    low: float | None = None
    high: float | None = None
    edges: tuple[float, ...] | None = None

    @classmethod
    def parse(cls, value: Any, name: str = "axis") -> "AxisSpec":
        """
        Build an AxisSpec from its configuration form.

        Args:
            value: AxisSpec, ``[nbins, low, high]`` or ``{"edges": [...]}``
            name: Parameter name used in error messages

        Raises:
            ConfigurationError: If the value is not a valid binning
        """
        if isinstance(value, AxisSpec):
            return value
        if isinstance(value, Mapping):
            if "edges" not in value:
                raise ConfigurationError(f"{name}: variable binning needs an 'edges' list")
            raw_edges = value["edges"]
            if not isinstance(raw_edges, (list, tuple)) or not all(_is_finite_number(e) for e in raw_edges):
                raise ConfigurationError(f"{name}: edges must be a list of finite numbers, got {raw_edges!r}")
            edges = tuple(float(e) for e in raw_edges)
            if len(edges) < 2 or any(b <= a for a, b in zip(edges, edges[1:])):
                raise ConfigurationError(f"{name}: edges must be strictly increasing, got {edges}")
            return cls(edges=edges)
        if isinstance(value, (list, tuple)) and len(value) == 3:
            nbins, low, high = value
            if not _is_finite_number(nbins) or int(nbins) != nbins or nbins <= 0:
                raise ConfigurationError(f"{name}: bin count must be a positive integer, got {nbins}")
            if not all(_is_finite_number(v) for v in (low, high)):
                raise ConfigurationError(f"{name}: bounds must be finite numbers, got {low!r}, {high!r}")
            if not float(low) < float(high):
                raise ConfigurationError(f"{name}: lower bound {low} is not below upper bound {high}")
            return cls(nbins=int(nbins), low=float(low), high=float(high))
        raise ConfigurationError(
            f"{name}: expected [nbins, low, high] or {{edges = [...]}}, got {value!r}"
        )

    @property
    def is_variable(self) -> bool:
        return self.edges is not None

    @property
    def n_bins(self) -> int:
        return len(self.edges) - 1 if self.is_variable else self.nbins

    def bin_edges(self) -> np.ndarray:
        if self.is_variable:
            return np.asarray(self.edges)
        return np.linspace(self.low, self.high, self.nbins + 1)

    def to_axis(self, name: str, label: str = "") -> hist.axis.Regular | hist.axis.Variable:
        """Create the matching ``hist`` axis"""
        if self.is_variable:
            return hist.axis.Variable(self.edges, name=name, label=label)
        return hist.axis.Regular(self.nbins, self.low, self.high, name=name, label=label)

    def to_config(self) -> list | dict:
        if self.is_variable:
            return {"edges": list(self.edges)}
        return [self.nbins, self.low, self.high]


@dataclass(frozen=True)
class Configurable:
    """One externally settable task parameter"""

    name: str
    group: str
    key: str
    default: Any
    help: str
    choices: tuple[str, ...] = field(default=())

    @property
    def path(self) -> str:
        return f"{self.group}.{self.key}"


CONFIGURABLES: tuple[Configurable, ...] = (
    # Phi candidate
    Configurable("ConfPDGCodePartOne", "phi", "pdg_code", 3122, "Phi - PDG code"),
    Configurable("ConfCutPhi", "phi", "cut", 338, "Phi - Selection bit from cutCulator"),
    Configurable("ConfPhiTempFitVarBins", "phi", "temp_fit_var_bins", AxisSpec(300, 0.95, 1.0),
                 "Phi: binning of the TempFitVar in the pT vs. TempFitVar plot"),
    Configurable("ConfPhiTempFitVarpTBins", "phi", "temp_fit_var_pt_bins", AxisSpec(20, 0.5, 4.05),
                 "Phi: pT binning of the pT vs. TempFitVar plot"),
    # Phi children
    Configurable("ConfPDGCodeChildPos", "child", "pdg_code_pos", 2212, "Positive Child - PDG code"),
    Configurable("ConfPDGCodeChildNeg", "child", "pdg_code_neg", 211, "Negative Child - PDG code"),
    Configurable("ConfCutChildPos", "child", "cut_pos", 150,
                 "Positive Child of Phi - Selection bit from cutCulator"),
    Configurable("ConfCutChildNeg", "child", "cut_neg", 149,
                 "Negative Child of Phi - Selection bit from cutCulator"),
    Configurable("ConfChildPosPidnSigmaMax", "child", "pid_nsigma_max_pos", 3.0,
                 "Positive Child of Phi - Max. PID nSigma TPC"),
    Configurable("ConfChildNegPidnSigmaMax", "child", "pid_nsigma_max_neg", 3.0,
                 "Negative Child of Phi - Max. PID nSigma TPC"),
    Configurable("ConfChildPosIndex", "child", "index_pos", 1,
                 "Positive Child of Phi - Index from cutCulator"),
    Configurable("ConfChildNegIndex", "child", "index_neg", 0,
                 "Negative Child of Phi - Index from cutCulator"),
    Configurable("ConfChildPIDnSigmaMax", "child", "pid_nsigma_max", [4.0, 3.0],
                 "Phi child sel: Max. PID nSigma TPC"),
    Configurable("ConfChildnSpecies", "child", "n_species", 2,
                 "Number of particle species (for Phi children) with PID info"),
    Configurable("ConfChildTempFitVarBins", "child", "temp_fit_var_bins", AxisSpec(300, -0.15, 0.15),
                 "Phi child: binning of the TempFitVar in the pT vs. TempFitVar plot"),
    Configurable("ConfChildTempFitVarpTBins", "child", "temp_fit_var_pt_bins", AxisSpec(20, 0.5, 4.05),
                 "Phi child: pT binning of the pT vs. TempFitVar plot"),
    # Task behaviour
    Configurable("ConfChildLookup", "task", "child_lookup", "index",
                 "How Phi children are located: by recorded global index or by row position",
                 choices=("index", "positional")),
    Configurable("ConfApplyCutBits", "task", "apply_cut_bits", False,
                 "Require the children's cut bitmask to contain the configured selection bits"),
    Configurable("ConfApplyPID", "task", "apply_pid", False,
                 "Require the children to pass the PID selection"),
    Configurable("ConfPIDMomentumThreshold", "task", "pid_momentum_threshold", 999.0,
                 "Momentum (GeV/c) above which TPC+TOF PID is used"),
    Configurable("ConfPIDnSigmaTPCTOF", "task", "pid_nsigma_tpctof", 3.0,
                 "Max. combined TPC+TOF PID nSigma"),
    Configurable("ConfIsMC", "task", "is_mc", False, "Book MC-truth histograms"),
    Configurable("ConfIsDebug", "task", "is_debug", True, "Book the debug histogram set"),
)

_BY_PATH = {c.path: c for c in CONFIGURABLES}
_BY_NAME = {c.name: c for c in CONFIGURABLES}
GROUPS = ("phi", "child", "task")


def lookup_configurable(name: str) -> Configurable:
    """
    Find a configurable by ``group.key`` path or by external name.

    Raises:
        ConfigurationError: If the name is unknown
    """
    if name in _BY_PATH:
        return _BY_PATH[name]
    if name in _BY_NAME:
        return _BY_NAME[name]
    raise ConfigurationError(
        f"Unknown configurable '{name}'. "
        f"Known: {sorted(_BY_PATH)} or external names {sorted(_BY_NAME)}"
    )


def coerce_value(configurable: Configurable, value: Any) -> Any:
    """
    Convert a raw value to the type of the configurable's default.

    Raises:
        ConfigurationError: If the value cannot be converted
    """
    default = configurable.default
    name = configurable.name

    if isinstance(default, AxisSpec):
        return AxisSpec.parse(value, name)
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigurationError(f"{name}: expected true/false, got {value!r}")
        return value
    if isinstance(default, int):
        if not _is_finite_number(value) or int(value) != value:
            raise ConfigurationError(f"{name}: expected an integer, got {value!r}")
        return int(value)
    if isinstance(default, float):
        if not _is_finite_number(value):
            raise ConfigurationError(f"{name}: expected a number, got {value!r}")
        return float(value)
    if isinstance(default, list):
        if not isinstance(value, (list, tuple)):
            raise ConfigurationError(f"{name}: expected a list, got {value!r}")
        if not all(_is_finite_number(v) for v in value):
            raise ConfigurationError(f"{name}: expected a list of finite numbers, got {value!r}")
        return [float(v) for v in value]
    if isinstance(default, str):
        if not isinstance(value, str):
            raise ConfigurationError(f"{name}: expected a string, got {value!r}")
        if configurable.choices and value not in configurable.choices:
            raise ConfigurationError(
                f"{name}: '{value}' is not one of {list(configurable.choices)}"
            )
        return value
    raise ConfigurationError(f"{name}: unsupported parameter type {type(default).__name__}")


def parse_override(text: str) -> tuple[str, Any]:
    """
    Split a ``KEY=VALUE`` override.

    The value is read as a TOML literal (``3``, ``1.5``, ``true``,
    ``[20, 0.5, 4.05]``); anything that is not valid TOML is kept as a
    bare string.

    Raises:
        ConfigurationError: If there is no ``=`` or the key is empty
    """
    key, sep, raw = text.partition("=")
    key = key.strip()
    raw = raw.strip()
    if not sep or not key:
        raise ConfigurationError(f"Override must look like KEY=VALUE, got '{text}'")
    try:
        value = tomli.loads(f"v = {raw}")["v"]
    except tomli.TOMLDecodeError:
        value = raw
    return key, value


class TaskConfig:
    """
    Resolved configuration of the Phi QA task

    Attributes:
        phi: Read-only view of the Phi candidate group
        child: Read-only view of the Phi children group
        task: Read-only view of the task behaviour group
        source: Path of the TOML file that was applied, if any
    """

    def __init__(self, values: Mapping[str, Mapping[str, Any]] | None = None,
                 source: Path | None = None) -> None:
        self.logger = logging.getLogger("FemtoPhi.TaskConfig")
        self.source = source
        self._values: dict[str, dict[str, Any]] = {group: {} for group in GROUPS}
        for configurable in CONFIGURABLES:
            self._values[configurable.group][configurable.key] = configurable.default

        for group, entries in (values or {}).items():
            if group not in self._values:
                raise ConfigurationError(f"Unknown configuration group '{group}'")
            if not isinstance(entries, Mapping):
                raise ConfigurationError(f"Configuration group '{group}' must be a table")
            for key, value in entries.items():
                self._set(f"{group}.{key}", value)

    @classmethod
    def from_toml(cls, path: str | Path | None = None,
                  overrides: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None) -> "TaskConfig":
        """
        Load the configuration

        Args:
            path: TOML file with ``[phi]``, ``[child]`` and ``[task]`` tables.
                  Defaults only when None.
            overrides: ``{name: value}`` applied last; names are ``group.key``
                       or external names

        Returns:
            TaskConfig

        Raises:
            ConfigurationError: If the file is missing, unparsable or holds
                                unknown parameters
        """
        values: dict[str, Any] = {}
        source = None
        if path is not None:
            source = Path(path)
            try:
                with open(source, "rb") as f:
                    values = tomli.load(f)
            except FileNotFoundError:
                raise ConfigurationError(f"Configuration file not found: {source}")
            except tomli.TOMLDecodeError as e:
                raise ConfigurationError(f"Error parsing TOML file {source}: {e}")

        config = cls(values, source=source)

        if overrides:
            items = overrides.items() if isinstance(overrides, Mapping) else overrides
            for name, value in items:
                config._set(name, value)
                config.logger.info(f"Override {lookup_configurable(name).path} = {value!r}")
        return config

    def _set(self, name: str, value: Any) -> None:
        configurable = lookup_configurable(name)
        self._values[configurable.group][configurable.key] = coerce_value(configurable, value)

    @property
    def phi(self) -> Mapping[str, Any]:
        return MappingProxyType(self._values["phi"])

    @property
    def child(self) -> Mapping[str, Any]:
        return MappingProxyType(self._values["child"])

    @property
    def task(self) -> Mapping[str, Any]:
        return MappingProxyType(self._values["task"])

    def get(self, name: str) -> Any:
        """Value by ``group.key`` path or external name"""
        configurable = lookup_configurable(name)
        return self._values[configurable.group][configurable.key]

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Plain nested dict, with axes in their TOML form"""
        return {
            group: {
                key: value.to_config() if isinstance(value, AxisSpec) else value
                for key, value in entries.items()
            }
            for group, entries in self._values.items()
        }

    def dump(self, path: str | Path) -> Path:
        """Write the effective configuration as TOML"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            tomli_w.dump(self.to_dict(), f)
        self.logger.info(f"Wrote effective configuration to {path}")
        return path

    def describe(self) -> list[dict[str, Any]]:
        """One row per configurable: external name, path, value and help"""
        rows = []
        for configurable in CONFIGURABLES:
            value = self._values[configurable.group][configurable.key]
            rows.append({
                "name": configurable.name,
                "path": configurable.path,
                "value": value.to_config() if isinstance(value, AxisSpec) else value,
                "help": configurable.help,
            })
        return rows

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TaskConfig):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"TaskConfig(source={self.source})"
