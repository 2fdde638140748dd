"""
paleopy.config
==============
Explicit configuration for an analysis pass.

Every path and tuning constant the workflow needs lives on one
``AnalysisConfig`` object that is passed into each component, instead of
relying on the current working directory.

Example
-------
>>> cfg = AnalysisConfig.from_dict({
...     "data_dir": "data",
...     "runs": {"R1": {"filename": "r1_temp2.nc", "var": "temp2"},
...              "R2": {"filename": "r2_temp2.nc", "var": "temp2"}},
...     "eof": {"n_modes": 40, "backend": "cdo"},
... })
>>> cfg.path(cfg.runs["R1"])
PosixPath('data/r1_temp2.nc')
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Optional, Union

from paleopy.exceptions import ConfigError


# ── Reference constants ──────────────────────────────────────────────

N_MODES        = 40      # leading EOF modes retained
LAT_BAND       = 30.0    # tropical band kept for the EOF, degrees
AOD_THRESHOLD  = 0.1     # optical depth above which a year is "volcanic"
LOWPASS_PERIOD = 26      # low-pass cutoff, in time steps (years)
COLOR_RANGE    = 5.0     # shared ± colour limit of the anomaly maps

BACKENDS = ("cdo", "eofs")
ZERO_VARIANCE_POLICIES = ("nan", "raise")


@dataclass
class FileSpec:
    """One input file: its name, the variable to read and its time suffix.

    ``time_suffix`` is the trailing text every raw time value carries
    (e.g. ``"0701.5"`` for ``YYYYMMDD.5`` mid-year stamps, ``".5"`` for
    fractional years) and is stripped to recover the integer year.
    """

    filename: str
    var: str
    time_suffix: str = ""


@dataclass
class EOFConfig:
    n_modes: int = N_MODES
    lat_band: float = LAT_BAND
    standardize: bool = False
    backend: str = "cdo"
    cdo_binary: Optional[str] = None
    skipna: bool = False

    def __post_init__(self):
        if self.n_modes < 1:
            raise ConfigError(f"n_modes must be >= 1, got {self.n_modes}.")
        if not 0 < self.lat_band <= 90:
            raise ConfigError(f"lat_band must be in (0, 90], got {self.lat_band}.")
        if self.backend not in BACKENDS:
            raise ConfigError(
                f"backend='{self.backend}' not recognised. Choose from {BACKENDS}."
            )


@dataclass
class SpectralConfig:
    modes: tuple = (0, 1, 2, 3)
    nw: float = 2.0
    confidence: float = 0.95
    n_trim: int = 5
    smooth_width: float = 0.0
    lowpass_period: float = LOWPASS_PERIOD

    def __post_init__(self):
        self.modes = tuple(int(m) for m in self.modes)
        if not 0 < self.confidence < 1:
            raise ConfigError(f"confidence must be in (0, 1), got {self.confidence}.")
        if self.n_trim < 0:
            raise ConfigError(f"n_trim must be >= 0, got {self.n_trim}.")
        if self.lowpass_period <= 2:
            raise ConfigError(
                f"lowpass_period must exceed 2 time steps, got {self.lowpass_period}."
            )


@dataclass
class AnalysisConfig:
    """Configuration of a complete analysis pass.

    Parameters
    ----------
    data_dir : directory holding the input files.
    output_dir : directory for intermediate EOF artifacts (the cache).
    figure_dir : directory for rendered figures.
    runs : mapping run name → FileSpec of its temperature field.
    solar, aod : FileSpec of the solar irradiance and aerosol optical depth.
    aod_threshold : optical depth above which a time step is forcing-active.
    vmin, vmax : shared colour range of the anomaly maps; must straddle zero.
    ddof : delta degrees of freedom of the temporal standard deviation.
    zero_variance : 'nan' or 'raise' — policy at zero-variance cells.
    """

    data_dir: Path = Path(".")
    output_dir: Path = Path("output")
    figure_dir: Path = Path("figures")
    runs: dict = field(default_factory=lambda: {
        "R1": FileSpec("R1_temp2_yearmean.nc", "temp2", "1231"),
        "R2": FileSpec("R2_temp2_yearmean.nc", "temp2", "1231"),
    })
    solar: FileSpec = field(
        default_factory=lambda: FileSpec("solar_tsi.nc", "TSI", ".5"))
    aod: FileSpec = field(
        default_factory=lambda: FileSpec("volcanic_aod.nc", "aod", ".5"))
    aod_threshold: float = AOD_THRESHOLD
    vmin: float = -COLOR_RANGE
    vmax: float = COLOR_RANGE
    ddof: int = 0
    zero_variance: str = "nan"
    eof: EOFConfig = field(default_factory=EOFConfig)
    spectral: SpectralConfig = field(default_factory=SpectralConfig)

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        self.output_dir = Path(self.output_dir)
        self.figure_dir = Path(self.figure_dir)
        if len(self.runs) < 1:
            raise ConfigError("At least one run must be configured.")
        if not self.vmin < 0 < self.vmax:
            raise ConfigError(
                "Colour range must straddle zero, "
                f"got vmin={self.vmin}, vmax={self.vmax}."
            )
        if self.zero_variance not in ZERO_VARIANCE_POLICIES:
            raise ConfigError(
                f"zero_variance='{self.zero_variance}' not recognised. "
                f"Choose from {ZERO_VARIANCE_POLICIES}."
            )

    # ── Paths ────────────────────────────────────────────────────────

    def path(self, spec: Union[FileSpec, str]) -> Path:
        """Resolve a FileSpec (or bare filename) against ``data_dir``."""
        name = spec.filename if isinstance(spec, FileSpec) else spec
        return self.data_dir / name

    def run_paths(self) -> dict:
        return {name: self.path(spec) for name, spec in self.runs.items()}

    def run_vars(self) -> dict:
        return {name: spec.var for name, spec in self.runs.items()}

    # ── Construction ─────────────────────────────────────────────────

    @classmethod
    def from_dict(cls, d: dict) -> "AnalysisConfig":
        """Build a config from plain (e.g. JSON-decoded) dictionaries."""
        d = dict(d)
        known = {f.name for f in fields(cls)}
        unknown = set(d) - known
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {sorted(unknown)}")

        if "runs" in d:
            d["runs"] = {name: _filespec(spec) for name, spec in d["runs"].items()}
        for key in ("solar", "aod"):
            if key in d:
                d[key] = _filespec(d[key])
        if "eof" in d and isinstance(d["eof"], dict):
            d["eof"] = EOFConfig(**d["eof"])
        if "spectral" in d and isinstance(d["spectral"], dict):
            d["spectral"] = SpectralConfig(**d["spectral"])
        return cls(**d)

    def to_dict(self) -> dict:
        d = asdict(self)
        for key in ("data_dir", "output_dir", "figure_dir"):
            d[key] = str(d[key])
        return d


def _filespec(spec) -> FileSpec:
    if isinstance(spec, FileSpec):
        return spec
    if isinstance(spec, dict):
        try:
            return FileSpec(**spec)
        except TypeError as err:
            raise ConfigError(f"Invalid file specification {spec!r}: {err}") from err
    raise ConfigError(f"Invalid file specification {spec!r}.")
