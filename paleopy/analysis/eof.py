"""
paleopy.analysis.eof
====================
EOF decomposition of the tropical ensemble-mean temperature anomaly.

Steps (one directory of NetCDF artifacts per parameter set):

1. keep the tropical band ±``lat_band`` of every run,
2. average the runs cell by cell (ensemble mean),
3. subtract the full-period temporal mean (optionally divide by the
   temporal standard deviation),
4. decompose into ``n_modes`` EOFs and project the coefficient series.

The default backend hands every step to CDO; the ``'eofs'`` backend does
the same in-process with xarray and the ``eofs`` library.  Both write the
same files:

    eigval.nc             eigenvalues
    eigvec.nc             spatial patterns
    coeff00000.nc, ...    one coefficient series per mode
    manifest.json         parameters; marks the directory complete

Example
-------
>>> pipe = EOFPipeline(config.eof, output_dir="output")
>>> result = pipe.decompose(config.run_paths(), config.run_vars())
>>> result.summary()
>>> result.coefficients.isel(mode=0)
"""

from __future__ import annotations

import hashlib
import json
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd
import xarray as xr
from eofs.xarray import Eof as _Eof

from paleopy.config import EOFConfig
from paleopy.data import load_nc, load_field, standardise_coords
from paleopy.ops import cosine_weights, ensemble_mean, mask_latitude_band

logger = logging.getLogger(__name__)

EIGVAL = "eigval.nc"
EIGVEC = "eigvec.nc"
COEFF_PREFIX = "coeff"
MANIFEST = "manifest.json"

_CHUNK = 1 << 20


# ── Result ────────────────────────────────────────────────────────────

class EOFResult:
    """Eigenvalues, spatial patterns and coefficient series of a decomposition.

    Attributes
    ----------
    eigenvalues : xr.DataArray (mode,)
    patterns : xr.DataArray (mode × lat × lon)
    coefficients : xr.DataArray (time × mode)
    directory : Path the artifacts were read from.
    """

    def __init__(self, eigenvalues, patterns, coefficients, directory=None):
        self.eigenvalues = eigenvalues
        self.patterns = patterns
        self.coefficients = coefficients
        self.directory = directory

    @property
    def n_modes(self) -> int:
        return self.coefficients.sizes["mode"]

    def align_time(self, years) -> "EOFResult":
        """Relabel the coefficient time axis with validated integer years."""
        years = np.asarray(years)
        if years.size != self.coefficients.sizes["time"]:
            raise ValueError(
                f"{years.size} years given for {self.coefficients.sizes['time']} "
                f"coefficient time steps."
            )
        self.coefficients = self.coefficients.assign_coords(time=years)
        return self

    def variance_fraction(self, n: int = None) -> xr.DataArray:
        """Explained variance fraction (%) of the first ``n`` modes.

        Relative to the sum of all eigenvalues on disk.
        """
        n = n or self.n_modes
        frac = self.eigenvalues / self.eigenvalues.sum() * 100.0
        return frac.isel(mode=slice(0, n))

    def n_modes_for_variance(self, percent: float = 70.0) -> int:
        """Minimum number of modes explaining >= ``percent`` % of variance."""
        cumvar = np.cumsum(self.variance_fraction(len(self.eigenvalues)).values)
        idx = int(np.searchsorted(cumvar, percent))
        return min(idx + 1, len(cumvar))

    def summary(self, n: int = 10) -> str:
        """Log a table of the leading modes and their explained variance."""
        fracs = self.variance_fraction(min(n, self.n_modes)).values
        cumvar = np.cumsum(fracs)
        lines = [
            f"{'Mode':>6}  {'Var (%)':>9}  {'Cum. var (%)':>13}",
            "-" * 34,
        ]
        for i, (f, c) in enumerate(zip(fracs, cumvar)):
            lines.append(f"{i+1:>6}  {f:>9.2f}  {c:>13.2f}")
        lines.append("-" * 34)
        result = "\n".join(lines)
        logger.info("EOF summary\n%s", result)
        return result


# ── Pipeline ──────────────────────────────────────────────────────────

class EOFPipeline:
    """Masked ensemble-mean EOF decomposition with an on-disk cache.

    Parameters
    ----------
    config : EOFConfig
    output_dir : directory under which ``eof_<key>`` cache entries live.
    runner : object with a ``run(operator, *args, input=, output=, prefix=)``
        method, used for the 'cdo' backend.  Defaults to ``CdoRunner``.

    The cache key covers the content of every input file plus all
    parameters, so editing an input or a parameter selects a new entry.
    Stale entries are never deleted automatically.
    """

    def __init__(
        self,
        config: Optional[EOFConfig] = None,
        output_dir: Union[str, Path] = "output",
        runner=None,
    ):
        self.config = config or EOFConfig()
        self.output_dir = Path(output_dir)
        self._runner = runner

    @property
    def runner(self):
        if self._runner is None:
            from paleopy.cdo import CdoRunner
            self._runner = CdoRunner(self.config.cdo_binary)
        return self._runner

    # ── Cache ─────────────────────────────────────────────────────────

    def cache_key(self, run_files: dict, variables: Optional[dict] = None) -> str:
        """12-character hash of input contents, variable names and parameters."""
        h = hashlib.sha256()
        for name in sorted(run_files):
            h.update(name.encode())
            with open(run_files[name], "rb") as fh:
                for chunk in iter(lambda: fh.read(_CHUNK), b""):
                    h.update(chunk)
        params = {
            "n_modes": self.config.n_modes,
            "lat_band": self.config.lat_band,
            "standardize": self.config.standardize,
            "backend": self.config.backend,
            "skipna": self.config.skipna,
            "variables": {k: variables[k] for k in sorted(variables or {})},
        }
        h.update(json.dumps(params, sort_keys=True).encode())
        return h.hexdigest()[:12]

    def target(self, run_files: dict, variables: Optional[dict] = None) -> Path:
        return self.output_dir / f"eof_{self.cache_key(run_files, variables)}"

    @staticmethod
    def is_complete(directory: Path) -> bool:
        return (Path(directory) / MANIFEST).exists()

    # ── Run ───────────────────────────────────────────────────────────

    def run(self, run_files: dict, variables: Optional[dict] = None) -> Path:
        """Produce the EOF artifacts for ``run_files`` unless already cached.

        Parameters
        ----------
        run_files : dict — run name → NetCDF path of its temperature field.
        variables : dict, optional — run name → variable to decompose.  Runs
            left out use the first (time, lat, lon) variable of their file.

        Returns
        -------
        Path of the cache directory holding the artifacts.
        """
        run_files = {name: Path(p) for name, p in run_files.items()}
        variables = dict(variables or {})
        unknown = set(variables) - set(run_files)
        if unknown:
            raise ValueError(f"Variables given for unknown runs: {sorted(unknown)}")
        for p in run_files.values():
            if not p.exists():
                raise FileNotFoundError(f"File not found: {p}")

        target = self.target(run_files, variables)
        if self.is_complete(target):
            logger.info("EOF artifacts found in %s; skipping decomposition", target)
            return target

        self.output_dir.mkdir(parents=True, exist_ok=True)
        work = Path(tempfile.mkdtemp(prefix=target.name + ".", dir=self.output_dir))
        try:
            logger.info("Decomposing %s into %d modes (%s backend, ±%g°)",
                        list(run_files), self.config.n_modes,
                        self.config.backend, self.config.lat_band)
            if self.config.backend == "cdo":
                self._run_cdo(run_files, variables, work)
            else:
                self._run_eofs(run_files, variables, work)

            manifest = {
                "inputs": {k: str(v) for k, v in run_files.items()},
                "variables": variables,
                "n_modes": self.config.n_modes,
                "lat_band": self.config.lat_band,
                "standardize": self.config.standardize,
                "backend": self.config.backend,
                "skipna": self.config.skipna,
            }
            (work / MANIFEST).write_text(json.dumps(manifest, indent=2))
            if target.exists():
                shutil.rmtree(target)
            work.rename(target)
        except BaseException:
            shutil.rmtree(work, ignore_errors=True)
            raise

        logger.info("EOF artifacts written to %s", target)
        return target

    def _run_cdo(self, run_files: dict, variables: dict, work: Path) -> None:
        cdo = self.runner
        band = self.config.lat_band

        masked = []
        for name, path in run_files.items():
            out = work / f"{name}_masked.nc"
            source = f"-selname,{variables[name]} {path}" if name in variables else path
            cdo.run("sellonlatbox", -180, 180, -band, band, input=source, output=out)
            masked.append(out)

        ens = work / "ensmean.nc"
        cdo.run("ensmean", input=masked, output=ens)

        anom = work / "anom.nc"
        cdo.run("sub", input=f"{ens} -timmean {ens}", output=anom)
        if self.config.standardize:
            std_anom = work / "anom_std.nc"
            cdo.run("div", input=f"{anom} -timstd {ens}", output=std_anom)
            anom = std_anom

        cdo.run("eof", self.config.n_modes, input=anom,
                output=[work / EIGVAL, work / EIGVEC])
        cdo.run("eofcoeff", input=[work / EIGVEC, anom],
                output=work / COEFF_PREFIX, prefix=True)

    def _run_eofs(self, run_files: dict, variables: dict, work: Path) -> None:
        fields = []
        for name, path in run_files.items():
            var = variables.get(name)
            if var is None:
                var = _data_var(standardise_coords(load_nc(path)), path)
            da = load_field(path, var)
            fields.append(mask_latitude_band(da, self.config.lat_band))

        ens = ensemble_mean(fields, skipna=self.config.skipna)
        anom = ens - ens.mean("time")
        if self.config.standardize:
            anom = anom / ens.std("time")

        solver, times = _solver(anom)
        n = self.config.n_modes
        eigval = solver.eigenvalues()
        patterns = solver.eofs(neofs=n, eofscaling=0)
        pcs = solver.pcs(npcs=n, pcscaling=0)

        var = anom.name or "Xdata"
        xr.DataArray(eigval.values, dims=["mode"], name=var).to_netcdf(work / EIGVAL)
        patterns.rename(var).to_netcdf(work / EIGVEC)
        for m in range(pcs.sizes["mode"]):
            series = xr.DataArray(pcs.isel(mode=m).values, dims=["time"],
                                  coords={"time": times}, name=var)
            series.to_netcdf(work / f"{COEFF_PREFIX}{m:05d}.nc")

    # ── Load ──────────────────────────────────────────────────────────

    def load(self, directory: Union[str, Path]) -> EOFResult:
        """Read the artifacts of a completed run back into memory."""
        directory = Path(directory)
        if not self.is_complete(directory):
            raise FileNotFoundError(f"No complete EOF artifacts in {directory}")

        eigval = _first_var(load_nc(directory / EIGVAL, squeeze=["lat", "lon"]))
        if eigval.dims[0] != "mode":
            eigval = eigval.rename({eigval.dims[0]: "mode"})
        eigval = eigval.assign_coords(mode=np.arange(eigval.sizes["mode"]))

        patterns = _first_var(standardise_coords(load_nc(directory / EIGVEC)))
        mode_dim = next(d for d in patterns.dims if d not in ("lat", "lon"))
        if mode_dim != "mode":
            patterns = patterns.rename({mode_dim: "mode"})
        patterns = patterns.transpose("mode", "lat", "lon")
        patterns = patterns.assign_coords(mode=np.arange(patterns.sizes["mode"]))

        files = sorted(directory.glob(f"{COEFF_PREFIX}*.nc"))
        if not files:
            raise FileNotFoundError(f"No coefficient files in {directory}")
        series = []
        for f in files:
            da = _first_var(standardise_coords(load_nc(f)))
            flat = [d for d in da.dims if d != "time" and da.sizes[d] == 1]
            series.append(da.squeeze(flat, drop=True).reset_coords(drop=True))
        coeffs = xr.concat(series, dim="mode", coords="minimal", compat="override")
        coeffs = coeffs.assign_coords(mode=np.arange(len(files))).transpose("time", "mode")
        coeffs.name = "coefficients"

        return EOFResult(eigval, patterns, coeffs, directory)

    def decompose(self, run_files: dict, variables: Optional[dict] = None) -> EOFResult:
        """``run`` then ``load``."""
        return self.load(self.run(run_files, variables))


# ── Helpers ───────────────────────────────────────────────────────────

def _first_var(ds: xr.Dataset) -> xr.DataArray:
    """The data variable of a single-variable CDO file (bounds skipped)."""
    names = [v for v in ds.data_vars
             if not (v.endswith("bnds") or v.endswith("bounds"))]
    if not names:
        raise ValueError("Dataset holds no data variable.")
    return ds[names[0]]


def _data_var(ds: xr.Dataset, path) -> str:
    gridded = [v for v in ds.data_vars
               if {"time", "lat", "lon"} <= set(ds[v].dims)]
    if not gridded:
        raise ValueError(f"No (time, lat, lon) variable in {path}")
    return gridded[0]


def _solver(anom: xr.DataArray):
    """``eofs`` solver for a (time, lat, lon) anomaly with integer years.

    eofs needs a datetime64 'time' coordinate, and pandas cannot represent
    pre-1678 years, so the years ride on a surrogate yearly date axis and
    are returned separately.
    """
    years = anom["time"].values
    fake_time = pd.date_range(start="2000-01-01", periods=len(years), freq="YS")
    da = anom.transpose("time", "lat", "lon").assign_coords(time=fake_time)
    return _Eof(da, weights=cosine_weights(da)), years
