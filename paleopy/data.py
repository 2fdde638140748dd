"""
paleopy.data
============
Loading of gridded model output and forcing series.

All functions are non-interactive: parameters are passed explicitly.
Time values are read raw (``decode_times=False``) so that the validator in
``paleopy.timeaxis`` can check their encoding before anything is aligned.

Typical workflow
----------------
>>> import paleopy.data as pd_
>>> temp = pd_.load_field("data/R1_temp2_yearmean.nc", var="temp2")
>>> tsi  = pd_.load_forcing("data/solar_tsi.nc", var="TSI")
>>> inputs = pd_.load_inputs(config)      # both runs + forcings, validated
>>> inputs.runs["R1"].sel(time=1258)
"""

from __future__ import annotations

import logging
from typing import Optional, Union
from pathlib import Path

import numpy as np
import xarray as xr

from paleopy.timeaxis import validate_time_axes

logger = logging.getLogger(__name__)


# ── Loading ───────────────────────────────────────────────────────────

def load_nc(
    path: Union[str, Path],
    var: Optional[str] = None,
    squeeze: Optional[Union[str, list]] = None,
    decode_times: bool = False,
) -> xr.Dataset:
    """Load a NetCDF file into an xarray.Dataset."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    ds = xr.open_dataset(path, decode_times=decode_times)

    if squeeze is not None:
        if isinstance(squeeze, str):
            squeeze = [squeeze]
        for dim in squeeze:
            if dim in ds.dims:
                ds = ds.squeeze(dim, drop=True)

    if var is not None:
        if var not in ds:
            raise KeyError(
                f"Variable '{var}' not found in {path.name}. "
                f"Available: {list(ds.data_vars)}"
            )
        ds = ds[[var]]

    return ds


# ── Coordinate normalisation ──────────────────────────────────────────

_ALIASES = {
    "time": ("time", "T", "t", "year"),
    "lat": ("lat", "latitude", "y"),
    "lon": ("lon", "longitude", "x"),
}


def standardise_coords(
    ds: Union[xr.Dataset, xr.DataArray],
    time: Optional[str] = None,
    lat: Optional[str] = None,
    lon: Optional[str] = None,
) -> Union[xr.Dataset, xr.DataArray]:
    """Rename coordinates to ``time/lat/lon`` and sort lat/lon ascending.

    Explicit names win; otherwise the first known alias present is used.
    """
    explicit = {"time": time, "lat": lat, "lon": lon}
    rename = {}
    for std, alias in _ALIASES.items():
        name = explicit[std]
        if name is None:
            name = next((a for a in alias if a in ds.dims or a in ds.coords), None)
        if name is not None and name != std:
            rename[name] = std

    if rename:
        ds = ds.rename(rename)

    if "lat" in ds.coords:
        ds = ds.isel(lat=np.argsort(ds["lat"].values, kind="stable"))
    if "lon" in ds.coords:
        ds = ds.isel(lon=np.argsort(ds["lon"].values, kind="stable"))

    return ds


def mask_fill_values(
    da: Union[xr.Dataset, xr.DataArray],
    fill_value: Optional[float] = None,
    abs_threshold: float = 1e29,
) -> Union[xr.Dataset, xr.DataArray]:
    """Replace fill values and unrealistically large magnitudes with NaN."""
    if fill_value is not None:
        da = da.where(da != fill_value)
    da = da.where(np.abs(da) < abs_threshold)
    return da


# ── Fields and series ────────────────────────────────────────────────

def load_field(
    path: Union[str, Path],
    var: str,
    fill_value: Optional[float] = None,
) -> xr.DataArray:
    """Load a gridded temperature field as a (time, lat, lon) DataArray.

    The file may store the dimensions in any order; the result is always
    transposed to (time, lat, lon).  Units and other attributes are kept.
    """
    ds = standardise_coords(load_nc(path, var=var))
    da = ds[var]
    missing = {"time", "lat", "lon"} - set(da.dims)
    if missing:
        raise ValueError(
            f"'{var}' in {Path(path).name} lacks dimension(s) {sorted(missing)}; "
            f"has {da.dims}."
        )
    extra = [d for d in da.dims if d not in ("time", "lat", "lon")]
    for d in extra:
        if da.sizes[d] != 1:
            raise ValueError(f"'{var}' has non-singleton extra dimension '{d}'.")
        da = da.squeeze(d, drop=True)

    attrs = dict(da.attrs)
    da = mask_fill_values(da.transpose("time", "lat", "lon"), fill_value)
    da.attrs = attrs
    da.name = var
    return da


def load_forcing(
    path: Union[str, Path],
    var: str,
    fill_value: Optional[float] = None,
) -> xr.DataArray:
    """Load a scalar forcing series (e.g. irradiance, optical depth) over time.

    Singleton spatial dimensions (a 1×1 grid, as CDO writes global means)
    are squeezed away.
    """
    ds = standardise_coords(load_nc(path, var=var))
    da = ds[var]
    if "time" not in da.dims:
        raise ValueError(f"'{var}' in {Path(path).name} has no time dimension.")
    for d in [d for d in da.dims if d != "time"]:
        if da.sizes[d] != 1:
            raise ValueError(
                f"'{var}' in {Path(path).name} is not a scalar series: "
                f"dimension '{d}' has size {da.sizes[d]}."
            )
        da = da.squeeze(d, drop=True)

    attrs = dict(da.attrs)
    da = mask_fill_values(da, fill_value)
    da.attrs = attrs
    da.name = var
    return da


# ── Validated inputs ─────────────────────────────────────────────────

class Inputs:
    """Both runs and both forcings on one validated integer-year axis.

    Attributes
    ----------
    runs : dict — run name → (time, lat, lon) DataArray.
    solar, aod : 1-D DataArrays over time.
    years : np.ndarray of int.
    """

    def __init__(self, runs: dict, solar: xr.DataArray, aod: xr.DataArray,
                 years: np.ndarray):
        self.runs = runs
        self.solar = solar
        self.aod = aod
        self.years = years

    def __repr__(self):
        return (f"Inputs(runs={list(self.runs)}, years={self.years[0]}–"
                f"{self.years[-1]}, n={self.years.size})")


def load_inputs(config) -> Inputs:
    """Load every configured source and validate their time axes.

    All sources must share the same spatial grid as well; the time
    coordinate of every returned array is replaced by the integer years.
    """
    runs = {name: load_field(config.path(spec), spec.var)
            for name, spec in config.runs.items()}
    solar = load_forcing(config.path(config.solar), config.solar.var)
    aod = load_forcing(config.path(config.aod), config.aod.var)

    axes = {name: (runs[name]["time"].values, spec.time_suffix)
            for name, spec in config.runs.items()}
    axes["solar"] = (solar["time"].values, config.solar.time_suffix)
    axes["aod"] = (aod["time"].values, config.aod.time_suffix)
    years = validate_time_axes(axes)

    first = next(iter(runs))
    for name, da in runs.items():
        for dim in ("lat", "lon"):
            if not np.array_equal(da[dim].values, runs[first][dim].values):
                raise ValueError(
                    f"Run '{name}' has a different {dim} axis than '{first}'."
                )

    runs = {name: da.assign_coords(time=years) for name, da in runs.items()}
    solar = solar.assign_coords(time=years)
    aod = aod.assign_coords(time=years)

    for name, da in runs.items():
        logger.info("Loaded run %s: %s, units=%s", name, dict(da.sizes),
                    da.attrs.get("units", "?"))
    return Inputs(runs, solar, aod, years)
