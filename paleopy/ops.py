"""
paleopy.ops
===========
General-purpose operations on gridded fields and time series.

Functions
---------
recenter_longitude      — roll lon columns from [0, 360) to [-180, 180)
uncenter_longitude      — exact inverse of recenter_longitude
screen_order            — latitude north-to-south (top-to-bottom rows)
mask_latitude_band      — keep |lat| <= band, drop the rest
ensemble_mean           — cell-wise mean across runs
zonal_mean              — mean over longitude
cosine_weights          — sqrt(cos(lat)) area weights for EOF analysis
moving_average          — centred n-step moving average
lowpass                 — zero-phase Butterworth low-pass filter
longest_valid_run       — slice of the longest contiguous non-NaN stretch
"""

from __future__ import annotations

import numpy as np
import xarray as xr
from scipy.signal import butter, filtfilt


# ── Longitude / latitude ordering ─────────────────────────────────────

def recenter_longitude(da: xr.DataArray) -> xr.DataArray:
    """Cyclically roll the longitude columns from [0, 360) to [-180, 180).

    The eastern half (lon >= 180) moves to the front and its labels are
    shifted by -360.  Only the order of columns changes; no value is
    interpolated, so ``uncenter_longitude`` restores the input exactly.

    Example
    -------
    >>> recenter_longitude(anom)["lon"].values[:3]
    array([-180. , -177.5, -175. ])
    """
    lon = da["lon"].values
    if lon.min() < 0:
        raise ValueError("Longitudes are already in the [-180, 180) convention.")
    shift = int(np.count_nonzero(lon >= 180))
    out = da.roll(lon=shift, roll_coords=True)
    new_lon = np.where(out["lon"].values >= 180, out["lon"].values - 360,
                       out["lon"].values)
    return out.assign_coords(lon=new_lon)


def uncenter_longitude(da: xr.DataArray) -> xr.DataArray:
    """Inverse of ``recenter_longitude``: back to [0, 360)."""
    lon = da["lon"].values
    shift = int(np.count_nonzero(lon < 0))
    out = da.roll(lon=-shift, roll_coords=True)
    new_lon = np.where(out["lon"].values < 0, out["lon"].values + 360,
                       out["lon"].values)
    return out.assign_coords(lon=new_lon)


def screen_order(da: xr.DataArray) -> xr.DataArray:
    """Reverse latitude if needed so that the first row is the northernmost."""
    lat = da["lat"].values
    if lat.size > 1 and lat[0] < lat[-1]:
        return da.isel(lat=slice(None, None, -1))
    return da


# ── Masking and averaging ─────────────────────────────────────────────

def mask_latitude_band(da: xr.DataArray, band: float = 30.0) -> xr.DataArray:
    """Keep only latitudes within ±``band`` degrees; other rows are dropped."""
    keep = np.abs(da["lat"].values) <= band
    if not keep.any():
        raise ValueError(f"No latitude lies within ±{band}°.")
    return da.isel(lat=keep)


def ensemble_mean(
    fields,
    skipna: bool = False,
) -> xr.DataArray:
    """Cell-wise mean across runs.

    Parameters
    ----------
    fields : sequence of xr.DataArray on identical grids.
    skipna : bool — if False (default), a NaN in any run gives NaN.

    Returns
    -------
    xr.DataArray with the same dims as each input.
    """
    fields = list(fields)
    if not fields:
        raise ValueError("ensemble_mean needs at least one field.")
    stacked = xr.concat(fields, dim="run", join="exact")
    out = stacked.mean("run", skipna=skipna)
    out.attrs = {**fields[0].attrs, "description": f"Ensemble mean of {len(fields)} runs"}
    out.name = fields[0].name
    return out


def zonal_mean(da: xr.DataArray) -> xr.DataArray:
    """Mean over all longitudes at each latitude (NaN-skipping)."""
    out = da.mean("lon", skipna=True)
    out.attrs = {**da.attrs, "description": "Zonal mean"}
    return out


# ── Weights ───────────────────────────────────────────────────────────

def cosine_weights(da: xr.DataArray) -> np.ndarray:
    """Return area weights proportional to sqrt(cos(lat)), for EOF analysis.

    Shape: (lat, 1) so that broadcasting over (lat, lon) works automatically.
    """
    coslat = np.cos(np.deg2rad(da.coords["lat"].values)).clip(0.0, 1.0)
    wgts = np.sqrt(coslat)[..., np.newaxis]
    return wgts


# ── Smoothing and filtering ───────────────────────────────────────────

def moving_average(
    da: xr.DataArray,
    n: int,
    dim: str = "time",
    center: bool = True,
    min_periods: int = None,
) -> xr.DataArray:
    """Centred (or trailing) n-point moving average, NaN at the edges.

    Example
    -------
    >>> coeff_smooth = moving_average(coeff, n=11)
    """
    if min_periods is None:
        min_periods = n
    return da.rolling({dim: n}, center=center, min_periods=min_periods).mean()


def longest_valid_run(values: np.ndarray) -> slice:
    """Slice of the longest contiguous stretch of finite values."""
    finite = np.isfinite(np.asarray(values, dtype=float))
    best, start, best_len = slice(0, 0), None, 0
    for i, ok in enumerate(np.append(finite, False)):
        if ok and start is None:
            start = i
        elif not ok and start is not None:
            if i - start > best_len:
                best, best_len = slice(start, i), i - start
            start = None
    return best


def lowpass(
    series,
    period: float = 26,
    order: int = 4,
) -> np.ndarray:
    """Zero-phase Butterworth low-pass filter.

    Periods shorter than ``period`` time steps are removed.  The filter is
    run over the longest contiguous non-missing stretch only; every other
    sample of the result is NaN.

    Parameters
    ----------
    series : 1-D array-like (or DataArray).
    period : float — cutoff period in time steps (must exceed 2).
    order  : int — Butterworth filter order.

    Returns
    -------
    np.ndarray of the same length as ``series``.
    """
    x = np.asarray(series, dtype=float)
    if x.ndim != 1:
        raise ValueError(f"lowpass expects a 1-D series, got shape {x.shape}.")
    if period <= 2:
        raise ValueError(f"Cutoff period must exceed 2 time steps, got {period}.")

    out = np.full_like(x, np.nan)
    run = longest_valid_run(x)
    seg = x[run]
    b, a = butter(order, 2.0 / period, btype="low")
    padlen = 3 * max(len(a), len(b))
    if seg.size <= padlen:
        raise ValueError(
            f"Need more than {padlen} contiguous valid samples to filter, "
            f"got {seg.size}."
        )
    out[run] = filtfilt(b, a, seg)
    return out
