"""
paleopy.anomaly
===============
Standardized temperature anomalies during forcing-active years.

For every grid cell

    anom = (mean over active years - mean over all years) / std over all years

where a year is *active* when the aerosol optical depth exceeds a threshold.
Each of the three reductions skips missing values independently.

Example
-------
>>> active = active_mask(inputs.aod, threshold=0.1)
>>> anoms = run_anomalies(inputs.runs, active)
>>> anoms["R1"].sel(lat=0, method="nearest").mean()
"""

from __future__ import annotations

import logging

import numpy as np
import xarray as xr

from paleopy.exceptions import ZeroVarianceError

logger = logging.getLogger(__name__)


class AnomalyStatistics:
    """Temporal reductions of one run: ``mean``, ``active_mean``, ``std``.

    Each is a 2-D (lat, lon) DataArray.
    """

    def __init__(self, mean: xr.DataArray, active_mean: xr.DataArray,
                 std: xr.DataArray, n_active: int):
        self.mean = mean
        self.active_mean = active_mean
        self.std = std
        self.n_active = n_active

    def standardized(self, zero_variance: str = "nan") -> xr.DataArray:
        """Standardized anomaly; see ``standardized_anomaly``."""
        zero = self.std == 0
        n_zero = int(zero.sum())
        if n_zero:
            if zero_variance == "raise":
                raise ZeroVarianceError(n_zero)
            logger.warning("%d cell(s) with zero variance set to NaN", n_zero)
        anom = (self.active_mean - self.mean) / self.std.where(~zero)
        anom.attrs = {
            "long_name": "Standardized anomaly during forcing-active years",
            "units": "1",
            "n_active": self.n_active,
        }
        return anom


def active_mask(aod: xr.DataArray, threshold: float = 0.1) -> xr.DataArray:
    """Boolean time mask: True where optical depth exceeds ``threshold``.

    Missing optical depth counts as inactive.
    """
    mask = (aod > threshold).fillna(False).astype(bool)
    mask.name = "active"
    logger.info("%d of %d time steps are forcing-active (AOD > %g)",
                int(mask.sum()), mask.size, threshold)
    return mask


def anomaly_statistics(
    field: xr.DataArray,
    active: xr.DataArray,
    ddof: int = 0,
) -> AnomalyStatistics:
    """Mean, active-period mean and standard deviation over time.

    Parameters
    ----------
    field  : xr.DataArray (time, lat, lon).
    active : boolean xr.DataArray or array over time.
    ddof   : int — 0 (default) matches CDO ``timstd``; 1 gives the
             sample standard deviation.
    """
    active = np.asarray(active, dtype=bool)
    if active.shape != (field.sizes["time"],):
        raise ValueError(
            f"Active mask has shape {active.shape}; field has "
            f"{field.sizes['time']} time steps."
        )
    n_active = int(active.sum())
    if n_active == 0:
        raise ValueError("No forcing-active time steps; the active mean is undefined.")

    mean = field.mean("time", skipna=True)
    std = field.std("time", skipna=True, ddof=ddof)
    active_mean = field.isel(time=active).mean("time", skipna=True)

    n_nan = int(field.isnull().any("time").sum())
    if n_nan:
        logger.warning("%d cell(s) contain missing values; reductions skip them",
                       n_nan)
    return AnomalyStatistics(mean, active_mean, std, n_active)


def standardized_anomaly(
    field: xr.DataArray,
    active: xr.DataArray,
    ddof: int = 0,
    zero_variance: str = "nan",
) -> xr.DataArray:
    """Standardized anomaly of ``field`` during the active time steps.

    Parameters
    ----------
    zero_variance : {'nan', 'raise'}
        'nan' (default) leaves NaN at cells whose standard deviation is
        zero; 'raise' raises ``ZeroVarianceError`` instead.

    Returns
    -------
    xr.DataArray (lat, lon), dimensionless.
    """
    stats = anomaly_statistics(field, active, ddof=ddof)
    anom = stats.standardized(zero_variance=zero_variance)
    anom.name = field.name
    return anom


def run_anomalies(
    runs: dict,
    active: xr.DataArray,
    ddof: int = 0,
    zero_variance: str = "nan",
) -> dict:
    """Standardized anomaly for each run, keyed like ``runs``."""
    return {name: standardized_anomaly(da, active, ddof=ddof,
                                       zero_variance=zero_variance)
            for name, da in runs.items()}


def anomaly_difference(a: xr.DataArray, b: xr.DataArray) -> xr.DataArray:
    """Cell-wise difference of two anomaly maps (a - b)."""
    diff = a - b
    diff.attrs = {"long_name": "Difference of standardized anomalies", "units": "1"}
    return diff
