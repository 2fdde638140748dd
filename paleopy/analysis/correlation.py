"""
paleopy.analysis.correlation
============================
Which EOF coefficient series tracks a known forcing?

Functions
---------
zero_lag_correlation   — Pearson r over the samples where both series exist
rank_modes             — low-pass every coefficient and the forcing, rank
                         modes by |r|
best_match             — top row of a ranking

The ranking is exploratory: nothing here asserts on the outcome.

Example
-------
>>> ranking = rank_modes(result.coefficients, inputs.solar, period=26)
>>> mode, r = best_match(ranking)
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
import xarray as xr
from scipy.stats import pearsonr

from paleopy.ops import lowpass

logger = logging.getLogger(__name__)


def zero_lag_correlation(a, b, min_valid: int = 3) -> float:
    """Pearson correlation of two equally long series at zero lag.

    Only positions where both values are finite are used.  Fewer than
    ``min_valid`` such positions, or a constant series, gives NaN.
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.shape != b.shape:
        raise ValueError(f"Series lengths differ: {a.shape} vs {b.shape}.")
    mask = np.isfinite(a) & np.isfinite(b)
    if mask.sum() < min_valid:
        return np.nan
    x, y = a[mask], b[mask]
    if np.ptp(x) == 0 or np.ptp(y) == 0:
        return np.nan
    r, _ = pearsonr(x, y)
    return float(r)


def rank_modes(
    coefficients: xr.DataArray,
    forcing: xr.DataArray,
    period: float = 26,
    order: int = 4,
) -> pd.DataFrame:
    """Correlate each low-passed coefficient series with the low-passed forcing.

    Parameters
    ----------
    coefficients : xr.DataArray (time × mode).
    forcing      : xr.DataArray (time,), same time axis.
    period       : float — low-pass cutoff period in time steps.
    order        : int — Butterworth order.

    Returns
    -------
    pd.DataFrame with columns ``mode, r, abs_r``, sorted by ``abs_r``
    descending (NaN correlations last).
    """
    if coefficients.sizes["time"] != forcing.sizes["time"]:
        raise ValueError(
            f"Coefficients have {coefficients.sizes['time']} time steps, "
            f"forcing has {forcing.sizes['time']}."
        )
    f_low = lowpass(forcing.values, period=period, order=order)

    rows = []
    for m in range(coefficients.sizes["mode"]):
        c_low = lowpass(coefficients.isel(mode=m).values, period=period, order=order)
        r = zero_lag_correlation(c_low, f_low)
        rows.append({"mode": int(coefficients["mode"].values[m]), "r": r,
                     "abs_r": abs(r)})

    ranking = pd.DataFrame(rows, columns=["mode", "r", "abs_r"])
    ranking = ranking.sort_values("abs_r", ascending=False, na_position="last",
                                  kind="stable").reset_index(drop=True)
    if len(ranking):
        logger.info("Best match with %s: mode %d (r = %.3f)",
                    forcing.name or "forcing", ranking.loc[0, "mode"],
                    ranking.loc[0, "r"])
    return ranking


def best_match(ranking: pd.DataFrame) -> tuple:
    """(mode, r) of the highest-ranked mode."""
    if ranking.empty:
        raise ValueError("Empty ranking.")
    top = ranking.iloc[0]
    return int(top["mode"]), float(top["r"])
