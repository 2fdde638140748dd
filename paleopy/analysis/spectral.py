"""
paleopy.analysis.spectral
=========================
Multitaper power spectra of EOF coefficient series.

Each series is linearly detrended, tapered with ``K`` discrete prolate
spheroidal sequences (DPSS) and the eigenspectra are averaged with their
concentration ratios as weights.  The estimate is chi-squared with
``2K`` degrees of freedom, which gives the confidence band.

Example
-------
>>> spectra = mode_spectra(result.coefficients, modes=[0, 1, 2])
>>> spec = spectra[0]
>>> 1 / spec.freq[spec.power.argmax()]      # dominant period, in years
"""

from __future__ import annotations

from collections import namedtuple

import numpy as np
import xarray as xr
from scipy.signal.windows import dpss
from scipy.stats import chi2, linregress

Spectrum = namedtuple("Spectrum", ["freq", "power", "lower", "upper"])


def linear_detrend(series) -> np.ndarray:
    """Residual of an OLS fit against the sample index (observed - fitted).

    Missing values stay missing and are left out of the fit.
    """
    y = np.asarray(series, dtype=float)
    idx = np.arange(y.size, dtype=float)
    ok = np.isfinite(y)
    if ok.sum() < 2:
        raise ValueError("Need at least two valid samples to detrend.")
    fit = linregress(idx[ok], y[ok])
    return y - (fit.intercept + fit.slope * idx)


def log_smooth(freq: np.ndarray, power: np.ndarray, width: float) -> np.ndarray:
    """Running mean of ``power`` over a window of ``width`` decades in frequency."""
    if width <= 0:
        return power
    logf = np.log10(freq)
    out = np.empty_like(power)
    for i, lf in enumerate(logf):
        sel = np.abs(logf - lf) <= width / 2.0
        out[i] = power[sel].mean()
    return out


def estimate_spectrum(
    series,
    nw: float = 2.0,
    k: int = None,
    confidence: float = 0.95,
    smooth_width: float = 0.0,
    n_trim: int = 5,
    dt: float = 1.0,
) -> Spectrum:
    """Multitaper power spectral density with a confidence band.

    Parameters
    ----------
    series : 1-D array-like without missing values.
    nw : float — time-half-bandwidth product.
    k : int, optional — number of tapers, default ``2*nw - 1``.
    confidence : float — coverage of the (lower, upper) band.
    smooth_width : float — log-frequency smoothing window in decades
        (0 disables smoothing).
    n_trim : int — number of highest-frequency estimates dropped.
    dt : float — sampling interval (years per step).

    Returns
    -------
    Spectrum(freq, power, lower, upper), zero frequency excluded.
    """
    x = np.asarray(series, dtype=float)
    if not np.all(np.isfinite(x)):
        raise ValueError("estimate_spectrum needs a series without missing values.")
    n = x.size
    if k is None:
        k = max(1, int(np.floor(2 * nw - 1)))
    if n < 2 * k + n_trim + 2:
        raise ValueError(f"Series of length {n} is too short for {k} tapers.")

    x = x - x.mean()
    tapers, ratios = dpss(n, nw, k, return_ratios=True)
    eigenspectra = np.abs(np.fft.rfft(tapers * x, axis=-1)) ** 2
    power = (ratios[:, None] * eigenspectra).sum(axis=0) / ratios.sum()
    power *= dt
    freq = np.fft.rfftfreq(n, d=dt)

    freq, power = freq[1:], power[1:]
    if n_trim:
        freq, power = freq[:-n_trim], power[:-n_trim]
    power = log_smooth(freq, power, smooth_width)

    dof = 2 * k
    alpha = 1.0 - confidence
    lower = power * dof / chi2.ppf(1.0 - alpha / 2.0, dof)
    upper = power * dof / chi2.ppf(alpha / 2.0, dof)
    return Spectrum(freq, power, lower, upper)


def mode_spectra(
    coefficients: xr.DataArray,
    modes=(0, 1, 2, 3),
    **kwargs,
) -> dict:
    """Detrend and estimate the spectrum of selected coefficient series.

    Leading and trailing missing values are cut before estimation.

    Returns
    -------
    dict — mode → Spectrum.
    """
    out = {}
    for m in modes:
        y = linear_detrend(coefficients.sel(mode=m).values)
        ok = np.flatnonzero(np.isfinite(y))
        out[m] = estimate_spectrum(y[ok[0]: ok[-1] + 1], **kwargs)
    return out
