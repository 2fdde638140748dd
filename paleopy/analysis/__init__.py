"""paleopy.analysis — EOF decomposition, forcing correlation and spectra."""

from .eof import EOFPipeline, EOFResult
from .correlation import zero_lag_correlation, rank_modes, best_match
from .spectral import Spectrum, linear_detrend, estimate_spectrum, mode_spectra

__all__ = [
    "EOFPipeline",
    "EOFResult",
    "zero_lag_correlation",
    "rank_modes",
    "best_match",
    "Spectrum",
    "linear_detrend",
    "estimate_spectrum",
    "mode_spectra",
]
