"""
paleopy
=======
Forcing-response analysis of paleoclimate simulations: standardized
anomalies during volcanic years, EOF decomposition of the tropical
ensemble mean, and attribution of the modes to solar and volcanic forcing.

Quick start
-----------
>>> import paleopy

# 1. Configure and load (time axes are validated on load)
>>> cfg = paleopy.AnalysisConfig(data_dir="data")
>>> inputs = paleopy.load_inputs(cfg)

# 2. Volcanic response
>>> active = paleopy.active_mask(inputs.aod, threshold=cfg.aod_threshold)
>>> anoms = paleopy.run_anomalies(inputs.runs, active)

# 3. EOF decomposition (cached on disk) and forcing attribution
>>> result = paleopy.EOFPipeline(cfg.eof, cfg.output_dir) \\
...     .decompose(cfg.run_paths(), cfg.run_vars()).align_time(inputs.years)
>>> ranking = paleopy.rank_modes(result.coefficients, inputs.solar)
>>> spectra = paleopy.mode_spectra(result.coefficients, modes=[0, 1, 2])

# 4. Plot
>>> paleopy.use_style('report')
>>> fig = paleopy.ClimPlot(nrows=1, ncols=2, w=10, h=3.5,
...                        map_proj=(paleopy.Map(), 'ts'))
>>> fig[0].map(anoms['R1'], title='R1')
>>> fig[1].zonal(anoms['R1'], anoms['R2'], labels=['R1', 'R2'])
>>> fig.savefig('figures/r1.pdf')
"""

# ── Configuration and errors ──────────────────────────────────────────
from .config import AnalysisConfig, EOFConfig, SpectralConfig, FileSpec
from .exceptions import (
    PaleopyError,
    ConfigError,
    TimeAxisError,
    DependencyFailure,
    ZeroVarianceError,
)

# ── Plotting ──────────────────────────────────────────────────────────
from .plot import ClimPlot, Map

# ── Style ─────────────────────────────────────────────────────────────
from .style import use_style, style_context, PAPER_1COL, PAPER_2COL, REPORT_WIDTH

# ── Data ──────────────────────────────────────────────────────────────
from .data import (
    load_nc,
    standardise_coords,
    mask_fill_values,
    load_field,
    load_forcing,
    load_inputs,
    Inputs,
)
from .timeaxis import normalize_year_axis, validate_time_axes

# ── Operations ────────────────────────────────────────────────────────
from .ops import (
    recenter_longitude,
    uncenter_longitude,
    screen_order,
    mask_latitude_band,
    ensemble_mean,
    zonal_mean,
    cosine_weights,
    moving_average,
    lowpass,
)
from .anomaly import (
    active_mask,
    anomaly_statistics,
    standardized_anomaly,
    run_anomalies,
    anomaly_difference,
)

# ── Analysis ──────────────────────────────────────────────────────────
from .analysis import (
    EOFPipeline,
    EOFResult,
    zero_lag_correlation,
    rank_modes,
    best_match,
    Spectrum,
    linear_detrend,
    estimate_spectrum,
    mode_spectra,
)

__version__ = "0.1.0"

__all__ = [
    # Config / errors
    "AnalysisConfig", "EOFConfig", "SpectralConfig", "FileSpec",
    "PaleopyError", "ConfigError", "TimeAxisError",
    "DependencyFailure", "ZeroVarianceError",
    # Plotting
    "ClimPlot", "Map",
    # Style
    "use_style", "style_context", "PAPER_1COL", "PAPER_2COL", "REPORT_WIDTH",
    # Data
    "load_nc", "standardise_coords", "mask_fill_values",
    "load_field", "load_forcing", "load_inputs", "Inputs",
    "normalize_year_axis", "validate_time_axes",
    # Ops
    "recenter_longitude", "uncenter_longitude", "screen_order",
    "mask_latitude_band", "ensemble_mean", "zonal_mean",
    "cosine_weights", "moving_average", "lowpass",
    "active_mask", "anomaly_statistics", "standardized_anomaly",
    "run_anomalies", "anomaly_difference",
    # Analysis
    "EOFPipeline", "EOFResult",
    "zero_lag_correlation", "rank_modes", "best_match",
    "Spectrum", "linear_detrend", "estimate_spectrum", "mode_spectra",
]
