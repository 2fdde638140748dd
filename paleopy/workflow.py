"""
paleopy.workflow
================
The full analysis, runnable top-to-bottom.

Part (a) — volcanic response:  standardized temperature anomalies of each
run during volcanic (high-AOD) years, their difference, and zonal profiles.

Part (b) — forcing detection:  EOF decomposition of the tropical
ensemble-mean anomaly, ranking of the coefficient series against the
low-passed solar and volcanic forcing, and multitaper spectra of selected
modes.

Example
-------
>>> from paleopy import AnalysisConfig, EOFConfig, workflow
>>> cfg = AnalysisConfig(data_dir="data", eof=EOFConfig(backend="eofs"))
>>> out = workflow.run(cfg)
>>> out["solar_ranking"].head()
"""

from __future__ import annotations

import logging

import numpy as np
import xarray as xr

from paleopy.analysis.correlation import best_match, rank_modes
from paleopy.analysis.eof import EOFPipeline
from paleopy.analysis.spectral import mode_spectra
from paleopy.anomaly import active_mask, anomaly_difference, run_anomalies
from paleopy.config import AnalysisConfig
from paleopy.data import load_inputs
from paleopy.ops import lowpass
from paleopy.plot import ClimPlot, Map
from paleopy.style import use_style

logger = logging.getLogger(__name__)


def volcanic_response(config: AnalysisConfig, inputs=None, save: bool = True):
    """Anomaly maps per run, R1−R2 difference and zonal profiles.

    Returns
    -------
    (anoms, fig) — dict run → (lat, lon) anomaly, and the ClimPlot.
    """
    inputs = inputs or load_inputs(config)
    active = active_mask(inputs.aod, threshold=config.aod_threshold)
    anoms = run_anomalies(inputs.runs, active, ddof=config.ddof,
                          zero_variance=config.zero_variance)

    names = list(anoms)
    panels = [Map()] * len(names)
    if len(names) >= 2:
        anoms_diff = anomaly_difference(anoms[names[0]], anoms[names[1]])
        panels.append(Map())
    panels += ["ts"]
    ncols = len(panels)
    fig = ClimPlot(nrows=2, ncols=ncols, n=ncols + 1, w=4.0 * ncols, h=4.2,
                   map_proj=tuple(panels) + ("cbar",), height_ratios=(1.0, 0.18))

    opts = dict(vmin=config.vmin, vmax=config.vmax, colorbar=False)
    for i, name in enumerate(names):
        fig[i].map(anoms[name], title=f"{name} ({int(active.sum())} volcanic years)",
                   **opts)
    if len(names) >= 2:
        fig[len(names)].map(anoms_diff, title=f"{names[0]} − {names[1]}", **opts)
    fig[ncols - 1].zonal(*anoms.values(), labels=names, title="Zonal mean",
                         xlabel="Standardized anomaly")
    fig.add_shared_colorbar(fig.axes[ncols], label="Standardized anomaly")
    fig.label_subplots()

    if save:
        fig.savefig(config.figure_dir / "volcanic_response.pdf")
    return anoms, fig


def forcing_detection(config: AnalysisConfig, inputs=None, save: bool = True) -> dict:
    """EOF decomposition and forcing attribution of the coefficient series.

    Returns
    -------
    dict with keys ``result`` (EOFResult), ``solar_ranking``,
    ``aod_ranking`` (DataFrames), ``spectra`` (mode → Spectrum), ``fig``.
    """
    inputs = inputs or load_inputs(config)

    pipe = EOFPipeline(config.eof, output_dir=config.output_dir)
    result = pipe.decompose(config.run_paths(), config.run_vars())
    result = result.align_time(inputs.years)
    result.summary()

    period = config.spectral.lowpass_period
    solar_ranking = rank_modes(result.coefficients, inputs.solar, period=period)
    aod_ranking = rank_modes(result.coefficients, inputs.aod, period=period)
    mode, r = best_match(solar_ranking)
    logger.info("Solar forcing best matched by mode %d (r = %.2f); "
                "volcanic forcing by mode %d (r = %.2f)",
                mode, r, *best_match(aod_ranking))

    modes = [m for m in config.spectral.modes if m < result.n_modes]
    spectra = mode_spectra(
        result.coefficients, modes,
        nw=config.spectral.nw, confidence=config.spectral.confidence,
        smooth_width=config.spectral.smooth_width, n_trim=config.spectral.n_trim,
    )

    coeff = result.coefficients.sel(mode=mode)
    coeff_low = _standardize(lowpass(coeff.values, period=period), inputs.years)
    solar_low = _standardize(lowpass(inputs.solar.values, period=period), inputs.years)
    if r < 0:
        coeff_low = -coeff_low

    fig = ClimPlot(nrows=1, ncols=3, w=15.0, h=4.0,
                   map_proj=(Map(central_longitude=180), "ts", "ts"))
    pattern = result.patterns.sel(mode=mode)
    lim = float(np.nanmax(np.abs(pattern.values))) or 1.0
    fig[0].map(pattern, title=f"EOF {mode + 1} "
                              f"({float(result.variance_fraction()[mode]):.1f} %)",
               vmin=-lim, vmax=lim, filltype="pcolormesh")
    fig[1].ts(coeff_low, solar_low,
              labels=[f"Mode {mode + 1}" + (" (sign flipped)" if r < 0 else ""),
                      "Solar"],
              title=f"Low-passed (> {period:g} yr), r = {r:.2f}",
              ylabel="Standardized")
    fig[2].spectrum(*spectra.values(),
                    labels=[f"Mode {m + 1}" for m in spectra],
                    title="Multitaper spectra")
    fig.label_subplots()

    if save:
        fig.savefig(config.figure_dir / "forcing_detection.pdf")
    return {"result": result, "solar_ranking": solar_ranking,
            "aod_ranking": aod_ranking, "spectra": spectra, "fig": fig}


def _standardize(values: np.ndarray, years) -> xr.DataArray:
    z = (values - np.nanmean(values)) / np.nanstd(values)
    return xr.DataArray(z, dims=["time"], coords={"time": years})


def run(config: AnalysisConfig, style: str = "report") -> dict:
    """Both parts of the analysis on one set of validated inputs."""
    use_style(style)
    inputs = load_inputs(config)
    anoms, fig_a = volcanic_response(config, inputs)
    out = forcing_detection(config, inputs)
    out.update({"anomalies": anoms, "fig_response": fig_a})
    return out
