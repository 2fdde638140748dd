"""End-to-end runs of both analysis parts on the synthetic inputs."""

import dataclasses

import matplotlib

matplotlib.use("Agg")

import numpy as np

from paleopy import workflow
from paleopy.data import load_inputs


def test_volcanic_response(config):
    anoms, fig = workflow.volcanic_response(config, save=False)
    try:
        assert set(anoms) == {"R1", "R2"}
        assert anoms["R1"].dims == ("lat", "lon")
        assert np.isfinite(anoms["R1"].values).all()
    finally:
        fig.close()


def test_forcing_detection(config):
    inputs = load_inputs(config)
    out = workflow.forcing_detection(config, inputs, save=False)
    try:
        result = out["result"]
        assert result.n_modes == 3
        assert list(result.coefficients["time"].values) == list(inputs.years)
        assert len(out["solar_ranking"]) == 3
        assert set(out["spectra"]) == {0, 1, 2}
        assert (config.output_dir / result.directory.name).is_dir()
    finally:
        out["fig"].close()


def test_volcanic_response_asymmetric_colour_range(config):
    config = dataclasses.replace(config, vmin=-2.0, vmax=6.0)
    anoms, fig = workflow.volcanic_response(config, save=False)
    fig.close()
    assert set(anoms) == {"R1", "R2"}
