"""Tests for the EOF pipeline, its cache and the CDO wrapper."""

import json
from pathlib import Path

import numpy as np
import pytest

from paleopy.analysis.eof import EOFPipeline, MANIFEST
from paleopy.config import EOFConfig
from paleopy.exceptions import DependencyFailure

from conftest import YEARS


class CountingRunner:
    """Stands in for CdoRunner: records calls and touches the outputs."""

    def __init__(self, fail_on=None):
        self.calls = []
        self.inputs = []
        self.fail_on = fail_on

    def run(self, operator, *args, input, output=None, prefix=False):
        self.calls.append((operator, args))
        self.inputs.append(input)
        if operator == self.fail_on:
            raise DependencyFailure(operator, returncode=1, stderr="boom")
        outputs = [output] if isinstance(output, (str, Path)) else list(output)
        for out in outputs:
            target = Path(f"{out}00000.nc") if prefix else Path(out)
            target.write_bytes(b"")
        return outputs


def test_cdo_steps(config):
    runner = CountingRunner()
    pipe = EOFPipeline(EOFConfig(n_modes=40), config.output_dir, runner=runner)
    target = pipe.run(config.run_paths())

    ops = [op for op, _ in runner.calls]
    assert ops == ["sellonlatbox", "sellonlatbox", "ensmean", "sub", "eof", "eofcoeff"]
    assert runner.calls[0][1] == (-180, 180, -30.0, 30.0)
    assert runner.calls[4][1] == (40,)
    assert (target / MANIFEST).exists()
    assert target.name.startswith("eof_")


def test_cdo_standardize_adds_division(config):
    runner = CountingRunner()
    pipe = EOFPipeline(EOFConfig(standardize=True), config.output_dir, runner=runner)
    pipe.run(config.run_paths())
    assert "div" in [op for op, _ in runner.calls]


def test_existing_output_is_reused(config):
    runner = CountingRunner()
    pipe = EOFPipeline(EOFConfig(), config.output_dir, runner=runner)
    first = pipe.run(config.run_paths())
    n_calls = len(runner.calls)
    assert n_calls > 0

    second = pipe.run(config.run_paths())
    assert second == first
    assert len(runner.calls) == n_calls


def test_cache_key_tracks_parameters_and_inputs(config, rng):
    paths = config.run_paths()
    k40 = EOFPipeline(EOFConfig(n_modes=40), config.output_dir).cache_key(paths)
    k20 = EOFPipeline(EOFConfig(n_modes=20), config.output_dir).cache_key(paths)
    assert k40 != k20
    assert k40 == EOFPipeline(EOFConfig(n_modes=40), config.output_dir).cache_key(paths)

    paths["R1"].write_bytes(paths["R1"].read_bytes() + b"\0")
    assert EOFPipeline(EOFConfig(n_modes=40), config.output_dir).cache_key(paths) != k40


def test_cache_key_tracks_variables(config):
    pipe = EOFPipeline(EOFConfig(), config.output_dir)
    paths = config.run_paths()
    tas = pipe.cache_key(paths, {"R1": "tas", "R2": "tas"})
    assert tas != pipe.cache_key(paths)
    assert tas != pipe.cache_key(paths, {"R1": "temp2", "R2": "temp2"})
    assert tas == pipe.cache_key(paths, {"R2": "tas", "R1": "tas"})


def test_cdo_selects_configured_variable(config):
    runner = CountingRunner()
    pipe = EOFPipeline(EOFConfig(), config.output_dir, runner=runner)
    paths = config.run_paths()
    target = pipe.run(paths, config.run_vars())

    assert runner.inputs[:2] == [f"-selname,temp2 {paths['R1']}",
                                 f"-selname,temp2 {paths['R2']}"]
    assert json.loads((target / MANIFEST).read_text())["variables"] == config.run_vars()


def test_variables_for_unknown_runs(config):
    pipe = EOFPipeline(EOFConfig(), config.output_dir, runner=CountingRunner())
    with pytest.raises(ValueError, match="unknown runs"):
        pipe.run(config.run_paths(), {"R3": "temp2"})


def test_failure_leaves_no_cache_entry(config):
    runner = CountingRunner(fail_on="eof")
    pipe = EOFPipeline(EOFConfig(), config.output_dir, runner=runner)
    with pytest.raises(DependencyFailure, match="boom"):
        pipe.run(config.run_paths())
    assert list(config.output_dir.iterdir()) == []

    runner.fail_on = None
    target = pipe.run(config.run_paths())
    assert (target / MANIFEST).exists()


def test_missing_input(config, tmp_path):
    pipe = EOFPipeline(EOFConfig(), config.output_dir, runner=CountingRunner())
    with pytest.raises(FileNotFoundError):
        pipe.run({"R1": tmp_path / "missing.nc"})


def test_load_requires_complete_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        EOFPipeline().load(tmp_path)


def test_eofs_backend_end_to_end(config):
    pipe = EOFPipeline(config.eof, config.output_dir)
    result = pipe.decompose(config.run_paths())

    assert result.coefficients.dims == ("time", "mode")
    assert result.coefficients.sizes["mode"] == 3
    # raw YYYYMMDD stamps until align_time relabels them
    np.testing.assert_array_equal(result.coefficients["time"].values,
                                  YEARS * 10000 + 1231)
    assert result.patterns.dims == ("mode", "lat", "lon")
    assert np.abs(result.patterns["lat"].values).max() <= 30.0

    eig = result.eigenvalues.values
    assert np.all(np.diff(eig) <= 1e-8)
    assert result.variance_fraction(len(eig)).sum() == pytest.approx(100.0)
    assert 1 <= result.n_modes_for_variance(70.0) <= len(eig)
    assert "Mode" in result.summary(n=3)


def test_eofs_backend_recovers_common_signal(tmp_path, rng):
    from conftest import LAT, LON, N_YEARS, write_field

    signal = np.sin(2 * np.pi * np.arange(N_YEARS) / 11.0)
    pattern = np.cos(np.deg2rad(LAT))[:, None] * np.ones(LON.size)[None, :]
    for name, seed in (("a.nc", 1), ("b.nc", 2)):
        noise = np.random.default_rng(seed).standard_normal((N_YEARS, LAT.size, LON.size))
        write_field(tmp_path / name, 5 * signal[:, None, None] * pattern + 0.1 * noise)

    pipe = EOFPipeline(EOFConfig(n_modes=2, backend="eofs"), tmp_path / "out")
    result = pipe.decompose({"a": tmp_path / "a.nc", "b": tmp_path / "b.nc"})
    r = np.corrcoef(result.coefficients.isel(mode=0).values, signal)[0, 1]
    assert abs(r) > 0.99


def test_eofs_backend_uses_named_variable(tmp_path):
    import xarray as xr
    from conftest import LAT, LON, N_YEARS, YEARS

    signal = np.sin(2 * np.pi * np.arange(N_YEARS) / 11.0)
    pattern = np.cos(np.deg2rad(LAT))[:, None] * np.ones(LON.size)[None, :]
    dims = ["time", "lat", "lon"]
    coords = {"time": YEARS * 10000 + 1231, "lat": LAT, "lon": LON}
    paths = {}
    for name, seed in (("a", 1), ("b", 2)):
        r = np.random.default_rng(seed)
        shape = (N_YEARS, LAT.size, LON.size)
        ds = xr.Dataset({
            # listed first, so it would be picked without a variable name
            "albedo": (dims, r.standard_normal(shape)),
            "temp2": (dims, 5 * signal[:, None, None] * pattern
                      + 0.1 * r.standard_normal(shape)),
        }, coords=coords)
        paths[name] = tmp_path / f"{name}.nc"
        ds.to_netcdf(paths[name])

    pipe = EOFPipeline(EOFConfig(n_modes=2, backend="eofs"), tmp_path / "out")
    result = pipe.decompose(paths, {"a": "temp2", "b": "temp2"})
    r = np.corrcoef(result.coefficients.isel(mode=0).values, signal)[0, 1]
    assert abs(r) > 0.99


def test_align_time(config):
    result = EOFPipeline(config.eof, config.output_dir).decompose(config.run_paths())
    result.align_time(YEARS + 5)
    np.testing.assert_array_equal(result.coefficients["time"].values, YEARS + 5)
    with pytest.raises(ValueError):
        result.align_time(YEARS[:-1])


# ── CdoRunner ──────────────────────────────────────────────────────────

def _bare_runner(fake):
    from paleopy.cdo import CdoRunner

    runner = CdoRunner.__new__(CdoRunner)
    runner.binary = "cdo"
    runner._cdo = fake
    runner.calls = 0
    return runner


def test_runner_maps_cdo_exception(tmp_path):
    from cdo import CDOException

    class FailingCdo:
        def eof(self, *args, input=None, output=None):
            raise CDOException("", "cdo eof (Abort): not enough memory", 1)

    runner = _bare_runner(FailingCdo())
    with pytest.raises(DependencyFailure) as err:
        runner.run("eof", 40, input=tmp_path / "anom.nc",
                   output=[tmp_path / "a.nc", tmp_path / "b.nc"])
    assert err.value.returncode == 1
    assert "not enough memory" in err.value.stderr
    assert runner.calls == 1


def test_runner_checks_outputs_exist(tmp_path):
    class SilentCdo:
        def ensmean(self, *args, input=None, output=None):
            return output

    runner = _bare_runner(SilentCdo())
    with pytest.raises(DependencyFailure, match="missing"):
        runner.run("ensmean", input=["a.nc", "b.nc"], output=tmp_path / "ens.nc")


def test_runner_passes_joined_arguments(tmp_path):
    seen = {}

    class RecordingCdo:
        def eofcoeff(self, *args, input=None, output=None):
            seen.update(args=args, input=input, output=output)
            (tmp_path / "coeff00000.nc").write_bytes(b"")

    runner = _bare_runner(RecordingCdo())
    runner.run("eofcoeff", input=[tmp_path / "v.nc", tmp_path / "x.nc"],
               output=tmp_path / "coeff", prefix=True)
    assert seen["input"] == f"{tmp_path / 'v.nc'} {tmp_path / 'x.nc'}"
    assert seen["output"] == str(tmp_path / "coeff")


def test_runner_requires_binary():
    from paleopy.cdo import CdoRunner

    with pytest.raises(DependencyFailure, match="not found"):
        CdoRunner("/nonexistent/bin/cdo")
