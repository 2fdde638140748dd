"""Shared fixtures: small synthetic NetCDF inputs written to tmp_path."""

import numpy as np
import pytest
import xarray as xr

from paleopy.config import AnalysisConfig, EOFConfig, FileSpec

N_YEARS = 40
YEARS = np.arange(1000, 1000 + N_YEARS)
LAT = np.arange(-60.0, 61.0, 15.0)
LON = np.arange(0.0, 360.0, 30.0)


def write_field(path, values, years=YEARS, lat=LAT, lon=LON, suffix=1231,
                dims=("time", "lat", "lon")):
    """Write a temperature cube with YYYYMMDD-style time stamps."""
    da = xr.DataArray(
        values,
        coords={"time": years * 10000 + suffix, "lat": lat, "lon": lon},
        dims=["time", "lat", "lon"],
        name="temp2",
        attrs={"units": "K"},
    )
    da.transpose(*dims).to_netcdf(path)
    return path


def write_series(path, var, values, years=YEARS, offset=0.5):
    da = xr.DataArray(values, coords={"time": years + offset}, dims=["time"],
                      name=var, attrs={"units": "1"})
    da.to_netcdf(path)
    return path


@pytest.fixture
def rng():
    return np.random.default_rng(0)


@pytest.fixture
def aod_values():
    aod = np.zeros(N_YEARS)
    aod[[5, 6, 20, 21, 33]] = [0.4, 0.2, 0.3, 0.15, 0.5]
    return aod


@pytest.fixture
def inputs_dir(tmp_path, rng, aod_values):
    """Two runs, solar and AOD files with consistent time axes."""
    shape = (N_YEARS, LAT.size, LON.size)
    write_field(tmp_path / "r1.nc", 280 + rng.standard_normal(shape))
    write_field(tmp_path / "r2.nc", 280 + rng.standard_normal(shape))
    tsi = 1361 + 0.5 * np.sin(2 * np.pi * np.arange(N_YEARS) / 11.0)
    write_series(tmp_path / "tsi.nc", "TSI", tsi)
    write_series(tmp_path / "aod.nc", "aod", aod_values)
    return tmp_path


@pytest.fixture
def config(inputs_dir):
    return AnalysisConfig(
        data_dir=inputs_dir,
        output_dir=inputs_dir / "output",
        figure_dir=inputs_dir / "figures",
        runs={"R1": FileSpec("r1.nc", "temp2", "1231"),
              "R2": FileSpec("r2.nc", "temp2", "1231")},
        solar=FileSpec("tsi.nc", "TSI", ".5"),
        aod=FileSpec("aod.nc", "aod", ".5"),
        eof=EOFConfig(n_modes=3, backend="eofs"),
    )
