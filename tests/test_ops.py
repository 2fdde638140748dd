"""Tests for grid reordering, masking, averaging and filtering."""

import numpy as np
import pytest
import xarray as xr

from paleopy.ops import (
    ensemble_mean, longest_valid_run, lowpass, mask_latitude_band,
    moving_average, recenter_longitude, screen_order, uncenter_longitude,
    zonal_mean,
)


def grid(lat=np.arange(-80.0, 81.0, 20.0), lon=np.arange(0.0, 360.0, 45.0), seed=0):
    rng = np.random.default_rng(seed)
    return xr.DataArray(
        rng.standard_normal((lat.size, lon.size)),
        coords={"lat": lat, "lon": lon}, dims=["lat", "lon"],
    )


def test_recenter_longitude_order():
    da = grid()
    out = recenter_longitude(da)
    np.testing.assert_array_equal(
        out["lon"].values, [-180, -135, -90, -45, 0, 45, 90, 135])
    np.testing.assert_array_equal(out.sel(lon=-90).values, da.sel(lon=270).values)
    np.testing.assert_array_equal(out.sel(lon=45).values, da.sel(lon=45).values)


def test_recenter_round_trip_is_exact():
    da = grid(lon=np.arange(0.0, 360.0, 2.5))
    back = uncenter_longitude(recenter_longitude(da))
    np.testing.assert_array_equal(back["lon"].values, da["lon"].values)
    np.testing.assert_array_equal(back.values, da.values)


def test_recenter_rejects_centred_input():
    with pytest.raises(ValueError):
        recenter_longitude(recenter_longitude(grid()))


def test_screen_order_puts_north_first():
    da = grid()
    out = screen_order(da)
    assert out["lat"].values[0] == 80.0
    np.testing.assert_array_equal(out.values[0], da.sel(lat=80.0).values)
    assert screen_order(out) is out


def test_mask_latitude_band():
    out = mask_latitude_band(grid(), band=30.0)
    np.testing.assert_array_equal(out["lat"].values, [-20.0, 0.0, 20.0])


def test_mask_latitude_band_empty():
    with pytest.raises(ValueError):
        mask_latitude_band(grid(lat=np.array([-80.0, 80.0])), band=30.0)


def test_ensemble_mean_of_identical_fields():
    da = grid(seed=4)
    np.testing.assert_array_equal(ensemble_mean([da, da]).values, da.values)


def test_ensemble_mean_missing_policy():
    a, b = grid(seed=1), grid(seed=2)
    a[0, 0] = np.nan
    assert np.isnan(ensemble_mean([a, b]).values[0, 0])
    assert ensemble_mean([a, b], skipna=True).values[0, 0] == b.values[0, 0]


def test_ensemble_mean_requires_same_grid():
    with pytest.raises(ValueError):
        ensemble_mean([grid(), grid(lon=np.arange(0.0, 360.0, 90.0))])


def test_zonal_mean():
    da = grid()
    np.testing.assert_allclose(zonal_mean(da).values, da.values.mean(axis=1))


def test_moving_average_edges():
    s = xr.DataArray(np.arange(10.0), dims=["time"])
    ma = moving_average(s, n=3)
    assert np.isnan(ma.values[0]) and np.isnan(ma.values[-1])
    np.testing.assert_allclose(ma.values[1:-1], np.arange(1.0, 9.0))


def test_longest_valid_run():
    x = np.array([np.nan, 1, 2, np.nan, 1, 2, 3, 4, np.nan])
    assert longest_valid_run(x) == slice(4, 8)


def test_lowpass_removes_short_periods():
    t = np.arange(400)
    slow = np.sin(2 * np.pi * t / 100.0)
    fast = np.sin(2 * np.pi * t / 5.0)
    out = lowpass(slow + fast, period=26)
    inner = slice(50, -50)
    np.testing.assert_allclose(out[inner], slow[inner], atol=0.05)


def test_lowpass_keeps_missing_outside_run():
    x = np.sin(np.arange(100) / 10.0)
    x[:5] = np.nan
    out = lowpass(x, period=26)
    assert np.isnan(out[:5]).all()
    assert np.isfinite(out[5:]).all()


def test_lowpass_too_short():
    with pytest.raises(ValueError, match="contiguous"):
        lowpass(np.ones(10), period=26)
