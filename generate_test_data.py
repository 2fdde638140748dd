"""
generate_test_data.py
=====================
Write small synthetic inputs for paleopy, mimicking two last-millennium
simulations and their forcings.  Nothing has to be downloaded.

Files written to  data/test/ :
  R1_temp2_yearmean.nc   — surface temperature, run 1, 7.5° grid, 850–1349
  R2_temp2_yearmean.nc   — surface temperature, run 2 (different noise)
  solar_tsi.nc           — total solar irradiance, 11-yr cycle + drift
  volcanic_aod.nc        — aerosol optical depth, random eruption pulses

Signals included:
  temperature → cooling after eruptions (strongest in the tropics)
                + weak tropical response to the 11-yr solar cycle
                + white noise

The time encodings differ on purpose, as in real model output:
temperature uses YYYYMMDD stamps at the end of each year (suffix '1231'),
the forcings use mid-year fractional years (suffix '.5').

Usage
-----
    python generate_test_data.py
"""

from pathlib import Path
import numpy as np
import xarray as xr

# ── Configuration ─────────────────────────────────────────────────────

OUT_DIR    = Path("data/test")
SEED       = 7
START_YEAR = 850
N_YEARS    = 500

OUT_DIR.mkdir(parents=True, exist_ok=True)
rng = np.random.default_rng(SEED)

# ── Grid and time ─────────────────────────────────────────────────────

lat = np.arange(-86.25, 90, 7.5)
lon = np.arange(0, 360, 7.5)
years = np.arange(START_YEAR, START_YEAR + N_YEARS)
time_model   = years * 10000 + 1231      # YYYYMMDD, end of year
time_forcing = years + 0.5               # mid-year

lat2d = lat[:, None] * np.ones(lon.size)[None, :]

# ── Forcings ──────────────────────────────────────────────────────────

tsi = (1361.0
       + 0.5 * np.sin(2 * np.pi * (years - START_YEAR) / 11.0)
       + 0.3 * np.sin(2 * np.pi * (years - START_YEAR) / 210.0))

aod = np.zeros(N_YEARS)
for start in rng.choice(N_YEARS - 4, size=18, replace=False):
    peak = rng.uniform(0.1, 0.6)
    aod[start:start + 4] += peak * np.exp(-np.arange(4) / 1.2)

# ── Temperature ───────────────────────────────────────────────────────

base     = 288.0 - 30.0 * np.sin(np.deg2rad(np.abs(lat2d))) ** 2
volcanic = -4.0 * np.exp(-(lat2d / 40.0) ** 2)
solar    = 0.6 * np.exp(-(lat2d / 25.0) ** 2)


def temperature(noise_seed):
    r = np.random.default_rng(noise_seed)
    tsi_anom = (tsi - tsi.mean()) / tsi.std()
    field = (base[None]
             + aod[:, None, None] * volcanic[None]
             + tsi_anom[:, None, None] * solar[None]
             + 0.5 * r.standard_normal((N_YEARS, lat.size, lon.size)))
    return field.astype("float32")


def write_field(name, data):
    da = xr.DataArray(
        data,
        coords={"time": time_model, "lat": lat, "lon": lon},
        dims=["time", "lat", "lon"],
        name="temp2",
        attrs={"long_name": "2m temperature (synthetic)", "units": "K"},
    )
    da.to_netcdf(OUT_DIR / name)
    print(f"✓  {OUT_DIR / name}")


def write_series(name, var, data, units):
    da = xr.DataArray(data, coords={"time": time_forcing}, dims=["time"],
                      name=var, attrs={"units": units})
    da.to_netcdf(OUT_DIR / name)
    print(f"✓  {OUT_DIR / name}")


write_field("R1_temp2_yearmean.nc", temperature(SEED + 1))
write_field("R2_temp2_yearmean.nc", temperature(SEED + 2))
write_series("solar_tsi.nc", "TSI", tsi, "W m-2")
write_series("volcanic_aod.nc", "aod", aod, "1")

print(f"\nDone: 4 NetCDF files in {OUT_DIR}/ ({N_YEARS} years, "
      f"{lat.size}×{lon.size} grid, {int((aod > 0.1).sum())} volcanic years)")
