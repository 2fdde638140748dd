"""Tests for the configuration layer."""

from pathlib import Path

import pytest

from paleopy.config import AnalysisConfig, EOFConfig, FileSpec, SpectralConfig
from paleopy.exceptions import ConfigError


def test_defaults():
    cfg = AnalysisConfig()
    assert list(cfg.runs) == ["R1", "R2"]
    assert cfg.eof.n_modes == 40
    assert cfg.eof.lat_band == 30.0
    assert cfg.aod_threshold == 0.1
    assert (cfg.vmin, cfg.vmax) == (-5.0, 5.0)
    assert cfg.zero_variance == "nan"


def test_from_dict_nested():
    cfg = AnalysisConfig.from_dict({
        "data_dir": "data",
        "runs": {"A": {"filename": "a.nc", "var": "tas", "time_suffix": "0701.5"}},
        "solar": {"filename": "tsi.nc", "var": "TSI"},
        "eof": {"n_modes": 10, "backend": "eofs"},
        "spectral": {"modes": [0, 2], "nw": 3.0},
    })
    assert cfg.runs["A"] == FileSpec("a.nc", "tas", "0701.5")
    assert cfg.path(cfg.runs["A"]) == Path("data/a.nc")
    assert cfg.run_paths() == {"A": Path("data/a.nc")}
    assert cfg.eof == EOFConfig(n_modes=10, backend="eofs")
    assert cfg.spectral.modes == (0, 2)
    assert cfg.aod.var == "aod"


def test_to_dict_roundtrip():
    cfg = AnalysisConfig(data_dir="somewhere", eof=EOFConfig(n_modes=5))
    d = cfg.to_dict()
    assert d["data_dir"] == "somewhere"
    assert AnalysisConfig.from_dict(d) == cfg


def test_unknown_key():
    with pytest.raises(ConfigError, match="Unknown"):
        AnalysisConfig.from_dict({"dta_dir": "data"})


def test_bad_filespec():
    with pytest.raises(ConfigError):
        AnalysisConfig.from_dict({"solar": {"file": "tsi.nc"}})
    with pytest.raises(ConfigError):
        AnalysisConfig.from_dict({"solar": "tsi.nc"})


@pytest.mark.parametrize("kwargs", [
    {"n_modes": 0},
    {"lat_band": 0.0},
    {"lat_band": 95.0},
    {"backend": "numpy"},
])
def test_invalid_eof_config(kwargs):
    with pytest.raises(ConfigError):
        EOFConfig(**kwargs)


@pytest.mark.parametrize("kwargs", [
    {"confidence": 1.0},
    {"n_trim": -1},
    {"lowpass_period": 2},
])
def test_invalid_spectral_config(kwargs):
    with pytest.raises(ConfigError):
        SpectralConfig(**kwargs)


def test_invalid_analysis_config():
    with pytest.raises(ConfigError):
        AnalysisConfig(vmin=5.0, vmax=-5.0)
    with pytest.raises(ConfigError, match="straddle zero"):
        AnalysisConfig(vmin=0.0, vmax=5.0)
    with pytest.raises(ConfigError, match="straddle zero"):
        AnalysisConfig(vmin=-5.0, vmax=-1.0)
    with pytest.raises(ConfigError):
        AnalysisConfig(zero_variance="zero")
    with pytest.raises(ConfigError):
        AnalysisConfig(runs={})


def test_config_error_is_value_error():
    with pytest.raises(ValueError):
        EOFConfig(backend="numpy")


def test_asymmetric_colour_range_is_accepted():
    cfg = AnalysisConfig(vmin=-2.0, vmax=6.0)
    assert (cfg.vmin, cfg.vmax) == (-2.0, 6.0)
