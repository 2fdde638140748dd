"""
example_volcanic_response.py
============================
Standardized temperature anomalies during volcanic years in R1 and R2.
Produces a figure with:
  (a) R1 anomaly map
  (b) R2 anomaly map
  (c) R1 − R2 difference map
  (d) zonal-mean profiles of R1 and R2
and a shared colour bar underneath.

Run ``python generate_test_data.py`` first to get synthetic inputs.
"""

import logging
from pathlib import Path

import paleopy
from paleopy import workflow

logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

# ── Configuration ─────────────────────────────────────────────────────

cfg = paleopy.AnalysisConfig(
    data_dir=Path("data/test"),
    figure_dir=Path("figures"),
    aod_threshold=0.1,
    vmin=-5, vmax=5,
)

# ── Analysis ──────────────────────────────────────────────────────────

paleopy.use_style("report")
inputs = paleopy.load_inputs(cfg)        # aborts if the time axes disagree
anoms, fig = workflow.volcanic_response(cfg, inputs)

for name, anom in anoms.items():
    tropics = paleopy.zonal_mean(anom).sel(lat=slice(-30, 30)).mean()
    polar = paleopy.zonal_mean(anom).where(abs(anom["lat"]) > 60).mean()
    print(f"{name}: tropical mean {float(tropics):+.2f}, "
          f"polar mean {float(polar):+.2f}")

fig.show()
