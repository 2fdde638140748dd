"""
paleopy.style
=============
Matplotlib presets for report figures.

Usage
-----
>>> import paleopy
>>> paleopy.use_style('report')       # apply globally
>>> paleopy.use_style('default')      # restore matplotlib defaults

Or as a context manager:
>>> with paleopy.style_context('paper'):
...     fig = ClimPlot(...)
"""

import matplotlib as mpl
import matplotlib.pyplot as plt
from contextlib import contextmanager

# ── Figure widths (inches) ────────────────────────────────────────────
PAPER_1COL   = 3.50
PAPER_2COL   = 7.20
REPORT_WIDTH = 10.0


# ── rcParams dictionaries ─────────────────────────────────────────────

_BASE = {
    "font.family"           : "sans-serif",
    "font.sans-serif"       : ["Helvetica", "Arial", "DejaVu Sans"],
    "mathtext.fontset"      : "stixsans",
    "lines.linewidth"       : 1.0,
    "axes.linewidth"        : 0.5,
    "xtick.major.width"     : 0.5,
    "ytick.major.width"     : 0.5,
    "xtick.direction"       : "out",
    "ytick.direction"       : "out",
    "legend.framealpha"     : 0.8,
    "legend.edgecolor"      : "0.8",
    "figure.dpi"            : 150,
    "savefig.dpi"           : 300,
    "savefig.bbox"          : "tight",
    # Runs and forcings keep the same colours in every figure (Wong 2011)
    "axes.prop_cycle"       : mpl.cycler(color=[
        "#0077BB",   # R1
        "#EE7733",   # R2
        "#009988",
        "#CC3311",   # forcing
        "#33BBEE",
        "#EE3377",
        "#BBBBBB",
    ]),
}

PAPER_RC = {
    **_BASE,
    "font.size"             : 7,
    "axes.titlesize"        : 8,
    "axes.labelsize"        : 7,
    "xtick.labelsize"       : 6,
    "ytick.labelsize"       : 6,
    "legend.fontsize"       : 6,
}

REPORT_RC = {
    **_BASE,
    "font.size"             : 10,
    "axes.titlesize"        : 11,
    "axes.labelsize"        : 10,
    "xtick.labelsize"       : 9,
    "ytick.labelsize"       : 9,
    "legend.fontsize"       : 9,
}

_STYLES = {
    "paper"  : PAPER_RC,
    "nature" : PAPER_RC,
    "report" : REPORT_RC,
}


def use_style(name: str = "report") -> None:
    """Apply an rcParams preset globally.

    Parameters
    ----------
    name : {'paper', 'nature', 'report', 'default'}
    """
    if name == "default":
        mpl.rcdefaults()
        return
    key = name.lower()
    if key not in _STYLES:
        raise ValueError(
            f"Style '{name}' not recognised. "
            f"Choose from: {list(_STYLES)} or 'default'."
        )
    plt.rcParams.update(_STYLES[key])


@contextmanager
def style_context(name: str = "report"):
    """Temporarily apply a style, then restore the previous settings."""
    prev = dict(mpl.rcParams)
    try:
        use_style(name)
        yield
    finally:
        mpl.rcParams.update(prev)
