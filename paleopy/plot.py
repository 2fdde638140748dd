"""
paleopy.plot
============
Figures for the forcing-response analysis: anomaly maps, zonal profiles,
coefficient time series and multitaper spectra.

Quick start
-----------
>>> import paleopy
>>> paleopy.use_style('nature')
>>>
>>> fig = paleopy.ClimPlot(nrows=2, ncols=2, w=7.2, h=4,
...                        map_proj=(Map(), Map(), 'ts', 'cbar'))
>>> fig[0].map(anoms['R1'], title='R1', colorbar=False)
>>> fig[1].map(anoms['R2'], title='R2', colorbar=False)
>>> fig[2].zonal(anoms['R1'], anoms['R2'], labels=['R1', 'R2'])
>>> fig.add_shared_colorbar(fig.axes[3], label='Standardized anomaly')
>>> fig.savefig('figures/volcanic_response.pdf')

Maps accept fields on the [0, 360) longitude convention: columns are
rolled to [-180, 180) and rows put north-up before drawing.  All map panels
share one diverging palette and a fixed colour range, so magnitudes can be
compared across panels.
"""

from __future__ import annotations

import string
from pathlib import Path
from typing import Union

import numpy as np
import matplotlib as mpl
import matplotlib.pyplot as plt
import matplotlib.colors as mcolors
import cartopy.crs as ccrs
from cartopy.mpl.ticker import LatitudeFormatter
from cartopy.util import add_cyclic_point

from paleopy.ops import recenter_longitude, screen_order, zonal_mean

LAT_BANDS = (-90, -60, -30, 0, 30, 60, 90)


# ── Projection helpers ────────────────────────────────────────────────

def Map(central_longitude: float = 0) -> ccrs.PlateCarree:
    """Plate Carrée projection (standard rectangular map)."""
    return ccrs.PlateCarree(central_longitude=central_longitude)


def _period_axis(x):
    x = np.asarray(x, dtype=float)
    with np.errstate(divide="ignore"):
        return np.where(x != 0, 1.0 / np.where(x != 0, x, 1.0), np.inf)


# ── _AxProxy ─────────────────────────────────────────────────────────

class _AxProxy:
    """Thin proxy returned by ClimPlot[i] that exposes short-hand methods."""

    def __init__(self, parent: "ClimPlot", ax: mpl.axes.Axes, idx: int):
        self._p = parent
        self.ax = ax
        self._idx = idx

    def map(self, X, **kwargs):
        """Short-hand for fill_with_spatial_pattern on this axis."""
        self._p.fill_with_spatial_pattern(X, ax=self.ax, **kwargs)
        return self

    def ts(self, *series, **kwargs):
        """Short-hand for fill_with_time_series on this axis."""
        if len(series) == 0:
            raise ValueError("At least one DataArray must be passed.")
        self._p.fill_with_time_series(*series, ax=self.ax, **kwargs)
        return self

    def zonal(self, *fields, **kwargs):
        """Short-hand for fill_with_zonal_profile on this axis."""
        self._p.fill_with_zonal_profile(*fields, ax=self.ax, **kwargs)
        return self

    def spectrum(self, *spectra, **kwargs):
        """Short-hand for fill_with_spectrum on this axis."""
        self._p.fill_with_spectrum(*spectra, ax=self.ax, **kwargs)
        return self


# ── ClimPlot ──────────────────────────────────────────────────────────

class ClimPlot:
    """Multi-panel figure.

    Parameters
    ----------
    nrows, ncols : int
        Grid dimensions.
    n : int, optional
        Number of active subplots (≤ nrows * ncols). Default: nrows * ncols.
    w, h : float
        Figure width and height in inches.
    map_proj : tuple
        One entry per subplot: a cartopy projection (e.g. ``Map()``) for
        maps, ``'ts'`` for ordinary axes, or ``'cbar'`` for a panel that
        will only hold a shared colour bar.
    layout : str
        Matplotlib layout engine (default ``'constrained'``).
    height_ratios : sequence of float, optional
        Relative row heights, e.g. to keep a colour-bar row thin.
    """

    def __init__(
        self,
        nrows: int,
        ncols: int,
        n: int = None,
        w: float = 7.2,
        h: float = 5.0,
        map_proj: tuple = None,
        layout: str = "constrained",
        height_ratios=None,
    ):
        if n is None:
            n = nrows * ncols
        if n > nrows * ncols:
            raise ValueError(
                f"n={n} exceeds nrows×ncols={nrows*ncols}."
            )

        self._transf = ccrs.PlateCarree()
        self._n = n
        self._mappable = None
        self._cbar_axes = set()

        self._fig = plt.figure(figsize=(w, h), layout=layout)
        gs = self._fig.add_gridspec(nrows, ncols, height_ratios=height_ratios)

        if map_proj is None:
            map_proj = ("ts",) * n

        self.axes: list[mpl.axes.Axes] = []
        for i in range(n):
            proj = map_proj[i]
            if i == n - 1 and i % ncols == 0 and ncols > 1:
                spec = gs[i // ncols, :]      # lone last panel spans its row
            else:
                spec = gs[i // ncols, i % ncols]
            if isinstance(proj, str):
                ax = self._fig.add_subplot(spec)
                if proj == "cbar":
                    ax.set_axis_off()
                    self._cbar_axes.add(i)
            else:
                ax = self._fig.add_subplot(spec, projection=proj)
            self.axes.append(ax)

    def __getitem__(self, idx: int) -> _AxProxy:
        """fig[i] returns a proxy with .map(), .ts(), .zonal(), .spectrum()."""
        return _AxProxy(self, self.axes[idx], idx)

    # ── Spatial pattern (map) ─────────────────────────────────────────

    def fill_with_spatial_pattern(
        self,
        X,
        ax: mpl.axes.Axes,
        *,
        title: str = "",
        filltype: str = "imshow",
        cmap=None,
        vmin: float = -5.0,
        vmax: float = 5.0,
        vcenter: float = 0.0,
        nlevels: int = 21,
        colorbar: bool = True,
        cbar_label: str = "",
        cbar_orientation: str = "horizontal",
        shrink: float = 0.8,
        coastlines_lw: float = 0.4,
        lat_lines=LAT_BANDS,
        lat_lines_lw: float = 0.4,
        title_fontsize: int = None,
    ) -> "ClimPlot":
        """Draw a 2-D (lat, lon) field as a map.

        Parameters
        ----------
        X : xr.DataArray
            2-D field with 'lat' and 'lon' coordinates.  Longitudes on
            [0, 360) are re-centred to [-180, 180).
        ax : GeoAxes target.
        filltype : 'imshow' | 'pcolormesh' | 'contourf'
            'imshow' draws grid cells as an image in north-up row order.
        vmin, vmax : float
            Fixed colour limits, shared by every panel (default ±5).
        colorbar : bool
            Draw a colour bar for this panel.  Pass False when a shared bar
            is added with ``add_shared_colorbar``.
        lat_lines : sequence of float
            Latitudes marked with reference lines (tropics / extratropics).
        """
        if cmap is None:
            cmap = plt.cm.RdBu_r
        norm = mcolors.TwoSlopeNorm(vmin=vmin, vcenter=vcenter, vmax=vmax)

        if X["lon"].values.max() >= 180:
            X = recenter_longitude(X)
        X = screen_order(X)
        lat = X["lat"].values
        lon = X["lon"].values

        if filltype == "imshow":
            dlon = np.diff(lon).mean() if lon.size > 1 else 360.0
            dlat = abs(np.diff(lat).mean()) if lat.size > 1 else 180.0
            extent = [lon[0] - dlon / 2, lon[-1] + dlon / 2,
                      lat[-1] - dlat / 2, lat[0] + dlat / 2]
            fill = ax.imshow(
                X.values, origin="upper", extent=extent,
                norm=norm, cmap=cmap, transform=self._transf,
                interpolation="nearest", zorder=2,
            )
        elif filltype == "pcolormesh":
            fill = ax.pcolormesh(
                lon, lat, X.values, norm=norm, cmap=cmap,
                transform=self._transf, zorder=2, shading="auto",
            )
        elif filltype == "contourf":
            data, lon_cyc = add_cyclic_point(X.values, coord=lon)
            levels = np.linspace(vmin, vmax, nlevels, endpoint=True)
            fill = ax.contourf(
                lon_cyc, lat, data, levels=levels, norm=norm, cmap=cmap,
                transform=self._transf, zorder=2, extend="both",
            )
        else:
            raise ValueError(
                f"filltype='{filltype}' not recognised. "
                "Use 'imshow', 'pcolormesh' or 'contourf'."
            )
        self._mappable = fill

        if colorbar:
            self._fig.colorbar(
                fill, ax=ax, shrink=shrink, extend="both",
                label=cbar_label, orientation=cbar_orientation,
            )

        ax.set_global()
        ax.coastlines(linewidth=coastlines_lw, zorder=4)

        for la in lat_lines or ():
            ax.plot([-180, 180], [la, la], color="k", linewidth=lat_lines_lw,
                    linestyle="--", transform=self._transf, zorder=5)

        if title_fontsize:
            ax.set_title(title, fontsize=title_fontsize)
        else:
            ax.set_title(title)

        return self

    def add_shared_colorbar(
        self,
        cax: mpl.axes.Axes,
        mappable=None,
        label: str = "",
        orientation: str = "horizontal",
        ticks=None,
    ) -> "ClimPlot":
        """Draw one colour bar for all map panels into its own panel.

        ``mappable`` defaults to the last map drawn.
        """
        mappable = mappable or self._mappable
        if mappable is None:
            raise ValueError("No map drawn yet; nothing to build a colour bar from.")
        cax.set_axis_off()
        inset = cax.inset_axes([0.1, 0.35, 0.8, 0.3])
        self._fig.colorbar(mappable, cax=inset, orientation=orientation,
                           extend="both", label=label, ticks=ticks)
        return self

    # ── Zonal profile ─────────────────────────────────────────────────

    def fill_with_zonal_profile(
        self,
        *fields,
        ax: mpl.axes.Axes,
        title: str = "",
        xlabel: str = "",
        labels=None,
        colors=None,
        xlim=None,
        lat_lines=LAT_BANDS,
        legend: bool = True,
    ) -> "ClimPlot":
        """Plot the zonal mean of each (lat, lon) field against latitude."""
        n = len(fields)
        if n == 0:
            raise ValueError("Pass at least one DataArray.")
        prop_cycle = plt.rcParams["axes.prop_cycle"].by_key()["color"]
        _colors = colors or [prop_cycle[i % len(prop_cycle)] for i in range(n)]
        _labels = labels or [f"Field {i+1}" for i in range(n)]

        for i, X in enumerate(fields):
            zm = zonal_mean(X)
            ax.plot(zm.values, zm["lat"].values, color=_colors[i], label=_labels[i])

        for la in lat_lines or ():
            ax.axhline(la, color="0.6", linewidth=0.5, linestyle="--", zorder=0)
        ax.axvline(0, color="k", linewidth=0.6, zorder=0)

        ax.set_ylim(-90, 90)
        ax.set_yticks(list(LAT_BANDS))
        ax.yaxis.set_major_formatter(LatitudeFormatter())
        if xlim is not None:
            ax.set_xlim(*xlim)
        ax.set_xlabel(xlabel)
        ax.set_title(title)
        if legend:
            ax.legend(loc="best", frameon=True, framealpha=0.8)
        return self

    # ── Time series ───────────────────────────────────────────────────

    def fill_with_time_series(
        self,
        *series,
        ax: mpl.axes.Axes,
        title: str = "",
        xlabel: str = "Year",
        ylabel: str = "",
        labels=None,
        colors=None,
        linewidths=None,
        alphas=None,
        linestyles=None,
        zero_line: bool = True,
        zero_lw: float = 0.6,
        legend: bool = True,
        legend_loc: str = "best",
    ) -> "ClimPlot":
        """Plot 1–N time series on the same axes.

        Example
        -------
        >>> fig[2].ts(coeff, solar, labels=['Mode 3', 'Solar'],
        ...           colors=['steelblue', 'firebrick'])
        """
        n = len(series)
        if n == 0:
            raise ValueError("Pass at least one DataArray.")

        prop_cycle = plt.rcParams["axes.prop_cycle"].by_key()["color"]
        _colors  = colors     or [prop_cycle[i % len(prop_cycle)] for i in range(n)]
        _lws     = linewidths or [1.0] * n
        _alphas  = alphas     or [1.0] * n
        _lstyles = linestyles or ["-"] * n
        _labels  = labels     or [f"Series {i+1}" for i in range(n)]

        for i, s in enumerate(series):
            s.plot.line(
                ax=ax,
                color=_colors[i],
                linewidth=_lws[i],
                alpha=_alphas[i],
                linestyle=_lstyles[i],
                label=_labels[i],
            )

        if zero_line:
            ax.axhline(0, color="k", linewidth=zero_lw, zorder=0)

        ax.set_xlabel(xlabel)
        ax.set_ylabel(ylabel)
        ax.set_title(title)

        if legend:
            ax.legend(loc=legend_loc, frameon=True, framealpha=0.8)

        return self

    # ── Spectrum ──────────────────────────────────────────────────────

    def fill_with_spectrum(
        self,
        *spectra,
        ax: mpl.axes.Axes,
        title: str = "",
        labels=None,
        colors=None,
        band_alpha: float = 0.2,
        mark_periods=(11.0,),
        legend: bool = True,
    ) -> "ClimPlot":
        """Overlay spectra on log-log axes with shaded confidence bands.

        Parameters
        ----------
        *spectra : Spectrum
            (freq, power, lower, upper) tuples from ``estimate_spectrum``.
        mark_periods : sequence of float
            Periods (time steps) marked with vertical lines, e.g. the
            ~11-year solar cycle.

        The bottom axis is frequency; a top axis labels the period.
        """
        n = len(spectra)
        if n == 0:
            raise ValueError("Pass at least one Spectrum.")
        prop_cycle = plt.rcParams["axes.prop_cycle"].by_key()["color"]
        _colors = colors or [prop_cycle[i % len(prop_cycle)] for i in range(n)]
        _labels = labels or [f"Series {i+1}" for i in range(n)]

        for i, spec in enumerate(spectra):
            ax.loglog(spec.freq, spec.power, color=_colors[i], label=_labels[i])
            ax.fill_between(spec.freq, spec.lower, spec.upper,
                            color=_colors[i], alpha=band_alpha, linewidth=0)

        for p in mark_periods or ():
            ax.axvline(1.0 / p, color="0.4", linewidth=0.6, linestyle=":")

        ax.set_xlabel("Frequency (cycles per year)")
        ax.set_ylabel("Power spectral density")
        top = ax.secondary_xaxis("top", functions=(_period_axis, _period_axis))
        top.set_xlabel("Period (years)")
        ax.set_title(title)
        if legend:
            ax.legend(loc="best", frameon=True, framealpha=0.8)
        return self

    # ── Subplot labels ────────────────────────────────────────────────

    def label_subplots(
        self,
        labels=None,
        x: float = -0.06,
        y: float = 1.02,
        fontsize: int = None,
        fontweight: str = "bold",
        skip_cbar: bool = True,
    ) -> "ClimPlot":
        """Add (a), (b), (c)... labels to each subplot (colour-bar panels skipped)."""
        if fontsize is None:
            fontsize = mpl.rcParams.get("axes.titlesize", 8)

        axes = [ax for i, ax in enumerate(self.axes)
                if not (skip_cbar and i in self._cbar_axes)]
        if labels is None:
            labels = [f"({c})" for c in string.ascii_lowercase[:len(axes)]]

        for ax, label in zip(axes, labels):
            ax.text(
                x, y, label,
                transform=ax.transAxes,
                fontsize=fontsize,
                fontweight=fontweight,
                ha="right", va="bottom",
            )
        return self

    # ── Save / show ───────────────────────────────────────────────────

    def savefig(
        self,
        path: Union[str, Path],
        fmt: str = None,
        dpi: int = 300,
        transparent: bool = False,
        verbose: bool = True,
    ) -> "ClimPlot":
        """Save figure to file; the format follows the extension if ``fmt`` is None."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        if fmt is None:
            fmt = path.suffix.lstrip(".")
        if not fmt:
            fmt = "pdf"
            path = path.with_suffix(".pdf")
        self._fig.savefig(
            str(path), format=fmt, dpi=dpi,
            transparent=transparent, bbox_inches="tight",
        )
        if verbose:
            print(f"✓ Figure saved → {path}")
        return self

    def show(self) -> "ClimPlot":
        """Display the figure."""
        plt.show()
        return self

    def close(self) -> None:
        plt.close(self._fig)

    @property
    def fig(self) -> mpl.figure.Figure:
        """The underlying matplotlib Figure."""
        return self._fig
