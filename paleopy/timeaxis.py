"""
paleopy.timeaxis
================
Normalise yearly time stamps and check that every source agrees.

Model output and forcing files encode the same yearly means differently,
e.g. ``8501231`` (``YYYYMMDD`` at the end of the year), ``8500701.5`` or
``850.5``.  Each encoding is described by the text suffix it appends to the
year; stripping it yields the integer year.

Example
-------
>>> normalize_year_axis([8501231, 8511231], suffix="1231")
array([850, 851])
>>> validate_time_axes({
...     "R1":    ([8501231, 8511231], "1231"),
...     "solar": ([850.5, 851.5], ".5"),
... })
array([850, 851])
"""

from __future__ import annotations

import logging

import numpy as np

from paleopy.exceptions import TimeAxisError

logger = logging.getLogger(__name__)


def _as_text(value) -> str:
    """Positional decimal text of a time value, trailing '.0' trimmed."""
    return np.format_float_positional(float(value), trim="-")


def normalize_year_axis(values, suffix: str = "") -> np.ndarray:
    """Strip ``suffix`` from every time value and return integer years.

    Raises
    ------
    TimeAxisError
        If any value does not end with ``suffix`` or nothing is left
        once it is removed.
    """
    values = np.asarray(values).ravel()
    years = np.empty(values.size, dtype=int)
    for i, v in enumerate(values):
        text = _as_text(v)
        if suffix and not text.endswith(suffix):
            raise TimeAxisError(
                f"Time value {text!r} at index {i} does not end with the "
                f"expected suffix {suffix!r}."
            )
        head = text[: len(text) - len(suffix)] if suffix else text
        try:
            years[i] = int(head)
        except ValueError:
            raise TimeAxisError(
                f"Time value {text!r} at index {i} leaves {head!r} after "
                f"removing suffix {suffix!r}, which is not a year."
            ) from None
    return years


def validate_time_axes(axes: dict) -> np.ndarray:
    """Normalise several time axes and require them to be identical.

    Parameters
    ----------
    axes : dict
        ``{source name: (raw time values, suffix)}``.

    Returns
    -------
    np.ndarray of int — the common year axis.

    Raises
    ------
    TimeAxisError
        On a malformed value, a length mismatch or the first index at
        which two sources disagree.
    """
    if not axes:
        raise TimeAxisError("No time axes given.")

    ref_name, ref_years = None, None
    for name, (values, suffix) in axes.items():
        years = normalize_year_axis(values, suffix)
        if ref_years is None:
            if years.size == 0:
                raise TimeAxisError(f"Time axis of '{name}' is empty.")
            ref_name, ref_years = name, years
            continue
        if years.size != ref_years.size:
            raise TimeAxisError(
                f"Time axis of '{name}' has {years.size} steps, "
                f"'{ref_name}' has {ref_years.size}."
            )
        diff = np.flatnonzero(years != ref_years)
        if diff.size:
            i = int(diff[0])
            raise TimeAxisError(
                f"Time axes of '{name}' and '{ref_name}' disagree at index {i}: "
                f"{years[i]} != {ref_years[i]} ({diff.size} mismatches)."
            )

    logger.info("Time axes of %d sources agree: years %d–%d (%d steps)",
                len(axes), ref_years[0], ref_years[-1], ref_years.size)
    return ref_years
