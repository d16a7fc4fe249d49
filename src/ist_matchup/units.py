"""Unit conversion for extracted satellite values."""
import numpy as np
import pandas as pd

from ist_matchup.errors import UnsupportedUnits

KELVIN_OFFSET = 273.15


def kelvin_to_celsius(values):
    """
    Kelvin → Celsius for a scalar, array or Series. Missing stays missing.

    ``None`` comes back as ``None``; NaN comes back as NaN.
    """
    if values is None:
        return None
    if isinstance(values, pd.Series):
        return pd.to_numeric(values, errors="coerce") - KELVIN_OFFSET
    if np.isscalar(values):
        return float(values) - KELVIN_OFFSET
    return np.asarray(values, dtype=float) - KELVIN_OFFSET


def _identity(values):
    if isinstance(values, pd.Series):
        return pd.to_numeric(values, errors="coerce")
    return values


_KELVIN_UNITS = {"k", "kelvin", "kelvins", "degk", "deg_k", "degree_k", "degrees_k",
                "degree_kelvin", "degrees_kelvin"}
_CELSIUS_UNITS = {"c", "celsius", "degc", "deg_c", "degree_c", "degrees_c",
                  "degree_celsius", "degrees_celsius"}


def celsius_converter(units):
    """
    Converter to Celsius for a dataset's ``units`` attribute.

    Kelvin (the usual IST unit) and a missing attribute both map to
    ``kelvin_to_celsius``; Celsius maps to a pass-through.
    """
    key = (units or "K").strip().lower().replace(" ", "_")
    if key in _KELVIN_UNITS:
        return kelvin_to_celsius
    if key in _CELSIUS_UNITS:
        return _identity
    raise UnsupportedUnits(f"Don't know how to convert {units!r} to Celsius")
