"""Shared test fixtures."""

import numpy as np
import pandas as pd
import pytest
import requests
import xarray as xr

from ist_matchup.grids import LocalGrid
from ist_matchup.projection import NSIDC_NORTH

CELL = 1000.0  # metres


def make_response(status=200, text=""):
    """A real requests.Response carrying ``text``."""
    resp = requests.Response()
    resp.status_code = status
    resp._content = text.encode("utf-8")
    resp.encoding = "utf-8"
    resp.url = "https://erddap.test/erddap/query"
    return resp


def grid_centre(lon=-120.0, lat=80.0):
    """Grid x/y of a point, snapped to the nearest CELL multiple."""
    x, y = NSIDC_NORTH.forward(lon, lat)
    return float(np.round(x / CELL) * CELL), float(np.round(y / CELL) * CELL)


def make_ist_dataset(times, kelvins):
    """
    An IST grid around (lon=-120, lat=80), one composite per entry of ``times``.

    One altitude level, 11 x 11 one-kilometre cells; ``rows`` descends like
    the PolarWatch grids. Composite i is filled with ``kelvins[i]``.
    """
    cx, cy = grid_centre()
    cols = cx + np.arange(-5, 6) * CELL
    rows = cy - np.arange(-5, 6) * CELL
    times = pd.to_datetime(times)
    values = np.empty((len(times), 1, len(rows), len(cols)))
    for i, kelvin in enumerate(kelvins):
        values[i] = kelvin
    ds = xr.Dataset(
        {"IceSrfTemp": (("time", "altitude", "rows", "cols"), values,
                        {"units": "K"})},
        coords={"time": times, "altitude": [0.0], "rows": rows, "cols": cols},
        attrs={"id": "testIST4Day"},
    )
    return ds


@pytest.fixture
def ist_dataset():
    """4-day composites at 07-30, 08-03 and 08-07 (12:00 UTC): 272, 270, 268 K."""
    return make_ist_dataset(
        ["2023-07-30T12:00", "2023-08-03T12:00", "2023-08-07T12:00"],
        (272.0, 270.0, 268.0),
    )


@pytest.fixture
def ist_grid(ist_dataset):
    return LocalGrid(ist_dataset, "IceSrfTemp")


@pytest.fixture
def raw_buoy_rows():
    """ERDDAP-style tabledap rows for buoy X on 2023-08-01."""
    return pd.DataFrame({
        "buoy_id": ["X", "X"],
        "latitude": [80.0, 80.0],
        "longitude": [-120.0, -120.0],
        "time": ["2023-08-01T00:00:00Z", "2023-08-01T12:00:00Z"],
        "surface_temp": [0.5, -0.3],
        "has_surface_temp": ["1", "1"],
    })


@pytest.fixture
def observations():
    """Buoy observation table over three days; day two has no valid temperature."""
    return pd.DataFrame({
        "buoy_id": ["X"] * 6,
        "longitude": [-120.0, -119.9, -119.5, -119.4, -119.0, -118.9],
        "latitude": [80.0, 80.01, 80.1, 80.11, 80.2, 80.21],
        "time": pd.to_datetime([
            "2023-08-01T00:00:00", "2023-08-01T12:00:00",
            "2023-08-02T03:00:00", "2023-08-02T18:00:00",
            "2023-08-03T06:00:00", "2023-08-03T23:59:59",
        ], utc=True),
        "surface_temp": [0.5, -0.3, np.nan, np.nan, -1.0, 0.0],
    })
