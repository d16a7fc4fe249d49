"""
Gridded satellite datasets the extractor can read from.

Both classes expose the same small surface:

    dataset_id, variable
    time_axis()  -> pandas.DatetimeIndex (UTC)
    x_axis(), y_axis() -> 1-D float arrays (grid metres)
    z_axis()     -> 1-D array, or None when the variable has no vertical axis
    read_box(t_index, z_index, y_slice, x_slice) -> numpy array of values
    units()      -> the variable's units attribute, or None

``read_box`` takes *index* positions on each axis so the caller never has to
care whether an axis is stored ascending or descending.
"""
import warnings

import numpy as np
import pandas as pd
import xarray as xr

from ist_matchup.config import SAT_AXES

warnings.filterwarnings("ignore", category=xr.SerializationWarning)


def _utc_index(values):
    return pd.DatetimeIndex(pd.to_datetime(values, utc=True))


class LocalGrid:
    """An xarray Dataset held in memory, or opened from NetCDF / OPeNDAP."""

    def __init__(self, ds, variable, dataset_id=None, axes=None):
        self.ds = ds
        self.variable = variable
        self.dataset_id = dataset_id or ds.attrs.get("id", variable)
        self.axes = {**SAT_AXES, **(axes or {})}
        if variable not in ds:
            raise KeyError(f"{variable!r} not in dataset (have {list(ds.data_vars)})")
        dims = ds[variable].dims
        for key in ("time", "y", "x"):
            if self.axes[key] not in dims:
                raise KeyError(f"{variable!r} has no {self.axes[key]!r} dimension "
                               f"(dims: {dims})")

    @classmethod
    def open(cls, path_or_url, variable, axes=None):
        """Open a NetCDF file or OPeNDAP endpoint lazily."""
        ds = xr.open_dataset(path_or_url, decode_times=True)
        return cls(ds, variable, dataset_id=str(path_or_url), axes=axes)

    def time_axis(self):
        return _utc_index(self.ds[self.axes["time"]].values)

    def x_axis(self):
        return np.asarray(self.ds[self.axes["x"]].values, dtype=float)

    def y_axis(self):
        return np.asarray(self.ds[self.axes["y"]].values, dtype=float)

    def z_axis(self):
        z = self.axes["z"]
        if z not in self.ds[self.variable].dims:
            return None
        return np.asarray(self.ds[z].values, dtype=float)

    def read_box(self, t_index, z_index, y_slice, x_slice):
        sel = {self.axes["time"]: t_index,
               self.axes["y"]: y_slice,
               self.axes["x"]: x_slice}
        if z_index is not None:
            sel[self.axes["z"]] = z_index
        box = self.ds[self.variable].isel(sel)
        return np.asarray(box.values, dtype=float)

    def units(self):
        return self.ds[self.variable].attrs.get("units")

    def close(self):
        self.ds.close()


class ErddapGrid:
    """A griddap dataset read through an ErddapClient."""

    def __init__(self, client, dataset_id, variable, axes=None):
        self.client = client
        self.dataset_id = dataset_id
        self.variable = variable
        self.axes = {**SAT_AXES, **(axes or {})}
        self._cache = {}

    def _axis(self, key):
        if key not in self._cache:
            self._cache[key] = self.client.griddap_axis(self.dataset_id, self.axes[key])
        return self._cache[key]

    def time_axis(self):
        return _utc_index(self._axis("time"))

    def x_axis(self):
        return self._axis("x").to_numpy(dtype=float)

    def y_axis(self):
        return self._axis("y").to_numpy(dtype=float)

    def z_axis(self):
        if not self.axes.get("z"):
            return None
        return self._axis("z").to_numpy(dtype=float)

    def box_query(self, t_index, z_index, y_slice, x_slice):
        """griddap index query for one box, e.g. ``IceSrfTemp[3:1:3][0:1:0][...]``."""
        parts = [f"[{t_index}:1:{t_index}]"]
        if z_index is not None:
            parts.append(f"[{z_index}:1:{z_index}]")
        parts.append(f"[{y_slice.start}:1:{y_slice.stop - 1}]")
        parts.append(f"[{x_slice.start}:1:{x_slice.stop - 1}]")
        return self.variable + "".join(parts)

    def read_box(self, t_index, z_index, y_slice, x_slice):
        query = self.box_query(t_index, z_index, y_slice, x_slice)
        df = self.client.griddap(self.dataset_id, query, expect=[self.variable])
        return pd.to_numeric(df[self.variable], errors="coerce").to_numpy(dtype=float)

    def units(self):
        """``units`` attribute of the variable from the dataset metadata, or None."""
        return self.client.variable_attribute(self.dataset_id, self.variable, "units")
