"""
Nearest-match extraction of satellite values at buoy grid positions.

For every query point the extractor picks the composite whose timestamp is
closest to the buoy date (ties go to the earlier composite), the nearest grid
cell (or the cells inside an ``xlen`` x ``ylen`` box around the point), and
averages the finite values it reads there. A point that cannot be matched
gets a NaN value and a status saying why; it is never dropped.
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import numpy as np
import pandas as pd

from ist_matchup.config import MAX_WORKERS, TIME_TOLERANCE_DAYS
from ist_matchup.errors import DataUnavailable, MalformedResponse
from ist_matchup.models import (
    EXTRACTED_COLUMNS,
    STATUS_INVALID_POINT,
    STATUS_NO_DATA,
    STATUS_OK,
    STATUS_OUTSIDE_GRID,
    STATUS_OUTSIDE_TIME,
    STATUS_REQUEST_FAILED,
    empty_table,
    require_columns,
)

DEFAULT_Z = 0.0

# A daily record stands for its whole UTC day
DAY_CENTRE = pd.Timedelta(hours=12)


def nearest_time_index(times, t):
    """
    Index of the timestamp in ``times`` closest to ``t``.

    When two composites are equally close the earlier one wins, whatever
    order the axis is stored in.
    """
    gaps = np.abs((times - t).to_numpy())
    best = gaps.min()
    candidates = np.flatnonzero(gaps == best)
    return int(candidates[times[candidates].argmin()])


def axis_window(axis, value, length, cell_size=None):
    """
    Index slice of ``axis`` cells matching ``value``, or None if outside.

    ``length == 0`` means the single nearest cell, accepted only if ``value``
    is within half a cell of it. The cell size is ``cell_size`` when given,
    otherwise the axis spacing; a one-cell axis without ``cell_size`` only
    matches its own centre. Otherwise every cell centre within
    ``length / 2`` of ``value``. ``axis`` must be monotonic, either direction.
    """
    if len(axis) == 0:
        return None
    if length == 0:
        i = int(np.argmin(np.abs(axis - value)))
        if cell_size is not None:
            spacing = float(cell_size)
        elif len(axis) > 1:
            spacing = np.median(np.abs(np.diff(axis)))
        else:
            spacing = 0.0
        if abs(axis[i] - value) > spacing / 2.0 * (1 + 1e-9):
            return None
        return slice(i, i + 1)
    hits = np.flatnonzero(np.abs(axis - value) <= length / 2.0)
    if len(hits) == 0:
        return None
    return slice(int(hits.min()), int(hits.max()) + 1)


def _missing(record_id, status, sat_time=pd.NaT):
    return {"record_id": record_id, "sat_mean": np.nan, "sat_stdev": np.nan,
            "sat_n": 0, "sat_time": sat_time, "status": status,
            "x_min": np.nan, "x_max": np.nan, "y_min": np.nan, "y_max": np.nan}


class Extractor:
    """Pull one satellite value (or a missing marker) per projected buoy record."""

    def __init__(self, grid, xlen=0.0, ylen=0.0,
                 time_tolerance=timedelta(days=TIME_TOLERANCE_DAYS),
                 max_workers=MAX_WORKERS, cell_size=None):
        self.grid = grid
        self.xlen = float(xlen)
        self.ylen = float(ylen)
        self.cell_size = cell_size
        self.time_tolerance = pd.Timedelta(time_tolerance)
        self.max_workers = max_workers

    def _load_axes(self):
        self.times = self.grid.time_axis()
        self.xs = self.grid.x_axis()
        self.ys = self.grid.y_axis()
        self.zs = self.grid.z_axis()

    def _plan(self, record_id, x, y, t, z):
        """Either a finished (missing) result, or the indices to read."""
        if not (np.isfinite(x) and np.isfinite(y)) or pd.isna(t):
            return _missing(record_id, STATUS_INVALID_POINT), None
        if len(self.times) == 0:
            return _missing(record_id, STATUS_OUTSIDE_TIME), None

        ti = nearest_time_index(self.times, t)
        sat_time = self.times[ti]
        if abs(sat_time - t) > self.time_tolerance:
            return _missing(record_id, STATUS_OUTSIDE_TIME), None

        xs = axis_window(self.xs, x, self.xlen, self.cell_size)
        ys = axis_window(self.ys, y, self.ylen, self.cell_size)
        if xs is None or ys is None:
            return _missing(record_id, STATUS_OUTSIDE_GRID, sat_time), None

        zi = None
        if self.zs is not None and len(self.zs):
            zi = int(np.argmin(np.abs(self.zs - (DEFAULT_Z if pd.isna(z) else z))))
        return None, (record_id, ti, zi, ys, xs)

    def _read(self, job):
        record_id, ti, zi, ys, xs = job
        sat_time = self.times[ti]
        try:
            values = self.grid.read_box(ti, zi, ys, xs)
        except MalformedResponse:
            raise
        except DataUnavailable:
            return _missing(record_id, STATUS_REQUEST_FAILED, sat_time)

        finite = np.asarray(values, dtype=float).ravel()
        finite = finite[np.isfinite(finite)]
        n = len(finite)
        result = {
            "record_id": record_id,
            "sat_mean": finite.mean() if n else np.nan,
            "sat_stdev": finite.std(ddof=1) if n > 1 else np.nan,
            "sat_n": n,
            "sat_time": sat_time,
            "status": STATUS_OK if n else STATUS_NO_DATA,
            "x_min": self.xs[xs].min(), "x_max": self.xs[xs].max(),
            "y_min": self.ys[ys].min(), "y_max": self.ys[ys].max(),
        }
        return result

    def extract(self, points):
        """
        One row per input point, same order: see ``models.EXTRACTED_COLUMNS``.

        Raises DataUnavailable when the grid's axes cannot be fetched or when
        every read that went to the dataset failed. A ``date`` at midnight is a
        calendar day and is matched from the middle of that day, so a daily
        composite stamped at noon pairs with its own day.
        """
        require_columns(points, ["record_id", "grid_x", "grid_y", "date"], "query points")
        if points.empty:
            return empty_table(EXTRACTED_COLUMNS)

        self._load_axes()

        dates = pd.to_datetime(points["date"])
        if dates.dt.tz is None:
            dates = dates.dt.tz_localize("UTC")
        query_times = dates.where(dates != dates.dt.normalize(), dates + DAY_CENTRE)
        zs = points["z"] if "z" in points.columns else pd.Series(np.nan, index=points.index)

        results = [None] * len(points)
        jobs = []
        for pos, (rid, x, y, t, z) in enumerate(zip(
                points["record_id"], points["grid_x"].astype(float),
                points["grid_y"].astype(float), query_times, zs)):
            done, job = self._plan(rid, x, y, t, z)
            if done is not None:
                results[pos] = done
            else:
                jobs.append((pos, job))

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [(pos, pool.submit(self._read, job)) for pos, job in jobs]
            try:
                for pos, future in futures:
                    results[pos] = future.result()
            except MalformedResponse:
                pool.shutdown(cancel_futures=True)
                raise

        failed = sum(1 for pos, _ in jobs if results[pos]["status"] == STATUS_REQUEST_FAILED)
        if jobs and failed == len(jobs):
            raise DataUnavailable(
                f"All {failed} point requests failed",
                dataset_id=self.grid.dataset_id,
                query=f"{self.grid.variable} {dates.min():%Y-%m-%d}..{dates.max():%Y-%m-%d}",
            )

        return pd.DataFrame(results, columns=EXTRACTED_COLUMNS)
