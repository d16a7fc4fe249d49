"""
Table schemas shared by the pipeline stages.

Each stage hands the next one a pandas DataFrame. The column lists below are
the contract between stages; ``record_id`` is created by the resampler and
kept on every table after it.
"""
import pandas as pd

# ─── Raw buoy observations ───────────────────────────────────────────────────
OBSERVATION_COLUMNS = ["buoy_id", "longitude", "latitude", "time", "surface_temp"]

# ─── Daily buoy records (resampler output) ───────────────────────────────────
DAILY_COLUMNS = [
    "record_id", "buoy_id", "date", "longitude", "latitude",
    "temp_buoy", "n_obs", "n_temp",
]

# ─── Projected points (reprojector output) ───────────────────────────────────
PROJECTED_COLUMNS = DAILY_COLUMNS + ["grid_x", "grid_y"]

# ─── Extracted satellite values (extractor output) ───────────────────────────
EXTRACTED_COLUMNS = [
    "record_id", "sat_mean", "sat_stdev", "sat_n", "sat_time", "status",
    "x_min", "x_max", "y_min", "y_max",
]

# Extraction status codes. Only "ok" carries a value.
STATUS_OK = "ok"
STATUS_NO_DATA = "no_data"
STATUS_OUTSIDE_TIME = "outside_time"
STATUS_OUTSIDE_GRID = "outside_grid"
STATUS_INVALID_POINT = "invalid_point"
STATUS_REQUEST_FAILED = "request_failed"

# ─── Matched records (merger output) ─────────────────────────────────────────
MATCHED_COLUMNS = [
    "record_id", "date", "buoy_id", "longitude", "latitude",
    "grid_x", "grid_y", "temp_buoy", "temp_sat", "sat_time", "sat_n", "status",
]


def make_record_id(buoy_id, date):
    """Key for one buoy-day, e.g. ``300534062898720/2023-08-01``."""
    return f"{buoy_id}/{pd.Timestamp(date):%Y-%m-%d}"


def require_columns(df, columns, what):
    """Raise KeyError naming the table if any expected column is absent."""
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise KeyError(f"{what} is missing columns: {', '.join(missing)}")


def empty_table(columns):
    return pd.DataFrame({c: pd.Series(dtype=object) for c in columns})
