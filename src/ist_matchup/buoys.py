"""
Drifting-buoy observations from an ERDDAP tabledap dataset (IABP layout).
"""
import numpy as np
import pandas as pd

from ist_matchup.config import BUOY_DATASET, BUOY_FIELDS, BUOY_TEMP_RANGE
from ist_matchup.errors import MalformedResponse
from ist_matchup.models import OBSERVATION_COLUMNS

TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"
_TRUE_FLAGS = {"1", "1.0", "y", "yes", "t", "true"}


def parse_times(values):
    """ERDDAP ISO-8601 UTC strings (``Z`` suffix optional) → tz-aware timestamps."""
    stripped = pd.Series(values, dtype=str).str.strip().str.rstrip("Z")
    return pd.to_datetime(stripped, format=TIME_FORMAT, utc=True)


def _flag(values):
    return pd.Series(values).astype(str).str.strip().str.lower().isin(_TRUE_FLAGS)


def clean_observations(raw, dataset_id=BUOY_DATASET):
    """
    Turn a raw tabledap frame into the buoy observation table.

    Rows are kept even when the temperature is unusable: a ``has_surface_temp``
    flag that is off, or a value outside the physical range, becomes NaN so
    the day still shows up downstream.
    """
    missing = [c for c in BUOY_FIELDS if c not in raw.columns]
    if missing:
        raise MalformedResponse(f"buoy rows lack {missing}", dataset_id=dataset_id)
    raw = raw.reset_index(drop=True)

    try:
        times = parse_times(raw["time"])
    except ValueError as e:
        raise MalformedResponse(f"unparseable buoy time: {e}", dataset_id=dataset_id) from e

    df = pd.DataFrame({
        "buoy_id": raw["buoy_id"].astype(str),
        "longitude": pd.to_numeric(raw["longitude"], errors="coerce"),
        "latitude": pd.to_numeric(raw["latitude"], errors="coerce"),
        "time": times,
        "surface_temp": pd.to_numeric(raw["surface_temp"], errors="coerce"),
    })

    lo, hi = BUOY_TEMP_RANGE
    usable = _flag(raw["has_surface_temp"]) & df["surface_temp"].between(lo, hi)
    df.loc[~usable, "surface_temp"] = np.nan

    return df.sort_values("time", kind="mergesort").reset_index(drop=True)[OBSERVATION_COLUMNS]


def fetch_buoy_observations(client, buoy_id, start, end, dataset_id=BUOY_DATASET):
    """
    All observations for one buoy between ``start`` and ``end`` (inclusive;
    a bare date as ``end`` covers that whole day).

    An empty frame means the buoy reported nothing in that window.
    """
    t0 = pd.Timestamp(start)
    t1 = pd.Timestamp(end)
    if t1 == t1.normalize():
        t1 += pd.Timedelta(days=1) - pd.Timedelta(seconds=1)
    t0, t1 = (t.strftime(TIME_FORMAT) + "Z" for t in (t0, t1))
    constraints = [f'buoy_id="{buoy_id}"', f"time>={t0}", f"time<={t1}"]

    raw = client.tabledap(dataset_id, BUOY_FIELDS, constraints)
    if raw.empty:
        return pd.DataFrame(columns=OBSERVATION_COLUMNS)
    return clean_observations(raw, dataset_id=dataset_id)
