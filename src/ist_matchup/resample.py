"""Collapse sub-daily buoy observations to one record per UTC calendar day."""
import numpy as np
import pandas as pd

from ist_matchup.models import (
    DAILY_COLUMNS,
    OBSERVATION_COLUMNS,
    empty_table,
    make_record_id,
    require_columns,
)


def daily_buoy_records(obs):
    """
    Daily aggregation of a buoy observation table.

    One row per (buoy_id, UTC date), sorted by buoy then date. Position is the
    first fix of the day that has both coordinates (buoys drift little
    within a day), NaN when no fix is complete; ``temp_buoy`` is the mean of
    the non-missing surface temperatures, NaN when the day has none.
    ``n_obs``/``n_temp`` keep the raw and valid counts.
    """
    require_columns(obs, OBSERVATION_COLUMNS, "buoy observations")
    if obs.empty:
        return empty_table(DAILY_COLUMNS)

    df = obs[OBSERVATION_COLUMNS].copy()
    df["time"] = pd.to_datetime(df["time"], utc=True)
    for col in ("longitude", "latitude", "surface_temp"):
        df[col] = pd.to_numeric(df[col], errors="coerce")
    df = df.sort_values(["buoy_id", "time"], kind="mergesort")
    df["date"] = df["time"].dt.floor("D").dt.tz_localize(None)

    keys = ["buoy_id", "date"]
    daily = df.groupby(keys, sort=True).agg(
        temp_buoy=("surface_temp", "mean"),   # skips NaN; all-NaN day -> NaN
        n_temp=("surface_temp", "count"),
        n_obs=("time", "count"),
    )

    # lon and lat from the same fix; a day with no complete fix stays NaN
    fixed = df[df["longitude"].notna() & df["latitude"].notna()]
    if fixed.empty:
        daily = daily.assign(longitude=np.nan, latitude=np.nan)
    else:
        first_fix = fixed.groupby(keys, sort=True)[["longitude", "latitude"]].first()
        daily = daily.join(first_fix, how="left")
    daily = daily.reset_index()

    daily["record_id"] = [make_record_id(b, d)
                          for b, d in zip(daily["buoy_id"], daily["date"])]
    return daily[DAILY_COLUMNS].reset_index(drop=True)
