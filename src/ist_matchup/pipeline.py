#!/usr/bin/env python3
"""
Buoy / Satellite Ice Surface Temperature Matchup
================================================
Fetches one drifting buoy's surface temperatures from ERDDAP, averages them
per day, projects the daily positions onto the satellite's north polar
stereographic grid, extracts the matching ice-surface-temperature composite
value for each day, and prints (optionally plots) the paired series.

Usage:
    ist-matchup --buoy 300534062898720 --start 2023-08-01 --end 2023-08-31
    ist-matchup --config matchup.json --plot out/matchup.png
"""
import argparse
import sys

import numpy as np
import pandas as pd

from ist_matchup.buoys import fetch_buoy_observations
from ist_matchup.config import MatchupConfig
from ist_matchup.erddap import ErddapClient
from ist_matchup.errors import MatchupError
from ist_matchup.extract import Extractor
from ist_matchup.grids import ErddapGrid
from ist_matchup.merge import merge_matchups
from ist_matchup.models import MATCHED_COLUMNS, STATUS_OK, empty_table
from ist_matchup.projection import project_records
from ist_matchup.resample import daily_buoy_records
from ist_matchup.units import celsius_converter


# ─── Pipeline ────────────────────────────────────────────────────────────────
def run(config, client=None, grid=None):
    """
    Run one matchup and return the MatchedRecord table.

    ``client`` and ``grid`` default to the ERDDAP endpoints named in
    ``config``; pass a LocalGrid to extract from a NetCDF file instead.
    """
    client = client or ErddapClient(config.erddap_url, timeout=config.timeout,
                                    max_retries=config.max_retries,
                                    retry_delays=config.retry_delays)
    grid = grid or ErddapGrid(client, config.sat_dataset, config.sat_variable,
                              axes=config.axis_names)

    print("=" * 70)
    print("BUOY / SATELLITE ICE SURFACE TEMPERATURE MATCHUP")
    print(f"  Buoy {config.buoy_id}  ({config.buoy_dataset})")
    print(f"  Satellite {config.sat_variable}  ({grid.dataset_id})")
    print(f"  Window {config.start} .. {config.end}")
    print("=" * 70)

    print("\n[1/5] Fetching buoy observations...")
    obs = fetch_buoy_observations(client, config.buoy_id, config.start,
                                  config.end, dataset_id=config.buoy_dataset)
    print(f"  {len(obs):,} observations")
    if obs.empty:
        print("  *** No buoy observations in the window ***")
        return empty_table(MATCHED_COLUMNS)

    print("\n[2/5] Daily resampling...")
    daily = daily_buoy_records(obs)
    n_temp_days = int(daily["temp_buoy"].notna().sum())
    print(f"  {len(obs):,} obs → {len(daily)} days "
          f"({n_temp_days} with a valid buoy temperature)")

    print("\n[3/5] Reprojecting to the satellite grid...")
    projected = project_records(daily, config.projection)
    print(f"  x {projected['grid_x'].min():,.0f}–{projected['grid_x'].max():,.0f} m, "
          f"y {projected['grid_y'].min():,.0f}–{projected['grid_y'].max():,.0f} m")

    print("\n[4/5] Extracting satellite values...")
    units = grid.units()
    to_celsius = celsius_converter(units)
    print(f"  Satellite units: {units or 'unspecified (assuming K)'}")
    extractor = Extractor(grid, xlen=config.xlen, ylen=config.ylen,
                          time_tolerance=config.time_tolerance,
                          max_workers=config.max_workers)
    extracted = extractor.extract(projected)
    for status, count in extracted["status"].value_counts().items():
        print(f"  {status:>15s}: {count}")

    print("\n[5/5] Merging...")
    matched = merge_matchups(projected, extracted, to_celsius=to_celsius)
    print(f"  {len(matched)} matched records")
    return matched


def summarize(matched):
    """Counts plus bias (satellite − buoy) and RMSE over days with both values."""
    both = matched["temp_buoy"].notna() & matched["temp_sat"].notna()
    diff = (matched.loc[both, "temp_sat"] - matched.loc[both, "temp_buoy"]).astype(float)
    return {
        "n_records": len(matched),
        "n_paired": int(both.sum()),
        "n_sat_ok": int((matched["status"] == STATUS_OK).sum()),
        "n_sat_missing": int(matched["temp_sat"].isna().sum()),
        "n_buoy_missing": int(matched["temp_buoy"].isna().sum()),
        "bias": float(diff.mean()) if len(diff) else np.nan,
        "rmse": float(np.sqrt((diff ** 2).mean())) if len(diff) else np.nan,
    }


def format_table(matched):
    cols = ["date", "temp_buoy", "temp_sat", "sat_time", "status"]
    table = matched[cols].copy()
    table["date"] = pd.to_datetime(table["date"]).dt.strftime("%Y-%m-%d")
    table["sat_time"] = pd.to_datetime(table["sat_time"], utc=True).dt.strftime("%Y-%m-%d %H:%M")
    return table.to_string(index=False, na_rep="NaN", float_format=lambda v: f"{v:7.2f}")


# ─── Main ────────────────────────────────────────────────────────────────────
def build_parser():
    parser = argparse.ArgumentParser(
        description="Match drifting-buoy temperatures with satellite ice surface temperature")
    parser.add_argument("--config", type=str, default=None,
                        help="JSON file with MatchupConfig fields")
    parser.add_argument("--buoy", type=str, default=None, help="Buoy id")
    parser.add_argument("--start", type=str, default=None, help="First day (YYYY-MM-DD)")
    parser.add_argument("--end", type=str, default=None, help="Last day (YYYY-MM-DD)")
    parser.add_argument("--sat-dataset", type=str, default=None,
                        help="ERDDAP griddap dataset id of the satellite product")
    parser.add_argument("--xlen", type=float, default=None,
                        help="Search box width in metres (0 = nearest cell)")
    parser.add_argument("--ylen", type=float, default=None,
                        help="Search box height in metres (0 = nearest cell)")
    parser.add_argument("--workers", type=int, default=None,
                        help="Concurrent satellite requests")
    parser.add_argument("--plot", type=str, default=None,
                        help="Write the buoy vs satellite chart to this PNG")
    return parser


def load_config(args, parser):
    overrides = {"sat_dataset": args.sat_dataset, "xlen": args.xlen,
                 "ylen": args.ylen, "max_workers": args.workers}
    if args.config:
        return MatchupConfig.from_json(args.config, buoy_id=args.buoy, start=args.start,
                                       end=args.end, **overrides)
    if not (args.buoy and args.start and args.end):
        parser.error("--buoy, --start and --end are required without --config")
    config = MatchupConfig(buoy_id=args.buoy, start=args.start, end=args.end)
    return config.with_overrides(**overrides)


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args, parser)
    except (OSError, ValueError, TypeError) as e:
        print(f"Bad configuration: {e}")
        sys.exit(2)

    try:
        matched = run(config)
    except MatchupError as e:
        print(f"\n*** Matchup failed: {e} ***")
        sys.exit(1)

    if matched.empty:
        print("\nNothing to report.")
        return matched

    print("\n" + "-" * 70)
    print(format_table(matched))
    print("-" * 70)
    stats = summarize(matched)
    print(f"  Days: {stats['n_records']}   paired: {stats['n_paired']}   "
          f"satellite missing: {stats['n_sat_missing']}   "
          f"buoy missing: {stats['n_buoy_missing']}")
    if stats["n_paired"]:
        print(f"  Bias (sat − buoy): {stats['bias']:+.2f} °C   RMSE: {stats['rmse']:.2f} °C")

    if args.plot:
        from ist_matchup.plotting import save_matchup_plot
        path = save_matchup_plot(matched, args.plot,
                                 title=f"Buoy {config.buoy_id}: buoy vs satellite IST")
        print(f"\n  Chart saved to {path}")
    return matched


if __name__ == "__main__":
    main()
