"""
Run configuration for a buoy / satellite matchup.

Defaults point at the PolarWatch ERDDAP: IABP drifting buoys and the VIIRS
(NOAA-20) ice surface temperature 4-day composite on the NSIDC north polar
stereographic grid. Any of them can be overridden from a JSON file or the
command line.
"""
import json
from dataclasses import dataclass, field, fields, replace
from datetime import timedelta
from pathlib import Path

import pandas as pd

from ist_matchup.projection import NSIDC_NORTH, PolarStereographic

# ─── ERDDAP ──────────────────────────────────────────────────────────────────
POLARWATCH_ERDDAP = "https://polarwatch.noaa.gov/erddap"

BUOY_DATASET = "iabpv2_buoys"
BUOY_FIELDS = ["buoy_id", "latitude", "longitude", "time",
               "surface_temp", "has_surface_temp"]

SAT_DATASET = "noaacwVIIRSn20icesrftempNP06Daily4Day"
SAT_VARIABLE = "IceSrfTemp"
SAT_AXES = {"time": "time", "z": "altitude", "y": "rows", "x": "cols"}

# ─── Network ─────────────────────────────────────────────────────────────────
REQUEST_TIMEOUT = 60          # seconds
MAX_RETRIES = 3
RETRY_DELAYS = (5, 15, 45)    # seconds

# ─── Extraction ──────────────────────────────────────────────────────────────
TIME_TOLERANCE_DAYS = 2.0     # half of the 4-day composite window
MAX_WORKERS = 4

# Buoy surface temperatures outside this range (°C) are fill values
BUOY_TEMP_RANGE = (-90.0, 60.0)


@dataclass(frozen=True)
class MatchupConfig:
    """Everything a single matchup run depends on."""

    buoy_id: str
    start: str
    end: str
    erddap_url: str = POLARWATCH_ERDDAP
    buoy_dataset: str = BUOY_DATASET
    sat_dataset: str = SAT_DATASET
    sat_variable: str = SAT_VARIABLE
    time_axis: str = SAT_AXES["time"]
    z_axis: str = SAT_AXES["z"]
    y_axis: str = SAT_AXES["y"]
    x_axis: str = SAT_AXES["x"]
    xlen: float = 0.0
    ylen: float = 0.0
    time_tolerance_days: float = TIME_TOLERANCE_DAYS
    max_workers: int = MAX_WORKERS
    timeout: float = REQUEST_TIMEOUT
    max_retries: int = MAX_RETRIES
    retry_delays: tuple = RETRY_DELAYS
    projection: PolarStereographic = field(default=NSIDC_NORTH)

    def __post_init__(self):
        start, end = pd.Timestamp(self.start), pd.Timestamp(self.end)
        if end < start:
            raise ValueError(f"end {self.end} is before start {self.start}")
        if self.xlen < 0 or self.ylen < 0:
            raise ValueError("xlen and ylen must be >= 0")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")

    @property
    def time_tolerance(self):
        return timedelta(days=self.time_tolerance_days)

    @property
    def axis_names(self):
        return {"time": self.time_axis, "z": self.z_axis,
                "y": self.y_axis, "x": self.x_axis}

    def with_overrides(self, **overrides):
        """Copy with the non-None overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self

    @classmethod
    def from_json(cls, path, **overrides):
        """
        Load a config from a JSON object whose keys are field names.

        ``projection`` may be given as an object of PolarStereographic fields.
        Keyword overrides (e.g. from the command line) win over the file.
        """
        with open(Path(path)) as fh:
            raw = json.load(fh)

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ValueError(f"Unknown config keys in {path}: {', '.join(unknown)}")

        if isinstance(raw.get("projection"), dict):
            raw["projection"] = PolarStereographic(**raw["projection"])
        if "retry_delays" in raw:
            raw["retry_delays"] = tuple(raw["retry_delays"])
        raw.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**raw)
