"""Pair projected buoy records with their extracted satellite values."""
import pandas as pd

from ist_matchup.errors import AlignmentError
from ist_matchup.models import (
    EXTRACTED_COLUMNS,
    MATCHED_COLUMNS,
    PROJECTED_COLUMNS,
    require_columns,
)
from ist_matchup.units import kelvin_to_celsius


def merge_matchups(projected, extracted, to_celsius=kelvin_to_celsius):
    """
    Row-for-row join of buoy records and satellite values.

    The two tables must have the same length and the same ``record_id``
    sequence; anything else means a stage dropped or reordered rows, and
    raises AlignmentError rather than pairing the wrong days. ``temp_sat`` is
    the satellite mean passed through ``to_celsius``.
    """
    require_columns(projected, PROJECTED_COLUMNS, "projected buoy records")
    require_columns(extracted, EXTRACTED_COLUMNS, "extracted values")

    if len(projected) != len(extracted):
        raise AlignmentError(
            f"{len(projected)} buoy records but {len(extracted)} extracted values"
        )
    left_ids = projected["record_id"].tolist()
    right_ids = extracted["record_id"].tolist()
    if left_ids != right_ids:
        bad = next(i for i, (a, b) in enumerate(zip(left_ids, right_ids)) if a != b)
        raise AlignmentError(
            f"record_id mismatch at row {bad}: {left_ids[bad]!r} vs {right_ids[bad]!r}"
        )
    if len(set(left_ids)) != len(left_ids):
        raise AlignmentError("duplicate record_id in buoy records")

    sat = extracted.set_index("record_id")
    out = projected.set_index("record_id")[
        ["date", "buoy_id", "longitude", "latitude", "grid_x", "grid_y", "temp_buoy"]
    ].join(sat[["sat_mean", "sat_time", "sat_n", "status"]], how="left")

    out["temp_sat"] = to_celsius(pd.to_numeric(out.pop("sat_mean"), errors="coerce"))
    return out.reset_index()[MATCHED_COLUMNS]
