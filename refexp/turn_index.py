"""
Script name: turn_index.py
Purpose: Reconstruct an approximate turn position from turn timestamps.

Some transcripts do not start at the beginning of the recorded conversation,
so the first transcribed turn is not the conversation's first real turn. The
position of each turn is recovered from its onset time instead:

    median_turn_length   = median(turn_length) over the conversation's turns
    estimated_turn_index = round(begin_time / median_turn_length)

The estimate is a binning key. Turns closer together than half a median turn
share an index, and indices need not be contiguous, so consumers must group
on it rather than treat it as a sequence number.

Rounding defaults to round-half-to-even (numpy.rint); "half_up" rounds
exact .5 ratios away from zero instead. The choice only matters for ties.
"""

from __future__ import annotations
import logging
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd

from refexp.utils.globals import ROUNDING_MODES
from refexp.utils.print_helpers import warn

__all__ = ["derive_turn_length", "median_turn_lengths", "estimate_turn_indices"]


def derive_turn_length(df: pd.DataFrame) -> pd.Series:
    """Return turn_length, taken from the table when present or computed as end - begin."""
    has_end = "end_time" in df.columns
    if "turn_length" in df.columns:
        lengths = pd.to_numeric(df["turn_length"], errors="coerce")
        if not has_end:
            return lengths
        # Blank lengths fall back to the span
        begin = pd.to_numeric(df["begin_time"], errors="coerce")
        end = pd.to_numeric(df["end_time"], errors="coerce")
        return lengths.mask(lengths.isna(), (end - begin).to_numpy())
    if not has_end:
        raise ValueError("Need either 'turn_length' or 'end_time' to derive turn lengths.")
    begin = pd.to_numeric(df["begin_time"], errors="coerce")
    end = pd.to_numeric(df["end_time"], errors="coerce")
    return end - begin


def median_turn_lengths(
    conversation_ids: pd.Series,
    turn_length: pd.Series,
    *,
    zero_length_as_missing: bool = True,
) -> pd.Series:
    """
    Per-row median turn length of the row's conversation.

    Missing lengths are skipped; with zero_length_as_missing, zero-length turns
    are skipped too. A conversation with no usable length gets NaN.
    """
    lengths = turn_length.astype(float)
    if zero_length_as_missing:
        lengths = lengths.where(lengths != 0)
    return lengths.groupby(conversation_ids.to_numpy()).transform("median")


def _round_ratio(ratio: pd.Series, rounding: str) -> pd.Series:
    if rounding == "half_even":
        return np.rint(ratio)
    if rounding == "half_up":
        return np.floor(ratio + 0.5)
    raise ValueError(f"Unknown rounding mode {rounding!r} (expected one of {ROUNDING_MODES})")


def estimate_turn_indices(
    turns: pd.DataFrame,
    *,
    zero_length_as_missing: bool = True,
    rounding: str = "half_even",
    logger: Optional[logging.Logger] = None,
) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Annotate turns with 'turn_length', 'median_turn_length' and 'estimated_turn_index'.

    Rows with a missing conversation_id or begin_time, a negative begin_time, or
    end_time < begin_time are rejected and dropped. Conversations without a
    usable median (no valid lengths, or a median <= 0) keep their rows, with
    NaN median and <NA> index, so they drop out of index-based analyses.

    Returns (annotated frame, report). The report lists the rejected row labels
    and the excluded conversation ids.
    """
    if rounding not in ROUNDING_MODES:
        raise ValueError(f"Unknown rounding mode {rounding!r} (expected one of {ROUNDING_MODES})")
    missing = {"conversation_id", "begin_time"}.difference(turns.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")

    df = turns.copy()
    df["begin_time"] = pd.to_numeric(df["begin_time"], errors="coerce")
    df["turn_length"] = derive_turn_length(df)

    report: Dict[str, Any] = {
        "rejected_rows": [],
        "no_valid_length": [],
        "nonpositive_median": [],
    }

    # --- Malformed rows ---
    rejected = (
        df["conversation_id"].isna()
        | df["begin_time"].isna()
        | (df["begin_time"] < 0)
        | (df["turn_length"] < 0)
    )
    if "end_time" in df.columns:
        rejected |= pd.to_numeric(df["end_time"], errors="coerce") < df["begin_time"]
    if rejected.any():
        report["rejected_rows"] = df.index[rejected].tolist()
        warn(
            f"Rejected {int(rejected.sum())} malformed turn rows "
            f"(missing id/begin_time, negative begin_time or end_time < begin_time).",
            logger,
        )
        df = df.loc[~rejected].copy()

    # --- Per-conversation scale ---
    df["median_turn_length"] = median_turn_lengths(
        df["conversation_id"], df["turn_length"], zero_length_as_missing=zero_length_as_missing
    )

    no_length = df["median_turn_length"].isna()
    nonpositive = df["median_turn_length"] <= 0
    if no_length.any():
        convs = sorted(pd.unique(df.loc[no_length, "conversation_id"]).tolist(), key=str)
        report["no_valid_length"] = convs
        warn(f"{len(convs)} conversation(s) have no valid turn length; excluded from index estimation: {convs}", logger)
    if nonpositive.any():
        convs = sorted(pd.unique(df.loc[nonpositive, "conversation_id"]).tolist(), key=str)
        report["nonpositive_median"] = convs
        warn(f"{len(convs)} conversation(s) have a non-positive median turn length; excluded: {convs}", logger)
        df.loc[nonpositive, "median_turn_length"] = np.nan

    # --- Per-turn estimate ---
    valid = df["median_turn_length"] > 0
    ratio = df.loc[valid, "begin_time"] / df.loc[valid, "median_turn_length"]
    estimate = _round_ratio(ratio, rounding).to_numpy()
    index_col = np.full(len(df), np.nan)
    index_col[valid.to_numpy()] = estimate
    df["estimated_turn_index"] = pd.array(index_col).astype("Int64")

    return df, report
