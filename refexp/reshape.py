"""
Script name: reshape.py
Purpose: Analysis policies and table reshaping for RE counts.
    - apply_turn_policies: zero-RE turn exclusion and per-corpus turn cap.
    - to_long_counts: one row per (turn, RE category).
    - add_turn_bin: fixed-width bins of turn position.
"""

from __future__ import annotations
import logging
from typing import Optional, Sequence

import pandas as pd

from refexp.utils.print_helpers import info

__all__ = ["apply_turn_policies", "to_long_counts", "add_turn_bin"]

ID_COLUMNS = ["corpus", "relationship", "conversation_id", "speaker_id", "turn_id", "turn_position"]


def apply_turn_policies(
    turns: pd.DataFrame,
    *,
    exclude_zero_re_turns: bool = False,
    max_turns: Optional[int] = None,
    logger: Optional[logging.Logger] = None,
) -> pd.DataFrame:
    """Filter turns according to the configured analysis policies."""
    df = turns
    if max_turns is not None:
        keep = df["turn_position"] < max_turns
        info(f"max_turns={max_turns}: keeping {int(keep.sum())}/{len(df)} turns.", logger)
        df = df.loc[keep]
    if exclude_zero_re_turns:
        keep = df["total_res"] > 0
        info(f"Excluding {int((~keep).sum())} turns with zero REs.", logger)
        df = df.loc[keep]
    return df.reset_index(drop=True)


def to_long_counts(turns: pd.DataFrame, categories: Sequence[str]) -> pd.DataFrame:
    """Melt per-category count columns into ('category', 'count') rows."""
    id_vars = [c for c in ID_COLUMNS if c in turns.columns]
    if "turn_bin" in turns.columns:
        id_vars.append("turn_bin")
    long_df = turns.melt(
        id_vars=id_vars,
        value_vars=list(categories),
        var_name="category",
        value_name="count",
    )
    long_df["count"] = long_df["count"].astype(int)
    return long_df


def add_turn_bin(df: pd.DataFrame, width: int) -> pd.DataFrame:
    """Add 'turn_bin', the lower edge of the turn position's bin."""
    if width <= 0:
        raise ValueError(f"Bin width must be positive, got {width}")
    out = df.copy()
    out["turn_bin"] = (out["turn_position"] // width) * width
    return out
