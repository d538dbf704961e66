"""
Script name: descriptives.py
Purpose: Descriptive summaries of RE use.
    - corpus_overview: size and RE density per relationship.
    - category_proportions: share of each RE category within a grouping.
    - conversation_proportions: the same per conversation.
    - length_summary: mean ± SEM of RE length within a grouping.
"""

from __future__ import annotations
from typing import Sequence

import numpy as np
import pandas as pd

__all__ = ["corpus_overview", "category_proportions", "conversation_proportions", "length_summary"]


def corpus_overview(turns: pd.DataFrame) -> pd.DataFrame:
    """Conversations, turns, zero-RE share and REs per turn for each relationship."""
    g = turns.groupby("relationship")
    out = pd.DataFrame({
        "n_conversations": g["conversation_id"].nunique(),
        "n_turns": g.size(),
        "total_res": g["total_res"].sum(),
        "mean_res_per_turn": g["total_res"].mean(),
        "zero_re_share": g["total_res"].apply(lambda s: float((s == 0).mean())),
        "max_turn_position": g["turn_position"].max(),
    })
    return out.reset_index()


def category_proportions(
    long_counts: pd.DataFrame,
    by: Sequence[str] = ("relationship", "turn_bin"),
) -> pd.DataFrame:
    """
    Proportion of each RE category among all REs in each group.

    Groups with no REs at all are left out (their proportions are undefined).
    """
    by = list(by)
    counts = long_counts.groupby(by + ["category"], as_index=False)["count"].sum()
    totals = counts.groupby(by)["count"].transform("sum")
    counts = counts.loc[totals > 0].copy()
    counts["total"] = totals[totals > 0]
    counts["proportion"] = counts["count"] / counts["total"]
    return counts.reset_index(drop=True)


def conversation_proportions(long_counts: pd.DataFrame) -> pd.DataFrame:
    """Per-conversation category proportions, wide (one column per category)."""
    props = category_proportions(long_counts, by=("relationship", "conversation_id"))
    return (
        props.pivot_table(
            index=["relationship", "conversation_id"],
            columns="category",
            values="proportion",
            fill_value=0.0,
        )
        .reset_index()
        .rename_axis(columns=None)
    )


def length_summary(
    lengths: pd.DataFrame,
    by: Sequence[str] = ("relationship", "turn_bin"),
    value: str = "re_length",
) -> pd.DataFrame:
    """Mean, SEM and n of RE length per group (SEM is NaN for single-RE groups)."""
    out = lengths.groupby(list(by))[value].agg(["mean", "sem", "count"]).reset_index()
    out = out.rename(columns={"count": "n"})
    out["sem"] = out["sem"].where(out["n"] > 1, np.nan)
    return out
