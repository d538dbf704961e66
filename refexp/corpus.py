"""
Script name: corpus.py
Purpose: Load and standardize the pre-extracted corpus tables.
    - Turn-counts CSV: one row per turn, one count column per RE category.
    - RE-lengths CSV: one row per referring expression with its length in words.
    - Resolve 'turn_position' for each turn: the transcript turn id for corpora
      recorded from onset, the timestamp estimate for truncated ones.
    - Attach turn positions to RE-length rows.
"""

from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from refexp.turn_index import estimate_turn_indices
from refexp.utils.data_helpers import resolve_data_path, safe_load_table, standardize_columns
from refexp.utils.print_helpers import info, warn

__all__ = [
    "load_turn_counts",
    "load_re_lengths",
    "resolve_turn_positions",
    "attach_turn_positions",
    "load_corpora",
]

TURN_COLUMNS = ["conversation_id", "speaker_id", "turn_id", "begin_time", "end_time", "turn_length"]
LENGTH_COLUMNS = ["conversation_id", "speaker_id", "turn_id", "category", "re_length"]


# ============================================================
#                  TURN COUNTS
# ============================================================

def load_turn_counts(
    path: str,
    categories: Sequence[str],
    *,
    corpus: str,
    relationship: str,
    logger: Optional[logging.Logger] = None,
) -> pd.DataFrame:
    """Load a turn-counts table and return it with standard column names."""
    df = safe_load_table(path, logger)
    df = standardize_columns(df, TURN_COLUMNS, required=["conversation_id"])

    missing_cats = [c for c in categories if c not in df.columns]
    if missing_cats:
        raise ValueError(f"{path}: missing RE category columns: {missing_cats}")

    no_conv = df["conversation_id"].isna()
    if no_conv.any():
        warn(f"{corpus}: dropped {int(no_conv.sum())} turns with no conversation id.", logger)
        df = df.loc[~no_conv].copy()
    df["conversation_id"] = df["conversation_id"].astype(str).str.strip()
    if "turn_id" not in df.columns:
        # File order within each conversation, fixed before any turn is dropped
        df["turn_id"] = df.groupby("conversation_id", sort=False).cumcount()
    for col in ("begin_time", "end_time", "turn_length"):
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")

    counts = df[list(categories)].apply(pd.to_numeric, errors="coerce")
    bad = counts.isna().any(axis=1) | (counts < 0).any(axis=1)
    if bad.any():
        warn(f"{corpus}: dropped {int(bad.sum())} turns with missing or negative RE counts.", logger)
    df = df.loc[~bad].copy()
    df[list(categories)] = counts.loc[~bad].astype(int)

    df["turn_id"] = pd.to_numeric(df["turn_id"], errors="coerce")
    no_id = df["turn_id"].isna()
    if no_id.any():
        warn(f"{corpus}: dropped {int(no_id.sum())} turns with no turn id.", logger)
        df = df.loc[~no_id].copy()
    df["turn_id"] = df["turn_id"].astype(int)

    df["total_res"] = df[list(categories)].sum(axis=1)
    df["corpus"] = corpus
    df["relationship"] = relationship
    return df.reset_index(drop=True)


def resolve_turn_positions(
    turns: pd.DataFrame,
    *,
    estimate: bool,
    zero_length_as_missing: bool = True,
    rounding: str = "half_even",
    logger: Optional[logging.Logger] = None,
) -> pd.DataFrame:
    """
    Add 'turn_position'.

    With estimate=True the timestamp estimate is used and turns without one
    are dropped; otherwise the transcript turn id is the position.
    """
    if not estimate:
        df = turns.copy()
        df["turn_position"] = df["turn_id"].astype(int)
        return df

    df, report = estimate_turn_indices(
        turns, zero_length_as_missing=zero_length_as_missing, rounding=rounding, logger=logger
    )
    before = len(df)
    df = df.dropna(subset=["estimated_turn_index"]).copy()
    df["turn_position"] = df["estimated_turn_index"].astype(int)
    info(
        f"Estimated turn positions for {len(df)} turns "
        f"({before - len(df)} without an estimate, {len(report['rejected_rows'])} rejected).",
        logger,
    )
    return df


# ============================================================
#                  RE LENGTHS
# ============================================================

def load_re_lengths(
    path: str,
    *,
    corpus: str,
    relationship: str,
    categories: Optional[Sequence[str]] = None,
    logger: Optional[logging.Logger] = None,
) -> pd.DataFrame:
    """Load a per-RE length table. Non-positive or missing lengths are dropped."""
    df = safe_load_table(path, logger)
    df = standardize_columns(
        df, LENGTH_COLUMNS, required=["conversation_id", "turn_id", "category", "re_length"]
    )
    df["conversation_id"] = df["conversation_id"].astype(str).str.strip()
    df["category"] = df["category"].astype(str).str.strip()
    df["turn_id"] = pd.to_numeric(df["turn_id"], errors="coerce")
    df["re_length"] = pd.to_numeric(df["re_length"], errors="coerce")

    bad = df["turn_id"].isna() | df["re_length"].isna() | (df["re_length"] <= 0)
    if bad.any():
        warn(f"{corpus}: dropped {int(bad.sum())} RE rows with missing turn id or non-positive length.", logger)
    df = df.loc[~bad].copy()
    df["turn_id"] = df["turn_id"].astype(int)

    if categories is not None:
        unknown = sorted(set(df["category"]).difference(categories))
        if unknown:
            warn(f"{corpus}: dropped RE rows with unlisted categories {unknown}.", logger)
            df = df[df["category"].isin(categories)].copy()

    df["corpus"] = corpus
    df["relationship"] = relationship
    return df.reset_index(drop=True)


def attach_turn_positions(
    lengths: pd.DataFrame,
    turns: pd.DataFrame,
    logger: Optional[logging.Logger] = None,
) -> pd.DataFrame:
    """Inner-join RE rows onto positioned turns by (conversation_id, turn_id)."""
    keys = ["conversation_id", "turn_id"]
    pos = turns[keys + ["turn_position"]].drop_duplicates(subset=keys)
    merged = lengths.merge(pos, on=keys, how="left")
    unmatched = merged["turn_position"].isna()
    if unmatched.any():
        warn(f"{int(unmatched.sum())} RE rows have no positioned turn and are dropped.", logger)
    merged = merged.loc[~unmatched].copy()
    merged["turn_position"] = merged["turn_position"].astype(int)
    return merged.reset_index(drop=True)


# ============================================================
#                  CONFIG-DRIVEN LOADING
# ============================================================

def load_corpora(
    corpora: List[Dict[str, Any]],
    categories: Sequence[str],
    policies: Dict[str, Any],
    *,
    with_lengths: bool = False,
    data_dir: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
) -> Dict[str, pd.DataFrame]:
    """
    Load every configured corpus and stack them.

    Returns {"turns": ...} and, with with_lengths, {"lengths": ...} as well.
    Corpora without a 'lengths_csv' contribute no length rows.
    """
    resolve = (lambda p: resolve_data_path(p, data_dir)) if data_dir else resolve_data_path
    all_turns, all_lengths = [], []

    for c in corpora:
        turns = load_turn_counts(
            resolve(c["counts_csv"]), categories,
            corpus=c["name"], relationship=c["relationship"], logger=logger,
        )
        turns = resolve_turn_positions(
            turns,
            estimate=c["estimate_turn_index"],
            zero_length_as_missing=policies["zero_length_as_missing"],
            rounding=policies["rounding"],
            logger=logger,
        )
        all_turns.append(turns)

        if with_lengths:
            if not c.get("lengths_csv"):
                warn(f"{c['name']}: no lengths_csv configured; skipping RE lengths.", logger)
                continue
            lengths = load_re_lengths(
                resolve(c["lengths_csv"]),
                corpus=c["name"], relationship=c["relationship"],
                categories=categories, logger=logger,
            )
            all_lengths.append(attach_turn_positions(lengths, turns, logger))

    out = {"turns": pd.concat(all_turns, ignore_index=True)}
    if with_lengths:
        if not all_lengths:
            raise RuntimeError("No RE length data loaded. Check 'lengths_csv' entries in the config.")
        out["lengths"] = pd.concat(all_lengths, ignore_index=True)
    return out
