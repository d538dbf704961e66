"""
 Script name: data_helpers.py
 Purpose: Lightweight filesystem and column utilities for corpus CSV IO.
"""

from __future__ import annotations
import os, logging
from typing import Iterable, Optional, Dict, List

import pandas as pd

from refexp.utils.globals import DATA_DIR, COLUMN_ALIASES
from refexp.utils.print_helpers import info

__all__ = [
    "pick_col", "resolve_data_path", "safe_load_table",
    "standardize_columns", "output_exists",
]

# --------------------------
# Data helpers
# --------------------------


def pick_col(cols: Iterable[str], candidates: Iterable[str]) -> Optional[str]:
    """Return the first matching column (case-insensitive), preserving original case."""
    norm_to_orig: dict = {}
    for c in cols:
        k = str(c).strip().lower()
        if k not in norm_to_orig:
            norm_to_orig[k] = c
    for cand in candidates:
        key = cand.strip().lower()
        if key in norm_to_orig:
            return norm_to_orig[key]
    return None


def resolve_data_path(path: str, data_dir: str = DATA_DIR) -> str:
    """Resolve a config path: absolute paths pass through, relative ones live under data_dir."""
    if os.path.isabs(path):
        return path
    return os.path.join(data_dir, path)


def safe_load_table(path: str, logger: Optional[logging.Logger] = None) -> pd.DataFrame:
    """
    Load TSV/CSV, strip header whitespace, and log the row count.

    Conversation-id columns are read as text so the same id parses identically
    in every table, whatever else the column holds.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    sep = "\t" if path.endswith(".tsv") else ","
    header = pd.read_csv(path, sep=sep, nrows=0).columns
    id_names = {a.lower() for a in COLUMN_ALIASES["conversation_id"]}
    dtype = {c: str for c in header if str(c).strip().lower() in id_names}
    df = pd.read_csv(path, sep=sep, on_bad_lines="skip", dtype=dtype)
    df.columns = df.columns.str.strip()
    info(f"Loaded {len(df)} rows from {path}", logger)
    return df


def standardize_columns(
    df: pd.DataFrame,
    wanted: Iterable[str],
    *,
    required: Iterable[str] = (),
    aliases: Optional[Dict[str, List[str]]] = None,
) -> pd.DataFrame:
    """Rename alias columns to their standard names; raise if a required one is absent."""
    aliases = aliases or COLUMN_ALIASES
    rename = {}
    for std in wanted:
        found = pick_col(df.columns, aliases.get(std, [std]))
        if found is not None and found != std:
            rename[found] = std
    out = df.rename(columns=rename)
    missing = set(required).difference(out.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")
    return out


def output_exists(path: str, overwrite: bool, logger: Optional[logging.Logger] = None) -> bool:
    """True when path exists and must be kept (overwrite not requested)."""
    if os.path.exists(path) and not overwrite:
        info(f"Exists, skipping (use --overwrite): {path}", logger)
        return True
    return False
