"""
Script name: stats_helpers.py
Purpose: Statistical helper functions for the RE models.
    - Likelihood-ratio tests between nested fits.
    - Cascade comparison tables.
    - p-value formatting for reports.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy.stats import chi2

__all__ = ["n_params", "lr_test", "cascade_table", "format_p"]


def n_params(result) -> int:
    """Number of estimated parameters (fixed effects plus variance terms for mixed models)."""
    return int(len(result.params))


def lr_test(llf_reduced: float, llf_full: float, df_diff: int) -> Tuple[float, float]:
    """Return (LR statistic, p) for a reduced vs full nested model."""
    if df_diff <= 0:
        return np.nan, np.nan
    stat = max(2.0 * (llf_full - llf_reduced), 0.0)
    return stat, float(chi2.sf(stat, df_diff))


def cascade_table(fits: List[Dict[str, Any]]) -> pd.DataFrame:
    """
    Compare each fitted step with the previous successful step.

    Each fit dict carries 'label', 'formula' and either 'result' or 'error'.
    Failed steps appear with NaN statistics and their error text.
    """
    rows = []
    prev: Optional[Dict[str, Any]] = None
    for fit in fits:
        row = {"step": fit["label"], "formula": fit["formula"]}
        res = fit.get("result")
        if res is None:
            row.update({"llf": np.nan, "k": np.nan, "aic": np.nan,
                        "lr_stat": np.nan, "df_diff": np.nan, "p": np.nan,
                        "error": fit.get("error", "")})
            rows.append(row)
            continue

        k = n_params(res)
        row.update({"llf": float(res.llf), "k": k, "aic": float(res.aic),
                    "lr_stat": np.nan, "df_diff": np.nan, "p": np.nan, "error": ""})
        if prev is not None:
            df_diff = k - n_params(prev["result"])
            stat, p = lr_test(prev["result"].llf, res.llf, df_diff)
            row.update({"lr_stat": stat, "df_diff": df_diff, "p": p})
        rows.append(row)
        prev = fit
    return pd.DataFrame(rows)


def format_p(p: float) -> str:
    if p is None or np.isnan(p):
        return "n/a"
    if p < 0.001:
        return "p < .001"
    return f"p = {p:.3f}"
