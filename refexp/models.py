"""
Script name: models.py
Purpose: Regression models of RE use over the course of a dialogue.
    - Poisson GLM cascade on per-turn RE counts (turn × category × relationship).
    - Per-group Poisson turn slopes (incidence-rate ratio per turn).
    - Linear mixed-model cascade on RE length, random intercept per conversation.
    - Each cascade step is compared with the previous one by likelihood ratio.
"""

from __future__ import annotations
import logging
import warnings
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf

from refexp.utils.print_helpers import section, warn
from refexp.utils.stats_helpers import cascade_table, format_p

__all__ = [
    "COUNT_STEPS",
    "LENGTH_STEPS",
    "cascade_formulas",
    "fit_count_cascade",
    "turn_slopes",
    "fit_length_cascade",
    "cascade_report",
]

# (label, term added at this step); the first step is intercept-only
COUNT_STEPS: List[Tuple[str, Optional[str]]] = [
    ("null", None),
    ("+ turn", "turn_position"),
    ("+ category", "C(category)"),
    ("+ relationship", "C(relationship)"),
    ("+ turn:category", "turn_position:C(category)"),
    ("+ turn:relationship", "turn_position:C(relationship)"),
    ("+ category:relationship", "C(category):C(relationship)"),
    ("+ turn:category:relationship", "turn_position:C(category):C(relationship)"),
]

LENGTH_STEPS: List[Tuple[str, Optional[str]]] = [
    ("null", None),
    ("+ turn", "turn_position"),
    ("+ relationship", "C(relationship)"),
    ("+ turn:relationship", "turn_position:C(relationship)"),
    ("+ category", "C(category)"),
]


def cascade_formulas(response: str, steps: Sequence[Tuple[str, Optional[str]]]) -> List[Tuple[str, str]]:
    """Expand cumulative steps into (label, formula) pairs."""
    out, terms = [], []
    for label, term in steps:
        if term:
            terms.append(term)
        rhs = " + ".join(terms) if terms else "1"
        out.append((label, f"{response} ~ {rhs}"))
    return out


def _fit_logged(fit_fn, label: str, logger: Optional[logging.Logger]) -> Dict[str, Any]:
    """Run one fit, keeping statsmodels warnings and errors in the step record."""
    record: Dict[str, Any] = {"result": None, "warnings": []}
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            record["result"] = fit_fn()
        except Exception as e:
            record["error"] = f"{type(e).__name__}: {e}"
            warn(f"Model '{label}' failed: {record['error']}", logger)
    record["warnings"] = sorted({str(w.message) for w in caught})
    for msg in record["warnings"]:
        warn(f"Model '{label}': {msg}", logger)
    return record


# ============================================================
#                  RE COUNTS — POISSON GLM
# ============================================================

def fit_count_cascade(
    long_counts: pd.DataFrame,
    steps: Sequence[Tuple[str, Optional[str]]] = COUNT_STEPS,
    logger: Optional[logging.Logger] = None,
) -> Tuple[List[Dict[str, Any]], pd.DataFrame]:
    """Fit the nested Poisson GLMs on long counts; return (fits, comparison table)."""
    data = long_counts[["count", "turn_position", "category", "relationship"]].dropna()
    fits = []
    for label, formula in cascade_formulas("count", steps):
        rec = _fit_logged(
            lambda f=formula: smf.glm(f, data=data, family=sm.families.Poisson()).fit(),
            label, logger,
        )
        rec.update({"label": label, "formula": formula})
        fits.append(rec)
    return fits, cascade_table(fits)


def turn_slopes(
    long_counts: pd.DataFrame,
    by: Sequence[str] = ("relationship", "category"),
    logger: Optional[logging.Logger] = None,
) -> pd.DataFrame:
    """Poisson slope of count on turn_position within each group, with IRR and 95% CI."""
    rows = []
    for keys, g in long_counts.groupby(list(by)):
        keys = keys if isinstance(keys, tuple) else (keys,)
        row = dict(zip(by, keys))
        row["n"] = len(g)
        if g["turn_position"].nunique() < 2 or g["count"].sum() == 0:
            warn(f"Turn slope skipped for {row}: no variation in turn position or no REs.", logger)
            rows.append(row)
            continue
        rec = _fit_logged(
            lambda g=g: smf.glm("count ~ turn_position", data=g, family=sm.families.Poisson()).fit(),
            f"slope {keys}", logger,
        )
        res = rec["result"]
        if res is not None:
            coef = float(res.params["turn_position"])
            lo, hi = res.conf_int().loc["turn_position"]
            row.update({
                "coef": coef,
                "se": float(res.bse["turn_position"]),
                "irr": float(np.exp(coef)),
                "irr_ci_low": float(np.exp(lo)),
                "irr_ci_high": float(np.exp(hi)),
                "p": float(res.pvalues["turn_position"]),
            })
        rows.append(row)
    return pd.DataFrame(rows)


# ============================================================
#                  RE LENGTH — MIXED MODELS
# ============================================================

def fit_length_cascade(
    lengths: pd.DataFrame,
    steps: Sequence[Tuple[str, Optional[str]]] = LENGTH_STEPS,
    logger: Optional[logging.Logger] = None,
) -> Tuple[List[Dict[str, Any]], pd.DataFrame]:
    """
    Fit nested linear mixed models of RE length with a random intercept per
    conversation. Fits use ML (reml=False) so likelihoods are comparable.
    """
    data = lengths[["re_length", "turn_position", "category", "relationship",
                    "corpus", "conversation_id"]].dropna().copy()
    # Conversation ids are only unique within a corpus
    data["group"] = data["corpus"].astype(str) + ":" + data["conversation_id"].astype(str)

    fits = []
    for label, formula in cascade_formulas("re_length", steps):
        rec = _fit_logged(
            lambda f=formula: smf.mixedlm(f, data=data, groups=data["group"]).fit(reml=False),
            label, logger,
        )
        res = rec["result"]
        rec.update({
            "label": label,
            "formula": formula,
            "converged": bool(getattr(res, "converged", False)) if res is not None else False,
        })
        fits.append(rec)
    return fits, cascade_table(fits)


# ============================================================
#                  REPORTING
# ============================================================

def cascade_report(title: str, fits: List[Dict[str, Any]], table: pd.DataFrame) -> str:
    """Render a cascade as text: comparison table, per-step notes, last fitted summary."""
    lines = [section(title), f"N observations = {_nobs(fits)}", ""]
    lines.append("--- Nested model comparisons (likelihood ratio vs previous step) ---")
    lines.append(table.drop(columns=["error"]).to_string(index=False, float_format=lambda v: f"{v:.4f}"))

    lines.append("")
    for _, row in table.iloc[1:].iterrows():
        if row["error"]:
            lines.append(f"{row['step']}: [ERROR] {row['error']}")
        else:
            lines.append(
                f"{row['step']}: LR({row['df_diff']:.0f}) = {row['lr_stat']:.3f}, {format_p(row['p'])}"
            )

    for fit in fits:
        if fit.get("converged") is False and fit.get("result") is not None:
            lines.append(f"[WARN] '{fit['label']}' did not converge.")

    last = next((f for f in reversed(fits) if f.get("result") is not None), None)
    if last is not None:
        lines.append("")
        lines.append(f"--- Summary of last fitted step: {last['formula']} ---")
        lines.append(last["result"].summary().as_text())
    return "\n".join(lines) + "\n"


def _nobs(fits: List[Dict[str, Any]]) -> Any:
    for f in fits:
        if f.get("result") is not None:
            return int(f["result"].nobs)
    return "n/a"
