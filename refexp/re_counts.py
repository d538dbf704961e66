#!/usr/bin/env python3
"""
Script name: re_counts.py
Purpose: Analyze how RE category use changes over a dialogue, strangers vs familiars.
    - Loads turn-count tables for all configured corpora.
    - Resolves turn positions (ordinal or timestamp estimate).
    - Applies turn policies (zero-RE exclusion, max turns).
    - Computes category proportions per turn bin and per conversation.
    - Fits the nested Poisson GLM cascade and per-group turn slopes.
    - Saves results (CSVs, stats, plots) to results/re_counts/.

Inputs:
    - <counts_csv> for each corpus in the config

Outputs:
    - re_counts_by_turn.csv
    - re_counts_overview.csv
    - re_counts_proportions_by_bin.csv
    - re_counts_proportions_by_conversation.csv
    - re_counts_turn_slopes.csv
    - re_counts_cascade.csv
    - re_counts_stats.txt
    - re_counts_proportions.png

Usage:
    python -m refexp.re_counts --config configs/re_analysis.json
"""

from __future__ import annotations
import os
from typing import Optional, Sequence

import pandas as pd

from refexp.corpus import load_corpora
from refexp.descriptives import corpus_overview, category_proportions, conversation_proportions
from refexp.models import fit_count_cascade, turn_slopes, cascade_report
from refexp.reshape import apply_turn_policies, add_turn_bin, to_long_counts
from refexp.utils.globals import RESULTS_DIR
from refexp.utils.cli_helpers import parse_and_load_config, get_corpora, get_policies
from refexp.utils.run_logger import init_run
from refexp.utils.data_helpers import output_exists
from refexp.utils.print_helpers import print_header, print_save, print_info
from refexp.utils.plot_helpers import plot_proportions_over_turns

SCRIPT_NAME = "re_counts"


def prepare_counts(cfg: dict, *, data_dir: Optional[str] = None, logger=None):
    """Load, position, filter and bin turns; return (turns, long counts)."""
    policies = get_policies(cfg)
    categories = cfg["re_categories"]
    turns = load_corpora(get_corpora(cfg), categories, policies,
                         data_dir=data_dir, logger=logger)["turns"]
    turns = apply_turn_policies(
        turns,
        exclude_zero_re_turns=policies["exclude_zero_re_turns"],
        max_turns=policies["max_turns"],
        logger=logger,
    )
    turns = add_turn_bin(turns, policies["turn_bin_width"])
    return turns, to_long_counts(turns, categories)


def analyze_re_counts(turns: pd.DataFrame, long_counts: pd.DataFrame, out_dir: str,
                      logger=None, overwrite: bool = True):
    """
    Descriptives, GLM cascade, slopes and plots for RE counts.

    Returns the cascade table, or None when a previous run's outputs are kept.
    """
    stats_path = os.path.join(out_dir, f"{SCRIPT_NAME}_stats.txt")
    if output_exists(stats_path, overwrite, logger):
        return None

    print_header("1) RE Category Use over Turns — Strangers vs Familiars")

    def _save(df: pd.DataFrame, name: str, kind: str):
        path = os.path.join(out_dir, f"{SCRIPT_NAME}_{name}.csv")
        df.to_csv(path, index=False)
        print_save(path, kind=kind)

    _save(turns, "by_turn", "CSV (turn-level)")

    overview = corpus_overview(turns)
    _save(overview, "overview", "CSV (corpus overview)")
    print(overview.to_string(index=False))

    props_bin = category_proportions(long_counts, by=("relationship", "turn_bin"))
    _save(props_bin, "proportions_by_bin", "CSV (proportions per turn bin)")
    _save(conversation_proportions(long_counts), "proportions_by_conversation",
          "CSV (proportions per conversation)")

    # ------------------------------------------------------------
    # Models
    # ------------------------------------------------------------
    print_info("Fitting Poisson GLM cascade...")
    fits, table = fit_count_cascade(long_counts, logger=logger)
    _save(table, "cascade", "CSV (model comparisons)")

    slopes = turn_slopes(long_counts, logger=logger)
    _save(slopes, "turn_slopes", "CSV (per-group turn slopes)")

    with open(stats_path, "w", encoding="utf-8") as f:
        f.write(cascade_report("RE counts — Poisson GLM cascade", fits, table))
        f.write("\n--- Turn slopes by relationship × category (Poisson, count ~ turn_position) ---\n")
        f.write(slopes.to_string(index=False, float_format=lambda v: f"{v:.4f}") + "\n")
    print_save(stats_path, kind="stats")

    # ------------------------------------------------------------
    # Plotting
    # ------------------------------------------------------------
    print_info("Generating plots...")
    fig_path = os.path.join(out_dir, f"{SCRIPT_NAME}_proportions.png")
    plot_proportions_over_turns(props_bin, fig_path, title="RE Category Proportions over the Dialogue")
    print_save(fig_path, kind="figure")
    return table


def main(argv: Optional[Sequence[str]] = None):
    args, cfg = parse_and_load_config("RE counts analysis", argv=argv)
    out_dir = os.path.join(RESULTS_DIR, SCRIPT_NAME)
    os.makedirs(out_dir, exist_ok=True)

    logger, seed, overwrite, dry_run = init_run(
        output_dir=out_dir, script_name=SCRIPT_NAME, args=args, cfg=cfg,
    )

    turns, long_counts = prepare_counts(cfg, logger=logger)
    if dry_run:
        logger.info(f"Dry run: {len(turns)} turns, {len(long_counts)} count rows loaded; no outputs written.")
        return

    analyze_re_counts(turns, long_counts, out_dir, logger=logger, overwrite=overwrite)

    logger.info("RE counts analysis complete.")
    print("\n[DONE] RE counts analysis complete.\n")


if __name__ == "__main__":
    main()
