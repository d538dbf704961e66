#!/usr/bin/env python3
"""
Script name: re_length.py
Purpose: Analyze RE length over the dialogue, strangers vs familiars.
    - Loads turn-count and RE-length tables for all configured corpora.
    - Attaches turn positions to each RE.
    - Summarizes mean RE length per turn bin.
    - Fits the nested mixed-model cascade (random intercept per conversation).
    - Saves results (CSVs, stats, plots) to results/re_length/.

Inputs:
    - <counts_csv> and <lengths_csv> for each corpus in the config

Outputs:
    - re_length_by_re.csv
    - re_length_summary_by_bin.csv
    - re_length_summary_by_category.csv
    - re_length_cascade.csv
    - re_length_stats.txt
    - re_length_over_turns.png
    - re_length_violin.png

Usage:
    python -m refexp.re_length --config configs/re_analysis.json
"""

from __future__ import annotations
import os
from typing import Optional, Sequence

import pandas as pd

from refexp.corpus import load_corpora
from refexp.descriptives import length_summary
from refexp.models import fit_length_cascade, cascade_report
from refexp.reshape import add_turn_bin
from refexp.utils.globals import RESULTS_DIR
from refexp.utils.cli_helpers import parse_and_load_config, get_corpora, get_policies
from refexp.utils.run_logger import init_run
from refexp.utils.data_helpers import output_exists
from refexp.utils.print_helpers import print_header, print_save, print_info
from refexp.utils.plot_helpers import plot_length_over_turns, plot_length_violin

SCRIPT_NAME = "re_length"


def prepare_lengths(cfg: dict, *, data_dir: Optional[str] = None, logger=None) -> pd.DataFrame:
    """Load RE lengths with turn positions, apply the turn cap and bin."""
    policies = get_policies(cfg)
    lengths = load_corpora(get_corpora(cfg), cfg["re_categories"], policies,
                           with_lengths=True, data_dir=data_dir, logger=logger)["lengths"]
    if policies["max_turns"] is not None:
        lengths = lengths[lengths["turn_position"] < policies["max_turns"]].reset_index(drop=True)
    return add_turn_bin(lengths, policies["turn_bin_width"])


def analyze_re_length(lengths: pd.DataFrame, out_dir: str, logger=None, overwrite: bool = True):
    """Descriptives, mixed-model cascade and plots for RE length; None if outputs are kept."""
    stats_path = os.path.join(out_dir, f"{SCRIPT_NAME}_stats.txt")
    if output_exists(stats_path, overwrite, logger):
        return None

    print_header("2) RE Length over Turns — Strangers vs Familiars")

    path = os.path.join(out_dir, f"{SCRIPT_NAME}_by_re.csv")
    lengths.to_csv(path, index=False)
    print_save(path, kind="CSV (RE-level)")

    by_bin = length_summary(lengths, by=("relationship", "turn_bin"))
    path = os.path.join(out_dir, f"{SCRIPT_NAME}_summary_by_bin.csv")
    by_bin.to_csv(path, index=False)
    print_save(path, kind="CSV (length per turn bin)")

    by_cat = length_summary(lengths, by=("relationship", "category"))
    path = os.path.join(out_dir, f"{SCRIPT_NAME}_summary_by_category.csv")
    by_cat.to_csv(path, index=False)
    print_save(path, kind="CSV (length per category)")
    print(by_cat.round(3).to_string(index=False))

    # ------------------------------------------------------------
    # Models
    # ------------------------------------------------------------
    print_info("Fitting mixed-model cascade...")
    fits, table = fit_length_cascade(lengths, logger=logger)
    path = os.path.join(out_dir, f"{SCRIPT_NAME}_cascade.csv")
    table.to_csv(path, index=False)
    print_save(path, kind="CSV (model comparisons)")

    with open(stats_path, "w", encoding="utf-8") as f:
        f.write(cascade_report("RE length — linear mixed-model cascade", fits, table))
    print_save(stats_path, kind="stats")

    # ------------------------------------------------------------
    # Plotting
    # ------------------------------------------------------------
    print_info("Generating plots...")
    inter = table.loc[table["step"] == "+ turn:relationship", "p"]
    p_inter = float(inter.iloc[0]) if len(inter) else None

    fig_path = os.path.join(out_dir, f"{SCRIPT_NAME}_over_turns.png")
    plot_length_over_turns(by_bin, fig_path, title="Mean RE Length over the Dialogue", p_val=p_inter)
    print_save(fig_path, kind="figure")

    fig_path = os.path.join(out_dir, f"{SCRIPT_NAME}_violin.png")
    plot_length_violin(lengths, fig_path, title="RE Length by Category × Relationship")
    print_save(fig_path, kind="figure")
    return table


def main(argv: Optional[Sequence[str]] = None):
    args, cfg = parse_and_load_config("RE length analysis", argv=argv)
    out_dir = os.path.join(RESULTS_DIR, SCRIPT_NAME)
    os.makedirs(out_dir, exist_ok=True)

    logger, seed, overwrite, dry_run = init_run(
        output_dir=out_dir, script_name=SCRIPT_NAME, args=args, cfg=cfg,
    )

    lengths = prepare_lengths(cfg, logger=logger)
    if dry_run:
        logger.info(f"Dry run: {len(lengths)} RE rows loaded; no outputs written.")
        return

    analyze_re_length(lengths, out_dir, logger=logger, overwrite=overwrite)

    logger.info("RE length analysis complete.")
    print("\n[DONE] RE length analysis complete.\n")


if __name__ == "__main__":
    main()
