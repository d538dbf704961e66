#!/usr/bin/env python3
"""
Script name: estimate_turn_index.py
Purpose: Reconstruct turn positions from timestamps for truncated corpora.
    - Reads the turn-counts CSV of every corpus flagged 'estimate_turn_index'.
    - Computes per-conversation median turn length and estimated turn index.
    - Reports rejected rows and excluded conversations.
    - Saves the augmented table to results/estimate_turn_index/.

Inputs:
    - <counts_csv> for each flagged corpus in the config

Outputs:
    - <corpus>_turn_index.csv
    - <corpus>_median_turn_length.csv
    - estimate_turn_index_report.txt
    - Run log + config snapshot

Usage:
    python -m refexp.estimate_turn_index --config configs/re_analysis.json
"""

from __future__ import annotations
import os
from typing import Optional, Sequence

from refexp.corpus import load_turn_counts
from refexp.turn_index import estimate_turn_indices
from refexp.utils.globals import RESULTS_DIR
from refexp.utils.cli_helpers import parse_and_load_config, get_corpora, get_policies
from refexp.utils.data_helpers import resolve_data_path, output_exists
from refexp.utils.run_logger import init_run
from refexp.utils.print_helpers import print_header, print_save, print_warn

SCRIPT_NAME = "estimate_turn_index"


def run_estimation(cfg: dict, out_dir: str, *, overwrite: bool = False, dry_run: bool = False,
                   data_dir: Optional[str] = None, logger=None) -> list:
    """Estimate turn indices for each flagged corpus; return the report lines."""
    policies = get_policies(cfg)
    categories = cfg["re_categories"]
    flagged = [c for c in get_corpora(cfg) if c["estimate_turn_index"]]
    lines = [f"--- Turn index estimation (rounding={policies['rounding']}, "
             f"zero_length_as_missing={policies['zero_length_as_missing']}) ---"]

    if not flagged:
        print_warn("No corpus has 'estimate_turn_index' set; nothing to do.")
        return lines

    for c in flagged:
        print_header(f"Turn index estimation — {c['name']} ({c['relationship']})")
        path = resolve_data_path(c["counts_csv"], data_dir) if data_dir else resolve_data_path(c["counts_csv"])
        turns = load_turn_counts(path, categories, corpus=c["name"],
                                 relationship=c["relationship"], logger=logger)
        est, report = estimate_turn_indices(
            turns,
            zero_length_as_missing=policies["zero_length_as_missing"],
            rounding=policies["rounding"],
            logger=logger,
        )

        n_indexed = int(est["estimated_turn_index"].notna().sum())
        medians = (
            est.groupby("conversation_id")["median_turn_length"].first()
            .reset_index()
        )
        lines += [
            f"\n[{c['name']}]",
            f"  Input turns: {len(turns)}",
            f"  Rejected rows: {len(report['rejected_rows'])}",
            f"  Turns with an estimated index: {n_indexed}",
            f"  Conversations without valid lengths: {report['no_valid_length']}",
            f"  Conversations with non-positive median: {report['nonpositive_median']}",
            f"  Median turn length (s): min={medians['median_turn_length'].min():.3f}, "
            f"max={medians['median_turn_length'].max():.3f}",
        ]

        if dry_run:
            continue
        out_csv = os.path.join(out_dir, f"{c['name']}_turn_index.csv")
        if not output_exists(out_csv, overwrite, logger):
            est.to_csv(out_csv, index=False)
            print_save(out_csv, kind="CSV (turns + estimated index)")
        med_csv = os.path.join(out_dir, f"{c['name']}_median_turn_length.csv")
        if not output_exists(med_csv, overwrite, logger):
            medians.to_csv(med_csv, index=False)
            print_save(med_csv, kind="CSV (per-conversation median)")

    if not dry_run:
        report_path = os.path.join(out_dir, f"{SCRIPT_NAME}_report.txt")
        with open(report_path, "w", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
        print_save(report_path, kind="report")
    return lines


def main(argv: Optional[Sequence[str]] = None):
    args, cfg = parse_and_load_config("Estimate turn indices from timestamps", argv=argv)
    out_dir = os.path.join(RESULTS_DIR, SCRIPT_NAME)
    os.makedirs(out_dir, exist_ok=True)

    logger, seed, overwrite, dry_run = init_run(
        output_dir=out_dir, script_name=SCRIPT_NAME, args=args, cfg=cfg,
    )

    run_estimation(cfg, out_dir, overwrite=overwrite, dry_run=dry_run, logger=logger)

    logger.info("Turn index estimation complete.")
    print("\n[DONE] Turn index estimation complete.\n")


if __name__ == "__main__":
    main()
