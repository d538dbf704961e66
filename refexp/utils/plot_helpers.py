"""
Utility plotting functions for the RE analyses.

Reusable functions:
    - plot_proportions_over_turns: RE category shares across turn bins, one panel per relationship
    - plot_length_over_turns: mean RE length ± SEM across turn bins by relationship
    - plot_length_violin: RE length by category × relationship
"""

from __future__ import annotations
import matplotlib.pyplot as plt
import seaborn as sns
import pandas as pd


# ------------------------------------------------------------
# Shared color palette
# ------------------------------------------------------------
DEFAULT_PALETTE = {
    "strangers": "sandybrown",
    "familiars": "steelblue",
}


def p_to_star(p: float | None) -> str:
    """Convert p-value to standard star notation."""
    if p is None or pd.isna(p):
        return ""
    elif p < 0.001:
        return "***"
    elif p < 0.01:
        return "**"
    elif p < 0.05:
        return "*"
    else:
        return "n.s."


# ------------------------------------------------------------
#  Category proportions over the dialogue
# ------------------------------------------------------------
def plot_proportions_over_turns(
    props: pd.DataFrame,
    out_path: str,
    title: str = "",
    x_col: str = "turn_bin",
):
    """Line plot of each category's proportion across turn bins, faceted by relationship."""
    relationships = sorted(props["relationship"].unique())
    fig, axes = plt.subplots(
        1, len(relationships), figsize=(6 * len(relationships), 5), sharey=True, squeeze=False
    )
    for ax, rel in zip(axes[0], relationships):
        sns.lineplot(
            data=props[props["relationship"] == rel],
            x=x_col,
            y="proportion",
            hue="category",
            marker="o",
            ax=ax,
        )
        ax.set_title(rel.title())
        ax.set_xlabel(x_col.replace("_", " ").title())
        ax.set_ylabel("Proportion of REs")
    fig.suptitle(title)
    fig.tight_layout()
    fig.savefig(out_path, dpi=300)
    plt.close(fig)


# ------------------------------------------------------------
#  RE length over the dialogue
# ------------------------------------------------------------
def plot_length_over_turns(
    summary: pd.DataFrame,
    out_path: str,
    title: str = "",
    palette: dict[str, str] | None = None,
    p_val: float | None = None,
):
    """Mean RE length per turn bin with SEM error bars, one line per relationship.
       p_val (turn × relationship) is shown as stars in the corner."""
    if palette is None:
        palette = DEFAULT_PALETTE

    plt.figure(figsize=(8, 5))
    ax = plt.gca()
    for rel, g in summary.groupby("relationship"):
        g = g.sort_values("turn_bin")
        ax.errorbar(
            g["turn_bin"], g["mean"], yerr=g["sem"].fillna(0.0),
            marker="o", capsize=3, lw=1.5,
            color=palette.get(rel, "gray"), label=rel.title(),
        )
    if p_val is not None:
        ax.text(0.98, 0.95, f"turn × relationship: {p_to_star(p_val)}",
                transform=ax.transAxes, ha="right", va="top", fontsize=11)
    ax.legend()
    plt.title(title)
    plt.xlabel("Turn Bin")
    plt.ylabel("Mean RE Length (words)")
    plt.tight_layout()
    plt.savefig(out_path, dpi=300)
    plt.close()


# ------------------------------------------------------------
#  RE length distributions
# ------------------------------------------------------------
def plot_length_violin(
    lengths: pd.DataFrame,
    out_path: str,
    title: str = "",
    palette: dict[str, str] | None = None,
    figsize: tuple[int, int] = (9, 6),
):
    """Violin plots with box overlays of RE length per category, split by relationship."""
    if palette is None:
        palette = DEFAULT_PALETTE

    plt.figure(figsize=figsize)
    sns.violinplot(
        data=lengths,
        x="category",
        y="re_length",
        hue="relationship",
        palette=palette,
        inner="box",
        cut=0,
    )
    plt.title(title)
    plt.ylabel("RE Length (words)")
    plt.xlabel("Category")
    plt.tight_layout()
    plt.savefig(out_path, dpi=300)
    plt.close()
