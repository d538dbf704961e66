"""Shared fixtures: synthetic corpus tables shaped like the pre-extracted CSVs."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

CATEGORIES = ["full_np", "pronoun", "possessive"]


@pytest.fixture
def categories():
    return list(CATEGORIES)


def _make_corpus(rng, relationship, n_conv=6, n_turns=40, with_times=False, offset=0.0):
    """One corpus: turn-count rows and RE-length rows.

    Pronoun rates fall over the dialogue for strangers and stay flat for familiars.
    """
    turn_rows, re_rows = [], []
    for c in range(n_conv):
        conv = f"{relationship[:3]}{c:02d}"
        t = offset
        for i in range(n_turns):
            dur = float(rng.uniform(1.5, 3.5))
            slope = -0.02 if relationship == "strangers" else 0.0
            rates = {"full_np": 0.8, "pronoun": float(np.exp(0.3 + slope * i)), "possessive": 0.2}
            counts = {k: int(rng.poisson(v)) for k, v in rates.items()}
            row = {"conversation_id": conv, "speaker_id": "A" if i % 2 == 0 else "B", "turn_id": i, **counts}
            if with_times:
                row.update({"begin_time": round(t, 3), "end_time": round(t + dur, 3)})
            turn_rows.append(row)
            t += dur
            for cat, n in counts.items():
                for _ in range(n):
                    base = {"full_np": 3.0, "pronoun": 1.0, "possessive": 2.5}[cat]
                    length = max(1, int(round(base + 0.01 * i + rng.normal(0, 0.5))))
                    re_rows.append({"conversation_id": conv, "turn_id": i, "category": cat, "re_length": length})
    return pd.DataFrame(turn_rows), pd.DataFrame(re_rows)


@pytest.fixture
def make_corpus():
    """Factory for synthetic corpus tables with a fixed seed per call."""
    def _factory(relationship, seed=0, **kwargs):
        return _make_corpus(np.random.default_rng(seed), relationship, **kwargs)
    return _factory


@pytest.fixture
def corpus_dir(tmp_path, make_corpus, categories):
    """Data directory with both corpora on disk plus a matching config dict."""
    strangers_turns, strangers_res = make_corpus("strangers", seed=1)
    familiars_turns, familiars_res = make_corpus("familiars", seed=2, with_times=True, offset=30.0)
    # The timestamped corpus uses different column spellings
    familiars_turns = familiars_turns.rename(columns={"conversation_id": "conv_id", "begin_time": "start", "end_time": "end"})

    (tmp_path / "strangers").mkdir()
    (tmp_path / "familiars").mkdir()
    strangers_turns.to_csv(tmp_path / "strangers" / "counts.csv", index=False)
    strangers_res.to_csv(tmp_path / "strangers" / "lengths.csv", index=False)
    familiars_turns.to_csv(tmp_path / "familiars" / "counts.csv", index=False)
    familiars_res.to_csv(tmp_path / "familiars" / "lengths.csv", index=False)

    cfg = {
        "random_seed": 0,
        "re_categories": categories,
        "corpora": [
            {"name": "strangers_corpus", "relationship": "strangers",
             "counts_csv": "strangers/counts.csv", "lengths_csv": "strangers/lengths.csv"},
            {"name": "familiars_corpus", "relationship": "familiars",
             "counts_csv": "familiars/counts.csv", "lengths_csv": "familiars/lengths.csv",
             "estimate_turn_index": True},
        ],
        "policies": {"turn_bin_width": 10},
    }
    return tmp_path, cfg
