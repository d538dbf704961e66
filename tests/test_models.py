"""
Unit tests for the Poisson GLM and mixed-model cascades.
"""

import numpy as np
import pandas as pd
import pytest
from scipy.stats import chi2

from refexp.models import (
    COUNT_STEPS,
    LENGTH_STEPS,
    cascade_formulas,
    cascade_report,
    fit_count_cascade,
    fit_length_cascade,
    turn_slopes,
)
from refexp.reshape import to_long_counts
from refexp.utils.stats_helpers import cascade_table, format_p, lr_test


@pytest.fixture
def long_counts(make_corpus, categories):
    frames = []
    for seed, rel in enumerate(["strangers", "familiars"]):
        turns, _ = make_corpus(rel, seed=seed + 10)
        turns["turn_position"] = turns["turn_id"]
        turns["relationship"] = rel
        turns["corpus"] = rel
        frames.append(turns)
    return to_long_counts(pd.concat(frames, ignore_index=True), categories)


@pytest.fixture
def lengths(make_corpus):
    frames = []
    for seed, rel in enumerate(["strangers", "familiars"]):
        _, res = make_corpus(rel, seed=seed + 20)
        res["turn_position"] = res["turn_id"]
        res["relationship"] = rel
        res["corpus"] = rel
        frames.append(res)
    return pd.concat(frames, ignore_index=True)


class TestStatsHelpers:
    """Tests for likelihood-ratio helpers."""

    def test_lr_test_values(self):
        stat, p = lr_test(-10.0, -8.0, 1)
        assert stat == pytest.approx(4.0)
        assert p == pytest.approx(chi2.sf(4.0, 1))

    def test_lr_test_without_added_parameters(self):
        stat, p = lr_test(-10.0, -8.0, 0)
        assert np.isnan(stat) and np.isnan(p)

    def test_failed_step_kept_in_table(self):
        table = cascade_table([{"label": "null", "formula": "y ~ 1", "error": "boom"}])
        assert table.loc[0, "error"] == "boom"
        assert np.isnan(table.loc[0, "llf"])

    def test_format_p(self):
        assert format_p(0.0001) == "p < .001"
        assert format_p(0.0312) == "p = 0.031"
        assert format_p(float("nan")) == "n/a"


class TestCascadeFormulas:
    def test_terms_accumulate(self):
        formulas = cascade_formulas("y", [("null", None), ("+ a", "a"), ("+ b", "C(b)")])
        assert formulas == [("null", "y ~ 1"), ("+ a", "y ~ a"), ("+ b", "y ~ a + C(b)")]


class TestCountCascade:
    """Tests for fit_count_cascade() and turn_slopes()."""

    def test_one_row_per_step(self, long_counts):
        fits, table = fit_count_cascade(long_counts)

        assert len(fits) == len(COUNT_STEPS)
        assert table["step"].tolist() == [label for label, _ in COUNT_STEPS]
        assert (table["error"] == "").all()
        assert np.isnan(table.loc[0, "p"])

    def test_log_likelihood_non_decreasing(self, long_counts):
        _, table = fit_count_cascade(long_counts)
        assert (np.diff(table["llf"].values) >= -1e-6).all()

    def test_category_effect_detected(self, long_counts):
        _, table = fit_count_cascade(long_counts)
        row = table.set_index("step").loc["+ category"]
        assert row["df_diff"] == 2
        assert row["p"] < 0.001

    def test_declining_pronouns_have_negative_slope(self, long_counts):
        slopes = turn_slopes(long_counts).set_index(["relationship", "category"])

        assert len(slopes) == 6
        assert slopes.loc[("strangers", "pronoun"), "coef"] < 0
        assert slopes.loc[("strangers", "pronoun"), "irr"] < 1
        lo = slopes.loc[("strangers", "pronoun"), "irr_ci_low"]
        hi = slopes.loc[("strangers", "pronoun"), "irr_ci_high"]
        assert lo < slopes.loc[("strangers", "pronoun"), "irr"] < hi

    def test_slope_skipped_without_res(self, long_counts):
        data = long_counts.copy()
        data.loc[data["category"] == "possessive", "count"] = 0
        slopes = turn_slopes(data).set_index(["relationship", "category"])
        assert np.isnan(slopes.loc[("strangers", "possessive"), "coef"])

    def test_report_text(self, long_counts):
        fits, table = fit_count_cascade(long_counts)
        text = cascade_report("RE counts", fits, table)

        assert "RE counts" in text
        assert "+ turn:relationship: LR(" in text
        assert "Generalized Linear Model Regression Results" in text


class TestLengthCascade:
    """Tests for fit_length_cascade()."""

    def test_one_row_per_step(self, lengths):
        fits, table = fit_length_cascade(lengths)

        assert table["step"].tolist() == [label for label, _ in LENGTH_STEPS]
        assert all(f["result"] is not None for f in fits)
        assert np.isnan(table.loc[0, "lr_stat"])

    def test_category_effect_detected(self, lengths):
        _, table = fit_length_cascade(lengths)
        row = table.set_index("step").loc["+ category"]
        assert row["df_diff"] == 2
        assert row["p"] < 0.001

    def test_conversation_ids_grouped_within_corpus(self, lengths):
        fits, _ = fit_length_cascade(lengths)
        n_groups = len(fits[0]["result"].model.group_labels)
        expected = lengths.groupby(["corpus", "conversation_id"]).ngroups
        assert n_groups == expected

    def test_report_text(self, lengths):
        fits, table = fit_length_cascade(lengths)
        text = cascade_report("RE length", fits, table)
        assert "Mixed Linear Model Regression Results" in text
