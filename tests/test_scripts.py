"""
End-to-end tests for config handling and the analysis entry points.
"""

import json
import logging
import os

import pytest

from refexp.estimate_turn_index import run_estimation
from refexp.re_counts import analyze_re_counts, prepare_counts
from refexp.re_length import analyze_re_length, prepare_lengths
from refexp.utils.cli_helpers import get_corpora, get_policies, parse_and_load_config
from refexp.utils.globals import DEFAULT_RE_CATEGORIES
from refexp.utils.run_logger import init_run


class TestConfig:
    """Tests for config parsing and validation."""

    def test_parse_and_load_config(self, tmp_path):
        cfg_path = tmp_path / "cfg.json"
        cfg_path.write_text(json.dumps({"corpora": []}))
        args, cfg = parse_and_load_config("test", argv=["--config", str(cfg_path), "--dry-run"])

        assert args.dry_run is True
        assert args.overwrite is False
        assert cfg["re_categories"] == DEFAULT_RE_CATEGORIES

    def test_policy_defaults(self):
        policies = get_policies({"policies": {"max_turns": "50"}})
        assert policies["max_turns"] == 50
        assert policies["rounding"] == "half_even"
        assert policies["zero_length_as_missing"] is True
        assert policies["exclude_zero_re_turns"] is False

    @pytest.mark.parametrize("bad", [
        {"rounding": "stochastic"},
        {"max_turns": 0},
        {"turn_bin_width": -5},
    ])
    def test_invalid_policies_raise(self, bad):
        with pytest.raises(ValueError):
            get_policies({"policies": bad})

    def test_corpus_validation(self):
        with pytest.raises(ValueError, match="no corpora"):
            get_corpora({})
        with pytest.raises(ValueError, match="counts_csv"):
            get_corpora({"corpora": [{"name": "x", "relationship": "strangers"}]})
        with pytest.raises(ValueError, match="relationship"):
            get_corpora({"corpora": [{"name": "x", "relationship": "cousins", "counts_csv": "a.csv"}]})

    def test_init_run_writes_log_and_config(self, tmp_path):
        class Args:
            config = ""
            verbose = False
            overwrite = True
            dry_run = False

        logger, seed, overwrite, dry_run = init_run(
            output_dir=str(tmp_path), script_name="unit", args=Args(), cfg={"random_seed": 3},
        )
        logger.info("hello")
        for h in logger.handlers:
            h.flush()

        assert seed == 3 and overwrite is True and dry_run is False
        assert isinstance(logger, logging.Logger)
        assert (tmp_path / "config_used.json").exists()
        assert "hello" in (tmp_path / "unit_runlog.txt").read_text()


class TestPipelines:
    """Run each analysis on synthetic corpora written to disk."""

    def test_estimate_turn_index(self, corpus_dir, tmp_path_factory):
        data_dir, cfg = corpus_dir
        cfg["re_categories"] = ["full_np", "pronoun", "possessive"]
        out_dir = str(tmp_path_factory.mktemp("est"))

        lines = run_estimation(cfg, out_dir, data_dir=str(data_dir))

        assert any("familiars_corpus" in line for line in lines)
        assert os.path.exists(os.path.join(out_dir, "familiars_corpus_turn_index.csv"))
        assert os.path.exists(os.path.join(out_dir, "estimate_turn_index_report.txt"))
        assert not os.path.exists(os.path.join(out_dir, "strangers_corpus_turn_index.csv"))

    def test_estimate_turn_index_dry_run_writes_nothing(self, corpus_dir, tmp_path_factory):
        data_dir, cfg = corpus_dir
        out_dir = str(tmp_path_factory.mktemp("dry"))
        run_estimation(cfg, out_dir, dry_run=True, data_dir=str(data_dir))
        assert os.listdir(out_dir) == []

    def test_re_counts(self, corpus_dir, tmp_path_factory):
        data_dir, cfg = corpus_dir
        cfg["policies"]["max_turns"] = 35
        out_dir = str(tmp_path_factory.mktemp("counts"))

        turns, long_counts = prepare_counts(cfg, data_dir=str(data_dir))
        assert turns["turn_position"].max() < 35
        assert len(long_counts) == 3 * len(turns)

        table = analyze_re_counts(turns, long_counts, out_dir)
        assert len(table) == 8
        for name in ("by_turn.csv", "overview.csv", "proportions_by_bin.csv", "cascade.csv",
                     "turn_slopes.csv", "stats.txt", "proportions.png"):
            assert os.path.exists(os.path.join(out_dir, f"re_counts_{name}"))

    def test_re_length(self, corpus_dir, tmp_path_factory):
        data_dir, cfg = corpus_dir
        out_dir = str(tmp_path_factory.mktemp("length"))

        lengths = prepare_lengths(cfg, data_dir=str(data_dir))
        assert {"turn_position", "turn_bin", "re_length"}.issubset(lengths.columns)

        table = analyze_re_length(lengths, out_dir)
        assert len(table) == 5
        for name in ("by_re.csv", "summary_by_bin.csv", "cascade.csv", "stats.txt",
                     "over_turns.png", "violin.png"):
            assert os.path.exists(os.path.join(out_dir, f"re_length_{name}"))

    def test_existing_outputs_kept_without_overwrite(self, corpus_dir, tmp_path_factory):
        data_dir, cfg = corpus_dir
        out_dir = tmp_path_factory.mktemp("keep")
        (out_dir / "re_counts_stats.txt").write_text("previous run")
        (out_dir / "re_length_stats.txt").write_text("previous run")

        turns, long_counts = prepare_counts(cfg, data_dir=str(data_dir))
        assert analyze_re_counts(turns, long_counts, str(out_dir), overwrite=False) is None
        lengths = prepare_lengths(cfg, data_dir=str(data_dir))
        assert analyze_re_length(lengths, str(out_dir), overwrite=False) is None

        assert sorted(os.listdir(out_dir)) == ["re_counts_stats.txt", "re_length_stats.txt"]
        assert (out_dir / "re_counts_stats.txt").read_text() == "previous run"

    def test_existing_outputs_replaced_with_overwrite(self, corpus_dir, tmp_path_factory):
        data_dir, cfg = corpus_dir
        out_dir = tmp_path_factory.mktemp("replace")
        (out_dir / "re_counts_stats.txt").write_text("previous run")

        turns, long_counts = prepare_counts(cfg, data_dir=str(data_dir))
        table = analyze_re_counts(turns, long_counts, str(out_dir), overwrite=True)

        assert table is not None
        assert (out_dir / "re_counts_stats.txt").read_text() != "previous run"
