"""
Script: globals.py

Purpose: Project-wide constants and shared configuration for the RE dynamics project.

Usage:
    from refexp.utils.globals import (
        DATA_DIR, RESULTS_DIR, COLUMN_ALIASES, ...
    )
"""

from __future__ import annotations
import os

# --- Robustly determine repo root ---
# 1) If set, let the env drive everything (for jobs/scratch/other machines)
_env_root = os.environ.get("PROJECT_ROOT", "").strip()

# 2) Otherwise, derive from this file: .../<repo>/refexp/utils/globals.py
#    -> repo root is two levels up from 'refexp/utils'
_here = os.path.abspath(os.path.dirname(__file__))
_pkg_dir = os.path.abspath(os.path.join(_here, ".."))          # .../<repo>/refexp
_derived_root = os.path.abspath(os.path.join(_pkg_dir, ".."))  # .../<repo>

PROJECT_ROOT = _env_root or _derived_root

# ==== Global Project Paths ====
DATA_DIR    = f"{PROJECT_ROOT}/data"
RESULTS_DIR = f"{PROJECT_ROOT}/results"

# ==== Corpus conventions ====
RELATIONSHIPS = ("strangers", "familiars")
DEFAULT_RE_CATEGORIES = ["full_np", "pronoun", "possessive", "proper_noun"]

# Accepted spellings for standard columns, first match wins (case-insensitive)
COLUMN_ALIASES = {
    "conversation_id": ["conversation_id", "conv_id", "conversation", "dialogue_id", "file_id"],
    "speaker_id": ["speaker_id", "speaker", "caller", "spk"],
    "turn_id": ["turn_id", "turn", "turn_index", "utterance_id"],
    "begin_time": ["begin_time", "start_time", "start", "begin"],
    "end_time": ["end_time", "stop_time", "end", "stop"],
    "turn_length": ["turn_length", "duration"],
    "category": ["category", "re_category", "re_type", "type"],
    "re_length": ["re_length", "length", "n_words", "num_words", "num_tokens"],
}

DEFAULT_POLICIES = {
    "exclude_zero_re_turns": False,
    "max_turns": None,
    "zero_length_as_missing": True,
    "rounding": "half_even",
    "turn_bin_width": 10,
}

ROUNDING_MODES = ("half_even", "half_up")
