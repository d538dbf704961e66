"""
 Script name: cli_helpers.py
 Purpose: Standardized CLI/config parsing for the RE analysis scripts.
    - One argparse parser shared by every entry point.
    - JSON config loading with policy defaults filled in.
"""

from __future__ import annotations
import argparse, json
from typing import Callable, Dict, Any, List, Optional, Sequence, Tuple

from refexp.utils.globals import DEFAULT_POLICIES, DEFAULT_RE_CATEGORIES, RELATIONSHIPS, ROUNDING_MODES

__all__ = [
    "build_std_parser",
    "std_cli",
    "load_global_config",
    "get_policies",
    "get_corpora",
    "parse_and_load_config",
]

# --------------------------
# CLI & Config
# --------------------------

def build_std_parser(
    description: str,
    *,
    add_overwrite: bool = True,
    add_dry_run: bool = True,
    add_verbose: bool = True,
) -> "argparse.ArgumentParser":
    """Create a standard argparse parser used across analysis scripts."""
    p = argparse.ArgumentParser(description=description)
    p.add_argument("--config", required=True, help="Path to the analysis JSON config.")
    if add_overwrite:
        p.add_argument("--overwrite", action="store_true", help="Overwrite existing outputs.")
    if add_dry_run:
        p.add_argument("--dry-run", action="store_true", help="Load and validate inputs; do not write files.")
    if add_verbose:
        p.add_argument("--verbose", action="store_true", help="Debug logging.")
    return p


def std_cli(
    description: str,
    *,
    argv: Optional[Sequence[str]] = None,
    extra_args: Optional[Callable[[argparse.ArgumentParser], None]] = None,
) -> argparse.Namespace:
    """Build the standard parser, optionally inject extra flags, and parse args."""
    p = build_std_parser(description)
    if extra_args is not None:
        extra_args(p)
    return p.parse_args(argv)


def load_global_config(cfg_path: str) -> Dict[str, Any]:
    """Load the project's JSON config."""
    with open(cfg_path, "r", encoding="utf-8") as f:
        return json.load(f)


def get_policies(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Return analysis policies from the config, with defaults for missing keys."""
    policies = dict(DEFAULT_POLICIES)
    policies.update(cfg.get("policies") or {})

    if policies["rounding"] not in ROUNDING_MODES:
        raise ValueError(
            f"Unknown rounding mode {policies['rounding']!r} (expected one of {ROUNDING_MODES})"
        )
    if policies["max_turns"] is not None:
        policies["max_turns"] = int(policies["max_turns"])
        if policies["max_turns"] <= 0:
            raise ValueError(f"max_turns must be positive, got {policies['max_turns']}")
    policies["turn_bin_width"] = int(policies["turn_bin_width"])
    if policies["turn_bin_width"] <= 0:
        raise ValueError(f"turn_bin_width must be positive, got {policies['turn_bin_width']}")
    return policies


def get_corpora(cfg: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Validate corpus entries; each needs a name, a relationship and a counts CSV."""
    corpora = cfg.get("corpora") or []
    if not corpora:
        raise ValueError("Config defines no corpora.")
    out = []
    for entry in corpora:
        missing = {"name", "relationship", "counts_csv"}.difference(entry)
        if missing:
            raise ValueError(f"Corpus entry {entry.get('name', '?')!r} missing keys: {sorted(missing)}")
        if entry["relationship"] not in RELATIONSHIPS:
            raise ValueError(
                f"Corpus {entry['name']!r}: relationship must be one of {RELATIONSHIPS}, "
                f"got {entry['relationship']!r}"
            )
        c = dict(entry)
        c.setdefault("lengths_csv", None)
        c["estimate_turn_index"] = bool(c.get("estimate_turn_index", False))
        out.append(c)
    return out


def parse_and_load_config(
    description: str,
    *,
    argv: Optional[Sequence[str]] = None,
    extra_args: Optional[Callable[[argparse.ArgumentParser], None]] = None,
) -> Tuple[argparse.Namespace, Dict[str, Any]]:
    """
    Parse CLI with the standard parser, then load the JSON config.
    Fills in 're_categories' when the config leaves it out.
    """
    args = std_cli(description, argv=argv, extra_args=extra_args)
    cfg = load_global_config(args.config)
    cfg.setdefault("re_categories", list(DEFAULT_RE_CATEGORIES))
    return args, cfg
