"""
 Script name: run_logger.py
 Purpose:
    Unified logging utilities for the RE analysis scripts.
    - Creates a per-run logfile (and mirrors to console).
    - Logs environment & statistics-stack versions once per run.
    - Snapshots the config JSON next to the log.
"""
from __future__ import annotations
from typing import Optional, Any, Dict, Tuple
import json
import logging
import os
from datetime import datetime, timezone
import platform
import random as _random
import shutil
import sys, traceback

import numpy as np

__all__ = ["setup_logger", "log_env_specs", "log_config_copy", "install_excepthook", "init_run"]

_DEF_FMT = "%(asctime)s - %(levelname)s - %(process)d - %(message)s"
_STACK = ("numpy", "pandas", "scipy", "statsmodels", "matplotlib", "seaborn")


def _get_logger(name: str, log_path: str, level: int = logging.INFO) -> logging.Logger:
    """Create (or reuse) a named logger without duplicating handlers."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    if not any(isinstance(h, logging.FileHandler) and getattr(h, "_refexp_log_path", "") == log_path
               for h in logger.handlers):
        os.makedirs(os.path.dirname(log_path), exist_ok=True)
        fh = logging.FileHandler(log_path)
        fh.setLevel(level)
        fh._refexp_log_path = log_path  # sentinel to prevent dupes
        fh.setFormatter(logging.Formatter(_DEF_FMT))
        logger.addHandler(fh)

    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
               for h in logger.handlers):
        ch = logging.StreamHandler()
        ch.setLevel(level)
        ch.setFormatter(logging.Formatter(_DEF_FMT))
        logger.addHandler(ch)

    return logger


def setup_logger(output_dir: str, script_name: str = "run", level: int = logging.INFO) -> logging.Logger:
    """Initialize a logger writing to <output_dir>/<script_name>_runlog.txt and the console."""
    log_path = os.path.join(output_dir, f"{script_name}_runlog.txt")
    logger = _get_logger(f"refexp.{script_name}", log_path, level=level)
    logger.info(f"===== Started {script_name} =====")
    return logger


def _safe_ver(modname: str) -> str:
    try:
        mod = __import__(modname)
        return getattr(mod, "__version__", "unknown")
    except ImportError:
        return "not-installed"


def log_env_specs(logger: logging.Logger, extras: Optional[Dict[str, Any]] = None) -> None:
    """Log environment/system/library info once per run, plus any script-specific params."""
    logger.info("---- Runtime Environment ----")
    logger.info(f"Datetime (UTC/local): {datetime.now(timezone.utc).isoformat()} / {datetime.now().isoformat()}")
    logger.info(f"Hostname: {platform.node()}")
    logger.info(f"OS: {platform.system()} {platform.release()}")
    logger.info(f"Python: {platform.python_version()}")

    conda_env = os.environ.get("CONDA_DEFAULT_ENV", "")
    if conda_env:
        logger.info(f"Conda env: {conda_env}")

    logger.info(", ".join(f"{m}: {_safe_ver(m)}" for m in _STACK))

    if extras:
        logger.info("---- Run Parameters ----")
        for k, v in extras.items():
            logger.info(f"{k}: {v}")


def log_config_copy(
    config_path: str,
    output_dir: str,
    logger: Optional[logging.Logger] = None,
    *,
    config_obj: Optional[Dict[str, Any]] = None,
) -> str:
    """Write the run config into output_dir as 'config_used.json' and return its path."""
    os.makedirs(output_dir, exist_ok=True)
    dst = os.path.join(output_dir, "config_used.json")

    if config_obj is not None:
        with open(dst, "w", encoding="utf-8") as f:
            json.dump(config_obj, f, indent=2, sort_keys=True, ensure_ascii=False, default=str)
    else:
        if not os.path.exists(config_path):
            raise FileNotFoundError(config_path)
        shutil.copy2(config_path, dst)

    if logger:
        logger.info(f"Saved config JSON to: {dst}")
    return dst


def install_excepthook(logger: Optional[logging.Logger] = None) -> None:
    """Install a global exception hook that logs uncaught exceptions."""
    def _hook(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        target = logger or logging.getLogger()
        target.error("Unhandled exception", exc_info=(exc_type, exc_value, exc_traceback))
        traceback.print_exception(exc_type, exc_value, exc_traceback, file=sys.stderr)

    sys.excepthook = _hook


def init_run(
    *,
    output_dir: str,
    script_name: str,
    args,                    # argparse.Namespace (must have .config; may have .verbose/.overwrite/.dry_run)
    cfg: Dict[str, Any],
) -> Tuple[logging.Logger, int, bool, bool]:
    """
    Initialize a run:
      - create logger and write env specs
      - snapshot config JSON next to the log
      - set seeds (random, numpy)
      - extract overwrite/dry_run flags
    """
    level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logger = setup_logger(output_dir, script_name=script_name, level=level)
    install_excepthook(logger)
    log_env_specs(logger, extras=cfg.get("policies"))
    log_config_copy(getattr(args, "config", ""), output_dir, logger=logger, config_obj=cfg)

    seed = int(cfg.get("random_seed", 0))
    _random.seed(seed)
    np.random.seed(seed)

    overwrite = bool(getattr(args, "overwrite", False))
    dry_run   = bool(getattr(args, "dry_run", False))
    return logger, seed, overwrite, dry_run
