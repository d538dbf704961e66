"""
Script name: print_helpers.py
Purpose: Console and logger message routing for the RE analysis scripts.
    - Standardized section headers for stats reports.
    - [SAVE]/[WARN]/[INFO] console messages.
    - warn()/info() send a message to a run logger when one is passed,
      otherwise to the console helpers.
"""

from __future__ import annotations
import logging
import os
from typing import Optional

__all__ = ["print_header", "print_save", "print_warn", "print_info", "warn", "info", "section"]

# --------------------------
# Console formatting helpers
# --------------------------


def section(title: str, width: int = 80) -> str:
    """Return a boxed section title for text reports."""
    bar = "=" * width
    return f"{bar}\n{title}\n{bar}"


def print_header(title: str) -> None:
    print("\n" + section(title))


def print_save(path: str, kind: str = "file") -> None:
    print(f"[SAVE] {kind}: {os.path.abspath(path)}")


def print_warn(msg: str) -> None:
    print(f"[WARN] {msg}")


def print_info(msg: str) -> None:
    print(f"[INFO] {msg}")


# --------------------------
# Logger-aware routing
# --------------------------


def warn(msg: str, logger: Optional[logging.Logger] = None) -> None:
    """Report a data-quality warning to the run logger, or the console if there is none."""
    if logger is not None:
        logger.warning(msg)
    else:
        print_warn(msg)


def info(msg: str, logger: Optional[logging.Logger] = None) -> None:
    if logger is not None:
        logger.info(msg)
    else:
        print_info(msg)
