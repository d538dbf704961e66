"""Referring-expression dynamics across dialogue: turn reconstruction, descriptives and models."""

__version__ = "0.1.0"
