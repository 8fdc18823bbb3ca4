"""Reusable UI widgets for the TUI."""

from .strip_preview import StripPreview

__all__ = ["StripPreview"]
