"""Textual UI components for lightdeck."""

from .widgets import StripPreview

__all__ = ["StripPreview"]
