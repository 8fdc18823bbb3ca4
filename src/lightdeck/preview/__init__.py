"""Pixel buffer to color conversion for previews."""

from .renderer import buffer_to_colors, buffer_to_rgb, fit_to_width

__all__ = ["buffer_to_colors", "buffer_to_rgb", "fit_to_width"]
