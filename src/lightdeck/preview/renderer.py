"""Conversion of raw pixel buffers into colors for previews."""

from typing import Any

import numpy as np

from lightdeck.models.color import Color


def buffer_to_rgb(buffer: Any) -> np.ndarray:
    """
    Reshape a flat RGB byte buffer into an (n, 3) uint8 array.

    None or an empty buffer gives zero rows; a trailing partial triple is
    ignored.
    """
    if buffer is None:
        return np.zeros((0, 3), dtype=np.uint8)
    flat = np.asarray(buffer, dtype=np.uint8).ravel()
    usable = (flat.size // 3) * 3
    return flat[:usable].reshape(-1, 3)


def buffer_to_colors(buffer: Any, pixel_count: int | None = None) -> list[Color]:
    """
    Map byte triples to colors.

    Args:
        buffer: Flat RGB bytes (3 per pixel), or None for "nothing yet"
        pixel_count: If given, pad with off pixels (or truncate) to this length
    """
    rgb = buffer_to_rgb(buffer)
    colors = [Color(r=int(r), g=int(g), b=int(b)) for r, g, b in rgb]
    if pixel_count is not None:
        if len(colors) < pixel_count:
            colors.extend(Color.off() for _ in range(pixel_count - len(colors)))
        else:
            colors = colors[:pixel_count]
    return colors


def fit_to_width(colors: list[Color], width: int) -> list[Color]:
    """Nearest-neighbour resample of a color strip to `width` cells."""
    if width <= 0:
        return []
    if not colors:
        return [Color.off()] * width
    indices = np.floor(np.arange(width) * len(colors) / width).astype(int)
    return [colors[i] for i in indices]
