"""Conversion between editor segments and engine matrices."""

from .matrix import claimed_pixels, decode, encode, validate_matrix, validate_no_overlap
from .segment_editor import SegmentEditor

__all__ = [
    "SegmentEditor",
    "claimed_pixels",
    "decode",
    "encode",
    "validate_matrix",
    "validate_no_overlap",
]
