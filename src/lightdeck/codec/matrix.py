"""Segment list <-> flat matrix codec.

The matrix is the engine-facing form of a virtual: one entry per output pixel,
either a `MatrixCell` or `None` for an unlit gap. Segments are the editor-facing
form. `encode(decode(m)) == m` for every matrix; decoding coalesces maximal
contiguous runs, so `decode(encode(s))` may merge adjacent segments of `s`.
"""

import logging
from collections.abc import Iterable, Mapping

from lightdeck.exceptions import DuplicatePixelError, OverlapError, PixelOutOfRangeError
from lightdeck.models.device import Matrix, MatrixCell, PhysicalDevice
from lightdeck.models.segment import Segment

logger = logging.getLogger(__name__)


def decode(matrix: Matrix) -> list[Segment]:
    """
    Split a flat matrix into maximal segments in one left-to-right pass.

    Consecutive gaps merge into a single gap. A cell extends the current device
    range only when it is on the same device and directly follows the previous
    pixel (ascending); anything else starts a new segment.
    """
    segments: list[Segment] = []

    gap_run = 0
    range_device: str | None = None
    range_start = range_end = 0

    def close_range() -> None:
        nonlocal range_device
        if range_device is not None:
            segments.append(Segment.device_range(range_device, range_start, range_end))
            range_device = None

    def close_gap() -> None:
        nonlocal gap_run
        if gap_run:
            segments.append(Segment.gap(gap_run))
            gap_run = 0

    for cell in matrix:
        if cell is None:
            close_range()
            gap_run += 1
            continue

        close_gap()
        if range_device == cell.device_id and cell.pixel == range_end + 1:
            range_end = cell.pixel
        else:
            close_range()
            range_device = cell.device_id
            range_start = range_end = cell.pixel

    close_range()
    close_gap()

    logger.debug(f"Decoded matrix of {len(matrix)} pixels into {len(segments)} segments")
    return segments


def encode(segments: Iterable[Segment]) -> Matrix:
    """Concatenate segments into a flat matrix (gap -> Nones, range -> inclusive cells)."""
    matrix: Matrix = []
    for segment in segments:
        if segment.is_gap:
            matrix.extend([None] * segment.length)
        else:
            matrix.extend(MatrixCell(device_id=segment.device_id, pixel=p) for p in segment.pixels())
    return matrix


def claimed_pixels(segments: Iterable[Segment]) -> set[tuple[str, int]]:
    """All (device id, pixel) pairs claimed by the non-gap segments."""
    claimed: set[tuple[str, int]] = set()
    for segment in segments:
        if not segment.is_gap:
            claimed.update((segment.device_id, p) for p in segment.pixels())
    return claimed


def validate_no_overlap(existing: Iterable[Segment], candidate: Segment) -> None:
    """
    Reject a candidate segment that claims a pixel already in use.

    Raises:
        OverlapError: naming the lowest overlapping pixel of the candidate
    """
    if candidate.is_gap:
        return

    claimed = claimed_pixels(existing)
    for pixel in candidate.pixels():
        if (candidate.device_id, pixel) in claimed:
            logger.debug(f"Rejected {candidate.describe()}: pixel {pixel} already claimed")
            raise OverlapError(pixel=pixel, device_id=candidate.device_id)


def validate_matrix(matrix: Matrix, devices: Mapping[str, PhysicalDevice]) -> None:
    """
    Check the whole-matrix invariants before a virtual is saved.

    Raises:
        PixelOutOfRangeError: a cell references an unknown device or a pixel
            outside `[0, led_count)`
        DuplicatePixelError: the same device pixel appears twice
    """
    seen: set[tuple[str, int]] = set()
    for position, cell in enumerate(matrix):
        if cell is None:
            continue

        device = devices.get(cell.device_id)
        if device is None:
            raise PixelOutOfRangeError(cell.pixel, cell.device_id, None)
        if cell.pixel >= device.led_count:
            raise PixelOutOfRangeError(cell.pixel, cell.device_id, device.led_count)

        key = cell.key()
        if key in seen:
            raise DuplicatePixelError(cell.pixel, cell.device_id, position)
        seen.add(key)
