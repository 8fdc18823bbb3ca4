"""Tests for the matrix codec."""

import pytest

from lightdeck.codec import claimed_pixels, decode, encode, validate_matrix, validate_no_overlap
from lightdeck.exceptions import (
    DuplicatePixelError,
    InvalidSegmentError,
    OverlapError,
    PixelOutOfRangeError,
    ValidationError,
)
from lightdeck.models import MatrixCell, Segment, SegmentKind

DESK = "192.168.1.10"
SHELF = "192.168.1.11"


def cells(device_id, pixels):
    return [MatrixCell(device_id=device_id, pixel=p) for p in pixels]


class TestDecode:
    """Test matrix -> segment decoding."""

    @pytest.mark.unit
    def test_empty_matrix(self):
        assert decode([]) == []

    @pytest.mark.unit
    def test_combined_virtual(self, combined_virtual):
        """Ranges and gaps come out as maximal runs in order."""
        segments = decode(combined_virtual.matrix)

        assert [s.describe() for s in segments] == [
            f"{DESK} [0-9]",
            "Gap (2)",
            f"{SHELF} [5-7]",
        ]

    @pytest.mark.unit
    def test_consecutive_gaps_merge(self):
        segments = decode([None, None, None])

        assert len(segments) == 1
        assert segments[0].kind is SegmentKind.GAP
        assert segments[0].length == 3

    @pytest.mark.unit
    def test_non_ascending_pixels_split(self):
        """A range only continues with the next pixel of the same device."""
        segments = decode(cells(DESK, [3, 4, 2]))

        assert [(s.start, s.end) for s in segments] == [(3, 4), (2, 2)]

    @pytest.mark.unit
    def test_pixel_jump_splits(self):
        segments = decode(cells(DESK, [0, 1, 5, 6]))

        assert [(s.start, s.end) for s in segments] == [(0, 1), (5, 6)]

    @pytest.mark.unit
    def test_device_change_splits(self):
        segments = decode(cells(DESK, [0, 1]) + cells(SHELF, [2, 3]))

        assert [s.device_id for s in segments] == [DESK, SHELF]
        assert [(s.start, s.end) for s in segments] == [(0, 1), (2, 3)]

    @pytest.mark.unit
    def test_leading_and_trailing_gaps(self):
        segments = decode([None] + cells(DESK, [0]) + [None, None])

        assert [s.describe() for s in segments] == ["Gap (1)", f"{DESK} [0-0]", "Gap (2)"]


class TestEncode:
    """Test segment -> matrix encoding."""

    @pytest.mark.unit
    def test_encode_ranges_and_gaps(self):
        matrix = encode([
            Segment.device_range(DESK, 0, 2),
            Segment.gap(2),
            Segment.device_range(SHELF, 4, 4),
        ])

        assert matrix == cells(DESK, [0, 1, 2]) + [None, None] + cells(SHELF, [4])

    @pytest.mark.unit
    def test_round_trip_preserves_matrix(self, combined_virtual):
        """encode(decode(m)) == m."""
        assert encode(decode(combined_virtual.matrix)) == combined_virtual.matrix

    @pytest.mark.unit
    def test_adjacent_segments_coalesce_on_decode(self):
        """decode(encode(s)) merges ranges that continue each other."""
        segments = [Segment.device_range(DESK, 0, 4), Segment.device_range(DESK, 5, 9)]

        decoded = decode(encode(segments))

        assert len(decoded) == 1
        assert (decoded[0].start, decoded[0].end) == (0, 9)


class TestSegment:
    """Test segment construction."""

    @pytest.mark.unit
    def test_range_length_is_inclusive(self):
        assert Segment.device_range(DESK, 3, 7).length == 5

    @pytest.mark.unit
    def test_start_after_end_rejected(self):
        with pytest.raises(InvalidSegmentError):
            Segment.device_range(DESK, 8, 2)

    @pytest.mark.unit
    def test_range_without_device_rejected(self):
        with pytest.raises(InvalidSegmentError):
            Segment(kind=SegmentKind.DEVICE_RANGE, start=0, end=1)

    @pytest.mark.unit
    def test_gap_has_no_pixels(self):
        assert list(Segment.gap(4).pixels()) == []

    @pytest.mark.unit
    def test_segments_get_distinct_ids(self):
        assert Segment.gap(1).id != Segment.gap(1).id


class TestOverlap:
    """Test overlap detection between segments."""

    @pytest.mark.unit
    def test_overlap_reports_lowest_pixel(self):
        """[0-9] then [5-15] on the same device fails at pixel 5."""
        existing = [Segment.device_range(DESK, 0, 9)]

        with pytest.raises(OverlapError) as exc_info:
            validate_no_overlap(existing, Segment.device_range(DESK, 5, 15))

        assert exc_info.value.pixel == 5
        assert exc_info.value.device_id == DESK
        assert "Pixel 5" in exc_info.value.user_message

    @pytest.mark.unit
    def test_same_range_on_other_device_is_fine(self):
        validate_no_overlap([Segment.device_range(DESK, 0, 9)], Segment.device_range(SHELF, 0, 9))

    @pytest.mark.unit
    def test_gaps_never_overlap(self):
        validate_no_overlap([Segment.gap(3)], Segment.gap(3))

    @pytest.mark.unit
    def test_overlap_error_is_validation_error(self):
        with pytest.raises(ValidationError):
            validate_no_overlap([Segment.device_range(DESK, 0, 0)], Segment.device_range(DESK, 0, 0))

    @pytest.mark.unit
    def test_claimed_pixels(self):
        claimed = claimed_pixels([Segment.device_range(DESK, 1, 2), Segment.gap(5)])

        assert claimed == {(DESK, 1), (DESK, 2)}


class TestValidateMatrix:
    """Test whole-matrix validation."""

    @pytest.mark.unit
    def test_valid_matrix(self, combined_virtual, device_map):
        validate_matrix(combined_virtual.matrix, device_map)

    @pytest.mark.unit
    def test_pixel_beyond_led_count(self, device_map):
        with pytest.raises(PixelOutOfRangeError) as exc_info:
            validate_matrix(cells(SHELF, [29, 30]), device_map)

        assert exc_info.value.pixel == 30
        assert exc_info.value.led_count == 30

    @pytest.mark.unit
    def test_unknown_device(self, device_map):
        with pytest.raises(PixelOutOfRangeError) as exc_info:
            validate_matrix(cells("10.0.0.99", [0]), device_map)

        assert exc_info.value.led_count is None

    @pytest.mark.unit
    def test_duplicate_pixel(self, device_map):
        with pytest.raises(DuplicatePixelError) as exc_info:
            validate_matrix(cells(DESK, [0, 1]) + [None] + cells(DESK, [1]), device_map)

        assert exc_info.value.position == 3
