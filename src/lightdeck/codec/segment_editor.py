"""Working segment list for composing a virtual."""

import logging
from collections.abc import Mapping

from lightdeck.exceptions import InvalidSegmentError, PixelOutOfRangeError, ValidationError
from lightdeck.models.device import Matrix, PhysicalDevice, VirtualDevice
from lightdeck.models.segment import Segment

from .matrix import decode, encode, validate_matrix, validate_no_overlap

logger = logging.getLogger(__name__)


class SegmentEditor:
    """
    Ordered list of segments being edited for one virtual.

    Every segment is checked against the segments already in the list before
    it is admitted, so an overlap is reported on the add, not on save.

    Example:
        ```python
        editor = SegmentEditor(devices, name="Desk")
        editor.add_range("10.0.0.2", 0, 29)
        editor.add_gap(4)
        editor.add_range("10.0.0.3", 0, 29)
        matrix = editor.to_matrix()
        ```
    """

    def __init__(
        self,
        devices: Mapping[str, PhysicalDevice],
        name: str = "My Custom Strip",
        segments: list[Segment] | None = None,
        virtual_id: str | None = None,
    ):
        self._devices = dict(devices)
        self.name = name
        self.virtual_id = virtual_id
        self._segments: list[Segment] = []
        for segment in segments or []:
            self.add(segment)

    @classmethod
    def from_virtual(
        cls, virtual: VirtualDevice, devices: Mapping[str, PhysicalDevice]
    ) -> "SegmentEditor":
        """Open an existing virtual for editing, decoding its matrix into segments."""
        editor = cls(devices, name=virtual.name, virtual_id=virtual.id)
        # Decoded segments are not re-validated
        editor._segments = decode(virtual.matrix)
        return editor

    @property
    def segments(self) -> list[Segment]:
        return list(self._segments)

    @property
    def is_new(self) -> bool:
        return self.virtual_id is None

    @property
    def pixel_count(self) -> int:
        return sum(segment.length for segment in self._segments)

    def __len__(self) -> int:
        return len(self._segments)

    # =================================================================
    # Editing
    # =================================================================

    def add(self, segment: Segment) -> Segment:
        """
        Append a segment after validating it.

        Raises:
            PixelOutOfRangeError: range exceeds the device's pixel count
            OverlapError: range claims a pixel already used by another segment
        """
        if not segment.is_gap:
            self._check_bounds(segment)
        validate_no_overlap(self._segments, segment)
        self._segments.append(segment)
        logger.debug(f"Added segment {segment.describe()} to '{self.name}'")
        return segment

    def add_gap(self, length: int = 1) -> Segment:
        return self.add(Segment.gap(length))

    def add_range(self, device_id: str, start: int, end: int) -> Segment:
        return self.add(Segment.device_range(device_id, start, end))

    def remove(self, segment_id: str) -> Segment:
        index = self._index_of(segment_id)
        return self._segments.pop(index)

    def move(self, segment_id: str, new_index: int) -> None:
        """Move a segment to a new position in the list (clamped to the ends)."""
        segment = self.remove(segment_id)
        new_index = max(0, min(new_index, len(self._segments)))
        self._segments.insert(new_index, segment)

    def clear(self) -> None:
        self._segments.clear()

    # =================================================================
    # Output
    # =================================================================

    def to_matrix(self) -> Matrix:
        return encode(self._segments)

    def to_virtual(self, virtual_id: str | None = None) -> VirtualDevice:
        """
        Build the virtual to send to the engine.

        Raises:
            ValidationError: no name, no segments, or the id is unknown for a new virtual
        """
        if not self.name.strip():
            raise ValidationError("A virtual needs a name")
        if not self._segments:
            raise ValidationError("A virtual needs at least one segment")

        vid = self.virtual_id or virtual_id
        if vid is None:
            raise ValidationError("A new virtual needs an id")

        matrix = self.to_matrix()
        validate_matrix(matrix, self._devices)
        return VirtualDevice(id=vid, name=self.name.strip(), matrix_data=[matrix], is_device=None)

    # =================================================================
    # Helpers
    # =================================================================

    def _check_bounds(self, segment: Segment) -> None:
        device = self._devices.get(segment.device_id)
        if device is None:
            raise PixelOutOfRangeError(segment.start, segment.device_id, None)
        if segment.end >= device.led_count:
            raise PixelOutOfRangeError(segment.end, segment.device_id, device.led_count)

    def _index_of(self, segment_id: str) -> int:
        for index, segment in enumerate(self._segments):
            if segment.id == segment_id:
                return index
        raise InvalidSegmentError(f"no segment with id {segment_id}", segment_id=segment_id)
