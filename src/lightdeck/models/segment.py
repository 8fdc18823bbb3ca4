"""Editor-side segment model.

Segments only exist while a virtual is being composed; the engine only ever
sees the flat matrix they encode to.
"""

import uuid
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from lightdeck.exceptions import InvalidSegmentError


class SegmentKind(str, Enum):
    """Kind of segment in a virtual's composition."""

    GAP = "gap"  # Run of unlit pixels
    DEVICE_RANGE = "device_range"  # Inclusive pixel range on one device


def _new_segment_id() -> str:
    return uuid.uuid4().hex[:8]


class Segment(BaseModel):
    """A device pixel range or a gap.

    Device ranges are inclusive on both ends and carry their length
    implicitly (`end - start + 1`). Gaps carry only a length.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_segment_id)
    kind: SegmentKind
    device_id: str | None = None
    start: int | None = Field(default=None, ge=0)
    end: int | None = Field(default=None, ge=0)
    gap_length: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def check_bounds(self) -> "Segment":
        if self.kind is SegmentKind.GAP:
            if self.gap_length is None:
                raise InvalidSegmentError("a gap needs a length of at least 1")
            return self

        if self.device_id is None or self.start is None or self.end is None:
            raise InvalidSegmentError(
                "a device range needs a device, a start and an end",
                device_id=self.device_id, start=self.start, end=self.end,
            )
        if self.start > self.end:
            raise InvalidSegmentError(
                f"start pixel {self.start} is after end pixel {self.end}",
                device_id=self.device_id, start=self.start, end=self.end,
            )
        return self

    @classmethod
    def gap(cls, length: int = 1) -> "Segment":
        return cls(kind=SegmentKind.GAP, gap_length=length)

    @classmethod
    def device_range(cls, device_id: str, start: int, end: int) -> "Segment":
        return cls(kind=SegmentKind.DEVICE_RANGE, device_id=device_id, start=start, end=end)

    @property
    def is_gap(self) -> bool:
        return self.kind is SegmentKind.GAP

    @property
    def length(self) -> int:
        if self.kind is SegmentKind.GAP:
            return self.gap_length
        return self.end - self.start + 1

    def pixels(self) -> range:
        """Device pixel indices claimed by this segment (empty for gaps)."""
        if self.kind is SegmentKind.GAP:
            return range(0)
        return range(self.start, self.end + 1)

    def describe(self) -> str:
        if self.kind is SegmentKind.GAP:
            return f"Gap ({self.length})"
        return f"{self.device_id} [{self.start}-{self.end}]"
