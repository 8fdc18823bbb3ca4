"""Local validation errors.

These are raised synchronously by the codec, the segment editor, the
reconcilers and the settings-document parser. They are surfaced to the
action that triggered them and are never sent to the engine.
"""

from typing import Any, Optional

from .base import LightDeckError


class ValidationError(LightDeckError):
    """Input failed local validation."""

    def __init__(self, user_message: str, technical_message: Optional[str] = None,
                 recovery_hint: Optional[str] = None):
        super().__init__(
            user_message=user_message,
            technical_message=technical_message,
            recoverable=True,
            recovery_hint=recovery_hint,
        )


class InvalidSegmentError(ValidationError):
    """A segment cannot be constructed from the given bounds."""

    def __init__(self, reason: str, **details: Any):
        super().__init__(
            user_message=f"Invalid segment: {reason}",
            technical_message=f"Invalid segment ({details}): {reason}",
        )
        self.reason = reason
        self.details = details


class OverlapError(ValidationError):
    """A segment claims a pixel that another segment already uses."""

    def __init__(self, pixel: int, device_id: str):
        super().__init__(
            user_message=(
                f"Overlap detected: Pixel {pixel} on device {device_id} is already in use."
            ),
            recovery_hint="Pick a range that does not intersect the existing segments",
        )
        self.pixel = pixel
        self.device_id = device_id


class PixelOutOfRangeError(ValidationError):
    """A cell references a pixel outside its device."""

    def __init__(self, pixel: int, device_id: str, led_count: Optional[int]):
        if led_count is None:
            msg = f"Device {device_id} is unknown (pixel {pixel})"
        else:
            msg = f"Pixel {pixel} is out of range for device {device_id} (0-{led_count - 1})"
        super().__init__(user_message=msg)
        self.pixel = pixel
        self.device_id = device_id
        self.led_count = led_count


class DuplicatePixelError(ValidationError):
    """The same device pixel appears twice in one matrix."""

    def __init__(self, pixel: int, device_id: str, position: int):
        super().__init__(
            user_message=f"Pixel {pixel} on device {device_id} is mapped more than once",
            technical_message=f"Duplicate cell ({device_id}, {pixel}) at matrix position {position}",
        )
        self.pixel = pixel
        self.device_id = device_id
        self.position = position


class PresetError(ValidationError):
    """A preset operation is not allowed in the current state."""
    pass


class SettingsDocumentError(ValidationError):
    """An imported settings document could not be read."""
    pass


class UnrecognizedFormatError(SettingsDocumentError):
    """The document is valid JSON but matches no known settings shape."""

    def __init__(self, keys: Optional[list[str]] = None):
        super().__init__(
            user_message="Unrecognized JSON file format",
            technical_message=f"No settings schema matched document keys: {keys}",
            recovery_hint=(
                "Expected an export with 'engine_state'/'frontend_state', "
                "an engine file with 'devices' and 'virtuals', "
                "or a UI file with 'selectedEffects' and 'effectSettings'"
            ),
        )
        self.keys = keys or []
