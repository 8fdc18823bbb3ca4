"""
Custom exception hierarchy for lightdeck.

## Exception Hierarchy

```
LightDeckError (base)
├── ValidationError
│   ├── InvalidSegmentError
│   ├── OverlapError
│   ├── PixelOutOfRangeError
│   ├── DuplicatePixelError
│   ├── PresetError
│   └── SettingsDocumentError
│       └── UnrecognizedFormatError
├── CommandError
└── ConfigurationError
    ├── ConfigFileInvalidError
    └── ConfigValidationError
```

All custom exceptions inherit from `LightDeckError`, which provides:

- `user_message`: Human-friendly message for display to users
- `technical_message`: Detailed message for logging
- `recoverable`: Whether the error can be recovered from
- `recovery_hint`: Optional suggestion for how to fix the issue

Validation errors are local and never reach the engine. Command errors carry
the engine's message and propagate one level up to the action initiator.
Malformed push events are not exceptions at all: they are filtered field by
field where they are received.

See `lightdeck.exceptions.handlers` for utilities to handle these exceptions systematically.
"""

from .base import LightDeckError
from .command import CommandError
from .config import ConfigFileInvalidError, ConfigurationError, ConfigValidationError
from .handlers import (
    ErrorCollector,
    ErrorContext,
    collect_errors,
    format_error_for_display,
    handle_errors,
    wrap_pydantic_error,
)
from .validation import (
    DuplicatePixelError,
    InvalidSegmentError,
    OverlapError,
    PixelOutOfRangeError,
    PresetError,
    SettingsDocumentError,
    UnrecognizedFormatError,
    ValidationError,
)

__all__ = [
    # Base
    "LightDeckError",
    # Command
    "CommandError",
    # Config
    "ConfigFileInvalidError",
    "ConfigValidationError",
    "ConfigurationError",
    # Validation
    "DuplicatePixelError",
    "InvalidSegmentError",
    "OverlapError",
    "PixelOutOfRangeError",
    "PresetError",
    "SettingsDocumentError",
    "UnrecognizedFormatError",
    "ValidationError",
    # Handlers
    "ErrorCollector",
    "ErrorContext",
    "collect_errors",
    "format_error_for_display",
    "handle_errors",
    "wrap_pydantic_error",
]
