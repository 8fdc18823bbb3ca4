"""Observer protocol definitions.

- Frame observers: React to a previewed entity's pixel buffer changing
- App observers: React to control plane lifecycle events
"""

from typing import Protocol, runtime_checkable

import numpy as np

from .events import AppEvent


@runtime_checkable
class FrameObserver(Protocol):
    """
    Observer that receives pixel buffer updates for one entity.

    Registered through `FrameRouter.watch`. Only called when the entity's
    latest buffer actually differs from the previous one.
    """

    def on_frame(self, entity_id: str, buffer: np.ndarray) -> None:
        """
        Handle a new pixel buffer.

        Args:
            entity_id: Virtual or device id the buffer belongs to
            buffer: Flat uint8 RGB array (3 bytes per pixel)

        Note:
            Called on the event loop for every changed tick, so
            implementations should only schedule a redraw.
        """
        ...


@runtime_checkable
class AppObserver(Protocol):
    """Observer that receives control plane lifecycle events."""

    def on_app_event(self, event: "AppEvent", **kwargs) -> None:
        """
        Handle application lifecycle events.

        Args:
            event: The type of application event
            **kwargs: Event-specific data (e.g., errors for STARTED)

        Error Handling:
            Exceptions raised by observers are caught and logged. They do
            not propagate to the caller.
        """
        ...
