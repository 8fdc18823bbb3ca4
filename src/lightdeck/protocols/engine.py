"""Interfaces of the external rendering engine.

The engine is reached through two surfaces:
- CommandSurface: request/response; every call returns a tagged result
  ``{"status": "ok", "data": ...}`` or ``{"status": "error", "error": "..."}``
- EventSource: push notifications, fire-and-forget, ordered per channel
"""

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

EventHandler = Callable[[Any], None]
Unlisten = Callable[[], None]


@runtime_checkable
class CommandSurface(Protocol):
    """Request/response channel to the engine."""

    async def invoke(self, command: str, **args: Any) -> dict[str, Any]:
        """
        Send one command and wait for its result.

        Args:
            command: Command name (e.g. "start_effect")
            **args: Command arguments, JSON-compatible

        Returns:
            Tagged result dict; transport failures are reported as
            ``{"status": "error", ...}`` rather than raised
        """
        ...


@runtime_checkable
class EventSource(Protocol):
    """Push channel from the engine."""

    def listen(self, event: str, handler: EventHandler) -> Unlisten:
        """
        Register a handler for one event name.

        Returns:
            Callable that removes the handler again
        """
        ...
