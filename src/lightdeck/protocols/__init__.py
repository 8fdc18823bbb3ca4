"""Protocol definitions for engine interfaces and observer patterns.

- Events: engine push events and control plane lifecycle events
- Observers: protocols for components that react to these events
- Engine: the command and event surfaces of the external engine

For generic model management protocols (ModelEvent, ModelObserver),
see lightdeck.model_manager.protocols.
"""

from .engine import CommandSurface, EventHandler, EventSource, Unlisten
from .events import AppEvent, EngineEvent
from .observers import AppObserver, FrameObserver

__all__ = [
    # Events
    "AppEvent",
    "EngineEvent",
    # Observers
    "AppObserver",
    "FrameObserver",
    # Engine
    "CommandSurface",
    "EventHandler",
    "EventSource",
    "Unlisten",
]
