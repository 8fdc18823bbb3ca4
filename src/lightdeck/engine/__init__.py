"""Engine command client and event bridge."""

from .bridge import EventBridge
from .client import CommandResult, EngineClient, ErrorResult, OkResult

__all__ = [
    "CommandResult",
    "EngineClient",
    "ErrorResult",
    "EventBridge",
    "OkResult",
]
