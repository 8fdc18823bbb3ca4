"""Generic model management framework for Pydantic models.

- ModelManagerService: stateful get/set/update/reset with persistence and events
- PydanticPersistence: atomic JSON load/save with backups
- ObserverManager: observer list with isolated notification
- ModelEvent / ModelObserver: model lifecycle events and their observer protocol
"""

from lightdeck.model_manager.observer import ObserverManager
from lightdeck.model_manager.persistence import PydanticPersistence
from lightdeck.model_manager.protocols import ModelEvent, ModelObserver
from lightdeck.model_manager.service import ModelManagerService

__all__ = [
    "ModelEvent",
    "ModelManagerService",
    "ModelObserver",
    "ObserverManager",
    "PydanticPersistence",
]
