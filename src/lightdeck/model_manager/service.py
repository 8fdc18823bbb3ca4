"""Model manager service for managing Pydantic models (app config, local preferences)."""

import logging
from pathlib import Path
from threading import Lock
from typing import Any

from pydantic import BaseModel, ValidationError

from lightdeck.model_manager.observer import ObserverManager
from lightdeck.model_manager.persistence import PydanticPersistence
from lightdeck.model_manager.protocols import ModelEvent, ModelObserver

logger = logging.getLogger(__name__)


class ModelManagerService[ModelType: BaseModel]:
    """
    Generic service for managing a Pydantic model with get/set, persistence
    and change notifications.

    Every mutation goes through `model_validate`, so an invalid value never
    replaces the current model. Observers are notified after the lock is
    released.

    Usage Example:
        ```python
        prefs = ModelManagerService[LocalPreferences](
            LocalPreferences, LocalPreferences(), default_path=Path("preferences.json")
        )
        prefs.set("selected_audio_device", "Line In (USB)")
        prefs.save()
        ```
    """

    def __init__(
        self,
        model_type: type[ModelType],
        initial_model: ModelType,
        default_path: Path | None = None,
    ):
        """
        Initialize the model manager service.

        Args:
            model_type: The Pydantic model class (e.g., AppConfig, LocalPreferences)
            initial_model: The initial model instance
            default_path: Default path for save/load operations (optional)
        """
        self._model_type = model_type
        self._model = initial_model
        self._default_path = default_path
        self._lock = Lock()

        self._observers = ObserverManager[ModelObserver](observer_type_name="model")

        logger.info(f"ModelManagerService initialized with {model_type.__name__}")

    @property
    def default_path(self) -> Path | None:
        return self._default_path

    # =================================================================
    # Event System
    # =================================================================

    def register_observer(self, observer: ModelObserver) -> None:
        """Register an observer to receive model change events."""
        self._observers.register(observer)

    def unregister_observer(self, observer: ModelObserver) -> None:
        """Unregister an observer."""
        self._observers.unregister(observer)

    def _notify_observers(self, event: ModelEvent, **kwargs: Any) -> None:
        self._observers.notify("on_model_event", event, **kwargs)

    # =================================================================
    # Model Access
    # =================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """Get a model field value by key, or default if the field doesn't exist."""
        with self._lock:
            return getattr(self._model, key, default)

    def get_all(self) -> dict[str, Any]:
        """Get all model field values as a (JSON-compatible) dictionary."""
        with self._lock:
            return self._model.model_dump(mode="json")

    def get_model(self) -> ModelType:
        """Get a deep copy of the entire model object."""
        with self._lock:
            return self._model.model_copy(deep=True)

    # =================================================================
    # Model Mutation
    # =================================================================

    def set(self, key: str, value: Any) -> None:
        """
        Set a model field value by key.

        Raises:
            AttributeError: If key doesn't exist in model
            ValidationError: If value fails Pydantic validation

        Events:
            Emits MODEL_UPDATED with keys=[key], values={key: value}
        """
        self.update({key: value})

    def update(self, values: dict[str, Any]) -> None:
        """
        Update multiple model field values at once (all or nothing).

        Raises:
            AttributeError: If any key doesn't exist in model
            ValidationError: If any value fails Pydantic validation

        Events:
            Emits a single MODEL_UPDATED event with all changed keys/values
        """
        with self._lock:
            for key in values:
                if key not in self._model_type.model_fields:
                    raise AttributeError(f"'{self._model_type.__name__}' has no field '{key}'")

            try:
                current_dict = self._model.model_dump()
                current_dict.update(values)
                self._model = self._model_type.model_validate(current_dict)
            except ValidationError as e:
                logger.error(f"Validation error updating {list(values)}: {e}")
                raise

        self._notify_observers(ModelEvent.MODEL_UPDATED, keys=list(values.keys()), values=values)

        logger.debug(f"Model updated: {list(values.keys())}")

    def reset(self, key: str | None = None) -> None:
        """
        Reset the model (or a single field) to its default value.

        Events:
            MODEL_RESET for a full reset, MODEL_UPDATED for a single field
        """
        if key is not None:
            if key not in self._model_type.model_fields:
                raise AttributeError(f"'{self._model_type.__name__}' has no field '{key}'")
            default = self._model_type().model_dump()[key]
            self.set(key, default)
            return

        with self._lock:
            self._model = self._model_type()

        self._notify_observers(ModelEvent.MODEL_RESET, model=self._model.model_copy(deep=True))

        logger.info(f"Model reset to defaults: {self._model_type.__name__}")

    # =================================================================
    # Persistence
    # =================================================================

    def _resolve_path(self, path: Path | None) -> Path:
        file_path = path or self._default_path
        if file_path is None:
            raise ValueError("No path specified and no default_path set")
        return Path(file_path)

    def load(self, path: Path | None = None) -> None:
        """
        Load model from file.

        Raises:
            ValueError: If no path specified and no default_path set
            FileNotFoundError: If model file doesn't exist
            ConfigurationError: If the file is corrupted or invalid

        Events:
            Emits MODEL_LOADED with the file path
        """
        file_path = self._resolve_path(path)

        new_model = PydanticPersistence.load_json(file_path, self._model_type)

        with self._lock:
            self._model = new_model

        self._notify_observers(ModelEvent.MODEL_LOADED, path=file_path)

        logger.info(f"Model loaded from {file_path}")

    def save(self, path: Path | None = None) -> None:
        """
        Save model to file.

        Raises:
            ValueError: If no path specified and no default_path set

        Events:
            Emits MODEL_SAVED with the file path
        """
        file_path = self._resolve_path(path)

        with self._lock:
            model_copy = self._model.model_copy(deep=True)

        PydanticPersistence.save_json(model_copy, file_path)

        self._notify_observers(ModelEvent.MODEL_SAVED, path=file_path)

        logger.info(f"Model saved to {file_path}")
