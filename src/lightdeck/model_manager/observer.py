"""Generic observer list manager.

Used by the state store, the frame router, the model manager service and
the event bridge to hold their listeners. Registration is idempotent and
one failing observer never prevents the others from being notified.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from threading import Lock
from typing import Any

logger = logging.getLogger(__name__)


class ObserverManager[T: object]:
    """
    Observer list with idempotent registration and isolated notification.

    Type Parameters:
        T: The observer protocol type (e.g., ModelObserver, FrameObserver)

    Example:
        ```python
        class DeviceRegistry:
            def __init__(self):
                self._observers = ObserverManager[ModelObserver](observer_type_name="model")

            def _changed(self):
                self._observers.notify("on_model_event", ModelEvent.MODEL_UPDATED)
        ```
    """

    def __init__(self, lock: Lock | None = None, observer_type_name: str = "observer"):
        """
        Initialize the observer manager.

        Args:
            lock: Optional lock to share with the owner. If None, creates a new lock.
            observer_type_name: Name of the observer type for logging (e.g., "frame", "model")
        """
        self._observers: list[T] = []
        self._lock = lock or Lock()
        self._observer_type_name = observer_type_name

    def register(self, observer: T) -> None:
        """Register an observer (idempotent - won't add duplicates)."""
        with self._lock:
            if observer not in self._observers:
                self._observers.append(observer)
                logger.debug(f"Registered {self._observer_type_name} observer: {observer}")
            else:
                logger.debug(f"{self._observer_type_name} observer already registered: {observer}")

    def unregister(self, observer: T) -> None:
        """Unregister an observer. Unknown observers are ignored."""
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)
                logger.debug(f"Unregistered {self._observer_type_name} observer: {observer}")
            else:
                logger.debug(
                    f"Attempted to unregister unknown {self._observer_type_name} observer: {observer}"
                )

    def notify(self, callback_name: str, *args: Any, **kwargs: Any) -> None:
        """
        Notify all observers by calling their callback method.

        The observer list is copied before dispatch, so observers may
        register or unregister while being notified.

        Args:
            callback_name: Name of the callback method to call (e.g., 'on_frame')
            *args: Positional arguments to pass to the callback
            **kwargs: Keyword arguments to pass to the callback

        Error Handling:
            Exceptions in observer callbacks are logged but don't affect other observers.
        """
        with self._lock:
            observers = list(self._observers)

        for observer in observers:
            self._dispatch(observer, callback_name, *args, **kwargs)

    def _dispatch(self, observer: T, callback_name: str, *args: Any, **kwargs: Any) -> None:
        try:
            callback = getattr(observer, callback_name)
        except AttributeError:
            logger.error(
                f"{self._observer_type_name} observer {observer} has no method '{callback_name}'"
            )
            return

        try:
            callback(*args, **kwargs)
        except Exception as e:
            logger.error(
                f"Error notifying {self._observer_type_name} observer {observer} via {callback_name}: {e}",
                exc_info=True,
            )

    def clear(self) -> None:
        """Remove all registered observers."""
        with self._lock:
            count = len(self._observers)
            self._observers.clear()
            if count > 0:
                logger.debug(f"Cleared {count} {self._observer_type_name} observer(s)")

    def __contains__(self, observer: T) -> bool:
        with self._lock:
            return observer in self._observers

    def __len__(self) -> int:
        with self._lock:
            return len(self._observers)

    def __bool__(self) -> bool:
        with self._lock:
            return len(self._observers) > 0
