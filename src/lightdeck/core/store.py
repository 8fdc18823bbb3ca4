"""State container shared by the control-plane components."""

import logging
from collections.abc import Callable
from typing import Any

from lightdeck.model_manager import ObserverManager
from lightdeck.models.state import AppState

logger = logging.getLogger(__name__)

Selector = Callable[[AppState], Any]
Listener = Callable[[Any, Any], None]


class _SelectorSubscription:
    """Calls its listener with (new, old) when the selected value changes."""

    def __init__(self, selector: Selector, listener: Listener, current: Any):
        self._selector = selector
        self._listener = listener
        self._last = current

    def on_state_changed(self, state: AppState) -> None:
        value = self._selector(state)
        if value is self._last or value == self._last:
            return
        previous, self._last = self._last, value
        self._listener(value, previous)


class StateStore:
    """
    Explicit, constructor-injected replacement for a global reactive store.

    The state is an immutable `AppState`; every update swaps in a new object
    and notifies subscribers whose selected slice changed. Updates are
    synchronous and atomic per call.

    Example:
        ```python
        store = StateStore()
        dispose = store.subscribe(lambda s: s.error, lambda new, old: banner.show(new))
        store.set_error("Device unreachable")
        dispose()
        ```
    """

    def __init__(self, initial: AppState | None = None):
        self._state = initial or AppState()
        self._subscribers = ObserverManager[_SelectorSubscription](observer_type_name="state")

    def get_state(self) -> AppState:
        return self._state

    def set_state(self, **patch: Any) -> AppState:
        """Replace the given top-level fields and notify subscribers."""
        for key in patch:
            if key not in AppState.model_fields:
                raise AttributeError(f"AppState has no field '{key}'")
        return self._replace(self._state.model_copy(update=patch))

    def update(self, reducer: Callable[[AppState], AppState]) -> AppState:
        """Apply a pure reducer to the current state."""
        return self._replace(reducer(self._state))

    def subscribe(self, selector: Selector, listener: Listener) -> Callable[[], None]:
        """
        Listen to changes of one slice of the state.

        The listener receives `(new_value, old_value)` only when the value
        returned by `selector` changes. Returns a disposer; calling it more
        than once is harmless.
        """
        subscription = _SelectorSubscription(selector, listener, selector(self._state))
        self._subscribers.register(subscription)

        def dispose() -> None:
            self._subscribers.unregister(subscription)

        return dispose

    # =================================================================
    # Error banner
    # =================================================================

    def set_error(self, message: str | None) -> None:
        if message:
            logger.warning(f"Error banner: {message}")
        self.set_state(error=message)

    def clear_error(self) -> None:
        self.set_state(error=None)

    def _replace(self, new_state: AppState) -> AppState:
        if new_state is self._state:
            return new_state
        self._state = new_state
        self._subscribers.notify("on_state_changed", new_state)
        return new_state
