"""Routes engine push events to the control-plane components."""

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from lightdeck.models.state import PlaybackState
from lightdeck.protocols.engine import EventHandler, EventSource, Unlisten
from lightdeck.protocols.events import EngineEvent

if TYPE_CHECKING:
    from lightdeck.core.frame_router import FrameRouter
    from lightdeck.core.store import StateStore
    from lightdeck.services.dsp_settings import DspSettingsService
    from lightdeck.services.scene_service import SceneService
    from lightdeck.services.virtual_service import VirtualService

logger = logging.getLogger(__name__)


class EventBridge:
    """
    Listens to every engine event while started.

    Handlers run in arrival order on the event loop. A handler that fails
    on a malformed payload is logged and skipped; push events never raise
    into the event source.

    Example:
        ```python
        bridge = EventBridge(source, store, router, virtuals, dsp, scenes)
        dispose = bridge.start()
        ...
        dispose()
        ```
    """

    def __init__(
        self,
        source: EventSource,
        store: "StateStore",
        router: "FrameRouter",
        virtuals: "VirtualService",
        dsp: "DspSettingsService",
        scenes: "SceneService",
    ):
        self._source = source
        self._store = store
        self._routes: dict[EngineEvent, EventHandler] = {
            EngineEvent.ENGINE_TICK: self._on_tick(router),
            EngineEvent.VIRTUALS_CHANGED: virtuals.on_virtuals_changed,
            EngineEvent.DEVICES_CHANGED: virtuals.on_devices_changed,
            EngineEvent.DEVICE_FOUND: virtuals.on_device_found,
            EngineEvent.PLAYBACK_STATE_CHANGED: self._on_playback,
            EngineEvent.DSP_SETTINGS_CHANGED: dsp.on_settings_changed,
            EngineEvent.SCENES_CHANGED: scenes.on_scenes_changed,
            EngineEvent.SCENE_ACTIVATED: scenes.on_scene_activated,
        }
        self._unlisteners: list[Unlisten] = []

    @property
    def is_running(self) -> bool:
        return bool(self._unlisteners)

    def start(self) -> Callable[[], None]:
        """Subscribe to all engine events. Returns the matching `stop`."""
        if self._unlisteners:
            logger.debug("EventBridge already started")
            return self.stop

        for event, handler in self._routes.items():
            self._unlisteners.append(self._source.listen(event.value, self._guarded(event, handler)))
        logger.info(f"EventBridge listening to {len(self._unlisteners)} engine events")
        return self.stop

    def stop(self) -> None:
        """Remove every listener. Safe to call more than once."""
        unlisteners, self._unlisteners = self._unlisteners, []
        for unlisten in unlisteners:
            unlisten()
        if unlisteners:
            logger.info("EventBridge stopped")

    def dispatch(self, event: str, payload: Any) -> None:
        """Deliver one event directly, as if it came from the event source."""
        try:
            key = EngineEvent(event)
        except ValueError:
            logger.debug(f"Ignoring unknown engine event '{event}'")
            return
        self._guarded(key, self._routes[key])(payload)

    @staticmethod
    def _guarded(event: EngineEvent, handler: EventHandler) -> EventHandler:
        def run(payload: Any) -> None:
            try:
                handler(payload)
            except Exception as e:
                logger.error(f"Handler for {event.value} failed: {e}", exc_info=True)

        return run

    @staticmethod
    def _on_tick(router: "FrameRouter") -> EventHandler:
        def on_tick(payload: Any) -> None:
            if isinstance(payload, dict):
                router.on_tick(payload)
            else:
                logger.debug("Ignoring engine-tick payload that is not a mapping")

        return on_tick

    def _on_playback(self, payload: Any) -> None:
        try:
            playback = PlaybackState.model_validate(payload)
        except ValueError as e:
            logger.debug(f"Ignoring malformed playback-state-changed payload: {e}")
            return
        self._store.set_state(playback=playback)
