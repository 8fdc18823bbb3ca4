"""
Control plane assembly and lifecycle.

Wires the state store, engine client, frame router, services and event
bridge together. The control plane can run headless (for scripting and
tests) or under a UI that registers as an AppObserver.
"""

import logging

from lightdeck.core.debounce import Debouncer
from lightdeck.core.frame_router import FrameRouter
from lightdeck.core.store import StateStore
from lightdeck.engine.bridge import EventBridge
from lightdeck.engine.client import EngineClient
from lightdeck.exceptions import ErrorContext, collect_errors, handle_errors
from lightdeck.model_manager import ModelManagerService, ObserverManager, PydanticPersistence
from lightdeck.models import AppConfig, LocalPreferences
from lightdeck.protocols import AppEvent, AppObserver, CommandSurface, EventSource
from lightdeck.services import (
    DspSettingsService,
    EffectConfigReconciler,
    SceneService,
    SettingsIO,
    VirtualService,
)

logger = logging.getLogger(__name__)


class ControlPlane:
    """
    Top-level owner of every control plane component.

    Architecture:
        ControlPlane (this class)
        ├── State: store, preferences
        ├── Engine: client (commands), bridge (events), router (frames)
        └── Services: virtuals, effects, dsp, scenes, settings_io

    Example:
        ```python
        plane = ControlPlane(surface, events)
        await plane.start()
        plane.store.subscribe(lambda s: s.virtuals, on_virtuals)
        ...
        await plane.stop()
        ```
    """

    def __init__(
        self,
        surface: CommandSurface,
        events: EventSource,
        config: AppConfig | None = None,
        preferences: ModelManagerService[LocalPreferences] | None = None,
    ):
        """
        Initialize the control plane.

        Args:
            surface: Engine command transport
            events: Engine push event source
            config: Application configuration (defaults if None)
            preferences: Local preferences manager. If None, preferences are
                loaded from `config.preferences_path`.
        """
        self.config = config or AppConfig()
        self.preferences = preferences or self._load_preferences(self.config)

        self.store = StateStore()
        self.client = EngineClient(surface)

        self.virtuals = VirtualService(self.store, self.client)
        self.router = FrameRouter(
            self.client,
            resolve_devices=self.virtuals.resolve_devices,
            report_error=self.store.set_error,
        )
        self.effects = EffectConfigReconciler(
            self.store, self.client, debounce_ms=self.config.effect_settings_debounce_ms
        )
        self.dsp = DspSettingsService(
            self.store,
            self.client,
            preferences=self.preferences,
            live_debounce_ms=self.config.live_settings_debounce_ms,
            fps_debounce_ms=self.config.target_fps_debounce_ms,
        )
        self.scenes = SceneService(self.store, self.client, ensure_presets=self.effects.ensure_presets)
        self.settings_io = SettingsIO(self.store, self.client)
        self.bridge = EventBridge(events, self.store, self.router, self.virtuals, self.dsp, self.scenes)
        self._feeds = Debouncer(0, name="device-feeds")
        self._unwatch_virtuals = None

        self._app_observers = ObserverManager[AppObserver](observer_type_name="app")
        self._running = False

    @staticmethod
    def _load_preferences(config: AppConfig) -> ModelManagerService[LocalPreferences]:
        path = config.preferences_path
        # An unreadable file is left in place and defaults are used
        initial = PydanticPersistence.ensure_valid_or_create(path, LocalPreferences, auto_save=False)
        return ModelManagerService[LocalPreferences](LocalPreferences, initial, default_path=path)

    # =================================================================
    # Observers
    # =================================================================

    def register_observer(self, observer: AppObserver) -> None:
        self._app_observers.register(observer)

    def unregister_observer(self, observer: AppObserver) -> None:
        self._app_observers.unregister(observer)

    # =================================================================
    # Lifecycle
    # =================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """
        Start listening to the engine and fetch the initial state.

        The bridge is started before the fetches so no event emitted while
        they are in flight is lost. A failed fetch does not stop the others;
        all failures are reported together in the error banner.
        """
        if self._running:
            logger.debug("ControlPlane already started")
            return

        logger.info("Starting control plane")
        self.router.start()
        with ErrorContext("start event bridge", logger):
            self.bridge.start()
        self._unwatch_virtuals = self.store.subscribe(lambda s: s.virtuals, self._on_virtuals_changed)
        self._running = True

        collector = await self.refresh()

        self._app_observers.notify("on_app_event", AppEvent.STARTED, errors=collector.errors)
        logger.info("Control plane started")

    async def refresh(self):
        """Refetch the engine-owned state. Returns the ErrorCollector used."""
        client = self.client
        store = self.store
        collector = collect_errors("Fetching engine state")

        with collector.try_operation("devices"):
            devices = await client.get_devices()
            store.set_state(devices={d.ip_address: d for d in devices})
        with collector.try_operation("virtuals"):
            virtuals = await client.get_virtuals()
            store.set_state(virtuals={v.id: v for v in virtuals})
        with collector.try_operation("scenes"):
            scenes = await client.get_scenes()
            store.set_state(scenes={s.id: s for s in scenes})
        with collector.try_operation("DSP settings"):
            settings = await client.get_dsp_settings()
            store.set_state(dsp_settings=settings, dirty_dsp_settings=settings)
            self.dsp.restore_draft()
        with collector.try_operation("effects"):
            store.set_state(available_effects=await client.get_available_effects())
        with collector.try_operation("playback state"):
            store.set_state(playback=await client.get_playback_state())
        with collector.try_operation("audio devices"):
            store.set_state(audio_devices=await client.get_audio_devices())
            await self._restore_audio_device()

        if collector.has_errors:
            store.set_error(collector.get_summary())
        return collector

    async def _restore_audio_device(self) -> None:
        remembered = self.preferences.get("selected_audio_device")
        if not remembered:
            return
        if remembered not in self.store.get_state().audio_devices:
            logger.info(f"Remembered audio device '{remembered}' is not available")
            return
        await self.dsp.set_audio_device(remembered)

    def _on_virtuals_changed(self, virtuals, previous) -> None:
        # Subscribed previews follow matrix edits of their virtuals
        self._feeds.schedule("virtuals", self.router.refresh_devices)

    async def flush(self) -> None:
        """Run every pending debounced push and device feed update now."""
        await self._feeds.flush()
        await self.effects.flush()
        await self.dsp.flush()

    async def stop(self) -> None:
        """Tear everything down in reverse start order."""
        if not self._running:
            return

        logger.info("Stopping control plane")
        self.bridge.stop()
        if self._unwatch_virtuals is not None:
            self._unwatch_virtuals()
            self._unwatch_virtuals = None
        await self._feeds.close()
        await self.effects.close()
        await self.dsp.close()
        await self.router.stop()
        self._running = False

        self._app_observers.notify("on_app_event", AppEvent.STOPPED)
        logger.info("Control plane stopped")

    async def __aenter__(self) -> "ControlPlane":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    # =================================================================
    # Commands
    # =================================================================

    @handle_errors(operation_name="toggle playback")
    async def toggle_pause(self) -> None:
        """Toggle engine playback. The playback event confirms the new state."""
        await self.client.toggle_pause()

    @handle_errors(operation_name="import settings", log_level=logging.WARNING)
    async def import_settings(self, text: str) -> None:
        document = await self.settings_io.import_settings(text)
        self._app_observers.notify("on_app_event", AppEvent.IMPORTED, kind=document.kind)
