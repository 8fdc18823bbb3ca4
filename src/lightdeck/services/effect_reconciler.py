"""Per-virtual effect selection, settings, schemas and presets."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from lightdeck.core.debounce import Debouncer
from lightdeck.core.preset_matching import PresetSource, find_matching_preset
from lightdeck.core.store import StateStore
from lightdeck.engine.client import EngineClient
from lightdeck.exceptions import LightDeckError, PresetError, ValidationError
from lightdeck.models.effect import (
    EffectConfig,
    EffectSetting,
    PresetCollection,
    SettingsMap,
    default_settings,
)

logger = logging.getLogger(__name__)


class SchemaStatus(str, Enum):
    """Whether settings controls can be shown for an effect."""

    NO_SCHEMA = "no_schema"            # Never requested
    SCHEMA_LOADING = "schema_loading"  # Fetch in flight
    READY = "ready"                    # Cached for the process lifetime


@dataclass(frozen=True)
class PresetStatus:
    """Preset match of a virtual's current settings."""

    matched_name: str | None
    source: PresetSource | None
    is_dirty: bool
    can_save: bool
    can_delete: bool


class EffectConfigReconciler:
    """
    Owns the selected effect and working settings of every virtual.

    Local writes are optimistic: the store is updated first and the engine
    is told afterwards. A rejected command raises `CommandError` to the
    caller and leaves the local value as it is; the next engine event is
    what corrects it.

    Schemas and preset collections are fetched lazily, once per effect id.
    Concurrent requests for the same effect share one fetch.

    Settings pushes are debounced per (virtual, effect) and always carry the
    whole configuration, never a partial patch.
    """

    def __init__(self, store: StateStore, client: EngineClient, debounce_ms: int = 50):
        """
        Initialize the reconciler.

        Args:
            store: Shared state store
            client: Engine command client
            debounce_ms: Delay before a setting change is pushed to the engine
        """
        self._store = store
        self._client = client
        self._debouncer = Debouncer(debounce_ms, name="effect-settings")
        self._schema_fetches: dict[str, asyncio.Task] = {}
        self._preset_fetches: dict[str, asyncio.Task] = {}
        logger.info("EffectConfigReconciler initialized")

    # =================================================================
    # Schemas
    # =================================================================

    def status(self, virtual_id: str, effect_id: str | None = None) -> SchemaStatus:
        """Schema state of a (virtual, effect) pair; defaults to the virtual's selected effect."""
        effect_id = effect_id or self._store.get_state().selected_effects.get(virtual_id)
        if effect_id is None:
            return SchemaStatus.NO_SCHEMA
        if effect_id in self._store.get_state().effect_schemas:
            return SchemaStatus.READY
        if effect_id in self._schema_fetches:
            return SchemaStatus.SCHEMA_LOADING
        return SchemaStatus.NO_SCHEMA

    async def ensure_schema(self, effect_id: str) -> list[EffectSetting]:
        """Return the cached schema of an effect, fetching it on first use."""
        cached = self._store.get_state().effect_schemas.get(effect_id)
        if cached is not None:
            return cached
        return await self._coalesced(self._schema_fetches, effect_id, self._fetch_schema)

    async def _fetch_schema(self, effect_id: str) -> list[EffectSetting]:
        logger.info(f"Fetching settings schema for effect '{effect_id}'")
        schema = await self._client.get_effect_schema(effect_id)
        schemas = self._store.get_state().effect_schemas
        self._store.set_state(effect_schemas={**schemas, effect_id: schema})
        return schema

    # =================================================================
    # Presets
    # =================================================================

    async def ensure_presets(self, effect_id: str, refresh: bool = False) -> PresetCollection:
        """Return the cached presets of an effect, fetching them when missing or on refresh."""
        if not refresh:
            cached = self._store.get_state().preset_cache.get(effect_id)
            if cached is not None:
                return cached
        return await self._coalesced(self._preset_fetches, effect_id, self._fetch_presets)

    async def _fetch_presets(self, effect_id: str) -> PresetCollection:
        logger.debug(f"Fetching presets for effect '{effect_id}'")
        presets = await self._client.load_presets(effect_id)
        cache = self._store.get_state().preset_cache
        self._store.set_state(preset_cache={**cache, effect_id: presets})
        return presets

    def invalidate_presets(self, effect_id: str) -> None:
        cache = dict(self._store.get_state().preset_cache)
        if cache.pop(effect_id, None) is not None:
            self._store.set_state(preset_cache=cache)

    def preset_status(self, virtual_id: str) -> PresetStatus:
        """
        Match the virtual's current settings against its effect's presets.

        Dirty means no preset matches exactly. Saving is only possible while
        dirty; deleting only when the match is a user preset.
        """
        state = self._store.get_state()
        effect_id = state.selected_effects.get(virtual_id)
        settings = state.settings_for(virtual_id, effect_id) if effect_id else None
        presets = state.preset_cache.get(effect_id) if effect_id else None

        match = find_matching_preset(settings, presets)
        is_dirty = match is None
        return PresetStatus(
            matched_name=match.name if match else None,
            source=match.source if match else None,
            is_dirty=is_dirty,
            can_save=is_dirty and settings is not None,
            can_delete=match is not None and match.source is PresetSource.USER,
        )

    async def load_preset(self, virtual_id: str, preset_name: str) -> SettingsMap:
        """Replace the virtual's settings with a preset's config and push it if active."""
        effect_id = self._require_effect(virtual_id)
        presets = await self.ensure_presets(effect_id)
        preset = presets.get(preset_name)
        if preset is None:
            raise PresetError(f"Preset '{preset_name}' not found for {effect_id}")

        settings = dict(preset.config)
        self._put_settings(virtual_id, effect_id, settings)
        logger.info(f"Loaded preset '{preset_name}' on {virtual_id}")

        if self._store.get_state().is_active(virtual_id):
            self._debouncer.cancel((virtual_id, effect_id))
            await self._client.update_effect_settings(virtual_id, EffectConfig(type=effect_id, config=settings))
        return settings

    async def save_preset(self, virtual_id: str, preset_name: str) -> None:
        """
        Save the virtual's current settings as a user preset.

        Raises:
            PresetError: settings already match a preset, or the name is empty
            CommandError: the engine rejected the save
        """
        name = preset_name.strip()
        if not name:
            raise PresetError("A preset needs a name")

        status = self.preset_status(virtual_id)
        if not status.can_save:
            raise PresetError(
                f"Settings already match preset '{status.matched_name}'"
                if status.matched_name else "Nothing to save"
            )

        effect_id = self._require_effect(virtual_id)
        settings = self._store.get_state().settings_for(virtual_id, effect_id)
        await self._client.save_preset(effect_id, name, EffectConfig(type=effect_id, config=dict(settings)))
        logger.info(f"Saved preset '{name}' for {effect_id}")

        self.invalidate_presets(effect_id)
        await self.ensure_presets(effect_id, refresh=True)

    async def delete_preset(self, virtual_id: str) -> None:
        """
        Delete the user preset that the virtual's settings currently match.

        Raises:
            PresetError: no match, or the match is a built-in preset
        """
        status = self.preset_status(virtual_id)
        if not status.can_delete:
            raise PresetError(
                "Built-in presets cannot be deleted"
                if status.source is PresetSource.BUILT_IN else "No user preset is selected"
            )

        effect_id = self._require_effect(virtual_id)
        await self._client.delete_preset(effect_id, status.matched_name)
        logger.info(f"Deleted preset '{status.matched_name}' for {effect_id}")

        self.invalidate_presets(effect_id)
        await self.ensure_presets(effect_id, refresh=True)

    # =================================================================
    # Selection & settings
    # =================================================================

    async def select_effect(self, virtual_id: str, effect_id: str) -> SettingsMap:
        """
        Select an effect for a virtual.

        Fetches the schema if needed, materializes default settings when the
        pair has none yet, and restarts the effect on the engine when the
        virtual is active. If another effect was selected for the virtual
        while the fetches were in flight, the effect is not started.
        """
        state = self._store.get_state()
        self._store.set_state(selected_effects={**state.selected_effects, virtual_id: effect_id})

        schema = await self.ensure_schema(effect_id)

        settings = self._store.get_state().settings_for(virtual_id, effect_id)
        if settings is None:
            settings = default_settings(schema)
            self._put_settings(virtual_id, effect_id, settings)
            logger.debug(f"Materialized defaults for {virtual_id}/{effect_id}")

        try:
            await self.ensure_presets(effect_id)
        except LightDeckError as e:
            logger.warning(f"Could not load presets for {effect_id}: {e}")

        state = self._store.get_state()
        if state.selected_effects.get(virtual_id) != effect_id:
            logger.debug(f"Selection of {effect_id} on {virtual_id} was superseded")
            return settings
        if state.is_active(virtual_id):
            await self._client.start_effect(virtual_id, EffectConfig(type=effect_id, config=settings))
        return settings

    def change_setting(self, virtual_id: str, setting_id: str, value: Any) -> SettingsMap:
        """
        Merge one setting value into the virtual's working settings.

        When the virtual is active, a debounced push of the whole config is
        scheduled; its failure is reported on the store's error banner.
        """
        effect_id = self._require_effect(virtual_id)
        current = self._store.get_state().settings_for(virtual_id, effect_id) or {}
        settings = {**current, setting_id: value}
        self._put_settings(virtual_id, effect_id, settings)

        if self._store.get_state().is_active(virtual_id):
            self._debouncer.schedule(
                (virtual_id, effect_id), lambda: self._push_settings(virtual_id, effect_id)
            )
        return settings

    async def _push_settings(self, virtual_id: str, effect_id: str) -> None:
        settings = self._store.get_state().settings_for(virtual_id, effect_id)
        if settings is None:
            return
        try:
            await self._client.update_effect_settings(
                virtual_id, EffectConfig(type=effect_id, config=dict(settings))
            )
        except LightDeckError as e:
            logger.warning(f"Settings push for {virtual_id}/{effect_id} failed: {e.technical_message}")
            self._store.set_error(e.user_message)

    async def start_effect(self, virtual_id: str) -> None:
        """Start the selected effect with the current (or default) settings."""
        effect_id = self._require_effect(virtual_id)
        settings = self._store.get_state().settings_for(virtual_id, effect_id)
        if settings is None:
            settings = default_settings(await self.ensure_schema(effect_id))
            self._put_settings(virtual_id, effect_id, settings)

        await self._client.start_effect(virtual_id, EffectConfig(type=effect_id, config=dict(settings)))
        self._set_active(virtual_id, True)
        logger.info(f"Started {effect_id} on {virtual_id}")

    async def stop_effect(self, virtual_id: str) -> None:
        for key in self._debouncer.pending_keys():
            if key[0] == virtual_id:
                self._debouncer.cancel(key)
        await self._client.stop_effect(virtual_id)
        self._set_active(virtual_id, False)
        logger.info(f"Stopped effect on {virtual_id}")

    async def flush(self) -> None:
        """Push every pending settings change now."""
        await self._debouncer.flush()

    async def close(self) -> None:
        await self._debouncer.close()
        for task in [*self._schema_fetches.values(), *self._preset_fetches.values()]:
            task.cancel()

    # =================================================================
    # Helpers
    # =================================================================

    def _require_effect(self, virtual_id: str) -> str:
        effect_id = self._store.get_state().selected_effects.get(virtual_id)
        if effect_id is None:
            raise ValidationError(f"No effect selected for {virtual_id}")
        return effect_id

    def _put_settings(self, virtual_id: str, effect_id: str, settings: SettingsMap) -> None:
        all_settings = self._store.get_state().effect_settings
        per_virtual = {**all_settings.get(virtual_id, {}), effect_id: settings}
        self._store.set_state(effect_settings={**all_settings, virtual_id: per_virtual})

    def _set_active(self, virtual_id: str, active: bool) -> None:
        state = self._store.get_state()
        self._store.set_state(active_effects={**state.active_effects, virtual_id: active})

    async def _coalesced(
        self,
        inflight: dict[str, asyncio.Task],
        effect_id: str,
        fetch: Callable[[str], Awaitable[Any]],
    ) -> Any:
        task = inflight.get(effect_id)
        if task is None:
            task = asyncio.ensure_future(fetch(effect_id))
            inflight[effect_id] = task
            task.add_done_callback(lambda done: self._forget(inflight, effect_id, done))
        return await asyncio.shield(task)

    @staticmethod
    def _forget(inflight: dict[str, asyncio.Task], effect_id: str, task: asyncio.Task) -> None:
        if inflight.get(effect_id) is task:
            del inflight[effect_id]
