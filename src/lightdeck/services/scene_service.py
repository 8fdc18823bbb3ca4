"""Scene save, activation and deletion."""

import logging
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from lightdeck.core.scene_state_machine import apply_activation, capture_scene, resolve_scene
from lightdeck.core.store import StateStore
from lightdeck.engine.client import EngineClient
from lightdeck.exceptions import LightDeckError, ValidationError
from lightdeck.models.scene import PresetSceneEffect, Scene

logger = logging.getLogger(__name__)


class SceneService:
    """
    Saves the current effect assignments as scenes and activates them.

    Activation is applied locally as soon as the engine accepts the command,
    resolved against the local preset cache. The engine's `scene-activated`
    snapshot is authoritative: when it arrives while the command is still in
    flight, the local resolution is skipped.
    """

    def __init__(self, store: StateStore, client: EngineClient, ensure_presets=None):
        """
        Initialize the scene service.

        Args:
            store: Shared state store
            client: Engine command client
            ensure_presets: Optional coroutine function `(effect_id) -> PresetCollection`
                used to warm the preset cache before resolving preset references
        """
        self._store = store
        self._client = client
        self._ensure_presets = ensure_presets
        self._activation_events = 0

    def preview_scene(
        self,
        name: str,
        include: Iterable[str] | None = None,
        overrides: Mapping[str, str | None] | None = None,
    ) -> Scene:
        """Build (without saving) a scene from the currently active virtuals."""
        if not name.strip():
            raise ValidationError("A scene needs a name")
        scene_id = f"scene_{uuid.uuid4().hex[:12]}"
        return capture_scene(self._store.get_state(), scene_id, name.strip(), include, overrides)

    async def save_scene(
        self,
        name: str,
        include: Iterable[str] | None = None,
        overrides: Mapping[str, str | None] | None = None,
    ) -> Scene:
        """
        Capture and save a scene.

        Raises:
            ValidationError: empty name or no active virtuals
            CommandError: the engine rejected the scene
        """
        scene = self.preview_scene(name, include, overrides)
        if not scene.virtual_effects:
            raise ValidationError("No active effects to save in a scene")

        await self._client.save_scene(scene)
        logger.info(f"Saved scene '{scene.name}' ({len(scene.virtual_effects)} virtuals)")
        return scene

    async def activate_scene(self, scene_id: str) -> None:
        """Ask the engine to activate a scene and apply it locally right away."""
        scene = self._store.get_state().scenes.get(scene_id)
        if scene is None:
            raise ValidationError(f"Unknown scene '{scene_id}'")

        seen = self._activation_events
        await self._client.activate_scene(scene_id)
        await self._warm_presets(scene)

        if self._activation_events != seen:
            logger.info(f"Activated scene '{scene.name}' (engine snapshot already applied)")
            return
        snapshot = resolve_scene(self._store.get_state(), scene)
        self._store.update(lambda state: apply_activation(state, snapshot))
        logger.info(f"Activated scene '{scene.name}'")

    async def delete_scene(self, scene_id: str) -> None:
        await self._client.delete_scene(scene_id)
        state = self._store.get_state()
        if scene_id in state.scenes:
            scenes = {sid: scene for sid, scene in state.scenes.items() if sid != scene_id}
            patch: dict[str, Any] = {"scenes": scenes}
            if state.active_scene_id == scene_id:
                patch["active_scene_id"] = None
            self._store.set_state(**patch)
        logger.info(f"Deleted scene {scene_id}")

    def on_scenes_changed(self, payload: Any) -> None:
        """Engine event: replace the scene list, skipping malformed scenes."""
        if not isinstance(payload, list):
            logger.debug("Ignoring scenes-changed payload that is not a list")
            return
        scenes: dict[str, Scene] = {}
        for item in payload:
            try:
                scene = Scene.model_validate(item)
            except ValueError as e:
                logger.debug(f"Dropping malformed scene: {e}")
                continue
            scenes[scene.id] = scene
        self._store.set_state(scenes=scenes)

    def on_scene_activated(self, payload: Any) -> None:
        """Engine event: fold the authoritative activation snapshot into local state."""
        self._activation_events += 1
        self._store.update(lambda state: apply_activation(state, payload))

    async def _warm_presets(self, scene: Scene) -> None:
        if self._ensure_presets is None:
            return
        effect_ids = {
            entry.data.effect_id
            for entry in scene.virtual_effects.values()
            if isinstance(entry, PresetSceneEffect)
        }
        for effect_id in effect_ids:
            try:
                await self._ensure_presets(effect_id)
            except LightDeckError as e:
                logger.warning(f"Could not load presets for {effect_id}: {e}")
