"""Pure reducers for scene activation and capture.

`apply_activation` folds a pushed `scene-activated` snapshot into the local
state, dropping malformed entries one by one. `capture_scene` is its dual: it
turns the current assignments into a `Scene`. `resolve_scene` expands a scene
against the local preset cache for an optimistic local activation.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from lightdeck.models.effect import SettingsMap
from lightdeck.models.scene import (
    ActiveEffectsState,
    CustomSceneEffect,
    PresetSceneEffect,
    Scene,
    SceneEffect,
)
from lightdeck.models.state import AppState

from .preset_matching import find_matching_preset

logger = logging.getLogger(__name__)


def apply_activation(state: AppState, snapshot: Any) -> AppState:
    """
    Apply a scene activation snapshot to the local state.

    Selected and active effects are replaced by the snapshot's; settings are
    merged per (virtual, effect). Non-string selections, non-boolean active
    flags and non-mapping settings are dropped individually. A snapshot that
    is not a mapping at all leaves the state unchanged. Never raises.
    """
    if isinstance(snapshot, ActiveEffectsState):
        snapshot = snapshot.model_dump()
    if not isinstance(snapshot, Mapping):
        logger.debug(f"Ignoring scene activation with payload of type {type(snapshot).__name__}")
        return state

    scene_id = _field(snapshot, "active_scene_id", "activeSceneId")
    if not isinstance(scene_id, str):
        scene_id = None

    selected = _filter_values(
        _field(snapshot, "selected_effects", "selectedEffects"), str, "selected_effects"
    )
    active = _filter_values(
        _field(snapshot, "active_effects", "activeEffects"), bool, "active_effects"
    )

    settings = {vid: dict(per_effect) for vid, per_effect in state.effect_settings.items()}
    raw_settings = _mapping(_field(snapshot, "effect_settings", "effectSettings"))
    for virtual_id, per_effect in raw_settings.items():
        if not isinstance(virtual_id, str) or not isinstance(per_effect, Mapping):
            logger.debug(f"Dropping malformed effect_settings entry for {virtual_id!r}")
            continue
        for effect_id, value in per_effect.items():
            config = _unwrap_settings(value)
            if not isinstance(effect_id, str) or config is None:
                logger.debug(f"Dropping malformed settings for {virtual_id!r}/{effect_id!r}")
                continue
            settings.setdefault(virtual_id, {})[effect_id] = config

    return state.model_copy(
        update={
            "active_scene_id": scene_id,
            "selected_effects": selected,
            "active_effects": active,
            "effect_settings": settings,
        }
    )


def resolve_scene(state: AppState, scene: Scene) -> ActiveEffectsState:
    """
    Expand a scene's entries into a full activation snapshot.

    Preset references are looked up in the current preset cache (user
    presets first); a reference whose preset no longer exists is dropped.
    Entries for unknown virtuals are dropped as well.
    """
    snapshot = ActiveEffectsState(active_scene_id=scene.id)
    for virtual_id, entry in scene.virtual_effects.items():
        if state.virtuals and virtual_id not in state.virtuals:
            logger.debug(f"Scene {scene.id}: skipping unknown virtual {virtual_id}")
            continue

        if isinstance(entry, PresetSceneEffect):
            effect_id = entry.data.effect_id
            collection = state.preset_cache.get(effect_id)
            preset = collection.get(entry.data.preset_name) if collection else None
            if preset is None:
                logger.debug(
                    f"Scene {scene.id}: preset '{entry.data.preset_name}' for {effect_id} not found"
                )
                continue
            config = dict(preset.config)
        else:
            effect_id = entry.data.effect_id
            config = dict(entry.data.config)

        snapshot.selected_effects[virtual_id] = effect_id
        snapshot.effect_settings[virtual_id] = {effect_id: config}
        snapshot.active_effects[virtual_id] = True
    return snapshot


def capture_scene(
    state: AppState,
    scene_id: str,
    name: str,
    include: Iterable[str] | None = None,
    overrides: Mapping[str, str | None] | None = None,
) -> Scene:
    """
    Build a scene from the currently active virtuals.

    Each virtual gets a preset reference when its settings match a cached
    preset, otherwise an embedded copy of its settings.

    Args:
        include: Restrict the scene to these virtual ids (default: all active)
        overrides: Per virtual, a preset name to reference instead of the
            automatic choice, or None to force an embedded copy
    """
    wanted = set(include) if include is not None else None
    overrides = overrides or {}
    entries: dict[str, SceneEffect] = {}

    for virtual_id, is_active in state.active_effects.items():
        if not is_active or (wanted is not None and virtual_id not in wanted):
            continue
        effect_id = state.selected_effects.get(virtual_id)
        settings = state.settings_for(virtual_id, effect_id) if effect_id else None
        if effect_id is None or settings is None:
            continue

        if virtual_id in overrides:
            preset_name = overrides[virtual_id]
        else:
            match = find_matching_preset(settings, state.preset_cache.get(effect_id))
            preset_name = match.name if match else None

        if preset_name is not None:
            entries[virtual_id] = PresetSceneEffect.of(effect_id, preset_name)
        else:
            entries[virtual_id] = CustomSceneEffect.of(effect_id, settings)

    return Scene(id=scene_id, name=name, virtual_effects=entries)


def _field(snapshot: Mapping, name: str, camel_name: str) -> Any:
    """Snapshot field by its snake_case name, falling back to the camelCase UI spelling."""
    return snapshot[name] if name in snapshot else snapshot.get(camel_name)


def _mapping(value: Any) -> Mapping:
    return value if isinstance(value, Mapping) else {}


def _filter_values(value: Any, expected: type, field: str) -> dict[str, Any]:
    kept: dict[str, Any] = {}
    for key, item in _mapping(value).items():
        if isinstance(key, str) and isinstance(item, expected):
            kept[key] = item
        else:
            logger.debug(f"Dropping malformed {field} entry {key!r}: {item!r}")
    return kept


def _unwrap_settings(value: Any) -> SettingsMap | None:
    """Accept either a settings map or an EffectConfig-shaped `{type, config}` wrapper."""
    if not isinstance(value, Mapping):
        return None
    if set(value) == {"type", "config"}:
        config = value["config"]
        return dict(config) if isinstance(config, Mapping) else None
    return dict(value)
