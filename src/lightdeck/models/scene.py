"""Scene models.

A scene stores, per virtual, either a reference to a named preset or an
embedded effect configuration. Activating a scene produces an
`ActiveEffectsState` snapshot, which the engine pushes back as the
`scene-activated` event.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from .effect import EffectConfig, SettingsMap


class ScenePresetRef(BaseModel):
    effect_id: str
    preset_name: str


class PresetSceneEffect(BaseModel):
    """Scene entry pointing at a preset by name, resolved at activation time."""

    type: Literal["preset"] = "preset"
    data: ScenePresetRef

    @classmethod
    def of(cls, effect_id: str, preset_name: str) -> "PresetSceneEffect":
        return cls(data=ScenePresetRef(effect_id=effect_id, preset_name=preset_name))


class CustomSceneEffect(BaseModel):
    """Scene entry embedding a full effect configuration."""

    type: Literal["custom"] = "custom"
    data: EffectConfig

    @classmethod
    def of(cls, effect_id: str, settings: SettingsMap) -> "CustomSceneEffect":
        return cls(data=EffectConfig(type=effect_id, config=dict(settings)))


SceneEffect = Annotated[PresetSceneEffect | CustomSceneEffect, Field(discriminator="type")]


class Scene(BaseModel):
    """A saved set of effect assignments across virtuals."""

    id: str
    name: str
    virtual_effects: dict[str, SceneEffect] = Field(default_factory=dict)


class ActiveEffectsState(BaseModel):
    """Resolved snapshot of which effect runs where, with which settings.

    `effect_settings` maps virtual id -> effect id -> setting id -> value.
    """

    active_scene_id: str | None = None
    selected_effects: dict[str, str] = Field(default_factory=dict)
    effect_settings: dict[str, dict[str, SettingsMap]] = Field(default_factory=dict)
    active_effects: dict[str, bool] = Field(default_factory=dict)
