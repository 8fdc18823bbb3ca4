"""Client-side application state held by the state store."""

from pydantic import BaseModel, Field

from .device import DiscoveredDevice, PhysicalDevice, VirtualDevice
from .dsp import DspSettings
from .effect import EffectInfo, EffectSetting, PresetCollection, SettingsMap
from .scene import Scene


class PlaybackState(BaseModel):
    is_paused: bool = False


class AppState(BaseModel):
    """Everything the control plane caches about the engine, plus local edits.

    Instances are treated as immutable: the store replaces the whole object
    (and any changed container field) on every update, so selectors can
    compare old and new values.
    """

    # Engine-owned collections
    devices: dict[str, PhysicalDevice] = Field(default_factory=dict)
    discovered_devices: dict[str, DiscoveredDevice] = Field(default_factory=dict)
    virtuals: dict[str, VirtualDevice] = Field(default_factory=dict)
    scenes: dict[str, Scene] = Field(default_factory=dict)
    active_scene_id: str | None = None

    # Effect assignment per virtual id
    selected_effects: dict[str, str] = Field(default_factory=dict)
    active_effects: dict[str, bool] = Field(default_factory=dict)
    # virtual id -> effect id -> setting id -> value
    effect_settings: dict[str, dict[str, SettingsMap]] = Field(default_factory=dict)

    # Caches keyed by effect id
    available_effects: list[EffectInfo] = Field(default_factory=list)
    effect_schemas: dict[str, list[EffectSetting]] = Field(default_factory=dict)
    preset_cache: dict[str, PresetCollection] = Field(default_factory=dict)

    # Engine-wide settings: committed and pending (critical edits) copies
    dsp_settings: DspSettings | None = None
    dirty_dsp_settings: DspSettings | None = None

    playback: PlaybackState = Field(default_factory=PlaybackState)
    target_fps: int | None = None
    audio_devices: list[str] = Field(default_factory=list)
    selected_audio_device: str | None = None

    # Transient, dismissible error banner
    error: str | None = None

    def settings_for(self, virtual_id: str, effect_id: str) -> SettingsMap | None:
        return self.effect_settings.get(virtual_id, {}).get(effect_id)

    def is_active(self, virtual_id: str) -> bool:
        return self.active_effects.get(virtual_id, False)
