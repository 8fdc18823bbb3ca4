"""Data models for the lightdeck control plane."""

from .color import Color
from .config import AppConfig, LocalPreferences
from .device import DiscoveredDevice, Matrix, MatrixCell, PhysicalDevice, VirtualDevice
from .dsp import CRITICAL_KEYS, LIVE_KEYS, BladePlusFilterbank, BladePlusParams, DspSettings
from .effect import (
    CheckboxControl,
    ColorPickerControl,
    EffectConfig,
    EffectInfo,
    EffectSetting,
    PresetCollection,
    SelectControl,
    SettingsMap,
    SliderControl,
    default_settings,
)
from .import_document import (
    EngineSettings,
    FullConfiguration,
    SettingsDocument,
    UiSettings,
    parse_settings_document,
)
from .scene import (
    ActiveEffectsState,
    CustomSceneEffect,
    PresetSceneEffect,
    Scene,
    SceneEffect,
    ScenePresetRef,
)
from .segment import Segment, SegmentKind
from .state import AppState, PlaybackState

__all__ = [
    "CRITICAL_KEYS",
    "LIVE_KEYS",
    "ActiveEffectsState",
    "AppConfig",
    "AppState",
    "BladePlusFilterbank",
    "BladePlusParams",
    "CheckboxControl",
    "Color",
    "ColorPickerControl",
    "CustomSceneEffect",
    "DiscoveredDevice",
    "DspSettings",
    "EffectConfig",
    "EffectInfo",
    "EffectSetting",
    "EngineSettings",
    "FullConfiguration",
    "LocalPreferences",
    "Matrix",
    "MatrixCell",
    "PhysicalDevice",
    "PlaybackState",
    "PresetCollection",
    "PresetSceneEffect",
    "Scene",
    "SceneEffect",
    "ScenePresetRef",
    "Segment",
    "SegmentKind",
    "SelectControl",
    "SettingsDocument",
    "SettingsMap",
    "SliderControl",
    "UiSettings",
    "VirtualDevice",
    "default_settings",
    "parse_settings_document",
]
