"""Control-plane core: state store, frame routing, debouncing and reducers."""

from .debounce import Debouncer
from .frame_router import FrameRouter, SubscriptionToken
from .preset_matching import PresetMatch, PresetSource, deep_equal, find_matching_preset
from .scene_state_machine import apply_activation, capture_scene, resolve_scene
from .store import StateStore

__all__ = [
    "Debouncer",
    "FrameRouter",
    "PresetMatch",
    "PresetSource",
    "StateStore",
    "SubscriptionToken",
    "apply_activation",
    "capture_scene",
    "deep_equal",
    "find_matching_preset",
    "resolve_scene",
]
