"""Control-plane services built on the store and the engine client."""

from .dsp_settings import DspSettingsService
from .effect_reconciler import EffectConfigReconciler, PresetStatus, SchemaStatus
from .scene_service import SceneService
from .settings_io import SettingsIO
from .virtual_service import CUSTOM_PREFIX, VirtualService, new_virtual_id

__all__ = [
    "CUSTOM_PREFIX",
    "DspSettingsService",
    "EffectConfigReconciler",
    "PresetStatus",
    "SceneService",
    "SchemaStatus",
    "SettingsIO",
    "VirtualService",
    "new_virtual_id",
]
