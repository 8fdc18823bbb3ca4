"""Event names for the observer pattern.

- Engine events: push notifications from the rendering engine
- App events: control plane lifecycle
"""

from enum import Enum


class EngineEvent(str, Enum):
    """Push events emitted by the engine (names as sent on the wire)."""

    ENGINE_TICK = "engine-tick"                          # entity id -> pixel bytes
    VIRTUALS_CHANGED = "virtuals-changed"                # full virtual list
    DEVICES_CHANGED = "devices-changed"                  # full device list
    PLAYBACK_STATE_CHANGED = "playback-state-changed"    # {"is_paused": bool}
    DSP_SETTINGS_CHANGED = "dsp-settings-changed"        # full DSP settings
    SCENES_CHANGED = "scenes-changed"                    # full scene list
    SCENE_ACTIVATED = "scene-activated"                  # active effects snapshot
    DEVICE_FOUND = "device-found"                        # one discovered device


class AppEvent(Enum):
    """Control plane lifecycle events."""

    STARTED = "started"              # Bridge listening, initial state fetched
    STOPPED = "stopped"              # Bridge stopped, subscriptions released
    IMPORTED = "imported"            # Settings document imported
