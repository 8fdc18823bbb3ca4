"""Engine-wide audio analysis settings: live pushes and critical apply."""

import logging
from typing import Any

from lightdeck.core.debounce import Debouncer
from lightdeck.core.store import StateStore
from lightdeck.engine.client import EngineClient
from lightdeck.exceptions import LightDeckError, ValidationError
from lightdeck.model_manager import ModelManagerService
from lightdeck.models.config import LocalPreferences
from lightdeck.models.dsp import CRITICAL_KEYS, LIVE_KEYS, DspSettings

logger = logging.getLogger(__name__)

_DSP_KEY = "dsp"
_FPS_KEY = "fps"


class DspSettingsService:
    """
    Keeps a committed and a pending copy of the DSP settings.

    Live keys take effect right away: both copies change and a debounced
    push of the whole settings object is scheduled. Critical keys only
    change the pending copy; `apply()` commits them and restarts audio
    capture. The pending copy is also saved as a draft in the local
    preferences so an unapplied edit survives a restart.

    `apply()` is two engine commands with no rollback: if the restart fails
    after the settings were committed, the settings stay committed.
    """

    def __init__(
        self,
        store: StateStore,
        client: EngineClient,
        preferences: ModelManagerService[LocalPreferences] | None = None,
        live_debounce_ms: int = 300,
        fps_debounce_ms: int = 500,
    ):
        self._store = store
        self._client = client
        self._preferences = preferences
        self._live = Debouncer(live_debounce_ms, name="dsp-live")
        self._fps = Debouncer(fps_debounce_ms, name="target-fps")

    # =================================================================
    # State
    # =================================================================

    @property
    def committed(self) -> DspSettings | None:
        return self._store.get_state().dsp_settings

    @property
    def pending(self) -> DspSettings | None:
        state = self._store.get_state()
        return state.dirty_dsp_settings or state.dsp_settings

    def dirty_fields(self) -> list[str]:
        """Fields where the pending copy differs from the committed one (nested included)."""
        committed, pending = self.committed, self.pending
        if committed is None or pending is None:
            return []
        return pending.diff(committed)

    @property
    def is_dirty(self) -> bool:
        return bool(self.dirty_fields())

    # =================================================================
    # Editing
    # =================================================================

    def change(self, key: str, value: Any) -> DspSettings:
        """
        Change one setting.

        Raises:
            ValidationError: unknown key, no settings loaded yet, or invalid value
        """
        if key not in LIVE_KEYS and key not in CRITICAL_KEYS:
            raise ValidationError(f"Unknown DSP setting '{key}'")
        committed, pending = self.committed, self.pending
        if committed is None or pending is None:
            raise ValidationError("DSP settings have not been loaded from the engine yet")

        try:
            new_pending = pending.with_value(key, value)
        except ValueError as e:
            raise ValidationError(f"Invalid value for {key}: {value!r}", technical_message=str(e)) from e

        if key in LIVE_KEYS:
            new_committed = committed.with_value(key, value)
            self._store.set_state(dsp_settings=new_committed, dirty_dsp_settings=new_pending)
            self._live.schedule(_DSP_KEY, self._push_live)
            logger.debug(f"Live DSP change {key}={value!r}")
        else:
            self._store.set_state(dirty_dsp_settings=new_pending)
            self._save_draft(new_pending)
            logger.debug(f"Pending DSP change {key}={value!r}")
        return new_pending

    async def _push_live(self) -> None:
        committed = self.committed
        if committed is None:
            return
        try:
            await self._client.update_dsp_settings(committed)
        except LightDeckError as e:
            logger.warning(f"Live DSP push failed: {e.technical_message}")
            self._store.set_error(e.user_message)

    async def apply(self) -> None:
        """
        Commit the pending settings and restart audio capture.

        Raises:
            CommandError: either step was rejected (a failed restart leaves
                the new settings committed)
        """
        pending = self.pending
        if pending is None:
            return

        self._live.cancel(_DSP_KEY)
        await self._client.update_dsp_settings(pending)
        self._store.set_state(dsp_settings=pending, dirty_dsp_settings=pending)
        self._save_draft(None)
        logger.info("DSP settings committed, restarting audio capture")

        await self._client.restart_audio_capture()

    def discard(self) -> None:
        """Drop pending critical edits."""
        self._store.set_state(dirty_dsp_settings=self.committed)
        self._save_draft(None)

    def on_settings_changed(self, payload: Any) -> None:
        """
        Engine event: the authoritative settings replace the committed copy.

        The engine also sends this after every live push, so unapplied
        critical edits are carried over onto the new pending copy.
        """
        try:
            settings = DspSettings.model_validate(payload)
        except ValueError as e:
            logger.debug(f"Ignoring malformed dsp-settings-changed payload: {e}")
            return

        committed, pending = self.committed, self.pending
        new_pending = settings
        if committed is not None and pending is not None:
            kept = [key for key in pending.diff(committed) if key in CRITICAL_KEYS]
            if kept:
                data = settings.model_dump()
                pending_data = pending.model_dump()
                data.update({key: pending_data[key] for key in kept})
                new_pending = DspSettings.model_validate(data)
                logger.debug(f"Keeping pending DSP edits {kept} over engine update")
        self._store.set_state(dsp_settings=settings, dirty_dsp_settings=new_pending)

    def restore_draft(self) -> bool:
        """Re-open an unapplied draft saved by a previous session."""
        if self._preferences is None or self.committed is None:
            return False
        draft = self._preferences.get("dsp_draft")
        if draft is None or not draft.diff(self.committed):
            return False
        self._store.set_state(dirty_dsp_settings=draft)
        logger.info("Restored unapplied DSP settings draft")
        return True

    def _save_draft(self, draft: DspSettings | None) -> None:
        self._remember("dsp_draft", draft)

    def _remember(self, key: str, value: Any) -> None:
        if self._preferences is None:
            return
        self._preferences.set(key, value)
        if self._preferences.default_path is None:
            return
        try:
            self._preferences.save()
        except OSError as e:
            logger.warning(f"Could not save local preference {key}: {e}")

    # =================================================================
    # Frame rate & audio device
    # =================================================================

    def set_target_fps(self, fps: int) -> None:
        """Record a target frame rate and push it after the debounce window."""
        if fps <= 0:
            raise ValidationError(f"Target frame rate must be positive, got {fps}")
        self._store.set_state(target_fps=fps)
        self._fps.schedule(_FPS_KEY, lambda: self._push_fps(fps))

    async def _push_fps(self, fps: int) -> None:
        try:
            await self._client.set_target_fps(fps)
        except LightDeckError as e:
            logger.warning(f"Target fps push failed: {e.technical_message}")
            self._store.set_error(e.user_message)

    async def set_audio_device(self, device_name: str) -> None:
        """Select the audio capture device on the engine and remember it locally."""
        await self._client.set_audio_device(device_name)
        self._store.set_state(selected_audio_device=device_name)
        self._remember("selected_audio_device", device_name)

    async def flush(self) -> None:
        await self._live.flush()
        await self._fps.flush()

    async def close(self) -> None:
        await self._live.close()
        await self._fps.close()
