"""End-to-end tests for the ControlPlane over a scripted engine."""

import json
from unittest.mock import Mock

import pytest

from lightdeck import ControlPlane
from lightdeck.codec import decode
from lightdeck.exceptions import CommandError
from lightdeck.model_manager import ModelManagerService
from lightdeck.models import AppConfig, DspSettings, LocalPreferences, MatrixCell, Segment, VirtualDevice
from lightdeck.protocols import AppEvent, AppObserver, EngineEvent

DESK = "192.168.1.10"
SHELF = "192.168.1.11"
COMBO = "custom_combo"


@pytest.fixture
def config(temp_dir):
    return AppConfig(
        preferences_path=temp_dir / "preferences.json",
        log_dir=temp_dir / "logs",
        live_settings_debounce_ms=10,
        target_fps_debounce_ms=10,
        effect_settings_debounce_ms=10,
    )


@pytest.fixture
def preferences(temp_dir):
    return ModelManagerService[LocalPreferences](
        LocalPreferences, LocalPreferences(), default_path=temp_dir / "preferences.json"
    )


@pytest.fixture
def plane(scripted_engine, events, config, preferences):
    return ControlPlane(scripted_engine, events, config=config, preferences=preferences)


@pytest.mark.integration
@pytest.mark.asyncio
class TestStartStop:
    """Test the control plane lifecycle."""

    async def test_start_fetches_engine_state(self, plane, events, devices, combined_virtual):
        observer = Mock(spec=AppObserver)
        plane.register_observer(observer)

        await plane.start()

        state = plane.store.get_state()
        assert list(state.devices) == [DESK, SHELF]
        assert state.virtuals == {COMBO: combined_virtual}
        assert state.dsp_settings == DspSettings()
        assert state.dirty_dsp_settings == state.dsp_settings
        assert [effect.id for effect in state.available_effects] == ["bladepower"]
        assert state.audio_devices == ["Default", "Line In (USB)"]
        assert state.error is None
        assert events.listener_count() == len(EngineEvent)
        observer.on_app_event.assert_called_once_with(AppEvent.STARTED, errors=[])

        await plane.stop()

    async def test_failed_fetch_reported_in_banner(self, plane, scripted_engine):
        scripted_engine.fail("get_scenes", "Scene store unavailable")

        await plane.start()

        state = plane.store.get_state()
        assert "scenes: Scene store unavailable" in state.error
        assert list(state.devices) == [DESK, SHELF]
        assert state.audio_devices

        await plane.stop()

    async def test_stop_releases_everything(self, plane, scripted_engine, events):
        observer = Mock(spec=AppObserver)
        plane.register_observer(observer)
        await plane.start()
        await plane.router.subscribe(COMBO)

        await plane.stop()

        assert events.listener_count() == 0
        assert sorted(a["device_ip"] for a in scripted_engine.calls_to("unsubscribe_from_frames")) == [DESK, SHELF]
        assert not plane.is_running
        assert observer.on_app_event.call_args[0][0] == AppEvent.STOPPED

    async def test_async_context_manager(self, plane, events):
        async with plane:
            assert plane.is_running
            events.emit("playback-state-changed", {"is_paused": True})
            assert plane.store.get_state().playback.is_paused

        assert events.listener_count() == 0

    async def test_start_twice_fetches_once(self, plane, scripted_engine):
        await plane.start()
        await plane.start()

        assert len(scripted_engine.calls_to("get_devices")) == 1

        await plane.stop()


@pytest.mark.integration
@pytest.mark.asyncio
class TestPreferences:
    """Test restoring local preferences on start."""

    async def test_remembered_audio_device_selected(self, plane, preferences, scripted_engine):
        preferences.set("selected_audio_device", "Line In (USB)")

        await plane.start()

        assert scripted_engine.calls_to("set_audio_device") == [{"device_name": "Line In (USB)"}]
        assert plane.store.get_state().selected_audio_device == "Line In (USB)"
        await plane.stop()

    async def test_missing_audio_device_not_selected(self, plane, preferences, scripted_engine):
        preferences.set("selected_audio_device", "Unplugged Mic")

        await plane.start()

        assert "set_audio_device" not in scripted_engine.commands()
        await plane.stop()

    async def test_dsp_draft_restored_as_pending(self, plane, preferences):
        preferences.set("dsp_draft", DspSettings(num_bands=64))

        await plane.start()

        assert plane.dsp.dirty_fields() == ["num_bands"]
        assert plane.store.get_state().dsp_settings.num_bands == 128
        await plane.stop()

    async def test_unreadable_preferences_file_left_alone(self, scripted_engine, events, config):
        config.preferences_path.write_text("{ not json", encoding="utf-8")

        plane = ControlPlane(scripted_engine, events, config=config)

        assert plane.preferences.get_model() == LocalPreferences()
        assert config.preferences_path.read_text(encoding="utf-8") == "{ not json"


@pytest.mark.integration
@pytest.mark.asyncio
class TestCommands:
    """Test commands routed through the control plane."""

    async def test_import_notifies_observers(self, plane, scripted_engine):
        observer = Mock(spec=AppObserver)
        plane.register_observer(observer)

        await plane.import_settings(json.dumps({"devices": {}, "virtuals": {}}))

        assert scripted_engine.commands()[-2:] == ["import_settings", "trigger_reload"]
        observer.on_app_event.assert_called_once_with(AppEvent.IMPORTED, kind="Engine Settings")

    async def test_toggle_pause_error_propagates(self, plane, scripted_engine):
        scripted_engine.fail("toggle_pause", "Audio capture not running")

        with pytest.raises(CommandError):
            await plane.toggle_pause()

    async def test_preview_follows_virtual_matrix_edit(self, plane, scripted_engine, events):
        await plane.start()
        await plane.router.subscribe(COMBO)
        scripted_engine.calls.clear()

        edited = VirtualDevice(
            id=COMBO,
            name="Combo",
            matrix_data=[[MatrixCell(device_id=SHELF, pixel=i) for i in range(4)]],
        )
        events.emit("virtuals-changed", [edited.model_dump(mode="json")])
        await plane.flush()

        assert scripted_engine.calls_to("unsubscribe_from_frames") == [{"device_ip": DESK}]
        assert "subscribe_to_frames" not in scripted_engine.commands()
        assert plane.router.subscribed_devices == [SHELF]

        await plane.stop()


@pytest.mark.integration
@pytest.mark.asyncio
class TestEndToEnd:
    """Decode a matrix, select an effect on an active virtual, stage a critical DSP edit."""

    async def test_scenario(self, plane, scripted_engine):
        segments = decode([
            MatrixCell(device_id="A", pixel=0),
            MatrixCell(device_id="A", pixel=1),
            None,
            MatrixCell(device_id="B", pixel=3),
        ])
        assert [(s.kind, s.device_id, s.start, s.end, s.gap_length) for s in segments] == [
            (s.kind, s.device_id, s.start, s.end, s.gap_length)
            for s in (Segment.device_range("A", 0, 1), Segment.gap(1), Segment.device_range("B", 3, 3))
        ]

        await plane.start()
        plane.store.set_state(active_effects={COMBO: True})

        settings = await plane.effects.select_effect(COMBO, "bladepower")

        defaults = {"speed": 50, "color": "#ff0000", "mirror": False}
        assert settings == defaults
        assert scripted_engine.calls_to("get_effect_schema") == [{"effect_id": "bladepower"}]
        assert scripted_engine.calls_to("start_effect") == [
            {"virtual_id": COMBO, "config": {"type": "bladepower", "config": defaults}}
        ]

        plane.dsp.change("smoothing_factor", 0.8)
        await plane.dsp.flush()

        assert plane.dsp.is_dirty
        assert "update_dsp_settings" not in scripted_engine.commands()

        await plane.dsp.apply()

        assert scripted_engine.commands()[-2:] == ["update_dsp_settings", "restart_audio_capture"]
        assert not plane.dsp.is_dirty

        await plane.stop()
