"""Tests for EngineClient result unwrapping."""

import pytest

from lightdeck.exceptions import CommandError
from lightdeck.models import DspSettings, EffectConfig, PhysicalDevice, PresetCollection


@pytest.mark.unit
@pytest.mark.asyncio
class TestResults:
    """Test tagged result handling."""

    async def test_ok_result_returns_data(self, client, engine):
        engine.respond("get_audio_devices", ["Default"])

        assert await client.get_audio_devices() == ["Default"]

    async def test_error_result_raises_with_engine_message(self, client, engine):
        engine.fail("toggle_pause", "Audio capture not running")

        with pytest.raises(CommandError) as exc_info:
            await client.toggle_pause()

        assert exc_info.value.user_message == "Audio capture not running"
        assert exc_info.value.command == "toggle_pause"

    @pytest.mark.parametrize("raw", [None, {"status": "maybe"}, {"status": "error"}, "ok"])
    async def test_malformed_result_raises(self, client, engine, raw):
        engine.respond_raw("trigger_reload", raw)

        with pytest.raises(CommandError):
            await client.trigger_reload()

    async def test_invalid_data_raises(self, client, engine):
        engine.respond("get_devices", [{"ip_address": "192.168.1.10"}])

        with pytest.raises(CommandError):
            await client.get_devices()

    async def test_nothing_is_retried(self, client, engine):
        engine.fail("get_scenes", "Busy")

        with pytest.raises(CommandError):
            await client.get_scenes()

        assert engine.commands() == ["get_scenes"]


@pytest.mark.unit
@pytest.mark.asyncio
class TestTypedCommands:
    """Test argument shapes and typed parsing."""

    async def test_devices_parsed(self, client, scripted_engine, devices):
        assert await client.get_devices() == devices

    async def test_dsp_settings_parsed(self, client, scripted_engine):
        assert await client.get_dsp_settings() == DspSettings()

    async def test_presets_parsed(self, client, scripted_engine):
        presets = await client.load_presets("bladepower")

        assert isinstance(presets, PresetCollection)
        assert scripted_engine.calls_to("load_presets") == [{"effect_id": "bladepower"}]

    async def test_start_effect_arguments(self, client, engine):
        await client.start_effect("v1", EffectConfig(type="rainbow", config={"speed": 2}))

        assert engine.calls_to("start_effect") == [
            {"virtual_id": "v1", "config": {"type": "rainbow", "config": {"speed": 2}}}
        ]

    async def test_add_device_arguments(self, client, engine):
        await client.add_device(PhysicalDevice(ip_address="10.0.0.2", name="Strip", led_count=30))

        assert engine.calls_to("add_device") == [
            {"config": {"ip_address": "10.0.0.2", "name": "Strip", "led_count": 30}}
        ]
