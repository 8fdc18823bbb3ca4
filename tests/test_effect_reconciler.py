"""Tests for EffectConfigReconciler."""

import asyncio

import pytest

from lightdeck.exceptions import CommandError, PresetError, ValidationError
from lightdeck.models import AppState
from lightdeck.core.store import StateStore
from lightdeck.services import EffectConfigReconciler, SchemaStatus

V1 = "v1"
DEFAULTS = {"speed": 50, "color": "#ff0000", "mirror": False}


@pytest.fixture
def reconciler(store, client, scripted_engine):
    return EffectConfigReconciler(store, client, debounce_ms=10)


def make_active(store, virtual_id=V1):
    store.set_state(active_effects={**store.get_state().active_effects, virtual_id: True})


@pytest.mark.unit
@pytest.mark.asyncio
class TestSelectEffect:
    """Test effect selection and default materialization."""

    async def test_first_selection_fetches_schema_and_materializes_defaults(
        self, reconciler, store, engine
    ):
        settings = await reconciler.select_effect(V1, "bladepower")

        assert settings == DEFAULTS
        assert store.get_state().selected_effects == {V1: "bladepower"}
        assert store.get_state().settings_for(V1, "bladepower") == DEFAULTS
        assert engine.calls_to("get_effect_schema") == [{"effect_id": "bladepower"}]
        assert "start_effect" not in engine.commands()
        assert reconciler.status(V1) is SchemaStatus.READY

    async def test_active_virtual_gets_default_config(self, reconciler, store, engine):
        make_active(store)

        await reconciler.select_effect(V1, "bladepower")

        assert engine.calls_to("start_effect") == [
            {"virtual_id": V1, "config": {"type": "bladepower", "config": DEFAULTS}}
        ]

    async def test_schema_cached_across_virtuals(self, reconciler, engine):
        await reconciler.select_effect(V1, "bladepower")
        await reconciler.select_effect("v2", "bladepower")

        assert engine.commands().count("get_effect_schema") == 1

    async def test_concurrent_schema_requests_share_one_fetch(self, reconciler, engine):
        schemas = await asyncio.gather(
            reconciler.ensure_schema("bladepower"),
            reconciler.ensure_schema("bladepower"),
        )

        assert schemas[0] == schemas[1]
        assert engine.commands().count("get_effect_schema") == 1

    async def test_superseded_selection_is_not_started(self, reconciler, store, engine, bladepower_schema):
        make_active(store)
        release_slow = asyncio.Event()

        async def schema(effect_id):
            if effect_id == "slow":
                await release_slow.wait()
            return bladepower_schema

        engine.respond("get_effect_schema", schema)

        slow = asyncio.create_task(reconciler.select_effect(V1, "slow"))
        await asyncio.sleep(0)
        await reconciler.select_effect(V1, "fast")
        release_slow.set()
        await slow

        started = [call["config"]["type"] for call in engine.calls_to("start_effect")]
        assert started == ["fast"]
        assert store.get_state().selected_effects == {V1: "fast"}
        assert store.get_state().settings_for(V1, "slow") == DEFAULTS

    async def test_existing_settings_are_kept(self, reconciler, store):
        store.set_state(effect_settings={V1: {"bladepower": {"speed": 99}}})

        settings = await reconciler.select_effect(V1, "bladepower")

        assert settings == {"speed": 99}

    async def test_preset_failure_does_not_block_selection(self, reconciler, engine, store):
        engine.fail("load_presets", "Preset store unavailable")

        settings = await reconciler.select_effect(V1, "bladepower")

        assert settings == DEFAULTS

    async def test_schema_failure_raises(self, reconciler, engine):
        engine.fail("get_effect_schema", "Unknown effect")

        with pytest.raises(CommandError):
            await reconciler.select_effect(V1, "bladepower")

        assert reconciler.status(V1) is SchemaStatus.NO_SCHEMA

    async def test_status_without_selection(self, reconciler):
        assert reconciler.status("nobody") is SchemaStatus.NO_SCHEMA


@pytest.mark.unit
@pytest.mark.asyncio
class TestChangeSetting:
    """Test debounced settings pushes."""

    async def test_inactive_virtual_is_not_pushed(self, reconciler, engine):
        await reconciler.select_effect(V1, "bladepower")

        reconciler.change_setting(V1, "speed", 70)
        await reconciler.flush()

        assert "update_effect_settings" not in engine.commands()

    async def test_burst_of_changes_sends_one_full_config(self, reconciler, store, engine):
        await reconciler.select_effect(V1, "bladepower")
        make_active(store)

        for speed in (60, 70, 80):
            reconciler.change_setting(V1, "speed", speed)
        await asyncio.sleep(0.05)
        await reconciler.flush()

        assert engine.calls_to("update_effect_settings") == [
            {"virtual_id": V1, "settings": {"type": "bladepower", "config": {**DEFAULTS, "speed": 80}}}
        ]

    async def test_push_failure_goes_to_banner(self, reconciler, store, engine):
        await reconciler.select_effect(V1, "bladepower")
        make_active(store)
        engine.fail("update_effect_settings", "Virtual is gone")

        reconciler.change_setting(V1, "speed", 10)
        await reconciler.flush()

        assert store.get_state().error == "Virtual is gone"
        assert store.get_state().settings_for(V1, "bladepower")["speed"] == 10

    async def test_change_without_selection(self, reconciler):
        with pytest.raises(ValidationError):
            reconciler.change_setting(V1, "speed", 10)

    async def test_stop_cancels_pending_push(self, reconciler, store, engine):
        await reconciler.select_effect(V1, "bladepower")
        make_active(store)
        reconciler.change_setting(V1, "speed", 10)

        await reconciler.stop_effect(V1)
        await asyncio.sleep(0.05)

        assert "update_effect_settings" not in engine.commands()
        assert store.get_state().is_active(V1) is False


@pytest.mark.unit
@pytest.mark.asyncio
class TestStartStop:
    """Test starting and stopping effects."""

    async def test_start_marks_active_after_success(self, reconciler, store, engine):
        await reconciler.select_effect(V1, "bladepower")

        await reconciler.start_effect(V1)

        assert store.get_state().is_active(V1)
        assert engine.calls_to("start_effect")[0]["config"]["config"] == DEFAULTS

    async def test_rejected_start_leaves_inactive(self, reconciler, store, engine):
        await reconciler.select_effect(V1, "bladepower")
        engine.fail("start_effect", "Virtual is gone")

        with pytest.raises(CommandError):
            await reconciler.start_effect(V1)

        assert not store.get_state().is_active(V1)

    async def test_start_without_settings_uses_defaults(self, client, scripted_engine):
        store = StateStore(AppState(selected_effects={V1: "bladepower"}))
        reconciler = EffectConfigReconciler(store, client)

        await reconciler.start_effect(V1)

        assert store.get_state().settings_for(V1, "bladepower") == DEFAULTS


@pytest.mark.unit
@pytest.mark.asyncio
class TestPresets:
    """Test preset status, load, save and delete."""

    async def test_defaults_match_built_in_preset(self, reconciler):
        await reconciler.select_effect(V1, "bladepower")

        status = reconciler.preset_status(V1)

        assert status.matched_name == "default"
        assert not status.is_dirty
        assert not status.can_save
        assert not status.can_delete

    async def test_changed_setting_is_dirty(self, reconciler):
        await reconciler.select_effect(V1, "bladepower")

        reconciler.change_setting(V1, "speed", 51)
        status = reconciler.preset_status(V1)

        assert status.is_dirty
        assert status.matched_name is None
        assert status.can_save

    async def test_load_preset(self, reconciler, store):
        await reconciler.select_effect(V1, "bladepower")

        settings = await reconciler.load_preset(V1, "mine")

        assert settings["speed"] == 80
        assert reconciler.preset_status(V1).can_delete

    async def test_load_preset_pushes_when_active(self, reconciler, store, engine):
        await reconciler.select_effect(V1, "bladepower")
        make_active(store)

        await reconciler.load_preset(V1, "fast")

        assert engine.calls_to("update_effect_settings")[-1]["settings"]["config"]["speed"] == 100

    async def test_load_unknown_preset(self, reconciler):
        await reconciler.select_effect(V1, "bladepower")

        with pytest.raises(PresetError):
            await reconciler.load_preset(V1, "missing")

    async def test_save_preset_refreshes_cache(self, reconciler, engine):
        await reconciler.select_effect(V1, "bladepower")
        reconciler.change_setting(V1, "speed", 12)

        await reconciler.save_preset(V1, "  slow  ")

        assert engine.calls_to("save_preset") == [{
            "effect_id": "bladepower",
            "preset_name": "slow",
            "settings": {"type": "bladepower", "config": {**DEFAULTS, "speed": 12}},
        }]
        assert engine.commands().count("load_presets") == 2

    async def test_save_requires_dirty_settings(self, reconciler, engine):
        await reconciler.select_effect(V1, "bladepower")

        with pytest.raises(PresetError):
            await reconciler.save_preset(V1, "again")

        assert "save_preset" not in engine.commands()

    async def test_save_requires_name(self, reconciler):
        await reconciler.select_effect(V1, "bladepower")
        reconciler.change_setting(V1, "speed", 12)

        with pytest.raises(PresetError):
            await reconciler.save_preset(V1, "   ")

    async def test_built_in_preset_cannot_be_deleted(self, reconciler, engine):
        await reconciler.select_effect(V1, "bladepower")

        with pytest.raises(PresetError):
            await reconciler.delete_preset(V1)

        assert "delete_preset" not in engine.commands()

    async def test_delete_user_preset(self, reconciler, engine):
        await reconciler.select_effect(V1, "bladepower")
        await reconciler.load_preset(V1, "mine")

        await reconciler.delete_preset(V1)

        assert engine.calls_to("delete_preset") == [{"effect_id": "bladepower", "preset_name": "mine"}]
