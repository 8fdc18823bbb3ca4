"""Typed client over the engine's command surface."""

import logging
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from lightdeck.exceptions import CommandError
from lightdeck.models.device import PhysicalDevice, VirtualDevice
from lightdeck.models.dsp import DspSettings
from lightdeck.models.effect import EffectConfig, EffectInfo, EffectSetting, PresetCollection
from lightdeck.models.scene import Scene
from lightdeck.models.state import PlaybackState
from lightdeck.protocols.engine import CommandSurface

logger = logging.getLogger(__name__)


class OkResult(BaseModel):
    status: Literal["ok"]
    data: Any = None


class ErrorResult(BaseModel):
    status: Literal["error"]
    error: str


CommandResult = Annotated[OkResult | ErrorResult, Field(discriminator="status")]

_result_adapter = TypeAdapter(CommandResult)
_devices = TypeAdapter(list[PhysicalDevice])
_virtuals = TypeAdapter(list[VirtualDevice])
_scenes = TypeAdapter(list[Scene])
_effects = TypeAdapter(list[EffectInfo])
_schema = TypeAdapter(list[EffectSetting])
_names = TypeAdapter(list[str])


class EngineClient:
    """
    One coroutine per engine command.

    Every call unwraps the tagged result: the `data` of an ok result is
    validated into the model the command returns, and an error result is
    raised as `CommandError` carrying the engine's message. Nothing is
    retried.
    """

    def __init__(self, surface: CommandSurface):
        self._surface = surface

    async def call(self, command: str, **args: Any) -> Any:
        """
        Invoke a command and return the data of an ok result.

        Raises:
            CommandError: The engine returned an error result, or a result
                that is not a valid tagged result
        """
        logger.debug(f"-> {command} {sorted(args)}")
        raw = await self._surface.invoke(command, **args)

        try:
            result = _result_adapter.validate_python(raw)
        except PydanticValidationError as e:
            raise CommandError(
                command, "Malformed response from engine",
                technical_message=f"Engine command '{command}' returned {raw!r}: {e}",
            ) from e

        if isinstance(result, ErrorResult):
            logger.warning(f"Engine rejected {command}: {result.error}")
            raise CommandError(command, result.error)
        return result.data

    async def _call_as(self, adapter: TypeAdapter, command: str, **args: Any) -> Any:
        data = await self.call(command, **args)
        try:
            return adapter.validate_python(data)
        except PydanticValidationError as e:
            raise CommandError(
                command, "Malformed response from engine",
                technical_message=f"Engine command '{command}' returned invalid data: {e}",
            ) from e

    # =================================================================
    # Queries
    # =================================================================

    async def get_devices(self) -> list[PhysicalDevice]:
        return await self._call_as(_devices, "get_devices")

    async def get_virtuals(self) -> list[VirtualDevice]:
        return await self._call_as(_virtuals, "get_virtuals")

    async def get_scenes(self) -> list[Scene]:
        return await self._call_as(_scenes, "get_scenes")

    async def get_dsp_settings(self) -> DspSettings:
        return await self._call_as(TypeAdapter(DspSettings), "get_dsp_settings")

    async def get_available_effects(self) -> list[EffectInfo]:
        return await self._call_as(_effects, "get_available_effects")

    async def get_effect_schema(self, effect_id: str) -> list[EffectSetting]:
        return await self._call_as(_schema, "get_effect_schema", effect_id=effect_id)

    async def load_presets(self, effect_id: str) -> PresetCollection:
        return await self._call_as(TypeAdapter(PresetCollection), "load_presets", effect_id=effect_id)

    async def get_playback_state(self) -> PlaybackState:
        return await self._call_as(TypeAdapter(PlaybackState), "get_playback_state")

    async def get_audio_devices(self) -> list[str]:
        return await self._call_as(_names, "get_audio_devices")

    # =================================================================
    # Effects
    # =================================================================

    async def start_effect(self, virtual_id: str, config: EffectConfig) -> None:
        await self.call("start_effect", virtual_id=virtual_id, config=config.model_dump(mode="json"))

    async def stop_effect(self, virtual_id: str) -> None:
        await self.call("stop_effect", virtual_id=virtual_id)

    async def update_effect_settings(self, virtual_id: str, settings: EffectConfig) -> None:
        await self.call(
            "update_effect_settings", virtual_id=virtual_id, settings=settings.model_dump(mode="json")
        )

    async def save_preset(self, effect_id: str, preset_name: str, settings: EffectConfig) -> None:
        await self.call(
            "save_preset",
            effect_id=effect_id,
            preset_name=preset_name,
            settings=settings.model_dump(mode="json"),
        )

    async def delete_preset(self, effect_id: str, preset_name: str) -> None:
        await self.call("delete_preset", effect_id=effect_id, preset_name=preset_name)

    # =================================================================
    # Virtuals & devices
    # =================================================================

    async def add_virtual(self, virtual: VirtualDevice) -> None:
        await self.call("add_virtual", config=virtual.model_dump(mode="json"))

    async def update_virtual(self, virtual: VirtualDevice) -> None:
        await self.call("update_virtual", config=virtual.model_dump(mode="json"))

    async def remove_virtual(self, virtual_id: str) -> None:
        await self.call("remove_virtual", virtual_id=virtual_id)

    async def add_device(self, device: PhysicalDevice) -> None:
        await self.call("add_device", config=device.model_dump(mode="json"))

    async def remove_device(self, device_ip: str) -> None:
        await self.call("remove_device", device_ip=device_ip)

    async def subscribe_to_frames(self, device_ip: str) -> None:
        await self.call("subscribe_to_frames", device_ip=device_ip)

    async def unsubscribe_from_frames(self, device_ip: str) -> None:
        await self.call("unsubscribe_from_frames", device_ip=device_ip)

    # =================================================================
    # Scenes
    # =================================================================

    async def save_scene(self, scene: Scene) -> None:
        await self.call("save_scene", scene=scene.model_dump(mode="json"))

    async def activate_scene(self, scene_id: str) -> None:
        await self.call("activate_scene", scene_id=scene_id)

    async def delete_scene(self, scene_id: str) -> None:
        await self.call("delete_scene", scene_id=scene_id)

    # =================================================================
    # Engine-wide settings & playback
    # =================================================================

    async def update_dsp_settings(self, settings: DspSettings) -> None:
        await self.call("update_dsp_settings", settings=settings.model_dump(mode="json"))

    async def restart_audio_capture(self) -> None:
        await self.call("restart_audio_capture")

    async def set_target_fps(self, fps: int) -> None:
        await self.call("set_target_fps", fps=fps)

    async def set_audio_device(self, device_name: str) -> None:
        await self.call("set_audio_device", device_name=device_name)

    async def toggle_pause(self) -> None:
        await self.call("toggle_pause")

    # =================================================================
    # Import / export
    # =================================================================

    async def export_settings(self) -> str:
        return await self._call_as(TypeAdapter(str), "export_settings")

    async def import_settings(self, data: str) -> None:
        await self.call("import_settings", data=data)

    async def trigger_reload(self) -> None:
        await self.call("trigger_reload")
