"""Pytest fixtures for tests."""

import inspect
from collections import defaultdict
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Any

import pytest

from lightdeck.core.store import StateStore
from lightdeck.engine.client import EngineClient
from lightdeck.models import (
    DspSettings,
    EffectInfo,
    MatrixCell,
    PhysicalDevice,
    VirtualDevice,
)


class FakeEngine:
    """
    Scripted CommandSurface.

    Every invocation is recorded in `calls`. A command answers with the data
    set through `respond()` (a value, or a callable taking the command
    arguments, whose result may be awaitable), an error result set through `fail()`, or `None` data.
    """

    def __init__(self):
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self._responses: dict[str, Any] = {}
        self._errors: dict[str, str] = {}
        self._raw: dict[str, Any] = {}

    def respond(self, command: str, data: Any) -> None:
        self._errors.pop(command, None)
        self._responses[command] = data

    def fail(self, command: str, message: str) -> None:
        self._errors[command] = message

    def respond_raw(self, command: str, raw: Any) -> None:
        """Return `raw` as-is instead of a tagged result."""
        self._raw[command] = raw

    async def invoke(self, command: str, **args: Any) -> dict:
        self.calls.append((command, args))
        if command in self._raw:
            return self._raw[command]
        if command in self._errors:
            return {"status": "error", "error": self._errors[command]}
        data = self._responses.get(command)
        if callable(data):
            data = data(**args)
            if inspect.isawaitable(data):
                data = await data
        return {"status": "ok", "data": data}

    def commands(self) -> list[str]:
        return [command for command, _ in self.calls]

    def calls_to(self, command: str) -> list[dict[str, Any]]:
        return [args for name, args in self.calls if name == command]


class FakeEventSource:
    """EventSource that lets tests emit engine events by hand."""

    def __init__(self):
        self.handlers: dict[str, list] = defaultdict(list)

    def listen(self, event: str, handler):
        self.handlers[event].append(handler)

        def unlisten() -> None:
            if handler in self.handlers[event]:
                self.handlers[event].remove(handler)

        return unlisten

    def emit(self, event: str, payload: Any) -> None:
        for handler in list(self.handlers[event]):
            handler(payload)

    def listener_count(self) -> int:
        return sum(len(handlers) for handlers in self.handlers.values())


@pytest.fixture
def temp_dir():
    """Create a temporary directory that gets cleaned up."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def engine():
    """Scripted fake engine."""
    return FakeEngine()


@pytest.fixture
def events():
    """Fake engine event source."""
    return FakeEventSource()


@pytest.fixture
def client(engine):
    return EngineClient(engine)


@pytest.fixture
def store():
    return StateStore()


@pytest.fixture
def devices():
    """Two physical devices: 60 and 30 pixels."""
    return [
        PhysicalDevice(ip_address="192.168.1.10", name="Desk", led_count=60),
        PhysicalDevice(ip_address="192.168.1.11", name="Shelf", led_count=30),
    ]


@pytest.fixture
def device_map(devices):
    return {device.id: device for device in devices}


@pytest.fixture
def combined_virtual():
    """Virtual made of Desk 0-9, a 2 pixel gap, then Shelf 5-7."""
    row = [MatrixCell(device_id="192.168.1.10", pixel=i) for i in range(10)]
    row += [None, None]
    row += [MatrixCell(device_id="192.168.1.11", pixel=i) for i in range(5, 8)]
    return VirtualDevice(id="custom_combo", name="Combo", matrix_data=[row])


@pytest.fixture
def bladepower_schema():
    """Settings schema of the bladepower effect as the engine sends it."""
    return [
        {
            "id": "speed",
            "name": "Speed",
            "description": "Animation speed",
            "control": {"type": "slider", "min": 1, "max": 100, "step": 1},
            "defaultValue": 50,
        },
        {
            "id": "color",
            "name": "Color",
            "description": "Base color",
            "control": {"type": "colorPicker"},
            "defaultValue": "#ff0000",
        },
        {
            "id": "mirror",
            "name": "Mirror",
            "description": "Mirror around the center",
            "control": {"type": "checkbox"},
            "defaultValue": False,
        },
    ]


@pytest.fixture
def bladepower_presets():
    return {
        "user": {
            "mine": {"type": "bladepower", "config": {"speed": 80, "color": "#00ff00", "mirror": False}},
        },
        "built_in": {
            "default": {"type": "bladepower", "config": {"speed": 50, "color": "#ff0000", "mirror": False}},
            "fast": {"type": "bladepower", "config": {"speed": 100, "color": "#ff0000", "mirror": True}},
        },
    }


@pytest.fixture
def scripted_engine(engine, devices, combined_virtual, bladepower_schema, bladepower_presets):
    """Fake engine answering every query with a small consistent setup."""
    engine.respond("get_devices", [d.model_dump() for d in devices])
    engine.respond("get_virtuals", [combined_virtual.model_dump()])
    engine.respond("get_scenes", [])
    engine.respond("get_dsp_settings", DspSettings().model_dump(mode="json"))
    engine.respond(
        "get_available_effects",
        [EffectInfo(id="bladepower", name="Blade Power").model_dump()],
    )
    engine.respond("get_effect_schema", bladepower_schema)
    engine.respond("load_presets", bladepower_presets)
    engine.respond("get_playback_state", {"is_paused": False})
    engine.respond("get_audio_devices", ["Default", "Line In (USB)"])
    return engine
