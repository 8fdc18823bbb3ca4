"""Virtual and physical device management."""

import logging
import uuid
from typing import Any

from lightdeck.codec.segment_editor import SegmentEditor
from lightdeck.core.store import StateStore
from lightdeck.engine.client import EngineClient
from lightdeck.exceptions import ValidationError
from lightdeck.models.device import DiscoveredDevice, PhysicalDevice, VirtualDevice

logger = logging.getLogger(__name__)

CUSTOM_PREFIX = "custom_"


def new_virtual_id() -> str:
    return f"{CUSTOM_PREFIX}{uuid.uuid4().hex[:8]}"


class VirtualService:
    """
    Composes virtuals from device ranges and keeps device lists in sync.

    The engine owns devices and virtuals: commands here only ask for a
    change, and the `devices-changed` / `virtuals-changed` events carry the
    result back into the store.
    """

    def __init__(self, store: StateStore, client: EngineClient):
        self._store = store
        self._client = client

    # =================================================================
    # Virtuals
    # =================================================================

    def new_editor(self, name: str = "My Custom Strip") -> SegmentEditor:
        return SegmentEditor(self._store.get_state().devices, name=name)

    def edit(self, virtual_id: str) -> SegmentEditor:
        """Open an existing virtual in a segment editor."""
        state = self._store.get_state()
        virtual = state.virtuals.get(virtual_id)
        if virtual is None:
            raise ValidationError(f"Unknown virtual '{virtual_id}'")
        return SegmentEditor.from_virtual(virtual, state.devices)

    async def create_virtual(self, editor: SegmentEditor) -> VirtualDevice:
        """Validate the editor's segments and add them as a new custom virtual."""
        virtual = editor.to_virtual(new_virtual_id())
        await self._client.add_virtual(virtual)
        logger.info(f"Added virtual '{virtual.name}' ({virtual.id}, {virtual.pixel_count} px)")
        return virtual

    async def update_virtual(self, editor: SegmentEditor) -> VirtualDevice:
        """Save an edited existing virtual."""
        if editor.is_new:
            raise ValidationError("This virtual has not been created yet")
        virtual = editor.to_virtual()
        await self._client.update_virtual(virtual)
        logger.info(f"Updated virtual '{virtual.name}' ({virtual.id})")
        return virtual

    async def save(self, editor: SegmentEditor) -> VirtualDevice:
        if editor.is_new:
            return await self.create_virtual(editor)
        return await self.update_virtual(editor)

    async def remove_virtual(self, virtual_id: str) -> None:
        await self._client.remove_virtual(virtual_id)
        logger.info(f"Removed virtual {virtual_id}")

    # =================================================================
    # Devices
    # =================================================================

    async def add_device(self, device: DiscoveredDevice | PhysicalDevice) -> PhysicalDevice:
        """Add a (usually discovered) device to the engine."""
        if isinstance(device, DiscoveredDevice):
            device = device.to_device()
        await self._client.add_device(device)
        logger.info(f"Added device '{device.name}' at {device.ip_address}")
        return device

    async def remove_device(self, device_ip: str) -> None:
        await self._client.remove_device(device_ip)
        logger.info(f"Removed device {device_ip}")

    # =================================================================
    # Engine events
    # =================================================================

    def on_devices_changed(self, payload: Any) -> None:
        devices = self._validate_list(payload, PhysicalDevice, "devices-changed")
        if devices is not None:
            self._store.set_state(devices={d.ip_address: d for d in devices})

    def on_virtuals_changed(self, payload: Any) -> None:
        virtuals = self._validate_list(payload, VirtualDevice, "virtuals-changed")
        if virtuals is not None:
            self._store.set_state(virtuals={v.id: v for v in virtuals})

    def on_device_found(self, payload: Any) -> None:
        """Discovery event: remember the device, de-duplicated by address."""
        try:
            found = DiscoveredDevice.model_validate(payload)
        except ValueError as e:
            logger.debug(f"Ignoring malformed device-found payload: {e}")
            return
        discovered = self._store.get_state().discovered_devices
        if discovered.get(found.ip_address) == found:
            return
        logger.info(f"Discovered device '{found.name}' at {found.ip_address}")
        self._store.set_state(discovered_devices={**discovered, found.ip_address: found})

    def resolve_devices(self, entity_id: str) -> list[str]:
        """Device addresses that feed an entity's frames (used by the frame router)."""
        virtual = self._store.get_state().virtuals.get(entity_id)
        if virtual is None:
            return [entity_id]
        return virtual.device_ids()

    @staticmethod
    def _validate_list(payload: Any, model, event: str) -> list | None:
        if not isinstance(payload, list):
            logger.debug(f"Ignoring {event} payload that is not a list")
            return None
        items = []
        for item in payload:
            try:
                items.append(model.model_validate(item))
            except ValueError as e:
                logger.debug(f"Dropping malformed {event} entry: {e}")
        return items
