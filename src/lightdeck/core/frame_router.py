"""Latest-value frame cache with reference-counted upstream subscriptions."""

import itertools
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import numpy as np

from lightdeck.exceptions import LightDeckError
from lightdeck.model_manager import ObserverManager
from lightdeck.protocols.observers import FrameObserver

logger = logging.getLogger(__name__)

DeviceResolver = Callable[[str], list[str]]
ErrorReporter = Callable[[str], None]
FrameListener = Callable[[str, np.ndarray], None]

_EMPTY = np.zeros(0, dtype=np.uint8)


@dataclass(frozen=True)
class SubscriptionToken:
    """Handle returned by `FrameRouter.subscribe`; release it exactly once."""

    entity_id: str
    serial: int


class _ListenerObserver:
    """Adapts a plain callable to the FrameObserver protocol."""

    def __init__(self, listener: FrameListener):
        self._listener = listener

    def on_frame(self, entity_id: str, buffer: np.ndarray) -> None:
        self._listener(entity_id, buffer)


def to_buffer(payload: Any) -> np.ndarray:
    """Normalize a tick payload (bytes, list of ints or array) to a flat uint8 array."""
    if payload is None:
        return _EMPTY
    if isinstance(payload, np.ndarray):
        return payload.astype(np.uint8, copy=False).ravel()
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return np.frombuffer(payload, dtype=np.uint8)
    return np.asarray(payload, dtype=np.uint8).ravel()


class FrameRouter:
    """
    Fans the engine's frame stream out to preview renderers.

    Holds the latest buffer per entity id (no history, no queue) and keeps
    one upstream frame feed per physical device for as long as any
    subscribed entity needs it.

    Two levels of reference counting apply:
    - per entity: the first subscriber acquires the entity's device feeds,
      the last one releases them
    - per device: two virtuals sharing a device share one upstream feed

    Releasing a token that was never issued, or releasing it twice, is a
    no-op.

    Example:
        ```python
        async with router.subscription("custom_ab12cd34"):
            dispose = router.watch("custom_ab12cd34", redraw)
            ...
            dispose()
        ```
    """

    def __init__(
        self,
        client,
        resolve_devices: DeviceResolver | None = None,
        report_error: ErrorReporter | None = None,
    ):
        """
        Initialize the frame router.

        Args:
            client: EngineClient used for subscribe_to_frames / unsubscribe_from_frames
            resolve_devices: Maps an entity id to the device addresses that feed it.
                Defaults to treating the id as a device address.
            report_error: Called with the engine's message when an upstream
                command fails (typically the store's error banner)
        """
        self._client = client
        self._resolve_devices = resolve_devices or (lambda entity_id: [entity_id])
        self._report_error = report_error

        self._serials = itertools.count(1)
        self._live_tokens: dict[int, SubscriptionToken] = {}
        self._entity_refs: dict[str, int] = {}
        self._entity_devices: dict[str, list[str]] = {}
        self._device_refs: dict[str, int] = {}

        self._frames: dict[str, np.ndarray] = {}
        self._watchers: dict[str, ObserverManager[FrameObserver]] = {}
        self._running = False

    # =================================================================
    # Lifecycle
    # =================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Begin accepting ticks."""
        self._running = True
        logger.info("FrameRouter started")

    async def stop(self) -> None:
        """Release every outstanding subscription and drop all listeners and frames."""
        self._running = False
        for token in list(self._live_tokens.values()):
            await self.unsubscribe(token)
        for watchers in self._watchers.values():
            watchers.clear()
        self._watchers.clear()
        self._frames.clear()
        logger.info("FrameRouter stopped")

    # =================================================================
    # Subscriptions
    # =================================================================

    async def subscribe(self, entity_id: str) -> SubscriptionToken:
        """Register interest in an entity's frames; acquires its device feeds on first use."""
        token = SubscriptionToken(entity_id=entity_id, serial=next(self._serials))
        self._live_tokens[token.serial] = token

        count = self._entity_refs.get(entity_id, 0) + 1
        self._entity_refs[entity_id] = count
        logger.debug(f"subscribe {entity_id}: refcount {count}")

        if count == 1:
            devices = list(dict.fromkeys(self._resolve_devices(entity_id)))
            self._entity_devices[entity_id] = devices
            for device_id in devices:
                await self._acquire_device(device_id)

        return token

    async def unsubscribe(self, token: SubscriptionToken) -> None:
        """Release a token; the last release for an entity releases its device feeds."""
        if self._live_tokens.pop(token.serial, None) is None:
            logger.debug(f"Ignoring release of unknown or already released token {token}")
            return

        count = self._entity_refs.get(token.entity_id, 0)
        if count <= 0:
            return

        count -= 1
        logger.debug(f"unsubscribe {token.entity_id}: refcount {count}")
        if count > 0:
            self._entity_refs[token.entity_id] = count
            return

        del self._entity_refs[token.entity_id]
        for device_id in self._entity_devices.pop(token.entity_id, []):
            await self._release_device(device_id)

    @asynccontextmanager
    async def subscription(self, entity_id: str) -> AsyncIterator[SubscriptionToken]:
        """Subscribe for the duration of an `async with` block."""
        token = await self.subscribe(entity_id)
        try:
            yield token
        finally:
            await self.unsubscribe(token)

    def ref_count(self, entity_id: str) -> int:
        return self._entity_refs.get(entity_id, 0)

    def device_ref_count(self, device_id: str) -> int:
        return self._device_refs.get(device_id, 0)

    @property
    def subscribed_devices(self) -> list[str]:
        return list(self._device_refs)

    async def refresh_devices(self) -> None:
        """
        Re-resolve the device feeds of every subscribed entity.

        Called when virtual definitions change: feeds for newly used devices
        are acquired and feeds no longer used are released.
        """
        acquire: list[str] = []
        release: list[str] = []
        for entity_id in list(self._entity_refs):
            old = self._entity_devices.get(entity_id, [])
            new = list(dict.fromkeys(self._resolve_devices(entity_id)))
            if new == old:
                continue
            self._entity_devices[entity_id] = new
            logger.info(f"Device feeds of {entity_id} changed: {old} -> {new}")
            acquire += [device_id for device_id in new if device_id not in old and self._retain(device_id)]
            release += [device_id for device_id in old if device_id not in new and self._drop(device_id)]

        # A device released by one entity and acquired by another keeps its feed
        moved = set(acquire) & set(release)
        acquire = [device_id for device_id in acquire if device_id not in moved]
        release = [device_id for device_id in release if device_id not in moved]

        for device_id in acquire:
            logger.info(f"Requesting frame feed for device {device_id}")
            await self._upstream(self._client.subscribe_to_frames, device_id)
        for device_id in release:
            logger.info(f"Releasing frame feed for device {device_id}")
            await self._upstream(self._client.unsubscribe_from_frames, device_id)

    def _retain(self, device_id: str) -> bool:
        """Count one more user of a device; True when it is the first."""
        count = self._device_refs.get(device_id, 0) + 1
        self._device_refs[device_id] = count
        return count == 1

    def _drop(self, device_id: str) -> bool:
        """Count one user less of a device; True when it was the last."""
        count = self._device_refs.get(device_id, 0)
        if count <= 0:
            return False
        if count > 1:
            self._device_refs[device_id] = count - 1
            return False
        del self._device_refs[device_id]
        return True

    async def _acquire_device(self, device_id: str) -> None:
        if self._retain(device_id):
            logger.info(f"Requesting frame feed for device {device_id}")
            await self._upstream(self._client.subscribe_to_frames, device_id)

    async def _release_device(self, device_id: str) -> None:
        if self._drop(device_id):
            logger.info(f"Releasing frame feed for device {device_id}")
            await self._upstream(self._client.unsubscribe_from_frames, device_id)

    async def _upstream(self, command, device_id: str) -> None:
        try:
            await command(device_id)
        except LightDeckError as e:
            logger.warning(f"Frame feed command for {device_id} failed: {e.technical_message}")
            if self._report_error:
                self._report_error(e.user_message)

    # =================================================================
    # Frames
    # =================================================================

    def on_tick(self, frame_map: Mapping[str, Any]) -> None:
        """
        Store the buffers of one engine tick.

        Entities missing from the tick keep their previous buffer. Watchers
        are only notified for entities whose buffer changed. Ticks that
        arrive before `start()` or after `stop()` are ignored.
        """
        if not self._running:
            logger.debug(f"Ignoring tick for {len(frame_map)} entities while stopped")
            return

        for entity_id, payload in frame_map.items():
            buffer = to_buffer(payload)
            previous = self._frames.get(entity_id)
            self._frames[entity_id] = buffer

            if previous is not None and np.array_equal(previous, buffer):
                continue
            watchers = self._watchers.get(entity_id)
            if watchers:
                watchers.notify("on_frame", entity_id, buffer)

    def get_frame(self, entity_id: str) -> np.ndarray | None:
        """Latest buffer for an entity, or None if no tick has carried it yet."""
        return self._frames.get(entity_id)

    def watch(self, entity_id: str, listener: FrameListener | FrameObserver) -> Callable[[], None]:
        """
        Call `listener(entity_id, buffer)` whenever the entity's buffer changes.

        Returns a disposer; calling it more than once is harmless.
        """
        observer = listener if isinstance(listener, FrameObserver) else _ListenerObserver(listener)
        watchers = self._watchers.setdefault(
            entity_id, ObserverManager[FrameObserver](observer_type_name="frame")
        )
        watchers.register(observer)

        def dispose() -> None:
            current = self._watchers.get(entity_id)
            if current is None:
                return
            current.unregister(observer)
            if not current:
                del self._watchers[entity_id]

        return dispose
