"""Per-key single-slot debounce timers on the asyncio loop."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)

Action = Callable[[], Awaitable[None] | None]


class Debouncer:
    """
    Runs only the last action scheduled for a key within the delay window.

    Each key holds at most one pending timer; scheduling again cancels and
    replaces it. Cancelling an unknown or already-fired key is a no-op.
    Coroutine actions run as tasks that are tracked until they finish.

    Example:
        ```python
        debouncer = Debouncer(delay_ms=300, name="dsp")
        debouncer.schedule("dsp", lambda: client.update_dsp_settings(settings))
        ```
    """

    def __init__(self, delay_ms: int, name: str = "debounce"):
        self._delay = delay_ms / 1000
        self._name = name
        self._pending: dict[Hashable, tuple[asyncio.TimerHandle, Action]] = {}
        self._tasks: set[asyncio.Task] = set()

    @property
    def delay(self) -> float:
        return self._delay

    def schedule(self, key: Hashable, action: Action) -> None:
        """(Re)start the timer for `key`; must be called from the running loop."""
        self.cancel(key)
        loop = asyncio.get_running_loop()
        handle = loop.call_later(self._delay, self._fire, key)
        self._pending[key] = (handle, action)
        logger.debug(f"[{self._name}] scheduled {key!r} in {self._delay:.3f}s")

    def is_pending(self, key: Hashable) -> bool:
        return key in self._pending

    def pending_keys(self) -> list[Hashable]:
        return list(self._pending)

    def cancel(self, key: Hashable) -> bool:
        """Cancel the pending timer for `key`. Returns True if one was pending."""
        entry = self._pending.pop(key, None)
        if entry is None:
            return False
        entry[0].cancel()
        return True

    def cancel_all(self) -> None:
        for key in list(self._pending):
            self.cancel(key)

    async def flush(self, key: Hashable | None = None) -> None:
        """Fire pending timers now (one key or all) and wait for their actions."""
        keys = [key] if key is not None else list(self._pending)
        for k in keys:
            entry = self._pending.pop(k, None)
            if entry is None:
                continue
            entry[0].cancel()
            self._run(k, entry[1])
        await self.wait_idle()

    async def wait_idle(self) -> None:
        """Wait until every action already started has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel pending timers and in-flight actions."""
        self.cancel_all()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _fire(self, key: Hashable) -> None:
        entry = self._pending.pop(key, None)
        if entry is None:
            return
        self._run(key, entry[1])

    def _run(self, key: Hashable, action: Action) -> None:
        try:
            result = action()
        except Exception as e:
            logger.error(f"[{self._name}] action for {key!r} failed: {e}", exc_info=True)
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"[{self._name}] debounced action failed: {error}", exc_info=error)
