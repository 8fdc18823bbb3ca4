"""Live one-line preview of a virtual's pixels."""

import numpy as np
from textual.events import Resize
from textual.widgets import Static

from lightdeck.core.frame_router import FrameRouter, SubscriptionToken
from lightdeck.preview import buffer_to_colors, fit_to_width

PIXEL = "█"


class StripPreview(Static):
    """
    Draws the latest frame of one entity as a row of colored cells.

    Subscribes to the entity's frames while mounted and releases the
    subscription on unmount. Resizing redraws the last known frame; it
    never waits for the next tick.
    """

    DEFAULT_CSS = """
    StripPreview {
        height: 1;
        width: 100%;
        background: $surface;
    }
    """

    def __init__(self, router: FrameRouter, entity_id: str, pixel_count: int | None = None) -> None:
        """
        Initialize the preview.

        Args:
            router: Frame router to subscribe through
            entity_id: Virtual or device id to preview
            pixel_count: Known pixel count; a missing frame is drawn as this many off pixels
        """
        super().__init__()
        self.entity_id = entity_id
        self._router = router
        self._pixel_count = pixel_count
        self._token: SubscriptionToken | None = None
        self._dispose_watch = None

    async def on_mount(self) -> None:
        self._token = await self._router.subscribe(self.entity_id)
        self._dispose_watch = self._router.watch(self.entity_id, self._on_frame)
        self.redraw()

    async def on_unmount(self) -> None:
        if self._dispose_watch is not None:
            self._dispose_watch()
            self._dispose_watch = None
        if self._token is not None:
            token, self._token = self._token, None
            await self._router.unsubscribe(token)

    def on_resize(self, event: Resize) -> None:
        self.redraw()

    def _on_frame(self, entity_id: str, buffer: np.ndarray) -> None:
        self.redraw()

    def render_markup(self, width: int) -> str:
        """Markup for the current frame resampled to `width` cells."""
        colors = buffer_to_colors(self._router.get_frame(self.entity_id), self._pixel_count)
        cells = fit_to_width(colors, width)
        return "".join(f"[{color.to_hex()}]{PIXEL}[/]" for color in cells)

    def redraw(self) -> None:
        """Render the last known frame at the current width."""
        width = self.size.width or self._pixel_count or 1
        self.update(self.render_markup(width))
