"""DeepScroll: main entry point wiring capture, storage, stitching and editing."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable

from PIL import Image
from playwright.async_api import Page

from deepscroll.capture.content import ContentScript
from deepscroll.capture.host import PlaywrightScrollHost, ScrollHost
from deepscroll.capture.rate_limiter import CaptureRateLimiter, Screenshotter
from deepscroll.capture.screenshot import PlaywrightScreenshotter
from deepscroll.core.config import CaptureConfig, EditorConfig
from deepscroll.core.errors import NoCaptureDataError
from deepscroll.core.types import CaptureResult
from deepscroll.editor.history import HistoryState
from deepscroll.editor.session import EditorSession
from deepscroll.messaging.background import BackgroundService, TabContext
from deepscroll.messaging.protocol import TriggerCaptureFlow
from deepscroll.stitch.stitcher import Stitcher
from deepscroll.store.slice_store import FileSliceStore, MemorySliceStore, SliceStore


class DeepScroll:
    """
    Captures long pages from Playwright and hands them to the editor.

    Usage:
        ds = DeepScroll()
        tab_id = ds.attach(page)
        result = await ds.capture(tab_id)    # scrolls, captures, stores slices
        session = ds.open_editor()           # stitched, editable buffer
        session.export("page.png")
    """

    def __init__(
        self,
        *,
        store: SliceStore | None = None,
        store_dir: str | None = None,
        capture_config: CaptureConfig | None = None,
        editor_config: EditorConfig | None = None,
        editor_opener: Callable[[str], Any] | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if store is None:
            store = FileSliceStore(store_dir) if store_dir else MemorySliceStore()
        self.store = store
        self.capture_config = capture_config or CaptureConfig()
        self.editor_config = editor_config or EditorConfig()
        self._sleep = sleep
        self._stitcher = Stitcher()

        limiter = CaptureRateLimiter(
            store,
            min_interval_ms=self.capture_config.min_capture_interval_ms,
            clock=clock,
            sleep=sleep,
        )
        self.background = BackgroundService(store, limiter=limiter, editor_opener=editor_opener)
        self._contents: dict[int, ContentScript] = {}
        self._next_tab_id = 1

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def attach(
        self,
        page: Page | None = None,
        *,
        host: ScrollHost | None = None,
        screenshot: Screenshotter | None = None,
    ) -> int:
        """
        Register a page and return its tab id.

        Without a Playwright page, both `host` and `screenshot` must be given.
        """
        if page is None and (host is None or screenshot is None):
            raise ValueError("attach() needs a page, or both host and screenshot")

        tab_id = self._next_tab_id
        self._next_tab_id += 1

        tab = TabContext(
            tab_id=tab_id,
            screenshot=screenshot or PlaywrightScreenshotter(page),
            page=page,
        )

        async def send(message: dict) -> Any:
            return await self.background.handle(message, sender=tab)

        content = ContentScript(
            host or PlaywrightScrollHost(page),
            send,
            config=self.capture_config,
            sleep=self._sleep,
        )
        tab.deliver = content.handle
        self.background.register_tab(tab)
        self._contents[tab_id] = content
        return tab_id

    def detach(self, tab_id: int) -> None:
        self.background.unregister_tab(tab_id)
        self._contents.pop(tab_id, None)

    async def capture(self, tab_id: int, *, open_editor: bool = True) -> CaptureResult | None:
        """
        Run a capture session on an attached tab and wait for it.

        Returns None when a session is already running on that tab. Errors
        propagate after the page has been restored.
        """
        content = self._contents.get(tab_id)
        if content is None:
            raise KeyError(f"Tab {tab_id!r} is not attached")
        return await content.run_session(open_editor=open_editor)

    async def trigger(self, tab_id: int) -> dict | None:
        """Fire-and-forget trigger, as the toolbar button would send it."""
        return await self.background.handle(TriggerCaptureFlow(tab_id=tab_id).to_dict())

    async def wait_idle(self) -> None:
        """Wait for triggered capture flows and the sessions they started."""
        await self.background.drain()
        for content in list(self._contents.values()):
            await content.join()

    # ------------------------------------------------------------------
    # Stitch / edit
    # ------------------------------------------------------------------

    def stitch(self, result: CaptureResult) -> Image.Image:
        if result.is_empty:
            raise NoCaptureDataError()
        return self._stitcher.stitch_slices(
            result.slice_ids, self.store, result.metadata.device_pixel_ratio
        )

    def open_editor(
        self,
        fragment: str | None = None,
        *,
        on_history_change: Callable[[HistoryState], None] | None = None,
    ) -> EditorSession:
        """Open the editor for a fragment, defaulting to the last OPEN_EDITOR request."""
        fragment = fragment or self.background.last_editor_url
        if not fragment:
            raise NoCaptureDataError()
        return EditorSession.from_fragment(
            fragment,
            self.store,
            stitcher=self._stitcher,
            config=self.editor_config,
            on_history_change=on_history_change,
        )

    def reset(self) -> None:
        """Drop all stored slices."""
        self.store.clear()
