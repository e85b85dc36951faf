"""Background side: owns the rate-limited capture resource and the slice store."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from playwright.async_api import Page

from deepscroll.capture.rate_limiter import CaptureRateLimiter, Screenshotter
from deepscroll.core.types import CaptureMetadata, SliceCaptured
from deepscroll.messaging.payload import EditorPayload
from deepscroll.messaging.protocol import (
    CaptureResponse,
    CaptureVisibleTab,
    Message,
    OpenEditor,
    StartDeepScroll,
    TriggerCaptureFlow,
    parse_message,
)
from deepscroll.store.slice_store import SliceStore

logger = logging.getLogger(__name__)


@dataclass
class TabContext:
    """A page known to the background service, and how to reach its page side."""

    tab_id: int | str
    screenshot: Screenshotter
    deliver: Callable[[dict], Awaitable[Any]] | None = None
    url: str = ""
    title: str = ""
    page: Page | None = None

    async def describe(self) -> tuple[str, str]:
        if self.page is not None:
            return self.page.url, await self.page.title()
        return self.url, self.title


class BackgroundService:
    """
    Handles CAPTURE_VISIBLE_TAB, OPEN_EDITOR and TRIGGER_CAPTURE_FLOW.

    The editor opener receives the editor URL (payload in the fragment); the
    default just records it in `last_editor_url`.
    """

    def __init__(
        self,
        store: SliceStore,
        *,
        limiter: CaptureRateLimiter | None = None,
        editor_opener: Callable[[str], Any] | None = None,
    ) -> None:
        self.store = store
        self.limiter = limiter or CaptureRateLimiter(store)
        self._editor_opener = editor_opener
        self._tabs: dict[int | str, TabContext] = {}
        self._tasks: set[asyncio.Task] = set()
        self.last_editor_url: str | None = None

    def register_tab(self, tab: TabContext) -> None:
        self._tabs[tab.tab_id] = tab

    def unregister_tab(self, tab_id: int | str) -> None:
        self._tabs.pop(tab_id, None)

    def get_tab(self, tab_id: int | str) -> TabContext | None:
        return self._tabs.get(tab_id)

    async def handle(self, raw: dict | Message, sender: TabContext | None = None) -> dict | None:
        message = parse_message(raw)

        if isinstance(message, CaptureVisibleTab):
            if sender is None:
                return CaptureResponse(success=False, error="No sender tab").to_dict()
            outcome = await self.limiter.acquire(sender.screenshot, message.y)
            if isinstance(outcome, SliceCaptured):
                return CaptureResponse(success=True, slice_id=outcome.slice_id).to_dict()
            return CaptureResponse(success=False, error=outcome.error).to_dict()

        if isinstance(message, OpenEditor):
            await self.open_editor(message, sender)
            return None

        if isinstance(message, TriggerCaptureFlow):
            task = asyncio.create_task(self.start_capture_flow(message.tab_id))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            return {"success": True}

        # START_DEEPSCROLL is addressed to the page side
        logger.debug("Ignoring %s on the background side", message.type.value)
        return None

    async def open_editor(self, message: OpenEditor, sender: TabContext | None) -> str:
        url, title = await sender.describe() if sender is not None else ("", "")
        payload = EditorPayload(
            ids=list(message.slice_ids),
            meta=CaptureMetadata(
                url=url,
                title=title,
                captured_at=time.time() * 1000,
                device_pixel_ratio=message.pixel_ratio or 1.0,
            ),
        )
        editor_url = payload.editor_url()
        self.last_editor_url = editor_url
        logger.info("Opening editor for %d slices", len(payload.ids))
        if self._editor_opener is not None:
            self._editor_opener(editor_url)
        return editor_url

    async def start_capture_flow(self, tab_id: int | str) -> None:
        tab = self._tabs.get(tab_id)
        if tab is None or tab.deliver is None:
            logger.error("Cannot start capture: tab %s has no page side attached", tab_id)
            return
        try:
            await tab.deliver(StartDeepScroll().to_dict())
            logger.info("Start command sent to tab %s", tab_id)
        except Exception:
            logger.error("Start command to tab %s failed (likely restricted page)", tab_id, exc_info=True)

    async def drain(self) -> None:
        """Wait for capture flows started by TRIGGER_CAPTURE_FLOW."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
