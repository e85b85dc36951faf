"""Page side of a capture: receives START_DEEPSCROLL, runs the orchestrator, reports slices."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from deepscroll.capture.host import ScrollHost
from deepscroll.capture.orchestrator import CaptureOrchestrator
from deepscroll.core.config import CaptureConfig
from deepscroll.core.types import CaptureFailure, CaptureOutcome, CaptureResult, SliceCaptured
from deepscroll.messaging.protocol import (
    CaptureResponse,
    CaptureVisibleTab,
    Message,
    OpenEditor,
    StartDeepScroll,
    parse_message,
)

logger = logging.getLogger(__name__)

Sender = Callable[[dict], Awaitable[Any]]


class ContentScript:
    """
    Talks to the background side only through `send` (wire dicts in, wire
    dicts out). A START_DEEPSCROLL that arrives while a session is running is
    dropped silently.
    """

    def __init__(
        self,
        host: ScrollHost,
        send: Sender,
        *,
        config: CaptureConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._send = send
        self.orchestrator = CaptureOrchestrator(
            host, self._request_capture, config=config, sleep=sleep
        )
        self._task: asyncio.Task | None = None

    async def handle(self, raw: dict | Message) -> None:
        message = parse_message(raw)
        if not isinstance(message, StartDeepScroll):
            logger.debug("Ignoring %s on the page side", message.type.value)
            return
        if self.orchestrator.is_capturing or (self._task is not None and not self._task.done()):
            return
        self._task = asyncio.create_task(self.deep_scroll())

    async def join(self) -> CaptureResult | None:
        """Wait for the session started by the last START_DEEPSCROLL."""
        if self._task is None:
            return None
        return await self._task

    async def deep_scroll(self) -> CaptureResult | None:
        """Fire-and-forget entry point: errors are logged, never raised."""
        logger.info("DeepScroll: starting")
        try:
            return await self.run_session()
        except Exception:
            logger.exception("DeepScroll core error")
            return None

    async def run_session(self, *, open_editor: bool = True) -> CaptureResult | None:
        result = await self.orchestrator.run()
        if result is None:
            return None
        if result.slices and open_editor:
            await self._send(
                OpenEditor(
                    slice_ids=result.slice_ids,
                    pixel_ratio=result.metadata.device_pixel_ratio,
                ).to_dict()
            )
        elif not result.slices:
            logger.warning("DeepScroll: %s", result.message)
        return result

    async def _request_capture(self, y: int) -> CaptureOutcome:
        response = CaptureResponse.from_dict(await self._send(CaptureVisibleTab(y=y).to_dict()))
        if response.success and response.slice_id is not None:
            return SliceCaptured(slice_id=response.slice_id, y_offset=y)
        return CaptureFailure(error=response.error or "capture failed")
