"""Capture orchestrator: pre-roll, scroll+capture loop, restore."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from transitions import Machine

from deepscroll.capture.host import ScrollHost
from deepscroll.capture.resolver import ScrollTargetResolver
from deepscroll.core.config import CaptureConfig
from deepscroll.core.types import (
    CapturedSlice,
    CaptureOutcome,
    CaptureResult,
    CaptureSession,
    CaptureState,
    HiddenElement,
    ScrollTarget,
    SliceCaptured,
)

logger = logging.getLogger(__name__)

_TRANSITIONS = [
    {"trigger": "begin_pre_roll", "source": CaptureState.IDLE, "dest": CaptureState.PRE_ROLL},
    {"trigger": "begin_capture", "source": CaptureState.PRE_ROLL, "dest": CaptureState.CAPTURING},
    {
        "trigger": "begin_restore",
        "source": [CaptureState.PRE_ROLL, CaptureState.CAPTURING],
        "dest": CaptureState.RESTORING,
    },
    {"trigger": "finish", "source": CaptureState.RESTORING, "dest": CaptureState.DONE},
    {"trigger": "fail", "source": CaptureState.RESTORING, "dest": CaptureState.FAILED},
    {"trigger": "end_session", "source": "*", "dest": CaptureState.IDLE},
]

NO_CONTENT_MESSAGE = "no content captured"


class CaptureOrchestrator:
    """
    Drives one capture session at a time over a ScrollHost.

    Usage:
        orchestrator = CaptureOrchestrator(host, capture=limiter.acquire)
        result = await orchestrator.run()
        # result.slices → [(y_offset, slice_id), ...] in scroll order

    `capture` is called with the measured scroll offset and returns either a
    SliceCaptured or a CaptureFailure. Failures are logged and skipped.
    """

    def __init__(
        self,
        host: ScrollHost,
        capture: Callable[[int], Awaitable[CaptureOutcome]],
        *,
        config: CaptureConfig | None = None,
        resolver: ScrollTargetResolver | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._host = host
        self._capture = capture
        self.config = config or CaptureConfig()
        self._resolver = resolver or ScrollTargetResolver()
        self._sleep = sleep
        self._hidden: list[HiddenElement] = []

        self.machine = Machine(
            model=self,
            states=CaptureState,
            transitions=_TRANSITIONS,
            initial=CaptureState.IDLE,
            auto_transitions=False,
        )

    @property
    def is_capturing(self) -> bool:
        return self.state is not CaptureState.IDLE

    async def run(self) -> CaptureResult | None:
        """
        Run a full session. Returns None when a session is already active.

        Errors from pre-roll or the capture loop propagate after the pinned
        elements have been restored.
        """
        if self.is_capturing:
            logger.debug("Capture already in progress (%s); trigger dropped", self.state.value)
            return None

        self.begin_pre_roll()
        try:
            try:
                result = await self._run_session()
            except BaseException:
                # cancellation included: pinned elements must never stay hidden
                self.begin_restore()
                await self._restore_pinned_elements()
                self.fail()
                raise
            self.begin_restore()
            await self._restore_pinned_elements()
            self.finish()
            result.state = self.state
            return result
        finally:
            self.end_session()

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _run_session(self) -> CaptureResult:
        await self._host.prepare()

        if await self._host.has_virtualized_content():
            logger.warning("Virtualized content detected; some content may not be captured")

        metadata = await self._host.metadata()
        target = await self._resolver.resolve(self._host)
        logger.info("Scroll target detected: %s", target)

        await self._hide_pinned_elements()
        await self._pre_roll(target)

        self.begin_capture()
        session, stop_reason = await self._capture_loop(target)
        logger.info(
            "Capture complete: %d slices, stop reason %s", session.slice_count, stop_reason
        )

        message = ""
        if not session.slices:
            message = NO_CONTENT_MESSAGE
            logger.warning("No slices captured")

        return CaptureResult(
            slices=list(session.slices),
            state=self.state,
            metadata=metadata,
            message=message,
            stop_reason=stop_reason,
        )

    async def _hide_pinned_elements(self) -> None:
        self._hidden = []
        for el in await self._host.enumerate_elements():
            if not el.is_pinned:
                continue
            original = await self._host.get_visibility(el.element_id)
            # recorded before hiding so a failure halfway still restores it
            self._hidden.append(HiddenElement(el.element_id, original))
            await self._host.set_visibility(el.element_id, "hidden")
        logger.debug("Hid %d fixed/sticky elements", len(self._hidden))

    async def _restore_pinned_elements(self) -> None:
        for record in self._hidden:
            try:
                await self._host.set_visibility(record.element_id, record.original_visibility)
            except Exception:
                logger.warning(
                    "Could not restore visibility of element %s", record.element_id, exc_info=True
                )
        self._hidden = []

    async def _pre_roll(self, target: ScrollTarget) -> None:
        """Scroll to the bottom and back so lazy loaders fire before measuring."""
        scroll_height, _ = await self._host.dimensions(target)
        await self._scroll_to(target, scroll_height)
        await self._wait(self.config.settle_delay_ms)
        await self._scroll_to(target, 0)
        await self._wait(self.config.settle_delay_ms)

    async def _capture_loop(self, target: ScrollTarget) -> tuple[CaptureSession, str]:
        total_height, viewport_height = await self._host.dimensions(target)
        session = CaptureSession(
            target=target,
            total_height=total_height,
            viewport_height=viewport_height,
            step=max(1, viewport_height - self.config.overlap_px),
            initial_height=total_height,
        )

        current_y = 0
        while current_y < session.total_height:
            if session.slice_count >= self.config.max_slices:
                logger.warning(
                    "Reached max slices (%d); stopping to prevent infinite capture",
                    self.config.max_slices,
                )
                return session, "max_slices"

            if session.total_height > session.initial_height * self.config.max_height_growth:
                logger.warning(
                    "Page grew %.1fx (%dpx → %dpx); stopping infinite scroll",
                    session.total_height / session.initial_height,
                    session.initial_height,
                    session.total_height,
                )
                return session, "height_growth"

            await self._scroll_to(target, current_y)
            await self._wait(self.config.render_delay_ms)

            actual_y = await self._host.get_scroll_top(target)
            new_height, _ = await self._host.dimensions(target)
            if new_height > session.total_height:
                logger.info("Page grew from %dpx to %dpx", session.total_height, new_height)
                session.total_height = new_height

            outcome = await self._capture(actual_y)
            if isinstance(outcome, SliceCaptured):
                session.slices.append(CapturedSlice(y_offset=actual_y, slice_id=outcome.slice_id))
                logger.info("Captured slice %d at y=%d", session.slice_count, actual_y)
            else:
                logger.error("Capture failed at y=%d: %s", actual_y, outcome.error)

            # checked after capturing so the bottom viewport is captured exactly once
            if current_y + session.viewport_height >= session.total_height:
                return session, "bottom"

            current_y += session.step

        return session, "bottom"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _scroll_to(self, target: ScrollTarget, y: int) -> None:
        await self._host.set_scroll_top(target, y)
        await self._host.dispatch_scroll_event(target)

    async def _wait(self, ms: int) -> None:
        await self._sleep(ms / 1000)
