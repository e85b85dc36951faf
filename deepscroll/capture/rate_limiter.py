"""Capture rate limiter: serializes and paces raw screenshot calls."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

from deepscroll.capture.screenshot import classify_failure
from deepscroll.core.config import MIN_CAPTURE_INTERVAL_MS
from deepscroll.core.types import CaptureFailure, CaptureOutcome, SliceCaptured
from deepscroll.store.slice_store import SliceStore

logger = logging.getLogger(__name__)

Screenshotter = Callable[[], Awaitable[bytes]]


class CaptureRateLimiter:
    """
    Holds the single last-capture timestamp shared by every caller.

    All captures go through one lock, so calls are totally ordered and spaced at
    least min_interval_ms apart, measured from the end of one call to the start of
    the next, whichever tab they target. Failures are returned, never retried.
    """

    def __init__(
        self,
        store: SliceStore,
        *,
        min_interval_ms: int = MIN_CAPTURE_INTERVAL_MS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._min_interval = min_interval_ms / 1000
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_capture_time: float | None = None

    @property
    def last_capture_time(self) -> float | None:
        return self._last_capture_time

    async def acquire(self, capture: Screenshotter, y_offset: int) -> CaptureOutcome:
        """Take one screenshot with `capture` and store it under a new slice id."""
        async with self._lock:
            if self._last_capture_time is not None:
                elapsed = self._clock() - self._last_capture_time
                if elapsed < self._min_interval:
                    await self._sleep(self._min_interval - elapsed)

            try:
                try:
                    raster = await capture()
                finally:
                    self._last_capture_time = self._clock()
                slice_id = self._store.put(raster, y_offset)
            except Exception as exc:
                kind = classify_failure(exc)
                logger.error("Capture at y=%d failed (%s): %s", y_offset, kind.value, exc)
                return CaptureFailure(error=str(exc), kind=kind)

            return SliceCaptured(slice_id=slice_id, y_offset=y_offset)
